import abc
import logging
import re
import typing

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_datetime64_any_dtype
from stairval.notepad import Notepad

from .dtype import MICDtype
from .stats import fivenum
from .validation import all_valid_mics, report_diagnostic, validate_mic

logger = logging.getLogger(__name__)

# Identifier columns hold small integers that would pass as MICs
_IDENTIFIER_COLUMN = re.compile(r"(^|_)id$")

SUMMARY_COLUMNS = ["n", "missing", "min", "lower_hinge", "median", "upper_hinge", "max"]


def _prefix(sheet_name: str | None) -> str:
    return f"Sheet {sheet_name!r}: " if sheet_name else ""


def find_mic_columns(df: pd.DataFrame) -> list[str]:
    """
    Columns that already have the mic dtype, or whose non-missing values are
    all valid MICs. Logical, datetime and identifier columns are never picked.
    """
    found = []
    for column in df.columns:
        series = df[column]
        if isinstance(series.dtype, MICDtype):
            found.append(column)
            continue
        if is_bool_dtype(series.dtype) or is_datetime64_any_dtype(series.dtype):
            continue
        if isinstance(column, str) and _IDENTIFIER_COLUMN.search(column):
            continue
        if all_valid_mics(series):
            found.append(column)
    logger.debug("Detected MIC columns: %s", found)
    return found


def convert_mic_columns(
    df: pd.DataFrame,
    notepad: Notepad,
    columns: typing.Optional[typing.Sequence[str]] = None,
    sheet_name: typing.Optional[str] = None,
) -> pd.DataFrame:
    """
    Return a copy of `df` with the requested (or detected) columns converted
    to the mic dtype.

    Invalid values become missing and are reported as one notepad warning per
    column. Requested columns that are absent are notepad errors.
    """
    converted = df.copy()
    if columns is None:
        columns = find_mic_columns(df)
    else:
        missing = [column for column in columns if column not in df.columns]
        if missing:
            notepad.add_error(f"{_prefix(sheet_name)}missing MIC columns: {missing}")
        columns = [column for column in columns if column in df.columns]

    for column in columns:
        array, diagnostic = validate_mic(df[column], column=str(column))
        report_diagnostic(diagnostic, notepad, sheet_name=sheet_name)
        # mic columns come back as the caller's own array
        converted[column] = pd.Series(array.copy(), index=df.index, name=column)
        logger.debug("%sconverted column %r (%d invalid)", _prefix(sheet_name), column, diagnostic.count)
    return converted


def summarize_mic_columns(df: pd.DataFrame) -> pd.DataFrame:
    """
    One row per mic column: number of values, missing values, and the
    five-number summary of the magnitudes.
    """
    rows = {}
    for column in df.columns:
        series = df[column]
        if not isinstance(series.dtype, MICDtype):
            continue
        missing = int(series.isna().sum())
        rows[column] = [len(series), missing, *fivenum(series)]
    summary = pd.DataFrame.from_dict(rows, orient="index", columns=SUMMARY_COLUMNS)
    return summary.astype({"n": np.int64, "missing": np.int64})


class TableConverter(metaclass=abc.ABCMeta):
    @abc.abstractmethod
    def apply_conversion(
            self, tables: dict[str, pd.DataFrame], notepad: Notepad
    ) -> dict[str, pd.DataFrame]:
        raise NotImplementedError


class MICTableConverter(TableConverter):
    def __init__(self, columns: typing.Optional[typing.Sequence[str]] = None):
        """
        - None: convert every column that looks like MIC data
        - otherwise: convert these columns, in every sheet
        """
        self.columns = list(columns) if columns else None

    def apply_conversion(
            self, tables: dict[str, pd.DataFrame], notepad: Notepad
    ) -> dict[str, pd.DataFrame]:
        """
        Convert the MIC columns of every sheet. Sheets without MIC columns
        are kept as is and reported as a warning.
        """
        if not tables:
            notepad.add_error("No tables found in input")
            return {}

        converted: dict[str, pd.DataFrame] = {}
        for sheet_name, df in tables.items():
            columns = self.columns if self.columns is not None else find_mic_columns(df)
            if not columns:
                notepad.add_warning(f"Sheet {sheet_name!r}: no MIC columns found")
                converted[sheet_name] = df
                continue
            converted[sheet_name] = convert_mic_columns(df, notepad, columns=columns, sheet_name=sheet_name)
        return converted
