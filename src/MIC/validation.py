"""
MIC validation.

Runs raw input through the normalizer, keeps only candidates present in the
canonical table and aggregates every rejected input of a batch into a single
MICDiagnostic. Rejected elements become missing; they never abort the batch.
"""

from __future__ import annotations

import decimal
import logging
import numbers
import typing
import warnings
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from pandas.api.extensions import ExtensionArray
from stairval.notepad import Notepad

from .levels import level_index
from .normalizer import UNPARSEABLE, format_raw, is_blank, normalize_mic

if typing.TYPE_CHECKING:
    from .dtype import MICArray

logger = logging.getLogger(__name__)


class InvalidMICWarning(UserWarning):
    """Issued when a conversion turned non-empty input into missing values."""


@dataclass(frozen=True)
class MICDiagnostic:
    """
    Outcome of one validation call.

    Attributes:
        count: Number of non-blank inputs that became missing.
        total: Number of non-blank inputs in the batch.
        invalid: Distinct offending raw inputs, sorted.
        column: Optional name of the column the batch came from.
    """

    count: int = 0
    total: int = 0
    invalid: Tuple[str, ...] = ()
    column: Optional[str] = None

    def __bool__(self) -> bool:
        return self.count > 0

    @property
    def percentage(self) -> int:
        if not self.total:
            return 0
        return round(100 * self.count / self.total)

    @property
    def message(self) -> str:
        if not self:
            return ""
        plural = "s" if self.count > 1 else ""
        where = f" in column '{self.column}'" if self.column else ""
        return (
            f"in `as_mic()`: {self.count} result{plural}{where} truncated "
            f"({self.percentage}%) that were invalid MICs: {_vector_and(self.invalid)}"
        )


def _vector_and(items: Sequence[str]) -> str:
    # '"a", "b" and "c"'
    quoted = [f'"{item}"' for item in items]
    if len(quoted) < 2:
        return "".join(quoted)
    return ", ".join(quoted[:-1]) + " and " + quoted[-1]


@lru_cache(maxsize=8192)
def _lookup(text: str) -> int:
    candidate = normalize_mic(text)
    if candidate is UNPARSEABLE:
        return -1
    return level_index(candidate)


def _is_scalar_input(x: typing.Any) -> bool:
    return (
        x is None
        or x is pd.NA
        or isinstance(x, (str, numbers.Number, decimal.Decimal))
        or (hasattr(x, "comparator") and hasattr(x, "magnitude"))
    )


def _as_raw_list(x: typing.Any) -> list:
    """Flatten any accepted input kind into a list of raw elements."""
    if isinstance(x, (bool, np.bool_)):
        raise TypeError("`x` must be text, numbers or MIC values, not a logical value")
    if _is_scalar_input(x):
        return [x]
    if isinstance(x, pd.Series):
        return list(x.astype(object))
    if isinstance(x, ExtensionArray):
        return list(x.astype(object))
    if isinstance(x, pd.Index):
        return list(x)
    if isinstance(x, np.ndarray):
        if x.ndim != 1:
            raise TypeError(f"`x` must be one-dimensional, got an array of shape {x.shape}")
        return list(x)
    if isinstance(x, (list, tuple)):
        return list(x)
    raise TypeError(
        "`x` must be of class 'mic', 'character', 'numeric', 'integer' or 'factor', "
        f"got {type(x).__name__}"
    )


def _check_arguments(na_rm: typing.Any, column: typing.Any) -> None:
    if not isinstance(na_rm, bool):
        raise TypeError(f"`na_rm` must be a single logical value, got {na_rm!r}")
    if column is not None and not isinstance(column, str):
        raise TypeError(f"`column` must be a string, got {type(column).__name__}")


def validate_codes(
    raw: list, na_rm: bool = False, column: Optional[str] = None
) -> Tuple[np.ndarray, MICDiagnostic, List[bool]]:
    """
    Validate a list of raw elements.

    Returns the table codes (-1 = missing), the diagnostic, and a mask telling
    which input elements were kept (all True unless `na_rm` dropped blanks).
    """
    texts = [format_raw(value) for value in raw]
    kept = [not (na_rm and is_blank(text)) for text in texts]
    texts = [text for text, keep in zip(texts, kept) if keep]

    codes = np.full(len(texts), -1, dtype=np.int16)
    invalid: set[str] = set()
    total = 0
    failed = 0
    for i, text in enumerate(texts):
        if is_blank(text):
            continue
        total += 1
        code = _lookup(text)
        if code < 0:
            failed += 1
            invalid.add(text)
        codes[i] = code

    diagnostic = MICDiagnostic(
        count=failed,
        total=total,
        invalid=tuple(sorted(invalid)),
        column=column,
    )
    logger.debug(
        "Validated %d MIC inputs (%d non-blank, %d invalid)%s",
        len(texts), total, failed, f" in column {column!r}" if column else "",
    )
    return codes, diagnostic, kept


def validate_mic(
    x: typing.Any, na_rm: bool = False, column: Optional[str] = None
) -> Tuple["MICArray", MICDiagnostic]:
    """
    Convert input into a MICArray without reporting anything.
    The caller decides what to do with the returned MICDiagnostic.
    """
    from .dtype import MICArray

    _check_arguments(na_rm, column)
    if isinstance(x, MICArray):
        return x, MICDiagnostic(column=column)
    if isinstance(x, pd.Series) and isinstance(x.array, MICArray):
        return x.array, MICDiagnostic(column=column)

    codes, diagnostic, _ = validate_codes(_as_raw_list(x), na_rm=na_rm, column=column)
    return MICArray(codes), diagnostic


def report_diagnostic(diagnostic: MICDiagnostic, notepad: Optional[Notepad] = None, sheet_name: Optional[str] = None) -> None:
    """Surface a non-empty diagnostic on the notepad, or as a Python warning."""
    if not diagnostic:
        return
    message = diagnostic.message
    if sheet_name:
        message = f"Sheet {sheet_name!r}: {message}"
    if notepad is not None:
        notepad.add_warning(message)
    else:
        warnings.warn(message, InvalidMICWarning, stacklevel=3)


def as_mic(
    x: typing.Any,
    na_rm: bool = False,
    column: Optional[str] = None,
    notepad: Optional[Notepad] = None,
):
    """
    Transform input to minimum inhibitory concentrations.

    Text, numbers, categoricals and existing MIC values are accepted. Values
    are cleaned up ("≤ 0,5" -> "<=0.5", "<=0.002; S" -> "<=0.002") and kept
    only if they are valid MICs; anything else becomes missing and is listed
    in a single warning for the whole call.

    Args:
        x: A scalar, list, tuple, numpy array, pandas Series/Index/Categorical,
            or a MICArray (returned as is).
        na_rm: Drop missing and blank input instead of keeping it as missing.
        column: Column name to mention in the warning.
        notepad: Collect the warning on this notepad instead of issuing it.

    Returns:
        A MICArray, or a Series of dtype "mic" (same index and name) when `x`
        is a Series.
    """
    from .dtype import MICArray

    _check_arguments(na_rm, column)
    if isinstance(x, MICArray):
        return x
    if isinstance(x, pd.Series) and isinstance(x.array, MICArray):
        return x

    if isinstance(x, pd.Series):
        codes, diagnostic, kept = validate_codes(_as_raw_list(x), na_rm=na_rm, column=column or _series_name(x))
        report_diagnostic(diagnostic, notepad)
        return pd.Series(MICArray(codes), index=x.index[np.asarray(kept, dtype=bool)], name=x.name)

    codes, diagnostic, _ = validate_codes(_as_raw_list(x), na_rm=na_rm, column=column)
    report_diagnostic(diagnostic, notepad)
    return MICArray(codes)


def _series_name(x: pd.Series) -> Optional[str]:
    return x.name if isinstance(x.name, str) else None


def all_valid_mics(x: typing.Any) -> bool:
    """
    True when every non-missing element of `x` is a valid MIC and at least
    one element is present. Never warns.
    """
    try:
        array, diagnostic = validate_mic(x, na_rm=True)
    except TypeError:
        return False
    return len(array) > 0 and not bool(np.any(array.isna()))


def is_mic(x: typing.Any) -> bool:
    from .dtype import MIC, MICArray, MICDtype

    if isinstance(x, (MIC, MICArray)):
        return True
    return isinstance(x, pd.Series) and isinstance(x.dtype, MICDtype)
