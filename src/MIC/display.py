"""
Text rendering of MIC values.
"""

from __future__ import annotations

import typing

import numpy as np
import pandas as pd

from .dtype import MIC, MICArray
from .levels import VALID_MIC_LEVELS, split_level
from .validation import as_mic


def _as_array(x: typing.Any) -> MICArray:
    if isinstance(x, MIC):
        return MICArray(np.array([x.code], dtype=np.int16))
    array = as_mic(x)
    return array.array if isinstance(array, pd.Series) else array


def format_mic(x: typing.Any, na_rep: str = "NA") -> list[str]:
    """Comparator followed by the magnitude, e.g. "<=0.002"; `na_rep` for missing values."""
    formatted = []
    for code in _as_array(x).codes:
        if code < 0:
            formatted.append(na_rep)
            continue
        comparator, magnitude = split_level(VALID_MIC_LEVELS[code])
        formatted.append(comparator + magnitude)
    return formatted


def mic_operators(x: typing.Any) -> list[str | None]:
    """The comparator of every value ("" for exact values, None for missing ones)."""
    return [split_level(VALID_MIC_LEVELS[code])[0] if code >= 0 else None for code in _as_array(x).codes]


def describe_mic(x: typing.Any, na_rep: str = "NA") -> str:
    """
    Printable overview: a header line with the number of values and missing
    values, followed by the formatted values.
    """
    array = _as_array(x)
    missing = int(array.isna().sum())
    header = f"Class 'mic'[{len(array)}]"
    if missing:
        header += f" ({missing} missing)"
    return header + "\n" + " ".join(format_mic(array, na_rep=na_rep))
