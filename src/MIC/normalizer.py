"""
MIC string normalizer.

Rewrites one raw laboratory token into a canonical-form candidate such as
"<=0.002" or ">=128". The pipeline only cleans the text; whether the result is
an actual MIC value is decided by the validator against the canonical table.
"""

from __future__ import annotations

import decimal
import re
import typing
from enum import Enum, auto

import numpy as np
import pandas as pd


class Candidate(Enum):
    """Marker for input that had content but nothing usable left after cleanup."""
    UNPARSEABLE = auto()


UNPARSEABLE = Candidate.UNPARSEABLE

# Patterns, applied in this order by normalize_mic()
_INVALID_CHARACTERS = re.compile(r"[^a-zA-Z0-9.><= ]+")
_SPACE_AFTER_OPERATOR = re.compile(r"([<=>]) +")
_DOT_WITHOUT_LEADING_DIGIT = re.compile(r"(^|[^0-9])\.")
_MULTIPLE_DOTS = re.compile(r".*\..*\.")
_ENDING_DOT_ZERO = re.compile(r"\.+0$")
_TRAILING_NON_DIGITS = re.compile(r"[^0-9]+$")
_LEADING_ZEROS_BEFORE_DOT = re.compile(r"(^|[^0-9])0+\.")
_STARTING_DOUBLE_ZERO = re.compile(r"^00")
_ENDING_DOT = re.compile(r"\.$")


def normalize_mic(raw: str) -> str | Candidate:
    """
    Clean up a single MIC token:
      1. comma as decimal separator -> period
      2. Unicode comparators -> ASCII ("≤" -> "<=")
      3. drop characters outside [a-zA-Z0-9.><= ]
      4. drop spaces after a comparator ("<= 4" -> "<=4")
      5. fix swapped comparators ("=<" -> "<=", "=>" -> ">=")
      6. add a leading zero to bare decimals (".5" -> "0.5")
      7. keep only the last fragment of multi-dot input ("<=0.2560.512" -> "0.512")
      8. drop a trailing ".0"
      9. drop everything after the last digit ("<=0.002 S" -> "<=0.002")
     10. keep one zero before the decimal point ("00.5" -> "0.5")
     11. read a starting "00" without a dot as "0.0" ("002" -> "0.02")
     12. drop insignificant trailing fractional zeros ("0.250" -> "0.25")
     13. never end with a dot
     14. trim

    Returns UNPARSEABLE if the token had content but nothing is left.
    """
    if not isinstance(raw, str):
        raise TypeError(f"normalize_mic() expects a string, got {type(raw).__name__}")

    value = raw.replace(",", ".")
    value = value.replace("≤", "<=").replace("≥", ">=")
    value = _INVALID_CHARACTERS.sub("", value)
    value = _SPACE_AFTER_OPERATOR.sub(r"\1", value)
    value = value.replace("=<", "<=").replace("=>", ">=")
    value = _DOT_WITHOUT_LEADING_DIGIT.sub(r"\g<1>0.", value)
    value = _MULTIPLE_DOTS.sub("0.", value)
    value = _ENDING_DOT_ZERO.sub("", value)
    value = _TRAILING_NON_DIGITS.sub("", value)
    value = _LEADING_ZEROS_BEFORE_DOT.sub(r"\g<1>0.", value)
    if "." not in value:
        value = _STARTING_DOUBLE_ZERO.sub("0.0", value)
    if "." in value:
        value = value.rstrip("0")
    value = _ENDING_DOT.sub("", value)
    value = value.strip()

    if not value and raw.strip():
        return UNPARSEABLE
    return value


def format_raw(value: typing.Any) -> str | None:
    """
    Render one raw input element as text for the normalizer.
    Missing values (None, NaN, pd.NA) become None; numbers are written
    positionally (never in scientific notation) with up to 15 significant digits.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, np.bool_)):
        raise TypeError("Logical values cannot be interpreted as MIC values")
    if isinstance(value, (float, np.floating)):
        if np.isnan(value):
            return None
        return np.format_float_positional(np.float64(value), precision=15, unique=False, fractional=False, trim="-")
    if isinstance(value, (int, np.integer)):
        return str(int(value))
    if isinstance(value, decimal.Decimal):
        if value.is_nan():
            return None
        return format(value, "f")
    if value is pd.NA or value is pd.NaT:
        return None
    # MIC scalars (and other str-like values) render to their canonical text
    if hasattr(value, "comparator") and hasattr(value, "magnitude"):
        return str(value)
    raise TypeError(f"Cannot interpret a value of type {type(value).__name__} as a MIC")


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()
