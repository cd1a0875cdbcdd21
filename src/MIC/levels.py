"""
Canonical MIC value table.

Every valid MIC value is a comparator (or none) followed by a magnitude taken
from the dilution series used in laboratory practice. The table is the sole
acceptance criterion of the validator and its order (by magnitude, then by
comparator) is the category order of the `mic` dtype.
"""

from __future__ import annotations

import re
from decimal import Decimal
from functools import lru_cache
from typing import Dict, Iterable, List, Tuple

import numpy as np

# Comparators in their tie-breaking order
OPERATORS: Tuple[str, ...] = ("<", "<=", "", ">=", ">")
_COMPARATOR_CHARACTERS = re.compile(r"[<=>]+")


def _plain(value: Decimal) -> str:
    """Render a Decimal without exponent and without trailing zeros."""
    return format(value.normalize(), "f")


def _magnitude_series() -> List[Decimal]:
    """
    All valid magnitudes, one entry per dilution step:
      - 0.0001 .. 0.0008 (selected)
      - 0.001 .. 0.009 and 0.0011 .. 0.0099 (no multiples of ten)
      - 0.01 .. 0.099 plus 0.0125, 0.0128, 0.0156, 0.0165, 0.0256, 0.0512, 0.0625
      - 0.1 .. 0.99 plus 0.125, 0.128, 0.256, 0.512
      - 1 .. 9 and 1.5
      - even whole numbers 10 .. 98
      - 128 .. 2048 as powers of two, 192, and multiples of 80 up to 960
    """
    series: List[Decimal] = []
    series += [Decimal(f"0.000{n}") for n in (1, 2, 3, 4, 6, 8)]
    series += [Decimal(f"0.00{n}") for n in range(1, 100) if n % 10]
    series += [Decimal(f"0.0{n}") for n in list(range(1, 100)) + [125, 128, 156, 165, 256, 512, 625]]
    series += [Decimal(f"0.{n}") for n in list(range(1, 100)) + [125, 128, 256, 512]]
    series += [Decimal(n) for n in range(1, 10)] + [Decimal("1.5")]
    series += [Decimal(n) for n in range(10, 99, 2)]
    series += [Decimal(2**n) for n in range(7, 12)] + [Decimal(192)] + [Decimal(80 * n) for n in range(2, 13)]
    return series


@lru_cache(maxsize=None)
def generate_levels() -> Tuple[str, ...]:
    """
    Build the canonical table: every comparator crossed with every magnitude,
    de-duplicated (e.g. `0.010` and `0.01` are the same value) and sorted by
    magnitude, ties broken by comparator order.
    """
    magnitudes = {_plain(m): m for m in _magnitude_series()}
    pairs = {
        (magnitude, OPERATORS.index(op), op + text)
        for text, magnitude in magnitudes.items()
        for op in OPERATORS
    }
    return tuple(level for _, _, level in sorted(pairs))


VALID_MIC_LEVELS: Tuple[str, ...] = generate_levels()

_LEVEL_INDEX: Dict[str, int] = {level: i for i, level in enumerate(VALID_MIC_LEVELS)}


def level_index(value: str) -> int:
    """Rank of a canonical string in the table, or -1 if it is not a valid MIC."""
    return _LEVEL_INDEX.get(value, -1)


def is_valid_level(value: str) -> bool:
    return value in _LEVEL_INDEX


def levels_for_operator(operator: str) -> List[str]:
    """All table entries sharing one comparator ('' for exact values)."""
    if operator not in OPERATORS:
        raise ValueError(f"Unknown MIC operator: {operator!r}")
    return [level for level in VALID_MIC_LEVELS if split_level(level)[0] == operator]


def split_level(value: str) -> Tuple[str, str]:
    """Split a canonical string into (comparator, magnitude text)."""
    digits_at = len(value) - len(value.lstrip("<=>"))
    return value[:digits_at], value[digits_at:]


def codes_to_levels(codes: Iterable[int]) -> List[str | None]:
    return [VALID_MIC_LEVELS[c] if c >= 0 else None for c in codes]


def strip_operators(value: str) -> float:
    """
    Numeric projection of one MIC string: drop every comparator character and
    parse what is left as a float. Unparseable text gives NaN.
    """
    try:
        return float(_COMPARATOR_CHARACTERS.sub("", value))
    except ValueError:
        return float("nan")


# Magnitude of every table entry, aligned with VALID_MIC_LEVELS
MAGNITUDES: np.ndarray = np.array([strip_operators(level) for level in VALID_MIC_LEVELS], dtype=np.float64)
MAGNITUDES.flags.writeable = False


def project_codes(codes: np.ndarray) -> np.ndarray:
    """Magnitudes for an array of table codes; -1 (missing) becomes NaN."""
    codes = np.asarray(codes)
    values = np.full(codes.shape, np.nan, dtype=np.float64)
    present = codes >= 0
    values[present] = MAGNITUDES[codes[present]]
    return values
