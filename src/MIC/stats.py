"""
Descriptive statistics for MIC values.

All statistics are computed on the numeric projection: ">=128" counts as 128.
"""

from __future__ import annotations

import typing
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
import pandas as pd

from .numeric import as_double

DEFAULT_PROBS = (0.0, 0.25, 0.5, 0.75, 1.0)


def _values(x: typing.Any, na_rm: bool) -> np.ndarray | None:
    """Projected values; None when missing values are present and not removed."""
    values = np.atleast_1d(np.asarray(as_double(x), dtype=np.float64))
    missing = np.isnan(values)
    if missing.any():
        if not na_rm:
            return None
        values = values[~missing]
    return values


def median(x: typing.Any, na_rm: bool = False) -> float:
    values = _values(x, na_rm)
    if values is None or not len(values):
        return float("nan")
    return float(np.median(values))


def mean(x: typing.Any, na_rm: bool = False) -> float:
    values = _values(x, na_rm)
    if values is None or not len(values):
        return float("nan")
    return float(np.mean(values))


def quantile(x: typing.Any, probs: Sequence[float] = DEFAULT_PROBS, na_rm: bool = False) -> pd.Series:
    """
    Sample quantiles (linear interpolation between order statistics), indexed
    by percentage labels such as "25%".
    Raises ValueError for missing values unless `na_rm` is set.
    """
    values = _values(x, na_rm)
    if values is None:
        raise ValueError("missing values are not allowed if 'na_rm' is False")
    probs = [float(p) for p in probs]
    if any(p < 0 or p > 1 for p in probs):
        raise ValueError("'probs' must lie within [0, 1]")
    labels = [f"{p * 100:g}%" for p in probs]
    if not len(values):
        return pd.Series([np.nan] * len(probs), index=labels)
    return pd.Series(np.quantile(values, probs), index=labels)


def iqr(x: typing.Any, na_rm: bool = False) -> float:
    """Interquartile range."""
    q = quantile(x, probs=(0.25, 0.75), na_rm=na_rm)
    return float(q.iloc[1] - q.iloc[0])


def mad(x: typing.Any, constant: float = 1.4826, na_rm: bool = False) -> float:
    """Median absolute deviation, scaled to be consistent with the standard deviation."""
    values = _values(x, na_rm)
    if values is None or not len(values):
        return float("nan")
    center = np.median(values)
    return float(constant * np.median(np.abs(values - center)))


def fivenum(x: typing.Any) -> np.ndarray:
    """
    Tukey's five-number summary (minimum, lower hinge, median, upper hinge,
    maximum). Missing values are always dropped.
    """
    values = np.sort(_values(x, na_rm=True))
    n = len(values)
    if not n:
        return np.full(5, np.nan)
    n4 = np.floor((n + 3) / 2) / 2
    d = np.array([1, n4, (n + 1) / 2, n + 1 - n4, n])
    return 0.5 * (values[np.floor(d).astype(int) - 1] + values[np.ceil(d).astype(int) - 1])


def summary(x: typing.Any) -> pd.Series:
    """Minimum, quartiles, mean and maximum, plus the number of missing values if any."""
    values = np.atleast_1d(np.asarray(as_double(x), dtype=np.float64))
    missing = int(np.isnan(values).sum())
    present = values[~np.isnan(values)]
    if len(present):
        q = np.quantile(present, DEFAULT_PROBS)
        stats = [q[0], q[1], q[2], float(np.mean(present)), q[3], q[4]]
    else:
        stats = [np.nan] * 6
    result = pd.Series(stats, index=["Min.", "1st Qu.", "Median", "Mean", "3rd Qu.", "Max."])
    if missing:
        result["NA's"] = missing
    return result


@dataclass(frozen=True)
class BoxplotStats:
    """
    Attributes:
        stats: Lower whisker, lower hinge, median, upper hinge, upper whisker.
        n: Number of non-missing values.
        conf: Lower and upper notch extremes.
        out: Values beyond the whiskers.
    """

    stats: np.ndarray
    n: int
    conf: np.ndarray
    out: np.ndarray = field(default_factory=lambda: np.array([], dtype=np.float64))


def boxplot_stats(x: typing.Any, coef: float = 1.5) -> BoxplotStats:
    """Statistics for a box-and-whisker plot of the MIC magnitudes."""
    if coef < 0:
        raise ValueError("'coef' must not be negative")
    values = _values(x, na_rm=True)
    stats = fivenum(values)
    n = len(values)
    spread = stats[3] - stats[1]
    out = np.zeros(n, dtype=bool)
    if coef > 0 and n:
        out = (values < stats[1] - coef * spread) | (values > stats[3] + coef * spread)
        if out.any():
            inside = values[~out]
            stats[[0, 4]] = [inside.min(), inside.max()]
    conf = stats[2] + np.array([-1.58, 1.58]) * spread / np.sqrt(n) if n else np.full(2, np.nan)
    return BoxplotStats(stats=stats, n=n, conf=conf, out=values[out])
