"""
Numeric projection of MIC values.

`as_double()` is the one rule every calculation on MIC values follows: drop
the comparator and read the rest as a float64. The functions below are thin
wrappers that project first and then apply the numpy operation, so the result
is always a plain number (or array of numbers), never a MIC value.
"""

from __future__ import annotations

import math
import numbers
import typing

import numpy as np
import pandas as pd
from pandas.api.types import is_list_like

from .dtype import MIC, MICArray, MICDtype
from .levels import strip_operators


def as_double(x: typing.Any) -> float | np.ndarray:
    """
    Strip the comparators and return the magnitudes.

    Scalars give a float (NaN when missing or unparseable); array-likes give a
    float64 numpy array. The input is never modified.
    """
    if isinstance(x, MICArray):
        return x.to_numeric()
    if isinstance(x, pd.Series) and isinstance(x.dtype, MICDtype):
        return x.array.to_numeric()
    if isinstance(x, MIC):
        return x.magnitude
    if isinstance(x, str):
        return strip_operators(x)
    if x is None or x is pd.NA:
        return np.nan
    if isinstance(x, (numbers.Number, np.number, np.bool_)):
        return float(x)
    if is_list_like(x):
        return np.array([as_double(value) for value in x], dtype=np.float64)
    raise TypeError(f"Cannot project a value of type {type(x).__name__} to a number")


def _projected(func: typing.Callable, name: str) -> typing.Callable:
    def wrapper(x, *args, **kwargs):
        with np.errstate(all="ignore"):
            result = func(as_double(x), *args, **kwargs)
        if np.ndim(result) == 0:
            return float(result)
        return result

    wrapper.__name__ = wrapper.__qualname__ = name
    wrapper.__doc__ = f"`{name}` of the MIC magnitudes (comparators are ignored)."
    return wrapper


def _gamma(value: float) -> float:
    try:
        return math.gamma(value)
    except ValueError:
        # poles at zero and the negative integers
        return math.nan
    except OverflowError:
        return math.inf


def _lgamma(value: float) -> float:
    try:
        return math.lgamma(value)
    except ValueError:
        return math.inf
    except OverflowError:
        return math.inf


absolute = _projected(np.abs, "absolute")
sign = _projected(np.sign, "sign")
sqrt = _projected(np.sqrt, "sqrt")
floor = _projected(np.floor, "floor")
ceiling = _projected(np.ceil, "ceiling")
trunc = _projected(np.trunc, "trunc")
exp = _projected(np.exp, "exp")
expm1 = _projected(np.expm1, "expm1")
log2 = _projected(np.log2, "log2")
log10 = _projected(np.log10, "log10")
log1p = _projected(np.log1p, "log1p")
sin = _projected(np.sin, "sin")
cos = _projected(np.cos, "cos")
tan = _projected(np.tan, "tan")
sinpi = _projected(lambda v: np.sin(np.pi * v), "sinpi")
cospi = _projected(lambda v: np.cos(np.pi * v), "cospi")
tanpi = _projected(lambda v: np.tan(np.pi * v), "tanpi")
acos = _projected(np.arccos, "acos")
asin = _projected(np.arcsin, "asin")
atan = _projected(np.arctan, "atan")
cosh = _projected(np.cosh, "cosh")
sinh = _projected(np.sinh, "sinh")
tanh = _projected(np.tanh, "tanh")
acosh = _projected(np.arccosh, "acosh")
asinh = _projected(np.arcsinh, "asinh")
atanh = _projected(np.arctanh, "atanh")
gamma = _projected(np.vectorize(_gamma, otypes=[np.float64]), "gamma")
lgamma = _projected(np.vectorize(_lgamma, otypes=[np.float64]), "lgamma")
cumsum = _projected(np.cumsum, "cumsum")
cumprod = _projected(np.cumprod, "cumprod")
cummax = _projected(np.maximum.accumulate, "cummax")
cummin = _projected(np.minimum.accumulate, "cummin")


def log(x: typing.Any, base: float = math.e) -> float | np.ndarray:
    """Logarithm of the MIC magnitudes in any base (natural by default)."""
    with np.errstate(all="ignore"):
        result = np.log(as_double(x)) / np.log(base)
    return float(result) if np.ndim(result) == 0 else result


def round_to(x: typing.Any, digits: int = 0) -> float | np.ndarray:
    """Round the magnitudes to `digits` decimals (half to even)."""
    result = np.round(as_double(x), digits)
    return float(result) if np.ndim(result) == 0 else result


def signif(x: typing.Any, digits: int = 6) -> float | np.ndarray:
    """Round the magnitudes to `digits` significant digits."""
    values = np.asarray(as_double(x), dtype=np.float64)
    with np.errstate(all="ignore"):
        exponent = np.where(values == 0, 0, np.floor(np.log10(np.abs(values))))
        factor = 10.0 ** (max(digits, 1) - 1 - exponent)
        result = np.round(values * factor) / factor
    return float(result) if np.ndim(result) == 0 else result
