"""
Pandas extension type for MIC values.

A MICArray stores codes into the canonical table (-1 = missing), so every
element is guaranteed to be a valid MIC. It behaves as an ordered categorical
for storage and display, and as plain decimal numbers everywhere else:

- element assignment, fillna and concatenation re-run the validator
- arithmetic, comparisons, numpy ufuncs, reductions and sorting all work on
  the numeric projection (the comparator is dropped), and their results are
  plain numbers or booleans, never MIC values

Comparators are informational only: `>=128` compares equal to `128`.
"""

from __future__ import annotations

import itertools
import operator
import typing

import numpy as np
import pandas as pd
from pandas.api.extensions import (
    ExtensionArray,
    ExtensionDtype,
    register_extension_dtype,
    take,
)
from pandas.api.indexers import check_array_indexer
from pandas.api.types import is_integer, is_list_like, pandas_dtype

from .levels import MAGNITUDES, VALID_MIC_LEVELS, level_index, project_codes, split_level, strip_operators
from .normalizer import UNPARSEABLE, format_raw, normalize_mic


def _scalar_operand(value: typing.Any) -> typing.Any:
    if isinstance(value, MIC):
        return value.magnitude
    if isinstance(value, str):
        return strip_operators(value)
    if value is None or value is pd.NA:
        return np.nan
    return value


def _operand(other: typing.Any) -> typing.Any:
    """
    Numeric projection of the other side of a binary operation.
    Pandas containers and MICArrays return NotImplemented so they handle the
    operation themselves.
    """
    if isinstance(other, (pd.Series, pd.Index, pd.DataFrame)):
        return NotImplemented
    if isinstance(other, MICArray):
        return other.to_numeric()
    if isinstance(other, np.ndarray) and other.dtype.kind in "biuf":
        return other
    if is_list_like(other):
        return np.array([_scalar_operand(value) for value in other], dtype=np.float64)
    return _scalar_operand(other)


def _reflect(op):
    def reflected(left, right):
        return op(right, left)
    return reflected


class MIC:
    """
    A single valid MIC value, e.g. MIC("<=0.5").

    Construction runs the normalizer, so MIC("≤ 0,5") == MIC("<=0.5").
    Arithmetic and comparisons use the magnitude only; str() keeps the comparator.
    """

    __slots__ = ("_code",)

    def __init__(self, value: typing.Any):
        if isinstance(value, MIC):
            self._code = value._code
            return
        text = format_raw(value)
        candidate = normalize_mic(text) if text is not None else UNPARSEABLE
        code = -1 if candidate is UNPARSEABLE else level_index(candidate)
        if code < 0:
            raise ValueError(f"Not a valid MIC value: {value!r}")
        self._code = code

    @classmethod
    def _from_code(cls, code: int) -> "MIC":
        obj = cls.__new__(cls)
        obj._code = code
        return obj

    @property
    def code(self) -> int:
        """Position in the canonical table."""
        return self._code

    @property
    def comparator(self) -> str:
        return split_level(VALID_MIC_LEVELS[self._code])[0]

    @property
    def magnitude(self) -> float:
        return float(MAGNITUDES[self._code])

    def __str__(self) -> str:
        return VALID_MIC_LEVELS[self._code]

    def __repr__(self) -> str:
        return f"MIC({str(self)!r})"

    def __float__(self) -> float:
        return self.magnitude

    def __hash__(self) -> int:
        return hash(self.magnitude)

    def __round__(self, ndigits: int | None = None):
        return round(self.magnitude, ndigits)

    def __abs__(self) -> float:
        return abs(self.magnitude)

    def __neg__(self) -> float:
        return -self.magnitude

    def __pos__(self) -> float:
        return self.magnitude

    def __invert__(self) -> bool:
        return not self.magnitude

    def __reduce__(self):
        return (MIC, (str(self),))


def _scalar_op(op):
    def method(self: MIC, other):
        if isinstance(other, MICArray):
            return NotImplemented
        right = _operand(other)
        if right is NotImplemented:
            return NotImplemented
        return op(self.magnitude, right)
    return method


# Every MIC operator projects both sides to numbers first
for _name, _op in {
    "add": operator.add, "sub": operator.sub, "mul": operator.mul,
    "truediv": operator.truediv, "floordiv": operator.floordiv,
    "mod": operator.mod, "pow": operator.pow,
}.items():
    setattr(MIC, f"__{_name}__", _scalar_op(_op))
    setattr(MIC, f"__r{_name}__", _scalar_op(_reflect(_op)))
for _name, _op in {
    "eq": operator.eq, "ne": operator.ne, "lt": operator.lt,
    "le": operator.le, "gt": operator.gt, "ge": operator.ge,
}.items():
    setattr(MIC, f"__{_name}__", _scalar_op(_op))


@register_extension_dtype
class MICDtype(ExtensionDtype):
    """
    The "mic" dtype: an ordered categorical over the canonical MIC table.

    Pandas treats it as numeric, so `describe()` summarizes the magnitudes.
    """

    name = "mic"
    type = MIC
    kind = "O"
    na_value = pd.NA
    ordered = True

    @property
    def _is_numeric(self) -> bool:
        return True

    @classmethod
    def construct_array_type(cls) -> type["MICArray"]:
        return MICArray

    @property
    def categories(self) -> tuple[str, ...]:
        return VALID_MIC_LEVELS

    def __repr__(self) -> str:
        return "MICDtype()"


class MICArray(ExtensionArray):
    """
    Validated MIC values backed by codes into the canonical table.

    Do not build one from raw data with the constructor; use `as_mic()`,
    `pd.array(values, dtype="mic")` or `pd.Series(values, dtype="mic")`.
    """

    # numpy defers binary operations to us
    __array_priority__ = 1000

    def __init__(self, codes: typing.Any, copy: bool = False):
        # Range check before the cast, int16 would wrap large codes
        raw = np.asarray(codes)
        if raw.ndim != 1:
            raise ValueError("MICArray codes must be one-dimensional")
        if len(raw) and (raw.min() < -1 or raw.max() >= len(VALID_MIC_LEVELS)):
            raise ValueError("MICArray codes must index the canonical MIC table")
        self._codes = raw.astype(np.int16, copy=copy)

    # -- construction ---------------------------------------------------------

    @classmethod
    def _from_sequence(cls, scalars, *, dtype=None, copy: bool = False) -> "MICArray":
        from .validation import report_diagnostic, validate_mic

        if isinstance(scalars, MICArray):
            return scalars.copy() if copy else scalars
        array, diagnostic = validate_mic(scalars)
        report_diagnostic(diagnostic)
        return array

    @classmethod
    def _from_sequence_of_strings(cls, strings, *, dtype=None, copy: bool = False) -> "MICArray":
        return cls._from_sequence(strings, dtype=dtype, copy=copy)

    @classmethod
    def _from_factorized(cls, values, original) -> "MICArray":
        return cls(values)

    @classmethod
    def _concat_same_type(cls, to_concat: typing.Sequence["MICArray"]) -> "MICArray":
        # Round-trip through text so the result is re-validated as one batch
        strings = list(itertools.chain.from_iterable(array.to_strings() for array in to_concat))
        return cls._from_sequence(strings)

    def _validated_codes(self, values: typing.Any) -> np.ndarray:
        from .validation import report_diagnostic, validate_mic

        array, diagnostic = validate_mic(values)
        report_diagnostic(diagnostic)
        return array._codes

    # -- core ExtensionArray interface ----------------------------------------

    @property
    def dtype(self) -> MICDtype:
        return MICDtype()

    @property
    def codes(self) -> np.ndarray:
        """Read-only view of the table codes (-1 = missing)."""
        view = self._codes.view()
        view.flags.writeable = False
        return view

    def __len__(self) -> int:
        return len(self._codes)

    def __getitem__(self, item):
        if is_integer(item):
            code = int(self._codes[item])
            return pd.NA if code < 0 else MIC._from_code(code)
        item = check_array_indexer(self, item)
        return type(self)(self._codes[item])

    def __setitem__(self, key, value) -> None:
        key = check_array_indexer(self, key)
        if is_list_like(value) and not isinstance(value, str):
            codes = self._validated_codes(value)
        else:
            codes = self._validated_codes([value])[0]
        self._codes[key] = codes

    @property
    def nbytes(self) -> int:
        return self._codes.nbytes

    def isna(self) -> np.ndarray:
        return self._codes < 0

    def copy(self) -> "MICArray":
        return type(self)(self._codes.copy())

    def take(self, indices, *, allow_fill: bool = False, fill_value=None) -> "MICArray":
        fill_code = None
        if allow_fill:
            if fill_value is None or fill_value is pd.NA or (np.ndim(fill_value) == 0 and pd.isna(fill_value)):
                fill_code = -1
            else:
                fill_code = int(self._validated_codes([fill_value])[0])
        codes = take(self._codes, indices, allow_fill=allow_fill, fill_value=fill_code)
        return type(self)(codes)

    def _values_for_factorize(self) -> tuple[np.ndarray, int]:
        return self._codes.astype(np.int64), -1

    def _values_for_argsort(self) -> np.ndarray:
        # Sorting is by magnitude only
        return self.to_numeric()

    def unique(self) -> "MICArray":
        return type(self)(pd.unique(self._codes))

    def equals(self, other: typing.Any) -> bool:
        """True when both arrays hold the same MIC values (comparators included)."""
        if not isinstance(other, MICArray) or len(self) != len(other):
            return False
        return bool(np.array_equal(self._codes, other._codes))

    def isin(self, values: typing.Any) -> np.ndarray:
        """Membership by magnitude, like `==`: "8" matches both 8 and <=8."""
        if isinstance(values, (pd.Series, pd.Index)):
            values = values.array
        if isinstance(values, MICArray):
            projected, match_missing = values.to_numeric(), bool(values.isna().any())
        else:
            values = list(values)
            projected = np.array([_scalar_operand(value) for value in values], dtype=np.float64)
            # Text that is not a number projects to NaN but must not match missing values
            match_missing = any(not is_list_like(value) and pd.isna(value) for value in values)
        result = np.isin(self.to_numeric(), projected[~np.isnan(projected)])
        if match_missing:
            result |= self.isna()
        return result

    def value_counts(self, dropna: bool = True) -> pd.Series:
        codes = self._codes[self._codes >= 0] if dropna else self._codes
        uniques, counts = np.unique(codes, return_counts=True)
        return pd.Series(counts, index=pd.Index(type(self)(uniques)), name="count")

    # -- conversion -----------------------------------------------------------

    def to_numeric(self) -> np.ndarray:
        """Numeric projection: magnitudes as float64, missing as NaN. Never mutates."""
        return project_codes(self._codes)

    def to_strings(self) -> list[str | None]:
        """Canonical strings, None for missing values."""
        return [VALID_MIC_LEVELS[code] if code >= 0 else None for code in self._codes]

    def __array__(self, dtype=None, copy=None) -> np.ndarray:
        if dtype is not None and np.dtype(dtype).kind in "biufc":
            return self.to_numeric().astype(dtype)
        if dtype is not None and np.dtype(dtype).kind == "U":
            return np.array([s if s is not None else "<NA>" for s in self.to_strings()], dtype=dtype)
        return np.array(list(self), dtype=object)

    def astype(self, dtype, copy: bool = True):
        dtype = pandas_dtype(dtype)
        if isinstance(dtype, MICDtype):
            return self.copy() if copy else self
        if isinstance(dtype, pd.CategoricalDtype):
            if dtype.categories is None:
                return pd.Categorical.from_codes(self._codes, categories=VALID_MIC_LEVELS, ordered=True)
            return pd.Categorical(self.to_strings(), dtype=dtype)
        if isinstance(dtype, pd.StringDtype):
            return dtype.construct_array_type()._from_sequence(self.to_strings(), dtype=dtype)
        if isinstance(dtype, ExtensionDtype) and dtype._is_numeric:
            return pd.array(self.to_numeric(), dtype=dtype)
        if isinstance(dtype, np.dtype):
            if dtype.kind in "iu" and self.isna().any():
                raise ValueError("Cannot convert missing MIC values to integers")
            if dtype.kind in "biufcU":
                return self.__array__(dtype=dtype)
            if dtype.kind == "O":
                return self.__array__()
        return super().astype(dtype, copy=copy)

    def droplevels(self, as_mic: bool = False):
        """
        Restrict the categories to the values in use.
        Returns an ordered pandas Categorical, or a MICArray copy if `as_mic`
        (the mic dtype always spans the full table).
        """
        if as_mic:
            return self.copy()
        used = np.unique(self._codes[self._codes >= 0])
        codes = np.where(self._codes >= 0, np.searchsorted(used, self._codes), -1)
        return pd.Categorical.from_codes(codes, categories=[VALID_MIC_LEVELS[c] for c in used], ordered=True)

    def _formatter(self, boxed: bool = False):
        return str

    # -- numeric behaviour ----------------------------------------------------

    def _reduce(self, name: str, *, skipna: bool = True, keepdims: bool = False, **kwargs):
        values = pd.Series(self.to_numeric())
        method = getattr(values, name, None)
        if method is None:
            raise TypeError(f"'mic' does not support reduction '{name}'")
        result = method(skipna=skipna, **kwargs)
        if keepdims:
            return np.array([result])
        return result

    def _accumulate(self, name: str, *, skipna: bool = True, **kwargs):
        values = pd.Series(self.to_numeric())
        result = getattr(values, name)(skipna=skipna, **kwargs)
        return pd.array(result.to_numpy(), dtype="Float64")

    def _quantile(self, qs: np.ndarray, interpolation: str) -> np.ndarray:
        values = self.to_numeric()
        values = values[~np.isnan(values)]
        if not len(values):
            return np.full(len(qs), np.nan)
        return np.quantile(values, qs, method=interpolation)

    def __array_ufunc__(self, ufunc, method, *inputs, **kwargs):
        if any(isinstance(x, (pd.Series, pd.Index, pd.DataFrame)) for x in inputs):
            return NotImplemented
        if "out" in kwargs:
            return NotImplemented
        projected = [x.to_numeric() if isinstance(x, MICArray) else _scalar_operand(x) for x in inputs]
        return getattr(ufunc, method)(*projected, **kwargs)

    def __neg__(self) -> np.ndarray:
        return -self.to_numeric()

    def __pos__(self) -> np.ndarray:
        return self.to_numeric()

    def __abs__(self) -> np.ndarray:
        return np.abs(self.to_numeric())

    def __invert__(self) -> np.ndarray:
        return np.logical_not(self.to_numeric())


def _array_op(op):
    def method(self: MICArray, other):
        right = _operand(other)
        if right is NotImplemented:
            return NotImplemented
        with np.errstate(all="ignore"):
            return op(self.to_numeric(), right)
    return method


# Every MICArray operator projects both sides to numbers first
for _name, _op in {
    "add": operator.add, "sub": operator.sub, "mul": operator.mul,
    "truediv": operator.truediv, "floordiv": operator.floordiv,
    "mod": operator.mod, "pow": operator.pow,
    "and": np.logical_and, "or": np.logical_or,
}.items():
    setattr(MICArray, f"__{_name}__", _array_op(_op))
    setattr(MICArray, f"__r{_name}__", _array_op(_reflect(_op)))
for _name, _op in {
    "eq": operator.eq, "ne": operator.ne, "lt": operator.lt,
    "le": operator.le, "gt": operator.gt, "ge": operator.ge,
}.items():
    setattr(MICArray, f"__{_name}__", _array_op(_op))

del _name, _op


def concat_mic(*items: typing.Any, notepad=None) -> MICArray:
    """
    Concatenate MIC values with raw input into one new MICArray.
    Everything is re-validated as a single batch.
    """
    from .validation import _as_raw_list, as_mic

    raw: list = []
    for item in items:
        if isinstance(item, MICArray):
            raw.extend(item.to_strings())
        elif isinstance(item, pd.Series) and isinstance(item.array, MICArray):
            raw.extend(item.array.to_strings())
        else:
            raw.extend(_as_raw_list(item))
    return as_mic(raw, notepad=notepad)


def sort_mic(x: typing.Any, decreasing: bool = False) -> MICArray:
    """Sort MIC values by magnitude, missing values last. Comparators do not break ties."""
    from .validation import as_mic

    array = as_mic(x)
    if isinstance(array, pd.Series):
        array = array.array
    values = array.to_numeric()
    order = np.argsort(-values if decreasing else values, kind="stable")
    return array.take(order)
