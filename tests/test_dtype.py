"""
Tests for the `mic` pandas extension type in dtype.py:
- element access and re-validating assignment/concatenation
- conversions
- projection-based arithmetic, comparisons, ufuncs, reductions and sorting
"""

import pickle

import numpy as np
import pandas as pd
import pytest

from MIC.dtype import MIC, MICArray, MICDtype, concat_mic, sort_mic
from MIC.validation import InvalidMICWarning, as_mic


@pytest.fixture
def mic_series() -> pd.Series:
    return pd.Series([16, 1, 8, 8, 64, ">=128"], dtype="mic")


def test_dtype_is_registered_by_name():
    series = pd.Series(["16", "<=0.5"], dtype="mic")
    assert isinstance(series.dtype, MICDtype)
    assert series.dtype == MICDtype()
    assert series.dtype.name == "mic"
    assert isinstance(pd.array(["8"], dtype="mic"), MICArray)


def test_dtype_categories_are_the_table():
    dtype = MICDtype()
    assert dtype.ordered
    assert "<=0.002" in dtype.categories
    assert dtype.na_value is pd.NA


class TestMICScalar:

    def test_construction_normalizes(self):
        assert str(MIC("≤ 0,5")) == "<=0.5"
        assert repr(MIC(">=128")) == "MIC('>=128')"

    def test_invalid_value_raises(self):
        with pytest.raises(ValueError):
            MIC("foo")
        with pytest.raises(ValueError):
            MIC(None)

    def test_parts(self):
        value = MIC("<=0.002")
        assert value.comparator == "<="
        assert value.magnitude == 0.002
        assert MIC("16").comparator == ""

    def test_arithmetic_uses_the_magnitude(self):
        assert MIC("<=8") + 1 == 9.0
        assert 2 * MIC(">=128") == 256.0
        assert float(MIC(">=128")) == 128.0
        assert -MIC("4") == -4.0

    def test_comparators_are_ignored_in_comparisons(self):
        assert MIC("<=8") == MIC("8")
        assert MIC("<=8") == "8"
        assert MIC("4") < MIC(">=8")
        assert hash(MIC("<=8")) == hash(MIC("8"))

    def test_pickle(self):
        value = MIC("<=0.5")
        assert str(pickle.loads(pickle.dumps(value))) == "<=0.5"


def test_getitem():
    array = as_mic(["16", "<=0.5", None])
    assert isinstance(array[0], MIC)
    assert str(array[1]) == "<=0.5"
    assert array[2] is pd.NA
    assert isinstance(array[1:], MICArray)
    assert array[np.array([True, False, True])].to_strings() == ["16", None]


def test_setitem_revalidates():
    array = as_mic(["16", "8"])
    array[0] = "≤ 0,5"
    assert array.to_strings() == ["<=0.5", "8"]
    with pytest.warns(InvalidMICWarning):
        array[1] = "foo"
    assert array.isna().tolist() == [False, True]
    array[[0, 1]] = ["1", "2"]
    assert array.to_strings() == ["1", "2"]


def test_codes_are_read_only():
    array = as_mic(["8"])
    with pytest.raises(ValueError):
        array.codes[0] = 1


def test_constructor_rejects_out_of_table_codes():
    with pytest.raises(ValueError):
        MICArray(np.array([10_000]))
    # would wrap to a valid code as int16
    with pytest.raises(ValueError):
        MICArray(np.array([65536], dtype=np.int64))


def test_concat_series():
    left = pd.Series(["8"], dtype="mic")
    right = pd.Series(["<=0.5", None], dtype="mic")
    combined = pd.concat([left, right], ignore_index=True)
    assert isinstance(combined.dtype, MICDtype)
    assert combined.array.to_strings() == ["8", "<=0.5", None]


def test_concat_mic_mixes_typed_and_raw_input():
    with pytest.warns(InvalidMICWarning, match='"foo"'):
        combined = concat_mic(as_mic(["8"]), ["16", "foo"], MIC(">=32"))
    assert combined.to_strings() == ["8", "16", None, ">=32"]


def test_unique_copy_take_repeat():
    array = as_mic(["8", "8", "16"])
    assert array.unique().to_strings() == ["8", "16"]
    copied = array.copy()
    copied[0] = "1"
    assert array.to_strings()[0] == "8"
    assert array.take([2, -1], allow_fill=True).to_strings() == ["16", None]
    assert array.repeat(2).to_strings() == ["8", "8", "8", "8", "16", "16"]


def test_equals_compares_canonical_values():
    assert as_mic(["<=8", "16"]).equals(as_mic(["<=8", "16"]))
    assert not as_mic(["<=8"]).equals(as_mic(["8"]))
    assert (as_mic(["<=8"]) == as_mic(["8"])).tolist() == [True]


def test_astype():
    array = as_mic(["16", "<=0.5"])
    assert array.astype(float).tolist() == [16.0, 0.5]
    assert list(array.astype(str)) == ["16", "<=0.5"]
    assert [str(value) for value in array.astype(object)] == ["16", "<=0.5"]
    assert list(array.astype("string")) == ["16", "<=0.5"]
    assert array.astype("mic").equals(array)

    categorical = array.astype("category")
    assert categorical.ordered
    assert list(categorical.categories) == list(MICDtype().categories)


def test_astype_int_with_missing_values_raises():
    with pytest.raises(ValueError):
        as_mic(["8", None]).astype(int)


def test_droplevels():
    categorical = as_mic(["16", "8", "16"]).droplevels()
    assert isinstance(categorical, pd.Categorical)
    assert categorical.ordered
    assert list(categorical.categories) == ["8", "16"]
    assert as_mic(["16"]).droplevels(as_mic=True).to_strings() == ["16"]


def test_value_counts():
    counts = pd.Series(["8", "8", "16", None], dtype="mic").value_counts()
    assert counts.iloc[0] == 2
    assert counts.sum() == 3


def test_fillna_and_shift():
    series = pd.Series(["8", None], dtype="mic")
    assert series.fillna("16").array.to_strings() == ["8", "16"]
    assert series.shift(1).array.to_strings() == [None, "8"]


def test_sorting_ignores_comparators():
    values = ["16", "1", "8", "8", ">=128"]
    assert sort_mic(values).to_strings() == ["1", "8", "8", "16", ">=128"]
    assert sort_mic(values, decreasing=True).to_strings() == [">=128", "16", "8", "8", "1"]
    series = pd.Series(values, dtype="mic")
    assert series.sort_values().array.to_strings() == ["1", "8", "8", "16", ">=128"]


def test_missing_values_sort_last():
    assert sort_mic(["8", None, "1"]).to_strings() == ["1", "8", None]
    assert sort_mic(["8", None, "1"], decreasing=True).to_strings() == ["8", "1", None]


def test_numeric_projection(mic_series):
    assert mic_series.array.to_numeric().tolist() == [16.0, 1.0, 8.0, 8.0, 64.0, 128.0]
    assert mic_series.median() == 12.0
    assert mic_series.max() == 128.0
    assert mic_series.sum() == 225.0


def test_reductions_skip_missing_values():
    series = pd.Series(["8", None, "<=2"], dtype="mic")
    assert series.mean() == 5.0
    assert series.min() == 2.0


def test_arithmetic_returns_numbers(mic_series):
    result = mic_series + 1
    assert result.dtype == np.float64
    assert result.tolist() == [17.0, 2.0, 9.0, 9.0, 65.0, 129.0]
    assert (mic_series / 2).tolist() == [8.0, 0.5, 4.0, 4.0, 32.0, 64.0]


def test_comparisons_return_booleans(mic_series):
    assert (mic_series > 8).tolist() == [True, False, False, False, True, True]
    assert (mic_series == "<=8").tolist() == [False, False, True, True, False, False]


def test_isin_agrees_with_equality():
    series = as_mic(pd.Series(["16", "8", ">=128", None]))
    assert series.isin(["8"]).tolist() == [False, True, False, False]
    assert series.isin([8]).tolist() == (series == "8").tolist()
    assert series.isin(["<=128", "foo"]).tolist() == [False, False, True, False]
    assert series.isin(pd.Series(["16"], dtype="mic")).tolist() == [True, False, False, False]
    assert series.isin(["8", None]).tolist() == [False, True, False, True]


def test_invert_projects_first():
    array = as_mic(["8", "<=0.5"])
    assert (~array).tolist() == [False, False]
    assert (~MIC(">=128")) is False


def test_describe_summarizes_magnitudes():
    df = pd.DataFrame({"amx": pd.Series(["1", "<=2", "4"], dtype="mic"), "n": [1, 2, 3]})
    described = df.describe()
    assert list(described.columns) == ["amx", "n"]
    assert described.loc["count", "amx"] == 3
    assert described.loc["min", "amx"] == 1.0
    assert described.loc["50%", "amx"] == 2.0
    assert described.loc["max", "amx"] == 4.0


def test_arithmetic_does_not_mutate():
    array = as_mic(["<=8", ">=128"])
    _ = array * 3
    _ = np.sqrt(array)
    assert array.to_strings() == ["<=8", ">=128"]


def test_ufuncs_project_first():
    array = as_mic(["8", ">=128"])
    assert np.log2(array).tolist() == [3.0, 7.0]
    assert np.log2(pd.Series(array)).tolist() == [3.0, 7.0]
    assert (-array).tolist() == [-8.0, -128.0]


def test_cumulative_sum():
    series = pd.Series(["1", "2", ">=4"], dtype="mic")
    assert series.cumsum().to_numpy(dtype=float).tolist() == [1.0, 3.0, 7.0]


def test_repr_shows_canonical_values():
    text = repr(pd.Series(["<=0.5", None], dtype="mic"))
    assert "<=0.5" in text
    assert "dtype: mic" in text
