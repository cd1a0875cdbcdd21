"""
Tests for validation.py:
- as_mic on the documented scenarios
- the diagnostic (count, percentage, offending inputs, column)
- argument checks at the call boundary
"""

import warnings

import numpy as np
import pandas as pd
import pytest
from stairval.notepad import create_notepad

from MIC.dtype import MICArray
from MIC.validation import (
    InvalidMICWarning,
    MICDiagnostic,
    all_valid_mics,
    as_mic,
    is_mic,
    validate_mic,
)


def test_equivalent_spellings_collapse_without_warning():
    tokens = [">=32", "1.0", "1", "1.00", 8, "<=0.128", "8", "16", "16"]
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        result = as_mic(tokens)
    assert isinstance(result, MICArray)
    assert result.to_strings() == [">=32", "1", "1", "1", "8", "<=0.128", "8", "16", "16"]


def test_trailing_interpretation_is_dropped():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        result = as_mic("<=0.002; S")
    assert result.to_strings() == ["<=0.002"]


def test_one_invalid_token_is_reported(scenario_tokens):
    with pytest.warns(InvalidMICWarning, match=r'1 result truncated \(11%\) that were invalid MICs: "foo"'):
        result = as_mic(scenario_tokens)
    assert len(result) == 9
    assert result.isna().tolist() == [False] * 8 + [True]


def test_validate_mic_returns_diagnostic_silently(scenario_tokens):
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        array, diagnostic = validate_mic(scenario_tokens)
    assert diagnostic.count == 1
    assert diagnostic.total == 9
    assert diagnostic.percentage == 11
    assert diagnostic.invalid == ("foo",)
    assert int(array.isna().sum()) == 1


def test_diagnostic_message_lists_every_offending_input():
    diagnostic = MICDiagnostic(count=3, total=10, invalid=("a", "b", "c"), column="x")
    assert bool(diagnostic)
    assert diagnostic.message == (
        'in `as_mic()`: 3 results in column \'x\' truncated (30%) that were invalid MICs: "a", "b" and "c"'
    )


def test_empty_diagnostic():
    diagnostic = MICDiagnostic()
    assert not diagnostic
    assert diagnostic.percentage == 0
    assert diagnostic.message == ""


def test_repeated_offenders_are_listed_once():
    _, diagnostic = validate_mic(["foo", "8", "foo", "bar"])
    assert diagnostic.count == 3
    assert diagnostic.invalid == ("bar", "foo")


def test_blank_and_missing_input_is_silent():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        result = as_mic(["8", "", None, np.nan, pd.NA, "  "])
    assert result.isna().tolist() == [False, True, True, True, True, True]


def test_na_rm_drops_blank_input():
    result = as_mic(["8", "", None, "16"], na_rm=True)
    assert result.to_strings() == ["8", "16"]


def test_series_keeps_index_and_name():
    series = pd.Series(["8", "foo", "<=0.5"], index=[10, 20, 30], name="amx")
    with pytest.warns(InvalidMICWarning, match="column 'amx'"):
        result = as_mic(series)
    assert isinstance(result, pd.Series)
    assert result.dtype.name == "mic"
    assert result.name == "amx"
    assert result.index.tolist() == [10, 20, 30]


def test_series_with_na_rm_filters_index():
    series = pd.Series(["8", None, "16"], index=["a", "b", "c"])
    result = as_mic(series, na_rm=True)
    assert result.index.tolist() == ["a", "c"]


def test_explicit_column_overrides_series_name():
    series = pd.Series(["foo"], name="amx")
    with pytest.warns(InvalidMICWarning, match="column 'cip'"):
        as_mic(series, column="cip")


@pytest.mark.parametrize(
    "values, expected",
    [
        ([0.5, 8, np.float64(0.25)], ["0.5", "8", "0.25"]),
        (pd.Categorical(["8", "16"]), ["8", "16"]),
        (np.array(["≤ 0,5", "2"]), ["<=0.5", "2"]),
        (pd.Index(["4", "32"]), ["4", "32"]),
        (("1", "2"), ["1", "2"]),
        (16, ["16"]),
    ],
)
def test_accepted_input_kinds(values, expected):
    assert as_mic(values).to_strings() == expected


def test_mic_input_is_returned_as_is():
    array = as_mic(["8", "16"])
    assert as_mic(array) is array
    series = pd.Series(array)
    assert as_mic(series) is series


@pytest.mark.parametrize("value", [True, {"a": "8"}, {"8"}, np.array([["1", "2"]]), object()])
def test_unsupported_input_raises_type_error(value):
    with pytest.raises(TypeError):
        as_mic(value)


def test_logical_elements_raise_type_error():
    with pytest.raises(TypeError):
        as_mic(["8", True])


@pytest.mark.parametrize("kwargs", [{"na_rm": "yes"}, {"na_rm": 1}, {"column": 3}])
def test_invalid_arguments_raise_type_error(kwargs):
    with pytest.raises(TypeError):
        as_mic(["8"], **kwargs)


def test_notepad_collects_the_warning():
    notepad = create_notepad("test")
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        as_mic(["8", "foo"], notepad=notepad)
    assert notepad.has_warnings()
    assert not notepad.has_errors()


@pytest.mark.parametrize(
    "values, expected",
    [
        (["8", "<=0.5", None], True),
        (["8", "foo"], False),
        (["100"], False),
        ([], False),
        ([None, ""], False),
        (True, False),
    ],
)
def test_all_valid_mics(values, expected):
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        assert all_valid_mics(values) is expected


def test_is_mic():
    array = as_mic(["8"])
    assert is_mic(array)
    assert is_mic(array[0])
    assert is_mic(pd.Series(array))
    assert not is_mic(["8"])
    assert not is_mic(pd.Series(["8"]))
