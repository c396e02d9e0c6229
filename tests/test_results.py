from decimal import Decimal

import pytest

from vcmd.vcmd_results import EvaluationResult, StatusCode, format_number, status_name


def test_truth_value_is_zero_status():
    assert EvaluationResult(0).truth_value
    assert not EvaluationResult(StatusCode.INVALID_ARGUMENT_COUNT).truth_value
    assert not EvaluationResult(-1).truth_value


def test_defaults_and_normalization():
    res = EvaluationResult(0, None, [1, 2])
    assert res.output == ""
    assert res.data == (1, 2)
    assert res.expression is None


def test_common_status():
    assert EvaluationResult(40).common_status is StatusCode.SEQUENTIAL_EVALUATION_FAILURE
    assert EvaluationResult(12345).common_status is None


@pytest.mark.parametrize("status, name", [
    (0, "SUCCESS"),
    (-3, "INVOCATION_DEPTH_EXCEEDED"),
    (100, "MATHEMATICAL_LOGIC_FAILURE"),
    (999, "STATUS"),
])
def test_status_name(status, name):
    assert status_name(status) == name


def test_status_code_values():
    assert StatusCode.TOGGLER_NOT_SUPPORTED == -10
    assert StatusCode.CVAR_UNCHANGEABLE == 29
    assert StatusCode.USER_ARGUMENT_INDEX_INVALID == 63
    assert StatusCode.COMMAND_ALREADY_EXISTS == 70


def test_check_truth_value():
    ok = EvaluationResult(0, "fine")
    bad = EvaluationResult(5, "nope")
    assert ok.check_truth_value(0, "cmd") is None
    failure = bad.check_truth_value(1, "cmd")
    assert failure.status == StatusCode.ARGUMENT_EVALUATION_FAILURE
    assert "#2" in failure.output and "'cmd'" in failure.output
    assert failure.data == (1, bad)
    assert ok.check_truth_value(0, "cmd", expected=False).status == StatusCode.ARGUMENT_EVALUATION_FAILURE


def test_extract_unique_datum():
    res = EvaluationResult(0, "", (3, "s", True))
    assert res.extract_unique_datum(0, "cmd", int) == (3, None)

    value, error = res.extract_unique_datum(0, "cmd", float)
    assert value is None and error.status == StatusCode.TYPED_DATA_NOT_FOUND

    value, error = EvaluationResult(0, "", (1, 2)).extract_unique_datum(0, "cmd", int)
    assert value is None and error.status == StatusCode.TYPED_DATA_DUPLICATE


def test_extract_first_datum_matches_exact_type():
    res = EvaluationResult(0, "", (True, 4, 5))
    assert res.extract_first_datum(0, "cmd", int) == (4, None)
    assert res.extract_first_datum(0, "cmd", bool) == (True, None)


@pytest.mark.parametrize("data, output, expected", [
    ((2.5,), "", 2.5),
    ((7,), "", 7.0),
    ((Decimal("1.25"),), "", 1.25),
    ((), " 42 ", 42.0),
    ((), "1e3", 1000.0),
])
def test_extract_number(data, output, expected):
    value, error = EvaluationResult(0, output, data).extract_number(0, "cmd")
    assert error is None
    assert value == expected


@pytest.mark.parametrize("output", ["abc", "", "nan"])
def test_extract_number_failures(output):
    value, error = EvaluationResult(0, output).extract_number(0, "cmd")
    assert value is None
    assert error.status in (StatusCode.ARGUMENT_EVALUATION_FAILURE, StatusCode.TYPED_DATA_NOT_FOUND)


@pytest.mark.parametrize("value, text", [
    (3.0, "3"),
    (-4.0, "-4"),
    (3.5, "3.5"),
    (0.1 + 0.2, repr(0.1 + 0.2)),
    (float("inf"), "inf"),
])
def test_format_number(value, text):
    assert format_number(value) == text


def test_with_expression_keeps_identity_when_unchanged():
    marker = object()
    res = EvaluationResult(0, "x", (), marker)
    assert res.with_expression(marker) is res
    assert res.with_expression(None).expression is None
