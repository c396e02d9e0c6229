import pytest

from vcmd.vcmd_expressions import (
    CommandInvocationBuilder, CommandInvocationExpression, ConditionalExpression, ConstantExpression,
    SeriesBuilder, SeriesExpression, Toggle,
)
from vcmd.vcmd_printer import Printer


@pytest.fixture
def printer():
    return Printer()


def test_constants_are_quoted_when_needed(printer):
    assert printer.pformat(ConstantExpression("plain")) == "plain"
    assert printer.pformat(ConstantExpression("a b")) == '"a b"'
    assert printer.pformat(ConstantExpression("")) == '""'


def test_invocation(printer):
    exp = CommandInvocationExpression(
        "say", (ConstantExpression("hi there"), CommandInvocationExpression("add", (ConstantExpression("1"),))),
        Toggle.OFF)
    assert printer.pformat(exp) == '-say "hi there" [add 1]'


def test_command_name_is_quoted(printer):
    assert printer.pformat(CommandInvocationExpression("+odd name")) == '"+odd name"'


def test_conditional_and_series(printer):
    cond = ConditionalExpression(
        False, CommandInvocationExpression("a"), CommandInvocationExpression("b"), CommandInvocationExpression("c"))
    assert printer.pformat(cond) == "a ! b : c"
    series = SeriesExpression((cond, CommandInvocationExpression("d")))
    assert printer.pformat(series) == "a ! b : c; d"


def test_unsealed_builders_print(printer):
    series = SeriesBuilder([CommandInvocationBuilder(Toggle.ON, "x")])
    series.append(CommandInvocationBuilder(Toggle.NEUTRAL, "y"))
    assert printer.pformat(series) == "+x; y"


def test_unknown_objects_fall_back_to_repr(printer):
    assert printer.pformat(42) == "42"
