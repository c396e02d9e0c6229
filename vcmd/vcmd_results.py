"""
Status codes and the result type returned by every evaluation.
"""

import math
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import IntEnum
from typing import Any, Optional, Tuple


class StatusCode(IntEnum):
    """Status codes shared by the core and the default commands."""

    SUCCESS = 0

    # Reserved by the evaluation machinery
    RUNTIME_FAULT = -1
    INVOCATION_CANCELED = -2
    INVOCATION_DEPTH_EXCEEDED = -3
    TOGGLER_NOT_SUPPORTED = -10
    CONDITION_MISSING = -30
    PRIMARY_ACTION_MISSING = -31

    # Arguments
    INVALID_ARGUMENT_COUNT = 1
    ARGUMENT_EVALUATION_FAILURE = 2
    ARGUMENT_OUT_OF_RANGE = 3
    ARGUMENT_EXPRESSION_INVALID = 4

    COMMAND_NOT_FOUND = 10

    # Command variables
    CVAR_NOT_FOUND = 20
    CVAR_VALUE_NULL = 21
    CVAR_VALUE_EVALUATION_FAILURE = 22
    CVAR_VALUE_FORMAT_INVALID = 23
    CVAR_VALUE_DATA_LACKING = 24
    CVAR_CHANGE_TYPE_NOT_SUPPORTED = 25
    CVAR_UNRETRIEVABLE = 28
    CVAR_UNCHANGEABLE = 29

    # Side-channel data
    TYPED_DATA_NOT_FOUND = 30
    TYPED_DATA_DUPLICATE = 31

    SEQUENTIAL_EVALUATION_FAILURE = 40

    # Loops
    LOOP_EXPRESSION_FAILURE = 50
    LOOP_NEGATIVE_BOUND = 51
    LOOP_INCREMENTOR_INVALID = 52

    # Locals and user arguments
    LOCAL_VARIABLE_NOT_FOUND = 60
    USER_ARGUMENTS_MISSING = 61
    USER_ARGUMENT_NOT_FOUND = 62
    USER_ARGUMENT_INDEX_INVALID = 63

    COMMAND_ALREADY_EXISTS = 70

    # Manuals
    MANUAL_NOT_FOUND = 80
    MANUAL_AMBIGUOUS = 81
    MANUAL_SECTION_NOT_FOUND = 82

    MATHEMATICAL_LOGIC_FAILURE = 100


def status_name(status: int) -> str:
    try:
        return StatusCode(status).name
    except ValueError:
        return "STATUS"


@dataclass(frozen=True)
class EvaluationResult:
    """
    The outcome of evaluating an expression.

    `data` is an open side channel: commands put typed values there (numbers,
    nested results, the variable they touched) for other commands to pick up.
    """
    status: int
    output: str = ""
    data: Tuple[Any, ...] = ()
    expression: Any = None

    def __post_init__(self):
        if not isinstance(self.data, tuple):
            object.__setattr__(self, "data", tuple(self.data))
        if self.output is None:
            object.__setattr__(self, "output", "")

    @property
    def truth_value(self) -> bool:
        return self.status == 0

    @property
    def common_status(self) -> Optional[StatusCode]:
        try:
            return StatusCode(self.status)
        except ValueError:
            return None

    def with_expression(self, expression) -> "EvaluationResult":
        if self.expression is expression:
            return self
        return replace(self, expression=expression)

    # ===================================================================
    # Helpers for command implementations validating argument results
    # ===================================================================

    def check_truth_value(self, index: int, command: str, expected: bool = True) -> Optional["EvaluationResult"]:
        """Returns None when the truth value is as expected, else a failure to hand back to the caller."""
        if self.truth_value == expected:
            return None
        verb = "non-zero" if expected else "zero"
        return EvaluationResult(
            StatusCode.ARGUMENT_EVALUATION_FAILURE,
            f"Evaluation of argument #{index + 1} to '{command}' returned {verb} status: "
            f"{self.status} ({status_name(self.status)}); {self.output}",
            (index, self),
            self.expression,
        )

    def extract_unique_datum(self, index: int, command: str, datum_type: type) -> Tuple[Any, Optional["EvaluationResult"]]:
        """Returns (value, None) when exactly one datum has `datum_type`, else (None, failure)."""
        matches = [d for d in self.data if type(d) is datum_type]
        if len(matches) == 1:
            return matches[0], None
        if not matches:
            return None, self._data_not_found(index, command, datum_type)
        return None, EvaluationResult(
            StatusCode.TYPED_DATA_DUPLICATE,
            f"Evaluation of argument #{index + 1} to '{command}' contains more than one datum of type {datum_type.__name__}.",
            (index, datum_type, self),
            self.expression,
        )

    def extract_first_datum(self, index: int, command: str, datum_type: type) -> Tuple[Any, Optional["EvaluationResult"]]:
        for d in self.data:
            if type(d) is datum_type:
                return d, None
        return None, self._data_not_found(index, command, datum_type)

    def extract_number(self, index: int, command: str) -> Tuple[Optional[float], Optional["EvaluationResult"]]:
        """Finds a number in the data, falling back to parsing the output."""
        for datum_type in (float, int, Decimal):
            value, error = self.extract_first_datum(index, command, datum_type)
            if error is None:
                return float(value), None
        try:
            value = float(self.output.strip())
        except ValueError:
            return None, EvaluationResult(
                StatusCode.ARGUMENT_EVALUATION_FAILURE,
                f"Evaluation of argument #{index + 1} to '{command}' expected to contain a number "
                f"in the data or the output: {self.output}",
                (index, self),
                self.expression,
            )
        if math.isnan(value):
            return None, self._data_not_found(index, command, float)
        return value, None

    def _data_not_found(self, index: int, command: str, datum_type: type) -> "EvaluationResult":
        return EvaluationResult(
            StatusCode.TYPED_DATA_NOT_FOUND,
            f"Evaluation of argument #{index + 1} to '{command}' does not contain data of type {datum_type.__name__}.",
            (index, datum_type, self),
            self.expression,
        )


def format_number(value: float) -> str:
    """Renders a number the way scripts expect to read it back (no trailing `.0`)."""
    if math.isfinite(value) and value == int(value):
        return str(int(value))
    return repr(value)
