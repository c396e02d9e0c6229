"""
Typed host variables, read and changed by scripts through the `cvar` command.

A `Variable` stores its own value. A `DelegatedVariable` forwards reads and
writes to callables supplied by the host application.
"""

import logging
from decimal import Decimal, InvalidOperation
from enum import Enum, auto
from typing import Any, Callable, List, Optional, Tuple

from vcmd.vcmd_errors import VariableAccessError
from vcmd.vcmd_results import EvaluationResult, StatusCode

logger = logging.getLogger(__name__)

SUPPORTED_TYPES = (str, int, float, bool, Decimal)


class ChangeKind(Enum):
    FROM_OUTPUT = auto()
    FROM_DATA_OR_OUTPUT = auto()


class VariableChangeEvent:
    def __init__(self, variable: "Variable", old_value: Any, new_value: Any, context):
        self.variable = variable
        self.old_value = old_value
        self.new_value = new_value
        self.context = context
        self.canceled = False
        self.message = ""

    def cancel(self, message: str = ""):
        self.canceled = True
        self.message = message


VariableListener = Callable[[VariableChangeEvent], None]


def format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Variable:
    """A named value of one fixed type."""

    def __init__(self, name: str, value: Any, abstract: str = "",
                 value_type: Optional[type] = None, readonly: bool = False):
        self._declare(name, abstract, value_type or type(value))
        self.readonly = readonly
        self._value = None
        self.value = value

    def _declare(self, name: str, abstract: str, value_type: type):
        if not name:
            raise ValueError("Variable name must not be empty.")
        if value_type not in SUPPORTED_TYPES:
            raise TypeError(f"Unsupported variable type: {value_type.__name__}")
        self.name = name
        self.abstract = abstract
        self.value_type = value_type
        self._listeners: List[VariableListener] = []

    def _check_type(self, value: Any):
        if type(value) is not self.value_type:
            raise TypeError(
                f"Variable '{self.name}' holds {self.value_type.__name__}, not {type(value).__name__}")

    @property
    def value(self) -> Any:
        return self._value

    @value.setter
    def value(self, value: Any):
        self._check_type(value)
        self._value = value

    @property
    def string_value(self) -> str:
        return format_value(self.value)

    def on_change(self, listener: VariableListener) -> VariableListener:
        self._listeners.append(listener)
        return listener

    def read(self) -> EvaluationResult:
        """The current value as a script result."""
        value = self.value
        return EvaluationResult(StatusCode.SUCCESS, format_value(value), (value, self))

    def parse_text(self, text: str) -> Any:
        """Converts script output to this variable's type; raises ValueError when it can't."""
        if self.value_type is str:
            return text
        if self.value_type is bool:
            lowered = text.strip().lower()
            if lowered not in ("true", "false"):
                raise ValueError(f"Not a boolean: {text!r}")
            return lowered == "true"
        if self.value_type is Decimal:
            try:
                return Decimal(text.strip())
            except InvalidOperation:
                raise ValueError(f"Not a decimal: {text!r}")
        return self.value_type(text.strip())

    # ===================================================================
    # Changing the value from a script
    # ===================================================================

    def change_value(self, context, expression, kind: ChangeKind = ChangeKind.FROM_OUTPUT) -> EvaluationResult:
        """
        Evaluates `expression` and stores its converted result.

        Listeners on the variable run first, then the host's variable change
        listeners; any of them may cancel the change.
        """
        if expression is None:
            return EvaluationResult(StatusCode.CVAR_VALUE_NULL, f"No value given for '{self.name}'.", (self,))
        refusal = self._refuse_change(kind)
        if refusal is not None:
            return refusal

        res = expression.evaluate(context)
        if not res.truth_value:
            return EvaluationResult(
                StatusCode.CVAR_VALUE_EVALUATION_FAILURE,
                f"Evaluation of the new value for '{self.name}' returned non-zero status: {res.status}; {res.output}",
                (self, res),
            )

        new_value, error = self._convert(res, kind)
        if error is not None:
            return error

        old_value = self._current_value()
        event = VariableChangeEvent(self, old_value, new_value, context)
        host_listeners = getattr(context.host, "variable_change_listeners", ())
        for listener in [*self._listeners, *host_listeners]:
            listener(event)
            if event.canceled:
                return EvaluationResult(
                    StatusCode.CVAR_UNCHANGEABLE,
                    event.message or f"Change of variable '{self.name}' was canceled.",
                    (self, event),
                )

        error = self._assign(new_value, kind, res)
        if error is not None:
            return error
        logger.debug("Variable %r changed from %r to %r", self.name, old_value, new_value)
        return EvaluationResult(StatusCode.SUCCESS, format_value(new_value), (new_value, old_value, self))

    def _refuse_change(self, kind: ChangeKind) -> Optional[EvaluationResult]:
        if self.readonly:
            return EvaluationResult(StatusCode.CVAR_UNCHANGEABLE, f"Variable '{self.name}' is read-only.", (self,))
        return None

    def _convert(self, res: EvaluationResult, kind: ChangeKind) -> Tuple[Any, Optional[EvaluationResult]]:
        new_value = None
        if kind is ChangeKind.FROM_DATA_OR_OUTPUT:
            new_value, _ = res.extract_first_datum(1, "cvar", self.value_type)
        if new_value is None:
            try:
                new_value = self.parse_text(res.output)
            except ValueError:
                status = (StatusCode.CVAR_VALUE_FORMAT_INVALID if kind is ChangeKind.FROM_OUTPUT
                          else StatusCode.CVAR_VALUE_DATA_LACKING)
                return None, self._invalid(status, res)
        return new_value, None

    def _invalid(self, status: int, res: EvaluationResult) -> EvaluationResult:
        return EvaluationResult(
            status,
            f"Value {res.output!r} cannot be converted to {self.value_type.__name__} for '{self.name}'.",
            (self, res),
        )

    def _current_value(self) -> Any:
        return self._value

    def _assign(self, new_value: Any, kind: ChangeKind, res: EvaluationResult) -> Optional[EvaluationResult]:
        self._value = new_value
        return None

    def __repr__(self):
        return f"<Variable {self.name}={self.string_value!r}>"


class DelegatedVariable(Variable):
    """
    A variable whose value lives in the host application.

    `getter` returns the value and `setter` stores a new one of
    `value_type`. Either may be omitted: without a getter `cvar` reports
    CVAR_UNRETRIEVABLE, without any setter CVAR_UNCHANGEABLE.

    `string_setter`, when given, receives the raw script output on `+cvar`
    and returns False to reject it. A variable with only a string setter
    cannot take typed data, so `-cvar` reports CVAR_CHANGE_TYPE_NOT_SUPPORTED.
    """

    DEFAULT_ABSTRACT = "Delegated command variable."

    def __init__(self, name: str, getter: Optional[Callable[[], Any]] = None,
                 setter: Optional[Callable[[Any], None]] = None, value_type: type = str,
                 abstract: Optional[str] = None, string_setter: Optional[Callable[[str], bool]] = None):
        self._declare(name, self.DEFAULT_ABSTRACT if abstract is None else abstract, value_type)
        self.getter = getter
        self.setter = setter
        self.string_setter = string_setter

    @property
    def readonly(self) -> bool:
        return self.setter is None and self.string_setter is None

    @property
    def value(self) -> Any:
        if self.getter is None:
            raise VariableAccessError(f"Variable '{self.name}' cannot be read.")
        return self.getter()

    @value.setter
    def value(self, value: Any):
        if self.setter is None:
            raise VariableAccessError(f"Variable '{self.name}' cannot be written.")
        self._check_type(value)
        self.setter(value)

    def read(self) -> EvaluationResult:
        if self.getter is None:
            return EvaluationResult(StatusCode.CVAR_UNRETRIEVABLE, f"Variable '{self.name}' cannot be read.", (self,))
        return super().read()

    def _refuse_change(self, kind: ChangeKind) -> Optional[EvaluationResult]:
        if self.readonly:
            return EvaluationResult(StatusCode.CVAR_UNCHANGEABLE, f"Variable '{self.name}' cannot be written.", (self,))
        if kind is ChangeKind.FROM_DATA_OR_OUTPUT and self.setter is None:
            return EvaluationResult(
                StatusCode.CVAR_CHANGE_TYPE_NOT_SUPPORTED,
                f"Variable '{self.name}' only accepts text values.",
                (self,),
            )
        return None

    def _uses_string_setter(self, kind: ChangeKind) -> bool:
        return kind is ChangeKind.FROM_OUTPUT and self.string_setter is not None

    def _convert(self, res: EvaluationResult, kind: ChangeKind) -> Tuple[Any, Optional[EvaluationResult]]:
        if self._uses_string_setter(kind):
            return res.output, None
        return super()._convert(res, kind)

    def _current_value(self) -> Any:
        return self.getter() if self.getter is not None else None

    def _assign(self, new_value: Any, kind: ChangeKind, res: EvaluationResult) -> Optional[EvaluationResult]:
        if self._uses_string_setter(kind):
            if not self.string_setter(new_value):
                return self._invalid(StatusCode.CVAR_VALUE_FORMAT_INVALID, res)
            return None
        self.setter(new_value)
        return None

    def __repr__(self):
        return f"<DelegatedVariable {self.name}>"
