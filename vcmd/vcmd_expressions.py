"""
Expression trees and their evaluation.

The parser fills in mutable builders; `seal()` freezes a builder into one of
the four frozen variants below, which are what gets evaluated and shared.
"""

import logging
import re
import threading
import weakref
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from vcmd.vcmd_errors import SealedError
from vcmd.vcmd_results import EvaluationResult, StatusCode

logger = logging.getLogger(__name__)


class Toggle(Enum):
    """The optional `+`/`-` prefix of a command invocation."""
    NEUTRAL = ""
    ON = "+"
    OFF = "-"


# ===================================================================
# 1. Frozen Expression Variants
# ===================================================================


class Expression:
    """Behaviour shared by the frozen variants."""

    is_sealed = True

    def seal(self) -> "Expression":
        return self

    def evaluate(self, context) -> EvaluationResult:
        return evaluate(self, context)

    def __str__(self):
        from vcmd.vcmd_printer import Printer
        return Printer().pformat(self)


_INTEGER = re.compile(r"[+-]?\d+")
_NUMBER = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def _typed_data(value: str) -> Tuple[Any, ...]:
    text = value.strip()
    data: List[Any] = []
    if text.lower() in ("true", "false"):
        data.append(text.lower() == "true")
    if _INTEGER.fullmatch(text):
        data.append(int(text))
    if _NUMBER.fullmatch(text):
        data.append(float(text))
        try:
            data.append(Decimal(text))
        except InvalidOperation:
            pass
    return tuple(data)


_constant_cache: "weakref.WeakValueDictionary[str, ConstantExpression]" = weakref.WeakValueDictionary()
_constant_lock = threading.Lock()


@dataclass(frozen=True)
class ConstantExpression(Expression):
    """A literal argument; its result also carries the literal parsed as bool and numbers."""
    value: str
    data: Tuple[Any, ...] = field(init=False, compare=False, repr=False)

    def __post_init__(self):
        object.__setattr__(self, "data", _typed_data(self.value))

    @classmethod
    def fetch(cls, value: str) -> "ConstantExpression":
        """Returns the shared constant for `value` while any tree still holds it."""
        with _constant_lock:
            constant = _constant_cache.get(value)
            if constant is None:
                constant = _constant_cache[value] = cls(value)
            return constant


@dataclass(frozen=True)
class CommandInvocationExpression(Expression):
    command_name: str
    arguments: Tuple[Expression, ...] = ()
    toggle: Toggle = Toggle.NEUTRAL


@dataclass(frozen=True)
class ConditionalExpression(Expression):
    truth_value: bool
    condition: Optional[Expression] = None
    primary_action: Optional[Expression] = None
    secondary_action: Optional[Expression] = None


@dataclass(frozen=True)
class SeriesExpression(Expression):
    subexpressions: Tuple[Expression, ...] = ()


AnyExpression = Union[ConstantExpression, CommandInvocationExpression, ConditionalExpression, SeriesExpression]


# ===================================================================
# 2. Builders
# ===================================================================


class _Builder:
    """Mutable until `seal()`; afterwards every change raises SealedError."""

    def __init__(self):
        self._sealed: Optional[Expression] = None

    @property
    def is_sealed(self) -> bool:
        return self._sealed is not None

    def seal(self) -> Expression:
        if self._sealed is None:
            self._sealed = self._build()
        return self._sealed

    def _check_seal(self):
        if self._sealed is not None:
            raise SealedError(f"{type(self).__name__} is sealed and cannot be modified.")

    def _build(self) -> Expression:
        raise NotImplementedError

    def __str__(self):
        from vcmd.vcmd_printer import Printer
        return Printer().pformat(self)


def _seal(node):
    return None if node is None else node.seal()


class CommandInvocationBuilder(_Builder):
    def __init__(self, toggle: Toggle = Toggle.NEUTRAL, command_name: Optional[str] = None):
        super().__init__()
        self._toggle = toggle
        self._command_name = command_name
        self._arguments: list = []

    @property
    def toggle(self) -> Toggle:
        return self._toggle

    @property
    def command_name(self) -> Optional[str]:
        return self._command_name

    @command_name.setter
    def command_name(self, name: str):
        self._check_seal()
        self._command_name = name

    @property
    def arguments(self) -> tuple:
        return tuple(self._arguments)

    def add_argument(self, argument):
        self._check_seal()
        self._arguments.append(argument)

    def _build(self) -> CommandInvocationExpression:
        if self._command_name is None:
            raise SealedError("Cannot seal a command invocation without a command name.")
        return CommandInvocationExpression(
            self._command_name, tuple(_seal(a) for a in self._arguments), self._toggle)


class ConditionalBuilder(_Builder):
    def __init__(self, truth_value: bool, condition=None):
        super().__init__()
        self._truth_value = truth_value
        self._condition = condition
        self._primary_action = None
        self._secondary_action = None

    @property
    def truth_value(self) -> bool:
        return self._truth_value

    @property
    def condition(self):
        return self._condition

    @condition.setter
    def condition(self, expression):
        self._check_seal()
        self._condition = expression

    @property
    def primary_action(self):
        return self._primary_action

    @primary_action.setter
    def primary_action(self, expression):
        self._check_seal()
        self._primary_action = expression

    @property
    def secondary_action(self):
        return self._secondary_action

    @secondary_action.setter
    def secondary_action(self, expression):
        self._check_seal()
        self._secondary_action = expression

    def _build(self) -> ConditionalExpression:
        return ConditionalExpression(
            self._truth_value, _seal(self._condition),
            _seal(self._primary_action), _seal(self._secondary_action))


class SeriesBuilder(_Builder):
    def __init__(self, subexpressions=()):
        super().__init__()
        self._subexpressions = list(subexpressions)

    @property
    def subexpressions(self) -> tuple:
        return tuple(self._subexpressions)

    def __len__(self):
        return len(self._subexpressions)

    def append(self, expression):
        self._check_seal()
        self._subexpressions.append(expression)

    def replace_last(self, expression):
        self._check_seal()
        self._subexpressions[-1] = expression

    def _build(self) -> SeriesExpression:
        return SeriesExpression(tuple(_seal(e) for e in self._subexpressions))


# ===================================================================
# 3. Evaluation
# ===================================================================


def evaluate(expression: Expression, context) -> EvaluationResult:
    """
    Evaluates a sealed expression.

    Enforces the evaluation depth limit and turns any exception raised below
    into a RUNTIME_FAULT result, so callers only ever see statuses.
    """
    if context is None:
        raise ValueError("An evaluation context is required.")

    limit = context.limits.max_evaluation_depth
    if context.depth >= limit:
        return EvaluationResult(
            StatusCode.INVOCATION_DEPTH_EXCEEDED,
            f"Maximum evaluation depth of {limit} exceeded.",
            (context.depth,),
            expression,
        )

    try:
        result = _evaluate_step(expression, context.deeper())
    except Exception as e:
        logger.debug("Evaluation of %r faulted", expression, exc_info=True)
        return EvaluationResult(StatusCode.RUNTIME_FAULT, str(e) or type(e).__name__, (e,), expression)
    return result.with_expression(expression)


def _evaluate_step(expression: Expression, context) -> EvaluationResult:
    match expression:
        case ConstantExpression(value=value):
            return EvaluationResult(StatusCode.SUCCESS, value, expression.data)

        case CommandInvocationExpression(command_name=name, arguments=arguments, toggle=toggle):
            command = context.host.get_command(name) if context.host is not None else None
            if command is None:
                return EvaluationResult(StatusCode.COMMAND_NOT_FOUND, f"Command '{name}' is not defined.", (name,))
            return command.invoke(toggle, context, arguments)

        case ConditionalExpression(truth_value=truth_value, condition=condition,
                                   primary_action=primary, secondary_action=secondary):
            if condition is None:
                return EvaluationResult(StatusCode.CONDITION_MISSING, "Conditional expression lacks a condition.")
            if primary is None:
                return EvaluationResult(StatusCode.PRIMARY_ACTION_MISSING, "Conditional expression lacks a primary action.")
            res = evaluate(condition, context)
            if res.truth_value == truth_value:
                return evaluate(primary, context)
            if secondary is not None:
                return evaluate(secondary, context)
            return res

        case SeriesExpression(subexpressions=subexpressions):
            results = [evaluate(e, context) for e in subexpressions]
            if not results:
                return EvaluationResult(StatusCode.SUCCESS)
            return EvaluationResult(results[-1].status, "".join(r.output for r in results), tuple(results))

        case _:
            raise TypeError(f"Cannot evaluate object of type {type(expression).__name__}")
