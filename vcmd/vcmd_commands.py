"""
Commands: the things a CommandInvocationExpression resolves to at run time.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Sequence

from vcmd.vcmd_expressions import Expression, Toggle
from vcmd.vcmd_results import EvaluationResult, StatusCode

logger = logging.getLogger(__name__)

CommandFunction = Callable[[Toggle, "EvaluationContext", Sequence[Expression]], EvaluationResult]


def command_method(name: Optional[str] = None, category: str = "Miscellaneous", abstract: str = ""):
    """A decorator marking a StdLib method as a command to register."""
    def decorate(func):
        func._vcmd_command = {"name": name, "category": category, "abstract": abstract}
        return func
    return decorate


class CommandInvocationEvent:
    """Raised before a command runs; a listener may cancel it with its own status and message."""

    def __init__(self, command: "Command", toggle: Toggle, context, arguments: Sequence[Expression]):
        self.command = command
        self.toggle = toggle
        self.context = context
        self.arguments = tuple(arguments)
        self.canceled = False
        self.status: int = StatusCode.INVOCATION_CANCELED
        self.message = ""

    def cancel(self, message: str = "", status: int = StatusCode.INVOCATION_CANCELED):
        self.canceled = True
        self.message = message
        self.status = status


InvocationListener = Callable[[CommandInvocationEvent], None]


class Command(ABC):
    """The required base class for anything a host can invoke by name."""

    def __init__(self, name: str, category: str = "Miscellaneous", abstract: str = ""):
        if not name:
            raise ValueError("Command name must not be empty.")
        self.name = name
        self.category = category
        self.abstract = abstract
        self._listeners: List[InvocationListener] = []

    def on_invocation(self, listener: InvocationListener) -> InvocationListener:
        self._listeners.append(listener)
        return listener

    def invoke(self, toggle: Toggle, context, arguments: Sequence[Expression]) -> EvaluationResult:
        """Runs the command with unevaluated arguments, unless an invocation listener cancels it."""
        host_listeners = getattr(context.host, "invocation_listeners", ())
        listeners = [*host_listeners, *self._listeners]
        if listeners:
            event = CommandInvocationEvent(self, toggle, context, arguments)
            for listener in listeners:
                listener(event)
                if event.canceled:
                    logger.debug("Invocation of %r canceled: %s", self.name, event.message)
                    return EvaluationResult(
                        event.status,
                        event.message or f"Invocation of '{self.name}' was canceled.",
                        (event,),
                    )
        return self._invoke(toggle, context, tuple(arguments))

    @abstractmethod
    def _invoke(self, toggle: Toggle, context, arguments: tuple) -> EvaluationResult:
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__} {self.name!r}>"


class MethodCommand(Command):
    """A command backed by a plain function `(toggle, context, args) -> EvaluationResult`."""

    def __init__(self, name: str, function: CommandFunction, category: str = "Miscellaneous", abstract: str = ""):
        super().__init__(name, category, abstract)
        self.function = function

    def _invoke(self, toggle, context, arguments):
        return self.function(toggle, context, arguments)


class Alias(Command):
    """
    A named expression tree.

    Arguments given to the alias are bound as user arguments, read back with
    the `arg` and `argc` commands.
    """

    def __init__(self, name: str, expression: Expression, source_text: Optional[str] = None):
        self.expression = expression.seal()
        self.source_text = source_text if source_text is not None else str(self.expression)
        super().__init__(name, "User-defined Aliases", f"Alias for: {self.source_text}")

    def _invoke(self, toggle, context, arguments):
        return self.expression.evaluate(context.with_user_arguments(arguments))
