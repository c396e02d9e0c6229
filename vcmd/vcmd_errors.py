"""
Exceptions raised by the vcmd front end and registries.

Evaluation never raises these past `evaluate`; faults there become statuses.
"""

from typing import Optional


class ScriptError(Exception):
    """Base class for every error vcmd raises."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ScriptSyntaxError(ScriptError, SyntaxError):
    """Malformed script text, reported by the tokenizer or the parser."""

    def __init__(self, message: str, position: Optional[int] = None, script: Optional[str] = None):
        super().__init__(message)
        self.position = position
        self.script = script

    def __str__(self):
        return self.message

    def format_with_context(self) -> str:
        """Formats the message with the script line and a caret under the position."""
        if self.script is None or self.position is None:
            return self.message
        # Clamp to the script so the sentinel position points just past the end.
        position = min(self.position, len(self.script))
        pointer = " " * position + "^"
        return f"{self.message}\n  {self.script}\n  {pointer}"


class NestingLimitError(ScriptSyntaxError):
    """A script exceeded one of the configured size or depth limits."""

    def __init__(self, limit_name: str, limit: int, actual: int,
                 position: Optional[int] = None, script: Optional[str] = None):
        super().__init__(f"{limit_name} of {actual} exceeds limit of {limit}", position, script)
        self.limit_name = limit_name
        self.limit = limit
        self.actual = actual


class SealedError(ScriptError):
    """Raised when a builder is modified after it has been sealed."""


class VariableExistsError(ScriptError, KeyError):
    """A variable with the same name is already registered."""

    def __str__(self):
        return self.message


class VariableAccessError(ScriptError):
    """A delegated variable was read without a getter or written without a setter."""
