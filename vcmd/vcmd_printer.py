"""
A printer that turns expression trees back into script text.
"""
from vcmd.vcmd_expressions import (
    ConstantExpression, CommandInvocationExpression, ConditionalExpression, SeriesExpression,
    CommandInvocationBuilder, ConditionalBuilder, SeriesBuilder,
)
from vcmd.vcmd_tokenizer import quote


class Printer:
    """Formats expressions (sealed or still being built) as parseable scripts."""

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj):
        """Public entry point to format an expression."""
        handler = self._handlers.get(type(obj))
        if handler is None:
            return repr(obj)
        return handler(obj)

    def _create_handlers(self):
        return {
            ConstantExpression: self._pformat_constant,
            CommandInvocationExpression: self._pformat_invocation,
            CommandInvocationBuilder: self._pformat_invocation,
            ConditionalExpression: self._pformat_conditional,
            ConditionalBuilder: self._pformat_conditional,
            SeriesExpression: self._pformat_series,
            SeriesBuilder: self._pformat_series,
            type(None): lambda o: "",
        }

    def _pformat_constant(self, obj):
        return quote(obj.value)

    def _pformat_argument(self, obj):
        if isinstance(obj, ConstantExpression):
            return self._pformat_constant(obj)
        return f"[{self.pformat(obj)}]"

    def _pformat_invocation(self, obj):
        parts = [obj.toggle.value + quote(obj.command_name or "")]
        parts.extend(self._pformat_argument(a) for a in obj.arguments)
        return " ".join(parts)

    def _pformat_conditional(self, obj):
        # A nested conditional in the condition slot prints unparenthesized;
        # the parser rebuilds the same left-growing chain from it.
        introducer = "?" if obj.truth_value else "!"
        text = f"{self.pformat(obj.condition)} {introducer} {self.pformat(obj.primary_action)}"
        if obj.secondary_action is not None:
            text += f" : {self.pformat(obj.secondary_action)}"
        return text

    def _pformat_series(self, obj):
        return "; ".join(self.pformat(e) for e in obj.subexpressions)
