"""
Parser for vcmd scripts.

A stack machine over the token stream. Conditionals bind tighter than `;`
and chain to the left: `a ? b ! c` is `(a ? b) ! c`. Compound arguments are
the only place the parser recurses.
"""

import logging
from typing import Iterable, Iterator, List, Optional, Union

from vcmd.vcmd_config import DEFAULT_LIMITS, Limits, check_conditional_chain, check_nesting_depth
from vcmd.vcmd_errors import ScriptSyntaxError
from vcmd.vcmd_expressions import (
    CommandInvocationBuilder, ConditionalBuilder, ConstantExpression, Expression, SeriesBuilder, Toggle,
)
from vcmd.vcmd_tokenizer import Token, TokenType, tokenize

logger = logging.getLogger(__name__)


class Parser:
    """Turns a script (or a token stream) into one sealed expression."""

    def __init__(self, limits: Optional[Limits] = None):
        self.limits = limits or DEFAULT_LIMITS

    def parse(self, source: Union[str, Iterable[Token]]) -> Expression:
        if isinstance(source, str):
            script: Optional[str] = source
            tokens = iter(tokenize(source, self.limits))
        else:
            script = None
            tokens = iter(source)
        root = self._parse(tokens, nested=False, depth=0, script=script)
        logger.debug("Parsed %r", script if script is not None else root)
        return root

    def _parse(self, tokens: Iterator[Token], nested: bool, depth: int, script: Optional[str]) -> Expression:
        stack: List = []
        command: Optional[CommandInvocationBuilder] = None
        conditional: Optional[ConditionalBuilder] = None
        series: Optional[SeriesBuilder] = None
        chain = 0

        def error(message: str, token: Optional[Token]) -> ScriptSyntaxError:
            return ScriptSyntaxError(message, token.position if token is not None else None, script)

        def attach(builder: CommandInvocationBuilder, token: Token):
            """Places a freshly opened invocation into the open conditional or series."""
            if conditional is not None:
                if conditional.primary_action is None:
                    conditional.primary_action = builder
                elif conditional.secondary_action is None:
                    conditional.secondary_action = builder
                else:
                    raise error("Conditional already has both of its actions.", token)
            elif series is not None:
                series.append(builder)
            elif stack:
                raise error(f"Unexpected command after a complete expression: '{token.content}'.", token)
            stack.append(builder)

        for token in tokens:
            match token.type:
                case TokenType.TOGGLER:
                    if command is not None:
                        raise error(f"Toggler '{token.content}' must precede a command name.", token)
                    command = CommandInvocationBuilder(Toggle(token.content))
                    attach(command, token)

                case TokenType.COMMAND_NAME:
                    if command is None:
                        command = CommandInvocationBuilder(Toggle.NEUTRAL, token.content)
                        attach(command, token)
                    elif command.command_name is None:
                        command.command_name = token.content
                    else:
                        raise error(f"Unexpected command name '{token.content}'.", token)

                case TokenType.ARGUMENT:
                    if command is None or command.command_name is None:
                        raise error(f"Argument '{token.content}' does not follow a command.", token)
                    command.add_argument(ConstantExpression.fetch(token.content))

                case TokenType.SEPARATOR:
                    closed = None
                    if command is not None:
                        closed = self._close(stack, token, error)
                        command = None
                    if conditional is not None:
                        closed = self._close(stack, token, error)
                        conditional = None
                        chain = 0
                    if closed is None:
                        raise error("Separator is not preceded by an expression.", token)
                    if series is None:
                        series = SeriesBuilder([closed])
                        stack.append(series)

                case TokenType.INCLUDE | TokenType.EXCLUDE:
                    if command is None:
                        raise error(f"Conditional '{token.content}' is not preceded by a command.", token)
                    condition = self._close(stack, token, error)
                    command = None
                    if conditional is not None:
                        # The open conditional becomes the condition of the next one.
                        condition = self._close(stack, token, error)
                    chain = chain + 1 if conditional is not None else 1
                    check_conditional_chain(chain, self.limits, token.position, script)
                    conditional = ConditionalBuilder(token.type is TokenType.INCLUDE, condition)
                    stack.append(conditional)
                    if series is not None:
                        series.replace_last(conditional)

                case TokenType.OTHERWISE:
                    if conditional is None:
                        raise error("Alternative action given without a conditional.", token)
                    if conditional.primary_action is None:
                        raise error("Alternative action given before a primary action.", token)
                    if conditional.secondary_action is not None:
                        raise error("Conditional already has an alternative action.", token)
                    if command is None:
                        raise error("Alternative action is not preceded by a command.", token)
                    self._close(stack, token, error)
                    command = None

                case TokenType.COMPOUND_ARGUMENT_START:
                    if command is None or command.command_name is None:
                        raise error("Compound argument does not follow a command.", token)
                    check_nesting_depth(depth + 1, self.limits, token.position, script)
                    command.add_argument(self._parse(tokens, nested=True, depth=depth + 1, script=script))

                case TokenType.COMPOUND_ARGUMENT_END:
                    if not nested:
                        raise error("Compound argument ending has no matching start.", token)
                    if command is None:
                        raise error("Compound argument ends without a command.", token)
                    return self._seal_all(stack, token, error)

        if nested:
            raise error("Missing compound argument ending.", None)
        return self._seal_all(stack, None, error)

    @staticmethod
    def _close(stack: List, token: Token, error) -> Expression:
        builder = stack.pop()
        if isinstance(builder, CommandInvocationBuilder) and builder.command_name is None:
            raise error(f"Toggler '{builder.toggle.value}' is not followed by a command name.", token)
        return builder.seal()

    @staticmethod
    def _seal_all(stack: List, token: Optional[Token], error) -> Expression:
        if not stack:
            raise error("Script contains no command.", token)
        while len(stack) > 1:
            Parser._close(stack, token, error)
        return Parser._close(stack, token, error)


def parse(script: str, limits: Optional[Limits] = None) -> Expression:
    """Parses `script` into a sealed expression tree."""
    return Parser(limits).parse(script)
