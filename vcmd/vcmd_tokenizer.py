"""
Tokenizer for vcmd scripts.

Turns a single-line script into a lazy stream of tokens. Errors surface when
the offending token would have been produced, so a parser pulling tokens one
at a time sees them in order.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from vcmd.vcmd_config import Limits, check_nesting_depth, check_script_length
from vcmd.vcmd_errors import ScriptSyntaxError


class TokenType(Enum):
    """Token types produced by the tokenizer."""

    TOGGLER = "TOGGLER"
    COMMAND_NAME = "COMMAND_NAME"
    ARGUMENT = "ARGUMENT"

    # Separators
    SEPARATOR = "SEPARATOR"
    INCLUDE = "INCLUDE"
    OTHERWISE = "OTHERWISE"
    EXCLUDE = "EXCLUDE"

    # Compound arguments
    COMPOUND_ARGUMENT_START = "COMPOUND_ARGUMENT_START"
    COMPOUND_ARGUMENT_END = "COMPOUND_ARGUMENT_END"


@dataclass(frozen=True)
class Token:
    """A token produced by the tokenizer."""

    type: TokenType
    content: str
    position: int = 0


WHITESPACE = frozenset(" \t\r\n")

SEPARATORS = {
    ";": TokenType.SEPARATOR,
    "?": TokenType.INCLUDE,
    ":": TokenType.OTHERWISE,
    "!": TokenType.EXCLUDE,
}

# Characters that cannot appear unescaped inside a command name or argument.
MUST_ESCAPE = frozenset('+-"[]?!:;\\') | WHITESPACE


def quote(text: str) -> str:
    """Returns `text` as it must be written in a script to read back as one token."""
    if text and not text.isspace() and not any(c in MUST_ESCAPE for c in text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def tokenize(script: str, limits: Optional[Limits] = None) -> Iterator[Token]:
    """
    Lazily splits `script` into tokens.

    Raises ScriptSyntaxError (from the generator) on empty input and on
    misplaced togglers, separators and brackets.
    """
    check_script_length(script, limits)
    if not script or script.isspace():
        raise ScriptSyntaxError("Script is empty or contains only whitespace.", 0, script)
    return _tokenize(script, limits)


def _tokenize(script: str, limits: Optional[Limits]) -> Iterator[Token]:
    source = script + "\n"
    last = len(source) - 1

    buffer: list = []
    in_string = False
    under_escape = False
    expecting_command = True
    toggled = False
    depth = 0

    # What the previous character was, for deciding whether an empty buffer
    # still makes a token (an empty quoted string does).
    after_whitespace = True
    after_separator = False

    def error(message: str, position: int) -> ScriptSyntaxError:
        return ScriptSyntaxError(message, position, script)

    def flush(can_finish_token: bool, position: int) -> Optional[Token]:
        nonlocal expecting_command, toggled
        if not buffer and not can_finish_token:
            return None
        kind = TokenType.COMMAND_NAME if expecting_command else TokenType.ARGUMENT
        token = Token(kind, "".join(buffer), position)
        buffer.clear()
        expecting_command = False
        toggled = False
        return token

    for i, ch in enumerate(source):
        preceded_by_whitespace = after_whitespace
        can_finish_token = not (after_whitespace or after_separator)
        after_whitespace = after_separator = False

        if under_escape:
            if i == last:
                raise error("Script ends in a backslash.", i - 1)
            buffer.append(ch)
            under_escape = False
            continue

        if in_string:
            if i == last:
                raise error("Script contains an unterminated string.", i)
            if ch == "\\":
                under_escape = True
            elif ch == '"':
                in_string = False
            else:
                buffer.append(ch)
            continue

        match ch:
            case "\\":
                under_escape = True

            case '"':
                in_string = True

            case "+" | "-":
                if not expecting_command or buffer or toggled:
                    raise error(f"Toggler '{ch}' appears in an unusual place.", i)
                toggled = True
                after_separator = True
                yield Token(TokenType.TOGGLER, ch, i)

            case " " | "\t" | "\r" | "\n":
                if i == last:
                    if expecting_command and not buffer and not can_finish_token:
                        raise error("Script does not end in a full command name.", i)
                    if depth > 0:
                        raise error(f"Missing {depth} compound argument ending(s).", i)
                token = flush(can_finish_token, i)
                if token is not None:
                    yield token
                after_whitespace = True

            case ";" | "?" | ":" | "!":
                if expecting_command and not buffer and not can_finish_token:
                    raise error(f"Separator '{ch}' is preceded by an empty command.", i)
                token = flush(can_finish_token, i)
                if token is not None:
                    yield token
                expecting_command = True
                toggled = False
                after_whitespace = True
                yield Token(SEPARATORS[ch], ch, i)

            case "[" if preceded_by_whitespace:
                if expecting_command:
                    raise error("A compound argument cannot start where a command name is expected.", i)
                depth += 1
                check_nesting_depth(depth, limits, i, script)
                expecting_command = True
                after_whitespace = True
                yield Token(TokenType.COMPOUND_ARGUMENT_START, ch, i)

            case "]":
                if expecting_command and not buffer and not can_finish_token:
                    raise error("Compound argument ends with an empty command.", i)
                token = flush(can_finish_token, i)
                if token is not None:
                    yield token
                depth -= 1
                if depth < 0:
                    raise error("Compound argument ending has no matching start.", i)
                expecting_command = False
                after_separator = True
                yield Token(TokenType.COMPOUND_ARGUMENT_END, ch, i)

            case _:
                buffer.append(ch)
