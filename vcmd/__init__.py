"""
vcmd: an embeddable command-scripting language.

Scripts are parsed into immutable expression trees and evaluated against a
CommandHost that holds commands, typed variables and manuals.
"""

from vcmd.vcmd_commands import Alias, Command, CommandInvocationEvent, MethodCommand, command_method
from vcmd.vcmd_config import HostConfig, Limits, load_config
from vcmd.vcmd_context import EvaluationContext
from vcmd.vcmd_errors import (
    NestingLimitError, ScriptError, ScriptSyntaxError, SealedError, VariableAccessError, VariableExistsError,
)
from vcmd.vcmd_expressions import (
    CommandInvocationBuilder,
    CommandInvocationExpression,
    ConditionalBuilder,
    ConditionalExpression,
    ConstantExpression,
    Expression,
    SeriesBuilder,
    SeriesExpression,
    Toggle,
    evaluate,
)
from vcmd.vcmd_host import CommandHost, CommandMutationEvent
from vcmd.vcmd_parser import Parser, parse
from vcmd.vcmd_results import EvaluationResult, StatusCode
from vcmd.vcmd_runtime import ExecutionResult, ScriptRunner
from vcmd.vcmd_tokenizer import Token, TokenType, quote, tokenize
from vcmd.vcmd_variables import ChangeKind, DelegatedVariable, Variable, VariableChangeEvent

__all__ = [
    "Alias", "Command", "CommandInvocationEvent", "MethodCommand", "command_method",
    "HostConfig", "Limits", "load_config",
    "EvaluationContext",
    "NestingLimitError", "ScriptError", "ScriptSyntaxError", "SealedError", "VariableAccessError",
    "VariableExistsError",
    "CommandInvocationBuilder", "CommandInvocationExpression", "ConditionalBuilder", "ConditionalExpression",
    "ConstantExpression", "Expression", "SeriesBuilder", "SeriesExpression", "Toggle", "evaluate",
    "CommandHost", "CommandMutationEvent",
    "Parser", "parse",
    "EvaluationResult", "StatusCode",
    "ExecutionResult", "ScriptRunner",
    "Token", "TokenType", "quote", "tokenize",
    "ChangeKind", "DelegatedVariable", "Variable", "VariableChangeEvent",
]
