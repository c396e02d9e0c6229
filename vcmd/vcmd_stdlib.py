"""
The default command set registered by `CommandHost.register_default_commands`.

Every command receives its arguments unevaluated and decides itself what to
evaluate, how often and in which context.
"""

import inspect
import math
import random
import re
from itertools import groupby
from typing import Any, Callable, List, Optional, Sequence, Tuple

import pystache
from pystache.context import KeyNotFoundError
from pystache.parser import ParsingError

from vcmd.vcmd_commands import Alias, Command, MethodCommand, command_method
from vcmd.vcmd_errors import ScriptSyntaxError
from vcmd.vcmd_expressions import CommandInvocationExpression, ConstantExpression, Toggle
from vcmd.vcmd_manuals import ManualLookup, index_text, render_text, section_at
from vcmd.vcmd_results import EvaluationResult, StatusCode, format_number
from vcmd.vcmd_variables import ChangeKind

ORDERING_COMPARISONS = ("lt", "lte", "gt", "gte")


# ===================================================================
# 1. Argument Helpers
# ===================================================================


def _result(status: int, output: str = "", *data: Any) -> EvaluationResult:
    return EvaluationResult(status, output, data)


def _success(output: str = "", *data: Any) -> EvaluationResult:
    return EvaluationResult(StatusCode.SUCCESS, output, data)


def _count_error(message: str) -> EvaluationResult:
    return EvaluationResult(StatusCode.INVALID_ARGUMENT_COUNT, message)


def _toggle_error(name: str, toggle: Toggle) -> EvaluationResult:
    return _result(StatusCode.TOGGLER_NOT_SUPPORTED, f"'{name}' does not support toggler '{toggle.value}'.", toggle)


def _evaluate_checked(args, index: int, context, name: str) -> Tuple[EvaluationResult, Optional[EvaluationResult]]:
    res = args[index].evaluate(context)
    return res, res.check_truth_value(index, name)


def _evaluate_text(args, index: int, context, name: str) -> Tuple[Optional[str], Optional[EvaluationResult]]:
    res, error = _evaluate_checked(args, index, context, name)
    if error is not None:
        return None, error
    return res.output, None


def _evaluate_int(args, index: int, context, name: str) -> Tuple[Optional[int], Optional[EvaluationResult]]:
    """An argument's unique int datum, or its output parsed as an integer."""
    res, error = _evaluate_checked(args, index, context, name)
    if error is not None:
        return None, error
    value, error = res.extract_unique_datum(index, name, int)
    if error is None:
        return value, None
    try:
        return int(res.output.strip()), None
    except ValueError:
        return None, _result(
            StatusCode.ARGUMENT_EVALUATION_FAILURE,
            f"Evaluation of argument #{index + 1} to '{name}' expected to contain an integer: {res.output}",
            index, res)


def _evaluate_number(args, index: int, context, name: str) -> Tuple[Optional[float], Optional[EvaluationResult]]:
    res, error = _evaluate_checked(args, index, context, name)
    if error is not None:
        return None, error
    return res.extract_number(index, name)


def _evaluate_numbers(args, context, name: str) -> Tuple[List[float], Optional[EvaluationResult]]:
    numbers = []
    for i in range(len(args)):
        value, error = _evaluate_number(args, i, context, name)
        if error is not None:
            return numbers, error
        numbers.append(value)
    return numbers, None


def _join(toggle: Toggle, outputs: Sequence[str]) -> str:
    separator = {Toggle.NEUTRAL: "\t", Toggle.ON: "\n", Toggle.OFF: ""}[toggle]
    return separator.join(outputs)


# ===================================================================
# 2. Table-driven Mathematics
# ===================================================================


def _unary(name: str, func: Callable[[float], float], abstract: str) -> Command:
    def invoke(toggle, context, args):
        if toggle is not Toggle.NEUTRAL:
            return _toggle_error(name, toggle)
        if len(args) != 1:
            return _count_error(f"'{name}' must receive exactly one argument, a number.")
        x, error = _evaluate_number(args, 0, context, name)
        if error is not None:
            return error
        value = func(x)
        return _success(format_number(value), value)
    return MethodCommand(name, invoke, "Mathematics", abstract)


def _binary(name: str, func: Callable[[float, float], float], abstract: str) -> Command:
    def invoke(toggle, context, args):
        if toggle is not Toggle.NEUTRAL:
            return _toggle_error(name, toggle)
        if len(args) != 2:
            return _count_error(f"'{name}' must receive exactly two arguments, both numbers.")
        numbers, error = _evaluate_numbers(args, context, name)
        if error is not None:
            return error
        value = func(*numbers)
        return _success(format_number(value), value, *numbers)
    return MethodCommand(name, invoke, "Mathematics", abstract)


def _nary(name: str, func: Callable[[List[float]], float], abstract: str) -> Command:
    def invoke(toggle, context, args):
        if toggle is not Toggle.NEUTRAL:
            return _toggle_error(name, toggle)
        if len(args) < 2:
            return _count_error(f"'{name}' must receive at least two arguments, all numbers.")
        numbers, error = _evaluate_numbers(args, context, name)
        if error is not None:
            return error
        value = func(numbers)
        return _success(format_number(value), value, numbers)
    return MethodCommand(name, invoke, "Mathematics", abstract)


def _comparison(name: str, func: Callable[[float, float], bool], holds: str, fails: str, abstract: str) -> Command:
    def invoke(toggle, context, args):
        if toggle is Toggle.OFF:
            return _toggle_error(name, toggle)
        if len(args) != 2:
            return _count_error(f"'{name}' must receive exactly two arguments, both numbers.")
        numbers, error = _evaluate_numbers(args, context, name)
        if error is not None:
            return error
        a, b = numbers
        res = func(a, b)
        if toggle is Toggle.ON:
            return _success("true" if res else "false", res, a, b)
        if res:
            return _success(f"{format_number(a)} {holds} {format_number(b)}", a, b)
        return _result(StatusCode.MATHEMATICAL_LOGIC_FAILURE, f"{format_number(a)} {fails} {format_number(b)}", a, b)
    return MethodCommand(name, invoke, "Comparison", abstract)


def _math_commands() -> List[Command]:
    return [
        _unary("neg", lambda x: -x, "Negates the given number."),
        _unary("abs", abs, "Computes the absolute value of the given number."),
        _unary("sqrt", math.sqrt, "Computes the square root of the given number."),
        _unary("ln", math.log, "Computes the natural logarithm of the given number."),
        _binary("mod", math.fmod, "Computes the remainder of dividing the first number by the second."),
        _binary("pow", math.pow, "Raises the first number to the power of the second."),
        _nary("min", min, "Computes the minimum value of the given numbers."),
        _nary("max", max, "Computes the maximum value of the given numbers."),
        _nary("avg", lambda ns: sum(ns) / len(ns), "Computes the arithmetic mean of the given numbers."),
        _comparison("lt", lambda a, b: a < b, "<", ">=", "Checks whether the first number is lower than the second."),
        _comparison("lte", lambda a, b: a <= b, "<=", ">", "Checks whether the first number is lower than or equal to the second."),
        _comparison("gt", lambda a, b: a > b, ">", "<=", "Checks whether the first number is greater than the second."),
        _comparison("gte", lambda a, b: a >= b, ">=", "<", "Checks whether the first number is greater than or equal to the second."),
    ]


# ===================================================================
# 3. Built-in Commands
# ===================================================================


class StdLib:
    """Python implementations of the default commands."""

    def commands(self) -> List[Command]:
        """Every command of the library, methods first, then the generated math commands."""
        found: List[Command] = []
        for name, member in inspect.getmembers(self):
            meta = getattr(member, "_vcmd_command", None)
            if meta is None or not name.startswith('_') or name.startswith('__'):
                continue
            command_name = meta["name"] or name[1:].replace('_', '-')
            found.append(MethodCommand(command_name, member, meta["category"], meta["abstract"]))
        found.extend(_math_commands())
        return found

    # --- Help ---

    @command_method(abstract="Lists commands and variables, optionally filtered by a regular expression.")
    def _help(self, toggle, context, args):
        host = context.host
        if len(args) > 1:
            return _count_error("'help' must receive at most one argument: a regular expression.")

        commands = sorted(host.commands.values(), key=lambda c: c.name)
        variables = sorted(host.variables.values(), key=lambda v: v.name)
        short = host.config.short_help
        header = "Listing all commands and variables with descriptions:"

        if args:
            pattern, error = _evaluate_text(args, 0, context, "help")
            if error is not None:
                return error
            try:
                regex = re.compile(pattern)
            except re.error as e:
                return _result(StatusCode.ARGUMENT_EVALUATION_FAILURE, f"Invalid regular expression: {e}", pattern)

            match toggle:
                case Toggle.NEUTRAL:
                    commands = [c for c in commands if regex.search(c.name)]
                    variables = [v for v in variables if regex.search(v.name)]
                    header = f"Looking for regular expression in command/variable names: {pattern}"
                case Toggle.ON:
                    commands = [c for c in commands if regex.search(c.name) or regex.search(c.abstract)]
                    variables = [v for v in variables if regex.search(v.name) or regex.search(v.abstract)]
                    header = f"Looking for regular expression in command/variable names and descriptions: {pattern}"
                case Toggle.OFF if short:
                    commands = [c for c in commands if regex.search(c.category)]
                    if not regex.search("Variables"):
                        variables = []
                case Toggle.OFF:
                    commands = [c for c in commands if regex.search(c.abstract)]
                    variables = [v for v in variables if regex.search(v.abstract)]
                    header = f"Looking for regular expression in command/variable descriptions: {pattern}"

        groups = [(category, list(items)) for category, items in
                  groupby(sorted(commands, key=lambda c: (c.category, c.name)), key=lambda c: c.category)]
        summary = (f"{len(commands)} command{'' if len(commands) == 1 else 's'} under "
                   f"{len(groups)} categor{'y' if len(groups) == 1 else 'ies'} and "
                   f"{len(variables) or 'no'} variable{'' if len(variables) == 1 else 's'}.")

        if short:
            lines = [f"{category}: {', '.join(c.name for c in items)}" for category, items in groups]
            if variables:
                lines.append(f"Variables: {', '.join(v.name for v in variables)}")
            if len(commands) == 1 and not variables:
                return _success(f"{lines[0]} - {commands[0].abstract}")
            if len(variables) == 1 and not commands:
                return _success(f"{lines[0]} - {variables[0].abstract}")
            lines.append(f"{host.config.product_name} shows {summary}")
            return _success(".\n".join(lines[:-1]) + ("." if len(lines) > 1 else "") + "\n" + lines[-1])

        out = [header]
        for category, items in groups:
            out.append("")
            out.append(f"\t{category}:")
            out.append("")
            out.extend(f"{c.name}\t- {c.abstract}" for c in items)
        if variables:
            out.append("")
            out.append("\tVariables:")
            out.append("")
            out.extend(f"{v.name}\t- {v.abstract}" for v in variables)
        out.append("")
        out.append(f"Shown {summary}")
        out.append(f"Powered by {host.config.product_name}.")
        return _success("\n".join(out))

    # --- Output and flow ---

    @command_method(abstract="Returns the outputs of the given arguments, separated by a tab (newline with +, nothing with -).")
    def _echo(self, toggle, context, args):
        outputs = [a.evaluate(context).output for a in args]
        return _success(_join(toggle, outputs), *outputs)

    @command_method(abstract="Evaluates the given arguments in order until one returns non-zero status.")
    def _try(self, toggle, context, args):
        results = []
        for arg in args:
            res = arg.evaluate(context)
            results.append(res)
            if not res.truth_value:
                return _result(StatusCode.SEQUENTIAL_EVALUATION_FAILURE,
                               _join(toggle, [r.output for r in results]), tuple(results), len(results) - 1)
        return _success(_join(toggle, [r.output for r in results]), tuple(results), len(results))

    @command_method(abstract="Evaluates an expression a number of times.")
    def _repeat(self, toggle, context, args):
        if len(args) != 2:
            return _count_error("'repeat' must receive two arguments: a count and an expression.")
        count, error = _evaluate_int(args, 0, context, "repeat")
        if error is not None:
            return error
        if count < 1:
            return _result(StatusCode.LOOP_NEGATIVE_BOUND,
                           "Evaluation of argument #1 to 'repeat' returned a non-positive number.", count)
        return _loop(toggle, "repeat", args[1], (context for _ in range(count)), 2)

    @command_method(name="for", abstract="Evaluates an expression for each value of a local between two bounds.")
    def _for(self, toggle, context, args):
        if len(args) not in (4, 5):
            return _count_error(
                "'for' must receive 4 or 5 arguments: iterator name, initial value, end value, an expression "
                "and an optional increment that defaults to 1 or -1 depending on direction.")
        name, error = _evaluate_text(args, 0, context, "for")
        if error is not None:
            return error

        bounds = []
        for i in (1, 2):
            bound, error = _evaluate_int(args, i, context, "for")
            if error is not None:
                return error
            if bound < 1:
                return _result(StatusCode.LOOP_NEGATIVE_BOUND,
                               f"Evaluation of argument #{i + 1} to 'for' returned a non-positive number.", bound)
            bounds.append(bound)
        start, end = bounds

        backwards = start > end
        step = -1 if backwards else 1
        if len(args) == 5:
            step, error = _evaluate_int(args, 4, context, "for")
            if error is not None:
                return error
            if step == 0 or (backwards and step > 0) or (not backwards and step < 0):
                return _result(
                    StatusCode.LOOP_INCREMENTOR_INVALID,
                    "Incrementor of 'for' loop must be strictly negative when the initial value is greater than the end value."
                    if backwards else
                    "Incrementor of 'for' loop must be strictly positive when the initial value is lower than or equal to the end value.",
                    step)

        stop = end - 1 if backwards else end + 1
        contexts = (context.with_local(name, str(j)) for j in range(start, stop, step))
        return _loop(toggle, "for", args[3], contexts, 4)

    # --- Locals and scoping ---

    @command_method(abstract="Gets (neutral), sets (+) or removes (-) a local value of the evaluation context.")
    def _local(self, toggle, context, args):
        expected = 2 if toggle is Toggle.ON else 1
        if len(args) != expected:
            usage = {Toggle.NEUTRAL: "'local' must receive one argument: a name.",
                     Toggle.ON: "'+local' must receive two arguments: a name and a value.",
                     Toggle.OFF: "'-local' must receive one argument: a name."}
            return _count_error(usage[toggle])

        name, error = _evaluate_text(args, 0, context, "local")
        if error is not None:
            return error

        match toggle:
            case Toggle.NEUTRAL:
                if name not in context.locals:
                    return _result(StatusCode.LOCAL_VARIABLE_NOT_FOUND,
                                   f"No local variable named '{name}' exists in the context.", name)
                value = context.locals[name]
                return EvaluationResult(StatusCode.SUCCESS, value, ConstantExpression.fetch(value).data)
            case Toggle.OFF:
                if context.locals.pop(name, None) is None:
                    return _result(StatusCode.LOCAL_VARIABLE_NOT_FOUND,
                                   f"No local variable named '{name}' exists in the context.", name)
                return _success(f"Local variable '{name}' is removed.")
            case _:
                res, error = _evaluate_checked(args, 1, context, "local")
                if error is not None:
                    return error
                context.locals[name] = res.output
                return res

    @command_method(abstract="Evaluates an expression with some extra local values.")
    def _with(self, toggle, context, args):
        if len(args) < 3 or len(args) % 2 != 1:
            return _count_error(
                "'with' must receive at least one local definition (a name followed by a value) and an expression.")
        pairs = []
        for i in range(0, len(args) - 1, 2):
            name, error = _evaluate_text(args, i, context, "with")
            if error is not None:
                return error
            value, error = _evaluate_text(args, i + 1, context, "with")
            if error is not None:
                return error
            pairs.append((name, value))
        return args[-1].evaluate(context.with_locals(pairs))

    # --- Aliases ---

    @command_method(abstract="Creates (neutral), replaces (+) or removes (-) a named alias for an expression.")
    def _alias(self, toggle, context, args):
        expected = 1 if toggle is Toggle.OFF else 2
        if len(args) != expected:
            if toggle is Toggle.OFF:
                return _count_error("'-alias' must receive one argument: a name.")
            return _count_error(f"'{toggle.value}alias' must receive two arguments: a name and an expression.")

        name, error = _evaluate_text(args, 0, context, "alias")
        if error is not None:
            return error
        host = context.host

        if toggle is Toggle.OFF:
            if not isinstance(host.get_command(name), Alias):
                return _result(StatusCode.COMMAND_NOT_FOUND, f"There is no alias named '{name}'.", name)
            host.remove_command(name)
            return _success()

        body = args[1]
        if isinstance(body, ConstantExpression):
            try:
                tree = host.parse(body.value)
            except ScriptSyntaxError as e:
                return _result(StatusCode.ARGUMENT_EXPRESSION_INVALID,
                               f"Alias body is not a valid script: {e}", body.value)
            source_text = body.value
        else:
            tree, source_text = body, str(body)

        if host.register_command(Alias(name, tree, source_text), overwrite=toggle is Toggle.ON,
                                 overwrite_same_type_only=True):
            return _success()
        return _result(StatusCode.COMMAND_ALREADY_EXISTS,
                       f"A command already exists with the given name, and it cannot be replaced: {name}", name)

    @command_method(abstract="Retrieves a user argument given to the running alias (1-based).")
    def _arg(self, toggle, context, args):
        if len(args) != 1:
            return _count_error("'arg' must receive one argument: an index.")
        if context.user_arguments is None:
            return _result(StatusCode.USER_ARGUMENTS_MISSING, "Execution context lacks user arguments.")
        index, error = _evaluate_int(args, 0, context, "arg")
        if error is not None:
            return error
        if index < 1:
            return _result(StatusCode.USER_ARGUMENT_INDEX_INVALID,
                           f"Argument index ({index}) must be strictly positive.", index)
        if index > len(context.user_arguments):
            return _result(StatusCode.USER_ARGUMENT_NOT_FOUND, f"There is no user argument at index #{index}", index)
        return context.user_arguments[index - 1].evaluate(context)

    @command_method(abstract="Retrieves the number of user arguments given to the running alias.")
    def _argc(self, toggle, context, args):
        if args:
            return _count_error("'argc' must receive no arguments.")
        if context.user_arguments is None:
            return _result(StatusCode.USER_ARGUMENTS_MISSING, "There are no user arguments in the execution context.")
        count = len(context.user_arguments)
        return _success(str(count), count, float(count))

    @command_method(abstract="Shows the expression behind an alias.")
    def _dump(self, toggle, context, args):
        if len(args) != 1:
            return _count_error("'dump' must receive exactly one argument: an alias name.")
        if toggle is Toggle.ON:
            return _toggle_error("dump", toggle)
        match args[0]:
            case ConstantExpression(value=name) | CommandInvocationExpression(command_name=name):
                pass
            case _:
                return _result(StatusCode.ARGUMENT_EXPRESSION_INVALID,
                               "Argument should be an alias name or a compound argument invoking it.")
        command = context.host.get_command(name)
        if command is None:
            return _result(StatusCode.COMMAND_NOT_FOUND, f"Command '{name}' is not defined.", name)
        if not isinstance(command, Alias):
            return _result(StatusCode.COMMAND_NOT_FOUND, f"Command '{name}' is not an alias.", name)
        if toggle is Toggle.OFF:
            return _success(command.source_text, command.source_text)
        return _success(f"Alias: {command.source_text}", command.source_text)

    # --- Strings ---

    @command_method(category="Strings", abstract="Extracts a substring: start index, length and a string.")
    def _subs(self, toggle, context, args):
        if len(args) != 3:
            return _count_error("'subs' must receive 3 arguments: start index, length and a string.")
        bounds, error = _non_negative_ints(args, context, "subs")
        if error is not None:
            return error
        text, error = _evaluate_text(args, 2, context, "subs")
        if error is not None:
            return error
        start, length = bounds
        if start > len(text):
            return _result(StatusCode.ARGUMENT_OUT_OF_RANGE,
                           f"Start index is {start}, but string only contains {len(text)} characters.")
        if start + length > len(text):
            return _result(StatusCode.ARGUMENT_OUT_OF_RANGE,
                           f"Resulted end index is {start + length}, but string only contains {len(text)} characters.")
        return _success(text[start:start + length])

    @command_method(category="Strings", abstract="Extracts a range of lines: start line, line count and a string.")
    def _pick(self, toggle, context, args):
        if len(args) != 3:
            return _count_error("'pick' must receive 3 arguments: start line, line count and a string.")
        bounds, error = _non_negative_ints(args, context, "pick")
        if error is not None:
            return error
        text, error = _evaluate_text(args, 2, context, "pick")
        if error is not None:
            return error
        start, count = bounds
        lines = text.splitlines()
        if toggle is not Toggle.ON:
            if start > len(lines):
                return _result(StatusCode.ARGUMENT_OUT_OF_RANGE,
                               f"Start index is {start}, but string only contains {len(lines)} lines.")
            if start + count > len(lines):
                return _result(StatusCode.ARGUMENT_OUT_OF_RANGE,
                               f"Resulted end index is {start + count}, but string only contains {len(lines)} lines.")
        return _success("\n".join(lines[start:start + count]))

    @command_method(category="Strings",
                    abstract="Renders a Mustache template with the locals and {{arg1}}..{{argN}} from the other arguments.")
    def _format(self, toggle, context, args):
        if not args:
            return _count_error("'format' must be given at least one argument: a template.")
        template, error = _evaluate_text(args, 0, context, "format")
        if error is not None:
            return error
        scope = dict(context.locals)
        for i in range(1, len(args)):
            value, error = _evaluate_text(args, i, context, "format")
            if error is not None:
                return error
            scope[f"arg{i}"] = value
        try:
            rendered = pystache.Renderer(escape=lambda u: u, missing_tags="strict").render(template, scope)
        except (KeyNotFoundError, ParsingError) as e:
            return _result(StatusCode.ARGUMENT_EVALUATION_FAILURE, f"There is an issue with the template: {e}")
        return _success(rendered)

    # --- Mathematics ---

    @command_method(category="Mathematics", abstract="Adds the given numbers together.")
    def _add(self, toggle, context, args):
        return _fold("add", toggle, context, args, lambda acc, x: acc + x)

    @command_method(category="Mathematics", abstract="Subtracts the other numbers from the first one.")
    def _sub(self, toggle, context, args):
        return _fold("sub", toggle, context, args, lambda acc, x: acc - x)

    @command_method(category="Mathematics", abstract="Multiplies the given numbers together.")
    def _mul(self, toggle, context, args):
        return _fold("mul", toggle, context, args, lambda acc, x: acc * x)

    @command_method(category="Mathematics", abstract="Divides the first number by the other ones.")
    def _div(self, toggle, context, args):
        return _fold("div", toggle, context, args, lambda acc, x: acc / x, check_divisor=True)

    @command_method(category="Mathematics", abstract="Rounds a number to the given number of digits (0 to 15).")
    def _round(self, toggle, context, args):
        if len(args) not in (1, 2):
            return _count_error("'round' must receive one or two arguments, both numbers.")
        value, error = _evaluate_number(args, 0, context, "round")
        if error is not None:
            return error
        digits = 0
        if len(args) == 2:
            digits, error = _evaluate_int(args, 1, context, "round")
            if error is not None:
                return error
            if digits < 0 or digits > 15:
                return _result(StatusCode.ARGUMENT_OUT_OF_RANGE,
                               "Argument #2 to 'round' (number of digits) must be between 0 and 15 inclusively.")
        value = round(value, digits)
        return _success(format_number(value), value)

    @command_method(category="Mathematics",
                    abstract="Random number: in [0, 1) with no arguments, in [1, n] with one, in [a, b] with two.")
    def _rand(self, toggle, context, args):
        if len(args) > 2:
            return _count_error("'rand' must receive at most two arguments: the bounds.")
        if not args:
            value = random.random()
            return _success(repr(value), value)
        bounds = []
        for i in range(len(args)):
            bound, error = _evaluate_int(args, i, context, "rand")
            if error is not None:
                return error
            bounds.append(bound)
        low, high = (1, bounds[0]) if len(bounds) == 1 else bounds
        if low > high:
            return _result(StatusCode.ARGUMENT_OUT_OF_RANGE, f"Lower bound {low} is greater than upper bound {high}.")
        value = random.randint(low, high)
        return _success(str(value), value)

    # --- Comparison ---

    @command_method(category="Comparison",
                    abstract="Checks whether all arguments have equal outputs (- compares truth values).")
    def _eq(self, toggle, context, args):
        if len(args) < 2:
            return _count_error("'eq' must receive at least two arguments.")
        if toggle is Toggle.OFF:
            truths = [a.evaluate(context).truth_value for a in args]
            for i, truth in enumerate(truths[1:], 2):
                if truth != truths[0]:
                    return _result(StatusCode.MATHEMATICAL_LOGIC_FAILURE,
                                   f"Argument #{i}'s truth value is not equal to its predecessors'.", False)
            return _success("All arguments have identical truth value.", True)

        first = None
        for i in range(len(args)):
            if toggle is Toggle.ON:
                res, error = _evaluate_checked(args, i, context, "eq")
                if error is not None:
                    return error
            else:
                res = args[i].evaluate(context)
            if first is None:
                first = res.output
            elif res.output != first:
                return _result(StatusCode.MATHEMATICAL_LOGIC_FAILURE,
                               f"Argument #{i + 1}'s output is not equal to its predecessors'.", False)
        return _success(first, True)

    @command_method(category="Comparison",
                    abstract="Checks whether the two arguments have different outputs (- compares truth values).")
    def _neq(self, toggle, context, args):
        if len(args) != 2:
            return _count_error("'neq' must receive exactly two arguments.")
        if toggle is Toggle.OFF:
            a, b = (x.evaluate(context).truth_value for x in args)
            if a == b:
                return _result(StatusCode.MATHEMATICAL_LOGIC_FAILURE, f"{a} = {b}", a, b)
            return _success(f"{a} != {b}", a, b)
        outputs = []
        for i in range(2):
            if toggle is Toggle.ON:
                res, error = _evaluate_checked(args, i, context, "neq")
                if error is not None:
                    return error
            else:
                res = args[i].evaluate(context)
            outputs.append(res.output)
        a, b = outputs
        if a == b:
            return _result(StatusCode.MATHEMATICAL_LOGIC_FAILURE, f"{a} = {b}", a, b)
        return _success(f'"{a}" != "{b}"', a, b)

    # --- Variables ---

    @command_method(abstract="Gets (neutral) or sets a host variable from output (+) or from data or output (-).")
    def _cvar(self, toggle, context, args):
        expected = 1 if toggle is Toggle.NEUTRAL else 2
        if len(args) != expected:
            if toggle is Toggle.NEUTRAL:
                return _count_error("'cvar' must receive one argument: a name.")
            return _count_error(f"'{toggle.value}cvar' must receive two arguments: a name and a value.")
        name, error = _evaluate_text(args, 0, context, "cvar")
        if error is not None:
            return error
        variable = context.host.get_variable(name)
        if variable is None:
            return _result(StatusCode.CVAR_NOT_FOUND, f"There is no command variable named '{name}'.", name)
        match toggle:
            case Toggle.NEUTRAL:
                return variable.read()
            case Toggle.ON:
                return variable.change_value(context, args[1], ChangeKind.FROM_OUTPUT)
            case _:
                return variable.change_value(context, args[1], ChangeKind.FROM_DATA_OR_OUTPUT)

    # --- Manuals ---

    @command_method(abstract="Searches the manual library by title and shows a manual or a part of it.")
    def _man(self, toggle, context, args):
        if not args:
            return _count_error("'man' must receive at least one argument: a regex or title, then flags.")
        pattern, error = _evaluate_text(args, 0, context, "man")
        if error is not None:
            return error
        try:
            regex = re.compile(pattern)
        except re.error as e:
            return _result(StatusCode.ARGUMENT_EVALUATION_FAILURE, f"Invalid regular expression: {e}", pattern)

        locations = ManualLookup.TITLE
        display = None
        section_path: List[int] = []

        for i in range(1, len(args)):
            flag, error = _evaluate_text(args, i, context, "man")
            if error is not None:
                return error
            match flag:
                case "nomt":
                    locations &= ~ManualLookup.TITLE
                case "ma":
                    locations |= ManualLookup.ABSTRACT
                case "st":
                    locations |= ManualLookup.SECTION_TITLES
                case "sb":
                    locations |= ManualLookup.SECTION_BODIES
                case "jt" | "ja" | "ji" if display is None:
                    display = flag
                case _ if flag.lower().startswith("section=") and display is None:
                    display = "section"
                    section_path, error = _section_path(flag[len("section="):], i)
                    if error is not None:
                        return error
                case _ if display is not None and (flag in ("jt", "ja", "ji") or flag.lower().startswith("section=")):
                    return _result(StatusCode.ARGUMENT_EXPRESSION_INVALID,
                                   f"A display location was already specified before argument #{i + 1}.")
                case _:
                    return _result(StatusCode.ARGUMENT_EXPRESSION_INVALID, f"Unknown flag at argument #{i + 1}: {flag}")

        if not locations:
            return _result(StatusCode.ARGUMENT_EXPRESSION_INVALID, "Must have at least one lookup location.")

        library = context.host.library
        manual = library.get(pattern) if locations == ManualLookup.TITLE else None
        if manual is None:
            found = library.find(regex, locations)
            if not found:
                return _result(StatusCode.MANUAL_NOT_FOUND, "No manual(s) found matching the given arguments.")
            if len(found) > 1:
                listing = "\n".join(f"\t{n}: {m.title}" for n, m in enumerate(found, 1))
                return _result(StatusCode.MANUAL_AMBIGUOUS,
                               f"Found {len(found)} manuals matching given mask:\n{listing}", *found)
            manual = found[0]

        match display:
            case "jt":
                return _success(manual.title, manual)
            case "ja":
                return _success(manual.abstract, manual)
            case "ji":
                return _success(index_text(manual), manual)
            case "section":
                section = section_at(manual, section_path)
                if section is None:
                    return _result(StatusCode.MANUAL_SECTION_NOT_FOUND,
                                   "Could not find the specified section in the manual.", manual)
                return _success(section.body.rstrip(), manual, section)
            case _:
                return _success(render_text(manual), manual)


# ===================================================================
# 4. Shared Command Bodies
# ===================================================================


def _loop(toggle: Toggle, name: str, expression, contexts, arg_number: int) -> EvaluationResult:
    """
    Evaluates `expression` once per context.

    Neutral stops at the first failure, + collects every output regardless,
    - only counts the evaluations.
    """
    outputs: List[str] = []
    count = 0
    for ctx in contexts:
        res = expression.evaluate(ctx)
        count += 1
        if toggle is Toggle.NEUTRAL and not res.truth_value:
            return _result(
                StatusCode.LOOP_EXPRESSION_FAILURE,
                f"Evaluation #{count} of the '{name}' loop expression (argument #{arg_number}) failed with "
                f"non-zero status: {res.status}; {res.output}",
                res, count, outputs)
        if toggle is not Toggle.OFF:
            outputs.append(res.output)
    if toggle is Toggle.OFF:
        return _success(f"Given expression has been indiscriminately evaluated {count} times.", count)
    return _success("".join(outputs), count, outputs)


def _fold(name: str, toggle: Toggle, context, args, op: Callable[[float, float], float],
          check_divisor: bool = False) -> EvaluationResult:
    if toggle is not Toggle.NEUTRAL:
        return _toggle_error(name, toggle)
    if len(args) < 2:
        return _count_error(f"'{name}' must receive at least two arguments.")
    numbers, error = _evaluate_numbers(args, context, name)
    if error is not None:
        return error
    acc = numbers[0]
    for i, x in enumerate(numbers[1:], 2):
        if check_divisor and x == 0:
            return _result(StatusCode.ARGUMENT_OUT_OF_RANGE, f"Argument #{i} to '{name}' is zero.")
        acc = op(acc, x)
    return _success(format_number(acc), acc)


def _non_negative_ints(args, context, name: str) -> Tuple[List[int], Optional[EvaluationResult]]:
    values = []
    for i in (0, 1):
        value, error = _evaluate_int(args, i, context, name)
        if error is not None:
            return values, error
        if value < 0:
            return values, _result(StatusCode.ARGUMENT_OUT_OF_RANGE,
                                   f"Argument #{i + 1} to '{name}' ({value}) must not be negative.")
        values.append(value)
    return values, None


def _section_path(text: str, index: int) -> Tuple[List[int], Optional[EvaluationResult]]:
    if not text:
        return [], _result(StatusCode.ARGUMENT_EXPRESSION_INVALID,
                           f"Something must follow \"section=\" at argument #{index + 1}.")
    path = []
    for n, part in enumerate(text.split("."), 1):
        try:
            number = int(part)
        except ValueError:
            return [], _result(StatusCode.ARGUMENT_EXPRESSION_INVALID,
                               f"Section #{n} in argument #{index + 1} is not an integer.")
        if number < 1:
            return [], _result(StatusCode.ARGUMENT_OUT_OF_RANGE,
                               f"Section #{n} in argument #{index + 1} must be strictly positive.")
        path.append(number)
    return path, None
