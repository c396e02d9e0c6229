"""
The command host: a thread-safe registry of commands and variables that
scripts are evaluated against.
"""

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from vcmd.vcmd_commands import Command, InvocationListener
from vcmd.vcmd_config import HostConfig
from vcmd.vcmd_context import EvaluationContext
from vcmd.vcmd_errors import VariableExistsError
from vcmd.vcmd_expressions import Expression
from vcmd.vcmd_manuals import ManualLibrary
from vcmd.vcmd_parser import Parser
from vcmd.vcmd_results import EvaluationResult
from vcmd.vcmd_variables import Variable, VariableListener

logger = logging.getLogger(__name__)


class CommandMutationEvent:
    """Sent after a command is added, replaced or removed. `new_command` is None on removal."""

    def __init__(self, name: str, old_command: Optional[Command], new_command: Optional[Command]):
        self.name = name
        self.old_command = old_command
        self.new_command = new_command


MutationListener = Callable[[CommandMutationEvent], None]


class CommandHost:
    """Holds the commands, variables and manuals available to scripts."""

    def __init__(self, config: Optional[HostConfig] = None):
        self.config = config or HostConfig()
        self.limits = self.config.limits
        self._lock = threading.RLock()
        self._commands: Dict[str, Command] = {}
        self._variables: Dict[str, Variable] = {}
        self._invocation_listeners: List[InvocationListener] = []
        self._variable_change_listeners: List[VariableListener] = []
        self._mutation_listeners: List[MutationListener] = []
        self.library = ManualLibrary()
        self._parser = Parser(self.limits)
        if self.config.include_manual:
            for path in self.config.manual_paths:
                self.library.load(path)

    # ===================================================================
    # Commands
    # ===================================================================

    def register_command(self, command: Command, overwrite: bool = False,
                         overwrite_same_type_only: bool = True) -> bool:
        """
        Adds a command under its name.

        Returns False when the name is taken and `overwrite` is off, or when
        `overwrite_same_type_only` is on and the existing command has a
        different type.
        """
        with self._lock:
            existing = self._commands.get(command.name)
            if existing is not None:
                if not overwrite:
                    return False
                if overwrite_same_type_only and type(existing) is not type(command):
                    return False
            self._commands[command.name] = command
        logger.debug("Registered command %r", command.name)
        self._command_mutated(CommandMutationEvent(command.name, existing, command))
        return True

    def register_commands(self, commands: Iterable[Command], overwrite: bool = False) -> int:
        return sum(1 for c in commands if self.register_command(c, overwrite))

    def remove_command(self, name: str) -> Optional[Command]:
        with self._lock:
            command = self._commands.pop(name, None)
        if command is not None:
            logger.debug("Removed command %r", name)
            self._command_mutated(CommandMutationEvent(name, command, None))
        return command

    def get_command(self, name: str) -> Optional[Command]:
        with self._lock:
            return self._commands.get(name)

    @property
    def commands(self) -> Dict[str, Command]:
        """A snapshot of the registered commands."""
        with self._lock:
            return dict(self._commands)

    def on_invocation(self, listener: InvocationListener) -> InvocationListener:
        """Registers a listener called before every command invocation on this host."""
        with self._lock:
            self._invocation_listeners.append(listener)
        return listener

    @property
    def invocation_listeners(self) -> Tuple[InvocationListener, ...]:
        with self._lock:
            return tuple(self._invocation_listeners)

    def on_command_mutation(self, listener: MutationListener) -> MutationListener:
        """Registers a listener called after a command is registered, replaced or removed."""
        with self._lock:
            self._mutation_listeners.append(listener)
        return listener

    def _command_mutated(self, event: CommandMutationEvent):
        with self._lock:
            listeners = tuple(self._mutation_listeners)
        for listener in listeners:
            listener(event)

    # ===================================================================
    # Variables
    # ===================================================================

    def register_variable(self, variable: Variable, overwrite: bool = False) -> Variable:
        with self._lock:
            if variable.name in self._variables and not overwrite:
                raise VariableExistsError(f"A variable named '{variable.name}' already exists.")
            self._variables[variable.name] = variable
        return variable

    def remove_variable(self, name: str) -> Optional[Variable]:
        with self._lock:
            return self._variables.pop(name, None)

    def get_variable(self, name: str) -> Optional[Variable]:
        with self._lock:
            return self._variables.get(name)

    @property
    def variables(self) -> Dict[str, Variable]:
        with self._lock:
            return dict(self._variables)

    def on_variable_change(self, listener: VariableListener) -> VariableListener:
        """Registers a listener called before any variable is changed by a script on this host; it may cancel."""
        with self._lock:
            self._variable_change_listeners.append(listener)
        return listener

    @property
    def variable_change_listeners(self) -> Tuple[VariableListener, ...]:
        with self._lock:
            return tuple(self._variable_change_listeners)

    # ===================================================================
    # Parsing & Evaluation
    # ===================================================================

    def parse(self, script: str) -> Expression:
        return self._parser.parse(script)

    def new_context(self, user_arguments: Optional[Sequence[Expression]] = None,
                    locals: Optional[Dict[str, str]] = None) -> EvaluationContext:
        return EvaluationContext(
            self,
            tuple(user_arguments) if user_arguments is not None else None,
            dict(locals or {}),
        )

    def evaluate(self, script: str, context: Optional[EvaluationContext] = None) -> EvaluationResult:
        """Parses and evaluates a script. Syntax errors propagate as ScriptSyntaxError."""
        expression = self.parse(script)
        return expression.evaluate(context or self.new_context())

    def register_default_commands(self, include_manual: Optional[bool] = None,
                                  include_math: Optional[bool] = None) -> int:
        from vcmd.vcmd_stdlib import ORDERING_COMPARISONS, StdLib

        include_manual = self.config.include_manual if include_manual is None else include_manual
        include_math = self.config.include_math if include_math is None else include_math

        commands = []
        for command in StdLib().commands():
            if command.name == "man" and not include_manual:
                continue
            if not include_math and (command.category == "Mathematics" or command.name in ORDERING_COMPARISONS):
                continue
            commands.append(command)
        count = self.register_commands(commands)
        logger.debug("Registered %d default command(s)", count)
        return count
