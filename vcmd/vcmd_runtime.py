import logging
from dataclasses import dataclass
from typing import Literal, Optional

from vcmd.vcmd_errors import ScriptSyntaxError
from vcmd.vcmd_host import CommandHost
from vcmd.vcmd_results import EvaluationResult, status_name

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    result: Optional[EvaluationResult] = None
    error_message: Optional[str] = None
    error_position: Optional[int] = None

    @property
    def output(self) -> str:
        return self.result.output if self.result is not None else ""

    def format_error(self) -> str:
        if self.status != 'error':
            return ""
        return str(self.error_message or "Unknown error")


class ScriptRunner:
    """Parses and evaluates scripts against a host, turning failures into ExecutionResults."""

    def __init__(self, host: Optional[CommandHost] = None):
        if host is None:
            host = CommandHost()
            host.register_default_commands()
        self.host = host

    def handle_script(self, source: str) -> ExecutionResult:
        try:
            expression = self.host.parse(source)
        except ScriptSyntaxError as e:
            logger.debug("Syntax error in %r: %s", source, e)
            return ExecutionResult('error', None, f"SyntaxError: {e.format_with_context()}", e.position)

        res = expression.evaluate(self.host.new_context())
        if not res.truth_value:
            return ExecutionResult('error', res, f"{status_name(res.status)} ({res.status}): {res.output}")
        return ExecutionResult('success', res)
