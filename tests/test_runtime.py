import pytest

from vcmd.vcmd_config import HostConfig
from vcmd.vcmd_host import CommandHost
from vcmd.vcmd_runtime import ExecutionResult, ScriptRunner


@pytest.fixture(scope="module")
def runner():
    return ScriptRunner()


def test_success(runner):
    res = runner.handle_script("echo hello [add 2 2]")
    assert res.status == 'success'
    assert res.output == "hello\t4"
    assert res.format_error() == ""


def test_failing_status_is_an_error(runner):
    res = runner.handle_script("div 1 0")
    assert res.status == 'error'
    assert res.result.status == 3
    assert res.format_error().startswith("ARGUMENT_OUT_OF_RANGE (3): ")


def test_unknown_command_is_an_error(runner):
    res = runner.handle_script("frobnicate")
    assert res.status == 'error'
    assert "COMMAND_NOT_FOUND (10)" in res.error_message


def test_syntax_error_has_context(runner):
    res = runner.handle_script("echo a]")
    assert res.status == 'error'
    assert res.result is None
    assert res.output == ""
    assert res.error_position == 6
    lines = res.format_error().splitlines()
    assert lines[0].startswith("SyntaxError: ")
    assert lines[1] == "  echo a]"
    assert lines[2] == "        ^"


def test_runner_uses_given_host():
    host = CommandHost(HostConfig(include_manual=False))
    runner = ScriptRunner(host)
    assert runner.host is host
    assert runner.handle_script("echo a").status == 'error'


def test_runner_keeps_state_between_scripts():
    runner = ScriptRunner()
    assert runner.handle_script("alias hi [echo hi]").status == 'success'
    assert runner.handle_script("hi").output == "hi"


def test_format_error_does_not_prefix_positions():
    res = ExecutionResult('error', None, "went wrong", 4)
    assert res.format_error() == "went wrong"
    assert res.error_position == 4
    assert ExecutionResult('error').format_error() == "Unknown error"
