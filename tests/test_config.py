import pytest

from vcmd.vcmd_config import (
    DEFAULT_LIMITS, DEFAULT_MANUALS_PATH, HostConfig, Limits, check_conditional_chain, check_nesting_depth,
    check_script_length, load_config,
)
from vcmd.vcmd_errors import NestingLimitError, ScriptSyntaxError


def test_default_limits():
    assert DEFAULT_LIMITS.max_script_length == 8192
    assert DEFAULT_LIMITS.max_nesting_depth == 32
    assert DEFAULT_LIMITS.max_conditional_chain == 64
    assert DEFAULT_LIMITS.max_evaluation_depth == 128


def test_host_config_defaults():
    config = HostConfig()
    assert config.limits is DEFAULT_LIMITS
    assert config.include_manual and config.include_math
    assert not config.short_help
    assert config.manual_paths == [DEFAULT_MANUALS_PATH]
    assert DEFAULT_MANUALS_PATH.exists()


def test_check_script_length():
    check_script_length("abc", Limits(max_script_length=3))
    with pytest.raises(NestingLimitError) as excinfo:
        check_script_length("abcd", Limits(max_script_length=3))
    assert isinstance(excinfo.value, ScriptSyntaxError)
    assert excinfo.value.actual == 4


def test_check_nesting_depth():
    check_nesting_depth(2, Limits(max_nesting_depth=2))
    with pytest.raises(NestingLimitError, match="Compound argument depth of 3 exceeds limit of 2"):
        check_nesting_depth(3, Limits(max_nesting_depth=2))


def test_check_conditional_chain():
    check_conditional_chain(4, Limits(max_conditional_chain=4))
    with pytest.raises(NestingLimitError, match="Conditional chain length of 5 exceeds limit of 4"):
        check_conditional_chain(5, Limits(max_conditional_chain=4))


def test_load_config(tmp_path):
    (tmp_path / "extra.yaml").write_text("manuals: []\n", encoding="utf-8")
    path = tmp_path / "vcmd.yaml"
    path.write_text(
        "short_help: true\n"
        "include_math: false\n"
        "product_name: Demo\n"
        "limits:\n"
        "  max_evaluation_depth: 16\n"
        "manual_paths:\n"
        "  - extra.yaml\n",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.short_help
    assert not config.include_math
    assert config.product_name == "Demo"
    assert config.limits == Limits(max_evaluation_depth=16)
    assert config.manual_paths == [tmp_path / "extra.yaml"]


def test_load_empty_config(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == HostConfig()


@pytest.mark.parametrize("text", [
    "unknown_key: 1\n",
    "limits:\n  max_things: 3\n",
    "- just\n- a list\n",
])
def test_load_config_rejects_bad_files(tmp_path, text):
    path = tmp_path / "bad.yaml"
    path.write_text(text, encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)
