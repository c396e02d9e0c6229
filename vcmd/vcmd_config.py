"""
Host configuration and the resource limits applied while parsing and evaluating.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional, Union

import yaml

from vcmd.vcmd_errors import NestingLimitError

DEFAULT_MANUALS_PATH = Path(__file__).with_name("manuals.yaml")


@dataclass(frozen=True)
class Limits:
    """Size and depth limits."""

    # Maximum script length in characters
    max_script_length: int = 8192

    # Maximum compound argument nesting level
    max_nesting_depth: int = 32

    # Maximum number of `?`/`!` links in one conditional chain
    max_conditional_chain: int = 64

    # Maximum evaluation depth (aliases calling aliases, compound arguments)
    max_evaluation_depth: int = 128


DEFAULT_LIMITS = Limits()


def check_script_length(script: str, limits: Optional[Limits] = None) -> None:
    limits = limits or DEFAULT_LIMITS
    if len(script) > limits.max_script_length:
        raise NestingLimitError("Script length", limits.max_script_length, len(script))


def check_nesting_depth(depth: int, limits: Optional[Limits] = None,
                        position: Optional[int] = None, script: Optional[str] = None) -> None:
    limits = limits or DEFAULT_LIMITS
    if depth > limits.max_nesting_depth:
        raise NestingLimitError("Compound argument depth", limits.max_nesting_depth, depth,
                                position, script)


def check_conditional_chain(length: int, limits: Optional[Limits] = None,
                            position: Optional[int] = None, script: Optional[str] = None) -> None:
    limits = limits or DEFAULT_LIMITS
    if length > limits.max_conditional_chain:
        raise NestingLimitError("Conditional chain length", limits.max_conditional_chain, length,
                                position, script)


@dataclass
class HostConfig:
    """Settings a CommandHost is created with."""
    limits: Limits = DEFAULT_LIMITS
    short_help: bool = False
    include_manual: bool = True
    include_math: bool = True
    manual_paths: List[Path] = field(default_factory=lambda: [DEFAULT_MANUALS_PATH])
    product_name: str = "vcmd"


def load_config(path: Union[str, Path]) -> HostConfig:
    """
    Reads a HostConfig from a YAML mapping.

    A nested `limits:` mapping overrides individual limits; `manual_paths`
    entries are resolved relative to the config file.
    """
    p = Path(path)
    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {p} must contain a mapping, got {type(raw).__name__}")

    known = {f.name for f in fields(HostConfig)}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"Unknown config keys in {p}: {', '.join(sorted(unknown))}")

    kwargs = dict(raw)
    if "limits" in kwargs:
        limit_values = kwargs["limits"] or {}
        limit_names = {f.name for f in fields(Limits)}
        bad = set(limit_values) - limit_names
        if bad:
            raise ValueError(f"Unknown limits in {p}: {', '.join(sorted(bad))}")
        kwargs["limits"] = Limits(**limit_values)
    if "manual_paths" in kwargs:
        kwargs["manual_paths"] = [p.parent / m for m in kwargs["manual_paths"] or []]
    return HostConfig(**kwargs)
