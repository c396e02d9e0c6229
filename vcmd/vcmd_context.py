from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Optional, Tuple

from vcmd.vcmd_config import DEFAULT_LIMITS, Limits


@dataclass(frozen=True)
class EvaluationContext:
    """
    Per-evaluation state threaded through recursive evaluation.

    Derived contexts share the host. `with_local`, `with_locals` and
    `with_user_arguments` copy the locals so that a branch's changes stay in
    the branch; `deeper` keeps the same locals and only counts depth.
    """
    host: Any
    user_arguments: Optional[Tuple[Any, ...]] = None
    locals: Dict[str, str] = field(default_factory=dict)
    depth: int = 0

    @property
    def limits(self) -> Limits:
        return getattr(self.host, "limits", None) or DEFAULT_LIMITS

    def with_local(self, name: str, value: str) -> "EvaluationContext":
        return self.with_locals([(name, value)])

    def with_locals(self, pairs: Iterable[Tuple[str, str]]) -> "EvaluationContext":
        new_locals = dict(self.locals)
        new_locals.update(pairs)
        return replace(self, locals=new_locals)

    def with_user_arguments(self, arguments: Iterable[Any]) -> "EvaluationContext":
        return replace(self, user_arguments=tuple(arguments), locals=dict(self.locals))

    def deeper(self) -> "EvaluationContext":
        return replace(self, depth=self.depth + 1)
