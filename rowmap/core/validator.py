"""Cross-attribute validators."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Validator:
    """Record-wide validation rule bound to one model.

    Attribute checks only see one value at a time. Validators see the whole
    candidate record, so they can compare values (e.g. a password and its
    confirmation). On failure ``message`` is attached to ``path``.
    """

    model: str
    name: str
    path: str
    fn: Callable[[Mapping[str, Any]], bool]
    message: str
    always: bool = False

    def check(self, candidate: Mapping[str, Any]) -> bool:
        return bool(self.fn(candidate))
