"""Lifecycle hooks applied to attribute values around reads and writes.

Hooks are plain ``value -> value`` functions registered under a name.
Attributes list hook names per lifecycle point:

- before_save: applied to writable values right before an insert or update
- before_read: applied to filter values right before a read query
- after_read: applied to values right after a row is mapped to a record

Hooks are not inverted automatically. A value written through ``lowercase``
reads back lowercased.
"""

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from rowmap import hashers
from rowmap.validation import HookExecutionError, UnknownHookError

if TYPE_CHECKING:
    from rowmap.core.attribute import Attribute
    from rowmap.core.model import Model

logger = logging.getLogger(__name__)

Hook = Callable[[Any], Any]


class HookRegistry:
    """Named value transforms, resolved by name when applied."""

    def __init__(self, builtins: bool = True):
        self._hooks: dict[str, Hook] = {}
        self.password_iterations = hashers.DEFAULT_ITERATIONS
        if builtins:
            self.register("lowercase", _lowercase)
            self.register("uppercase", _uppercase)
            self.register("strip", _strip)
            self.register("password_hash", self._password_hash)

    def __contains__(self, name: str) -> bool:
        return name in self._hooks

    @property
    def names(self) -> list[str]:
        return sorted(self._hooks)

    def register(self, name: str, fn: Hook) -> Hook:
        """Register a hook, replacing any hook of the same name."""
        if name in self._hooks:
            logger.debug("Replacing hook %s", name)
        self._hooks[name] = fn
        return fn

    def hook(self, name: str) -> Callable[[Hook], Hook]:
        """Decorator form of :meth:`register`.

        Example:
            >>> hooks = HookRegistry()
            >>> @hooks.hook("reverse")
            ... def reverse(value):
            ...     return value[::-1]
        """

        def decorator(fn: Hook) -> Hook:
            return self.register(name, fn)

        return decorator

    def get(self, name: str) -> Hook:
        """Get hook by name.

        Raises:
            UnknownHookError: If no hook is registered under that name
        """
        if name not in self._hooks:
            raise UnknownHookError(f"Hook {name} not found")
        return self._hooks[name]

    def apply(self, model: str, attribute: "Attribute", names: list[str], value: Any) -> Any:
        """Run hooks over one value in declared order."""
        for name in names:
            fn = self.get(name)
            try:
                value = fn(value)
            except Exception as e:
                raise HookExecutionError(name, model, attribute.name, e) from e
        return value

    def apply_before_save(self, model: "Model", data: Mapping[str, Any]) -> dict[str, Any]:
        """Apply before_save hooks, returning a new mapping."""
        result = dict(data)
        for attr in model.attributes:
            if attr.virtual or not attr.before_save or attr.name not in result:
                continue
            result[attr.name] = self.apply(model.name, attr, attr.before_save, result[attr.name])
        return result

    def apply_after_read(self, model: "Model", data: Mapping[str, Any]) -> dict[str, Any]:
        """Apply after_read hooks, returning a new mapping."""
        result = dict(data)
        for attr in model.attributes:
            if attr.virtual or not attr.after_read or attr.name not in result:
                continue
            result[attr.name] = self.apply(model.name, attr, attr.after_read, result[attr.name])
        return result

    def apply_before_read(self, model: "Model", attribute: "Attribute", value: Any) -> Any:
        """Apply before_read hooks to a value used to filter a read."""
        if not attribute.before_read:
            return value
        return self.apply(model.name, attribute, attribute.before_read, value)

    def _password_hash(self, value: Any) -> str:
        return hashers.hash_password(value, self.password_iterations)


def _lowercase(value: Any) -> Any:
    return value.lower() if value is not None else None


def _uppercase(value: Any) -> Any:
    return value.upper() if value is not None else None


def _strip(value: Any) -> Any:
    return value.strip() if value is not None else None
