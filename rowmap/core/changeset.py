"""Changesets: validated, normalized candidate records.

A changeset pairs the candidate data for one model with a structured error
set. Invalid input is reported as data (``Changeset.errors``) rather than
raised, so callers can branch on ``changeset.valid`` and render every problem
of a submission at once.

Casting comes first and maps loosely shaped external input onto the model:

    >>> cast({"Email": "foo@bar.baz", "unknown": 1}, "user")
    {'email': 'foo@bar.baz'}

Then every attribute is checked, then validators run against the candidate.
Errors from both layers accumulate.
"""

import math
import re
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal

from rowmap.core.attribute import Attribute
from rowmap.core.model import Model
from rowmap.core.record import Record, split_path
from rowmap.core.registry import ModelRegistry, get_registry

MISSING_MESSAGE = "missing required key"
AUTO_MESSAGE = "is managed automatically and cannot be set"

_TYPE_MESSAGES = {
    "string": "should be a string",
    "text": "should be a string",
    "uuid": "should be a uuid",
    "integer": "should be an integer",
    "float": "should be a number",
    "boolean": "should be a boolean",
    "timestamp": "should be a datetime",
}

_TRUE_STRINGS = {"true", "t", "yes", "1"}
_FALSE_STRINGS = {"false", "f", "no", "0"}


@dataclass
class Changeset:
    """Candidate record for one model plus its errors.

    ``errors`` is None for a valid changeset and a non-empty mapping of
    attribute name to messages otherwise.
    """

    model: str
    data: dict[str, Any]
    errors: dict[str, list[str]] | None = None
    origin: Record | None = None
    validators: list[str] = field(default_factory=list)
    primary_key: str = "id"

    @property
    def valid(self) -> bool:
        return self.errors is None

    @property
    def action(self) -> Literal["insert", "update"]:
        """Insert when no primary key value is present, update otherwise."""
        if self.data.get(self.primary_key) is None:
            return "insert"
        return "update"

    @property
    def changes(self) -> dict[str, Any]:
        """Values differing from the origin record (all data for inserts)."""
        if self.origin is None:
            return dict(self.data)
        return {
            key: value
            for key, value in self.data.items()
            if key != self.primary_key and (key not in self.origin or self.origin[key] != value)
        }


def normalize_key(key: Any, model: str) -> str:
    """Map an external key onto attribute naming.

    Strips a namespace matching ``model``, lowercases, and turns dashes and
    spaces into underscores. Keys namespaced with another model are returned
    unchanged so they never match an attribute.
    """
    namespace, name = split_path(str(key))
    if namespace is not None and namespace != model:
        return str(key)
    return re.sub(r"[\s-]+", "_", name.strip()).lower()


def cast(data: Mapping[str, Any], model: "Model | str", registry: ModelRegistry | None = None) -> dict[str, Any]:
    """Cast external data onto a model's attributes.

    Unknown keys are dropped silently. Values are coerced where the
    conversion is unambiguous (``"42"`` to 42 for integers, UUID strings to
    ``uuid.UUID``); anything else is left for validation to report.
    Casting an already cast mapping returns an equal mapping.

    Args:
        data: External mapping, e.g. a parsed JSON payload
        model: Target model or model name
        registry: Registry to resolve model names (defaults to current)
    """
    registry = registry or get_registry()
    model = registry.resolve_model(model)

    result = {}
    for key, value in data.items():
        attr = model.get_attribute(normalize_key(key, model.name))
        if attr is None:
            continue
        result[attr.name] = coerce(attr, value)
    return result


def coerce(attr: Attribute, value: Any) -> Any:
    """Convert a loosely typed value to the attribute's type when possible."""
    if value is None:
        return None

    if attr.type == "uuid" and isinstance(value, str):
        try:
            return uuid.UUID(value)
        except ValueError:
            return value

    if attr.type == "integer" and isinstance(value, str):
        stripped = value.strip()
        if re.fullmatch(r"[-+]?\d+", stripped):
            return int(stripped)
        return value

    if attr.type == "float":
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                return value
        if isinstance(value, int) and not isinstance(value, bool):
            return float(value)
        return value

    if attr.type == "boolean" and isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        return value

    if attr.type == "timestamp":
        if isinstance(value, str):
            try:
                return datetime.fromisoformat(value)
            except ValueError:
                return value
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime(value.year, value.month, value.day)
        return value

    return value


def check_attribute(attr: Attribute, value: Any) -> list[str]:
    """Check one present value against its attribute.

    Returns:
        List of error messages (empty if valid)
    """
    if value is None:
        if attr.optional:
            return []
        return [attr.message or _TYPE_MESSAGES.get(attr.type, "should not be nil")]

    if not _type_matches(attr, value):
        return [attr.message or _TYPE_MESSAGES[attr.type]]

    errors = []
    if attr.type in ("string", "text"):
        if attr.min_length is not None and len(value) < attr.min_length:
            errors.append(f"should be at least {attr.min_length} characters")
        if attr.max_length is not None and len(value) > attr.max_length:
            errors.append(f"should be at most {attr.max_length} characters")
        if attr.pattern is not None and not re.fullmatch(attr.pattern, value):
            errors.append("should match regex")

    if attr.type in ("integer", "float"):
        if attr.minimum is not None and value < attr.minimum:
            errors.append(f"should be at least {_number(attr.minimum)}")
        if attr.maximum is not None and value > attr.maximum:
            errors.append(f"should be at most {_number(attr.maximum)}")

    if attr.choices is not None and value not in attr.choices:
        errors.append("should be either " + ", ".join(str(choice) for choice in attr.choices))

    if errors and attr.message:
        return [attr.message]
    return errors


def _type_matches(attr: Attribute, value: Any) -> bool:
    if attr.type in ("string", "text"):
        return isinstance(value, str)
    if attr.type == "uuid":
        return isinstance(value, uuid.UUID)
    if attr.type == "integer":
        return isinstance(value, int) and not isinstance(value, bool)
    if attr.type == "float":
        return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)
    if attr.type == "boolean":
        return isinstance(value, bool)
    if attr.type == "timestamp":
        return isinstance(value, datetime)
    return True


def _number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def changeset(
    data: Mapping[str, Any],
    model: "Model | str | None" = None,
    validators: list[str] | None = None,
    registry: ModelRegistry | None = None,
) -> Changeset:
    """Build a changeset from a record or external data.

    Args:
        data: Record, namespaced mapping (``{"user.email": ...}``) or plain
            mapping when ``model`` is given
        model: Model or model name (inferred from data when omitted)
        validators: Names of extra validators to run
        registry: Registry to use (defaults to current)

    Returns:
        Changeset, with ``errors`` None when valid
    """
    registry = registry or get_registry()
    model = registry.resolve_model(model, data)

    supplied = cast(data, model, registry)
    errors: dict[str, list[str]] = {}
    for attr in model.attributes:
        if attr.auto and attr.name in supplied:
            _add(errors, attr.name, AUTO_MESSAGE)
            supplied.pop(attr.name)

    candidate = _with_defaults(model, supplied)
    return _validate(model, candidate, errors, None, validators, registry)


def change(
    record: Record,
    changes: Mapping[str, Any],
    validators: list[str] | None = None,
    registry: ModelRegistry | None = None,
) -> Changeset:
    """Build an update changeset from a stored record and new values.

    The candidate is the record's persisted, non-auto values with ``changes``
    cast and merged over them.

    Args:
        record: Record previously read through the gateway
        changes: New values (external shapes allowed)
        validators: Names of extra validators to run
        registry: Registry to use (defaults to current)
    """
    registry = registry or get_registry()
    model = registry.resolve_model(record.model if isinstance(record, Record) else None, record)

    base = {attr.name: record[attr.name] for attr in model.persisted_attributes if attr.name in record and not attr.auto}
    origin = Record(model.name, base)

    updates = cast(changes, model, registry)
    errors: dict[str, list[str]] = {}
    pk = model.primary_key.name
    for attr in model.attributes:
        if attr.name not in updates:
            continue
        if attr.auto:
            _add(errors, attr.name, AUTO_MESSAGE)
            updates.pop(attr.name)
        elif attr.name == pk and updates[pk] != base.get(pk):
            _add(errors, attr.name, "cannot be changed")
            updates.pop(attr.name)

    candidate = {**base, **updates}
    return _validate(model, candidate, errors, origin, validators, registry)


def _with_defaults(model: Model, data: dict[str, Any]) -> dict[str, Any]:
    result = dict(data)
    for attr in model.attributes:
        if attr.name not in result and attr.default is not None:
            result[attr.name] = attr.default
    return result


def _validate(
    model: Model,
    candidate: dict[str, Any],
    errors: dict[str, list[str]],
    origin: Record | None,
    validator_names: list[str] | None,
    registry: ModelRegistry,
) -> Changeset:
    for attr in model.attributes:
        if attr.auto:
            continue
        if attr.name not in candidate:
            if attr.required:
                _add(errors, attr.name, MISSING_MESSAGE)
            continue
        for message in check_attribute(attr, candidate[attr.name]):
            _add(errors, attr.name, message)

    selected = registry.validators_for(model, validator_names)
    for validator in selected:
        if not validator.check(candidate):
            _add(errors, validator.path, validator.message)

    return Changeset(
        model=model.name,
        data=candidate,
        errors=errors or None,
        origin=origin,
        validators=[v.name for v in selected],
        primary_key=model.primary_key.name,
    )


def _add(errors: dict[str, list[str]], key: str, message: str) -> None:
    errors.setdefault(key, []).append(message)
