"""Validation and error handling for rowmap."""

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from rowmap.core.model import Model


class RowmapError(Exception):
    """Base class for all rowmap errors."""

    pass


class ModelValidationError(RowmapError):
    """Raised when a model definition is structurally invalid."""

    pass


class UnknownEntityError(RowmapError, KeyError):
    """Raised when a model name was never registered."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class AmbiguousNamespaceError(RowmapError):
    """Raised when the model of a record cannot be inferred from its keys."""

    pass


class UnknownValidatorError(RowmapError, KeyError):
    """Raised when a changeset requests a validator that was never registered."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class UnknownHookError(RowmapError, KeyError):
    """Raised when an attribute names a hook that was never registered."""

    def __str__(self) -> str:
        return Exception.__str__(self)


class HookExecutionError(RowmapError):
    """Raised when a registered hook fails while transforming a value."""

    def __init__(self, hook: str, model: str, attribute: str, cause: Exception):
        self.hook = hook
        self.model = model
        self.attribute = attribute
        self.cause = cause
        super().__init__(f"Hook '{hook}' failed on '{model}.{attribute}': {cause}")


class PersistenceError(RowmapError):
    """Raised when the database rejects or fails a statement."""

    def __init__(self, message: str, sql: str | None = None):
        self.sql = sql
        super().__init__(message)


class RelationError(RowmapError):
    """Raised on misuse of relation handles."""

    pass


# Table and column names are quoted as single identifiers, so no dots.
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def is_identifier(value: str) -> bool:
    """Whether a value can name a table or column."""
    return isinstance(value, str) and _IDENTIFIER.fullmatch(value) is not None


def validate_model(model: "Model") -> list[str]:
    """Validate a model definition.

    Args:
        model: Model to validate

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    if not is_identifier(model.table_name):
        errors.append(f"Model '{model.name}': table name '{model.table_name}' is not a valid identifier")

    primary_keys = [attr.name for attr in model.attributes if attr.primary_key]
    if len(primary_keys) != 1:
        errors.append(
            f"Model '{model.name}' must have exactly one primary key, found {len(primary_keys)}"
            + (f" ({', '.join(primary_keys)})" if primary_keys else "")
        )

    seen = set()
    for attr in model.attributes:
        if attr.name in seen:
            errors.append(f"Model '{model.name}': attribute '{attr.name}' is defined more than once")
        seen.add(attr.name)

        if not attr.virtual and not is_identifier(attr.column_name):
            errors.append(f"Model '{model.name}': column name '{attr.column_name}' is not a valid identifier")

        if attr.primary_key and attr.virtual:
            errors.append(f"Model '{model.name}': primary key '{attr.name}' cannot be virtual")
        if attr.primary_key and attr.optional:
            errors.append(f"Model '{model.name}': primary key '{attr.name}' cannot be optional")

    relationship_names = set()
    for rel in model.relationships:
        if rel.name in relationship_names:
            errors.append(f"Model '{model.name}': relationship '{rel.name}' is defined more than once")
        relationship_names.add(rel.name)

        if rel.name in seen:
            errors.append(f"Model '{model.name}': relationship '{rel.name}' shadows an attribute of the same name")

        if rel.type == "belongs_to":
            fk = rel.foreign_key_for(model.name)
            attr = model.get_attribute(fk)
            if attr is None:
                errors.append(
                    f"Model '{model.name}': relationship '{rel.name}' uses foreign key '{fk}' "
                    f"which is not an attribute of the model"
                )
            elif attr.virtual:
                errors.append(f"Model '{model.name}': foreign key '{fk}' cannot be virtual")

        for entry in rel.order_by or []:
            if not entry.lstrip("-"):
                errors.append(f"Model '{model.name}': relationship '{rel.name}' has an empty order_by entry")

    return errors
