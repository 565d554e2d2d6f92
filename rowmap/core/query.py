"""Composable read queries over one model."""

from dataclasses import dataclass, replace
from typing import Any

from rowmap.validation import RelationError

OPERATORS = ("=", "!=", "<", "<=", ">", ">=", "in", "like")


@dataclass(frozen=True)
class Filter:
    """Comparison of one attribute against a value."""

    attribute: str
    op: str
    value: Any


@dataclass(frozen=True)
class Ordering:
    attribute: str
    desc: bool = False

    @classmethod
    def parse(cls, entry: str) -> "Ordering":
        """Parse ``"title"`` or ``"-title"`` (descending)."""
        if entry.startswith("-"):
            return cls(entry[1:], desc=True)
        return cls(entry)


@dataclass(frozen=True)
class Query:
    """Immutable select over a single model.

    Every refinement returns a new query, so refinements compose in the
    order they are applied. ``order_by`` appends to the explicit ordering;
    ``default_order`` is used only when no explicit ordering was given.

    Example:
        >>> Query("user").order_by("email", desc=True).limit(2)
    """

    model: str
    filters: tuple[Filter, ...] = ()
    ordering: tuple[Ordering, ...] = ()
    default_order: tuple[Ordering, ...] = ()
    limit_value: int | None = None
    offset_value: int | None = None

    def where(self, attribute: str, value: Any, op: str = "=") -> "Query":
        """Add a filter, ANDed with existing filters."""
        if op not in OPERATORS:
            raise ValueError(f"Unsupported operator '{op}'. Must be one of: {', '.join(OPERATORS)}")
        if op == "in" and not isinstance(value, (list, tuple, set, frozenset)):
            raise ValueError("Operator 'in' requires a list, tuple or set value")
        return replace(self, filters=(*self.filters, Filter(attribute, op, value)))

    def order_by(self, attribute: str, desc: bool = False) -> "Query":
        """Append an ordering term. ``"-name"`` sorts descending."""
        ordering = Ordering.parse(attribute)
        if desc:
            ordering = Ordering(ordering.attribute, desc=True)
        return replace(self, ordering=(*self.ordering, ordering))

    def limit(self, n: int) -> "Query":
        if n < 0:
            raise ValueError("limit must not be negative")
        return replace(self, limit_value=n)

    def offset(self, n: int) -> "Query":
        if n < 0:
            raise ValueError("offset must not be negative")
        return replace(self, offset_value=n)

    @property
    def effective_order(self) -> tuple[Ordering, ...]:
        return self.ordering or self.default_order


def ensure_query(value: Any) -> Query:
    """Check that a refinement function returned a query."""
    if not isinstance(value, Query):
        raise RelationError(f"Refinement must return a Query, got {type(value).__name__}")
    return value
