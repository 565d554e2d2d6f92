"""Deferred relation handles attached to records.

Every record read through the gateway holds one handle per relationship of
its model. A handle wraps a query that has not run yet; ``resolve()`` is the
only place it touches the database:

    >>> user = gateway.find_by("user.email", "user-posts@mail.com")
    >>> user["posts"].order_by("title").limit(2).resolve()

Handles are fresh for every read of the parent, so resolved data is never
shared between two reads of the same row.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from rowmap.core.query import Query, ensure_query
from rowmap.core.record import Record
from rowmap.validation import RelationError


@dataclass(frozen=True)
class Unresolved:
    """Handle state before resolution. ``query`` is None for a null foreign key."""

    query: Query | None


@dataclass(frozen=True)
class Resolved:
    data: Any


class RelationHandle:
    """Refinable query bound to a parent record, resolved on demand."""

    def __init__(
        self,
        name: str,
        query: Query | None,
        fetch: Callable[[Query], list[Record]],
        single: bool = False,
    ):
        """Initialize relation handle.

        Args:
            name: Relationship name on the parent model
            query: Query for related rows, or None when there is nothing to load
            fetch: Executes a query and returns records
            single: Resolve to one record or None (belongs_to) instead of a list
        """
        self.name = name
        self.single = single
        self._fetch = fetch
        self.state: Unresolved | Resolved = Unresolved(query)

    def __repr__(self) -> str:
        status = "resolved" if self.resolved else "unresolved"
        return f"<RelationHandle {self.name} ({status})>"

    @property
    def resolved(self) -> bool:
        return isinstance(self.state, Resolved)

    @property
    def query(self) -> Query | None:
        if isinstance(self.state, Resolved):
            raise RelationError(f"Relation {self.name} is already resolved")
        return self.state.query

    def refine(self, fn: Callable[..., Query], *args, **kwargs) -> "RelationHandle":
        """Replace the pending query with ``fn(query, *args, **kwargs)``.

        Example:
            >>> handle.refine(Query.limit, 2)
        """
        query = self.query
        if query is not None:
            self.state = Unresolved(ensure_query(fn(query, *args, **kwargs)))
        return self

    def where(self, attribute: str, value: Any, op: str = "=") -> "RelationHandle":
        return self.refine(Query.where, attribute, value, op)

    def order_by(self, attribute: str, desc: bool = False) -> "RelationHandle":
        return self.refine(Query.order_by, attribute, desc)

    def limit(self, n: int) -> "RelationHandle":
        return self.refine(Query.limit, n)

    def offset(self, n: int) -> "RelationHandle":
        return self.refine(Query.offset, n)

    def copy(self) -> "RelationHandle":
        """Return an independent handle in the same state."""
        handle = RelationHandle(self.name, None, self._fetch, single=self.single)
        handle.state = self.state
        return handle

    def resolve(self) -> Record | list[Record] | None:
        """Run the query once and return the related record(s).

        Later calls return the same data without querying again.
        """
        if isinstance(self.state, Resolved):
            return self.state.data

        query = self.state.query
        if query is None:
            data = None if self.single else []
        else:
            records = self._fetch(query)
            data = (records[0] if records else None) if self.single else records

        self.state = Resolved(data)
        return data


def load_into(record: Record, *names: str) -> Record:
    """Resolve the named relations of a record.

    Returns a copy of the record where each named handle is replaced by its
    resolved value. Other handles are copied, so the handles of the given
    record are never touched.

    Raises:
        RelationError: If a name does not hold a relation handle
    """
    loaded = record.copy()
    for key, value in list(loaded.items()):
        if isinstance(value, RelationHandle):
            loaded[key] = value.copy()

    for name in names:
        handle = loaded.get(name)
        if not isinstance(handle, RelationHandle):
            raise RelationError(f"'{name}' is not a relation of {record.model}")
        loaded[name] = handle.resolve()
    return loaded
