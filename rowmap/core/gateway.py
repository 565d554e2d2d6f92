"""Persistence gateway: changesets in, records out."""

import logging
import uuid
from typing import Any

from rowmap.core.changeset import Changeset, coerce
from rowmap.core.model import Model
from rowmap.core.query import Ordering, Query
from rowmap.core.record import Record, split_path
from rowmap.core.registry import ModelRegistry, get_registry
from rowmap.core.relation import RelationHandle, load_into
from rowmap.core.relationship import Relationship
from rowmap.db.base import BaseDatabaseAdapter
from rowmap.validation import PersistenceError, RelationError

logger = logging.getLogger(__name__)

_MISSING = object()


class Gateway:
    """Maps changesets to writes and rows to records.

    Writes run before_save hooks first; every read row runs after_read hooks
    and receives fresh relation handles. Invalid changesets are returned
    unchanged without touching the database.
    """

    def __init__(self, adapter: BaseDatabaseAdapter, registry: ModelRegistry | None = None):
        """Initialize gateway.

        Args:
            adapter: Database adapter executing statements
            registry: Model registry (defaults to the current registry)
        """
        self.adapter = adapter
        self._registry = registry

    @classmethod
    def from_url(cls, url: str, registry: ModelRegistry | None = None) -> "Gateway":
        from rowmap.db import connect

        return cls(connect(url), registry)

    @property
    def registry(self) -> ModelRegistry:
        return self._registry or get_registry()

    def close(self) -> None:
        self.adapter.close()

    # Writes

    def insert(self, changeset: Changeset) -> Record | Changeset:
        """Insert a valid changeset and return the stored record.

        Invalid changesets are returned as is.
        """
        if not changeset.valid:
            return changeset

        model = self.registry.lookup(changeset.model)
        values = {
            attr.name: changeset.data[attr.name]
            for attr in model.writable_attributes
            if attr.name in changeset.data and not (attr.primary_key and changeset.data[attr.name] is None)
        }
        values = self.registry.hooks.apply_before_save(model, values)

        row = self.adapter.execute_insert(model, values)
        logger.debug("Inserted %s %s", model.name, row.get(model.primary_key.column_name))
        return self._to_record(model, row)

    def update(self, changeset: Changeset) -> Record | Changeset:
        """Update the row identified by the changeset's primary key.

        Only changed writable attributes are written. A changeset built
        without an origin record (``changeset()`` with a primary key) is
        compared against the stored row first, so stored values such as
        password hashes are not passed through before_save hooks again.
        Invalid changesets are returned as is.

        Raises:
            ValueError: If the changeset has no primary key value
            PersistenceError: If no row matches the primary key
        """
        if not changeset.valid:
            return changeset

        model = self.registry.lookup(changeset.model)
        pk = model.primary_key
        key = changeset.data.get(pk.name)
        if key is None:
            raise ValueError(f"Cannot update {model.name} without a value for primary key '{pk.name}'")

        stored = None
        if changeset.origin is None:
            stored = self.find(model, key)
            if stored is None:
                raise PersistenceError(f"No {model.name} row with {pk.name} = {key}")

        values = {
            name: value
            for name, value in changeset.changes.items()
            if (attr := model.get_attribute(name)) is not None
            and attr.writable
            and not attr.primary_key
            and (stored is None or stored.get(name) != value)
        }
        if not values:
            record = stored or self.find(model, key)
            if record is None:
                raise PersistenceError(f"No {model.name} row with {pk.name} = {key}")
            return record

        values = self.registry.hooks.apply_before_save(model, values)
        row = self.adapter.execute_update(model, key, values)
        if row is None:
            raise PersistenceError(f"No {model.name} row with {pk.name} = {key}")
        logger.debug("Updated %s %s", model.name, key)
        return self._to_record(model, row)

    def save(self, changeset: Changeset) -> Record | Changeset:
        """Insert or update depending on whether a primary key value is present."""
        if changeset.action == "update":
            return self.update(changeset)
        return self.insert(changeset)

    def delete(self, record: Record) -> bool:
        """Delete a record by primary key. Returns whether a row was removed."""
        model = self.registry.lookup(record.model)
        key = record.get(model.primary_key.name)
        if key is None:
            raise ValueError(f"Cannot delete {model.name} without a value for primary key '{model.primary_key.name}'")
        deleted = self.adapter.execute_delete(model, key)
        logger.debug("Deleted %s %s (%d row(s))", model.name, key, deleted)
        return deleted > 0

    # Reads

    def query(self, model: "Model | str") -> Query:
        """Start a query over a model."""
        return Query(self.registry.resolve_model(model).name)

    def find(self, model: "Model | str", key: Any) -> Record | None:
        """Find a record by primary key, or None."""
        model = self.registry.resolve_model(model)
        pk = model.primary_key
        key = coerce(pk, key)
        if pk.type == "uuid" and not isinstance(key, uuid.UUID):
            return None
        return self._first(Query(model.name).where(pk.name, key))

    def find_by(self, target: "str | Query", value: Any = _MISSING) -> Record | None:
        """Find the first record matching an attribute value or a query.

        Examples:
            >>> gateway.find_by("user.email", "foo@bar.baz")
            >>> gateway.find_by(gateway.query("user").order_by("email"))
        """
        return self._first(self._target_query(target, value))

    def all(self, target: "str | Query", value: Any = _MISSING) -> list[Record]:
        """Find all records of a model, matching an attribute value, or a query.

        Examples:
            >>> gateway.all("user")
            >>> gateway.all("user.email", "foo@bar.baz")
            >>> gateway.all(gateway.query("user").order_by("email", desc=True).limit(2))
        """
        return self.fetch(self._target_query(target, value))

    def fetch(self, query: Query) -> list[Record]:
        """Execute a query and map its rows to records."""
        model = self.registry.lookup(query.model)
        hooks = self.registry.hooks

        def transform(attr, value):
            return hooks.apply_before_read(model, attr, coerce(attr, value))

        rows = self.adapter.execute_select(model, query, transform)
        return [self._to_record(model, row) for row in rows]

    def load_into(self, record: Record, *names: str) -> Record:
        """Resolve named relations of a record in place of their handles."""
        return load_into(record, *names)

    def _first(self, query: Query) -> Record | None:
        records = self.fetch(query.limit(1))
        return records[0] if records else None

    def _target_query(self, target: "str | Query", value: Any) -> Query:
        if isinstance(target, Query):
            if value is not _MISSING:
                raise TypeError("A value cannot be combined with a query")
            return target

        namespace, name = split_path(target)
        if namespace is None:
            if value is not _MISSING:
                raise ValueError(f"'{target}' must be in 'model.attribute' format when a value is given")
            return Query(self.registry.lookup(target).name)

        model = self.registry.lookup(namespace)
        if value is _MISSING:
            raise TypeError(f"Missing value for '{target}'")
        return Query(model.name).where(name, value)

    # Row mapping

    def _to_record(self, model: Model, row: dict[str, Any]) -> Record:
        data = {}
        for attr in model.persisted_attributes:
            if attr.column_name in row:
                data[attr.name] = row[attr.column_name]

        record = Record(model.name, self.registry.hooks.apply_after_read(model, data))
        for rel in model.relationships:
            record[rel.name] = self._relation(model, record, rel)
        return record

    def _relation(self, model: Model, record: Record, rel: Relationship) -> RelationHandle:
        related = self.registry.lookup(rel.related_model)
        fk = rel.foreign_key_for(model.name)

        if rel.type == "belongs_to":
            value = record.get(fk)
            query = None
            if value is not None:
                query = Query(related.name).where(related.primary_key.name, value).limit(1)
            return RelationHandle(rel.name, query, self.fetch, single=True)

        if related.get_attribute(fk) is None:
            raise RelationError(
                f"Relationship '{model.name}.{rel.name}' uses foreign key '{fk}' "
                f"which is not an attribute of model '{related.name}'"
            )
        default_order = tuple(Ordering.parse(entry) for entry in rel.order_by or [])
        query = Query(related.name, default_order=default_order).where(fk, record.get(model.primary_key.name))
        return RelationHandle(rel.name, query, self.fetch)
