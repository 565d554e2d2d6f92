"""SQL generation for rowmap statements using SQLGlot."""

import uuid
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from sqlglot import exp, select

from rowmap.core.attribute import Attribute
from rowmap.core.model import Model
from rowmap.core.query import Filter, Query

_COMPARISONS = {
    "=": exp.EQ,
    "!=": exp.NEQ,
    "<": exp.LT,
    "<=": exp.LTE,
    ">": exp.GT,
    ">=": exp.GTE,
    "like": exp.Like,
}


def quoted(name: str) -> exp.Identifier:
    """Quoted identifier; table names like ``user`` are reserved in PostgreSQL."""
    return exp.to_identifier(name, quoted=True)


def table(name: str) -> exp.Table:
    return exp.Table(this=quoted(name))


def literal(value: Any, attr: Attribute | None = None) -> exp.Expression:
    """Convert a Python value into a SQL literal expression.

    UUIDs and datetimes are cast explicitly so both DuckDB and PostgreSQL
    compare them against typed columns.
    """
    if value is None:
        return exp.Null()
    if isinstance(value, bool):
        return exp.Boolean(this=value)
    if isinstance(value, uuid.UUID) or (attr is not None and attr.type == "uuid" and isinstance(value, str)):
        return exp.cast(exp.Literal.string(str(value)), "UUID")
    if isinstance(value, datetime):
        target = "TIMESTAMPTZ" if value.tzinfo is not None else "TIMESTAMP"
        return exp.cast(exp.Literal.string(value.isoformat(sep=" ")), target)
    if isinstance(value, (int, float)):
        return exp.Literal.number(value)
    if isinstance(value, str):
        return exp.Literal.string(value)
    return exp.convert(value)


class SQLBuilder:
    """Generates insert, update, delete and select statements for models."""

    def __init__(self, dialect: str = "duckdb"):
        """Initialize SQL builder.

        Args:
            dialect: SQL dialect for generation (default: duckdb)
        """
        self.dialect = dialect

    def _sql(self, node: exp.Expression) -> str:
        return node.sql(dialect=self.dialect)

    def _assignments(self, model: Model, values: Mapping[str, Any]) -> list[tuple[str, str]]:
        pairs = []
        for name, value in values.items():
            attr = model.get_attribute(name)
            if attr is None:
                raise ValueError(f"Attribute {name} not found in model {model.name}")
            pairs.append((self._sql(quoted(attr.column_name)), self._sql(literal(value, attr))))
        return pairs

    def insert(self, model: Model, values: Mapping[str, Any]) -> str:
        """Generate ``INSERT ... RETURNING *``.

        Args:
            model: Target model
            values: Attribute name to value, already filtered to writable attributes
        """
        target = self._sql(table(model.table_name))
        pairs = self._assignments(model, values)
        if not pairs:
            return f"INSERT INTO {target} DEFAULT VALUES RETURNING *"
        columns = ", ".join(column for column, _ in pairs)
        literals = ", ".join(value for _, value in pairs)
        return f"INSERT INTO {target} ({columns}) VALUES ({literals}) RETURNING *"

    def update(self, model: Model, key: Any, values: Mapping[str, Any]) -> str:
        """Generate ``UPDATE ... WHERE <pk> = key RETURNING *``."""
        if not values:
            raise ValueError("update requires at least one value")
        target = self._sql(table(model.table_name))
        assignments = ", ".join(f"{column} = {value}" for column, value in self._assignments(model, values))
        return f"UPDATE {target} SET {assignments} WHERE {self._key_condition(model, key)} RETURNING *"

    def delete(self, model: Model, key: Any) -> str:
        """Generate ``DELETE ... WHERE <pk> = key RETURNING <pk>``."""
        target = self._sql(table(model.table_name))
        pk_column = self._sql(quoted(model.primary_key.column_name))
        return f"DELETE FROM {target} WHERE {self._key_condition(model, key)} RETURNING {pk_column}"

    def _key_condition(self, model: Model, key: Any) -> str:
        pk = model.primary_key
        return self._sql(exp.EQ(this=exp.column(pk.column_name, quoted=True), expression=literal(key, pk)))

    def select(
        self,
        model: Model,
        query: Query,
        transform: Callable[[Attribute, Any], Any] | None = None,
    ) -> str:
        """Generate a ``SELECT *`` for a query.

        Args:
            model: Model the query reads
            query: Filters, ordering and paging
            transform: Applied to each filter value before rendering (before_read hooks)
        """
        statement = select("*").from_(table(model.table_name))

        for condition in query.filters:
            statement = statement.where(self._condition(model, condition, transform))

        for ordering in query.effective_order:
            column = exp.column(self._attribute(model, ordering.attribute).column_name, quoted=True)
            statement = statement.order_by(exp.Ordered(this=column, desc=True) if ordering.desc else column)

        if query.limit_value is not None:
            statement = statement.limit(query.limit_value)
        if query.offset_value is not None:
            statement = statement.offset(query.offset_value)

        return self._sql(statement)

    def _attribute(self, model: Model, name: str) -> Attribute:
        attr = model.get_attribute(name)
        if attr is None or attr.virtual:
            raise ValueError(f"Attribute {name} not found in model {model.name}")
        return attr

    def _condition(
        self, model: Model, condition: Filter, transform: Callable[[Attribute, Any], Any] | None
    ) -> exp.Expression:
        attr = self._attribute(model, condition.attribute)
        column = exp.column(attr.column_name, quoted=True)

        def render(value: Any) -> exp.Expression:
            if transform is not None:
                value = transform(attr, value)
            return literal(value, attr)

        if condition.op == "in":
            values = list(condition.value)
            if not values:
                return exp.false()
            return exp.In(this=column, expressions=[render(v) for v in values])

        if condition.value is None and condition.op in ("=", "!="):
            is_null = exp.Is(this=column, expression=exp.Null())
            return is_null if condition.op == "=" else exp.Not(this=is_null)

        return _COMPARISONS[condition.op](this=column, expression=render(condition.value))
