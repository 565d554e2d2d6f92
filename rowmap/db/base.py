"""Base database adapter interface."""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from rowmap.sql.builder import SQLBuilder
from rowmap.validation import PersistenceError

if TYPE_CHECKING:
    from rowmap.core.model import Model
    from rowmap.core.query import Query

logger = logging.getLogger(__name__)


class BaseDatabaseAdapter(ABC):
    """Abstract base class for database adapters.

    Subclasses wrap one driver connection and implement ``execute``. The
    write and read helpers render statements with :class:`SQLBuilder` and
    translate driver exceptions into :class:`PersistenceError`.
    """

    #: Driver exception types translated into PersistenceError
    driver_errors: tuple[type[BaseException], ...] = ()

    @abstractmethod
    def execute(self, sql: str) -> Any:
        """Execute SQL and return result object.

        Args:
            sql: SQL statement to execute

        Returns:
            Driver result object exposing ``fetchall`` and ``description``
        """
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Close database connection."""
        raise NotImplementedError

    @property
    @abstractmethod
    def dialect(self) -> str:
        """Get SQLGlot dialect name.

        Returns:
            Dialect name (e.g., 'duckdb', 'postgres')
        """
        raise NotImplementedError

    @property
    def builder(self) -> SQLBuilder:
        if getattr(self, "_builder", None) is None:
            self._builder = SQLBuilder(self.dialect)
        return self._builder

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def run(self, sql: str) -> Any:
        """Execute SQL, translating driver errors into PersistenceError."""
        logger.debug("Executing: %s", sql)
        try:
            return self.execute(sql)
        except self.driver_errors as e:
            raise PersistenceError(f"{type(e).__name__}: {e}", sql=sql) from e

    def fetch_dicts(self, result: Any) -> list[dict[str, Any]]:
        """Fetch all rows as dictionaries keyed by column name."""
        try:
            rows = result.fetchall()
        except self.driver_errors as e:
            raise PersistenceError(f"{type(e).__name__}: {e}") from e
        columns = [col[0] for col in result.description or []]
        return [dict(zip(columns, row)) for row in rows]

    def execute_raw(self, sql: str) -> Any:
        """Execute a raw statement (schema bootstrap)."""
        return self.run(sql)

    def execute_insert(self, model: "Model", values: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it as generated by the database."""
        rows = self.fetch_dicts(self.run(self.builder.insert(model, values)))
        if not rows:
            raise PersistenceError(f"Insert into {model.table_name} returned no row")
        return rows[0]

    def execute_update(self, model: "Model", key: Any, values: dict[str, Any]) -> dict[str, Any] | None:
        """Update one row by primary key and return it, or None if no row matched."""
        rows = self.fetch_dicts(self.run(self.builder.update(model, key, values)))
        return rows[0] if rows else None

    def execute_delete(self, model: "Model", key: Any) -> int:
        """Delete one row by primary key and return the number of deleted rows."""
        return len(self.fetch_dicts(self.run(self.builder.delete(model, key))))

    def execute_select(self, model: "Model", query: "Query", transform=None) -> list[dict[str, Any]]:
        """Run a select for a query and return rows."""
        return self.fetch_dicts(self.run(self.builder.select(model, query, transform)))
