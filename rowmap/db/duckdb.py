"""DuckDB storage for rowmap, the default backend for tests and the playground."""

from typing import Any

import duckdb

from rowmap.db.base import BaseDatabaseAdapter

MEMORY = ":memory:"


class DuckDBAdapter(BaseDatabaseAdapter):
    """Runs rowmap statements on a single DuckDB connection.

    DuckDB returns rows for ``INSERT/UPDATE/DELETE ... RETURNING`` like
    PostgreSQL does, so records come back exactly as stored. Every
    statement commits on its own.
    """

    driver_errors = (duckdb.Error,)

    def __init__(self, path: str = MEMORY):
        """Open a database file, or a private in-memory database.

        Args:
            path: File path, relative to the working directory or absolute
        """
        self.path = path
        self.conn = duckdb.connect(path)

    def execute(self, sql: str) -> Any:
        return self.conn.execute(sql)

    def close(self) -> None:
        self.conn.close()

    @property
    def dialect(self) -> str:
        return "duckdb"

    @classmethod
    def from_url(cls, url: str) -> "DuckDBAdapter":
        """Open the database named by a ``duckdb://`` URL.

        Everything after ``duckdb://`` is the file path, so two slashes
        give a relative path and three an absolute one:

            >>> DuckDBAdapter.from_url("duckdb://playground.db").path
            'playground.db'
            >>> DuckDBAdapter.from_url("duckdb:///tmp/app.db").path
            '/tmp/app.db'

        ``duckdb://``, ``duckdb://:memory:`` and ``duckdb:///:memory:`` all
        open an in-memory database.

        Raises:
            ValueError: If the URL does not use the duckdb scheme
        """
        if not url.startswith("duckdb://"):
            raise ValueError(f"Not a DuckDB URL: {url}")

        path = url.removeprefix("duckdb://")
        if path in ("", "/", MEMORY, f"/{MEMORY}"):
            path = MEMORY
        return cls(path)
