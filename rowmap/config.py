"""Configuration file format for rowmap."""

import logging
import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

from rowmap.hashers import DEFAULT_ITERATIONS

logger = logging.getLogger(__name__)

CONFIG_NAMES = ("rowmap.yaml", "rowmap.yml", "rowmap.json")


class DuckDBConnection(BaseModel):
    """DuckDB connection configuration."""

    type: Literal["duckdb"] = "duckdb"
    path: str = Field(..., description="Path to DuckDB database file or :memory:")


class PostgreSQLConnection(BaseModel):
    """PostgreSQL connection configuration."""

    type: Literal["postgres"] = "postgres"
    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    database: str = Field(default="postgres", description="Database name")
    username: str = Field(..., description="Username")
    password: str | None = Field(default=None, description="Password")


Connection = DuckDBConnection | PostgreSQLConnection


class RowmapConfig(BaseModel):
    """rowmap configuration file format.

    Can be saved as rowmap.yaml or rowmap.json.

    Example YAML:
        models:
          - models/blog.yml
        connection:
          type: postgres
          host: localhost
          port: 7432
          database: postgres
          username: postgres
          password: postgres
        log_level: INFO
    """

    models: list[str] = Field(default_factory=list, description="YAML model files to register")
    connection: Connection | None = Field(
        default=None, description="Database connection (falls back to DATABASE_URL, then in-memory DuckDB)"
    )
    log_level: str = Field(default="WARNING", description="Logging level name")
    password_iterations: int = Field(
        default=DEFAULT_ITERATIONS, ge=1, description="PBKDF2 iterations for the password_hash hook"
    )

    def resolve_paths(self, base_dir: Path | None = None) -> "RowmapConfig":
        """Resolve relative paths to absolute paths.

        Args:
            base_dir: Base directory for resolving relative paths (defaults to cwd)

        Returns:
            New config with resolved paths
        """
        base = base_dir or Path.cwd()

        models = []
        for entry in self.models:
            path = Path(entry)
            if not path.is_absolute():
                path = (base / path).resolve()
            models.append(str(path))

        connection = self.connection
        if isinstance(connection, DuckDBConnection) and connection.path != ":memory:":
            db_p = Path(connection.path)
            if not db_p.is_absolute():
                db_p = (base / db_p).resolve()
            connection = DuckDBConnection(type="duckdb", path=str(db_p))

        return self.model_copy(update={"models": models, "connection": connection})


def load_config(config_path: Path) -> RowmapConfig:
    """Load configuration from YAML or JSON file.

    Args:
        config_path: Path to config file (rowmap.yaml or rowmap.json)

    Returns:
        Loaded and validated configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file format is invalid
    """
    import json

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        import yaml

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    elif suffix == ".json":
        with open(config_path) as f:
            data = json.load(f)
    else:
        raise ValueError(f"Unsupported config format: {suffix}. Use .yaml, .yml, or .json")

    config = RowmapConfig(**data)

    # Resolve relative paths relative to config file directory
    return config.resolve_paths(config_path.parent)


def find_config(start_dir: Path | None = None) -> Path | None:
    """Find config file by searching up the directory tree.

    Args:
        start_dir: Directory to start searching from (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    current = (start_dir or Path.cwd()).resolve()

    while True:
        for name in CONFIG_NAMES:
            config_path = current / name
            if config_path.exists():
                logger.debug("Found config %s", config_path)
                return config_path

        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def build_connection_string(config: RowmapConfig | None = None) -> str:
    """Build database connection string from config.

    Without a configured connection, ``DATABASE_URL`` is used when set,
    otherwise an in-memory DuckDB database.

    Args:
        config: rowmap configuration

    Returns:
        Connection URL for :func:`rowmap.db.connect`
    """
    connection = config.connection if config else None

    if connection is None:
        return os.environ.get("DATABASE_URL") or "duckdb:///:memory:"

    if isinstance(connection, DuckDBConnection):
        if connection.path == ":memory:":
            return "duckdb:///:memory:"
        return f"duckdb://{connection.path}"
    elif isinstance(connection, PostgreSQLConnection):
        password_part = f":{connection.password}" if connection.password else ""
        return (
            f"postgres://{connection.username}{password_part}@"
            f"{connection.host}:{connection.port}/{connection.database}"
        )
    else:
        raise ValueError(f"Unknown connection type: {type(connection)}")
