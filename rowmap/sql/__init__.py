"""SQL generation."""

from rowmap.sql.builder import SQLBuilder

__all__ = ["SQLBuilder"]
