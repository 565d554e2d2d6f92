"""Pytest configuration and fixtures."""

import pytest

from rowmap.core.gateway import Gateway
from rowmap.core.registry import ModelRegistry, get_registry, set_current_registry
from rowmap.db.duckdb import DuckDBAdapter
from rowmap.migrations import migrate
from rowmap.playground import define_models


@pytest.fixture(autouse=True)
def reset_registry():
    """Clear the process-wide registry before and after each test.

    This ensures test isolation for code that registers into the default registry.
    """
    set_current_registry(None)
    get_registry().clear()

    yield

    set_current_registry(None)
    get_registry().clear()


@pytest.fixture
def registry():
    """Fresh registry set as the current registry for the test.

    Password hashing uses few iterations to keep tests fast.
    """
    registry = ModelRegistry()
    registry.hooks.password_iterations = 1_000
    with registry:
        yield registry


@pytest.fixture
def blog(registry):
    """Registry with the playground user, post and comment models."""
    return define_models(registry)


@pytest.fixture
def adapter():
    """Migrated in-memory DuckDB database."""
    adapter = DuckDBAdapter()
    migrate(adapter)
    yield adapter
    adapter.close()


@pytest.fixture
def gateway(adapter, blog):
    return Gateway(adapter, blog)
