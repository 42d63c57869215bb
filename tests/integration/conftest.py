"""
Shared pytest fixtures for integration tests.

Provides a PostgreSQL database using testcontainers for automatic container
management. The ``database`` fixture here overrides the local backends from
tests/conftest.py, so the shared repository, engine and data fixtures run
against PostgreSQL.

If testcontainers or Docker is not available, tests are automatically skipped.
"""

from __future__ import annotations

import subprocess
from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy import text

from storefront import PostgreSQLDatabase

# ============================================================================
# Testcontainers Detection
# ============================================================================

TESTCONTAINERS_AVAILABLE = False

try:
    from testcontainers.postgres import PostgresContainer

    TESTCONTAINERS_AVAILABLE = True
except ImportError:
    PostgresContainer = None  # type: ignore[assignment, misc]


def is_docker_available() -> bool:
    """Check if Docker is available for running containers."""
    try:
        result = subprocess.run(["docker", "info"], capture_output=True, timeout=5)
    except (subprocess.TimeoutExpired, OSError):
        return False
    return result.returncode == 0


DOCKER_AVAILABLE = is_docker_available()


# ============================================================================
# PostgreSQL Fixtures
# ============================================================================

STOREFRONT_TABLES = ("products", "cart_items", "orders", "order_items")


@pytest.fixture(scope="session")
def postgres_container() -> Generator[Any, None, None]:
    """
    Provide PostgreSQL container for integration tests.

    Container is shared across all tests in the session.
    """
    if not TESTCONTAINERS_AVAILABLE or not DOCKER_AVAILABLE:
        pytest.skip("PostgreSQL testcontainer not available")

    container = PostgresContainer("postgres:15")
    container.start()

    yield container

    container.stop()


@pytest.fixture(scope="session")
def postgres_connection_url(postgres_container: Any) -> str:
    """Get PostgreSQL connection URL from container."""
    # testcontainers returns psycopg2 URL, convert to asyncpg
    url = postgres_container.get_connection_url()
    return url.replace("postgresql://", "postgresql+asyncpg://").replace("psycopg2", "asyncpg")


@pytest_asyncio.fixture
async def database(postgres_connection_url: str) -> AsyncGenerator[PostgreSQLDatabase, None]:
    """
    Provide an initialized PostgreSQL database with empty tables.

    The engine is created per test so its pool belongs to the test's loop.
    """
    db = PostgreSQLDatabase.from_url(postgres_connection_url, pool_size=5, max_overflow=10)
    await db.initialize()
    async with db.engine.begin() as conn:
        await conn.execute(
            text(f"TRUNCATE {', '.join(STOREFRONT_TABLES)} RESTART IDENTITY CASCADE")
        )

    yield db

    await db.close()
