"""
Shared fixtures for integration tests.

Tests here run against a real PostgreSQL reachable via DATABASE_URL
and are skipped when no database answers.
"""

from collections.abc import Generator

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresCustomerStore, run_migrations
from src.config.settings import get_settings
from src.domain.customers import CustomerService


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool and schema for integration tests."""
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=3):
            pass
    except psycopg.OperationalError as err:
        pytest.skip(f"PostgreSQL not reachable: {err}")

    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=True)
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def pg_store(pool: ConnectionPool) -> PostgresCustomerStore:
    """Create repository instance for each test."""
    return PostgresCustomerStore(pool)


@pytest.fixture
def pg_service(pg_store: PostgresCustomerStore) -> CustomerService:
    return CustomerService(store=pg_store, bcrypt_cost=4)


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean customers table before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM customers")
        conn.commit()
    yield
