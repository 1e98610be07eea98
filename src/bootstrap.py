"""
Composition root - Wires the customer service to its adapters.

The request layer that embeds this library either calls
build_customer_service() with a store it already owns, or enters
customer_service() to get a PostgreSQL-backed service for the
lifetime of a block:

    with customer_service() as service:
        customer = service.create({"email": "a@b.com", "password": "secret"})
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from psycopg_pool import ConnectionPool

from src.adapters.events.console import ConsoleEventPublisher
from src.adapters.repository.postgres import PostgresCustomerStore, run_migrations
from src.config.settings import Settings, get_settings
from src.domain.customers import CustomerService
from src.domain.ports import CustomerStore, EventPublisher

logger = logging.getLogger(__name__)


def build_customer_service(
    store: CustomerStore,
    settings: Settings | None = None,
    event_publisher: EventPublisher | None = None,
) -> CustomerService:
    """Create a customer service configured from settings."""
    settings = settings or get_settings()
    return CustomerService(
        store=store,
        event_publisher=event_publisher,
        bcrypt_cost=settings.bcrypt_cost,
        reset_token_ttl_seconds=settings.reset_token_ttl_seconds,
        reset_token_algorithm=settings.reset_token_algorithm,
    )


@contextmanager
def customer_service(settings: Settings | None = None) -> Iterator[CustomerService]:
    """
    PostgreSQL-backed customer service for the duration of a block.

    - Creates database connection pool on entry
    - Runs migrations on entry
    - Closes connection pool on exit
    """
    settings = settings or get_settings()

    logger.info("Connecting to database...")
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )

    try:
        logger.info("Running database migrations...")
        run_migrations(pool)
        yield build_customer_service(
            PostgresCustomerStore(pool),
            settings=settings,
            event_publisher=ConsoleEventPublisher(),
        )
    finally:
        pool.close()
        logger.info("Database connection pool closed")
