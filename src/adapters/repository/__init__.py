"""Repository adapters - Database implementations."""

from .memory import InMemoryCustomerStore
from .postgres import PostgresCustomerStore, run_migrations

__all__ = ["InMemoryCustomerStore", "PostgresCustomerStore", "run_migrations"]
