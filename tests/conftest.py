"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- An in-memory customer store
- A mock event publisher
- A customer service wired to both, with a fast bcrypt cost
"""

from unittest.mock import Mock

import pytest

from src.adapters.repository.memory import InMemoryCustomerStore
from src.domain.customers import CustomerService

# Minimum bcrypt cost; keeps hashing fast in tests that do not check the cost
FAST_BCRYPT_COST = 4


@pytest.fixture
def store() -> InMemoryCustomerStore:
    """Fresh in-memory store for each test."""
    return InMemoryCustomerStore()


@pytest.fixture
def publisher() -> Mock:
    return Mock()


@pytest.fixture
def service(store: InMemoryCustomerStore, publisher: Mock) -> CustomerService:
    """Customer service over the in-memory store."""
    return CustomerService(store=store, event_publisher=publisher, bcrypt_cost=FAST_BCRYPT_COST)
