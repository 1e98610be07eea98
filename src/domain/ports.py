"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any, Protocol

from .customer import Customer


class StoreError(Exception):
    """
    Raised by store adapters when the underlying storage call fails.

    The message is passed through to callers unmodified, wrapped
    as DatabaseError by the domain service.
    """

    pass


class CustomerEvent(str, Enum):
    """Names of events published by CustomerService."""

    CREATED = "customer.created"
    UPDATED = "customer.updated"
    DELETED = "customer.deleted"
    PASSWORD_RESET = "customer.password_reset"


class CustomerStore(Protocol):
    """Port interface for customer persistence."""

    def find_by_id(self, customer_id: str) -> Customer | None:
        """
        Fetch a single customer by id.

        Returns:
            The customer, or None if no record has that id

        Raises:
            StoreError: If the storage call fails
        """
        ...

    def find_one(self, selector: Mapping[str, Any]) -> Customer | None:
        """
        Fetch the first customer matching an equality selector.

        Args:
            selector: Mapping of customer field name to expected value
        """
        ...

    def find(self, selector: Mapping[str, Any]) -> Sequence[Customer]:
        """Fetch all customers matching an equality selector."""
        ...

    def insert(self, record: Mapping[str, Any]) -> Customer:
        """
        Insert a new customer record and return it with its assigned id.

        Raises:
            StoreError: On storage failure, including a duplicate email
        """
        ...

    def update_partial(self, customer_id: str, fields: Mapping[str, Any]) -> bool:
        """
        Atomically set the given fields on one customer, leaving others untouched.

        Keys of the form ``metadata.<key>`` set a single metadata entry
        without rewriting sibling entries.

        Returns:
            True if a record was updated, False if the id matched nothing
        """
        ...

    def delete_by_id(self, customer_id: str) -> bool:
        """
        Delete one customer.

        Returns:
            True if a record was deleted, False if the id matched nothing
        """
        ...


class EventPublisher(Protocol):
    """Port interface for fire-and-forget event notification."""

    def publish(self, event: str, payload: Mapping[str, Any]) -> None:
        """
        Publish a named event.

        Args:
            event: Event name, e.g. "customer.password_reset"
            payload: JSON-serializable event data
        """
        ...
