"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for customer identity
records: validation, lifecycle, metadata writes and self-invalidating
password-reset tokens. It defines its own port interfaces for
infrastructure abstraction, ensuring true hexagonal architecture decoupling.
"""

from .customer import Customer
from .customers import CustomerService
from .exceptions import (
    CustomerError,
    DatabaseError,
    ErrorKind,
    InvalidArgument,
    InvalidData,
    NotAllowed,
    NotFound,
)
from .ports import CustomerEvent, CustomerStore, EventPublisher, StoreError

__all__ = [
    "Customer",
    "CustomerError",
    "CustomerEvent",
    "CustomerService",
    "CustomerStore",
    "DatabaseError",
    "ErrorKind",
    "EventPublisher",
    "InvalidArgument",
    "InvalidData",
    "NotAllowed",
    "NotFound",
    "StoreError",
]
