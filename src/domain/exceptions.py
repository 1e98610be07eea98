"""
Domain exceptions - Semantic error types for customer operations.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Each exception carries an ErrorKind so that an upstream request layer
can map failures to its own status codes without string matching.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories surfaced by CustomerService."""

    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    INVALID_DATA = "INVALID_DATA"
    NOT_FOUND = "NOT_FOUND"
    NOT_ALLOWED = "NOT_ALLOWED"
    DB_ERROR = "DB_ERROR"


class CustomerError(Exception):
    """Base class for customer domain errors."""

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidArgument(CustomerError):
    """Malformed identifier, metadata key, or token."""

    kind = ErrorKind.INVALID_ARGUMENT


class InvalidData(CustomerError):
    """Malformed email/address/password, or a disallowed update payload."""

    kind = ErrorKind.INVALID_DATA


class NotFound(CustomerError):
    """No customer matches the lookup."""

    kind = ErrorKind.NOT_FOUND


class NotAllowed(CustomerError):
    """Operation not permitted for the customer's current state."""

    kind = ErrorKind.NOT_ALLOWED


class DatabaseError(CustomerError):
    """Underlying store failure; message is the store's own."""

    kind = ErrorKind.DB_ERROR
