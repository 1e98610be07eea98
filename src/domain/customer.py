"""
Customer entity - The record shape exchanged with the store.

The store owns customers; the service never caches one beyond a single
operation. A customer holds a credential only when it has an account:
has_account is True if and only if password_hash is set.
"""

from dataclasses import dataclass, field
from typing import Any

# Fields a caller may change through CustomerService.update().
# "password" is accepted there too but never stored.
UPDATABLE_FIELDS = frozenset(
    {"email", "first_name", "last_name", "phone", "billing_address"}
)

# Fields safe to expose in a decorated view.
PUBLIC_FIELDS = (
    "id",
    "email",
    "first_name",
    "last_name",
    "phone",
    "has_account",
    "billing_address",
    "metadata",
)

# Columns a store selector may filter on.
SELECTABLE_FIELDS = frozenset(PUBLIC_FIELDS) - {"billing_address", "metadata"}


@dataclass
class Customer:
    """A guest or account-holding customer."""

    id: str
    email: str
    has_account: bool = False
    password_hash: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    billing_address: dict[str, Any] | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
