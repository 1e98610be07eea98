"""
Customer domain service - Identity record lifecycle and reset tokens.

This module contains the core business logic for customer records:
guest or account-holding creation, validated partial updates, idempotent
deletion, per-key metadata writes, and password-reset token issuance.

Metadata discipline
===================

Several independent callers (plugins, integrations) write their own
metadata keys on the same customer. update() therefore refuses any
payload that carries ``metadata``; set_metadata() writes exactly one key
through a store-side atomic partial update (``metadata.<key>``), so no
caller ever reads, modifies and writes back the whole mapping.

Reset tokens
============

Tokens are signed with the customer's current password hash (see
tokens.py). A password change invalidates all outstanding tokens.
"""

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, TypeVar

import bcrypt

from . import tokens
from .customer import PUBLIC_FIELDS, UPDATABLE_FIELDS, Customer
from .exceptions import (
    CustomerError,
    DatabaseError,
    InvalidArgument,
    InvalidData,
    NotAllowed,
    NotFound,
)
from .ports import CustomerEvent, CustomerStore, EventPublisher, StoreError
from .validation import (
    validate_billing_address,
    validate_email,
    validate_id,
    validate_password,
)

T = TypeVar("T")

_ALWAYS_DECORATED = ("id", "metadata")
_CREATE_FIELDS = UPDATABLE_FIELDS | {"metadata"}
_PROFILE_FIELDS = ("first_name", "last_name", "phone")


@dataclass
class CustomerService:
    """
    Domain service for customer records.

    Stateless between calls; safe to share across threads. Password
    hashing is CPU-bound, so callers in an async server should run
    create/update/reset_password in a worker thread.
    """

    store: CustomerStore
    event_publisher: EventPublisher | None = None
    bcrypt_cost: int = 10
    reset_token_ttl_seconds: int = tokens.DEFAULT_TTL_SECONDS
    reset_token_algorithm: str = tokens.DEFAULT_ALGORITHM

    def retrieve(self, customer_id: str) -> Customer:
        """
        Get a customer by id.

        Raises:
            InvalidArgument: If the id is malformed (no store call is made)
            NotFound: If no customer has this id
            DatabaseError: If the store call fails
        """
        validated_id = validate_id(customer_id)
        customer = self._call_store(lambda: self.store.find_by_id(validated_id))
        if customer is None:
            raise NotFound(f"Customer with {customer_id} was not found")
        return customer

    def retrieve_by_email(self, email: str) -> Customer:
        """
        Get a customer by exact (normalized) email.

        Raises:
            InvalidData: If the email is invalid
            NotFound: If no customer has this email
            DatabaseError: If the store call fails
        """
        normalized_email = validate_email(email)
        customer = self._call_store(lambda: self.store.find_one({"email": normalized_email}))
        if customer is None:
            raise NotFound(f"Customer with email {normalized_email} was not found")
        return customer

    def list(self, selector: Mapping[str, Any]) -> Sequence[Customer]:
        """List customers matching a selector; the selector shape is the caller's."""
        return self._call_store(lambda: self.store.find(selector))

    def create(self, data: Mapping[str, Any]) -> Customer:
        """
        Create a customer from an email.

        If a password is provided the customer gets an account and only
        the bcrypt hash is persisted; otherwise the record is a guest that
        just holds customer details.

        Args:
            data: email (required), password, first_name, last_name, phone,
                billing_address

        Returns:
            The stored customer with its assigned id

        Raises:
            InvalidData: On invalid email, address, password or unknown fields,
                or if the email is already in use
            DatabaseError: If the store call fails
        """
        record = dict(data)
        password = record.pop("password", None)
        if password is not None:
            validate_password(password)

        record["email"] = validate_email(record.get("email"))
        self._reject_unknown_fields(record, _CREATE_FIELDS)
        self._check_profile_fields(record)

        metadata = record.get("metadata") or {}
        if not isinstance(metadata, Mapping) or not all(isinstance(k, str) for k in metadata):
            raise InvalidData("Metadata must be a mapping with string keys")
        record["metadata"] = dict(metadata)

        if record.get("billing_address") is not None:
            record["billing_address"] = validate_billing_address(record["billing_address"])

        record["has_account"] = False
        if password:
            record["password_hash"] = self._hash_password(password)
            record["has_account"] = True

        self._ensure_email_available(record["email"])

        customer = self._call_store(lambda: self.store.insert(record))
        self._publish(CustomerEvent.CREATED, {"id": customer.id})
        return customer

    def update(self, customer_id: str, patch: Mapping[str, Any]) -> None:
        """
        Apply a partial, field-level update to a customer.

        Metadata cannot be changed here; use set_metadata() so that keys
        written by other callers are never overwritten.

        Raises:
            InvalidArgument: If the id is malformed
            NotFound: If the customer does not exist
            InvalidData: On a metadata key, unknown fields, or invalid values
            DatabaseError: If a store call fails
        """
        customer = self.retrieve(customer_id)

        if "metadata" in patch:
            raise InvalidData("Use set_metadata to update metadata fields")

        fields = dict(patch)
        password = fields.pop("password", None)
        if password is not None:
            validate_password(password)
        self._reject_unknown_fields(fields, UPDATABLE_FIELDS)
        self._check_profile_fields(fields)

        if "email" in fields:
            fields["email"] = validate_email(fields["email"])
            if fields["email"] != customer.email:
                self._ensure_email_available(fields["email"])

        if fields.get("billing_address") is not None:
            fields["billing_address"] = validate_billing_address(fields["billing_address"])

        if password:
            fields["password_hash"] = self._hash_password(password)
            fields["has_account"] = True

        if not fields:
            return

        updated = self._call_store(lambda: self.store.update_partial(customer.id, fields))
        if not updated:
            raise NotFound(f"Customer with {customer_id} was not found")

        changed = sorted(name for name in fields if name != "password_hash")
        if "password_hash" in fields:
            changed.append("password")
        self._publish(CustomerEvent.UPDATED, {"id": customer.id, "fields": changed})

    def delete(self, customer_id: str) -> None:
        """
        Delete a customer. Idempotent.

        Any failure to retrieve the customer (malformed id, not found, store
        error) means there is nothing to delete, and the call succeeds.

        Raises:
            DatabaseError: If the delete itself fails
        """
        try:
            customer = self.retrieve(customer_id)
        except CustomerError:
            return

        self._call_store(lambda: self.store.delete_by_id(customer.id))
        self._publish(CustomerEvent.DELETED, {"id": customer.id})

    def set_metadata(self, customer_id: str, key: str, value: Any) -> None:
        """
        Set one metadata entry without touching any other entry.

        This is the only sanctioned way to mutate metadata.

        Raises:
            InvalidArgument: If the id is malformed or the key is not a
                non-empty string without dots
            NotFound: If the customer does not exist
            DatabaseError: If the store call fails
        """
        validated_id = validate_id(customer_id)

        if not isinstance(key, str):
            raise InvalidArgument("Key type is invalid. Metadata keys must be strings")
        if not key or "." in key:
            raise InvalidArgument("Metadata keys must be non-empty and must not contain '.'")

        key_path = f"metadata.{key}"
        updated = self._call_store(
            lambda: self.store.update_partial(validated_id, {key_path: value})
        )
        if not updated:
            raise NotFound(f"Customer with {customer_id} was not found")

    def generate_reset_password_token(self, customer_id: str) -> str:
        """
        Issue a password-reset token for an account-holding customer.

        The token payload is ``{customer_id, exp}`` with ``exp`` fixed at
        issuance + reset_token_ttl_seconds, signed with the customer's
        current password hash. A ``customer.password_reset`` event carries
        the token to whatever delivers it.

        Raises:
            NotFound / DatabaseError: From the customer lookup
            NotAllowed: If the customer has no account
        """
        customer = self.retrieve(customer_id)
        password_hash = self._require_account(customer)

        token = tokens.sign_reset_token(
            customer.id,
            password_hash,
            ttl_seconds=self.reset_token_ttl_seconds,
            algorithm=self.reset_token_algorithm,
        )
        self._publish(
            CustomerEvent.PASSWORD_RESET,
            {"id": customer.id, "email": customer.email, "token": token},
        )
        return token

    def verify_reset_password_token(self, token: str) -> Customer:
        """
        Verify a reset token and return the customer it was issued for.

        The customer is looked up first because the signing secret is
        their current password hash.

        Raises:
            InvalidArgument: If the token is malformed
            NotFound / DatabaseError: From the customer lookup
            NotAllowed: If the customer has no account, or the token is
                expired or was signed with a previous password hash
        """
        customer = self.retrieve(tokens.read_reset_token_subject(token))
        password_hash = self._require_account(customer)
        tokens.verify_reset_token(token, password_hash, algorithm=self.reset_token_algorithm)
        return customer

    def reset_password(self, token: str, password: str) -> None:
        """
        Set a new password using a reset token.

        The new hash invalidates this token and every other outstanding one.
        """
        customer = self.verify_reset_password_token(token)
        if not password:
            raise InvalidData("The password is not valid")
        self.update(customer.id, {"password": password})

    def decorate(
        self,
        customer: Customer,
        fields: Iterable[str],
        expand_fields: Iterable[str] = (),
    ) -> dict[str, Any]:
        """
        Project a customer onto the requested public fields.

        ``id`` and ``metadata`` are always included. Unknown or private
        names (password_hash) are skipped. Customers have no relations,
        so expand_fields has nothing to resolve.
        """
        wanted = set(fields) | set(_ALWAYS_DECORATED)
        return {name: getattr(customer, name) for name in PUBLIC_FIELDS if name in wanted}

    def _call_store(self, operation: Callable[[], T]) -> T:
        """Run a store call, wrapping store failures as DatabaseError."""
        try:
            return operation()
        except StoreError as err:
            raise DatabaseError(str(err)) from err

    def _ensure_email_available(self, email: str) -> None:
        existing = self._call_store(lambda: self.store.find_one({"email": email}))
        if existing is not None:
            raise InvalidData(f"A customer with email {email} already exists")

    def _reject_unknown_fields(self, fields: Mapping[str, Any], allowed: frozenset[str]) -> None:
        unknown = set(fields) - allowed
        if unknown:
            raise InvalidData(f"Invalid customer fields: {', '.join(sorted(unknown))}")

    def _check_profile_fields(self, fields: Mapping[str, Any]) -> None:
        for name in _PROFILE_FIELDS:
            value = fields.get(name)
            if value is not None and not isinstance(value, str):
                raise InvalidData(f"The {name} is not valid")

    def _require_account(self, customer: Customer) -> str:
        if not customer.has_account or not customer.password_hash:
            raise NotAllowed(
                "You must have an account to reset the password. Create an account first"
            )
        return customer.password_hash

    def _publish(self, event: CustomerEvent, payload: Mapping[str, Any]) -> None:
        if self.event_publisher is not None:
            self.event_publisher.publish(event.value, payload)

    def _hash_password(self, password: str) -> str:
        """
        Hash password using bcrypt with the configured cost factor.
        """
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()
