"""
In-memory repository adapter - Implements CustomerStore protocol.

Dict-backed store for development and tests. Enforces the same rules the
PostgreSQL schema does (unique email, single-key metadata updates) under
one lock, so each call is atomic with respect to other threads.
"""

import copy
import threading
import uuid
from collections.abc import Mapping
from typing import Any

from src.domain.customer import SELECTABLE_FIELDS, Customer
from src.domain.ports import StoreError

_COLUMNS = (
    "email",
    "has_account",
    "password_hash",
    "first_name",
    "last_name",
    "phone",
    "billing_address",
    "metadata",
)


class InMemoryCustomerStore:
    """
    Implements CustomerStore protocol with a process-local dict.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Records are deep-copied in and out so callers never share state.
    """

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def find_by_id(self, customer_id: str) -> Customer | None:
        with self._lock:
            record = self._records.get(customer_id)
            return _to_customer(record) if record is not None else None

    def find_one(self, selector: Mapping[str, Any]) -> Customer | None:
        matches = self.find(selector)
        return matches[0] if matches else None

    def find(self, selector: Mapping[str, Any]) -> list[Customer]:
        _check_selector(selector)
        with self._lock:
            return [
                _to_customer(record)
                for record in self._records.values()
                if all(record.get(name) == value for name, value in selector.items())
            ]

    def insert(self, record: Mapping[str, Any]) -> Customer:
        unknown = set(record) - set(_COLUMNS)
        if unknown:
            raise StoreError(f"Unknown customer columns: {', '.join(sorted(unknown))}")

        stored = {name: copy.deepcopy(record.get(name)) for name in _COLUMNS}
        stored["id"] = str(uuid.uuid4())
        stored["has_account"] = bool(stored["has_account"])
        stored["metadata"] = stored["metadata"] or {}

        with self._lock:
            self._check_unique_email(stored["email"], stored["id"])
            self._records[stored["id"]] = stored
            return _to_customer(stored)

    def update_partial(self, customer_id: str, fields: Mapping[str, Any]) -> bool:
        with self._lock:
            record = self._records.get(customer_id)
            if record is None:
                return False

            updated = copy.deepcopy(record)
            for path, value in fields.items():
                name, _, key = path.partition(".")
                if name not in _COLUMNS:
                    raise StoreError(f"Unknown customer column: {name}")
                if key:
                    if name != "metadata":
                        raise StoreError(f"Column {name} does not support key paths")
                    updated["metadata"][key] = copy.deepcopy(value)
                else:
                    updated[name] = copy.deepcopy(value)

            if updated["email"] != record["email"]:
                self._check_unique_email(updated["email"], customer_id)
            self._records[customer_id] = updated
            return True

    def delete_by_id(self, customer_id: str) -> bool:
        with self._lock:
            return self._records.pop(customer_id, None) is not None

    def _check_unique_email(self, email: str, customer_id: str) -> None:
        for other_id, other in self._records.items():
            if other_id != customer_id and other["email"] == email:
                raise StoreError(
                    "duplicate key value violates unique constraint \"customers_email_key\""
                )


def _check_selector(selector: Mapping[str, Any]) -> None:
    unknown = set(selector) - SELECTABLE_FIELDS
    if unknown:
        raise StoreError(f"Unsupported selector fields: {', '.join(sorted(unknown))}")


def _to_customer(record: Mapping[str, Any]) -> Customer:
    return Customer(**copy.deepcopy(dict(record)))
