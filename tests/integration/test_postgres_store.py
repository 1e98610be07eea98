"""
Integration tests for PostgresCustomerStore.

Tests repository operations against a real PostgreSQL database.
Requires PostgreSQL to be running and reachable via DATABASE_URL.
"""

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresCustomerStore
from src.domain.customers import CustomerService
from src.domain.exceptions import DatabaseError, InvalidData, NotAllowed
from src.domain.ports import StoreError

pytestmark = pytest.mark.integration


class TestInsertAndFind:
    """Tests for insert and lookups."""

    def test_insert_assigns_id(self, pg_store: PostgresCustomerStore) -> None:
        customer = pg_store.insert({"email": "a@b.com", "has_account": False, "metadata": {}})

        assert str(uuid.UUID(customer.id)) == customer.id
        assert customer.metadata == {}
        assert pg_store.find_by_id(customer.id) == customer

    def test_insert_json_columns(self, pg_store: PostgresCustomerStore) -> None:
        address = {"address_1": "1 Main St", "city": "Springfield", "country_code": "us"}
        customer = pg_store.insert(
            {"email": "a@b.com", "billing_address": address, "metadata": {"src": "pos"}}
        )

        stored = pg_store.find_by_id(customer.id)
        assert stored is not None
        assert stored.billing_address == address
        assert stored.metadata == {"src": "pos"}

    def test_duplicate_email_raises_store_error(self, pg_store: PostgresCustomerStore) -> None:
        pg_store.insert({"email": "dup@example.com"})

        with pytest.raises(StoreError, match="customers_email_key"):
            pg_store.insert({"email": "dup@example.com"})

    def test_account_without_hash_violates_check(self, pg_store: PostgresCustomerStore) -> None:
        with pytest.raises(StoreError, match="customers_account_has_hash"):
            pg_store.insert({"email": "a@b.com", "has_account": True})

    def test_find_by_selector(self, pg_store: PostgresCustomerStore) -> None:
        pg_store.insert({"email": "guest@example.com"})
        member = pg_store.insert(
            {"email": "member@example.com", "has_account": True, "password_hash": "$2b$04$x"}
        )

        assert [c.id for c in pg_store.find({"has_account": True})] == [member.id]
        assert len(pg_store.find({})) == 2
        found = pg_store.find_one({"email": "member@example.com"})
        assert found is not None
        assert found.id == member.id

    def test_find_missing(self, pg_store: PostgresCustomerStore) -> None:
        assert pg_store.find_by_id(str(uuid.uuid4())) is None
        assert pg_store.find_one({"email": "nobody@example.com"}) is None


class TestUpdatePartial:
    """Tests for update_partial."""

    def test_update_fields(self, pg_store: PostgresCustomerStore) -> None:
        customer = pg_store.insert({"email": "a@b.com", "first_name": "Ada"})

        assert pg_store.update_partial(customer.id, {"last_name": "Lovelace"}) is True

        stored = pg_store.find_by_id(customer.id)
        assert stored is not None
        assert (stored.first_name, stored.last_name) == ("Ada", "Lovelace")

    def test_update_missing_returns_false(self, pg_store: PostgresCustomerStore) -> None:
        assert pg_store.update_partial(str(uuid.uuid4()), {"first_name": "Ada"}) is False

    def test_metadata_key_paths(self, pg_store: PostgresCustomerStore) -> None:
        customer = pg_store.insert({"email": "a@b.com", "metadata": {"a": 1}})

        pg_store.update_partial(customer.id, {"metadata.b": {"x": [1, 2]}, "metadata.c": "z"})

        stored = pg_store.find_by_id(customer.id)
        assert stored is not None
        assert stored.metadata == {"a": 1, "b": {"x": [1, 2]}, "c": "z"}

    def test_metadata_key_path_with_plain_field(self, pg_store: PostgresCustomerStore) -> None:
        customer = pg_store.insert({"email": "a@b.com"})

        pg_store.update_partial(customer.id, {"phone": "555-0100", "metadata.a": True})

        stored = pg_store.find_by_id(customer.id)
        assert stored is not None
        assert stored.phone == "555-0100"
        assert stored.metadata == {"a": True}


class TestDelete:
    """Tests for delete_by_id."""

    def test_delete(self, pg_store: PostgresCustomerStore) -> None:
        customer = pg_store.insert({"email": "a@b.com"})

        assert pg_store.delete_by_id(customer.id) is True
        assert pg_store.delete_by_id(customer.id) is False


class TestServiceOverPostgres:
    """CustomerService flows against the real schema."""

    def test_concurrent_metadata_writers(
        self, pg_service: CustomerService, pool: ConnectionPool
    ) -> None:
        """
        Simulate independent plugins writing their own keys at once.

        Expected: jsonb_set under the row lock keeps every key.
        """
        customer = pg_service.create({"email": "a@b.com"})
        keys = [f"plugin_{i}" for i in range(20)]
        errors: list[Exception] = []
        errors_lock = threading.Lock()

        def write(i: int, key: str) -> None:
            try:
                pg_service.set_metadata(customer.id, key, i)
            except Exception as e:
                with errors_lock:
                    errors.append(e)

        with ThreadPoolExecutor(max_workers=10) as executor:
            futures = [executor.submit(write, i, key) for i, key in enumerate(keys)]
            for f in futures:
                f.result()

        assert errors == []
        assert pg_service.retrieve(customer.id).metadata == {key: i for i, key in enumerate(keys)}

    def test_password_change_invalidates_reset_token(self, pg_service: CustomerService) -> None:
        customer = pg_service.create({"email": "a@b.com", "password": "secret"})
        token = pg_service.generate_reset_password_token(customer.id)
        assert pg_service.verify_reset_password_token(token).id == customer.id

        pg_service.update(customer.id, {"password": "newsecret"})

        with pytest.raises(NotAllowed):
            pg_service.verify_reset_password_token(token)

    def test_guest_upgraded_by_password_update(self, pg_service: CustomerService) -> None:
        customer = pg_service.create({"email": "guest@example.com"})

        pg_service.update(customer.id, {"password": "secret"})

        stored = pg_service.retrieve(customer.id)
        assert stored.has_account is True
        assert stored.password_hash is not None

    def test_duplicate_email(self, pg_service: CustomerService) -> None:
        pg_service.create({"email": "a@b.com"})

        with pytest.raises(InvalidData):
            pg_service.create({"email": "a@b.com"})

    def test_store_error_wrapped(self, pg_service: CustomerService) -> None:
        with pytest.raises(DatabaseError):
            pg_service.list({"nickname": "x"})
