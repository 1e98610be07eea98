"""
PostgreSQL repository adapter - Implements CustomerStore protocol.

This module provides the PostgreSQL implementation of the domain's
store port using psycopg3 with raw SQL.

Metadata Writes Without Clobbering:
-----------------------------------
Several callers may write different metadata keys on the same customer
concurrently. A field path ``metadata.<key>`` is compiled into

    UPDATE customers SET metadata = jsonb_set(metadata, '{<key>}', <value>)

which Postgres evaluates against the current row under its row lock.
The stored mapping is never read into Python and written back, so two
writers touching disjoint keys cannot lose each other's work.

Error Translation:
------------------
Every psycopg error is re-raised as the domain's StoreError with the
database message intact; the domain service wraps it as DatabaseError.
"""

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

from src.domain.customer import SELECTABLE_FIELDS, Customer
from src.domain.ports import StoreError

logger = logging.getLogger(__name__)

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
_JSON_COLUMNS = frozenset({"billing_address", "metadata"})

_SELECT = """
    SELECT id, email, has_account, password_hash, first_name, last_name, phone,
           billing_address, metadata
    FROM customers
"""


@contextmanager
def _translate_errors() -> Iterator[None]:
    """Re-raise psycopg errors as StoreError."""
    try:
        yield
    except psycopg.Error as err:
        logger.warning("Customer store call failed: %s", err)
        raise StoreError(str(err)) from err


class PostgresCustomerStore:
    """
    Implements CustomerStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security; identifiers come
    from a fixed column list and are quoted via psycopg.sql.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def find_by_id(self, customer_id: str) -> Customer | None:
        with _translate_errors(), self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(_SELECT + " WHERE id = %s", (customer_id,))
                row = cursor.fetchone()
        return _to_customer(row) if row is not None else None

    def find_one(self, selector: Mapping[str, Any]) -> Customer | None:
        query, params = _select_query(selector, limit=1)
        with _translate_errors(), self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, params)
                row = cursor.fetchone()
        return _to_customer(row) if row is not None else None

    def find(self, selector: Mapping[str, Any]) -> list[Customer]:
        query, params = _select_query(selector)
        with _translate_errors(), self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, params)
                rows = cursor.fetchall()
        return [_to_customer(row) for row in rows]

    def insert(self, record: Mapping[str, Any]) -> Customer:
        """
        Insert a customer; the database assigns the id.

        The UNIQUE constraint on email makes a concurrent duplicate fail
        here even if the service's pre-check passed.
        """
        unknown = set(record) - set(_COLUMNS)
        if unknown:
            raise StoreError(f"Unknown customer columns: {', '.join(sorted(unknown))}")

        names = [name for name in _COLUMNS if name in record]
        query = sql.SQL("INSERT INTO customers ({}) VALUES ({}) RETURNING {}").format(
            sql.SQL(", ").join(sql.Identifier(name) for name in names),
            sql.SQL(", ").join(sql.Placeholder() for _ in names),
            sql.SQL(", ").join(sql.Identifier(name) for name in ("id", *_COLUMNS)),
        )
        params = [_adapt(name, record[name]) for name in names]

        with _translate_errors(), self._pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(query, params)
                row = cursor.fetchone()
            conn.commit()
        return _to_customer(row)

    def update_partial(self, customer_id: str, fields: Mapping[str, Any]) -> bool:
        """
        Set fields on one customer in a single UPDATE statement.

        Plain names overwrite their column; ``metadata.<key>`` paths are
        folded into nested jsonb_set() calls on the metadata column.
        """
        assignments: list[sql.Composable] = []
        params: list[Any] = []
        metadata_expr: sql.Composable = sql.SQL("COALESCE(metadata, '{}'::jsonb)")
        metadata_params: list[Any] = []

        for path, value in fields.items():
            name, _, key = path.partition(".")
            if name not in _COLUMNS:
                raise StoreError(f"Unknown customer column: {name}")
            if key:
                if name != "metadata":
                    raise StoreError(f"Column {name} does not support key paths")
                metadata_expr = sql.SQL("jsonb_set({}, %s::text[], %s, true)").format(
                    metadata_expr
                )
                metadata_params.extend([[key], Jsonb(value)])
            else:
                assignments.append(sql.SQL("{} = %s").format(sql.Identifier(name)))
                params.append(_adapt(name, value))

        if metadata_params:
            assignments.append(sql.SQL("metadata = {}").format(metadata_expr))
            params.extend(metadata_params)

        assignments.append(sql.SQL("updated_at = NOW()"))
        query = sql.SQL("UPDATE customers SET {} WHERE id = %s").format(
            sql.SQL(", ").join(assignments)
        )
        params.append(customer_id)

        with _translate_errors(), self._pool.connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute(query, params)
                updated = cursor.rowcount == 1
            conn.commit()
        return updated

    def delete_by_id(self, customer_id: str) -> bool:
        with _translate_errors(), self._pool.connection() as conn:
            with conn.cursor() as cursor:
                cursor.execute("DELETE FROM customers WHERE id = %s", (customer_id,))
                deleted = cursor.rowcount == 1
            conn.commit()
        return deleted


def _select_query(
    selector: Mapping[str, Any], limit: int | None = None
) -> tuple[sql.Composable, list[Any]]:
    unknown = set(selector) - SELECTABLE_FIELDS
    if unknown:
        raise StoreError(f"Unsupported selector fields: {', '.join(sorted(unknown))}")

    query: sql.Composable = sql.SQL(_SELECT)
    params: list[Any] = []
    if selector:
        conditions = [sql.SQL("{} = %s").format(sql.Identifier(name)) for name in selector]
        query = sql.SQL("{} WHERE {}").format(query, sql.SQL(" AND ").join(conditions))
        params.extend(selector.values())
    query = sql.SQL("{} ORDER BY created_at").format(query)
    if limit is not None:
        query = sql.SQL("{} LIMIT %s").format(query)
        params.append(limit)
    return query, params


def _adapt(name: str, value: Any) -> Any:
    if name in _JSON_COLUMNS and value is not None:
        return Jsonb(value)
    return value


def _to_customer(row: Mapping[str, Any]) -> Customer:
    return Customer(
        id=str(row["id"]),
        email=row["email"],
        has_account=row["has_account"],
        password_hash=row["password_hash"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        phone=row["phone"],
        billing_address=row["billing_address"],
        metadata=row["metadata"] or {},
    )


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
