# SmartHisab - Bookkeeping application for small businesses
# Copyright (c) 2025 SmartHisab contributors
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for SmartHisab.

This module provides all low-level accessors for the SQLite database used by
the application. It is responsible for:

- Initializing the database schema.
- CRUD operations on owners (business accounts) and their customers.
- CRUD operations on customer transactions and cashbook entries.
- Searching transactions with combinable filters.
- Storing customer messages (including disputes) and owner support messages.

The database is the single source of truth for every balance shown by the
application. Balances themselves are never stored: they are recomputed by
`smart_hisab.ledger` from the entries returned here.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

1) owners
   One row per business owner account.

   - id             INTEGER PRIMARY KEY AUTOINCREMENT
   - name           TEXT NOT NULL
   - email          TEXT NOT NULL UNIQUE
   - mobile_number  TEXT
   - business_name  TEXT
   - created_at     TEXT NOT NULL  -- ISO datetime, UTC
   - updated_at     TEXT

2) customers
   Customers of an owner. `customer_code` is the identifier a customer uses
   to open the self-service portal.

   - id             INTEGER PRIMARY KEY AUTOINCREMENT
   - owner_id       INTEGER NOT NULL -> owners.id (ON DELETE CASCADE)
   - name           TEXT NOT NULL
   - phone          TEXT NOT NULL
   - customer_code  TEXT NOT NULL UNIQUE
   - created_at     TEXT NOT NULL
   - updated_at     TEXT

3) transactions
   Debit / credit entries between an owner and one of its customers.

   - id             INTEGER PRIMARY KEY AUTOINCREMENT
   - owner_id       INTEGER NOT NULL -> owners.id (ON DELETE CASCADE)
   - customer_id    INTEGER NOT NULL -> customers.id (ON DELETE CASCADE)
   - kind           TEXT NOT NULL  -- 'debit' | 'credit'
   - amount_cents   INTEGER NOT NULL (> 0)
   - description    TEXT NOT NULL
   - date           TEXT NOT NULL  -- ISO date 'YYYY-MM-DD'
   - created_at     TEXT NOT NULL
   - updated_at     TEXT

4) cashbook_entries
   Income / expense lines of an owner, not attributed to any customer.

   Same columns as `transactions` without `customer_id`, with
   kind in ('income', 'expense').

5) customer_messages
   Messages sent by a customer to its owner through the portal.

   - id             INTEGER PRIMARY KEY AUTOINCREMENT
   - owner_id       INTEGER NOT NULL -> owners.id (ON DELETE CASCADE)
   - customer_id    INTEGER NOT NULL -> customers.id (ON DELETE CASCADE)
   - transaction_id INTEGER -> transactions.id (ON DELETE SET NULL)
   - kind           TEXT NOT NULL  -- 'general' | 'complaint' | 'dispute'
   - subject, body  TEXT NOT NULL
   - status         TEXT NOT NULL  -- 'pending' | 'in_progress' | 'resolved'
   - reply          TEXT           -- owner's answer
   - created_at     TEXT NOT NULL
   - updated_at     TEXT

6) support_messages
   Messages sent by an owner to the application administrator.

   - id             INTEGER PRIMARY KEY AUTOINCREMENT
   - owner_id       INTEGER NOT NULL -> owners.id (ON DELETE CASCADE)
   - email          TEXT NOT NULL  -- reply-to address
   - topic          TEXT NOT NULL
   - description    TEXT NOT NULL
   - is_read        INTEGER NOT NULL (0 / 1)
   - created_at     TEXT NOT NULL
   - updated_at     TEXT


------------------------------------------------------------------------------
SQLite Notes
------------------------------------------------------------------------------

- All timestamps are stored as ISO-8601 text (UTC).
- Amounts are stored as integer cents and materialized as `Decimal`.
- Foreign key enforcement is explicitly enabled on every connection, so
  deleting a customer removes its transactions and deleting an owner removes
  everything it owns.
- Every entry-level operation is scoped by owner: an id belonging to another
  owner behaves exactly like a missing id.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from pathlib import Path

import pandas as pd

from .ledger import EntryKind, LedgerDomain, MonetaryEntry

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for SmartHisab.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


class RecordNotFoundError(LookupError):
    """Raised when an owner-scoped record does not exist."""


@dataclass(frozen=True)
class Owner:
    """A business owner account."""

    id: int
    name: str
    email: str
    mobile_number: str | None
    business_name: str | None
    created_at: datetime
    updated_at: datetime | None


@dataclass(frozen=True)
class Customer:
    """A customer of an owner."""

    id: int
    owner_id: int
    name: str
    phone: str
    customer_code: str
    created_at: datetime
    updated_at: datetime | None


@dataclass(frozen=True)
class NewOwner:
    name: str
    email: str
    mobile_number: str | None = None
    business_name: str | None = None


@dataclass(frozen=True)
class OwnerUpdate:
    """Fields that can be updated on an owner. Only non-None values apply."""

    name: str | None = None
    mobile_number: str | None = None
    business_name: str | None = None


@dataclass(frozen=True)
class NewCustomer:
    name: str
    phone: str
    customer_code: str


@dataclass(frozen=True)
class CustomerUpdate:
    name: str | None = None
    phone: str | None = None


@dataclass(frozen=True)
class NewEntry:
    """
    Data required to create a transaction or a cashbook entry.

    `customer_id` is mandatory for transactions and must be None for
    cashbook entries. Values are expected to be validated already (see
    `ledger_service`).
    """

    kind: EntryKind
    amount: Decimal
    occurred_on: date
    description: str
    customer_id: int | None = None


@dataclass(frozen=True)
class EntryUpdate:
    """
    Fields that can be updated on an existing entry.

    Each attribute is optional. Only non-None values are applied.
    """

    kind: EntryKind | None = None
    amount: Decimal | None = None
    occurred_on: date | None = None
    description: str | None = None


@dataclass(frozen=True)
class TransactionsFilter:
    """
    Filters used to search transactions. Date bounds are inclusive.

    Attributes
    ----------
    owner_id:
        Owner whose transactions are searched (mandatory).
    customer_id:
        Restrict to one customer.
    kind:
        Restrict to debits or credits.
    start, end:
        Inclusive bounds on the transaction date.
    description_contains:
        Case-insensitive substring search on the description.
    min_amount, max_amount:
        Bounds on the (positive) amount.
    """

    owner_id: int
    customer_id: int | None = None
    kind: EntryKind | None = None

    start: date | None = None
    end: date | None = None

    description_contains: str | None = None

    min_amount: Decimal | None = None
    max_amount: Decimal | None = None


class MessageKind(str, Enum):
    """Category of a message sent by a customer to the owner."""

    GENERAL = "general"
    COMPLAINT = "complaint"
    DISPUTE = "dispute"


class MessageStatus(str, Enum):
    """Handling status of a customer message."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class CustomerMessage:
    """
    A message sent by a customer to the owner of its ledger.

    A dispute always references one of the customer's own transactions.
    """

    id: int
    owner_id: int
    customer_id: int
    customer_name: str
    transaction_id: int | None
    kind: MessageKind
    subject: str
    body: str
    status: MessageStatus
    reply: str | None
    created_at: datetime
    updated_at: datetime | None


@dataclass(frozen=True)
class NewCustomerMessage:
    subject: str
    body: str
    kind: MessageKind = MessageKind.GENERAL
    transaction_id: int | None = None


@dataclass(frozen=True)
class CustomerMessageUpdate:
    """Fields the owner can change on a customer message."""

    reply: str | None = None
    status: MessageStatus | None = None


@dataclass(frozen=True)
class SupportMessage:
    """A message sent by an owner to the application administrator."""

    id: int
    owner_id: int
    owner_name: str
    email: str
    topic: str
    description: str
    is_read: bool
    created_at: datetime
    updated_at: datetime | None


@dataclass(frozen=True)
class NewSupportMessage:
    email: str
    topic: str
    description: str


_ENTRY_TABLES: dict[LedgerDomain, str] = {
    LedgerDomain.TRANSACTION: "transactions",
    LedgerDomain.CASHBOOK: "cashbook_entries",
}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection with foreign keys enabled.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    conn = sqlite3.connect(cfg.path)
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS owners (
            id             INTEGER PRIMARY KEY AUTOINCREMENT,
            name           TEXT    NOT NULL,
            email          TEXT    NOT NULL UNIQUE,
            mobile_number  TEXT,
            business_name  TEXT,
            created_at     TEXT    NOT NULL,
            updated_at     TEXT
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS customers (
            id             INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id       INTEGER NOT NULL,
            name           TEXT    NOT NULL,
            phone          TEXT    NOT NULL,
            customer_code  TEXT    NOT NULL UNIQUE,
            created_at     TEXT    NOT NULL,
            updated_at     TEXT,

            FOREIGN KEY (owner_id) REFERENCES owners(id) ON DELETE CASCADE
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS transactions (
            id             INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id       INTEGER NOT NULL,
            customer_id    INTEGER NOT NULL,
            kind           TEXT    NOT NULL CHECK (kind IN ('debit', 'credit')),
            amount_cents   INTEGER NOT NULL CHECK (amount_cents > 0),
            description    TEXT    NOT NULL,
            date           TEXT    NOT NULL,  -- ISO date 'YYYY-MM-DD'
            created_at     TEXT    NOT NULL,
            updated_at     TEXT,

            FOREIGN KEY (owner_id) REFERENCES owners(id) ON DELETE CASCADE,
            FOREIGN KEY (customer_id) REFERENCES customers(id) ON DELETE CASCADE
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS cashbook_entries (
            id             INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id       INTEGER NOT NULL,
            kind           TEXT    NOT NULL CHECK (kind IN ('income', 'expense')),
            amount_cents   INTEGER NOT NULL CHECK (amount_cents > 0),
            description    TEXT    NOT NULL,
            date           TEXT    NOT NULL,
            created_at     TEXT    NOT NULL,
            updated_at     TEXT,

            FOREIGN KEY (owner_id) REFERENCES owners(id) ON DELETE CASCADE
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS customer_messages (
            id             INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id       INTEGER NOT NULL,
            customer_id    INTEGER NOT NULL,
            transaction_id INTEGER,
            kind           TEXT    NOT NULL DEFAULT 'general'
                           CHECK (kind IN ('general', 'complaint', 'dispute')),
            subject        TEXT    NOT NULL,
            body           TEXT    NOT NULL,
            status         TEXT    NOT NULL DEFAULT 'pending'
                           CHECK (status IN ('pending', 'in_progress', 'resolved')),
            reply          TEXT,
            created_at     TEXT    NOT NULL,
            updated_at     TEXT,

            FOREIGN KEY (owner_id) REFERENCES owners(id) ON DELETE CASCADE,
            FOREIGN KEY (customer_id) REFERENCES customers(id) ON DELETE CASCADE,
            FOREIGN KEY (transaction_id) REFERENCES transactions(id) ON DELETE SET NULL
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS support_messages (
            id             INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id       INTEGER NOT NULL,
            email          TEXT    NOT NULL,
            topic          TEXT    NOT NULL,
            description    TEXT    NOT NULL,
            is_read        INTEGER NOT NULL DEFAULT 0,
            created_at     TEXT    NOT NULL,
            updated_at     TEXT,

            FOREIGN KEY (owner_id) REFERENCES owners(id) ON DELETE CASCADE
        );
        """
    )

    # Indexes
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_customers_owner
            ON customers(owner_id);
        """
    )
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_transactions_owner_customer
            ON transactions(owner_id, customer_id, date);
        """
    )
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_cashbook_owner_date
            ON cashbook_entries(owner_id, date);
        """
    )
    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_customer_messages_owner
            ON customer_messages(owner_id, customer_id);
        """
    )

    conn.commit()


def _now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


def to_cents(amount: Decimal) -> int:
    """
    Convert a Decimal amount to integer cents.

    Raises
    ------
    ValueError
        If the amount has more than two decimal places.
    """
    cents = amount * 100
    if cents != cents.to_integral_value():
        raise ValueError(f"Amount {amount} has more than two decimal places.")
    return int(cents)


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a two-decimal Decimal."""
    return Decimal(int(cents)).scaleb(-2)


def _row_to_owner(row: tuple) -> Owner:
    (
        owner_id,
        name,
        email,
        mobile_number,
        business_name,
        created_at_str,
        updated_at_str,
    ) = row
    return Owner(
        id=owner_id,
        name=name,
        email=email,
        mobile_number=mobile_number,
        business_name=business_name,
        created_at=datetime.fromisoformat(created_at_str),
        updated_at=_parse_ts(updated_at_str),
    )


def _row_to_customer(row: tuple) -> Customer:
    (
        customer_id,
        owner_id,
        name,
        phone,
        customer_code,
        created_at_str,
        updated_at_str,
    ) = row
    return Customer(
        id=customer_id,
        owner_id=owner_id,
        name=name,
        phone=phone,
        customer_code=customer_code,
        created_at=datetime.fromisoformat(created_at_str),
        updated_at=_parse_ts(updated_at_str),
    )


def _row_to_entry(row: tuple) -> MonetaryEntry:
    """
    Convert a database row into a MonetaryEntry.

    Expected row layout:
      (id, owner_id, customer_id, kind, amount_cents, description, date,
       created_at, updated_at)

    `customer_id` is selected as NULL for cashbook entries.
    """
    (
        entry_id,
        owner_id,
        customer_id,
        kind,
        amount_cents,
        description,
        date_str,
        created_at_str,
        updated_at_str,
    ) = row

    return MonetaryEntry(
        id=entry_id,
        owner_id=owner_id,
        kind=EntryKind(kind),
        amount=from_cents(amount_cents),
        occurred_on=date.fromisoformat(date_str),
        recorded_at=datetime.fromisoformat(created_at_str),
        description=description,
        subject_id=customer_id,
        updated_at=_parse_ts(updated_at_str),
    )


_OWNER_COLUMNS = (
    "id, name, email, mobile_number, business_name, created_at, updated_at"
)
_CUSTOMER_COLUMNS = (
    "id, owner_id, name, phone, customer_code, created_at, updated_at"
)
_TRANSACTION_COLUMNS = (
    "id, owner_id, customer_id, kind, amount_cents, description, date, "
    "created_at, updated_at"
)
_CASHBOOK_COLUMNS = (
    "id, owner_id, NULL AS customer_id, kind, amount_cents, description, date, "
    "created_at, updated_at"
)


def _entry_columns(domain: LedgerDomain) -> str:
    if domain is LedgerDomain.TRANSACTION:
        return _TRANSACTION_COLUMNS
    return _CASHBOOK_COLUMNS


def _check_kind_domain(kind: EntryKind, domain: LedgerDomain) -> None:
    if kind.domain is not domain:
        raise ValueError(
            f"Kind {kind.value!r} is not valid for {domain.value} entries."
        )


# ---------------------------------------------------------------------------
# Public API: schema
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if missing.
    - Creates tables and indexes if they are missing.
    - This function is idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Owners
# ---------------------------------------------------------------------------


def insert_owner(cfg: DatabaseConfig, new_owner: NewOwner) -> Owner:
    """
    Insert a new owner account.

    Raises
    ------
    ValueError
        If another owner already uses the same email address.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        try:
            cur = conn.execute(
                """
                INSERT INTO owners (
                    name, email, mobile_number, business_name, created_at
                )
                VALUES (?, ?, ?, ?, ?);
                """,
                (
                    new_owner.name,
                    new_owner.email,
                    new_owner.mobile_number,
                    new_owner.business_name,
                    _now_utc_iso(),
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise ValueError(
                f"An owner with email {new_owner.email!r} already exists."
            ) from exc
        owner_id = cur.lastrowid
        conn.commit()
    finally:
        conn.close()

    logger.info("Created owner #%s (%s)", owner_id, new_owner.email)
    return get_owner_by_id(cfg, owner_id)


def get_owner_by_id(cfg: DatabaseConfig, owner_id: int) -> Owner:
    """
    Load an owner by id.

    Raises
    ------
    RecordNotFoundError
        If no owner has this id.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        row = conn.execute(
            f"SELECT {_OWNER_COLUMNS} FROM owners WHERE id = ?;",
            (owner_id,),
        ).fetchone()
    finally:
        conn.close()

    if row is None:
        raise RecordNotFoundError(f"Owner #{owner_id} not found.")
    return _row_to_owner(row)


def list_owners(cfg: DatabaseConfig) -> list[Owner]:
    """Return every owner account, newest first."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        rows = conn.execute(
            f"SELECT {_OWNER_COLUMNS} FROM owners ORDER BY created_at DESC, id DESC;"
        ).fetchall()
    finally:
        conn.close()

    return [_row_to_owner(r) for r in rows]


def count_owners(cfg: DatabaseConfig) -> int:
    init_database(cfg)

    conn = _connect(cfg)
    try:
        (count,) = conn.execute("SELECT COUNT(*) FROM owners;").fetchone()
    finally:
        conn.close()
    return int(count)


def update_owner(cfg: DatabaseConfig, owner_id: int, update: OwnerUpdate) -> Owner:
    """
    Apply a partial update to an owner.

    Raises
    ------
    ValueError
        If no fields are provided for update.
    RecordNotFoundError
        If the owner does not exist.
    """
    init_database(cfg)

    fields: list[str] = []
    params: list[object] = []

    if update.name is not None:
        fields.append("name = ?")
        params.append(update.name)
    if update.mobile_number is not None:
        fields.append("mobile_number = ?")
        params.append(update.mobile_number)
    if update.business_name is not None:
        fields.append("business_name = ?")
        params.append(update.business_name)

    if not fields:
        raise ValueError("No fields to update in OwnerUpdate.")

    fields.append("updated_at = ?")
    params.append(_now_utc_iso())
    params.append(owner_id)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"UPDATE owners SET {', '.join(fields)} WHERE id = ?;",
            params,
        )
        if cur.rowcount == 0:
            raise RecordNotFoundError(f"Owner #{owner_id} not found.")
        conn.commit()
    finally:
        conn.close()

    logger.info("Updated owner #%s", owner_id)
    return get_owner_by_id(cfg, owner_id)


def delete_owner(cfg: DatabaseConfig, owner_id: int) -> None:
    """
    Delete an owner and, through foreign key cascades, all of its customers,
    transactions and cashbook entries.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute("DELETE FROM owners WHERE id = ?;", (owner_id,))
        if cur.rowcount == 0:
            raise RecordNotFoundError(f"Owner #{owner_id} not found.")
        conn.commit()
    finally:
        conn.close()

    logger.info("Deleted owner #%s and all associated data", owner_id)


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


def insert_customer(
    cfg: DatabaseConfig,
    owner_id: int,
    new_customer: NewCustomer,
) -> Customer:
    """
    Insert a new customer for an owner.

    Raises
    ------
    RecordNotFoundError
        If the owner does not exist.
    ValueError
        If the customer code is already used.
    """
    get_owner_by_id(cfg, owner_id)

    conn = _connect(cfg)
    try:
        try:
            cur = conn.execute(
                """
                INSERT INTO customers (
                    owner_id, name, phone, customer_code, created_at
                )
                VALUES (?, ?, ?, ?, ?);
                """,
                (
                    owner_id,
                    new_customer.name,
                    new_customer.phone,
                    new_customer.customer_code,
                    _now_utc_iso(),
                ),
            )
        except sqlite3.IntegrityError as exc:
            raise ValueError(
                f"Customer code {new_customer.customer_code!r} is already in use."
            ) from exc
        customer_id = cur.lastrowid
        conn.commit()
    finally:
        conn.close()

    logger.info("Created customer #%s for owner #%s", customer_id, owner_id)
    return get_customer(cfg, owner_id, customer_id)


def get_customer(cfg: DatabaseConfig, owner_id: int, customer_id: int) -> Customer:
    """
    Load a customer belonging to `owner_id`.

    Raises
    ------
    RecordNotFoundError
        If the customer does not exist or belongs to another owner.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        row = conn.execute(
            f"""
            SELECT {_CUSTOMER_COLUMNS}
              FROM customers
             WHERE id = ? AND owner_id = ?;
            """,
            (customer_id, owner_id),
        ).fetchone()
    finally:
        conn.close()

    if row is None:
        raise RecordNotFoundError(f"Customer #{customer_id} not found.")
    return _row_to_customer(row)


def get_customer_by_code(cfg: DatabaseConfig, customer_code: str) -> Customer:
    """
    Load a customer from its portal code, regardless of owner.

    Raises
    ------
    RecordNotFoundError
        If no customer uses this code.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        row = conn.execute(
            f"SELECT {_CUSTOMER_COLUMNS} FROM customers WHERE customer_code = ?;",
            (customer_code,),
        ).fetchone()
    finally:
        conn.close()

    if row is None:
        raise RecordNotFoundError(f"Customer code {customer_code!r} not found.")
    return _row_to_customer(row)


def list_customers(cfg: DatabaseConfig, owner_id: int) -> list[Customer]:
    """Return the customers of an owner, in creation order."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        rows = conn.execute(
            f"""
            SELECT {_CUSTOMER_COLUMNS}
              FROM customers
             WHERE owner_id = ?
             ORDER BY id;
            """,
            (owner_id,),
        ).fetchall()
    finally:
        conn.close()

    return [_row_to_customer(r) for r in rows]


def count_customers(cfg: DatabaseConfig, owner_id: int) -> int:
    init_database(cfg)

    conn = _connect(cfg)
    try:
        (count,) = conn.execute(
            "SELECT COUNT(*) FROM customers WHERE owner_id = ?;",
            (owner_id,),
        ).fetchone()
    finally:
        conn.close()
    return int(count)


def customer_code_exists(cfg: DatabaseConfig, customer_code: str) -> bool:
    init_database(cfg)

    conn = _connect(cfg)
    try:
        row = conn.execute(
            "SELECT 1 FROM customers WHERE customer_code = ? LIMIT 1;",
            (customer_code,),
        ).fetchone()
    finally:
        conn.close()
    return row is not None


def update_customer(
    cfg: DatabaseConfig,
    owner_id: int,
    customer_id: int,
    update: CustomerUpdate,
) -> Customer:
    """
    Apply a partial update to a customer of `owner_id`.

    Raises
    ------
    ValueError
        If no fields are provided for update.
    RecordNotFoundError
        If the customer does not exist or belongs to another owner.
    """
    init_database(cfg)

    fields: list[str] = []
    params: list[object] = []

    if update.name is not None:
        fields.append("name = ?")
        params.append(update.name)
    if update.phone is not None:
        fields.append("phone = ?")
        params.append(update.phone)

    if not fields:
        raise ValueError("No fields to update in CustomerUpdate.")

    fields.append("updated_at = ?")
    params.append(_now_utc_iso())
    params.extend([customer_id, owner_id])

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"""
            UPDATE customers
               SET {", ".join(fields)}
             WHERE id = ? AND owner_id = ?;
            """,
            params,
        )
        if cur.rowcount == 0:
            raise RecordNotFoundError(f"Customer #{customer_id} not found.")
        conn.commit()
    finally:
        conn.close()

    logger.info("Updated customer #%s", customer_id)
    return get_customer(cfg, owner_id, customer_id)


def delete_customer(cfg: DatabaseConfig, owner_id: int, customer_id: int) -> int:
    """
    Delete a customer and all of its transactions.

    Returns
    -------
    int
        Number of transactions removed along with the customer.
    """
    init_database(cfg)

    conn = _connect(cfg)
    try:
        (tx_count,) = conn.execute(
            "SELECT COUNT(*) FROM transactions WHERE customer_id = ? AND owner_id = ?;",
            (customer_id, owner_id),
        ).fetchone()
        cur = conn.execute(
            "DELETE FROM customers WHERE id = ? AND owner_id = ?;",
            (customer_id, owner_id),
        )
        if cur.rowcount == 0:
            raise RecordNotFoundError(f"Customer #{customer_id} not found.")
        conn.commit()
    finally:
        conn.close()

    logger.info(
        "Deleted customer #%s and %s related transaction(s)", customer_id, tx_count
    )
    return int(tx_count)


# ---------------------------------------------------------------------------
# Entries (transactions and cashbook)
# ---------------------------------------------------------------------------


def get_entry(
    cfg: DatabaseConfig,
    domain: LedgerDomain,
    owner_id: int,
    entry_id: int,
) -> MonetaryEntry:
    """
    Load a single transaction or cashbook entry belonging to `owner_id`.

    Raises
    ------
    RecordNotFoundError
        If the entry does not exist or belongs to another owner.
    """
    init_database(cfg)
    table = _ENTRY_TABLES[domain]

    conn = _connect(cfg)
    try:
        row = conn.execute(
            f"""
            SELECT {_entry_columns(domain)}
              FROM {table}
             WHERE id = ? AND owner_id = ?;
            """,
            (entry_id, owner_id),
        ).fetchone()
    finally:
        conn.close()

    if row is None:
        raise RecordNotFoundError(f"{domain.value.capitalize()} #{entry_id} not found.")
    return _row_to_entry(row)


def _date_iso(value: date) -> str:
    """ISO 'YYYY-MM-DD' of a calendar date; a datetime is truncated to its date."""
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def _prepare_new_entry(domain: LedgerDomain, new_entry: NewEntry) -> int:
    """Check a NewEntry against its domain and return its amount in cents."""
    _check_kind_domain(new_entry.kind, domain)
    amount_cents = to_cents(new_entry.amount)
    if domain is LedgerDomain.TRANSACTION:
        if new_entry.customer_id is None:
            raise ValueError("A transaction must reference a customer.")
    elif new_entry.customer_id is not None:
        raise ValueError("Cashbook entries cannot reference a customer.")
    return amount_cents


def _insert_entry_row(
    conn: sqlite3.Connection,
    domain: LedgerDomain,
    owner_id: int,
    new_entry: NewEntry,
    amount_cents: int,
) -> int:
    """Insert one entry row on an open connection and return its id (no commit)."""
    if domain is LedgerDomain.TRANSACTION:
        cur = conn.execute(
            """
            INSERT INTO transactions (
                owner_id, customer_id, kind, amount_cents,
                description, date, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            (
                owner_id,
                new_entry.customer_id,
                new_entry.kind.value,
                amount_cents,
                new_entry.description,
                _date_iso(new_entry.occurred_on),
                _now_utc_iso(),
            ),
        )
    else:
        cur = conn.execute(
            """
            INSERT INTO cashbook_entries (
                owner_id, kind, amount_cents, description, date, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (
                owner_id,
                new_entry.kind.value,
                amount_cents,
                new_entry.description,
                _date_iso(new_entry.occurred_on),
                _now_utc_iso(),
            ),
        )
    return int(cur.lastrowid)


def insert_entry(
    cfg: DatabaseConfig,
    domain: LedgerDomain,
    owner_id: int,
    new_entry: NewEntry,
) -> MonetaryEntry:
    """
    Insert a new transaction or cashbook entry.

    Notes
    -----
    - For transactions, the customer must belong to `owner_id`.
    - `created_at` is assigned here and never changes afterwards.
    """
    amount_cents = _prepare_new_entry(domain, new_entry)

    if domain is LedgerDomain.TRANSACTION:
        get_customer(cfg, owner_id, new_entry.customer_id)
    else:
        get_owner_by_id(cfg, owner_id)

    conn = _connect(cfg)
    try:
        entry_id = _insert_entry_row(conn, domain, owner_id, new_entry, amount_cents)
        conn.commit()
    finally:
        conn.close()

    logger.info(
        "Recorded %s #%s (%s %s) for owner #%s",
        domain.value,
        entry_id,
        new_entry.kind.value,
        new_entry.amount,
        owner_id,
    )
    return get_entry(cfg, domain, owner_id, entry_id)


def insert_entries(
    cfg: DatabaseConfig,
    domain: LedgerDomain,
    owner_id: int,
    new_entries: Sequence[NewEntry],
) -> list[int]:
    """
    Insert a batch of entries in a single transaction.

    Every entry is checked (kind, amount, customer ownership) before the
    first row is written. Rows are written on one connection and committed
    once: if any insert fails, the whole batch is rolled back and nothing
    is stored.

    Returns
    -------
    list[int]
        Ids of the inserted entries, in input order.

    Raises
    ------
    RecordNotFoundError
        If the owner, or a referenced customer, does not exist for
        `owner_id`.
    """
    get_owner_by_id(cfg, owner_id)
    prepared = [(e, _prepare_new_entry(domain, e)) for e in new_entries]

    conn = _connect(cfg)
    try:
        if domain is LedgerDomain.TRANSACTION:
            known = {
                row[0]
                for row in conn.execute(
                    "SELECT id FROM customers WHERE owner_id = ?;", (owner_id,)
                )
            }
            for new_entry, _ in prepared:
                if new_entry.customer_id not in known:
                    raise RecordNotFoundError(
                        f"Customer #{new_entry.customer_id} not found."
                    )

        try:
            entry_ids = [
                _insert_entry_row(conn, domain, owner_id, new_entry, cents)
                for new_entry, cents in prepared
            ]
            conn.commit()
        except Exception:
            conn.rollback()
            raise
    finally:
        conn.close()

    logger.info(
        "Recorded %s %s entries for owner #%s in one batch",
        len(entry_ids),
        domain.value,
        owner_id,
    )
    return entry_ids


def update_entry(
    cfg: DatabaseConfig,
    domain: LedgerDomain,
    owner_id: int,
    entry_id: int,
    update: EntryUpdate,
) -> MonetaryEntry:
    """
    Apply a partial update to an existing entry.

    Raises
    ------
    ValueError
        If no fields are provided, or if the kind belongs to the other domain.
    RecordNotFoundError
        If the entry does not exist or belongs to another owner.
    """
    init_database(cfg)
    table = _ENTRY_TABLES[domain]

    fields: list[str] = []
    params: list[object] = []

    if update.kind is not None:
        _check_kind_domain(update.kind, domain)
        fields.append("kind = ?")
        params.append(update.kind.value)
    if update.amount is not None:
        fields.append("amount_cents = ?")
        params.append(to_cents(update.amount))
    if update.occurred_on is not None:
        fields.append("date = ?")
        params.append(_date_iso(update.occurred_on))
    if update.description is not None:
        fields.append("description = ?")
        params.append(update.description)

    if not fields:
        raise ValueError("No fields to update in EntryUpdate.")

    # Always update the updated_at timestamp
    fields.append("updated_at = ?")
    params.append(_now_utc_iso())
    params.extend([entry_id, owner_id])

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"""
            UPDATE {table}
               SET {", ".join(fields)}
             WHERE id = ? AND owner_id = ?;
            """,
            params,
        )
        if cur.rowcount == 0:
            raise RecordNotFoundError(
                f"{domain.value.capitalize()} #{entry_id} not found."
            )
        conn.commit()
    finally:
        conn.close()

    logger.info("Updated %s #%s", domain.value, entry_id)
    return get_entry(cfg, domain, owner_id, entry_id)


def delete_entry(
    cfg: DatabaseConfig,
    domain: LedgerDomain,
    owner_id: int,
    entry_id: int,
) -> None:
    """Permanently delete a transaction or cashbook entry."""
    init_database(cfg)
    table = _ENTRY_TABLES[domain]

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"DELETE FROM {table} WHERE id = ? AND owner_id = ?;",
            (entry_id, owner_id),
        )
        if cur.rowcount == 0:
            raise RecordNotFoundError(
                f"{domain.value.capitalize()} #{entry_id} not found."
            )
        conn.commit()
    finally:
        conn.close()

    logger.info("Deleted %s #%s", domain.value, entry_id)


def list_transactions(
    cfg: DatabaseConfig,
    owner_id: int,
    customer_id: int | None = None,
) -> list[MonetaryEntry]:
    """
    Return the transactions of an owner, optionally for a single customer.

    Rows are returned in chronological order (date, creation time, id).
    """
    init_database(cfg)

    where = "owner_id = ?"
    params: list[object] = [owner_id]
    if customer_id is not None:
        where += " AND customer_id = ?"
        params.append(customer_id)

    conn = _connect(cfg)
    try:
        rows = conn.execute(
            f"""
            SELECT {_TRANSACTION_COLUMNS}
              FROM transactions
             WHERE {where}
             ORDER BY date, created_at, id;
            """,
            params,
        ).fetchall()
    finally:
        conn.close()

    logger.debug("Loaded %s transaction(s) for owner #%s", len(rows), owner_id)
    return [_row_to_entry(r) for r in rows]


def list_cashbook_entries(
    cfg: DatabaseConfig,
    owner_id: int,
    start: date | None = None,
    end: date | None = None,
) -> list[MonetaryEntry]:
    """
    Return the cashbook entries of an owner, newest first.

    `start` and `end` are optional inclusive bounds on the entry date.
    """
    init_database(cfg)

    where_clauses = ["owner_id = ?"]
    params: list[object] = [owner_id]
    if start is not None:
        where_clauses.append("date >= ?")
        params.append(start.isoformat())
    if end is not None:
        where_clauses.append("date <= ?")
        params.append(end.isoformat())

    conn = _connect(cfg)
    try:
        rows = conn.execute(
            f"""
            SELECT {_CASHBOOK_COLUMNS}
              FROM cashbook_entries
             WHERE {" AND ".join(where_clauses)}
             ORDER BY date DESC, created_at DESC, id DESC;
            """,
            params,
        ).fetchall()
    finally:
        conn.close()

    logger.debug("Loaded %s cashbook entries for owner #%s", len(rows), owner_id)
    return [_row_to_entry(r) for r in rows]


def search_transactions(
    cfg: DatabaseConfig,
    filters: TransactionsFilter,
    *,
    limit: int | None = None,
    offset: int = 0,
    order_by: tuple[str, str] = ("date", "ASC"),
) -> pd.DataFrame:
    """
    Search transactions using the given filters.

    The returned DataFrame is intended for listing / UI use and includes the
    customer name.

    Result columns
    --------------
    - id
    - date
    - customer_id
    - customer_name
    - kind
    - description
    - amount        (Decimal)
    - created_at
    - updated_at
    """
    init_database(cfg)

    where_clauses: list[str] = ["t.owner_id = ?"]
    params: list[object] = [filters.owner_id]

    if filters.customer_id is not None:
        where_clauses.append("t.customer_id = ?")
        params.append(filters.customer_id)
    if filters.kind is not None:
        _check_kind_domain(filters.kind, LedgerDomain.TRANSACTION)
        where_clauses.append("t.kind = ?")
        params.append(filters.kind.value)

    if filters.start is not None:
        where_clauses.append("t.date >= ?")
        params.append(filters.start.isoformat())
    if filters.end is not None:
        where_clauses.append("t.date <= ?")
        params.append(filters.end.isoformat())

    if filters.description_contains is not None:
        where_clauses.append("LOWER(t.description) LIKE ?")
        params.append(f"%{filters.description_contains.lower()}%")

    if filters.min_amount is not None:
        where_clauses.append("t.amount_cents >= ?")
        params.append(to_cents(filters.min_amount))
    if filters.max_amount is not None:
        where_clauses.append("t.amount_cents <= ?")
        params.append(to_cents(filters.max_amount))

    # Validate and build ORDER BY clause
    allowed_order_columns = {"date", "amount", "id", "customer"}
    order_column, order_direction = order_by
    if order_column not in allowed_order_columns:
        raise ValueError(f"Invalid order_by column: {order_column!r}")
    order_direction_upper = order_direction.upper()
    if order_direction_upper not in {"ASC", "DESC"}:
        raise ValueError(f"Invalid order_by direction: {order_direction!r}")

    if order_column == "amount":
        order_expr = "t.amount_cents"
    elif order_column == "customer":
        order_expr = "c.name"
    else:
        order_expr = f"t.{order_column}"

    order_clause = (
        f"ORDER BY {order_expr} {order_direction_upper}, t.id {order_direction_upper}"
    )

    limit_clause = ""
    if limit is not None:
        limit_clause = " LIMIT ? OFFSET ?"
        params.extend([limit, offset])

    query = f"""
        SELECT
            t.id,
            t.date,
            t.customer_id,
            c.name,
            t.kind,
            t.description,
            t.amount_cents,
            t.created_at,
            t.updated_at
        FROM transactions AS t
        JOIN customers AS c
          ON t.customer_id = c.id
       WHERE {" AND ".join(where_clauses)}
       {order_clause}
       {limit_clause};
    """

    conn = _connect(cfg)
    try:
        rows = conn.execute(query, params).fetchall()
    finally:
        conn.close()

    columns = [
        "id",
        "date",
        "customer_id",
        "customer_name",
        "kind",
        "description",
        "amount",
        "created_at",
        "updated_at",
    ]
    if not rows:
        return pd.DataFrame(columns=columns)

    df = pd.DataFrame(
        rows,
        columns=[
            "id",
            "date",
            "customer_id",
            "customer_name",
            "kind",
            "description",
            "amount_cents",
            "created_at",
            "updated_at",
        ],
    )

    # Type conversions
    df["date"] = pd.to_datetime(df["date"]).dt.date
    df["created_at"] = pd.to_datetime(df["created_at"])
    df["updated_at"] = pd.to_datetime(df["updated_at"], errors="coerce")

    # Keep exact amounts: Decimal objects, not floats.
    df["amount"] = df["amount_cents"].map(from_cents)
    df = df.drop(columns=["amount_cents"])
    return df[columns]


# ---------------------------------------------------------------------------
# Customer messages
# ---------------------------------------------------------------------------


_CUSTOMER_MESSAGE_SELECT = """
    SELECT m.id, m.owner_id, m.customer_id, c.name, m.transaction_id, m.kind,
           m.subject, m.body, m.status, m.reply, m.created_at, m.updated_at
      FROM customer_messages AS m
      JOIN customers AS c
        ON m.customer_id = c.id
"""


def _row_to_customer_message(row: tuple) -> CustomerMessage:
    (
        message_id,
        owner_id,
        customer_id,
        customer_name,
        transaction_id,
        kind,
        subject,
        body,
        status,
        reply,
        created_at_str,
        updated_at_str,
    ) = row
    return CustomerMessage(
        id=message_id,
        owner_id=owner_id,
        customer_id=customer_id,
        customer_name=customer_name,
        transaction_id=transaction_id,
        kind=MessageKind(kind),
        subject=subject,
        body=body,
        status=MessageStatus(status),
        reply=reply,
        created_at=datetime.fromisoformat(created_at_str),
        updated_at=_parse_ts(updated_at_str),
    )


def insert_customer_message(
    cfg: DatabaseConfig,
    owner_id: int,
    customer_id: int,
    new_message: NewCustomerMessage,
) -> CustomerMessage:
    """
    Store a message from a customer to its owner.

    Raises
    ------
    ValueError
        If a dispute does not reference a transaction.
    RecordNotFoundError
        If the customer does not belong to `owner_id`, or if the referenced
        transaction is not one of this customer's transactions.
    """
    get_customer(cfg, owner_id, customer_id)
    if new_message.kind is MessageKind.DISPUTE and new_message.transaction_id is None:
        raise ValueError("A dispute must reference a transaction.")

    conn = _connect(cfg)
    try:
        if new_message.transaction_id is not None:
            row = conn.execute(
                """
                SELECT 1
                  FROM transactions
                 WHERE id = ? AND owner_id = ? AND customer_id = ?;
                """,
                (new_message.transaction_id, owner_id, customer_id),
            ).fetchone()
            if row is None:
                raise RecordNotFoundError(
                    f"Transaction #{new_message.transaction_id} not found."
                )

        cur = conn.execute(
            """
            INSERT INTO customer_messages (
                owner_id, customer_id, transaction_id, kind, subject, body,
                status, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                owner_id,
                customer_id,
                new_message.transaction_id,
                new_message.kind.value,
                new_message.subject,
                new_message.body,
                MessageStatus.PENDING.value,
                _now_utc_iso(),
            ),
        )
        message_id = cur.lastrowid
        conn.commit()
    finally:
        conn.close()

    logger.info(
        "Customer #%s sent %s message #%s to owner #%s",
        customer_id,
        new_message.kind.value,
        message_id,
        owner_id,
    )
    return get_customer_message(cfg, owner_id, message_id)


def get_customer_message(
    cfg: DatabaseConfig, owner_id: int, message_id: int
) -> CustomerMessage:
    init_database(cfg)

    conn = _connect(cfg)
    try:
        row = conn.execute(
            _CUSTOMER_MESSAGE_SELECT + " WHERE m.id = ? AND m.owner_id = ?;",
            (message_id, owner_id),
        ).fetchone()
    finally:
        conn.close()

    if row is None:
        raise RecordNotFoundError(f"Message #{message_id} not found.")
    return _row_to_customer_message(row)


def list_customer_messages(
    cfg: DatabaseConfig,
    owner_id: int,
    customer_id: int | None = None,
    status: MessageStatus | None = None,
) -> list[CustomerMessage]:
    """Return the customer messages of an owner, newest first."""
    init_database(cfg)

    where_clauses = ["m.owner_id = ?"]
    params: list[object] = [owner_id]
    if customer_id is not None:
        where_clauses.append("m.customer_id = ?")
        params.append(customer_id)
    if status is not None:
        where_clauses.append("m.status = ?")
        params.append(MessageStatus(status).value)

    conn = _connect(cfg)
    try:
        rows = conn.execute(
            _CUSTOMER_MESSAGE_SELECT
            + f" WHERE {' AND '.join(where_clauses)}"
            + " ORDER BY m.created_at DESC, m.id DESC;",
            params,
        ).fetchall()
    finally:
        conn.close()

    return [_row_to_customer_message(r) for r in rows]


def update_customer_message(
    cfg: DatabaseConfig,
    owner_id: int,
    message_id: int,
    update: CustomerMessageUpdate,
) -> CustomerMessage:
    """
    Apply the owner's reply and/or a new status to a customer message.

    Raises
    ------
    ValueError
        If no fields are provided.
    RecordNotFoundError
        If the message does not exist or belongs to another owner.
    """
    init_database(cfg)

    fields: list[str] = []
    params: list[object] = []
    if update.reply is not None:
        fields.append("reply = ?")
        params.append(update.reply)
    if update.status is not None:
        fields.append("status = ?")
        params.append(MessageStatus(update.status).value)

    if not fields:
        raise ValueError("No fields to update in CustomerMessageUpdate.")

    fields.append("updated_at = ?")
    params.append(_now_utc_iso())
    params.extend([message_id, owner_id])

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"""
            UPDATE customer_messages
               SET {", ".join(fields)}
             WHERE id = ? AND owner_id = ?;
            """,
            params,
        )
        if cur.rowcount == 0:
            raise RecordNotFoundError(f"Message #{message_id} not found.")
        conn.commit()
    finally:
        conn.close()

    logger.info("Updated customer message #%s", message_id)
    return get_customer_message(cfg, owner_id, message_id)


# ---------------------------------------------------------------------------
# Support messages (owner -> administrator)
# ---------------------------------------------------------------------------


_SUPPORT_MESSAGE_SELECT = """
    SELECT s.id, s.owner_id, o.name, s.email, s.topic, s.description,
           s.is_read, s.created_at, s.updated_at
      FROM support_messages AS s
      JOIN owners AS o
        ON s.owner_id = o.id
"""


def _row_to_support_message(row: tuple) -> SupportMessage:
    (
        message_id,
        owner_id,
        owner_name,
        email,
        topic,
        description,
        is_read,
        created_at_str,
        updated_at_str,
    ) = row
    return SupportMessage(
        id=message_id,
        owner_id=owner_id,
        owner_name=owner_name,
        email=email,
        topic=topic,
        description=description,
        is_read=bool(is_read),
        created_at=datetime.fromisoformat(created_at_str),
        updated_at=_parse_ts(updated_at_str),
    )


def insert_support_message(
    cfg: DatabaseConfig, owner_id: int, new_message: NewSupportMessage
) -> SupportMessage:
    """Store an unread message from an owner to the administrator."""
    get_owner_by_id(cfg, owner_id)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            """
            INSERT INTO support_messages (
                owner_id, email, topic, description, is_read, created_at
            )
            VALUES (?, ?, ?, ?, 0, ?);
            """,
            (
                owner_id,
                new_message.email,
                new_message.topic,
                new_message.description,
                _now_utc_iso(),
            ),
        )
        message_id = cur.lastrowid
        conn.commit()
    finally:
        conn.close()

    logger.info("Owner #%s sent support message #%s", owner_id, message_id)
    return get_support_message(cfg, message_id)


def get_support_message(cfg: DatabaseConfig, message_id: int) -> SupportMessage:
    init_database(cfg)

    conn = _connect(cfg)
    try:
        row = conn.execute(
            _SUPPORT_MESSAGE_SELECT + " WHERE s.id = ?;", (message_id,)
        ).fetchone()
    finally:
        conn.close()

    if row is None:
        raise RecordNotFoundError(f"Support message #{message_id} not found.")
    return _row_to_support_message(row)


def list_support_messages(
    cfg: DatabaseConfig,
    owner_id: int | None = None,
    unread_only: bool = False,
) -> list[SupportMessage]:
    """
    Return support messages, newest first.

    Without `owner_id`, messages of every owner are returned (administrator
    view).
    """
    init_database(cfg)

    where_clauses: list[str] = []
    params: list[object] = []
    if owner_id is not None:
        where_clauses.append("s.owner_id = ?")
        params.append(owner_id)
    if unread_only:
        where_clauses.append("s.is_read = 0")

    where = f" WHERE {' AND '.join(where_clauses)}" if where_clauses else ""

    conn = _connect(cfg)
    try:
        rows = conn.execute(
            _SUPPORT_MESSAGE_SELECT + where + " ORDER BY s.created_at DESC, s.id DESC;",
            params,
        ).fetchall()
    finally:
        conn.close()

    return [_row_to_support_message(r) for r in rows]


def set_support_message_read(
    cfg: DatabaseConfig, message_id: int, is_read: bool
) -> SupportMessage:
    """Mark a support message as read or unread."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        cur = conn.execute(
            "UPDATE support_messages SET is_read = ?, updated_at = ? WHERE id = ?;",
            (1 if is_read else 0, _now_utc_iso(), message_id),
        )
        if cur.rowcount == 0:
            raise RecordNotFoundError(f"Support message #{message_id} not found.")
        conn.commit()
    finally:
        conn.close()

    logger.info(
        "Marked support message #%s as %s", message_id, "read" if is_read else "unread"
    )
    return get_support_message(cfg, message_id)


def count_support_messages(cfg: DatabaseConfig) -> tuple[int, int]:
    """Return (total, unread) support message counts."""
    init_database(cfg)

    conn = _connect(cfg)
    try:
        total, unread = conn.execute(
            """
            SELECT COUNT(*), COALESCE(SUM(CASE WHEN is_read = 0 THEN 1 ELSE 0 END), 0)
              FROM support_messages;
            """
        ).fetchone()
    finally:
        conn.close()
    return int(total), int(unread)
