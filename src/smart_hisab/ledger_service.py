# SmartHisab - Bookkeeping application for small businesses
# Copyright (c) 2025 SmartHisab contributors
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level services for SmartHisab.

This module sits between:
- the low-level database helpers in `db.py`,
- the pure aggregation functions in `ledger.py`, and
- user-facing layers such as the CLI.

Responsibilities
----------------
1) Boundary validation
   - Entry kinds are checked against their domain (debit/credit for
     customer transactions, income/expense for the cashbook).
   - Amounts must parse as decimals, be strictly positive and have at most
     two decimal places.
   - Blank transaction descriptions are stored as "NONE"; cashbook entries
     require a description of at most 200 characters.
   - Owners need a name and a valid, unique email; customers need a name
     and a phone number and get a unique portal code.

   Invalid input raises ValueError before anything is written, so no
   malformed entry ever reaches the aggregator.

2) CRUD orchestration
   - Owners, customers, transactions and cashbook entries, always scoped by
     owner id.

3) Read models
   - customer balances, customer detail with running balances,
     owner analytics, dashboard statistics, cashbook summaries,
     admin views and the customer self-service portal statement.

   Each read model fetches a consistent snapshot from the database and then
   delegates every computation to `ledger.py`.

4) Messages
   - customers write to their owner from the portal (general, complaint,
     or a dispute about one of their own transactions); owners reply and
     track a status,
   - owners write to the administrator, who marks messages read or unread.
"""

import logging
import re
import secrets
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .config import AppConfig
from .db import (
    Customer,
    CustomerMessage,
    CustomerMessageUpdate,
    CustomerUpdate,
    DatabaseConfig,
    EntryUpdate,
    MessageKind,
    MessageStatus,
    NewCustomer,
    NewCustomerMessage,
    NewEntry,
    NewOwner,
    NewSupportMessage,
    Owner,
    OwnerUpdate,
    RecordNotFoundError,
    SupportMessage,
    TransactionsFilter,
)
from .db import count_customers as _db_count_customers
from .db import count_owners as _db_count_owners
from .db import count_support_messages as _db_count_support_messages
from .db import customer_code_exists as _db_customer_code_exists
from .db import delete_customer as _db_delete_customer
from .db import delete_entry as _db_delete_entry
from .db import delete_owner as _db_delete_owner
from .db import get_customer as _db_get_customer
from .db import get_customer_by_code as _db_get_customer_by_code
from .db import get_owner_by_id as _db_get_owner_by_id
from .db import insert_customer as _db_insert_customer
from .db import insert_customer_message as _db_insert_customer_message
from .db import insert_entries as _db_insert_entries
from .db import insert_entry as _db_insert_entry
from .db import insert_owner as _db_insert_owner
from .db import insert_support_message as _db_insert_support_message
from .db import list_cashbook_entries as _db_list_cashbook_entries
from .db import list_customer_messages as _db_list_customer_messages
from .db import list_customers as _db_list_customers
from .db import list_owners as _db_list_owners
from .db import list_support_messages as _db_list_support_messages
from .db import list_transactions as _db_list_transactions
from .db import search_transactions as _db_search_transactions
from .db import set_support_message_read as _db_set_support_message_read
from .db import update_customer as _db_update_customer
from .db import update_customer_message as _db_update_customer_message
from .db import update_entry as _db_update_entry
from .db import update_owner as _db_update_owner
from .io import read_ledger_csv
from .ledger import (
    KINDS_BY_DOMAIN,
    BalanceDirection,
    EntryKind,
    KindSummary,
    LedgerDomain,
    MonetaryEntry,
    RunningEntry,
    RunningLedger,
    compute_balance,
    compute_running_balances,
    summarize_by_kind,
    top_by_signed_balance,
)
from .periods import Period, period_current_month

logger = logging.getLogger(__name__)

EMPTY_DESCRIPTION = "NONE"
MAX_CASHBOOK_DESCRIPTION = 200
MIN_SUPPORT_TOPIC = 3
MIN_SUPPORT_DESCRIPTION = 10
CENT = Decimal("0.01")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

AmountInput = Union[Decimal, int, float, str]
DateInput = Union[date, str]


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CustomerBalance:
    """A customer with its current balance (credits minus debits)."""

    customer: Customer
    balance: Decimal


@dataclass(frozen=True)
class CustomerLedger:
    """Customer detail: the customer and its transactions with running balances."""

    customer: Customer
    ledger: RunningLedger

    @property
    def balance(self) -> Decimal:
        return self.ledger.balance


@dataclass(frozen=True)
class OwnerAnalytics:
    """Transaction analytics of an owner across all of its customers."""

    total_customers: int
    total_debit: Decimal
    total_credit: Decimal
    net_balance: Decimal
    total_transactions: int


@dataclass(frozen=True)
class CashbookSummary:
    """Income / expense totals of an owner's cashbook over a period."""

    total_income: Decimal
    total_expense: Decimal
    net_balance: Decimal
    total_entries: int
    income_entries: int
    expense_entries: int
    period: Optional[Period] = None

    @classmethod
    def from_kind_summary(
        cls,
        summary: KindSummary,
        period: Optional[Period] = None,
    ) -> "CashbookSummary":
        return cls(
            total_income=summary.total_for(EntryKind.INCOME),
            total_expense=summary.total_for(EntryKind.EXPENSE),
            net_balance=summary.net,
            total_entries=summary.total_entries,
            income_entries=summary.count_for(EntryKind.INCOME),
            expense_entries=summary.count_for(EntryKind.EXPENSE),
            period=period,
        )


@dataclass(frozen=True)
class DashboardStats:
    """
    Everything shown on the owner's analytics dashboard.

    `top_to_give` lists the customers with the highest positive balances
    (the owner will give), `top_to_get` those with the most negative ones
    (the owner will get).
    """

    analytics: OwnerAnalytics
    top_to_give: list[CustomerBalance]
    top_to_get: list[CustomerBalance]
    month_cashbook: CashbookSummary


@dataclass(frozen=True)
class AdminOverview:
    total_owners: int
    owners: list[Owner]
    total_messages: int = 0
    unread_messages: int = 0


@dataclass(frozen=True)
class AdminUserDetail:
    """Per-owner statistics shown to the administrator."""

    owner: Owner
    total_customers: int
    total_debit: Decimal
    total_credit: Decimal
    net_amount: Decimal
    total_income: Decimal
    total_expense: Decimal
    net_income_expense: Decimal


@dataclass(frozen=True)
class PortalStatement:
    """
    What a customer sees in the self-service portal.

    `rows` are newest first; each row keeps the running balance computed in
    chronological order.
    """

    customer: Customer
    business_name: Optional[str]
    rows: list[RunningEntry]
    total_credit: Decimal
    total_debit: Decimal
    total_balance: Decimal


@dataclass(frozen=True)
class ImportStats:
    """Summary of a CSV import."""

    domain: LedgerDomain
    rows_imported: int
    total_amount: Decimal


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _get_db_config(app_config: AppConfig) -> DatabaseConfig:
    """Convenience helper to access the database configuration."""
    return app_config.database


def parse_amount(value: AmountInput) -> Decimal:
    """
    Parse and validate a monetary amount.

    Accepts Decimal, int, str and float (through its shortest repr). The
    result is a Decimal with exactly two decimal places.

    Raises
    ------
    ValueError
        If the value is not a number, not strictly positive, or has more
        than two decimal places.
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be a valid number greater than 0.")
    try:
        if isinstance(value, Decimal):
            amount = value
        elif isinstance(value, float):
            amount = Decimal(repr(value))
        else:
            amount = Decimal(str(value).strip().replace(",", ""))
    except InvalidOperation as exc:
        raise ValueError("Amount must be a valid number greater than 0.") from exc

    if not amount.is_finite() or amount <= 0:
        raise ValueError("Amount must be a valid number greater than 0.")
    if amount != amount.quantize(CENT):
        raise ValueError("Amount cannot have more than two decimal places.")
    return amount.quantize(CENT)


def parse_entry_date(value: Optional[DateInput]) -> date:
    """Parse a required entry date (date object or 'YYYY-MM-DD')."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("Date is required.")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Date must be a valid date (YYYY-MM-DD): {value!r}") from exc


def parse_kind(value: object, domain: LedgerDomain) -> EntryKind:
    """Parse an entry kind and check that it belongs to `domain`."""
    positive, negative = KINDS_BY_DOMAIN[domain]
    expected = f"Type must be either {negative.value} or {positive.value}."
    if value is None:
        raise ValueError(expected)
    try:
        kind = EntryKind.parse(value)
    except ValueError as exc:
        raise ValueError(expected) from exc
    if kind.domain is not domain:
        raise ValueError(expected)
    return kind


def normalize_transaction_description(value: Optional[str]) -> str:
    """Return the trimmed description, or "NONE" when it is blank."""
    if value is None:
        return EMPTY_DESCRIPTION
    text = str(value).strip()
    return text or EMPTY_DESCRIPTION


def validate_cashbook_description(value: Optional[str]) -> str:
    """Return the trimmed cashbook description, which is mandatory."""
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValueError("Description must be a non-empty string.")
    if len(text) > MAX_CASHBOOK_DESCRIPTION:
        raise ValueError(
            f"Description cannot exceed {MAX_CASHBOOK_DESCRIPTION} characters."
        )
    return text


def _required_text(value: Optional[str], field_name: str) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValueError(f"{field_name} is required.")
    return text


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _generate_customer_code(db_cfg: DatabaseConfig) -> str:
    """Generate an unused portal code of the form 'C' + 6 digits."""
    for _ in range(100):
        code = f"C{secrets.randbelow(1_000_000):06d}"
        if not _db_customer_code_exists(db_cfg, code):
            return code
    raise RuntimeError("Could not generate a unique customer code.")


def _balances_by_customer(
    customers: list[Customer],
    transactions: list[MonetaryEntry],
) -> list[CustomerBalance]:
    by_customer: dict[int, list[MonetaryEntry]] = defaultdict(list)
    for tx in transactions:
        by_customer[tx.subject_id].append(tx)

    return [
        CustomerBalance(customer=c, balance=compute_balance(by_customer.get(c.id, [])))
        for c in customers
    ]


def _top_customers(
    balances: list[CustomerBalance],
    direction: BalanceDirection,
    limit: int,
) -> list[CustomerBalance]:
    by_id = {cb.customer.id: cb for cb in balances}
    top = top_by_signed_balance(
        [(cb.customer.id, cb.balance) for cb in balances],
        direction,
        limit,
    )
    return [by_id[customer_id] for customer_id, _ in top]


# ---------------------------------------------------------------------------
# Owners
# ---------------------------------------------------------------------------


def register_owner(
    app_config: AppConfig,
    name: str,
    email: str,
    mobile_number: Optional[str] = None,
    business_name: Optional[str] = None,
) -> Owner:
    """
    Create a new business owner account.

    Raises
    ------
    ValueError
        If the name is blank, the email is invalid, or the email is taken.
    """
    clean_email = _required_text(email, "Email").lower()
    if not _EMAIL_RE.match(clean_email):
        raise ValueError(f"Invalid email address: {email!r}")

    new_owner = NewOwner(
        name=_required_text(name, "Name"),
        email=clean_email,
        mobile_number=_optional_text(mobile_number),
        business_name=_optional_text(business_name),
    )
    return _db_insert_owner(_get_db_config(app_config), new_owner)


def get_owner(app_config: AppConfig, owner_id: int) -> Owner:
    return _db_get_owner_by_id(_get_db_config(app_config), owner_id)


def list_owners(app_config: AppConfig) -> list[Owner]:
    return _db_list_owners(_get_db_config(app_config))


def edit_owner(
    app_config: AppConfig,
    owner_id: int,
    name: Optional[str] = None,
    mobile_number: Optional[str] = None,
    business_name: Optional[str] = None,
) -> Owner:
    """Update the editable profile fields of an owner."""
    update = OwnerUpdate(
        name=_required_text(name, "Name") if name is not None else None,
        mobile_number=mobile_number,
        business_name=business_name,
    )
    return _db_update_owner(_get_db_config(app_config), owner_id, update)


def remove_owner(app_config: AppConfig, owner_id: int) -> None:
    """Delete an owner account together with all of its data."""
    _db_delete_owner(_get_db_config(app_config), owner_id)


# ---------------------------------------------------------------------------
# Customers
# ---------------------------------------------------------------------------


def add_customer(
    app_config: AppConfig,
    owner_id: int,
    name: str,
    phone: str,
    customer_code: Optional[str] = None,
) -> Customer:
    """
    Create a customer for an owner.

    When `customer_code` is omitted, a unique code is generated. The code is
    what the customer uses to open the self-service portal.
    """
    db_cfg = _get_db_config(app_config)

    code = _optional_text(customer_code) or _generate_customer_code(db_cfg)
    new_customer = NewCustomer(
        name=_required_text(name, "Name"),
        phone=_required_text(phone, "Phone"),
        customer_code=code,
    )
    return _db_insert_customer(db_cfg, owner_id, new_customer)


def get_customer(app_config: AppConfig, owner_id: int, customer_id: int) -> Customer:
    return _db_get_customer(_get_db_config(app_config), owner_id, customer_id)


def edit_customer(
    app_config: AppConfig,
    owner_id: int,
    customer_id: int,
    name: Optional[str] = None,
    phone: Optional[str] = None,
) -> Customer:
    update = CustomerUpdate(
        name=_required_text(name, "Name") if name is not None else None,
        phone=_required_text(phone, "Phone") if phone is not None else None,
    )
    return _db_update_customer(_get_db_config(app_config), owner_id, customer_id, update)


def remove_customer(app_config: AppConfig, owner_id: int, customer_id: int) -> int:
    """
    Delete a customer and all of its transactions.

    Returns the number of transactions deleted with the customer.
    """
    return _db_delete_customer(_get_db_config(app_config), owner_id, customer_id)


def list_customers_with_balance(
    app_config: AppConfig,
    owner_id: int,
) -> list[CustomerBalance]:
    """Return every customer of an owner with its current balance."""
    db_cfg = _get_db_config(app_config)
    customers = _db_list_customers(db_cfg, owner_id)
    transactions = _db_list_transactions(db_cfg, owner_id)
    return _balances_by_customer(customers, transactions)


def customer_detail(
    app_config: AppConfig,
    owner_id: int,
    customer_id: int,
) -> CustomerLedger:
    """Return a customer with its transactions annotated with running balances."""
    db_cfg = _get_db_config(app_config)
    customer = _db_get_customer(db_cfg, owner_id, customer_id)
    transactions = _db_list_transactions(db_cfg, owner_id, customer_id)
    return CustomerLedger(
        customer=customer,
        ledger=compute_running_balances(transactions),
    )


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


def record_transaction(
    app_config: AppConfig,
    owner_id: int,
    customer_id: int,
    kind: object,
    amount: AmountInput,
    occurred_on: DateInput,
    description: Optional[str] = None,
) -> MonetaryEntry:
    """
    Record a debit or credit for a customer.

    A blank description is stored as "NONE".
    """
    new_entry = NewEntry(
        kind=parse_kind(kind, LedgerDomain.TRANSACTION),
        amount=parse_amount(amount),
        occurred_on=parse_entry_date(occurred_on),
        description=normalize_transaction_description(description),
        customer_id=customer_id,
    )
    return _db_insert_entry(
        _get_db_config(app_config), LedgerDomain.TRANSACTION, owner_id, new_entry
    )


def edit_transaction(
    app_config: AppConfig,
    owner_id: int,
    transaction_id: int,
    *,
    kind: Optional[object] = None,
    amount: Optional[AmountInput] = None,
    occurred_on: Optional[DateInput] = None,
    description: Optional[str] = None,
) -> MonetaryEntry:
    """Apply a partial update to a transaction. Only given fields change."""
    update = EntryUpdate(
        kind=parse_kind(kind, LedgerDomain.TRANSACTION) if kind is not None else None,
        amount=parse_amount(amount) if amount is not None else None,
        occurred_on=parse_entry_date(occurred_on) if occurred_on is not None else None,
        description=(
            normalize_transaction_description(description)
            if description is not None
            else None
        ),
    )
    return _db_update_entry(
        _get_db_config(app_config),
        LedgerDomain.TRANSACTION,
        owner_id,
        transaction_id,
        update,
    )


def remove_transaction(app_config: AppConfig, owner_id: int, transaction_id: int) -> None:
    _db_delete_entry(
        _get_db_config(app_config), LedgerDomain.TRANSACTION, owner_id, transaction_id
    )


def search_transactions(
    app_config: AppConfig,
    filters: TransactionsFilter,
    *,
    limit: Optional[int] = None,
    offset: int = 0,
    order_by: tuple[str, str] = ("date", "ASC"),
) -> pd.DataFrame:
    """
    Search transactions using a TransactionsFilter.

    Returns the DataFrame produced by `db.search_transactions`.
    """
    return _db_search_transactions(
        _get_db_config(app_config),
        filters,
        limit=limit,
        offset=offset,
        order_by=order_by,
    )


def owner_analytics(app_config: AppConfig, owner_id: int) -> OwnerAnalytics:
    """Total debits, credits and net balance across all customers of an owner."""
    db_cfg = _get_db_config(app_config)
    transactions = _db_list_transactions(db_cfg, owner_id)
    summary = summarize_by_kind(transactions, domain=LedgerDomain.TRANSACTION)

    return OwnerAnalytics(
        total_customers=_db_count_customers(db_cfg, owner_id),
        total_debit=summary.total_for(EntryKind.DEBIT),
        total_credit=summary.total_for(EntryKind.CREDIT),
        net_balance=summary.net,
        total_transactions=summary.total_entries,
    )


# ---------------------------------------------------------------------------
# Cashbook
# ---------------------------------------------------------------------------


def record_cashbook_entry(
    app_config: AppConfig,
    owner_id: int,
    kind: object,
    amount: AmountInput,
    occurred_on: DateInput,
    description: Optional[str],
) -> MonetaryEntry:
    """Record an income or expense line in the owner's cashbook."""
    new_entry = NewEntry(
        kind=parse_kind(kind, LedgerDomain.CASHBOOK),
        amount=parse_amount(amount),
        occurred_on=parse_entry_date(occurred_on),
        description=validate_cashbook_description(description),
    )
    return _db_insert_entry(
        _get_db_config(app_config), LedgerDomain.CASHBOOK, owner_id, new_entry
    )


def edit_cashbook_entry(
    app_config: AppConfig,
    owner_id: int,
    entry_id: int,
    *,
    kind: Optional[object] = None,
    amount: Optional[AmountInput] = None,
    occurred_on: Optional[DateInput] = None,
    description: Optional[str] = None,
) -> MonetaryEntry:
    update = EntryUpdate(
        kind=parse_kind(kind, LedgerDomain.CASHBOOK) if kind is not None else None,
        amount=parse_amount(amount) if amount is not None else None,
        occurred_on=parse_entry_date(occurred_on) if occurred_on is not None else None,
        description=(
            validate_cashbook_description(description)
            if description is not None
            else None
        ),
    )
    return _db_update_entry(
        _get_db_config(app_config), LedgerDomain.CASHBOOK, owner_id, entry_id, update
    )


def remove_cashbook_entry(app_config: AppConfig, owner_id: int, entry_id: int) -> None:
    _db_delete_entry(
        _get_db_config(app_config), LedgerDomain.CASHBOOK, owner_id, entry_id
    )


def list_cashbook(
    app_config: AppConfig,
    owner_id: int,
    period: Optional[Period] = None,
) -> list[MonetaryEntry]:
    """Return the owner's cashbook entries within `period`, newest first."""
    start = period.start if period is not None else None
    end = period.end if period is not None else None
    return _db_list_cashbook_entries(_get_db_config(app_config), owner_id, start, end)


def cashbook_summary(
    app_config: AppConfig,
    owner_id: int,
    period: Optional[Period] = None,
) -> CashbookSummary:
    """
    Summarize the owner's cashbook, optionally restricted to a period.

    The date window is applied by the aggregator (inclusive bounds) on the
    full snapshot of entries.
    """
    entries = _db_list_cashbook_entries(_get_db_config(app_config), owner_id)
    summary = summarize_by_kind(
        entries,
        period.start if period is not None else None,
        period.end if period is not None else None,
        domain=LedgerDomain.CASHBOOK,
    )
    return CashbookSummary.from_kind_summary(summary, period)


# ---------------------------------------------------------------------------
# Dashboard and admin views
# ---------------------------------------------------------------------------


def dashboard_stats(app_config: AppConfig, owner_id: int) -> DashboardStats:
    """
    Build the analytics dashboard of an owner.

    - transaction analytics across all customers,
    - top customers the owner will give to / get from,
    - income, expense and net of the current calendar month's cashbook.
    """
    _db_get_owner_by_id(_get_db_config(app_config), owner_id)

    balances = list_customers_with_balance(app_config, owner_id)
    limit = app_config.top_customers_limit
    logger.debug("Building dashboard for owner #%s (top %s)", owner_id, limit)

    return DashboardStats(
        analytics=owner_analytics(app_config, owner_id),
        top_to_give=_top_customers(balances, BalanceDirection.HIGHEST, limit),
        top_to_get=_top_customers(balances, BalanceDirection.MOST_NEGATIVE, limit),
        month_cashbook=cashbook_summary(app_config, owner_id, period_current_month()),
    )


def admin_overview(app_config: AppConfig) -> AdminOverview:
    db_cfg = _get_db_config(app_config)
    total_messages, unread_messages = _db_count_support_messages(db_cfg)
    return AdminOverview(
        total_owners=_db_count_owners(db_cfg),
        owners=_db_list_owners(db_cfg),
        total_messages=total_messages,
        unread_messages=unread_messages,
    )


def admin_user_detail(app_config: AppConfig, owner_id: int) -> AdminUserDetail:
    """Owner profile with transaction and cashbook statistics."""
    db_cfg = _get_db_config(app_config)
    owner = _db_get_owner_by_id(db_cfg, owner_id)

    transactions = summarize_by_kind(
        _db_list_transactions(db_cfg, owner_id), domain=LedgerDomain.TRANSACTION
    )
    cashbook = summarize_by_kind(
        _db_list_cashbook_entries(db_cfg, owner_id), domain=LedgerDomain.CASHBOOK
    )

    return AdminUserDetail(
        owner=owner,
        total_customers=_db_count_customers(db_cfg, owner_id),
        total_debit=transactions.total_for(EntryKind.DEBIT),
        total_credit=transactions.total_for(EntryKind.CREDIT),
        net_amount=transactions.net,
        total_income=cashbook.total_for(EntryKind.INCOME),
        total_expense=cashbook.total_for(EntryKind.EXPENSE),
        net_income_expense=cashbook.net,
    )


def portal_statement(app_config: AppConfig, customer_code: str) -> PortalStatement:
    """
    Build the self-service statement of the customer identified by its code.

    Running balances are computed in chronological order first; the rows are
    then presented newest first.
    """
    db_cfg = _get_db_config(app_config)
    code = _required_text(customer_code, "Customer code")
    customer = _db_get_customer_by_code(db_cfg, code)
    logger.debug("Portal statement requested for customer #%s", customer.id)
    owner = _db_get_owner_by_id(db_cfg, customer.owner_id)

    transactions = _db_list_transactions(db_cfg, customer.owner_id, customer.id)
    ledger = compute_running_balances(transactions)
    summary = summarize_by_kind(transactions, domain=LedgerDomain.TRANSACTION)

    return PortalStatement(
        customer=customer,
        business_name=owner.business_name,
        rows=ledger.newest_first(),
        total_credit=summary.total_for(EntryKind.CREDIT),
        total_debit=summary.total_for(EntryKind.DEBIT),
        total_balance=ledger.balance,
    )


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


def parse_message_kind(value: object) -> MessageKind:
    """Parse a customer message kind ('general', 'complaint' or 'dispute')."""
    if isinstance(value, MessageKind):
        return value
    try:
        return MessageKind(str(value).strip().lower())
    except ValueError as exc:
        choices = ", ".join(k.value for k in MessageKind)
        raise ValueError(f"Message type must be one of: {choices}.") from exc


def parse_message_status(value: object) -> MessageStatus:
    """Parse a message status; 'in-progress' is accepted for 'in_progress'."""
    if isinstance(value, MessageStatus):
        return value
    try:
        return MessageStatus(str(value).strip().lower().replace("-", "_"))
    except ValueError as exc:
        choices = ", ".join(s.value for s in MessageStatus)
        raise ValueError(f"Message status must be one of: {choices}.") from exc


def send_customer_message(
    app_config: AppConfig,
    customer_code: str,
    subject: str,
    message: str,
    kind: object = MessageKind.GENERAL,
    transaction_id: Optional[int] = None,
) -> CustomerMessage:
    """
    Send a message from a customer (identified by its portal code) to the
    owner of its ledger.

    Raises
    ------
    ValueError
        If the subject or message is blank, the kind is unknown, or a
        dispute has no transaction.
    RecordNotFoundError
        If the code is unknown, or the transaction is not one of this
        customer's transactions.
    """
    db_cfg = _get_db_config(app_config)
    new_message = NewCustomerMessage(
        subject=_required_text(subject, "Subject"),
        body=_required_text(message, "Message"),
        kind=parse_message_kind(kind),
        transaction_id=transaction_id,
    )
    customer = _db_get_customer_by_code(db_cfg, _required_text(customer_code, "Customer code"))
    return _db_insert_customer_message(db_cfg, customer.owner_id, customer.id, new_message)


def send_dispute(
    app_config: AppConfig,
    customer_code: str,
    transaction_id: int,
    subject: str,
    message: str,
) -> CustomerMessage:
    """Dispute one of the customer's own transactions."""
    return send_customer_message(
        app_config,
        customer_code,
        subject,
        message,
        kind=MessageKind.DISPUTE,
        transaction_id=transaction_id,
    )


def portal_messages(app_config: AppConfig, customer_code: str) -> list[CustomerMessage]:
    """Messages a customer has sent, with the owner's replies, newest first."""
    db_cfg = _get_db_config(app_config)
    customer = _db_get_customer_by_code(db_cfg, _required_text(customer_code, "Customer code"))
    return _db_list_customer_messages(db_cfg, customer.owner_id, customer_id=customer.id)


def list_customer_messages(
    app_config: AppConfig,
    owner_id: int,
    customer_id: Optional[int] = None,
    status: Optional[object] = None,
) -> list[CustomerMessage]:
    db_cfg = _get_db_config(app_config)
    _db_get_owner_by_id(db_cfg, owner_id)
    parsed_status = parse_message_status(status) if status is not None else None
    return _db_list_customer_messages(db_cfg, owner_id, customer_id, parsed_status)


def reply_to_customer_message(
    app_config: AppConfig, owner_id: int, message_id: int, reply: str
) -> CustomerMessage:
    """Store the owner's reply; the message moves to 'in_progress'."""
    update = CustomerMessageUpdate(
        reply=_required_text(reply, "Reply"), status=MessageStatus.IN_PROGRESS
    )
    return _db_update_customer_message(
        _get_db_config(app_config), owner_id, message_id, update
    )


def set_customer_message_status(
    app_config: AppConfig, owner_id: int, message_id: int, status: object
) -> CustomerMessage:
    update = CustomerMessageUpdate(status=parse_message_status(status))
    return _db_update_customer_message(
        _get_db_config(app_config), owner_id, message_id, update
    )


def send_support_message(
    app_config: AppConfig,
    owner_id: int,
    topic: str,
    description: str,
    email: Optional[str] = None,
) -> SupportMessage:
    """
    Send a message from an owner to the administrator.

    The reply-to address defaults to the owner's email. The topic needs at
    least 3 characters and the description at least 10.
    """
    db_cfg = _get_db_config(app_config)
    owner = _db_get_owner_by_id(db_cfg, owner_id)

    clean_email = (_optional_text(email) or owner.email).lower()
    if not _EMAIL_RE.match(clean_email):
        raise ValueError(f"Invalid email address: {email!r}")
    clean_topic = _required_text(topic, "Topic")
    if len(clean_topic) < MIN_SUPPORT_TOPIC:
        raise ValueError(f"Topic must be at least {MIN_SUPPORT_TOPIC} characters.")
    clean_description = _required_text(description, "Description")
    if len(clean_description) < MIN_SUPPORT_DESCRIPTION:
        raise ValueError(
            f"Description must be at least {MIN_SUPPORT_DESCRIPTION} characters."
        )

    return _db_insert_support_message(
        db_cfg,
        owner_id,
        NewSupportMessage(email=clean_email, topic=clean_topic, description=clean_description),
    )


def list_support_messages(
    app_config: AppConfig,
    owner_id: Optional[int] = None,
    unread_only: bool = False,
) -> list[SupportMessage]:
    """Support messages of one owner, or of every owner for the administrator."""
    return _db_list_support_messages(_get_db_config(app_config), owner_id, unread_only)


def mark_support_message(
    app_config: AppConfig, message_id: int, read: bool = True
) -> SupportMessage:
    return _db_set_support_message_read(_get_db_config(app_config), message_id, read)


# ---------------------------------------------------------------------------
# CSV import
# ---------------------------------------------------------------------------


def import_entries_from_csv(
    app_config: AppConfig,
    owner_id: int,
    path: Union[str, Path],
    domain: LedgerDomain,
) -> ImportStats:
    """
    Import transactions or cashbook entries from a CSV file.

    Every row is validated (and, for transactions, its customer code
    resolved within the owner's customers) before the first row is written,
    so an invalid file imports nothing. The rows are then written in a
    single database transaction: a failure while writing rolls back every
    row of the file.

    Raises
    ------
    ValueError
        If the file structure or any row is invalid. The message names the
        offending CSV line.
    RecordNotFoundError
        If a transaction references a customer code the owner does not have.
    """
    domain = LedgerDomain(domain)
    db_cfg = _get_db_config(app_config)
    _db_get_owner_by_id(db_cfg, owner_id)

    df = read_ledger_csv(path, domain)
    customers_by_code = {c.customer_code: c for c in _db_list_customers(db_cfg, owner_id)}

    new_entries: list[NewEntry] = []
    for line, row in enumerate(df.itertuples(index=False), start=2):
        try:
            kind = parse_kind(row.kind, domain)
            amount = parse_amount(row.amount)
            occurred_on = parse_entry_date(row.date)
            if domain is LedgerDomain.TRANSACTION:
                description = normalize_transaction_description(row.description)
            else:
                description = validate_cashbook_description(row.description)
        except ValueError as exc:
            raise ValueError(f"Line {line}: {exc}") from exc

        customer_id = None
        if domain is LedgerDomain.TRANSACTION:
            code = str(row.customer_code).strip()
            if code not in customers_by_code:
                raise RecordNotFoundError(
                    f"Line {line}: customer code {code!r} not found for owner #{owner_id}."
                )
            customer_id = customers_by_code[code].id

        new_entries.append(
            NewEntry(
                kind=kind,
                amount=amount,
                occurred_on=occurred_on,
                description=description,
                customer_id=customer_id,
            )
        )

    _db_insert_entries(db_cfg, domain, owner_id, new_entries)
    total = sum((e.amount for e in new_entries), Decimal("0"))

    logger.info(
        "Imported %s %s row(s) from %s for owner #%s",
        len(new_entries),
        domain.value,
        path,
        owner_id,
    )
    return ImportStats(domain=domain, rows_imported=len(new_entries), total_amount=total)
