# SmartHisab - Bookkeeping application for small businesses
# Copyright (c) 2025 SmartHisab contributors
# Licensed under the MIT License. See LICENSE file for details.

"""
Core ledger aggregation for SmartHisab.

Every screen of the application (customer detail, dashboard, analytics,
admin user detail, customer portal) is built on top of the functions in
this module. They operate on already-fetched, owner-scoped collections of
`MonetaryEntry` objects and never perform any I/O.

Sign convention
---------------
Entries belong to one of two domains, each with exactly two kinds:

- customer transactions: ``credit`` (+) and ``debit`` (-)
- cashbook entries:      ``income`` (+) and ``expense`` (-)

For a customer, a positive balance means the owner will give money to the
customer and a negative balance means the owner will get money from the
customer. For the cashbook, a positive balance is a net profit and a
negative balance a net loss. The convention is fixed.

Arithmetic
----------
Amounts are `decimal.Decimal` values with at most two decimal places.
Floats are rejected: summing currency in binary floating point drifts.

Main functions
--------------
- compute_balance(entries)
    Signed total of a collection of entries (order-independent).
- compute_running_balances(entries)
    Chronological pass attaching a running balance to each entry.
- summarize_by_kind(entries, date_from, date_to)
    Per-kind totals and counts over an optional inclusive date window.
- top_by_signed_balance(balances, direction, limit)
    Largest positive or most negative balances.

Any malformed input raises `ContractViolation` immediately.
"""

from collections.abc import Hashable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

ZERO = Decimal("0")
_NOT_RECORDED = datetime.min.replace(tzinfo=timezone.utc)


class ContractViolation(ValueError):
    """An entry or argument reaching the aggregator breaks its contract."""


class LedgerDomain(str, Enum):
    """The two families of monetary entries."""

    TRANSACTION = "transaction"
    CASHBOOK = "cashbook"


class EntryKind(str, Enum):
    """Signed category of an entry.

    Inherits from `str` so that values serialize directly ("debit", ...).
    """

    DEBIT = "debit"
    CREDIT = "credit"
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def domain(self) -> LedgerDomain:
        return _DOMAIN_BY_KIND[self]

    @property
    def sign(self) -> int:
        """+1 for the positive bucket (credit, income), -1 otherwise."""
        return _SIGN_BY_KIND[self]

    @property
    def is_positive(self) -> bool:
        return self.sign > 0

    @classmethod
    def parse(cls, value: object) -> "EntryKind":
        """Convert a raw value ("credit", EntryKind.CREDIT, ...) to a kind."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ContractViolation(f"Unknown entry kind: {value!r}") from exc


_DOMAIN_BY_KIND: dict[EntryKind, LedgerDomain] = {
    EntryKind.DEBIT: LedgerDomain.TRANSACTION,
    EntryKind.CREDIT: LedgerDomain.TRANSACTION,
    EntryKind.INCOME: LedgerDomain.CASHBOOK,
    EntryKind.EXPENSE: LedgerDomain.CASHBOOK,
}

_SIGN_BY_KIND: dict[EntryKind, int] = {
    EntryKind.DEBIT: -1,
    EntryKind.CREDIT: 1,
    EntryKind.INCOME: 1,
    EntryKind.EXPENSE: -1,
}

# (positive kind, negative kind) per domain
KINDS_BY_DOMAIN: dict[LedgerDomain, tuple[EntryKind, EntryKind]] = {
    LedgerDomain.TRANSACTION: (EntryKind.CREDIT, EntryKind.DEBIT),
    LedgerDomain.CASHBOOK: (EntryKind.INCOME, EntryKind.EXPENSE),
}


class BalanceDirection(str, Enum):
    """Selection used by `top_by_signed_balance`."""

    HIGHEST = "highest"
    MOST_NEGATIVE = "most_negative"


@dataclass(frozen=True)
class MonetaryEntry:
    """
    One recorded monetary event: a customer transaction or a cashbook line.

    Attributes
    ----------
    id:
        Identifier assigned by the store.
    owner_id:
        Business owner account the entry belongs to.
    kind:
        Signed category (see `EntryKind`).
    amount:
        Strictly positive Decimal with at most two decimal places.
    occurred_on:
        Date of the financial event.
    recorded_at:
        Creation timestamp assigned by the store (UTC).
    description:
        Free text. "NONE" for transactions recorded without a description.
    subject_id:
        Customer id for transactions, None for cashbook entries.
    updated_at:
        Timestamp of the last modification, if any.
    """

    id: int
    owner_id: int
    kind: EntryKind
    amount: Decimal
    occurred_on: date
    recorded_at: datetime
    description: str = ""
    subject_id: Optional[int] = None
    updated_at: Optional[datetime] = None

    @property
    def domain(self) -> LedgerDomain:
        return self.kind.domain

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.kind.is_positive else -self.amount


@dataclass(frozen=True)
class RunningEntry:
    """An entry annotated with the balance as of (and including) itself."""

    entry: MonetaryEntry
    running_balance: Decimal


@dataclass(frozen=True)
class RunningLedger:
    """
    Result of `compute_running_balances`.

    `rows` are always in chronological order. Use `newest_first()` for
    display; it reorders rows without touching their running balances.
    """

    rows: tuple[RunningEntry, ...]
    balance: Decimal

    def chronological(self) -> list[RunningEntry]:
        return list(self.rows)

    def newest_first(self) -> list[RunningEntry]:
        return list(reversed(self.rows))

    def __len__(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class KindSummary:
    """
    Result of `summarize_by_kind`.

    Attributes
    ----------
    totals:
        Sum of amounts per kind. Both kinds of the domain are always
        present once the domain is known.
    counts:
        Number of entries per kind.
    net:
        Positive bucket minus negative bucket.
    total_entries:
        Number of entries retained by the date filter.
    domain:
        Domain of the summarized entries, or None for an empty input
        without an explicit domain.
    """

    totals: dict[EntryKind, Decimal] = field(default_factory=dict)
    counts: dict[EntryKind, int] = field(default_factory=dict)
    net: Decimal = ZERO
    total_entries: int = 0
    domain: Optional[LedgerDomain] = None

    def total_for(self, kind: EntryKind) -> Decimal:
        return self.totals.get(kind, ZERO)

    def count_for(self, kind: EntryKind) -> int:
        return self.counts.get(kind, 0)


# ---------------------------------------------------------------------------
# Contract checks
# ---------------------------------------------------------------------------


def _check_amount(amount: object, what: str) -> Decimal:
    if isinstance(amount, bool) or not isinstance(amount, Decimal):
        raise ContractViolation(
            f"{what} must be a Decimal, got {type(amount).__name__}."
        )
    if not amount.is_finite():
        raise ContractViolation(f"{what} must be finite, got {amount}.")
    return amount


def _check_entry(entry: MonetaryEntry) -> MonetaryEntry:
    """Fail fast on an entry that breaks the MonetaryEntry invariants."""
    if not isinstance(entry, MonetaryEntry):
        raise ContractViolation(
            f"Expected a MonetaryEntry, got {type(entry).__name__}."
        )
    if not isinstance(entry.kind, EntryKind):
        raise ContractViolation(
            f"Entry #{entry.id} has an unrecognized kind: {entry.kind!r}"
        )
    amount = _check_amount(entry.amount, f"Amount of entry #{entry.id}")
    if amount <= ZERO:
        raise ContractViolation(
            f"Entry #{entry.id} has a non-positive amount: {amount}"
        )
    if amount.scaleb(2) != amount.scaleb(2).to_integral_value():
        raise ContractViolation(
            f"Entry #{entry.id} has more than two decimal places: {amount}"
        )
    if isinstance(entry.occurred_on, datetime):
        raise ContractViolation(
            f"Entry #{entry.id} must carry a calendar date, not a datetime."
        )
    if not isinstance(entry.occurred_on, date):
        raise ContractViolation(f"Entry #{entry.id} is missing its date.")
    return entry


def _check_entries(entries: Iterable[MonetaryEntry]) -> list[MonetaryEntry]:
    """Validate every entry and make sure they all share one domain."""
    checked = [_check_entry(e) for e in entries]
    domains = {e.domain for e in checked}
    if len(domains) > 1:
        raise ContractViolation(
            "Cannot aggregate customer transactions and cashbook entries together."
        )
    return checked


def _as_utc(moment: Optional[datetime]) -> datetime:
    """Return `moment` as an aware UTC instant; naive values are read as UTC."""
    if moment is None:
        return _NOT_RECORDED
    if moment.tzinfo is None or moment.utcoffset() is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _chronological_key(entry: MonetaryEntry) -> tuple:
    return (entry.occurred_on, _as_utc(entry.recorded_at), entry.id)


# ---------------------------------------------------------------------------
# Aggregations
# ---------------------------------------------------------------------------


def compute_balance(entries: Iterable[MonetaryEntry]) -> Decimal:
    """Return the signed balance of a collection of entries.

    Credits and income are added, debits and expenses subtracted. The
    result does not depend on the order of `entries`; an empty collection
    has a balance of 0.

    Raises:
        ContractViolation: if any entry is malformed or if transactions and
            cashbook entries are mixed.
    """
    balance = ZERO
    for entry in _check_entries(entries):
        balance += entry.signed_amount
    return balance


def compute_running_balances(entries: Iterable[MonetaryEntry]) -> RunningLedger:
    """Annotate the entries of one subject with running balances.

    Steps:
        1. Sort ascending by `occurred_on`, then `recorded_at`, then `id`.
        2. Walk the sorted entries once from a balance of 0, applying the
           signed amount of each entry and attaching the resulting balance.

    The final balance equals `compute_balance` over the same entries.

    Raises:
        ContractViolation: on malformed entries, mixed domains, or entries
            attributed to different subjects.
    """
    checked = _check_entries(entries)

    subjects = {e.subject_id for e in checked}
    if len(subjects) > 1:
        raise ContractViolation(
            "Running balances must be computed for a single subject, got "
            f"{len(subjects)} subjects."
        )

    balance = ZERO
    rows: list[RunningEntry] = []
    for entry in sorted(checked, key=_chronological_key):
        balance += entry.signed_amount
        rows.append(RunningEntry(entry=entry, running_balance=balance))

    return RunningLedger(rows=tuple(rows), balance=balance)


def summarize_by_kind(
    entries: Iterable[MonetaryEntry],
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    *,
    domain: Optional[LedgerDomain] = None,
) -> KindSummary:
    """Total and count entries per kind within an optional date window.

    An entry is retained iff ``occurred_on >= date_from`` (when given) and
    ``occurred_on <= date_to`` (when given). Both bounds are inclusive.

    Args:
        entries: Entries of a single domain.
        date_from: Optional inclusive lower bound.
        date_to: Optional inclusive upper bound.
        domain: Domain to report when `entries` may be empty. When given,
            every entry must belong to it.

    Returns:
        A KindSummary whose `net` equals `compute_balance` over the same
        retained entries.
    """
    checked = _check_entries(entries)

    if checked:
        entries_domain = checked[0].domain
        if domain is not None and LedgerDomain(domain) != entries_domain:
            raise ContractViolation(
                f"Expected {LedgerDomain(domain).value} entries, "
                f"got {entries_domain.value} entries."
            )
        domain = entries_domain
    elif domain is not None:
        domain = LedgerDomain(domain)

    totals: dict[EntryKind, Decimal] = {}
    counts: dict[EntryKind, int] = {}
    if domain is not None:
        for kind in KINDS_BY_DOMAIN[domain]:
            totals[kind] = ZERO
            counts[kind] = 0

    net = ZERO
    total_entries = 0
    for entry in checked:
        if date_from is not None and entry.occurred_on < date_from:
            continue
        if date_to is not None and entry.occurred_on > date_to:
            continue
        totals[entry.kind] += entry.amount
        counts[entry.kind] += 1
        net += entry.signed_amount
        total_entries += 1

    return KindSummary(
        totals=totals,
        counts=counts,
        net=net,
        total_entries=total_entries,
        domain=domain,
    )


def top_by_signed_balance(
    balances: Iterable[tuple[Hashable, Decimal]],
    direction: BalanceDirection,
    limit: int = 5,
) -> list[tuple[Hashable, Decimal]]:
    """Return the largest positive or the most negative balances.

    Args:
        balances: (subject, balance) pairs. Subjects must be mutually
            orderable (e.g. integer customer ids): equal balances are
            ordered by subject ascending.
        direction: HIGHEST keeps strictly positive balances sorted
            descending; MOST_NEGATIVE keeps strictly negative balances
            sorted ascending. Zero balances never qualify.
        limit: Maximum number of pairs to return.

    Returns:
        At most `limit` (subject, balance) pairs, possibly empty.
    """
    direction = BalanceDirection(direction)
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        raise ContractViolation(f"Limit must be a non-negative integer: {limit!r}")

    pairs: Sequence[tuple[Hashable, Decimal]] = [
        (subject, _check_amount(balance, f"Balance of {subject!r}"))
        for subject, balance in balances
    ]

    if direction is BalanceDirection.HIGHEST:
        selected = [p for p in pairs if p[1] > ZERO]
        selected.sort(key=lambda p: (-p[1], p[0]))
    else:
        selected = [p for p in pairs if p[1] < ZERO]
        selected.sort(key=lambda p: (p[1], p[0]))

    return selected[:limit]
