# SmartHisab - Bookkeeping application for small businesses
# Copyright (c) 2025 SmartHisab contributors
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for SmartHisab.

This module turns the read models produced by `ledger_service` into
display-ready values and pandas DataFrames. It performs no computation of
its own: balances, totals and running balances always come from
`smart_hisab.ledger`.

The main helpers are:

- format_amount:      currency symbol + Indian or western digit grouping,
- balance_label:      "You will give" / "You will get" for customers,
                      "Net Profit" / "Net Loss" for the cashbook,
- *_to_dataframe:     tabular views used by the CLI for console output and
                      CSV export.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import pandas as pd

from .db import CustomerMessage, SupportMessage
from .ledger import ZERO, LedgerDomain, MonetaryEntry, RunningEntry
from .ledger_service import CustomerBalance

CURRENCY_SYMBOLS = {"INR": "₹", "EUR": "€", "USD": "$"}

CUSTOMER_COLUMNS = ["id", "customer_code", "name", "phone", "balance", "status"]
LEDGER_COLUMNS = ["id", "date", "kind", "description", "debit", "credit", "running_balance"]
CASHBOOK_COLUMNS = ["id", "date", "kind", "description", "amount"]
MESSAGE_COLUMNS = [
    "id", "date", "customer", "type", "transaction", "subject", "message", "status", "reply"
]
SUPPORT_COLUMNS = ["id", "date", "owner", "email", "topic", "description", "read"]


def _group_digits(integer_part: str, grouping: str) -> str:
    """Insert thousands separators into a string of digits."""
    if grouping == "indian" and len(integer_part) > 3:
        # Last three digits, then groups of two: 12,34,567
        head, tail = integer_part[:-3], integer_part[-3:]
        groups: list[str] = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        return ",".join([*groups, tail])

    return f"{int(integer_part):,}"


def format_amount(
    amount: Decimal,
    currency: str = "INR",
    grouping: str = "indian",
) -> str:
    """
    Format a monetary amount for display.

    Parameters
    ----------
    amount:
        Decimal amount (any sign).
    currency:
        ISO currency code. INR, EUR and USD are rendered with their symbol;
        any other code is rendered as a prefix ("GBP 1,000.00").
    grouping:
        "indian" (12,34,567.89) or "western" (1,234,567.89).

    Returns
    -------
    str
        The formatted amount with two decimals, e.g. "-₹1,250.00".
    """
    if grouping not in {"indian", "western"}:
        raise ValueError(f"Unknown digit grouping: {grouping!r}")

    value = Decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if value < ZERO else ""
    integer_part, _, fraction = f"{abs(value):.2f}".partition(".")

    code = currency.upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    return f"{sign}{symbol}{_group_digits(integer_part, grouping)}.{fraction}"


def balance_label(balance: Decimal, domain: LedgerDomain = LedgerDomain.TRANSACTION) -> str:
    """Human-readable meaning of a signed balance."""
    if LedgerDomain(domain) is LedgerDomain.CASHBOOK:
        if balance > ZERO:
            return "Net Profit"
        if balance < ZERO:
            return "Net Loss"
        return "Break-even"

    if balance > ZERO:
        return "You will give"
    if balance < ZERO:
        return "You will get"
    return "No balance"


def customers_to_dataframe(
    balances: list[CustomerBalance],
    currency: Optional[str] = None,
    grouping: str = "indian",
) -> pd.DataFrame:
    """
    Build the customers list view.

    When `currency` is given, balances are rendered as formatted strings;
    otherwise they stay Decimal (for CSV export).
    """
    rows = [
        {
            "id": cb.customer.id,
            "customer_code": cb.customer.customer_code,
            "name": cb.customer.name,
            "phone": cb.customer.phone,
            "balance": (
                format_amount(cb.balance, currency, grouping) if currency else cb.balance
            ),
            "status": balance_label(cb.balance),
        }
        for cb in balances
    ]
    return pd.DataFrame(rows, columns=CUSTOMER_COLUMNS)


def running_ledger_to_dataframe(
    rows: list[RunningEntry],
    currency: Optional[str] = None,
    grouping: str = "indian",
) -> pd.DataFrame:
    """
    Build a statement view from running-balance rows.

    Rows are rendered in the order given: pass `ledger.newest_first()` for
    the usual display order. Debits and credits get their own column.
    """

    def fmt(value: Optional[Decimal]):
        if value is None:
            return "-" if currency else None
        return format_amount(value, currency, grouping) if currency else value

    out: list[dict[str, object]] = []
    for row in rows:
        entry = row.entry
        out.append(
            {
                "id": entry.id,
                "date": entry.occurred_on.isoformat(),
                "kind": entry.kind.value,
                "description": entry.description,
                "debit": fmt(None if entry.kind.is_positive else entry.amount),
                "credit": fmt(entry.amount if entry.kind.is_positive else None),
                "running_balance": fmt(row.running_balance),
            }
        )
    return pd.DataFrame(out, columns=LEDGER_COLUMNS)


def cashbook_to_dataframe(
    entries: list[MonetaryEntry],
    currency: Optional[str] = None,
    grouping: str = "indian",
) -> pd.DataFrame:
    rows = [
        {
            "id": e.id,
            "date": e.occurred_on.isoformat(),
            "kind": e.kind.value,
            "description": e.description,
            "amount": format_amount(e.amount, currency, grouping) if currency else e.amount,
        }
        for e in entries
    ]
    return pd.DataFrame(rows, columns=CASHBOOK_COLUMNS)


def top_customers_to_dataframe(
    balances: list[CustomerBalance],
    currency: Optional[str] = None,
    grouping: str = "indian",
) -> pd.DataFrame:
    """Ranked view of a top-customers list (rank starts at 1)."""
    rows = [
        {
            "rank": rank,
            "customer_code": cb.customer.customer_code,
            "name": cb.customer.name,
            "balance": (
                format_amount(cb.balance, currency, grouping) if currency else cb.balance
            ),
        }
        for rank, cb in enumerate(balances, start=1)
    ]
    return pd.DataFrame(rows, columns=["rank", "customer_code", "name", "balance"])


def customer_messages_to_dataframe(messages: list[CustomerMessage]) -> pd.DataFrame:
    """Customer messages view, newest first as returned by the service."""
    rows = [
        {
            "id": m.id,
            "date": m.created_at.date().isoformat(),
            "customer": m.customer_name,
            "type": m.kind.value,
            "transaction": m.transaction_id if m.transaction_id is not None else "",
            "subject": m.subject,
            "message": m.body,
            "status": m.status.value,
            "reply": m.reply or "",
        }
        for m in messages
    ]
    return pd.DataFrame(rows, columns=MESSAGE_COLUMNS)


def support_messages_to_dataframe(messages: list[SupportMessage]) -> pd.DataFrame:
    rows = [
        {
            "id": m.id,
            "date": m.created_at.date().isoformat(),
            "owner": m.owner_name,
            "email": m.email,
            "topic": m.topic,
            "description": m.description,
            "read": "yes" if m.is_read else "no",
        }
        for m in messages
    ]
    return pd.DataFrame(rows, columns=SUPPORT_COLUMNS)
