from datetime import date, datetime, timezone
from decimal import Decimal

import pandas as pd
import pytest

from smart_hisab.db import Customer, CustomerMessage, MessageKind, MessageStatus, SupportMessage
from smart_hisab.ledger import EntryKind, LedgerDomain, MonetaryEntry, compute_running_balances
from smart_hisab.ledger_service import CustomerBalance
from smart_hisab.views import (
    balance_label,
    cashbook_to_dataframe,
    customer_messages_to_dataframe,
    customers_to_dataframe,
    format_amount,
    running_ledger_to_dataframe,
    support_messages_to_dataframe,
    top_customers_to_dataframe,
)

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_customer(customer_id: int, name: str) -> Customer:
    return Customer(
        id=customer_id,
        owner_id=1,
        name=name,
        phone="1",
        customer_code=f"C{customer_id:06d}",
        created_at=NOW,
        updated_at=None,
    )


def make_entry(entry_id, kind, amount, day, subject_id=1) -> MonetaryEntry:
    return MonetaryEntry(
        id=entry_id,
        owner_id=1,
        kind=EntryKind(kind),
        amount=Decimal(amount),
        occurred_on=day,
        recorded_at=NOW,
        description=f"Entry {entry_id}",
        subject_id=subject_id,
    )


@pytest.mark.parametrize(
    "amount, currency, grouping, expected",
    [
        (Decimal("1234567.89"), "INR", "indian", "₹12,34,567.89"),
        (Decimal("1234567.89"), "USD", "western", "$1,234,567.89"),
        (Decimal("-1250"), "INR", "indian", "-₹1,250.00"),
        (Decimal("999"), "EUR", "indian", "€999.00"),
        (Decimal("0"), "INR", "indian", "₹0.00"),
        (Decimal("100000"), "INR", "indian", "₹1,00,000.00"),
        (Decimal("12.5"), "GBP", "western", "GBP 12.50"),
    ],
)
def test_format_amount(amount, currency, grouping, expected) -> None:
    assert format_amount(amount, currency, grouping) == expected


def test_format_amount_rejects_unknown_grouping() -> None:
    with pytest.raises(ValueError):
        format_amount(Decimal("1"), "INR", "french")


def test_balance_labels() -> None:
    assert balance_label(Decimal("10")) == "You will give"
    assert balance_label(Decimal("-10")) == "You will get"
    assert balance_label(Decimal("0")) == "No balance"
    assert balance_label(Decimal("5"), LedgerDomain.CASHBOOK) == "Net Profit"
    assert balance_label(Decimal("-5"), LedgerDomain.CASHBOOK) == "Net Loss"
    assert balance_label(Decimal("0"), LedgerDomain.CASHBOOK) == "Break-even"


def test_customers_to_dataframe() -> None:
    balances = [
        CustomerBalance(make_customer(1, "Ravi"), Decimal("150")),
        CustomerBalance(make_customer(2, "Asha"), Decimal("-75.25")),
    ]

    raw = customers_to_dataframe(balances)
    formatted = customers_to_dataframe(balances, "INR")

    assert list(raw.columns) == ["id", "customer_code", "name", "phone", "balance", "status"]
    assert raw.loc[1, "balance"] == Decimal("-75.25")
    assert formatted.loc[1, "balance"] == "-₹75.25"
    assert list(formatted["status"]) == ["You will give", "You will get"]


def test_customers_to_dataframe_empty_keeps_columns() -> None:
    df = customers_to_dataframe([])
    assert df.empty
    assert "balance" in df.columns


def test_running_ledger_to_dataframe_splits_debit_and_credit() -> None:
    ledger = compute_running_balances(
        [
            make_entry(1, "debit", "100", date(2024, 1, 5)),
            make_entry(2, "credit", "300", date(2024, 1, 10)),
        ]
    )

    df = running_ledger_to_dataframe(ledger.newest_first(), "INR")

    assert list(df["id"]) == [2, 1]
    assert list(df["debit"]) == ["-", "₹100.00"]
    assert list(df["credit"]) == ["₹300.00", "-"]
    assert list(df["running_balance"]) == ["₹200.00", "-₹100.00"]

    raw = running_ledger_to_dataframe(ledger.chronological())
    assert raw.loc[0, "debit"] == Decimal("100")
    assert pd.isna(raw.loc[0, "credit"])


def test_cashbook_and_top_dataframes() -> None:
    entries = [make_entry(1, "income", "10", date(2024, 1, 1), subject_id=None)]
    df = cashbook_to_dataframe(entries, "INR")
    assert list(df.columns) == ["id", "date", "kind", "description", "amount"]
    assert df.loc[0, "amount"] == "₹10.00"
    assert df.loc[0, "date"] == "2024-01-01"

    top = top_customers_to_dataframe(
        [CustomerBalance(make_customer(4, "D"), Decimal("700"))], "INR"
    )
    assert list(top["rank"]) == [1]
    assert top.loc[0, "balance"] == "₹700.00"


def test_message_dataframes() -> None:
    dispute = CustomerMessage(
        id=3,
        owner_id=1,
        customer_id=2,
        customer_name="Ravi",
        transaction_id=7,
        kind=MessageKind.DISPUTE,
        subject="Wrong amount",
        body="It was 10",
        status=MessageStatus.IN_PROGRESS,
        reply="Checking",
        created_at=NOW,
        updated_at=None,
    )
    df = customer_messages_to_dataframe([dispute])
    assert list(df.columns) == [
        "id", "date", "customer", "type", "transaction", "subject", "message", "status", "reply"
    ]
    assert df.loc[0, "type"] == "dispute"
    assert df.loc[0, "status"] == "in_progress"
    assert df.loc[0, "date"] == "2024-01-01"

    support = SupportMessage(
        id=1,
        owner_id=1,
        owner_name="Meera",
        email="m@example.com",
        topic="Billing",
        description="Invoice is wrong",
        is_read=False,
        created_at=NOW,
        updated_at=None,
    )
    sdf = support_messages_to_dataframe([support])
    assert sdf.loc[0, "read"] == "no"
    assert customer_messages_to_dataframe([]).empty
