from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from itertools import permutations

import pytest

from smart_hisab.ledger import (
    BalanceDirection,
    ContractViolation,
    EntryKind,
    LedgerDomain,
    MonetaryEntry,
    compute_balance,
    compute_running_balances,
    summarize_by_kind,
    top_by_signed_balance,
)

RECORDED = datetime(2024, 2, 1, 12, 0, tzinfo=timezone.utc)


def make_entry(
    entry_id: int,
    kind: str,
    amount: str,
    occurred_on: date = date(2024, 1, 1),
    subject_id=1,
    recorded_at: datetime = RECORDED,
) -> MonetaryEntry:
    """Helper to build a MonetaryEntry with sensible defaults."""
    kind_enum = EntryKind(kind)
    return MonetaryEntry(
        id=entry_id,
        owner_id=1,
        kind=kind_enum,
        amount=Decimal(amount),
        occurred_on=occurred_on,
        recorded_at=recorded_at,
        subject_id=subject_id if kind_enum.domain is LedgerDomain.TRANSACTION else None,
    )


def scenario_3_entries() -> list[MonetaryEntry]:
    return [
        make_entry(1, "debit", "100", date(2024, 1, 5)),
        make_entry(2, "credit", "300", date(2024, 1, 10)),
        make_entry(3, "debit", "50", date(2024, 1, 1)),
    ]


# ---------------------------------------------------------------------------
# compute_balance
# ---------------------------------------------------------------------------


def test_compute_balance_credits_minus_debits():
    entries = [
        make_entry(1, "credit", "500"),
        make_entry(2, "debit", "200"),
        make_entry(3, "credit", "100"),
    ]
    assert compute_balance(entries) == Decimal("400")


def test_compute_balance_cashbook_profit():
    entries = [
        make_entry(1, "income", "1000"),
        make_entry(2, "expense", "300"),
        make_entry(3, "expense", "200"),
    ]
    assert compute_balance(entries) == Decimal("500")


def test_compute_balance_empty_is_zero():
    assert compute_balance([]) == Decimal("0")


def test_compute_balance_is_order_independent():
    """Every permutation of the same entries yields the identical balance."""
    entries = [
        make_entry(1, "credit", "0.10"),
        make_entry(2, "debit", "0.20"),
        make_entry(3, "credit", "0.30"),
        make_entry(4, "debit", "1234.56"),
    ]
    results = {compute_balance(list(p)) for p in permutations(entries)}
    assert results == {Decimal("-1234.36")}


def test_compute_balance_is_exact_for_many_small_amounts():
    """Summing many cents must not drift."""
    entries = [make_entry(i, "credit", "0.10") for i in range(1, 1001)]
    assert compute_balance(entries) == Decimal("100.00")


def test_compute_balance_is_repeatable_and_does_not_consume_input():
    entries = scenario_3_entries()
    first = compute_balance(entries)
    second = compute_balance(entries)
    assert first == second == Decimal("150")
    assert len(entries) == 3


def test_compute_balance_accepts_a_generator():
    entries = scenario_3_entries()
    assert compute_balance(e for e in entries) == Decimal("150")


# ---------------------------------------------------------------------------
# compute_running_balances
# ---------------------------------------------------------------------------


def test_running_balances_are_chronological():
    ledger = compute_running_balances(scenario_3_entries())

    assert [r.entry.id for r in ledger.chronological()] == [3, 1, 2]
    assert [r.running_balance for r in ledger.chronological()] == [
        Decimal("-50"),
        Decimal("-150"),
        Decimal("150"),
    ]
    assert ledger.balance == Decimal("150")
    assert ledger.balance == compute_balance(scenario_3_entries())


def test_running_balances_newest_first_keeps_balances():
    ledger = compute_running_balances(scenario_3_entries())

    newest = ledger.newest_first()
    assert [r.entry.id for r in newest] == [2, 1, 3]
    assert [r.running_balance for r in newest] == [
        Decimal("150"),
        Decimal("-150"),
        Decimal("-50"),
    ]
    assert len(ledger) == 3


def test_running_balances_same_day_ordered_by_recorded_at_then_id():
    day = date(2024, 3, 1)
    early = datetime(2024, 3, 1, 8, 0, tzinfo=timezone.utc)
    late = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
    entries = [
        make_entry(5, "credit", "10", day, recorded_at=late),
        make_entry(7, "debit", "3", day, recorded_at=early),
        make_entry(6, "debit", "2", day, recorded_at=early),
    ]

    ledger = compute_running_balances(entries)

    assert [r.entry.id for r in ledger.rows] == [6, 7, 5]
    assert [r.running_balance for r in ledger.rows] == [
        Decimal("-2"),
        Decimal("-5"),
        Decimal("5"),
    ]


def test_running_balances_same_day_compares_recorded_at_as_instants():
    day = date(2024, 3, 1)
    india = timezone(timedelta(hours=5, minutes=30))
    utc_five = datetime(2024, 3, 1, 5, 0, tzinfo=timezone.utc)
    # 04:30 UTC, although its wall-clock time reads later
    india_ten = datetime(2024, 3, 1, 10, 0, tzinfo=india)
    # naive values are read as UTC
    naive_quarter_to_five = datetime(2024, 3, 1, 4, 45)
    entries = [
        make_entry(1, "credit", "10", day, recorded_at=utc_five),
        make_entry(2, "debit", "4", day, recorded_at=india_ten),
        make_entry(3, "debit", "1", day, recorded_at=naive_quarter_to_five),
    ]

    ledger = compute_running_balances(entries)

    assert [r.entry.id for r in ledger.rows] == [2, 3, 1]
    assert [r.running_balance for r in ledger.rows] == [
        Decimal("-4"),
        Decimal("-5"),
        Decimal("5"),
    ]


def test_running_balances_monotonic_for_single_kind():
    credits = [
        make_entry(i, "credit", str(i), date(2024, 1, i)) for i in range(1, 6)
    ]
    debits = [make_entry(i, "debit", str(i), date(2024, 1, i)) for i in range(1, 6)]

    up = [r.running_balance for r in compute_running_balances(credits).rows]
    down = [r.running_balance for r in compute_running_balances(debits).rows]

    assert up == sorted(up)
    assert down == sorted(down, reverse=True)


def test_running_balances_empty():
    ledger = compute_running_balances([])
    assert ledger.rows == ()
    assert ledger.balance == Decimal("0")


def test_running_balances_rejects_multiple_subjects():
    entries = [
        make_entry(1, "credit", "10", subject_id=1),
        make_entry(2, "credit", "10", subject_id=2),
    ]
    with pytest.raises(ContractViolation):
        compute_running_balances(entries)


def test_running_balances_for_cashbook_entries():
    entries = [
        make_entry(1, "income", "100", date(2024, 1, 2)),
        make_entry(2, "expense", "40", date(2024, 1, 1)),
    ]
    ledger = compute_running_balances(entries)
    assert [r.running_balance for r in ledger.rows] == [Decimal("-40"), Decimal("60")]


# ---------------------------------------------------------------------------
# summarize_by_kind
# ---------------------------------------------------------------------------


def test_summarize_by_kind_with_inclusive_window():
    summary = summarize_by_kind(
        scenario_3_entries(), date(2024, 1, 5), date(2024, 1, 10)
    )

    assert summary.total_for(EntryKind.DEBIT) == Decimal("100")
    assert summary.total_for(EntryKind.CREDIT) == Decimal("300")
    assert summary.net == Decimal("200")
    assert summary.total_entries == 2
    assert summary.count_for(EntryKind.DEBIT) == 1
    assert summary.domain is LedgerDomain.TRANSACTION


def test_summarize_by_kind_net_matches_balance():
    entries = scenario_3_entries()
    summary = summarize_by_kind(entries)
    assert summary.net == compute_balance(entries)
    assert summary.total_entries == 3

    window = [e for e in entries if date(2024, 1, 2) <= e.occurred_on <= date(2024, 1, 31)]
    assert (
        summarize_by_kind(entries, date(2024, 1, 2), date(2024, 1, 31)).net
        == compute_balance(window)
    )


def test_summarize_by_kind_single_bound():
    entries = scenario_3_entries()

    after = summarize_by_kind(entries, date_from=date(2024, 1, 5))
    before = summarize_by_kind(entries, date_to=date(2024, 1, 5))

    assert after.total_entries == 2
    assert before.total_entries == 2
    assert before.net == Decimal("-150")


def test_summarize_by_kind_empty_cashbook_has_zero_totals():
    summary = summarize_by_kind([], domain=LedgerDomain.CASHBOOK)

    assert summary.totals == {EntryKind.INCOME: Decimal("0"), EntryKind.EXPENSE: Decimal("0")}
    assert summary.net == Decimal("0")
    assert summary.total_entries == 0


def test_summarize_by_kind_empty_without_domain():
    summary = summarize_by_kind([])
    assert summary.totals == {}
    assert summary.domain is None
    assert summary.total_for(EntryKind.INCOME) == Decimal("0")


def test_summarize_by_kind_inverted_window_is_empty():
    summary = summarize_by_kind(scenario_3_entries(), date(2024, 1, 10), date(2024, 1, 1))
    assert summary.total_entries == 0
    assert summary.total_for(EntryKind.CREDIT) == Decimal("0")


def test_summarize_by_kind_rejects_wrong_domain():
    with pytest.raises(ContractViolation):
        summarize_by_kind(scenario_3_entries(), domain=LedgerDomain.CASHBOOK)


# ---------------------------------------------------------------------------
# top_by_signed_balance
# ---------------------------------------------------------------------------


def test_top_highest_excludes_zero_and_negative():
    balances = [
        ("A", Decimal("500")),
        ("B", Decimal("-300")),
        ("C", Decimal("0")),
        ("D", Decimal("700")),
    ]
    assert top_by_signed_balance(balances, BalanceDirection.HIGHEST, 5) == [
        ("D", Decimal("700")),
        ("A", Decimal("500")),
    ]


def test_top_most_negative():
    balances = [
        ("A", Decimal("-5")),
        ("B", Decimal("-300")),
        ("C", Decimal("0")),
        ("D", Decimal("700")),
    ]
    assert top_by_signed_balance(balances, "most_negative", 5) == [
        ("B", Decimal("-300")),
        ("A", Decimal("-5")),
    ]


def test_top_respects_limit_and_breaks_ties_by_subject():
    balances = [(3, Decimal("10")), (1, Decimal("10")), (2, Decimal("20"))]

    assert top_by_signed_balance(balances, BalanceDirection.HIGHEST, 2) == [
        (2, Decimal("20")),
        (1, Decimal("10")),
    ]
    assert top_by_signed_balance(balances, BalanceDirection.HIGHEST, 0) == []


@pytest.mark.parametrize("limit", [-1, 2.5, True, "3"])
def test_top_rejects_invalid_limit(limit):
    with pytest.raises(ContractViolation):
        top_by_signed_balance([(1, Decimal("1"))], BalanceDirection.HIGHEST, limit)


def test_top_rejects_unknown_direction():
    with pytest.raises(ValueError):
        top_by_signed_balance([(1, Decimal("1"))], "lowest", 5)


# ---------------------------------------------------------------------------
# Contract violations
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("amount", ["0", "-10"])
def test_non_positive_amount_is_rejected(amount):
    with pytest.raises(ContractViolation):
        compute_balance([make_entry(1, "credit", amount)])


def test_float_amount_is_rejected():
    entry = MonetaryEntry(
        id=1,
        owner_id=1,
        kind=EntryKind.CREDIT,
        amount=10.5,
        occurred_on=date(2024, 1, 1),
        recorded_at=RECORDED,
        subject_id=1,
    )
    with pytest.raises(ContractViolation):
        compute_balance([entry])


def test_unknown_kind_is_rejected():
    entry = MonetaryEntry(
        id=1,
        owner_id=1,
        kind="refund",
        amount=Decimal("1"),
        occurred_on=date(2024, 1, 1),
        recorded_at=RECORDED,
    )
    with pytest.raises(ContractViolation):
        compute_balance([entry])


def test_missing_date_is_rejected():
    entry = MonetaryEntry(
        id=1,
        owner_id=1,
        kind=EntryKind.INCOME,
        amount=Decimal("1"),
        occurred_on=None,
        recorded_at=RECORDED,
    )
    with pytest.raises(ContractViolation):
        summarize_by_kind([entry])


def test_datetime_occurred_on_is_rejected():
    entry = make_entry(1, "credit", "10", occurred_on=datetime(2024, 1, 1, 9, 30))
    with pytest.raises(ContractViolation, match="calendar date"):
        compute_running_balances([entry])


@pytest.mark.parametrize("amount", ["10.005", "0.001"])
def test_amount_with_more_than_two_decimals_is_rejected(amount):
    with pytest.raises(ContractViolation, match="two decimal places"):
        compute_balance([make_entry(1, "credit", amount)])


def test_trailing_zero_decimals_are_accepted():
    assert compute_balance([make_entry(1, "credit", "10.500")]) == Decimal("10.5")


def test_mixed_domains_are_rejected():
    entries = [make_entry(1, "credit", "10"), make_entry(2, "income", "10")]
    with pytest.raises(ContractViolation):
        compute_balance(entries)


def test_entry_kind_parse():
    assert EntryKind.parse(" Credit ") is EntryKind.CREDIT
    assert EntryKind.parse(EntryKind.EXPENSE) is EntryKind.EXPENSE
    assert EntryKind.DEBIT.sign == -1
    assert EntryKind.INCOME.domain is LedgerDomain.CASHBOOK
    with pytest.raises(ContractViolation):
        EntryKind.parse("refund")
