import sqlite3
from datetime import date, datetime
from decimal import Decimal

import pytest

from smart_hisab.db import (
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
    OwnerUpdate,
    RecordNotFoundError,
    TransactionsFilter,
    count_customers,
    count_owners,
    count_support_messages,
    customer_code_exists,
    delete_customer,
    delete_entry,
    delete_owner,
    from_cents,
    get_customer,
    get_customer_by_code,
    get_customer_message,
    get_entry,
    get_owner_by_id,
    init_database,
    insert_customer,
    insert_customer_message,
    insert_entries,
    insert_entry,
    insert_owner,
    insert_support_message,
    list_cashbook_entries,
    list_customer_messages,
    list_customers,
    list_owners,
    list_support_messages,
    list_transactions,
    search_transactions,
    set_support_message_read,
    to_cents,
    update_customer,
    update_customer_message,
    update_entry,
    update_owner,
)
from smart_hisab.ledger import EntryKind, LedgerDomain


def make_tmp_db_cfg(tmp_path) -> DatabaseConfig:
    """Helper to build a DatabaseConfig pointing to a temporary SQLite file."""
    db_path = tmp_path / "test_db.sqlite"
    return DatabaseConfig(engine="sqlite", path=db_path)


def make_owner(cfg, email="owner@example.com"):
    return insert_owner(cfg, NewOwner(name="Owner", email=email, business_name="Shop"))


def make_customer(cfg, owner_id, code="C000001"):
    return insert_customer(
        cfg, owner_id, NewCustomer(name="Ravi", phone="9999999999", customer_code=code)
    )


def add_tx(cfg, owner_id, customer_id, kind, amount, day, description="NONE"):
    return insert_entry(
        cfg,
        LedgerDomain.TRANSACTION,
        owner_id,
        NewEntry(
            kind=EntryKind(kind),
            amount=Decimal(amount),
            occurred_on=day,
            description=description,
            customer_id=customer_id,
        ),
    )


def add_cash(cfg, owner_id, kind, amount, day, description="Cash"):
    return insert_entry(
        cfg,
        LedgerDomain.CASHBOOK,
        owner_id,
        NewEntry(
            kind=EntryKind(kind),
            amount=Decimal(amount),
            occurred_on=day,
            description=description,
        ),
    )


def test_init_database_creates_file_and_schema(tmp_path):
    """init_database should create the SQLite file and all tables."""
    cfg = make_tmp_db_cfg(tmp_path)

    assert not cfg.path.exists()
    init_database(cfg)
    init_database(cfg)  # idempotent
    assert cfg.path.exists()

    conn = sqlite3.connect(cfg.path)
    try:
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table';")
        }
    finally:
        conn.close()
    assert {
        "owners",
        "customers",
        "transactions",
        "cashbook_entries",
        "customer_messages",
        "support_messages",
    } <= tables
    assert count_owners(cfg) == 0


def test_unsupported_engine_is_rejected(tmp_path):
    cfg = DatabaseConfig(engine="postgres", path=tmp_path / "x.db")
    with pytest.raises(ValueError):
        init_database(cfg)


def test_cents_conversion_is_exact():
    assert to_cents(Decimal("12.34")) == 1234
    assert to_cents(Decimal("5")) == 500
    assert from_cents(1234) == Decimal("12.34")
    with pytest.raises(ValueError):
        to_cents(Decimal("0.001"))


def test_owner_crud(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)

    assert owner.id is not None
    assert get_owner_by_id(cfg, owner.id).email == "owner@example.com"

    updated = update_owner(cfg, owner.id, OwnerUpdate(business_name="New Shop"))
    assert updated.business_name == "New Shop"
    assert updated.name == "Owner"
    assert updated.updated_at is not None

    with pytest.raises(ValueError):
        update_owner(cfg, owner.id, OwnerUpdate())

    delete_owner(cfg, owner.id)
    with pytest.raises(RecordNotFoundError):
        get_owner_by_id(cfg, owner.id)


def test_owner_email_is_unique(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    make_owner(cfg)
    with pytest.raises(ValueError):
        make_owner(cfg)


def test_list_owners_newest_first(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    first = make_owner(cfg, "a@example.com")
    second = make_owner(cfg, "b@example.com")

    assert [o.id for o in list_owners(cfg)] == [second.id, first.id]
    assert count_owners(cfg) == 2


def test_customers_are_scoped_by_owner(tmp_path):
    """A customer of another owner behaves exactly like a missing one."""
    cfg = make_tmp_db_cfg(tmp_path)
    owner_a = make_owner(cfg, "a@example.com")
    owner_b = make_owner(cfg, "b@example.com")
    customer = make_customer(cfg, owner_a.id)

    assert get_customer(cfg, owner_a.id, customer.id).name == "Ravi"
    with pytest.raises(RecordNotFoundError):
        get_customer(cfg, owner_b.id, customer.id)
    with pytest.raises(RecordNotFoundError):
        update_customer(cfg, owner_b.id, customer.id, CustomerUpdate(name="X"))
    with pytest.raises(RecordNotFoundError):
        delete_customer(cfg, owner_b.id, customer.id)

    assert list_customers(cfg, owner_b.id) == []
    assert count_customers(cfg, owner_a.id) == 1


def test_customer_code_lookup_and_uniqueness(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    customer = make_customer(cfg, owner.id, code="C123456")

    assert customer_code_exists(cfg, "C123456")
    assert not customer_code_exists(cfg, "C000000")
    assert get_customer_by_code(cfg, "C123456").id == customer.id

    with pytest.raises(ValueError):
        make_customer(cfg, owner.id, code="C123456")
    with pytest.raises(RecordNotFoundError):
        get_customer_by_code(cfg, "C000000")


def test_insert_customer_requires_existing_owner(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    with pytest.raises(RecordNotFoundError):
        make_customer(cfg, 42)


def test_transaction_round_trip_keeps_exact_amount(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    customer = make_customer(cfg, owner.id)

    entry = add_tx(cfg, owner.id, customer.id, "credit", "1234.56", date(2024, 1, 5))

    assert entry.amount == Decimal("1234.56")
    assert entry.kind is EntryKind.CREDIT
    assert entry.subject_id == customer.id
    assert entry.occurred_on == date(2024, 1, 5)
    assert entry.recorded_at is not None


def test_insert_entry_rejects_kind_of_other_domain(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    customer = make_customer(cfg, owner.id)

    with pytest.raises(ValueError):
        add_tx(cfg, owner.id, customer.id, "income", "10", date(2024, 1, 1))
    with pytest.raises(ValueError):
        add_cash(cfg, owner.id, "credit", "10", date(2024, 1, 1))


def test_transaction_requires_customer_of_same_owner(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner_a = make_owner(cfg, "a@example.com")
    owner_b = make_owner(cfg, "b@example.com")
    customer = make_customer(cfg, owner_a.id)

    with pytest.raises(RecordNotFoundError):
        add_tx(cfg, owner_b.id, customer.id, "debit", "10", date(2024, 1, 1))


def test_insert_entry_stores_only_the_date_of_a_datetime(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)

    entry = add_cash(cfg, owner.id, "income", "10", datetime(2024, 1, 1, 9, 30))

    assert entry.occurred_on == date(2024, 1, 1)
    assert [e.id for e in list_cashbook_entries(cfg, owner.id, end=date(2024, 1, 1))] == [
        entry.id
    ]


def test_insert_entries_writes_the_whole_batch(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    customer = make_customer(cfg, owner.id)
    batch = [
        NewEntry(EntryKind.CREDIT, Decimal("500"), date(2024, 1, 1), "Advance", customer.id),
        NewEntry(EntryKind.DEBIT, Decimal("20.50"), date(2024, 1, 2), "NONE", customer.id),
    ]

    ids = insert_entries(cfg, LedgerDomain.TRANSACTION, owner.id, batch)

    stored = list_transactions(cfg, owner.id, customer.id)
    assert [t.id for t in stored] == ids
    assert [t.amount for t in stored] == [Decimal("500"), Decimal("20.50")]


def test_insert_entries_checks_every_customer_before_writing(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg, "a@example.com")
    stranger_owner = make_owner(cfg, "b@example.com")
    customer = make_customer(cfg, owner.id)
    stranger = make_customer(cfg, stranger_owner.id, code="C000002")
    batch = [
        NewEntry(EntryKind.CREDIT, Decimal("5"), date(2024, 1, 1), "NONE", customer.id),
        NewEntry(EntryKind.CREDIT, Decimal("5"), date(2024, 1, 1), "NONE", stranger.id),
    ]

    with pytest.raises(RecordNotFoundError):
        insert_entries(cfg, LedgerDomain.TRANSACTION, owner.id, batch)
    assert list_transactions(cfg, owner.id) == []


def test_insert_entries_rolls_back_on_a_failing_row(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    init_database(cfg)
    conn = sqlite3.connect(cfg.path)
    try:
        conn.execute(
            """
            CREATE TRIGGER reject_tea BEFORE INSERT ON cashbook_entries
            WHEN NEW.description = 'Tea'
            BEGIN SELECT RAISE(ABORT, 'rejected'); END;
            """
        )
        conn.commit()
    finally:
        conn.close()
    batch = [
        NewEntry(EntryKind.INCOME, Decimal("500"), date(2024, 1, 1), "Sales"),
        NewEntry(EntryKind.EXPENSE, Decimal("30"), date(2024, 1, 2), "Tea"),
        NewEntry(EntryKind.INCOME, Decimal("20"), date(2024, 1, 3), "Sales"),
    ]

    with pytest.raises(sqlite3.IntegrityError):
        insert_entries(cfg, LedgerDomain.CASHBOOK, owner.id, batch)
    assert list_cashbook_entries(cfg, owner.id) == []


def test_list_transactions_is_chronological(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    customer = make_customer(cfg, owner.id)
    other = make_customer(cfg, owner.id, code="C000002")

    add_tx(cfg, owner.id, customer.id, "debit", "100", date(2024, 1, 5))
    add_tx(cfg, owner.id, customer.id, "credit", "300", date(2024, 1, 10))
    add_tx(cfg, owner.id, customer.id, "debit", "50", date(2024, 1, 1))
    add_tx(cfg, owner.id, other.id, "credit", "1", date(2024, 1, 2))

    all_tx = list_transactions(cfg, owner.id)
    customer_tx = list_transactions(cfg, owner.id, customer.id)

    assert len(all_tx) == 4
    assert [t.occurred_on.day for t in customer_tx] == [1, 5, 10]


def test_update_and_delete_entry(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    entry = add_cash(cfg, owner.id, "income", "100", date(2024, 1, 1))

    updated = update_entry(
        cfg,
        LedgerDomain.CASHBOOK,
        owner.id,
        entry.id,
        EntryUpdate(amount=Decimal("150.50"), kind=EntryKind.EXPENSE),
    )
    assert updated.amount == Decimal("150.50")
    assert updated.kind is EntryKind.EXPENSE
    assert updated.description == "Cash"
    assert updated.updated_at is not None

    with pytest.raises(ValueError):
        update_entry(cfg, LedgerDomain.CASHBOOK, owner.id, entry.id, EntryUpdate())
    with pytest.raises(ValueError):
        update_entry(
            cfg,
            LedgerDomain.CASHBOOK,
            owner.id,
            entry.id,
            EntryUpdate(kind=EntryKind.DEBIT),
        )

    delete_entry(cfg, LedgerDomain.CASHBOOK, owner.id, entry.id)
    with pytest.raises(RecordNotFoundError):
        get_entry(cfg, LedgerDomain.CASHBOOK, owner.id, entry.id)
    with pytest.raises(RecordNotFoundError):
        delete_entry(cfg, LedgerDomain.CASHBOOK, owner.id, entry.id)


def test_entries_of_other_owner_are_invisible(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner_a = make_owner(cfg, "a@example.com")
    owner_b = make_owner(cfg, "b@example.com")
    entry = add_cash(cfg, owner_a.id, "income", "100", date(2024, 1, 1))

    with pytest.raises(RecordNotFoundError):
        get_entry(cfg, LedgerDomain.CASHBOOK, owner_b.id, entry.id)
    with pytest.raises(RecordNotFoundError):
        update_entry(
            cfg,
            LedgerDomain.CASHBOOK,
            owner_b.id,
            entry.id,
            EntryUpdate(description="stolen"),
        )
    assert list_cashbook_entries(cfg, owner_b.id) == []


def test_list_cashbook_entries_newest_first_with_bounds(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    add_cash(cfg, owner.id, "income", "100", date(2024, 1, 1))
    add_cash(cfg, owner.id, "expense", "40", date(2024, 1, 15))
    add_cash(cfg, owner.id, "income", "10", date(2024, 2, 1))

    entries = list_cashbook_entries(cfg, owner.id)
    assert [e.occurred_on for e in entries] == [
        date(2024, 2, 1),
        date(2024, 1, 15),
        date(2024, 1, 1),
    ]
    assert all(e.subject_id is None for e in entries)

    january = list_cashbook_entries(cfg, owner.id, date(2024, 1, 1), date(2024, 1, 15))
    assert len(january) == 2


def test_delete_customer_cascades_transactions(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    customer = make_customer(cfg, owner.id)
    add_tx(cfg, owner.id, customer.id, "debit", "10", date(2024, 1, 1))
    add_tx(cfg, owner.id, customer.id, "credit", "20", date(2024, 1, 2))

    removed = delete_customer(cfg, owner.id, customer.id)

    assert removed == 2
    assert list_transactions(cfg, owner.id) == []


def test_delete_owner_cascades_everything(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    customer = make_customer(cfg, owner.id)
    add_tx(cfg, owner.id, customer.id, "debit", "10", date(2024, 1, 1))
    add_cash(cfg, owner.id, "income", "10", date(2024, 1, 1))

    delete_owner(cfg, owner.id)

    assert list_customers(cfg, owner.id) == []
    assert list_transactions(cfg, owner.id) == []
    assert list_cashbook_entries(cfg, owner.id) == []
    assert not customer_code_exists(cfg, customer.customer_code)


def test_search_transactions_filters_and_order(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    ravi = make_customer(cfg, owner.id)
    asha = insert_customer(
        cfg, owner.id, NewCustomer(name="Asha", phone="1", customer_code="C000002")
    )

    add_tx(cfg, owner.id, ravi.id, "debit", "100", date(2024, 1, 5), "Rice bags")
    add_tx(cfg, owner.id, ravi.id, "credit", "300", date(2024, 1, 10), "Payment")
    add_tx(cfg, owner.id, asha.id, "debit", "50.25", date(2024, 1, 1), "Sugar")

    df = search_transactions(cfg, TransactionsFilter(owner_id=owner.id))
    assert list(df.columns) == [
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
    assert list(df["date"]) == [date(2024, 1, 1), date(2024, 1, 5), date(2024, 1, 10)]
    assert df["amount"].iloc[0] == Decimal("50.25")

    debits = search_transactions(
        cfg, TransactionsFilter(owner_id=owner.id, kind=EntryKind.DEBIT)
    )
    assert set(debits["customer_name"]) == {"Ravi", "Asha"}

    rice = search_transactions(
        cfg, TransactionsFilter(owner_id=owner.id, description_contains="RICE")
    )
    assert list(rice["description"]) == ["Rice bags"]

    big = search_transactions(
        cfg,
        TransactionsFilter(owner_id=owner.id, min_amount=Decimal("100")),
        order_by=("amount", "desc"),
    )
    assert list(big["amount"]) == [Decimal("300.00"), Decimal("100.00")]

    window = search_transactions(
        cfg,
        TransactionsFilter(
            owner_id=owner.id, start=date(2024, 1, 2), end=date(2024, 1, 5)
        ),
    )
    assert len(window) == 1

    page = search_transactions(cfg, TransactionsFilter(owner_id=owner.id), limit=1, offset=1)
    assert list(page["date"]) == [date(2024, 1, 5)]


def test_search_transactions_empty_and_invalid_order(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)

    df = search_transactions(cfg, TransactionsFilter(owner_id=owner.id))
    assert df.empty
    assert "customer_name" in df.columns

    with pytest.raises(ValueError):
        search_transactions(
            cfg, TransactionsFilter(owner_id=owner.id), order_by=("kind", "ASC")
        )
    with pytest.raises(ValueError):
        search_transactions(
            cfg,
            TransactionsFilter(owner_id=owner.id, kind=EntryKind.INCOME),
        )


def test_customer_message_lifecycle(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    customer = make_customer(cfg, owner.id)

    first = insert_customer_message(
        cfg, owner.id, customer.id, NewCustomerMessage(subject="Hello", body="Thanks")
    )
    second = insert_customer_message(
        cfg,
        owner.id,
        customer.id,
        NewCustomerMessage(subject="Late", body="Delivery late", kind=MessageKind.COMPLAINT),
    )

    assert first.kind is MessageKind.GENERAL
    assert first.status is MessageStatus.PENDING
    assert first.customer_name == "Ravi"
    assert [m.id for m in list_customer_messages(cfg, owner.id)] == [second.id, first.id]

    updated = update_customer_message(
        cfg,
        owner.id,
        first.id,
        CustomerMessageUpdate(reply="Welcome", status=MessageStatus.RESOLVED),
    )
    assert updated.reply == "Welcome"
    assert updated.status is MessageStatus.RESOLVED
    assert updated.updated_at is not None
    assert [
        m.id for m in list_customer_messages(cfg, owner.id, status=MessageStatus.PENDING)
    ] == [second.id]

    with pytest.raises(ValueError):
        update_customer_message(cfg, owner.id, first.id, CustomerMessageUpdate())


def test_dispute_must_reference_a_transaction_of_the_same_customer(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    ravi = make_customer(cfg, owner.id)
    asha = make_customer(cfg, owner.id, code="C000002")
    ravi_tx = add_tx(cfg, owner.id, ravi.id, "debit", "100", date(2024, 1, 1))
    asha_tx = add_tx(cfg, owner.id, asha.id, "debit", "100", date(2024, 1, 1))

    dispute = insert_customer_message(
        cfg,
        owner.id,
        ravi.id,
        NewCustomerMessage("Wrong", "Not mine", MessageKind.DISPUTE, ravi_tx.id),
    )
    assert dispute.transaction_id == ravi_tx.id

    with pytest.raises(RecordNotFoundError):
        insert_customer_message(
            cfg,
            owner.id,
            ravi.id,
            NewCustomerMessage("Wrong", "Not mine", MessageKind.DISPUTE, asha_tx.id),
        )
    with pytest.raises(ValueError):
        insert_customer_message(
            cfg, owner.id, ravi.id, NewCustomerMessage("Wrong", "?", MessageKind.DISPUTE)
        )
    assert len(list_customer_messages(cfg, owner.id)) == 1


def test_customer_messages_are_scoped_by_owner(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner_a = make_owner(cfg, "a@example.com")
    owner_b = make_owner(cfg, "b@example.com")
    customer = make_customer(cfg, owner_a.id)
    message = insert_customer_message(
        cfg, owner_a.id, customer.id, NewCustomerMessage("Hi", "Hello")
    )

    assert list_customer_messages(cfg, owner_b.id) == []
    with pytest.raises(RecordNotFoundError):
        get_customer_message(cfg, owner_b.id, message.id)
    with pytest.raises(RecordNotFoundError):
        update_customer_message(
            cfg, owner_b.id, message.id, CustomerMessageUpdate(reply="Hijack")
        )
    with pytest.raises(RecordNotFoundError):
        insert_customer_message(cfg, owner_b.id, customer.id, NewCustomerMessage("Hi", "x"))


def test_deleting_a_disputed_transaction_keeps_the_message(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    customer = make_customer(cfg, owner.id)
    tx = add_tx(cfg, owner.id, customer.id, "debit", "100", date(2024, 1, 1))
    message = insert_customer_message(
        cfg, owner.id, customer.id, NewCustomerMessage("Wrong", "x", MessageKind.DISPUTE, tx.id)
    )

    delete_entry(cfg, LedgerDomain.TRANSACTION, owner.id, tx.id)

    assert get_customer_message(cfg, owner.id, message.id).transaction_id is None


def test_support_messages_read_state_and_counts(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner_a = make_owner(cfg, "a@example.com")
    owner_b = make_owner(cfg, "b@example.com")

    first = insert_support_message(
        cfg, owner_a.id, NewSupportMessage("a@example.com", "Billing", "Invoice is wrong")
    )
    second = insert_support_message(
        cfg, owner_b.id, NewSupportMessage("b@example.com", "Login", "Cannot sign in")
    )

    assert first.is_read is False
    assert first.owner_name == "Owner"
    assert count_support_messages(cfg) == (2, 2)
    assert [m.id for m in list_support_messages(cfg)] == [second.id, first.id]
    assert [m.id for m in list_support_messages(cfg, owner_id=owner_a.id)] == [first.id]

    assert set_support_message_read(cfg, first.id, True).is_read is True
    assert count_support_messages(cfg) == (2, 1)
    assert [m.id for m in list_support_messages(cfg, unread_only=True)] == [second.id]
    assert set_support_message_read(cfg, first.id, False).is_read is False

    with pytest.raises(RecordNotFoundError):
        set_support_message_read(cfg, 999, True)
    with pytest.raises(RecordNotFoundError):
        insert_support_message(cfg, 999, NewSupportMessage("x@example.com", "Topic", "Body"))


def test_delete_owner_removes_its_messages(tmp_path):
    cfg = make_tmp_db_cfg(tmp_path)
    owner = make_owner(cfg)
    customer = make_customer(cfg, owner.id)
    insert_customer_message(cfg, owner.id, customer.id, NewCustomerMessage("Hi", "Hello"))
    insert_support_message(
        cfg, owner.id, NewSupportMessage("owner@example.com", "Topic", "Description")
    )

    delete_owner(cfg, owner.id)

    assert count_support_messages(cfg) == (0, 0)
    assert list_customer_messages(cfg, owner.id) == []
