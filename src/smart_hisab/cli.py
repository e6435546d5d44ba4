# SmartHisab - Bookkeeping application for small businesses
# Copyright (c) 2025 SmartHisab contributors
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for SmartHisab.

This module wires together the main building blocks of SmartHisab:

- global configuration (currency, database, display options),
- the database layer (owners, customers, transactions, cashbook),
- the service layer (validation, read models),
- view helpers (formatting and tabular rendering).

The CLI is intentionally thin: it does not implement any bookkeeping logic
itself. Every balance it prints is computed by `smart_hisab.ledger` through
`smart_hisab.ledger_service`.


Commands
--------

    owners      add | list | show | edit | delete
    customers   add | list | show | edit | delete       (--owner ID)
    tx          add | edit | delete | search              (--owner ID)
    cashbook    add | list | edit | delete | summary      (--owner ID)
    import      transactions | cashbook CSV              (--owner ID)
    analytics   (--owner ID)
    dashboard   (--owner ID)
    portal      --customer-code CODE
    messages    send | dispute | inbox                  (--customer-code CODE)
                list | reply | status                   (--owner ID)
    support     send | list                             (--owner ID)
    admin       overview | user OWNER_ID | messages | read | unread


Configuration
-------------

By default, the CLI reads its configuration from ``smart_hisab_config.toml``
in the current working directory. Use ``--config PATH`` to point elsewhere.


Period selection
----------------

``cashbook list`` and ``cashbook summary`` accept either a predefined
period (``--period all|mtd|month|last-month|ytd``) or custom bounds
(``--from-date`` / ``--to-date``, both inclusive and optional). The
predefined period wins when both are given.


Errors
------

Validation errors and missing records are reported on stderr with exit
status 2. Use ``--verbose`` to see debug logs.
"""

import argparse
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import SUPPORTED_DISPLAY_MODES, AppConfig, load_app_config
from .db import TransactionsFilter, init_database
from .ledger import EntryKind, LedgerDomain
from .ledger_service import (
    add_customer,
    admin_overview,
    admin_user_detail,
    cashbook_summary,
    customer_detail,
    dashboard_stats,
    edit_cashbook_entry,
    edit_customer,
    edit_owner,
    edit_transaction,
    get_owner,
    import_entries_from_csv,
    list_cashbook,
    list_customer_messages,
    list_customers_with_balance,
    list_owners,
    list_support_messages,
    mark_support_message,
    owner_analytics,
    portal_messages,
    portal_statement,
    record_cashbook_entry,
    record_transaction,
    register_owner,
    remove_cashbook_entry,
    remove_customer,
    remove_owner,
    remove_transaction,
    reply_to_customer_message,
    search_transactions,
    send_customer_message,
    send_dispute,
    send_support_message,
    set_customer_message_status,
)
from .periods import determine_period_from_args
from .views import (
    balance_label,
    cashbook_to_dataframe,
    customer_messages_to_dataframe,
    customers_to_dataframe,
    format_amount,
    running_ledger_to_dataframe,
    support_messages_to_dataframe,
    top_customers_to_dataframe,
)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_owner_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--owner",
        dest="owner_id",
        type=int,
        required=True,
        help="Id of the business owner whose data is accessed.",
    )


def _add_period_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--period",
        choices=["all", "mtd", "month", "last-month", "ytd"],
        help=(
            "Predefined period: all, mtd (month to date), month (current "
            "calendar month), last-month, ytd. Defaults to all time."
        ),
    )
    parser.add_argument(
        "--from-date",
        dest="from_date",
        help="Custom period start date (YYYY-MM-DD, inclusive).",
    )
    parser.add_argument(
        "--to-date",
        dest="to_date",
        help="Custom period end date (YYYY-MM-DD, inclusive).",
    )


def _add_entry_fields(
    parser: argparse.ArgumentParser,
    kinds: list[str],
    required: bool,
) -> None:
    """Options shared by the add / edit subcommands of tx and cashbook."""
    parser.add_argument(
        "--type",
        dest="kind",
        choices=kinds,
        required=required,
        help=f"Entry type: {' or '.join(kinds)}.",
    )
    parser.add_argument(
        "--amount",
        required=required,
        help="Amount (positive, at most two decimals).",
    )
    parser.add_argument(
        "--date",
        dest="entry_date",
        required=required,
        help="Entry date (YYYY-MM-DD).",
    )
    parser.add_argument(
        "--description",
        help="Free-text description.",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m smart_hisab.cli",
        description=(
            "SmartHisab - Bookkeeping application for small businesses. "
            "Tracks what customers owe and are owed, keeps a cashbook of "
            "income and expenses, and reports balances and analytics."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of smart_hisab and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. "
            "If omitted, 'smart_hisab_config.toml' in the current directory is used."
        ),
    )
    ap.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr.",
    )
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=sorted(SUPPORTED_DISPLAY_MODES),
        help="Override the display mode from the configuration (table, csv, both).",
    )

    subparsers = ap.add_subparsers(dest="command")

    # ----- owners ----------------------------------------------------------
    owners_parser = subparsers.add_parser("owners", help="Manage business owner accounts.")
    owners_sub = owners_parser.add_subparsers(dest="action", required=True)

    owners_add = owners_sub.add_parser("add", help="Register a new owner.")
    owners_add.add_argument("--name", required=True, help="Owner name.")
    owners_add.add_argument("--email", required=True, help="Unique email address.")
    owners_add.add_argument("--mobile", dest="mobile_number", help="Mobile number.")
    owners_add.add_argument("--business", dest="business_name", help="Business name.")

    owners_sub.add_parser("list", help="List all owners.")

    owners_show = owners_sub.add_parser("show", help="Show an owner's profile.")
    owners_show.add_argument("owner_id", type=int)

    owners_edit = owners_sub.add_parser("edit", help="Edit an owner's profile.")
    owners_edit.add_argument("owner_id", type=int)
    owners_edit.add_argument("--name")
    owners_edit.add_argument("--mobile", dest="mobile_number")
    owners_edit.add_argument("--business", dest="business_name")

    owners_delete = owners_sub.add_parser(
        "delete", help="Delete an owner with all of its customers and entries."
    )
    owners_delete.add_argument("owner_id", type=int)

    # ----- customers -------------------------------------------------------
    customers_parser = subparsers.add_parser("customers", help="Manage customers.")
    customers_sub = customers_parser.add_subparsers(dest="action", required=True)

    customers_add = customers_sub.add_parser("add", help="Add a customer.")
    _add_owner_option(customers_add)
    customers_add.add_argument("--name", required=True)
    customers_add.add_argument("--phone", required=True)
    customers_add.add_argument(
        "--code",
        dest="customer_code",
        help="Portal code of the customer. Generated when omitted.",
    )

    customers_list = customers_sub.add_parser(
        "list", help="List customers with their balances."
    )
    _add_owner_option(customers_list)

    customers_show = customers_sub.add_parser(
        "show", help="Show a customer with its transactions and running balances."
    )
    _add_owner_option(customers_show)
    customers_show.add_argument("customer_id", type=int)

    customers_edit = customers_sub.add_parser("edit", help="Edit a customer.")
    _add_owner_option(customers_edit)
    customers_edit.add_argument("customer_id", type=int)
    customers_edit.add_argument("--name")
    customers_edit.add_argument("--phone")

    customers_delete = customers_sub.add_parser(
        "delete", help="Delete a customer and all of its transactions."
    )
    _add_owner_option(customers_delete)
    customers_delete.add_argument("customer_id", type=int)

    # ----- tx --------------------------------------------------------------
    tx_parser = subparsers.add_parser("tx", help="Manage customer transactions.")
    tx_sub = tx_parser.add_subparsers(dest="action", required=True)
    tx_kinds = [EntryKind.DEBIT.value, EntryKind.CREDIT.value]

    tx_add = tx_sub.add_parser("add", help="Record a transaction.")
    _add_owner_option(tx_add)
    tx_add.add_argument("--customer", dest="customer_id", type=int, required=True)
    _add_entry_fields(tx_add, tx_kinds, required=True)

    tx_edit = tx_sub.add_parser("edit", help="Edit a transaction.")
    _add_owner_option(tx_edit)
    tx_edit.add_argument("entry_id", type=int)
    _add_entry_fields(tx_edit, tx_kinds, required=False)

    tx_delete = tx_sub.add_parser("delete", help="Delete a transaction.")
    _add_owner_option(tx_delete)
    tx_delete.add_argument("entry_id", type=int)

    tx_search = tx_sub.add_parser("search", help="Search transactions.")
    _add_owner_option(tx_search)
    tx_search.add_argument("--customer", dest="customer_id", type=int)
    tx_search.add_argument("--type", dest="kind", choices=tx_kinds)
    tx_search.add_argument("--from-date", dest="from_date", help="YYYY-MM-DD, inclusive.")
    tx_search.add_argument("--to-date", dest="to_date", help="YYYY-MM-DD, inclusive.")
    tx_search.add_argument(
        "--description-contains",
        dest="description_contains",
        help="Case-insensitive substring filter on the description.",
    )
    tx_search.add_argument("--min-amount", dest="min_amount")
    tx_search.add_argument("--max-amount", dest="max_amount")
    tx_search.add_argument("--limit", type=int)
    tx_search.add_argument("--offset", type=int, default=0)
    tx_search.add_argument(
        "--order-by",
        dest="order_by",
        choices=["date", "amount", "id", "customer"],
        default="date",
    )
    tx_search.add_argument(
        "--order-direction",
        dest="order_direction",
        choices=["asc", "desc"],
        default="asc",
    )

    # ----- cashbook --------------------------------------------------------
    cashbook_parser = subparsers.add_parser("cashbook", help="Manage the cashbook.")
    cashbook_sub = cashbook_parser.add_subparsers(dest="action", required=True)
    cashbook_kinds = [EntryKind.INCOME.value, EntryKind.EXPENSE.value]

    cashbook_add = cashbook_sub.add_parser("add", help="Record an income or expense.")
    _add_owner_option(cashbook_add)
    _add_entry_fields(cashbook_add, cashbook_kinds, required=True)

    cashbook_list = cashbook_sub.add_parser("list", help="List cashbook entries.")
    _add_owner_option(cashbook_list)
    _add_period_options(cashbook_list)

    cashbook_edit = cashbook_sub.add_parser("edit", help="Edit a cashbook entry.")
    _add_owner_option(cashbook_edit)
    cashbook_edit.add_argument("entry_id", type=int)
    _add_entry_fields(cashbook_edit, cashbook_kinds, required=False)

    cashbook_delete = cashbook_sub.add_parser("delete", help="Delete a cashbook entry.")
    _add_owner_option(cashbook_delete)
    cashbook_delete.add_argument("entry_id", type=int)

    cashbook_summary_parser = cashbook_sub.add_parser(
        "summary", help="Income, expense and net over a period."
    )
    _add_owner_option(cashbook_summary_parser)
    _add_period_options(cashbook_summary_parser)

    # ----- import ----------------------------------------------------------
    import_parser = subparsers.add_parser(
        "import", help="Import transactions or cashbook entries from CSV."
    )
    import_parser.add_argument(
        "domain",
        choices=["transactions", "cashbook"],
    )
    import_parser.add_argument("csv_path", metavar="CSV_PATH")
    _add_owner_option(import_parser)

    # ----- analytics / dashboard -------------------------------------------
    analytics_parser = subparsers.add_parser(
        "analytics", help="Transaction analytics across all customers."
    )
    _add_owner_option(analytics_parser)

    dashboard_parser = subparsers.add_parser(
        "dashboard", help="Analytics, top customers and this month's cashbook."
    )
    _add_owner_option(dashboard_parser)

    # ----- portal ----------------------------------------------------------
    portal_parser = subparsers.add_parser(
        "portal", help="Statement seen by a customer in the self-service portal."
    )
    portal_parser.add_argument("--customer-code", dest="customer_code", required=True)

    # ----- messages (customer <-> owner) -----------------------------------
    messages_parser = subparsers.add_parser(
        "messages", help="Messages and disputes between customers and their owner."
    )
    messages_sub = messages_parser.add_subparsers(dest="action", required=True)

    messages_send = messages_sub.add_parser(
        "send", help="Send a message to the owner, as a customer."
    )
    messages_send.add_argument("--customer-code", dest="customer_code", required=True)
    messages_send.add_argument("--subject", required=True)
    messages_send.add_argument("--message", required=True)
    messages_send.add_argument(
        "--type",
        dest="kind",
        default="general",
        help="general, complaint or dispute (default: general).",
    )
    messages_send.add_argument(
        "--transaction", dest="transaction_id", type=int, help="Transaction concerned."
    )

    messages_dispute = messages_sub.add_parser(
        "dispute", help="Dispute one of your transactions, as a customer."
    )
    messages_dispute.add_argument("--customer-code", dest="customer_code", required=True)
    messages_dispute.add_argument(
        "--transaction", dest="transaction_id", type=int, required=True
    )
    messages_dispute.add_argument("--subject", required=True)
    messages_dispute.add_argument("--message", required=True)

    messages_inbox = messages_sub.add_parser(
        "inbox", help="Messages sent by a customer, with the owner's replies."
    )
    messages_inbox.add_argument("--customer-code", dest="customer_code", required=True)

    messages_list = messages_sub.add_parser(
        "list", help="Messages received by an owner, newest first."
    )
    _add_owner_option(messages_list)
    messages_list.add_argument("--customer", dest="customer_id", type=int)
    messages_list.add_argument(
        "--status", help="pending, in_progress or resolved."
    )

    messages_reply = messages_sub.add_parser(
        "reply", help="Reply to a customer message (marks it in progress)."
    )
    messages_reply.add_argument("message_id", type=int)
    _add_owner_option(messages_reply)
    messages_reply.add_argument("--reply", required=True)

    messages_status = messages_sub.add_parser(
        "status", help="Change the status of a customer message."
    )
    messages_status.add_argument("message_id", type=int)
    _add_owner_option(messages_status)
    messages_status.add_argument("--status", required=True)

    # ----- support (owner -> administrator) --------------------------------
    support_parser = subparsers.add_parser(
        "support", help="Messages from an owner to the administrator."
    )
    support_sub = support_parser.add_subparsers(dest="action", required=True)
    support_send = support_sub.add_parser("send", help="Send a support message.")
    _add_owner_option(support_send)
    support_send.add_argument("--topic", required=True)
    support_send.add_argument("--description", required=True)
    support_send.add_argument(
        "--email", help="Reply-to address (defaults to the owner's email)."
    )
    support_list = support_sub.add_parser("list", help="Support messages sent by an owner.")
    _add_owner_option(support_list)

    # ----- admin -----------------------------------------------------------
    admin_parser = subparsers.add_parser("admin", help="Administrator views.")
    admin_sub = admin_parser.add_subparsers(dest="action", required=True)
    admin_sub.add_parser("overview", help="Number of owners and their list.")
    admin_user = admin_sub.add_parser("user", help="Statistics of one owner.")
    admin_user.add_argument("owner_id", type=int)
    admin_messages = admin_sub.add_parser(
        "messages", help="Support messages of every owner, newest first."
    )
    admin_messages.add_argument("--unread", action="store_true", help="Only unread ones.")
    admin_read = admin_sub.add_parser("read", help="Mark a support message as read.")
    admin_read.add_argument("message_id", type=int)
    admin_unread = admin_sub.add_parser("unread", help="Mark a support message as unread.")
    admin_unread.add_argument("message_id", type=int)

    return ap


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _parse_optional_date(value: Optional[str]) -> Optional[date]:
    """Parse an optional CLI date argument (YYYY-MM-DD)."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ValueError(f"Invalid date format: {value!r}. Expected YYYY-MM-DD.") from exc


def _parse_optional_decimal(value: Optional[str]) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc


def _fmt(config: AppConfig, amount: Decimal) -> str:
    return format_amount(amount, config.business.currency, config.business.grouping)


def _render(
    df: pd.DataFrame,
    title: str,
    stem: str,
    display_mode: str,
    config: AppConfig,
    export_df: Optional[pd.DataFrame] = None,
) -> None:
    """
    Print a DataFrame and/or export it to CSV depending on the display mode.

    `export_df` is the unformatted variant written to CSV; it defaults to
    `df` itself.
    """
    if display_mode in {"table", "both"}:
        print()
        print(f"=== {title} ===")
        if df.empty:
            print("(no rows)")
        else:
            print(df.to_string(index=False))

    if display_mode in {"csv", "both"}:
        output_dir = Path(config.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        path = output_dir / f"{stem}_{timestamp}.csv"
        out = export_df if export_df is not None else df
        out.to_csv(path, index=False)
        print(f"Wrote {path} ({len(out)} rows)")


def _print_entry(label: str, entry, config: AppConfig) -> None:
    print(f"{label}:")
    print(f"  id:          {entry.id}")
    print(f"  date:        {entry.occurred_on.isoformat()}")
    print(f"  type:        {entry.kind.value}")
    print(f"  amount:      {_fmt(config, entry.amount)}")
    print(f"  description: {entry.description}")


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_owners(args: argparse.Namespace, config: AppConfig, display_mode: str) -> None:
    if args.action == "add":
        owner = register_owner(
            config,
            name=args.name,
            email=args.email,
            mobile_number=args.mobile_number,
            business_name=args.business_name,
        )
        print(f"Created owner #{owner.id} ({owner.email}).")

    elif args.action == "list":
        owners = list_owners(config)
        df = pd.DataFrame(
            [
                {
                    "id": o.id,
                    "name": o.name,
                    "email": o.email,
                    "business_name": o.business_name or "",
                    "created_at": o.created_at.isoformat(timespec="seconds"),
                }
                for o in owners
            ],
            columns=["id", "name", "email", "business_name", "created_at"],
        )
        _render(df, "Owners", "owners", display_mode, config)

    elif args.action == "show":
        owner = get_owner(config, args.owner_id)
        print(f"Owner #{owner.id}")
        print(f"  name:          {owner.name}")
        print(f"  email:         {owner.email}")
        print(f"  mobile:        {owner.mobile_number or ''}")
        print(f"  business name: {owner.business_name or ''}")
        print(f"  created at:    {owner.created_at.isoformat(timespec='seconds')}")

    elif args.action == "edit":
        owner = edit_owner(
            config,
            args.owner_id,
            name=args.name,
            mobile_number=args.mobile_number,
            business_name=args.business_name,
        )
        print(f"Updated owner #{owner.id}.")

    elif args.action == "delete":
        remove_owner(config, args.owner_id)
        print(f"Deleted owner #{args.owner_id} and all of its data.")


def _handle_customers(
    args: argparse.Namespace, config: AppConfig, display_mode: str
) -> None:
    currency = config.business.currency
    grouping = config.business.grouping

    if args.action == "add":
        customer = add_customer(
            config,
            args.owner_id,
            name=args.name,
            phone=args.phone,
            customer_code=args.customer_code,
        )
        print(
            f"Created customer #{customer.id} ({customer.name}), "
            f"portal code: {customer.customer_code}"
        )

    elif args.action == "list":
        balances = list_customers_with_balance(config, args.owner_id)
        _render(
            customers_to_dataframe(balances, currency, grouping),
            "Customers",
            "customers",
            display_mode,
            config,
            export_df=customers_to_dataframe(balances),
        )

    elif args.action == "show":
        detail = customer_detail(config, args.owner_id, args.customer_id)
        customer = detail.customer
        print(f"Customer #{customer.id}: {customer.name} ({customer.phone})")
        print(f"Portal code: {customer.customer_code}")
        print(f"Balance: {_fmt(config, detail.balance)} ({balance_label(detail.balance)})")

        rows = detail.ledger.newest_first()
        _render(
            running_ledger_to_dataframe(rows, currency, grouping),
            "Transactions",
            f"customer_{customer.id}_ledger",
            display_mode,
            config,
            export_df=running_ledger_to_dataframe(rows),
        )

    elif args.action == "edit":
        customer = edit_customer(
            config, args.owner_id, args.customer_id, name=args.name, phone=args.phone
        )
        print(f"Updated customer #{customer.id}.")

    elif args.action == "delete":
        removed = remove_customer(config, args.owner_id, args.customer_id)
        print(f"Deleted customer #{args.customer_id} and {removed} transaction(s).")


def _handle_tx(args: argparse.Namespace, config: AppConfig, display_mode: str) -> None:
    if args.action == "add":
        entry = record_transaction(
            config,
            args.owner_id,
            args.customer_id,
            kind=args.kind,
            amount=args.amount,
            occurred_on=args.entry_date,
            description=args.description,
        )
        _print_entry("Transaction recorded", entry, config)

    elif args.action == "edit":
        entry = edit_transaction(
            config,
            args.owner_id,
            args.entry_id,
            kind=args.kind,
            amount=args.amount,
            occurred_on=args.entry_date,
            description=args.description,
        )
        _print_entry("Transaction updated", entry, config)

    elif args.action == "delete":
        remove_transaction(config, args.owner_id, args.entry_id)
        print(f"Deleted transaction #{args.entry_id}.")

    elif args.action == "search":
        _handle_tx_search(args, config, display_mode)


def _handle_tx_search(
    args: argparse.Namespace, config: AppConfig, display_mode: str
) -> None:
    """
    Handle the 'tx search' subcommand: free-form search across the owner's
    transactions using TransactionsFilter.
    """
    filters = TransactionsFilter(
        owner_id=args.owner_id,
        customer_id=args.customer_id,
        kind=EntryKind.parse(args.kind) if args.kind else None,
        start=_parse_optional_date(args.from_date),
        end=_parse_optional_date(args.to_date),
        description_contains=args.description_contains,
        min_amount=_parse_optional_decimal(args.min_amount),
        max_amount=_parse_optional_decimal(args.max_amount),
    )
    order = (args.order_by, args.order_direction.upper())

    df = search_transactions(
        config,
        filters,
        limit=args.limit,
        offset=args.offset,
        order_by=order,
    )

    if df.empty:
        print("No transactions found for the given criteria.")
        return

    df_display = df[["id", "date", "customer_name", "kind", "description", "amount"]].copy()
    df_display["date"] = df_display["date"].astype(str)
    df_display["amount"] = df_display["amount"].map(lambda a: _fmt(config, a))

    _render(df_display, "Transactions", "transactions", display_mode, config, export_df=df)

    total = sum(df["amount"], Decimal("0"))
    print()
    print(f"Total transactions: {len(df)} | Total amount: {_fmt(config, total)}")


def _handle_cashbook(
    args: argparse.Namespace, config: AppConfig, display_mode: str
) -> None:
    if args.action == "add":
        entry = record_cashbook_entry(
            config,
            args.owner_id,
            kind=args.kind,
            amount=args.amount,
            occurred_on=args.entry_date,
            description=args.description,
        )
        _print_entry("Cashbook entry recorded", entry, config)

    elif args.action == "edit":
        entry = edit_cashbook_entry(
            config,
            args.owner_id,
            args.entry_id,
            kind=args.kind,
            amount=args.amount,
            occurred_on=args.entry_date,
            description=args.description,
        )
        _print_entry("Cashbook entry updated", entry, config)

    elif args.action == "delete":
        remove_cashbook_entry(config, args.owner_id, args.entry_id)
        print(f"Deleted cashbook entry #{args.entry_id}.")

    elif args.action == "list":
        period = determine_period_from_args(args)
        entries = list_cashbook(config, args.owner_id, period)
        print(f"Applied period: {period.label}")
        _render(
            cashbook_to_dataframe(
                entries, config.business.currency, config.business.grouping
            ),
            "Cashbook",
            "cashbook",
            display_mode,
            config,
            export_df=cashbook_to_dataframe(entries),
        )

    elif args.action == "summary":
        period = determine_period_from_args(args)
        summary = cashbook_summary(config, args.owner_id, period)
        _print_cashbook_summary(summary, config)


def _print_cashbook_summary(summary, config: AppConfig) -> None:
    label = summary.period.label if summary.period is not None else "All time"
    print(f"Cashbook ({label})")
    print(f"  income:  {_fmt(config, summary.total_income)} ({summary.income_entries} entries)")
    print(f"  expense: {_fmt(config, summary.total_expense)} ({summary.expense_entries} entries)")
    print(
        f"  net:     {_fmt(config, summary.net_balance)} "
        f"({balance_label(summary.net_balance, LedgerDomain.CASHBOOK)})"
    )


def _handle_import(args: argparse.Namespace, config: AppConfig) -> None:
    csv_path = Path(args.csv_path)
    if not csv_path.is_file():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    domain = (
        LedgerDomain.TRANSACTION if args.domain == "transactions" else LedgerDomain.CASHBOOK
    )
    print(f"Importing {args.domain} from {csv_path}...")
    stats = import_entries_from_csv(config, args.owner_id, csv_path, domain)
    print(
        f"Imported {stats.rows_imported} row(s), "
        f"total amount {_fmt(config, stats.total_amount)}."
    )


def _print_analytics(analytics, config: AppConfig) -> None:
    print(f"  customers:    {analytics.total_customers}")
    print(f"  transactions: {analytics.total_transactions}")
    print(f"  total debit:  {_fmt(config, analytics.total_debit)}")
    print(f"  total credit: {_fmt(config, analytics.total_credit)}")
    print(
        f"  net balance:  {_fmt(config, analytics.net_balance)} "
        f"({balance_label(analytics.net_balance)})"
    )


def _handle_dashboard(
    args: argparse.Namespace, config: AppConfig, display_mode: str
) -> None:
    stats = dashboard_stats(config, args.owner_id)
    currency = config.business.currency
    grouping = config.business.grouping

    print("Analytics")
    _print_analytics(stats.analytics, config)

    _render(
        top_customers_to_dataframe(stats.top_to_give, currency, grouping),
        "Top customers: you will give",
        "top_will_give",
        display_mode,
        config,
        export_df=top_customers_to_dataframe(stats.top_to_give),
    )
    _render(
        top_customers_to_dataframe(stats.top_to_get, currency, grouping),
        "Top customers: you will get",
        "top_will_get",
        display_mode,
        config,
        export_df=top_customers_to_dataframe(stats.top_to_get),
    )

    print()
    _print_cashbook_summary(stats.month_cashbook, config)


def _handle_portal(args: argparse.Namespace, config: AppConfig, display_mode: str) -> None:
    statement = portal_statement(config, args.customer_code)
    customer = statement.customer

    print(f"{statement.business_name or 'Statement'}")
    print(f"Customer: {customer.name} ({customer.customer_code})")
    print(f"  total credit: {_fmt(config, statement.total_credit)}")
    print(f"  total debit:  {_fmt(config, statement.total_debit)}")
    print(f"  balance:      {_fmt(config, statement.total_balance)}")

    _render(
        running_ledger_to_dataframe(
            statement.rows, config.business.currency, config.business.grouping
        ),
        "Transactions",
        f"portal_{customer.customer_code}",
        display_mode,
        config,
        export_df=running_ledger_to_dataframe(statement.rows),
    )


def _print_customer_message(label: str, message) -> None:
    print(f"{label} #{message.id} ({message.kind.value}, {message.status.value})")
    print(f"  customer: {message.customer_name}")
    if message.transaction_id is not None:
        print(f"  transaction: #{message.transaction_id}")
    print(f"  subject:  {message.subject}")
    if message.reply:
        print(f"  reply:    {message.reply}")


def _handle_messages(
    args: argparse.Namespace, config: AppConfig, display_mode: str
) -> None:
    if args.action == "send":
        message = send_customer_message(
            config,
            args.customer_code,
            args.subject,
            args.message,
            kind=args.kind,
            transaction_id=args.transaction_id,
        )
        _print_customer_message("Sent message", message)

    elif args.action == "dispute":
        message = send_dispute(
            config, args.customer_code, args.transaction_id, args.subject, args.message
        )
        _print_customer_message("Sent dispute", message)

    elif args.action == "inbox":
        messages = portal_messages(config, args.customer_code)
        _render(
            customer_messages_to_dataframe(messages),
            f"Messages of {args.customer_code}",
            f"messages_{args.customer_code}",
            display_mode,
            config,
        )

    elif args.action == "list":
        messages = list_customer_messages(
            config, args.owner_id, args.customer_id, args.status
        )
        _render(
            customer_messages_to_dataframe(messages),
            "Customer messages",
            f"messages_owner_{args.owner_id}",
            display_mode,
            config,
        )

    elif args.action == "reply":
        message = reply_to_customer_message(
            config, args.owner_id, args.message_id, args.reply
        )
        _print_customer_message("Replied to message", message)

    elif args.action == "status":
        message = set_customer_message_status(
            config, args.owner_id, args.message_id, args.status
        )
        _print_customer_message("Updated message", message)


def _handle_support(args: argparse.Namespace, config: AppConfig, display_mode: str) -> None:
    if args.action == "send":
        message = send_support_message(
            config, args.owner_id, args.topic, args.description, email=args.email
        )
        print(f"Sent support message #{message.id}: {message.topic}")

    elif args.action == "list":
        _render(
            support_messages_to_dataframe(list_support_messages(config, args.owner_id)),
            "Support messages",
            f"support_owner_{args.owner_id}",
            display_mode,
            config,
        )


def _handle_admin(args: argparse.Namespace, config: AppConfig, display_mode: str) -> None:
    if args.action == "overview":
        overview = admin_overview(config)
        print(f"Total owners: {overview.total_owners}")
        print(
            f"Support messages: {overview.total_messages} "
            f"({overview.unread_messages} unread)"
        )
        df = pd.DataFrame(
            [
                {
                    "id": o.id,
                    "name": o.name,
                    "email": o.email,
                    "business_name": o.business_name or "",
                }
                for o in overview.owners
            ],
            columns=["id", "name", "email", "business_name"],
        )
        _render(df, "Owners", "admin_owners", display_mode, config)

    elif args.action == "user":
        detail = admin_user_detail(config, args.owner_id)
        owner = detail.owner
        print(f"Owner #{owner.id}: {owner.name} <{owner.email}>")
        print(f"  business name:   {owner.business_name or ''}")
        print(f"  customers:       {detail.total_customers}")
        print(f"  total debit:     {_fmt(config, detail.total_debit)}")
        print(f"  total credit:    {_fmt(config, detail.total_credit)}")
        print(f"  net amount:      {_fmt(config, detail.net_amount)}")
        print(f"  total income:    {_fmt(config, detail.total_income)}")
        print(f"  total expense:   {_fmt(config, detail.total_expense)}")
        print(f"  net cashbook:    {_fmt(config, detail.net_income_expense)}")

    elif args.action == "messages":
        messages = list_support_messages(config, unread_only=args.unread)
        _render(
            support_messages_to_dataframe(messages),
            "Support messages",
            "admin_messages",
            display_mode,
            config,
        )

    elif args.action in {"read", "unread"}:
        message = mark_support_message(config, args.message_id, read=args.action == "read")
        print(f"Support message #{message.id} marked as {args.action}")



def _dispatch(args: argparse.Namespace, config: AppConfig, display_mode: str) -> None:
    command = args.command
    if command == "owners":
        _handle_owners(args, config, display_mode)
    elif command == "customers":
        _handle_customers(args, config, display_mode)
    elif command == "tx":
        _handle_tx(args, config, display_mode)
    elif command == "cashbook":
        _handle_cashbook(args, config, display_mode)
    elif command == "import":
        _handle_import(args, config)
    elif command == "analytics":
        print(f"Analytics for owner #{args.owner_id}")
        _print_analytics(owner_analytics(config, args.owner_id), config)
    elif command == "dashboard":
        _handle_dashboard(args, config, display_mode)
    elif command == "portal":
        _handle_portal(args, config, display_mode)
    elif command == "messages":
        _handle_messages(args, config, display_mode)
    elif command == "support":
        _handle_support(args, config, display_mode)
    elif command == "admin":
        _handle_admin(args, config, display_mode)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the SmartHisab CLI.

    This function parses command-line arguments, configures logging, loads
    the application configuration, initializes the database and runs the
    requested command. Validation errors and missing records are reported
    through the argument parser (exit status 2).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"smart_hisab version {__version__}")
        return

    if not args.command:
        parser.print_help()
        return

    _configure_logging(args.verbose)

    try:
        # 1) Load application configuration
        if args.config_path:
            config = load_app_config(args.config_path)
        else:
            config = load_app_config()

        # 2) Initialize the database (create file and schema if needed)
        init_database(config.database)

        # 3) Resolve display mode: config value overridden by CLI if provided.
        display_mode = args.display_mode or config.display_mode

        _dispatch(args, config, display_mode)
    except (ValueError, LookupError, FileNotFoundError) as exc:
        parser.error(str(exc).strip("'\""))


if __name__ == "__main__":
    main()
