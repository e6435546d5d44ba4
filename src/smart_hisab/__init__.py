# SmartHisab - Bookkeeping application for small businesses
# Copyright (c) 2025 SmartHisab contributors
# Licensed under the MIT License. See LICENSE file for details.

"""
SmartHisab
----------

A bookkeeping application for small businesses. An owner keeps a ledger of
debits and credits with each of its customers and a cashbook of income and
expenses; SmartHisab computes balances, running balances, analytics and the
statement each customer sees in the self-service portal.

Main capabilities:
- a pure ledger aggregation core (balances, running balances, per-kind
  summaries, top customers) with exact decimal arithmetic,
- a SQLite storage layer where every record is scoped by owner,
- services for validation and read models (dashboard, admin, portal),
- CSV import of transactions and cashbook entries,
- a command-line interface with table and CSV output.

Usage:
    python -m smart_hisab.cli --help
"""

__all__ = ["ledger", "db", "ledger_service", "views", "io"]

__version__ = "0.1.0"
