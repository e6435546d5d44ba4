# SmartHisab - Bookkeeping application for small businesses
# Copyright (c) 2025 SmartHisab contributors
# Licensed under the MIT License. See LICENSE file for details.

"""
I/O module for SmartHisab.

This module reads customer transactions or cashbook entries from a CSV file
and normalizes them into a consistent structure that `ledger_service` can
validate and import.

Expected input formats
----------------------

Column names are case-insensitive. Transactions additionally require a
``customer_code`` column identifying the customer of each row.

1) Kind / amount format
   --------------------
       date, type, amount, description

   - ``type``: "debit" / "credit" (transactions) or "income" / "expense"
     (cashbook). ``kind`` is accepted as an alias.
   - ``amount``: positive number.

2) Two-column format
   -----------------
       date, debit, credit, description        (transactions)
       date, income, expense, description      (cashbook)

   Exactly one of the two amount columns must be non-zero on each row; that
   column gives the kind of the entry.

Output schema
-------------
Regardless of the input format, `read_ledger_csv` returns a DataFrame with:

    - ``date``          (datetime.date)
    - ``kind``          (str)
    - ``amount``        (Decimal, as written in the file)
    - ``description``   (str, possibly empty)
    - ``customer_code`` (str, transactions only)

Amounts are parsed from their text form into `Decimal` so that no binary
floating point rounding is introduced. Range checks (amount > 0, two
decimals, description rules) are left to `ledger_service`.
"""

import logging
import os
from decimal import Decimal, InvalidOperation
from typing import Union

import pandas as pd

from .ledger import KINDS_BY_DOMAIN, LedgerDomain

logger = logging.getLogger(__name__)


def _to_decimal(value: str, column: str, line: int) -> Decimal:
    text = str(value).strip().replace(",", "")
    if not text:
        return Decimal("0")
    try:
        return Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(
            f"Line {line}: invalid numeric value in '{column}' column: {value!r}"
        ) from exc


def read_ledger_csv(
    path: Union[str, "os.PathLike[str]"],
    domain: LedgerDomain,
) -> pd.DataFrame:
    """
    Read transactions or cashbook entries from a CSV file and normalize them.

    Parameters
    ----------
    path:
        Path to the CSV file.
    domain:
        LedgerDomain.TRANSACTION or LedgerDomain.CASHBOOK; decides which
        kinds and columns are expected.

    Returns
    -------
    pandas.DataFrame
        See the module docstring for the output schema. Rows keep the file
        order.

    Raises
    ------
    ValueError
        If the CSV does not contain one of the supported column sets or if
        numeric/date parsing fails.
    """
    domain = LedgerDomain(domain)
    positive_kind, negative_kind = KINDS_BY_DOMAIN[domain]

    # Read everything as text: amounts are converted to Decimal below.
    df = pd.read_csv(path, dtype=str, keep_default_na=False)

    # Normalize column names to lowercase (to make the check case-insensitive)
    df.columns = [c.lower().strip() for c in df.columns]
    cols = set(df.columns)

    if "kind" in cols and "type" not in cols:
        df = df.rename(columns={"kind": "type"})
        cols = set(df.columns)
    if "description" not in cols:
        df["description"] = ""
        cols.add("description")

    extra_columns: list[str] = []
    if domain is LedgerDomain.TRANSACTION:
        if "customer_code" not in cols:
            raise ValueError("Transactions CSV must contain a 'customer_code' column.")
        extra_columns.append("customer_code")

    required_kind_amount = {"date", "type", "amount"}
    required_two_columns = {"date", positive_kind.value, negative_kind.value}

    d = df.copy()

    # Parse date strictly: the first invalid date fails loudly with its line
    if "date" not in cols:
        raise ValueError("CSV must contain a 'date' column.")
    parsed = pd.to_datetime(d["date"], format="%Y-%m-%d", errors="coerce")
    invalid = parsed.isna()
    if invalid.any():
        pos = int(invalid.to_numpy().argmax())
        raise ValueError(
            f"Line {pos + 2}: invalid value in 'date' column: "
            f"{d['date'].iloc[pos]!r} (expected YYYY-MM-DD)."
        )
    d["date"] = parsed.dt.date

    # ----- Case 1: kind / amount format ------------------------------------
    if required_kind_amount.issubset(cols):
        d["kind"] = d["type"].astype(str).str.strip().str.lower()
        d["amount"] = [
            _to_decimal(v, "amount", line)
            for line, v in enumerate(d["amount"], start=2)
        ]

    # ----- Case 2: two-column format ---------------------------------------
    elif required_two_columns.issubset(cols):
        positive = [
            _to_decimal(v, positive_kind.value, line)
            for line, v in enumerate(d[positive_kind.value], start=2)
        ]
        negative = [
            _to_decimal(v, negative_kind.value, line)
            for line, v in enumerate(d[negative_kind.value], start=2)
        ]

        kinds: list[str] = []
        amounts: list[Decimal] = []
        for line, (pos, neg) in enumerate(zip(positive, negative), start=2):
            if (pos != 0) == (neg != 0):
                raise ValueError(
                    f"Line {line}: exactly one of '{positive_kind.value}' and "
                    f"'{negative_kind.value}' must be non-zero."
                )
            if pos != 0:
                kinds.append(positive_kind.value)
                amounts.append(pos)
            else:
                kinds.append(negative_kind.value)
                amounts.append(neg)
        d["kind"] = kinds
        d["amount"] = amounts

    # ----- Invalid structure → raise with clear message --------------------
    else:
        raise ValueError(
            f"Invalid {domain.value} CSV structure. Expected either:\n"
            "  - date, type, amount, description\n"
            f"  - date, {positive_kind.value}, {negative_kind.value}, description\n"
            "(column names are case-insensitive)."
        )

    out = d[["date", "kind", "amount", "description", *extra_columns]].copy()
    out["description"] = out["description"].astype(str)

    logger.debug("Read %s %s row(s) from %s", len(out), domain.value, path)
    return out.reset_index(drop=True)
