# SmartHisab - Bookkeeping application for small businesses
# Copyright (c) 2025 SmartHisab contributors
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for SmartHisab.

This module defines a Period value object and helpers to derive reporting
windows (all time, month to date, last month, year to date, custom) from
CLI arguments. Bounds are inclusive; a None bound is open-ended.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class Period:
    """Represents a reporting window with a human-readable label."""

    start: Optional[date]
    end: Optional[date]
    label: str

    def contains(self, day: date) -> bool:
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def period_all_time() -> Period:
    return Period(start=None, end=None, label="All time")


def period_current_month() -> Period:
    """Full current calendar month, as used by the dashboard cashbook cards."""
    today = _today()
    last_day = monthrange(today.year, today.month)[1]
    return Period(
        start=today.replace(day=1),
        end=today.replace(day=last_day),
        label=f"{today:%B %Y}",
    )


def period_mtd() -> Period:
    """Month-to-date."""
    today = _today()
    return Period(start=today.replace(day=1), end=today, label="Month to date")


def period_last_month() -> Period:
    """Full previous calendar month."""
    today = _today()

    if today.month == 1:
        year = today.year - 1
        month = 12
    else:
        year = today.year
        month = today.month - 1

    start = date(year, month, 1)
    end = date(year, month, monthrange(year, month)[1])
    return Period(start=start, end=end, label="Last month")


def period_ytd() -> Period:
    """Calendar year-to-date."""
    today = _today()
    return Period(start=date(today.year, 1, 1), end=today, label="Year to date")


def custom_period(start: Optional[date], end: Optional[date]) -> Period:
    """
    Build a custom period from optional bounds.

    Raises
    ------
    ValueError
        If both bounds are given and end is before start.
    """
    if start is None and end is None:
        return period_all_time()

    if start is not None and end is not None and end < start:
        raise ValueError("Custom period end date cannot be before start date.")

    start_label = start.isoformat() if start else "…"
    end_label = end.isoformat() if end else "…"
    return Period(start=start, end=end, label=f"Custom period ({start_label} → {end_label})")


def determine_period_from_args(args) -> Period:
    """
    Determine the reporting period to use based on CLI args.

    Priority (highest to lowest):

        1. args.period (all, mtd, month, last-month, ytd)
        2. args.from_date / args.to_date (custom period, either bound optional)
        3. all time by default
    """
    # 1) Predefined period wins over everything else
    if getattr(args, "period", None):
        p = args.period
        if p == "all":
            return period_all_time()
        if p == "mtd":
            return period_mtd()
        if p == "month":
            return period_current_month()
        if p == "last-month":
            return period_last_month()
        if p == "ytd":
            return period_ytd()
        raise ValueError(f"Unknown period: {p!r}")

    # 2) Custom from/to dates
    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        try:
            start = date.fromisoformat(from_raw) if from_raw else None
            end = date.fromisoformat(to_raw) if to_raw else None
        except ValueError as exc:
            raise ValueError("Invalid date, expected YYYY-MM-DD format.") from exc
        return custom_period(start, end)

    # 3) Default: everything
    return period_all_time()
