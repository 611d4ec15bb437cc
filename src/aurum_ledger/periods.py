# Aurum Ledger - Reconciliation & Reporting Engine for personal and business finance
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for Aurum Ledger.

This module defines a Period value object and helpers to derive reporting
windows (month, quarter, year, YTD, custom) and the window immediately
preceding them, plus the calendar arithmetic used for recurring
transactions.

All dates are local-calendar ``YYYY-MM-DD`` strings. Comparing two such
strings lexicographically is the same as comparing the dates, which is what
the transaction filters rely on.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Literal, Optional

from .logging_config import get_logger

logger = get_logger(__name__)

ReportPeriod = Literal["month", "quarter", "year", "ytd", "custom"]


@dataclass(frozen=True)
class Period:
    """Represents a reporting window (inclusive bounds) with a label."""

    start: str
    end: str
    label: str = ""

    @property
    def days(self) -> int:
        """Inclusive number of days in the window (0 if unparseable)."""
        start = parse_date(self.start)
        end = parse_date(self.end)
        if start is None or end is None:
            return 0
        return (end - start).days + 1

    def contains(self, date_str: str) -> bool:
        return is_in_range(date_str, self.start, self.end)


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string, returning None when it is not a date."""
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def is_in_range(date_str: str, start: str, end: str) -> bool:
    """Inclusive ``start <= date_str <= end`` on ISO date strings."""
    return start <= date_str[:10] <= end


def days_in_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def month_key(value: date) -> str:
    """Return 'YYYY-MM' for a date."""
    return f"{value.year:04d}-{value.month:02d}"


def add_days(date_str: str, days: int) -> str:
    d = date.fromisoformat(date_str)
    return (d + timedelta(days=days)).isoformat()


def add_months(date_str: str, months: int) -> str:
    """
    Add calendar months, clamping the day to the end of the target month.

    Jan 31 + 1 month -> Feb 28 (or Feb 29 on leap years).
    """
    d = date.fromisoformat(date_str)
    index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(d.day, days_in_month(year, month))
    return date(year, month, day).isoformat()


def add_years(date_str: str, years: int) -> str:
    """Add calendar years (Feb 29 falls back to Feb 28 on common years)."""
    return add_months(date_str, 12 * years)


def next_recurring_date(date_str: str, frequency: Optional[str]) -> str:
    """
    Next occurrence of a recurring transaction.

    Unknown frequencies return the input date unchanged.
    """
    if frequency == "daily":
        return add_days(date_str, 1)
    if frequency == "weekly":
        return add_days(date_str, 7)
    if frequency == "monthly":
        return add_months(date_str, 1)
    if frequency == "yearly":
        return add_years(date_str, 1)
    return date_str


def period_month(today: date) -> Period:
    """Current calendar month, month-to-date."""
    start = today.replace(day=1)
    return Period(start=start.isoformat(), end=today.isoformat(), label="Month to date")


def period_quarter(today: date) -> Period:
    """Current calendar quarter, quarter-to-date."""
    first_month = ((today.month - 1) // 3) * 3 + 1
    start = date(today.year, first_month, 1)
    quarter = (first_month - 1) // 3 + 1
    return Period(
        start=start.isoformat(),
        end=today.isoformat(),
        label=f"Q{quarter} {today.year}",
    )


def period_year(today: date) -> Period:
    start = date(today.year, 1, 1)
    return Period(start=start.isoformat(), end=today.isoformat(), label=f"Year {today.year}")


def period_ytd(today: date) -> Period:
    start = date(today.year, 1, 1)
    return Period(start=start.isoformat(), end=today.isoformat(), label="Year to date")


def resolve_date_range(
    period: str,
    custom_range: Optional[tuple[str, str]] = None,
    today: Optional[date] = None,
) -> Period:
    """
    Map a period keyword to an inclusive ``[start, end]`` window.

    Priority:
        1. 'month', 'quarter', 'year', 'ytd' resolve against ``today`` and
           ignore any ``custom_range``.
        2. 'custom' passes ``custom_range`` through unchanged (no parsing,
           no validation).
        3. 'custom' without a range, or an unknown keyword, falls back to
           the current month.
    """
    current = today or _today()

    if period == "month":
        return period_month(current)
    if period == "quarter":
        return period_quarter(current)
    if period == "year":
        return period_year(current)
    if period == "ytd":
        return period_ytd(current)
    if period == "custom" and custom_range is not None:
        start, end = custom_range
        return Period(start=start, end=end, label=f"Custom period ({start} → {end})")

    logger.warning("periods.unresolved_period", period=period)
    return period_month(current)


def resolve_previous_range(
    start: str,
    end: str,
    today: Optional[date] = None,
) -> Period:
    """
    Window of identical duration immediately preceding ``[start, end]``.

        prev_end   = start - 1 day
        prev_start = prev_end - (end - start)

    Unparseable bounds degenerate to a zero-length window on ``today``
    instead of raising.
    """
    d_start = parse_date(start)
    d_end = parse_date(end)

    if d_start is None or d_end is None:
        fallback = (today or _today()).isoformat()
        logger.warning("periods.invalid_range", start=start, end=end)
        return Period(start=fallback, end=fallback, label="Previous period")

    duration = d_end - d_start
    prev_end = d_start - timedelta(days=1)
    prev_start = prev_end - duration
    return Period(
        start=prev_start.isoformat(),
        end=prev_end.isoformat(),
        label="Previous period",
    )


def month_buckets(start: str, end: str) -> list[str]:
    """
    List the 'YYYY-MM' keys covered by ``[start, end]``.

    Returns an empty list for unparseable or reversed bounds.
    """
    d_start = parse_date(start)
    d_end = parse_date(end)
    if d_start is None or d_end is None or d_end < d_start:
        return []

    keys: list[str] = []
    cursor = d_start.replace(day=1)
    while cursor <= d_end:
        keys.append(month_key(cursor))
        cursor = date.fromisoformat(add_months(cursor.isoformat(), 1))
    return keys
