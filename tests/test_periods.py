from datetime import date

import pytest

import aurum_ledger.periods as periods

TODAY = date(2025, 10, 17)


def test_month_ignores_custom_range_and_previous_window_is_adjacent() -> None:
    """'month' ignores a stray custom range; the previous window has the same length."""
    current = periods.resolve_date_range("month", ("2020-01-01", "2020-12-31"), today=TODAY)

    assert (current.start, current.end) == ("2025-10-01", "2025-10-17")

    previous = periods.resolve_previous_range(current.start, current.end, today=TODAY)

    assert previous.days == current.days == 17
    assert previous.end == "2025-09-30"
    assert previous.start == "2025-09-14"


@pytest.mark.parametrize(
    ("today", "start", "label"),
    [
        (date(2025, 5, 20), "2025-04-01", "Q2 2025"),
        (date(2025, 1, 1), "2025-01-01", "Q1 2025"),
        (date(2025, 12, 31), "2025-10-01", "Q4 2025"),
    ],
)
def test_quarter_to_date(today: date, start: str, label: str) -> None:
    p = periods.resolve_date_range("quarter", today=today)
    assert (p.start, p.end, p.label) == (start, today.isoformat(), label)


@pytest.mark.parametrize("period", ["year", "ytd"])
def test_year_windows_start_on_january_first(period: str) -> None:
    p = periods.resolve_date_range(period, today=TODAY)
    assert (p.start, p.end) == ("2025-01-01", "2025-10-17")


def test_custom_range_passes_through_unchanged() -> None:
    p = periods.resolve_date_range("custom", ("2024-02-01", "2024-02-29"), today=TODAY)
    assert (p.start, p.end) == ("2024-02-01", "2024-02-29")
    assert p.label == "Custom period (2024-02-01 → 2024-02-29)"


@pytest.mark.parametrize("period", ["custom", "fortnight", ""])
def test_unresolved_period_falls_back_to_month(period: str) -> None:
    p = periods.resolve_date_range(period, None, today=TODAY)
    assert (p.start, p.end) == ("2025-10-01", "2025-10-17")


def test_resolve_date_range_uses_monkeypatched_today(monkeypatch) -> None:
    """_today() is the single clock used when no date is passed."""
    monkeypatch.setattr(periods, "_today", lambda: date(2024, 3, 9))
    p = periods.resolve_date_range("month")
    assert (p.start, p.end) == ("2024-03-01", "2024-03-09")


@pytest.mark.parametrize(
    ("start", "end"),
    [("not-a-date", "2025-10-17"), ("2025-10-01", ""), ("2025-13-01", "2025-13-31")],
)
def test_previous_range_invalid_input_degenerates_to_today(start: str, end: str) -> None:
    p = periods.resolve_previous_range(start, end, today=TODAY)
    assert (p.start, p.end) == ("2025-10-17", "2025-10-17")


def test_previous_range_of_single_day() -> None:
    p = periods.resolve_previous_range("2025-03-01", "2025-03-01")
    assert (p.start, p.end) == ("2025-02-28", "2025-02-28")


def test_period_days_and_contains() -> None:
    p = periods.Period(start="2025-10-01", end="2025-10-31")
    assert p.days == 31
    assert p.contains("2025-10-01")
    assert p.contains("2025-10-31")
    assert not p.contains("2025-11-01")
    assert periods.Period(start="bad", end="2025-10-31").days == 0


@pytest.mark.parametrize(
    ("value", "months", "expected"),
    [
        ("2025-01-31", 1, "2025-02-28"),
        ("2024-01-31", 1, "2024-02-29"),
        ("2025-11-15", 3, "2026-02-15"),
        ("2025-03-31", -1, "2025-02-28"),
    ],
)
def test_add_months_clamps_day(value: str, months: int, expected: str) -> None:
    assert periods.add_months(value, months) == expected


@pytest.mark.parametrize(
    ("frequency", "expected"),
    [
        ("daily", "2024-02-29"),
        ("weekly", "2024-03-06"),
        ("monthly", "2024-03-28"),
        ("yearly", "2025-02-28"),
        (None, "2024-02-28"),
    ],
)
def test_next_recurring_date(frequency, expected: str) -> None:
    assert periods.next_recurring_date("2024-02-28", frequency) == expected


def test_add_years_from_leap_day() -> None:
    assert periods.add_years("2024-02-29", 1) == "2025-02-28"


def test_month_buckets() -> None:
    assert periods.month_buckets("2025-11-15", "2026-02-02") == [
        "2025-11",
        "2025-12",
        "2026-01",
        "2026-02",
    ]
    assert periods.month_buckets("2025-10-01", "2025-10-17") == ["2025-10"]
    assert periods.month_buckets("2025-10-17", "2025-10-01") == []
    assert periods.month_buckets("nope", "2025-10-01") == []
