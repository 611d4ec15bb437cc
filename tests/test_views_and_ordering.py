from datetime import date

import pandas as pd
import pytest

import aurum_ledger.views as views
from aurum_ledger.kpi import compute_health
from aurum_ledger.models import Account, BusinessEntity, BusinessMetric, Transaction
from aurum_ledger.reports import ReportEngine, ReportSpec

TODAY = date(2025, 10, 17)


def _tx(tx_id: str, tx_type: str, amount: float, category: str, **kw) -> Transaction:
    return Transaction(
        id=tx_id,
        account_id="a1",
        type=tx_type,  # type: ignore[arg-type]
        numeric_amount=amount,
        currency="USD",
        date=kw.pop("day", "2025-10-03"),
        category=category,
        **kw,
    )


@pytest.fixture
def engine() -> ReportEngine:
    txs = [
        _tx("t1", "credit", 2000.0, "Salary"),
        _tx("t2", "debit", 300.125, "Rent"),
        _tx("t3", "debit", 100.0, "Groceries"),
        _tx("t4", "credit", 800.0, "Sales", business_id="b1"),
        _tx("t5", "credit", 50.0, "Sales", business_id="b2"),
        _tx("t6", "debit", 100.0, "Rent", day="2025-09-20"),
    ]
    return ReportEngine(
        txs,
        accounts=[Account(id="a1", balance=1234.5, currency="USD")],
        business_entities=[BusinessEntity(id="b1", name="Store"), BusinessEntity(id="b2", name="Studio")],
    )


def test_summary_frame_rows_and_display_order(engine) -> None:
    """Headline metrics come first, business rows last, numbered 10, 20, ..."""
    frame = views.summary_frame(engine.generate(ReportSpec(), today=TODAY))

    assert list(frame.columns) == views.SUMMARY_COLUMNS
    assert list(frame["key"])[:4] == ["income", "expense", "net", "savings_rate"]
    assert list(frame["key"])[-3:] == ["business_revenue", "business_expenses", "business_net_profit"]
    assert list(frame["display_order"]) == [10 * (i + 1) for i in range(len(frame))]

    expense = frame.set_index("key").loc["expense"]
    # 400.125 rounds half up at the output boundary.
    assert expense["value"] == 400.13
    assert expense["delta"] == pytest.approx(300.13)
    net_worth = frame.set_index("key").loc["net_worth"]
    assert net_worth["formatted"] == "$1,234.50"
    assert pd.isna(net_worth["delta"])


def test_summary_frame_personal_scope_has_no_business_rows(engine) -> None:
    frame = views.summary_frame(engine.generate(ReportSpec(scope="personal"), today=TODAY))
    assert not any(k.startswith("business_") for k in frame["key"])


def test_categories_frame_orders_expense_before_income(engine) -> None:
    frame = views.categories_frame(engine.generate(ReportSpec(), today=TODAY))

    assert list(frame.columns) == views.CATEGORY_COLUMNS
    assert list(zip(frame["kind"], frame["id"])) == [
        ("expense", "Rent"),
        ("expense", "Groceries"),
        ("income", "Salary"),
    ]
    assert frame.iloc[0]["value"] == 300.13


def test_entities_frame(engine) -> None:
    frame = views.entities_frame(engine.generate(ReportSpec(scope="business"), today=TODAY))

    assert list(frame.columns) == views.ENTITY_COLUMNS
    assert list(frame["name"]) == ["Store", "Studio"]
    assert list(frame["margin"]) == [100.0, 100.0]


def test_entities_frame_empty_for_personal_scope(engine) -> None:
    frame = views.entities_frame(engine.generate(ReportSpec(scope="personal"), today=TODAY))
    assert frame.empty
    assert list(frame.columns) == views.ENTITY_COLUMNS


def test_cash_flow_frame(engine) -> None:
    snap = engine.generate(ReportSpec(period="quarter"), today=TODAY)
    frame = views.cash_flow_frame(snap)

    assert list(frame["month"]) == ["2025-10"]
    row = frame.iloc[0]
    assert row["income"] == 2850.0
    assert row["net"] == 2449.88


def test_health_frame_flags_detractors() -> None:
    health = compute_health(
        [
            (BusinessMetric(metric_id="revenue", target_value=100.0), 50.0),
            (BusinessMetric(metric_id="aov", target_value=100.0), 150.0),
        ]
    )

    frame = views.health_frame(health)

    assert list(frame.columns) == views.HEALTH_COLUMNS
    assert list(frame["detractor"]) == [True, False]
    assert list(frame["ratio"]) == [0.5, 1.5]


def test_health_frame_empty() -> None:
    frame = views.health_frame(compute_health([]))
    assert frame.empty
    assert list(frame.columns) == views.HEALTH_COLUMNS
