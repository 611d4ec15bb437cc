# Aurum Ledger - Reconciliation & Reporting Engine for personal and business finance
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for Aurum Ledger.

This module turns report snapshots and health snapshots into tabular
"views" (pandas DataFrames) that an external renderer or exporter can
consume directly. The views never recompute anything: every figure comes
from :mod:`aurum_ledger.reports` or :mod:`aurum_ledger.kpi`.

The main views are:

- summary:    one row per headline metric (value, formatted value, delta),
- categories: top expense / income categories with their share,
- entities:   per-entity business financials,
- cash flow:  monthly income / expense buckets,
- health:     per-metric ratios of a business health snapshot.

Monetary values are rounded half-up to two decimals here, at the output
boundary, never earlier.
"""

import pandas as pd

from .currency import round2
from .kpi import HealthSnapshot
from .reports import MetricValue, ReportSnapshot

SUMMARY_COLUMNS = ["display_order", "key", "value", "formatted", "delta", "delta_value"]
CATEGORY_COLUMNS = ["display_order", "kind", "id", "name", "value", "percentage", "transaction_count"]
ENTITY_COLUMNS = ["display_order", "id", "name", "revenue", "expense", "profit", "margin"]
CASH_FLOW_COLUMNS = ["month", "income", "expense", "net"]
HEALTH_COLUMNS = ["metric_id", "value", "target", "ratio", "weight", "detractor"]


def _renumber_display_order(df: pd.DataFrame, start: int = 10, step: int = 10) -> pd.DataFrame:
    """Reassign display_order to be strictly sequential: start, start+step, ...
    Preserves the current order of the lines (as it appears in df).
    """
    df = df.reset_index(drop=True)
    df["display_order"] = [start + i * step for i in range(len(df))]
    return df


def _finalize(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame(columns=columns)
    if "display_order" in columns:
        df = _renumber_display_order(df)
    return df[columns]


def _metric_row(key: str, metric: MetricValue) -> dict[str, object]:
    return {
        "key": key,
        "value": round2(metric.value),
        "formatted": metric.formatted,
        "delta": None if metric.delta is None else round2(metric.delta),
        "delta_value": None if metric.delta_value is None else round2(metric.delta_value),
    }


def summary_frame(snapshot: ReportSnapshot) -> pd.DataFrame:
    """
    Headline metrics of a snapshot, one per row.

    Business rows (prefixed ``business_``) are appended when the snapshot
    carries a business section.
    """
    s = snapshot.summary
    rows = [
        _metric_row("income", s.income),
        _metric_row("expense", s.expense),
        _metric_row("net", s.net),
        _metric_row("savings_rate", s.savings_rate),
        _metric_row("net_worth", s.net_worth),
        _metric_row("liquid_assets", s.liquid_assets),
        _metric_row("invested_assets", s.invested_assets),
    ]
    if snapshot.business is not None:
        b = snapshot.business
        rows.extend(
            [
                _metric_row("business_revenue", b.revenue),
                _metric_row("business_expenses", b.expenses),
                _metric_row("business_net_profit", b.net_profit),
            ]
        )
    return _finalize(pd.DataFrame(rows), SUMMARY_COLUMNS)


def categories_frame(snapshot: ReportSnapshot) -> pd.DataFrame:
    """Top expense categories followed by top income categories."""
    rows: list[dict[str, object]] = []
    for kind, items in (
        ("expense", snapshot.top_expense_categories),
        ("income", snapshot.top_income_categories),
    ):
        for c in items:
            rows.append(
                {
                    "kind": kind,
                    "id": c.id,
                    "name": c.name,
                    "value": round2(c.value),
                    "percentage": round2(c.percentage),
                    "transaction_count": c.transaction_count,
                }
            )
    return _finalize(pd.DataFrame(rows), CATEGORY_COLUMNS)


def entities_frame(snapshot: ReportSnapshot) -> pd.DataFrame:
    """Per-entity financials (empty for personal-scope snapshots)."""
    if snapshot.business is None:
        return pd.DataFrame(columns=ENTITY_COLUMNS)
    rows = [
        {
            "id": e.id,
            "name": e.name,
            "revenue": round2(e.revenue),
            "expense": round2(e.expense),
            "profit": round2(e.profit),
            "margin": round2(e.margin),
        }
        for e in snapshot.business.by_entity
    ]
    return _finalize(pd.DataFrame(rows), ENTITY_COLUMNS)


def cash_flow_frame(snapshot: ReportSnapshot) -> pd.DataFrame:
    rows = [
        {
            "month": b["month"],
            "income": round2(float(b["income"])),
            "expense": round2(float(b["expense"])),
            "net": round2(float(b["income"]) - float(b["expense"])),
        }
        for b in snapshot.cash_flow
    ]
    return _finalize(pd.DataFrame(rows), CASH_FLOW_COLUMNS)


def health_frame(health: HealthSnapshot) -> pd.DataFrame:
    """
    Per-metric view of a health snapshot.

    The ``detractor`` column flags the metrics listed in the diagnosis.
    """
    detractors = set(health.diagnosis.top_detractors)
    rows = [
        {
            "metric_id": m.metric_id,
            "value": m.value,
            "target": m.target,
            "ratio": round(m.ratio, 4),
            "weight": m.weight,
            "detractor": m.metric_id in detractors,
        }
        for m in health.metrics
    ]
    return _finalize(pd.DataFrame(rows), HEALTH_COLUMNS)
