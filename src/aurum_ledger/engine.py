# Aurum Ledger - Reconciliation & Reporting Engine for personal and business finance
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core aggregation engine for Aurum Ledger.

This module provides the single-window aggregation primitive used by the
report engine, the business breakdowns and the cash-flow trend.

1. Window aggregation
   ------------------
   :func:`aggregate` takes the normalized transaction DataFrame produced by
   :func:`aurum_ledger.io.transactions_frame` (already filtered to a window
   and scope) and computes, in one pass over converted amounts:
   - total income (credits) and expense (debits), net and savings rate,
   - the personal / business partition of those totals,
   - top-N expense and income category breakdowns.

2. Entity breakdown
   ----------------
   :func:`breakdown_by_entity` partitions business transactions by
   ``business_id`` and runs :func:`aggregate` on each partition, so
   revenue / expense / profit / margin follow exactly the same rules as
   the window totals.

3. Deltas
   ------
   :func:`percent_delta` compares a current and a previous value without
   ever dividing by zero.

Amounts are converted from their settlement currency into the reporting
currency and summed unrounded. Rounding is left to the presentation layer.
"""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

from .currency import convert
from .io import transactions_frame
from .models import BusinessEntity, Transaction
from .periods import month_buckets

UNKNOWN_ENTITY_NAME = "Unknown Entity"


@dataclass(frozen=True)
class CategoryBreakdown:
    """
    Share of one category within a window total.

    Attributes
    ----------
    id :
        Category identifier (the category name).
    name :
        Human-readable label.
    value :
        Converted amount for the category.
    percentage :
        ``value`` as a percentage of the total it belongs to.
    transaction_count :
        Number of transactions behind ``value``.
    """

    id: str
    name: str
    value: float
    percentage: float
    transaction_count: int


@dataclass(frozen=True)
class Aggregation:
    """Totals of one window, in the reporting currency."""

    income: float = 0.0
    expense: float = 0.0
    net: float = 0.0
    savings_rate: float = 0.0
    business_revenue: float = 0.0
    business_expense: float = 0.0
    business_net: float = 0.0
    tx_count: int = 0
    top_expense_categories: list[CategoryBreakdown] = field(default_factory=list)
    top_income_categories: list[CategoryBreakdown] = field(default_factory=list)


@dataclass(frozen=True)
class EntityFinancials:
    id: str
    name: str
    revenue: float
    expense: float
    profit: float
    margin: float


def savings_rate(income: float, net: float) -> float:
    """``net / income`` as a percentage, 0 when there is no income."""
    return (net / income) * 100 if income > 0 else 0.0


def margin(revenue: float, profit: float) -> float:
    """``profit / revenue`` as a percentage, 0 when there is no revenue."""
    return (profit / revenue) * 100 if revenue > 0 else 0.0


def percent_delta(current: float, previous: float) -> float:
    """
    Percentage change from ``previous`` to ``current``.

        (current - previous) / |previous| * 100

    Special cases: 0 when both are 0, 100 when only ``previous`` is 0.
    """
    if previous == 0:
        return 0.0 if current == 0 else 100.0
    return ((current - previous) / abs(previous)) * 100


def with_converted(
    frame: pd.DataFrame,
    currency: str,
    rate_table: Optional[Mapping[str, float]] = None,
) -> pd.DataFrame:
    """Return a copy of ``frame`` with a ``converted`` amount column."""
    out = frame.copy()
    out["converted"] = [
        convert(float(amount), str(code), currency, rate_table)
        for amount, code in zip(out["amount"], out["currency"])
    ]
    return out


def _fsum(series: pd.Series) -> float:
    return math.fsum(float(v) for v in series)


def _breakdown(rows: pd.DataFrame, total: float, top_n: int) -> list[CategoryBreakdown]:
    if rows.empty:
        return []

    grouped = (
        rows.groupby("category", sort=False)["converted"]
        .agg(value=_fsum, transaction_count="count")
        .reset_index()
        .sort_values(["value", "category"], ascending=[False, True], kind="stable")
        .head(top_n)
    )

    return [
        CategoryBreakdown(
            id=str(row.category),
            name=str(row.category) or "Uncategorized",
            value=float(row.value),
            percentage=(float(row.value) / total) * 100 if total > 0 else 0.0,
            transaction_count=int(row.transaction_count),
        )
        for row in grouped.itertuples(index=False)
    ]


def aggregate(
    transactions: pd.DataFrame,
    currency: str,
    rate_table: Optional[Mapping[str, float]] = None,
    top_n: int = 10,
) -> Aggregation:
    """
    Aggregate a window of transactions into totals and breakdowns.

    Business-tagged rows only feed the business totals. Income, expense,
    net, savings rate and the category breakdowns cover personal rows.

    Args:
        transactions: Normalized transaction DataFrame (see
            :func:`aurum_ledger.io.transactions_frame`).
        currency: Reporting currency.
        rate_table: Rate table for conversions.
        top_n: Maximum number of categories per breakdown.

    Returns:
        An :class:`Aggregation`. An empty frame yields all-zero totals and a
        savings rate of 0.
    """
    if transactions.empty:
        return Aggregation()

    df = with_converted(transactions, currency, rate_table)
    is_credit = df["type"] == "credit"
    is_debit = df["type"] == "debit"
    is_business = df["business_id"].fillna("").astype(str) != ""

    personal_credit = is_credit & ~is_business
    personal_debit = is_debit & ~is_business

    income = _fsum(df.loc[personal_credit, "converted"])
    expense = _fsum(df.loc[personal_debit, "converted"])
    net = income - expense

    business_revenue = _fsum(df.loc[is_credit & is_business, "converted"])
    business_expense = _fsum(df.loc[is_debit & is_business, "converted"])

    return Aggregation(
        income=income,
        expense=expense,
        net=net,
        savings_rate=savings_rate(income, net),
        business_revenue=business_revenue,
        business_expense=business_expense,
        business_net=business_revenue - business_expense,
        tx_count=int(len(df)),
        top_expense_categories=_breakdown(df.loc[personal_debit], expense, top_n),
        top_income_categories=_breakdown(df.loc[personal_credit], income, top_n),
    )


def breakdown_by_entity(
    transactions: pd.DataFrame,
    currency: str,
    entities: Iterable[BusinessEntity] = (),
    rate_table: Optional[Mapping[str, float]] = None,
    include_empty: bool = False,
) -> list[EntityFinancials]:
    """
    Revenue, expense, profit and margin per business entity.

    Transactions without a ``business_id`` are ignored. Entity ids with no
    matching :class:`BusinessEntity` are reported as "Unknown Entity".

    Args:
        transactions: Normalized transaction DataFrame.
        currency: Reporting currency.
        entities: Known business entities (used for names).
        rate_table: Rate table for conversions.
        include_empty: Also list known entities without transactions.

    Returns:
        Rows sorted by revenue, highest first.
    """
    names = {e.id: e.name for e in entities}
    rows: list[EntityFinancials] = []
    seen: set[str] = set()

    if not transactions.empty:
        business = transactions[transactions["business_id"].fillna("").astype(str) != ""]
        for entity_id, part in business.groupby("business_id", sort=True):
            agg = aggregate(part, currency, rate_table)
            profit = agg.business_net
            rows.append(
                EntityFinancials(
                    id=str(entity_id),
                    name=names.get(str(entity_id), UNKNOWN_ENTITY_NAME),
                    revenue=agg.business_revenue,
                    expense=agg.business_expense,
                    profit=profit,
                    margin=margin(agg.business_revenue, profit),
                )
            )
            seen.add(str(entity_id))

    if include_empty:
        for entity_id, name in names.items():
            if entity_id not in seen:
                rows.append(
                    EntityFinancials(
                        id=entity_id, name=name, revenue=0.0, expense=0.0, profit=0.0, margin=0.0
                    )
                )

    return sorted(rows, key=lambda r: r.revenue, reverse=True)


def compute_entity_financials(
    entities: Iterable[BusinessEntity],
    transactions: Iterable[Transaction],
    base_currency: str,
    rate_table: Optional[Mapping[str, float]] = None,
) -> list[EntityFinancials]:
    """All-time financials of every known entity, including idle ones."""
    return breakdown_by_entity(
        transactions_frame(transactions),
        base_currency,
        entities=list(entities),
        rate_table=rate_table,
        include_empty=True,
    )


def cash_flow_by_month(
    transactions: pd.DataFrame,
    currency: str,
    start: str,
    end: str,
    rate_table: Optional[Mapping[str, float]] = None,
) -> list[dict[str, float | str]]:
    """
    Monthly income / expense buckets covering ``[start, end]``.

    Every month of the window gets a bucket, even without transactions.
    """
    buckets: dict[str, dict[str, float | str]] = {
        key: {"month": key, "income": 0.0, "expense": 0.0}
        for key in month_buckets(start, end)
    }
    if transactions.empty or not buckets:
        return list(buckets.values())

    df = with_converted(transactions, currency, rate_table)
    df["month"] = df["date"].astype(str).str.slice(0, 7)
    grouped = df.groupby(["month", "type"])["converted"].agg(_fsum)

    for (month, tx_type), value in grouped.items():
        if month not in buckets:
            continue
        if tx_type == "credit":
            buckets[month]["income"] = float(value)
        elif tx_type == "debit":
            buckets[month]["expense"] = float(value)

    return list(buckets.values())
