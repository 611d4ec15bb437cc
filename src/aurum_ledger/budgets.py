# Aurum Ledger - Reconciliation & Reporting Engine for personal and business finance
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Budget consumption for Aurum Ledger.

This module derives the ``spent`` value of each budget from the transaction
log and measures how a budget is pacing through the month.

Matching rules
--------------
- Only transactions dated in the current calendar month count.
- A transaction counts towards a budget when its category is the budget's
  own category name or one of its configured aliases (strict equality, no
  substring matching: "Car" must not match "Career").
- Transfers never count.
- Expense budgets add debits and subtract credits (refunds); income budgets
  add credits and subtract debits. The result is floored at 0.
- Amounts are converted from their settlement currency into the base
  currency before summation.

``spent`` is a derived field. :func:`for_storage` resets it to 0 so that a
stale value can never be written back as if it were source data.
"""

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from .config import DEFAULT_BUDGET_ALIASES, AppConfig, default_config
from .currency import convert, settlement_currency
from .models import TRANSFER_CATEGORY, BudgetCategory, Transaction
from .periods import _today, days_in_month, month_key


@dataclass(frozen=True)
class BudgetPacing:
    """
    Pace of a budget at a given day of the month.

    Attributes:
        budget_id: Budget identifier.
        expected_to_date: ``limit * day_of_month / days_in_month``.
        spent: Derived spent value the pacing was computed from.
        ahead_of_pace: True when spending runs ahead of linear consumption.
        over_limit: True when ``spent`` already exceeds the hard limit.
        remaining: ``limit - spent`` (negative when over the limit).
        utilization: ``spent / limit`` as a percentage (0 when limit is 0).
    """

    budget_id: str
    expected_to_date: float
    spent: float
    ahead_of_pace: bool
    over_limit: bool
    remaining: float
    utilization: float


def categories_for_budget(
    budget_name: str,
    aliases: Optional[Mapping[str, Sequence[str]]] = None,
) -> list[str]:
    """Transaction categories matching a budget: its aliases plus its name."""
    table = DEFAULT_BUDGET_ALIASES if aliases is None else aliases
    mapped = list(table.get(budget_name, ()))
    return [*mapped, budget_name]


def _budget_delta(budget: BudgetCategory, tx: Transaction, amount: float) -> float:
    counted = "credit" if budget.type == "income" else "debit"
    return amount if tx.type == counted else -amount


def compute_spent(
    budgets: Iterable[BudgetCategory],
    transactions: Sequence[Transaction],
    base_currency: str,
    today: Optional[date] = None,
    aliases: Optional[Mapping[str, Sequence[str]]] = None,
    rate_table: Optional[Mapping[str, float]] = None,
) -> list[BudgetCategory]:
    """
    Compute the current-month ``spent`` value of every budget.

    Args:
        budgets: Budgets to enrich (never mutated).
        transactions: Transaction log.
        base_currency: Currency the budget limits are expressed in.
        today: Reference date defining the current month.
        aliases: Budget name -> matching transaction categories.
        rate_table: Rate table for currency conversion.

    Returns:
        New BudgetCategory objects with ``spent`` populated.
    """
    current_month = month_key(today or _today())
    month_txs = [
        t
        for t in transactions
        if t.date.startswith(current_month) and t.category != TRANSFER_CATEGORY
    ]

    enriched: list[BudgetCategory] = []
    for budget in budgets:
        categories = set(categories_for_budget(budget.category, aliases))
        deltas = [
            _budget_delta(
                budget,
                t,
                convert(t.numeric_amount, settlement_currency(t), base_currency, rate_table),
            )
            for t in month_txs
            if t.category in categories
        ]
        enriched.append(replace(budget, spent=max(0.0, math.fsum(deltas))))

    return enriched


def compute_budgets(
    budgets: Iterable[BudgetCategory],
    transactions: Sequence[Transaction],
    config: Optional[AppConfig] = None,
    today: Optional[date] = None,
) -> list[BudgetCategory]:
    """:func:`compute_spent` with the configured base currency, aliases and rates."""
    cfg = config or default_config()
    return compute_spent(
        budgets,
        transactions,
        cfg.base_currency,
        today=today,
        aliases=cfg.budget_aliases,
        rate_table=cfg.rates,
    )


def pacing(budget: BudgetCategory, today: Optional[date] = None) -> BudgetPacing:
    """
    Compare a budget's ``spent`` with linear consumption of its limit.

    The pacing marker is independent of the hard limit: a budget can be
    ahead of pace without being over its limit, and vice versa at the very
    end of the month.
    """
    current = today or _today()
    fraction = current.day / days_in_month(current.year, current.month)
    expected = budget.limit * fraction
    utilization = (budget.spent / budget.limit) * 100 if budget.limit > 0 else 0.0

    return BudgetPacing(
        budget_id=budget.id,
        expected_to_date=expected,
        spent=budget.spent,
        ahead_of_pace=budget.spent > expected,
        over_limit=budget.spent > budget.limit,
        remaining=budget.limit - budget.spent,
        utilization=utilization,
    )


def strip_derived(budget: BudgetCategory) -> BudgetCategory:
    """Copy of ``budget`` with its derived ``spent`` reset to 0."""
    return replace(budget, spent=0.0)


def for_storage(budgets: Iterable[BudgetCategory]) -> list[BudgetCategory]:
    """Budgets ready to be persisted (no derived values)."""
    return [strip_derived(b) for b in budgets]


def upcoming_recurring_total(
    transactions: Iterable[Transaction],
    base_currency: str,
    today: Optional[date] = None,
    rate_table: Optional[Mapping[str, float]] = None,
) -> float:
    """
    Sum of recurring debits falling due between today and the end of month.

    A recurring transaction is due when its ``next_recurring_date`` lies in
    ``[today, last day of the month]``.
    """
    current = today or _today()
    start = current.isoformat()
    end = current.replace(day=days_in_month(current.year, current.month)).isoformat()

    return math.fsum(
        convert(t.numeric_amount, settlement_currency(t), base_currency, rate_table)
        for t in transactions
        if t.is_recurring
        and t.type == "debit"
        and t.next_recurring_date
        and start <= t.next_recurring_date <= end
    )
