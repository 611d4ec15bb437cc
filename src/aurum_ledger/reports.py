# Aurum Ledger - Reconciliation & Reporting Engine for personal and business finance
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Report orchestration for Aurum Ledger.

This module provides the high-level entry point used to build a complete
report snapshot for one requested window.

Overview
--------
:meth:`ReportEngine.generate` performs, in order:

1. Window resolution: the period keyword ('month', 'quarter', 'year',
   'ytd', 'custom') becomes an inclusive ``[start, end]`` pair of
   ``YYYY-MM-DD`` strings (see :mod:`aurum_ledger.periods`).
2. Previous window: the immediately preceding window of identical
   duration, used for deltas.
3. Filtering: inclusive date-string comparison plus scope
   ('personal' excludes business-tagged transactions, 'business' keeps only
   them, 'all' keeps everything) and the optional report filters.
4. Aggregation of both windows with :func:`aurum_ledger.engine.aggregate`.
5. Deltas with :func:`aurum_ledger.engine.percent_delta`.
6. Asset valuation: net worth, liquid and invested assets from the *current*
   account balances and investment values. This is a point-in-time value
   "as of now", even for past windows; the snapshot labels it so.
7. Business extension (scope other than 'personal'): revenue, expenses,
   net profit, margins and a per-entity breakdown.
8. Data quality: share of uncategorized transactions, number of
   transactions excluded by the filters, a score and warnings.

Separation of concerns
----------------------
- ``engine.py`` is the single source of truth for how one window is
  aggregated.
- ``periods.py`` resolves windows.
- ``reports.py`` assembles everything into a :class:`ReportSnapshot`, a
  plain data structure with no rendering logic. ``views.py`` turns it into
  DataFrames for external renderers.

The engine is built over explicit snapshots of records and holds no mutable
state, so one instance can serve any number of ``generate()`` calls.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal, Optional

from .config import AppConfig, default_config
from .currency import convert, format_currency, unknown_currencies
from .engine import (
    Aggregation,
    CategoryBreakdown,
    EntityFinancials,
    aggregate,
    breakdown_by_entity,
    cash_flow_by_month,
    margin,
    percent_delta,
)
from .io import transactions_frame
from .logging_config import get_logger
from .models import TRANSFER_CATEGORY, Account, BusinessEntity, Investment, Transaction
from .periods import Period, ReportPeriod, _today, resolve_date_range, resolve_previous_range

logger = get_logger(__name__)

ReportScope = Literal["all", "personal", "business"]

# Investment-type accounts hold invested assets; everything else is liquid.
INVESTED_ACCOUNT_TYPES: tuple[str, ...] = ("investment",)


@dataclass(frozen=True)
class ReportFilters:
    """Optional narrowing applied on top of the window and scope."""

    accounts: Optional[tuple[str, ...]] = None
    categories: Optional[tuple[str, ...]] = None
    exclude_internal_transfers: bool = False


@dataclass(frozen=True)
class ReportSpec:
    """
    A report request.

    Attributes:
        scope: 'all', 'personal' or 'business'.
        period: 'month', 'quarter', 'year', 'ytd' or 'custom'.
        base_currency: Reporting currency. Defaults to the configured
            ``base_currency`` of the engine.
        custom_range: ``(start, end)`` used only when period is 'custom'.
        filters: Optional account / category / transfer filters.
        id: Caller-provided identifier, echoed in the snapshot.
    """

    scope: ReportScope = "all"
    period: ReportPeriod = "month"
    base_currency: Optional[str] = None
    custom_range: Optional[tuple[str, str]] = None
    filters: ReportFilters = field(default_factory=ReportFilters)
    id: str = ""


@dataclass(frozen=True)
class MetricValue:
    """A reported figure, its display form and its change vs the previous window."""

    value: float
    formatted: str
    delta: Optional[float] = None
    delta_value: Optional[float] = None


@dataclass(frozen=True)
class AssetValuation:
    """Point-in-time wealth from live balances (``as_of`` is always 'now')."""

    liquid: float
    invested: float
    net_worth: float
    as_of: str = "now"


@dataclass(frozen=True)
class ReportSummary:
    income: MetricValue
    expense: MetricValue
    net: MetricValue
    savings_rate: MetricValue
    net_worth: MetricValue
    liquid_assets: MetricValue
    invested_assets: MetricValue
    assets_as_of: str = "now"


@dataclass(frozen=True)
class BusinessSection:
    revenue: MetricValue
    expenses: MetricValue
    net_profit: MetricValue
    net_margin: float
    by_entity: list[EntityFinancials] = field(default_factory=list)


@dataclass(frozen=True)
class DataQuality:
    """
    Completeness indicators of the report input.

    Attributes:
        uncategorized_percent: Share of in-window transactions with a missing
            or placeholder category.
        excluded_count: Transactions of the snapshot left out by the window,
            scope and filters.
        score: 0-100 completeness score (100 minus the uncategorized share,
            minus 10 per unknown currency code, floored at 0).
        warnings: Human-readable warnings.
    """

    uncategorized_percent: float
    excluded_count: int
    score: float
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ReportSnapshot:
    spec: ReportSpec
    generated_at: str
    currency: str
    date_range: Period
    previous_range: Period
    tx_count: int
    summary: ReportSummary
    top_expense_categories: list[CategoryBreakdown]
    top_income_categories: list[CategoryBreakdown]
    cash_flow: list[dict[str, float | str]]
    data_quality: DataQuality
    business: Optional[BusinessSection] = None


def filter_transactions(
    transactions: Iterable[Transaction],
    scope: str,
    start: str,
    end: str,
    filters: Optional[ReportFilters] = None,
) -> list[Transaction]:
    """
    Keep transactions dated in ``[start, end]`` and matching the scope.

    Date bounds are compared as ``YYYY-MM-DD`` strings, both inclusive.
    """
    flt = filters or ReportFilters()
    kept: list[Transaction] = []
    for t in transactions:
        if t.date < start or t.date > end:
            continue
        if scope == "personal" and t.is_business:
            continue
        if scope == "business" and not t.is_business:
            continue
        if flt.accounts is not None and t.account_id not in flt.accounts:
            continue
        if flt.categories is not None and t.category not in flt.categories:
            continue
        if flt.exclude_internal_transfers and (
            t.transfer_link_id or t.category == TRANSFER_CATEGORY
        ):
            continue
        kept.append(t)
    return kept


class ReportEngine:
    """
    Builds report snapshots over an explicit snapshot of records.

    Parameters
    ----------
    transactions, accounts, business_entities, investments :
        Input records. They are copied into tuples and never mutated.
    rate_table :
        Rate table for conversions. Defaults to ``config.rates``.
    config :
        Application configuration (base currency, report options, display
        overrides).
        Defaults to :func:`aurum_ledger.config.default_config`.
    """

    def __init__(
        self,
        transactions: Iterable[Transaction],
        accounts: Iterable[Account] = (),
        business_entities: Iterable[BusinessEntity] = (),
        investments: Iterable[Investment] = (),
        rate_table: Optional[Mapping[str, float]] = None,
        config: Optional[AppConfig] = None,
    ) -> None:
        self.transactions: tuple[Transaction, ...] = tuple(transactions)
        self.accounts: tuple[Account, ...] = tuple(accounts)
        self.business_entities: tuple[BusinessEntity, ...] = tuple(business_entities)
        self.investments: tuple[Investment, ...] = tuple(investments)
        self.config = config or default_config()
        self.rate_table: Mapping[str, float] = (
            rate_table if rate_table is not None else self.config.rates
        )

    # ------------------------------------------------------------------
    # Window resolution
    # ------------------------------------------------------------------

    def resolve_date_range(self, spec: ReportSpec, today: Optional[date] = None) -> Period:
        return resolve_date_range(spec.period, spec.custom_range, today=today)

    def resolve_previous_range(
        self, start: str, end: str, today: Optional[date] = None
    ) -> Period:
        return resolve_previous_range(start, end, today=today)

    def filter_transactions(self, spec: ReportSpec, start: str, end: str) -> list[Transaction]:
        return filter_transactions(self.transactions, spec.scope, start, end, spec.filters)

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    def aggregate(self, transactions: Sequence[Transaction], currency: str) -> Aggregation:
        return aggregate(
            transactions_frame(transactions),
            currency,
            rate_table=self.rate_table,
            top_n=self.config.reports.top_categories,
        )

    def point_in_time_assets(self, currency: str) -> AssetValuation:
        """
        Net worth from *current* balances and investment values.

        Reporting a past window still uses live balances: historical
        backcasting is not performed.
        """
        liquid = 0.0
        invested = 0.0
        for account in self.accounts:
            value = convert(account.balance, account.currency, currency, self.rate_table)
            if account.type in INVESTED_ACCOUNT_TYPES:
                invested += value
            else:
                liquid += value
        for investment in self.investments:
            invested += convert(
                investment.current_value, investment.currency, currency, self.rate_table
            )
        return AssetValuation(liquid=liquid, invested=invested, net_worth=liquid + invested)

    def data_quality(
        self, current: Sequence[Transaction], currency: str
    ) -> DataQuality:
        labels = set(self.config.reports.uncategorized_labels)
        uncategorized = sum(1 for t in current if (t.category or "") in labels)
        uncategorized_percent = (uncategorized / len(current)) * 100 if current else 0.0
        excluded = len(self.transactions) - len(current)

        codes = [t.account_currency or t.currency for t in current]
        codes.extend(a.currency for a in self.accounts)
        codes.extend(i.currency for i in self.investments)
        codes.append(currency)
        unknown = unknown_currencies(codes, self.rate_table)

        warnings: list[str] = []
        if uncategorized:
            warnings.append(
                f"{uncategorized} transaction(s) ({uncategorized_percent:.1f}%) "
                "have no category."
            )
        if unknown:
            warnings.append(
                "Unknown currency code(s) converted at rate 1: " + ", ".join(unknown) + "."
            )
            logger.warning("currency.unknown_code", codes=unknown)
        warnings.append("Net worth reflects current balances, not the end of the period.")

        score = max(0.0, 100.0 - uncategorized_percent - 10.0 * len(unknown))
        return DataQuality(
            uncategorized_percent=uncategorized_percent,
            excluded_count=excluded,
            score=score,
            warnings=warnings,
        )

    def _metric(
        self,
        current: float,
        previous: Optional[float],
        currency: str,
        percent: bool = False,
    ) -> MetricValue:
        if percent:
            formatted = f"{current:.1f}%"
        else:
            formatted = format_currency(
                current, currency, display_overrides=self.config.currency_display
            )
        if previous is None:
            return MetricValue(value=current, formatted=formatted)
        return MetricValue(
            value=current,
            formatted=formatted,
            delta=percent_delta(current, previous),
            delta_value=current - previous,
        )

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def generate(self, spec: ReportSpec, today: Optional[date] = None) -> ReportSnapshot:
        """
        Build the report snapshot for ``spec``.

        Args:
            spec: Report request.
            today: Reference date for relative periods (defaults to the
                local date).

        Returns:
            A :class:`ReportSnapshot`.
        """
        current_day = today or _today()
        currency = spec.base_currency or self.config.base_currency

        window = self.resolve_date_range(spec, today=current_day)
        previous_window = self.resolve_previous_range(
            window.start, window.end, today=current_day
        )

        current_txs = self.filter_transactions(spec, window.start, window.end)
        previous_txs = self.filter_transactions(
            spec, previous_window.start, previous_window.end
        )

        current_agg = self.aggregate(current_txs, currency)
        previous_agg = self.aggregate(previous_txs, currency)
        assets = self.point_in_time_assets(currency)

        summary = ReportSummary(
            income=self._metric(current_agg.income, previous_agg.income, currency),
            expense=self._metric(current_agg.expense, previous_agg.expense, currency),
            net=self._metric(current_agg.net, previous_agg.net, currency),
            savings_rate=self._metric(
                current_agg.savings_rate, previous_agg.savings_rate, currency, percent=True
            ),
            net_worth=self._metric(assets.net_worth, None, currency),
            liquid_assets=self._metric(assets.liquid, None, currency),
            invested_assets=self._metric(assets.invested, None, currency),
            assets_as_of=assets.as_of,
        )

        business: Optional[BusinessSection] = None
        if spec.scope != "personal":
            business = BusinessSection(
                revenue=self._metric(
                    current_agg.business_revenue, previous_agg.business_revenue, currency
                ),
                expenses=self._metric(
                    current_agg.business_expense, previous_agg.business_expense, currency
                ),
                net_profit=self._metric(
                    current_agg.business_net, previous_agg.business_net, currency
                ),
                net_margin=margin(current_agg.business_revenue, current_agg.business_net),
                by_entity=breakdown_by_entity(
                    transactions_frame(current_txs),
                    currency,
                    entities=self.business_entities,
                    rate_table=self.rate_table,
                ),
            )

        snapshot = ReportSnapshot(
            spec=spec,
            generated_at=datetime.now().isoformat(timespec="seconds"),
            currency=currency,
            date_range=window,
            previous_range=previous_window,
            tx_count=len(current_txs),
            summary=summary,
            top_expense_categories=current_agg.top_expense_categories,
            top_income_categories=current_agg.top_income_categories,
            cash_flow=cash_flow_by_month(
                transactions_frame(current_txs),
                currency,
                window.start,
                window.end,
                rate_table=self.rate_table,
            ),
            data_quality=self.data_quality(current_txs, currency),
            business=business,
        )

        logger.info(
            "report.generated",
            report_id=spec.id,
            scope=spec.scope,
            period=spec.period,
            start=window.start,
            end=window.end,
            tx_count=snapshot.tx_count,
        )
        return snapshot


def generate_report(
    spec: ReportSpec,
    transactions: Iterable[Transaction],
    accounts: Iterable[Account] = (),
    business_entities: Iterable[BusinessEntity] = (),
    investments: Iterable[Investment] = (),
    rate_table: Optional[Mapping[str, float]] = None,
    config: Optional[AppConfig] = None,
    today: Optional[date] = None,
) -> ReportSnapshot:
    """Functional shortcut around :class:`ReportEngine`."""
    engine = ReportEngine(
        transactions,
        accounts=accounts,
        business_entities=business_entities,
        investments=investments,
        rate_table=rate_table,
        config=config,
    )
    return engine.generate(spec, today=today)
