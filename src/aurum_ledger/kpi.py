# Aurum Ledger - Reconciliation & Reporting Engine for personal and business finance
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Business KPIs and health scoring for Aurum Ledger.

This module complements the report engine by providing:

1. Metric values
   -------------
   Every supported metric is a member of :class:`MetricKind`. Each kind is
   mapped in :data:`METRIC_FORMULAS` to a pure function computing its value
   from transactions already filtered to one business entity. The registry
   is checked against the enum at import time, so adding a kind without a
   formula fails immediately.

       calculate_metric_value(metric_id, transactions)

   Metric ids that are not known kinds (manual metrics entered by the
   user) evaluate to 0.0.

2. Per-metric evaluation
   ---------------------
   :func:`normalized_ratio` turns an actual value and a target into a
   direction-aware ratio (1.0 = on target). :func:`evaluate_metric`
   additionally classifies a value against optional warning / critical
   thresholds (RAG status).

3. Health score
   ------------
   :func:`compute_health` weight-averages the ratios of the active metrics
   into a score in [0, 100], classifies it (healthy / at_risk / critical)
   and lists the metrics falling furthest short of their target.
"""

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Optional, Union

from .config import AppConfig, HealthThresholds, default_config
from .logging_config import get_logger
from .models import BusinessEntity, BusinessMetric, Transaction

logger = get_logger(__name__)

# Upper bound of a normalized ratio, so one over-achieving metric cannot
# dominate the weighted average.
MAX_RATIO = 2.0

COGS_CATEGORIES: tuple[str, ...] = ("Inventory", "COGS")
REFUND_CATEGORY = "Refund"

HealthStatus = Literal["healthy", "at_risk", "critical"]
MetricStatus = Literal["healthy", "warning", "critical", "neutral"]


class MetricKind(str, Enum):
    """Closed set of metrics computed from transactions."""

    REVENUE = "revenue"
    EXPENSES = "expenses"
    NET_PROFIT = "net_profit"
    GROSS_PROFIT = "gross_profit"
    GROSS_MARGIN = "gross_margin"
    NET_MARGIN = "net_margin"
    AOV = "aov"
    REFUND_RATE = "refund_rate"


def _sum(
    transactions: Iterable[Transaction],
    tx_type: str,
    categories: Optional[Sequence[str]] = None,
) -> float:
    return math.fsum(
        t.numeric_amount
        for t in transactions
        if t.type == tx_type and (categories is None or t.category in categories)
    )


def _revenue(txs: Sequence[Transaction]) -> float:
    return _sum(txs, "credit")


def _expenses(txs: Sequence[Transaction]) -> float:
    return _sum(txs, "debit")


def _net_profit(txs: Sequence[Transaction]) -> float:
    return _revenue(txs) - _expenses(txs)


def _gross_profit(txs: Sequence[Transaction]) -> float:
    return _revenue(txs) - _sum(txs, "debit", COGS_CATEGORIES)


def _percent_of_revenue(value: float, revenue: float) -> float:
    return (value / revenue) * 100 if revenue > 0 else 0.0


def _gross_margin(txs: Sequence[Transaction]) -> float:
    return _percent_of_revenue(_gross_profit(txs), _revenue(txs))


def _net_margin(txs: Sequence[Transaction]) -> float:
    return _percent_of_revenue(_net_profit(txs), _revenue(txs))


def _aov(txs: Sequence[Transaction]) -> float:
    orders = sum(1 for t in txs if t.type == "credit")
    return _revenue(txs) / orders if orders > 0 else 0.0


def _refund_rate(txs: Sequence[Transaction]) -> float:
    return _percent_of_revenue(_sum(txs, "debit", (REFUND_CATEGORY,)), _revenue(txs))


METRIC_FORMULAS: dict[MetricKind, Callable[[Sequence[Transaction]], float]] = {
    MetricKind.REVENUE: _revenue,
    MetricKind.EXPENSES: _expenses,
    MetricKind.NET_PROFIT: _net_profit,
    MetricKind.GROSS_PROFIT: _gross_profit,
    MetricKind.GROSS_MARGIN: _gross_margin,
    MetricKind.NET_MARGIN: _net_margin,
    MetricKind.AOV: _aov,
    MetricKind.REFUND_RATE: _refund_rate,
}

_missing = set(MetricKind) - set(METRIC_FORMULAS)
if _missing:  # pragma: no cover - guarded at import time
    raise RuntimeError(f"Metric kinds without a formula: {sorted(k.value for k in _missing)}")


def parse_metric_kind(metric_id: Union[str, MetricKind]) -> Optional[MetricKind]:
    """Return the MetricKind for ``metric_id``, or None for manual metrics."""
    if isinstance(metric_id, MetricKind):
        return metric_id
    try:
        return MetricKind(metric_id)
    except ValueError:
        return None


def calculate_metric_value(
    metric_id: Union[str, MetricKind],
    transactions: Sequence[Transaction],
) -> float:
    """
    Compute a metric over transactions already filtered to one entity.

    Args:
        metric_id: A :class:`MetricKind` or its string value.
        transactions: The entity's transactions.

    Returns:
        The metric value. Unknown (manual) metrics return 0.0.
    """
    kind = parse_metric_kind(metric_id)
    if kind is None:
        logger.debug("kpi.unknown_metric", metric_id=str(metric_id))
        return 0.0
    return float(METRIC_FORMULAS[kind](transactions))


def normalized_ratio(
    actual: float,
    target: Optional[float],
    higher_is_better: bool = True,
) -> float:
    """
    Direction-aware achievement ratio, 1.0 meaning "on target".

    - higher is better: ``actual / target``
    - lower is better:  ``target / actual``

    Division by zero is guarded: a zero target is met (1.0) or missed (0.0),
    and a lower-is-better metric with a non-positive actual is capped at
    :data:`MAX_RATIO`. Metrics without a target are neutral (1.0). The result
    is clamped to ``[0, MAX_RATIO]``.
    """
    if target is None:
        return 1.0

    if higher_is_better:
        if target == 0:
            ratio = 1.0 if actual >= 0 else 0.0
        else:
            ratio = actual / target
    else:
        if actual <= 0:
            ratio = MAX_RATIO
        elif target == 0:
            ratio = 0.0
        else:
            ratio = target / actual

    return min(max(ratio, 0.0), MAX_RATIO)


@dataclass(frozen=True)
class MetricEvaluation:
    """RAG classification of one metric value (score in [0, 100])."""

    status: MetricStatus
    score: int


def evaluate_metric(value: float, metric: BusinessMetric) -> MetricEvaluation:
    """
    Classify a value against the metric's target and thresholds.

    The score interpolates linearly: 100 at/above target, 50-100 between
    warning and target, 0-50 between critical and warning. Without a target
    or a warning threshold the metric is neutral (score 100).
    """
    target = metric.target_value
    warning = metric.warning_threshold
    if target is None or warning is None:
        return MetricEvaluation(status="neutral", score=100)

    status: MetricStatus
    if metric.is_higher_better:
        if value >= target:
            status, score = "healthy", 100.0
        elif value >= warning:
            span = target - warning
            status = "warning"
            score = 50 + ((value - warning) / span) * 50 if span else 50.0
        else:
            status = "critical"
            floor = metric.critical_threshold or 0.0
            span = warning - floor
            score = 0.0 if value < floor or not span else ((value - floor) / span) * 50
    else:
        if value <= target:
            status, score = "healthy", 100.0
        elif value <= warning:
            span = warning - target
            status = "warning"
            score = 50 + ((warning - value) / span) * 50 if span else 50.0
        else:
            status = "critical"
            ceiling = metric.critical_threshold or warning * 2
            span = ceiling - warning
            score = 0.0 if value > ceiling or not span else ((ceiling - value) / span) * 50

    return MetricEvaluation(status=status, score=int(math.floor(score + 0.5)))


@dataclass(frozen=True)
class MetricScore:
    metric_id: str
    value: float
    target: Optional[float]
    ratio: float
    weight: float


@dataclass(frozen=True)
class Diagnosis:
    top_detractors: list[str]
    summary: str


@dataclass(frozen=True)
class HealthSnapshot:
    """
    Composite health of a business entity.

    Attributes:
        business_id: Entity identifier ('' when not bound to an entity).
        score: Weighted score clamped to [0, 100].
        status: 'healthy', 'at_risk' or 'critical'.
        diagnosis: Top detractors and a one-line summary.
        metrics: Per-metric ratios used to build the score.
    """

    business_id: str
    score: float
    status: HealthStatus
    diagnosis: Diagnosis
    metrics: list[MetricScore] = field(default_factory=list)


def classify_score(score: float, thresholds: Optional[HealthThresholds] = None) -> HealthStatus:
    limits = thresholds or HealthThresholds()
    if score >= limits.healthy:
        return "healthy"
    if score >= limits.at_risk:
        return "at_risk"
    return "critical"


def _summary(detractors: Sequence[str]) -> str:
    if not detractors:
        return "All systems operational. Performance targets met."
    names = ", ".join(d.replace("_", " ") for d in detractors)
    return f"{len(detractors)} issues detected. Primary concerns: {names}."


def compute_health(
    metrics_with_values: Iterable[tuple[BusinessMetric, float]],
    thresholds: Optional[HealthThresholds] = None,
    business_id: str = "",
) -> HealthSnapshot:
    """
    Aggregate metric achievement into a health score.

    For each active metric, the direction-aware ratio is computed with
    :func:`normalized_ratio`. The score is the weighted average ratio scaled
    to 100 and clamped to [0, 100]. Metrics whose ratio is below 1.0 are
    detractors, ranked by weighted shortfall ``(1 - ratio) * weight``
    (largest first), deduplicated by metric id and capped to
    ``thresholds.max_detractors``.

    Args:
        metrics_with_values: Pairs of (metric configuration, actual value).
        thresholds: Status thresholds. Defaults to 70 / 40 / 3 detractors.
        business_id: Entity the snapshot belongs to.

    Returns:
        A :class:`HealthSnapshot`. Without any active metric the score is
        100 and the status healthy.
    """
    limits = thresholds or HealthThresholds()

    scores: list[MetricScore] = []
    for metric, value in metrics_with_values:
        if not metric.is_active:
            continue
        weight = metric.weight if metric.weight > 0 else 1.0
        scores.append(
            MetricScore(
                metric_id=metric.metric_id,
                value=value,
                target=metric.target_value,
                ratio=normalized_ratio(value, metric.target_value, metric.is_higher_better),
                weight=weight,
            )
        )

    total_weight = math.fsum(s.weight for s in scores)
    if total_weight > 0:
        average = math.fsum(s.ratio * s.weight for s in scores) / total_weight
        score = min(max(average * 100, 0.0), 100.0)
    else:
        score = 100.0

    shortfalls: dict[str, float] = {}
    for s in scores:
        if s.ratio >= 1.0:
            continue
        shortfall = (1.0 - s.ratio) * s.weight
        if shortfall > shortfalls.get(s.metric_id, -1.0):
            shortfalls[s.metric_id] = shortfall

    ranked = sorted(shortfalls.items(), key=lambda item: item[1], reverse=True)
    detractors = [metric_id for metric_id, _ in ranked[: limits.max_detractors]]

    return HealthSnapshot(
        business_id=business_id,
        score=score,
        status=classify_score(score, limits),
        diagnosis=Diagnosis(top_detractors=detractors, summary=_summary(detractors)),
        metrics=scores,
    )


def entity_health(
    entity: BusinessEntity,
    transactions: Iterable[Transaction],
    thresholds: Optional[HealthThresholds] = None,
) -> HealthSnapshot:
    """Compute every configured metric of ``entity`` and score its health."""
    entity_txs = [t for t in transactions if t.business_id == entity.id]
    pairs = [
        (metric, calculate_metric_value(metric.metric_id, entity_txs))
        for metric in entity.metrics
    ]
    return compute_health(pairs, thresholds=thresholds, business_id=entity.id)


def health_by_entity(
    entities: Iterable[BusinessEntity],
    transactions: Iterable[Transaction],
    config: Optional[AppConfig] = None,
) -> dict[str, HealthSnapshot]:
    """Health of every entity, classified with the ``[health]`` thresholds."""
    limits = (config or default_config()).health
    txs = list(transactions)
    return {entity.id: entity_health(entity, txs, thresholds=limits) for entity in entities}
