# Aurum Ledger - Reconciliation & Reporting Engine for personal and business finance
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Typed records consumed by the engine.

The persistence collaborator hands the engine plain mappings (rows from the
database or JSON payloads). ``from_record()`` normalizes those into frozen
dataclasses. Both camelCase (``accountId``, ``numericAmount``) and
snake_case (``account_id``, ``numeric_amount``) keys are accepted.

Records are immutable: every engine function returns new objects (built with
``dataclasses.replace``) instead of mutating its inputs.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

TransactionType = Literal["credit", "debit"]
BudgetType = Literal["income", "expense"]
RecurringFrequency = Literal["daily", "weekly", "monthly", "yearly"]

ADJUSTMENT_CATEGORY = "Adjustment"
STARTING_BALANCE_CATEGORY = "Starting Balance"
TRANSFER_CATEGORY = "Transfer"


def _get(record: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first key present in ``record`` (camelCase or snake_case)."""
    for key in keys:
        if key in record and record[key] is not None:
            return record[key]
    return default


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _require_id(record: Mapping[str, Any], kind: str) -> str:
    raw = record.get("id")
    if raw is None or str(raw).strip() == "":
        raise ValueError(f"{kind} record is missing an 'id'.")
    return str(raw)


@dataclass(frozen=True)
class Transaction:
    """
    A single ledger movement.

    ``numeric_amount`` is a non-negative magnitude expressed in the settlement
    currency of the account; its sign comes from ``type``. ``foreign_amount``
    and ``exchange_rate`` describe the original currency and are display-only.
    """

    id: str
    account_id: str
    type: TransactionType
    numeric_amount: float
    currency: str
    date: str
    category: str = ""
    name: str = ""
    description: str = ""
    status: str = "completed"
    account_currency: Optional[str] = None
    foreign_amount: Optional[float] = None
    exchange_rate: Optional[float] = None
    business_id: Optional[str] = None
    transfer_link_id: Optional[str] = None
    is_recurring: bool = False
    recurring_frequency: Optional[RecurringFrequency] = None
    next_recurring_date: Optional[str] = None
    recurring_end_date: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Transaction":
        """
        Build a Transaction from a raw mapping.

        Raises:
            ValueError: if the id is missing or the type is neither
                'credit' nor 'debit'.
        """
        tx_type = str(_get(record, "type", default="")).lower()
        if tx_type not in ("credit", "debit"):
            raise ValueError(
                f"Invalid transaction type {tx_type!r}, expected 'credit' or 'debit'."
            )

        foreign_amount = _get(record, "foreignAmount", "foreign_amount")
        exchange_rate = _get(record, "exchangeRate", "exchange_rate")

        return cls(
            id=_require_id(record, "Transaction"),
            account_id=str(_get(record, "accountId", "account_id", default="")),
            type=tx_type,  # type: ignore[arg-type]
            numeric_amount=abs(
                _to_float(_get(record, "numericAmount", "numeric_amount", "amount"))
            ),
            currency=str(_get(record, "currency", default="USD")).upper(),
            date=str(_get(record, "date", default=""))[:10],
            category=str(_get(record, "category", default="")),
            name=str(_get(record, "name", default="")),
            description=str(_get(record, "description", default="")),
            status=str(_get(record, "status", default="completed")),
            account_currency=_get(record, "accountCurrency", "account_currency"),
            foreign_amount=(
                _to_float(foreign_amount) if foreign_amount is not None else None
            ),
            exchange_rate=(
                _to_float(exchange_rate) if exchange_rate is not None else None
            ),
            business_id=_get(record, "business_id", "businessId"),
            transfer_link_id=_get(record, "transfer_link_id", "transferLinkId"),
            is_recurring=bool(_get(record, "isRecurring", "is_recurring", default=False)),
            recurring_frequency=_get(
                record, "recurringFrequency", "recurring_frequency"
            ),
            next_recurring_date=_get(
                record, "nextRecurringDate", "next_recurring_date"
            ),
            recurring_end_date=_get(record, "recurringEndDate", "recurring_end_date"),
        )

    @property
    def is_business(self) -> bool:
        return bool(self.business_id)


@dataclass(frozen=True)
class Account:
    """
    An account and its last persisted balance.

    ``initial_balance`` is the reconciliation anchor. ``type`` only matters
    for display (assets vs liabilities), never for reconciliation math.
    """

    id: str
    balance: float
    currency: str
    initial_balance: float = 0.0
    name: str = ""
    type: str = "checking"
    linked_business_id: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Account":
        return cls(
            id=_require_id(record, "Account"),
            balance=_to_float(_get(record, "balance")),
            currency=str(_get(record, "currency", default="USD")).upper(),
            initial_balance=_to_float(
                _get(record, "initialBalance", "initial_balance")
            ),
            name=str(_get(record, "name", default="")),
            type=str(_get(record, "type", default="checking")),
            linked_business_id=_get(
                record, "linked_business_id", "linkedBusinessId"
            ),
        )


@dataclass(frozen=True)
class BudgetCategory:
    """
    A spending (or income) budget for one category.

    ``spent`` is always derived by the budget aggregator and must never be
    treated as a source of truth.
    """

    id: str
    category: str
    limit: float
    type: BudgetType = "expense"
    spent: float = 0.0

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "BudgetCategory":
        budget_type = str(_get(record, "type", default="expense")).lower()
        if budget_type not in ("income", "expense"):
            budget_type = "expense"
        return cls(
            id=_require_id(record, "BudgetCategory"),
            category=str(_get(record, "category", default="")),
            limit=_to_float(_get(record, "limit")),
            type=budget_type,  # type: ignore[arg-type]
            spent=0.0,
        )


@dataclass(frozen=True)
class BusinessMetric:
    """Configuration of one metric tracked for a business entity."""

    metric_id: str
    target_value: Optional[float] = None
    weight: float = 1.0
    is_higher_better: bool = True
    is_active: bool = True
    warning_threshold: Optional[float] = None
    critical_threshold: Optional[float] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "BusinessMetric":
        target = _get(record, "target_value", "targetValue")
        warning = _get(record, "warning_threshold", "warningThreshold")
        critical = _get(record, "critical_threshold", "criticalThreshold")
        return cls(
            metric_id=str(_get(record, "metric_id", "metricId", default="")),
            target_value=_to_float(target) if target is not None else None,
            weight=_to_float(_get(record, "weight"), default=1.0) or 1.0,
            is_higher_better=bool(
                _get(record, "is_higher_better", "isHigherBetter", default=True)
            ),
            is_active=bool(_get(record, "is_active", "isActive", default=True)),
            warning_threshold=_to_float(warning) if warning is not None else None,
            critical_threshold=_to_float(critical) if critical is not None else None,
        )


@dataclass(frozen=True)
class BusinessEntity:
    id: str
    name: str
    type: str = "store"
    metrics: tuple[BusinessMetric, ...] = field(default_factory=tuple)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "BusinessEntity":
        raw_metrics = _get(record, "metrics", default=[]) or []
        metrics = tuple(
            BusinessMetric.from_record(m) for m in raw_metrics if isinstance(m, Mapping)
        )
        return cls(
            id=_require_id(record, "BusinessEntity"),
            name=str(_get(record, "name", default="")),
            type=str(_get(record, "type", default="store")),
            metrics=metrics,
        )


@dataclass(frozen=True)
class Investment:
    id: str
    current_value: float
    currency: str = "USD"
    name: str = ""
    type: str = "stock"

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Investment":
        return cls(
            id=_require_id(record, "Investment"),
            current_value=_to_float(_get(record, "currentValue", "current_value")),
            currency=str(_get(record, "currency", default="USD")).upper(),
            name=str(_get(record, "name", default="")),
            type=str(_get(record, "type", default="stock")),
        )
