# Aurum Ledger - Reconciliation & Reporting Engine for personal and business finance
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Record normalization for Aurum Ledger.

The persistence collaborator supplies lists of raw mappings. This module
turns them into typed records (see :mod:`aurum_ledger.models`) and turns
typed transactions into the normalized pandas DataFrame consumed by the
aggregation engine.

Transaction frame schema
------------------------
    - ``id``               (str)
    - ``account_id``       (str)
    - ``date``             (str, YYYY-MM-DD)
    - ``type``             (str, 'credit' | 'debit')
    - ``amount``           (float, non-negative, settlement currency)
    - ``currency``         (str, settlement currency)
    - ``category``         (str)
    - ``business_id``      (str, '' for personal transactions)
    - ``transfer_link_id`` (str, '' when not part of a transfer)

Dates are kept as strings on purpose: inclusive window filters compare
``YYYY-MM-DD`` strings directly.
"""

from collections.abc import Iterable, Mapping
from typing import Any

import pandas as pd

from .currency import settlement_currency
from .models import Account, BudgetCategory, BusinessEntity, Investment, Transaction

TRANSACTION_COLUMNS: list[str] = [
    "id",
    "account_id",
    "date",
    "type",
    "amount",
    "currency",
    "category",
    "business_id",
    "transfer_link_id",
]


def transactions_from_records(records: Iterable[Mapping[str, Any]]) -> list[Transaction]:
    """
    Deserialize raw transaction rows.

    Raises:
        ValueError: if a row has no id or an invalid type (see
            :meth:`Transaction.from_record`).
    """
    return [Transaction.from_record(r) for r in records]


def accounts_from_records(records: Iterable[Mapping[str, Any]]) -> list[Account]:
    return [Account.from_record(r) for r in records]


def budgets_from_records(records: Iterable[Mapping[str, Any]]) -> list[BudgetCategory]:
    return [BudgetCategory.from_record(r) for r in records]


def entities_from_records(records: Iterable[Mapping[str, Any]]) -> list[BusinessEntity]:
    return [BusinessEntity.from_record(r) for r in records]


def investments_from_records(records: Iterable[Mapping[str, Any]]) -> list[Investment]:
    return [Investment.from_record(r) for r in records]


def transactions_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """
    Build the normalized transaction DataFrame.

    Parameters
    ----------
    transactions:
        Typed transactions.

    Returns
    -------
    pandas.DataFrame
        A DataFrame with exactly the columns of :data:`TRANSACTION_COLUMNS`.
        An empty input yields an empty, well-formed DataFrame.
    """
    rows = [
        {
            "id": t.id,
            "account_id": t.account_id,
            "date": t.date,
            "type": t.type,
            "amount": float(t.numeric_amount),
            "currency": settlement_currency(t),
            "category": t.category or "",
            "business_id": t.business_id or "",
            "transfer_link_id": t.transfer_link_id or "",
        }
        for t in transactions
    ]

    if not rows:
        frame = pd.DataFrame({col: pd.Series(dtype="object") for col in TRANSACTION_COLUMNS})
        frame["amount"] = frame["amount"].astype(float)
        return frame

    return pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)
