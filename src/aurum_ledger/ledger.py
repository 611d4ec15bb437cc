# Aurum Ledger - Reconciliation & Reporting Engine for personal and business finance
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Ledger reconciliation for Aurum Ledger.

An account balance is never updated incrementally. It is always derived by
replaying the transaction history on top of the account's initial balance:

    balance = initial_balance + Σ(+amount for credits, -amount for debits)

This is the ledger invariant. :func:`reconcile` is the only mechanism that
produces a balance; every write-side helper in this module (balance
adjustments, transaction edits, transfers, deletions) builds the post-write
transaction set first and then reconciles the impacted accounts against it.

Because filtering is transaction-authoritative, moving a transaction from
account A to account B needs no delta bookkeeping: A simply no longer sees
it on the next replay.

All functions are pure. They return new ``Transaction`` / ``Account``
objects and leave their inputs untouched; persisting the results is the
caller's job. Two concurrent writers touching the same account must treat
read-reconcile-write of that account as a critical section.
"""

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional
from uuid import uuid4

from .currency import convert, round2
from .logging_config import get_logger
from .models import (
    ADJUSTMENT_CATEGORY,
    STARTING_BALANCE_CATEGORY,
    TRANSFER_CATEGORY,
    Account,
    Transaction,
)
from .periods import _today

logger = get_logger(__name__)

# Differences below one cent do not warrant an adjustment transaction.
ADJUSTMENT_EPSILON = 0.01

IdFactory = Callable[[], str]


def _new_id() -> str:
    return str(uuid4())


@dataclass(frozen=True)
class BalanceDrift:
    """An account whose stored balance disagrees with its replayed history."""

    account_id: str
    stored: float
    expected: float

    @property
    def difference(self) -> float:
        return round2(self.stored - self.expected)


@dataclass(frozen=True)
class AdjustmentResult:
    """
    Outcome of a direct balance edit.

    Attributes:
        transaction: The adjustment transaction to persist (new or updated).
        created: True if ``transaction`` is new, False if it replaces an
            existing same-day adjustment.
        account: The account with its balance reconciled against the
            transaction set including the adjustment.
    """

    transaction: Transaction
    created: bool
    account: Account


@dataclass(frozen=True)
class EditResult:
    """Post-edit transaction set and the accounts whose balance changed."""

    transactions: list[Transaction]
    accounts: list[Account]


@dataclass(frozen=True)
class TransferResult:
    debit: Transaction
    credit: Transaction
    transactions: list[Transaction]
    accounts: list[Account]


def signed_amount(tx: Transaction) -> float:
    """Effect of ``tx`` on its account balance."""
    if tx.type == "credit":
        return tx.numeric_amount
    if tx.type == "debit":
        return -tx.numeric_amount
    return 0.0


def _account_transactions(
    account_id: str, transactions: Iterable[Transaction]
) -> list[Transaction]:
    return [t for t in transactions if t.account_id == account_id]


def reconcile(account: Account, transactions: Iterable[Transaction]) -> float:
    """
    Recompute an account's balance from its initial snapshot and history.

    The transaction list may contain transactions of other accounts; they
    are filtered out. Summation uses ``math.fsum`` so the result does not
    depend on the order of the list, and only the final value is rounded.

    Args:
        account: Account to reconcile (its ``balance`` is ignored).
        transactions: Full or partial transaction history.

    Returns:
        The reconciled balance, rounded to cents. An account without
        transactions reconciles to its initial balance.
    """
    deltas = [signed_amount(t) for t in _account_transactions(account.id, transactions)]
    return round2(math.fsum([account.initial_balance, *deltas]))


def reconcile_account(account: Account, transactions: Iterable[Transaction]) -> Account:
    """Return a copy of ``account`` with its balance reconciled."""
    balance = reconcile(account, transactions)
    if balance != account.balance:
        logger.info(
            "ledger.reconciled",
            account_id=account.id,
            stored=account.balance,
            reconciled=balance,
        )
    return replace(account, balance=balance)


def reconcile_all(
    accounts: Iterable[Account], transactions: Sequence[Transaction]
) -> list[Account]:
    """Reconciled copies of every account (the "reconcile all" sweep)."""
    return [reconcile_account(a, transactions) for a in accounts]


def find_drift(
    accounts: Iterable[Account],
    transactions: Sequence[Transaction],
    tolerance: float = 0.005,
) -> list[BalanceDrift]:
    """List accounts whose stored balance violates the ledger invariant."""
    drifts: list[BalanceDrift] = []
    for account in accounts:
        expected = reconcile(account, transactions)
        if abs(account.balance - expected) > tolerance:
            drifts.append(
                BalanceDrift(account_id=account.id, stored=account.balance, expected=expected)
            )
    return drifts


def _is_adjustment(tx: Transaction) -> bool:
    return tx.category in (ADJUSTMENT_CATEGORY, STARTING_BALANCE_CATEGORY)


def balance_adjustment(
    account: Account,
    transactions: Sequence[Transaction],
    target_balance: float,
    today: Optional[date] = None,
    id_factory: IdFactory = _new_id,
) -> Optional[AdjustmentResult]:
    """
    Turn a direct balance edit into an adjustment transaction.

    The stored balance is never overwritten directly. Instead, a transaction
    dated today is synthesized so that replaying the ledger reproduces
    ``target_balance``:

        delta = target_balance - reconcile(account, transactions)

    If an adjustment transaction already exists for this account *today*,
    the delta is merged into it (net signed value, type flipped if the sign
    changes). Older adjustments are never merged; a new transaction is
    created instead.

    Returns:
        An :class:`AdjustmentResult`, or None when the difference is below
        one cent and no adjustment is needed.
    """
    current = reconcile(account, transactions)
    delta = target_balance - current
    if abs(delta) < ADJUSTMENT_EPSILON:
        return None

    today_str = (today or _today()).isoformat()
    existing = next(
        (
            t
            for t in _account_transactions(account.id, transactions)
            if _is_adjustment(t) and t.date == today_str
        ),
        None,
    )

    if existing is not None:
        net = signed_amount(existing) + delta
        adjustment = replace(
            existing,
            numeric_amount=abs(net),
            type="credit" if net >= 0 else "debit",
        )
        created = False
        post_write = [adjustment if t.id == existing.id else t for t in transactions]
    else:
        adjustment = Transaction(
            id=id_factory(),
            account_id=account.id,
            type="credit" if delta > 0 else "debit",
            numeric_amount=abs(delta),
            currency=account.currency,
            date=today_str,
            category=ADJUSTMENT_CATEGORY,
            name="Balance Adjustment",
            description="Manual balance correction",
            status="completed",
        )
        created = True
        post_write = [*transactions, adjustment]

    logger.info(
        "ledger.adjustment_created" if created else "ledger.adjustment_merged",
        account_id=account.id,
        transaction_id=adjustment.id,
        delta=delta,
    )

    return AdjustmentResult(
        transaction=adjustment,
        created=created,
        account=reconcile_account(account, post_write),
    )


def _reconcile_impacted(
    accounts: Iterable[Account],
    transactions: Sequence[Transaction],
    impacted_ids: set[str],
) -> list[Account]:
    return [
        reconcile_account(a, transactions) for a in accounts if a.id in impacted_ids
    ]


def apply_transaction_edit(
    accounts: Sequence[Account],
    transactions: Sequence[Transaction],
    edited: Transaction,
    original: Optional[Transaction] = None,
) -> EditResult:
    """
    Insert or replace a transaction and reconcile every impacted account.

    The impacted accounts are the edited transaction's account and, when the
    edit moved it, the account it was previously booked on. Both are
    reconciled against the *post-edit* transaction set.

    Args:
        accounts: Current accounts.
        transactions: Current transaction set (pre-edit).
        edited: New version of the transaction (or a brand-new transaction).
        original: Previous version, if the caller already has it. When
            omitted, it is looked up by id in ``transactions``. It only
            widens the impacted accounts: whether ``edited`` replaces or is
            inserted depends on its id being present in ``transactions``.

    Returns:
        An :class:`EditResult` with the post-edit transactions and the
        reconciled impacted accounts.
    """
    stored = next((t for t in transactions if t.id == edited.id), None)
    previous = original or stored

    if stored is not None:
        post_edit = [edited if t.id == edited.id else t for t in transactions]
    else:
        post_edit = [edited, *transactions]

    impacted = {edited.account_id}
    if previous is not None:
        impacted.add(previous.account_id)

    return EditResult(
        transactions=post_edit,
        accounts=_reconcile_impacted(accounts, post_edit, impacted),
    )


def create_transfer(
    from_account: Account,
    to_account: Account,
    amount: float,
    date_str: str,
    transactions: Sequence[Transaction],
    rate_table: Optional[dict[str, float]] = None,
    description: str = "Transfer",
    id_factory: IdFactory = _new_id,
) -> TransferResult:
    """
    Build a paired debit/credit moving ``amount`` between two accounts.

    ``amount`` is expressed in the source account currency. The destination
    leg is converted into the destination account currency. Both legs share
    a ``transfer_link_id`` and the ``Transfer`` category. Both accounts are
    reconciled against the transaction set including the pair, so the caller
    can persist the four records as one unit.

    Raises:
        ValueError: if both accounts are the same or ``amount`` is not
            strictly positive.
    """
    if from_account.id == to_account.id:
        raise ValueError("Transfer source and destination accounts must differ.")
    if amount <= 0:
        raise ValueError("Transfer amount must be strictly positive.")

    link_id = id_factory()
    converted = convert(amount, from_account.currency, to_account.currency, rate_table)

    debit = Transaction(
        id=id_factory(),
        account_id=from_account.id,
        type="debit",
        numeric_amount=amount,
        currency=from_account.currency,
        date=date_str,
        category=TRANSFER_CATEGORY,
        name=description,
        description=f"{description} to {to_account.name or to_account.id}",
        transfer_link_id=link_id,
    )
    credit = Transaction(
        id=id_factory(),
        account_id=to_account.id,
        type="credit",
        numeric_amount=converted,
        currency=to_account.currency,
        date=date_str,
        category=TRANSFER_CATEGORY,
        name=description,
        description=f"{description} from {from_account.name or from_account.id}",
        foreign_amount=amount if from_account.currency != to_account.currency else None,
        exchange_rate=(
            converted / amount if from_account.currency != to_account.currency else None
        ),
        transfer_link_id=link_id,
    )

    post_write = [*transactions, debit, credit]
    return TransferResult(
        debit=debit,
        credit=credit,
        transactions=post_write,
        accounts=[
            reconcile_account(from_account, post_write),
            reconcile_account(to_account, post_write),
        ],
    )


def remove_transaction(
    accounts: Sequence[Account],
    transactions: Sequence[Transaction],
    transaction_id: str,
) -> EditResult:
    """
    Delete a transaction (and its transfer partner) and reconcile.

    Raises:
        ValueError: if no transaction has ``transaction_id``.
    """
    target = next((t for t in transactions if t.id == transaction_id), None)
    if target is None:
        raise ValueError(f"Unknown transaction id: {transaction_id!r}")

    removed = {target.id}
    if target.transfer_link_id:
        removed.update(
            t.id for t in transactions if t.transfer_link_id == target.transfer_link_id
        )

    impacted = {t.account_id for t in transactions if t.id in removed}
    remaining = [t for t in transactions if t.id not in removed]

    return EditResult(
        transactions=remaining,
        accounts=_reconcile_impacted(accounts, remaining, impacted),
    )


def running_balances(
    account: Account, transactions: Iterable[Transaction]
) -> list[tuple[Transaction, float]]:
    """
    Balance after each transaction, newest first.

    Walks backwards from the account's current balance, which is how an
    account statement is displayed.
    """
    history = sorted(
        _account_transactions(account.id, transactions),
        key=lambda t: t.date,
        reverse=True,
    )
    running = account.balance
    out: list[tuple[Transaction, float]] = []
    for tx in history:
        out.append((tx, round2(running)))
        running -= signed_amount(tx)
    return out
