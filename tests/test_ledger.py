from dataclasses import replace
from datetime import date

import pytest
from structlog.testing import capture_logs

import aurum_ledger.ledger as ledger
from aurum_ledger.models import Account, Transaction

TODAY = date(2025, 10, 17)


def _tx(tx_id: str, account_id: str, tx_type: str, amount: float, day: str = "2025-10-01", **kw) -> Transaction:
    return Transaction(
        id=tx_id,
        account_id=account_id,
        type=tx_type,  # type: ignore[arg-type]
        numeric_amount=amount,
        currency=kw.pop("currency", "USD"),
        date=day,
        **kw,
    )


def _ids(values):
    """Deterministic id factory yielding ``values`` in order."""
    it = iter(values)
    return lambda: next(it)


def test_reconcile_scenario_initial_credit_debit() -> None:
    """1000 initial + 200 credit - 50 debit reconciles to 1150."""
    account = Account(id="a1", balance=0.0, currency="USD", initial_balance=1000.0)
    txs = [_tx("t1", "a1", "credit", 200.0), _tx("t2", "a1", "debit", 50.0)]

    assert ledger.reconcile(account, txs) == 1150.0


def test_reconcile_is_idempotent_and_order_independent() -> None:
    account = Account(id="a1", balance=0.0, currency="USD", initial_balance=10.0)
    txs = [_tx(f"t{i}", "a1", "credit" if i % 3 else "debit", 0.1 * i) for i in range(1, 40)]

    first = ledger.reconcile(account, txs)
    assert ledger.reconcile(account, txs) == first
    assert ledger.reconcile(account, list(reversed(txs))) == first

    expected = 10.0 + sum(ledger.signed_amount(t) for t in txs)
    assert first == pytest.approx(expected, abs=0.005)


def test_reconcile_without_transactions_returns_initial_balance() -> None:
    account = Account(id="a1", balance=999.0, currency="USD", initial_balance=250.0)
    assert ledger.reconcile(account, []) == 250.0


def test_reconcile_ignores_other_accounts() -> None:
    account = Account(id="a1", balance=0.0, currency="USD", initial_balance=0.0)
    txs = [_tx("t1", "a1", "credit", 5.0), _tx("t2", "a2", "credit", 500.0)]
    assert ledger.reconcile(account, txs) == 5.0


def test_reconcile_all_and_find_drift() -> None:
    """Drifted balances are reported, then repaired by the sweep."""
    a1 = Account(id="a1", balance=100.0, currency="USD", initial_balance=0.0)
    a2 = Account(id="a2", balance=40.0, currency="USD", initial_balance=50.0)
    txs = [_tx("t1", "a1", "credit", 100.0), _tx("t2", "a2", "debit", 20.0)]

    drifts = ledger.find_drift([a1, a2], txs)
    assert [d.account_id for d in drifts] == ["a2"]
    assert drifts[0].expected == 30.0
    assert drifts[0].difference == 10.0

    fixed = ledger.reconcile_all([a1, a2], txs)
    assert [a.balance for a in fixed] == [100.0, 30.0]
    assert ledger.find_drift(fixed, txs) == []
    # Inputs are never mutated.
    assert a2.balance == 40.0


def test_balance_adjustment_creates_transaction_for_today() -> None:
    account = Account(id="a1", balance=1200.0, currency="EUR", initial_balance=1000.0)
    txs = [_tx("t1", "a1", "credit", 200.0, currency="EUR")]

    with capture_logs() as logs:
        result = ledger.balance_adjustment(
            account, txs, 1300.0, today=TODAY, id_factory=lambda: "adj-1"
        )

    assert result is not None
    assert result.created is True
    adj = result.transaction
    assert adj.id == "adj-1"
    assert adj.type == "credit"
    assert adj.numeric_amount == pytest.approx(100.0)
    assert adj.category == "Adjustment"
    assert adj.currency == "EUR"
    assert adj.date == "2025-10-17"
    assert result.account.balance == 1300.0
    assert any(e["event"] == "ledger.adjustment_created" for e in logs)


def test_balance_adjustment_negative_delta_is_a_debit() -> None:
    account = Account(id="a1", balance=1000.0, currency="USD", initial_balance=1000.0)
    result = ledger.balance_adjustment(account, [], 900.0, today=TODAY, id_factory=lambda: "adj")
    assert result is not None
    assert result.transaction.type == "debit"
    assert result.transaction.numeric_amount == pytest.approx(100.0)
    assert result.account.balance == 900.0


def test_balance_adjustment_merges_same_day_adjustment() -> None:
    """A second edit on the same day updates the existing adjustment."""
    account = Account(id="a1", balance=1300.0, currency="USD", initial_balance=1000.0)
    existing = _tx("adj-1", "a1", "credit", 100.0, day="2025-10-17", category="Adjustment")
    txs = [_tx("t1", "a1", "credit", 200.0), existing]

    result = ledger.balance_adjustment(account, txs, 1250.0, today=TODAY)

    assert result is not None
    assert result.created is False
    assert result.transaction.id == "adj-1"
    assert result.transaction.type == "credit"
    assert result.transaction.numeric_amount == pytest.approx(50.0)
    assert result.account.balance == 1250.0


def test_balance_adjustment_merge_flips_sign() -> None:
    account = Account(id="a1", balance=1300.0, currency="USD", initial_balance=1000.0)
    existing = _tx("adj-1", "a1", "credit", 100.0, day="2025-10-17", category="Adjustment")
    txs = [_tx("t1", "a1", "credit", 200.0), existing]

    result = ledger.balance_adjustment(account, txs, 1100.0, today=TODAY)

    assert result is not None
    assert result.transaction.type == "debit"
    assert result.transaction.numeric_amount == pytest.approx(100.0)
    assert result.account.balance == 1100.0


def test_balance_adjustment_does_not_merge_older_adjustments() -> None:
    account = Account(id="a1", balance=1100.0, currency="USD", initial_balance=1000.0)
    older = _tx("adj-old", "a1", "credit", 100.0, day="2025-10-16", category="Adjustment")

    result = ledger.balance_adjustment(
        account, [older], 1150.0, today=TODAY, id_factory=lambda: "adj-new"
    )

    assert result is not None
    assert result.created is True
    assert result.transaction.id == "adj-new"
    assert result.account.balance == 1150.0


def test_balance_adjustment_below_one_cent_is_noop() -> None:
    account = Account(id="a1", balance=1000.0, currency="USD", initial_balance=1000.0)
    assert ledger.balance_adjustment(account, [], 1000.004, today=TODAY) is None


def test_apply_transaction_edit_reconciles_old_and_new_account() -> None:
    """Moving a transaction from A to B updates both balances."""
    a = Account(id="A", balance=100.0, currency="USD")
    b = Account(id="B", balance=0.0, currency="USD")
    t1 = _tx("t1", "A", "credit", 100.0)

    result = ledger.apply_transaction_edit([a, b], [t1], replace(t1, account_id="B"))

    balances = {acc.id: acc.balance for acc in result.accounts}
    assert balances == {"A": 0.0, "B": 100.0}
    assert [t.account_id for t in result.transactions] == ["B"]


def test_apply_transaction_edit_inserts_new_transaction() -> None:
    a = Account(id="A", balance=0.0, currency="USD")
    b = Account(id="B", balance=0.0, currency="USD")
    new = _tx("t9", "A", "debit", 30.0)

    result = ledger.apply_transaction_edit([a, b], [], new)

    assert [acc.id for acc in result.accounts] == ["A"]
    assert result.accounts[0].balance == -30.0
    assert result.transactions == [new]


def test_apply_transaction_edit_inserts_when_original_is_not_stored() -> None:
    """A caller-supplied original absent from the log does not drop the edit."""
    a = Account(id="A", balance=0.0, currency="USD")
    b = Account(id="B", balance=0.0, currency="USD")
    kept = _tx("t1", "B", "credit", 50.0)
    stale = _tx("t9", "B", "debit", 30.0)
    edited = replace(stale, account_id="A")

    result = ledger.apply_transaction_edit([a, b], [kept], edited, original=stale)

    assert result.transactions == [edited, kept]
    balances = {acc.id: acc.balance for acc in result.accounts}
    assert balances == {"A": -30.0, "B": 50.0}


def test_create_transfer_converts_destination_leg() -> None:
    src = Account(id="A", balance=1000.0, currency="USD", initial_balance=1000.0, name="Checking")
    dst = Account(id="B", balance=0.0, currency="EUR", name="Savings")

    result = ledger.create_transfer(
        src, dst, 100.0, "2025-10-10", [], id_factory=_ids(["link", "d", "c"])
    )

    assert result.debit.id == "d"
    assert result.credit.id == "c"
    assert result.debit.transfer_link_id == result.credit.transfer_link_id == "link"
    assert result.debit.category == result.credit.category == "Transfer"
    assert result.debit.numeric_amount == 100.0
    assert result.credit.numeric_amount == pytest.approx(92.0)
    assert result.credit.foreign_amount == 100.0
    assert result.credit.exchange_rate == pytest.approx(0.92)
    assert [a.balance for a in result.accounts] == [900.0, 92.0]
    assert len(result.transactions) == 2


def test_create_transfer_same_currency_has_no_fx_fields() -> None:
    src = Account(id="A", balance=0.0, currency="USD")
    dst = Account(id="B", balance=0.0, currency="USD")
    result = ledger.create_transfer(src, dst, 25.0, "2025-10-10", [])
    assert result.credit.numeric_amount == 25.0
    assert result.credit.foreign_amount is None
    assert result.credit.exchange_rate is None


@pytest.mark.parametrize("amount", [0.0, -10.0])
def test_create_transfer_rejects_non_positive_amount(amount: float) -> None:
    src = Account(id="A", balance=0.0, currency="USD")
    dst = Account(id="B", balance=0.0, currency="USD")
    with pytest.raises(ValueError):
        ledger.create_transfer(src, dst, amount, "2025-10-10", [])


def test_create_transfer_rejects_same_account() -> None:
    src = Account(id="A", balance=0.0, currency="USD")
    with pytest.raises(ValueError):
        ledger.create_transfer(src, src, 10.0, "2025-10-10", [])


def test_remove_transaction_removes_transfer_partner() -> None:
    src = Account(id="A", balance=1000.0, currency="USD", initial_balance=1000.0)
    dst = Account(id="B", balance=0.0, currency="USD")
    transfer = ledger.create_transfer(
        src, dst, 100.0, "2025-10-10", [], id_factory=_ids(["link", "d", "c"])
    )
    other = _tx("t1", "A", "credit", 5.0)
    txs = [*transfer.transactions, other]

    result = ledger.remove_transaction(transfer.accounts, txs, "c")

    assert [t.id for t in result.transactions] == ["t1"]
    balances = {acc.id: acc.balance for acc in result.accounts}
    assert balances == {"A": 1005.0, "B": 0.0}


def test_remove_transaction_unknown_id_raises() -> None:
    with pytest.raises(ValueError):
        ledger.remove_transaction([], [], "missing")


def test_running_balances_newest_first() -> None:
    account = Account(id="a1", balance=1150.0, currency="USD", initial_balance=1000.0)
    credit = _tx("t1", "a1", "credit", 200.0, day="2025-10-01")
    debit = _tx("t2", "a1", "debit", 50.0, day="2025-10-05")

    rows = ledger.running_balances(account, [credit, debit])

    assert [(t.id, bal) for t, bal in rows] == [("t2", 1150.0), ("t1", 1200.0)]
