from datetime import datetime, timedelta

from walletguard.context import HistoryEntry, TransactionContext
from walletguard.rules import RuleDefinition, catalog
from walletguard.rules import base as rule_base
from walletguard.services.rule_engine import evaluate, triggered_only

NOON = datetime(2024, 3, 6, 12, 0, 0)


def make_context(**overrides):
    fields = dict(
        user_id="user-a",
        type="transfer_sent",
        amount=500.0,
        timestamp=NOON,
        recipient_id="user-b",
        account_created_at=NOON - timedelta(days=365),
        wallet_balance=100000.0,
        history=(),
        received=(),
    )
    fields.update(overrides)
    return TransactionContext(**fields)


def daily_history(amount, days=10, counterparty="user-c"):
    return tuple(
        HistoryEntry(amount=amount, timestamp=NOON - timedelta(days=d), type="transfer_sent", counterparty_id=counterparty)
        for d in range(1, days + 1)
    )


def fired(context):
    return {t.rule_id for t in triggered_only(evaluate(context))}


def test_catalog_is_complete_and_sorted():
    ids = [r.id for r in catalog()]
    assert len(ids) == 23
    assert ids == sorted(ids)
    assert {r.category for r in catalog()} == {"velocity", "amount", "behavioral"}


def test_evaluate_returns_every_rule_in_id_order():
    triggers = evaluate(make_context())
    assert [t.rule_id for t in triggers] == [r.id for r in catalog()]
    assert not any(t.triggered for t in triggers)
    assert all(t.weight == 0 for t in triggers)


def test_large_amount_with_normal_history():
    ctx = make_context(amount=75000.0, history=daily_history(500.0))
    assert fired(ctx) == {"AMT-001", "AMT-006"}


def test_six_transactions_in_one_minute_trip_high_frequency():
    history = tuple(
        HistoryEntry(amount=100.0, timestamp=NOON - timedelta(seconds=10 * i), type="transfer_sent", counterparty_id="user-b")
        for i in range(1, 6)
    )
    assert "VEL-001" in fired(make_context(amount=100.0, history=history))


def test_five_transactions_in_one_minute_do_not_trip_high_frequency():
    history = tuple(
        HistoryEntry(amount=100.0, timestamp=NOON - timedelta(seconds=10 * i), type="transfer_sent")
        for i in range(1, 5)
    )
    assert "VEL-001" not in fired(make_context(amount=100.0, history=history))


def test_rapid_sequential():
    history = (HistoryEntry(amount=50.0, timestamp=NOON - timedelta(seconds=3), type="transfer_sent"),)
    assert "VEL-002" in fired(make_context(history=history))


def test_failed_attempts():
    history = tuple(
        HistoryEntry(amount=50.0, timestamp=NOON - timedelta(minutes=5 * i), type="transfer_sent", status="failed")
        for i in range(1, 4)
    )
    assert "VEL-005" in fired(make_context(history=history))


def test_structuring_and_round_amounts():
    assert "AMT-002" in fired(make_context(amount=9999.0))
    ids = fired(make_context(amount=10000.0))
    assert "AMT-002" not in ids
    assert "AMT-003" in ids


def test_micro_deposit():
    ctx = make_context(type="deposit", amount=0.5, recipient_id=None)
    assert "AMT-004" in fired(ctx)


def test_unusual_decimals():
    assert "AMT-008" in fired(make_context(amount=1234.56))
    assert "AMT-008" not in fired(make_context(amount=1234.50))


def test_new_account_and_first_transaction():
    ctx = make_context(amount=6000.0, account_created_at=NOON - timedelta(hours=2))
    ids = fired(ctx)
    assert "BEH-001" in ids
    assert "BEH-002" in ids


def test_missing_history_never_fires_history_rules():
    ctx = make_context(amount=6000.0, history=None, received=None)
    ids = fired(ctx)
    assert "BEH-002" not in ids
    assert not any(rule_id.startswith("VEL") for rule_id in ids)


def test_dormant_account():
    history = (HistoryEntry(amount=500.0, timestamp=NOON - timedelta(days=45), type="transfer_sent"),)
    assert "BEH-003" in fired(make_context(history=history))


def test_unusual_hour():
    assert "BEH-004" in fired(make_context(timestamp=NOON.replace(hour=3)))
    assert "BEH-004" not in fired(make_context(timestamp=NOON.replace(hour=6)))


def test_circular_transfer():
    received = (HistoryEntry(amount=800.0, timestamp=NOON - timedelta(minutes=20), type="transfer_sent", counterparty_id="user-b"),)
    assert "BEH-005" in fired(make_context(received=received))


def test_many_recipients():
    history = tuple(
        HistoryEntry(amount=20.0, timestamp=NOON - timedelta(minutes=5 * i), type="transfer_sent", counterparty_id=f"r{i}")
        for i in range(1, 6)
    )
    assert "BEH-006" in fired(make_context(history=history))


def test_withdrawal_after_deposit():
    history = (HistoryEntry(amount=5000.0, timestamp=NOON - timedelta(minutes=10), type="deposit"),)
    ctx = make_context(type="withdrawal", amount=4950.0, recipient_id=None, history=history)
    assert "BEH-007" in fired(ctx)


def test_balance_draining():
    assert "BEH-010" in fired(make_context(amount=960.0, wallet_balance=1000.0))


def test_failing_rule_counts_as_not_triggered(monkeypatch):
    def explode(ctx):
        raise RuntimeError("boom")

    broken = RuleDefinition(id="ZZZ-999", name="broken", category="amount", severity="LOW", weight=5, predicate=explode)
    monkeypatch.setitem(rule_base._REGISTRY, "ZZZ-999", broken)
    triggers = evaluate(make_context())
    assert triggers[-1].rule_id == "ZZZ-999"
    assert triggers[-1].triggered is False
