from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from walletguard.models import FraudLog, TransactionLog
from walletguard.services.trust import TrustParameters, compute_trust, days_to_recovery, decay_weight, get_user_trust

NOW = datetime(2024, 6, 1, 12, 0, 0)
PARAMS = TrustParameters()


def series(*pairs):
    return [(score, NOW - timedelta(days=days)) for score, days in pairs]


def test_no_history():
    result = compute_trust([], NOW, PARAMS)
    assert result["trust_score"] == 0
    assert result["method"] == "no_history"
    assert result["trend"] == "insufficient_data"
    assert result["days_to_recovery"] == 0


def test_new_users_are_capped():
    result = compute_trust(series((80, 1), (90, 2)), NOW, PARAMS)
    assert result["method"] == "new_user"
    assert result["trust_score"] == 30


def test_recent_scores_dominate():
    history = series((10, 1), (10, 2), (10, 3), (90, 150), (90, 160), (90, 170))
    result = compute_trust(history, NOW, PARAMS)
    assert result["method"] == "time_decayed"
    assert result["trust_score"] < 50
    assert result["trend"] == "improving"


def test_declining_trend():
    history = series((80, 1), (75, 2), (10, 100), (10, 120), (10, 140))
    assert compute_trust(history, NOW, PARAMS)["trend"] == "declining"


def test_lookback_excludes_old_logs():
    history = series((50, 1), (50, 2), (50, 3), (50, 4), (50, 5), (100, 400))
    result = compute_trust(history, NOW, PARAMS)
    assert result["transactions_considered"] == 5
    assert result["trust_score"] == 50


def test_decay_weight_floor():
    assert decay_weight(0, PARAMS) == 1.0
    assert decay_weight(60, PARAMS) == pytest.approx(0.5)
    assert decay_weight(10000, PARAMS) == PARAMS.min_weight


def test_days_to_recovery():
    assert days_to_recovery(15, PARAMS) == 0
    assert days_to_recovery(30, PARAMS) == 36


def test_user_trust_ignores_logs_labelled_legitimate(session):
    def add(index, score, ground_truth=None):
        tx = TransactionLog(
            tx_reference=f"TX-T-{index}",
            user_id="user-a",
            type="deposit",
            amount=Decimal("100.00"),
            status="completed",
            tx_datetime=NOW,
        )
        session.add(tx)
        session.flush()
        session.add(
            FraudLog(
                transaction_id=tx.id,
                user_id="user-a",
                transaction_type="deposit",
                amount=Decimal("100.00"),
                final_score=score,
                risk_level="LOW",
                action="ALLOW",
                ground_truth=ground_truth,
                created_at=NOW - timedelta(days=index),
            )
        )

    add(1, 20)
    add(2, 20)
    add(3, 95, ground_truth="legitimate")
    session.commit()

    result = get_user_trust(session, "user-a", now=NOW)
    assert result["user_id"] == "user-a"
    assert result["transactions_considered"] == 2
    assert result["trust_score"] == 20
