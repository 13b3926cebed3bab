import csv
import io
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from walletguard.errors import ConflictError, ValidationError
from walletguard.models import FraudLog, TransactionLog
from walletguard.services.verification import (
    compute_metrics,
    confusion_matrix,
    error_analysis,
    export_dataset,
    get_metrics,
    set_ground_truth,
    threshold_analysis,
)

NOON = datetime(2024, 3, 6, 12, 0, 0)


@pytest.fixture()
def make_log(session):
    counter = {"n": 0}

    def create(score, action, ground_truth=None, user_id="user-a", level="HIGH"):
        counter["n"] += 1
        tx = TransactionLog(
            tx_reference=f"TX-V-{counter['n']}",
            user_id=user_id,
            recipient_id="user-b",
            type="transfer_sent",
            amount=Decimal("1000.00"),
            status="completed",
            tx_datetime=NOON,
        )
        session.add(tx)
        session.flush()
        log = FraudLog(
            transaction_id=tx.id,
            user_id=user_id,
            transaction_type="transfer_sent",
            amount=Decimal("1000.00"),
            rule_score=score,
            final_score=score,
            risk_level=level,
            action=action,
            triggered_rules=["AMT-001"],
            ground_truth=ground_truth,
        )
        session.add(log)
        session.commit()
        return log

    return create


def test_metric_formulas():
    metrics = compute_metrics({"tp": 8, "fp": 2, "tn": 85, "fn": 5})
    assert metrics["precision"] == pytest.approx(0.8)
    assert metrics["recall"] == pytest.approx(8 / 13)
    assert metrics["specificity"] == pytest.approx(85 / 87)
    assert metrics["accuracy"] == pytest.approx(0.93)
    assert metrics["f1_score"] == pytest.approx(2 * 0.8 * (8 / 13) / (0.8 + 8 / 13))
    assert metrics["false_positive_rate"] == pytest.approx(2 / 87)
    assert metrics["false_negative_rate"] == pytest.approx(5 / 13)
    assert metrics["negative_predictive_value"] == pytest.approx(85 / 90)
    expected_mcc = (8 * 85 - 2 * 5) / ((10 * 13 * 87 * 90) ** 0.5)
    assert metrics["mcc"] == pytest.approx(expected_mcc)


def test_zero_denominators_are_zero():
    metrics = compute_metrics({"tp": 0, "fp": 0, "tn": 0, "fn": 0})
    assert all(value == 0.0 for value in metrics.values())
    only_negatives = compute_metrics({"tp": 0, "fp": 0, "tn": 4, "fn": 0})
    assert only_negatives["precision"] == 0.0
    assert only_negatives["specificity"] == 1.0
    assert only_negatives["mcc"] == 0.0


def test_confusion_matrix_uses_held_actions_as_positive():
    logs = [
        SimpleNamespace(action="BLOCK", ground_truth="fraud"),
        SimpleNamespace(action="REVIEW", ground_truth="legitimate"),
        SimpleNamespace(action="CHALLENGE", ground_truth="fraud"),
        SimpleNamespace(action="ALLOW", ground_truth="legitimate"),
        SimpleNamespace(action="ALLOW", ground_truth=None),
    ]
    assert confusion_matrix(logs) == {"tp": 1, "fp": 1, "tn": 1, "fn": 1}


def test_ground_truth_is_set_once(session, make_log):
    log = make_log(85, "BLOCK")
    labelled = set_ground_truth(session, log.id, "fraud", "admin-1")
    assert labelled.ground_truth == "fraud"
    assert labelled.verified_by == "admin-1"
    with pytest.raises(ConflictError):
        set_ground_truth(session, log.id, "legitimate", "admin-2")
    session.expire_all()
    assert session.get(FraudLog, log.id).ground_truth == "fraud"


def test_ground_truth_value_is_validated(session, make_log):
    log = make_log(10, "ALLOW")
    with pytest.raises(ValidationError):
        set_ground_truth(session, log.id, "maybe", "admin-1")


def test_metrics_from_labelled_logs(session, make_log):
    make_log(85, "BLOCK", "fraud")
    make_log(65, "REVIEW", "legitimate")
    make_log(10, "ALLOW", "legitimate", level="MINIMAL")
    make_log(30, "ALLOW", "fraud", level="LOW")
    make_log(45, "CHALLENGE", level="MEDIUM")

    result = get_metrics(session)
    assert result["confusion_matrix"] == {"tp": 1, "fp": 1, "tn": 1, "fn": 1}
    assert result["metrics"]["accuracy"] == pytest.approx(0.5)
    stats = result["statistics"]
    assert stats["total_logs"] == 5
    assert stats["verified"] == 4
    assert stats["unverified"] == 1
    assert stats["actual_fraud"] == 2
    assert stats["verification_rate"] == pytest.approx(0.8)

    errors = error_analysis(session)
    assert [log.final_score for log in errors["false_positives"]] == [65]
    assert [log.final_score for log in errors["false_negatives"]] == [30]


def test_threshold_analysis(session, make_log):
    make_log(85, "BLOCK", "fraud")
    make_log(65, "REVIEW", "legitimate")
    make_log(30, "ALLOW", "fraud", level="LOW")

    rows = threshold_analysis(session)
    assert [row["threshold"] for row in rows] == [20, 30, 40, 50, 60, 70, 80, 90]
    at_20 = rows[0]
    assert (at_20["tp"], at_20["fp"], at_20["fn"]) == (2, 1, 0)
    at_70 = rows[5]
    assert (at_70["tp"], at_70["fp"], at_70["fn"], at_70["tn"]) == (1, 0, 1, 1)
    assert at_70["precision"] == 1.0
    assert rows[-1]["tpr"] == 0.0


def test_export_contains_only_verified_logs(session, make_log):
    make_log(85, "BLOCK", "fraud")
    make_log(10, "ALLOW", level="MINIMAL")
    rows = list(csv.DictReader(io.StringIO(export_dataset(session))))
    assert len(rows) == 1
    assert rows[0]["ground_truth"] == "fraud"
    assert rows[0]["true_positive"] == "1"
    assert rows[0]["triggered_rules"] == "AMT-001"
