"""
Ground-truth labelling and detector performance metrics.

A log counts as predicted fraud when its action held the funds (REVIEW or
BLOCK) and as actual fraud when an admin labelled it ``fraud``. Every ratio
with a zero denominator is reported as 0.
"""

import csv
import io
import logging
import math
from typing import Any, Dict, Iterable, List

from sqlalchemy import func, select, update

from walletguard.errors import ConflictError, ValidationError
from walletguard.models import FraudLog, GROUND_TRUTH_VALUES, utcnow
from walletguard.services.disposition import get_fraud_log

logger = logging.getLogger(__name__)

PREDICTED_POSITIVE_ACTIONS = ("REVIEW", "BLOCK")
THRESHOLD_STEPS = tuple(range(20, 100, 10))
EXPORT_COLUMNS = (
    "fraud_log_id",
    "user_id",
    "transaction_type",
    "amount",
    "final_score",
    "rule_score",
    "advisor_score",
    "advisor_confidence",
    "advisor_status",
    "risk_level",
    "action",
    "detection_method",
    "triggered_rules",
    "ground_truth",
    "predicted_fraud",
    "actual_fraud",
    "true_positive",
    "false_positive",
    "true_negative",
    "false_negative",
    "created_at",
    "verified_at",
)


def set_ground_truth(session, fraud_log_id: int, value: str, admin_id: str) -> FraudLog:
    if value not in GROUND_TRUTH_VALUES:
        raise ValidationError("ground_truth must be 'fraud' or 'legitimate'")
    try:
        log = get_fraud_log(session, fraud_log_id)
        result = session.execute(
            update(FraudLog)
            .where(FraudLog.id == fraud_log_id, FraudLog.ground_truth.is_(None))
            .values(ground_truth=value, verified_by=admin_id, verified_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError("Ground truth has already been set for this log")
        session.commit()
        session.refresh(log)
    except Exception:
        session.rollback()
        raise
    logger.info("Fraud log %s labelled %s by %s", fraud_log_id, value, admin_id)
    return log


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


def is_predicted_fraud(log) -> bool:
    return log.action in PREDICTED_POSITIVE_ACTIONS


def confusion_matrix(logs: Iterable) -> Dict[str, int]:
    matrix = {"tp": 0, "fp": 0, "tn": 0, "fn": 0}
    for log in logs:
        if log.ground_truth is None:
            continue
        predicted = is_predicted_fraud(log)
        actual = log.ground_truth == "fraud"
        if predicted and actual:
            matrix["tp"] += 1
        elif predicted:
            matrix["fp"] += 1
        elif actual:
            matrix["fn"] += 1
        else:
            matrix["tn"] += 1
    return matrix


def compute_metrics(matrix: Dict[str, int]) -> Dict[str, float]:
    tp, fp, tn, fn = matrix["tp"], matrix["fp"], matrix["tn"], matrix["fn"]
    precision = _ratio(tp, tp + fp)
    recall = _ratio(tp, tp + fn)
    mcc_denominator = math.sqrt((tp + fp) * (tp + fn) * (tn + fp) * (tn + fn))
    return {
        "precision": precision,
        "recall": recall,
        "specificity": _ratio(tn, tn + fp),
        "accuracy": _ratio(tp + tn, tp + fp + tn + fn),
        "f1_score": _ratio(2 * precision * recall, precision + recall),
        "false_positive_rate": _ratio(fp, fp + tn),
        "false_negative_rate": _ratio(fn, fn + tp),
        "negative_predictive_value": _ratio(tn, tn + fn),
        "mcc": _ratio(tp * tn - fp * fn, mcc_denominator),
    }


def _verified_logs(session) -> List[FraudLog]:
    return session.execute(
        select(FraudLog).where(FraudLog.ground_truth.is_not(None)).order_by(FraudLog.id.asc())
    ).scalars().all()


def statistics(session) -> Dict[str, Any]:
    total = session.execute(select(func.count(FraudLog.id))).scalar_one()
    rows = session.execute(
        select(FraudLog.ground_truth, func.count(FraudLog.id))
        .where(FraudLog.ground_truth.is_not(None))
        .group_by(FraudLog.ground_truth)
    ).all()
    by_label = {label: count for label, count in rows}
    verified = sum(by_label.values())
    return {
        "total_logs": total,
        "verified": verified,
        "unverified": total - verified,
        "actual_fraud": by_label.get("fraud", 0),
        "actual_legitimate": by_label.get("legitimate", 0),
        "verification_rate": _ratio(verified, total),
    }


def get_metrics(session) -> Dict[str, Any]:
    matrix = confusion_matrix(_verified_logs(session))
    return {
        "confusion_matrix": matrix,
        "metrics": compute_metrics(matrix),
        "statistics": statistics(session),
    }


def threshold_analysis(session, thresholds=THRESHOLD_STEPS) -> List[Dict[str, Any]]:
    """Re-score the verified set at each score cut-off for ROC-style inspection."""
    logs = _verified_logs(session)
    results = []
    for threshold in thresholds:
        matrix = {"tp": 0, "fp": 0, "tn": 0, "fn": 0}
        for log in logs:
            predicted = log.final_score >= threshold
            actual = log.ground_truth == "fraud"
            key = ("tp" if actual else "fp") if predicted else ("fn" if actual else "tn")
            matrix[key] += 1
        metrics = compute_metrics(matrix)
        results.append(
            {
                "threshold": threshold,
                **matrix,
                "precision": metrics["precision"],
                "recall": metrics["recall"],
                "f1_score": metrics["f1_score"],
                "fpr": metrics["false_positive_rate"],
                "tpr": metrics["recall"],
            }
        )
    return results


def error_analysis(session) -> Dict[str, List[FraudLog]]:
    false_positives, false_negatives = [], []
    for log in _verified_logs(session):
        predicted = is_predicted_fraud(log)
        if predicted and log.ground_truth == "legitimate":
            false_positives.append(log)
        elif not predicted and log.ground_truth == "fraud":
            false_negatives.append(log)
    return {"false_positives": false_positives, "false_negatives": false_negatives}


def _export_row(log) -> Dict[str, Any]:
    predicted = is_predicted_fraud(log)
    actual = log.ground_truth == "fraud"
    return {
        "fraud_log_id": log.id,
        "user_id": log.user_id,
        "transaction_type": log.transaction_type,
        "amount": f"{float(log.amount):.2f}",
        "final_score": log.final_score,
        "rule_score": log.rule_score,
        "advisor_score": log.advisor_score if log.advisor_score is not None else "",
        "advisor_confidence": log.advisor_confidence if log.advisor_confidence is not None else "",
        "advisor_status": log.advisor_status,
        "risk_level": log.risk_level,
        "action": log.action,
        "detection_method": log.detection_method,
        "triggered_rules": ";".join(log.triggered_rules or []),
        "ground_truth": log.ground_truth,
        "predicted_fraud": int(predicted),
        "actual_fraud": int(actual),
        "true_positive": int(predicted and actual),
        "false_positive": int(predicted and not actual),
        "true_negative": int(not predicted and not actual),
        "false_negative": int(not predicted and actual),
        "created_at": log.created_at.isoformat() if log.created_at else "",
        "verified_at": log.verified_at.isoformat() if log.verified_at else "",
    }


def export_dataset(session) -> str:
    """All verified logs as CSV, one row per log."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS)
    writer.writeheader()
    for log in _verified_logs(session):
        writer.writerow(_export_row(log))
    return buffer.getvalue()
