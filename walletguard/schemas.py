from datetime import datetime
from typing import Any, Dict, Optional


def _ts(val: Optional[datetime]) -> Optional[str]:
    return val.isoformat() if val else None


def _money(val) -> Optional[float]:
    return float(val) if val is not None else None


def rule_to_dict(rule) -> Dict[str, Any]:
    return {
        "id": rule.id,
        "name": rule.name,
        "category": rule.category,
        "severity": rule.severity,
        "weight": rule.weight,
        "description": rule.description,
    }


def fraud_log_to_dict(model) -> Dict[str, Any]:
    if model is None:
        return {}
    return {
        "id": model.id,
        "transaction_id": model.transaction_id,
        "user_id": model.user_id,
        "transaction_type": model.transaction_type,
        "amount": _money(model.amount),
        "base_score": model.base_score,
        "severity_multiplier": model.severity_multiplier,
        "count_multiplier": model.count_multiplier,
        "rule_score": model.rule_score,
        "final_score": model.final_score,
        "risk_level": model.risk_level,
        "action": model.action,
        "triggered_rules": model.triggered_rules or [],
        "rule_breakdown": model.rule_breakdown,
        "detection_method": model.detection_method,
        "execution_time_ms": model.execution_time_ms,
        "advisor": {
            "status": model.advisor_status,
            "score": model.advisor_score,
            "confidence": model.advisor_confidence,
            "reasoning": model.advisor_reasoning,
            "red_flags": model.advisor_red_flags or [],
            "latency_ms": model.advisor_latency_ms,
        },
        "agreement": model.agreement,
        "disposition": model.disposition,
        "hold_reference": model.hold_reference,
        "resolution_source": model.resolution_source,
        "resolved_by": model.resolved_by,
        "resolved_at": _ts(model.resolved_at),
        "ground_truth": model.ground_truth,
        "verified_by": model.verified_by,
        "verified_at": _ts(model.verified_at),
        "appeal_status": model.appeal_status,
        "created_at": _ts(model.created_at),
    }


def appeal_to_dict(model) -> Dict[str, Any]:
    if model is None:
        return {}
    return {
        "id": model.id,
        "fraud_log_id": model.fraud_log_id,
        "user_id": model.user_id,
        "reason": model.reason,
        "status": model.status,
        "admin_notes": model.admin_notes,
        "resolved_by": model.resolved_by,
        "resolved_at": _ts(model.resolved_at),
        "created_at": _ts(model.created_at),
    }


def disposition_event_to_dict(model) -> Dict[str, Any]:
    return {
        "id": model.id,
        "fraud_log_id": model.fraud_log_id,
        "from_state": model.from_state,
        "to_state": model.to_state,
        "source": model.source,
        "actor": model.actor,
        "notes": model.notes,
        "created_at": _ts(model.created_at),
    }


def error_log_to_dict(model) -> Dict[str, Any]:
    return {
        "id": model.id,
        "user_id": model.user_id,
        "amount": _money(model.amount),
        "final_score": model.final_score,
        "action": model.action,
        "ground_truth": model.ground_truth,
        "triggered_rules": model.triggered_rules or [],
    }
