from flask import Blueprint, Response, jsonify, request

from walletguard.auth import require_admin
from walletguard.db.session import get_session
from walletguard.schemas import error_log_to_dict, fraud_log_to_dict
from walletguard.services.verification import (
    error_analysis,
    export_dataset,
    get_metrics,
    set_ground_truth,
    threshold_analysis,
)

verification_bp = Blueprint("verification", __name__)


@verification_bp.route("/fraud-logs/<int:fraud_log_id>/ground-truth", methods=["POST"])
def label_fraud_log(fraud_log_id: int):
    admin = require_admin()
    payload = request.get_json(silent=True) or {}
    session = get_session()
    try:
        log = set_ground_truth(session, fraud_log_id, payload.get("ground_truth"), admin.user_id)
        return jsonify(fraud_log_to_dict(log))
    finally:
        session.close()


@verification_bp.route("/metrics", methods=["GET"])
def metrics():
    require_admin()
    session = get_session()
    try:
        return jsonify(get_metrics(session))
    finally:
        session.close()


@verification_bp.route("/metrics/thresholds", methods=["GET"])
def thresholds():
    require_admin()
    session = get_session()
    try:
        return jsonify(threshold_analysis(session))
    finally:
        session.close()


@verification_bp.route("/metrics/errors", methods=["GET"])
def errors():
    require_admin()
    session = get_session()
    try:
        analysis = error_analysis(session)
        return jsonify(
            {
                "false_positives": [error_log_to_dict(log) for log in analysis["false_positives"]],
                "false_negatives": [error_log_to_dict(log) for log in analysis["false_negatives"]],
            }
        )
    finally:
        session.close()


@verification_bp.route("/metrics/export", methods=["GET"])
def export():
    require_admin()
    session = get_session()
    try:
        body = export_dataset(session)
    finally:
        session.close()
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=verified_fraud_logs.csv"},
    )
