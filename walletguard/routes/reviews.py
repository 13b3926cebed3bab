from flask import Blueprint, jsonify, request

from walletguard.auth import current_identity, require_admin
from walletguard.db.session import get_session
from walletguard.errors import AuthorizationError
from walletguard.schemas import disposition_event_to_dict, fraud_log_to_dict
from walletguard.services.disposition import (
    auto_approve_expired,
    get_fraud_log,
    list_events,
    list_pending_review,
    resolve,
)

reviews_bp = Blueprint("reviews", __name__)


@reviews_bp.route("/reviews/pending", methods=["GET"])
def pending_reviews():
    require_admin()
    include_blocked = request.args.get("include_blocked", "true").lower() != "false"
    session = get_session()
    try:
        logs = list_pending_review(session, include_blocked=include_blocked)
        return jsonify([fraud_log_to_dict(log) for log in logs])
    finally:
        session.close()


@reviews_bp.route("/reviews/<int:fraud_log_id>/resolve", methods=["POST"])
def resolve_review(fraud_log_id: int):
    admin = require_admin()
    payload = request.get_json(silent=True) or {}
    session = get_session()
    try:
        log = resolve(session, fraud_log_id, payload.get("decision"), admin.user_id, payload.get("notes"))
        return jsonify(fraud_log_to_dict(log))
    finally:
        session.close()


@reviews_bp.route("/reviews/<int:fraud_log_id>/audit", methods=["GET"])
def review_audit(fraud_log_id: int):
    identity = current_identity()
    session = get_session()
    try:
        log = get_fraud_log(session, fraud_log_id)
        if not identity.is_admin and log.user_id != identity.user_id:
            raise AuthorizationError("Access denied")
        events = list_events(session, fraud_log_id)
        return jsonify([disposition_event_to_dict(evt) for evt in events])
    finally:
        session.close()


@reviews_bp.route("/reviews/auto-approve", methods=["POST"])
def run_auto_approve():
    require_admin()
    session = get_session()
    try:
        count = auto_approve_expired(session)
        return jsonify({"status": "ok", "auto_approved": count})
    finally:
        session.close()
