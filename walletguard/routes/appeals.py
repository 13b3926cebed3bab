from flask import Blueprint, jsonify, request

from walletguard.auth import current_identity, require_admin
from walletguard.db.session import get_session
from walletguard.errors import ValidationError
from walletguard.schemas import appeal_to_dict
from walletguard.services.appeals import list_pending_appeals, resolve_appeal, submit_appeal

appeals_bp = Blueprint("appeals", __name__)


@appeals_bp.route("/appeals", methods=["POST"])
def create_appeal():
    identity = current_identity()
    payload = request.get_json(silent=True) or {}
    fraud_log_id = payload.get("fraud_log_id")
    if isinstance(fraud_log_id, bool) or not isinstance(fraud_log_id, int):
        raise ValidationError("fraud_log_id must be an integer")
    session = get_session()
    try:
        appeal = submit_appeal(session, fraud_log_id, identity.user_id, payload.get("reason"))
        return jsonify(appeal_to_dict(appeal)), 201
    finally:
        session.close()


@appeals_bp.route("/appeals/pending", methods=["GET"])
def pending_appeals():
    require_admin()
    session = get_session()
    try:
        return jsonify([appeal_to_dict(a) for a in list_pending_appeals(session)])
    finally:
        session.close()


@appeals_bp.route("/appeals/<int:appeal_id>/resolve", methods=["POST"])
def resolve(appeal_id: int):
    admin = require_admin()
    payload = request.get_json(silent=True) or {}
    session = get_session()
    try:
        appeal = resolve_appeal(session, appeal_id, payload.get("status"), admin.user_id, payload.get("admin_notes"))
        return jsonify(appeal_to_dict(appeal))
    finally:
        session.close()
