from flask import Blueprint, jsonify, request

from walletguard.auth import current_identity
from walletguard.db.session import get_session
from walletguard.errors import AuthorizationError
from walletguard.schemas import fraud_log_to_dict
from walletguard.services.disposition import get_fraud_log
from walletguard.services.pipeline import submit_transaction

transactions_bp = Blueprint("transactions", __name__)


@transactions_bp.route("/transactions", methods=["POST"])
def create_transaction():
    identity = current_identity()
    payload = request.get_json(silent=True)
    session = get_session()
    try:
        decision = submit_transaction(
            session, identity.user_id, payload, step_up_verified=identity.step_up_verified
        )
        status_code = 202 if decision.held_funds_reference else 201
        return jsonify(decision.to_dict()), status_code
    finally:
        session.close()


@transactions_bp.route("/fraud-logs/<int:fraud_log_id>", methods=["GET"])
def get_fraud_log_detail(fraud_log_id: int):
    identity = current_identity()
    session = get_session()
    try:
        log = get_fraud_log(session, fraud_log_id)
        if not identity.is_admin and log.user_id != identity.user_id:
            raise AuthorizationError("Access denied")
        return jsonify(fraud_log_to_dict(log))
    finally:
        session.close()
