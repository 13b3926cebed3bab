from flask import Blueprint, jsonify

from walletguard.auth import require_self_or_admin
from walletguard.db.session import get_session
from walletguard.services.trust import get_user_trust

trust_bp = Blueprint("trust", __name__)


@trust_bp.route("/users/<user_id>/trust", methods=["GET"])
def user_trust(user_id: str):
    require_self_or_admin(user_id)
    session = get_session()
    try:
        return jsonify(get_user_trust(session, user_id))
    finally:
        session.close()
