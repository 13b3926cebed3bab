from flask import Blueprint, abort, jsonify, request

from walletguard.rules import catalog, get_rule as lookup_rule
from walletguard.schemas import rule_to_dict

rules_bp = Blueprint("rules", __name__)


@rules_bp.route("/rules", methods=["GET"])
def list_rules():
    category = request.args.get("category")
    rules = [r for r in catalog() if not category or r.category == category]
    return jsonify([rule_to_dict(r) for r in rules])


@rules_bp.route("/rules/<rule_id>", methods=["GET"])
def get_rule(rule_id: str):
    rule = lookup_rule(rule_id.upper())
    if not rule:
        abort(404, description="Rule not found")
    return jsonify(rule_to_dict(rule))
