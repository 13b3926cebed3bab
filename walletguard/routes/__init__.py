from .transactions import transactions_bp
from .rules import rules_bp
from .reviews import reviews_bp
from .appeals import appeals_bp
from .verification import verification_bp
from .trust import trust_bp

ALL_BLUEPRINTS = (
    transactions_bp,
    rules_bp,
    reviews_bp,
    appeals_bp,
    verification_bp,
    trust_bp,
)

__all__ = [
    "transactions_bp",
    "rules_bp",
    "reviews_bp",
    "appeals_bp",
    "verification_bp",
    "trust_bp",
    "ALL_BLUEPRINTS",
]
