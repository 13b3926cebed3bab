from .base import Base, utcnow
from .account import WalletAccount
from .transaction import TransactionLog, TRANSACTION_TYPES, TRANSACTION_STATUS
from .funds_hold import FundsHold, HOLD_STATUS
from .fraud_log import (
    FraudLog,
    RISK_LEVELS,
    ACTIONS,
    DISPOSITIONS,
    GROUND_TRUTH_VALUES,
    APPEAL_STATUS_VALUES,
)
from .appeal import Appeal, APPEAL_STATUS
from .disposition_event import DispositionEvent, EVENT_SOURCES

__all__ = [
    "Base",
    "utcnow",
    "WalletAccount",
    "TransactionLog",
    "TRANSACTION_TYPES",
    "TRANSACTION_STATUS",
    "FundsHold",
    "HOLD_STATUS",
    "FraudLog",
    "RISK_LEVELS",
    "ACTIONS",
    "DISPOSITIONS",
    "GROUND_TRUTH_VALUES",
    "APPEAL_STATUS_VALUES",
    "Appeal",
    "APPEAL_STATUS",
    "DispositionEvent",
    "EVENT_SOURCES",
]
