"""
Immutable snapshot a transaction is evaluated against: the request itself
plus a read-only window of the user's recent activity.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from walletguard.errors import ValidationError
from walletguard.models.transaction import TRANSACTION_TYPES


@dataclass(frozen=True)
class HistoryEntry:
    amount: float
    timestamp: datetime
    type: str
    status: str = "completed"
    counterparty_id: Optional[str] = None


@dataclass(frozen=True)
class TransactionContext:
    user_id: str
    type: str
    amount: float
    timestamp: datetime
    recipient_id: Optional[str] = None
    ip_address: Optional[str] = None
    location: Optional[str] = None
    account_created_at: Optional[datetime] = None
    wallet_balance: Optional[float] = None
    step_up_verified: bool = False
    # None means the history could not be loaded; () means the user has none.
    history: Optional[Tuple[HistoryEntry, ...]] = None
    received: Optional[Tuple[HistoryEntry, ...]] = None

    def history_within(self, window: timedelta) -> Tuple[HistoryEntry, ...]:
        if self.history is None:
            return ()
        start = self.timestamp - window
        return tuple(h for h in self.history if start < h.timestamp <= self.timestamp)

    def received_within(self, window: timedelta) -> Tuple[HistoryEntry, ...]:
        if self.received is None:
            return ()
        start = self.timestamp - window
        return tuple(h for h in self.received if start < h.timestamp <= self.timestamp)

    def last_transaction(self) -> Optional[HistoryEntry]:
        if not self.history:
            return None
        prior = [h for h in self.history if h.timestamp <= self.timestamp]
        return max(prior, key=lambda h: h.timestamp) if prior else None


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# Column widths of the ledger row these fields end up in.
OPTIONAL_TEXT_FIELDS = (("recipient_id", 255), ("ip_address", 100), ("location", 255))


def validate_context(context: TransactionContext) -> TransactionContext:
    if not context.user_id:
        raise ValidationError("user_id is required")
    if context.type not in TRANSACTION_TYPES:
        raise ValidationError(f"Invalid transaction type: {context.type}")
    if isinstance(context.amount, bool) or not isinstance(context.amount, (int, float)):
        raise ValidationError("amount must be a number")
    if not math.isfinite(context.amount) or context.amount <= 0:
        raise ValidationError("amount must be a positive number")
    if round(context.amount, 2) != context.amount:
        raise ValidationError("amount supports at most two decimal places")
    for name, max_length in OPTIONAL_TEXT_FIELDS:
        value = getattr(context, name)
        if value is None:
            continue
        if not isinstance(value, str):
            raise ValidationError(f"{name} must be a string")
        if len(value) > max_length:
            raise ValidationError(f"{name} must be at most {max_length} characters")
    if context.type in ("transfer_sent", "payment"):
        if not context.recipient_id:
            raise ValidationError(f"recipient_id is required for {context.type}")
        if context.recipient_id == context.user_id:
            raise ValidationError("Cannot send money to yourself")
    if not isinstance(context.timestamp, datetime):
        raise ValidationError("timestamp must be a datetime")
    return context
