"""
Builds the evaluation snapshot for a user from the transaction ledger.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from walletguard.context import (
    HistoryEntry,
    TransactionContext,
    to_naive_utc,
    validate_context,
)
from walletguard.errors import NotFoundError, ValidationError
from walletguard.models import TransactionLog, WalletAccount, utcnow

logger = logging.getLogger(__name__)

HISTORY_LOOKBACK = timedelta(days=31)
RECEIVED_LOOKBACK = timedelta(hours=24)
OUTGOING_TRANSFER_TYPES = ("transfer_sent", "payment")


def _entry(row: TransactionLog, counterparty: Optional[str]) -> HistoryEntry:
    return HistoryEntry(
        amount=float(row.amount),
        timestamp=to_naive_utc(row.tx_datetime),
        type=row.type,
        status=row.status,
        counterparty_id=counterparty,
    )


def load_history(session, user_id: str, as_of) -> Tuple[HistoryEntry, ...]:
    """
    Transactions the user initiated in the lookback window before ``as_of``,
    plus their latest earlier transaction so dormancy can be detected.
    """
    rows = session.execute(
        select(TransactionLog)
        .where(
            TransactionLog.user_id == user_id,
            TransactionLog.tx_datetime > as_of - HISTORY_LOOKBACK,
            TransactionLog.tx_datetime <= as_of,
        )
        .order_by(TransactionLog.tx_datetime.asc())
    ).scalars().all()
    if not rows:
        older = session.execute(
            select(TransactionLog)
            .where(TransactionLog.user_id == user_id, TransactionLog.tx_datetime <= as_of)
            .order_by(TransactionLog.tx_datetime.desc())
            .limit(1)
        ).scalar_one_or_none()
        rows = [older] if older else []
    return tuple(_entry(row, row.recipient_id) for row in rows)


def load_received(session, user_id: str, as_of) -> Tuple[HistoryEntry, ...]:
    rows = session.execute(
        select(TransactionLog)
        .where(
            TransactionLog.recipient_id == user_id,
            TransactionLog.type.in_(OUTGOING_TRANSFER_TYPES),
            TransactionLog.status == "completed",
            TransactionLog.tx_datetime > as_of - RECEIVED_LOOKBACK,
            TransactionLog.tx_datetime <= as_of,
        )
        .order_by(TransactionLog.tx_datetime.asc())
    ).scalars().all()
    return tuple(_entry(row, row.user_id) for row in rows)


def _account(session, user_id: str) -> Optional[WalletAccount]:
    return session.execute(
        select(WalletAccount).where(WalletAccount.user_id == user_id)
    ).scalar_one_or_none()


def build_context(
    session,
    user_id: str,
    payload: Dict[str, Any],
    timestamp: Optional[datetime] = None,
    step_up_verified: bool = False,
) -> TransactionContext:
    """
    Snapshot a submission. The transaction time is the server's clock unless
    the caller passes one; any timestamp in the body is ignored, as is any
    step-up claim, which only the identity gateway can vouch for.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    amount = payload.get("amount")
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        raise ValidationError("amount must be a number")
    timestamp = to_naive_utc(timestamp) if timestamp is not None else utcnow()

    context = validate_context(
        TransactionContext(
            user_id=user_id,
            type=payload.get("type"),
            amount=float(amount),
            timestamp=timestamp,
            recipient_id=payload.get("recipient_id"),
            ip_address=payload.get("ip_address"),
            location=payload.get("location"),
            step_up_verified=step_up_verified,
        )
    )

    account = _account(session, user_id)
    if account is None and context.type == "deposit":
        raise NotFoundError("Wallet not found")
    if context.type in OUTGOING_TRANSFER_TYPES and _account(session, context.recipient_id) is None:
        raise NotFoundError("Recipient not found")

    try:
        history = load_history(session, user_id, timestamp)
        received = load_received(session, user_id, timestamp)
    except SQLAlchemyError:
        # Rules that need history simply do not fire.
        logger.exception("Could not load history for %s", user_id)
        session.rollback()
        history, received = None, None

    return TransactionContext(
        user_id=context.user_id,
        type=context.type,
        amount=context.amount,
        timestamp=context.timestamp,
        recipient_id=context.recipient_id,
        ip_address=context.ip_address,
        location=context.location,
        account_created_at=to_naive_utc(account.created_at) if account else None,
        wallet_balance=float(account.balance) if account else None,
        step_up_verified=context.step_up_verified,
        history=history,
        received=received,
    )
