"""
Disposition state machine for held transactions.

Every change goes through ``transition``, which checks the central table,
swaps the state with a compare-and-set update, moves the held money and
writes an audit event. A writer that loses the race gets a ConflictError.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import select, update

from walletguard.config import Config
from walletguard.errors import ConflictError, NotFoundError, ValidationError
from walletguard.models import Appeal, DispositionEvent, FraudLog, utcnow
from walletguard.services.wallet import LedgerWallet

logger = logging.getLogger(__name__)

# (source) -> {from_state: allowed to_states}
TRANSITIONS = {
    "admin": {
        "pending_review": {"approved", "confirmed_fraud"},
        "blocked": {"approved", "confirmed_fraud"},
    },
    "auto_24hr": {
        "pending_review": {"auto_approved"},
    },
    "appeal": {
        "blocked": {"approved"},
        "confirmed_fraud": {"approved"},
    },
}

APPEALABLE_DISPOSITIONS = ("blocked", "confirmed_fraud")
RELEASE_STATES = ("approved", "auto_approved")
CONFISCATE_STATES = ("confirmed_fraud",)
ADMIN_DECISIONS = {"approve": "approved", "confiscate": "confirmed_fraud"}


def can_transition(source: str, from_state: str, to_state: str) -> bool:
    return to_state in TRANSITIONS.get(source, {}).get(from_state, set())


def _close_pending_appeal(session, log: FraudLog, actor: str, now):
    """An appeal against a log that was released some other way has nothing left to decide."""
    result = session.execute(
        update(Appeal)
        .where(Appeal.fraud_log_id == log.id, Appeal.status == "pending")
        .values(
            status="rejected",
            admin_notes=f"Closed: transaction already resolved by {actor}",
            resolved_by=actor,
            resolved_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount:
        session.execute(
            update(FraudLog)
            .where(FraudLog.id == log.id, FraudLog.appeal_status == "pending")
            .values(appeal_status="rejected")
            .execution_options(synchronize_session=False)
        )
        logger.info("Closed pending appeal on fraud log %s", log.id)


def transition(session, log: FraudLog, to_state: str, source: str, actor: str, notes: Optional[str] = None) -> FraudLog:
    """Apply one transition inside the caller's session; the caller commits."""
    seen = log.disposition
    if not can_transition(source, seen, to_state):
        raise ConflictError(f"Fraud log {log.id} cannot move from {seen} to {to_state} via {source}")

    now = utcnow()
    result = session.execute(
        update(FraudLog)
        .where(FraudLog.id == log.id, FraudLog.disposition == seen)
        .values(
            disposition=to_state,
            resolution_source=source,
            resolved_by=actor,
            resolved_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise ConflictError(f"Fraud log {log.id} was resolved concurrently")

    if log.hold_reference:
        wallet = LedgerWallet(session)
        if to_state in RELEASE_STATES:
            wallet.release(log.hold_reference)
        elif to_state in CONFISCATE_STATES:
            wallet.confiscate(log.hold_reference)

    session.add(
        DispositionEvent(
            fraud_log_id=log.id,
            from_state=seen,
            to_state=to_state,
            source=source,
            actor=actor,
            notes=notes,
        )
    )
    if source != "appeal" and to_state not in APPEALABLE_DISPOSITIONS:
        _close_pending_appeal(session, log, actor, now)

    session.flush()
    session.refresh(log)
    logger.info("Fraud log %s: %s -> %s (%s by %s)", log.id, seen, to_state, source, actor)
    return log


def get_fraud_log(session, fraud_log_id: int) -> FraudLog:
    log = session.get(FraudLog, fraud_log_id)
    if not log:
        raise NotFoundError("Fraud log not found")
    return log


def resolve(session, fraud_log_id: int, decision: str, actor: str, notes: Optional[str] = None) -> FraudLog:
    """Admin approve or confiscate of a held transaction."""
    to_state = ADMIN_DECISIONS.get((decision or "").lower())
    if to_state is None:
        raise ValidationError("decision must be 'approve' or 'confiscate'")
    try:
        log = get_fraud_log(session, fraud_log_id)
        transition(session, log, to_state, "admin", actor, notes)
        session.commit()
        return log
    except Exception:
        session.rollback()
        raise


def auto_approve_expired(session, now=None, hold_hours: int = None) -> int:
    """
    Release every pending review older than the holding period. Safe to run
    redundantly: a log resolved in between is skipped, not released twice.
    """
    now = now or utcnow()
    hold_hours = Config.REVIEW_HOLD_HOURS if hold_hours is None else hold_hours
    cutoff = now - timedelta(hours=hold_hours)
    candidates = session.execute(
        select(FraudLog.id).where(
            FraudLog.disposition == "pending_review",
            FraudLog.created_at <= cutoff,
        )
    ).scalars().all()

    count = 0
    for log_id in candidates:
        log = session.get(FraudLog, log_id)
        try:
            transition(
                session,
                log,
                "auto_approved",
                "auto_24hr",
                "system",
                f"No admin action within {hold_hours} hours",
            )
            session.commit()
            count += 1
        except ConflictError:
            session.rollback()
            logger.info("Fraud log %s already resolved; skipping auto-approval", log_id)
        except Exception:
            session.rollback()
            raise
    if candidates:
        logger.info("Auto-approved %s of %s expired reviews", count, len(candidates))
    return count


def list_pending_review(session, include_blocked: bool = True) -> List[FraudLog]:
    states = ("pending_review", "blocked") if include_blocked else ("pending_review",)
    return session.execute(
        select(FraudLog)
        .where(FraudLog.disposition.in_(states))
        .order_by(FraudLog.created_at.asc(), FraudLog.id.asc())
    ).scalars().all()


def list_events(session, fraud_log_id: int) -> List[DispositionEvent]:
    get_fraud_log(session, fraud_log_id)
    return session.execute(
        select(DispositionEvent)
        .where(DispositionEvent.fraud_log_id == fraud_log_id)
        .order_by(DispositionEvent.id.asc())
    ).scalars().all()
