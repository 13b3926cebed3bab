import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from walletguard.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from walletguard.models import Appeal, FraudLog, utcnow
from walletguard.services.disposition import APPEALABLE_DISPOSITIONS, get_fraud_log, transition

logger = logging.getLogger(__name__)

RESOLUTIONS = ("approved", "rejected")


def submit_appeal(session, fraud_log_id: int, user_id: str, reason: str) -> Appeal:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Appeal reason is required")
    try:
        log = get_fraud_log(session, fraud_log_id)
        if log.user_id != user_id:
            raise AuthorizationError("You can only appeal your own transactions")
        if log.disposition not in APPEALABLE_DISPOSITIONS:
            raise ConflictError(f"Transactions in state {log.disposition} cannot be appealed")
        existing = session.execute(
            select(Appeal.id).where(Appeal.fraud_log_id == fraud_log_id)
        ).scalar_one_or_none()
        if existing is not None or log.appeal_status != "none":
            raise ConflictError("An appeal already exists for this transaction")

        appeal = Appeal(fraud_log_id=fraud_log_id, user_id=user_id, reason=reason, status="pending")
        session.add(appeal)
        result = session.execute(
            update(FraudLog)
            .where(FraudLog.id == fraud_log_id, FraudLog.appeal_status == "none")
            .values(appeal_status="pending")
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError("An appeal already exists for this transaction")
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError("An appeal already exists for this transaction")
    except Exception:
        session.rollback()
        raise
    logger.info("Appeal %s submitted by %s for fraud log %s", appeal.id, user_id, fraud_log_id)
    return appeal


def resolve_appeal(session, appeal_id: int, status: str, admin_id: str, admin_notes: Optional[str] = None) -> Appeal:
    """
    Approve or reject a pending appeal. Approval releases the held funds via
    the disposition machine; rejection leaves the block or confiscation as is.
    """
    if status not in RESOLUTIONS:
        raise ValidationError("status must be 'approved' or 'rejected'")
    try:
        appeal = session.get(Appeal, appeal_id)
        if not appeal:
            raise NotFoundError("Appeal not found")
        log = get_fraud_log(session, appeal.fraud_log_id)
        if log.disposition not in APPEALABLE_DISPOSITIONS:
            raise ConflictError(f"Transaction is already {log.disposition}; the appeal has nothing to decide")
        result = session.execute(
            update(Appeal)
            .where(Appeal.id == appeal_id, Appeal.status == "pending")
            .values(status=status, admin_notes=admin_notes, resolved_by=admin_id, resolved_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError("Appeal has already been resolved")

        if status == "approved":
            transition(session, log, "approved", "appeal", admin_id, admin_notes or "Appeal approved")
        session.execute(
            update(FraudLog)
            .where(FraudLog.id == log.id)
            .values(appeal_status=status)
            .execution_options(synchronize_session=False)
        )
        session.commit()
        session.refresh(appeal)
        session.refresh(log)
    except Exception:
        session.rollback()
        raise
    logger.info("Appeal %s %s by %s", appeal_id, status, admin_id)
    return appeal


def list_pending_appeals(session) -> List[Appeal]:
    return session.execute(
        select(Appeal).where(Appeal.status == "pending").order_by(Appeal.created_at.asc(), Appeal.id.asc())
    ).scalars().all()
