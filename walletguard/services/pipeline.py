"""
Decision pipeline: snapshot -> rules (advisor in parallel) -> fusion ->
durable FraudLog -> money movement, all committed together.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from walletguard.context import TransactionContext
from walletguard.errors import InsufficientFunds, NotFoundError, PersistenceFailure
from walletguard.models import DispositionEvent, FraudLog, TransactionLog
from walletguard.services import rule_engine, scoring
from walletguard.services.advisor import AdvisorOpinion, RiskAdvisor, get_advisor
from walletguard.services.history import build_context
from walletguard.services.scoring import RiskAssessment
from walletguard.services.wallet import LedgerWallet, parties_for, to_amount

logger = logging.getLogger(__name__)

DISPOSITION_FOR_ACTION = {
    "ALLOW": "not_held",
    "CHALLENGE": "not_held",
    "REVIEW": "pending_review",
    "BLOCK": "blocked",
}


@dataclass
class Decision:
    action: str
    risk_level: str
    score: int
    fraud_log_id: int
    transaction_reference: str
    transaction_status: str
    disposition: str
    held_funds_reference: Optional[str] = None
    assessment: Optional[RiskAssessment] = None
    opinion: Optional[AdvisorOpinion] = None

    @property
    def appealable(self) -> bool:
        return self.disposition in ("blocked", "confirmed_fraud")

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "action": self.action,
            "riskLevel": self.risk_level,
            "score": self.score,
            "fraudLogId": self.fraud_log_id,
            "transactionReference": self.transaction_reference,
            "transactionStatus": self.transaction_status,
            "disposition": self.disposition,
            "appealable": self.appealable,
        }
        if self.held_funds_reference:
            payload["heldFundsReference"] = self.held_funds_reference
        if self.action == "CHALLENGE" and self.transaction_status == "challenge_required":
            payload["message"] = "Step-up verification required"
        elif self.held_funds_reference:
            payload["message"] = "Funds held pending review"
        return payload


def assess_context(context: TransactionContext, advisor: RiskAdvisor = None) -> Tuple[RiskAssessment, AdvisorOpinion]:
    """Run rules and the advisor concurrently; never waits past the advisor budget."""
    advisor = advisor or get_advisor()
    started = time.monotonic()
    future = advisor.submit(context)
    triggers = rule_engine.evaluate(context)
    opinion = advisor.collect(future, started)
    return scoring.assess(triggers, opinion), opinion


def check_transaction(context: TransactionContext, advisor: RiskAdvisor = None) -> RiskAssessment:
    assessment, _ = assess_context(context, advisor)
    return assessment


def _transaction_status(assessment: RiskAssessment, context: TransactionContext) -> str:
    if assessment.holds_funds:
        return "held"
    if assessment.action == "CHALLENGE" and not context.step_up_verified:
        return "challenge_required"
    return "completed"


def _new_reference() -> str:
    return f"TX-{uuid.uuid4().hex[:16].upper()}"


def _record_failed_attempt(session, context: TransactionContext):
    session.rollback()
    try:
        session.add(
            TransactionLog(
                tx_reference=_new_reference(),
                user_id=context.user_id,
                recipient_id=context.recipient_id,
                type=context.type,
                amount=to_amount(context.amount),
                status="failed",
                ip_address=context.ip_address,
                location=context.location,
                step_up_verified=context.step_up_verified,
                tx_datetime=context.timestamp,
            )
        )
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Could not record failed attempt for %s", context.user_id)


def _fraud_log(tx: TransactionLog, context, assessment: RiskAssessment, opinion: AdvisorOpinion, elapsed_ms: int):
    return FraudLog(
        transaction_id=tx.id,
        user_id=context.user_id,
        transaction_type=context.type,
        amount=to_amount(context.amount),
        base_score=assessment.base_score,
        severity_multiplier=assessment.severity_multiplier,
        count_multiplier=assessment.count_multiplier,
        rule_score=assessment.rule_score,
        final_score=assessment.final_score,
        risk_level=assessment.risk_level,
        action=assessment.action,
        triggered_rules=assessment.triggered_rule_ids,
        rule_breakdown={"categories": assessment.breakdown, "summary": assessment.summary},
        detection_method=assessment.detection_method,
        execution_time_ms=elapsed_ms,
        advisor_status=opinion.status.value,
        advisor_score=opinion.risk_score,
        advisor_confidence=opinion.confidence,
        advisor_reasoning=opinion.reasoning,
        advisor_red_flags=list(opinion.red_flags) if opinion.available else None,
        advisor_latency_ms=opinion.latency_ms,
        agreement=assessment.agreement,
        disposition=DISPOSITION_FOR_ACTION[assessment.action],
        appeal_status="none",
    )


def submit_transaction(
    session,
    user_id: str,
    payload: Dict[str, Any],
    advisor: RiskAdvisor = None,
    step_up_verified: bool = False,
    now: Optional[datetime] = None,
) -> Decision:
    started = time.monotonic()
    context = build_context(session, user_id, payload, timestamp=now, step_up_verified=step_up_verified)
    assessment, opinion = assess_context(context, advisor)
    status = _transaction_status(assessment, context)
    source, beneficiary = parties_for(context.type, context.user_id, context.recipient_id)
    moves_money = status in ("completed", "held")

    wallet = LedgerWallet(session)
    if moves_money and source:
        balance = wallet.balance(source)
        if balance is None or balance < to_amount(context.amount):
            _record_failed_attempt(session, context)
            raise InsufficientFunds("Insufficient balance")

    try:
        tx = TransactionLog(
            tx_reference=_new_reference(),
            user_id=context.user_id,
            recipient_id=context.recipient_id,
            type=context.type,
            amount=to_amount(context.amount),
            status=status,
            ip_address=context.ip_address,
            location=context.location,
            step_up_verified=context.step_up_verified,
            tx_datetime=context.timestamp,
        )
        session.add(tx)
        session.flush()

        hold_ref = None
        if status == "held":
            hold_ref = wallet.hold_and_debit(source, beneficiary, context.amount)
        elif status == "completed":
            wallet.transfer(source, beneficiary, context.amount)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        log = _fraud_log(tx, context, assessment, opinion, elapsed_ms)
        log.hold_reference = hold_ref
        session.add(log)
        session.flush()
        if hold_ref:
            session.add(
                DispositionEvent(
                    fraud_log_id=log.id,
                    from_state=None,
                    to_state=log.disposition,
                    source="pipeline",
                    actor="system",
                    notes=assessment.summary,
                )
            )
        session.commit()
    except InsufficientFunds:
        _record_failed_attempt(session, context)
        raise
    except NotFoundError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Failed to persist decision for %s", context.user_id)
        raise PersistenceFailure("Could not record the fraud decision; transaction not processed") from exc

    log_fn = logger.warning if assessment.final_score >= 60 else logger.info
    log_fn(
        "Decision %s for %s %s %.2f: score=%s level=%s method=%s rules=%s",
        assessment.action,
        context.user_id,
        context.type,
        context.amount,
        assessment.final_score,
        assessment.risk_level,
        assessment.detection_method,
        ",".join(assessment.triggered_rule_ids) or "-",
    )
    return Decision(
        action=assessment.action,
        risk_level=assessment.risk_level,
        score=assessment.final_score,
        fraud_log_id=log.id,
        transaction_reference=tx.tx_reference,
        transaction_status=status,
        disposition=log.disposition,
        held_funds_reference=hold_ref,
        assessment=assessment,
        opinion=opinion,
    )
