from sqlalchemy import Column, DateTime, Enum, Float, ForeignKey, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import relationship

from .base import Base, utcnow

RISK_LEVELS = ("MINIMAL", "LOW", "MEDIUM", "HIGH", "CRITICAL")
ACTIONS = ("ALLOW", "CHALLENGE", "REVIEW", "BLOCK")
DISPOSITIONS = ("not_held", "pending_review", "blocked", "auto_approved", "approved", "confirmed_fraud")
GROUND_TRUTH_VALUES = ("fraud", "legitimate")
APPEAL_STATUS_VALUES = ("none", "pending", "approved", "rejected")
ADVISOR_STATUS_VALUES = ("ok", "timeout", "error", "disabled")


class FraudLog(Base):
    __tablename__ = "fraud_logs"

    id = Column(Integer, primary_key=True)
    transaction_id = Column(Integer, ForeignKey("transaction_logs.id"), unique=True, nullable=False)
    user_id = Column(String(255), nullable=False, index=True)
    transaction_type = Column(String(50), nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)

    base_score = Column(Integer, nullable=False, default=0)
    severity_multiplier = Column(Float, nullable=False, default=1.0)
    count_multiplier = Column(Float, nullable=False, default=1.0)
    rule_score = Column(Integer, nullable=False, default=0)
    final_score = Column(Integer, nullable=False, index=True)
    risk_level = Column(Enum(*RISK_LEVELS, name="risk_level", create_constraint=False), nullable=False)
    action = Column(Enum(*ACTIONS, name="risk_action", create_constraint=False), nullable=False)
    triggered_rules = Column(JSON, nullable=False, default=list)
    rule_breakdown = Column(JSON, nullable=True)
    detection_method = Column(String(20), nullable=False, default="rules")
    execution_time_ms = Column(Integer, nullable=True)

    advisor_status = Column(Enum(*ADVISOR_STATUS_VALUES, name="advisor_status", create_constraint=False), nullable=False, default="disabled")
    advisor_score = Column(Integer, nullable=True)
    advisor_confidence = Column(Integer, nullable=True)
    advisor_reasoning = Column(Text, nullable=True)
    advisor_red_flags = Column(JSON, nullable=True)
    advisor_latency_ms = Column(Integer, nullable=True)
    agreement = Column(JSON, nullable=True)

    disposition = Column(Enum(*DISPOSITIONS, name="disposition", create_constraint=False), nullable=False, default="not_held", index=True)
    hold_reference = Column(String(100), nullable=True)
    resolution_source = Column(String(20), nullable=True)
    resolved_by = Column(String(255), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    ground_truth = Column(Enum(*GROUND_TRUTH_VALUES, name="ground_truth", create_constraint=False), nullable=True)
    verified_by = Column(String(255), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    appeal_status = Column(Enum(*APPEAL_STATUS_VALUES, name="appeal_status", create_constraint=False), nullable=False, default="none")

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    transaction = relationship("TransactionLog")
    events = relationship("DispositionEvent", back_populates="fraud_log", order_by="DispositionEvent.id")
