from sqlalchemy import Column, DateTime, Enum, Integer, String, Numeric, Boolean

from .base import Base, utcnow

TRANSACTION_TYPES = ("deposit", "withdrawal", "transfer_sent", "payment")
TRANSACTION_STATUS = ("completed", "held", "challenge_required", "failed", "cancelled")


class TransactionLog(Base):
    __tablename__ = "transaction_logs"

    id = Column(Integer, primary_key=True)
    tx_reference = Column(String(100), unique=True, nullable=False)
    user_id = Column(String(255), nullable=False, index=True)
    recipient_id = Column(String(255), nullable=True, index=True)
    type = Column(Enum(*TRANSACTION_TYPES, name="transaction_type", create_constraint=False), nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    status = Column(Enum(*TRANSACTION_STATUS, name="transaction_status", create_constraint=False), nullable=False)
    ip_address = Column(String(100), nullable=True)
    location = Column(String(255), nullable=True)
    step_up_verified = Column(Boolean, default=False, nullable=False)
    tx_datetime = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
