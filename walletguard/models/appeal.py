from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import Base, utcnow

APPEAL_STATUS = ("pending", "approved", "rejected")


class Appeal(Base):
    __tablename__ = "appeals"

    id = Column(Integer, primary_key=True)
    fraud_log_id = Column(Integer, ForeignKey("fraud_logs.id"), unique=True, nullable=False)
    user_id = Column(String(255), nullable=False)
    reason = Column(Text, nullable=False)
    status = Column(Enum(*APPEAL_STATUS, name="appeal_state", create_constraint=False), nullable=False, default="pending")
    admin_notes = Column(Text, nullable=True)
    resolved_by = Column(String(255), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    fraud_log = relationship("FraudLog")
