from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import Base, utcnow

EVENT_SOURCES = ("pipeline", "admin", "auto_24hr", "appeal")


class DispositionEvent(Base):
    __tablename__ = "disposition_events"

    id = Column(Integer, primary_key=True)
    fraud_log_id = Column(Integer, ForeignKey("fraud_logs.id"), nullable=False, index=True)
    from_state = Column(String(50), nullable=True)
    to_state = Column(String(50), nullable=False)
    source = Column(Enum(*EVENT_SOURCES, name="disposition_source", create_constraint=False), nullable=False)
    actor = Column(String(255), nullable=False, default="system")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    fraud_log = relationship("FraudLog", back_populates="events")
