from sqlalchemy import Column, DateTime, Enum, Integer, Numeric, String

from .base import Base, utcnow

HOLD_STATUS = ("held", "released", "confiscated")


class FundsHold(Base):
    """Money debited from the source but not yet credited to the beneficiary."""

    __tablename__ = "funds_holds"

    id = Column(Integer, primary_key=True)
    hold_reference = Column(String(100), unique=True, nullable=False)
    source_user_id = Column(String(255), nullable=True)
    beneficiary_user_id = Column(String(255), nullable=True)
    amount = Column(Numeric(18, 2), nullable=False)
    status = Column(Enum(*HOLD_STATUS, name="hold_status", create_constraint=False), nullable=False, default="held")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
