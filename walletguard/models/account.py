from sqlalchemy import Column, DateTime, Integer, Numeric, String

from .base import Base, utcnow


class WalletAccount(Base):
    __tablename__ = "wallet_accounts"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(255), unique=True, nullable=False)
    display_name = Column(String(255), nullable=True)
    balance = Column(Numeric(18, 2), nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
