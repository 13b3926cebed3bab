"""
Ledger-backed wallet collaborator.

All operations work inside the caller's session and never commit, so a
decision, its funds hold and the balance changes land in one transaction.
"""

import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update

from walletguard.errors import ConflictError, InsufficientFunds, NotFoundError, ValidationError
from walletguard.models import FundsHold, WalletAccount, utcnow

logger = logging.getLogger(__name__)

# Source debited, beneficiary credited, keyed by transaction type.
FLOW_FOR_TYPE = {
    "transfer_sent": ("user", "recipient"),
    "payment": ("user", "recipient"),
    "deposit": (None, "user"),
    "withdrawal": ("user", None),
}


def to_amount(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


def parties_for(tx_type: str, user_id: str, recipient_id: Optional[str]):
    try:
        source_key, beneficiary_key = FLOW_FOR_TYPE[tx_type]
    except KeyError:
        raise ValidationError(f"Invalid transaction type: {tx_type}")
    pick = {"user": user_id, "recipient": recipient_id, None: None}
    return pick[source_key], pick[beneficiary_key]


class LedgerWallet:
    def __init__(self, session):
        self.session = session

    def account(self, user_id: str) -> Optional[WalletAccount]:
        return self.session.execute(
            select(WalletAccount).where(WalletAccount.user_id == user_id)
        ).scalar_one_or_none()

    def balance(self, user_id: str) -> Optional[Decimal]:
        acct = self.account(user_id)
        return acct.balance if acct else None

    def _adjust(self, user_id: str, delta: Decimal, *criteria) -> Optional[WalletAccount]:
        # Arithmetic happens in SQL; a balance is never read, modified and written back.
        result = self.session.execute(
            update(WalletAccount)
            .where(WalletAccount.user_id == user_id, *criteria)
            .values(balance=WalletAccount.balance + delta, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        acct = self.account(user_id)
        self.session.refresh(acct)
        return acct

    def debit(self, user_id: str, amount) -> Decimal:
        amount = to_amount(amount)
        acct = self._adjust(user_id, -amount, WalletAccount.balance >= amount)
        if acct is None:
            raise InsufficientFunds("Insufficient balance")
        return acct.balance

    def credit(self, user_id: str, amount) -> Decimal:
        amount = to_amount(amount)
        acct = self._adjust(user_id, amount)
        if acct is None:
            raise NotFoundError(f"Wallet for {user_id} not found")
        return acct.balance

    def transfer(self, source: Optional[str], beneficiary: Optional[str], amount):
        if source:
            self.debit(source, amount)
        if beneficiary:
            self.credit(beneficiary, amount)

    def hold_and_debit(self, source: Optional[str], beneficiary: Optional[str], amount) -> str:
        """Debit the source now, park the money, return the hold reference."""
        if source:
            self.debit(source, amount)
        hold = FundsHold(
            hold_reference=f"HOLD-{uuid.uuid4().hex[:16].upper()}",
            source_user_id=source,
            beneficiary_user_id=beneficiary,
            amount=to_amount(amount),
            status="held",
        )
        self.session.add(hold)
        self.session.flush()
        return hold.hold_reference

    def _hold(self, hold_ref: str) -> FundsHold:
        hold = self.session.execute(
            select(FundsHold).where(FundsHold.hold_reference == hold_ref)
        ).scalar_one_or_none()
        if hold is None:
            raise NotFoundError(f"Hold {hold_ref} not found")
        return hold

    def _swap_status(self, hold: FundsHold, allowed, new_status: str):
        result = self.session.execute(
            update(FundsHold)
            .where(FundsHold.id == hold.id, FundsHold.status.in_(allowed))
            .values(status=new_status, resolved_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(f"Hold {hold.hold_reference} is no longer {'/'.join(allowed)}")
        self.session.refresh(hold)

    def release(self, hold_ref: str) -> FundsHold:
        """Credit the beneficiary. A confiscated hold can still be released on appeal."""
        hold = self._hold(hold_ref)
        self._swap_status(hold, ("held", "confiscated"), "released")
        if hold.beneficiary_user_id:
            self.credit(hold.beneficiary_user_id, hold.amount)
        logger.info("Released hold %s (%s)", hold.hold_reference, hold.amount)
        return hold

    def confiscate(self, hold_ref: str) -> FundsHold:
        hold = self._hold(hold_ref)
        self._swap_status(hold, ("held",), "confiscated")
        logger.info("Confiscated hold %s (%s)", hold.hold_reference, hold.amount)
        return hold
