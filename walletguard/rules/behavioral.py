from datetime import timedelta

from .base import rule

ONE_HOUR = timedelta(hours=1)
ONE_DAY = timedelta(hours=24)
HALF_HOUR = timedelta(minutes=30)
DORMANCY = timedelta(days=30)
OUTGOING_TYPES = ("transfer_sent", "payment", "withdrawal")


@rule("BEH-001", "New Account High-Value Transaction", "behavioral", "HIGH", 30)
def new_account_high_value(ctx):
    """Account younger than 24 hours moving more than 1,000."""
    if ctx.account_created_at is None:
        return False
    return ctx.timestamp - ctx.account_created_at < ONE_DAY and ctx.amount > 1000


@rule("BEH-002", "First Transaction High Value", "behavioral", "MEDIUM", 20)
def first_transaction_high_value(ctx):
    """Very first transaction above 5,000."""
    if ctx.history is None:
        return False
    return len(ctx.history) == 0 and ctx.amount > 5000


@rule("BEH-003", "Dormant Account Reactivation", "behavioral", "MEDIUM", 15)
def dormant_reactivation(ctx):
    """Previous transaction more than 30 days ago."""
    last = ctx.last_transaction()
    if last is None:
        return False
    return ctx.timestamp - last.timestamp > DORMANCY


@rule("BEH-004", "Unusual Transaction Time", "behavioral", "LOW", 10)
def unusual_hour(ctx):
    """Submitted between 02:00 and 06:00."""
    return 2 <= ctx.timestamp.hour < 6


@rule("BEH-005", "Circular Transfer Pattern", "behavioral", "HIGH", 25)
def circular_transfer(ctx):
    """Recipient sent money to this user within the last hour."""
    if not ctx.recipient_id or ctx.received is None:
        return False
    return any(h.counterparty_id == ctx.recipient_id for h in ctx.received_within(ONE_HOUR))


@rule("BEH-006", "Multiple Recipients Pattern", "behavioral", "HIGH", 20)
def many_recipients(ctx):
    """Five or more distinct recipients in the last hour."""
    recipients = {h.counterparty_id for h in ctx.history_within(ONE_HOUR) if h.counterparty_id}
    return len(recipients) >= 5


@rule("BEH-007", "Rapid Withdrawal After Deposit", "behavioral", "MEDIUM", 15)
def withdrawal_after_deposit(ctx):
    if ctx.type not in OUTGOING_TYPES:
        return False
    deposits = [
        h for h in ctx.history_within(HALF_HOUR)
        if h.type == "deposit" and h.status == "completed"
    ]
    if not deposits:
        return False
    latest = max(deposits, key=lambda h: h.timestamp)
    return abs(latest.amount - ctx.amount) < 100


@rule("BEH-008", "High Weekend Activity", "behavioral", "LOW", 8)
def weekend_activity(ctx):
    """Ten or more transactions in 24 hours on a Saturday or Sunday."""
    return ctx.timestamp.weekday() >= 5 and len(ctx.history_within(ONE_DAY)) >= 10


@rule("BEH-009", "Repetitive Recipient Pattern", "behavioral", "MEDIUM", 12)
def repeated_recipient(ctx):
    """Five or more transfers to the same recipient in 24 hours."""
    if not ctx.recipient_id:
        return False
    same = [h for h in ctx.history_within(ONE_DAY) if h.counterparty_id == ctx.recipient_id]
    return len(same) >= 5


@rule("BEH-010", "Account Balance Draining", "behavioral", "MEDIUM", 15)
def balance_draining(ctx):
    """Outgoing amount above 95% of the wallet balance."""
    if ctx.type not in OUTGOING_TYPES or not ctx.wallet_balance:
        return False
    return ctx.amount > ctx.wallet_balance * 0.95
