from datetime import timedelta

from .base import rule

LARGE_TRANSACTION = 50000
REPORTING_THRESHOLD = 10000
STRUCTURING_FLOOR = 9500
DAILY_LIMIT = 100000
ROUND_AMOUNTS = {1000, 5000, 10000, 20000, 50000, 100000}
COMMON_CENTS = {0, 25, 50, 75}

ONE_DAY = timedelta(hours=24)
THIRTY_DAYS = timedelta(days=30)


def _cents(amount: float) -> int:
    return int(round(amount * 100)) % 100


@rule("AMT-001", "Large Single Transaction", "amount", "HIGH", 30)
def large_transaction(ctx):
    """Amount above the large-value ceiling."""
    return ctx.amount > LARGE_TRANSACTION


@rule("AMT-002", "Structuring Pattern (Just Below Threshold)", "amount", "HIGH", 25)
def structuring(ctx):
    """Amount just under the reporting threshold."""
    return STRUCTURING_FLOOR <= ctx.amount < REPORTING_THRESHOLD


@rule("AMT-003", "Exact Round Number Transaction", "amount", "MEDIUM", 10)
def round_number(ctx):
    """Amount exactly equal to a common laundering round figure."""
    return ctx.amount in ROUND_AMOUNTS


@rule("AMT-004", "Micro-Transaction Testing", "amount", "MEDIUM", 15)
def micro_deposit(ctx):
    """Sub-unit deposit typical of card testing."""
    return ctx.type == "deposit" and ctx.amount < 1


@rule("AMT-005", "Repetitive Amount Pattern", "amount", "MEDIUM", 15)
def repeated_amount(ctx):
    """Same exact amount used at least three times in 24 hours."""
    same = [h for h in ctx.history_within(ONE_DAY) if round(h.amount, 2) == round(ctx.amount, 2)]
    return len(same) >= 3


@rule("AMT-006", "Amount Deviation from User Pattern", "amount", "MEDIUM", 20)
def amount_deviation(ctx):
    """Amount more than ten times the user's 30-day average."""
    recent = ctx.history_within(THIRTY_DAYS)
    if not recent:
        return False
    average = sum(h.amount for h in recent) / len(recent)
    return average > 0 and ctx.amount > average * 10


@rule("AMT-007", "Daily Transaction Limit Exceeded", "amount", "HIGH", 25)
def daily_limit(ctx):
    """Completed 24-hour total plus this amount above the daily ceiling."""
    total = sum(h.amount for h in ctx.history_within(ONE_DAY) if h.status == "completed")
    return total + ctx.amount > DAILY_LIMIT


@rule("AMT-008", "Unusual Decimal Precision", "amount", "LOW", 5)
def unusual_decimals(ctx):
    """Large amount with uncommon cents, a layering hint."""
    return ctx.amount > 1000 and _cents(ctx.amount) not in COMMON_CENTS
