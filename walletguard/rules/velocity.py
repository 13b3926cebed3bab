from datetime import timedelta

from .base import rule

ONE_MINUTE = timedelta(minutes=1)
ONE_HOUR = timedelta(hours=1)
ONE_DAY = timedelta(hours=24)


@rule("VEL-001", "High Frequency Transactions", "velocity", "HIGH", 25)
def high_frequency(ctx):
    """Five or more earlier transactions inside the last minute."""
    return len(ctx.history_within(ONE_MINUTE)) >= 5


@rule("VEL-002", "Rapid Sequential Transactions", "velocity", "MEDIUM", 20)
def rapid_sequential(ctx):
    """Previous transaction less than five seconds ago."""
    last = ctx.last_transaction()
    if last is None:
        return False
    return (ctx.timestamp - last.timestamp).total_seconds() < 5


@rule("VEL-003", "Excessive Daily Transactions", "velocity", "MEDIUM", 15)
def excessive_daily(ctx):
    """Twenty or more transactions in the last 24 hours."""
    return len(ctx.history_within(ONE_DAY)) >= 20


@rule("VEL-004", "Transaction Velocity Spike", "velocity", "HIGH", 20)
def velocity_spike(ctx):
    """Last-hour count above five times the 24-hour hourly average."""
    hourly_avg = len(ctx.history_within(ONE_DAY)) / 24.0
    if hourly_avg <= 0:
        return False
    return len(ctx.history_within(ONE_HOUR)) > hourly_avg * 5


@rule("VEL-005", "Multiple Failed Transaction Attempts", "velocity", "MEDIUM", 15)
def failed_attempts(ctx):
    """Three or more failed attempts in the last hour."""
    return sum(1 for h in ctx.history_within(ONE_HOUR) if h.status == "failed") >= 3
