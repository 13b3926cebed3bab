"""
Per-user trust score: a time-decayed weighted average of past final scores.
Lower is better. Computed from stored history on every call.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import or_, select

from walletguard.config import Config
from walletguard.context import to_naive_utc
from walletguard.models import FraudLog, utcnow
from walletguard.services.scoring import classify

TREND_WINDOWS = (7, 30, 90, 180)


@dataclass(frozen=True)
class TrustParameters:
    half_life_days: float = 60.0
    lookback_days: int = 180
    min_weight: float = 0.05
    recency_bonus: float = 1.5
    recency_count: int = 10
    min_history: int = 5
    new_user_cap: float = 30.0
    good_threshold: float = 20.0

    @classmethod
    def from_config(cls) -> "TrustParameters":
        return cls(
            half_life_days=Config.TRUST_HALF_LIFE_DAYS,
            lookback_days=Config.TRUST_LOOKBACK_DAYS,
            min_weight=Config.TRUST_MIN_WEIGHT,
            recency_bonus=Config.TRUST_RECENCY_BONUS,
            recency_count=Config.TRUST_RECENCY_COUNT,
            min_history=Config.TRUST_MIN_HISTORY,
            new_user_cap=Config.TRUST_NEW_USER_CAP,
            good_threshold=Config.TRUST_GOOD_THRESHOLD,
        )


def _age_days(now: datetime, ts: datetime) -> float:
    return max(0.0, (now - ts).total_seconds() / 86400.0)


def decay_weight(age_days: float, params: TrustParameters) -> float:
    return max(0.5 ** (age_days / params.half_life_days), params.min_weight)


def window_averages(entries: Sequence[Tuple[float, datetime]], now: datetime) -> Dict[int, Optional[float]]:
    averages = {}
    for days in TREND_WINDOWS:
        scores = [score for score, ts in entries if _age_days(now, ts) <= days]
        averages[days] = sum(scores) / len(scores) if scores else None
    return averages


def trend(averages: Dict[int, Optional[float]]) -> str:
    present = [averages[days] for days in TREND_WINDOWS if averages.get(days) is not None]
    if len(present) < 2:
        return "insufficient_data"
    recent, widest = present[0], present[-1]
    if recent < widest:
        return "improving"
    if recent > widest:
        return "declining"
    return "stable"


def days_to_recovery(score: float, params: TrustParameters) -> int:
    if score <= params.good_threshold or score <= 0:
        return 0
    decay_rate = math.log(2) / params.half_life_days
    return int(math.ceil(math.log(score / params.good_threshold) / decay_rate))


def compute_trust(entries: Sequence[Tuple[float, datetime]], now: datetime = None, params: TrustParameters = None) -> Dict[str, Any]:
    """Pure computation over (final_score, timestamp) pairs."""
    now = now or utcnow()
    params = params or TrustParameters()
    window = [
        (float(score), ts)
        for score, ts in entries
        if _age_days(now, ts) <= params.lookback_days
    ]
    window.sort(key=lambda item: item[1], reverse=True)

    if not window:
        score, method = 0.0, "no_history"
    elif len(window) < params.min_history:
        score = min(sum(s for s, _ in window) / len(window), params.new_user_cap)
        method = "new_user"
    else:
        weighted, total_weight = 0.0, 0.0
        for index, (value, ts) in enumerate(window):
            weight = decay_weight(_age_days(now, ts), params)
            if index < params.recency_count:
                weight *= params.recency_bonus
            weighted += value * weight
            total_weight += weight
        score = weighted / total_weight
        method = "time_decayed"

    averages = window_averages(window, now)
    return {
        "trust_score": round(score, 2),
        "risk_level": classify(int(math.floor(score + 0.5)))[0],
        "method": method,
        "transactions_considered": len(window),
        "trend": trend(averages),
        "window_averages": {f"{days}d": (round(avg, 2) if avg is not None else None) for days, avg in averages.items()},
        "days_to_recovery": days_to_recovery(score, params),
        "good_threshold": params.good_threshold,
    }


def user_score_history(session, user_id: str, since: datetime) -> List[Tuple[float, datetime]]:
    rows = session.execute(
        select(FraudLog.final_score, FraudLog.created_at).where(
            FraudLog.user_id == user_id,
            FraudLog.created_at >= since,
            or_(FraudLog.ground_truth.is_(None), FraudLog.ground_truth != "legitimate"),
        )
    ).all()
    return [(float(score), to_naive_utc(created)) for score, created in rows]


def get_user_trust(session, user_id: str, now: datetime = None) -> Dict[str, Any]:
    now = now or utcnow()
    params = TrustParameters.from_config()
    history = user_score_history(session, user_id, now - timedelta(days=params.lookback_days))
    result = compute_trust(history, now, params)
    result["user_id"] = user_id
    return result
