"""
Secondary-opinion adapter for an external reasoning service.

The service is an OpenAI-compatible chat-completions endpoint asked to answer
with a strict JSON object. Every failure mode (disabled, rate limited,
timeout, transport or parse error) comes back as an ``AdvisorOpinion`` with a
non-ok status instead of an exception, so the decision pipeline can always
fall back to rules-only scoring.
"""

import json
import logging
import threading
import time
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional

import requests

from walletguard.config import Config
from walletguard.context import TransactionContext
from walletguard.errors import AdvisorUnavailable

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a fraud analyst for a digital wallet. Assess the transaction and "
    "answer with a single JSON object only, no prose."
)


class AdvisorStatus(str, Enum):
    OK = "ok"
    TIMEOUT = "timeout"
    ERROR = "error"
    DISABLED = "disabled"


@dataclass(frozen=True)
class AdvisorOpinion:
    status: AdvisorStatus
    risk_score: Optional[int] = None
    confidence: Optional[int] = None
    reasoning: Optional[str] = None
    red_flags: List[str] = field(default_factory=list)
    recommended_checks: List[str] = field(default_factory=list)
    latency_ms: int = 0
    detail: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.status is AdvisorStatus.OK

    @classmethod
    def unavailable(cls, status: AdvisorStatus, detail: str, latency_ms: int = 0) -> "AdvisorOpinion":
        return cls(status=status, detail=detail, latency_ms=latency_ms)


class RateLimiter:
    """Rolling per-minute window plus a per-UTC-day counter."""

    def __init__(self, per_minute: int, per_day: int, clock=time.monotonic):
        self.per_minute = per_minute
        self.per_day = per_day
        self._clock = clock
        self._recent = deque()
        self._day = None
        self._day_count = 0
        self._lock = threading.Lock()

    def acquire(self) -> bool:
        with self._lock:
            now = self._clock()
            while self._recent and now - self._recent[0] >= 60:
                self._recent.popleft()
            today = datetime.now(timezone.utc).date()
            if today != self._day:
                self._day = today
                self._day_count = 0
            if len(self._recent) >= self.per_minute or self._day_count >= self.per_day:
                return False
            self._recent.append(now)
            self._day_count += 1
            return True


def _clamp_int(value, low: int = 0, high: int = 100) -> int:
    number = int(round(float(value)))
    return max(low, min(high, number))


def build_prompt(context: TransactionContext) -> str:
    history = context.history or ()
    recent_day = context.history_within(timedelta(hours=24))
    average = sum(h.amount for h in history) / len(history) if history else 0.0
    lines = [
        f"Transaction type: {context.type}",
        f"Amount: {context.amount:.2f}",
        f"Timestamp (UTC): {context.timestamp.isoformat()}",
        f"Recipient: {context.recipient_id or 'n/a'}",
        f"Location: {context.location or 'unknown'}",
        f"Wallet balance: {context.wallet_balance if context.wallet_balance is not None else 'unknown'}",
        f"Account created: {context.account_created_at.isoformat() if context.account_created_at else 'unknown'}",
        f"History available: {'yes' if context.history is not None else 'no'}",
        f"Transactions on record: {len(history)}",
        f"Transactions in last 24h: {len(recent_day)}",
        f"Average historical amount: {average:.2f}",
        "",
        "Respond with JSON: "
        '{"riskScore": 0-100, "confidence": 0-100, "reasoning": "...", '
        '"redFlags": ["..."], "recommendedChecks": ["..."]}',
    ]
    return "\n".join(lines)


def parse_opinion(content: str, latency_ms: int) -> AdvisorOpinion:
    text = content.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    try:
        data = json.loads(text)
        score = _clamp_int(data["riskScore"])
        confidence = _clamp_int(data.get("confidence", 0))
    except (ValueError, KeyError, TypeError) as exc:
        raise AdvisorUnavailable(AdvisorStatus.ERROR.value, f"unparseable response: {exc}")
    return AdvisorOpinion(
        status=AdvisorStatus.OK,
        risk_score=score,
        confidence=confidence,
        reasoning=str(data.get("reasoning") or ""),
        red_flags=[str(f) for f in data.get("redFlags") or []],
        recommended_checks=[str(c) for c in data.get("recommendedChecks") or []],
        latency_ms=latency_ms,
    )


class RiskAdvisor:
    def __init__(
        self,
        enabled: bool = None,
        api_key: str = None,
        url: str = None,
        model: str = None,
        timeout: float = None,
        rate_limiter: RateLimiter = None,
        max_workers: int = 4,
    ):
        self.enabled = Config.ADVISOR_ENABLED if enabled is None else enabled
        self.api_key = api_key if api_key is not None else Config.ADVISOR_API_KEY
        self.url = url or Config.ADVISOR_URL
        self.model = model or Config.ADVISOR_MODEL
        self.timeout = timeout if timeout is not None else Config.ADVISOR_TIMEOUT_SECONDS
        self.rate_limiter = rate_limiter or RateLimiter(Config.ADVISOR_MAX_PER_MINUTE, Config.ADVISOR_MAX_PER_DAY)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="advisor")

    def _call(self, context: TransactionContext) -> AdvisorOpinion:
        started = time.monotonic()
        try:
            resp = requests.post(
                self.url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": build_prompt(context)},
                    ],
                    "temperature": 0,
                    "max_tokens": 400,
                },
                timeout=self.timeout,
            )
        except requests.Timeout:
            raise AdvisorUnavailable(AdvisorStatus.TIMEOUT.value, "request timed out")
        except requests.RequestException as exc:
            raise AdvisorUnavailable(AdvisorStatus.ERROR.value, f"request failed: {exc}")
        latency_ms = int((time.monotonic() - started) * 1000)
        if not resp.ok:
            raise AdvisorUnavailable(AdvisorStatus.ERROR.value, f"HTTP {resp.status_code}: {resp.text[:200]}")
        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise AdvisorUnavailable(AdvisorStatus.ERROR.value, f"unexpected response shape: {exc}")
        return parse_opinion(content, latency_ms)

    def _run(self, context: TransactionContext) -> AdvisorOpinion:
        try:
            return self._call(context)
        except AdvisorUnavailable as exc:
            return AdvisorOpinion.unavailable(AdvisorStatus(exc.status), exc.detail)

    def submit(self, context: TransactionContext) -> Future:
        """Start an assessment in the background; the future never raises."""
        if not self.enabled or not self.api_key:
            future = Future()
            future.set_result(AdvisorOpinion.unavailable(AdvisorStatus.DISABLED, "disabled"))
            return future
        if not self.rate_limiter.acquire():
            future = Future()
            future.set_result(AdvisorOpinion.unavailable(AdvisorStatus.DISABLED, "rate_limited"))
            return future
        return self._executor.submit(self._run, context)

    def collect(self, future: Future, started: float = None) -> AdvisorOpinion:
        """Wait for a submitted assessment, at most the remaining timeout budget."""
        started = started if started is not None else time.monotonic()
        remaining = max(0.0, self.timeout - (time.monotonic() - started))
        try:
            opinion = future.result(timeout=remaining)
        except FutureTimeout:
            future.cancel()
            opinion = AdvisorOpinion.unavailable(
                AdvisorStatus.TIMEOUT, "timeout budget exhausted", int(self.timeout * 1000)
            )
        if not opinion.available:
            logger.warning("Advisor unavailable (%s: %s); using rules only", opinion.status.value, opinion.detail)
        return opinion

    def assess(self, context: TransactionContext) -> AdvisorOpinion:
        started = time.monotonic()
        return self.collect(self.submit(context), started)

    def shutdown(self):
        self._executor.shutdown(wait=False)


_default_advisor: Optional[RiskAdvisor] = None


def get_advisor() -> RiskAdvisor:
    global _default_advisor
    if _default_advisor is None:
        _default_advisor = RiskAdvisor()
    return _default_advisor


def set_advisor(advisor: Optional[RiskAdvisor]):
    global _default_advisor
    _default_advisor = advisor
