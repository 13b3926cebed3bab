"""
Turns rule triggers and an optional advisor opinion into a final 0-100 score,
a risk level and an action.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from walletguard.config import Config
from walletguard.rules import CATEGORIES, RuleTrigger
from walletguard.services.advisor import AdvisorOpinion

# (inclusive lower bound, level, action), highest first
THRESHOLDS: Tuple[Tuple[int, str, str], ...] = (
    (80, "CRITICAL", "BLOCK"),
    (60, "HIGH", "REVIEW"),
    (40, "MEDIUM", "CHALLENGE"),
    (20, "LOW", "ALLOW"),
    (0, "MINIMAL", "ALLOW"),
)

HOLDING_ACTIONS = ("REVIEW", "BLOCK")


@dataclass(frozen=True)
class RiskAssessment:
    base_score: int
    severity_multiplier: float
    count_multiplier: float
    rule_score: int
    final_score: int
    risk_level: str
    action: str
    detection_method: str
    triggered: List[RuleTrigger] = field(default_factory=list)
    breakdown: Dict[str, Any] = field(default_factory=dict)
    summary: str = ""
    agreement: Optional[Dict[str, Any]] = None

    @property
    def holds_funds(self) -> bool:
        return self.action in HOLDING_ACTIONS

    @property
    def triggered_rule_ids(self) -> List[str]:
        return [t.rule_id for t in self.triggered]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def severity_multiplier(triggered: List[RuleTrigger]) -> float:
    high = sum(1 for t in triggered if t.severity == "HIGH")
    medium = sum(1 for t in triggered if t.severity == "MEDIUM")
    if high >= 3:
        return 1.5
    if high == 2:
        return 1.3
    if high == 1:
        return 1.2
    if medium >= 3:
        return 1.15
    return 1.0


def count_multiplier(count: int) -> float:
    if count >= 10:
        return 1.5
    if count >= 7:
        return 1.3
    if count >= 5:
        return 1.2
    if count >= 3:
        return 1.1
    return 1.0


def classify(score: int) -> Tuple[str, str]:
    for lower, level, action in THRESHOLDS:
        if score >= lower:
            return level, action
    return THRESHOLDS[-1][1], THRESHOLDS[-1][2]


def rules_score(triggered: List[RuleTrigger]) -> Tuple[int, float, float, int]:
    base = sum(t.weight for t in triggered)
    sev = severity_multiplier(triggered)
    cnt = count_multiplier(len(triggered))
    return base, sev, cnt, min(100, round_half_up(base * sev * cnt))


def advisor_weight(confidence: int) -> float:
    """Advisor share of the fused score; the rules keep the remainder."""
    if confidence < Config.FUSION_MIN_CONFIDENCE:
        return 0.0
    return Config.FUSION_MAX_ADVISOR_WEIGHT * min(confidence, 100) / 100.0


def fuse(rule_score: int, opinion: Optional[AdvisorOpinion]) -> Tuple[int, str]:
    if opinion is None or not opinion.available or opinion.risk_score is None:
        return rule_score, "rules"
    weight = advisor_weight(opinion.confidence or 0)
    if weight == 0.0:
        return rule_score, "rules"
    fused = (1 - weight) * rule_score + weight * opinion.risk_score
    return max(0, min(100, round_half_up(fused))), "hybrid"


def category_breakdown(triggered: List[RuleTrigger]) -> Dict[str, Any]:
    breakdown = {}
    for category in CATEGORIES:
        hits = [t for t in triggered if t.category == category]
        breakdown[category] = {
            "count": len(hits),
            "weight": sum(t.weight for t in hits),
            "rules": [t.rule_id for t in hits],
        }
    return breakdown


def summarize(triggered: List[RuleTrigger], final_score: int, level: str) -> str:
    if not triggered:
        return f"No rules triggered; score {final_score} ({level})"
    parts = []
    for category in CATEGORIES:
        count = sum(1 for t in triggered if t.category == category)
        if count:
            parts.append(f"{count} {category}")
    return f"{len(triggered)} rule(s) triggered ({', '.join(parts)}); score {final_score} ({level})"


def agreement(rule_score: int, opinion: Optional[AdvisorOpinion]) -> Optional[Dict[str, Any]]:
    if opinion is None or not opinion.available or opinion.risk_score is None:
        return None
    difference = abs(rule_score - opinion.risk_score)
    if difference <= 10:
        level = "STRONG"
    elif difference <= 30:
        level = "MODERATE"
    elif difference <= 50:
        level = "WEAK"
    else:
        level = "DISAGREE"
    rules_action = classify(rule_score)[1]
    advisor_action = classify(opinion.risk_score)[1]
    return {
        "rules_score": rule_score,
        "advisor_score": opinion.risk_score,
        "difference": difference,
        "level": level,
        "rules_action": rules_action,
        "advisor_action": advisor_action,
        "actions_agree": rules_action == advisor_action,
    }


def assess(triggers: List[RuleTrigger], opinion: Optional[AdvisorOpinion] = None) -> RiskAssessment:
    triggered = [t for t in triggers if t.triggered]
    base, sev, cnt, rule_only = rules_score(triggered)
    final, method = fuse(rule_only, opinion)
    level, action = classify(final)
    return RiskAssessment(
        base_score=base,
        severity_multiplier=sev,
        count_multiplier=cnt,
        rule_score=rule_only,
        final_score=final,
        risk_level=level,
        action=action,
        detection_method=method,
        triggered=triggered,
        breakdown=category_breakdown(triggered),
        summary=summarize(triggered, final, level),
        agreement=agreement(rule_only, opinion),
    )
