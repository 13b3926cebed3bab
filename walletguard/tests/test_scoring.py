import pytest

from walletguard.rules import RuleTrigger, catalog
from walletguard.services.advisor import AdvisorOpinion, AdvisorStatus
from walletguard.services.scoring import (
    agreement,
    assess,
    classify,
    count_multiplier,
    fuse,
    round_half_up,
    rules_score,
    severity_multiplier,
)


def trig(rule_id="X-1", weight=10, severity="MEDIUM", category="amount"):
    return RuleTrigger(rule_id=rule_id, triggered=True, weight=weight, severity=severity, category=category)


def ok_opinion(score, confidence):
    return AdvisorOpinion(status=AdvisorStatus.OK, risk_score=score, confidence=confidence)


@pytest.mark.parametrize(
    "score,level,action",
    [
        (0, "MINIMAL", "ALLOW"),
        (19, "MINIMAL", "ALLOW"),
        (20, "LOW", "ALLOW"),
        (39, "LOW", "ALLOW"),
        (40, "MEDIUM", "CHALLENGE"),
        (59, "MEDIUM", "CHALLENGE"),
        (60, "HIGH", "REVIEW"),
        (79, "HIGH", "REVIEW"),
        (80, "CRITICAL", "BLOCK"),
        (100, "CRITICAL", "BLOCK"),
    ],
)
def test_threshold_boundaries(score, level, action):
    assert classify(score) == (level, action)


def test_severity_multiplier_tiers():
    assert severity_multiplier([]) == 1.0
    assert severity_multiplier([trig(severity="HIGH")]) == 1.2
    assert severity_multiplier([trig(severity="HIGH")] * 2) == 1.3
    assert severity_multiplier([trig(severity="HIGH")] * 3) == 1.5
    assert severity_multiplier([trig(severity="MEDIUM")] * 3) == 1.15
    assert severity_multiplier([trig(severity="LOW")] * 5) == 1.0


def test_count_multiplier_tiers():
    assert [count_multiplier(n) for n in (0, 2, 3, 5, 7, 10, 15)] == [1.0, 1.0, 1.1, 1.2, 1.3, 1.5, 1.5]


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(59.5) == 60
    assert round_half_up(59.49) == 59


def test_rules_score_is_capped():
    triggered = [trig(rule_id=f"R{i}", weight=30, severity="HIGH") for i in range(5)]
    base, sev, cnt, score = rules_score(triggered)
    assert base == 150
    assert (sev, cnt) == (1.5, 1.2)
    assert score == 100


def test_score_is_monotonic_as_rules_accumulate():
    definitions = sorted(catalog(), key=lambda r: r.weight)
    previous = 0
    triggered = []
    for definition in definitions:
        triggered.append(trig(definition.id, definition.weight, definition.severity, definition.category))
        score = rules_score(triggered)[3]
        assert 0 <= score <= 100
        assert score >= previous
        previous = score


def test_large_transaction_scenario_reaches_review():
    result = assess([trig("AMT-001", 30, "HIGH"), trig("AMT-006", 20, "MEDIUM")])
    assert result.base_score == 50
    assert result.final_score == 60
    assert result.action == "REVIEW"
    assert result.holds_funds
    assert result.breakdown["amount"]["count"] == 2


@pytest.mark.parametrize(
    "opinion",
    [
        None,
        AdvisorOpinion.unavailable(AdvisorStatus.TIMEOUT, "slow"),
        AdvisorOpinion.unavailable(AdvisorStatus.DISABLED, "disabled"),
        AdvisorOpinion.unavailable(AdvisorStatus.ERROR, "500"),
        ok_opinion(95, 10),
    ],
)
def test_fusion_falls_back_to_rules(opinion):
    assert fuse(55, opinion) == (55, "rules")


def test_fusion_keeps_a_floor_for_rules():
    assert fuse(50, ok_opinion(100, 100)) == (80, "hybrid")
    assert fuse(100, ok_opinion(0, 100)) == (40, "hybrid")
    assert fuse(60, ok_opinion(0, 50)) == (42, "hybrid")


def test_fusion_is_monotonic_in_confidence():
    scores = [fuse(30, ok_opinion(90, c))[0] for c in range(20, 101, 10)]
    assert scores == sorted(scores)


def test_agreement_levels():
    assert agreement(60, ok_opinion(65, 80))["level"] == "STRONG"
    assert agreement(60, ok_opinion(85, 80))["level"] == "MODERATE"
    assert agreement(10, ok_opinion(55, 80))["level"] == "WEAK"
    result = agreement(0, ok_opinion(90, 80))
    assert result["level"] == "DISAGREE"
    assert result["actions_agree"] is False
    assert agreement(50, None) is None
