from dataclasses import dataclass
from typing import Callable, Dict, List

from walletguard.context import TransactionContext

CATEGORIES = ("velocity", "amount", "behavioral")
SEVERITIES = ("HIGH", "MEDIUM", "LOW")


@dataclass(frozen=True)
class RuleDefinition:
    id: str
    name: str
    category: str
    severity: str
    weight: int
    predicate: Callable[[TransactionContext], bool]
    description: str = ""


@dataclass(frozen=True)
class RuleTrigger:
    rule_id: str
    triggered: bool
    weight: int
    severity: str
    category: str


_REGISTRY: Dict[str, RuleDefinition] = {}


def rule(id: str, name: str, category: str, severity: str, weight: int, description: str = ""):
    """Register the decorated predicate in the static catalog."""
    if category not in CATEGORIES:
        raise ValueError(f"Unknown rule category: {category}")
    if severity not in SEVERITIES:
        raise ValueError(f"Unknown rule severity: {severity}")
    if weight <= 0:
        raise ValueError("Rule weight must be positive")

    def decorator(predicate: Callable[[TransactionContext], bool]):
        if id in _REGISTRY:
            raise ValueError(f"Duplicate rule id: {id}")
        _REGISTRY[id] = RuleDefinition(
            id=id,
            name=name,
            category=category,
            severity=severity,
            weight=weight,
            predicate=predicate,
            description=description or (predicate.__doc__ or "").strip(),
        )
        return predicate

    return decorator


def catalog() -> List[RuleDefinition]:
    return [_REGISTRY[key] for key in sorted(_REGISTRY)]


def get_rule(rule_id: str):
    return _REGISTRY.get(rule_id)
