import logging
from typing import List

from walletguard.context import TransactionContext
from walletguard.rules import RuleTrigger, catalog

logger = logging.getLogger(__name__)


def evaluate(context: TransactionContext) -> List[RuleTrigger]:
    """
    Evaluate every catalog rule against the context and return one trigger
    per rule, ordered by rule id. A rule whose predicate raises is recorded
    as not triggered.
    """
    triggers: List[RuleTrigger] = []
    for definition in catalog():
        try:
            fired = bool(definition.predicate(context))
        except Exception:
            logger.exception("Rule %s failed to evaluate; treating as not triggered", definition.id)
            fired = False
        triggers.append(
            RuleTrigger(
                rule_id=definition.id,
                triggered=fired,
                weight=definition.weight if fired else 0,
                severity=definition.severity,
                category=definition.category,
            )
        )
    return triggers


def triggered_only(triggers: List[RuleTrigger]) -> List[RuleTrigger]:
    return [t for t in triggers if t.triggered]
