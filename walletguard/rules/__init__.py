"""
Static rule catalog. Importing the category modules registers their rules;
the catalog is never mutated after import.
"""

from . import amount, behavioral, velocity  # noqa: F401
from .base import CATEGORIES, SEVERITIES, RuleDefinition, RuleTrigger, catalog, get_rule

__all__ = [
    "CATEGORIES",
    "SEVERITIES",
    "RuleDefinition",
    "RuleTrigger",
    "catalog",
    "get_rule",
]
