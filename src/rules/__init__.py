"""
Threshold rules: model, validation, comparison and storage.
"""

from .database import DEFAULT_RULES, RuleDatabase
from .models import COMPARATORS, Operator, Rule, RuleRequest, compare_values

__all__ = [
    "COMPARATORS",
    "DEFAULT_RULES",
    "Operator",
    "Rule",
    "RuleDatabase",
    "RuleRequest",
    "compare_values",
]
