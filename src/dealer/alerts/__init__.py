"""User-defined threshold alerts with an at-most-once firing lifecycle."""

from dealer.alerts.engine import AlertRuleEngine
from dealer.alerts.evaluator import evaluate, validate_rule
from dealer.alerts.models import AlertEvent, AlertKind, AlertRule, Comparator, RuleState

__all__ = [
    "AlertEvent",
    "AlertKind",
    "AlertRule",
    "AlertRuleEngine",
    "Comparator",
    "RuleState",
    "evaluate",
    "validate_rule",
]
