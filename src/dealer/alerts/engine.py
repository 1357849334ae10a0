"""Alert rule engine: owns one symbol's rule set and every state transition.

Lifecycle:
    MONITORING --(condition met on a tick)--> TRIGGERED
    MONITORING/TRIGGERED --(disable_rule)--> DISABLED
    TRIGGERED/DISABLED --(reset_rule)--> MONITORING
    any state --(delete_rule)--> removed

DISABLED is only ever entered and left through explicit calls.
"""

from __future__ import annotations

import time
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from uuid import uuid4

from dealer.alerts.evaluator import evaluate, validate_rule
from dealer.alerts.models import AlertEvent, AlertKind, AlertRule, Comparator, RuleState
from dealer.exceptions import InvalidRuleDefinition, RuleNotFound
from dealer.logging import get_logger
from dealer.models import Sample
from dealer.signals.models import IndicatorSnapshot

logger = get_logger(__name__)


def _coerce_threshold(value: object) -> Decimal | None:
    """Convert a user-supplied threshold to Decimal, keeping None as None."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidRuleDefinition(f"threshold must be numeric, got {value!r}")
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise InvalidRuleDefinition(f"threshold must be numeric, got {value!r}") from e


class AlertRuleEngine:
    """Holds the alert rules for one symbol and evaluates them per tick.

    Callers only ever receive copies of rules; the engine's own objects
    are never handed out, so no one else can write ``state``.

    Args:
        symbol: The symbol whose rules this engine owns.
    """

    def __init__(self, symbol: str) -> None:
        self._symbol = symbol
        self._rules: dict[str, AlertRule] = {}

    @property
    def symbol(self) -> str:
        return self._symbol

    def create_rule(
        self,
        kind: AlertKind | str,
        comparator: Comparator | str,
        threshold: Decimal | int | str | None = None,
    ) -> AlertRule:
        """Validate and store a new MONITORING rule.

        TREND_FLIP thresholds are ignored and stored as None.

        Returns:
            A copy of the stored rule.

        Raises:
            InvalidRuleDefinition: If the definition is malformed. Nothing
                is stored in that case.
        """
        try:
            kind = AlertKind(kind)
            comparator = Comparator(comparator)
        except ValueError as e:
            raise InvalidRuleDefinition(str(e)) from e

        parsed = None if kind is AlertKind.TREND_FLIP else _coerce_threshold(threshold)
        validate_rule(kind, comparator, parsed)

        rule = AlertRule(
            id=uuid4().hex[:12],
            symbol=self._symbol,
            kind=kind,
            comparator=comparator,
            threshold=parsed,
            created_at_ms=int(time.time() * 1000),
        )
        self._rules[rule.id] = rule

        logger.info(
            "alert_rule_created",
            symbol=self._symbol,
            rule_id=rule.id,
            kind=kind.value,
            comparator=comparator.value,
            threshold=str(parsed) if parsed is not None else None,
        )
        return replace(rule)

    def delete_rule(self, rule_id: str) -> None:
        """Remove a rule in any state.

        Raises:
            RuleNotFound: If ``rule_id`` is unknown.
        """
        if self._rules.pop(rule_id, None) is None:
            raise RuleNotFound(rule_id)
        logger.info("alert_rule_deleted", symbol=self._symbol, rule_id=rule_id)

    def get_rule(self, rule_id: str) -> AlertRule:
        """Return a copy of one rule.

        Raises:
            RuleNotFound: If ``rule_id`` is unknown.
        """
        return replace(self._get(rule_id))

    def list_rules(self) -> list[AlertRule]:
        """Return copies of all rules in creation order."""
        return [replace(rule) for rule in self._rules.values()]

    def disable_rule(self, rule_id: str) -> AlertRule:
        """Move a rule to DISABLED. It stays there until reset."""
        rule = self._get(rule_id)
        rule.state = RuleState.DISABLED
        logger.info("alert_rule_disabled", symbol=self._symbol, rule_id=rule_id)
        return replace(rule)

    def reset_rule(self, rule_id: str) -> AlertRule:
        """Re-arm a rule: back to MONITORING with trigger bookkeeping cleared."""
        rule = self._get(rule_id)
        rule.state = RuleState.MONITORING
        rule.triggered_at_ms = None
        rule.trigger_value = None
        logger.info("alert_rule_reset", symbol=self._symbol, rule_id=rule_id)
        return replace(rule)

    def evaluate(self, sample: Sample, snapshot: IndicatorSnapshot) -> list[AlertEvent]:
        """Evaluate all MONITORING rules against the newest tick.

        Returns:
            One AlertEvent per rule that fired on this tick.
        """
        events = evaluate(self._rules.values(), sample, snapshot)
        for event in events:
            logger.info(
                "alert_triggered",
                symbol=self._symbol,
                rule_id=event.rule.id,
                kind=event.rule.kind.value,
                comparator=event.rule.comparator.value,
                threshold=str(event.rule.threshold) if event.rule.threshold is not None else None,
                observed=str(event.observed),
            )
        return events

    def _get(self, rule_id: str) -> AlertRule:
        rule = self._rules.get(rule_id)
        if rule is None:
            raise RuleNotFound(rule_id)
        return rule
