"""Edge-triggered alert rule evaluation against the newest tick.

Rules are checked against the current sample and snapshot only; nothing
looks back through history. A rule that fires moves to TRIGGERED and is
skipped by every later evaluation, so evaluating the same inputs twice
never produces a second event.
"""

from collections.abc import Iterable
from dataclasses import replace
from decimal import Decimal

from dealer.alerts.models import AlertEvent, AlertKind, AlertRule, Comparator, RuleState
from dealer.exceptions import InvalidRuleDefinition
from dealer.models import Sample
from dealer.signals.models import IndicatorSnapshot, TrendDirection

_NUMERIC_COMPARATORS = frozenset({Comparator.GREATER_THAN, Comparator.LESS_THAN})

_FLIP_TARGETS: dict[Comparator, TrendDirection] = {
    Comparator.FLIP_BULLISH: TrendDirection.BULLISH,
    Comparator.FLIP_BEARISH: TrendDirection.BEARISH,
}


def validate_rule(
    kind: AlertKind, comparator: Comparator, threshold: Decimal | None
) -> None:
    """Check that kind, comparator and threshold form a valid rule.

    Raises:
        InvalidRuleDefinition: PRICE/RSI without a finite numeric threshold
            or with a flip comparator; TREND_FLIP with a numeric comparator.
    """
    if kind in (AlertKind.PRICE, AlertKind.RSI):
        if comparator not in _NUMERIC_COMPARATORS:
            raise InvalidRuleDefinition(
                f"{kind.value} rules need GREATER_THAN or LESS_THAN, got {comparator.value}"
            )
        if not isinstance(threshold, Decimal) or not threshold.is_finite():
            raise InvalidRuleDefinition(f"{kind.value} rules need a numeric threshold")
    elif kind is AlertKind.TREND_FLIP:
        if comparator not in _FLIP_TARGETS:
            raise InvalidRuleDefinition(
                f"TREND_FLIP rules need FLIP_BULLISH or FLIP_BEARISH, got {comparator.value}"
            )
    else:
        raise InvalidRuleDefinition(f"unknown alert kind: {kind!r}")


def _compare(observed: Decimal, comparator: Comparator, threshold: Decimal) -> bool:
    if comparator is Comparator.GREATER_THAN:
        return observed > threshold
    return observed < threshold


def check_condition(
    rule: AlertRule, sample: Sample, snapshot: IndicatorSnapshot
) -> tuple[bool, Decimal]:
    """Evaluate one rule's condition on the current tick.

    PRICE compares the latest close, RSI compares the snapshot RSI.
    TREND_FLIP holds when the trend bands are ready and the confirmed
    direction matches the comparator's target.

    Returns:
        Tuple of (condition met, observed value). For TREND_FLIP the
        observed value is the direction as +1 / -1.
    """
    if rule.kind is AlertKind.TREND_FLIP:
        observed = Decimal(snapshot.trend_direction.value)
        met = snapshot.trend_ready and snapshot.trend_direction is _FLIP_TARGETS[rule.comparator]
        return met, observed

    observed = sample.close if rule.kind is AlertKind.PRICE else snapshot.rsi
    return _compare(observed, rule.comparator, rule.threshold), observed


def evaluate(
    rules: Iterable[AlertRule],
    latest_sample: Sample,
    snapshot: IndicatorSnapshot,
) -> list[AlertEvent]:
    """Evaluate every MONITORING rule and fire those whose condition holds.

    All rules are validated before any state changes, so a malformed rule
    leaves the whole set untouched.

    Args:
        rules: Rules to evaluate; fired rules are transitioned in place.
        latest_sample: The newest sample.
        snapshot: Indicators computed for the window ending at that sample.

    Returns:
        One AlertEvent per rule that fired on this tick.

    Raises:
        InvalidRuleDefinition: If any rule is malformed.
    """
    rules = list(rules)
    for rule in rules:
        validate_rule(rule.kind, rule.comparator, rule.threshold)

    events: list[AlertEvent] = []
    for rule in rules:
        if rule.state is not RuleState.MONITORING:
            continue

        met, observed = check_condition(rule, latest_sample, snapshot)
        if not met:
            continue

        rule.state = RuleState.TRIGGERED
        rule.triggered_at_ms = latest_sample.timestamp_ms
        rule.trigger_value = observed
        events.append(
            AlertEvent(
                symbol=rule.symbol,
                rule=replace(rule),
                observed=observed,
                timestamp_ms=latest_sample.timestamp_ms,
            )
        )

    return events
