"""Tests for alert rule validation and edge-triggered evaluation."""

from decimal import Decimal

import pytest

from dealer.alerts.evaluator import check_condition, evaluate, validate_rule
from dealer.alerts.models import AlertKind, AlertRule, Comparator, RuleState
from dealer.exceptions import InvalidRuleDefinition
from dealer.signals.models import TrendDirection


def _rule(
    kind: AlertKind,
    comparator: Comparator,
    threshold: str | None = None,
    rule_id: str = "r1",
    state: RuleState = RuleState.MONITORING,
) -> AlertRule:
    return AlertRule(
        id=rule_id,
        symbol="BTC-USD",
        kind=kind,
        comparator=comparator,
        threshold=Decimal(threshold) if threshold is not None else None,
        created_at_ms=0,
        state=state,
    )


class TestValidateRule:
    def test_valid_rules(self) -> None:
        validate_rule(AlertKind.PRICE, Comparator.GREATER_THAN, Decimal("110"))
        validate_rule(AlertKind.RSI, Comparator.LESS_THAN, Decimal("30"))
        validate_rule(AlertKind.TREND_FLIP, Comparator.FLIP_BEARISH, None)

    @pytest.mark.parametrize(
        ("kind", "comparator", "threshold"),
        [
            (AlertKind.PRICE, Comparator.GREATER_THAN, None),
            (AlertKind.RSI, Comparator.LESS_THAN, Decimal("NaN")),
            (AlertKind.PRICE, Comparator.FLIP_BULLISH, Decimal("1")),
            (AlertKind.TREND_FLIP, Comparator.GREATER_THAN, None),
        ],
    )
    def test_invalid_rules(self, kind, comparator, threshold) -> None:
        with pytest.raises(InvalidRuleDefinition):
            validate_rule(kind, comparator, threshold)


class TestCheckCondition:
    def test_price_is_strict(self, make_sample, make_snapshot) -> None:
        rule = _rule(AlertKind.PRICE, Comparator.GREATER_THAN, "110")
        assert check_condition(rule, make_sample(0, "110"), make_snapshot()) == (
            False,
            Decimal("110"),
        )
        assert check_condition(rule, make_sample(0, "110.01"), make_snapshot())[0] is True

    def test_rsi_uses_snapshot(self, make_sample, make_snapshot) -> None:
        rule = _rule(AlertKind.RSI, Comparator.LESS_THAN, "30")
        met, observed = check_condition(
            rule, make_sample(0, "100"), make_snapshot(rsi=Decimal("25"))
        )
        assert met is True
        assert observed == Decimal("25")

    def test_trend_flip_needs_ready_trend(self, make_sample, make_snapshot) -> None:
        rule = _rule(AlertKind.TREND_FLIP, Comparator.FLIP_BULLISH)
        sample = make_sample(0, "100")

        not_ready = make_snapshot(trend_direction=TrendDirection.BULLISH, trend_ready=False)
        ready = make_snapshot(trend_direction=TrendDirection.BULLISH, trend_ready=True)

        assert check_condition(rule, sample, not_ready)[0] is False
        assert check_condition(rule, sample, ready) == (True, Decimal("1"))

    def test_trend_flip_direction_must_match(self, make_sample, make_snapshot) -> None:
        rule = _rule(AlertKind.TREND_FLIP, Comparator.FLIP_BEARISH)
        snapshot = make_snapshot(trend_direction=TrendDirection.BULLISH)
        assert check_condition(rule, make_sample(0, "100"), snapshot)[0] is False


class TestEvaluate:
    def test_fires_once_and_records_trigger(self, make_sample, make_snapshot) -> None:
        rule = _rule(AlertKind.PRICE, Comparator.GREATER_THAN, "100")
        sample = make_sample(3, "101")

        events = evaluate([rule], sample, make_snapshot())

        assert len(events) == 1
        assert events[0].observed == Decimal("101")
        assert events[0].timestamp_ms == sample.timestamp_ms
        assert rule.state == RuleState.TRIGGERED
        assert rule.triggered_at_ms == sample.timestamp_ms
        assert rule.trigger_value == Decimal("101")

    def test_idempotent(self, make_sample, make_snapshot) -> None:
        """Evaluating the same inputs twice fires exactly once in total."""
        rule = _rule(AlertKind.PRICE, Comparator.GREATER_THAN, "100")
        sample, snapshot = make_sample(0, "101"), make_snapshot()

        first = evaluate([rule], sample, snapshot)
        second = evaluate([rule], sample, snapshot)

        assert len(first) + len(second) == 1

    def test_event_carries_copy(self, make_sample, make_snapshot) -> None:
        rule = _rule(AlertKind.PRICE, Comparator.GREATER_THAN, "100")
        event = evaluate([rule], make_sample(0, "101"), make_snapshot())[0]

        rule.state = RuleState.MONITORING
        assert event.rule.state == RuleState.TRIGGERED
        assert event.rule is not rule

    def test_skips_non_monitoring(self, make_sample, make_snapshot) -> None:
        rules = [
            _rule(AlertKind.PRICE, Comparator.GREATER_THAN, "100", "a", RuleState.TRIGGERED),
            _rule(AlertKind.PRICE, Comparator.GREATER_THAN, "100", "b", RuleState.DISABLED),
        ]
        assert evaluate(rules, make_sample(0, "150"), make_snapshot()) == []
        assert [r.state for r in rules] == [RuleState.TRIGGERED, RuleState.DISABLED]

    def test_multiple_rules_fire_independently(self, make_sample, make_snapshot) -> None:
        rules = [
            _rule(AlertKind.PRICE, Comparator.GREATER_THAN, "100", "a"),
            _rule(AlertKind.PRICE, Comparator.LESS_THAN, "100", "b"),
            _rule(AlertKind.RSI, Comparator.GREATER_THAN, "70", "c"),
        ]
        events = evaluate(rules, make_sample(0, "105"), make_snapshot(rsi=Decimal("80")))
        assert [e.rule.id for e in events] == ["a", "c"]

    def test_malformed_rule_changes_nothing(self, make_sample, make_snapshot) -> None:
        good = _rule(AlertKind.PRICE, Comparator.GREATER_THAN, "100", "good")
        bad = _rule(AlertKind.PRICE, Comparator.FLIP_BULLISH, "100", "bad")

        with pytest.raises(InvalidRuleDefinition):
            evaluate([good, bad], make_sample(0, "150"), make_snapshot())

        assert good.state == RuleState.MONITORING
