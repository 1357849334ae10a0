"""One symbol's evaluation pipeline: window -> indicators -> scores -> rules.

A pipeline is synchronous and self-contained. It shares no mutable state
with any other pipeline, so each monitored symbol simply owns one.
"""

from __future__ import annotations

from dataclasses import dataclass

from dealer.alerts.engine import AlertRuleEngine
from dealer.alerts.models import AlertEvent
from dealer.data.window import SampleWindow
from dealer.exceptions import InvalidSample
from dealer.models import Sample
from dealer.signals.engine import IndicatorEngine
from dealer.signals.models import CompositeState, IndicatorSnapshot
from dealer.signals.scorer import CompositeScorer


@dataclass(frozen=True)
class TickResult:
    """Everything one processed sample produced."""

    symbol: str
    sample: Sample
    snapshot: IndicatorSnapshot
    composite: CompositeState
    events: tuple[AlertEvent, ...]


class SymbolPipeline:
    """Runs the full per-tick evaluation for a single symbol.

    Args:
        symbol: Symbol this pipeline evaluates.
        capacity: Sample window capacity.
        indicator_engine: Indicator engine (stateless, may be shared).
        scorer: Composite scorer (stateless, may be shared).
    """

    def __init__(
        self,
        symbol: str,
        capacity: int = 100,
        indicator_engine: IndicatorEngine | None = None,
        scorer: CompositeScorer | None = None,
    ) -> None:
        self._symbol = symbol
        self._window = SampleWindow(capacity)
        self._indicators = indicator_engine or IndicatorEngine()
        self._scorer = scorer or CompositeScorer()
        self._rules = AlertRuleEngine(symbol)
        self._latest: TickResult | None = None

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def window(self) -> SampleWindow:
        return self._window

    @property
    def rules(self) -> AlertRuleEngine:
        return self._rules

    @property
    def latest(self) -> TickResult | None:
        """Result of the last successful tick, served until the next one."""
        return self._latest

    def process(self, sample: Sample) -> TickResult:
        """Append ``sample`` and run indicators, scoring and rule evaluation.

        Indicators and scores are computed over the window as it would be
        after the append. The sample is stored only once both succeed.

        Raises:
            OutOfOrderSample: The sample is not after the window's tail.
            InvalidSample: A value is unusable, or the indicators could not
                be computed from it.
            Either way the window, rules and latest result are unchanged.
        """
        candidate = self._window.candidate(sample)

        try:
            snapshot = self._indicators.compute(candidate)
            composite = self._scorer.score(snapshot, [s.funding_rate for s in candidate])
        except ArithmeticError as e:
            raise InvalidSample(
                f"indicators failed for sample at {sample.timestamp_ms}: {e!r}"
            ) from e

        self._window.append(sample)
        events = self._rules.evaluate(sample, snapshot)

        result = TickResult(
            symbol=self._symbol,
            sample=sample,
            snapshot=snapshot,
            composite=composite,
            events=tuple(events),
        )
        self._latest = result
        return result
