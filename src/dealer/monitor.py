"""Market monitor -- symbol-keyed registry of independent evaluation pipelines.

Implements the service surface used by the data feed and the dashboard:

Inbound:   submit_sample(symbol, sample)
Outbound:  indicator listeners (symbol, snapshot, composite) after every
           successful tick; alert listeners (symbol, rule) once per firing
Rules:     create_rule / delete_rule / list_rules / disable_rule / reset_rule

Each symbol's ticks run under that symbol's own asyncio.Lock, so two ticks
for the same symbol never overlap while different symbols stay independent.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from decimal import Decimal

from dealer.alerts.models import AlertKind, AlertRule, Comparator
from dealer.config import AppSettings
from dealer.data.window import validate_sample
from dealer.exceptions import InvalidSample, OutOfOrderSample, UnknownSymbol
from dealer.logging import bind_symbol, clear_symbol, get_logger
from dealer.models import Sample
from dealer.pipeline import SymbolPipeline, TickResult
from dealer.signals.engine import IndicatorEngine
from dealer.signals.models import CompositeState, IndicatorSnapshot
from dealer.signals.scorer import CompositeScorer

logger = get_logger(__name__)

IndicatorListener = Callable[[str, IndicatorSnapshot, CompositeState], Awaitable[None]]
AlertListener = Callable[[str, AlertRule], Awaitable[None]]


class MarketMonitor:
    """Owns one SymbolPipeline per monitored symbol.

    Pipelines are created on first use (a sample or a rule for a new
    symbol) and discarded by :meth:`unwatch`.

    Args:
        settings: Application settings (window, indicator and scoring groups).
    """

    def __init__(self, settings: AppSettings | None = None) -> None:
        self._settings = settings or AppSettings()
        self._indicator_engine = IndicatorEngine(self._settings.indicator)
        self._scorer = CompositeScorer(self._settings.scoring)
        self._pipelines: dict[str, SymbolPipeline] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._indicator_listeners: list[IndicatorListener] = []
        self._alert_listeners: list[AlertListener] = []

    # ──────────────────────────────────────────────
    # Pipeline registry
    # ──────────────────────────────────────────────

    def watch(self, symbol: str) -> SymbolPipeline:
        """Return the pipeline for ``symbol``, creating it if needed."""
        pipeline = self._pipelines.get(symbol)
        if pipeline is None:
            pipeline = self._new_pipeline(symbol)
            self._register(pipeline)
        return pipeline

    def _new_pipeline(self, symbol: str) -> SymbolPipeline:
        return SymbolPipeline(
            symbol,
            capacity=self._settings.window.capacity,
            indicator_engine=self._indicator_engine,
            scorer=self._scorer,
        )

    def _register(self, pipeline: SymbolPipeline) -> None:
        self._pipelines[pipeline.symbol] = pipeline
        self._locks[pipeline.symbol] = asyncio.Lock()
        logger.info("symbol_watched", symbol=pipeline.symbol)

    def unwatch(self, symbol: str) -> None:
        """Discard a symbol's pipeline, rules included.

        Raises:
            UnknownSymbol: If the symbol is not monitored.
        """
        if self._pipelines.pop(symbol, None) is None:
            raise UnknownSymbol(symbol)
        self._locks.pop(symbol, None)
        logger.info("symbol_unwatched", symbol=symbol)

    def pipeline(self, symbol: str) -> SymbolPipeline:
        """Return the existing pipeline for ``symbol``.

        Raises:
            UnknownSymbol: If the symbol is not monitored.
        """
        pipeline = self._pipelines.get(symbol)
        if pipeline is None:
            raise UnknownSymbol(symbol)
        return pipeline

    def symbols(self) -> list[str]:
        """Monitored symbols, sorted."""
        return sorted(self._pipelines)

    def latest(self, symbol: str) -> TickResult | None:
        """Last successful tick for ``symbol`` (None before the first one)."""
        return self.pipeline(symbol).latest

    # ──────────────────────────────────────────────
    # Listeners
    # ──────────────────────────────────────────────

    def add_indicator_listener(self, listener: IndicatorListener) -> None:
        self._indicator_listeners.append(listener)

    def add_alert_listener(self, listener: AlertListener) -> None:
        self._alert_listeners.append(listener)

    # ──────────────────────────────────────────────
    # Inbound samples
    # ──────────────────────────────────────────────

    async def submit_sample(self, symbol: str, sample: Sample) -> TickResult:
        """Run one full tick for ``symbol`` and notify listeners.

        The tick (append, indicators, scores, rules, notifications) completes
        before the next tick for the same symbol starts.

        Raises:
            OutOfOrderSample: The sample was rejected; prior state is intact.
            InvalidSample: The sample was rejected; prior state is intact.
                A new symbol is not watched in that case.
        """
        if symbol not in self._pipelines:
            try:
                validate_sample(sample)
            except InvalidSample as e:
                logger.warning("sample_rejected_invalid", symbol=symbol, reason=str(e))
                raise

        pipeline = self.watch(symbol)
        async with self._locks[symbol]:
            bind_symbol(symbol)
            try:
                try:
                    result = pipeline.process(sample)
                except OutOfOrderSample as e:
                    logger.warning(
                        "sample_rejected_out_of_order",
                        timestamp_ms=e.timestamp_ms,
                        tail_timestamp_ms=e.tail_timestamp_ms,
                    )
                    raise
                except InvalidSample as e:
                    logger.warning(
                        "sample_rejected_invalid",
                        timestamp_ms=sample.timestamp_ms,
                        reason=str(e),
                    )
                    raise

                logger.debug(
                    "tick_processed",
                    price=str(result.snapshot.price),
                    rsi=str(result.snapshot.rsi),
                    rei_score=str(result.composite.rei_score),
                    regime=result.composite.regime.value,
                    fired=len(result.events),
                )

                for event in result.events:
                    for alert_listener in self._alert_listeners:
                        await self._notify(alert_listener, symbol, event.rule)
                for indicator_listener in self._indicator_listeners:
                    await self._notify(
                        indicator_listener, symbol, result.snapshot, result.composite
                    )
            finally:
                clear_symbol()

        return result

    async def _notify(self, listener: Callable[..., Awaitable[None]], *args: object) -> None:
        """Invoke one listener; a failing listener never aborts the tick."""
        try:
            await listener(*args)
        except Exception:
            logger.warning(
                "listener_failed",
                listener=getattr(listener, "__qualname__", repr(listener)),
                exc_info=True,
            )

    # ──────────────────────────────────────────────
    # Rule management
    # ──────────────────────────────────────────────

    def create_rule(
        self,
        symbol: str,
        kind: AlertKind | str,
        comparator: Comparator | str,
        threshold: Decimal | int | str | None = None,
    ) -> str:
        """Create a rule for ``symbol`` (watching it if needed); return its id.

        Raises:
            InvalidRuleDefinition: If the rule is malformed. A new symbol
                is not watched in that case.
        """
        pipeline = self._pipelines.get(symbol)
        if pipeline is not None:
            return pipeline.rules.create_rule(kind, comparator, threshold).id

        pipeline = self._new_pipeline(symbol)
        rule = pipeline.rules.create_rule(kind, comparator, threshold)
        self._register(pipeline)
        return rule.id

    def delete_rule(self, symbol: str, rule_id: str) -> None:
        self.pipeline(symbol).rules.delete_rule(rule_id)

    def list_rules(self, symbol: str) -> list[AlertRule]:
        return self.pipeline(symbol).rules.list_rules()

    def get_rule(self, symbol: str, rule_id: str) -> AlertRule:
        return self.pipeline(symbol).rules.get_rule(rule_id)

    def disable_rule(self, symbol: str, rule_id: str) -> AlertRule:
        return self.pipeline(symbol).rules.disable_rule(rule_id)

    def reset_rule(self, symbol: str, rule_id: str) -> AlertRule:
        return self.pipeline(symbol).rules.reset_rule(rule_id)

    # ──────────────────────────────────────────────
    # Status
    # ──────────────────────────────────────────────

    def get_status(self) -> dict:
        """Summary of every monitored symbol for the dashboard."""
        symbols = {}
        for symbol, pipeline in sorted(self._pipelines.items()):
            latest = pipeline.latest
            symbols[symbol] = {
                "samples": len(pipeline.window),
                "rules": len(pipeline.rules.list_rules()),
                "price": latest.snapshot.price if latest else None,
                "rei_score": latest.composite.rei_score if latest else None,
                "regime": latest.composite.regime.value if latest else None,
                "last_timestamp_ms": latest.sample.timestamp_ms if latest else None,
            }
        return {"symbol_count": len(symbols), "symbols": symbols}
