"""Simulated market feed -- random-walk samples pushed into the monitor.

Stands in for a real exchange feed. Each symbol runs an independent walk:

- price: zero-mean step scaled to 0.5% of price, wicks up to half that
- cvd: cumulative signed volume, 60% of each bar's volume in the
  direction of the close
- open interest: random walk proportional to volume, floored at 0
- funding: random walk mean-reverting to 0.0001 (0.01% per period)

On start the feed back-fills ``history_points`` candles spaced
``candle_interval_ms`` apart, then polls every ``poll_interval`` seconds.
"""

from __future__ import annotations

import asyncio
import random
import time
from decimal import Decimal

from dealer.config import FeedSettings
from dealer.exceptions import DealerError, UnknownSymbol
from dealer.logging import get_logger
from dealer.models import Sample
from dealer.monitor import MarketMonitor

logger = get_logger(__name__)

#: Starting price per base asset; anything else starts at 100.
BASE_PRICES: dict[str, float] = {
    "BTC": 64500.0,
    "ETH": 3450.0,
    "SOL": 145.0,
    "XRP": 0.60,
}
DEFAULT_BASE_PRICE = 100.0

FUNDING_MEAN = 0.0001
FUNDING_STEP = 0.00001
FUNDING_REVERSION = 0.05

_PRICE_PLACES = Decimal("0.000001")
_FLOW_PLACES = Decimal("0.01")
_FUNDING_PLACES = Decimal("0.00000001")


def base_price_for(symbol: str) -> float:
    """Starting price for ``symbol``, matched on its base asset."""
    base = symbol.split("-")[0].upper()
    return BASE_PRICES.get(base, DEFAULT_BASE_PRICE)


def _dec(value: float, places: Decimal) -> Decimal:
    return Decimal(str(value)).quantize(places)


class RandomWalk:
    """Random-walk state for one symbol.

    Args:
        base_price: Starting price.
        rng: Random source; pass a seeded ``random.Random`` for
            reproducible output.
    """

    def __init__(self, base_price: float, rng: random.Random) -> None:
        self._rng = rng
        self.price = base_price
        self.cvd = 0.0
        self.open_interest = base_price * 100
        self.funding = FUNDING_MEAN

    def step(self, timestamp_ms: int) -> Sample:
        """Advance the walk by one bar and return it as a Sample."""
        rng = self._rng
        volatility = self.price * 0.005
        change = (rng.random() - 0.5) * volatility

        open_ = self.price
        close = open_ + change
        high = max(open_, close) + rng.random() * volatility * 0.5
        low = min(open_, close) - rng.random() * volatility * 0.5
        self.price = close

        volume = abs(change) * 100000 + rng.random() * 100000
        self.cvd += volume * 0.6 if change > 0 else -volume * 0.6
        self.open_interest = max(
            0.0, self.open_interest + (rng.random() - 0.5) * volume * 0.1
        )

        self.funding += (rng.random() * 2 - 1) * FUNDING_STEP
        self.funding = self.funding * (1 - FUNDING_REVERSION) + FUNDING_MEAN * FUNDING_REVERSION

        return Sample(
            timestamp_ms=timestamp_ms,
            open=_dec(open_, _PRICE_PLACES),
            high=_dec(high, _PRICE_PLACES),
            low=_dec(low, _PRICE_PLACES),
            close=_dec(close, _PRICE_PLACES),
            cvd=_dec(self.cvd, _FLOW_PLACES),
            open_interest=_dec(self.open_interest, _FLOW_PLACES),
            funding_rate=_dec(self.funding, _FUNDING_PLACES),
        )


class SimulatedFeed:
    """Polls random walks for every configured symbol into a MarketMonitor.

    Args:
        monitor: Destination for generated samples.
        settings: Feed configuration (symbols, interval, seed, back-fill).
    """

    def __init__(self, monitor: MarketMonitor, settings: FeedSettings | None = None) -> None:
        self._monitor = monitor
        self._settings = settings or FeedSettings()
        self._rng = random.Random(self._settings.seed)
        self._walks: dict[str, RandomWalk] = {}
        self._last_ts: dict[str, int] = {}
        self._running = False
        self._task: asyncio.Task | None = None  # type: ignore[type-arg]

    @property
    def symbols(self) -> list[str]:
        return list(self._settings.symbols)

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Back-fill history, then begin polling in the background."""
        if self._running:
            logger.warning("simulated_feed_already_running")
            return
        await self.backfill()
        self._running = True
        self._task = asyncio.create_task(self._stream_loop())
        logger.info(
            "simulated_feed_started",
            symbols=self.symbols,
            poll_interval=self._settings.poll_interval,
        )

    async def stop(self) -> None:
        """Stop the feed gracefully."""
        self._running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("simulated_feed_stopped")

    async def backfill(self) -> None:
        """Push ``history_points`` past candles for every symbol not yet fed."""
        points = self._settings.history_points
        interval = self._settings.candle_interval_ms
        now_ms = int(time.time() * 1000)

        for symbol in self.symbols:
            if symbol in self._last_ts:
                continue
            walk = self._walk(symbol)
            for i in range(points):
                timestamp_ms = now_ms - (points - i) * interval
                await self._push(symbol, walk.step(timestamp_ms))

        logger.info("simulated_feed_backfilled", symbols=len(self.symbols), points=points)

    async def _stream_loop(self) -> None:
        """Main polling loop: one sample per symbol per interval."""
        while self._running:
            try:
                await self._poll_once()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning("simulated_feed_poll_error", exc_info=True)
            if self._running:
                await asyncio.sleep(self._settings.poll_interval)

    async def _poll_once(self) -> None:
        """Generate and submit one live sample per symbol."""
        now_ms = int(time.time() * 1000)
        for symbol in self.symbols:
            timestamp_ms = self._next_timestamp(symbol, now_ms)
            await self._push(symbol, self._walk(symbol).step(timestamp_ms))

    def _next_timestamp(self, symbol: str, now_ms: int) -> int:
        """Wall-clock time, forced strictly after the symbol's window tail.

        Samples posted through the API can move the tail past our last push.
        """
        last_ms = self._last_ts.get(symbol, 0)
        try:
            tail = self._monitor.pipeline(symbol).window.latest()
        except UnknownSymbol:
            tail = None
        if tail is not None:
            last_ms = max(last_ms, tail.timestamp_ms)
        return max(now_ms, last_ms + 1)

    async def _push(self, symbol: str, sample: Sample) -> None:
        try:
            await self._monitor.submit_sample(symbol, sample)
        except DealerError:
            logger.warning(
                "simulated_sample_rejected",
                symbol=symbol,
                timestamp_ms=sample.timestamp_ms,
                exc_info=True,
            )
            return
        self._last_ts[symbol] = sample.timestamp_ms

    def _walk(self, symbol: str) -> RandomWalk:
        walk = self._walks.get(symbol)
        if walk is None:
            walk = RandomWalk(base_price_for(symbol), self._rng)
            self._walks[symbol] = walk
        return walk
