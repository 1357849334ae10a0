"""Indicator engine: recomputes every indicator from the current window.

The engine never patches a previous snapshot. Each call reads the full
window contents, so the same window always produces the same snapshot.

Graceful degradation: operates on short windows by falling back to
neutral defaults (RSI 50, BULLISH not-ready trend, zero Z and OI momentum).
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from dealer.config import IndicatorSettings
from dealer.logging import get_logger
from dealer.models import Sample
from dealer.signals.flow import compute_cvd_flow, count_long_buildup
from dealer.signals.models import IndicatorSnapshot, TrendDirection
from dealer.signals.open_interest import compute_oi_momentum
from dealer.signals.reversion import compute_mean_reversion_z, compute_reversion_band
from dealer.signals.rsi import compute_rsi
from dealer.signals.trend import compute_trend_bands, detect_flip, trend_age

logger = get_logger(__name__)


class IndicatorEngine:
    """Derives an IndicatorSnapshot from a window of samples.

    Args:
        settings: Periods, multipliers and lookbacks for every indicator.
    """

    def __init__(self, settings: IndicatorSettings | None = None) -> None:
        self._settings = settings or IndicatorSettings()

    @property
    def settings(self) -> IndicatorSettings:
        return self._settings

    def compute(self, window: Sequence[Sample]) -> IndicatorSnapshot:
        """Compute all indicators over ``window``.

        Args:
            window: Samples ordered oldest-first. Must not be empty.

        Returns:
            A fresh IndicatorSnapshot for the latest sample.
        """
        if not window:
            raise ValueError("cannot compute indicators on an empty window")

        s = self._settings
        latest = window[-1]

        rsi = compute_rsi(window, period=s.rsi_period)

        bands = compute_trend_bands(
            window, multiplier=s.trend_multiplier, period=s.trend_atr_period
        )
        if bands is None or len(bands.directions) < 2:
            logger.debug(
                "insufficient_data",
                indicator="trend",
                samples=len(window),
                required=s.trend_atr_period + 1,
            )
            direction = bands.directions[-1] if bands else TrendDirection.BULLISH
            trend_ready = False
            flipped = False
            age = len(bands.directions) if bands else 0
            band = bands.band if bands else latest.close
            atr = bands.atr if bands else Decimal("0")
        else:
            direction = bands.directions[-1]
            trend_ready = True
            flipped = detect_flip(bands.directions)
            age = trend_age(bands.directions)
            band = bands.band
            atr = bands.atr

        if len(window) < s.rsi_period + 1:
            logger.debug(
                "insufficient_data",
                indicator="rsi",
                samples=len(window),
                required=s.rsi_period + 1,
            )

        cvd_change, cvd_turnover = compute_cvd_flow(window)

        return IndicatorSnapshot(
            timestamp_ms=latest.timestamp_ms,
            price=latest.close,
            sample_count=len(window),
            rsi=rsi,
            trend_direction=direction,
            trend_ready=trend_ready,
            trend_flipped=flipped,
            trend_age=age,
            trend_band=band,
            atr=atr,
            mean_reversion_z=compute_mean_reversion_z(
                window, lookback=s.reversion_lookback
            ),
            reversion_band=compute_reversion_band(
                window, lookback=s.reversion_lookback, sigma=s.reversion_band_sigma
            ),
            oi_momentum_pct=compute_oi_momentum(
                window, lookback_samples=s.oi_lookback_samples
            ),
            cvd_change=cvd_change,
            cvd_turnover=cvd_turnover,
            long_buildup=count_long_buildup(window),
        )
