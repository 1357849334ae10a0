"""Shared test fixtures for the dealer engine."""

from collections.abc import Callable
from dataclasses import replace
from decimal import Decimal

import pytest

from dealer.config import AppSettings, FeedSettings
from dealer.models import Sample
from dealer.signals.models import IndicatorSnapshot, ReversionBand, TrendDirection

BASE_TS = 1_700_000_000_000
CANDLE_MS = 15 * 60 * 1000


def _dec(value: object) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _make_sample(
    index: int,
    close: object,
    *,
    high: object | None = None,
    low: object | None = None,
    open: object | None = None,
    cvd: object = "0",
    oi: object = "0",
    funding: object = "0",
) -> Sample:
    """Sample number ``index`` on a 15m grid; high/low default to close +/- 0.5."""
    c = _dec(close)
    return Sample(
        timestamp_ms=BASE_TS + index * CANDLE_MS,
        open=_dec(open) if open is not None else c,
        high=_dec(high) if high is not None else c + Decimal("0.5"),
        low=_dec(low) if low is not None else c - Decimal("0.5"),
        close=c,
        cvd=_dec(cvd),
        open_interest=_dec(oi),
        funding_rate=_dec(funding),
    )


_BASE_SNAPSHOT = IndicatorSnapshot(
    timestamp_ms=BASE_TS,
    price=Decimal("100"),
    sample_count=20,
    rsi=Decimal("50"),
    trend_direction=TrendDirection.BULLISH,
    trend_ready=True,
    trend_flipped=False,
    trend_age=0,
    trend_band=Decimal("95"),
    atr=Decimal("1.5"),
    mean_reversion_z=Decimal("0"),
    reversion_band=ReversionBand(
        upper=Decimal("102"), neutral=Decimal("100"), lower=Decimal("98")
    ),
    oi_momentum_pct=Decimal("0"),
    cvd_change=Decimal("0"),
    cvd_turnover=Decimal("0"),
    long_buildup=0,
)


@pytest.fixture
def make_sample() -> Callable[..., Sample]:
    """Factory for Samples: ``make_sample(index, close, high=..., low=...)``."""
    return _make_sample


@pytest.fixture
def make_snapshot() -> Callable[..., IndicatorSnapshot]:
    """Factory for IndicatorSnapshots with neutral defaults and overrides."""

    def factory(**overrides: object) -> IndicatorSnapshot:
        return replace(_BASE_SNAPSHOT, **overrides)

    return factory


@pytest.fixture
def uptrend() -> list[Sample]:
    """20 samples with strictly increasing closes 100..119."""
    return [_make_sample(i, 100 + i) for i in range(20)]


@pytest.fixture
def mock_settings() -> AppSettings:
    """AppSettings with test defaults (debug logging, small seeded feed)."""
    return AppSettings(
        log_level="DEBUG",
        feed=FeedSettings(
            enabled=False,
            symbols=["BTC-USD", "ETH-USD"],
            poll_interval=0.01,
            history_points=5,
            seed=7,
        ),
    )
