"""Indicator and composite score data models.

CRITICAL: All score and rate values use Decimal. Never use float for signal computations.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class TrendDirection(int, Enum):
    """Direction of the ATR trend bands for the latest bar."""

    BULLISH = 1
    BEARISH = -1


class Regime(str, Enum):
    """Market regime bucket derived from the REI score."""

    MOMENTUM_BULL = "Momentum Bull"
    RANGE_BOUND = "Range Bound"
    DECAY_REVERSION = "Decay Reversion"
    NEUTRAL_CHOP = "Neutral Chop"


@dataclass(frozen=True)
class ReversionBand:
    """Dynamic mean-reversion targets: rolling mean +/- k standard deviations."""

    upper: Decimal
    neutral: Decimal
    lower: Decimal


@dataclass(frozen=True)
class IndicatorSnapshot:
    """All indicators derived from one window. Recomputed on every tick."""

    timestamp_ms: int
    price: Decimal
    sample_count: int
    rsi: Decimal  # 0-100
    trend_direction: TrendDirection
    trend_ready: bool  # enough bars for a band-confirmed direction
    trend_flipped: bool  # latest two computed directions differ
    trend_age: int  # consecutive bars in the current direction
    trend_band: Decimal  # active trailing band level
    atr: Decimal
    mean_reversion_z: Decimal
    reversion_band: ReversionBand
    oi_momentum_pct: Decimal
    cvd_change: Decimal  # net CVD movement across the window
    cvd_turnover: Decimal  # sum of absolute per-bar CVD moves
    long_buildup: int  # consecutive latest bars with rising CVD


@dataclass(frozen=True)
class ReversalDetails:
    """Counters behind the edge-reversal flag."""

    consecutive_negative_funding: int
    consecutive_long_buildup: int


@dataclass(frozen=True)
class CompositeState:
    """Composite scores and regime for one snapshot plus funding history."""

    rei_score: Decimal  # 0-100
    regime: Regime
    oi_score: Decimal  # 0-100
    oi_alert: str | None
    funded_score: Decimal  # 0-100
    funded_alert: str | None
    net_long_short: Decimal  # signed percent, positive = net long
    long_short_ratio: Decimal
    projected_funding: Decimal
    edge_reversal: bool
    reversal_details: ReversalDetails
