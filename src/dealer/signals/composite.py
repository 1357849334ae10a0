"""REI composite strength score, regime classification and edge reversal.

Combines normalized sub-signals (RSI distance from 50, trend persistence,
OI momentum magnitude) into a single 0-100 REI score. Each sub-signal is
normalized to [-1, 1] with the sign of the market bias, so 50 is neutral,
100 is maximal bullish agreement and 0 maximal bearish agreement.

CRITICAL: All computations use Decimal. Never use float for signal scores.
"""

from decimal import Decimal

from dealer.signals.models import Regime, TrendDirection

_ONE = Decimal("1")
_FIFTY = Decimal("50")

#: Regime bucket bounds. Lower bounds are inclusive.
MOMENTUM_BULL_MIN = Decimal("70")
DECAY_REVERSION_BELOW = Decimal("30")
RANGE_BOUND_MIN = Decimal("40")
RANGE_BOUND_MAX = Decimal("60")


def clamp(value: Decimal, low: Decimal = Decimal("0"), high: Decimal = Decimal("100")) -> Decimal:
    """Clamp ``value`` into [low, high]."""
    return min(max(value, low), high)


def normalize_rsi(rsi: Decimal) -> Decimal:
    """Signed RSI distance from 50, scaled to [-1, 1]."""
    return clamp((rsi - _FIFTY) / _FIFTY, -_ONE, _ONE)


def normalize_trend(
    direction: TrendDirection, age: int, persistence_periods: int = 20
) -> Decimal:
    """Trend persistence signed by direction.

    Formula: direction * min(age / persistence_periods, 1)
    """
    persistence = min(Decimal(age) / Decimal(persistence_periods), _ONE)
    return Decimal(direction.value) * persistence


def normalize_oi(
    oi_momentum_pct: Decimal,
    direction: TrendDirection,
    cap: Decimal = Decimal("5"),
) -> Decimal:
    """OI momentum magnitude, signed by the trend it is fuelling.

    Formula: direction * min(|oi_momentum_pct| / cap, 1)
    """
    magnitude = min(abs(oi_momentum_pct) / cap, _ONE)
    return Decimal(direction.value) * magnitude


def compute_rei_score(
    rsi_component: Decimal,
    trend_component: Decimal,
    oi_component: Decimal,
    weights: dict[str, Decimal],
) -> Decimal:
    """Compute the REI score from normalized sub-signals.

    Formula:
        blend = weights["rsi"] * rsi_component
              + weights["trend"] * trend_component
              + weights["oi"] * oi_component
        score = clamp(50 + 50 * blend, 0, 100)

    Args:
        rsi_component: Output of :func:`normalize_rsi` (-1..1).
        trend_component: Output of :func:`normalize_trend` (-1..1).
        oi_component: Output of :func:`normalize_oi` (-1..1).
        weights: Dict with keys "rsi", "trend", "oi".

    Returns:
        Score in [0, 100] quantized to 2 decimal places.
    """
    blend = (
        weights["rsi"] * rsi_component
        + weights["trend"] * trend_component
        + weights["oi"] * oi_component
    )
    return clamp(_FIFTY + _FIFTY * blend).quantize(Decimal("0.01"))


def classify_regime(rei_score: Decimal) -> Regime:
    """Bucket a REI score into a regime.

    >= 70 Momentum Bull, < 30 Decay Reversion, 40..60 (both inclusive)
    Range Bound, anything else Neutral Chop. So 70 is Momentum Bull while
    69.999 is Neutral Chop, and 30 is Neutral Chop.
    """
    if rei_score >= MOMENTUM_BULL_MIN:
        return Regime.MOMENTUM_BULL
    if rei_score < DECAY_REVERSION_BELOW:
        return Regime.DECAY_REVERSION
    if RANGE_BOUND_MIN <= rei_score <= RANGE_BOUND_MAX:
        return Regime.RANGE_BOUND
    return Regime.NEUTRAL_CHOP


def is_edge_reversal(
    consecutive_negative_funding: int,
    rei_score: Decimal,
    min_negative_periods: int = 4,
    max_rei: Decimal = Decimal("20"),
) -> bool:
    """Oversold flush while shorts pay longs: the squeeze setup.

    True iff funding has been negative for at least ``min_negative_periods``
    consecutive samples AND ``rei_score < max_rei``.
    """
    return consecutive_negative_funding >= min_negative_periods and rei_score < max_rei
