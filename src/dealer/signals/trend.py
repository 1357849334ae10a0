"""Trend detection: EMA smoothing and ATR trailing-band direction.

The band calculation follows the Supertrend construction (hl2 +/- k * ATR
with ratcheting bands) with one change to the flip rule: a direction
change needs two consecutive closes beyond the active trailing band. A
single close beyond the band only marks the flip as pending, so one noisy
bar cannot reverse the trend.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from dealer.models import Sample
from dealer.signals.models import TrendDirection

#: Precision limit for EMA/ATR intermediate results (12 decimal places).
#: Prevents Decimal division from producing arbitrarily long representations.
_QUANTIZE = Decimal("0.000000000001")

_TWO = Decimal("2")


def compute_ema(values: list[Decimal], span: int) -> list[Decimal]:
    """Compute Exponential Moving Average over a list of Decimal values.

    Uses the standard recursive formula:
        alpha = 2 / (span + 1)
        EMA_t = alpha * value_t + (1 - alpha) * EMA_{t-1}

    First EMA value = first input value (standard initialization).
    Each intermediate result is quantized to 12 decimal places.

    Args:
        values: Ordered list of Decimal values (oldest first).
        span: Number of periods for EMA smoothing.

    Returns:
        List of EMA values, same length as input. Empty list if input is empty.
    """
    if not values:
        return []

    alpha = _TWO / (Decimal(span) + Decimal("1"))
    one_minus_alpha = Decimal("1") - alpha

    ema = [values[0].quantize(_QUANTIZE)]
    for v in values[1:]:
        ema.append((alpha * v + one_minus_alpha * ema[-1]).quantize(_QUANTIZE))

    return ema


def compute_true_ranges(window: Sequence[Sample]) -> list[Decimal]:
    """True range per bar.

    TR_0 = high - low; afterwards
    TR_t = max(high - low, |high - close_{t-1}|, |low - close_{t-1}|).
    """
    ranges: list[Decimal] = []
    prev_close: Decimal | None = None
    for bar in window:
        tr = bar.high - bar.low
        if prev_close is not None:
            tr = max(tr, abs(bar.high - prev_close), abs(bar.low - prev_close))
        ranges.append(tr)
        prev_close = bar.close
    return ranges


def compute_atr(window: Sequence[Sample], period: int) -> list[Decimal]:
    """Average True Range with Wilder's smoothing.

    The first value is the simple mean of the first ``period`` true ranges
    and lines up with ``window[period - 1]``; the series then has one value
    per remaining bar.

    Returns:
        ATR values aligned to ``window[period - 1:]``. Empty when the
        window holds fewer than ``period`` bars.
    """
    if period <= 0:
        raise ValueError("ATR period must be > 0")

    ranges = compute_true_ranges(window)
    if len(ranges) < period:
        return []

    p = Decimal(period)
    atr = [(sum(ranges[:period], Decimal("0")) / p).quantize(_QUANTIZE)]
    for tr in ranges[period:]:
        atr.append(((atr[-1] * (p - 1) + tr) / p).quantize(_QUANTIZE))
    return atr


@dataclass(frozen=True)
class TrendBands:
    """Per-bar band directions plus the latest band level and ATR."""

    directions: tuple[TrendDirection, ...]  # aligned to window[period - 1:]
    band: Decimal  # lower band when bullish, upper band when bearish
    atr: Decimal


def compute_trend_bands(
    window: Sequence[Sample],
    multiplier: Decimal = Decimal("3"),
    period: int = 10,
) -> TrendBands | None:
    """Run the confirmed trailing-band calculation over ``window``.

    Bands are ``hl2 +/- multiplier * ATR``. While bullish the lower band
    only ratchets up; while bearish the upper band only ratchets down. The
    first computed bar starts BULLISH.

    Returns:
        TrendBands, or None when the window is shorter than ``period``.
    """
    atr = compute_atr(window, period)
    if not atr:
        return None

    bars = list(window)[period - 1 :]

    first = bars[0]
    hl2 = (first.high + first.low) / _TWO
    lower = (hl2 - multiplier * atr[0]).quantize(_QUANTIZE)
    upper = (hl2 + multiplier * atr[0]).quantize(_QUANTIZE)

    direction = TrendDirection.BULLISH
    pending = False
    directions = [direction]

    for bar, bar_atr in zip(bars[1:], atr[1:]):
        hl2 = (bar.high + bar.low) / _TWO
        basic_upper = (hl2 + multiplier * bar_atr).quantize(_QUANTIZE)
        basic_lower = (hl2 - multiplier * bar_atr).quantize(_QUANTIZE)

        if direction is TrendDirection.BULLISH:
            lower = max(basic_lower, lower)
            upper = basic_upper
            crossed = bar.close < lower
        else:
            upper = min(basic_upper, upper)
            lower = basic_lower
            crossed = bar.close > upper

        if crossed and pending:
            direction = (
                TrendDirection.BEARISH
                if direction is TrendDirection.BULLISH
                else TrendDirection.BULLISH
            )
            pending = False
        else:
            pending = crossed

        directions.append(direction)

    band = lower if direction is TrendDirection.BULLISH else upper
    return TrendBands(directions=tuple(directions), band=band, atr=atr[-1])


def compute_trend(
    window: Sequence[Sample],
    multiplier: Decimal = Decimal("3"),
    period: int = 10,
) -> TrendDirection:
    """Direction of the latest bar.

    Graceful degradation: BULLISH when the window is too short for ATR.
    """
    bands = compute_trend_bands(window, multiplier, period)
    if bands is None:
        return TrendDirection.BULLISH
    return bands.directions[-1]


def detect_flip(directions: Sequence[TrendDirection]) -> bool:
    """True when the latest two computed directions differ."""
    return len(directions) >= 2 and directions[-1] != directions[-2]


def trend_age(directions: Sequence[TrendDirection]) -> int:
    """Number of consecutive trailing bars sharing the latest direction."""
    if not directions:
        return 0
    latest = directions[-1]
    age = 0
    for d in reversed(directions):
        if d != latest:
            break
        age += 1
    return age
