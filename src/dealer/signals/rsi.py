"""Relative Strength Index with Wilder's smoothing.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from dealer.models import Sample

#: RSI returned when there is not enough history to compute one.
NEUTRAL_RSI = Decimal("50")

_AVG_QUANTIZE = Decimal("0.000000000001")
_RSI_QUANTIZE = Decimal("0.0001")


def compute_rsi(window: Sequence[Sample], period: int = 14) -> Decimal:
    """Compute Wilder's RSI over the closes in ``window``.

    The first average gain/loss is the simple mean of the first ``period``
    close-to-close changes; every later change is folded in with Wilder's
    smoothing:
        avg_t = (avg_{t-1} * (period - 1) + x_t) / period

    Graceful degradation: returns exactly 50 when the window holds fewer
    than ``period + 1`` samples. A window with gains and no losses scores
    100; a completely flat window scores 50.

    Args:
        window: Samples ordered oldest-first.
        period: Smoothing period.

    Returns:
        RSI in [0, 100] quantized to 4 decimal places.
    """
    if period <= 0:
        raise ValueError("RSI period must be > 0")
    if len(window) < period + 1:
        return NEUTRAL_RSI

    closes = [s.close for s in window]
    changes = [curr - prev for prev, curr in zip(closes, closes[1:])]
    gains = [max(c, Decimal("0")) for c in changes]
    losses = [max(-c, Decimal("0")) for c in changes]

    p = Decimal(period)
    avg_gain = (sum(gains[:period], Decimal("0")) / p).quantize(_AVG_QUANTIZE)
    avg_loss = (sum(losses[:period], Decimal("0")) / p).quantize(_AVG_QUANTIZE)

    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = ((avg_gain * (p - 1) + gain) / p).quantize(_AVG_QUANTIZE)
        avg_loss = ((avg_loss * (p - 1) + loss) / p).quantize(_AVG_QUANTIZE)

    if avg_loss == 0:
        return Decimal("100") if avg_gain > 0 else NEUTRAL_RSI

    rs = avg_gain / avg_loss
    rsi = Decimal("100") - Decimal("100") / (Decimal("1") + rs)
    return rsi.quantize(_RSI_QUANTIZE)
