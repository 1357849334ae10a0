"""Open interest momentum and the OI gauge score.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from dealer.models import Sample

_PCT_QUANTIZE = Decimal("0.0001")


def compute_oi_momentum(window: Sequence[Sample], lookback_samples: int = 96) -> Decimal:
    """Percent change in open interest across the last ``lookback_samples``.

    Compares the earliest and latest sample in the lookback slice (the
    whole window when it is shorter).

    Graceful degradation: returns 0 for an empty window or when the
    earliest open interest is 0.
    """
    if lookback_samples <= 0:
        raise ValueError("OI lookback must be > 0")

    recent = list(window)[-lookback_samples:]
    if not recent:
        return Decimal("0")

    earliest = recent[0].open_interest
    if earliest == 0:
        return Decimal("0")

    latest = recent[-1].open_interest
    return ((latest - earliest) / earliest * Decimal("100")).quantize(_PCT_QUANTIZE)


def compute_oi_score(
    oi_momentum_pct: Decimal,
    scale: Decimal = Decimal("10"),
) -> Decimal:
    """Map OI momentum to a 0-100 gauge centred on 50.

    Formula: clamp(50 + oi_momentum_pct * scale, 0, 100). With the default
    scale a 5% move saturates the gauge.
    """
    score = Decimal("50") + oi_momentum_pct * scale
    return min(max(score, Decimal("0")), Decimal("100")).quantize(Decimal("0.01"))


def oi_alert(oi_momentum_pct: Decimal, threshold: Decimal = Decimal("4")) -> str | None:
    """Text alert for the OI gauge: rapid OI build-up is squeeze fuel."""
    if oi_momentum_pct > threshold:
        return "Squeeze Risk"
    return None
