"""Mean-reversion Z-score and reversion bands over a rolling close lookback.

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from dealer.models import Sample
from dealer.signals.models import ReversionBand

_Z_QUANTIZE = Decimal("0.0001")
_PRICE_QUANTIZE = Decimal("0.00000001")


def _mean_std(values: list[Decimal]) -> tuple[Decimal, Decimal]:
    """Mean and population standard deviation of ``values`` (non-empty)."""
    n = Decimal(len(values))
    mean = sum(values, Decimal("0")) / n
    variance = sum(((v - mean) ** 2 for v in values), Decimal("0")) / n
    return mean, variance.sqrt()


def compute_mean_reversion_z(
    window: Sequence[Sample], lookback: int = 7 * 96
) -> Decimal:
    """Z-score of the latest close against the rolling mean.

    Formula: (latest - mean) / stddev over the last ``lookback`` closes
    (the whole window when it is shorter than ``lookback``).

    Graceful degradation: returns 0 for fewer than two closes and for a
    flat lookback (stddev == 0).
    """
    if lookback <= 0:
        raise ValueError("mean reversion lookback must be > 0")

    closes = [s.close for s in window][-lookback:]
    if len(closes) < 2:
        return Decimal("0")

    mean, std = _mean_std(closes)
    if std == 0:
        return Decimal("0")

    return ((closes[-1] - mean) / std).quantize(_Z_QUANTIZE)


def compute_reversion_band(
    window: Sequence[Sample],
    lookback: int = 7 * 96,
    sigma: Decimal = Decimal("2"),
) -> ReversionBand:
    """Reversion targets: rolling mean +/- ``sigma`` standard deviations.

    An empty window yields an all-zero band; a flat window collapses all
    three levels onto the mean.
    """
    closes = [s.close for s in window][-lookback:]
    if not closes:
        zero = Decimal("0")
        return ReversionBand(upper=zero, neutral=zero, lower=zero)

    mean, std = _mean_std(closes)
    width = sigma * std
    return ReversionBand(
        upper=(mean + width).quantize(_PRICE_QUANTIZE),
        neutral=mean.quantize(_PRICE_QUANTIZE),
        lower=(mean - width).quantize(_PRICE_QUANTIZE),
    )
