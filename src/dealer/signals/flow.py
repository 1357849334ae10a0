"""Order-flow measures derived from cumulative volume delta (CVD).

CRITICAL: All computations use Decimal. Never use float.
"""

from collections.abc import Sequence
from decimal import Decimal

from dealer.models import Sample


def compute_cvd_flow(window: Sequence[Sample]) -> tuple[Decimal, Decimal]:
    """Net and gross CVD movement across the window.

    Returns:
        Tuple of (change, turnover): ``change`` is last CVD minus first CVD,
        ``turnover`` is the sum of absolute bar-to-bar CVD moves. Both are
        0 for windows shorter than two samples.
    """
    values = [s.cvd for s in window]
    if len(values) < 2:
        return Decimal("0"), Decimal("0")

    turnover = sum(
        (abs(curr - prev) for prev, curr in zip(values, values[1:])),
        Decimal("0"),
    )
    return values[-1] - values[0], turnover


def compute_net_long_short(change: Decimal, turnover: Decimal) -> Decimal:
    """Net buying share of all signed flow, as a percent in [-100, 100].

    Returns 0 when there was no flow at all.
    """
    if turnover == 0:
        return Decimal("0")
    pct = change / turnover * Decimal("100")
    return min(max(pct, Decimal("-100")), Decimal("100")).quantize(Decimal("0.01"))


def count_long_buildup(window: Sequence[Sample]) -> int:
    """Consecutive latest bars on which CVD rose (longs building)."""
    values = [s.cvd for s in window]
    count = 0
    for prev, curr in zip(reversed(values[:-1]), reversed(values[1:])):
        if curr > prev:
            count += 1
        else:
            break
    return count
