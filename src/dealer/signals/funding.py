"""Funding rate scoring: negative-funding persistence, funded gauge, projection.

CRITICAL: All computations use Decimal. Never use float.
"""

from decimal import Decimal

from dealer.signals.trend import compute_ema


def count_negative_funding(funding_rates: list[Decimal]) -> int:
    """Count consecutive periods of negative funding, newest first.

    Walks backward from the most recent rate and stops at the first rate
    that is zero or positive.

    Args:
        funding_rates: Funding rates ordered oldest-first.

    Returns:
        Number of consecutive negative rates ending at the latest one.
    """
    consecutive = 0
    for rate in reversed(funding_rates):
        if rate < 0:
            consecutive += 1
        else:
            break
    return consecutive


def compute_funded_score(
    funding_rate: Decimal, cap: Decimal = Decimal("0.0003")
) -> Decimal:
    """Map the current funding rate to a 0-100 crowding gauge.

    50 is neutral funding; ``+cap`` (longs paying heavily) maps to 100 and
    ``-cap`` (shorts paying heavily) maps to 0.

    Formula: clamp(50 + 50 * funding_rate / cap, 0, 100)
    """
    score = Decimal("50") + Decimal("50") * funding_rate / cap
    return min(max(score, Decimal("0")), Decimal("100")).quantize(Decimal("0.01"))


def funded_alert(
    funding_rate: Decimal, threshold: Decimal = Decimal("0.0002")
) -> str | None:
    """Text alert for the funded gauge when either side is overpaying."""
    if funding_rate > threshold:
        return "Overheated"
    if funding_rate < -threshold:
        return "Short Overcommitment"
    return None


def project_funding(funding_rates: list[Decimal], span: int = 8) -> Decimal:
    """Projected next funding rate: the latest EMA of the funding history.

    Returns 0 when there is no history.
    """
    ema = compute_ema(funding_rates, span)
    if not ema:
        return Decimal("0")
    return ema[-1]
