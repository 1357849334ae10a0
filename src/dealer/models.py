"""Shared data models for the dealer engine.

CRITICAL: All market values use Decimal. Never use float for prices,
open interest, funding rates or scores.
"""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Sample:
    """One market observation for a single symbol.

    Immutable once created. ``cvd`` is the running cumulative volume delta,
    not the per-bar delta. ``funding_rate`` is the raw per-period fraction
    (0.0001 == 0.01%).
    """

    timestamp_ms: int
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    cvd: Decimal = Decimal("0")
    open_interest: Decimal = Decimal("0")
    funding_rate: Decimal = Decimal("0")

