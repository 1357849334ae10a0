"""Signal analysis: indicators, composite scores and regime classification.

Provides the pure indicator functions (RSI, ATR trend bands, mean
reversion, OI momentum, order flow, funding), the REI composite
aggregator, and the IndicatorEngine / CompositeScorer classes that apply
them to a sample window.
"""

from dealer.signals.composite import classify_regime, compute_rei_score, is_edge_reversal
from dealer.signals.engine import IndicatorEngine
from dealer.signals.models import (
    CompositeState,
    IndicatorSnapshot,
    Regime,
    ReversalDetails,
    ReversionBand,
    TrendDirection,
)
from dealer.signals.open_interest import compute_oi_momentum
from dealer.signals.reversion import compute_mean_reversion_z
from dealer.signals.rsi import compute_rsi
from dealer.signals.scorer import CompositeScorer
from dealer.signals.trend import compute_ema, compute_trend, detect_flip

__all__ = [
    "CompositeScorer",
    "CompositeState",
    "IndicatorEngine",
    "IndicatorSnapshot",
    "Regime",
    "ReversalDetails",
    "ReversionBand",
    "TrendDirection",
    "classify_regime",
    "compute_ema",
    "compute_mean_reversion_z",
    "compute_oi_momentum",
    "compute_rei_score",
    "compute_rsi",
    "compute_trend",
    "detect_flip",
    "is_edge_reversal",
]
