"""Composite scorer: derives CompositeState from an IndicatorSnapshot.

The scorer is a pure function of the snapshot and the funding-rate
history; it holds configuration only and no per-tick state.

CRITICAL: All computations use Decimal. Never use float for signal scores.
"""

from __future__ import annotations

from decimal import Decimal

from dealer.config import ScoringSettings
from dealer.signals.composite import (
    classify_regime,
    compute_rei_score,
    is_edge_reversal,
    normalize_oi,
    normalize_rsi,
    normalize_trend,
)
from dealer.signals.flow import compute_net_long_short
from dealer.signals.funding import (
    compute_funded_score,
    count_negative_funding,
    funded_alert,
    project_funding,
)
from dealer.signals.models import CompositeState, IndicatorSnapshot, ReversalDetails
from dealer.signals.open_interest import compute_oi_score, oi_alert


class CompositeScorer:
    """Combines indicator outputs into bounded scores and a regime label.

    Args:
        settings: Weights, normalization caps and alert thresholds.
    """

    def __init__(self, settings: ScoringSettings | None = None) -> None:
        self._settings = settings or ScoringSettings()

    @property
    def settings(self) -> ScoringSettings:
        return self._settings

    def score(
        self,
        snapshot: IndicatorSnapshot,
        funding_rates: list[Decimal],
    ) -> CompositeState:
        """Score one snapshot.

        Args:
            snapshot: Indicators for the latest window.
            funding_rates: Funding history for the same window, oldest-first.
                The last entry is taken as the current funding rate.

        Returns:
            CompositeState for the snapshot.
        """
        s = self._settings

        rei = compute_rei_score(
            rsi_component=normalize_rsi(snapshot.rsi),
            trend_component=normalize_trend(
                snapshot.trend_direction,
                snapshot.trend_age,
                persistence_periods=s.trend_persistence_periods,
            ),
            oi_component=normalize_oi(
                snapshot.oi_momentum_pct,
                snapshot.trend_direction,
                cap=s.oi_momentum_cap,
            ),
            weights=self._build_weights(),
        )

        current_funding = funding_rates[-1] if funding_rates else Decimal("0")
        negative_run = count_negative_funding(funding_rates)
        net_long_short = compute_net_long_short(
            snapshot.cvd_change, snapshot.cvd_turnover
        )

        return CompositeState(
            rei_score=rei,
            regime=classify_regime(rei),
            oi_score=compute_oi_score(snapshot.oi_momentum_pct, scale=s.oi_score_scale),
            oi_alert=oi_alert(snapshot.oi_momentum_pct, threshold=s.oi_squeeze_threshold),
            funded_score=compute_funded_score(current_funding, cap=s.funding_cap),
            funded_alert=funded_alert(current_funding, threshold=s.funding_overheated),
            net_long_short=net_long_short,
            long_short_ratio=(Decimal("1") + net_long_short / Decimal("100")).quantize(
                Decimal("0.0001")
            ),
            projected_funding=project_funding(funding_rates, span=s.funding_ema_span),
            edge_reversal=is_edge_reversal(
                negative_run,
                rei,
                min_negative_periods=s.edge_reversal_min_negative_funding,
                max_rei=s.edge_reversal_max_rei,
            ),
            reversal_details=ReversalDetails(
                consecutive_negative_funding=negative_run,
                consecutive_long_buildup=snapshot.long_buildup,
            ),
        )

    def _build_weights(self) -> dict[str, Decimal]:
        """Build weights dict from settings."""
        return {
            "rsi": self._settings.weight_rsi,
            "trend": self._settings.weight_trend,
            "oi": self._settings.weight_oi,
        }
