"""Tests for funding persistence, the funded gauge and funding projection.

All test values use Decimal (project convention).
"""

from decimal import Decimal

from dealer.signals.funding import (
    compute_funded_score,
    count_negative_funding,
    funded_alert,
    project_funding,
)


class TestCountNegativeFunding:
    """Consecutive negative periods, counted back from the latest."""

    def test_all_negative(self) -> None:
        rates = [Decimal("-0.0001")] * 5
        assert count_negative_funding(rates) == 5

    def test_run_ends_at_first_non_negative(self) -> None:
        rates = [Decimal("-0.0003"), Decimal("0.0001"), Decimal("-0.0001"), Decimal("-0.0002")]
        assert count_negative_funding(rates) == 2

    def test_zero_breaks_run(self) -> None:
        rates = [Decimal("-0.0001"), Decimal("0"), Decimal("-0.0001")]
        assert count_negative_funding(rates) == 1

    def test_latest_positive(self) -> None:
        assert count_negative_funding([Decimal("-0.0001"), Decimal("0.0001")]) == 0

    def test_empty(self) -> None:
        assert count_negative_funding([]) == 0


class TestFundedScore:
    def test_neutral(self) -> None:
        assert compute_funded_score(Decimal("0")) == Decimal("50.00")

    def test_half_cap(self) -> None:
        assert compute_funded_score(Decimal("0.00015"), cap=Decimal("0.0003")) == Decimal("75.00")

    def test_clamped(self) -> None:
        assert compute_funded_score(Decimal("0.001")) == Decimal("100")
        assert compute_funded_score(Decimal("-0.001")) == Decimal("0")


class TestFundedAlert:
    def test_overheated(self) -> None:
        assert funded_alert(Decimal("0.00025")) == "Overheated"

    def test_short_overcommitment(self) -> None:
        assert funded_alert(Decimal("-0.00025")) == "Short Overcommitment"

    def test_threshold_is_exclusive(self) -> None:
        assert funded_alert(Decimal("0.0002")) is None
        assert funded_alert(Decimal("-0.0002")) is None


class TestProjectFunding:
    def test_empty_history(self) -> None:
        assert project_funding([]) == Decimal("0")

    def test_constant_history(self) -> None:
        assert project_funding([Decimal("0.0001")] * 10, span=8) == Decimal("0.0001")

    def test_follows_latest_ema(self) -> None:
        """span 3 -> alpha 0.5: 0.0001, then 0.5 * 0.0003 + 0.5 * 0.0001 = 0.0002."""
        assert project_funding([Decimal("0.0001"), Decimal("0.0003")], span=3) == Decimal("0.0002")
