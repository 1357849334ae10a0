"""Configuration system using pydantic-settings with environment variable loading."""

from decimal import Decimal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class WindowSettings(BaseSettings):
    """Rolling sample window retention."""

    model_config = SettingsConfigDict(env_prefix="WINDOW_")

    capacity: int = Field(default=100, gt=0)  # samples kept per symbol


class IndicatorSettings(BaseSettings):
    """Indicator engine parameters.

    All fields configurable via INDICATOR_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="INDICATOR_")

    # RSI
    rsi_period: int = Field(default=14, gt=0)

    # ATR trend bands
    trend_atr_period: int = Field(default=10, gt=0)
    trend_multiplier: Decimal = Decimal("3")

    # Mean reversion
    samples_per_day: int = Field(default=96, gt=0)  # 15m candles
    reversion_lookback_days: int = Field(default=7, gt=0)
    reversion_band_sigma: Decimal = Decimal("2")

    # Open interest momentum
    oi_lookback_samples: int = Field(default=96, gt=0)  # ~24h of 15m candles

    @property
    def reversion_lookback(self) -> int:
        """Mean-reversion lookback in samples (days * samples per day)."""
        return self.reversion_lookback_days * self.samples_per_day


class ScoringSettings(BaseSettings):
    """Composite scorer configuration.

    Controls the REI blend weights, normalization caps, edge-reversal
    detection and the text alerts attached to the OI and funded gauges.
    All fields configurable via SCORING_ environment variable prefix.
    """

    model_config = SettingsConfigDict(env_prefix="SCORING_")

    # REI weights (must sum to 1.0)
    weight_rsi: Decimal = Decimal("0.40")
    weight_trend: Decimal = Decimal("0.35")
    weight_oi: Decimal = Decimal("0.25")

    # Normalization
    trend_persistence_periods: int = 20  # bars in one direction for full trend credit
    oi_momentum_cap: Decimal = Decimal("5")  # % OI change for full OI credit

    # Edge reversal
    edge_reversal_min_negative_funding: int = 4
    edge_reversal_max_rei: Decimal = Decimal("20")

    # OI gauge
    oi_score_scale: Decimal = Decimal("10")  # score points per % OI change
    oi_squeeze_threshold: Decimal = Decimal("4")  # % OI change flagged "Squeeze Risk"

    # Funded gauge
    funding_cap: Decimal = Decimal("0.0003")  # |rate| mapping to 0 or 100
    funding_overheated: Decimal = Decimal("0.0002")  # 0.02% per period

    # Funding projection
    funding_ema_span: int = Field(default=8, gt=0)


class FeedSettings(BaseSettings):
    """Simulated market data feed."""

    model_config = SettingsConfigDict(env_prefix="FEED_")

    enabled: bool = True
    symbols: list[str] = ["BTC-USD", "ETH-USD", "SOL-USD", "XRP-USD"]
    poll_interval: float = Field(default=5.0, gt=0)  # seconds between ticks
    candle_interval_ms: int = 15 * 60 * 1000
    history_points: int = Field(default=100, ge=0)  # samples back-filled on start
    seed: int | None = None


class DashboardSettings(BaseSettings):
    """Dashboard server configuration."""

    model_config = SettingsConfigDict(env_prefix="DASHBOARD_")

    host: str = "0.0.0.0"
    port: int = 8000
    enabled: bool = True


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    log_level: str = "INFO"
    log_format: str | None = None
    window: WindowSettings = WindowSettings()
    indicator: IndicatorSettings = IndicatorSettings()
    scoring: ScoringSettings = ScoringSettings()
    feed: FeedSettings = FeedSettings()
    dashboard: DashboardSettings = DashboardSettings()
