"""Alert rule data models."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class AlertKind(str, Enum):
    """What an alert rule watches."""

    PRICE = "PRICE"
    RSI = "RSI"
    TREND_FLIP = "TREND_FLIP"


class Comparator(str, Enum):
    """Condition applied to the watched value.

    GREATER_THAN / LESS_THAN are valid for PRICE and RSI only;
    FLIP_BULLISH / FLIP_BEARISH are valid for TREND_FLIP only.
    """

    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    FLIP_BULLISH = "FLIP_BULLISH"
    FLIP_BEARISH = "FLIP_BEARISH"


class RuleState(str, Enum):
    """Alert rule lifecycle state."""

    MONITORING = "MONITORING"
    TRIGGERED = "TRIGGERED"
    DISABLED = "DISABLED"


@dataclass
class AlertRule:
    """A user-defined alert rule for one symbol.

    ``state`` (and the trigger bookkeeping that goes with it) is the only
    mutable part and is written solely by the alert rule engine.
    """

    id: str
    symbol: str
    kind: AlertKind
    comparator: Comparator
    threshold: Decimal | None  # None for TREND_FLIP
    created_at_ms: int
    state: RuleState = RuleState.MONITORING
    triggered_at_ms: int | None = None
    trigger_value: Decimal | None = None  # observed value when the rule fired


@dataclass(frozen=True)
class AlertEvent:
    """One notification for one rule firing."""

    symbol: str
    rule: AlertRule  # copy taken at firing time
    observed: Decimal
    timestamp_ms: int
