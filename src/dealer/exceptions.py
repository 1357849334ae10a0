"""Custom exceptions for the dealer engine.

All evaluation-core exceptions live here to avoid circular imports
between the window, alert and monitor modules. Insufficient history is
deliberately not an exception: indicators fall back to neutral values.
"""


class DealerError(Exception):
    """Base exception for all dealer engine errors."""


class OutOfOrderSample(DealerError):
    """Raised when a sample's timestamp is not after the window's tail."""

    def __init__(self, timestamp_ms: int, tail_timestamp_ms: int) -> None:
        self.timestamp_ms = timestamp_ms
        self.tail_timestamp_ms = tail_timestamp_ms
        super().__init__(
            f"sample at {timestamp_ms} is not after tail at {tail_timestamp_ms}"
        )


class InvalidRuleDefinition(DealerError):
    """Raised when an alert rule's kind, comparator and threshold disagree."""


class RuleNotFound(DealerError):
    """Raised when a rule id is not present in a symbol's rule set."""


class UnknownSymbol(DealerError):
    """Raised when a symbol has no pipeline in the monitor."""


class InvalidSample(DealerError):
    """Raised when a sample carries a value the indicators cannot evaluate."""
