"""Fixed-capacity, time-ordered sample window (the per-symbol data point store).

The window is the only owner of sample ordering and eviction. Indicators
always read the full current contents through :meth:`SampleWindow.window`.
"""

from collections import deque
from decimal import Decimal

from dealer.exceptions import InvalidSample, OutOfOrderSample
from dealer.logging import get_logger
from dealer.models import Sample

logger = get_logger(__name__)

#: Largest absolute value accepted for any sample field. Indicators keep
#: 12 decimal places, so this keeps every intermediate inside the default
#: 28-digit Decimal context.
MAX_MAGNITUDE = Decimal("1E+12")

_VALUE_FIELDS = ("open", "high", "low", "close", "cvd", "open_interest", "funding_rate")


def validate_sample(sample: Sample) -> None:
    """Check that every value in ``sample`` is finite and within range.

    Raises:
        InvalidSample: On a NaN, infinite or oversized value.
    """
    for field in _VALUE_FIELDS:
        value = getattr(sample, field)
        if not value.is_finite():
            raise InvalidSample(f"{field} must be finite, got {value}")
        if abs(value) > MAX_MAGNITUDE:
            raise InvalidSample(f"{field} exceeds {MAX_MAGNITUDE}, got {value}")


class SampleWindow:
    """Ordered sequence of Samples bounded by ``capacity``.

    Appends must be strictly increasing in ``timestamp_ms``; the oldest
    samples are evicted once the window is full.

    Args:
        capacity: Maximum number of samples retained. Must be positive.
    """

    def __init__(self, capacity: int = 100) -> None:
        if capacity <= 0:
            raise ValueError("window capacity must be > 0")
        self._capacity = capacity
        self._samples: deque[Sample] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._samples)

    def check(self, sample: Sample) -> None:
        """Raise if ``sample`` could not be appended. Never mutates.

        Raises:
            InvalidSample: If a value is non-finite or out of range.
            OutOfOrderSample: If the sample is not strictly after the tail.
        """
        validate_sample(sample)
        if self._samples:
            tail = self._samples[-1]
            if sample.timestamp_ms <= tail.timestamp_ms:
                raise OutOfOrderSample(sample.timestamp_ms, tail.timestamp_ms)

    def candidate(self, sample: Sample) -> tuple[Sample, ...]:
        """Window contents as they would be after appending ``sample``.

        Raises:
            InvalidSample: See :meth:`check`.
            OutOfOrderSample: See :meth:`check`.
        """
        self.check(sample)
        return (*self._samples, sample)[-self._capacity :]

    def append(self, sample: Sample) -> None:
        """Insert ``sample`` at the tail, evicting from the head past capacity.

        Raises:
            InvalidSample: See :meth:`check`.
            OutOfOrderSample: See :meth:`check`. The window is left unchanged.
        """
        self.check(sample)

        self._samples.append(sample)
        evicted = 0
        while len(self._samples) > self._capacity:
            self._samples.popleft()
            evicted += 1

        if evicted:
            logger.debug("window_evicted", evicted=evicted, size=len(self._samples))

    def window(self) -> tuple[Sample, ...]:
        """Return the current samples, oldest first, as an immutable tuple."""
        return tuple(self._samples)

    def latest(self) -> Sample | None:
        """Return the newest sample, or None when empty."""
        return self._samples[-1] if self._samples else None

    def closes(self) -> list[Decimal]:
        return [s.close for s in self._samples]

    def funding_rates(self) -> list[Decimal]:
        return [s.funding_rate for s in self._samples]

    def open_interest(self) -> list[Decimal]:
        return [s.open_interest for s in self._samples]

    def cvd(self) -> list[Decimal]:
        return [s.cvd for s in self._samples]
