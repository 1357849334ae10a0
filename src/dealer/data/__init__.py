"""Per-symbol sample storage.

Provides the bounded, time-ordered SampleWindow that every indicator is
computed from.
"""

from dealer.data.window import SampleWindow

__all__ = ["SampleWindow"]
