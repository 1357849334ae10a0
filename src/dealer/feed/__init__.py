"""Inbound market data: the simulated random-walk feed."""

from dealer.feed.simulator import RandomWalk, SimulatedFeed

__all__ = ["RandomWalk", "SimulatedFeed"]
