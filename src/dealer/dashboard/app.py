"""FastAPI dashboard application factory with JSON routes and WebSocket hub."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from dealer.dashboard.routes import api, ws
from dealer.dashboard.routes.ws import DashboardHub
from dealer.monitor import MarketMonitor


def create_dashboard_app(
    monitor: MarketMonitor | None = None,
    hub: DashboardHub | None = None,
    lifespan: Any = None,
) -> FastAPI:
    """Create and configure the FastAPI dashboard application.

    The hub is registered as an indicator and alert listener on the
    monitor, so every tick and every firing reaches connected clients.

    Args:
        monitor: Market monitor served by the routes; a fresh one if omitted.
        hub: WebSocket hub; a fresh one if omitted.
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to start and stop the data feed.

    Returns:
        Configured FastAPI application with WebSocket hub and routes.
    """
    app = FastAPI(
        title="Dealer Engine",
        lifespan=lifespan,
    )

    monitor = monitor or MarketMonitor()
    hub = hub or DashboardHub()
    monitor.add_indicator_listener(hub.on_indicator_update)
    monitor.add_alert_listener(hub.on_alert_triggered)

    app.state.monitor = monitor
    app.state.hub = hub

    app.include_router(api.router, prefix="/api")
    app.include_router(ws.router)

    return app
