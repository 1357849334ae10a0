"""Entry point for the dealer engine.

Wires all components together, optionally embeds the FastAPI dashboard,
and starts the simulated feed. When the dashboard is enabled (default),
the feed and dashboard share a single asyncio event loop via uvicorn's
programmatic API and FastAPI's lifespan context manager.

Handles SIGINT/SIGTERM for graceful shutdown.

Component wiring order (in _build_components):
1. AppSettings (configuration)
2. Logging setup
3. MarketMonitor (per-symbol pipelines)
4. SimulatedFeed (random-walk samples into the monitor)
"""

import asyncio
import signal
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from dealer.config import AppSettings
from dealer.feed.simulator import SimulatedFeed
from dealer.logging import get_logger, setup_logging
from dealer.monitor import MarketMonitor


def _build_components(settings: AppSettings) -> dict[str, Any]:
    """Build the monitor and feed from settings.

    Args:
        settings: Application-wide settings.

    Returns:
        Dict mapping component names to instances.
    """
    monitor = MarketMonitor(settings)
    feed = SimulatedFeed(monitor, settings.feed)
    return {"monitor": monitor, "feed": feed}


def _setup_signal_handlers(stop_event: asyncio.Event) -> None:
    """Register SIGINT/SIGTERM to set ``stop_event``.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("dealer.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the simulated feed with the app and stop it on shutdown."""
    logger = get_logger("dealer.main")
    settings: AppSettings = app.state.settings
    feed: SimulatedFeed = app.state.components["feed"]

    if settings.feed.enabled:
        await feed.start()

    logger.info("lifespan_started", feed_enabled=settings.feed.enabled)

    yield

    await feed.stop()
    logger.info("dealer_engine_stopped")


async def run() -> None:
    """Run the dealer engine.

    When dashboard is enabled (DASHBOARD_ENABLED=true, the default):
    - Creates the FastAPI dashboard app with lifespan
    - Runs feed and dashboard in a single asyncio event loop via uvicorn

    When dashboard is disabled (DASHBOARD_ENABLED=false):
    - Runs the feed directly until SIGINT/SIGTERM
    """
    # 1. Load settings
    settings = AppSettings()

    # 2. Setup logging
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("dealer.main")

    # 3-4. Build components
    components = _build_components(settings)

    if settings.dashboard.enabled:
        from dealer.dashboard.app import create_dashboard_app

        app = create_dashboard_app(monitor=components["monitor"], lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info(
            "starting_with_dashboard",
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            symbols=settings.feed.symbols,
        )

        config = uvicorn.Config(
            app,
            host=settings.dashboard.host,
            port=settings.dashboard.port,
            log_level="warning",  # Suppress uvicorn access logs
        )
        server = uvicorn.Server(config)
        await server.serve()
        return

    if not settings.feed.enabled:
        logger.warning("nothing_to_run", note="Both dashboard and feed are disabled.")
        return

    stop_event = asyncio.Event()
    _setup_signal_handlers(stop_event)

    logger.info("starting_without_dashboard", symbols=settings.feed.symbols)

    feed: SimulatedFeed = components["feed"]
    try:
        await feed.start()
        await stop_event.wait()
    finally:
        await feed.stop()
        logger.info("dealer_engine_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
