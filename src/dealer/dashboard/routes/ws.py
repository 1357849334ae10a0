"""WebSocket hub for real-time JSON broadcast to dashboard clients."""

from __future__ import annotations

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from dealer.alerts.models import AlertRule
from dealer.dashboard.serializers import to_jsonable
from dealer.logging import get_logger
from dealer.signals.models import CompositeState, IndicatorSnapshot

log = get_logger(__name__)

router = APIRouter()


class DashboardHub:
    """Manages WebSocket connections and broadcasts engine events to all clients.

    ``on_indicator_update`` and ``on_alert_triggered`` match the
    MarketMonitor listener signatures and are registered there at startup.
    """

    def __init__(self) -> None:
        self.connections: list[WebSocket] = []

    async def connect(self, ws: WebSocket) -> None:
        """Accept a WebSocket connection and add it to the active connections list."""
        await ws.accept()
        self.connections.append(ws)
        log.info("dashboard_ws_connected", total=len(self.connections))

    def disconnect(self, ws: WebSocket) -> None:
        """Remove a WebSocket connection from the active connections list."""
        if ws in self.connections:
            self.connections.remove(ws)
        log.info("dashboard_ws_disconnected", total=len(self.connections))

    async def broadcast(self, message: dict) -> None:
        """Send a JSON message to all connected clients, removing broken connections."""
        text = json.dumps(to_jsonable(message))
        for ws in self.connections.copy():
            try:
                await ws.send_text(text)
            except Exception:
                self.connections.remove(ws)
                log.warning("dashboard_ws_broadcast_error", remaining=len(self.connections))

    async def on_indicator_update(
        self, symbol: str, snapshot: IndicatorSnapshot, composite: CompositeState
    ) -> None:
        await self.broadcast(
            {
                "type": "indicator_update",
                "symbol": symbol,
                "snapshot": snapshot,
                "composite": composite,
            }
        )

    async def on_alert_triggered(self, symbol: str, rule: AlertRule) -> None:
        await self.broadcast({"type": "alert_triggered", "symbol": symbol, "rule": rule})


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for real-time dashboard updates."""
    ws_hub: DashboardHub = websocket.app.state.hub
    await ws_hub.connect(websocket)
    try:
        while True:
            # Consume messages to keep connection alive
            await websocket.receive_text()
    except WebSocketDisconnect:
        ws_hub.disconnect(websocket)
