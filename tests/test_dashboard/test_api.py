"""Tests for the dashboard JSON API and WebSocket hub.

Uses FastAPI's TestClient against an app without lifespan, so no feed runs
and every sample comes from the test.
"""

import json
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from dealer.alerts.models import AlertKind, AlertRule, Comparator
from dealer.dashboard.app import create_dashboard_app
from dealer.dashboard.routes.ws import DashboardHub
from dealer.dashboard.serializers import to_jsonable
from dealer.monitor import MarketMonitor
from dealer.signals.models import Regime, TrendDirection
from dealer.signals.scorer import CompositeScorer


@pytest.fixture
def monitor(mock_settings) -> MarketMonitor:
    return MarketMonitor(mock_settings)


@pytest.fixture
def client(monitor) -> TestClient:
    return TestClient(create_dashboard_app(monitor=monitor))


def _sample_body(index: int, close: str, **extra) -> dict:
    c = Decimal(close)
    return {
        "timestamp_ms": 1_700_000_000_000 + index * 900_000,
        "open": close,
        "high": str(c + Decimal("0.5")),
        "low": str(c - Decimal("0.5")),
        "close": close,
        **extra,
    }


class TestSerializers:
    def test_decimals_enums_and_dataclasses(self) -> None:
        rule = AlertRule(
            id="r1",
            symbol="BTC-USD",
            kind=AlertKind.PRICE,
            comparator=Comparator.GREATER_THAN,
            threshold=Decimal("110.5"),
            created_at_ms=1,
        )
        data = to_jsonable({"rule": rule, "dir": TrendDirection.BEARISH, "r": Regime.RANGE_BOUND})

        assert data["rule"]["threshold"] == "110.5"
        assert data["rule"]["kind"] == "PRICE"
        assert data["rule"]["state"] == "MONITORING"
        assert data["dir"] == "BEARISH"
        assert data["r"] == "Range Bound"
        json.dumps(data)


class TestSamples:
    def test_post_sample(self, client) -> None:
        resp = client.post("/api/symbols/BTC-USD/samples", json=_sample_body(0, "100"))

        assert resp.status_code == 200
        data = resp.json()
        assert data["snapshot"]["price"] == "100"
        assert data["snapshot"]["rsi"] == "50"
        assert data["snapshot"]["trend_direction"] == "BULLISH"
        assert data["composite"]["regime"] in {r.value for r in Regime}
        assert data["fired"] == []

    def test_out_of_order_is_conflict(self, client) -> None:
        client.post("/api/symbols/BTC-USD/samples", json=_sample_body(1, "100"))
        resp = client.post("/api/symbols/BTC-USD/samples", json=_sample_body(0, "101"))
        assert resp.status_code == 409

    def test_missing_field(self, client) -> None:
        body = _sample_body(0, "100")
        del body["close"]
        resp = client.post("/api/symbols/BTC-USD/samples", json=body)
        assert resp.status_code == 400
        assert "close" in resp.json()["error"]

    def test_non_numeric_value(self, client) -> None:
        resp = client.post(
            "/api/symbols/BTC-USD/samples", json=_sample_body(0, "100", funding_rate="abc")
        )
        assert resp.status_code == 400

    def test_oversized_value_is_bad_request(self, client) -> None:
        client.post("/api/symbols/BTC-USD/samples", json=_sample_body(0, "100"))
        resp = client.post("/api/symbols/BTC-USD/samples", json=_sample_body(1, "1E+17"))
        assert resp.status_code == 400

        window = client.get("/api/symbols/BTC-USD/window").json()
        assert len(window["samples"]) == 1

        resp = client.post("/api/symbols/BTC-USD/samples", json=_sample_body(2, "101"))
        assert resp.status_code == 200

    def test_invalid_json(self, client) -> None:
        resp = client.post(
            "/api/symbols/BTC-USD/samples",
            content=b"not json",
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400


class TestReadSurface:
    def test_symbols_empty(self, client) -> None:
        assert client.get("/api/symbols").json() == {"symbol_count": 0, "symbols": {}}

    def test_state_and_window(self, client) -> None:
        for i in range(3):
            client.post("/api/symbols/ETH-USD/samples", json=_sample_body(i, str(3450 + i)))

        state = client.get("/api/symbols/ETH-USD/state").json()
        assert state["snapshot"]["price"] == "3452"
        assert state["snapshot"]["sample_count"] == 3

        window = client.get("/api/symbols/ETH-USD/window").json()
        assert window["capacity"] == 100
        assert [s["close"] for s in window["samples"]] == ["3450", "3451", "3452"]

        symbols = client.get("/api/symbols").json()
        assert symbols["symbols"]["ETH-USD"]["samples"] == 3

    def test_state_before_first_tick(self, client, monitor) -> None:
        monitor.watch("SOL-USD")
        data = client.get("/api/symbols/SOL-USD/state").json()
        assert data["snapshot"] is None
        assert data["composite"] is None

    def test_delete_symbol(self, client) -> None:
        client.post("/api/symbols/BTC-USD/samples", json=_sample_body(0, "100"))

        resp = client.delete("/api/symbols/BTC-USD")
        assert resp.status_code == 200
        assert resp.json() == {"deleted": "BTC-USD"}
        assert client.get("/api/symbols").json()["symbol_count"] == 0
        assert client.get("/api/symbols/BTC-USD/state").status_code == 404
        assert client.delete("/api/symbols/BTC-USD").status_code == 404

    def test_unknown_symbol(self, client) -> None:
        assert client.get("/api/symbols/NOPE/state").status_code == 404
        assert client.get("/api/symbols/NOPE/window").status_code == 404
        assert client.get("/api/symbols/NOPE/rules").status_code == 404


class TestRules:
    def test_create_list_delete(self, client) -> None:
        resp = client.post(
            "/api/symbols/BTC-USD/rules",
            json={"kind": "PRICE", "comparator": "GREATER_THAN", "threshold": "110"},
        )
        assert resp.status_code == 201
        rule = resp.json()
        assert rule["state"] == "MONITORING"
        assert rule["threshold"] == "110"

        listed = client.get("/api/symbols/BTC-USD/rules").json()
        assert [r["id"] for r in listed] == [rule["id"]]

        assert client.delete(f"/api/symbols/BTC-USD/rules/{rule['id']}").status_code == 200
        assert client.delete(f"/api/symbols/BTC-USD/rules/{rule['id']}").status_code == 404

    def test_invalid_rule(self, client) -> None:
        resp = client.post(
            "/api/symbols/BTC-USD/rules", json={"kind": "PRICE", "comparator": "FLIP_BULLISH"}
        )
        assert resp.status_code == 400

    def test_missing_rule_field(self, client) -> None:
        resp = client.post("/api/symbols/BTC-USD/rules", json={"kind": "PRICE"})
        assert resp.status_code == 400

    def test_disable_and_reset(self, client) -> None:
        rule = client.post(
            "/api/symbols/BTC-USD/rules",
            json={"kind": "TREND_FLIP", "comparator": "FLIP_BEARISH"},
        ).json()
        base = f"/api/symbols/BTC-USD/rules/{rule['id']}"

        assert client.post(f"{base}/disable").json()["state"] == "DISABLED"
        assert client.post(f"{base}/reset").json()["state"] == "MONITORING"
        assert client.post("/api/symbols/BTC-USD/rules/missing/reset").status_code == 404

    def test_rule_fires_through_samples(self, client) -> None:
        client.post(
            "/api/symbols/BTC-USD/rules",
            json={"kind": "PRICE", "comparator": "GREATER_THAN", "threshold": 100},
        )
        client.post("/api/symbols/BTC-USD/samples", json=_sample_body(0, "99"))
        resp = client.post("/api/symbols/BTC-USD/samples", json=_sample_body(1, "101"))

        fired = resp.json()["fired"]
        assert len(fired) == 1
        assert fired[0]["state"] == "TRIGGERED"
        assert fired[0]["trigger_value"] == "101"


class TestDashboardHub:
    @pytest.mark.asyncio
    async def test_broadcasts_indicator_update(self, make_snapshot) -> None:
        hub = DashboardHub()
        ws = AsyncMock()
        hub.connections.append(ws)

        snapshot = make_snapshot()
        composite = CompositeScorer().score(snapshot, [])
        await hub.on_indicator_update("BTC-USD", snapshot, composite)

        message = json.loads(ws.send_text.await_args.args[0])
        assert message["type"] == "indicator_update"
        assert message["symbol"] == "BTC-USD"
        assert message["snapshot"]["price"] == "100"
        assert message["composite"]["regime"] == "Range Bound"

    @pytest.mark.asyncio
    async def test_broadcasts_alert(self) -> None:
        hub = DashboardHub()
        ws = AsyncMock()
        hub.connections.append(ws)
        rule = AlertRule(
            id="r1",
            symbol="BTC-USD",
            kind=AlertKind.RSI,
            comparator=Comparator.LESS_THAN,
            threshold=Decimal("30"),
            created_at_ms=0,
        )

        await hub.on_alert_triggered("BTC-USD", rule)

        message = json.loads(ws.send_text.await_args.args[0])
        assert message == {
            "type": "alert_triggered",
            "symbol": "BTC-USD",
            "rule": to_jsonable(rule),
        }

    @pytest.mark.asyncio
    async def test_broken_connection_removed(self) -> None:
        hub = DashboardHub()
        broken = AsyncMock()
        broken.send_text.side_effect = RuntimeError("closed")
        healthy = AsyncMock()
        hub.connections.extend([broken, healthy])

        await hub.broadcast({"type": "ping"})

        assert hub.connections == [healthy]
        healthy.send_text.assert_awaited_once()

    def test_websocket_connects(self, client) -> None:
        hub = client.app.state.hub
        with client.websocket_connect("/ws"):
            assert len(hub.connections) == 1

    def test_hub_registered_as_listener(self, monitor) -> None:
        app = create_dashboard_app(monitor=monitor)
        assert app.state.monitor is monitor
        assert isinstance(app.state.hub, DashboardHub)
