"""JSON API endpoints: symbol state, sample window, alert rules and sample ingestion."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from dealer.dashboard.serializers import to_jsonable
from dealer.exceptions import (
    InvalidRuleDefinition,
    InvalidSample,
    OutOfOrderSample,
    RuleNotFound,
    UnknownSymbol,
)
from dealer.logging import get_logger
from dealer.models import Sample
from dealer.monitor import MarketMonitor

log = get_logger(__name__)

router = APIRouter()

_SAMPLE_PRICE_FIELDS = ("open", "high", "low", "close")
_SAMPLE_OPTIONAL_FIELDS = ("cvd", "open_interest", "funding_rate")


def _monitor(request: Request) -> MarketMonitor:
    return request.app.state.monitor


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(content={"error": message}, status_code=status_code)


async def _json_body(request: Request) -> dict[str, Any] | None:
    """Parse the request body as a JSON object, or None if it is not one."""
    try:
        body = await request.json()
    except Exception:
        return None
    return body if isinstance(body, dict) else None


def _parse_sample(body: dict[str, Any]) -> Sample:
    """Build a Sample from a JSON body.

    Raises:
        ValueError: If a required field is missing or a value is not numeric.
    """
    for field in ("timestamp_ms", *_SAMPLE_PRICE_FIELDS):
        if field not in body:
            raise ValueError(f"Missing required field: {field}")

    timestamp = body["timestamp_ms"]
    if isinstance(timestamp, bool) or not isinstance(timestamp, int):
        raise ValueError("timestamp_ms must be an integer")

    values: dict[str, Decimal] = {}
    for field in (*_SAMPLE_PRICE_FIELDS, *_SAMPLE_OPTIONAL_FIELDS):
        if field not in body:
            continue
        raw = body[field]
        if isinstance(raw, bool):
            raise ValueError(f"{field} must be numeric")
        try:
            value = Decimal(str(raw))
        except InvalidOperation as e:
            raise ValueError(f"{field} must be numeric") from e
        if not value.is_finite():
            raise ValueError(f"{field} must be finite")
        values[field] = value

    return Sample(timestamp_ms=timestamp, **values)


# ---------------------------------------------------------------------------
# Read surface
# ---------------------------------------------------------------------------


@router.get("/symbols")
async def get_symbols(request: Request) -> JSONResponse:
    """JSON summary of every monitored symbol."""
    return JSONResponse(content=to_jsonable(_monitor(request).get_status()))


@router.delete("/symbols/{symbol}")
async def delete_symbol(request: Request, symbol: str) -> JSONResponse:
    """Stop monitoring a symbol, discarding its window and rules."""
    try:
        _monitor(request).unwatch(symbol)
    except UnknownSymbol:
        return _error(f"Unknown symbol: {symbol}", 404)
    return JSONResponse(content={"deleted": symbol})


@router.get("/symbols/{symbol}/state")
async def get_symbol_state(request: Request, symbol: str) -> JSONResponse:
    """Latest indicator snapshot and composite state for one symbol.

    Both are null until the symbol's first sample has been processed.
    """
    try:
        latest = _monitor(request).latest(symbol)
    except UnknownSymbol:
        return _error(f"Unknown symbol: {symbol}", 404)

    return JSONResponse(
        content={
            "symbol": symbol,
            "snapshot": to_jsonable(latest.snapshot) if latest else None,
            "composite": to_jsonable(latest.composite) if latest else None,
        }
    )


@router.get("/symbols/{symbol}/window")
async def get_symbol_window(request: Request, symbol: str) -> JSONResponse:
    """Current sample window for one symbol, oldest first."""
    try:
        pipeline = _monitor(request).pipeline(symbol)
    except UnknownSymbol:
        return _error(f"Unknown symbol: {symbol}", 404)

    window = pipeline.window
    return JSONResponse(
        content={
            "symbol": symbol,
            "capacity": window.capacity,
            "samples": to_jsonable(window.window()),
        }
    )


# ---------------------------------------------------------------------------
# Sample ingestion
# ---------------------------------------------------------------------------


@router.post("/symbols/{symbol}/samples")
async def post_sample(request: Request, symbol: str) -> JSONResponse:
    """Submit one sample; responds with the resulting state and fired alerts."""
    body = await _json_body(request)
    if body is None:
        return _error("Invalid JSON body", 400)

    try:
        sample = _parse_sample(body)
    except ValueError as e:
        return _error(str(e), 400)

    try:
        result = await _monitor(request).submit_sample(symbol, sample)
    except OutOfOrderSample as e:
        return _error(str(e), 409)
    except InvalidSample as e:
        return _error(str(e), 400)

    return JSONResponse(
        content={
            "symbol": symbol,
            "snapshot": to_jsonable(result.snapshot),
            "composite": to_jsonable(result.composite),
            "fired": [to_jsonable(event.rule) for event in result.events],
        }
    )


# ---------------------------------------------------------------------------
# Rule management
# ---------------------------------------------------------------------------


@router.get("/symbols/{symbol}/rules")
async def get_rules(request: Request, symbol: str) -> JSONResponse:
    """All alert rules for one symbol in creation order."""
    try:
        rules = _monitor(request).list_rules(symbol)
    except UnknownSymbol:
        return _error(f"Unknown symbol: {symbol}", 404)
    return JSONResponse(content=to_jsonable(rules))


@router.post("/symbols/{symbol}/rules")
async def create_rule(request: Request, symbol: str) -> JSONResponse:
    """Create an alert rule.

    Body:
        kind: PRICE, RSI or TREND_FLIP.
        comparator: GREATER_THAN, LESS_THAN, FLIP_BULLISH or FLIP_BEARISH.
        threshold: Number or numeric string (PRICE and RSI only).
    """
    body = await _json_body(request)
    if body is None:
        return _error("Invalid JSON body", 400)

    for field in ("kind", "comparator"):
        if field not in body:
            return _error(f"Missing required field: {field}", 400)

    monitor = _monitor(request)
    try:
        rule_id = monitor.create_rule(
            symbol, body["kind"], body["comparator"], body.get("threshold")
        )
    except InvalidRuleDefinition as e:
        return _error(str(e), 400)

    return JSONResponse(
        content=to_jsonable(monitor.get_rule(symbol, rule_id)), status_code=201
    )


@router.delete("/symbols/{symbol}/rules/{rule_id}")
async def delete_rule(request: Request, symbol: str, rule_id: str) -> JSONResponse:
    """Delete an alert rule in any state."""
    try:
        _monitor(request).delete_rule(symbol, rule_id)
    except UnknownSymbol:
        return _error(f"Unknown symbol: {symbol}", 404)
    except RuleNotFound:
        return _error(f"Rule not found: {rule_id}", 404)
    return JSONResponse(content={"deleted": rule_id})


@router.post("/symbols/{symbol}/rules/{rule_id}/disable")
async def disable_rule(request: Request, symbol: str, rule_id: str) -> JSONResponse:
    """Stop a rule from being evaluated until it is reset."""
    try:
        rule = _monitor(request).disable_rule(symbol, rule_id)
    except UnknownSymbol:
        return _error(f"Unknown symbol: {symbol}", 404)
    except RuleNotFound:
        return _error(f"Rule not found: {rule_id}", 404)
    return JSONResponse(content=to_jsonable(rule))


@router.post("/symbols/{symbol}/rules/{rule_id}/reset")
async def reset_rule(request: Request, symbol: str, rule_id: str) -> JSONResponse:
    """Re-arm a triggered or disabled rule."""
    try:
        rule = _monitor(request).reset_rule(symbol, rule_id)
    except UnknownSymbol:
        return _error(f"Unknown symbol: {symbol}", 404)
    except RuleNotFound:
        return _error(f"Rule not found: {rule_id}", 404)
    return JSONResponse(content=to_jsonable(rule))
