from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from functools import lru_cache
import json
from pathlib import Path
import sys
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from trade_pulse.ai.analysis import analyze_trades, build_client, lookup_price, lookup_prices
from trade_pulse.ai.gemini_api import GeminiClient
from trade_pulse.config.app_config import AppConfig, load_app_config
from trade_pulse.filters import (
    TradeFilter,
    apply_trade_filter,
    parse_timeframe,
    resolve_time_window,
    sort_trades_for_history,
    unique_symbols,
)
from trade_pulse.metrics.portfolio import compute_allocation, compute_held_positions, held_symbols
from trade_pulse.metrics.series import compute_daily_series, compute_symbol_ranking
from trade_pulse.metrics.summary import compute_trade_stats
from trade_pulse.models import TimeFrame, Trade, TradeInput, parse_trade_form
from trade_pulse.repository import TradeRepository
from trade_pulse.seed import seed_repository
from trade_pulse.storage.sqlite_store import SqliteBlobStore


APP_ROOT = Path(__file__).resolve().parent
TEMPLATES = Jinja2Templates(directory=str(APP_ROOT / "templates"))

_TIMEFRAME_LABELS = {
    TimeFrame.ALL: "All Time",
    TimeFrame.TODAY: "Today",
    TimeFrame.WEEK: "Past Week",
    TimeFrame.MONTH: "Past Month",
    TimeFrame.YTD: "Year to Date",
    TimeFrame.YEAR: "Past Year",
    TimeFrame.CUSTOM: "Custom Range",
}


app = FastAPI(title="Trade Pulse")


@lru_cache(maxsize=1)
def _app_config() -> AppConfig:
    return load_app_config()


@lru_cache(maxsize=1)
def _repository() -> TradeRepository:
    app_config = _app_config()
    repository = TradeRepository(
        SqliteBlobStore(app_config.app.db_path),
        namespace=app_config.storage.namespace,
    )
    repository.load()
    return repository


def _analyst_client() -> GeminiClient | None:
    return build_client(_app_config())


@app.on_event("startup")
def _seed_when_empty() -> None:
    seed = _app_config().seed
    if not seed.when_empty:
        return
    added = seed_repository(
        _repository(),
        seed.count,
        symbols=seed.symbols,
        years=seed.years,
        closed_ratio=seed.closed_ratio,
    )
    if added:
        print(f"Journal was empty; injected {added} sample trades.", file=sys.stderr)


@app.get("/", response_class=HTMLResponse)
def dashboard(request: Request) -> HTMLResponse:
    trade_filter = _trade_filter(request)
    payload = _journal_state(_repository().list_trades(), trade_filter)
    context = {
        "page": "dashboard",
        "filter": trade_filter,
        "timeframes": [{"value": frame.value, "label": label} for frame, label in _TIMEFRAME_LABELS.items()],
        "summary": payload["summary"],
        "daily_series": payload["daily_series"],
        "symbol_ranking": payload["symbol_ranking"],
        "allocation": payload["allocation"],
        "trades": payload["trades"],
        "symbols": payload["symbols"],
        "holdings": [asdict(item) for item in compute_held_positions(_repository().list_trades())],
        "profit_chart": profit_chart(payload["daily_series"]),
        "ranking_scale": max((abs(row["total_profit"]) for row in payload["symbol_ranking"]), default=0.0) or 1.0,
    }
    return TEMPLATES.TemplateResponse(request, "dashboard.html", context)


@app.get("/api/trades")
def trades_api(request: Request) -> list[dict[str, Any]]:
    trade_filter = _trade_filter(request)
    trades = apply_trade_filter(_repository().list_trades(), trade_filter)
    return [_trade_payload(trade) for trade in sort_trades_for_history(trades)]


@app.post("/api/trades", status_code=201)
async def create_trade_api(request: Request) -> dict[str, Any]:
    data = _trade_input(await _json_body(request))
    trade = _repository().create(data)
    return _trade_payload(trade)


@app.put("/api/trades/{trade_id}")
async def update_trade_api(request: Request, trade_id: str) -> dict[str, Any]:
    data = _trade_input(await _json_body(request))
    try:
        trade = _repository().update(trade_id, data)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Trade not found") from exc
    return _trade_payload(trade)


@app.delete("/api/trades/{trade_id}")
def delete_trade_api(trade_id: str) -> dict[str, Any]:
    try:
        trade = _repository().delete(trade_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Trade not found") from exc
    return {"deleted": trade.trade_id}


@app.get("/api/summary")
def summary_api(request: Request) -> dict[str, Any]:
    trades = apply_trade_filter(_repository().list_trades(), _trade_filter(request))
    return asdict(compute_trade_stats(trades))


@app.get("/api/charts")
def charts_api(request: Request) -> dict[str, Any]:
    trades = apply_trade_filter(_repository().list_trades(), _trade_filter(request))
    return {
        "daily_series": [asdict(point) for point in compute_daily_series(trades)],
        "symbol_ranking": [asdict(row) for row in compute_symbol_ranking(trades)],
    }


@app.get("/api/portfolio")
def portfolio_api(request: Request) -> list[dict[str, Any]]:
    trades = apply_trade_filter(_repository().list_trades(), _trade_filter(request))
    return [asdict(row) for row in compute_allocation(trades)]


@app.get("/api/holdings")
def holdings_api(request: Request) -> dict[str, Any]:
    # Held positions always use the full journal, never the active filter.
    trades = _repository().list_trades()
    prices: dict[str, float] = {}
    if _flag(request.query_params.get("prices")):
        prices = lookup_prices(held_symbols(trades), _analyst_client())
    return {
        "positions": [asdict(item) for item in compute_held_positions(trades, prices)],
        "updated_at": datetime.now().isoformat() if prices else None,
    }


@app.get("/api/symbols")
def symbols_api() -> list[str]:
    return unique_symbols(_repository().list_trades())


@app.post("/api/analysis")
def analysis_api(request: Request) -> dict[str, Any]:
    trades = apply_trade_filter(_repository().list_trades(), _trade_filter(request))
    stats = compute_trade_stats(trades)
    text = analyze_trades(trades, stats, _analyst_client(), limit=_app_config().ai.sample_limit)
    return {"analysis": text}


@app.get("/api/price/{symbol}")
def price_api(symbol: str) -> dict[str, Any] | None:
    quote = lookup_price(symbol, _analyst_client())
    if quote is None:
        return None
    return {"symbol": quote.symbol, "price": quote.price, "raw_text": quote.raw_text}


def _journal_state(all_trades: list[Trade], trade_filter: TradeFilter) -> dict[str, Any]:
    trades = apply_trade_filter(all_trades, trade_filter)
    return {
        "summary": asdict(compute_trade_stats(trades)),
        "daily_series": [asdict(point) for point in compute_daily_series(trades)],
        "symbol_ranking": [asdict(row) for row in compute_symbol_ranking(trades)],
        "allocation": [asdict(row) for row in compute_allocation(trades)],
        "trades": [_trade_payload(trade) for trade in sort_trades_for_history(trades)],
        "symbols": unique_symbols(all_trades),
    }


def _trade_filter(request: Request) -> TradeFilter:
    params = request.query_params
    try:
        timeframe = parse_timeframe(params.get("timeframe"))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    trade_filter = TradeFilter(
        symbol=(params.get("symbol") or "").strip(),
        timeframe=timeframe,
        custom_start=params.get("start") or None,
        custom_end=params.get("end") or None,
    )
    try:
        resolve_time_window(trade_filter.timeframe, trade_filter.custom_start, trade_filter.custom_end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return trade_filter


def _trade_input(body: dict[str, Any]) -> TradeInput:
    try:
        data = parse_trade_form(body)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if data is None:
        raise HTTPException(status_code=400, detail="Symbol, buy price, quantity and date are required")
    return data


async def _json_body(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail="Request body must be JSON") from exc
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return body


def _trade_payload(trade: Trade) -> dict[str, Any]:
    return {
        "trade_id": trade.trade_id,
        "symbol": trade.symbol,
        "buy_price": trade.buy_price,
        "sell_price": trade.sell_price,
        "quantity": trade.quantity,
        "date": trade.date,
        "timestamp": trade.timestamp,
        "remarks": trade.remarks,
        "status": "HELD" if trade.is_open else "CLOSED",
        "profit": trade.profit,
        "profit_pct": trade.profit_pct,
    }


def profit_chart(points: list[dict[str, Any]], width: int = 640, height: int = 160) -> dict[str, Any] | None:
    """SVG coordinates for the cumulative profit line, scaled so zero is always visible."""
    if not points:
        return None
    values = [float(point["cumulative_profit"]) for point in points]
    low = min(0.0, min(values))
    high = max(0.0, max(values))
    span = (high - low) or 1.0
    step = width / max(len(values) - 1, 1)

    def _y(value: float) -> float:
        return height - (value - low) / span * height

    coords = [f"{idx * step:.1f},{_y(value):.1f}" for idx, value in enumerate(values)]
    return {
        "width": width,
        "height": height,
        "points": " ".join(coords),
        "zero_y": round(_y(0.0), 1),
        "first_date": points[0]["date"],
        "last_date": points[-1]["date"],
    }


def _flag(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes"}


def money_filter(value: float | None) -> str:
    if value is None:
        return "n/a"
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def percent_filter(value: float | None) -> str:
    if value is None:
        return "n/a"
    return f"{value:.1f}%"


TEMPLATES.env.filters.update(
    {
        "money": money_filter,
        "percent": percent_filter,
    }
)


def main() -> None:
    import uvicorn

    app_config = load_app_config()
    uvicorn.run(
        "trade_pulse.web.app:app",
        host=app_config.app.host,
        port=app_config.app.port,
        reload=app_config.app.reload,
    )


if __name__ == "__main__":
    main()
