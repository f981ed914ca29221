from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from trade_pulse.metrics.summary import trade_profit
from trade_pulse.models import Trade


@dataclass(frozen=True)
class DailyProfitPoint:
    date: str
    daily_profit: float
    cumulative_profit: float


@dataclass(frozen=True)
class SymbolPerformance:
    symbol: str
    total_profit: float
    trade_count: int
    avg_profit: float


def compute_daily_series(trades: Iterable[Trade]) -> list[DailyProfitPoint]:
    daily: dict[str, float] = {}
    for trade in trades:
        if trade.sell_price is None:
            continue
        daily[trade.date] = daily.get(trade.date, 0.0) + trade_profit(trade)

    points: list[DailyProfitPoint] = []
    running = 0.0
    # ISO date strings sort chronologically.
    for day in sorted(daily):
        running += daily[day]
        points.append(
            DailyProfitPoint(date=day, daily_profit=daily[day], cumulative_profit=running)
        )
    return points


def compute_symbol_ranking(trades: Iterable[Trade]) -> list[SymbolPerformance]:
    totals: dict[str, float] = {}
    counts: dict[str, int] = {}
    for trade in trades:
        if trade.sell_price is None:
            continue
        totals[trade.symbol] = totals.get(trade.symbol, 0.0) + trade_profit(trade)
        counts[trade.symbol] = counts.get(trade.symbol, 0) + 1

    rows = [
        SymbolPerformance(
            symbol=symbol,
            total_profit=total,
            trade_count=counts[symbol],
            avg_profit=total / counts[symbol],
        )
        for symbol, total in totals.items()
    ]
    rows.sort(key=lambda row: row.total_profit, reverse=True)
    return rows
