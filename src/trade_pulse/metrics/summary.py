from __future__ import annotations

from typing import Iterable

from trade_pulse.models import Trade, TradeStats


def trade_profit(trade: Trade) -> float:
    if trade.sell_price is None:
        return 0.0
    return (trade.sell_price - trade.buy_price) * trade.quantity


def empty_stats() -> TradeStats:
    return TradeStats(
        total_profit=0.0,
        avg_buy_price=0.0,
        avg_sell_price=0.0,
        avg_profit_per_trade=0.0,
        win_rate=0.0,
        total_trades=0,
        open_positions=0,
        best_trade=0.0,
        worst_trade=0.0,
    )


def compute_trade_stats(trades: Iterable[Trade]) -> TradeStats:
    trade_list = list(trades)
    if not trade_list:
        return empty_stats()

    closed = [trade for trade in trade_list if trade.sell_price is not None]
    total_trades = len(trade_list)
    closed_count = len(closed)

    profits = [trade_profit(trade) for trade in closed]
    total_profit = sum(profits)
    wins = sum(1 for profit in profits if profit > 0)
    total_buy = sum(trade.buy_price for trade in trade_list)
    total_sell = sum(trade.sell_price for trade in closed)

    avg_sell_price = 0.0
    avg_profit_per_trade = 0.0
    win_rate = 0.0
    best_trade = 0.0
    worst_trade = 0.0
    if closed_count:
        avg_sell_price = total_sell / closed_count
        avg_profit_per_trade = total_profit / closed_count
        win_rate = wins / closed_count * 100.0
        best_trade = max(profits)
        worst_trade = min(profits)

    return TradeStats(
        total_profit=float(total_profit),
        avg_buy_price=total_buy / total_trades,
        avg_sell_price=avg_sell_price,
        avg_profit_per_trade=avg_profit_per_trade,
        win_rate=win_rate,
        total_trades=total_trades,
        open_positions=total_trades - closed_count,
        best_trade=best_trade,
        worst_trade=worst_trade,
    )
