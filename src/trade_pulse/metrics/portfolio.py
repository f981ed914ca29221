from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from trade_pulse.models import Trade


@dataclass(frozen=True)
class AllocationRow:
    symbol: str
    shares: int
    invested_amount: float
    avg_buy_price: float
    percentage: float


@dataclass(frozen=True)
class HeldPosition:
    symbol: str
    shares: int
    avg_buy_price: float
    current_price: float | None = None
    change: float | None = None
    change_pct: float | None = None


def compute_allocation(trades: Iterable[Trade]) -> list[AllocationRow]:
    """Capital deployed per symbol, open and closed trades alike."""
    shares: dict[str, int] = {}
    invested: dict[str, float] = {}
    for trade in trades:
        shares[trade.symbol] = shares.get(trade.symbol, 0) + trade.quantity
        invested[trade.symbol] = invested.get(trade.symbol, 0.0) + trade.buy_price * trade.quantity

    total_invested = sum(invested.values())
    rows: list[AllocationRow] = []
    for symbol, amount in invested.items():
        symbol_shares = shares[symbol]
        avg_buy = amount / symbol_shares if symbol_shares else 0.0
        percentage = amount / total_invested * 100.0 if total_invested else 0.0
        rows.append(
            AllocationRow(
                symbol=symbol,
                shares=symbol_shares,
                invested_amount=amount,
                avg_buy_price=avg_buy,
                percentage=percentage,
            )
        )
    rows.sort(key=lambda row: row.invested_amount, reverse=True)
    return rows


def held_symbols(trades: Iterable[Trade]) -> list[str]:
    seen: dict[str, None] = {}
    for trade in trades:
        if trade.sell_price is None:
            seen.setdefault(trade.symbol, None)
    return list(seen)


def compute_held_positions(
    trades: Iterable[Trade],
    prices: Mapping[str, float] | None = None,
) -> list[HeldPosition]:
    prices = prices or {}
    shares: dict[str, int] = {}
    cost: dict[str, float] = {}
    for trade in trades:
        if trade.sell_price is not None:
            continue
        shares[trade.symbol] = shares.get(trade.symbol, 0) + trade.quantity
        cost[trade.symbol] = cost.get(trade.symbol, 0.0) + trade.buy_price * trade.quantity

    positions: list[HeldPosition] = []
    for symbol, qty in shares.items():
        avg_buy = cost[symbol] / qty if qty else 0.0
        current = prices.get(symbol)
        change = None
        change_pct = None
        if current is not None:
            change = current - avg_buy
            change_pct = change / avg_buy * 100.0 if avg_buy else 0.0
        positions.append(
            HeldPosition(
                symbol=symbol,
                shares=qty,
                avg_buy_price=avg_buy,
                current_price=current,
                change=change,
                change_pct=change_pct,
            )
        )
    return positions
