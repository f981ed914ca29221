from __future__ import annotations

import random
from datetime import datetime, timedelta
from typing import Sequence

from trade_pulse.models import Trade, timestamp_for_date
from trade_pulse.repository import TradeRepository

SAMPLE_REMARKS = "Automated 10-Year Test Data"

BASE_PRICES = {
    "TSLA": 200.0,
    "AAPL": 150.0,
    "NVDA": 400.0,
    "MSFT": 300.0,
    "AMZN": 130.0,
}
DEFAULT_BASE_PRICE = 100.0


def generate_sample_trades(
    count: int = 1000,
    *,
    symbols: Sequence[str] = tuple(BASE_PRICES),
    years: int = 10,
    closed_ratio: float = 0.8,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> list[Trade]:
    rng = rng or random.Random()
    now = now or datetime.now()
    span_seconds = years * 365 * 24 * 60 * 60
    trades: list[Trade] = []

    for idx in range(count):
        trade_day = (now - timedelta(seconds=rng.random() * span_seconds)).date().isoformat()
        symbol = symbols[rng.randrange(len(symbols))]
        buy_price = BASE_PRICES.get(symbol, DEFAULT_BASE_PRICE) * (0.5 + rng.random())
        quantity = rng.randint(1, 50)

        sell_price = None
        if rng.random() < closed_ratio:
            variance = rng.random() * 0.5 - 0.2
            sell_price = round(buy_price * (1 + variance), 2)

        trades.append(
            Trade(
                trade_id=f"sample-{idx}-{rng.getrandbits(32):08x}",
                symbol=symbol,
                buy_price=round(buy_price, 2),
                sell_price=sell_price,
                quantity=quantity,
                date=trade_day,
                timestamp=timestamp_for_date(trade_day),
                remarks=SAMPLE_REMARKS,
            )
        )

    trades.sort(key=lambda trade: trade.timestamp, reverse=True)
    return trades


def seed_repository(
    repository: TradeRepository,
    count: int = 1000,
    *,
    force: bool = False,
    **options,
) -> int:
    """Fill the repository with sample trades; only when empty unless forced."""
    if repository.list_trades() and not force:
        return 0
    trades = generate_sample_trades(count, **options)
    repository.add_many(trades)
    return len(trades)
