from __future__ import annotations

import pytest

from trade_pulse.models import Trade, TradeInput
from trade_pulse.repository import TradeRepository
from trade_pulse.storage.memory_store import MemoryBlobStore


@pytest.fixture
def make_trade():
    counter = {"value": 0}

    def _make(
        symbol: str = "AAPL",
        buy: float = 100.0,
        sell: float | None = None,
        qty: int = 1,
        date: str = "2024-01-01",
        remarks: str = "",
    ) -> Trade:
        counter["value"] += 1
        data = TradeInput(
            symbol=symbol,
            buy_price=buy,
            sell_price=sell,
            quantity=qty,
            date=date,
            remarks=remarks,
        )
        return Trade.from_input(f"t{counter['value']}", data)

    return _make


@pytest.fixture
def store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def repository(store: MemoryBlobStore) -> TradeRepository:
    repo = TradeRepository(store)
    repo.load()
    return repo
