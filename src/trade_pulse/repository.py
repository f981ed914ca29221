from __future__ import annotations

import json
import sys
import threading
import uuid
from dataclasses import replace
from typing import Any, Iterable, Protocol

from trade_pulse.models import Trade, TradeInput, timestamp_for_date, validate_trade_input

DEFAULT_NAMESPACE = "tradePulse_trades"


class BlobStore(Protocol):
    def read(self, key: str) -> str | None: ...

    def write(self, key: str, value: str) -> None: ...


class TradeRepository:
    """Owns the canonical trade list and mirrors it into a blob store.

    Every mutation builds a complete new list and swaps it in with a single
    assignment before the store is rewritten, so readers never see a
    half-applied change. Loads and mutations hold one lock from reading the
    current list until the store write returns, so the stored blob always
    matches the list in memory.
    """

    def __init__(self, store: BlobStore, namespace: str = DEFAULT_NAMESPACE) -> None:
        self._store = store
        self._namespace = namespace
        self._trades: tuple[Trade, ...] = ()
        self._issued_ids: set[str] = set()
        self.skipped = 0
        self._lock = threading.Lock()

    @property
    def namespace(self) -> str:
        return self._namespace

    def load(self) -> list[Trade]:
        with self._lock:
            raw = self._store.read(self._namespace)
            trades, skipped = _decode_trades(raw)
            self.skipped = skipped
            self._trades = tuple(trades)
            self._issued_ids.update(trade.trade_id for trade in trades)
        if skipped:
            print(f"Skipped {skipped} stored trade records during load.", file=sys.stderr)
        return list(trades)

    def list_trades(self) -> list[Trade]:
        return list(self._trades)

    def get(self, trade_id: str) -> Trade:
        for trade in self._trades:
            if trade.trade_id == trade_id:
                return trade
        raise KeyError(f"Unknown trade '{trade_id}'.")

    def create(self, data: TradeInput) -> Trade:
        with self._lock:
            trade = Trade.from_input(self._new_id(), data)
            self._commit(self._trades + (trade,))
        return trade

    def add_many(self, trades: Iterable[Trade]) -> list[Trade]:
        added = []
        with self._lock:
            for trade in trades:
                if trade.trade_id in self._issued_ids:
                    trade = replace(trade, trade_id=self._new_id())
                else:
                    self._issued_ids.add(trade.trade_id)
                added.append(trade)
            self._commit(self._trades + tuple(added))
        return added

    def update(self, trade_id: str, data: TradeInput) -> Trade:
        validate_trade_input(data)
        with self._lock:
            current = self.get(trade_id)
            updated = replace(
                current,
                symbol=data.symbol,
                buy_price=data.buy_price,
                sell_price=data.sell_price,
                quantity=data.quantity,
                date=data.date,
                timestamp=timestamp_for_date(data.date),
                remarks=data.remarks,
            )
            self._commit(tuple(updated if trade.trade_id == trade_id else trade for trade in self._trades))
        return updated

    def delete(self, trade_id: str) -> Trade:
        with self._lock:
            removed = self.get(trade_id)
            self._commit(tuple(trade for trade in self._trades if trade.trade_id != trade_id))
        return removed

    def _new_id(self) -> str:
        while True:
            candidate = uuid.uuid4().hex
            if candidate not in self._issued_ids:
                self._issued_ids.add(candidate)
                return candidate

    def _commit(self, trades: tuple[Trade, ...]) -> None:
        # Caller holds self._lock. to_record() already writes held positions as null.
        self._trades = trades
        records = [trade.to_record() for trade in trades]
        self._store.write(self._namespace, json.dumps(records))


def sanitize_record(record: dict[str, Any]) -> dict[str, Any]:
    if record.get("sellPrice") == "":
        return {**record, "sellPrice": None}
    return record


def _decode_trades(raw: str | None) -> tuple[list[Trade], int]:
    if not raw:
        return [], 0
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        print("Stored trade list is not valid JSON; starting empty.", file=sys.stderr)
        return [], 0
    if not isinstance(payload, list):
        print("Stored trade list has an unexpected shape; starting empty.", file=sys.stderr)
        return [], 0

    trades: list[Trade] = []
    skipped = 0
    for item in payload:
        if not isinstance(item, dict):
            skipped += 1
            continue
        try:
            trades.append(Trade.from_record(sanitize_record(item)))
        except (KeyError, TypeError, ValueError):
            skipped += 1
    return trades, skipped
