from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Mapping


class TimeFrame(str, Enum):
    ALL = "ALL"
    TODAY = "TODAY"
    WEEK = "WEEK"
    MONTH = "MONTH"
    YTD = "YTD"
    YEAR = "YEAR"
    CUSTOM = "CUSTOM"


@dataclass(frozen=True)
class TradeInput:
    symbol: str
    buy_price: float
    sell_price: float | None
    quantity: int
    date: str
    remarks: str = ""


@dataclass(frozen=True)
class Trade:
    trade_id: str
    symbol: str
    buy_price: float
    sell_price: float | None
    quantity: int
    date: str
    timestamp: int
    remarks: str = ""

    @property
    def is_open(self) -> bool:
        return self.sell_price is None

    @property
    def profit(self) -> float | None:
        if self.sell_price is None:
            return None
        return (self.sell_price - self.buy_price) * self.quantity

    @property
    def profit_pct(self) -> float | None:
        if self.sell_price is None or not self.buy_price:
            return None
        return (self.sell_price - self.buy_price) / self.buy_price * 100.0

    @classmethod
    def from_input(cls, trade_id: str, data: TradeInput) -> "Trade":
        validate_trade_input(data)
        return cls(
            trade_id=trade_id,
            symbol=data.symbol,
            buy_price=data.buy_price,
            sell_price=data.sell_price,
            quantity=data.quantity,
            date=data.date,
            timestamp=timestamp_for_date(data.date),
            remarks=data.remarks,
        )

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Trade":
        sell_raw = record.get("sellPrice")
        data = TradeInput(
            symbol=str(record["symbol"]).upper(),
            buy_price=float(record["buyPrice"]),
            sell_price=None if sell_raw is None else float(sell_raw),
            quantity=_to_int(record["quantity"]),
            date=str(record["date"]),
            remarks=str(record.get("remarks") or ""),
        )
        return cls.from_input(str(record["id"]), data)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.trade_id,
            "symbol": self.symbol,
            "buyPrice": self.buy_price,
            "sellPrice": self.sell_price,
            "quantity": self.quantity,
            "date": self.date,
            "timestamp": self.timestamp,
            "remarks": self.remarks,
        }


@dataclass(frozen=True)
class TradeStats:
    total_profit: float
    avg_buy_price: float
    avg_sell_price: float
    avg_profit_per_trade: float
    win_rate: float
    total_trades: int
    open_positions: int
    best_trade: float
    worst_trade: float


def parse_iso_date(value: str) -> date:
    text = str(value).strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError as exc:
        raise ValueError(f"Invalid date value: {value!r}") from exc


def local_ms(value: datetime) -> int:
    """Epoch milliseconds for a naive datetime read as local time."""
    return int(round(value.timestamp() * 1000))


def timestamp_for_date(value: str) -> int:
    return local_ms(datetime.combine(parse_iso_date(value), time.min))


def validate_trade_input(data: TradeInput) -> None:
    if not data.symbol or data.symbol != data.symbol.upper():
        raise ValueError(f"Symbol must be a non-empty uppercase ticker: {data.symbol!r}")
    if not math.isfinite(data.buy_price):
        raise ValueError(f"Buy price must be a finite number: {data.buy_price}")
    if data.buy_price <= 0:
        raise ValueError(f"Buy price must be positive: {data.buy_price}")
    if data.quantity <= 0:
        raise ValueError(f"Quantity must be a positive integer: {data.quantity}")
    if data.sell_price is not None and not math.isfinite(data.sell_price):
        raise ValueError(f"Sell price must be a finite number: {data.sell_price}")
    if data.sell_price is not None and data.sell_price < 0:
        raise ValueError(f"Sell price cannot be negative: {data.sell_price}")
    parse_iso_date(data.date)


def parse_trade_form(values: Mapping[str, Any]) -> TradeInput | None:
    """Build a TradeInput from loosely typed form, JSON or CLI values.

    Returns None when a required field (symbol, buy price, quantity, date) is
    missing or blank. A blank sell price means the position is still held.
    Malformed numbers, dates or out-of-range values raise ValueError.
    """
    symbol = _text(_first(values, "symbol"))
    buy_raw = _text(_first(values, "buy_price", "buyPrice"))
    quantity_raw = _text(_first(values, "quantity"))
    date_raw = _text(_first(values, "date"))
    if not symbol or not buy_raw or not quantity_raw or not date_raw:
        return None

    sell_raw = _text(_first(values, "sell_price", "sellPrice"))
    data = TradeInput(
        symbol=symbol.upper(),
        buy_price=_to_float(buy_raw, "buy price"),
        sell_price=_to_float(sell_raw, "sell price") if sell_raw else None,
        quantity=_to_int(quantity_raw),
        date=parse_iso_date(date_raw).isoformat(),
        remarks=_text(_first(values, "remarks")),
    )
    validate_trade_input(data)
    return data


def _first(values: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in values:
            return values[key]
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _to_float(value: str, label: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid {label}: {value!r}") from exc


def _to_int(value: Any) -> int:
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid quantity: {value!r}") from exc
    if not parsed.is_integer():
        raise ValueError(f"Quantity must be a whole number of shares: {value!r}")
    return int(parsed)
