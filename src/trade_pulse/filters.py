from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Iterable

from trade_pulse.models import TimeFrame, Trade, local_ms, parse_iso_date

# Largest instant a JavaScript Date can hold; used as the open upper bound.
MAX_TIMESTAMP_MS = 8_640_000_000_000_000

_END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class TimeWindow:
    start_ms: int
    end_ms: int

    def contains(self, timestamp: int) -> bool:
        return self.start_ms <= timestamp <= self.end_ms


@dataclass(frozen=True)
class TradeFilter:
    symbol: str = ""
    timeframe: TimeFrame = TimeFrame.ALL
    custom_start: str | None = None
    custom_end: str | None = None


ALL_TIME = TimeWindow(0, MAX_TIMESTAMP_MS)


def parse_timeframe(value: str | None) -> TimeFrame:
    text = (value or "").strip().upper()
    if not text:
        return TimeFrame.ALL
    try:
        return TimeFrame(text)
    except ValueError as exc:
        raise ValueError(f"Unknown time frame: {value!r}") from exc


def resolve_time_window(
    timeframe: TimeFrame,
    custom_start: str | None = None,
    custom_end: str | None = None,
    *,
    now: datetime | None = None,
) -> TimeWindow:
    """Map a time frame selector to an inclusive millisecond interval.

    Only CUSTOM ever sets an upper bound; every other frame filters on the
    lower bound alone, so future-dated trades always pass.
    """
    if timeframe == TimeFrame.ALL:
        return ALL_TIME

    current = now or datetime.now()
    today = datetime.combine(current.date(), time.min)
    start_ms = 0
    end_ms = MAX_TIMESTAMP_MS

    if timeframe == TimeFrame.TODAY:
        start_ms = local_ms(today)
    elif timeframe == TimeFrame.WEEK:
        start_ms = local_ms(today - timedelta(days=7))
    elif timeframe == TimeFrame.MONTH:
        start_ms = local_ms(today - timedelta(days=30))
    elif timeframe == TimeFrame.YTD:
        start_ms = local_ms(datetime(current.year, 1, 1))
    elif timeframe == TimeFrame.YEAR:
        start_ms = local_ms(_one_year_before(today))
    elif timeframe == TimeFrame.CUSTOM:
        if custom_start and custom_start.strip():
            start_ms = local_ms(datetime.combine(parse_iso_date(custom_start), time.min))
        if custom_end and custom_end.strip():
            end_ms = local_ms(datetime.combine(parse_iso_date(custom_end), _END_OF_DAY))

    return TimeWindow(start_ms, end_ms)


def filter_trades(
    trades: Iterable[Trade],
    symbol_query: str | None,
    window: TimeWindow,
) -> list[Trade]:
    needle = (symbol_query or "").upper()
    return [
        trade
        for trade in trades
        if needle in trade.symbol and window.contains(trade.timestamp)
    ]


def apply_trade_filter(
    trades: Iterable[Trade],
    trade_filter: TradeFilter,
    *,
    now: datetime | None = None,
) -> list[Trade]:
    window = resolve_time_window(
        trade_filter.timeframe,
        trade_filter.custom_start,
        trade_filter.custom_end,
        now=now,
    )
    return filter_trades(trades, trade_filter.symbol, window)


def unique_symbols(trades: Iterable[Trade]) -> list[str]:
    return sorted({trade.symbol for trade in trades})


def sort_trades_for_history(trades: Iterable[Trade]) -> list[Trade]:
    return sorted(trades, key=lambda trade: trade.timestamp, reverse=True)


def _one_year_before(value: datetime) -> datetime:
    try:
        return value.replace(year=value.year - 1)
    except ValueError:
        # Feb 29 has no counterpart; roll forward to Mar 1.
        return value.replace(year=value.year - 1, month=3, day=1)
