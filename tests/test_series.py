from __future__ import annotations

import pytest

from trade_pulse.metrics.series import compute_daily_series, compute_symbol_ranking
from trade_pulse.metrics.summary import compute_trade_stats


def test_daily_series_groups_by_date_and_accumulates(make_trade):
    trades = [
        make_trade(buy=10, sell=15, qty=2, date="2024-01-03"),
        make_trade(buy=10, sell=8, qty=1, date="2024-01-01"),
        make_trade(buy=20, sell=25, qty=1, date="2024-01-03"),
        make_trade(buy=50, sell=None, qty=9, date="2024-01-02"),
    ]
    series = compute_daily_series(trades)

    assert [point.date for point in series] == ["2024-01-01", "2024-01-03"]
    assert series[0].daily_profit == pytest.approx(-2.0)
    assert series[0].cumulative_profit == pytest.approx(-2.0)
    assert series[1].daily_profit == pytest.approx(15.0)
    assert series[1].cumulative_profit == pytest.approx(13.0)


def test_last_cumulative_value_matches_total_profit(make_trade):
    trades = [
        make_trade(symbol="AAPL", buy=150.25, sell=161.5, qty=12, date="2023-11-30"),
        make_trade(symbol="TSLA", buy=240.0, sell=210.75, qty=4, date="2024-01-15"),
        make_trade(symbol="AAPL", buy=170.0, sell=None, qty=3, date="2024-02-01"),
        make_trade(symbol="NVDA", buy=480.1, sell=495.0, qty=2, date="2023-11-30"),
    ]
    series = compute_daily_series(trades)
    stats = compute_trade_stats(trades)
    assert series[-1].cumulative_profit == pytest.approx(stats.total_profit, abs=1e-9)


def test_series_empty_without_closed_trades(make_trade):
    assert compute_daily_series([]) == []
    assert compute_daily_series([make_trade(sell=None)]) == []
    assert compute_symbol_ranking([make_trade(sell=None)]) == []


def test_symbol_ranking_sorts_best_first(make_trade):
    trades = [
        make_trade(symbol="TSLA", buy=10, sell=5, qty=1),
        make_trade(symbol="AAPL", buy=10, sell=20, qty=1),
        make_trade(symbol="AAPL", buy=10, sell=14, qty=1),
        make_trade(symbol="NVDA", buy=10, sell=12, qty=1),
    ]
    ranking = compute_symbol_ranking(trades)

    assert [row.symbol for row in ranking] == ["AAPL", "NVDA", "TSLA"]
    assert ranking[0].trade_count == 2
    assert ranking[0].total_profit == pytest.approx(14.0)
    assert ranking[0].avg_profit == pytest.approx(7.0)
    assert ranking[-1].total_profit == pytest.approx(-5.0)


def test_symbol_ranking_ties_keep_encounter_order(make_trade):
    trades = [
        make_trade(symbol="MSFT", buy=10, sell=11, qty=1),
        make_trade(symbol="AMZN", buy=10, sell=11, qty=1),
        make_trade(symbol="AAPL", buy=10, sell=11, qty=1),
    ]
    assert [row.symbol for row in compute_symbol_ranking(trades)] == ["MSFT", "AMZN", "AAPL"]
