from __future__ import annotations

import argparse
import sys
from pathlib import Path

from trade_pulse.ai.analysis import analyze_trades, build_client, lookup_price
from trade_pulse.config.app_config import AppConfig, load_app_config
from trade_pulse.filters import TradeFilter, apply_trade_filter, parse_timeframe, sort_trades_for_history
from trade_pulse.metrics.portfolio import compute_allocation
from trade_pulse.metrics.series import compute_symbol_ranking
from trade_pulse.metrics.summary import compute_trade_stats
from trade_pulse.models import Trade, parse_iso_date, parse_trade_form
from trade_pulse.repository import TradeRepository
from trade_pulse.seed import seed_repository
from trade_pulse.storage.sqlite_store import SqliteBlobStore


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Personal trade journal: record trades and review performance.")
    parser.add_argument("--config", type=Path, default=None, help="Path to app.toml (default config/app.toml).")
    parser.add_argument("--db", type=Path, default=None, help="Override the SQLite journal path.")
    commands = parser.add_subparsers(dest="command", required=True)

    list_cmd = commands.add_parser("list", help="List trades, newest first.")
    _add_filter_args(list_cmd)

    summary_cmd = commands.add_parser("summary", help="Print statistics, symbol ranking and allocation.")
    _add_filter_args(summary_cmd)

    add_cmd = commands.add_parser("add", help="Record a new trade.")
    _add_trade_args(add_cmd)

    update_cmd = commands.add_parser("update", help="Replace the fields of an existing trade.")
    update_cmd.add_argument("trade_id")
    _add_trade_args(update_cmd)

    delete_cmd = commands.add_parser("delete", help="Delete a trade by id.")
    delete_cmd.add_argument("trade_id")

    seed_cmd = commands.add_parser("seed", help="Fill an empty journal with sample trades.")
    seed_cmd.add_argument("--count", type=int, default=None)
    seed_cmd.add_argument("--force", action="store_true", help="Append samples even when trades exist.")

    analyze_cmd = commands.add_parser("analyze", help="Ask the language model for a performance review.")
    _add_filter_args(analyze_cmd)

    price_cmd = commands.add_parser("price", help="Best-effort live price lookup.")
    price_cmd.add_argument("symbol")

    commands.add_parser("serve", help="Run the web dashboard.")

    args = parser.parse_args(argv)

    app_config = load_app_config(args.config)
    if args.command == "serve":
        from trade_pulse.web.app import main as serve

        serve()
        return 0

    repository = _open_repository(app_config, args.db)

    if args.command == "list":
        trades = sort_trades_for_history(apply_trade_filter(repository.list_trades(), _filter_from_args(args)))
        if not trades:
            print("No trades recorded.")
            return 0
        print("id date symbol qty buy sell profit remarks")
        for trade in trades:
            print(_format_trade(trade))
        return 0

    if args.command == "summary":
        trades = apply_trade_filter(repository.list_trades(), _filter_from_args(args))
        _print_summary(trades)
        return 0

    if args.command in ("add", "update"):
        try:
            data = parse_trade_form(vars(args))
        except ValueError as exc:
            print(str(exc), file=sys.stderr)
            return 1
        if data is None:
            print("Symbol, buy price, quantity and date are required.", file=sys.stderr)
            return 1
        if args.command == "add":
            trade = repository.create(data)
        else:
            try:
                trade = repository.update(args.trade_id, data)
            except KeyError as exc:
                print(exc.args[0], file=sys.stderr)
                return 1
        print(_format_trade(trade))
        return 0

    if args.command == "delete":
        try:
            trade = repository.delete(args.trade_id)
        except KeyError as exc:
            print(exc.args[0], file=sys.stderr)
            return 1
        print(f"Deleted {trade.trade_id} ({trade.symbol} {trade.date}).")
        return 0

    if args.command == "seed":
        seed = app_config.seed
        added = seed_repository(
            repository,
            args.count or seed.count,
            force=args.force,
            symbols=seed.symbols,
            years=seed.years,
            closed_ratio=seed.closed_ratio,
        )
        if not added:
            print("Journal already has trades; use --force to append samples.", file=sys.stderr)
        else:
            print(f"Added {added} sample trades.")
        return 0

    if args.command == "analyze":
        trades = apply_trade_filter(repository.list_trades(), _filter_from_args(args))
        stats = compute_trade_stats(trades)
        print(analyze_trades(trades, stats, build_client(app_config), limit=app_config.ai.sample_limit))
        return 0

    if args.command == "price":
        quote = lookup_price(args.symbol, build_client(app_config))
        if quote is None:
            print(f"No price found for {args.symbol.upper()}.", file=sys.stderr)
            return 1
        print(f"{quote.symbol} {quote.price:.2f}")
        return 0

    return 0


def _add_filter_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--symbol", type=str, default="", help="Symbol substring filter.")
    parser.add_argument(
        "--timeframe",
        type=parse_timeframe,
        default="ALL",
        help="ALL, TODAY, WEEK, MONTH, YTD, YEAR or CUSTOM.",
    )
    parser.add_argument("--start", type=_iso_date, default=None, help="Custom range start (YYYY-MM-DD).")
    parser.add_argument("--end", type=_iso_date, default=None, help="Custom range end (YYYY-MM-DD), inclusive.")


def _add_trade_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("symbol")
    parser.add_argument("--buy", dest="buy_price", required=True)
    parser.add_argument("--sell", dest="sell_price", default=None, help="Omit while the position is held.")
    parser.add_argument("--qty", dest="quantity", required=True)
    parser.add_argument("--date", required=True, help="Trade date (YYYY-MM-DD).")
    parser.add_argument("--remarks", default="")


def _filter_from_args(args: argparse.Namespace) -> TradeFilter:
    return TradeFilter(
        symbol=args.symbol,
        timeframe=args.timeframe,
        custom_start=args.start,
        custom_end=args.end,
    )


def _iso_date(value: str) -> str:
    return parse_iso_date(value).isoformat()


def _open_repository(app_config: AppConfig, db_override: Path | None) -> TradeRepository:
    db_path = db_override or app_config.app.db_path
    repository = TradeRepository(SqliteBlobStore(db_path), namespace=app_config.storage.namespace)
    repository.load()
    return repository


def _print_summary(trades: list[Trade]) -> None:
    stats = compute_trade_stats(trades)
    print(f"total_trades {stats.total_trades}")
    print(f"open_positions {stats.open_positions}")
    print(f"total_profit {stats.total_profit:.2f}")
    print(f"win_rate {stats.win_rate:.1f}%")
    print(f"avg_buy_price {stats.avg_buy_price:.2f}")
    print(f"avg_sell_price {stats.avg_sell_price:.2f}")
    print(f"avg_profit_per_trade {stats.avg_profit_per_trade:.2f}")
    print(f"best_trade {stats.best_trade:.2f}")
    print(f"worst_trade {stats.worst_trade:.2f}")

    ranking = compute_symbol_ranking(trades)
    if ranking:
        print("")
        print("symbol trades total_profit avg_profit")
        for row in ranking:
            print(f"{row.symbol} {row.trade_count} {row.total_profit:.2f} {row.avg_profit:.2f}")

    allocation = compute_allocation(trades)
    if allocation:
        print("")
        print("symbol shares invested avg_buy pct")
        for row in allocation:
            print(
                f"{row.symbol} {row.shares} {row.invested_amount:.2f} "
                f"{row.avg_buy_price:.2f} {row.percentage:.1f}%"
            )


def _format_trade(trade: Trade) -> str:
    sell = "held" if trade.sell_price is None else f"{trade.sell_price:.2f}"
    profit = "na" if trade.profit is None else f"{trade.profit:.2f}"
    return (
        f"{trade.trade_id} {trade.date} {trade.symbol} {trade.quantity} "
        f"{trade.buy_price:.2f} {sell} {profit} {trade.remarks}"
    ).rstrip()


if __name__ == "__main__":
    raise SystemExit(main())
