from __future__ import annotations

import json
import os
import re
import sys
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from trade_pulse.ai.gemini_api import GeminiClient, GeminiConfig, load_dotenv
from trade_pulse.config.app_config import AppConfig
from trade_pulse.models import Trade, TradeStats

MISSING_KEY_MESSAGE = "API Key not configured. Please check your environment settings."
EMPTY_ANALYSIS_MESSAGE = "Could not generate analysis."
ANALYSIS_FAILED_MESSAGE = "An error occurred while analyzing your trades. Please try again later."

SYSTEM_INSTRUCTION = "You are an expert stock market trading coach."
DEFAULT_SAMPLE_LIMIT = 50

# First dollar-looking figure wins, even if it is not the quote itself.
PRICE_PATTERN = re.compile(r"\$?(\d{1,3}(?:,\d{3})*(\.\d{2})?)")


@dataclass(frozen=True)
class PriceQuote:
    symbol: str
    price: float
    raw_text: str


def build_client(app_config: AppConfig, env: Mapping[str, str] | None = None) -> GeminiClient | None:
    merged = dict(load_dotenv(app_config.app.env_path))
    merged.update(os.environ if env is None else env)
    config = GeminiConfig.from_env(
        merged,
        base_url=app_config.ai.base_url,
        model=app_config.ai.model,
        timeout_seconds=app_config.ai.timeout_seconds,
    )
    if config is None:
        return None
    return GeminiClient(config)


def summarize_trades_for_prompt(
    trades: Iterable[Trade],
    limit: int = DEFAULT_SAMPLE_LIMIT,
) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for trade in list(trades)[:limit]:
        if trade.sell_price is None:
            rows.append(
                {
                    "symbol": trade.symbol,
                    "status": "HELD (OPEN)",
                    "buyPrice": trade.buy_price,
                    "date": trade.date,
                }
            )
            continue
        rows.append(
            {
                "symbol": trade.symbol,
                "profit": trade.profit,
                "percentGain": trade.profit_pct,
                "date": trade.date,
            }
        )
    return rows


def build_analysis_prompt(
    trades: Iterable[Trade],
    stats: TradeStats,
    limit: int = DEFAULT_SAMPLE_LIMIT,
) -> str:
    summary = json.dumps(summarize_trades_for_prompt(trades, limit), separators=(",", ":"))
    return "\n".join(
        [
            "Act as a professional senior financial analyst. Analyze the following trading performance data.",
            "",
            "Global Stats:",
            f"- Total Realized Profit: ${stats.total_profit:.2f}",
            f"- Win Rate (Closed Trades): {stats.win_rate:.1f}%",
            f"- Total Trades (Including Held): {stats.total_trades}",
            f"- Open Positions: {stats.open_positions}",
            f"- Avg Profit/Trade (Closed): ${stats.avg_profit_per_trade:.2f}",
            "",
            "Recent Trade History (Partial):",
            summary,
            "",
            "Please provide a concise, bulleted analysis:",
            "1. Performance Summary: Are they profitable on closed trades?",
            "2. Open Position Analysis: Comment on the volume of held positions if any.",
            "3. Pattern Recognition: Any specific stocks or behaviors leading to wins or losses?",
            "4. Strategic Advice: One or two actionable tips to improve based on this data.",
            "",
            "Keep the tone professional, encouraging, but realistic. Format with Markdown.",
        ]
    )


def analyze_trades(
    trades: Iterable[Trade],
    stats: TradeStats,
    client: GeminiClient | None,
    *,
    limit: int = DEFAULT_SAMPLE_LIMIT,
) -> str:
    if client is None:
        return MISSING_KEY_MESSAGE
    try:
        prompt = build_analysis_prompt(trades, stats, limit)
        text = client.generate_text(prompt, system_instruction=SYSTEM_INSTRUCTION)
    except Exception as exc:  # noqa: BLE001 - any failure becomes the fixed message
        print(f"Error analyzing trades: {exc}", file=sys.stderr)
        return ANALYSIS_FAILED_MESSAGE
    return text or EMPTY_ANALYSIS_MESSAGE


def extract_price(text: str) -> float | None:
    match = PRICE_PATTERN.search(text or "")
    if match is None:
        return None
    return float(match.group(1).replace(",", ""))


def lookup_price(symbol: str, client: GeminiClient | None) -> PriceQuote | None:
    ticker = (symbol or "").strip().upper()
    if client is None or not ticker:
        return None
    try:
        text = client.generate_text(
            f"What is the current live stock price of {ticker}? Return the price clearly.",
            use_search=True,
        )
    except Exception as exc:  # noqa: BLE001 - lookup is best-effort
        print(f"Error fetching stock price for {ticker}: {exc}", file=sys.stderr)
        return None
    price = extract_price(text)
    if price is None:
        return None
    return PriceQuote(symbol=ticker, price=price, raw_text=text)


def lookup_prices(symbols: Iterable[str], client: GeminiClient | None) -> dict[str, float]:
    prices: dict[str, float] = {}
    for symbol in symbols:
        quote = lookup_price(symbol, client)
        if quote is not None:
            prices[quote.symbol] = quote.price
    return prices
