from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

try:
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - Python <3.11
    import tomli as tomllib

DEFAULT_CONFIG_PATH = Path("config/app.toml")
DEFAULT_SEED_SYMBOLS = ["TSLA", "AAPL", "NVDA", "MSFT", "AMZN"]


@dataclass(frozen=True)
class AppSettings:
    db_path: Path
    host: str
    port: int
    reload: bool
    env_path: Path


@dataclass(frozen=True)
class StorageSettings:
    namespace: str


@dataclass(frozen=True)
class AiSettings:
    base_url: str
    model: str
    timeout_seconds: float
    sample_limit: int


@dataclass(frozen=True)
class SeedSettings:
    when_empty: bool
    count: int
    years: int
    closed_ratio: float
    symbols: list[str]


@dataclass(frozen=True)
class AppConfig:
    app: AppSettings
    storage: StorageSettings
    ai: AiSettings
    seed: SeedSettings


def resolve_config_path(env: Mapping[str, str] | None = None) -> Path:
    env = os.environ if env is None else env
    override = env.get("TRADE_PULSE_CONFIG")
    return Path(override) if override else DEFAULT_CONFIG_PATH


def load_app_config(path: Path | None = None) -> AppConfig:
    config_path = path or resolve_config_path()
    raw: Mapping[str, Any] = {}
    if config_path.exists():
        raw = tomllib.loads(config_path.read_text(encoding="utf-8"))

    app_raw = _section(raw, "app")
    storage_raw = _section(raw, "storage")
    ai_raw = _section(raw, "ai")
    seed_raw = _section(raw, "seed")

    app = AppSettings(
        db_path=Path(app_raw.get("db_path", "data/trade_pulse.sqlite")),
        host=str(app_raw.get("host", "127.0.0.1")),
        port=int(app_raw.get("port", 8000)),
        reload=bool(app_raw.get("reload", False)),
        env_path=Path(app_raw.get("env_path", ".env")),
    )

    storage = StorageSettings(
        namespace=str(storage_raw.get("namespace", "tradePulse_trades")).strip() or "tradePulse_trades",
    )

    ai = AiSettings(
        base_url=str(ai_raw.get("base_url", "https://generativelanguage.googleapis.com")).rstrip("/"),
        model=str(ai_raw.get("model", "gemini-2.5-flash")),
        timeout_seconds=float(ai_raw.get("timeout_seconds", 60.0)),
        sample_limit=_positive_int(ai_raw.get("sample_limit"), default=50),
    )

    seed = SeedSettings(
        when_empty=bool(seed_raw.get("when_empty", True)),
        count=_positive_int(seed_raw.get("count"), default=1000),
        years=_positive_int(seed_raw.get("years"), default=10),
        closed_ratio=_ratio(seed_raw.get("closed_ratio"), default=0.8),
        symbols=_symbol_list(seed_raw.get("symbols")) or list(DEFAULT_SEED_SYMBOLS),
    )

    return AppConfig(app=app, storage=storage, ai=ai, seed=seed)


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key)
    if isinstance(value, Mapping):
        return value
    return {}


def _positive_int(value: Any, *, default: int) -> int:
    if value in (None, ""):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _ratio(value: Any, *, default: float) -> float:
    if value in (None, ""):
        return default
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return default
    if parsed < 0 or parsed > 1:
        return default
    return parsed


def _symbol_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    output: list[str] = []
    for item in value:
        text = str(item).strip().upper()
        if text:
            output.append(text)
    return output
