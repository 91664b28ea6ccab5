from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List
import os
import yaml

from .models import SYMBOLS, TIMEFRAMES
from .resolver import THRESHOLDS

STORE_TYPES = ("memory", "sqlite", "supabase")


def _env_override(value: Any, env_key: str) -> Any:
    env_val = os.getenv(env_key)
    if env_val is None:
        return value
    # basic parsing
    if isinstance(value, bool):
        return env_val.strip().lower() in ("1", "true", "yes", "y", "on")
    if isinstance(value, int):
        try:
            return int(env_val)
        except ValueError:
            return value
    if isinstance(value, float):
        try:
            return float(env_val)
        except ValueError:
            return value
    return env_val


@dataclass
class AppConfig:
    name: str = "Polymarket Predictor"
    log_level: str = "INFO"


@dataclass
class ProviderConfig:
    # Binance-compatible REST roots, tried in order.
    sources: List[str] = field(default_factory=lambda: ["https://api.binance.com", "https://api.binance.us"])
    kline_limit: int = 100
    order_book_limit: int = 20
    rest_timeout_s: int = 20
    rest_max_retries: int = 4


@dataclass
class StrategyConfig:
    symbols: List[str] = field(default_factory=lambda: list(SYMBOLS))
    timeframes: List[str] = field(default_factory=lambda: list(TIMEFRAMES))
    aggressiveness: str = "aggressive"  # conservative | moderate | aggressive


@dataclass
class StoreConfig:
    type: str = "memory"  # memory | sqlite | supabase
    path: str = "signals.db"
    url: str = ""
    service_key: str = ""


@dataclass
class ScheduleConfig:
    price_interval_s: int = 30
    # How often each timeframe is checked; generation only happens once the hold period passed.
    intervals_s: Dict[str, int] = field(default_factory=lambda: {"15m": 60, "1h": 300, "daily": 900})


@dataclass
class Config:
    app: AppConfig = field(default_factory=AppConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    strategy: StrategyConfig = field(default_factory=StrategyConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)


def validate_config(cfg: Config) -> None:
    errs = []
    for sym in cfg.strategy.symbols:
        if sym.upper() not in SYMBOLS:
            errs.append(f"unsupported symbol {sym}")
    for tf in cfg.strategy.timeframes:
        if tf not in TIMEFRAMES:
            errs.append(f"unsupported timeframe {tf}")
    if cfg.strategy.aggressiveness not in THRESHOLDS:
        errs.append(f"unknown aggressiveness {cfg.strategy.aggressiveness}")
    if cfg.store.type not in STORE_TYPES:
        errs.append(f"unknown store type {cfg.store.type}")
    if cfg.store.type == "supabase" and not (cfg.store.url and cfg.store.service_key):
        errs.append("supabase store needs SUPABASE_URL and SUPABASE_SERVICE_KEY")
    if not cfg.provider.sources:
        errs.append("provider.sources is empty")
    if errs:
        raise ValueError("Config violation: " + "; ".join(errs))


def load_config(path: str) -> Config:
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    schedule = dict(raw.get("schedule") or {})
    intervals = {**ScheduleConfig().intervals_s, **(schedule.pop("intervals_s", None) or {})}

    cfg = Config(
        app=AppConfig(**(raw.get("app") or {})),
        provider=ProviderConfig(**(raw.get("provider") or {})),
        strategy=StrategyConfig(**(raw.get("strategy") or {})),
        store=StoreConfig(**(raw.get("store") or {})),
        schedule=ScheduleConfig(intervals_s=intervals, **schedule),
    )
    apply_env_overrides(cfg)
    validate_config(cfg)
    return cfg


def apply_env_overrides(cfg: Config) -> Config:
    # env overrides (useful on Railway-style hosts)
    cfg.app.log_level = _env_override(cfg.app.log_level, "LOG_LEVEL")
    cfg.strategy.aggressiveness = _env_override(cfg.strategy.aggressiveness, "SIGNAL_AGGRESSIVENESS")
    cfg.store.url = _env_override(cfg.store.url, "SUPABASE_URL")
    cfg.store.service_key = _env_override(cfg.store.service_key, "SUPABASE_SERVICE_KEY")
    cfg.strategy.symbols = [s.upper() for s in cfg.strategy.symbols]
    return cfg
