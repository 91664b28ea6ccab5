from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

from .config import Config, StoreConfig, apply_env_overrides, load_config, validate_config
from .models import TIMEFRAMES
from .providers.binance import BinanceSpotProvider
from .providers.fallback import FallbackMarketData
from .runner import SignalRunner
from .store.base import SignalStore
from .store.memory import InMemorySignalStore
from .store.sqlite import SQLiteSignalStore
from .store.supabase import SupabaseSignalStore


def _setup_logging(level: str) -> None:
    lvl = getattr(logging, (level or "INFO").upper(), logging.INFO)
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def build_provider(cfg: Config) -> FallbackMarketData:
    return FallbackMarketData([
        BinanceSpotProvider(
            url,
            rest_timeout_s=cfg.provider.rest_timeout_s,
            rest_max_retries=cfg.provider.rest_max_retries,
        )
        for url in cfg.provider.sources
    ])


def build_store(store_cfg: StoreConfig) -> SignalStore:
    if store_cfg.type == "supabase":
        return SupabaseSignalStore(store_cfg.url, store_cfg.service_key)
    if store_cfg.type == "sqlite":
        return SQLiteSignalStore.open(store_cfg.path)
    return InMemorySignalStore()


def main(argv=None) -> int:
    p = argparse.ArgumentParser(description="Polymarket Predictor - signal generator")
    p.add_argument("--config", help="Path to YAML config (defaults apply when omitted)")
    p.add_argument(
        "--once",
        nargs="?",
        const="all",
        choices=list(TIMEFRAMES) + ["all"],
        help="Run a single pass for one timeframe (or all) and exit",
    )
    args = p.parse_args(argv)

    if args.config:
        cfg = load_config(args.config)
    else:
        cfg = apply_env_overrides(Config())
        validate_config(cfg)
    _setup_logging(cfg.app.log_level)

    provider = build_provider(cfg)
    store = build_store(cfg.store)
    runner = SignalRunner(cfg, provider, store)

    async def _run(once: Optional[str]) -> None:
        try:
            if once:
                await runner.run_once(once)
            else:
                await runner.run_forever()
        finally:
            # Close shared REST sessions cleanly.
            for closable in (provider, store):
                try:
                    await closable.close()
                except Exception as e:
                    logging.getLogger("main").warning("close_failed obj=%r err=%s", closable, e)

    try:
        asyncio.run(_run(args.once))
        return 0
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        logging.getLogger("main").exception("fatal err=%s", e)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
