from __future__ import annotations

import argparse
import asyncio
import pprint

from predictor_signal_bot.config import load_config, Config
from predictor_signal_bot.generator import SignalGenerator
from predictor_signal_bot.main import build_provider
from predictor_signal_bot.models import TIMEFRAMES
from predictor_signal_bot.resolver import THRESHOLDS


async def _run(cfg: Config, symbol: str, timeframe: str, tier: str) -> None:
    provider = build_provider(cfg)
    try:
        sig = await SignalGenerator(provider).generate(symbol, timeframe, tier)
    finally:
        await provider.close()
    pprint.pprint(sig.to_record(), sort_dicts=False)


def main():
    p = argparse.ArgumentParser(description="Generate one signal from live data and print it (nothing is stored)")
    p.add_argument("symbol", help="BTC, ETH or SOL")
    p.add_argument("timeframe", choices=list(TIMEFRAMES))
    p.add_argument("--tier", default=None, choices=sorted(THRESHOLDS))
    p.add_argument("--config", help="Path to YAML config")
    args = p.parse_args()

    cfg = load_config(args.config) if args.config else Config()
    asyncio.run(_run(cfg, args.symbol, args.timeframe, args.tier or cfg.strategy.aggressiveness))


if __name__ == "__main__":
    main()
