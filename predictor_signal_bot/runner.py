from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .config import Config
from .errors import PersistenceError, SignalBotError
from .generator import SignalGenerator
from .hold_period import HoldPeriodController
from .models import Signal, market_id_for
from .providers.base import MarketDataSource
from .store.base import SignalStore

log = logging.getLogger("runner")

MISFIRE_GRACE_S = 60


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SignalRunner:
    def __init__(
        self,
        cfg: Config,
        provider: MarketDataSource,
        store: SignalStore,
        *,
        generator: Optional[SignalGenerator] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.cfg = cfg
        self.provider = provider
        self.store = store
        self.clock = clock
        self.generator = generator or SignalGenerator(
            provider,
            clock=clock,
            kline_limit=cfg.provider.kline_limit,
            order_book_limit=cfg.provider.order_book_limit,
        )
        self.hold = HoldPeriodController(store)
        self._metrics = {
            "signals_generated_total": 0,
            "signals_skipped_total": 0,
            "signals_failed_total": 0,
        }

    @property
    def symbols(self) -> List[str]:
        return [s.upper() for s in (self.cfg.strategy.symbols or [])]

    async def update_market_prices(self) -> int:
        """Push fresh spot prices to the markets table. Returns how many symbols were updated."""
        updated = 0
        for sym in self.symbols:
            try:
                price = await self.provider.fetch_price(sym)
                await self.store.update_market_price(market_id_for(sym), price)
                updated += 1
                log.info("price_updated symbol=%s price=%s", sym, price.price)
            except Exception as e:
                log.warning("price_update_failed symbol=%s err=%s", sym, e)
        return updated

    async def generate_and_push(self, symbol: str, timeframe: str) -> Optional[Signal]:
        """Hold check, generate, insert. Failures stay local to this (market, timeframe) key."""
        market_id = market_id_for(symbol)
        try:
            if not await self.hold.should_generate(market_id, timeframe, self.clock()):
                self._metrics["signals_skipped_total"] += 1
                log.info("signal_skipped symbol=%s tf=%s reason=hold_active", symbol, timeframe)
                return None

            signal = await self.generator.generate(symbol, timeframe, self.cfg.strategy.aggressiveness)
            await self.store.insert(signal)
        except PersistenceError as e:
            self._metrics["signals_failed_total"] += 1
            log.warning("signal_store_failed symbol=%s tf=%s err=%s", symbol, timeframe, e)
            return None
        except SignalBotError as e:
            self._metrics["signals_failed_total"] += 1
            log.warning("signal_failed symbol=%s tf=%s err=%s", symbol, timeframe, e)
            return None
        except Exception as e:
            self._metrics["signals_failed_total"] += 1
            log.exception("signal_unexpected_error symbol=%s tf=%s err=%s", symbol, timeframe, e)
            return None

        self._metrics["signals_generated_total"] += 1
        log.info(
            "signal_stored symbol=%s tf=%s direction=%s confidence=%s hold_until=%s",
            symbol,
            timeframe,
            signal.direction,
            signal.confidence if signal.confidence is not None else "FLAT",
            signal.hold_until.isoformat(),
        )
        return signal

    async def generate_for_timeframe(self, timeframe: str) -> List[Signal]:
        log.info("timeframe_check tf=%s symbols=%d", timeframe, len(self.symbols))
        results = await asyncio.gather(*[self.generate_and_push(sym, timeframe) for sym in self.symbols])
        return [r for r in results if r is not None]

    async def generate_all(self) -> List[Signal]:
        out: List[Signal] = []
        for tf in self.cfg.strategy.timeframes:
            out.extend(await self.generate_for_timeframe(tf))
        return out

    async def run_once(self, timeframe: str = "all") -> List[Signal]:
        await self.update_market_prices()
        if timeframe == "all":
            return await self.generate_all()
        return await self.generate_for_timeframe(timeframe)

    async def _run_job(self, name: str, job: Callable[..., Awaitable[object]], *args) -> None:
        try:
            await job(*args)
        except Exception as e:
            log.exception("job_failed job=%s err=%s", name, e)

    def build_scheduler(self) -> AsyncIOScheduler:
        """One interval job for prices and one per timeframe, on a fixed cadence."""
        sched = self.cfg.schedule
        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.add_job(
            self._run_job,
            "interval",
            seconds=sched.price_interval_s,
            args=("prices", self.update_market_prices),
            id="prices",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=MISFIRE_GRACE_S,
        )
        for tf in self.cfg.strategy.timeframes:
            scheduler.add_job(
                self._run_job,
                "interval",
                seconds=sched.intervals_s.get(tf, 60),
                args=(f"signals:{tf}", self.generate_for_timeframe, tf),
                id=f"signals:{tf}",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=MISFIRE_GRACE_S,
            )
        return scheduler

    async def run_forever(self) -> None:
        if not self.symbols or not self.cfg.strategy.timeframes:
            raise ValueError("No symbols/timeframes configured.")

        sched = self.cfg.schedule
        log.info(
            "service_start name=%s symbols=%s timeframes=%s prices_every=%ss intervals=%s",
            self.cfg.app.name,
            self.symbols,
            self.cfg.strategy.timeframes,
            sched.price_interval_s,
            sched.intervals_s,
        )
        await self.run_once("all")

        scheduler = self.build_scheduler()
        scheduler.start()
        try:
            await asyncio.Event().wait()
        finally:
            scheduler.shutdown(wait=False)
