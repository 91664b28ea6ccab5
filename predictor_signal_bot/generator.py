from __future__ import annotations

import asyncio
import logging
import math
import random
from datetime import datetime, timezone
from typing import Callable, Optional

from .errors import UpstreamDataError
from .hold_period import hold_period_for, hold_until
from .indicators import compute_rsi
from .models import Signal, display_symbol, market_id_for
from .providers.base import MarketDataSource
from .resolver import choose_rationale, resolve, thresholds_for
from .risk_gates import evaluate_risk_gates
from .scoring import compute_scores

log = logging.getLogger("generator")

MIN_CANDLES = 10


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def round_half_up(x: float, ndigits: int = 0) -> float:
    f = 10 ** ndigits
    return math.floor(x * f + 0.5) / f


def kline_interval(timeframe: str) -> str:
    # daily signals read hourly candles
    return "1h" if timeframe == "daily" else timeframe


class SignalGenerator:
    def __init__(
        self,
        provider: MarketDataSource,
        *,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = _utcnow,
        kline_limit: int = 100,
        order_book_limit: int = 20,
    ):
        self.provider = provider
        self.rng = rng or random.Random()
        self.clock = clock
        self.kline_limit = kline_limit
        self.order_book_limit = order_book_limit

    async def generate(self, symbol: str, timeframe: str, aggressiveness: str = "aggressive") -> Signal:
        """Fetch market data for one (symbol, timeframe) and build a new Signal.

        Any fetch failure aborts the attempt with UpstreamDataError; nothing is
        retried here.
        """
        # fail fast on a bad tier or timeframe before any network call
        thresholds_for(aggressiveness)
        hold_period_for(timeframe)
        symbol = symbol.upper()
        log.info("generate_start symbol=%s tf=%s tier=%s", symbol, timeframe, aggressiveness)

        tasks = [
            asyncio.ensure_future(self.provider.fetch_klines(symbol, kline_interval(timeframe), self.kline_limit)),
            asyncio.ensure_future(self.provider.fetch_order_book(symbol, self.order_book_limit)),
            asyncio.ensure_future(self.provider.fetch_price(symbol)),
        ]
        try:
            candles, book, _price = await asyncio.gather(*tasks)
        except BaseException as e:
            # gather does not cancel siblings when one fails
            for t in tasks:
                t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if isinstance(e, UpstreamDataError) or not isinstance(e, Exception):
                raise
            raise UpstreamDataError(f"market data fetch failed for {symbol} {timeframe}: {e!r}") from e

        if len(candles) < MIN_CANDLES:
            raise UpstreamDataError(f"insufficient candles for {symbol} {timeframe}: got {len(candles)}, need {MIN_CANDLES}")

        scores = compute_scores(candles, book)
        log.debug(
            "scores symbol=%s tf=%s order_flow=%.1f momentum=%.1f sentiment=%.1f",
            symbol,
            timeframe,
            scores.order_flow,
            scores.momentum,
            scores.sentiment,
        )

        res = resolve(scores, aggressiveness)
        gates = evaluate_risk_gates(candles, book, tradeable=res.tradeable)
        rsi = compute_rsi([c.close for c in candles])
        rationale = choose_rationale(res.direction, timeframe, scores, rsi, self.rng)

        now = self.clock()
        signal = Signal(
            market_id=market_id_for(symbol),
            symbol=display_symbol(symbol),
            timeframe=timeframe,
            direction=res.direction,
            confidence=int(round_half_up(res.confidence)) if res.tradeable else None,
            tradeable=res.tradeable,
            order_flow_score=round_half_up(scores.order_flow, 1),
            momentum_score=round_half_up(scores.momentum, 1),
            sentiment_score=round_half_up(scores.sentiment, 1),
            gates=gates,
            rationale=rationale,
            generated_at=now,
            hold_until=hold_until(now, timeframe),
            expires_at=None,
        )
        log.info(
            "generate_done symbol=%s tf=%s direction=%s confidence=%s tradeable=%s",
            symbol,
            timeframe,
            signal.direction,
            signal.confidence if signal.confidence is not None else "N/A",
            signal.tradeable,
        )
        return signal
