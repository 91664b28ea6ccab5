from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from ..errors import UpstreamDataError
from ..models import Candle, OrderBookSummary, SpotPrice
from .base import MarketDataSource

log = logging.getLogger("provider")


class FallbackMarketData:
    """Tries each source in order for every call; first success wins, last failure propagates."""

    def __init__(self, sources: Sequence[MarketDataSource]):
        if not sources:
            raise ValueError("FallbackMarketData needs at least one source")
        self.sources: List[MarketDataSource] = list(sources)

    async def _first_ok(self, what: str, call: Callable[[MarketDataSource], Awaitable[Any]]) -> Any:
        last_err: Optional[BaseException] = None
        for i, src in enumerate(self.sources):
            try:
                return await call(src)
            except Exception as e:
                last_err = e
                if i < len(self.sources) - 1:
                    log.warning("source_failed what=%s source=%r err=%s trying_next", what, src, e)
        if isinstance(last_err, UpstreamDataError):
            raise last_err
        raise UpstreamDataError(f"{what} failed on all {len(self.sources)} sources: {last_err!r}") from last_err

    async def fetch_price(self, symbol: str) -> SpotPrice:
        return await self._first_ok(f"price {symbol}", lambda s: s.fetch_price(symbol))

    async def fetch_klines(self, symbol: str, interval: str, limit: int = 100) -> List[Candle]:
        return await self._first_ok(f"klines {symbol} {interval}", lambda s: s.fetch_klines(symbol, interval, limit))

    async def fetch_order_book(self, symbol: str, limit: int = 20) -> OrderBookSummary:
        return await self._first_ok(f"order_book {symbol}", lambda s: s.fetch_order_book(symbol, limit))

    async def close(self) -> None:
        for src in self.sources:
            try:
                await src.close()
            except Exception as e:
                log.warning("source_close_failed source=%r err=%s", src, e)
