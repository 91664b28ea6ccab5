from __future__ import annotations

from typing import List, Protocol

from ..models import Candle, OrderBookSummary, SpotPrice


class MarketDataSource(Protocol):
    async def fetch_price(self, symbol: str) -> SpotPrice:
        ...

    async def fetch_klines(self, symbol: str, interval: str, limit: int = 100) -> List[Candle]:
        ...

    async def fetch_order_book(self, symbol: str, limit: int = 20) -> OrderBookSummary:
        ...

    async def close(self) -> None:
        ...
