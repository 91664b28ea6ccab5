"""Persistence contract used by the hold-period check and the runner."""

from __future__ import annotations

from typing import Optional, Protocol

from ..models import Signal, SpotPrice


class SignalStore(Protocol):
    async def find_latest(self, market_id: str, timeframe: str) -> Optional[Signal]:
        """Most recent signal for the key by generated_at, or None."""
        ...

    async def insert(self, signal: Signal) -> None:
        """Persist a new signal. Raises PersistenceError on failure."""
        ...

    async def update_market_price(self, market_id: str, price: SpotPrice) -> None:
        ...

    async def close(self) -> None:
        ...
