from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from ..models import Signal, SpotPrice


class InMemorySignalStore:
    """Process-local store for dry runs and tests."""

    def __init__(self) -> None:
        self._signals: Dict[Tuple[str, str], List[Signal]] = {}
        self.markets: Dict[str, SpotPrice] = {}

    async def find_latest(self, market_id: str, timeframe: str) -> Optional[Signal]:
        rows = self._signals.get((market_id, timeframe))
        if not rows:
            return None
        return max(rows, key=lambda s: s.generated_at)

    async def insert(self, signal: Signal) -> None:
        self._signals.setdefault((signal.market_id, signal.timeframe), []).append(signal)

    async def update_market_price(self, market_id: str, price: SpotPrice) -> None:
        self.markets[market_id] = price

    async def close(self) -> None:
        return None

    def all_signals(self) -> List[Signal]:
        out: List[Signal] = []
        for rows in self._signals.values():
            out.extend(rows)
        return sorted(out, key=lambda s: s.generated_at)
