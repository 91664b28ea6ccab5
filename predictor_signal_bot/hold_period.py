from __future__ import annotations
import logging
from datetime import datetime, timedelta
from typing import Dict, TYPE_CHECKING

if TYPE_CHECKING:
    from .store.base import SignalStore

log = logging.getLogger("hold_period")

HOLD_PERIODS: Dict[str, timedelta] = {
    "15m": timedelta(minutes=5),
    "1h": timedelta(minutes=15),
    "daily": timedelta(minutes=30),
}


def hold_period_for(timeframe: str) -> timedelta:
    try:
        return HOLD_PERIODS[timeframe]
    except KeyError:
        raise ValueError(f"Unsupported timeframe: {timeframe}") from None


def hold_until(generated_at: datetime, timeframe: str) -> datetime:
    return generated_at + hold_period_for(timeframe)


class HoldPeriodController:
    """Pull-based check: the latest stored signal for a key stays authoritative until its hold_until."""

    def __init__(self, store: "SignalStore"):
        self.store = store

    async def should_generate(self, market_id: str, timeframe: str, now: datetime) -> bool:
        latest = await self.store.find_latest(market_id, timeframe)
        if latest is None:
            return True
        due = now > latest.hold_until
        if not due:
            log.debug(
                "hold_active market=%s tf=%s hold_until=%s",
                market_id,
                timeframe,
                latest.hold_until.isoformat(),
            )
        return due
