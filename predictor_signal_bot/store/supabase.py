from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp

from ..errors import PersistenceError
from ..models import Signal, SpotPrice

log = logging.getLogger("store")


class SupabaseSignalStore:
    """Signal store backed by Supabase tables through the PostgREST API.

    Uses the service-role key, so it must only run on the backend.
    """

    def __init__(self, url: str, service_key: str, *, timeout_s: int = 15):
        if not url or not service_key:
            raise ValueError("Supabase store needs both url and service_key (SUPABASE_URL / SUPABASE_SERVICE_KEY)")
        self.base = url.rstrip("/") + "/rest/v1"
        self.service_key = service_key
        self.timeout_s = timeout_s
        self._session: Optional[aiohttp.ClientSession] = None

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout_s),
                headers=self._headers(),
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def _request(self, method: str, table: str, *, params: Dict[str, str], json: Any = None, prefer: str = "") -> Any:
        sess = await self._get_session()
        headers = {"Prefer": prefer} if prefer else {}
        try:
            async with sess.request(method, f"{self.base}/{table}", params=params, json=json, headers=headers) as resp:
                if resp.status >= 400:
                    txt = await resp.text()
                    raise PersistenceError(f"supabase {method} {table} failed: {resp.status} {txt[:500]}")
                if resp.status == 204:
                    return None
                return await resp.json(content_type=None)
        except (asyncio.TimeoutError, aiohttp.ClientError) as e:
            raise PersistenceError(f"supabase {method} {table} failed: {e!r}") from e

    async def find_latest(self, market_id: str, timeframe: str) -> Optional[Signal]:
        rows = await self._request(
            "GET",
            "signals",
            params={
                "select": "*",
                "market_id": f"eq.{market_id}",
                "timeframe": f"eq.{timeframe}",
                "order": "generated_at.desc",
                "limit": "1",
            },
        )
        if not rows:
            return None
        return Signal.from_record(rows[0])

    async def insert(self, signal: Signal) -> None:
        await self._request("POST", "signals", params={}, json=signal.to_record(), prefer="return=minimal")

    async def update_market_price(self, market_id: str, price: SpotPrice) -> None:
        await self._request(
            "PATCH",
            "markets",
            params={"id": f"eq.{market_id}"},
            json={
                "current_price": price.price,
                "open_price": price.open,
                "high_24h": price.high,
                "low_24h": price.low,
                "volume_24h": price.volume,
                "price_updated_at": datetime.now(timezone.utc).isoformat(),
            },
            prefer="return=minimal",
        )
