from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from ..errors import UpstreamDataError
from ..models import Candle, OrderBookSummary, SpotPrice

log = logging.getLogger("binance")

DEFAULT_BASE_URL = "https://api.binance.com"

# Map our symbols to Binance symbols
SYMBOL_MAP: Dict[str, str] = {
    "BTC": "BTCUSDT",
    "ETH": "ETHUSDT",
    "SOL": "SOLUSDT",
}


def binance_symbol(symbol: str) -> str:
    try:
        return SYMBOL_MAP[symbol.upper()]
    except KeyError:
        raise UpstreamDataError(f"Unknown symbol: {symbol}") from None


class BinanceSpotProvider:
    """Public Binance spot REST API (no key required). Works against any mirror with the same API."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        rest_timeout_s: int = 20,
        rest_max_retries: int = 4,
        rest_backoff_s: float = 0.8,
        rest_conn_limit: int = 40,
        rest_conn_limit_per_host: int = 10,
    ):
        self.base_url = base_url.rstrip("/")
        self.rest_timeout_s = rest_timeout_s

        # REST robustness
        self.rest_max_retries = rest_max_retries
        self.rest_backoff_s = rest_backoff_s
        self.rest_conn_limit = rest_conn_limit
        self.rest_conn_limit_per_host = rest_conn_limit_per_host

        self._session: Optional[aiohttp.ClientSession] = None

    def __repr__(self) -> str:
        return f"BinanceSpotProvider({self.base_url})"

    async def close(self) -> None:
        """Close the shared aiohttp session (best-effort)."""
        if self._session is not None and not self._session.closed:
            await self._session.close()

    def _timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(
            total=self.rest_timeout_s,
            connect=min(10, self.rest_timeout_s),
            sock_connect=min(10, self.rest_timeout_s),
            sock_read=max(10, int(self.rest_timeout_s * 0.75)),
        )

    def _connector(self) -> aiohttp.TCPConnector:
        return aiohttp.TCPConnector(
            limit=self.rest_conn_limit,
            limit_per_host=self.rest_conn_limit_per_host,
            ttl_dns_cache=300,
            enable_cleanup_closed=True,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout(), connector=self._connector())
        return self._session

    async def _get_json(self, path: str, params: Dict[str, Any]) -> Any:
        url = self.base_url + path
        sess = await self._get_session()

        backoff = float(self.rest_backoff_s)
        last_err: Optional[BaseException] = None
        for attempt in range(1, int(self.rest_max_retries) + 1):
            try:
                async with sess.get(url, params=params) as resp:
                    # Rate-limit / ban signals
                    if resp.status in (418, 429):
                        txt = await resp.text()
                        retry_after = resp.headers.get("Retry-After")
                        sleep_s = float(retry_after) if (retry_after and retry_after.isdigit()) else backoff
                        log.warning(
                            "rest_rate_limited status=%s path=%s params=%s sleep=%.1fs body=%s",
                            resp.status,
                            path,
                            params,
                            sleep_s,
                            txt[:200],
                        )
                        last_err = UpstreamDataError(f"Binance {path} rate limited: {resp.status}")
                        await asyncio.sleep(sleep_s)
                        backoff = min(backoff * 2.0, 20.0)
                        continue

                    if resp.status != 200:
                        txt = await resp.text()
                        raise UpstreamDataError(f"Binance {path} failed: {resp.status} {txt[:500]}")

                    # Some proxies return a wrong content-type; be tolerant.
                    return await resp.json(content_type=None)

            except (asyncio.TimeoutError, aiohttp.ClientError) as e:
                last_err = e
                if attempt >= int(self.rest_max_retries):
                    break
                log.warning(
                    "rest_timeout_or_client_err attempt=%d/%d path=%s backoff=%.1fs err=%s",
                    attempt,
                    self.rest_max_retries,
                    path,
                    backoff,
                    e,
                )
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2.0, 20.0)

        raise UpstreamDataError(f"Binance {path} failed after {self.rest_max_retries} attempts: {last_err!r}")

    async def fetch_price(self, symbol: str) -> SpotPrice:
        data = await self._get_json("/api/v3/ticker/24hr", {"symbol": binance_symbol(symbol)})
        try:
            return SpotPrice(
                symbol=symbol.upper(),
                price=float(data["lastPrice"]),
                open=float(data["openPrice"]),
                high=float(data["highPrice"]),
                low=float(data["lowPrice"]),
                volume=float(data["volume"]),
                change_pct=float(data["priceChangePercent"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamDataError(f"Bad ticker payload for {symbol}: {e!r}") from e

    async def fetch_klines(self, symbol: str, interval: str, limit: int = 100) -> List[Candle]:
        params = {"symbol": binance_symbol(symbol), "interval": interval, "limit": int(limit)}
        data = await self._get_json("/api/v3/klines", params)

        out: List[Candle] = []
        try:
            for row in data:
                # [0]=open time, [6]=close time
                out.append(Candle(
                    open_time_ms=int(row[0]),
                    close_time_ms=int(row[6]),
                    open=float(row[1]),
                    high=float(row[2]),
                    low=float(row[3]),
                    close=float(row[4]),
                    volume=float(row[5]),
                ))
        except (IndexError, TypeError, ValueError) as e:
            raise UpstreamDataError(f"Bad klines payload for {symbol} {interval}: {e!r}") from e
        return out

    async def fetch_order_book(self, symbol: str, limit: int = 20) -> OrderBookSummary:
        data = await self._get_json("/api/v3/depth", {"symbol": binance_symbol(symbol), "limit": int(limit)})
        try:
            bid_volume = sum(float(qty) for _, qty in data["bids"])
            ask_volume = sum(float(qty) for _, qty in data["asks"])
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamDataError(f"Bad depth payload for {symbol}: {e!r}") from e
        return OrderBookSummary.from_volumes(bid_volume, ask_volume)
