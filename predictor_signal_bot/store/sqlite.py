"""SQLite-backed signal store."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from typing import Optional

from ..errors import PersistenceError
from ..models import Signal, SpotPrice

log = logging.getLogger("store")

SCHEMA = """
CREATE TABLE IF NOT EXISTS signals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    market_id TEXT NOT NULL,
    symbol TEXT NOT NULL,
    timeframe TEXT NOT NULL,
    direction TEXT NOT NULL,
    confidence INTEGER,
    tradeable INTEGER NOT NULL,
    order_flow_score REAL NOT NULL,
    momentum_score REAL NOT NULL,
    sentiment_score REAL NOT NULL,
    volatility_pass INTEGER NOT NULL,
    liquidity_pass INTEGER NOT NULL,
    conflict_pass INTEGER NOT NULL,
    time_pass INTEGER NOT NULL,
    correlation_pass INTEGER NOT NULL,
    rationale TEXT,
    generated_at TEXT NOT NULL,
    hold_until TEXT NOT NULL,
    expires_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_signals_key_generated
    ON signals (market_id, timeframe, generated_at);
CREATE TABLE IF NOT EXISTS markets (
    id TEXT PRIMARY KEY,
    current_price REAL,
    open_price REAL,
    high_24h REAL,
    low_24h REAL,
    volume_24h REAL,
    price_updated_at TEXT
);
"""

_COLUMNS = (
    "market_id",
    "symbol",
    "timeframe",
    "direction",
    "confidence",
    "tradeable",
    "order_flow_score",
    "momentum_score",
    "sentiment_score",
    "volatility_pass",
    "liquidity_pass",
    "conflict_pass",
    "time_pass",
    "correlation_pass",
    "rationale",
    "generated_at",
    "hold_until",
    "expires_at",
)


def _utc(ts: datetime) -> datetime:
    # Stored as UTC ISO strings so ORDER BY generated_at sorts chronologically.
    return ts.astimezone(timezone.utc) if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


class SQLiteSignalStore:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(SCHEMA)

    @classmethod
    def open(cls, path: str) -> "SQLiteSignalStore":
        return cls(sqlite3.connect(path))

    async def find_latest(self, market_id: str, timeframe: str) -> Optional[Signal]:
        try:
            row = self._conn.execute(
                f"""
                SELECT {", ".join(_COLUMNS)}
                FROM signals
                WHERE market_id = ? AND timeframe = ?
                ORDER BY generated_at DESC, id DESC
                LIMIT 1
                """,
                (market_id, timeframe),
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"find_latest failed market={market_id} tf={timeframe}: {e}") from e
        if row is None:
            return None
        return Signal.from_record(dict(row))

    async def insert(self, signal: Signal) -> None:
        rec = signal.to_record()
        rec["generated_at"] = _utc(signal.generated_at).isoformat()
        rec["hold_until"] = _utc(signal.hold_until).isoformat()
        placeholders = ", ".join("?" for _ in _COLUMNS)
        try:
            with self._conn:
                self._conn.execute(
                    f"INSERT INTO signals ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                    tuple(rec[c] for c in _COLUMNS),
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"insert failed market={signal.market_id} tf={signal.timeframe}: {e}") from e

    async def update_market_price(self, market_id: str, price: SpotPrice) -> None:
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._conn:
                self._conn.execute(
                    """
                    INSERT INTO markets (id, current_price, open_price, high_24h, low_24h, volume_24h, price_updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        current_price = excluded.current_price,
                        open_price = excluded.open_price,
                        high_24h = excluded.high_24h,
                        low_24h = excluded.low_24h,
                        volume_24h = excluded.volume_24h,
                        price_updated_at = excluded.price_updated_at
                    """,
                    (market_id, price.price, price.open, price.high, price.low, price.volume, now),
                )
        except sqlite3.Error as e:
            raise PersistenceError(f"market update failed market={market_id}: {e}") from e

    async def close(self) -> None:
        self._conn.close()
