from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from .errors import PersistenceError

UP = "UP"
DOWN = "DOWN"
FLAT = "FLAT"

SYMBOLS = ("BTC", "ETH", "SOL")
TIMEFRAMES = ("15m", "1h", "daily")


def market_id_for(symbol: str) -> str:
    return f"{symbol.lower()}-usd"


def display_symbol(symbol: str) -> str:
    return f"{symbol.upper()}/USD"


@dataclass(frozen=True)
class Candle:
    open_time_ms: int
    close_time_ms: int
    open: float
    high: float
    low: float
    close: float
    volume: float


@dataclass(frozen=True)
class SpotPrice:
    symbol: str
    price: float
    open: float
    high: float
    low: float
    volume: float
    change_pct: float


@dataclass(frozen=True)
class OrderBookSummary:
    bid_volume: float
    ask_volume: float
    imbalance: float  # > 0.5 = more buyers

    @classmethod
    def from_volumes(cls, bid_volume: float, ask_volume: float) -> "OrderBookSummary":
        total = bid_volume + ask_volume
        imbalance = bid_volume / total if total > 0 else 0.5
        return cls(bid_volume=bid_volume, ask_volume=ask_volume, imbalance=imbalance)


@dataclass(frozen=True)
class ComponentScores:
    order_flow: float  # -30..30
    momentum: float    # -30..30
    sentiment: float   # -20..20


@dataclass(frozen=True)
class RiskGates:
    volatility_pass: bool
    liquidity_pass: bool
    conflict_pass: bool
    time_pass: bool
    correlation_pass: bool


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts is not None else None


_FRACTION = re.compile(r"\.(\d+)")


def _parse_ts(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    # PostgREST returns "+00:00"; older rows may carry a trailing "Z".
    text = str(value).replace("Z", "+00:00")
    # fromisoformat before 3.11 only takes 3 or 6 fraction digits; PostgREST trims trailing zeros.
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    return datetime.fromisoformat(text)


@dataclass(frozen=True)
class Signal:
    market_id: str
    symbol: str
    timeframe: str
    direction: str  # UP, DOWN or FLAT
    confidence: Optional[int]  # None when FLAT
    tradeable: bool
    order_flow_score: float
    momentum_score: float
    sentiment_score: float
    gates: RiskGates
    rationale: str
    generated_at: datetime
    hold_until: datetime
    expires_at: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "market_id": self.market_id,
            "symbol": self.symbol,
            "timeframe": self.timeframe,
            "direction": self.direction,
            "confidence": self.confidence,
            "tradeable": self.tradeable,
            "order_flow_score": self.order_flow_score,
            "momentum_score": self.momentum_score,
            "sentiment_score": self.sentiment_score,
            "volatility_pass": self.gates.volatility_pass,
            "liquidity_pass": self.gates.liquidity_pass,
            "conflict_pass": self.gates.conflict_pass,
            "time_pass": self.gates.time_pass,
            "correlation_pass": self.gates.correlation_pass,
            "rationale": self.rationale,
            "generated_at": _iso(self.generated_at),
            "hold_until": _iso(self.hold_until),
            "expires_at": _iso(self.expires_at),
        }

    @classmethod
    def from_record(cls, row: Dict[str, Any]) -> "Signal":
        try:
            return cls._from_record(row)
        except (KeyError, TypeError, ValueError) as e:
            raise PersistenceError(f"malformed signal row: {e!r}") from e

    @classmethod
    def _from_record(cls, row: Dict[str, Any]) -> "Signal":
        confidence = row.get("confidence")
        return cls(
            market_id=row["market_id"],
            symbol=row["symbol"],
            timeframe=row["timeframe"],
            direction=row["direction"],
            confidence=int(confidence) if confidence is not None else None,
            tradeable=bool(row["tradeable"]),
            order_flow_score=float(row["order_flow_score"]),
            momentum_score=float(row["momentum_score"]),
            sentiment_score=float(row["sentiment_score"]),
            gates=RiskGates(
                volatility_pass=bool(row["volatility_pass"]),
                liquidity_pass=bool(row["liquidity_pass"]),
                conflict_pass=bool(row["conflict_pass"]),
                time_pass=bool(row["time_pass"]),
                correlation_pass=bool(row["correlation_pass"]),
            ),
            rationale=row.get("rationale") or "",
            generated_at=_parse_ts(row["generated_at"]),
            hold_until=_parse_ts(row["hold_until"]),
            expires_at=_parse_ts(row.get("expires_at")),
        )
