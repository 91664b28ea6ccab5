from __future__ import annotations
from typing import List

from .indicators import average_range
from .models import Candle, OrderBookSummary, RiskGates

ATR_LENGTH = 14
MAX_ATR_PCT = 5.0
MIN_BOOK_VOLUME = 10.0


def volatility_pass(candles: List[Candle]) -> bool:
    atr = average_range(candles, ATR_LENGTH)
    if atr is None or candles[-1].close <= 0:
        return False
    return atr / candles[-1].close * 100.0 < MAX_ATR_PCT


def liquidity_pass(book: OrderBookSummary) -> bool:
    return book.bid_volume + book.ask_volume > MIN_BOOK_VOLUME


def evaluate_risk_gates(candles: List[Candle], book: OrderBookSummary, *, tradeable: bool) -> RiskGates:
    """Informational gates attached to each signal. None of them vetoes emission."""
    return RiskGates(
        volatility_pass=volatility_pass(candles),
        liquidity_pass=liquidity_pass(book),
        conflict_pass=tradeable,
        time_pass=True,  # crypto trades 24/7
        correlation_pass=True,  # needs multi-asset data
    )
