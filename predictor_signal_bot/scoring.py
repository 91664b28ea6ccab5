from __future__ import annotations
from typing import List, NamedTuple

from .indicators import clamp, compute_macd, compute_rsi, pct_change
from .models import Candle, ComponentScores, OrderBookSummary

MOMENTUM_MIN_CANDLES = 20
SENTIMENT_MIN_CANDLES = 10
SENTIMENT_WINDOW = 10
VOLUME_SURGE_RATIO = 1.2


def order_flow_score(book: OrderBookSummary) -> float:
    # imbalance > 0.5 = more bids = bullish
    return clamp((book.imbalance - 0.5) * 60.0, -30.0, 30.0)


class MomentumParts(NamedTuple):
    rsi: float
    macd: float
    trend: float


def momentum_components(candles: List[Candle]) -> MomentumParts:
    closes = [c.close for c in candles]
    rsi = compute_rsi(closes)
    hist = compute_macd(closes).histogram
    # last 5 candles
    trend_strength = pct_change(closes[-1], closes[-5]) or 0.0

    if rsi > 70:
        rsi_part = -(rsi - 70) * 1.5  # overbought
    elif rsi < 30:
        rsi_part = (30 - rsi) * 1.5  # oversold
    else:
        rsi_part = (rsi - 50) * 0.5

    return MomentumParts(
        rsi=rsi_part,
        macd=clamp(hist * 100.0, -20.0, 20.0),
        trend=clamp(trend_strength * 2.0, -10.0, 10.0),
    )


def momentum_score(candles: List[Candle]) -> float:
    if len(candles) < MOMENTUM_MIN_CANDLES:
        return 0.0
    parts = momentum_components(candles)
    return clamp(parts.rsi + parts.macd + parts.trend, -30.0, 30.0)


def sentiment_score(candles: List[Candle]) -> float:
    """Price direction over the last ten candles, graded by the last candle's volume surge."""
    if len(candles) < SENTIMENT_MIN_CANDLES:
        return 0.0

    window = candles[-SENTIMENT_WINDOW:]
    avg_volume = sum(c.volume for c in window) / float(SENTIMENT_WINDOW)
    volume_ratio = window[-1].volume / avg_volume if avg_volume > 0 else 0.0
    price_up = window[-1].close > window[0].close

    if price_up and volume_ratio > VOLUME_SURGE_RATIO:
        score = 15.0
    elif not price_up and volume_ratio > VOLUME_SURGE_RATIO:
        score = -15.0
    elif price_up:
        score = 8.0
    else:
        score = -8.0
    return clamp(score, -20.0, 20.0)


def compute_scores(candles: List[Candle], book: OrderBookSummary) -> ComponentScores:
    return ComponentScores(
        order_flow=order_flow_score(book),
        momentum=momentum_score(candles),
        sentiment=sentiment_score(candles),
    )
