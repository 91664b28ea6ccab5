from __future__ import annotations
from typing import List, NamedTuple, Optional, Sequence

from .models import Candle


class Macd(NamedTuple):
    macd: float
    signal: float
    histogram: float


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def compute_ema(series: Sequence[float], period: int) -> float:
    if not series:
        return 0.0
    mult = 2.0 / (period + 1.0)
    ema = float(series[0])
    for x in series[1:]:
        ema = (x - ema) * mult + ema
    return ema


def compute_rsi(closes: Sequence[float], period: int = 14) -> float:
    """RSI over the first `period` deltas of the series (single window, no smoothing)."""
    if len(closes) < period + 1:
        return 50.0
    gains = 0.0
    losses = 0.0
    for i in range(1, period + 1):
        ch = closes[i] - closes[i - 1]
        if ch > 0:
            gains += ch
        else:
            losses -= ch
    avg_gain = gains / period
    avg_loss = losses / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def compute_macd(closes: Sequence[float]) -> Macd:
    macd = compute_ema(closes, 12) - compute_ema(closes, 26)
    # Signal line is an EMA over a constant run of the current macd value,
    # so it equals macd and the histogram stays at zero.
    signal = compute_ema([macd] * 9, 9)
    return Macd(macd=macd, signal=signal, histogram=macd - signal)


def pct_change(new: float, old: float) -> Optional[float]:
    if old == 0:
        return None
    return (new - old) / old * 100.0


def average_range(candles: List[Candle], length: int = 14) -> Optional[float]:
    """Mean high-low range over the last `length` candles."""
    window = candles[-length:]
    if not window:
        return None
    return sum(c.high - c.low for c in window) / len(window)
