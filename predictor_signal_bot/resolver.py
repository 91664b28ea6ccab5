from __future__ import annotations
import random
from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Optional

from .indicators import clamp
from .models import DOWN, FLAT, UP, ComponentScores

WEIGHT_ORDER_FLOW = 0.35
WEIGHT_MOMENTUM = 0.40
WEIGHT_SENTIMENT = 0.25
CONFIDENCE_SCALE = 1.67
CONFLUENCE_BONUS = 8.0


@dataclass(frozen=True)
class Thresholds:
    up: float
    down: float


THRESHOLDS: Dict[str, Thresholds] = {
    "conservative": Thresholds(up=70, down=30),
    "moderate": Thresholds(up=62, down=38),
    "aggressive": Thresholds(up=60, down=40),
}


class Resolution(NamedTuple):
    direction: str
    confidence: Optional[float]
    tradeable: bool


def raw_score(scores: ComponentScores) -> float:
    return (
        scores.order_flow * WEIGHT_ORDER_FLOW
        + scores.momentum * WEIGHT_MOMENTUM
        + scores.sentiment * WEIGHT_SENTIMENT
    )


def confluence(scores: ComponentScores) -> int:
    """+1 when all components agree bullish, -1 when all agree bearish, else 0."""
    if scores.order_flow > 10 and scores.momentum > 10 and scores.sentiment > 5:
        return 1
    if scores.order_flow < -10 and scores.momentum < -10 and scores.sentiment < -5:
        return -1
    return 0


def compute_confidence(scores: ComponentScores) -> float:
    # Map the roughly -30..30 raw score onto 0..100.
    confidence = 50.0 + raw_score(scores) * CONFIDENCE_SCALE
    confidence += confluence(scores) * CONFLUENCE_BONUS
    return clamp(confidence, 0.0, 100.0)


def thresholds_for(aggressiveness: str) -> Thresholds:
    try:
        return THRESHOLDS[aggressiveness]
    except KeyError:
        raise ValueError(f"Unknown aggressiveness: {aggressiveness} (use one of {sorted(THRESHOLDS)})") from None


def resolve_direction(confidence: float, aggressiveness: str = "aggressive") -> Resolution:
    thresh = thresholds_for(aggressiveness)
    if confidence >= thresh.up:
        return Resolution(direction=UP, confidence=confidence, tradeable=True)
    if confidence <= thresh.down:
        return Resolution(direction=DOWN, confidence=confidence, tradeable=True)
    return Resolution(direction=FLAT, confidence=None, tradeable=False)


def resolve(scores: ComponentScores, aggressiveness: str = "aggressive") -> Resolution:
    return resolve_direction(compute_confidence(scores), aggressiveness)


def _rationale_table(scores: ComponentScores, rsi: float) -> Dict[str, Dict[str, List[str]]]:
    of = f"{scores.order_flow:.0f}"
    mo = f"{scores.momentum:.0f}"
    r = f"{rsi:.0f}"
    return {
        "15m": {
            UP: [
                f"Short-term bid absorption (OF: {of}) + RSI {r}",
                f"15m bullish momentum building (MO: {mo})",
                f"Scalp setup confirmed - order flow {'bullish' if scores.order_flow > 0 else 'turning'}",
            ],
            DOWN: [
                f"Short-term ask pressure (OF: {of}) + RSI {r}",
                f"15m bearish momentum (MO: {mo})",
                "Scalp setup: sellers in control",
            ],
            FLAT: [
                "15m signals inconclusive - waiting",
                f"Choppy price action (RSI: {r})",
                "Signal conflict on short timeframe",
            ],
        },
        "1h": {
            UP: [
                f"Hourly trend bullish + order flow {of}",
                f"Strong 1h momentum (MO: {mo}) + RSI {r}",
                "1h close expected above open",
            ],
            DOWN: [
                f"Hourly breakdown - OF: {of}",
                f"Weak 1h momentum (MO: {mo}) + RSI {r}",
                "1h close expected below open",
            ],
            FLAT: [
                "Hourly signal inconclusive",
                f"Mixed 1h indicators (RSI: {r})",
                "High volatility risk - wait",
            ],
        },
        "daily": {
            UP: [
                "Daily trend bullish + strong momentum",
                f"EOD close expected above open (RSI: {r})",
                "Accumulation pattern + positive flow",
            ],
            DOWN: [
                "Daily trend bearish + weak momentum",
                f"EOD close expected below open (RSI: {r})",
                "Distribution pattern detected",
            ],
            FLAT: [
                "Daily direction unclear - too early",
                "Waiting for more data before EOD call",
                "Mixed daily signals - no edge",
            ],
        },
    }


def rationale_options(direction: str, timeframe: str, scores: ComponentScores, rsi: float) -> List[str]:
    table = _rationale_table(scores, rsi)
    return table.get(timeframe, table["1h"])[direction]


def choose_rationale(
    direction: str,
    timeframe: str,
    scores: ComponentScores,
    rsi: float,
    rng: Optional[random.Random] = None,
) -> str:
    """Pick a display phrase. Cosmetic only; pass a seeded rng for repeatable output."""
    options = rationale_options(direction, timeframe, scores, rsi)
    return (rng or random).choice(options)
