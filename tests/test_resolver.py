import random

import pytest

from predictor_signal_bot.models import DOWN, FLAT, UP, ComponentScores
from predictor_signal_bot.resolver import (
    THRESHOLDS,
    choose_rationale,
    compute_confidence,
    confluence,
    rationale_options,
    resolve,
    resolve_direction,
)


def test_neutral_scores_map_to_50():
    assert compute_confidence(ComponentScores(0, 0, 0)) == 50.0


def test_max_bullish_clamps_to_100_and_goes_up():
    conf = compute_confidence(ComponentScores(30, 30, 30))
    assert conf == 100.0
    res = resolve_direction(conf, "aggressive")
    assert res.direction == UP
    assert res.tradeable is True
    assert res.confidence == 100.0


def test_confidence_50_is_flat_without_confidence():
    res = resolve_direction(50.0, "aggressive")
    assert res.direction == FLAT
    assert res.confidence is None
    assert res.tradeable is False


def test_weighted_sum_with_confluence_bonus():
    # raw = 7 + 8 + 3.75 = 18.75
    conf = compute_confidence(ComponentScores(20, 20, 15))
    assert conf == pytest.approx(50 + 18.75 * 1.67 + 8)


def test_confluence_boundaries():
    assert confluence(ComponentScores(15, 10, 10)) == 0
    assert confluence(ComponentScores(15, 10.01, 10)) == 1
    assert confluence(ComponentScores(10, 15, 10)) == 0
    assert confluence(ComponentScores(15, 15, 5)) == 0
    assert confluence(ComponentScores(-15, -10, -10)) == 0
    assert confluence(ComponentScores(-15, -10.01, -10)) == -1
    assert confluence(ComponentScores(15, -15, 10)) == 0


def test_bearish_confluence_lowers_confidence():
    scores = ComponentScores(-20, -20, -15)
    assert compute_confidence(scores) == pytest.approx(50 - 18.75 * 1.67 - 8)
    assert resolve(scores, "conservative").direction == DOWN


def test_tier_thresholds_inclusive():
    assert resolve_direction(60.0, "aggressive").direction == UP
    assert resolve_direction(59.99, "aggressive").direction == FLAT
    assert resolve_direction(40.0, "aggressive").direction == DOWN
    assert resolve_direction(62.0, "moderate").direction == UP
    assert resolve_direction(61.9, "moderate").direction == FLAT
    assert resolve_direction(38.0, "moderate").direction == DOWN
    assert resolve_direction(70.0, "conservative").direction == UP
    assert resolve_direction(69.9, "conservative").direction == FLAT
    assert resolve_direction(30.0, "conservative").direction == DOWN


def test_flat_iff_no_confidence_iff_not_tradeable():
    for tier in THRESHOLDS:
        for i in range(0, 201):
            res = resolve_direction(i / 2.0, tier)
            flat = res.direction == FLAT
            assert flat == (res.confidence is None)
            assert flat == (not res.tradeable)


def test_unknown_tier_rejected():
    with pytest.raises(ValueError):
        resolve_direction(50.0, "yolo")


def test_rationale_is_from_table_and_repeatable():
    scores = ComponentScores(12.3, 15.0, 8.0)
    a = choose_rationale(UP, "15m", scores, 55.0, random.Random(7))
    b = choose_rationale(UP, "15m", scores, 55.0, random.Random(7))
    assert a == b
    assert a in rationale_options(UP, "15m", scores, 55.0)


def test_rationale_mentions_scores():
    scores = ComponentScores(-12.0, -14.0, -8.0)
    opts = rationale_options(DOWN, "1h", scores, 33.2)
    assert "Hourly breakdown - OF: -12" in opts
    assert "Weak 1h momentum (MO: -14) + RSI 33" in opts


def test_rationale_unknown_timeframe_falls_back_to_hourly():
    scores = ComponentScores(0, 0, 0)
    assert rationale_options(FLAT, "4h", scores, 50.0) == rationale_options(FLAT, "1h", scores, 50.0)
