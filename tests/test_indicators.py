import pytest

from predictor_signal_bot.indicators import (
    average_range,
    clamp,
    compute_ema,
    compute_macd,
    compute_rsi,
    pct_change,
)

from fakes import candle


def test_rsi_defaults_to_50_when_history_short():
    for n in range(0, 15):
        assert compute_rsi([100.0 + i for i in range(n)]) == 50.0


def test_rsi_computes_with_exactly_period_plus_one_closes():
    closes = [100.0] * 14 + [101.0]
    assert compute_rsi(closes) == 100.0


def test_rsi_is_100_when_no_losses():
    assert compute_rsi([1, 2, 3, 3, 4], period=4) == 100.0


def test_rsi_ratio_formula():
    # gains 2, losses 1 -> rs 2 -> 66.67
    assert compute_rsi([10, 12, 11], period=2) == pytest.approx(100 - 100 / 3)


def test_rsi_uses_first_window_only():
    assert compute_rsi([10, 12, 11, 0.5, 900], period=2) == pytest.approx(100 - 100 / 3)


def test_rsi_all_losses_is_zero():
    assert compute_rsi([120 - i for i in range(15)]) == 0.0


def test_ema_basics():
    assert compute_ema([], 5) == 0.0
    assert compute_ema([5.0], 10) == 5.0
    # mult 0.5: 1 -> 1.5 -> 2.25
    assert compute_ema([1, 2, 3], 3) == pytest.approx(2.25)


def test_macd_signal_line_equals_macd():
    closes = [100 + i * 0.7 for i in range(40)]
    m = compute_macd(closes)
    assert m.macd > 0
    assert m.signal == m.macd
    assert m.histogram == 0.0


def test_macd_flat_series_is_zero():
    m = compute_macd([50.0] * 30)
    assert m.macd == 0.0
    assert m.histogram == 0.0


def test_helpers():
    assert clamp(5, -1, 1) == 1
    assert clamp(-5, -1, 1) == -1
    assert clamp(0.3, -1, 1) == 0.3
    assert pct_change(110, 100) == pytest.approx(10.0)
    assert pct_change(1, 0) is None


def test_average_range_uses_last_candles():
    candles = [candle(i, 100, high=110, low=90) for i in range(5)]
    candles += [candle(5 + i, 100, high=101, low=99) for i in range(14)]
    assert average_range(candles, 14) == pytest.approx(2.0)
    assert average_range([], 14) is None
    assert average_range(candles[:2], 14) == pytest.approx(20.0)
