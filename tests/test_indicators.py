import math

import pandas as pd
import pytest

from sigmaflow.core.data_provider import candles_to_frame
from sigmaflow.indicators import (
    BollingerBand,
    annotate_candles,
    atr,
    bollinger_bands,
    bollinger_frame,
    ema,
    floor_to,
    indicator_snapshot,
    latest_indicator_rows,
    macd,
    rsi,
    sma,
    stochastic,
    stochastic_frame,
)
from sigmaflow.utils.config import IndicatorConfig


def wave(n, base=100.0, amplitude=10.0):
    return [base + amplitude * math.sin(i / 3.0) + i * 0.1 for i in range(n)]


# ─── 이동평균 ────────────────────────────────────────────────────────────────

def test_sma_basic():
    assert sma([1, 2, 3, 4, 5], 3) == [2.0, 3.0, 4.0]


def test_sma_insufficient_data_returns_empty():
    assert sma([1, 2], 3) == []
    assert sma([], 5) == []


@pytest.mark.parametrize("period", [0, -1, 2.5, True])
def test_sma_rejects_invalid_period(period):
    with pytest.raises(ValueError):
        sma([1, 2, 3], period)


def test_sma_length():
    values = wave(50)
    for period in (1, 5, 20, 50, 51):
        assert len(sma(values, period)) == max(0, len(values) - period + 1)


def test_sma_long_series_stays_accurate():
    values = [0.1] * 5000
    result = sma(values, 10)
    assert len(result) == 4991
    assert all(abs(v - 0.1) < 1e-12 for v in result)


def test_sma_accepts_series():
    assert sma(pd.Series([2.0, 4.0, 6.0]), 2) == [3.0, 5.0]


def test_ema_seeded_with_sma():
    assert ema([1, 2, 3, 4, 5], 3) == [2.0, 3.0, 4.0]


def test_ema_length_and_constant():
    result = ema([7.0] * 30, 10)
    assert len(result) == 21
    assert all(v == pytest.approx(7.0) for v in result)


def test_macd_length_and_histogram():
    values = wave(60)
    points = macd(values, 12, 26, 9)
    assert len(points) == 60 - 26 - 9 + 2
    for p in points:
        assert p.histogram == pytest.approx(p.macd - p.signal)


def test_macd_constant_series_is_zero():
    points = macd([50.0] * 40)
    assert points
    assert all(abs(p.macd) < 1e-9 and abs(p.signal) < 1e-9 for p in points)


def test_macd_insufficient_data():
    assert macd(wave(20)) == []


def test_macd_rejects_fast_not_less_than_slow():
    with pytest.raises(ValueError):
        macd(wave(60), 26, 12, 9)


# ─── 볼린저 / ATR ────────────────────────────────────────────────────────────

def test_bollinger_constant_series():
    bands = bollinger_bands([10.0] * 25, 20, 2.0)
    assert len(bands) == 25
    assert all(b == BollingerBand() for b in bands[:19])
    for b in bands[19:]:
        assert b.available
        assert b.middle == pytest.approx(10.0)
        assert b.upper == pytest.approx(10.0)
        assert b.lower == pytest.approx(10.0)


def test_bollinger_known_values():
    values = list(range(1, 21))
    band = bollinger_bands(values, 20, 2.0)[-1]
    std = math.sqrt((20 ** 2 - 1) / 12)
    assert band.middle == pytest.approx(10.5)
    assert band.upper == pytest.approx(10.5 + 2 * std)
    assert band.lower == pytest.approx(10.5 - 2 * std)


def test_bollinger_bands_ordered():
    for band in bollinger_bands(wave(80), 20, 2.0):
        if band.available:
            assert band.lower <= band.middle <= band.upper


def test_bollinger_frame_keeps_index():
    close = pd.Series(list(range(1, 21)), index=range(100, 120), dtype=float)
    bands = bollinger_frame(close, 20, 2.0)
    assert list(bands.index) == list(close.index)
    assert bands["bb_middle"].iloc[:19].isna().all()
    assert bands["bb_middle"].iloc[-1] == pytest.approx(10.5)
    assert bands["bb_upper"].iloc[-1] == pytest.approx(10.5 + 2 * math.sqrt((20 ** 2 - 1) / 12))


def test_bollinger_frame_rejects_invalid_period():
    with pytest.raises(ValueError):
        bollinger_frame(pd.Series([1.0, 2.0]), 0)


def test_atr_constant_range():
    closes = [100.0] * 30
    highs = [101.0] * 30
    lows = [99.0] * 30
    result = atr(highs, lows, closes, 14)
    assert len(result) == 30 - 14
    assert all(v == pytest.approx(2.0) for v in result)


def test_atr_uses_previous_close_gap():
    highs = [10.0, 21.0]
    lows = [9.0, 20.0]
    closes = [10.0, 20.5]
    assert atr(highs, lows, closes, 1) == [11.0]


def test_atr_length_mismatch():
    with pytest.raises(ValueError):
        atr([1.0, 2.0], [1.0], [1.0, 2.0], 1)


def test_atr_insufficient_data():
    assert atr([1.0] * 14, [1.0] * 14, [1.0] * 14, 14) == []


# ─── 오실레이터 ──────────────────────────────────────────────────────────────

def test_rsi_all_gains_is_100():
    result = rsi(list(range(1, 31)), 14)
    assert len(result) == 30 - 14
    assert all(v == 100.0 for v in result)


def test_rsi_all_losses_is_0():
    result = rsi(list(range(30, 0, -1)), 14)
    assert all(v == pytest.approx(0.0) for v in result)


def test_rsi_bounds():
    for value in rsi(wave(200, amplitude=30.0), 14):
        assert 0.0 <= value <= 100.0


def test_rsi_insufficient_data():
    assert rsi([1, 2, 3], 14) == []
    assert rsi(list(range(14)), 14) == []


def test_stochastic_bounds_and_length():
    closes = wave(60)
    highs = [c + 2 for c in closes]
    lows = [c - 2 for c in closes]
    points = stochastic(highs, lows, closes, 14, 3)
    assert len(points) == 60 - 14 - 3 + 2
    for p in points:
        assert 0.0 <= p.k <= 100.0
        assert 0.0 <= p.d <= 100.0


def test_stochastic_flat_range_is_50():
    points = stochastic([5.0] * 20, [5.0] * 20, [5.0] * 20, 14, 3)
    assert all(p.k == 50.0 and p.d == 50.0 for p in points)


def test_stochastic_close_at_high():
    closes = [float(i) for i in range(1, 21)]
    points = stochastic(closes, [c - 1 for c in closes], closes, 5, 3)
    assert all(p.k == pytest.approx(100.0) for p in points)


def test_stochastic_frame_matches_points():
    closes = wave(40)
    highs = pd.Series([c + 2 for c in closes])
    lows = pd.Series([c - 2 for c in closes])
    frame = stochastic_frame(highs, lows, pd.Series(closes), 14, 3)
    assert len(frame) == 40
    assert frame.iloc[:15].isna().all().all()
    assert frame.iloc[15:].notna().all().all()

    highest, lowest = highs.iloc[-14:].max(), lows.iloc[-14:].min()
    assert frame["stoch_k"].iloc[-1] == pytest.approx((closes[-1] - lowest) / (highest - lowest) * 100)

    points = stochastic(highs, lows, closes, 14, 3)
    assert frame["stoch_k"].iloc[15:].tolist() == pytest.approx([p.k for p in points])
    assert frame["stoch_d"].iloc[15:].tolist() == pytest.approx([p.d for p in points])


def test_stochastic_frame_length_mismatch():
    with pytest.raises(ValueError):
        stochastic_frame(pd.Series([1.0, 2.0]), pd.Series([1.0]), pd.Series([1.0, 2.0]), 1, 1)


# ─── DataFrame 주석 ──────────────────────────────────────────────────────────

def test_annotate_candles_columns(candle_factory):
    frame = candles_to_frame(candle_factory(wave(60)))
    annotated = annotate_candles(frame)
    for column in ("ma5", "ma50", "ma200", "bb_upper", "bb_middle", "bb_lower",
                   "rsi", "macd", "macd_signal", "macd_hist", "atr", "stoch_k", "stoch_d"):
        assert column in annotated.columns
    assert len(annotated) == 60
    assert annotated["ma5"].iloc[:4].isna().all()
    assert annotated["ma5"].iloc[4] == pytest.approx(sum(frame["close"].iloc[:5]) / 5)
    assert annotated["ma200"].isna().all()
    assert "ma5" not in frame.columns


def test_annotate_candles_fields_independent(candle_factory):
    annotated = annotate_candles(candles_to_frame(candle_factory(wave(60))))
    last = annotated.iloc[-1]
    assert last["bb_middle"] == pytest.approx(annotated["close"].iloc[-20:].mean())
    assert last["ma50"] != last["bb_upper"]


def test_floor_to():
    assert floor_to(12.345) == 12.3
    assert floor_to(12.399, 2) == 12.39
    assert floor_to(None) is None
    assert floor_to(float("nan")) is None


def test_latest_indicator_rows_newest_first(candle_factory):
    settings = IndicatorConfig(ma_periods=[5, 10])
    annotated = annotate_candles(candles_to_frame(candle_factory(wave(40))), settings)
    rows = latest_indicator_rows(annotated, count=30, settings=settings)
    assert len(rows) == 30
    assert rows[0]["timestamp"] > rows[-1]["timestamp"]
    assert rows[0]["close"] == annotated["close"].iloc[-1]
    indicators = rows[0]["indicators"]
    assert set(indicators) >= {"MA5", "MA10", "bb_upper", "bb_mid", "bb_lower"}
    assert indicators["MA5"] == floor_to(annotated["ma5"].iloc[-1])


def test_latest_indicator_rows_empty():
    assert latest_indicator_rows(pd.DataFrame(), count=5) == []


def test_indicator_snapshot(candle_factory):
    settings = IndicatorConfig(ma_periods=[5])
    annotated = annotate_candles(candles_to_frame(candle_factory(wave(30))), settings)
    snapshot = indicator_snapshot(annotated, settings)
    assert snapshot.trend_available
    assert snapshot.ma[5] == pytest.approx(annotated["ma5"].iloc[-1])

    short = annotate_candles(candles_to_frame(candle_factory(wave(10))), settings)
    assert not indicator_snapshot(short, settings).trend_available
