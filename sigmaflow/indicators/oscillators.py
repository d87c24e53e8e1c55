"""
오실레이터 지표: RSI, 스토캐스틱.

두 지표 모두 출력은 항상 [0, 100] 범위.
"""

import math
from dataclasses import dataclass
from typing import Iterable

import pandas as pd

from sigmaflow.indicators.moving_average import as_floats, check_period


def _clamp_pct(value: float) -> float:
    return min(100.0, max(0.0, value))


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    return _clamp_pct(100.0 - 100.0 / (1.0 + avg_gain / avg_loss))


def rsi(values: Iterable[float], period: int = 14) -> list[float]:
    """상대강도지수 (Wilder 평활).

    시드 평균 = 처음 period개 상승/하락폭의 단순평균,
    이후 avg = (avg * (period-1) + 현재값) / period.
    avg_loss가 0이면 100. 길이 = len(values) - period.
    """
    check_period(period)
    data = as_floats(values)
    if len(data) <= period:
        return []

    deltas = [data[i] - data[i - 1] for i in range(1, len(data))]
    gains = [max(d, 0.0) for d in deltas]
    losses = [max(-d, 0.0) for d in deltas]

    avg_gain = math.fsum(gains[:period]) / period
    avg_loss = math.fsum(losses[:period]) / period
    result = [_rsi_value(avg_gain, avg_loss)]
    for gain, loss in zip(gains[period:], losses[period:]):
        avg_gain = (avg_gain * (period - 1) + gain) / period
        avg_loss = (avg_loss * (period - 1) + loss) / period
        result.append(_rsi_value(avg_gain, avg_loss))
    return result


@dataclass(frozen=True)
class StochasticPoint:
    """스토캐스틱 한 시점 값."""
    k: float
    d: float


def stochastic_frame(
    high: pd.Series,
    low: pd.Series,
    close: pd.Series,
    k_period: int = 14,
    d_period: int = 3,
) -> pd.DataFrame:
    """스토캐스틱 컬럼 (stoch_k / stoch_d). 첫 %D 이전 행은 둘 다 NaN.

    %K = (close - 최저가) / (최고가 - 최저가) * 100 (최근 k_period 봉),
    최고가 == 최저가면 %K = 50.
    %D = 최근 d_period개 %K의 단순평균.
    """
    check_period(k_period, "k_period")
    check_period(d_period, "d_period")
    if not len(high) == len(low) == len(close):
        raise ValueError("high/low/close 길이가 다름")

    high, low, close = high.astype(float), low.astype(float), close.astype(float)
    highest = high.rolling(window=k_period, min_periods=k_period).max()
    lowest = low.rolling(window=k_period, min_periods=k_period).min()
    price_range = highest - lowest

    k_line = ((close - lowest) / price_range * 100.0).clip(0.0, 100.0)
    k_line = k_line.mask(price_range == 0, 50.0)
    d_line = k_line.rolling(window=d_period, min_periods=d_period).mean().clip(0.0, 100.0)
    return pd.DataFrame({"stoch_k": k_line.where(d_line.notna()), "stoch_d": d_line})


def stochastic(
    high: Iterable[float],
    low: Iterable[float],
    close: Iterable[float],
    k_period: int = 14,
    d_period: int = 3,
) -> list[StochasticPoint]:
    """스토캐스틱 %K / %D.

    첫 %D가 정의되는 시점부터 반환 (길이 = len - k_period - d_period + 2).
    """
    highs, lows, closes = as_floats(high), as_floats(low), as_floats(close)
    frame = stochastic_frame(
        pd.Series(highs, dtype=float),
        pd.Series(lows, dtype=float),
        pd.Series(closes, dtype=float),
        k_period,
        d_period,
    ).dropna()
    return [StochasticPoint(k=float(row.stoch_k), d=float(row.stoch_d)) for row in frame.itertuples(index=False)]
