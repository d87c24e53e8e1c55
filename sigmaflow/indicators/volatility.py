"""
변동성 지표: 볼린저 밴드, ATR.

[ 데이터 부족 처리 ]
    bollinger_frame: 입력과 같은 인덱스. 이력이 부족한 행은 NaN
    bollinger_bands: 입력과 같은 길이. 이력이 부족한 인덱스는 BollingerBand() (0값, available=False)
    atr:             이전 종가가 필요하므로 길이 = len - period, 부족하면 빈 리스트
"""

import math
from dataclasses import dataclass
from typing import Iterable

import pandas as pd

from sigmaflow.indicators.moving_average import as_floats, check_period


@dataclass(frozen=True)
class BollingerBand:
    """볼린저 밴드 한 시점 값. 기본값은 '아직 계산 불가' 표시."""
    upper: float = 0.0
    middle: float = 0.0
    lower: float = 0.0
    available: bool = False


def bollinger_frame(close: pd.Series, period: int = 20, k: float = 2.0) -> pd.DataFrame:
    """볼린저 밴드 컬럼 (bb_upper / bb_middle / bb_lower).

    middle = 윈도우 평균, 폭 = k * 모표준편차(ddof=0).
    """
    check_period(period)
    rolling = close.astype(float).rolling(window=period, min_periods=period)
    middle = rolling.mean()
    std_dev = rolling.std(ddof=0)
    return pd.DataFrame({
        "bb_upper": middle + k * std_dev,
        "bb_middle": middle,
        "bb_lower": middle - k * std_dev,
    })


def bollinger_bands(values: Iterable[float], period: int = 20, k: float = 2.0) -> list[BollingerBand]:
    """볼린저 밴드. 윈도우 평균 ± k * 모표준편차."""
    check_period(period)
    bands = bollinger_frame(pd.Series(as_floats(values), dtype=float), period, k)
    return [
        BollingerBand() if pd.isna(row.bb_middle) else BollingerBand(
            upper=float(row.bb_upper),
            middle=float(row.bb_middle),
            lower=float(row.bb_lower),
            available=True,
        )
        for row in bands.itertuples(index=False)
    ]


def true_range(high: float, low: float, prev_close: float) -> float:
    return max(high - low, abs(high - prev_close), abs(low - prev_close))


def atr(
    high: Iterable[float],
    low: Iterable[float],
    close: Iterable[float],
    period: int = 14,
) -> list[float]:
    """평균 실제 범위 (Wilder 평활).

    시드 = 처음 period개 TR의 단순평균,
    이후 atr[i] = (atr[i-1] * (period-1) + tr[i]) / period.
    첫 값은 봉 인덱스 period에 대응.
    """
    check_period(period)
    highs, lows, closes = as_floats(high), as_floats(low), as_floats(close)
    if not len(highs) == len(lows) == len(closes):
        raise ValueError("high/low/close 길이가 다름")
    if len(closes) <= period:
        return []

    ranges = [true_range(highs[i], lows[i], closes[i - 1]) for i in range(1, len(closes))]
    current = math.fsum(ranges[:period]) / period
    result = [current]
    for tr in ranges[period:]:
        current = (current * (period - 1) + tr) / period
        result.append(current)
    return result
