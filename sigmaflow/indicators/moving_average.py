"""
이동평균 계열 지표: SMA, EMA, MACD.

[ 역할 ]
    오름차순 가격 시리즈를 받아 파생 시리즈를 반환하는 순수 함수.
    상태/부수효과 없음. 동시에 여러 스레드에서 호출해도 안전.

[ 데이터 부족 처리 ]
    기간보다 데이터가 적으면 예외 대신 빈 리스트 반환.
    호출자가 이번 사이클을 건너뛸지 결정한다.

[ 출력 정렬 ]
    sma/ema:  길이 = len(values) - period + 1, 첫 값은 인덱스 period-1에 대응
    macd:     길이 = len(values) - slow - signal + 2
"""

import math
from dataclasses import dataclass
from typing import Iterable

# 누적합 오차 누적 방지를 위한 재동기화 주기
RESYNC_INTERVAL = 1024


def as_floats(values: Iterable[float]) -> list[float]:
    """list / numpy 배열 / pandas Series를 float 리스트로 변환."""
    return [float(v) for v in values]


def check_period(period: int, name: str = "period") -> None:
    if not isinstance(period, int) or isinstance(period, bool) or period <= 0:
        raise ValueError(f"{name}는 양의 정수여야 함: {period}")


def sma(values: Iterable[float], period: int) -> list[float]:
    """단순 이동평균.

    윈도우를 빠져나가는 값을 빼고 들어오는 값을 더하는 누적합 방식 (O(n)).
    RESYNC_INTERVAL마다 윈도우 합을 math.fsum으로 다시 계산해 부동소수 오차를 제한한다.

    >>> sma([1, 2, 3, 4, 5], 3)
    [2.0, 3.0, 4.0]
    """
    check_period(period)
    data = as_floats(values)
    if len(data) < period:
        return []

    window_sum = math.fsum(data[:period])
    result = [window_sum / period]
    for i in range(period, len(data)):
        if (i - period + 1) % RESYNC_INTERVAL == 0:
            window_sum = math.fsum(data[i - period + 1:i + 1])
        else:
            window_sum += data[i] - data[i - period]
        result.append(window_sum / period)
    return result


def ema(values: Iterable[float], period: int) -> list[float]:
    """지수 이동평균.

    첫 값은 처음 period개의 SMA(시드), 이후
    value[i] = (price[i] - value[i-1]) * multiplier + value[i-1],
    multiplier = 2 / (period + 1).
    """
    check_period(period)
    data = as_floats(values)
    if len(data) < period:
        return []

    multiplier = 2.0 / (period + 1)
    current = math.fsum(data[:period]) / period
    result = [current]
    for price in data[period:]:
        current = (price - current) * multiplier + current
        result.append(current)
    return result


@dataclass(frozen=True)
class MACDPoint:
    """MACD 한 시점 값."""
    macd: float
    signal: float
    histogram: float


def macd(
    values: Iterable[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> list[MACDPoint]:
    """MACD = 빠른 EMA - 느린 EMA, 시그널 = MACD의 EMA, 히스토그램 = MACD - 시그널.

    인덱스 slow_period - 1 + signal_period - 1부터 정의된다.
    """
    check_period(fast_period, "fast_period")
    check_period(slow_period, "slow_period")
    check_period(signal_period, "signal_period")
    if fast_period >= slow_period:
        raise ValueError(f"fast_period({fast_period})는 slow_period({slow_period})보다 작아야 함")

    data = as_floats(values)
    slow = ema(data, slow_period)
    if not slow:
        return []
    fast = ema(data, fast_period)

    # fast[k]는 인덱스 fast_period-1+k, slow[j]는 인덱스 slow_period-1+j
    offset = slow_period - fast_period
    macd_line = [fast[j + offset] - slow[j] for j in range(len(slow))]

    signal_line = ema(macd_line, signal_period)
    return [
        MACDPoint(
            macd=macd_line[k + signal_period - 1],
            signal=sig,
            histogram=macd_line[k + signal_period - 1] - sig,
        )
        for k, sig in enumerate(signal_line)
    ]
