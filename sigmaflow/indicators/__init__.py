"""
기술적 지표 라이브러리.

[ 구성 ]
    moving_average.py - sma, ema, macd
    volatility.py     - bollinger_bands, bollinger_frame, atr
    oscillators.py    - rsi, stochastic, stochastic_frame
    indicator_set.py  - DataFrame 주석(annotate_candles), IndicatorSet

모든 함수는 오름차순 시리즈를 입력으로 받는 순수 함수이며,
데이터가 부족하면 예외 대신 빈 결과(또는 '계산 불가' 표시)를 반환한다.
"""

from sigmaflow.indicators.indicator_set import (
    IndicatorSet,
    annotate_candles,
    floor_to,
    indicator_snapshot,
    latest_indicator_rows,
)
from sigmaflow.indicators.moving_average import MACDPoint, ema, macd, sma
from sigmaflow.indicators.oscillators import StochasticPoint, rsi, stochastic, stochastic_frame
from sigmaflow.indicators.volatility import BollingerBand, atr, bollinger_bands, bollinger_frame, true_range
