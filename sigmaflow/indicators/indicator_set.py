"""
캔들 지표 주석(annotation) 모듈.

[ 역할 ]
    오름차순 OHLCV DataFrame에 지표 컬럼을 붙이고,
    결정 소스에 넘길 최근 N개 행(최신순)을 만든다.
    매 분석 사이클마다 새로 계산하며 저장하지 않는다.

[ 추가되는 컬럼 ]
    ma{p} (p = IndicatorConfig.ma_periods, 기본 ma5/ma50/ma200)
    bb_upper, bb_middle, bb_lower, rsi, macd, macd_signal, macd_hist,
    atr, stoch_k, stoch_d
    이력이 부족한 칸은 NaN.

[ 호출하는 곳 ]
    - data/market_data.py::MarketDataManager.get_annotated_candles()
    - data/market_data.py::MarketDataManager.get_indicator_rows()
"""

import math
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from sigmaflow.indicators.moving_average import macd, sma
from sigmaflow.indicators.oscillators import rsi, stochastic_frame
from sigmaflow.indicators.volatility import atr, bollinger_frame
from sigmaflow.utils.config import IndicatorConfig

NAN = float("nan")


def _pad(values: list[float], length: int) -> list[float]:
    """뒤쪽 정렬된 지표 값을 앞쪽 NaN으로 채워 입력 길이에 맞춤."""
    return [NAN] * (length - len(values)) + list(values)


def annotate_candles(frame: pd.DataFrame, settings: IndicatorConfig | None = None) -> pd.DataFrame:
    """지표 컬럼을 추가한 DataFrame 사본 반환.

    Args:
        frame: 오름차순 OHLCV DataFrame (core/data_provider.py::candles_to_frame 결과)
        settings: 지표 기간 설정 (None이면 기본값)
    """
    settings = settings or IndicatorConfig()
    df = frame.copy().reset_index(drop=True)
    n = len(df)
    closes = df["close"].astype(float).tolist()
    highs = df["high"].astype(float).tolist()
    lows = df["low"].astype(float).tolist()

    # 각 지표는 독립적으로 계산 (다른 필드 값을 재사용하지 않는다)
    for period in settings.ma_periods:
        df[f"ma{period}"] = _pad(sma(closes, period), n)

    df = df.join(bollinger_frame(df["close"], settings.bollinger_period, settings.bollinger_k))

    df["rsi"] = _pad(rsi(closes, settings.rsi_period), n)

    points = macd(closes, settings.macd_fast, settings.macd_slow, settings.macd_signal)
    df["macd"] = _pad([p.macd for p in points], n)
    df["macd_signal"] = _pad([p.signal for p in points], n)
    df["macd_hist"] = _pad([p.histogram for p in points], n)

    df["atr"] = _pad(atr(highs, lows, closes, settings.atr_period), n)

    df = df.join(stochastic_frame(
        df["high"], df["low"], df["close"], settings.stochastic_k, settings.stochastic_d,
    ))
    return df


def _value(row: pd.Series, column: str) -> float | None:
    value = row.get(column)
    if value is None or pd.isna(value):
        return None
    return float(value)


@dataclass
class IndicatorSet:
    """한 캔들의 지표 값. None은 '아직 계산 불가'."""
    ma: dict[int, float | None] = field(default_factory=dict)
    bb_upper: float | None = None
    bb_middle: float | None = None
    bb_lower: float | None = None
    rsi: float | None = None
    macd: float | None = None
    macd_signal: float | None = None
    macd_hist: float | None = None
    atr: float | None = None
    stoch_k: float | None = None
    stoch_d: float | None = None

    @property
    def trend_available(self) -> bool:
        """이동평균과 볼린저 밴드가 모두 계산되었는지."""
        values = [*self.ma.values(), self.bb_upper, self.bb_middle, self.bb_lower]
        return all(v is not None for v in values)

    @classmethod
    def from_row(cls, row: pd.Series, ma_periods: list[int]) -> "IndicatorSet":
        return cls(
            ma={p: _value(row, f"ma{p}") for p in ma_periods},
            bb_upper=_value(row, "bb_upper"),
            bb_middle=_value(row, "bb_middle"),
            bb_lower=_value(row, "bb_lower"),
            rsi=_value(row, "rsi"),
            macd=_value(row, "macd"),
            macd_signal=_value(row, "macd_signal"),
            macd_hist=_value(row, "macd_hist"),
            atr=_value(row, "atr"),
            stoch_k=_value(row, "stoch_k"),
            stoch_d=_value(row, "stoch_d"),
        )

    def to_dict(self) -> dict[str, float | None]:
        data: dict[str, float | None] = {f"MA{p}": v for p, v in self.ma.items()}
        data.update({
            "bb_upper": self.bb_upper,
            "bb_mid": self.bb_middle,
            "bb_lower": self.bb_lower,
            "rsi": self.rsi,
            "macd": self.macd,
            "macd_signal": self.macd_signal,
            "macd_hist": self.macd_hist,
            "atr": self.atr,
            "stoch_k": self.stoch_k,
            "stoch_d": self.stoch_d,
        })
        return data


def floor_to(value: float | None, precision: int = 1) -> float | None:
    """소수점 precision자리 내림. None/NaN은 None."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    scale = 10 ** precision
    return math.floor(value * scale) / scale


def latest_indicator_rows(
    annotated: pd.DataFrame,
    count: int = 30,
    precision: int = 1,
    settings: IndicatorConfig | None = None,
) -> list[dict[str, Any]]:
    """최근 count개 행을 최신순으로 반환. 지표 값은 precision자리 내림.

    Returns:
        [{"timestamp", "open", "high", "low", "close", "volume", "indicators": {...}}, ...]
        첫 행이 가장 최근 캔들.
    """
    settings = settings or IndicatorConfig()
    if count <= 0 or annotated.empty:
        return []

    rows = []
    for _, row in annotated.tail(count).iloc[::-1].iterrows():
        indicators = IndicatorSet.from_row(row, settings.ma_periods).to_dict()
        rows.append({
            "timestamp": row["timestamp"],
            "open": float(row["open"]),
            "high": float(row["high"]),
            "low": float(row["low"]),
            "close": float(row["close"]),
            "volume": float(row["volume"]),
            "indicators": {k: floor_to(v, precision) for k, v in indicators.items()},
        })
    return rows


def indicator_snapshot(annotated: pd.DataFrame, settings: IndicatorConfig | None = None) -> IndicatorSet:
    """마지막 캔들의 IndicatorSet. 빈 프레임이면 전부 None."""
    settings = settings or IndicatorConfig()
    if annotated.empty:
        return IndicatorSet(ma={p: None for p in settings.ma_periods})
    return IndicatorSet.from_row(annotated.iloc[-1], settings.ma_periods)
