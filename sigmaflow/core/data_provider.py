"""
시세 데이터 제공 추상 클래스 및 캔들 정규화.

[ 역할 ]
    OHLCV 캔들을 제공하는 인터페이스(MarketDataSource) 정의.
    거래소는 최신순(내림차순)으로, 파일은 오름차순으로 줄 수 있으므로
    지표 계산 전에 반드시 normalize_candles()로 오름차순 정렬한다.
    (순서가 섞인 채로 윈도우 계산을 하면 결과가 조용히 틀어진다)

[ 구현체 ]
    - brokers/mock_broker.py::MockExchange  (메모리 기반, 테스트/데모용)
    - 실제 거래소 REST 클라이언트 (범위 외)

[ 호출하는 곳 ]
    - data/market_data.py::MarketDataManager가 이 인터페이스로 캔들 조회
    - backtest/engine.py가 candles_to_frame()으로 DataFrame 변환
"""

import numbers
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

import pandas as pd

CANDLE_COLUMNS = ["timestamp", "open", "high", "low", "close", "volume"]


def parse_timestamp(value: Any) -> datetime:
    """다양한 형태의 시간 값을 UTC datetime으로 변환.

    밀리초 epoch(정수/문자열), datetime, pandas.Timestamp, ISO 문자열을 허용.
    tz 정보가 없는 값은 UTC로 간주한다.
    """
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return parse_timestamp(pd.Timestamp(value))


@dataclass(frozen=True)
class Candle:
    """단일 봉(캔들) 데이터."""
    timestamp: datetime
    open: float      # 시가
    high: float      # 고가
    low: float       # 저가
    close: float     # 종가
    volume: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Candle":
        """딕셔너리에서 Candle 생성. 긴 키(open)와 짧은 키(o) 모두 허용."""
        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data:
                    return data[key]
            return default

        return cls(
            timestamp=parse_timestamp(pick("timestamp", "ts", "date")),
            open=float(pick("open", "o")),
            high=float(pick("high", "h")),
            low=float(pick("low", "l")),
            close=float(pick("close", "c")),
            volume=float(pick("volume", "vol", default=0.0)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


def normalize_candles(candles: Iterable[Candle]) -> list[Candle]:
    """캔들을 시간 오름차순으로 정렬한 새 리스트 반환.

    오름차순이면 그대로, 내림차순이면 뒤집고, 섞여 있으면 정렬한다.
    """
    items = list(candles)
    if len(items) < 2:
        return items
    stamps = [c.timestamp for c in items]
    if all(a <= b for a, b in zip(stamps, stamps[1:])):
        return items
    if all(a >= b for a, b in zip(stamps, stamps[1:])):
        return items[::-1]
    return sorted(items, key=lambda c: c.timestamp)


def candles_to_frame(candles: "Iterable[Candle] | pd.DataFrame") -> pd.DataFrame:
    """캔들 시퀀스(또는 DataFrame)를 오름차순 OHLCV DataFrame으로 변환.

    Returns:
        DataFrame with columns: [timestamp, open, high, low, close, volume]
    """
    if isinstance(candles, pd.DataFrame):
        df = candles.copy()
        if "timestamp" not in df.columns:
            for alt in ("date", "ts", "time"):
                if alt in df.columns:
                    df = df.rename(columns={alt: "timestamp"})
                    break
        if "volume" not in df.columns:
            df["volume"] = 0.0
        missing = [c for c in CANDLE_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"캔들 DataFrame에 필요한 컬럼 없음: {missing}")
        df["timestamp"] = [parse_timestamp(v) for v in df["timestamp"]]
        df = df.sort_values("timestamp", kind="stable").reset_index(drop=True)
        return df[CANDLE_COLUMNS]

    rows = [c.to_dict() for c in normalize_candles(candles)]
    if not rows:
        return pd.DataFrame(columns=CANDLE_COLUMNS)
    return pd.DataFrame(rows, columns=CANDLE_COLUMNS)


class MarketDataSource(ABC):
    """시세 데이터 제공 추상 클래스.

    반환 순서는 오름차순/내림차순 어느 쪽이든 허용 (사용 측에서 정규화).
    """

    @abstractmethod
    def get_candles(self, pair: str, count: int) -> list[Candle]:
        """최근 count개 캔들 조회.

        Args:
            pair: 거래쌍 (예: "BTC-USDT")
            count: 조회할 캔들 개수
        """
        ...
