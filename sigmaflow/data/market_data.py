"""
시장 데이터 관리 모듈.

[ 역할 ]
    MarketDataSource를 감싸서 정규화 + 지표 주석 + 캐싱 제공.
    거래소 API는 캔들을 최신순으로 주기도 하므로 여기서 항상 오름차순으로 맞춘다.

[ 의존성 ]
    - core/data_provider.py::MarketDataSource (데이터 소스 추상화)
    - indicators/indicator_set.py::annotate_candles() (지표 컬럼 추가)

[ 호출하는 곳 ]
    - trading/task.py::TradingTask.run_once()에서 캔들 조회
    - 백테스트에서는 engine.py가 직접 캔들을 받으므로 미사용
"""

import logging

import pandas as pd

from sigmaflow.core.data_provider import Candle, MarketDataSource, candles_to_frame, normalize_candles
from sigmaflow.indicators.indicator_set import annotate_candles, latest_indicator_rows
from sigmaflow.utils.config import IndicatorConfig


class MarketDataManager:
    """MarketDataSource 위에 정규화/캐싱 레이어를 추가한 매니저.

    사용 예:
        manager = MarketDataManager(MockExchange(candles))
        df = manager.get_annotated_candles("BTC-USDT", 231)
    """

    def __init__(
        self,
        source: MarketDataSource,
        settings: IndicatorConfig | None = None,
        logger: logging.Logger | None = None,
    ):
        self.source = source
        self.settings = settings or IndicatorConfig()
        self.logger = logger or logging.getLogger("sigmaflow.data")
        self._cache: dict[str, pd.DataFrame] = {}  # "pair_count" → 주석된 DataFrame

    def get_candles(self, pair: str, count: int) -> list[Candle]:
        """캔들 조회 후 오름차순 정규화."""
        candles = normalize_candles(self.source.get_candles(pair, count))
        self.logger.debug(f"{pair} 캔들 {len(candles)}개 조회 (요청 {count})")
        return candles

    def get_annotated_candles(self, pair: str, count: int, use_cache: bool = False) -> pd.DataFrame:
        """지표 컬럼이 추가된 오름차순 DataFrame.

        Returns:
            DataFrame with columns: [timestamp, open, high, low, close, volume, ma5, ..., stoch_d]
        """
        cache_key = f"{pair}_{count}"
        if use_cache and cache_key in self._cache:
            return self._cache[cache_key]

        annotated = annotate_candles(candles_to_frame(self.get_candles(pair, count)), self.settings)
        if use_cache:
            self._cache[cache_key] = annotated
        return annotated

    def get_indicator_rows(self, pair: str, count: int, output_count: int = 30) -> list[dict]:
        """최근 output_count개 봉의 캔들+지표 (최신순, 소수 1자리 내림)."""
        annotated = self.get_annotated_candles(pair, count)
        return latest_indicator_rows(annotated, count=output_count, settings=self.settings)

    def clear_cache(self) -> None:
        """캐시 초기화."""
        self._cache.clear()
