"""
이동평균 교차(MA Cross) 전략 구현.

[ 역할 ]
    core/trading_strategy.py::TradingStrategy의 규칙 기반 구현체.
    "단기 MA가 장기 MA 위면 매수, 아래면 전량 매도"

[ 전략 흐름 ]
    매 봉 analyze() 호출됨 (← backtest/engine.py에서)
        ├── 이력 < long_period → None (이번 봉 건너뜀)
        ├── 단기 MA > 장기 MA + 미보유 → BUY (position_pct)
        ├── 단기 MA < 장기 MA + 보유 중 → SELL (전량)
        └── 그 외 → HOLD

[ 파라미터 (config.yaml의 strategy 섹션에서 로드) ]
    short_period:  단기 이동평균 기간
    long_period:   장기 이동평균 기간
    position_pct:  매수 시 사용할 현금 비율 (0~1)
"""

from typing import Any

import pandas as pd

from sigmaflow.core.trading_strategy import Action, Decision, TradingStrategy
from sigmaflow.indicators.moving_average import sma
from sigmaflow.strategies import register


@register("ma_cross")
class MACrossStrategy(TradingStrategy):
    """이동평균 교차 전략 구현체."""

    DEFAULT_PARAMS = {
        "short_period": 5,
        "long_period": 20,
        "position_pct": 1.0,
    }

    def __init__(self, params: dict[str, Any] | None = None):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="ma_cross", params=merged)
        if self.short_period >= self.long_period:
            raise ValueError(
                f"short_period({self.short_period})는 long_period({self.long_period})보다 작아야 함"
            )

    @property
    def short_period(self) -> int:
        return int(self.params["short_period"])

    @property
    def long_period(self) -> int:
        return int(self.params["long_period"])

    @property
    def position_pct(self) -> float:
        return float(self.params["position_pct"])

    @property
    def min_history(self) -> int:
        return self.long_period

    def moving_averages(self, market_data: pd.DataFrame) -> tuple[float, float] | None:
        """(단기 MA, 장기 MA). 데이터 부족 시 None."""
        if len(market_data) < self.long_period:
            return None
        closes = market_data["close"].tail(self.long_period).tolist()
        return sma(closes, self.short_period)[-1], sma(closes, self.long_period)[-1]

    def analyze(self, market_data: pd.DataFrame, position: float) -> Decision | None:
        """매매 결정 생성. 매도 우선 판단 후 매수 판단."""
        averages = self.moving_averages(market_data)
        if averages is None:
            return None
        short_ma, long_ma = averages

        if short_ma < long_ma and position > 0:
            return Decision(
                action=Action.SELL,
                position_pct=1.0,
                reason=f"데드 크로스 (MA{self.short_period}: {short_ma:,.2f} < MA{self.long_period}: {long_ma:,.2f})",
            )

        if short_ma > long_ma and position == 0:
            return Decision(
                action=Action.BUY,
                position_pct=self.position_pct,
                reason=f"골든 크로스 (MA{self.short_period}: {short_ma:,.2f} > MA{self.long_period}: {long_ma:,.2f})",
            )

        return Decision(action=Action.HOLD, reason="시그널 없음")
