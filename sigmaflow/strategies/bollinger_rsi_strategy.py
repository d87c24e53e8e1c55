"""
볼린저 밴드 + RSI 역추세 전략 구현.

[ 역할 ]
    core/trading_strategy.py::TradingStrategy의 규칙 기반 구현체.
    "밴드 하단에서 과매도면 매수, 밴드 상단이거나 과매수면 매도"

[ 전략 흐름 ]
    매 봉 analyze() 호출됨 (← backtest/engine.py에서)
        ├── 이력 부족 (볼린저/RSI/ATR 중 하나라도 계산 불가) → None
        ├── 보유 중 + (종가 >= 상단 밴드 또는 RSI >= overbought) → SELL (전량)
        ├── 미보유 + 종가 <= 하단 밴드 + RSI <= oversold → BUY
        │       손절가 = 종가 - ATR * stop_atr
        │       익절가 = 종가 + ATR * take_atr
        └── 그 외 → HOLD

[ 파라미터 ]
    bb_period / bb_k:       볼린저 기간, 표준편차 배수
    rsi_period:             RSI 기간
    oversold / overbought:  RSI 과매도/과매수 기준
    atr_period:             ATR 기간
    stop_atr / take_atr:    손절/익절 거리 (ATR 배수)
    position_pct:           매수 시 사용할 현금 비율
"""

from typing import Any

import pandas as pd

from sigmaflow.core.trading_strategy import Action, Decision, TradingStrategy
from sigmaflow.indicators.oscillators import rsi
from sigmaflow.indicators.volatility import atr, bollinger_bands
from sigmaflow.strategies import register


@register("bollinger_rsi")
class BollingerRSIStrategy(TradingStrategy):
    """볼린저 밴드 + RSI 전략 구현체."""

    DEFAULT_PARAMS = {
        "bb_period": 20,
        "bb_k": 2.0,
        "rsi_period": 14,
        "oversold": 30.0,
        "overbought": 70.0,
        "atr_period": 14,
        "stop_atr": 2.0,
        "take_atr": 3.0,
        "position_pct": 0.5,
    }

    def __init__(self, params: dict[str, Any] | None = None):
        merged = {**self.DEFAULT_PARAMS, **(params or {})}
        super().__init__(name="bollinger_rsi", params=merged)
        if self.oversold >= self.overbought:
            raise ValueError(
                f"oversold({self.oversold})는 overbought({self.overbought})보다 작아야 함"
            )

    @property
    def bb_period(self) -> int:
        return int(self.params["bb_period"])

    @property
    def bb_k(self) -> float:
        return float(self.params["bb_k"])

    @property
    def rsi_period(self) -> int:
        return int(self.params["rsi_period"])

    @property
    def oversold(self) -> float:
        return float(self.params["oversold"])

    @property
    def overbought(self) -> float:
        return float(self.params["overbought"])

    @property
    def atr_period(self) -> int:
        return int(self.params["atr_period"])

    @property
    def position_pct(self) -> float:
        return float(self.params["position_pct"])

    @property
    def min_history(self) -> int:
        # RSI/ATR은 이전 종가가 필요하므로 period + 1
        return max(self.bb_period, self.rsi_period + 1, self.atr_period + 1)

    def analyze(self, market_data: pd.DataFrame, position: float) -> Decision | None:
        if len(market_data) < self.min_history:
            return None

        closes = market_data["close"].tolist()
        band = bollinger_bands(closes, self.bb_period, self.bb_k)[-1]
        rsi_values = rsi(closes, self.rsi_period)
        atr_values = atr(
            market_data["high"].tolist(),
            market_data["low"].tolist(),
            closes,
            self.atr_period,
        )
        if not band.available or not rsi_values or not atr_values:
            return None

        close = closes[-1]
        current_rsi = rsi_values[-1]
        current_atr = atr_values[-1]

        if position > 0:
            if close >= band.upper:
                return Decision(
                    action=Action.SELL,
                    position_pct=1.0,
                    reason=f"상단 밴드 도달 (종가 {close:,.2f} >= {band.upper:,.2f})",
                )
            if current_rsi >= self.overbought:
                return Decision(
                    action=Action.SELL,
                    position_pct=1.0,
                    reason=f"과매수 (RSI {current_rsi:.1f} >= {self.overbought:.0f})",
                )
            return Decision(action=Action.HOLD, reason="보유 유지")

        if close <= band.lower and current_rsi <= self.oversold:
            return Decision(
                action=Action.BUY,
                position_pct=self.position_pct,
                stop_loss_price=max(0.0, close - current_atr * float(self.params["stop_atr"])),
                take_profit_price=close + current_atr * float(self.params["take_atr"]),
                reason=(
                    f"하단 밴드 + 과매도 (종가 {close:,.2f} <= {band.lower:,.2f}, "
                    f"RSI {current_rsi:.1f})"
                ),
            )

        return Decision(action=Action.HOLD, reason="시그널 없음")
