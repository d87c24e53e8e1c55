"""
매매 결정(Decision) 및 전략 추상 클래스 정의.

[ 역할 ]
    전략이 반환하는 매매 결정의 형태와 전략 인터페이스를 정의.
    규칙 기반 전략이든 외부 결정 소스(LLM 등)든 동일한 인터페이스로 엔진에 연결된다.

[ 구현체 ]
    - strategies/ma_cross_strategy.py::MACrossStrategy       (골든/데드 크로스)
    - strategies/bollinger_rsi_strategy.py::BollingerRSIStrategy
    - strategies/external_strategy.py::ExternalDecisionStrategy (외부 결정 어댑터)

[ 호출하는 곳 ]
    - backtest/engine.py::BacktestEngine.run()에서 매 봉마다 analyze() 호출
    - trading/task.py::TradingTask.run_once()에서 1회 호출

[ 데이터 흐름 ]
    캔들 윈도우(오름차순 DataFrame) + 현재 보유 수량 → analyze() → Decision 또는 None
    None이면 해당 봉은 건너뛴다.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

import pandas as pd

from sigmaflow.core.errors import InvalidDecision


class Action(Enum):
    """매매 행동 종류."""
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"

    @classmethod
    def parse(cls, value: "str | Action") -> "Action":
        """문자열(대소문자 무관)을 Action으로 변환."""
        if isinstance(value, Action):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise InvalidDecision(f"알 수 없는 action: {value!r}") from None


@dataclass
class Decision:
    """매매 결정.

    position_pct는 항상 [0, 1] 범위.
    BUY: 가용 현금 중 사용할 비율 / SELL: 보유 수량 중 매도할 비율.
    amount는 파생 값으로 생성자 인자가 아니며, trading/task.py::size_decision()에서만 채워진다.
    """
    action: Action
    position_pct: float = 0.0
    stop_loss_price: float = 0.0
    take_profit_price: float = 0.0
    reason: str = ""
    amount: float = field(default=0.0, init=False)

    def __post_init__(self):
        self.action = Action.parse(self.action)
        try:
            self.position_pct = float(self.position_pct)
        except (TypeError, ValueError):
            raise InvalidDecision(f"position_pct가 숫자가 아님: {self.position_pct!r}") from None
        if not 0.0 <= self.position_pct <= 1.0:
            raise InvalidDecision(f"position_pct는 0~1 범위여야 함: {self.position_pct}")
        self.stop_loss_price = float(self.stop_loss_price or 0.0)
        self.take_profit_price = float(self.take_profit_price or 0.0)

    @property
    def is_hold(self) -> bool:
        return self.action == Action.HOLD

    def with_position_pct(self, position_pct: float) -> "Decision":
        """position_pct만 바꾼 사본 (amount 유지)."""
        adjusted = replace(self, position_pct=position_pct)
        adjusted.amount = self.amount
        return adjusted

    def with_amount(self, amount: float) -> "Decision":
        """amount를 채운 사본."""
        sized = replace(self)
        sized.amount = float(amount)
        return sized

    def to_dict(self) -> dict[str, Any]:
        """직렬화: {action, position_pct, stop_loss_price, take_profit_price, reason, amount}."""
        return {
            "action": self.action.value,
            "position_pct": self.position_pct,
            "stop_loss_price": self.stop_loss_price,
            "take_profit_price": self.take_profit_price,
            "reason": self.reason,
            "amount": self.amount,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Decision":
        """딕셔너리에서 Decision 생성.

        take_profit_target 키도 take_profit_price로 인정한다.
        amount 키는 무시한다 (파생 값).
        """
        if not isinstance(data, dict) or "action" not in data:
            raise InvalidDecision(f"action 필드가 없는 결정: {data!r}")
        take_profit = data.get("take_profit_price", data.get("take_profit_target", 0.0))
        return cls(
            action=data["action"],
            position_pct=data.get("position_pct", 0.0) or 0.0,
            stop_loss_price=data.get("stop_loss_price", 0.0) or 0.0,
            take_profit_price=take_profit or 0.0,
            reason=str(data.get("reason", "")),
        )


class TradingStrategy(ABC):
    """매매 전략 추상 클래스.

    새 전략을 만들려면 이 클래스를 상속받아 analyze()를 구현하면 된다.
    """

    def __init__(self, name: str, params: dict[str, Any] | None = None):
        self.name = name
        self.params = params or {}  # config.yaml에서 로드된 전략 파라미터

    @property
    def min_history(self) -> int:
        """결정을 내리기 위해 필요한 최소 봉 수."""
        return 1

    @abstractmethod
    def analyze(
        self,
        market_data: pd.DataFrame,
        position: float,
    ) -> Decision | None:
        """매매 결정 생성.

        Args:
            market_data: 현재 봉까지의 OHLCV DataFrame (오름차순)
            position: 현재 보유 수량 (0이면 미보유)

        Returns:
            Decision 또는 None (이번 봉은 건너뜀)
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, params={self.params!r})"
