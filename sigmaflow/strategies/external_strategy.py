"""
외부 결정 소스 어댑터.

[ 역할 ]
    LLM 같은 외부 결정 소스를 TradingStrategy 인터페이스로 감싼다.
    결정 소스는 콜러블이며, 캔들 윈도우와 보유 수량을 받아 다음 중 하나를 반환한다.
        - Decision
        - dict   ({"action": "BUY", "position_pct": 0.3, ...})
        - str    (JSON 텍스트, ```json 코드 펜스 허용)
        - None   (이번 봉은 건너뜀)

[ 실패 처리 ]
    응답을 해석할 수 없으면 DecisionParseError (on_error="raise", 기본값)
    on_error="hold"면 경고 로그 후 HOLD 결정으로 대체.

[ 호출하는 곳 ]
    - trading/task.py::TradingTask (실거래 사이클)
    - backtest/engine.py (외부 소스를 과거 데이터로 재생할 때)
"""

import json
import logging
from typing import Any, Callable

import pandas as pd

from sigmaflow.core.errors import DecisionParseError, InvalidDecision
from sigmaflow.core.trading_strategy import Action, Decision, TradingStrategy

DecisionSource = Callable[[pd.DataFrame, float], Any]


def _strip_fence(text: str) -> str:
    """```json ... ``` 코드 펜스와 앞의 'json' 표기 제거."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]
        cleaned = cleaned.strip()
    if cleaned[:4].lower() == "json":
        cleaned = cleaned[4:].strip()
    return cleaned


def parse_decision_text(text: str) -> Decision:
    """외부 소스의 응답 텍스트를 Decision으로 변환.

    Raises:
        DecisionParseError: JSON이 아니거나, 객체가 아니거나, 결정 값이 잘못됨
    """
    cleaned = _strip_fence(text or "")
    if not cleaned:
        raise DecisionParseError("빈 응답")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise DecisionParseError(f"JSON 파싱 실패: {e}") from e
    if not isinstance(data, dict):
        raise DecisionParseError(f"JSON 객체가 아님: {type(data).__name__}")
    try:
        return Decision.from_dict(data)
    except InvalidDecision as e:
        raise DecisionParseError(f"잘못된 결정: {e}") from e


def coerce_decision(raw: Any) -> Decision | None:
    """결정 소스의 반환값을 Decision으로 통일."""
    if raw is None or isinstance(raw, Decision):
        return raw
    if isinstance(raw, str):
        return parse_decision_text(raw)
    if isinstance(raw, dict):
        try:
            return Decision.from_dict(raw)
        except InvalidDecision as e:
            raise DecisionParseError(f"잘못된 결정: {e}") from e
    raise DecisionParseError(f"지원하지 않는 응답 타입: {type(raw).__name__}")


class ExternalDecisionStrategy(TradingStrategy):
    """외부 결정 소스를 감싼 전략."""

    def __init__(
        self,
        source: DecisionSource,
        name: str = "external",
        min_history: int = 1,
        on_error: str = "raise",
        logger: logging.Logger | None = None,
    ):
        if on_error not in ("raise", "hold"):
            raise ValueError(f"on_error는 'raise' 또는 'hold': {on_error}")
        super().__init__(name=name, params={"min_history": min_history, "on_error": on_error})
        self.source = source
        self.logger = logger or logging.getLogger("sigmaflow.strategy")

    @property
    def min_history(self) -> int:
        return int(self.params["min_history"])

    def analyze(self, market_data: pd.DataFrame, position: float) -> Decision | None:
        if len(market_data) < self.min_history:
            return None
        try:
            return coerce_decision(self.source(market_data, position))
        except DecisionParseError as e:
            if self.params["on_error"] == "raise":
                raise
            self.logger.warning(f"외부 결정 해석 실패, HOLD로 대체: {e}")
            return Decision(action=Action.HOLD, reason=f"parse_error: {e}")
