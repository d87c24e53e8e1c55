"""
예외 계층 정의.

[ 역할 ]
    코어 계산 모듈에서 발생하는 실패를 구분 가능한 예외 타입으로 정의.
    호출자는 예외 타입(또는 reason 문자열)으로 거부/조정/로그 후 진행을 선택한다.

[ 분류 ]
    RiskViolation    - 리스크 한도 위반 (risk/manager.py에서 발생)
        ├── MaxPositionExceeded   : 포지션 비율 한도 초과
        ├── MaxDailyLossExceeded  : 일일 손실 한도 도달
        └── InvalidDecision       : 결정 없음 / 잘못된 결정 값
    EngineInputError - 백테스트 입력 오류 (backtest/engine.py에서 발생)
        └── EmptyInput            : 빈 캔들 시리즈
    DecisionParseError - 외부 결정 텍스트 파싱 실패 (strategies/external_strategy.py)

[ 참고 ]
    지표 함수는 데이터 부족 시 예외를 던지지 않는다 (빈 결과 반환).
"""


class SigmaflowError(Exception):
    """모든 sigmaflow 예외의 부모."""


# ─── 리스크 위반 ────────────────────────────────────────────────────────────

class RiskViolation(SigmaflowError):
    """리스크 한도 위반. reason으로 위반 종류를 구분한다."""

    reason = "risk_violation"

    def __init__(self, message: str = ""):
        super().__init__(message or self.reason)
        self.message = message or self.reason


class MaxPositionExceeded(RiskViolation):
    """결정의 position_pct가 max_position_pct를 초과."""

    reason = "max_position_exceeded"


class MaxDailyLossExceeded(RiskViolation):
    """당일 누적 손실 비율이 max_daily_loss_pct 이상."""

    reason = "max_daily_loss_exceeded"


class InvalidDecision(RiskViolation):
    """결정이 없거나 값이 유효 범위를 벗어남."""

    reason = "invalid_decision"


# ─── 엔진 입력 오류 ─────────────────────────────────────────────────────────

class EngineInputError(SigmaflowError):
    """백테스트 엔진 입력 오류. 해당 실행만 실패한다."""


class EmptyInput(EngineInputError):
    """빈 캔들 시리즈가 전달됨."""


class DecisionParseError(SigmaflowError):
    """외부 결정 소스의 응답을 Decision으로 해석할 수 없음."""
