"""
리스크 관리 모듈.

[ 역할 ]
    계좌 하나의 리스크 상태(초기 자산, 당일 손익, 거래 기록)를 소유하고
    매매 결정을 검증(validate) / 조정(adjust) / 사이징(calculate_position_size)한다.

[ 일일 리셋 ]
    day_bucket(현재시각) = UTC 날짜. 버킷이 바뀌면 daily_pnl과 daily_window_start를
    함께 리셋한다. 별도 타이머 없이 상태를 읽거나 쓰는 모든 연산 시작 시점에 판단.
        - 쓰기 연산(record_trade, set_initial_equity): 쓰기 잠금 안에서 실제 리셋
        - 읽기 연산(get_daily_pnl, validate_decision): 상태는 건드리지 않고
          버킷이 바뀌었으면 당일 손익을 0으로 간주

[ 잠금 규칙 ]
    변경은 배타 잠금(write_locked), 조회는 공유 잠금(read_locked).
    쓰기는 모든 읽기/쓰기를 막고, 읽기끼리는 서로 막지 않는다.

[ 검증 vs 조정 ]
    validate_decision()은 결정을 절대 수정하지 않고 위반 시 예외를 던진다.
    clamp는 호출자가 명시적으로 adjust_decision()을 불러야 일어난다.

[ 호출하는 곳 ]
    - trading/task.py::TradingTask.run_once()
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Callable

from sigmaflow.core.broker_api import AccountBalance
from sigmaflow.core.errors import InvalidDecision, MaxDailyLossExceeded, MaxPositionExceeded
from sigmaflow.core.trading_strategy import Action, Decision
from sigmaflow.utils.config import RiskLimitConfig
from sigmaflow.utils.rwlock import ReadWriteLock

RiskLimits = RiskLimitConfig


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def day_bucket(moment: datetime) -> date:
    """시각 → 일 버킷(UTC 날짜). tz 정보가 없으면 UTC로 간주."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).date()


@dataclass(frozen=True)
class TradeRecord:
    """기록된 거래. 추가 후 변경 불가."""
    timestamp: datetime
    action: str         # "BUY" / "SELL" / "HOLD"
    amount: float
    price: float
    pnl: float
    total_equity: float  # 거래 후 총 자산


@dataclass
class RiskState:
    """RiskManager만 소유/변경하는 상태."""
    daily_window_start: date
    initial_equity: float = 0.0
    daily_pnl: float = 0.0
    trade_history: list[TradeRecord] = field(default_factory=list)


class RiskManager:
    """리스크 관리자.

    프로세스 시작 시 1회 생성되어 매 사이클마다 공유된다.
    clock은 테스트에서 날짜 경계를 재현하기 위해 주입 가능.
    """

    def __init__(
        self,
        limits: RiskLimitConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
        logger: logging.Logger | None = None,
    ):
        self.limits = limits or RiskLimitConfig()
        self._clock = clock
        self._lock = ReadWriteLock()
        self._state = RiskState(daily_window_start=day_bucket(clock()))
        self.logger = logger or logging.getLogger("sigmaflow.risk")

    # ─── 일일 리셋 ────────────────────────────────────────────────────────

    def _roll_day(self, now: datetime | None = None) -> None:
        """버킷이 바뀌었으면 당일 손익과 시작일을 함께 리셋. 쓰기 잠금 안에서만 호출."""
        bucket = day_bucket(now if now is not None else self._clock())
        if bucket != self._state.daily_window_start:
            self.logger.info(
                f"일일 손익 리셋: {self._state.daily_window_start} → {bucket} "
                f"(이전 손익: {self._state.daily_pnl:,.2f})"
            )
            self._state.daily_pnl = 0.0
            self._state.daily_window_start = bucket

    def _effective_daily_pnl(self) -> float:
        """잠금 안에서 호출. 버킷이 바뀌었으면 0으로 간주 (상태는 변경하지 않음)."""
        if day_bucket(self._clock()) != self._state.daily_window_start:
            return 0.0
        return self._state.daily_pnl

    # ─── 상태 변경 ────────────────────────────────────────────────────────

    def set_initial_equity(self, equity: float) -> None:
        """일일 손실 비율 계산의 기준 자산 설정. 언제든 덮어쓸 수 있다."""
        with self._lock.write_locked():
            self._roll_day()
            self._state.initial_equity = float(equity)

    def record_trade(
        self,
        action: Action | str,
        amount: float,
        price: float,
        pnl: float,
        total_equity: float,
    ) -> TradeRecord:
        """거래 기록 추가 및 당일 손익 누적.

        시각 조회, 일일 리셋, 추가를 한 쓰기 잠금 안에서 처리해
        기록 순서와 타임스탬프 순서가 항상 같다.
        """
        action = Action.parse(action).value
        amount, price, pnl, total_equity = float(amount), float(price), float(pnl), float(total_equity)
        with self._lock.write_locked():
            now = self._clock()
            self._roll_day(now)
            record = TradeRecord(
                timestamp=now,
                action=action,
                amount=amount,
                price=price,
                pnl=pnl,
                total_equity=total_equity,
            )
            self._state.trade_history.append(record)
            self._state.daily_pnl += record.pnl
            daily_pnl = self._state.daily_pnl
        self.logger.debug(
            f"거래 기록: {record.action} {record.amount} @ {record.price:,.2f} "
            f"(손익: {record.pnl:,.2f}, 당일 누적: {daily_pnl:,.2f})"
        )
        return record

    # ─── 검증 / 조정 ──────────────────────────────────────────────────────

    def validate_decision(self, decision: Decision | None, account: AccountBalance | None = None) -> None:
        """결정 검증. 위반 시 RiskViolation 하위 예외 발생, 통과 시 None.

        Raises:
            InvalidDecision: 결정이 없음
            MaxPositionExceeded: position_pct > max_position_pct
            MaxDailyLossExceeded: -daily_pnl / initial_equity >= max_daily_loss_pct
        """
        if decision is None:
            raise InvalidDecision("결정이 없음")

        if decision.position_pct > self.limits.max_position_pct:
            raise MaxPositionExceeded(
                f"포지션 비율 {decision.position_pct:.2f} > 한도 {self.limits.max_position_pct:.2f}"
            )

        with self._lock.read_locked():
            initial_equity = self._state.initial_equity
            daily_pnl = self._effective_daily_pnl()

        if initial_equity > 0:
            loss_ratio = -daily_pnl / initial_equity
            if loss_ratio >= self.limits.max_daily_loss_pct:
                raise MaxDailyLossExceeded(
                    f"당일 손실 비율 {loss_ratio:.2%} >= 한도 {self.limits.max_daily_loss_pct:.2%}"
                )

    def adjust_decision(self, decision: Decision | None) -> Decision | None:
        """position_pct를 max_position_pct로 제한한 결정 반환. 이미 준수하면 그대로."""
        if decision is None:
            return None
        if decision.position_pct > self.limits.max_position_pct:
            return decision.with_position_pct(self.limits.max_position_pct)
        return decision

    def calculate_position_size(
        self,
        risk_per_trade: float | None,
        entry_price: float,
        stop_loss_price: float,
        total_equity: float,
    ) -> float:
        """손절 거리 기반 포지션 금액 계산 (롱 전용).

        위험 금액 = total_equity * risk_per_trade
        단위당 위험 = entry_price - stop_loss_price (0 이하이면 0 반환)
        risk_per_trade가 None이면 limits.risk_per_trade 사용.
        금액 = 위험 금액 / 단위당 위험 * entry_price, 최대 total_equity * max_position_pct
        """
        if entry_price <= 0 or stop_loss_price <= 0 or total_equity <= 0:
            return 0.0

        if risk_per_trade is None:
            risk_per_trade = self.limits.risk_per_trade
        risk_amount = total_equity * risk_per_trade
        risk_per_unit = entry_price - stop_loss_price
        if risk_per_unit <= 0:
            return 0.0

        size_in_units = risk_amount / risk_per_unit
        notional = size_in_units * entry_price
        return min(notional, total_equity * self.limits.max_position_pct)

    def should_stop_loss(self, current_price: float, stop_loss_price: float) -> bool:
        """손절 여부. 설정에서 비활성화되면 항상 False."""
        if not self.limits.stop_loss_enabled:
            return False
        return current_price <= stop_loss_price

    def should_take_profit(self, current_price: float, take_profit_price: float) -> bool:
        """익절 여부. 설정에서 비활성화되면 항상 False."""
        if not self.limits.take_profit_enabled:
            return False
        return current_price >= take_profit_price

    # ─── 조회 ─────────────────────────────────────────────────────────────

    def get_daily_pnl(self) -> float:
        """당일 손익."""
        with self._lock.read_locked():
            return self._effective_daily_pnl()

    def get_trade_history(self, limit: int = 0) -> list[TradeRecord]:
        """최근 limit개 거래 기록 (시간순). limit <= 0 이거나 전체보다 크면 전체."""
        with self._lock.read_locked():
            history = self._state.trade_history
            if limit <= 0 or limit > len(history):
                return list(history)
            return history[len(history) - limit:]

    def snapshot(self) -> RiskState:
        """현재 상태의 사본."""
        with self._lock.read_locked():
            return replace(
                self._state,
                daily_window_start=day_bucket(self._clock()),
                daily_pnl=self._effective_daily_pnl(),
                trade_history=list(self._state.trade_history),
            )
