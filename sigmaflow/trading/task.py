"""
매매 사이클 모듈.

[ 역할 ]
    한 번의 분석 → 검증 → 주문 사이클을 실행한다. 스케줄링/재시도/알림은 하지 않는다.
    협력 객체(시세, 잔고, 주문, 전략, 리스크 매니저)는 모두 주입받는다.

[ 실행 흐름 ] run_once()
    1. 캔들 조회 → 오름차순 정규화 + 지표 컬럼 (data/market_data.py::MarketDataManager)
    2. 잔고 조회 → risk.set_initial_equity(total_equity)
    3. strategy.analyze(캔들, 기초자산 보유 수량) → Decision (None이면 HOLD)
    4. risk.validate_decision()
         ├── 일일 손실 한도 → HOLD로 전환
         └── 그 외 위반 → 경고 로그 후 risk.adjust_decision(), 조정된 결정을 다시 검증
    5. size_decision()으로 amount 산출, 최소/최대 주문 금액 적용
    6. HOLD가 아니면 OrderSink로 주문 제출 → 성공 시 risk.record_trade()

[ 호출하는 곳 ]
    - 외부 스케줄러 (범위 외) 또는 테스트
"""

import logging
from dataclasses import dataclass

from sigmaflow.core.broker_api import AccountBalance, AccountSource, OrderResult, OrderSide, OrderSink, split_pair
from sigmaflow.core.data_provider import MarketDataSource
from sigmaflow.core.errors import MaxDailyLossExceeded, RiskViolation
from sigmaflow.core.trading_strategy import Action, Decision, TradingStrategy
from sigmaflow.data.market_data import MarketDataManager
from sigmaflow.risk.manager import RiskManager
from sigmaflow.utils.config import TradingConfig


def size_decision(decision: Decision, balance: AccountBalance, pair: str) -> Decision:
    """결정의 amount 산출.

    BUY:  결제통화 가용액 * position_pct (결제통화 금액)
    SELL: 기초자산 보유 수량 * position_pct (기초자산 수량)
    HOLD: 0
    """
    base, quote = split_pair(pair)
    if decision.action == Action.BUY:
        amount = balance.coin(quote).equity * decision.position_pct
    elif decision.action == Action.SELL:
        amount = balance.coin(base).equity * decision.position_pct
    else:
        amount = 0.0
    return decision.with_amount(amount)


@dataclass
class CycleResult:
    """run_once()의 결과."""
    decision: Decision
    price: float = 0.0
    violation: str = ""                 # 검증에서 걸린 RiskViolation.reason
    order: OrderResult | None = None    # 제출한 주문 (없으면 None)
    skipped: str = ""                   # 주문하지 않은 이유

    @property
    def submitted(self) -> bool:
        return self.order is not None and self.order.success


class TradingTask:
    """단일 거래쌍 매매 사이클."""

    def __init__(
        self,
        market: MarketDataSource,
        account: AccountSource,
        orders: OrderSink,
        strategy: TradingStrategy,
        risk: RiskManager,
        settings: TradingConfig | None = None,
        logger: logging.Logger | None = None,
    ):
        self.settings = settings or TradingConfig()
        self.market = MarketDataManager(market) if not isinstance(market, MarketDataManager) else market
        self.account = account
        self.orders = orders
        self.strategy = strategy
        self.risk = risk
        self.logger = logger or logging.getLogger("sigmaflow.trading")

    @property
    def name(self) -> str:
        return f"TradingTask-{self.settings.pair}"

    def run_once(self) -> CycleResult:
        """1회 사이클 실행. 협력 객체의 예외는 그대로 전파한다."""
        pair = self.settings.pair
        base, _ = split_pair(pair)
        self.logger.info(f"[{self.name}] 분석 시작")

        # ─── 1. 캔들 + 지표 ─────────────────────────────────────────────
        frame = self.market.get_annotated_candles(pair, self.settings.candle_count)
        price = float(frame["close"].iloc[-1]) if not frame.empty else 0.0
        self.logger.info(f"[{self.name}] 캔들 {len(frame)}개 조회, 현재가 {price:,.2f}")

        # ─── 2. 잔고 ────────────────────────────────────────────────────
        balance = self.account.get_balance(pair)
        self.risk.set_initial_equity(balance.total_equity)
        self.logger.info(f"[{self.name}] 총 자산 {balance.total_equity:,.2f}")

        # ─── 3. 결정 ────────────────────────────────────────────────────
        decision = self.strategy.analyze(frame, balance.coin(base).equity)
        if decision is None:
            decision = Decision(action=Action.HOLD, reason="결정 없음")
        self.logger.info(
            f"[{self.name}] 결정: {decision.action.value} {decision.position_pct:.2f} ({decision.reason})"
        )

        # ─── 4. 리스크 검증 ─────────────────────────────────────────────
        decision, violation = self._check_risk(decision, balance)

        # ─── 5. 사이징 ──────────────────────────────────────────────────
        decision = size_decision(decision, balance, pair)
        result = CycleResult(decision=decision, price=price, violation=violation)
        if decision.is_hold:
            result.skipped = "hold"
            self.logger.info(f"[{self.name}] HOLD, 주문 없음")
            return result

        decision, skipped = self._apply_order_limits(decision, price)
        result.decision = decision
        if skipped:
            result.skipped = skipped
            self.logger.info(f"[{self.name}] 주문 생략: {skipped}")
            return result

        # ─── 6. 주문 ────────────────────────────────────────────────────
        side = OrderSide.BUY if decision.action == Action.BUY else OrderSide.SELL
        result.order = self.orders.submit_order(pair, side, decision.amount)
        if not result.order.success:
            result.skipped = f"order_failed: {result.order.message}"
            self.logger.error(f"[{self.name}] 주문 실패: {result.order.message}")
            return result

        self.logger.info(f"[{self.name}] 주문 체결: {side.value} {decision.amount}")
        # 실현 손익은 체결 이후에 확정되므로 0으로 기록
        self.risk.record_trade(decision.action, decision.amount, price, 0.0, balance.total_equity)
        return result

    def _check_risk(self, decision: Decision, balance: AccountBalance) -> tuple[Decision, str]:
        """리스크 검증. (통과/조정/HOLD 전환된 결정, 위반 사유) 반환.

        포지션 한도 위반은 조정 후 다시 검증하므로
        일일 손실 한도는 조정된 결정에도 그대로 적용된다.
        """
        violation = ""
        try:
            self.risk.validate_decision(decision, balance)
            return decision, violation
        except MaxDailyLossExceeded as e:
            return self._downgrade_to_hold(decision, e), e.reason
        except RiskViolation as e:
            violation = e.reason
            self.logger.warning(f"[{self.name}] 리스크 검증 실패, 결정 조정: {e}")
            decision = self.risk.adjust_decision(decision)

        try:
            self.risk.validate_decision(decision, balance)
        except MaxDailyLossExceeded as e:
            return self._downgrade_to_hold(decision, e), e.reason
        return decision, violation

    def _downgrade_to_hold(self, decision: Decision, error: MaxDailyLossExceeded) -> Decision:
        self.logger.warning(f"[{self.name}] 리스크 검증 실패, HOLD로 전환: {error}")
        return Decision(action=Action.HOLD, reason=f"{error.reason}: {decision.reason}")

    def _apply_order_limits(self, decision: Decision, price: float) -> tuple[Decision, str]:
        """주문 금액(결제통화 기준)을 [min_order_size, max_order_size]에 맞춘다.

        최소 미만이면 주문 생략, 최대 초과면 최대로 축소.
        """
        if decision.action == Action.BUY:
            notional = decision.amount
        else:
            notional = decision.amount * price

        if notional <= 0 or notional < self.settings.min_order_size:
            return decision, f"below_min_order_size ({notional:,.2f} < {self.settings.min_order_size:,.2f})"

        if notional > self.settings.max_order_size:
            scale = self.settings.max_order_size / notional
            self.logger.info(
                f"[{self.name}] 주문 금액 {notional:,.2f} → 최대 {self.settings.max_order_size:,.2f}로 축소"
            )
            return decision.with_amount(decision.amount * scale), ""
        return decision, ""
