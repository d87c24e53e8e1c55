"""
테스트/데모용 Mock 거래소 구현.

[ 역할 ]
    실제 거래소 API 없이 시세 조회, 잔고 조회, 주문 체결을 시뮬레이션.
    MarketDataSource + AccountSource + OrderSink를 한 클래스로 구현.

[ 동작 ]
    - get_candles(): 실제 거래소처럼 최신순(내림차순)으로 반환
    - 체결가: set_price()로 지정한 값, 없으면 마지막 캔들 종가
    - BUY size = 결제통화 금액, SELL size = 기초자산 수량
    - 수수료: 체결금액 * commission_rate (매수 시 받는 수량에서 차감, 매도 시 대금에서 차감)

[ 호출하는 곳 ]
    - trading/task.py::TradingTask 데모/테스트
    - tests/ 단위 테스트

[ 실전 교체 ]
    실제 거래소 연동 시 같은 인터페이스를 구현하는 클라이언트를 사용
"""

import logging
import uuid

from sigmaflow.core.broker_api import (
    AccountBalance,
    AccountSource,
    CoinBalance,
    OrderResult,
    OrderSide,
    OrderSink,
    split_pair,
)
from sigmaflow.core.data_provider import Candle, MarketDataSource, normalize_candles


class MockExchange(MarketDataSource, AccountSource, OrderSink):
    """Mock 거래소. 단일 거래쌍의 가상 잔고로 주문 체결.

    사용법:
        exchange = MockExchange(candles, quote_balance=10_000)
        exchange.get_candles("BTC-USDT", 100)   # 최신순
        exchange.submit_order("BTC-USDT", OrderSide.BUY, 500.0)
    """

    def __init__(
        self,
        candles: list[Candle] | None = None,
        quote_balance: float = 10_000.0,
        base_balance: float = 0.0,
        commission_rate: float = 0.001,
        logger: logging.Logger | None = None,
    ):
        self._candles = normalize_candles(candles or [])   # 오름차순 보관
        self.quote_balance = quote_balance
        self.base_balance = base_balance
        self.avg_entry_price = 0.0
        self.commission_rate = commission_rate
        self.orders: list[OrderResult] = []
        self._price: float | None = None
        self.logger = logger or logging.getLogger("sigmaflow.broker")

    # ─── 시세 ───────────────────────────────────────────────────────────────

    def load_candles(self, candles: list[Candle]) -> None:
        self._candles = normalize_candles(candles)

    def set_price(self, price: float) -> None:
        """체결가 지정 (시뮬레이션용)."""
        self._price = price

    @property
    def current_price(self) -> float:
        if self._price is not None:
            return self._price
        if self._candles:
            return self._candles[-1].close
        return 0.0

    def get_candles(self, pair: str, count: int) -> list[Candle]:
        if count <= 0:
            return []
        return list(reversed(self._candles[-count:]))

    # ─── 잔고 ───────────────────────────────────────────────────────────────

    def get_balance(self, pair: str) -> AccountBalance:
        base, quote = split_pair(pair)
        price = self.current_price
        base_value = self.base_balance * price
        unrealized = (price - self.avg_entry_price) * self.base_balance if self.base_balance > 0 else 0.0
        cost = self.avg_entry_price * self.base_balance
        return AccountBalance(
            total_equity=self.quote_balance + base_value,
            per_coin={
                quote: CoinBalance(equity=self.quote_balance, equity_usd=self.quote_balance),
                base: CoinBalance(
                    equity=self.base_balance,
                    equity_usd=base_value,
                    avg_entry_price=self.avg_entry_price,
                    unrealized_pnl=unrealized,
                    unrealized_pnl_ratio=unrealized / cost if cost > 0 else 0.0,
                ),
            },
        )

    # ─── 주문 ───────────────────────────────────────────────────────────────

    def submit_order(self, instrument: str, side: OrderSide, size: float) -> OrderResult:
        split_pair(instrument)
        order_id = str(uuid.uuid4())[:8]
        price = self.current_price

        def failed(message: str) -> OrderResult:
            result = OrderResult(False, instrument, side, size, order_id, message)
            self.orders.append(result)
            self.logger.warning(f"주문 실패 [{order_id}] {side.value} {size}: {message}")
            return result

        if size <= 0:
            return failed("Invalid size")
        if price <= 0:
            return failed("No price")

        if side == OrderSide.BUY:
            if size > self.quote_balance:
                return failed("Insufficient balance")
            units = size * (1 - self.commission_rate) / price
            total_cost = self.avg_entry_price * self.base_balance + price * units
            self.base_balance += units
            self.avg_entry_price = total_cost / self.base_balance
            self.quote_balance -= size
        else:
            if size > self.base_balance:
                return failed("Insufficient holdings")
            self.quote_balance += size * price * (1 - self.commission_rate)
            self.base_balance -= size
            if self.base_balance <= 1e-12:
                self.base_balance = 0.0
                self.avg_entry_price = 0.0

        result = OrderResult(True, instrument, side, size, order_id)
        self.orders.append(result)
        self.logger.info(f"주문 체결 [{order_id}] {side.value} {size} @ {price:,.2f}")
        return result
