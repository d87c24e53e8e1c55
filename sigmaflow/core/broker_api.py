"""
거래소 계좌/주문 추상 클래스 정의.

[ 역할 ]
    거래소와의 통신을 추상화하는 인터페이스 정의.
    실제 거래소 교체 시 이 클래스들만 구현하면 됨.
        AccountSource - 잔고 조회
        OrderSink     - 주문 제출

[ 구현체 ]
    - brokers/mock_broker.py::MockExchange  (테스트/데모용)
    - 실제 거래소 클라이언트 (인증/서명/재시도 포함, 범위 외)

[ 호출하는 곳 ]
    - trading/task.py::TradingTask.run_once()에서 잔고 조회 및 주문 제출
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum


class OrderSide(Enum):
    """주문 방향."""
    BUY = "buy"
    SELL = "sell"


@dataclass
class CoinBalance:
    """코인별 잔고 정보."""
    equity: float = 0.0                 # 보유 수량
    equity_usd: float = 0.0             # USD 환산 가치
    avg_entry_price: float = 0.0        # 평균 매수가
    unrealized_pnl: float = 0.0         # 미실현 손익
    unrealized_pnl_ratio: float = 0.0   # 미실현 손익률


@dataclass
class AccountBalance:
    """get_balance()의 반환값."""
    total_equity: float = 0.0                                        # 계좌 총 가치 (USD)
    per_coin: dict[str, CoinBalance] = field(default_factory=dict)   # 코인 → 잔고

    def coin(self, symbol: str) -> CoinBalance:
        """코인 잔고 조회. 없으면 빈 잔고."""
        return self.per_coin.get(symbol.upper(), CoinBalance())


@dataclass
class OrderResult:
    """submit_order()의 반환값."""
    success: bool
    instrument: str
    side: OrderSide
    size: float
    order_id: str = ""
    message: str = ""


def split_pair(pair: str) -> tuple[str, str]:
    """거래쌍 분리. "BTC-USDT" → ("BTC", "USDT") = (기초자산, 결제통화)."""
    base, sep, quote = pair.upper().partition("-")
    if not sep or not base or not quote:
        raise ValueError(f"거래쌍 형식 오류 (예: BTC-USDT): {pair!r}")
    return base, quote


class AccountSource(ABC):
    """계좌 잔고 조회 인터페이스."""

    @abstractmethod
    def get_balance(self, pair: str) -> AccountBalance:
        """거래쌍의 두 통화를 포함한 잔고 조회."""
        ...


class OrderSink(ABC):
    """주문 제출 인터페이스."""

    @abstractmethod
    def submit_order(self, instrument: str, side: OrderSide, size: float) -> OrderResult:
        """시장가 주문 제출.

        Args:
            instrument: 거래쌍 (예: "BTC-USDT")
            side: 매수/매도
            size: BUY는 결제통화 금액, SELL은 기초자산 수량
        """
        ...
