"""
시뮬레이션 포트폴리오 모듈.

[ 역할 ]
    백테스트 중 현금(capital), 단일 자산 포지션, 거래 기록(Trade)을 관리.
    백테스트 엔진이 매수/매도 실행 시 이 클래스를 통해 상태를 갱신.

[ 주요 클래스 ]
    Position  - 보유 수량/평균 진입가 추적 (롱 전용)
    Trade     - 개별 시뮬레이션 거래 내역 (매수/매도, 손익 포함)
    Portfolio - 현금 + 포지션 + 거래내역 + 고점/최대낙폭

[ 불변식 ]
    - position.units >= 0 (공매도 없음)
    - capital >= 0 (가용 현금 이상 매수 불가)
    - 평균 진입가는 보유 중 매수의 수량 가중 평균, 보유 수량이 0이 될 때만 리셋

[ 수수료 ]
    매수: capital * pct 를 지출하고, 수수료만큼 받는 수량이 줄어든다.
    매도: 매도 금액에서 수수료를 뺀 순매도액이 현금에 더해진다.

[ 호출하는 곳 ]
    - backtest/engine.py::BacktestEngine.run()
"""

from dataclasses import dataclass, field
from datetime import datetime

from sigmaflow.core.trading_strategy import Action

# 부동소수 잔량 정리 기준
DUST = 1e-12


@dataclass
class Position:
    """단일 자산 포지션."""
    units: float = 0.0              # 보유 수량
    avg_entry_price: float = 0.0    # 평균 진입가 (매수 시마다 가중평균 갱신)

    def market_value(self, price: float) -> float:
        return self.units * price

    def update_on_buy(self, units: float, price: float) -> None:
        """매수 시 포지션 업데이트."""
        if self.units > 0:
            total_cost = self.avg_entry_price * self.units + price * units
            self.units += units
            self.avg_entry_price = total_cost / self.units
        else:
            self.units = units
            self.avg_entry_price = price

    def update_on_sell(self, units: float) -> None:
        """매도 시 포지션 업데이트. 수량이 0이 되면 평균가 리셋."""
        self.units = max(0.0, self.units - min(units, self.units))
        if self.units <= DUST:
            self.reset()

    def reset(self) -> None:
        """포지션 초기화."""
        self.units = 0.0
        self.avg_entry_price = 0.0


@dataclass(frozen=True)
class Trade:
    """시뮬레이션 거래 기록. 시간은 해당 캔들의 타임스탬프."""
    timestamp: datetime
    action: Action
    price: float
    amount: float          # 체결 수량
    pnl: float = 0.0       # 실현 손익 (매도 시에만)
    total_equity: float = 0.0  # 거래 직후 총 자산
    reason: str = ""


class Portfolio:
    """시뮬레이션 포트폴리오.

    BacktestEngine이 run() 호출마다 새로 생성하며, 저장하지 않는다.
    """

    def __init__(self, initial_capital: float, commission: float = 0.0):
        if initial_capital <= 0:
            raise ValueError(f"초기 자금은 0보다 커야 함: {initial_capital}")
        if not 0.0 <= commission < 1.0:
            raise ValueError(f"수수료율은 [0, 1) 범위여야 함: {commission}")
        self.initial_capital = initial_capital
        self.commission = commission
        self.capital = initial_capital               # 가용 현금
        self.position = Position()
        self.trade_history: list[Trade] = []
        self.winning_trades = 0
        self.losing_trades = 0
        self.peak_equity = initial_capital
        self.max_drawdown = 0.0

    def equity(self, price: float) -> float:
        """총 자산 (현금 + 평가액)."""
        return self.capital + self.position.market_value(price)

    def mark_to_market(self, price: float) -> float:
        """현재가로 평가하여 고점/최대낙폭 갱신. 현재 총 자산 반환."""
        current = self.equity(price)
        if current > self.peak_equity:
            self.peak_equity = current
        if self.peak_equity > 0:
            drawdown = (self.peak_equity - current) / self.peak_equity
            if drawdown > self.max_drawdown:
                self.max_drawdown = drawdown
        return current

    def execute_buy(
        self,
        position_pct: float,
        price: float,
        timestamp: datetime,
        reason: str = "",
    ) -> Trade | None:
        """현금의 position_pct만큼 매수. 체결 불가 시 None."""
        if self.capital <= 0 or position_pct <= 0 or price <= 0:
            return None

        spend = self.capital * min(position_pct, 1.0)
        units = spend * (1 - self.commission) / price
        if units <= 0:
            return None

        self.position.update_on_buy(units, price)
        self.capital = max(0.0, self.capital - spend)

        trade = Trade(
            timestamp=timestamp,
            action=Action.BUY,
            price=price,
            amount=units,
            total_equity=self.equity(price),
            reason=reason,
        )
        self.trade_history.append(trade)
        return trade

    def execute_sell(
        self,
        position_pct: float,
        price: float,
        timestamp: datetime,
        reason: str = "",
    ) -> Trade | None:
        """보유 수량의 position_pct만큼 매도. 보유 없으면 None."""
        if self.position.units <= 0 or position_pct <= 0:
            return None

        if position_pct >= 1.0:
            sell_units = self.position.units
        else:
            sell_units = self.position.units * position_pct
        net_value = sell_units * price * (1 - self.commission)
        pnl = net_value - sell_units * self.position.avg_entry_price

        self.capital += net_value
        self.position.update_on_sell(sell_units)

        if pnl > 0:
            self.winning_trades += 1
        else:
            self.losing_trades += 1

        trade = Trade(
            timestamp=timestamp,
            action=Action.SELL,
            price=price,
            amount=sell_units,
            pnl=pnl,
            total_equity=self.equity(price),
            reason=reason,
        )
        self.trade_history.append(trade)
        return trade

    def get_summary(self, price: float) -> dict[str, float]:
        """포트폴리오 요약."""
        return {
            "initial_capital": self.initial_capital,
            "capital": self.capital,
            "position_units": self.position.units,
            "avg_entry_price": self.position.avg_entry_price,
            "equity": self.equity(price),
            "peak_equity": self.peak_equity,
            "max_drawdown": self.max_drawdown,
            "num_trades": len(self.trade_history),
        }
