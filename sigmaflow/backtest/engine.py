"""
백테스팅 엔진 모듈.

[ 역할 ]
    과거 캔들 시리즈에 전략을 적용하여 가상 매매를 시뮬레이션하고 성과를 측정.
    입력이 같으면 결과도 항상 같다 (거래 시간 = 캔들 타임스탬프).

[ 실행 흐름 ]
    run() 호출 시:
        1. 캔들을 오름차순 DataFrame으로 정규화
        2. warmup_bars 인덱스부터 봉마다:
           → strategy.analyze(해당 봉까지의 이력, 현재 보유 수량)
           → None이면 건너뜀, BUY/SELL이면 portfolio에 반영 (종가 체결)
           → 봉 종가로 평가하여 고점/낙폭 갱신, 자산가치 기록
        3. metrics.calculate_metrics()로 BacktestResult 생성

[ 의존성 ]
    - core/trading_strategy.py::TradingStrategy (전략 인터페이스)
    - data/portfolio.py::Portfolio (현금/포지션/거래기록)
    - backtest/metrics.py::calculate_metrics() (성과 계산)

[ 호출하는 곳 ]
    - run_backtest.py (진입점)에서 생성 및 실행
"""

import logging
from typing import Any, Iterable

import pandas as pd

from sigmaflow.backtest.metrics import BacktestResult, calculate_metrics
from sigmaflow.core.data_provider import Candle, candles_to_frame, parse_timestamp
from sigmaflow.core.errors import EmptyInput
from sigmaflow.core.trading_strategy import Action, TradingStrategy
from sigmaflow.data.portfolio import Portfolio
from sigmaflow.utils.config import BacktestConfig


class BacktestEngine:
    """백테스팅 엔진. run()으로 시뮬레이션 실행.

    상태는 run() 안에서만 만들어지므로 인스턴스를 여러 입력에 재사용할 수 있다.
    """

    def __init__(
        self,
        strategy: TradingStrategy,
        initial_capital: float = 10_000.0,
        commission: float = 0.001,          # 매수/매도 수수료율
        warmup_bars: int = 30,              # 지표 계산용 최소 이력
        periods_per_year: int = 365,
        risk_free_rate: float = 0.0,
        logger: logging.Logger | None = None,
    ):
        if warmup_bars < 0:
            raise ValueError(f"warmup_bars는 0 이상이어야 함: {warmup_bars}")
        self.strategy = strategy
        self.initial_capital = initial_capital
        self.commission = commission
        self.warmup_bars = warmup_bars
        self.periods_per_year = periods_per_year
        self.risk_free_rate = risk_free_rate
        self.logger = logger or logging.getLogger("sigmaflow.backtest")

    @classmethod
    def from_config(
        cls,
        strategy: TradingStrategy,
        config: BacktestConfig,
        logger: logging.Logger | None = None,
    ) -> "BacktestEngine":
        return cls(
            strategy=strategy,
            initial_capital=config.initial_capital,
            commission=config.commission,
            warmup_bars=config.warmup_bars,
            periods_per_year=config.periods_per_year,
            risk_free_rate=config.risk_free_rate,
            logger=logger,
        )

    def run(self, candles: "Iterable[Candle] | pd.DataFrame") -> BacktestResult:
        """백테스트 실행.

        Args:
            candles: Candle 시퀀스 또는 OHLCV DataFrame (순서 무관)

        Returns:
            BacktestResult: 거래가 없어도 항상 반환

        Raises:
            EmptyInput: 캔들이 비어 있음
        """
        df = candles_to_frame(candles)
        if df.empty:
            raise EmptyInput("캔들 시리즈가 비어 있음")

        portfolio = Portfolio(self.initial_capital, self.commission)
        equity_curve: list[float] = []
        closes = df["close"].astype(float).tolist()

        self.logger.info(
            f"백테스트 시작: {self.strategy.name}, {len(df)}봉 "
            f"(워밍업 {self.warmup_bars}봉, 초기 자금 {self.initial_capital:,.2f})"
        )

        for i in range(self.warmup_bars, len(df)):
            window = df.iloc[:i + 1]
            price = closes[i]
            timestamp = parse_timestamp(df.at[i, "timestamp"])

            decision = self.strategy.analyze(window, portfolio.position.units)
            if decision is not None:
                trade = None
                if decision.action == Action.BUY:
                    trade = portfolio.execute_buy(decision.position_pct, price, timestamp, decision.reason)
                elif decision.action == Action.SELL:
                    trade = portfolio.execute_sell(decision.position_pct, price, timestamp, decision.reason)
                if trade is not None:
                    self.logger.debug(
                        f"[{timestamp:%Y-%m-%d}] {trade.action.value}: {trade.amount:.6f} @ {price:,.2f} "
                        f"(손익: {trade.pnl:,.2f}, {decision.reason})"
                    )

            equity_curve.append(portfolio.mark_to_market(price))

        bars_processed = max(0, len(df) - self.warmup_bars)
        result = calculate_metrics(
            portfolio=portfolio,
            equity_curve=equity_curve,
            final_price=closes[-1],
            bars_processed=bars_processed,
            periods_per_year=self.periods_per_year,
            risk_free_rate=self.risk_free_rate,
        )
        result.start_date = parse_timestamp(df.at[0, "timestamp"])
        result.end_date = parse_timestamp(df.at[len(df) - 1, "timestamp"])

        self.logger.info(
            f"백테스트 완료. 총 수익률: {result.total_return:.2%}, "
            f"거래 {result.total_trades}회, MDD {result.max_drawdown:.2%}"
        )
        return result

    def generate_report(self, result: BacktestResult) -> dict[str, Any]:
        """백테스트 리포트 (직렬화용 딕셔너리)."""
        metrics = result.to_dict()
        metrics.pop("trades")
        return {
            "strategy": self.strategy.name,
            "metrics": metrics,
            "trade_count": len(result.trades),
            "trades": [
                {
                    "timestamp": t.timestamp.isoformat(),
                    "action": t.action.value,
                    "price": t.price,
                    "amount": t.amount,
                    "pnl": t.pnl,
                    "total_equity": t.total_equity,
                    "reason": t.reason,
                }
                for t in result.trades
            ],
        }
