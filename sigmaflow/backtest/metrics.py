"""
백테스트 성과 지표 계산 모듈.

[ 역할 ]
    시뮬레이션 결과(포트폴리오 + 봉별 자산가치)를 받아 BacktestResult를 만든다.
    calculate_metrics() 함수가 핵심.

[ 계산하는 지표 ]
    - 총 수익률 / 연환산 수익률 (1봉 = 1일 가정)
    - MDD (최대 낙폭) - 포트폴리오가 봉마다 추적한 값
    - 승률, 수익/손실 거래 수
    - 샤프 비율 (봉별 자산 수익률 기반)

[ 단위 ]
    수익률/낙폭/승률은 모두 비율(0.1 = 10%). report()에서만 %로 표시.

[ 호출하는 곳 ]
    - backtest/engine.py::BacktestEngine.run() 완료 시 호출
"""

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any

import numpy as np

from sigmaflow.data.portfolio import Portfolio, Trade


@dataclass
class BacktestResult:
    """백테스트 결과. report()로 포맷된 리포트 출력 가능."""
    initial_capital: float = 0.0
    final_capital: float = 0.0
    total_return: float = 0.0         # 총 수익률
    annualized_return: float = 0.0    # 연환산 수익률
    max_drawdown: float = 0.0         # 최대 낙폭 MDD
    win_rate: float = 0.0             # 수익 거래 / 전체 거래
    total_trades: int = 0             # 매수 + 매도 체결 횟수
    winning_trades: int = 0
    losing_trades: int = 0
    sharpe_ratio: float = 0.0
    bars_processed: int = 0
    start_date: datetime | None = None
    end_date: datetime | None = None
    trades: list[Trade] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리 변환."""
        return asdict(self)

    def report(self) -> str:
        """성과 요약 문자열."""
        period = ""
        if self.start_date and self.end_date:
            period = f"{self.start_date:%Y-%m-%d} ~ {self.end_date:%Y-%m-%d}"
        lines = [
            "=" * 50,
            "백테스트 성과 리포트",
            "=" * 50,
            f"기간:            {period:>20}",
            f"초기 자금:       {self.initial_capital:>14,.2f}",
            f"최종 자금:       {self.final_capital:>14,.2f}",
            f"총 수익률:       {self.total_return * 100:>10.2f}%",
            f"연환산 수익률:    {self.annualized_return * 100:>10.2f}%",
            f"최대 낙폭(MDD):  {self.max_drawdown * 100:>10.2f}%",
            "-" * 50,
            f"총 거래 횟수:    {self.total_trades:>10d}",
            f"수익 거래:       {self.winning_trades:>10d}",
            f"손실 거래:       {self.losing_trades:>10d}",
            f"승률:            {self.win_rate * 100:>10.2f}%",
            "-" * 50,
            f"샤프 비율:       {self.sharpe_ratio:>10.2f}",
            "=" * 50,
        ]
        return "\n".join(lines)


def annualize(total_return: float, bars: int, periods_per_year: int = 365) -> float:
    """(1 + 총수익률)^(연간 봉 수 / 처리 봉 수) - 1. 처리 봉이 없으면 0."""
    if bars <= 0:
        return 0.0
    try:
        return (1 + total_return) ** (periods_per_year / bars) - 1
    except OverflowError:
        return math.inf


def sharpe_ratio(
    equity_curve: list[float],
    periods_per_year: int = 365,
    risk_free_rate: float = 0.0,
) -> float:
    """봉별 수익률로 샤프 비율 계산. 샤프 = (평균 초과수익 / 표준편차) * sqrt(연간 봉 수)."""
    values = np.asarray(equity_curve, dtype=float)
    if len(values) < 2:
        return 0.0
    prev = values[:-1]
    valid = prev > 0
    if not valid.any():
        return 0.0
    returns = (values[1:][valid] - prev[valid]) / prev[valid]
    excess = returns - risk_free_rate / periods_per_year
    std = float(np.std(excess))
    if std <= 0:
        return 0.0
    return float(np.mean(excess) / std * np.sqrt(periods_per_year))


def calculate_metrics(
    portfolio: Portfolio,
    equity_curve: list[float],
    final_price: float,
    bars_processed: int,
    periods_per_year: int = 365,
    risk_free_rate: float = 0.0,
) -> BacktestResult:
    """성과 지표 계산. engine.py에서 백테스트 완료 후 호출됨.

    Args:
        portfolio: 시뮬레이션이 끝난 포트폴리오
        equity_curve: 처리한 봉마다의 총 자산
        final_price: 마지막 캔들 종가
        bars_processed: 처리한 봉 수 (연환산 기준 일수)
    """
    result = BacktestResult(initial_capital=portfolio.initial_capital)

    result.final_capital = portfolio.capital + portfolio.position.units * final_price
    result.total_return = (result.final_capital - result.initial_capital) / result.initial_capital
    result.annualized_return = annualize(result.total_return, bars_processed, periods_per_year)
    result.max_drawdown = portfolio.max_drawdown
    result.bars_processed = bars_processed

    result.trades = list(portfolio.trade_history)
    result.total_trades = len(result.trades)
    result.winning_trades = portfolio.winning_trades
    result.losing_trades = portfolio.losing_trades
    if result.total_trades > 0:
        result.win_rate = result.winning_trades / result.total_trades

    result.sharpe_ratio = sharpe_ratio(equity_curve, periods_per_year, risk_free_rate)
    return result
