import math
from datetime import datetime, timezone

import pytest

from sigmaflow.backtest.metrics import BacktestResult, annualize, calculate_metrics, sharpe_ratio
from sigmaflow.data.portfolio import Portfolio

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_annualize_one_year():
    assert annualize(0.1, 365, 365) == pytest.approx(0.1)


def test_annualize_half_year_compounds():
    assert annualize(0.1, 182, 364) == pytest.approx(1.1 ** 2 - 1)


def test_annualize_no_bars():
    assert annualize(0.5, 0) == 0.0


def test_annualize_overflow_is_inf():
    assert annualize(10.0, 1, 100_000) == math.inf


def test_sharpe_constant_curve_is_zero():
    assert sharpe_ratio([100.0] * 10) == 0.0


def test_sharpe_too_short():
    assert sharpe_ratio([]) == 0.0
    assert sharpe_ratio([100.0]) == 0.0


def test_sharpe_sign():
    rising = [100.0, 101.0, 103.0, 104.0, 107.0, 108.0]
    falling = list(reversed(rising))
    assert sharpe_ratio(rising) > 0
    assert sharpe_ratio(falling) < 0


def test_calculate_metrics():
    portfolio = Portfolio(1_000)
    portfolio.execute_buy(1.0, 10.0, NOW)
    portfolio.execute_sell(0.5, 12.0, NOW)
    portfolio.execute_sell(1.0, 9.0, NOW)

    result = calculate_metrics(portfolio, [1_000.0, 1_100.0, 950.0], final_price=9.0, bars_processed=3)
    assert result.initial_capital == 1_000
    assert result.final_capital == pytest.approx(1_050.0)
    assert result.total_return == pytest.approx(0.05)
    assert result.total_trades == 3
    assert result.winning_trades == 1
    assert result.losing_trades == 1
    assert result.win_rate == pytest.approx(1 / 3)
    assert result.bars_processed == 3
    assert len(result.trades) == 3


def test_calculate_metrics_no_trades():
    portfolio = Portfolio(1_000)
    result = calculate_metrics(portfolio, [], final_price=10.0, bars_processed=0)
    assert result.final_capital == 1_000
    assert result.total_return == 0.0
    assert result.annualized_return == 0.0
    assert result.win_rate == 0.0
    assert result.sharpe_ratio == 0.0


def test_report_contains_metrics():
    result = BacktestResult(
        initial_capital=10_000,
        final_capital=11_000,
        total_return=0.1,
        max_drawdown=0.05,
        total_trades=4,
        start_date=NOW,
        end_date=datetime(2024, 6, 1, tzinfo=timezone.utc),
    )
    report = result.report()
    assert "10.00%" in report
    assert "5.00%" in report
    assert "11,000.00" in report
    assert "2024-01-01 ~ 2024-06-01" in report
