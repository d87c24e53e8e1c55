from datetime import datetime, timezone

import pytest

from sigmaflow.core.trading_strategy import Action
from sigmaflow.data.portfolio import Portfolio, Position

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def test_buy_without_commission():
    portfolio = Portfolio(10_000)
    trade = portfolio.execute_buy(0.5, 100.0, NOW)
    assert trade.action == Action.BUY
    assert trade.amount == pytest.approx(50.0)
    assert trade.timestamp == NOW
    assert portfolio.capital == pytest.approx(5_000)
    assert portfolio.position.units == pytest.approx(50.0)
    assert portfolio.position.avg_entry_price == 100.0
    assert trade.total_equity == pytest.approx(10_000)


def test_buy_with_commission_reduces_units():
    portfolio = Portfolio(10_000, commission=0.001)
    trade = portfolio.execute_buy(1.0, 100.0, NOW)
    assert trade.amount == pytest.approx(10_000 * 0.999 / 100)
    assert portfolio.capital == 0.0


def test_avg_entry_price_weighted():
    portfolio = Portfolio(10_000)
    portfolio.execute_buy(0.5, 100.0, NOW)
    portfolio.execute_buy(1.0, 200.0, NOW)
    assert portfolio.position.units == pytest.approx(75.0)
    assert portfolio.position.avg_entry_price == pytest.approx(10_000 / 75)


def test_sell_all_realizes_pnl_and_resets():
    portfolio = Portfolio(10_000)
    portfolio.execute_buy(1.0, 100.0, NOW)
    trade = portfolio.execute_sell(1.0, 120.0, NOW)
    assert trade.pnl == pytest.approx(2_000)
    assert portfolio.capital == pytest.approx(12_000)
    assert portfolio.position.units == 0.0
    assert portfolio.position.avg_entry_price == 0.0
    assert portfolio.winning_trades == 1


def test_partial_sell_keeps_avg_price():
    portfolio = Portfolio(10_000)
    portfolio.execute_buy(1.0, 100.0, NOW)
    trade = portfolio.execute_sell(0.25, 80.0, NOW)
    assert trade.amount == pytest.approx(25.0)
    assert trade.pnl == pytest.approx(-500.0)
    assert portfolio.position.units == pytest.approx(75.0)
    assert portfolio.position.avg_entry_price == 100.0
    assert portfolio.losing_trades == 1


def test_breakeven_sell_counts_as_losing():
    portfolio = Portfolio(1_000)
    portfolio.execute_buy(1.0, 10.0, NOW)
    trade = portfolio.execute_sell(1.0, 10.0, NOW)
    assert trade.pnl == pytest.approx(0.0)
    assert portfolio.losing_trades == 1
    assert portfolio.winning_trades == 0


def test_unfillable_orders_return_none():
    portfolio = Portfolio(1_000)
    assert portfolio.execute_sell(1.0, 10.0, NOW) is None
    assert portfolio.execute_buy(0.0, 10.0, NOW) is None
    portfolio.execute_buy(1.0, 10.0, NOW)
    assert portfolio.execute_buy(1.0, 10.0, NOW) is None
    assert len(portfolio.trade_history) == 1


def test_mark_to_market_tracks_drawdown():
    portfolio = Portfolio(10_000)
    portfolio.execute_buy(1.0, 100.0, NOW)
    assert portfolio.mark_to_market(100.0) == pytest.approx(10_000)
    assert portfolio.mark_to_market(50.0) == pytest.approx(5_000)
    assert portfolio.max_drawdown == pytest.approx(0.5)
    portfolio.mark_to_market(120.0)
    assert portfolio.peak_equity == pytest.approx(12_000)
    portfolio.mark_to_market(90.0)
    assert portfolio.max_drawdown == pytest.approx(0.5)


@pytest.mark.parametrize("capital, commission", [(0, 0.0), (-1, 0.0), (100, 1.0), (100, -0.1)])
def test_invalid_construction(capital, commission):
    with pytest.raises(ValueError):
        Portfolio(capital, commission)


def test_position_oversell_clamps_to_zero():
    position = Position(units=1.0, avg_entry_price=50.0)
    position.update_on_sell(5.0)
    assert position.units == 0.0
    assert position.avg_entry_price == 0.0


def test_summary():
    portfolio = Portfolio(1_000)
    portfolio.execute_buy(0.5, 10.0, NOW)
    summary = portfolio.get_summary(20.0)
    assert summary["equity"] == pytest.approx(1_500)
    assert summary["num_trades"] == 1
