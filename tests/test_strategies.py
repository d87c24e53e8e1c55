import pytest

from sigmaflow.core.data_provider import candles_to_frame
from sigmaflow.core.errors import DecisionParseError
from sigmaflow.core.trading_strategy import Action, Decision
from sigmaflow.strategies import STRATEGY_REGISTRY, create_strategy, list_strategies
from sigmaflow.strategies.external_strategy import (
    ExternalDecisionStrategy,
    coerce_decision,
    parse_decision_text,
)

from conftest import make_candles


def frame(closes, spread=1.0):
    return candles_to_frame(make_candles(closes, spread=spread))


# ─── 레지스트리 ──────────────────────────────────────────────────────────────

def test_registry_contains_rule_strategies():
    assert "ma_cross" in list_strategies()
    assert "bollinger_rsi" in list_strategies()
    assert "external" not in STRATEGY_REGISTRY


def test_create_unknown_strategy():
    with pytest.raises(ValueError):
        create_strategy("does_not_exist")


def test_params_override_defaults():
    strategy = create_strategy("ma_cross", {"short_period": 3})
    assert strategy.short_period == 3
    assert strategy.long_period == 20
    assert strategy.min_history == 20


# ─── ma_cross ────────────────────────────────────────────────────────────────

def test_ma_cross_insufficient_history():
    strategy = create_strategy("ma_cross")
    assert strategy.analyze(frame([100.0] * 10), 0.0) is None


def test_ma_cross_golden_cross_buys_when_flat():
    strategy = create_strategy("ma_cross")
    decision = strategy.analyze(frame([100 + i for i in range(30)]), 0.0)
    assert decision.action == Action.BUY
    assert decision.position_pct == 1.0


def test_ma_cross_holds_when_already_long():
    strategy = create_strategy("ma_cross")
    decision = strategy.analyze(frame([100 + i for i in range(30)]), 5.0)
    assert decision.action == Action.HOLD


def test_ma_cross_death_cross_sells_when_holding():
    strategy = create_strategy("ma_cross")
    decision = strategy.analyze(frame([200 - i for i in range(30)]), 5.0)
    assert decision.action == Action.SELL
    assert decision.position_pct == 1.0


def test_ma_cross_death_cross_holds_when_flat():
    strategy = create_strategy("ma_cross")
    assert strategy.analyze(frame([200 - i for i in range(30)]), 0.0).action == Action.HOLD


def test_ma_cross_rejects_bad_periods():
    with pytest.raises(ValueError):
        create_strategy("ma_cross", {"short_period": 20, "long_period": 10})


# ─── bollinger_rsi ───────────────────────────────────────────────────────────

def test_bollinger_rsi_insufficient_history():
    strategy = create_strategy("bollinger_rsi")
    assert strategy.analyze(frame([100.0] * 10), 0.0) is None


def test_bollinger_rsi_buys_on_oversold_breakdown():
    closes = [150 - i for i in range(39)] + [90.0]
    strategy = create_strategy("bollinger_rsi")
    decision = strategy.analyze(frame(closes), 0.0)
    assert decision.action == Action.BUY
    assert decision.position_pct == 0.5
    assert 0 < decision.stop_loss_price < 90.0 < decision.take_profit_price


def test_bollinger_rsi_sells_on_overbought():
    closes = [100 + i for i in range(39)] + [160.0]
    strategy = create_strategy("bollinger_rsi")
    decision = strategy.analyze(frame(closes), 1.0)
    assert decision.action == Action.SELL
    assert decision.position_pct == 1.0


def test_bollinger_rsi_holds_in_range():
    closes = [100 + (1 if i % 2 else -1) for i in range(40)]
    strategy = create_strategy("bollinger_rsi")
    assert strategy.analyze(frame(closes), 0.0).action == Action.HOLD


def test_bollinger_rsi_rejects_bad_thresholds():
    with pytest.raises(ValueError):
        create_strategy("bollinger_rsi", {"oversold": 80, "overbought": 20})


# ─── 외부 결정 ───────────────────────────────────────────────────────────────

def test_parse_plain_json():
    decision = parse_decision_text('{"action": "BUY", "position_pct": 0.3, "reason": "trend"}')
    assert decision.action == Action.BUY
    assert decision.position_pct == 0.3
    assert decision.reason == "trend"


def test_parse_fenced_json_with_alias():
    text = '```json\n{"action": "sell", "position_pct": 1, "stop_loss_price": 90, "take_profit_target": 120}\n```'
    decision = parse_decision_text(text)
    assert decision.action == Action.SELL
    assert decision.stop_loss_price == 90.0
    assert decision.take_profit_price == 120.0


def test_parse_leading_json_tag():
    assert parse_decision_text('json {"action": "HOLD"}').is_hold


@pytest.mark.parametrize("text", [
    "",
    "not json",
    "[1, 2, 3]",
    '{"position_pct": 0.5}',
    '{"action": "SHORT"}',
    '{"action": "BUY", "position_pct": 1.5}',
])
def test_parse_failures(text):
    with pytest.raises(DecisionParseError):
        parse_decision_text(text)


def test_coerce_decision_types():
    decision = Decision(Action.HOLD)
    assert coerce_decision(decision) is decision
    assert coerce_decision(None) is None
    assert coerce_decision({"action": "BUY", "position_pct": 0.1}).action == Action.BUY
    with pytest.raises(DecisionParseError):
        coerce_decision(42)


def test_external_strategy_passes_window_and_position():
    seen = []

    def source(window, position):
        seen.append((len(window), position))
        return {"action": "BUY", "position_pct": 0.2}

    strategy = ExternalDecisionStrategy(source, min_history=5)
    assert strategy.analyze(frame([1.0] * 4), 0.0) is None
    decision = strategy.analyze(frame([1.0] * 6), 2.5)
    assert decision.action == Action.BUY
    assert seen == [(6, 2.5)]


def test_external_strategy_error_modes():
    strict = ExternalDecisionStrategy(lambda window, position: "garbage")
    with pytest.raises(DecisionParseError):
        strict.analyze(frame([1.0]), 0.0)

    lenient = ExternalDecisionStrategy(lambda window, position: "garbage", on_error="hold")
    assert lenient.analyze(frame([1.0]), 0.0).is_hold

    with pytest.raises(ValueError):
        ExternalDecisionStrategy(lambda window, position: None, on_error="ignore")
