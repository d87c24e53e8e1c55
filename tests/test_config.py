import json

import pytest
import yaml

from sigmaflow.utils.config import Config


def test_defaults():
    config = Config()
    assert config.risk_limit.max_position_pct == 0.5
    assert config.risk_limit.max_daily_loss_pct == 0.05
    assert config.backtest.initial_capital == 10_000.0
    assert config.indicators.ma_periods == [5, 50, 200]
    assert config.trading.pair == "BTC-USDT"
    assert config.trading.candle_count == 231
    assert config.strategy.name == "ma_cross"


def test_from_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "risk_limit": {"max_position_pct": 0.3, "unknown_key": 1},
        "backtest": {"initial_capital": 5000, "warmup_bars": 10},
        "trading": {"pair": "ETH-USDT"},
        "strategy": {"name": "bollinger_rsi", "params": {"oversold": 25}},
        "log_level": "DEBUG",
    }), encoding="utf-8")

    config = Config.from_yaml(path)
    assert config.risk_limit.max_position_pct == 0.3
    assert config.risk_limit.max_daily_loss_pct == 0.05
    assert config.backtest.initial_capital == 5000
    assert config.backtest.warmup_bars == 10
    assert config.trading.pair == "ETH-USDT"
    assert config.strategy.name == "bollinger_rsi"
    assert config.strategy.params == {"oversold": 25}
    assert config.log_level == "DEBUG"


def test_strategy_params_without_params_key(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("strategy:\n  name: ma_cross\n  short_period: 3\n", encoding="utf-8")
    config = Config.from_yaml(path)
    assert config.strategy.params == {"short_period": 3}


def test_empty_yaml_uses_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")
    assert Config.from_yaml(path) == Config()


def test_from_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"risk_limit": {"max_daily_loss_pct": 0.1}}), encoding="utf-8")
    assert Config.from_json(path).risk_limit.max_daily_loss_pct == 0.1


def test_env_overrides():
    config = Config().apply_env_overrides({
        "RISK_MAX_POSITION_PCT": "0.25",
        "RISK_STOP_LOSS_ENABLED": "false",
        "TRADING_MAX_ORDER_SIZE": "500",
        "RISK_MAX_DAILY_LOSS_PCT": "",
        "LOG_LEVEL": "debug",
    })
    assert config.risk_limit.max_position_pct == 0.25
    assert config.risk_limit.stop_loss_enabled is False
    assert config.trading.max_order_size == 500.0
    assert config.risk_limit.max_daily_loss_pct == 0.05
    assert config.log_level == "DEBUG"


def test_env_override_bad_number():
    with pytest.raises(ValueError):
        Config().apply_env_overrides({"RISK_MAX_POSITION_PCT": "lots"})


def test_save_yaml(tmp_path):
    config = Config()
    config.strategy.params = {"short_period": 7}
    path = tmp_path / "out" / "config.yaml"
    config.save_yaml(path)
    assert Config.from_yaml(path) == config
