"""
설정 관리 모듈.

[ 역할 ]
    config.yaml (또는 .json) 파일을 파싱하여 Config 객체로 변환.
    리스크 한도, 백테스트, 지표, 거래, 전략, 로깅 설정을 통합 관리.
    운영 환경에서는 환경 변수로 일부 값을 덮어쓸 수 있다 (apply_env_overrides).

[ 설정 파일 구조 (config.yaml) ]
    risk_limit:       → RiskLimitConfig (리스크 한도)
    backtest:         → BacktestConfig (백테스트 파라미터)
    indicators:       → IndicatorConfig (지표 기간)
    trading:          → TradingConfig (거래쌍, 주문 크기 한도)
    strategy:         → StrategyConfig (전략 이름 + 파라미터)
    log_level:        → "INFO" / "DEBUG"
    log_dir:          → 로그 디렉토리 경로

[ 호출하는 곳 ]
    - run_backtest.py에서 Config.from_yaml()로 로드
    - risk/manager.py::RiskManager 생성 시 config.risk_limit 사용
    - backtest/engine.py::BacktestEngine 생성 시 config.backtest 사용
    - indicators/indicator_set.py에서 config.indicators 사용
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml


@dataclass
class RiskLimitConfig:
    """리스크 한도. config.yaml의 risk_limit 섹션에 대응."""
    max_position_pct: float = 0.5       # 1회 결정의 최대 포지션 비율
    max_daily_loss_pct: float = 0.05    # 초기 자산 대비 일일 최대 손실 비율
    stop_loss_enabled: bool = True
    take_profit_enabled: bool = True
    risk_per_trade: float = 0.02        # 포지션 사이징 시 1회 거래 위험 비율


@dataclass
class BacktestConfig:
    """백테스트 설정. config.yaml의 backtest 섹션에 대응."""
    initial_capital: float = 10_000.0
    commission: float = 0.001           # 매수/매도 수수료율 (0.1%)
    warmup_bars: int = 30               # 지표 계산용 최소 이력
    periods_per_year: int = 365         # 1봉 = 1일 가정 (암호화폐는 휴장 없음)
    risk_free_rate: float = 0.0         # 샤프 비율용 연 무위험 수익률


@dataclass
class IndicatorConfig:
    """지표 기간 설정. config.yaml의 indicators 섹션에 대응."""
    ma_periods: list[int] = field(default_factory=lambda: [5, 50, 200])
    bollinger_period: int = 20
    bollinger_k: float = 2.0
    rsi_period: int = 14
    macd_fast: int = 12
    macd_slow: int = 26
    macd_signal: int = 9
    atr_period: int = 14
    stochastic_k: int = 14
    stochastic_d: int = 3


@dataclass
class TradingConfig:
    """거래 설정. config.yaml의 trading 섹션에 대응."""
    pair: str = "BTC-USDT"
    candle_count: int = 231             # 조회할 캔들 수 (MA200 + 출력 30개)
    output_count: int = 30              # 결정 소스에 넘길 최근 행 수
    min_order_size: float = 10.0
    max_order_size: float = 10_000.0


@dataclass
class StrategyConfig:
    """전략 설정. config.yaml의 strategy 섹션에 대응.

    전략별 파라미터는 params dict에 자유롭게 넣는다.
    각 전략 클래스의 DEFAULT_PARAMS가 기본값 역할을 하므로,
    여기서는 오버라이드할 값만 지정하면 된다.
    """
    name: str = "ma_cross"
    params: dict[str, Any] = field(default_factory=dict)


# 환경 변수 → (섹션, 필드)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "RISK_MAX_POSITION_PCT": ("risk_limit", "max_position_pct"),
    "RISK_MAX_DAILY_LOSS_PCT": ("risk_limit", "max_daily_loss_pct"),
    "RISK_STOP_LOSS_ENABLED": ("risk_limit", "stop_loss_enabled"),
    "RISK_TAKE_PROFIT_ENABLED": ("risk_limit", "take_profit_enabled"),
    "TRADING_MIN_ORDER_SIZE": ("trading", "min_order_size"),
    "TRADING_MAX_ORDER_SIZE": ("trading", "max_order_size"),
}


def _coerce(raw: str, current: Any) -> Any:
    """환경 변수 문자열을 기존 값의 타입으로 변환."""
    if isinstance(current, bool):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(current, int):
        return int(raw)
    if isinstance(current, float):
        return float(raw)
    return raw


def _section(cls: type, data: Mapping[str, Any] | None):
    """알 수 없는 키는 무시하고 dataclass 생성."""
    data = data or {}
    return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class Config:
    """전체 설정. from_yaml() 또는 from_json()으로 파일에서 로드."""
    risk_limit: RiskLimitConfig = field(default_factory=RiskLimitConfig)
    backtest: BacktestConfig = field(default_factory=BacktestConfig)
    indicators: IndicatorConfig = field(default_factory=IndicatorConfig)
    trading: TradingConfig = field(default_factory=TradingConfig)
    strategy: StrategyConfig = field(default_factory=StrategyConfig)
    log_level: str = "INFO"
    log_dir: str = "logs"

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """YAML 파일에서 설정 로드."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return cls._from_dict(data or {})

    @classmethod
    def from_json(cls, path: str | Path) -> "Config":
        """JSON 파일에서 설정 로드."""
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls._from_dict(data or {})

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Config":
        """딕셔너리에서 Config 생성."""
        strategy_data = data.get("strategy", {}) or {}

        # params가 명시적으로 있으면 그것을 사용, 없으면 name 외 나머지를 params로
        if "params" in strategy_data:
            strategy_params = dict(strategy_data["params"] or {})
        else:
            strategy_params = {k: v for k, v in strategy_data.items() if k != "name"}
        strategy = StrategyConfig(
            name=strategy_data.get("name", "ma_cross"),
            params=strategy_params,
        )

        return cls(
            risk_limit=_section(RiskLimitConfig, data.get("risk_limit")),
            backtest=_section(BacktestConfig, data.get("backtest")),
            indicators=_section(IndicatorConfig, data.get("indicators")),
            trading=_section(TradingConfig, data.get("trading")),
            strategy=strategy,
            log_level=data.get("log_level", "INFO"),
            log_dir=data.get("log_dir", "logs"),
        )

    def apply_env_overrides(self, environ: Mapping[str, str] | None = None) -> "Config":
        """환경 변수 값으로 설정 덮어쓰기. 빈 값은 무시."""
        environ = os.environ if environ is None else environ
        for env_name, (section_name, field_name) in ENV_OVERRIDES.items():
            raw = environ.get(env_name)
            if not raw:
                continue
            section = getattr(self, section_name)
            setattr(section, field_name, _coerce(raw, getattr(section, field_name)))
        if environ.get("LOG_LEVEL"):
            self.log_level = environ["LOG_LEVEL"].upper()
        return self

    def to_dict(self) -> dict[str, Any]:
        """딕셔너리로 변환."""
        return asdict(self)

    def save_yaml(self, path: str | Path) -> None:
        """YAML 파일로 저장."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.to_dict(), f, allow_unicode=True, default_flow_style=False)
