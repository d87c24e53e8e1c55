"""
백테스트 실행 스크립트 (시스템 진입점).

[ 사용법 ]
    # 기본 실행 (config.yaml의 전략, 샘플 데이터)
    python run_backtest.py

    # 전략 지정
    python run_backtest.py --strategy ma_cross
    python run_backtest.py --strategy bollinger_rsi

    # 파라미터 오버라이드
    python run_backtest.py --strategy ma_cross -p short_period=10 -p long_period=50

    # CSV 캔들 사용 (columns: timestamp|date, open, high, low, close, volume)
    python run_backtest.py --csv data/btc_usdt_1d.csv

    # 샘플 봉 수 지정
    python run_backtest.py --sample --bars 1000

    # 여러 전략 비교
    python run_backtest.py --compare ma_cross bollinger_rsi

    # 등록된 전략 목록 확인
    python run_backtest.py --list
"""

import argparse
import json
from pathlib import Path

import numpy as np
import pandas as pd

from sigmaflow.backtest.engine import BacktestEngine
from sigmaflow.backtest.metrics import BacktestResult
from sigmaflow.core.data_provider import candles_to_frame
from sigmaflow.strategies import create_strategy, list_strategies
from sigmaflow.utils.config import Config
from sigmaflow.utils.logger import setup_logger


def generate_sample_data(
    bars: int = 500,
    start: str = "2023-01-01",
    initial_price: float = 30_000.0,
    volatility: float = 0.03,
    seed: int = 42,
) -> pd.DataFrame:
    """백테스트용 샘플 일봉 데이터 생성 (24시간 시장이므로 매일 봉)."""
    rng = np.random.default_rng(seed)
    timestamps = pd.date_range(start=start, periods=bars, freq="D", tz="UTC")

    returns = rng.normal(0.0005, volatility, bars)
    closes = initial_price * np.cumprod(1 + returns)
    opens = np.concatenate([[initial_price], closes[:-1]])
    highs = np.maximum(opens, closes) * (1 + np.abs(rng.normal(0, 0.01, bars)))
    lows = np.minimum(opens, closes) * (1 - np.abs(rng.normal(0, 0.01, bars)))
    volumes = rng.lognormal(8, 1, bars)

    return pd.DataFrame({
        "timestamp": timestamps,
        "open": opens.round(2),
        "high": highs.round(2),
        "low": lows.round(2),
        "close": closes.round(2),
        "volume": volumes.round(4),
    })


def parse_param(param_str: str) -> tuple[str, object]:
    """'key=value' 문자열을 파싱하여 (key, value) 반환. 숫자면 자동 변환."""
    key, _, value = param_str.partition("=")
    key = key.strip()
    value = value.strip()

    # 숫자 자동 변환
    try:
        if "." in value:
            return key, float(value)
        return key, int(value)
    except ValueError:
        # bool 변환
        if value.lower() in ("true", "yes"):
            return key, True
        if value.lower() in ("false", "no"):
            return key, False
        return key, value


def load_data(csv_path: str | None, bars: int) -> pd.DataFrame:
    """캔들 데이터 로드. csv_path가 없으면 샘플 생성."""
    if csv_path:
        print(f"CSV 로드 중: {csv_path}")
        df = candles_to_frame(pd.read_csv(csv_path))
    else:
        print("샘플 데이터 생성 중...")
        df = generate_sample_data(bars=bars)
    print(f"  {len(df)}봉 데이터")
    return df


def run_single(config: Config, strategy_name: str, strategy_params: dict, data: pd.DataFrame) -> tuple[BacktestEngine, BacktestResult]:
    """단일 전략 백테스트 실행."""
    strategy = create_strategy(strategy_name, params=strategy_params)
    engine = BacktestEngine.from_config(strategy, config.backtest)
    return engine, engine.run(data)


def print_single_result(strategy_name: str, result: BacktestResult):
    """단일 전략 결과 출력."""
    print(f"\n[전략: {strategy_name}]")
    print(result.report())

    sells = [t for t in result.trades if t.action.value == "SELL"]
    if sells:
        print("\n최근 매도 거래 (최대 5건):")
        for t in sells[-5:]:
            pnl_str = f"+{t.pnl:,.2f}" if t.pnl > 0 else f"{t.pnl:,.2f}"
            print(f"  [{t.timestamp:%Y-%m-%d}] {t.amount:.6f} @ {t.price:,.2f} -> {pnl_str}")


def print_comparison(results: dict[str, BacktestResult]):
    """여러 전략 비교 결과 출력."""
    names = list(results.keys())
    col_width = max(14, max(len(n) for n in names) + 2)

    print(f"\n{'=' * (20 + col_width * len(names))}")
    print("전략 비교 결과")
    print(f"{'=' * (20 + col_width * len(names))}")

    header = f"{'':>20}" + "".join(f"{n:>{col_width}}" for n in names)
    print(header)
    print("-" * len(header))

    rows = [
        ("총 수익률", lambda r: f"{r.total_return * 100:.2f}%"),
        ("연환산 수익률", lambda r: f"{r.annualized_return * 100:.2f}%"),
        ("샤프 비율", lambda r: f"{r.sharpe_ratio:.2f}"),
        ("최대 낙폭(MDD)", lambda r: f"{r.max_drawdown * 100:.2f}%"),
        ("총 거래 횟수", lambda r: f"{r.total_trades}"),
        ("승률", lambda r: f"{r.win_rate * 100:.1f}%"),
    ]
    for label, fmt in rows:
        print(f"{label:>20}" + "".join(f"{fmt(results[n]):>{col_width}}" for n in names))

    print(f"{'=' * (20 + col_width * len(names))}")


def main():
    parser = argparse.ArgumentParser(description="암호화폐 백테스트 실행")
    parser.add_argument("--config", type=str, default="config.yaml", help="설정 파일 경로")
    parser.add_argument("--strategy", type=str, default=None, help="전략 이름 (config.yaml 대신 지정)")
    parser.add_argument("-p", "--param", action="append", default=[], help="파라미터 오버라이드 (예: -p short_period=10)")
    parser.add_argument("--sample", action="store_true", help="샘플 데이터로 테스트 (기본값)")
    parser.add_argument("--csv", type=str, default=None, metavar="PATH", help="캔들 CSV 파일")
    parser.add_argument("--bars", type=int, default=500, help="샘플 데이터 봉 수")
    parser.add_argument("--compare", nargs="+", metavar="STRATEGY", help="여러 전략 비교 (예: --compare ma_cross bollinger_rsi)")
    parser.add_argument("--json", type=str, default=None, metavar="PATH", help="리포트를 JSON으로 저장")
    parser.add_argument("--list", action="store_true", help="등록된 전략 목록 출력")
    args = parser.parse_args()

    # 전략 목록 출력
    if args.list:
        print("등록된 전략:")
        for name in list_strategies():
            print(f"  - {name}")
        return

    # 설정 로드
    config_path = Path(args.config)
    if config_path.exists():
        config = Config.from_yaml(config_path)
    else:
        print(f"설정 파일 없음: {config_path}, 기본값 사용")
        config = Config()
    config.apply_env_overrides()

    setup_logger(level=config.log_level, log_dir=config.log_dir)

    # --sample과 --csv를 함께 주면 샘플 우선
    data = load_data(None if args.sample else args.csv, args.bars)

    # ─── 비교 모드 ───────────────────────────────────────────────────────
    if args.compare:
        print(f"\n{len(args.compare)}개 전략 비교 실행...")
        results = {}
        for name in args.compare:
            print(f"\n--- {name} 실행 중 ---")
            _, results[name] = run_single(config, name, config.strategy.params, data)
        print_comparison(results)
        return

    # ─── 단일 실행 모드 ─────────────────────────────────────────────────
    strategy_name = args.strategy or config.strategy.name
    strategy_params = dict(config.strategy.params)

    # CLI 파라미터 오버라이드
    for p in args.param:
        key, value = parse_param(p)
        strategy_params[key] = value

    print(f"\n전략: {strategy_name}")
    if args.param:
        print(f"파라미터 오버라이드: {dict(parse_param(p) for p in args.param)}")

    engine, result = run_single(config, strategy_name, strategy_params, data)
    print_single_result(strategy_name, result)

    if args.json:
        Path(args.json).write_text(
            json.dumps(engine.generate_report(result), ensure_ascii=False, indent=2, default=str),
            encoding="utf-8",
        )
        print(f"\n리포트 저장: {args.json}")


if __name__ == "__main__":
    main()
