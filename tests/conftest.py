from datetime import datetime, timedelta, timezone

import pytest

from sigmaflow.core.data_provider import Candle
from sigmaflow.core.trading_strategy import Decision, TradingStrategy


START = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_candles(closes, start=START, spread=1.0, step=timedelta(days=1)):
    """종가 리스트로 일봉 캔들 생성 (고가/저가 = 종가 ± spread)."""
    return [
        Candle(
            timestamp=start + step * i,
            open=float(c),
            high=float(c) + spread,
            low=float(c) - spread,
            close=float(c),
            volume=100.0,
        )
        for i, c in enumerate(closes)
    ]


class FakeClock:
    """주입 가능한 시계. now를 바꿔 날짜 경계를 재현."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class ScriptedStrategy(TradingStrategy):
    """봉 인덱스(윈도우 길이 - 1) → Decision 매핑대로 결정하는 테스트 전략."""

    def __init__(self, script: dict[int, Decision] | None = None, default: Decision | None = None):
        super().__init__(name="scripted")
        self.script = script or {}
        self.default = default
        self.calls: list[tuple[int, float]] = []

    def analyze(self, market_data, position):
        index = len(market_data) - 1
        self.calls.append((len(market_data), position))
        return self.script.get(index, self.default)


@pytest.fixture
def candle_factory():
    return make_candles


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def rising_candles():
    return make_candles([100 + i for i in range(60)])


@pytest.fixture
def falling_candles():
    return make_candles([200 - i for i in range(60)])
