"""
=============================================================================
시그마플로우 (sigmaflow) - 암호화폐 시그널 & 리스크 관리 시뮬레이션
=============================================================================

[ 시스템 전체 구조 ]

    run_backtest.py (진입점)
         │
         ├── utils/config.py        ← config.yaml 설정 로드 + 환경 변수 오버라이드
         ├── utils/logger.py        ← 로깅
         │
         ├── strategies/            ← 매매 결정 생성 (Decision)
         │     ├── ma_cross_strategy.py
         │     ├── bollinger_rsi_strategy.py
         │     └── external_strategy.py   (외부 결정 소스 어댑터)
         │
         └── backtest/engine.py     ← 백테스트 실행 엔진
               │
               ├── data/portfolio.py    ← 현금/포지션/거래기록/낙폭
               └── backtest/metrics.py  ← 성과 지표 계산


[ 순수 계산 라이브러리 ]

    indicators/  ← SMA, EMA, MACD, 볼린저, ATR, RSI, 스토캐스틱 + DataFrame 주석
    risk/        ← RiskManager (검증/조정/사이징, 일일 손익 리셋)


[ 핵심 추상 클래스 (core/) - 모든 구현체의 부모 ]

    core/data_provider.py    → MarketDataSource  (시세)
    core/broker_api.py       → AccountSource / OrderSink (잔고 / 주문)
                               brokers/mock_broker.py::MockExchange (테스트/데모용)
    core/trading_strategy.py → TradingStrategy, Decision
    core/errors.py           → RiskViolation / EngineInputError 계층


[ 매매 사이클 (trading/task.py) ]

    1. MarketDataSource에서 캔들 조회 → 오름차순 정규화
    2. AccountSource에서 잔고 조회 → RiskManager 초기 자산 설정
    3. TradingStrategy가 Decision 생성
    4. RiskManager 검증 → 위반 시 조정 또는 HOLD
    5. amount 산출 후 OrderSink로 주문, 거래 기록
"""
