"""
로깅 모듈.

[ 역할 ]
    파일 + 콘솔 로거를 설정. 백테스트 진행, 리스크 위반, 주문 체결 등을 기록.

[ 로거 이름 규칙 ]
    루트: "sigmaflow"
    하위: "sigmaflow.backtest", "sigmaflow.risk", "sigmaflow.trading",
          "sigmaflow.broker", "sigmaflow.data", "sigmaflow.strategy"
    하위 로거는 핸들러 없이 루트로 전파되므로 setup_logger()는 루트에 한 번만 호출.

[ 로그 파일 위치 ]
    {log_dir}/{name}_{YYYYMMDD}.log (예: logs/sigmaflow_20240601.log)
    log_dir=None이면 파일 핸들러 없이 콘솔만.

[ 호출하는 곳 ]
    - run_backtest.py에서 setup_logger() 호출
    - 각 모듈은 logging.getLogger("sigmaflow.xxx")를 기본 로거로 사용 (생성자에서 주입 가능)
"""

import logging
import sys
from datetime import datetime
from pathlib import Path


def setup_logger(
    name: str = "sigmaflow",
    level: str = "INFO",
    log_dir: str | None = "logs",
    console: bool = True,
) -> logging.Logger:
    """로거 설정. 파일 핸들러(일별) + 콘솔 핸들러 등록.

    이미 핸들러가 있으면 레벨만 갱신하고 그대로 반환.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # 파일 핸들러
    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        today = datetime.now().strftime("%Y%m%d")
        file_handler = logging.FileHandler(
            log_path / f"{name}_{today}.log",
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # 콘솔 핸들러
    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
