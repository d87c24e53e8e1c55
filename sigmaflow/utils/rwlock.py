"""
읽기/쓰기 잠금.

[ 역할 ]
    여러 읽기는 동시에 허용하고, 쓰기는 모든 읽기/쓰기를 배제한다.
    대기 중인 쓰기가 있으면 새 읽기는 기다린다 (쓰기 기아 방지).

[ 호출하는 곳 ]
    - risk/manager.py::RiskManager (조회는 read_locked, 변경은 write_locked)
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class ReadWriteLock:
    """공유(읽기)/배타(쓰기) 잠금. 재진입은 지원하지 않는다."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()
