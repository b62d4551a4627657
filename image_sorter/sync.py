"""
Synchronization primitives used by the shared caches and statistics.
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class AtomicCounter:
    """
    Integer counter safe to increment from many threads.

    Each counter owns its own lock, so increments on different counters
    never contend with each other.
    """

    def __init__(self, initial: int = 0):
        self._value = initial
        self._lock = threading.Lock()

    def increment(self, amount: int = 1) -> int:
        with self._lock:
            self._value += amount
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def __repr__(self) -> str:
        return f"AtomicCounter({self.value})"


class ReadWriteLock:
    """
    Lock allowing many concurrent readers or a single writer.

    Waiting writers take priority: new readers queue behind them. The lock
    is not reentrant.

    Usage:
        with lock.read_locked():
            ...
        with lock.write_locked():
            ...
    """

    def __init__(self):
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._condition:
            while self._writer or self._writers_waiting:
                self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if self._readers == 0:
                    self._condition.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._condition:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._condition.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._condition:
                self._writer = False
                self._condition.notify_all()
