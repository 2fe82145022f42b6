"""
Shared fixtures: an in-memory watch client with scripted responses.
"""

import logging
import threading
import time

import pytest

from kvmanifest.common.config import ManifestConfig
from kvmanifest.common.exceptions import WatchError
from kvmanifest.manifest.snapshot import Entry
from kvmanifest.manifest.watch import FetchResult


def make_entries(prefix: str, values: dict[str, str], index: int = 1) -> list[Entry]:
    return [
        Entry(key=f"{prefix}/{key}", value=value.encode(), modify_index=index)
        for key, value in values.items()
    ]


class FakeWatchClient:
    """
    Scripted watch client.

    Each fetch pops the next scripted item: a FetchResult is returned, an
    exception is raised. Once the script runs out, the last returned index is
    repeated after a short pause so a live loop does not spin.
    """

    def __init__(self, script=None, idle_delay: float = 0.01):
        self.script = list(script or [])
        self.idle_delay = idle_delay
        self.calls: list[tuple[str, int, float]] = []
        self.closed = False
        self._last_index = 0
        self._lock = threading.Lock()

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.calls)

    def push(self, item) -> None:
        with self._lock:
            self.script.append(item)

    def fetch(self, prefix: str, cursor: int, max_wait: float) -> FetchResult:
        with self._lock:
            self.calls.append((prefix, cursor, max_wait))
            item = self.script.pop(0) if self.script else None

        if item is None:
            time.sleep(self.idle_delay)
            return FetchResult(entries=[], index=self._last_index)
        if isinstance(item, BaseException):
            raise item

        self._last_index = item.index
        return item

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def test_logger():
    """Plain propagating logger so caplog sees the records"""
    logger = logging.getLogger("kvmanifest.tests")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def config(test_logger):
    return ManifestConfig(key_prefix="hello", discovery_span=1.0, logger=test_logger)


@pytest.fixture
def watch_error():
    return WatchError("connection refused", prefix="hello")


def wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
