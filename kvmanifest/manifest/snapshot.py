"""
KV Snapshot

In-memory view of every key known under the watched prefix.
Readers share a read lock; the discovery loop takes the write lock only
while merging one watch cycle's entries.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterable, Iterator


@dataclass(frozen=True)
class Entry:
    """Last known value of a single key"""
    key: str
    value: bytes = b""
    modify_index: int = 0
    create_index: int = 0
    lock_index: int = 0
    flags: int = 0
    session: str | None = None


class ReadWriteLock:
    """
    Reader-writer lock with writer preference.

    Any number of readers may hold the lock together. A waiting writer
    blocks new readers so merges are not starved by a steady read load.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
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


class Snapshot:
    """
    Mapping of fully-qualified key to Entry.

    Merges are additive: keys missing from a later fetch stay visible.
    """

    def __init__(self):
        self._lock = ReadWriteLock()
        self._entries: dict[str, Entry | None] = {}

    def merge(self, entries: Iterable[Entry | None]) -> int:
        """
        Overwrite each returned key in a single write-locked step.

        Returns:
            Number of entries merged
        """
        # Materialize before locking so a lazy iterable never runs under the lock
        staged = {entry.key: entry for entry in entries if entry is not None}

        with self._lock.write_locked():
            self._entries.update(staged)

        return len(staged)

    def lookup(self, key: str) -> tuple[bool, Entry | None]:
        """
        Look up a fully-qualified key under the read lock.

        Returns:
            (present, entry). entry may be None even when present.
        """
        with self._lock.read_locked():
            if key not in self._entries:
                return False, None
            return True, self._entries[key]

    def clear(self) -> None:
        with self._lock.write_locked():
            self._entries = {}

    def keys(self) -> list[str]:
        with self._lock.read_locked():
            return sorted(self._entries)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock.read_locked():
            return key in self._entries
