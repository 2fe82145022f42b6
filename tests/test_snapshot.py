"""
Tests for the snapshot and its reader-writer lock.
"""

import threading
import time

from kvmanifest.manifest.snapshot import Entry, ReadWriteLock, Snapshot

from conftest import make_entries


def test_merge_and_lookup():
    snapshot = Snapshot()
    merged = snapshot.merge(make_entries("hello", {"a": "1", "b": "2"}))

    assert merged == 2
    assert len(snapshot) == 2
    present, entry = snapshot.lookup("hello/a")
    assert present
    assert entry.value == b"1"


def test_lookup_missing_key():
    snapshot = Snapshot()
    assert snapshot.lookup("hello/a") == (False, None)


def test_merge_is_additive():
    """Keys missing from a later merge stay visible."""
    snapshot = Snapshot()
    snapshot.merge(make_entries("hello", {"a": "1", "b": "2"}))
    snapshot.merge(make_entries("hello", {"a": "10"}, index=2))

    assert snapshot.lookup("hello/a")[1].value == b"10"
    assert snapshot.lookup("hello/b")[1].value == b"2"
    assert snapshot.keys() == ["hello/a", "hello/b"]


def test_merge_skips_none_entries():
    snapshot = Snapshot()
    merged = snapshot.merge([None, Entry(key="hello/a", value=b"1")])

    assert merged == 1
    assert "hello/a" in snapshot


def test_clear():
    snapshot = Snapshot()
    snapshot.merge(make_entries("hello", {"a": "1"}))
    snapshot.clear()

    assert len(snapshot) == 0
    assert snapshot.lookup("hello/a") == (False, None)


def test_merge_accepts_generator():
    snapshot = Snapshot()
    entries = (e for e in make_entries("hello", {"a": "1", "b": "2"}))
    assert snapshot.merge(entries) == 2


def test_readers_share_lock():
    lock = ReadWriteLock()
    inside = []
    barrier = threading.Barrier(3, timeout=2)

    def reader():
        with lock.read_locked():
            inside.append(1)
            # All three readers must be inside together to pass the barrier
            barrier.wait()

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(2)

    assert len(inside) == 3


def test_writer_excludes_readers():
    lock = ReadWriteLock()
    events = []
    lock.acquire_write()

    def reader():
        with lock.read_locked():
            events.append("read")

    t = threading.Thread(target=reader)
    t.start()
    time.sleep(0.05)
    assert events == []

    events.append("write-done")
    lock.release_write()
    t.join(2)

    assert events == ["write-done", "read"]


def test_waiting_writer_blocks_new_readers():
    lock = ReadWriteLock()
    order = []
    lock.acquire_read()

    def writer():
        with lock.write_locked():
            order.append("write")

    def late_reader():
        with lock.read_locked():
            order.append("late-read")

    w = threading.Thread(target=writer)
    w.start()
    time.sleep(0.05)
    r = threading.Thread(target=late_reader)
    r.start()
    time.sleep(0.05)
    assert order == []

    lock.release_read()
    w.join(2)
    r.join(2)

    assert order == ["write", "late-read"]


def test_concurrent_merge_and_lookup_never_sees_partial_cycle():
    """A merge of a, b in one cycle is observed either fully or not at all."""
    snapshot = Snapshot()
    snapshot.merge(make_entries("hello", {"a": "0", "b": "0"}))
    stop = threading.Event()
    mismatches = []

    def writer():
        n = 0
        while not stop.is_set():
            n += 1
            snapshot.merge(make_entries("hello", {"a": str(n), "b": str(n)}, index=n))

    def reader():
        while not stop.is_set():
            with snapshot._lock.read_locked():
                a = snapshot._entries["hello/a"].value
                b = snapshot._entries["hello/b"].value
            if a != b:
                mismatches.append((a, b))

    threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    time.sleep(0.2)
    stop.set()
    for t in threads:
        t.join(2)

    assert mismatches == []
