"""Tests for per-path locking."""

import threading
import time

import pytest

from review_threads.locking import LockTimeout, PathLocks


def test_same_path_returns_same_lock():
    """Test that one path always maps to one lock."""
    locks = PathLocks()
    assert locks.get("a.py") is locks.get("a.py")
    assert locks.get("a.py") is not locks.get("b.py")


def test_hold_is_reentrant():
    """Test nested acquisition from the same thread."""
    locks = PathLocks(timeout=0.1)
    with locks.hold("a.py"):
        with locks.hold("a.py"):
            pass


def test_hold_times_out_when_held_elsewhere():
    """Test LockTimeout when another thread holds the path."""
    locks = PathLocks(timeout=0.1)
    acquired = threading.Event()
    release = threading.Event()

    def holder():
        with locks.hold("a.py"):
            acquired.set()
            release.wait(timeout=5)

    thread = threading.Thread(target=holder)
    thread.start()
    try:
        assert acquired.wait(timeout=5)
        with pytest.raises(LockTimeout, match="a.py"):
            with locks.hold("a.py"):
                pass
    finally:
        release.set()
        thread.join(timeout=5)


def test_different_paths_do_not_contend():
    """Test that holding one path does not block another."""
    locks = PathLocks(timeout=0.1)
    acquired = threading.Event()
    release = threading.Event()

    def holder():
        with locks.hold("a.py"):
            acquired.set()
            release.wait(timeout=5)

    thread = threading.Thread(target=holder)
    thread.start()
    try:
        assert acquired.wait(timeout=5)
        with locks.hold("b.py"):
            pass
    finally:
        release.set()
        thread.join(timeout=5)


def test_updates_to_one_path_are_serialised():
    """Test that critical sections on the same path never overlap."""
    locks = PathLocks()
    active = []
    overlaps = []

    def worker():
        for _ in range(20):
            with locks.hold("a.py"):
                active.append(1)
                if len(active) > 1:
                    overlaps.append(True)
                time.sleep(0.0005)
                active.pop()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert overlaps == []


def test_lock_released_after_exception():
    locks = PathLocks(timeout=0.1)
    with pytest.raises(ValueError):
        with locks.hold("a.py"):
            raise ValueError("boom")

    done = threading.Event()

    def other():
        with locks.hold("a.py"):
            done.set()

    thread = threading.Thread(target=other)
    thread.start()
    thread.join(timeout=5)
    assert done.is_set()
