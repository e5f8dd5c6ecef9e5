"""Per-path critical sections for serialising updates to one file's state."""

import contextlib
import threading
from collections.abc import Generator


class LockTimeout(Exception):  # noqa: N818
    """Raised when a path lock cannot be acquired in time."""

    pass


class PathLocks:
    """
    Registry of re-entrant locks keyed by file path.

    Each ReviewSession owns one registry, so sessions never contend with each
    other. Locks for different paths are independent; all updates to the same
    path run one at a time.
    """

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout
        self._locks: dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def get(self, path: str) -> threading.RLock:
        """Return the lock for ``path``, creating it on first use."""
        with self._registry_lock:
            lock = self._locks.get(path)
            if lock is None:
                lock = threading.RLock()
                self._locks[path] = lock
            return lock

    @contextlib.contextmanager
    def hold(self, path: str, timeout: float | None = None) -> Generator[None, None, None]:
        """
        Hold the lock for ``path`` for the duration of the context.

        Args:
            path: File path to lock
            timeout: Seconds to wait (defaults to the registry timeout)

        Raises:
            LockTimeout: If the lock cannot be acquired within timeout

        Example:
            >>> with locks.hold("src/app.py"):
            ...     file_session.refresh_content(new_text)
        """
        wait = self.timeout if timeout is None else timeout
        lock = self.get(path)
        if not lock.acquire(timeout=wait):
            raise LockTimeout(f"Failed to acquire lock for {path} after {wait:.1f} seconds")
        try:
            yield
        finally:
            lock.release()
