"""Watch a checkout for file edits and feed them to a review session.

Editors that save to disk (rather than exposing a live buffer) are covered by
watching the working tree. Bursts of events for the same file are debounced
so one save produces one content refresh.
"""

from collections.abc import Callable
from pathlib import Path
from threading import Lock, Timer

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from review_threads.logging import Logger
from review_threads.models import FileView
from review_threads.session import ReviewSession


class ContentChangeWatcher(FileSystemEventHandler):
    """Delivers on-disk changes of loaded files to ``session.notify_content_changed``.

    Args:
        session: Session to notify
        project_root: Root of the checkout; event paths are made relative to it
        debounce_seconds: Quiet period before a change is delivered
        logger: Logger for diagnostics
        on_refresh: Called with the path and view after each delivered change
    """

    def __init__(
        self,
        session: ReviewSession,
        project_root: Path,
        debounce_seconds: float = 0.3,
        logger: Logger | None = None,
        on_refresh: Callable[[str, FileView], None] | None = None,
    ) -> None:
        self.session = session
        self.on_refresh = on_refresh
        self.project_root = project_root.resolve()
        self.debounce_seconds = debounce_seconds
        self.logger = logger or session.logger
        self._timers: dict[str, Timer] = {}
        self._timers_lock = Lock()
        self._observer: Observer | None = None

    def _relative_path(self, raw: str | bytes) -> str | None:
        """Repository-relative POSIX path of an event path, or None to ignore it."""
        # Event paths can be str or bytes
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            relative = Path(raw).resolve().relative_to(self.project_root)
        except ValueError:
            return None

        if relative.parts and relative.parts[0] == ".git":
            return None
        return relative.as_posix()

    def _deliver(self, path: str) -> None:
        with self._timers_lock:
            self._timers.pop(path, None)

        file_path = self.project_root / path
        try:
            content = file_path.read_bytes()
        except OSError as e:
            self.logger.debug("Changed file is not readable", path=path, error=str(e))
            return

        try:
            view = self.session.notify_content_changed(path, content)
            if view is not None and self.on_refresh is not None:
                self.on_refresh(path, view)
        except Exception as e:
            # Runs on a timer thread; report instead of dying silently
            self.logger.exception(f"Failed to refresh {path}", e)

    def schedule(self, path: str) -> None:
        """Deliver ``path`` after the debounce period, restarting any pending timer."""
        with self._timers_lock:
            pending = self._timers.get(path)
            if pending is not None:
                pending.cancel()
            timer = Timer(self.debounce_seconds, self._deliver, args=(path,))
            timer.daemon = True
            self._timers[path] = timer
            timer.start()

    def _handle(self, event: FileSystemEvent, raw: str | bytes | None = None) -> None:
        if event.is_directory:
            return
        path = self._relative_path(event.src_path if raw is None else raw)
        if path is None or path not in self.session.loaded_paths:
            return
        self.logger.debug("Change detected", path=path)
        self.schedule(path)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle(event)

    def on_created(self, event: FileSystemEvent) -> None:
        # Editors that save via rename show up as a create of the target
        self._handle(event)

    def on_moved(self, event: FileSystemEvent) -> None:
        if event.dest_path:
            self._handle(event, event.dest_path)

    def start(self) -> None:
        """Start watching the checkout in a background thread."""
        if self._observer is not None:
            return
        observer = Observer()
        observer.schedule(self, str(self.project_root), recursive=True)
        observer.start()
        self._observer = observer

    def stop(self) -> None:
        """Stop watching and cancel pending deliveries."""
        with self._timers_lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
