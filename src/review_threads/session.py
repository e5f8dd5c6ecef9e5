"""Review session: the entry point for displaying review comments in files.

A ReviewSession holds the current pull-request snapshot and one FileSession
per file that has been opened. It is the only object a host (editor plugin,
CLI, watcher) talks to:

- get_file(): lazily load a file and return its live FileView
- update_snapshot(): apply a new set of review comments from the remote
- add_comment(): place one freshly posted comment immediately
- notify_content_changed(): feed edits of an open buffer or file on disk
"""

import threading
from typing import Any

from review_threads.config import ReviewSettings
from review_threads.file_session import FileSession
from review_threads.locking import PathLocks
from review_threads.logging import Logger
from review_threads.models import (
    AnchorFault,
    CommentThread,
    FileView,
    PullRequestSnapshot,
    ReviewComment,
)
from review_threads.services import ContentNotFoundError, ContentSource, ReviewService


class ReviewSession:
    """Comment placement state for one pull request.

    Sessions share nothing: two sessions over the same repository keep
    separate caches and locks.
    """

    def __init__(
        self,
        service: ReviewService,
        snapshot: PullRequestSnapshot,
        repository: Any = None,
        settings: ReviewSettings | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.service = service
        self.repository = repository
        self.settings = settings or ReviewSettings()
        self.logger = logger or Logger(verbose=self.settings.verbose)

        self._snapshot = snapshot
        self._snapshot_lock = threading.Lock()
        self._files: dict[str, FileSession] = {}
        self._files_lock = threading.Lock()
        self._locks = PathLocks(timeout=self.settings.lock_timeout)

    @property
    def snapshot(self) -> PullRequestSnapshot:
        return self._snapshot

    @property
    def files(self) -> dict[str, FileView]:
        """Live views of the loaded files, keyed by path."""
        with self._files_lock:
            return {path: session.view for path, session in self._files.items() if session.view is not None}

    @property
    def loaded_paths(self) -> list[str]:
        """Paths whose FileView has been created."""
        with self._files_lock:
            return [path for path, session in self._files.items() if session.loaded]

    def _file_session(self, path: str) -> FileSession:
        with self._files_lock:
            session = self._files.get(path)
            if session is None:
                session = FileSession(
                    path,
                    self.service,
                    repository=self.repository,
                    locks=self._locks,
                    logger=self.logger,
                    similarity_threshold=self.settings.similarity_threshold,
                    encoding=self.settings.encoding,
                )
                self._files[path] = session
            return session

    def get_file(self, path: str, content_source: ContentSource | None = None) -> FileView:
        """Return the live view of ``path``, loading it on first access.

        Passing a content source to an already loaded file attaches it and
        reloads the view in place.

        Raises:
            ContentNotFoundError: If the file is missing; no view is created
            ValueError: If the file is binary
        """
        session = self._file_session(path)
        with self._locks.hold(path):
            if session.view is not None and content_source is None:
                return session.view
            try:
                return session.load(self._snapshot, content_source)
            except Exception:
                if not session.loaded:
                    with self._files_lock:
                        if self._files.get(path) is session:
                            del self._files[path]
                raise

    def update_snapshot(self, snapshot: PullRequestSnapshot) -> dict[str, list[AnchorFault]]:
        """Replace the pull-request snapshot and update affected files in place.

        Files referenced by the old or the new comment set are refreshed by
        comment identity. If the base commit moved, loaded files are reloaded
        since every anchor is relative to it. A file that can no longer be
        loaded is dropped from the session; the other files still refresh.

        Returns:
            New anchor faults, keyed by path
        """
        with self._snapshot_lock:
            previous = self._snapshot
            self._snapshot = snapshot
        return self._apply_snapshot(previous, snapshot)

    def add_comment(self, comment: ReviewComment) -> CommentThread | None:
        """Add a newly posted comment and place it right away.

        Returns:
            The thread now holding the comment, or None if its file is not
            loaded or its anchor could not be resolved
        """
        with self._snapshot_lock:
            previous = self._snapshot
            self._snapshot = previous.with_comment(comment)
            snapshot = self._snapshot
        self._apply_snapshot(previous, snapshot)

        with self._files_lock:
            session = self._files.get(comment.path)
        if session is None or session.view is None:
            return None
        return session.view.thread_for(comment.id)

    def _apply_snapshot(
        self, previous: PullRequestSnapshot, snapshot: PullRequestSnapshot
    ) -> dict[str, list[AnchorFault]]:
        if previous.base.sha != snapshot.base.sha:
            self.logger.debug("Base commit changed", old=previous.base.sha, new=snapshot.base.sha)
            touched = set(self.loaded_paths)
        else:
            touched = {c.path for c in previous.comments} | {c.path for c in snapshot.comments}

        faults: dict[str, list[AnchorFault]] = {}
        for path in sorted(touched):
            with self._files_lock:
                session = self._files.get(path)
            if session is None:
                continue
            with self._locks.hold(path):
                if not session.loaded:
                    continue
                # Another update may have landed since ours; always apply the newest
                latest = self._snapshot
                if session.base_sha != latest.base.sha:
                    try:
                        session.load(latest, session.content_source)
                    except (ContentNotFoundError, ValueError) as e:
                        self._drop(path, session)
                        self.logger.warning("Dropped file after base change", path=path, reason=str(e))
                        continue
                    new_faults = list(session.view.faults) if session.view else []
                else:
                    new_faults = session.refresh_comments(latest.comments_for(path))
            if new_faults:
                faults[path] = new_faults
        return faults

    def _drop(self, path: str, session: FileSession) -> None:
        """Forget a file whose view can no longer be computed."""
        if session.view is not None:
            session.view.threads.clear()
            session.view.faults.clear()
        with self._files_lock:
            if self._files.get(path) is session:
                del self._files[path]

    def notify_content_changed(self, path: str, new_content: bytes | str | None = None) -> FileView | None:
        """Deliver new content for ``path`` from an editor buffer or the disk.

        Files that were never opened are ignored. With no content the file's
        attached source is read again.
        """
        with self._files_lock:
            session = self._files.get(path)
        if session is None:
            self.logger.debug("Ignoring change to unopened file", path=path)
            return None
        return session.refresh_content(new_content)
