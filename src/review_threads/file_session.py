"""Per-file review state: content caches, diff and the derived thread list.

A FileSession owns one FileView. Every update (new content, new comment set)
mutates that view and its CommentThread objects in place, so anything holding
a reference keeps observing the live state.
"""

from typing import Any

from review_threads.anchors import AnchorDescriptor, DataFault, resolve_anchor, translate_anchor
from review_threads.differ import DiffHunk, split_lines
from review_threads.locking import PathLocks
from review_threads.logging import Logger
from review_threads.models import (
    AnchorFault,
    CommentThread,
    FileView,
    PullRequestSnapshot,
    ReviewComment,
    thread_key,
)
from review_threads.services import ContentSource, ReviewService
from review_threads.storage import decode_text


def _thread_sort_key(thread: CommentThread) -> tuple[bool, int]:
    # Anchored threads by line, unanchored ones last; sort is stable
    return (thread.line_number is None, thread.line_number or 0)


class FileSession:
    """Tracks where the review comments of one file are displayed.

    Args:
        path: Repository-relative path of the file
        service: Repository collaborator
        repository: Opaque repository handle passed back to the service
        locks: Lock registry of the owning ReviewSession
        logger: Logger for diagnostics
        similarity_threshold: Fuzzy threshold for re-matching added lines
        encoding: Text encoding of file content
    """

    def __init__(
        self,
        path: str,
        service: ReviewService,
        repository: Any = None,
        locks: PathLocks | None = None,
        logger: Logger | None = None,
        similarity_threshold: float = 0.6,
        encoding: str = "utf-8",
    ) -> None:
        self.path = path
        self.service = service
        self.repository = repository
        self.locks = locks or PathLocks()
        self.logger = logger or Logger()
        self.similarity_threshold = similarity_threshold
        self.encoding = encoding

        self.content_source: ContentSource | None = None
        self.base_sha: str | None = None
        self.base_text: str = ""
        self.current_content: bytes = b""
        self.current_lines: list[str] = []
        self.hunks: list[DiffHunk] = []
        self.comments: list[ReviewComment] = []
        self.view: FileView | None = None

        self._anchors: dict[str, AnchorDescriptor] = {}
        self._pending_content: bytes | None = None

    @property
    def loaded(self) -> bool:
        return self.view is not None

    def _require_view(self) -> FileView:
        if self.view is None:
            raise RuntimeError(f"File session for {self.path} has not been loaded")
        return self.view

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def load(self, snapshot: PullRequestSnapshot, content_source: ContentSource | None = None) -> FileView:
        """Fetch content, place every comment and build the file view.

        Base content is read at the snapshot's base commit. Current content is
        read from ``content_source`` when given, otherwise from the working tree,
        unless a content change was delivered before the load finished; the
        later content wins. Loading again reuses the existing view.

        Raises:
            ContentNotFoundError: If the file is missing at base or in the working tree
            ValueError: If either side is binary
        """
        with self.locks.hold(self.path):
            base_content = self.service.fetch_base_content(self.path, snapshot.base.sha)
            self.base_text = decode_text(base_content, self.path, self.encoding)
            self.base_sha = snapshot.base.sha
            self.content_source = content_source

            current = self._read_current()
            if self._pending_content is not None:
                current, self._pending_content = self._pending_content, None

            view = self.view or FileView(path=self.path)
            view.faults.clear()
            self.comments = snapshot.comments_for(self.path)
            self._anchors.clear()
            for comment in self.comments:
                self._resolve(comment, view)

            self._apply_content(current, view)
            self._rethread(view)
            self.view = view

            self.logger.debug(
                "Loaded file",
                path=self.path,
                comments=len(self.comments),
                threads=len(view.threads),
                commit_sha=view.commit_sha,
            )
            return view

    def refresh_content(self, new_content: bytes | str | None = None) -> FileView | None:
        """Re-diff against new current content and move threads accordingly.

        The comment set is unchanged. With no argument the attached content
        source (or the working tree) is read again. Before the first load
        completes the content is only remembered and None is returned.
        """
        with self.locks.hold(self.path):
            if isinstance(new_content, str):
                new_content = new_content.encode(self.encoding)

            if self.view is None:
                if new_content is not None:
                    self._pending_content = new_content
                return None

            view = self.view
            content = self._read_current() if new_content is None else new_content
            self._apply_content(content, view)
            self._rethread(view)
            self.logger.debug("Refreshed content", path=self.path, threads=len(view.threads))
            return view

    def refresh_comments(self, comments: list[ReviewComment]) -> list[AnchorFault]:
        """Apply a new comment set for this file.

        Comments are matched by id. Matching comments only have their body
        updated; their anchor data is immutable so they keep their thread and
        line. New comments are placed in the thread on their line (or a new
        one) at their arrival position. Removed comments leave their thread,
        and threads left empty are dropped.

        Args:
            comments: The file's comments from the new snapshot, in arrival order

        Returns:
            Faults for newly arrived comments whose anchor could not be resolved
        """
        with self.locks.hold(self.path):
            view = self._require_view()
            incoming = [c for c in comments if c.path == self.path]
            incoming_ids = {c.id for c in incoming}
            existing = {c.id: c for c in self.comments}

            for comment_id in list(existing):
                if comment_id not in incoming_ids:
                    self._remove(comment_id, view)

            ordered: list[ReviewComment] = []
            added: list[ReviewComment] = []
            for comment in incoming:
                current = existing.get(comment.id)
                if current is None:
                    added.append(comment)
                    ordered.append(comment)
                    continue
                if current is not comment and current.body != comment.body:
                    current.body = comment.body
                ordered.append(current)
            self.comments = ordered

            arrival = {c.id: index for index, c in enumerate(ordered)}
            new_faults: list[AnchorFault] = []
            for comment in added:
                fault = self._resolve(comment, view)
                if fault is not None:
                    new_faults.append(fault)
                    continue
                self._place(comment, view, arrival)

            view.threads.sort(key=_thread_sort_key)
            return new_faults

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _read_current(self) -> bytes:
        if self.content_source is not None:
            return self.content_source.get_content()
        return self.service.fetch_current_content(self.path)

    def _apply_content(self, content: bytes, view: FileView) -> None:
        """Cache new current content, diff it and recompute the commit identity."""
        current_text = decode_text(content, self.path, self.encoding)
        self.current_content = content
        self.current_lines = split_lines(current_text)
        self.hunks = self.service.compute_diff(self.base_text, current_text)

        if self.service.is_unmodified_and_pushed(self.repository, self.path, content):
            view.commit_sha = self.service.get_tip_sha(self.repository)
        else:
            view.commit_sha = None

    def _resolve(self, comment: ReviewComment, view: FileView) -> AnchorFault | None:
        try:
            self._anchors[comment.id] = resolve_anchor(comment.diff_hunk, comment.original_position)
        except DataFault as e:
            fault = AnchorFault(comment_id=comment.id, message=str(e))
            view.faults.append(fault)
            self.logger.warning("Cannot place review comment", path=self.path, comment=comment.id, reason=str(e))
            return fault
        return None

    def _translate(self, comment: ReviewComment) -> int | None:
        return translate_anchor(
            self.hunks,
            self._anchors[comment.id],
            self.current_lines,
            self.similarity_threshold,
        )

    def _rethread(self, view: FileView) -> None:
        """Recompute every comment's line and regroup threads in place.

        A thread object survives if any of its comments ends up in a group;
        the group containing its earliest comment claims it first.
        """
        groups: dict[tuple, list[ReviewComment]] = {}
        lines: dict[tuple, int | None] = {}
        for comment in self.comments:
            if comment.id not in self._anchors:
                continue
            line = self._translate(comment)
            key = thread_key(self.path, line, comment)
            groups.setdefault(key, []).append(comment)
            lines[key] = line

        owner: dict[str, CommentThread] = {}
        for thread in view.threads:
            for comment in thread.comments:
                owner.setdefault(comment.id, thread)

        claimed: set[str] = set()
        threads: list[CommentThread] = []
        for key, members in groups.items():
            thread = None
            for comment in members:
                candidate = owner.get(comment.id)
                if candidate is not None and candidate.id not in claimed:
                    thread = candidate
                    break
            if thread is None:
                thread = CommentThread(path=self.path)
            claimed.add(thread.id)

            thread.line_number = lines[key]
            thread.comments[:] = members
            threads.append(thread)

        threads.sort(key=_thread_sort_key)
        view.threads[:] = threads

    def _place(self, comment: ReviewComment, view: FileView, arrival: dict[str, int]) -> None:
        line = self._translate(comment)
        key = thread_key(self.path, line, comment)
        for thread in view.threads:
            if thread.comments and thread.key == key:
                thread.add_comment(comment)
                thread.comments.sort(key=lambda c: arrival[c.id])
                return
        thread = CommentThread(path=self.path, line_number=line)
        thread.add_comment(comment)
        view.threads.append(thread)

    def _remove(self, comment_id: str, view: FileView) -> None:
        self._anchors.pop(comment_id, None)
        view.faults[:] = [f for f in view.faults if f.comment_id != comment_id]
        thread = view.thread_for(comment_id)
        if thread is None:
            return
        thread.remove_comment(comment_id)
        if not thread.comments:
            view.threads[:] = [t for t in view.threads if t is not thread]
