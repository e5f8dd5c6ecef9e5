"""Collaborator interfaces consumed by review sessions.

Sessions never touch disk, git or an editor directly. They go through a
ReviewService for repository data and through a ContentSource for the live
text of a file when an editor buffer is attached.
"""

from threading import Lock
from typing import Any, Protocol

from review_threads.differ import DiffHunk


class ContentNotFoundError(Exception):
    """Raised when a path does not exist at the requested commit or on disk."""

    def __init__(self, path: str, where: str) -> None:
        super().__init__(f"{path} not found in {where}")
        self.path = path
        self.where = where


class ContentSource(Protocol):
    """Live content of a single file, e.g. an open editor buffer."""

    def get_content(self) -> bytes: ...


class ReviewService(Protocol):
    """Repository access needed to place review comments."""

    def fetch_base_content(self, path: str, base_sha: str) -> bytes:
        """Content of ``path`` at ``base_sha``; raises ContentNotFoundError."""
        ...

    def fetch_current_content(self, path: str) -> bytes:
        """Content of ``path`` in the working tree; raises ContentNotFoundError."""
        ...

    def compute_diff(self, old_text: str, new_text: str) -> list[DiffHunk]: ...

    def is_unmodified_and_pushed(self, repository: Any, path: str, content: bytes) -> bool:
        """True if ``content`` equals the file at the tip commit and that commit is pushed."""
        ...

    def get_tip_sha(self, repository: Any) -> str: ...


class EditorBuffer:
    """In-memory ContentSource standing in for an editor's text buffer."""

    def __init__(self, content: str | bytes = b"", encoding: str = "utf-8") -> None:
        self._lock = Lock()
        self.encoding = encoding
        self._content = b""
        self.set_content(content)

    def set_content(self, content: str | bytes) -> None:
        if isinstance(content, str):
            content = content.encode(self.encoding)
        with self._lock:
            self._content = content

    def get_content(self) -> bytes:
        with self._lock:
            return self._content
