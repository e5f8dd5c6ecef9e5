"""Data models for pull-request snapshots, review comments and threads."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator
from ulid import new as new_ulid


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ReviewComment(BaseModel):
    """A review comment anchored to a diff hunk.

    Anchor data is immutable. Only ``body`` may be replaced, in place, when
    the comment is edited on the remote.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=lambda: str(new_ulid()), frozen=True)
    author: str = Field(default="", max_length=200, frozen=True)
    body: str
    path: str = Field(..., min_length=1, frozen=True)
    diff_hunk: str = Field(..., frozen=True)
    original_commit_id: str = Field(..., frozen=True)
    original_position: int = Field(..., frozen=True)  # range checked when the anchor is resolved
    created_at: str = Field(default_factory=_utc_now, frozen=True)

    @field_validator("path")
    @classmethod
    def validate_posix_path(cls, v: str) -> str:
        """Paths are repository-relative with POSIX separators."""
        v = v.replace("\\", "/")
        if v.startswith("/"):
            raise ValueError(f"Comment path must be repository-relative: {v}")
        return v

    @property
    def anchor_key(self) -> tuple[str, int, str]:
        """Anchor equivalence class: comments sharing it start on the same line."""
        return (self.original_commit_id, self.original_position, self.diff_hunk)


class GitReference(BaseModel, frozen=True):
    """A named commit in a repository."""

    sha: str = Field(..., min_length=1)
    ref: str = ""
    repository_url: str = ""


class PullRequestSnapshot(BaseModel):
    """Point-in-time view of a pull request and its review comments.

    ``comments`` is kept in arrival order; that order is the order comments
    appear in their threads.
    """

    number: int = Field(default=0, ge=0)
    base: GitReference
    head: GitReference
    changed_files: list[str] = Field(default_factory=list)
    comments: list[ReviewComment] = Field(default_factory=list)

    def comments_for(self, path: str) -> list[ReviewComment]:
        """Comments on ``path``, in arrival order."""
        return [c for c in self.comments if c.path == path]

    def with_comment(self, comment: ReviewComment) -> "PullRequestSnapshot":
        """Copy of this snapshot with ``comment`` appended.

        Existing comment objects are shared, not copied.
        """
        return PullRequestSnapshot(
            number=self.number,
            base=self.base,
            head=self.head,
            changed_files=list(self.changed_files),
            comments=[*self.comments, comment],
        )


def thread_key(path: str, line_number: int | None, comment: ReviewComment | None) -> tuple:
    """Key of the thread a comment displayed at ``line_number`` belongs to.

    Anchored comments share a thread by line. Unanchored ones share a thread
    only with comments made on the same anchor.
    """
    if line_number is not None:
        return (path, line_number)
    return (path, None, comment.anchor_key if comment is not None else None)


class CommentThread(BaseModel):
    """Comments currently displayed on the same line of a file.

    ``line_number`` is a 0-based line index into the current content, or None
    when the anchored region no longer exists.
    """

    id: str = Field(default_factory=lambda: str(new_ulid()))
    path: str
    line_number: int | None = None
    comments: list[ReviewComment] = Field(default_factory=list)

    @property
    def key(self) -> tuple:
        """Identity key of the thread within its file."""
        return thread_key(self.path, self.line_number, self.comments[0] if self.comments else None)

    def add_comment(self, comment: ReviewComment) -> None:
        """Append a comment by reference."""
        self.comments.append(comment)

    def remove_comment(self, comment_id: str) -> bool:
        """Remove a comment by id.

        Returns:
            True if the comment was present
        """
        for index, comment in enumerate(self.comments):
            if comment.id == comment_id:
                del self.comments[index]
                return True
        return False


class AnchorFault(BaseModel, frozen=True):
    """A comment that could not be placed because its anchor data is invalid."""

    comment_id: str
    message: str


class FileView(BaseModel):
    """Observable state of one file under review.

    The view and its threads are updated in place, so holders of references
    see changes as they happen.
    """

    path: str
    commit_sha: str | None = None
    threads: list[CommentThread] = Field(default_factory=list)
    faults: list[AnchorFault] = Field(default_factory=list)

    def thread_for(self, comment_id: str) -> CommentThread | None:
        """Return the thread holding a comment, if any."""
        for thread in self.threads:
            if any(c.id == comment_id for c in thread.comments):
                return thread
        return None
