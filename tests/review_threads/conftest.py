"""Shared fixtures for review_threads tests."""

import subprocess
from pathlib import Path

import pytest

from review_threads.differ import compute_line_diff
from review_threads.models import GitReference, PullRequestSnapshot, ReviewComment
from review_threads.services import ContentNotFoundError

FILE_PATH = "test.cs"

BASE_CONTENTS = """Line 1
Line 2
Line 3
Line 4"""

HEAD_CONTENTS = """Line 1
Line 2
Line 3 with comment
Line 4"""

SHIFTED_CONTENTS = """New Line 1
New Line 2
Line 1
Line 2
Line 3 with comment
Line 4"""

LINE_3_HUNK = """@@ -1,4 +1,4 @@
 Line 1
 Line 2
-Line 3
+Line 3 with comment"""


class FakeReviewService:
    """In-memory ReviewService recording how it is used."""

    def __init__(self, tip_sha: str = "BRANCH_TIP") -> None:
        self.base_files: dict[str, bytes] = {}
        self.disk_files: dict[str, bytes] = {}
        self.pushed: dict[str, set[bytes]] = {}
        self.tip_sha = tip_sha
        self.diff_calls = 0
        self.base_requests: list[tuple[str, str]] = []

    def add_base(self, path: str, content: str) -> None:
        self.base_files[path] = content.encode("utf-8")

    def add_disk(self, path: str, content: str) -> None:
        self.disk_files[path] = content.encode("utf-8")

    def mark_pushed(self, path: str, content: str | bytes) -> None:
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.pushed.setdefault(path, set()).add(content)

    def fetch_base_content(self, path: str, base_sha: str) -> bytes:
        self.base_requests.append((path, base_sha))
        if path not in self.base_files:
            raise ContentNotFoundError(path, f"commit {base_sha}")
        return self.base_files[path]

    def fetch_current_content(self, path: str) -> bytes:
        if path not in self.disk_files:
            raise ContentNotFoundError(path, "working tree")
        return self.disk_files[path]

    def compute_diff(self, old_text, new_text):
        self.diff_calls += 1
        return compute_line_diff(old_text, new_text)

    def is_unmodified_and_pushed(self, repository, path, content):
        return content in self.pushed.get(path, set())

    def get_tip_sha(self, repository):
        return self.tip_sha


def git(cwd: Path, *args: str) -> str:
    """Run a git command in cwd and return its stripped stdout."""
    result = subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, text=True)
    return result.stdout.strip()


def init_repo(root: Path) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    git(root, "init")
    git(root, "config", "user.email", "test@example.com")
    git(root, "config", "user.name", "Test User")
    git(root, "config", "core.autocrlf", "false")
    return root


def commit_file(repo: Path, path: str, content: str, message: str) -> str:
    """Write, stage and commit one file; returns the new HEAD sha."""
    target = repo / path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content)
    git(repo, "add", path)
    git(repo, "commit", "-m", message)
    return git(repo, "rev-parse", "HEAD")


def make_comment(
    diff_hunk: str = LINE_3_HUNK,
    body: str = "Comment",
    position: int = 4,
    path: str = FILE_PATH,
    comment_id: str | None = None,
    author: str = "reviewer",
) -> ReviewComment:
    kwargs = {} if comment_id is None else {"id": comment_id}
    return ReviewComment(
        author=author,
        body=body,
        path=path,
        diff_hunk=diff_hunk,
        original_commit_id="ORIG",
        original_position=position,
        **kwargs,
    )


def make_snapshot(*comments: ReviewComment, base_sha: str = "BASE") -> PullRequestSnapshot:
    return PullRequestSnapshot(
        number=1,
        base=GitReference(sha=base_sha, ref="master", repository_url="https://foo.bar/owner/repo"),
        head=GitReference(sha="HEAD", ref="pr", repository_url="https://foo.bar/owner/repo"),
        changed_files=[FILE_PATH],
        comments=list(comments),
    )


@pytest.fixture
def service():
    """Fake service with the four-line base file registered."""
    fake = FakeReviewService()
    fake.add_base(FILE_PATH, BASE_CONTENTS)
    return fake
