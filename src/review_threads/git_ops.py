"""Git-backed review service.

Implements the ReviewService collaborator on top of the ``git`` command line:
base content comes from the object store, current content from the working
tree, and commit identity checks from ``rev-parse``/``hash-object``.
"""

import subprocess
from pathlib import Path
from typing import Any

from review_threads.differ import DiffHunk, compute_line_diff
from review_threads.services import ContentNotFoundError


class GitError(Exception):
    """Base exception for git-related errors."""

    pass


class GitNotAvailableError(GitError):
    """Raised when git is not available in the environment."""

    pass


class NotAGitRepositoryError(GitError):
    """Raised when operating outside a git repository."""

    pass


def is_git_available() -> bool:
    """
    Check if git is available in the environment.

    Returns:
        True if git command is available, False otherwise
    """
    try:
        result = subprocess.run(
            ["git", "--version"],
            capture_output=True,
            text=True,
            timeout=5,
        )
        return result.returncode == 0
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return False


def is_git_repository(path: Path) -> bool:
    """
    Check if the given path is within a git repository.

    Args:
        path: Directory or file path to check

    Returns:
        True if path is within a git repository, False otherwise
    """
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--git-dir"],
            cwd=path if path.is_dir() else path.parent,
            capture_output=True,
            text=True,
            timeout=5,
        )
        return result.returncode == 0
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return False


def resolve_repo_path(path: str, project_root: Path) -> Path:
    """
    Resolve a repository-relative path, rejecting paths outside the root.

    Args:
        path: POSIX path relative to project_root
        project_root: Repository root directory

    Returns:
        Absolute path inside project_root

    Raises:
        ValueError: If the path escapes project_root
    """
    root_abs = project_root.resolve()
    resolved = (root_abs / path).resolve()
    try:
        resolved.relative_to(root_abs)
    except ValueError:
        raise ValueError(
            f"Path is outside project root:\n  Path: {resolved}\n  Root: {root_abs}"
        )
    return resolved


class GitReviewService:
    """ReviewService reading from a local git checkout.

    The ``repository`` argument of the commit-identity methods is the
    checkout root; None means this service's own root.
    """

    def __init__(self, project_root: Path, remote_check: bool = True, timeout: float = 10.0) -> None:
        """
        Args:
            project_root: Root of the git checkout
            remote_check: Require the tip commit to be on a remote-tracking branch
            timeout: Seconds before a git command is abandoned

        Raises:
            GitNotAvailableError: If git command is not available
            NotAGitRepositoryError: If project_root is not a git repository
        """
        if not is_git_available():
            raise GitNotAvailableError("Git is not available in the environment")
        if not is_git_repository(project_root):
            raise NotAGitRepositoryError(f"{project_root} is not a git repository")

        self.project_root = project_root.resolve()
        self.remote_check = remote_check
        self.timeout = timeout

    def _git(self, args: list[str], cwd: Path | None = None, stdin: bytes | None = None) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                ["git", *args],
                cwd=cwd or self.project_root,
                input=stdin,
                capture_output=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise GitError(f"git {' '.join(args)} timed out after {self.timeout:.0f}s") from e
        except OSError as e:
            raise GitError(f"git {' '.join(args)} failed: {e}") from e

    def _root(self, repository: Any) -> Path:
        return Path(repository).resolve() if repository is not None else self.project_root

    def fetch_base_content(self, path: str, base_sha: str) -> bytes:
        result = self._git(["show", f"{base_sha}:{path}"])
        if result.returncode != 0:
            raise ContentNotFoundError(path, f"commit {base_sha[:12]}")
        return result.stdout

    def fetch_current_content(self, path: str) -> bytes:
        file_path = resolve_repo_path(path, self.project_root)
        if not file_path.is_file():
            raise ContentNotFoundError(path, "working tree")
        return file_path.read_bytes()

    def compute_diff(self, old_text: str, new_text: str) -> list[DiffHunk]:
        return compute_line_diff(old_text, new_text)

    def get_tip_sha(self, repository: Any = None) -> str:
        result = self._git(["rev-parse", "HEAD"], cwd=self._root(repository))
        if result.returncode != 0:
            raise GitError(result.stderr.decode("utf-8", "replace").strip() or "No HEAD commit")
        return result.stdout.decode("ascii").strip()

    def is_unmodified_and_pushed(self, repository: Any, path: str, content: bytes) -> bool:
        """
        Check that ``content`` is byte-identical to ``path`` at HEAD and HEAD is pushed.

        Identity is decided by comparing git blob ids, so no checkout is read.
        """
        root = self._root(repository)

        tip_blob = self._git(["rev-parse", f"HEAD:{path}"], cwd=root)
        if tip_blob.returncode != 0:
            # Path not in the tip commit
            return False

        content_blob = self._git(["hash-object", "--stdin"], cwd=root, stdin=content)
        if content_blob.returncode != 0:
            return False
        if content_blob.stdout.strip() != tip_blob.stdout.strip():
            return False

        if not self.remote_check:
            return True

        pushed = self._git(["branch", "-r", "--contains", "HEAD"], cwd=root)
        return pushed.returncode == 0 and bool(pushed.stdout.strip())
