"""Snapshot file I/O and content decoding.

Pull-request snapshots are exchanged as JSON exports (``snapshot.json``)
holding the base/head commits and the review comments in arrival order.
"""

import json
import tempfile
from pathlib import Path

from pydantic import ValidationError

from review_threads.models import PullRequestSnapshot

BINARY_SNIFF_BYTES = 8192


def is_binary_content(content: bytes) -> bool:
    """
    Detect if content is binary.

    Uses the same heuristic as git: a null byte in the first 8192 bytes.
    """
    return b"\x00" in content[:BINARY_SNIFF_BYTES]


def decode_text(content: bytes, path: str, encoding: str = "utf-8") -> str:
    """
    Decode file content for line diffing.

    Undecodable bytes are replaced rather than rejected, so a stray byte in an
    otherwise text file does not hide its review comments.

    Raises:
        ValueError: If content is binary
    """
    if is_binary_content(content):
        raise ValueError(f"Binary files not supported: {path}")
    return content.decode(encoding, errors="replace")


def read_snapshot(path: Path) -> PullRequestSnapshot:
    """
    Read and validate a pull-request snapshot JSON file.

    Args:
        path: Path to snapshot file

    Returns:
        Parsed PullRequestSnapshot

    Raises:
        FileNotFoundError: If file does not exist
        ValueError: If JSON is invalid or does not match the schema
    """
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {path}")

    try:
        return PullRequestSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise ValueError(f"Invalid snapshot file {path}:\n{e}") from e


def write_snapshot(path: Path, snapshot: PullRequestSnapshot) -> None:
    """
    Write a snapshot atomically (temp file + rename).

    Args:
        path: Destination path; parent directories are created
        snapshot: Snapshot to serialise

    Raises:
        OSError: If write fails
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    json_str = json.dumps(snapshot.model_dump(mode="json"), indent=2)

    # Temp file in the same directory so the rename stays on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(dir=path.parent, suffix=".tmp.json", text=True)
    temp_path = Path(temp_path_str)
    try:
        with open(temp_fd, "w", encoding="utf-8") as f:
            f.write(json_str)
            f.write("\n")
        temp_path.replace(path)
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise
