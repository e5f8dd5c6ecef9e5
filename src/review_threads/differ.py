"""Line-based diffing between two versions of a text file.

The engine consumes a diff as an ordered list of hunks, each describing a run
of context, added or removed lines with its old-side and new-side ranges. The
default implementation is backed by ``difflib.SequenceMatcher``; any callable
returning the same shape can be plugged into a review service instead.
"""

import difflib
from enum import Enum
from typing import NamedTuple


class DiffKind(str, Enum):
    """Kind of a diff hunk."""

    CONTEXT = "context"
    ADD = "add"
    REMOVE = "remove"


class DiffHunk(NamedTuple):
    """A contiguous run of lines of one kind.

    Ranges are zero-based and half-open. A removal has an empty new range
    positioned at the current-side cursor; an addition has an empty old range
    positioned at the base-side cursor.
    """

    kind: DiffKind
    old_start: int
    old_end: int
    new_start: int
    new_end: int

    @property
    def old_length(self) -> int:
        return self.old_end - self.old_start

    @property
    def new_length(self) -> int:
        return self.new_end - self.new_start


def split_lines(text: str) -> list[str]:
    """Split text into lines without their terminators.

    Only ``\\n`` ends a line, as in unified diffs and editors; form feeds and
    other Unicode separators stay inside the line. A ``\\r`` before the ``\\n``
    is dropped. A trailing newline does not produce an empty final line, so
    ``"a\\nb\\n"`` and ``"a\\nb"`` both yield two lines.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def compute_line_diff(old_text: str, new_text: str) -> list[DiffHunk]:
    """Compute the hunks transforming ``old_text`` into ``new_text``.

    A replaced region is reported as a removal immediately followed by an
    addition, so every hunk is one of the three kinds.

    Args:
        old_text: Base side text
        new_text: Current side text

    Returns:
        Hunks ordered by old-side (and new-side) position
    """
    old_lines = split_lines(old_text)
    new_lines = split_lines(new_text)
    matcher = difflib.SequenceMatcher(a=old_lines, b=new_lines, autojunk=False)

    hunks: list[DiffHunk] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            hunks.append(DiffHunk(DiffKind.CONTEXT, i1, i2, j1, j2))
        elif tag == "delete":
            hunks.append(DiffHunk(DiffKind.REMOVE, i1, i2, j1, j1))
        elif tag == "insert":
            hunks.append(DiffHunk(DiffKind.ADD, i1, i1, j1, j2))
        else:
            # replace: removal first, then the replacement lines
            hunks.append(DiffHunk(DiffKind.REMOVE, i1, i2, j1, j1))
            hunks.append(DiffHunk(DiffKind.ADD, i2, i2, j1, j2))
    return hunks
