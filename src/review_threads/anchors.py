"""Anchor resolution: locating review comments in the current file content.

A review comment stores the diff hunk it was written against and a position
inside that hunk. Placing it in a file that has moved on takes two steps:

1. resolve_anchor(): walk the stored hunk to find which base-side and/or
   head-side line the position points at, plus that line's text.
2. translate_anchor(): map that line through a fresh base→current diff,
   applying the loss-of-anchor policy when the line no longer exists.
"""

import re
from typing import NamedTuple

from review_threads.differ import DiffHunk, DiffKind, split_lines
from review_threads.fuzzy import find_closest_line

HUNK_HEADER_RE = re.compile(
    r"^@@ -(?P<base_start>\d+)(?:,(?P<base_count>\d+))? "
    r"\+(?P<head_start>\d+)(?:,(?P<head_count>\d+))? @@"
)


class DataFault(Exception):  # noqa: N818
    """Raised when a comment's anchor data cannot be interpreted.

    Covers malformed hunk headers and positions outside the hunk body. This is
    a data-integrity problem of a single comment and is reported, never
    coerced into a guessed line.
    """

    def __init__(self, message: str, comment_id: str | None = None) -> None:
        super().__init__(message)
        self.comment_id = comment_id


class AnchorDescriptor(NamedTuple):
    """The line a comment was attached to when it was created."""

    base_line: int | None  # 1-indexed base line; None for an added line
    head_line: int | None  # 1-indexed head line; None for a removed line
    line_text: str  # Line content without its diff prefix
    base_cursor: int  # Base lines consumed before the anchored line
    run_index: int = 0  # Index of an added line within its run of additions


class HunkHeader(NamedTuple):
    base_start: int
    base_count: int
    head_start: int
    head_count: int


def parse_hunk_header(line: str) -> HunkHeader:
    """Parse a ``@@ -b,bc +h,hc @@`` header.

    Counts are optional and default to 1, as in unified diff output. Any
    section heading after the closing ``@@`` is ignored.

    Raises:
        DataFault: If the line is not a hunk header
    """
    match = HUNK_HEADER_RE.match(line)
    if match is None:
        raise DataFault(f"Malformed diff hunk header: {line!r}")

    def count(group: str) -> int:
        value = match.group(group)
        return 1 if value is None else int(value)

    return HunkHeader(
        base_start=int(match.group("base_start")),
        base_count=count("base_count"),
        head_start=int(match.group("head_start")),
        head_count=count("head_count"),
    )


def _first_line(start: int, count: int) -> int:
    # An empty range names the line *after which* content is inserted
    return start + 1 if count == 0 else start


def resolve_anchor(diff_hunk: str, original_position: int) -> AnchorDescriptor:
    """Find the line a diff position points at inside a stored hunk.

    Every body line (context, removal, addition) advances the position
    counter; the ``@@`` header and ``\\ No newline at end of file`` markers
    do not. Context lines advance both line counters, removals only the base
    counter and additions only the head counter.

    Args:
        diff_hunk: Unified diff fragment starting with a hunk header
        original_position: 1-based position within the hunk body

    Returns:
        AnchorDescriptor for the line at that position

    Raises:
        DataFault: If the header is malformed or the position is out of range
    """
    if original_position < 1:
        raise DataFault(f"Diff position must be >= 1, got {original_position}")

    lines = split_lines(diff_hunk)
    if not lines:
        raise DataFault("Diff hunk is empty")

    header = parse_hunk_header(lines[0])
    base_next = _first_line(header.base_start, header.base_count)
    head_next = _first_line(header.head_start, header.head_count)

    position = 0
    run_index = 0
    for raw in lines[1:]:
        if raw.startswith("\\"):
            continue
        if raw.startswith("@@"):
            # Combined hunks: reseed counters, header itself is not counted
            header = parse_hunk_header(raw)
            base_next = _first_line(header.base_start, header.base_count)
            head_next = _first_line(header.head_start, header.head_count)
            run_index = 0
            continue

        position += 1
        prefix, text = raw[:1], raw[1:]

        if prefix == "+":
            if position == original_position:
                return AnchorDescriptor(None, head_next, text, base_next - 1, run_index)
            head_next += 1
            run_index += 1
            continue

        run_index = 0
        if prefix == "-":
            if position == original_position:
                return AnchorDescriptor(base_next, None, text, base_next - 1)
            base_next += 1
        else:
            # Context line; some tools strip the leading space of blank lines
            if position == original_position:
                return AnchorDescriptor(base_next, head_next, text, base_next - 1)
            base_next += 1
            head_next += 1

    raise DataFault(
        f"Diff position {original_position} is beyond the end of the hunk ({position} lines)"
    )


def _surviving_line(cursor: int, current_length: int) -> int | None:
    """First current line at or after ``cursor``, or None past end of file."""
    return cursor if cursor < current_length else None


def _translate_base_index(hunks: list[DiffHunk], base_index: int, current_length: int) -> int | None:
    """Map a 0-based base line index to a current line index.

    Lines in a context run move by the running offset of the diff. Lines in a
    removed run follow the loss-of-anchor policy and attach to the first line
    after the removal, which for a replacement is its first new line.
    """
    offset = 0
    for hunk in hunks:
        if hunk.old_start <= base_index < hunk.old_end:
            if hunk.kind == DiffKind.CONTEXT:
                return base_index + offset
            return _surviving_line(hunk.new_start, current_length)
        offset += hunk.new_length - hunk.old_length
    return None


def translate_anchor(
    hunks: list[DiffHunk],
    anchor: AnchorDescriptor,
    current_lines: list[str] | None = None,
    threshold: float = 0.6,
) -> int | None:
    """Compute the current line of an anchor.

    Args:
        hunks: base→current diff, ordered by position
        anchor: Descriptor from resolve_anchor()
        current_lines: Current file lines, used to match an added line by text
        threshold: Minimum similarity for a fuzzy text match

    Returns:
        0-based line index in the current content, or None when the anchored
        region was deleted through the end of the file
    """
    current_length = max((hunk.new_end for hunk in hunks), default=0)

    if anchor.base_line is not None:
        return _translate_base_index(hunks, anchor.base_line - 1, current_length)

    # Added line: find the addition still inserted at the same base position
    run = next(
        (h for h in hunks if h.kind == DiffKind.ADD and h.old_start == anchor.base_cursor),
        None,
    )
    if run is None:
        return _translate_base_index(hunks, anchor.base_cursor, current_length)

    if current_lines is not None:
        match = find_closest_line(
            anchor.line_text, current_lines[run.new_start : run.new_end], threshold
        )
        if match is not None:
            return run.new_start + match.index

    if anchor.run_index < run.new_length:
        return run.new_start + anchor.run_index
    return run.new_start
