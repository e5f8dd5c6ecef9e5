"""Line fingerprint matching for relocating anchored lines.

Anchors remember the text of the line a comment was attached to. When an
added line has been edited again since the comment was made, the closest
remaining line in the replacement run is chosen by edit-distance similarity.
"""

import unicodedata
from typing import NamedTuple


class LineMatch(NamedTuple):
    """Best candidate found by :func:`find_closest_line`."""

    index: int  # 0-based index into the candidate list
    similarity: float  # 0-1, higher is more similar


def normalize_line(text: str) -> str:
    """Normalize a line for comparison.

    Applies NFC unicode normalisation and drops trailing whitespace, which
    editors and diff tools routinely disagree on (``\\r``, stray spaces).
    """
    return unicodedata.normalize("NFC", text).rstrip()


def line_similarity(a: str, b: str) -> float:
    """Normalized Levenshtein similarity between two lines (0-1 scale).

    Args:
        a: First line (normalized automatically)
        b: Second line (normalized automatically)

    Returns:
        1.0 for identical lines, 0.0 when nothing is shared
    """
    a = normalize_line(a)
    b = normalize_line(b)

    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    # Keep the shorter string in the inner loop
    if len(a) > len(b):
        a, b = b, a

    previous = list(range(len(a) + 1))
    for i, char_b in enumerate(b, start=1):
        current = [i]
        for j, char_a in enumerate(a, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current

    return 1.0 - previous[-1] / len(b)


def find_closest_line(needle: str, candidates: list[str], threshold: float = 0.6) -> LineMatch | None:
    """Find the candidate line most similar to ``needle``.

    An exact (normalized) match always wins. Otherwise the highest similarity
    at or above ``threshold`` is returned, the earliest candidate winning ties.

    Args:
        needle: Anchored line text
        candidates: Lines to search, in order
        threshold: Minimum similarity to accept a fuzzy match

    Returns:
        The best LineMatch, or None if nothing reaches the threshold
    """
    target = normalize_line(needle)
    for index, candidate in enumerate(candidates):
        if normalize_line(candidate) == target:
            return LineMatch(index=index, similarity=1.0)

    best: LineMatch | None = None
    for index, candidate in enumerate(candidates):
        score = line_similarity(needle, candidate)
        if score >= threshold and (best is None or score > best.similarity):
            best = LineMatch(index=index, similarity=score)
    return best
