"""Tests for hunk anchor resolution and line translation."""

import pytest

from review_threads.anchors import (
    AnchorDescriptor,
    DataFault,
    parse_hunk_header,
    resolve_anchor,
    translate_anchor,
)
from review_threads.differ import compute_line_diff, split_lines

HUNK = """@@ -1,4 +1,4 @@
 Line 1
 Line 2
-Line 3
+Line 3 with comment"""


def translate(base: str, current: str, anchor: AnchorDescriptor) -> int | None:
    return translate_anchor(compute_line_diff(base, current), anchor, split_lines(current))


class TestParseHunkHeader:
    """Tests for parse_hunk_header()."""

    def test_full_header(self):
        header = parse_hunk_header("@@ -10,7 +12,9 @@ def foo():")
        assert header.base_start == 10
        assert header.base_count == 7
        assert header.head_start == 12
        assert header.head_count == 9

    def test_counts_default_to_one(self):
        header = parse_hunk_header("@@ -3 +4 @@")
        assert header.base_count == 1
        assert header.head_count == 1

    @pytest.mark.parametrize("line", ["", "Line 1", "@@ bad header @@", "@@ -a,1 +1,1 @@"])
    def test_malformed_header_raises(self, line):
        with pytest.raises(DataFault):
            parse_hunk_header(line)


class TestResolveAnchor:
    """Tests for resolve_anchor()."""

    def test_context_line(self):
        anchor = resolve_anchor(HUNK, 2)
        assert anchor.base_line == 2
        assert anchor.head_line == 2
        assert anchor.line_text == "Line 2"

    def test_removed_line_has_no_head_line(self):
        anchor = resolve_anchor(HUNK, 3)
        assert anchor.base_line == 3
        assert anchor.head_line is None
        assert anchor.line_text == "Line 3"

    def test_added_line_has_no_base_line(self):
        anchor = resolve_anchor(HUNK, 4)
        assert anchor.base_line is None
        assert anchor.head_line == 3
        assert anchor.line_text == "Line 3 with comment"
        assert anchor.base_cursor == 3
        assert anchor.run_index == 0

    def test_header_offsets_seed_counters(self):
        hunk = "@@ -20,3 +25,4 @@ class Foo:\n a\n+b\n+c\n d"
        anchor = resolve_anchor(hunk, 3)
        assert anchor.head_line == 27
        assert anchor.base_cursor == 20
        assert anchor.run_index == 1

        context = resolve_anchor(hunk, 4)
        assert context.base_line == 21
        assert context.head_line == 28

    def test_insertion_into_empty_file(self):
        anchor = resolve_anchor("@@ -0,0 +1,2 @@\n+first\n+second", 2)
        assert anchor.head_line == 2
        assert anchor.base_cursor == 0

    def test_no_newline_marker_is_not_counted(self):
        hunk = "@@ -1,2 +1,2 @@\n a\n-b\n\\ No newline at end of file\n+b2"
        anchor = resolve_anchor(hunk, 3)
        assert anchor.line_text == "b2"

    def test_position_beyond_hunk_raises(self):
        with pytest.raises(DataFault) as exc:
            resolve_anchor(HUNK, 5)
        assert "beyond the end" in str(exc.value)

    def test_position_zero_raises(self):
        with pytest.raises(DataFault):
            resolve_anchor(HUNK, 0)

    def test_malformed_header_raises(self):
        with pytest.raises(DataFault):
            resolve_anchor("not a hunk\n+line", 1)

    def test_empty_hunk_raises(self):
        with pytest.raises(DataFault):
            resolve_anchor("", 1)

    def test_form_feed_does_not_split_hunk_line(self):
        hunk = "@@ -1,2 +1,3 @@\n a\fb\n+new\n c"
        anchor = resolve_anchor(hunk, 3)
        assert anchor.line_text == "c"
        assert anchor.head_line == 3


class TestTranslateAnchor:
    """Tests for translate_anchor()."""

    BASE = "Line 1\nLine 2\nLine 3\nLine 4"
    HEAD = "Line 1\nLine 2\nLine 3 with comment\nLine 4"

    def test_unmodified_line_keeps_base_position(self):
        anchor = resolve_anchor(HUNK, 2)
        assert translate(self.BASE, self.BASE, anchor) == 1

    def test_insertions_before_shift_by_count(self):
        anchor = resolve_anchor(HUNK, 2)
        for count in (1, 2, 5):
            current = "\n".join(f"new {i}" for i in range(count)) + "\n" + self.BASE
            assert translate(self.BASE, current, anchor) == 1 + count

    def test_deletions_before_shift_up(self):
        base = "a\nb\nc\nd\ne"
        anchor = resolve_anchor("@@ -1,5 +1,5 @@\n a\n b\n c\n d\n e", 4)
        assert translate(base, "c\nd\ne", anchor) == 1

    def test_added_line_when_current_is_head(self):
        anchor = resolve_anchor(HUNK, 4)
        assert translate(self.BASE, self.HEAD, anchor) == 2

    def test_added_line_moves_with_preceding_insertions(self):
        anchor = resolve_anchor(HUNK, 4)
        current = "New Line 1\nNew Line 2\n" + self.HEAD
        assert translate(self.BASE, current, anchor) == 4

    def test_added_line_matched_by_text_in_longer_run(self):
        hunk = "@@ -1,2 +1,4 @@\n a\n+one\n+two\n b"
        anchor = resolve_anchor(hunk, 3)
        # Another line was added before "two" since the comment was made
        assert translate("a\nb", "a\none\nextra\ntwo\nb", anchor) == 3

    def test_edited_added_line_matched_fuzzily(self):
        hunk = "@@ -1,2 +1,4 @@\n a\n+first added line\n+second added line\n b"
        anchor = resolve_anchor(hunk, 3)
        current = "a\nfirst added line\nsecond added line!\nb"
        assert translate("a\nb", current, anchor) == 2

    def test_reverted_addition_attaches_to_following_line(self):
        anchor = resolve_anchor(HUNK, 4)
        # Current content is the base again: the addition is gone
        assert translate(self.BASE, self.BASE, anchor) == 3

    def test_deleted_line_moves_to_next_surviving_line(self):
        base = "a\nb\nc\nd"
        anchor = resolve_anchor("@@ -1,4 +1,4 @@\n a\n b\n c\n d", 2)
        assert translate(base, "a\nc\nd", anchor) == 1

    def test_deleted_block_moves_past_whole_block(self):
        base = "a\nb\nc\nd\ne"
        anchor = resolve_anchor("@@ -1,5 +1,5 @@\n a\n b\n c\n d\n e", 3)
        assert translate(base, "a\ne", anchor) == 1

    def test_deletion_to_end_of_file_is_unanchored(self):
        base = "a\nb\nc"
        anchor = resolve_anchor("@@ -1,3 +1,3 @@\n a\n b\n c", 3)
        assert translate(base, "a\nb", anchor) is None

    def test_modified_line_resolves_to_first_replacement_line(self):
        base = "a\nb\nc"
        anchor = resolve_anchor("@@ -1,3 +1,3 @@\n a\n b\n c", 2)
        assert translate(base, "a\nB1\nB2\nc", anchor) == 1

    def test_removed_line_comment_follows_replacement(self):
        anchor = resolve_anchor(HUNK, 3)
        assert translate(self.BASE, self.HEAD, anchor) == 2

    def test_anchor_beyond_base_content_is_unanchored(self):
        anchor = resolve_anchor("@@ -10,1 +10,1 @@\n far away", 1)
        assert translate(self.BASE, self.BASE, anchor) is None

    def test_without_current_lines_uses_run_index(self):
        hunk = "@@ -1,2 +1,4 @@\n a\n+one\n+two\n b"
        anchor = resolve_anchor(hunk, 3)
        hunks = compute_line_diff("a\nb", "a\nx\ny\nb")
        assert translate_anchor(hunks, anchor) == 2


def test_form_feed_line_translates_as_one_line():
    base = "a\fb\nc"
    anchor = resolve_anchor("@@ -1,2 +1,2 @@\n a\fb\n c", 2)
    assert translate(base, "a\fb\nNEW\nc", anchor) == 2
