"""Placement of pull-request review comments in files that keep changing.

This package contains:
- ReviewSession, the entry point holding a pull request's comments
- FileSession and FileView, the live per-file thread state
- resolve_anchor / translate_anchor, the line accounting behind them
"""

from .anchors import AnchorDescriptor, DataFault, resolve_anchor, translate_anchor
from .file_session import FileSession
from .models import (
    AnchorFault,
    CommentThread,
    FileView,
    GitReference,
    PullRequestSnapshot,
    ReviewComment,
)
from .services import ContentNotFoundError, EditorBuffer
from .session import ReviewSession

__all__ = [
    "AnchorDescriptor",
    "AnchorFault",
    "CommentThread",
    "ContentNotFoundError",
    "DataFault",
    "EditorBuffer",
    "FileSession",
    "FileView",
    "GitReference",
    "PullRequestSnapshot",
    "ReviewComment",
    "ReviewSession",
    "resolve_anchor",
    "translate_anchor",
]
