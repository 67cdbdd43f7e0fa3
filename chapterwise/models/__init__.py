"""Shared typed data models for Chapterwise.

This package contains dataclasses used across pipeline modules to avoid
cross-module coupling and circular imports.
"""

from .datatypes import (
    ChapterBoundary,
    ChapterError,
    ChapterIndexEntry,
    ChapterOutcome,
    ChapterResult,
    DocumentPage,
    ParsedChapter,
    SubchapterDraft,
    SubdivisionPlan,
)

__all__ = [
    "ChapterBoundary",
    "ChapterError",
    "ChapterIndexEntry",
    "ChapterOutcome",
    "ChapterResult",
    "DocumentPage",
    "ParsedChapter",
    "SubchapterDraft",
    "SubdivisionPlan",
]
