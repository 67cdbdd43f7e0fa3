"""Top-level package for Chapterwise.

This package splits a paginated document into chapters using its outline and
asks a chat model to subdivide each chapter into subchapters. The main
orchestration entry point is `ChapterSubdivisionOrchestrator`.
"""

from .pipeline import ChapterSubdivisionOrchestrator, subdivide_outline

__all__ = ["ChapterSubdivisionOrchestrator", "subdivide_outline", "__version__"]

__version__ = "0.1.0"
