"""Chapterwise pipeline package.

This package contains the per-chapter orchestrator, retry policy, and the
bounded worker-pool fan-out across outline chapters.
"""

from .fanout import chapter_pairs, subdivide_outline
from .orchestrator import ChapterSubdivisionOrchestrator
from .retry import RetryPolicy

__all__ = [
    "ChapterSubdivisionOrchestrator",
    "RetryPolicy",
    "chapter_pairs",
    "subdivide_outline",
]
