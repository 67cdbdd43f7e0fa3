"""Text matching, extraction, and planning components.

This package provides deterministic title normalization, page-range resolution,
chapter extraction, and subdivision planning used before the AI stage.
"""

from .chapter_selection import format_chapter_selection, parse_chapter_selection
from .extractor import ChapterContentExtractor
from .normalizer import TextNormalizer
from .page_range import PageRangeResolver, last_page_number
from .subdivision_planner import SubdivisionPlanner
from .title_matcher import ChapterTitleMatcher

__all__ = [
    "ChapterContentExtractor",
    "ChapterTitleMatcher",
    "PageRangeResolver",
    "SubdivisionPlanner",
    "TextNormalizer",
    "format_chapter_selection",
    "last_page_number",
    "parse_chapter_selection",
]
