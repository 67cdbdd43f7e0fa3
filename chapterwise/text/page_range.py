"""Outline-driven page range resolution."""

from __future__ import annotations

from collections.abc import Iterable

from ..models.datatypes import ChapterBoundary, ChapterIndexEntry, DocumentPage


def last_page_number(pages: Iterable[DocumentPage]) -> int:
    """Return the maximum page number present in the page collection."""

    numbers = [page.page_number for page in pages]
    if not numbers:
        raise ValueError("Cannot resolve last page number of an empty page collection.")
    return max(numbers)


class PageRangeResolver:
    """Compute the page range covered by one outline entry."""

    def resolve_range(
        self,
        current: ChapterIndexEntry,
        next_chapter: ChapterIndexEntry | None,
        last_page: int,
    ) -> ChapterBoundary:
        """Resolve `[start_page, end_page]` for `current`.

        The range ends one page before the next chapter starts, or at `last_page`
        for the final chapter. Malformed outlines (a next chapter starting on or
        before the current one) produce an inverted range; callers validate.
        """

        if next_chapter is not None:
            end_page = next_chapter.start_page - 1
        else:
            end_page = last_page
        return ChapterBoundary(start_page=current.start_page, end_page=end_page)
