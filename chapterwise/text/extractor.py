"""Chapter content extraction from a numbered page stream.

Responsibilities:
- Build page-scoped chapter text used for sizing and prompting.
- Build title-scoped chapter text, the authoritative text kept in results.

The two passes are independent. The page-scoped pass trusts the outline page
numbers; the title-scoped pass trusts literal title occurrences and scans the
whole document from its first line, so a title repeated earlier (for example in
a table of contents) starts the chapter there.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
import re

from ..models.datatypes import ChapterBoundary, DocumentPage
from .title_matcher import ChapterTitleMatcher


class ChapterContentExtractor:
    """Extract chapter text by page range or by title boundaries."""

    PAGE_MARKER_TEMPLATE = "=== PAGE {page_number} ==="
    _LINE_BREAK_RE = re.compile(r"[\r\n]+")

    def __init__(self, matcher: ChapterTitleMatcher | None = None) -> None:
        """Initialize the extractor with a title matcher."""

        self.matcher = matcher if matcher is not None else ChapterTitleMatcher()

    def page_scoped_text(
        self,
        pages: Sequence[DocumentPage],
        boundary: ChapterBoundary,
    ) -> str:
        """Concatenate pages inside `boundary` with a marker line before each page.

        Pages are emitted in ascending page-number order. An inverted or empty
        range yields an empty string.
        """

        selected = sorted(
            (
                page
                for page in pages
                if boundary.start_page <= page.page_number <= boundary.end_page
            ),
            key=lambda page: page.page_number,
        )
        parts: list[str] = []
        for page in selected:
            parts.append("")
            parts.append(self.PAGE_MARKER_TEMPLATE.format(page_number=page.page_number))
            parts.extend(page.lines)
        return "\n".join(parts)

    def title_scoped_text(
        self,
        pages: Sequence[DocumentPage],
        current_title: str,
        next_title: str | None,
    ) -> str:
        """Return lines from the first `current_title` match up to `next_title`.

        All lines of all pages are scanned in document order. The matching line
        for the current title is included; the line matching the next title is
        not. Without a next title the scan runs to the end of the document.
        """

        return self._scan(self._page_lines(pages), current_title, next_title)

    def title_scoped_text_from_content(
        self,
        content: str,
        current_title: str | None,
        next_title: str | None,
    ) -> str:
        """Apply the title-scoped scan to an already joined document text."""

        if not content or not current_title or not current_title.strip():
            return ""
        return self._scan(self._split_lines([content]), current_title, next_title)

    def _scan(
        self,
        lines: Iterable[str],
        current_title: str,
        next_title: str | None,
    ) -> str:
        """Collect chapter lines between the current and next title matches."""

        current = current_title.strip() if current_title else ""
        upcoming = next_title.strip() if next_title else ""
        collected: list[str] = []
        found = False
        for line in lines:
            candidate = line.strip()
            if not found:
                if self.matcher.is_match(candidate, current):
                    found = True
                    collected.append(line)
                continue
            if upcoming and self.matcher.is_match(candidate, upcoming):
                break
            collected.append(line)
        return "\n".join(collected).strip()

    def _page_lines(self, pages: Sequence[DocumentPage]) -> Iterator[str]:
        """Yield every non-empty line of every page in original document order."""

        for page in pages:
            yield from self._split_lines(page.lines)

    def _split_lines(self, raw_lines: Iterable[str]) -> Iterator[str]:
        """Split raw lines on CR/LF and drop empty pieces."""

        for raw_line in raw_lines:
            for piece in self._LINE_BREAK_RE.split(raw_line):
                if piece:
                    yield piece
