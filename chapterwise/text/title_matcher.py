"""Chapter title matching heuristics.

The matcher favors recall: a line matches a title when the normalized forms are
equal, when the line contains the title, or when both agree after dropping a
leading ordinal. Short or common titles can therefore match unrelated lines: a
title that normalizes to "" matches every line, and an ordinal-only title
matches every ordinal-only line.
"""

from __future__ import annotations

from .normalizer import TextNormalizer


class ChapterTitleMatcher:
    """Decide whether a text line denotes a given chapter title."""

    def __init__(self, normalizer: TextNormalizer | None = None) -> None:
        """Initialize the matcher with a shared normalizer."""

        self.normalizer = normalizer if normalizer is not None else TextNormalizer()

    def is_match(self, line: str | None, title: str | None) -> bool:
        """Return whether `line` should be treated as the heading for `title`."""

        if not line or not title or not line.strip() or not title.strip():
            return False

        normalized_line = self.normalizer.normalize(line).casefold()
        normalized_title = self.normalizer.normalize(title).casefold()
        if normalized_line == normalized_title:
            return True
        if normalized_title in normalized_line:
            return True

        return self.normalizer.strip_leading_ordinal(
            normalized_line
        ) == self.normalizer.strip_leading_ordinal(normalized_title)
