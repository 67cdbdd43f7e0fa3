"""Title normalization helpers for fuzzy chapter matching.

Responsibilities:
- Canonicalize OCR lines and outline titles into comparable strings.
- Strip a single leading ordinal marker (roman numeral, digits, or lettered item).
"""

from __future__ import annotations

import re


class TextNormalizer:
    """Normalize text for deterministic title comparison."""

    _REMOVED_CHARACTERS = str.maketrans("", "", ".,:;\"'\t")
    _SPACED_CHARACTERS = str.maketrans({"-": " ", "_": " "})
    _WHITESPACE_RE = re.compile(r"\s+")
    _ORDINAL_PATTERNS = (
        re.compile(r"^[IVXLCDM]+\.?(?=\s|$)", re.IGNORECASE),
        re.compile(r"^\d+\.?(?=\s|$)"),
        re.compile(r"^[^\W\d_]\.(?=\s|$)"),
    )

    def normalize(self, text: str | None) -> str:
        """Return trimmed text without punctuation noise and with single spaces.

        Applying `normalize` twice yields the same value as applying it once.
        """

        if not text:
            return ""
        cleaned = text.strip().translate(self._REMOVED_CHARACTERS)
        cleaned = cleaned.translate(self._SPACED_CHARACTERS)
        return self._WHITESPACE_RE.sub(" ", cleaned).strip()

    def strip_leading_ordinal(self, text: str | None) -> str:
        """Remove at most one leading ordinal token.

        Priority order: roman numerals (`III`, `iv.`), digit runs (`12`, `3.`),
        then one letter followed by a period (`A.`). The token must be followed
        by whitespace or end of text, so words such as `Introducción` stay intact.
        """

        if not text:
            return ""
        stripped = text.strip()
        for pattern in self._ORDINAL_PATTERNS:
            match = pattern.match(stripped)
            if match is not None:
                return stripped[match.end():].strip()
        return stripped
