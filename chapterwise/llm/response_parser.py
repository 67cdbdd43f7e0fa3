"""Strict parsing of chapter subdivision responses.

Responsibilities:
- Strip Markdown fence artifacts and a leading `json` language tag.
- Deserialize the response and validate it against the subdivision schema.
- Fail closed: partial or mistyped structures are reported, never coerced.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any

from ..models.datatypes import ParsedChapter, SubchapterDraft


STATUS_OK = "ok"
STATUS_MALFORMED_JSON = "malformed_json"
STATUS_MISSING_CHAPTER = "missing_chapter"


@dataclass(frozen=True, slots=True)
class ResponseParseResult:
    """Result of parsing one model response.

    Attributes:
        chapter: Parsed chapter payload when `status` is `ok`.
        status: `ok`, `malformed_json`, or `missing_chapter`.
        detail: Short diagnostic for failed parses.
    """

    chapter: ParsedChapter | None
    status: str
    detail: str = ""

    @property
    def ok(self) -> bool:
        """Return whether parsing succeeded."""

        return self.status == STATUS_OK and self.chapter is not None


class _SchemaViolation(ValueError):
    """Raised internally when a decoded payload violates the response schema."""


class AIResponseParser:
    """Parse and validate `{"capitulo": {...}}` subdivision responses."""

    def clean(self, raw: str | None) -> str:
        """Strip fences and a leading `json` tag from a raw model response."""

        text = (raw or "").strip().strip("`")
        if text[:4].lower() == "json":
            text = text[4:]
        return text.strip()

    def parse(self, raw: str | None) -> ResponseParseResult:
        """Parse a raw response into a validated `ParsedChapter`."""

        cleaned = self.clean(raw)
        try:
            payload = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            return ResponseParseResult(
                chapter=None,
                status=STATUS_MALFORMED_JSON,
                detail=f"Response is not valid JSON: {exc.msg} (line {exc.lineno}).",
            )

        if not isinstance(payload, dict):
            return ResponseParseResult(
                chapter=None,
                status=STATUS_MALFORMED_JSON,
                detail="Response JSON root must be an object.",
            )

        chapter_payload = payload.get("capitulo")
        if chapter_payload is None:
            return ResponseParseResult(
                chapter=None,
                status=STATUS_MISSING_CHAPTER,
                detail="Response is missing the `capitulo` object.",
            )

        try:
            chapter = self._chapter_from_payload(chapter_payload)
        except _SchemaViolation as exc:
            return ResponseParseResult(
                chapter=None,
                status=STATUS_MALFORMED_JSON,
                detail=str(exc),
            )
        return ResponseParseResult(chapter=chapter, status=STATUS_OK)

    def _chapter_from_payload(self, payload: Any) -> ParsedChapter:
        """Validate the `capitulo` object and convert it to a `ParsedChapter`."""

        if not isinstance(payload, dict):
            raise _SchemaViolation("`capitulo` must be an object.")

        title = self._optional_string(payload, "titulo", "capitulo.titulo")
        declared_count = self._optional_count(payload.get("Total_Subcapitulos"))

        raw_subchapters = payload.get("subtemas")
        if raw_subchapters is None:
            raw_subchapters = []
        if not isinstance(raw_subchapters, list):
            raise _SchemaViolation("`capitulo.subtemas` must be a list.")

        subchapters = tuple(
            self._subchapter_from_payload(item, position)
            for position, item in enumerate(raw_subchapters)
        )
        return ParsedChapter(
            title=title,
            declared_count=declared_count,
            subchapters=subchapters,
        )

    def _subchapter_from_payload(self, payload: Any, position: int) -> SubchapterDraft:
        """Validate one `subtemas` item."""

        label = f"capitulo.subtemas[{position}]"
        if not isinstance(payload, dict):
            raise _SchemaViolation(f"`{label}` must be an object.")
        return SubchapterDraft(
            title=self._optional_string(payload, "title", f"{label}.title"),
            text=self._optional_string(payload, "texto", f"{label}.texto"),
            description=self._optional_string(payload, "descripcion", f"{label}.descripcion"),
        )

    @staticmethod
    def _optional_string(payload: dict[str, Any], key: str, label: str) -> str:
        """Return a string field, `""` when absent or null."""

        value = payload.get(key)
        if value is None:
            return ""
        if not isinstance(value, str):
            raise _SchemaViolation(f"`{label}` must be a string.")
        return value

    @staticmethod
    def _optional_count(value: Any) -> int | None:
        """Return `Total_Subcapitulos` as an int, accepting integral strings."""

        if value is None:
            return None
        if isinstance(value, bool):
            raise _SchemaViolation("`capitulo.Total_Subcapitulos` must be an integer.")
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        raise _SchemaViolation("`capitulo.Total_Subcapitulos` must be an integer.")
