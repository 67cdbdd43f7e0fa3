"""JSON document loading for pages and chapter outlines.

Responsibilities:
- Read a UTF-8 JSON document holding page lines and a chapter outline.
- Accept both snake_case keys and the legacy camel-case/Spanish keys.
- Map every structural problem to `PipelineStageError(stage="load")`.

Expected shape:

    {
      "pages": [{"page_number": 1, "lines": ["..."]}],
      "outline": [{"title": "...", "start_page": 1, "end_page": 3}]
    }
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
from typing import Any, Mapping, Sequence

from ..errors import PipelineStageError
from ..models.datatypes import ChapterIndexEntry, DocumentPage
from ..parsing import normalize_optional_string, parse_strict_int


_PAGE_NUMBER_KEYS = ("page_number", "pageNumber")
_PAGE_LINES_KEYS = ("lines", "linesText")
_TITLE_KEYS = ("title", "titulo")
_START_PAGE_KEYS = ("start_page", "paginaDe")
_END_PAGE_KEYS = ("end_page", "paginaA")

_LOAD_HINT = (
    "Provide a JSON object with `pages` (page_number, lines) and "
    "`outline` (title, start_page, end_page)."
)


@dataclass(frozen=True, slots=True)
class LoadedDocument:
    """Pages and outline read from one document file."""

    pages: tuple[DocumentPage, ...]
    outline: tuple[ChapterIndexEntry, ...]


class DocumentLoader:
    """Load `LoadedDocument` values from JSON files or decoded payloads."""

    def load(self, path: Path) -> LoadedDocument:
        """Read and validate a JSON document file."""

        try:
            raw_text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise PipelineStageError(
                stage="load",
                detail=f"Document file not found: `{path}`.",
                hint="Pass an existing document JSON path.",
            ) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise PipelineStageError(
                stage="load",
                detail=f"Failed to read document `{path}`: {exc}",
                hint="Verify the file is UTF-8 text and readable.",
            ) from exc

        try:
            payload = json.loads(raw_text)
        except json.JSONDecodeError as exc:
            raise PipelineStageError(
                stage="load",
                detail=f"Document `{path}` is not valid JSON: {exc.msg} (line {exc.lineno}).",
                hint=_LOAD_HINT,
            ) from exc
        return self.from_payload(payload, source_label=f"Document `{path}`")

    def from_payload(self, payload: Any, source_label: str = "Document") -> LoadedDocument:
        """Validate a decoded JSON payload and build typed pages and outline."""

        if not isinstance(payload, Mapping):
            raise self._error(f"{source_label} must contain a top-level object.")

        raw_pages = payload.get("pages")
        if not isinstance(raw_pages, list):
            raise self._error(f"{source_label} field `pages` must be a list.")
        raw_outline = payload.get("outline")
        if raw_outline is None:
            raw_outline = []
        if not isinstance(raw_outline, list):
            raise self._error(f"{source_label} field `outline` must be a list.")

        pages = tuple(
            self._page(item, f"{source_label} pages[{position}]")
            for position, item in enumerate(raw_pages)
        )
        seen: set[int] = set()
        for page in pages:
            if page.page_number in seen:
                raise self._error(
                    f"{source_label} contains duplicate page number `{page.page_number}`."
                )
            seen.add(page.page_number)

        outline = tuple(
            self._outline_entry(item, f"{source_label} outline[{position}]")
            for position, item in enumerate(raw_outline)
        )
        return LoadedDocument(pages=pages, outline=outline)

    def _page(self, item: Any, label: str) -> DocumentPage:
        """Build one `DocumentPage` from a payload item."""

        if not isinstance(item, Mapping):
            raise self._error(f"{label} must be an object.")
        page_number = self._required_int(item, _PAGE_NUMBER_KEYS, label)
        raw_lines = self._first_present(item, _PAGE_LINES_KEYS)
        if raw_lines is None:
            raw_lines = []
        if not isinstance(raw_lines, list) or not all(
            isinstance(line, str) for line in raw_lines
        ):
            raise self._error(f"{label} field `lines` must be a list of strings.")
        return DocumentPage(page_number=page_number, lines=tuple(raw_lines))

    def _outline_entry(self, item: Any, label: str) -> ChapterIndexEntry:
        """Build one `ChapterIndexEntry` from a payload item."""

        if not isinstance(item, Mapping):
            raise self._error(f"{label} must be an object.")
        title = normalize_optional_string(self._first_present(item, _TITLE_KEYS))
        if title is None:
            raise self._error(f"{label} requires a non-empty `title`.")
        start_page = self._required_int(item, _START_PAGE_KEYS, label)
        if self._first_present(item, _END_PAGE_KEYS) is None:
            end_page = start_page
        else:
            end_page = self._required_int(item, _END_PAGE_KEYS, label)
        return ChapterIndexEntry(title=title, start_page=start_page, end_page=end_page)

    def _required_int(self, item: Mapping[str, Any], keys: Sequence[str], label: str) -> int:
        """Read a required integer field under any of its accepted key names."""

        raw_value = self._first_present(item, keys)
        parsed = parse_strict_int(raw_value)
        if parsed is None:
            raise self._error(f"{label} field `{keys[0]}` must be an integer.")
        return parsed

    @staticmethod
    def _first_present(item: Mapping[str, Any], keys: Sequence[str]) -> Any:
        """Return the first non-`None` value stored under one of `keys`."""

        for key in keys:
            value = item.get(key)
            if value is not None:
                return value
        return None

    @staticmethod
    def _error(detail: str) -> PipelineStageError:
        """Build a load-stage error with the shared document-shape hint."""

        return PipelineStageError(stage="load", detail=detail, hint=_LOAD_HINT)
