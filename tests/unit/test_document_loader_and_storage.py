"""Unit tests for JSON document loading and result storage."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from chapterwise.errors import ChapterErrorKind, PipelineStageError
from chapterwise.io.document_loader import DocumentLoader
from chapterwise.io.storage import ResultStore
from chapterwise.models.datatypes import (
    ChapterIndexEntry,
    ChapterOutcome,
    ChapterResult,
    DocumentPage,
    SubchapterDraft,
)


def test_loader_reads_pages_and_outline(document_json_path: Path) -> None:
    """The loader should build typed pages and outline entries in file order."""

    loaded = DocumentLoader().load(document_json_path)

    assert loaded.pages[1] == DocumentPage(2, ("CAP I: Historia", "t1", "t2"))
    assert [entry.title for entry in loaded.outline] == ["CAP I: Historia", "CAP II: Geografia"]
    assert loaded.outline[1] == ChapterIndexEntry("CAP II: Geografia", 3, 3)


def test_loader_accepts_legacy_keys_and_defaults_end_page() -> None:
    """Camel-case and Spanish keys should load; a missing end page defaults to the start."""

    loaded = DocumentLoader().from_payload(
        {
            "pages": [{"pageNumber": "4", "linesText": ["Capitulo 1"]}, {"pageNumber": 5}],
            "outline": [
                {"titulo": " Capitulo 1 ", "paginaDe": 4, "paginaA": 4.0},
                {"title": "Capitulo 2", "start_page": 5},
            ],
        }
    )

    assert loaded.pages == (DocumentPage(4, ("Capitulo 1",)), DocumentPage(5, ()))
    assert loaded.outline == (
        ChapterIndexEntry("Capitulo 1", 4, 4),
        ChapterIndexEntry("Capitulo 2", 5, 5),
    )


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"outline": []},
        {"pages": {}, "outline": []},
        {"pages": [{"lines": ["x"]}]},
        {"pages": [{"page_number": True}]},
        {"pages": [{"page_number": 1, "lines": "not a list"}]},
        {"pages": [{"page_number": 1}, {"page_number": 1}]},
        {"pages": [], "outline": [{"start_page": 1}]},
        {"pages": [], "outline": [{"title": "A", "start_page": "one"}]},
        {"pages": [], "outline": "A"},
    ],
)
def test_loader_rejects_malformed_documents(payload: object) -> None:
    """Structural problems should raise load-stage errors."""

    with pytest.raises(PipelineStageError) as exc_info:
        DocumentLoader().from_payload(payload)

    assert exc_info.value.stage == "load"
    assert exc_info.value.hint


def test_loader_maps_file_errors_to_load_stage(tmp_path: Path) -> None:
    """Missing files and invalid JSON should raise load-stage errors."""

    with pytest.raises(PipelineStageError, match="not found"):
        DocumentLoader().load(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    with pytest.raises(PipelineStageError, match="not valid JSON") as exc_info:
        DocumentLoader().load(broken)
    assert exc_info.value.stage == "load"


def test_result_store_writes_chapters_and_failures(tmp_path: Path) -> None:
    """Successful chapters and tagged failures should be written side by side."""

    outline = [
        ChapterIndexEntry("Uno", 1, 1),
        ChapterIndexEntry("Dos", 2, 2),
    ]
    result = ChapterResult(
        title="Uno",
        full_text="Uno\ntexto",
        token_count=5,
        processing_time_seconds=2,
        start_page=1,
        end_page=1,
        subchapters=(SubchapterDraft(title="Parte", text="texto", description="desc"),),
        target_count=1,
        declared_count=1,
    )
    outcomes = [
        (1, ChapterOutcome.success(result)),
        (2, ChapterOutcome.failure(ChapterErrorKind.MALFORMED_AI_RESPONSE, "bad json")),
    ]

    path = ResultStore(tmp_path / "nested" / "result.json").save(outcomes, outline)
    payload = json.loads(path.read_text(encoding="utf-8"))

    assert payload["chapters"] == [
        {
            "declared_count": 1,
            "end_page": 1,
            "full_text": "Uno\ntexto",
            "index": 1,
            "processing_time_seconds": 2,
            "start_page": 1,
            "subchapters": [{"description": "desc", "text": "texto", "title": "Parte"}],
            "target_count": 1,
            "title": "Uno",
            "token_count": 5,
        }
    ]
    assert payload["failures"] == [
        {"detail": "bad json", "index": 2, "kind": "malformed_ai_response", "title": "Dos"}
    ]


def test_result_store_render_is_deterministic_and_keeps_unicode() -> None:
    """Rendered JSON should keep non-ASCII text and sorted keys."""

    outcomes = [(1, ChapterOutcome.failure(ChapterErrorKind.CANCELLED, "cancelado"))]
    outline = [ChapterIndexEntry("Introducción", 1, 1)]

    rendered = ResultStore.render(outcomes, outline)

    assert "Introducción" in rendered
    assert rendered == ResultStore.render(outcomes, outline)
    assert rendered.index('"chapters"') < rendered.index('"failures"')
