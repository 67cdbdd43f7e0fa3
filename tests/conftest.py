"""Shared pytest fixtures for the full Chapterwise test suite."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Sequence

import pytest

from chapterwise.models.datatypes import ChapterIndexEntry, DocumentPage


class ScriptedChat:
    """Chat collaborator returning scripted replies and recording prompts.

    Each scripted item is either a response string or an exception instance to
    raise. The last item repeats once the script is exhausted.
    """

    def __init__(self, script: Sequence[str | BaseException]) -> None:
        """Initialize the script and an empty prompt log."""

        self._script = list(script)
        self.prompts: list[str] = []

    def complete(self, prompt: str) -> str:
        """Record the prompt and return or raise the next scripted item."""

        self.prompts.append(prompt)
        position = min(len(self.prompts), len(self._script)) - 1
        item = self._script[position]
        if isinstance(item, BaseException):
            raise item
        return item


def build_subdivision_response(
    title: str,
    texts: Sequence[str] = ("first part", "second part"),
    declared_count: int | None = None,
) -> str:
    """Build a schema-valid subdivision response payload."""

    return json.dumps(
        {
            "capitulo": {
                "titulo": title,
                "Total_Subcapitulos": len(texts) if declared_count is None else declared_count,
                "subtemas": [
                    {
                        "title": f"Part {position}",
                        "texto": text,
                        "descripcion": f"Description {position}",
                    }
                    for position, text in enumerate(texts, start=1)
                ],
            }
        },
        ensure_ascii=False,
    )


@pytest.fixture
def example_pages() -> list[DocumentPage]:
    """Provide the three-page Historia/Geografia document."""

    return [
        DocumentPage(page_number=1, lines=("Intro",)),
        DocumentPage(page_number=2, lines=("CAP I: Historia", "t1", "t2")),
        DocumentPage(page_number=3, lines=("CAP II: Geografia", "t3")),
    ]


@pytest.fixture
def example_outline() -> list[ChapterIndexEntry]:
    """Provide the outline matching `example_pages`."""

    return [
        ChapterIndexEntry(title="CAP I: Historia", start_page=2, end_page=2),
        ChapterIndexEntry(title="CAP II: Geografia", start_page=3, end_page=3),
    ]


@pytest.fixture
def scripted_chat() -> Callable[[Sequence[str | BaseException]], ScriptedChat]:
    """Provide a factory for scripted chat collaborators."""

    return ScriptedChat


@pytest.fixture
def subdivision_response() -> Callable[..., str]:
    """Provide the schema-valid response builder."""

    return build_subdivision_response


@pytest.fixture
def document_json_path(tmp_path: Path) -> Path:
    """Write the example document as loader-compatible JSON and return its path."""

    path = tmp_path / "document.json"
    path.write_text(
        json.dumps(
            {
                "pages": [
                    {"page_number": 1, "lines": ["Intro"]},
                    {"page_number": 2, "lines": ["CAP I: Historia", "t1", "t2"]},
                    {"page_number": 3, "lines": ["CAP II: Geografia", "t3"]},
                ],
                "outline": [
                    {"title": "CAP I: Historia", "start_page": 2, "end_page": 2},
                    {"title": "CAP II: Geografia", "start_page": 3, "end_page": 3},
                ],
            },
            ensure_ascii=False,
        ),
        encoding="utf-8",
    )
    return path
