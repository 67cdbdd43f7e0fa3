"""Result storage for subdivision runs.

Responsibilities:
- Serialize chapter outcomes into one deterministic JSON document.
- Keep successful chapters and tagged failures side by side, in outline order.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from ..models.datatypes import ChapterIndexEntry, ChapterOutcome


class ResultStore:
    """Filesystem-backed writer for subdivision results."""

    def __init__(self, path: Path) -> None:
        """Initialize the store with the output JSON path."""

        self.path = path

    @staticmethod
    def build_payload(
        outcomes: Sequence[tuple[int, ChapterOutcome]],
        outline: Sequence[ChapterIndexEntry],
    ) -> dict[str, object]:
        """Build the `{"chapters": [...], "failures": [...]}` result payload.

        Args:
            outcomes: `(chapter_index, outcome)` pairs with 1-based indices.
            outline: Outline the indices refer to, used to label failures.
        """

        chapters: list[dict[str, object]] = []
        failures: list[dict[str, object]] = []
        for chapter_index, outcome in outcomes:
            if outcome.ok and outcome.result is not None:
                chapter_payload = outcome.result.as_payload()
                chapter_payload["index"] = chapter_index
                chapters.append(chapter_payload)
                continue
            title = outline[chapter_index - 1].title if 0 < chapter_index <= len(outline) else ""
            failures.append(
                {
                    "index": chapter_index,
                    "title": title,
                    "kind": outcome.error.kind if outcome.error is not None else "",
                    "detail": outcome.error.detail if outcome.error is not None else "",
                }
            )
        return {"chapters": chapters, "failures": failures}

    @staticmethod
    def render(
        outcomes: Sequence[tuple[int, ChapterOutcome]],
        outline: Sequence[ChapterIndexEntry],
    ) -> str:
        """Render the result payload as deterministic JSON text."""

        return json.dumps(
            ResultStore.build_payload(outcomes, outline),
            ensure_ascii=False,
            indent=2,
            sort_keys=True,
        )

    def save(
        self,
        outcomes: Sequence[tuple[int, ChapterOutcome]],
        outline: Sequence[ChapterIndexEntry],
    ) -> Path:
        """Write the result payload and return the final path."""

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(self.render(outcomes, outline), encoding="utf-8")
        return self.path
