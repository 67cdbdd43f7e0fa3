"""Core datatypes shared across Chapterwise modules.

Responsibilities:
- Represent immutable records exchanged between extraction, planning, and AI stages.
- Provide explicit typing and JSON-ready payloads for result serialization.

Key types:
- `ChapterIndexEntry`, `DocumentPage`, `ChapterBoundary`, `SubdivisionPlan`,
  `SubchapterDraft`, `ParsedChapter`, `ChapterResult`, `ChapterError`,
  and `ChapterOutcome`.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class ChapterIndexEntry:
    """One outline entry produced by the upstream outline stage.

    Attributes:
        title: Chapter title as printed in the outline.
        start_page: 1-based page where the chapter starts.
        end_page: Declared last page; may be stale relative to the page stream.
    """

    title: str
    start_page: int
    end_page: int


@dataclass(frozen=True, slots=True)
class DocumentPage:
    """A numbered page of OCR text lines.

    Attributes:
        page_number: Unique page number within the document.
        lines: Text lines in reading order.
    """

    page_number: int
    lines: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class ChapterBoundary:
    """Inclusive page range used for page-scoped extraction.

    `start_page <= end_page` is expected for well-formed outlines but not enforced.
    """

    start_page: int
    end_page: int


@dataclass(frozen=True, slots=True)
class SubdivisionPlan:
    """Target number of subchapters requested from the model."""

    target_count: int


@dataclass(frozen=True, slots=True)
class SubchapterDraft:
    """Subchapter as declared by the model response.

    Attributes:
        title: Model-generated subchapter title.
        text: Model echo of the subchapter text; informational only.
        description: Short model-generated description.
    """

    title: str
    text: str
    description: str


@dataclass(frozen=True, slots=True)
class ParsedChapter:
    """Validated model response payload for one chapter."""

    title: str
    declared_count: int | None
    subchapters: tuple[SubchapterDraft, ...]


@dataclass(frozen=True, slots=True)
class ChapterResult:
    """Assembled subdivision result for one chapter.

    Attributes:
        title: Chapter title from the model response (outline title as fallback).
        full_text: Title-scoped, locally extracted chapter text.
        token_count: Token count recomputed from `full_text`.
        processing_time_seconds: Rounded wall-clock seconds spent awaiting the model.
        start_page: Outline start page.
        end_page: Next chapter start minus one, or the declared outline end page.
        subchapters: Ordered subchapter drafts from the model.
        target_count: Subchapter count requested by the planner.
        declared_count: `Total_Subcapitulos` reported by the model, if any.
    """

    title: str
    full_text: str
    token_count: int
    processing_time_seconds: int
    start_page: int
    end_page: int
    subchapters: tuple[SubchapterDraft, ...]
    target_count: int
    declared_count: int | None = None

    def as_payload(self) -> dict[str, object]:
        """Return a JSON-serializable payload for result artifacts."""

        return {
            "title": self.title,
            "full_text": self.full_text,
            "token_count": self.token_count,
            "processing_time_seconds": self.processing_time_seconds,
            "start_page": self.start_page,
            "end_page": self.end_page,
            "target_count": self.target_count,
            "declared_count": self.declared_count,
            "subchapters": [
                {
                    "title": draft.title,
                    "text": draft.text,
                    "description": draft.description,
                }
                for draft in self.subchapters
            ],
        }


@dataclass(frozen=True, slots=True)
class ChapterError:
    """Failure descriptor for one chapter run.

    Attributes:
        kind: One of the `ChapterErrorKind` constants.
        detail: Short human-readable failure detail.
    """

    kind: str
    detail: str


@dataclass(frozen=True, slots=True)
class ChapterOutcome:
    """Tagged result of one orchestrator invocation: a result or an error."""

    result: ChapterResult | None = None
    error: ChapterError | None = None

    @property
    def ok(self) -> bool:
        """Return whether the outcome carries a chapter result."""

        return self.result is not None

    @classmethod
    def success(cls, result: ChapterResult) -> ChapterOutcome:
        """Build a successful outcome."""

        return cls(result=result)

    @classmethod
    def failure(cls, kind: str, detail: str) -> ChapterOutcome:
        """Build a failed outcome with an error kind and detail."""

        return cls(error=ChapterError(kind=kind, detail=detail))
