"""Bounded worker-pool fan-out across outline chapters.

Chapters are independent, so each outline entry is paired with its successor
and handed to the orchestrator on a thread pool sized to the AI backend's rate
limit. Outcomes come back in outline order regardless of completion order.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from threading import Event

from ..llm.chat import ChatCompleter
from ..models.datatypes import ChapterIndexEntry, ChapterOutcome, DocumentPage
from .orchestrator import ChapterSubdivisionOrchestrator


def chapter_pairs(
    outline: Sequence[ChapterIndexEntry],
) -> list[tuple[ChapterIndexEntry, ChapterIndexEntry | None]]:
    """Pair every outline entry with the entry that follows it."""

    return [
        (entry, outline[position + 1] if position + 1 < len(outline) else None)
        for position, entry in enumerate(outline)
    ]


def subdivide_outline(
    orchestrator: ChapterSubdivisionOrchestrator,
    pages: Sequence[DocumentPage],
    outline: Sequence[ChapterIndexEntry],
    chat: ChatCompleter,
    max_workers: int = 4,
    selected_indices: Sequence[int] | None = None,
    cancel_event: Event | None = None,
    on_outcome: Callable[[int, ChapterOutcome], None] | None = None,
) -> list[tuple[int, ChapterOutcome]]:
    """Subdivide outline chapters concurrently.

    Args:
        orchestrator: Stateless per-chapter orchestrator shared by workers.
        pages: Document pages in original order.
        outline: Ordered outline entries.
        chat: Chat collaborator; must be safe to call from several threads.
        max_workers: Upper bound on concurrent AI calls.
        selected_indices: Optional 1-based chapter indices to process; defaults to all.
        cancel_event: Optional event that aborts chapters not yet past their AI call.
        on_outcome: Optional callback invoked as each chapter finishes.

    Returns:
        `(chapter_index, outcome)` pairs in outline order.
    """

    if max_workers < 1:
        raise ValueError("max_workers must be at least 1.")

    pairs = chapter_pairs(outline)
    indices = (
        list(selected_indices)
        if selected_indices is not None
        else list(range(1, len(pairs) + 1))
    )
    invalid = [index for index in indices if not 1 <= index <= len(pairs)]
    if invalid:
        raise ValueError(f"Chapter index out of range: {invalid[0]}.")

    def _process(chapter_index: int) -> ChapterOutcome:
        current, upcoming = pairs[chapter_index - 1]
        outcome = orchestrator.subdivide(
            pages=pages,
            current_chapter=current,
            next_chapter=upcoming,
            chat=chat,
            cancel_event=cancel_event,
        )
        if on_outcome is not None:
            on_outcome(chapter_index, outcome)
        return outcome

    if not indices:
        return []
    with ThreadPoolExecutor(max_workers=min(max_workers, len(indices))) as executor:
        futures = [(index, executor.submit(_process, index)) for index in indices]
        try:
            return [(index, future.result()) for index, future in futures]
        except KeyboardInterrupt:
            # Release queued and backing-off workers before the pool joins them.
            if cancel_event is not None:
                cancel_event.set()
            raise
