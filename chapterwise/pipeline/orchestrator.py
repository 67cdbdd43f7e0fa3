"""Chapter subdivision orchestration.

Responsibilities:
- Drive one chapter through range resolution, extraction, planning, prompting,
  one AI completion, response validation, and result assembly.
- Report every failure as a tagged `ChapterOutcome` instead of raising.

Key types:
- `ChapterSubdivisionOrchestrator`: stateless per-chapter pipeline.

The model only ever sees page-scoped text; the assembled result always carries
the title-scoped text and a token count recomputed from it.
"""

from __future__ import annotations

from collections.abc import Sequence
from threading import Event
from time import monotonic
from typing import Callable

from ..errors import ChapterErrorKind
from ..llm.chat import ChatCompleter
from ..llm.prompts import PromptLibrary
from ..llm.response_parser import AIResponseParser
from ..llm.token_counter import TokenCounter
from ..models.datatypes import (
    ChapterIndexEntry,
    ChapterOutcome,
    ChapterResult,
    DocumentPage,
    ParsedChapter,
)
from ..telemetry.logger import RunLogger
from ..text.extractor import ChapterContentExtractor
from ..text.page_range import PageRangeResolver, last_page_number
from ..text.subdivision_planner import SubdivisionPlanner
from .retry import RetryPolicy


class _ChapterFailure(Exception):
    """Internal signal carrying a failure kind out of a pipeline state."""

    def __init__(self, kind: str, detail: str) -> None:
        super().__init__(detail)
        self.kind = kind
        self.detail = detail


class ChapterSubdivisionOrchestrator:
    """Subdivide one chapter per call with injected collaborators."""

    STATES = (
        "validating",
        "range_resolved",
        "content_extracted",
        "planned",
        "prompt_built",
        "awaiting_ai",
        "response_parsed",
        "assembled",
    )

    def __init__(
        self,
        token_counter: TokenCounter,
        planner: SubdivisionPlanner | None = None,
        prompts: PromptLibrary | None = None,
        parser: AIResponseParser | None = None,
        extractor: ChapterContentExtractor | None = None,
        resolver: PageRangeResolver | None = None,
        retry_policy: RetryPolicy | None = None,
        run_logger: RunLogger | None = None,
        clock: Callable[[], float] = monotonic,
        unit_size: int = SubdivisionPlanner.DEFAULT_UNIT_SIZE,
        min_count: int = SubdivisionPlanner.DEFAULT_MIN_COUNT,
        max_count: int = SubdivisionPlanner.DEFAULT_MAX_COUNT,
    ) -> None:
        """Initialize stateless collaborators and planning bounds."""

        self.token_counter = token_counter
        self.planner = planner if planner is not None else SubdivisionPlanner()
        self.prompts = prompts if prompts is not None else PromptLibrary()
        self.parser = parser if parser is not None else AIResponseParser()
        self.extractor = extractor if extractor is not None else ChapterContentExtractor()
        self.resolver = resolver if resolver is not None else PageRangeResolver()
        self.retry_policy = retry_policy if retry_policy is not None else RetryPolicy()
        self._run_logger = run_logger
        self._clock = clock
        self.unit_size = unit_size
        self.min_count = min_count
        self.max_count = max_count

    def subdivide(
        self,
        *,
        pages: Sequence[DocumentPage],
        current_chapter: ChapterIndexEntry | None,
        next_chapter: ChapterIndexEntry | None,
        chat: ChatCompleter,
        cancel_event: Event | None = None,
    ) -> ChapterOutcome:
        """Run the full pipeline for `current_chapter` and never raise.

        Args:
            pages: Document pages in original order.
            current_chapter: Outline entry to process.
            next_chapter: Following outline entry, or `None` for the last chapter.
            chat: One-turn completion collaborator owned by this call.
            cancel_event: Optional event aborting the chapter before or between AI attempts.

        Returns:
            A successful outcome with a `ChapterResult`, or a failed outcome whose
            error kind is one of the `ChapterErrorKind` constants.
        """

        title = current_chapter.title if current_chapter is not None else ""
        try:
            result = self._run(pages, current_chapter, next_chapter, chat, cancel_event)
        except _ChapterFailure as failure:
            self._log_failure(title, failure.kind)
            return ChapterOutcome.failure(failure.kind, failure.detail)
        except Exception as exc:
            self._log_failure(title, ChapterErrorKind.UNEXPECTED_ERROR)
            return ChapterOutcome.failure(
                ChapterErrorKind.UNEXPECTED_ERROR,
                f"{type(exc).__name__}: {exc}",
            )
        return ChapterOutcome.success(result)

    def _run(
        self,
        pages: Sequence[DocumentPage],
        current_chapter: ChapterIndexEntry | None,
        next_chapter: ChapterIndexEntry | None,
        chat: ChatCompleter,
        cancel_event: Event | None,
    ) -> ChapterResult:
        """Execute every state in order, raising `_ChapterFailure` on failure."""

        if current_chapter is None:
            raise _ChapterFailure(ChapterErrorKind.INVALID_INPUT, "Current chapter is required.")
        if not pages:
            raise _ChapterFailure(ChapterErrorKind.INVALID_INPUT, "Document has no pages.")
        title = current_chapter.title
        self._log_state(title, "validating")

        boundary = self.resolver.resolve_range(
            current_chapter, next_chapter, last_page_number(pages)
        )
        self._log_state(
            title, "range_resolved", start_page=boundary.start_page, end_page=boundary.end_page
        )

        page_scoped_text = self.extractor.page_scoped_text(pages, boundary)
        if not page_scoped_text.strip():
            raise _ChapterFailure(
                ChapterErrorKind.CONTENT_NOT_FOUND,
                f"No pages found in range {boundary.start_page}-{boundary.end_page}.",
            )
        self._log_state(title, "content_extracted", chars=len(page_scoped_text))

        page_tokens = self.token_counter.count(page_scoped_text)
        plan = self.planner.plan(
            page_tokens,
            unit_size=self.unit_size,
            min_count=self.min_count,
            max_count=self.max_count,
        )
        self._log_state(title, "planned", tokens=page_tokens, target_count=plan.target_count)

        full_text = self.extractor.title_scoped_text(
            pages,
            title,
            next_chapter.title if next_chapter is not None else None,
        )

        prompt = self.prompts.subdivision_prompt(page_scoped_text, title, plan.target_count)
        self._log_state(title, "prompt_built", prompt_chars=len(prompt))

        self._log_state(title, "awaiting_ai")
        started_at = self._clock()
        raw_response = self._complete_with_retry(chat, prompt, title, cancel_event)
        elapsed_ms = (self._clock() - started_at) * 1000.0

        parsed = self._parse(raw_response)
        self._log_state(title, "response_parsed", subchapters=len(parsed.subchapters))

        if next_chapter is not None:
            end_page = next_chapter.start_page - 1
        else:
            end_page = current_chapter.end_page

        result = ChapterResult(
            title=parsed.title or title,
            full_text=full_text,
            token_count=self.token_counter.count(full_text),
            processing_time_seconds=round(elapsed_ms / 1000),
            start_page=current_chapter.start_page,
            end_page=end_page,
            subchapters=parsed.subchapters,
            target_count=plan.target_count,
            declared_count=parsed.declared_count,
        )
        self._log_state(title, "assembled", tokens=result.token_count)
        return result

    def _complete_with_retry(
        self,
        chat: ChatCompleter,
        prompt: str,
        title: str,
        cancel_event: Event | None,
    ) -> str:
        """Call the chat collaborator, retrying transient failures with backoff."""

        policy = self.retry_policy
        attempt = 1
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise _ChapterFailure(ChapterErrorKind.CANCELLED, "Chapter processing was cancelled.")
            try:
                return chat.complete(prompt)
            except Exception as exc:
                if attempt >= policy.max_attempts or not policy.is_retryable(exc):
                    raise _ChapterFailure(
                        ChapterErrorKind.TRANSIENT_COLLABORATOR_FAILURE,
                        f"AI completion failed after {attempt} attempt(s): "
                        f"{type(exc).__name__}: {exc}",
                    ) from exc
                delay = policy.delay_for(attempt)
                if self._run_logger is not None:
                    self._run_logger.log_retry(title, attempt, delay)
                if cancel_event is not None:
                    if cancel_event.wait(delay):
                        raise _ChapterFailure(
                            ChapterErrorKind.CANCELLED, "Chapter processing was cancelled."
                        ) from exc
                else:
                    policy.sleeper(delay)
                attempt += 1

    def _parse(self, raw_response: str) -> ParsedChapter:
        """Parse the model response or raise a malformed-response failure."""

        parsed = self.parser.parse(raw_response)
        if not parsed.ok or parsed.chapter is None:
            raise _ChapterFailure(
                ChapterErrorKind.MALFORMED_AI_RESPONSE,
                f"{parsed.status}: {parsed.detail}",
            )
        return parsed.chapter

    def _log_state(self, chapter_title: str, state: str, **context: object) -> None:
        """Log a state transition when a run logger is configured."""

        if self._run_logger is not None:
            self._run_logger.log_chapter_state(chapter_title, state, **context)

    def _log_failure(self, chapter_title: str, kind: str) -> None:
        """Log a terminal chapter failure when a run logger is configured."""

        if self._run_logger is not None:
            self._run_logger.log_stage_failure("subdivide", kind, chapter=chapter_title)
