"""Domain exceptions and failure kinds for pipeline and CLI diagnostics."""

from __future__ import annotations


class ChapterErrorKind:
    """Failure kinds carried by `ChapterError.kind`."""

    INVALID_INPUT = "invalid_input"
    CONTENT_NOT_FOUND = "content_not_found"
    MALFORMED_AI_RESPONSE = "malformed_ai_response"
    TRANSIENT_COLLABORATOR_FAILURE = "transient_collaborator_failure"
    CANCELLED = "cancelled"
    UNEXPECTED_ERROR = "unexpected_error"


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint
