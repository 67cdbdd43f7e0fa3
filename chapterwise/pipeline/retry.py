"""Bounded exponential backoff for transient AI collaborator failures."""

from __future__ import annotations

from dataclasses import dataclass
import time
from typing import Callable


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry budget and backoff schedule for chat completion calls.

    Attributes:
        max_attempts: Total attempts including the first call.
        base_delay_seconds: Delay before the second attempt.
        max_delay_seconds: Upper bound for any single delay.
        sleeper: Sleep function, replaceable in tests.
    """

    max_attempts: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0
    sleeper: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        """Validate retry budget values."""

        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1.")
        if self.base_delay_seconds < 0 or self.max_delay_seconds < 0:
            raise ValueError("retry delays must not be negative.")

    def delay_for(self, attempt: int) -> float:
        """Return the delay after failed `attempt` (1-based)."""

        return min(self.max_delay_seconds, self.base_delay_seconds * (2 ** (attempt - 1)))

    @staticmethod
    def is_retryable(exc: BaseException) -> bool:
        """Return whether an exception from the collaborator may succeed on retry.

        Errors exposing `is_transient` (such as `OpenAIProviderError`) decide for
        themselves; any other exception is treated as transient.
        """

        transient = getattr(exc, "is_transient", None)
        if isinstance(transient, bool):
            return transient
        return True
