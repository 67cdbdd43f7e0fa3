"""Chat completion collaborators for the subdivision stage.

Responsibilities:
- Define the one-turn `ChatCompleter` protocol the orchestrator depends on.
- Provide an OpenAI-backed implementation with provider/model metadata.
"""

from __future__ import annotations

from typing import Protocol

from .openai_client import OpenAIChatClient
from .prompts import PromptLibrary
from .rate_limiter import RateLimiter


class ChatCompleter(Protocol):
    """Protocol for one request/response completion turn."""

    def complete(self, prompt: str) -> str:
        """Return the model response text for `prompt`."""


class OpenAIChatCompleter:
    """OpenAI-backed chat completer using the subdivision system prompt."""

    def __init__(
        self,
        model: str = "gpt-4.1-mini",
        api_key: str | None = None,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 60.0,
        rate_limiter: RateLimiter | None = None,
        temperature: float = 0.0,
    ) -> None:
        """Initialize completer settings and OpenAI client dependencies."""

        self.model = model
        self.temperature = temperature
        self.client = OpenAIChatClient(
            api_key=api_key,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            rate_limiter=rate_limiter,
        )
        self.prompts = PromptLibrary()

    def complete(self, prompt: str) -> str:
        """Send one chat-completions turn and return the assistant text."""

        return self.client.chat_completion_text(
            model=self.model,
            system_prompt=self.prompts.subdivision_system_prompt(),
            user_prompt=prompt,
            temperature=self.temperature,
        )
