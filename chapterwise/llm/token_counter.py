"""Token counting collaborators used to size chapters.

Responsibilities:
- Define the `TokenCounter` protocol consumed by the orchestrator.
- Provide a `tiktoken`-backed counter and a dependency-free character estimate.
"""

from __future__ import annotations

from threading import Lock
from typing import Protocol

import tiktoken


class TokenCounter(Protocol):
    """Protocol for approximate tokenizers."""

    def count(self, text: str) -> int:
        """Return the approximate token count for `text`."""


class TiktokenTokenCounter:
    """Count tokens with a `tiktoken` encoding plus fixed per-message overhead.

    The encoding is loaded lazily on first use; `tiktoken` may download the
    encoding file at that point.
    """

    def __init__(self, encoding_name: str = "cl100k_base", base_tokens: int = 3) -> None:
        """Initialize encoding name and fixed token overhead."""

        if base_tokens < 0:
            raise ValueError("base_tokens must not be negative.")
        self.encoding_name = encoding_name
        self.base_tokens = base_tokens
        self._encoding: tiktoken.Encoding | None = None
        self._lock = Lock()

    def count(self, text: str) -> int:
        """Return encoded token length of `text` plus the base overhead."""

        encoding = self._load_encoding()
        return self.base_tokens + len(encoding.encode(text or "", disallowed_special=()))

    def _load_encoding(self) -> tiktoken.Encoding:
        """Load and memoize the configured encoding."""

        with self._lock:
            if self._encoding is None:
                self._encoding = tiktoken.get_encoding(self.encoding_name)
            return self._encoding


class ApproximateTokenCounter:
    """Estimate tokens as one token per `chars_per_token` characters."""

    def __init__(self, chars_per_token: int = 4) -> None:
        """Initialize the character-to-token ratio."""

        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be a positive integer.")
        self.chars_per_token = chars_per_token

    def count(self, text: str) -> int:
        """Return `len(text) // chars_per_token`, zero for blank text."""

        if not text or not text.strip():
            return 0
        return len(text) // self.chars_per_token
