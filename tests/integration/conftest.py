"""Integration-test fixtures for deterministic provider and credential behavior."""

from __future__ import annotations

import json
import os
import re

import pytest

from chapterwise.llm.openai_client import OpenAIChatClient


_TITLE_RE = re.compile(r"^CHAPTER TITLE: (?P<title>.*)$", re.MULTILINE)


class InMemoryCredentialStore:
    """Simple in-memory credential store used for CLI tests."""

    def __init__(self, initial_api_key: str | None = None) -> None:
        """Initialize the store with an optional pre-seeded API key."""

        self._api_key = initial_api_key

    def is_available(self) -> bool:
        """Return availability flag expected by the CLI status command."""

        return True

    def get_api_key(self) -> str | None:
        """Return currently stored API key value."""

        return self._api_key

    def set_api_key(self, api_key: str) -> None:
        """Persist a normalized API key value."""

        self._api_key = api_key.strip()

    def clear_api_key(self) -> bool:
        """Clear API key and return whether one existed."""

        existed = self._api_key is not None
        self._api_key = None
        return existed


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop provider and Chapterwise environment variables for deterministic runs."""

    for key in list(os.environ):
        if key == "OPENAI_API_KEY" or key.startswith("CHAPTERWISE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def credential_store(monkeypatch: pytest.MonkeyPatch) -> InMemoryCredentialStore:
    """Replace secure storage with an empty in-memory store."""

    store = InMemoryCredentialStore()
    monkeypatch.setattr("chapterwise.cli.create_credential_store", lambda: store)
    return store


@pytest.fixture(autouse=True)
def chat_calls(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, object]]:
    """Mock OpenAI chat calls with schema-valid two-part subdivisions."""

    calls: list[dict[str, object]] = []

    def _mock_chat_completion(self: OpenAIChatClient, **kwargs: object) -> str:
        """Echo the prompted chapter title back in a valid response."""

        calls.append({"api_key": self.api_key, **kwargs})
        match = _TITLE_RE.search(str(kwargs.get("user_prompt", "")))
        title = match.group("title") if match else ""
        return json.dumps(
            {
                "capitulo": {
                    "titulo": title,
                    "Total_Subcapitulos": 2,
                    "subtemas": [
                        {"title": "Part 1", "texto": "first", "descripcion": "d1"},
                        {"title": "Part 2", "texto": "second", "descripcion": "d2"},
                    ],
                }
            }
        )

    monkeypatch.setattr(OpenAIChatClient, "chat_completion_text", _mock_chat_completion)
    return calls
