"""Unit tests for the OpenAI chat client, chat completer, and rate limiter."""

from __future__ import annotations

import json

import pytest
import requests

from chapterwise.llm import openai_client as openai_http
from chapterwise.llm.chat import OpenAIChatCompleter
from chapterwise.llm.openai_client import OpenAIChatClient, OpenAIProviderError
from chapterwise.llm.prompts import PromptLibrary
from chapterwise.llm.rate_limiter import RateLimiter


class _MockRequestsResponse:
    """Minimal requests response mock for HTTP transport patching."""

    def __init__(self, *, payload: bytes, status_code: int = 200) -> None:
        """Initialize response with raw payload bytes and HTTP status."""

        self.content = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        """Raise HTTPError when the response status represents a failure."""

        if self.status_code >= 400:
            raise openai_http.requests.HTTPError(
                f"HTTP {self.status_code} error",
                response=self,
            )


class _RecordingRateLimiter:
    """Rate limiter stub recording acquired keys."""

    def __init__(self) -> None:
        """Initialize the key log."""

        self.keys: list[str] = []

    def acquire(self, key: str) -> None:
        """Record one acquired key."""

        self.keys.append(key)


def _chat_payload(content: object) -> bytes:
    """Serialize a chat-completions response body."""

    return json.dumps({"choices": [{"message": {"content": content}}]}).encode("utf-8")


def _client() -> OpenAIChatClient:
    """Build a client without request pacing."""

    return OpenAIChatClient(api_key="key", rate_limiter=RateLimiter(0.0))


def _call(client: OpenAIChatClient) -> str:
    """Issue one chat completion with fixed prompts."""

    return client.chat_completion_text(
        model="gpt-4.1-mini",
        system_prompt="system",
        user_prompt="user",
    )


def test_chat_client_posts_messages_and_returns_trimmed_text(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """The client should send system/user messages and return the assistant text."""

    captured: dict[str, object] = {}

    def _mock_post(url: str, **kwargs: object) -> _MockRequestsResponse:
        """Capture the request and return a successful payload."""

        captured["url"] = url
        captured.update(kwargs)
        return _MockRequestsResponse(payload=_chat_payload("  {\"capitulo\": {}}  "))

    monkeypatch.setattr("chapterwise.llm.openai_client.requests.post", _mock_post)

    client = OpenAIChatClient(
        api_key=" key ",
        base_url="https://example.test/v1/",
        timeout_seconds=12.5,
        rate_limiter=RateLimiter(0.0),
    )

    assert _call(client) == '{"capitulo": {}}'
    assert captured["url"] == "https://example.test/v1/chat/completions"
    assert captured["timeout"] == 12.5
    assert captured["headers"] == {
        "Authorization": "Bearer key",
        "Content-Type": "application/json",
    }
    payload = captured["json"]
    assert isinstance(payload, dict)
    assert payload["model"] == "gpt-4.1-mini"
    assert payload["messages"] == [
        {"role": "system", "content": "system"},
        {"role": "user", "content": "user"},
    ]


def test_chat_client_joins_text_content_parts(monkeypatch: pytest.MonkeyPatch) -> None:
    """List-shaped message content should be concatenated from its text parts."""

    content = [
        {"type": "text", "text": "{\"a\": "},
        {"type": "image_url", "image_url": "ignored"},
        {"type": "text", "text": "1}"},
    ]
    monkeypatch.setattr(
        "chapterwise.llm.openai_client.requests.post",
        lambda _url, **_kwargs: _MockRequestsResponse(payload=_chat_payload(content)),
    )

    assert _call(_client()) == '{"a": 1}'


def test_chat_client_requires_api_key() -> None:
    """Requests without an API key should fail before any HTTP call."""

    client = OpenAIChatClient(api_key="  ", rate_limiter=RateLimiter(0.0))

    with pytest.raises(OpenAIProviderError) as exc_info:
        _call(client)

    assert exc_info.value.failure_kind == "invalid_api_key"
    assert exc_info.value.is_transient is False


@pytest.mark.parametrize(
    ("status_code", "body", "failure_kind", "transient"),
    [
        (401, b'{"error":{"message":"Incorrect API key provided: sk-abcdefghijklmnop"}}', "invalid_api_key", False),
        (429, b'{"error":{"message":"You exceeded your current quota","code":"insufficient_quota"}}', "insufficient_quota", False),
        (404, b'{"error":{"message":"The model does not exist","code":"model_not_found"}}', "invalid_model", False),
        (429, b'{"error":{"message":"Rate limit reached for requests"}}', "rate_limited", True),
        (503, b'{"error":{"message":"The server is overloaded"}}', "server_error", True),
        (504, b"", "timeout", True),
        (400, b'{"error":{"message":"Bad request"}}', "http_error", False),
    ],
)
def test_chat_client_classifies_http_failures(
    monkeypatch: pytest.MonkeyPatch,
    status_code: int,
    body: bytes,
    failure_kind: str,
    transient: bool,
) -> None:
    """HTTP failures should map to deterministic kinds and transience flags."""

    monkeypatch.setattr(
        "chapterwise.llm.openai_client.requests.post",
        lambda _url, **_kwargs: _MockRequestsResponse(payload=body, status_code=status_code),
    )

    with pytest.raises(OpenAIProviderError) as exc_info:
        _call(_client())

    assert exc_info.value.failure_kind == failure_kind
    assert exc_info.value.status_code == status_code
    assert exc_info.value.is_transient is transient
    assert "sk-abcdefghijklmnop" not in str(exc_info.value)


@pytest.mark.parametrize(
    ("raised", "failure_kind"),
    [
        (requests.Timeout("socket timed out"), "timeout"),
        (requests.ConnectionError("connection reset"), "transport"),
    ],
)
def test_chat_client_classifies_transport_failures(
    monkeypatch: pytest.MonkeyPatch,
    raised: Exception,
    failure_kind: str,
) -> None:
    """Network-layer failures should be reported as transient provider errors."""

    def _mock_post(_url: str, **_kwargs: object) -> _MockRequestsResponse:
        """Raise the configured transport exception."""

        raise raised

    monkeypatch.setattr("chapterwise.llm.openai_client.requests.post", _mock_post)

    with pytest.raises(OpenAIProviderError) as exc_info:
        _call(_client())

    assert exc_info.value.failure_kind == failure_kind
    assert exc_info.value.is_transient is True


@pytest.mark.parametrize(
    "payload",
    [
        b"",
        b"not json",
        b'{"choices": []}',
        b'{"choices": [{"message": {"content": "   "}}]}',
    ],
)
def test_chat_client_rejects_unusable_payloads(
    monkeypatch: pytest.MonkeyPatch,
    payload: bytes,
) -> None:
    """Empty or malformed provider payloads should raise provider errors."""

    monkeypatch.setattr(
        "chapterwise.llm.openai_client.requests.post",
        lambda _url, **_kwargs: _MockRequestsResponse(payload=payload),
    )

    with pytest.raises(OpenAIProviderError):
        _call(_client())


def test_chat_client_acquires_rate_limit_slot_per_model(monkeypatch: pytest.MonkeyPatch) -> None:
    """Each request should acquire a rate limiter slot keyed by model."""

    limiter = _RecordingRateLimiter()
    monkeypatch.setattr(
        "chapterwise.llm.openai_client.requests.post",
        lambda _url, **_kwargs: _MockRequestsResponse(payload=_chat_payload("ok")),
    )

    client = OpenAIChatClient(api_key="key", rate_limiter=limiter)  # type: ignore[arg-type]
    _call(client)
    _call(client)

    assert limiter.keys == ["openai:chat:gpt-4.1-mini", "openai:chat:gpt-4.1-mini"]


def test_chat_completer_sends_subdivision_system_prompt(monkeypatch: pytest.MonkeyPatch) -> None:
    """The completer should wrap the user prompt with the subdivision system prompt."""

    captured: dict[str, object] = {}

    def _mock_post(_url: str, **kwargs: object) -> _MockRequestsResponse:
        """Capture the request body and return a fixed response."""

        captured.update(kwargs)
        return _MockRequestsResponse(payload=_chat_payload("response"))

    monkeypatch.setattr("chapterwise.llm.openai_client.requests.post", _mock_post)

    completer = OpenAIChatCompleter(
        model="gpt-test",
        api_key="key",
        rate_limiter=RateLimiter(0.0),
    )

    assert completer.complete("divide this") == "response"
    payload = captured["json"]
    assert isinstance(payload, dict)
    assert payload["model"] == "gpt-test"
    assert payload["temperature"] == 0.0
    assert payload["messages"][0] == {
        "role": "system",
        "content": PromptLibrary().subdivision_system_prompt(),
    }
    assert payload["messages"][1] == {"role": "user", "content": "divide this"}


def test_rate_limiter_enforces_minimum_interval_per_key() -> None:
    """Rate limiter should space repeated calls for the same key only."""

    state = {"now": 0.0}
    waits: list[float] = []

    def _clock() -> float:
        """Return mutable fake monotonic clock value."""

        return state["now"]

    def _sleep(seconds: float) -> None:
        """Advance fake time and record requested wait duration."""

        waits.append(seconds)
        state["now"] += seconds

    limiter = RateLimiter(min_interval_seconds=0.5, clock=_clock, sleeper=_sleep)
    limiter.acquire("openai:chat:gpt-4.1-mini")
    limiter.acquire("openai:chat:other-model")
    limiter.acquire("openai:chat:gpt-4.1-mini")

    assert waits == [0.5]


def test_rate_limiter_reserves_consecutive_slots_without_sleeping_in_between() -> None:
    """Back-to-back reservations should queue behind each other."""

    waits: list[float] = []
    limiter = RateLimiter(min_interval_seconds=0.25, clock=lambda: 10.0, sleeper=waits.append)

    for _ in range(3):
        limiter.acquire("key")

    assert waits == [0.25, 0.5]


def test_rate_limiter_with_zero_interval_never_sleeps() -> None:
    """A zero interval should disable pacing."""

    waits: list[float] = []
    limiter = RateLimiter(min_interval_seconds=0.0, sleeper=waits.append)

    limiter.acquire("key")
    limiter.acquire("key")

    assert waits == []


def test_chat_client_tags_unusable_payloads_as_permanent(monkeypatch: pytest.MonkeyPatch) -> None:
    """Well-formed HTTP responses with a broken body should not be retried."""

    monkeypatch.setattr(
        "chapterwise.llm.openai_client.requests.post",
        lambda _url, **_kwargs: _MockRequestsResponse(payload=b'{"choices": [{"text": "x"}]}'),
    )

    with pytest.raises(OpenAIProviderError) as exc_info:
        _call(_client())

    assert exc_info.value.failure_kind == "malformed_response"
    assert exc_info.value.is_transient is False


def test_http_error_details_are_redacted_and_capped(monkeypatch: pytest.MonkeyPatch) -> None:
    """Non-envelope error bodies should be scrubbed of bearer tokens and shortened."""

    body = ("upstream said: Bearer abcdefghijklmnopqrstuvwxyz " + "x" * 400).encode("utf-8")
    monkeypatch.setattr(
        "chapterwise.llm.openai_client.requests.post",
        lambda _url, **_kwargs: _MockRequestsResponse(payload=body, status_code=502),
    )

    with pytest.raises(OpenAIProviderError) as exc_info:
        _call(_client())

    message = str(exc_info.value)
    assert message.startswith("OpenAI service error (HTTP 502): upstream said: Bearer [redacted-token]")
    assert "abcdefghijklmnopqrstuvwxyz" not in message
    assert message.endswith("...")
