"""OpenAI HTTP client utilities for the subdivision stage.

Responsibilities:
- Send chat-completions requests to OpenAI's REST API.
- Pace requests through a per-model rate limiter.
- Raise classified provider exceptions so callers can tell transient from permanent failures.
"""

from __future__ import annotations

import json
import re
import socket
from typing import Any

import requests

from .rate_limiter import RateLimiter


_MAX_PROVIDER_MESSAGE_CHARS = 180
_SECRET_PATTERNS = (
    (re.compile(r"\bsk-[A-Za-z0-9_-]{8,}\b"), "[redacted-key]"),
    (re.compile(r"(?i)bearer\s+[A-Za-z0-9._-]{12,}"), "Bearer [redacted-token]"),
)
_FAILURE_HEADLINES = {
    "invalid_api_key": "OpenAI authentication failed",
    "insufficient_quota": "OpenAI quota is insufficient for this request",
    "invalid_model": "OpenAI rejected the selected model",
    "timeout": "OpenAI request timed out",
    "rate_limited": "OpenAI rate limit reached",
    "server_error": "OpenAI service error",
}


class OpenAIProviderError(RuntimeError):
    """Raised when an OpenAI provider request fails or returns malformed output."""

    TRANSIENT_FAILURE_KINDS = frozenset({"timeout", "transport", "rate_limited", "server_error"})

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
        provider_code: str | None = None,
    ) -> None:
        """Initialize provider error metadata for stage-aware diagnostics."""

        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code
        self.provider_code = provider_code

    @property
    def is_transient(self) -> bool:
        """Return whether retrying the same request may succeed."""

        return self.failure_kind in self.TRANSIENT_FAILURE_KINDS


def _scrub(text: str) -> str:
    """Redact key-like tokens and cap whitespace-collapsed text for diagnostics."""

    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    compact = " ".join(text.split())
    if len(compact) <= _MAX_PROVIDER_MESSAGE_CHARS:
        return compact
    return f"{compact[: _MAX_PROVIDER_MESSAGE_CHARS - 1]}..."


def _provider_error_details(response: Any) -> tuple[str, str | None]:
    """Return the scrubbed `error.message` and `error.code` from an HTTP error body.

    Bodies that are not OpenAI error envelopes are returned scrubbed as the message.
    """

    body = bytes(getattr(response, "content", b"") or b"").decode("utf-8", errors="replace").strip()
    if not body:
        return "", None
    try:
        envelope = json.loads(body)
    except json.JSONDecodeError:
        return _scrub(body), None

    error = envelope.get("error") if isinstance(envelope, dict) else None
    if not isinstance(error, dict):
        return _scrub(body), None
    code = error.get("code")
    message = error.get("message")
    provider_code = code.strip() if isinstance(code, str) and code.strip() else None
    if not isinstance(message, str) or not message.strip():
        message = body
    return _scrub(message), provider_code


def classify_http_failure(status_code: int, message: str, provider_code: str | None) -> str:
    """Map an OpenAI HTTP failure onto a provider failure kind.

    Quota exhaustion and unknown models are checked before generic 429/404
    handling because OpenAI reports them with the same status codes.
    """

    text = message.lower()
    code = (provider_code or "").lower()
    if status_code == 401 or "api key" in text:
        return "invalid_api_key"
    if code == "insufficient_quota" or (status_code == 429 and "quota" in text):
        return "insufficient_quota"
    if code == "model_not_found" or (
        "model" in text and any(phrase in text for phrase in ("not found", "does not exist", "invalid"))
    ):
        return "invalid_model"
    if status_code in {408, 504} or "timeout" in text or "timed out" in text:
        return "timeout"
    if status_code == 429:
        return "rate_limited"
    if status_code >= 500:
        return "server_error"
    return "http_error"


class OpenAIChatClient:
    """Minimal requests-based OpenAI chat-completions HTTP client."""

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = 60.0,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        """Initialize OpenAI HTTP client settings."""

        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.rate_limiter = rate_limiter if rate_limiter is not None else RateLimiter()

    def chat_completion_text(
        self,
        *,
        model: str,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.0,
    ) -> str:
        """Return the first assistant text response from a chat-completions request."""

        if not self.api_key:
            raise OpenAIProviderError(
                "Missing OpenAI API key. Set `OPENAI_API_KEY`, use `--api-key`, or "
                "`--prompt-api-key`.",
                failure_kind="invalid_api_key",
            )

        self.rate_limiter.acquire(f"openai:chat:{model}")
        completion = self._post_chat_completion(
            {
                "model": model,
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "temperature": temperature,
            }
        )
        return self._assistant_text(completion)

    def _post_chat_completion(self, payload: dict[str, Any]) -> Any:
        """POST one chat-completions payload and return the decoded response body."""

        try:
            response = requests.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise self._from_http_error(exc) from exc
        except (requests.Timeout, socket.timeout, TimeoutError) as exc:
            raise OpenAIProviderError("OpenAI request timed out.", failure_kind="timeout") from exc
        except requests.RequestException as exc:
            raise OpenAIProviderError(
                f"OpenAI request transport error: {_scrub(str(exc))}",
                failure_kind="transport",
            ) from exc

        body = bytes(response.content or b"")
        if not body:
            raise OpenAIProviderError("OpenAI response is empty.", failure_kind="server_error")
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise OpenAIProviderError(
                "OpenAI returned invalid JSON payload.", failure_kind="malformed_response"
            ) from exc

    @staticmethod
    def _assistant_text(completion: Any) -> str:
        """Extract the stripped text of `choices[0].message.content`.

        List-shaped content contributes only its `text` parts.
        """

        choices = completion.get("choices") if isinstance(completion, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise OpenAIProviderError(
                "OpenAI response has no `choices[0].message` object.",
                failure_kind="malformed_response",
            )

        content = message.get("content")
        if isinstance(content, list):
            content = "".join(
                part["text"]
                for part in content
                if isinstance(part, dict)
                and part.get("type") == "text"
                and isinstance(part.get("text"), str)
            )
        text = content.strip() if isinstance(content, str) else ""
        if not text:
            raise OpenAIProviderError(
                "OpenAI response message content is empty.",
                failure_kind="malformed_response",
            )
        return text

    @staticmethod
    def _from_http_error(exc: requests.HTTPError) -> OpenAIProviderError:
        """Convert an HTTP error into a classified provider exception."""

        response = exc.response
        status_code = response.status_code if response is not None else 0
        message, provider_code = _provider_error_details(response)
        failure_kind = classify_http_failure(status_code, message, provider_code)
        headline = _FAILURE_HEADLINES.get(failure_kind, "OpenAI request failed")
        detail = (
            f"{headline} (HTTP {status_code}): {message}"
            if message
            else f"{headline} (HTTP {status_code})."
        )
        return OpenAIProviderError(
            detail,
            failure_kind=failure_kind,
            status_code=status_code,
            provider_code=provider_code,
        )
