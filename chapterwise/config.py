"""Configuration model and loaders for Chapterwise.

Responsibilities:
- Define subdivision runtime configuration as a typed dataclass.
- Provide loader entry points for file- and environment-based configuration.
- Resolve the provider API key with deterministic source precedence.

Key types:
- `SubdivisionConfig`: normalized runtime settings for one subdivision run.
- `ConfigLoader`: static construction helpers for `SubdivisionConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .parsing import (
    normalize_optional_string,
    parse_non_negative_float,
    parse_strict_int,
)


_DEFAULT_MODEL = "gpt-4.1-mini"
_DEFAULT_BASE_URL = "https://api.openai.com/v1"
_SUPPORTED_TOKEN_COUNTERS = frozenset({"tiktoken", "approximate"})


@dataclass(slots=True)
class SubdivisionConfig:
    """Runtime configuration for one subdivision run.

    Attributes:
        model: Chat completion model identifier.
        api_key: Optional provider API key (never written to output artifacts).
        base_url: Provider API base URL.
        timeout_seconds: HTTP timeout per chat completion request.
        unit_size: Tokens per planned subchapter.
        min_subchapters: Lower bound for the planned subchapter count.
        max_subchapters: Upper bound for the planned subchapter count.
        max_workers: Concurrent chapters processed by the worker pool.
        max_attempts: Chat completion attempts per chapter, including the first.
        retry_base_delay_seconds: Backoff delay before the second attempt.
        retry_max_delay_seconds: Backoff delay ceiling.
        rate_limit_interval_seconds: Minimum spacing between provider calls.
        token_encoding: tiktoken encoding name.
        token_counter: `tiktoken` or `approximate`.
    """

    model: str = _DEFAULT_MODEL
    api_key: str | None = None
    base_url: str = _DEFAULT_BASE_URL
    timeout_seconds: float = 60.0
    unit_size: int = 700
    min_subchapters: int = 1
    max_subchapters: int = 15
    max_workers: int = 4
    max_attempts: int = 3
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 30.0
    rate_limit_interval_seconds: float = 0.05
    token_encoding: str = "cl100k_base"
    token_counter: str = "tiktoken"

    def validate(self) -> None:
        """Validate configuration values before a run starts."""

        self._require_non_empty(self.model, "model")
        self._require_non_empty(self.base_url, "base_url")
        self._require_non_empty(self.token_encoding, "token_encoding")
        if self.timeout_seconds <= 0:
            raise ValueError("`timeout_seconds` must be a positive number.")
        for field_name in ("unit_size", "min_subchapters", "max_workers", "max_attempts"):
            if getattr(self, field_name) < 1:
                raise ValueError(f"`{field_name}` must be a positive integer.")
        if self.max_subchapters < self.min_subchapters:
            raise ValueError(
                "`max_subchapters` must be greater than or equal to `min_subchapters`."
            )
        for field_name in (
            "retry_base_delay_seconds",
            "retry_max_delay_seconds",
            "rate_limit_interval_seconds",
        ):
            if getattr(self, field_name) < 0:
                raise ValueError(f"`{field_name}` must not be negative.")
        if self.token_counter not in _SUPPORTED_TOKEN_COUNTERS:
            supported = ", ".join(sorted(_SUPPORTED_TOKEN_COUNTERS))
            raise ValueError(
                f"Unsupported `token_counter` value `{self.token_counter}`. "
                f"Supported values: {supported}."
            )

    def resolved_api_key(
        self, cli_value: str | None = None, secure_value: str | None = None
    ) -> str | None:
        """Resolve the API key with precedence `cli` > `secure` > config/env."""

        for candidate in (cli_value, secure_value, self.api_key):
            normalized = normalize_optional_string(candidate)
            if normalized is not None:
                return normalized
        return None

    def with_overrides(self, **overrides: object) -> SubdivisionConfig:
        """Return a validated copy with non-`None` overrides applied."""

        applied = {key: value for key, value in overrides.items() if value is not None}
        updated = replace(self, **applied)
        updated.validate()
        return updated

    @staticmethod
    def _require_non_empty(value: str, field_name: str) -> None:
        """Require a non-empty string field value."""

        if normalize_optional_string(value) is None:
            raise ValueError(f"`{field_name}` must be a non-empty string.")


_INT_FIELDS = (
    "unit_size",
    "min_subchapters",
    "max_subchapters",
    "max_workers",
    "max_attempts",
)
_FLOAT_FIELDS = (
    "timeout_seconds",
    "retry_base_delay_seconds",
    "retry_max_delay_seconds",
    "rate_limit_interval_seconds",
)
_STRING_FIELDS = ("model", "api_key", "base_url", "token_encoding", "token_counter")


class ConfigLoader:
    """Factory methods for loading `SubdivisionConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(_INT_FIELDS + _FLOAT_FIELDS + _STRING_FIELDS)

    @staticmethod
    def from_yaml(path: Path) -> SubdivisionConfig:
        """Load configuration from a YAML file."""

        path_text = path.read_text(encoding="utf-8")
        payload = ConfigLoader._parse_yaml_payload(path_text, path)
        return ConfigLoader._build_config_from_mapping(payload, f"YAML config `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> SubdivisionConfig:
        """Load configuration from `CHAPTERWISE_*` variables and `OPENAI_API_KEY`."""

        env_map = os.environ if env is None else env
        payload: dict[str, Any] = {}
        for key in sorted(ConfigLoader._SUPPORTED_YAML_KEYS):
            env_key = "OPENAI_API_KEY" if key == "api_key" else f"CHAPTERWISE_{key.upper()}"
            value = normalize_optional_string(env_map.get(env_key))
            if value is not None:
                payload[key] = value
        return ConfigLoader._build_config_from_mapping(payload, "Environment")

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` is not valid YAML: {exc}") from exc

        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _build_config_from_mapping(
        payload: Mapping[str, Any], source_label: str
    ) -> SubdivisionConfig:
        """Build a validated config from a normalized mapping payload."""

        ConfigLoader._validate_yaml_keys(payload, source_label)

        values: dict[str, Any] = {}
        for key in _STRING_FIELDS:
            value = ConfigLoader._optional_non_empty_string(payload, key)
            if value is not None:
                values[key] = value
        for key in _INT_FIELDS:
            if key in payload:
                values[key] = ConfigLoader._positive_int(payload, key, source_label)
        for key in _FLOAT_FIELDS:
            if key in payload:
                values[key] = ConfigLoader._non_negative_float(payload, key, source_label)

        config = SubdivisionConfig(**values)
        try:
            config.validate()
        except ValueError as exc:
            raise ValueError(f"{source_label}: {exc}") from exc
        return config

    @staticmethod
    def _validate_yaml_keys(payload: Mapping[str, Any], source_label: str) -> None:
        """Reject keys the config model does not define."""

        unknown = sorted(
            str(key) for key in set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS)
        )
        if unknown:
            key_list = ", ".join(unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")

    @staticmethod
    def _optional_non_empty_string(payload: Mapping[str, Any], key: str) -> str | None:
        """Read an optional string field and normalize blank values to `None`."""

        if key not in payload:
            return None
        return normalize_optional_string(payload[key])

    @staticmethod
    def _positive_int(payload: Mapping[str, Any], key: str, source_label: str) -> int:
        """Read and validate a positive integer payload field."""

        parsed = parse_strict_int(payload[key])
        if parsed is None or parsed <= 0:
            raise ValueError(f"{source_label} field `{key}` must be a positive integer.")
        return parsed

    @staticmethod
    def _non_negative_float(payload: Mapping[str, Any], key: str, source_label: str) -> float:
        """Read and validate a non-negative number payload field."""

        parsed = parse_non_negative_float(payload[key])
        if parsed is None:
            raise ValueError(f"{source_label} field `{key}` must be a non-negative number.")
        return parsed
