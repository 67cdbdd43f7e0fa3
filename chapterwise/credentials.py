"""Secure credential storage helpers for the Chapterwise CLI.

Responsibilities:
- Persist the OpenAI API key in an OS-backed secure credential store.
- Treat blank stored values as missing so key precedence falls through cleanly.
- Never log or echo secret values.

Key types:
- `CredentialStore`: protocol consumed by the CLI's API key resolution.
- `KeyringCredentialStore`: keyring-backed implementation.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import ModuleType
from typing import Callable, Protocol


class CredentialStore(Protocol):
    """Protocol for secure provider credential operations used by the CLI."""

    def is_available(self) -> bool:
        """Return whether secure credential operations are available."""

    def get_api_key(self) -> str | None:
        """Load the stored API key, or `None` when nothing usable is stored."""

    def set_api_key(self, api_key: str) -> None:
        """Persist an API key in secure storage."""

    def clear_api_key(self) -> bool:
        """Delete a stored API key and return whether one existed."""


def _import_keyring() -> ModuleType | None:
    """Import `keyring` lazily; backends may be slow or broken at import time."""

    try:
        import keyring
    except ImportError:
        return None
    return keyring


@dataclass(frozen=True, slots=True)
class KeyringCredentialStore:
    """Secure credential store backed by the `keyring` package."""

    service_name: str = "chapterwise"
    account_name: str = "openai_api_key"
    keyring_loader: Callable[[], ModuleType | None] = _import_keyring

    def is_available(self) -> bool:
        """Return `True` when `keyring` can be imported in this environment."""

        return self.keyring_loader() is not None

    def get_api_key(self) -> str | None:
        """Return the stripped stored key, or `None` when missing or blank."""

        backend = self.keyring_loader()
        if backend is None:
            return None
        stored = backend.get_password(self.service_name, self.account_name)
        return (stored or "").strip() or None

    def set_api_key(self, api_key: str) -> None:
        """Persist a stripped API key.

        Raises:
            RuntimeError: If `keyring` is unavailable.
            ValueError: If the key is blank.
        """

        backend = self.keyring_loader()
        if backend is None:
            raise RuntimeError(
                "Secure credential storage is unavailable because `keyring` could not "
                "be imported."
            )
        normalized = api_key.strip()
        if not normalized:
            raise ValueError("API key must be a non-empty string.")
        backend.set_password(self.service_name, self.account_name, normalized)

    def clear_api_key(self) -> bool:
        """Remove the stored API key and report whether a usable one was present."""

        backend = self.keyring_loader()
        if backend is None or self.get_api_key() is None:
            return False
        backend.delete_password(self.service_name, self.account_name)
        return True


def create_credential_store() -> CredentialStore:
    """Create the default secure credential store implementation."""

    return KeyringCredentialStore()
