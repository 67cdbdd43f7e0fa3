"""Shared parsing helpers for config, loader, and CLI value normalization."""

from __future__ import annotations


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def parse_strict_int(value: object) -> int | None:
    """Parse an integer from an int, integral float, or digit string.

    Booleans are rejected even though they subclass `int`.

    Returns:
        Parsed integer, or `None` when the value is not integral.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    normalized = normalize_optional_string(value)
    if normalized is None:
        return None
    try:
        return int(normalized, 10)
    except ValueError:
        return None


def parse_non_negative_float(value: object) -> float | None:
    """Parse a finite non-negative float, returning `None` for invalid input."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    else:
        normalized = normalize_optional_string(value)
        if normalized is None:
            return None
        try:
            parsed = float(normalized)
        except ValueError:
            return None
    if parsed != parsed or parsed in (float("inf"), float("-inf")) or parsed < 0:
        return None
    return parsed
