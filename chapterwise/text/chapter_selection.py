"""Chapter selection parsing for the `--chapters` CLI option.

Responsibilities:
- Parse 1-based selection expressions (`1`, `1,3`, `2-5`, mixed) against an outline size.
- Reject malformed, overlapping, or out-of-bounds selections with actionable messages.
- Format selected indices back into compact range labels for logs.
"""

from __future__ import annotations

from typing import Iterable


_SYNTAX_HINT = "Use syntax like `1`, `1,3`, `2-4`, or `1,3-5`."


def parse_chapter_selection(selection: str | None, chapter_count: int) -> list[int]:
    """Parse a selection expression into sorted unique 1-based chapter indices.

    Args:
        selection: User selection string. `None` or blank selects all chapters.
        chapter_count: Number of outline chapters available.

    Returns:
        Sorted selected chapter indices.

    Raises:
        ValueError: If the selection syntax or bounds are invalid.
    """

    if chapter_count < 1:
        raise ValueError("No chapters are available for selection.")
    if selection is None or not selection.strip():
        return list(range(1, chapter_count + 1))

    tokens = [part.strip() for part in selection.split(",")]
    if any(not token for token in tokens):
        raise ValueError(f"Malformed chapter selection: empty item in list. {_SYNTAX_HINT}")

    selected: set[int] = set()
    for token in tokens:
        for index in _expand_token(token):
            if not 1 <= index <= chapter_count:
                raise ValueError(
                    f"Chapter index `{index}` is out of available bounds `1-{chapter_count}`."
                )
            if index in selected:
                raise ValueError(
                    f"Overlapping chapter selection contains duplicate index `{index}`."
                )
            selected.add(index)
    return sorted(selected)


def format_chapter_selection(indices: Iterable[int]) -> str:
    """Format chapter indices into compact range syntax such as `1,3-5`."""

    ordered = sorted(set(indices))
    ranges: list[list[int]] = []
    for index in ordered:
        if ranges and index == ranges[-1][1] + 1:
            ranges[-1][1] = index
        else:
            ranges.append([index, index])
    return ",".join(
        str(start) if start == end else f"{start}-{end}" for start, end in ranges
    )


def _expand_token(token: str) -> range:
    """Expand one token (`N` or `N-M`) into chapter indices."""

    start_text, separator, end_text = token.partition("-")
    if not separator:
        index = _parse_positive_index(token)
        return range(index, index + 1)
    if not start_text or not end_text or "-" in end_text:
        raise ValueError(
            f"Malformed chapter range `{token}`. Use closed range syntax like `2-4`."
        )

    start = _parse_positive_index(start_text.strip())
    end = _parse_positive_index(end_text.strip())
    if start > end:
        raise ValueError(
            f"Malformed chapter range `{token}`: range start must be less than or equal to end."
        )
    return range(start, end + 1)


def _parse_positive_index(token: str) -> int:
    """Parse one 1-based positive chapter index token."""

    try:
        value = int(token, 10)
    except ValueError as exc:
        raise ValueError(f"Invalid chapter index `{token}`. Indices must be integers.") from exc
    if value < 1:
        raise ValueError(
            f"Invalid chapter index `{token}`. Indices must be positive and 1-based."
        )
    return value
