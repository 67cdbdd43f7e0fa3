"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
outline rows, per-chapter progress, and run summaries.
"""

from __future__ import annotations

from typing import NoReturn, Sequence

import typer

from .errors import PipelineStageError
from .models.datatypes import ChapterBoundary, ChapterIndexEntry, ChapterOutcome


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_outline(
    rows: Sequence[tuple[int, ChapterIndexEntry, ChapterBoundary]],
) -> None:
    """Print one row per chapter with resolved and declared page ranges."""

    for index, entry, boundary in rows:
        typer.echo(
            f"{index}. {entry.title} "
            f"[pages {boundary.start_page}-{boundary.end_page}; "
            f"declared {entry.start_page}-{entry.end_page}]"
        )


def echo_chapter_outcome(index: int, title: str, outcome: ChapterOutcome) -> None:
    """Print one progress line to stderr as a chapter finishes."""

    if outcome.ok and outcome.result is not None:
        typer.echo(
            f"[chapter] index={index} status=ok subchapters={len(outcome.result.subchapters)} "
            f"title={title}",
            err=True,
        )
        return
    kind = outcome.error.kind if outcome.error is not None else "unknown"
    typer.secho(
        f"[chapter] index={index} status=failed kind={kind} title={title}",
        fg=typer.colors.YELLOW,
        err=True,
    )


def echo_run_summary(outcomes: Sequence[tuple[int, ChapterOutcome]], output: str) -> None:
    """Print succeeded/failed counts and the result location to stderr."""

    failed = sum(1 for _, outcome in outcomes if not outcome.ok)
    typer.echo(f"Chapters succeeded: {len(outcomes) - failed}", err=True)
    typer.echo(f"Chapters failed: {failed}", err=True)
    typer.echo(f"Result: {output}", err=True)
