"""Command-line interface for Chapterwise.

Responsibilities:
- Expose user-facing commands for outline inspection and chapter subdivision.
- Convert CLI arguments, YAML config, and environment values into `SubdivisionConfig`.
- Wire the OpenAI chat collaborator, token counter, and worker pool for a run.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import os
from pathlib import Path
from threading import Event
from typing import Annotated, Callable

import typer

from .cli_rendering import (
    echo_chapter_outcome,
    echo_outline,
    echo_run_summary,
    exit_with_command_error,
)
from .config import ConfigLoader, SubdivisionConfig
from .credentials import CredentialStore, create_credential_store
from .errors import PipelineStageError
from .io import DocumentLoader, LoadedDocument, ResultStore
from .llm import (
    ApproximateTokenCounter,
    OpenAIChatCompleter,
    RateLimiter,
    TiktokenTokenCounter,
    TokenCounter,
)
from .models.datatypes import ChapterOutcome
from .parsing import normalize_optional_string
from .pipeline import (
    ChapterSubdivisionOrchestrator,
    RetryPolicy,
    chapter_pairs,
    subdivide_outline,
)
from .telemetry.logger import RunLogger
from .text import (
    PageRangeResolver,
    format_chapter_selection,
    last_page_number,
    parse_chapter_selection,
)

app = typer.Typer(
    name="chapterwise",
    no_args_is_help=True,
    help="Chapterwise CLI.",
)


def _load_yaml_config(config_path: Path | None) -> SubdivisionConfig:
    """Load a YAML config file, or environment defaults, mapping failures to stage errors."""

    if config_path is None:
        try:
            return ConfigLoader.from_env()
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=f"Invalid environment configuration: {exc}",
                hint="Fix or unset the offending `CHAPTERWISE_*` variable and rerun.",
            ) from exc

    try:
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc
    except Exception as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Failed to load config file `{config_path}`: {exc}",
            hint="Verify YAML syntax and file permissions.",
        ) from exc


def _resolve_api_key(
    config: SubdivisionConfig,
    api_key: str | None,
    prompt_api_key: bool,
    credential_store_factory: Callable[[], CredentialStore] | None = None,
) -> str:
    """Resolve the API key with precedence CLI > secure storage > config/env."""

    cli_value = normalize_optional_string(api_key)
    if cli_value is None and prompt_api_key:
        cli_value = normalize_optional_string(
            typer.prompt(
                "OpenAI API key (hidden; leave blank to skip)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )

    secure_value = None
    if cli_value is None:
        factory = credential_store_factory or create_credential_store
        secure_value = factory().get_api_key()
    resolved = config.resolved_api_key(cli_value=cli_value, secure_value=secure_value)
    if resolved is None:
        resolved = normalize_optional_string(os.environ.get("OPENAI_API_KEY"))
    if resolved is None:
        raise PipelineStageError(
            stage="credentials",
            detail="No OpenAI API key is configured.",
            hint=(
                "Pass `--api-key`, use `--prompt-api-key`, run `chapterwise credentials "
                "--set-api-key`, or set `OPENAI_API_KEY`."
            ),
        )
    return resolved


def _load_document(document: Path, run_logger: RunLogger | None = None) -> LoadedDocument:
    """Load a document and require a non-empty outline."""

    if run_logger is not None:
        run_logger.log_stage_start("load", document=document.name)
    loaded = DocumentLoader().load(document)
    if not loaded.outline:
        raise PipelineStageError(
            stage="load",
            detail=f"Document `{document}` has an empty outline.",
            hint="Add at least one `outline` entry with `title` and `start_page`.",
        )
    if run_logger is not None:
        run_logger.log_stage_complete(
            "load", chapters=len(loaded.outline), pages=len(loaded.pages)
        )
    return loaded


def _build_token_counter(config: SubdivisionConfig) -> TokenCounter:
    """Create the configured token counter."""

    if config.token_counter == "approximate":
        return ApproximateTokenCounter()
    return TiktokenTokenCounter(encoding_name=config.token_encoding)


def _build_orchestrator(
    config: SubdivisionConfig, run_logger: RunLogger
) -> ChapterSubdivisionOrchestrator:
    """Create an orchestrator wired to config-driven planning and retry settings."""

    return ChapterSubdivisionOrchestrator(
        token_counter=_build_token_counter(config),
        retry_policy=RetryPolicy(
            max_attempts=config.max_attempts,
            base_delay_seconds=config.retry_base_delay_seconds,
            max_delay_seconds=config.retry_max_delay_seconds,
        ),
        run_logger=run_logger,
        unit_size=config.unit_size,
        min_count=config.min_subchapters,
        max_count=config.max_subchapters,
    )


@app.command("outline")
def outline_command(
    document: Annotated[Path, typer.Argument(help="Path to document JSON (pages + outline).")],
) -> None:
    """Print outline chapters with resolved and declared page ranges."""

    try:
        loaded = _load_document(document)
        if not loaded.pages:
            raise PipelineStageError(
                stage="load",
                detail=f"Document `{document}` has no pages.",
                hint="Add at least one `pages` entry with `page_number` and `lines`.",
            )
        resolver = PageRangeResolver()
        last_page = last_page_number(loaded.pages)
        rows = [
            (position, current, resolver.resolve_range(current, upcoming, last_page))
            for position, (current, upcoming) in enumerate(
                chapter_pairs(loaded.outline), start=1
            )
        ]
    except Exception as exc:
        exit_with_command_error("outline", exc)

    echo_outline(rows)


@app.command("subdivide")
def subdivide_command(
    document: Annotated[Path, typer.Argument(help="Path to document JSON (pages + outline).")],
    out: Annotated[
        Path | None,
        typer.Option("--out", help="Result JSON path. Prints to stdout when omitted."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            help="Path to YAML config file with run defaults.",
        ),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", help="Chat completion model id override."),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option(
            "--api-key",
            help="Provider API key override. Prefer `--prompt-api-key` to avoid shell history.",
        ),
    ] = None,
    prompt_api_key: Annotated[
        bool,
        typer.Option(
            "--prompt-api-key",
            help="Prompt for API key with hidden input (never echoed).",
        ),
    ] = False,
    chapters: Annotated[
        str | None,
        typer.Option(
            "--chapters",
            help="1-based chapter selection: `5`, `1,3,7`, `2-4`, or mixed `1,3-5`.",
        ),
    ] = None,
    workers: Annotated[
        int | None,
        typer.Option("--workers", min=1, help="Concurrent chapters (overrides config)."),
    ] = None,
    approximate_tokens: Annotated[
        bool,
        typer.Option(
            "--approximate-tokens",
            help="Estimate tokens as characters / 4 instead of loading a tiktoken encoding.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log per-chapter state transitions."),
    ] = False,
) -> None:
    """Subdivide outline chapters with the AI backend and write results."""

    run_logger = RunLogger(level="DEBUG" if verbose else "INFO")
    try:
        base_config = _load_yaml_config(config_file)
        try:
            config = base_config.with_overrides(
                model=normalize_optional_string(model),
                max_workers=workers,
                token_counter="approximate" if approximate_tokens else None,
            )
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=str(exc),
                hint="Check CLI option values and rerun.",
            ) from exc
        resolved_api_key = _resolve_api_key(config, api_key, prompt_api_key)

        loaded = _load_document(document, run_logger)
        try:
            selected = parse_chapter_selection(chapters, len(loaded.outline))
        except ValueError as exc:
            raise PipelineStageError(
                stage="selection",
                detail=str(exc),
                hint="Run `chapterwise outline` to see available chapter indices.",
            ) from exc

        chat = OpenAIChatCompleter(
            model=config.model,
            api_key=resolved_api_key,
            base_url=config.base_url,
            timeout_seconds=config.timeout_seconds,
            rate_limiter=RateLimiter(min_interval_seconds=config.rate_limit_interval_seconds),
        )
        orchestrator = _build_orchestrator(config, run_logger)

        def _report(index: int, outcome: ChapterOutcome) -> None:
            echo_chapter_outcome(index, loaded.outline[index - 1].title, outcome)

        run_logger.log_stage_start(
            "subdivide",
            chapters=format_chapter_selection(selected),
            model=config.model,
            workers=config.max_workers,
        )
        outcomes = subdivide_outline(
            orchestrator,
            loaded.pages,
            loaded.outline,
            chat,
            max_workers=config.max_workers,
            selected_indices=selected,
            cancel_event=Event(),
            on_outcome=_report,
        )
        failed = sum(1 for _, outcome in outcomes if not outcome.ok)
        run_logger.log_stage_complete(
            "subdivide", failed=failed, succeeded=len(outcomes) - failed
        )

        run_logger.log_stage_start("write")
        if out is not None:
            try:
                ResultStore(out).save(outcomes, loaded.outline)
            except OSError as exc:
                raise PipelineStageError(
                    stage="write",
                    detail=f"Failed to write result `{out}`: {exc}",
                    hint="Verify the output directory is writable.",
                ) from exc
        else:
            typer.echo(ResultStore.render(outcomes, loaded.outline))
        run_logger.log_stage_complete("write")
    except Exception as exc:
        exit_with_command_error("subdivide", exc)

    echo_run_summary(outcomes, str(out) if out is not None else "<stdout>")
    if failed:
        raise typer.Exit(code=1)


@app.command("credentials")
def credentials_command(
    set_api_key: Annotated[
        bool,
        typer.Option("--set-api-key", help="Prompt for an API key (hidden) and store it securely."),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option("--clear-api-key", help="Remove the stored API key."),
    ] = False,
) -> None:
    """Show, store, or clear the OpenAI API key kept in secure storage."""

    try:
        if set_api_key and clear_api_key:
            raise PipelineStageError(
                stage="credentials",
                detail="`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            )
        store = create_credential_store()
        if set_api_key:
            _store_prompted_api_key(store)
            message = "API key stored in secure credential storage."
        elif clear_api_key:
            message = (
                "Stored API key cleared from secure credential storage."
                if store.clear_api_key()
                else "No stored API key found in secure credential storage."
            )
        else:
            availability = "available" if store.is_available() else "unavailable"
            status = "present" if store.get_api_key() is not None else "not set"
            message = f"Secure credential storage: {availability}\nStored OpenAI API key: {status}"
    except Exception as exc:
        exit_with_command_error("credentials", exc)

    typer.echo(message)


def _store_prompted_api_key(store: CredentialStore) -> None:
    """Prompt for a hidden API key and persist it, mapping failures to stage errors."""

    prompted = normalize_optional_string(
        typer.prompt(
            "OpenAI API key (hidden input)",
            default="",
            hide_input=True,
            show_default=False,
        )
    )
    if prompted is None:
        raise PipelineStageError(
            stage="credentials",
            detail="No API key entered.",
            hint="Provide a non-empty API key when using `--set-api-key`.",
        )
    try:
        store.set_api_key(prompted)
    except Exception as exc:
        raise PipelineStageError(
            stage="credentials",
            detail=f"Failed to store API key securely: {exc}",
            hint="Install and configure a keyring backend and retry.",
        ) from exc


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
