"""CLI commands for scrapegnome.

Implements the user-facing commands:
- identify: resolve a single file or folder name and show the result.
- scrape: enqueue paths on the task queue, drain it and show every task.
- default-model: show or store the default LLM model in config.toml.
- version: print the package version.

Design:
- Options are declared with Annotated aliases for type safety and help text.
- Settings come from the environment/.env (metadata.settings) and the
  persistent config file (utils.config), CLI values taking precedence.
- build_resolver is the single place that wires provider, completion service
  and resolver together; tests replace it.
- Exit codes are defined as an Enum.
"""

import asyncio
import json
import sys
from enum import Enum
from pathlib import Path
from typing import Annotated, Optional

import typer

from scrapegnome.__about__ import __version__
from scrapegnome.cli import app
from scrapegnome.cli.console import ConsoleManager
from scrapegnome.cli.renderer import render_media, render_stats, render_tasks
from scrapegnome.core.resolver import MediaResolver
from scrapegnome.llm.completion import OllamaCompletionService
from scrapegnome.metadata.clients.tmdb import TMDBClient
from scrapegnome.metadata.settings import MissingAPIKeyError, Settings
from scrapegnome.models.queue import (
    QueueConfig,
    QueueStats,
    ScrapingTask,
    ScrapingTaskData,
    TaskQueryOptions,
    TaskStatus,
)
from scrapegnome.queue.service import QueueService
from scrapegnome.utils.config import (
    get_default_llm_model,
    resolve_setting,
    set_default_llm_model,
)
from scrapegnome.utils.debug import debug, setup_logger

VIDEO_EXTENSIONS = frozenset(
    {".mkv", ".mp4", ".avi", ".rmvb", ".wmv", ".mov", ".m2ts", ".ts"}
)


class ExitCode(int, Enum):
    """Exit codes for CLI commands."""

    SUCCESS = 0
    ERROR = 1


USE_LLM = Annotated[
    Optional[bool],
    typer.Option(
        "--llm/--no-llm",
        help="Use the language model to extract and disambiguate "
        "(default from USE_LLM / config).",
    ),
]

LLM_MODEL = Annotated[
    Optional[str],
    typer.Option("--llm-model", help="Ollama model to use for --llm."),
]

LANGUAGE = Annotated[
    Optional[str],
    typer.Option("--language", "-l", help="TMDB language, e.g. zh-CN or en-US."),
]

JSON_OUTPUT = Annotated[
    bool,
    typer.Option("--json", help="Print results as JSON instead of tables."),
]


def build_resolver(
    settings: Settings,
    *,
    use_llm: bool,
    llm_model: str,
    language: str,
) -> MediaResolver:
    """Wire the TMDB client (and Ollama, with *use_llm*) into a resolver.

    Raises:
        MissingAPIKeyError: If TMDB_API_KEY is not configured.
    """
    provider = TMDBClient.from_settings(settings)
    completion = (
        OllamaCompletionService(
            llm_model, host=settings.LLM_HOST, timeout=settings.HTTP_TIMEOUT
        )
        if use_llm
        else None
    )
    config = settings.resolver_config(language=language, use_llm=use_llm)
    return MediaResolver(provider, config, completion)


def _resolver_from_options(
    use_llm: bool | None, llm_model: str | None, language: str | None
) -> MediaResolver:
    setup_logger()
    settings = Settings()
    resolved_use_llm = resolve_setting(
        "llm.enabled", default=settings.USE_LLM, cli_value=use_llm
    )
    resolved_model = resolve_setting(
        "llm.default_model",
        default=settings.LLM_MODEL,
        cli_value=llm_model,
    )
    resolved_language = resolve_setting(
        "language", default=settings.TMDB_LANGUAGE, cli_value=language
    )
    debug(
        f"use_llm={resolved_use_llm} model={resolved_model} "
        f"language={resolved_language}"
    )
    return build_resolver(
        settings,
        use_llm=resolved_use_llm,
        llm_model=resolved_model,
        language=resolved_language,
    )


@app.command()
def identify(
    name: Annotated[str, typer.Argument(help="File or folder name to identify")],
    is_directory: Annotated[
        bool, typer.Option("--dir", help="Treat NAME as a folder name.")
    ] = False,
    full_path: Annotated[
        Optional[str],
        typer.Option(
            "--path",
            help="Full path of the file, enabling the parent-folder fallback.",
        ),
    ] = None,
    use_llm: USE_LLM = None,
    llm_model: LLM_MODEL = None,
    language: LANGUAGE = None,
    json_output: JSON_OUTPUT = False,
) -> None:
    """Identify one file or folder name against TMDB."""
    with ConsoleManager() as console:
        try:
            resolver = _resolver_from_options(use_llm, llm_model, language)
        except MissingAPIKeyError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(ExitCode.ERROR)
        try:
            media = asyncio.run(resolver.resolve(name, is_directory, full_path))
        except Exception as e:
            console.print(f"[red]Could not identify {name!r}: {e}[/red]")
            raise typer.Exit(ExitCode.ERROR)
        if json_output:
            sys.stdout.write(
                json.dumps(media.model_dump(mode="json"), ensure_ascii=False, indent=2)
                + "\n"
            )
        else:
            render_media(media, console=console)


def collect_tasks(paths: list[Path]) -> tuple[list[ScrapingTaskData], list[Path]]:
    """Turn CLI paths into enqueue requests; also return skipped paths.

    Directories become directory tasks; files are kept only when they have a
    video extension.
    """
    tasks: list[ScrapingTaskData] = []
    skipped: list[Path] = []
    for path in paths:
        if path.is_dir():
            tasks.append(
                ScrapingTaskData(
                    file_path=str(path), file_name=path.name, is_directory=True
                )
            )
        elif path.suffix.lower() in VIDEO_EXTENSIONS:
            tasks.append(ScrapingTaskData(file_path=str(path), file_name=path.name))
        else:
            skipped.append(path)
    return tasks, skipped


async def _run_queue(
    resolver: MediaResolver, config: QueueConfig, items: list[ScrapingTaskData]
) -> tuple[list[ScrapingTask], QueueStats]:
    service = QueueService(resolver, config)
    async with service:
        await service.enqueue_tasks(items)
        stats = await service.run_until_idle()
    tasks, _ = await service.get_tasks(
        TaskQueryOptions(limit=max(len(items), 1), sort_by="created_at", sort_order="asc")
    )
    return tasks, stats


@app.command()
def scrape(
    paths: Annotated[
        list[Path],
        typer.Argument(exists=True, resolve_path=True, help="Files or folders to scrape"),
    ],
    concurrency: Annotated[
        Optional[int],
        typer.Option("--concurrency", "-c", min=1, help="Number of parallel workers."),
    ] = None,
    max_retries: Annotated[
        Optional[int],
        typer.Option("--max-retries", min=1, help="Retries per task before failing."),
    ] = None,
    retry_delay: Annotated[
        Optional[float],
        typer.Option("--retry-delay", min=0.001, help="Base retry delay in seconds."),
    ] = None,
    use_llm: USE_LLM = None,
    llm_model: LLM_MODEL = None,
    language: LANGUAGE = None,
    json_output: JSON_OUTPUT = False,
) -> None:
    """Identify many files or folders through the retrying task queue."""
    with ConsoleManager() as console:
        items, skipped = collect_tasks(paths)
        for path in skipped:
            console.print(f"[yellow]Skipping non-video file: {path}[/yellow]")
        if not items:
            console.print("[yellow]Nothing to scrape.[/yellow]")
            raise typer.Exit(ExitCode.SUCCESS)
        try:
            resolver = _resolver_from_options(use_llm, llm_model, language)
            config = QueueConfig(
                concurrency=resolve_setting(
                    "queue.concurrency", default=1, cli_value=concurrency
                ),
                default_max_retries=resolve_setting(
                    "queue.max_retries", default=3, cli_value=max_retries
                ),
                retry_delay=resolve_setting(
                    "queue.retry_delay", default=1.0, cli_value=retry_delay
                ),
                queue_poll_interval=resolve_setting(
                    "queue.poll_interval", default=0.2
                ),
            )
        except (MissingAPIKeyError, ValueError) as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(ExitCode.ERROR)

        with console.status(f"[cyan]Scraping {len(items)} item(s)...", spinner="dots"):
            tasks, stats = asyncio.run(_run_queue(resolver, config, items))

        if json_output:
            payload = {
                "tasks": [task.model_dump(mode="json") for task in tasks],
                "stats": stats.model_dump(mode="json"),
            }
            sys.stdout.write(json.dumps(payload, ensure_ascii=False, indent=2) + "\n")
        else:
            render_tasks(tasks, console=console)
            render_stats(stats, console=console)
        if any(task.status == TaskStatus.FAILED for task in tasks):
            raise typer.Exit(ExitCode.ERROR)


@app.command("default-model")
def default_model(
    model: Annotated[
        Optional[str], typer.Argument(help="Model to store as the default.")
    ] = None,
) -> None:
    """Show or set the default LLM model stored in config.toml."""
    with ConsoleManager() as console:
        if model:
            set_default_llm_model(model)
            console.print(f"Default LLM model set to [bold]{model}[/bold]")
        else:
            console.print(f"Default LLM model: [bold]{get_default_llm_model()}[/bold]")


@app.command()
def version() -> None:
    """Show the version of scrapegnome."""
    with ConsoleManager() as console:
        console.print(f"ScrapeGnome version: [bold]{__version__}[/bold]")


def main() -> None:
    """Main entry point for the CLI."""
    app()
