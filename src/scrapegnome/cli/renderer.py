"""Renderer for CLI output.

Renders resolved media, task listings and queue statistics as rich tables.
Status colors follow the queue's lifecycle: pending yellow, running cyan,
completed green, failed red, canceled dim.
"""

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from scrapegnome.models.core import MovieMedia, TvMedia
from scrapegnome.models.queue import QueueStats, ScrapingTask, TaskStatus

status_styles = {
    TaskStatus.PENDING: "yellow bold",
    TaskStatus.RUNNING: "cyan",
    TaskStatus.COMPLETED: "green bold",
    TaskStatus.FAILED: "red",
    TaskStatus.CANCELED: "dim",
}


def render_media(media: TvMedia | MovieMedia, console: Console | None = None) -> None:
    """Render one resolved media item as a two-column table."""
    console = console or Console()
    table = Table(title=f"{media.display_name} ({media.kind})", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Type", media.kind)
    table.add_row("TMDB ID", str(media.external_id))
    table.add_row("Extracted title", media.title)
    table.add_row("Provider title", media.display_name)
    if isinstance(media, TvMedia):
        table.add_row("Season", str(media.season))
        table.add_row("Episodes in season", str(len(media.season_detail.episodes)))
    elif isinstance(media, MovieMedia):
        if media.movie.release_date:
            table.add_row("Release date", media.movie.release_date.isoformat())
    else:
        raise TypeError(f"Unsupported media kind: {media!r}")
    if media.episode is not None:
        table.add_row("Episode", str(media.episode))
    if media.episode_title:
        table.add_row("Episode title", media.episode_title)
    if media.resolved.is_theatrical:
        table.add_row("Theatrical", "yes")
    if media.resolved.is_collection:
        members = ", ".join(str(i) for i in media.resolved.collection_member_ids)
        table.add_row("Collection members", members)
    console.print(table)


def _describe(task: ScrapingTask) -> str:
    if task.result and task.result.media:
        media = task.result.media
        label = f"{media.display_name} ({media.kind})"
        if media.episode is not None:
            label += f" E{media.episode:02d}"
        return label
    return task.last_error or ""


def render_tasks(tasks: list[ScrapingTask], console: Console | None = None) -> None:
    """Render scraping tasks as a rich table, one row per task."""
    console = console or Console()
    table = Table(title="Scraping tasks")
    table.add_column("ID", justify="right")
    table.add_column("Status", style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Retries", justify="right")
    table.add_column("Result / Error")

    for task in tasks:
        table.add_row(
            str(task.id),
            task.status.value,
            escape(task.file_name),
            f"{task.retry_count}/{task.max_retries}",
            escape(_describe(task)),
            style=status_styles.get(task.status, "white"),
        )
    console.print(table)


def render_stats(stats: QueueStats, console: Console | None = None) -> None:
    """Print a one-line queue summary."""
    console = console or Console()
    line = (
        f"Total: {stats.total} | Completed: {stats.completed} | "
        f"Failed: {stats.failed} | Pending: {stats.pending} | "
        f"Running: {stats.running} | Canceled: {stats.canceled}"
    )
    if stats.average_processing_time is not None:
        line += f" | Avg time: {stats.average_processing_time:.2f}s"
    console.print(line)
