"""Command-line interface for scrapegnome.

This package provides the Typer app that every CLI command registers on.

- app: The Typer application object; commands register on it in
  scrapegnome.cli.commands, which is also the console-script entry point.
"""

import os

import typer
from rich.traceback import install

# Install rich traceback handler for all CLI commands
install(show_locals=False)

app = typer.Typer(
    name="scrapegnome",
    help="Identify media files by name and resolve them against TMDB.",
    add_completion=True,
)


@app.callback()
def callback(
    ctx: typer.Context,  # noqa: D401 – Typer requires ctx param first
    no_rich: bool = typer.Option(
        False,
        "--no-rich",
        help=(
            "Disable Rich coloured output and spinners. "
            "Can also be set with the SCRAPEGNOME_NO_RICH environment variable."
        ),
    ),
) -> None:
    """Top-level CLI callback adding global options.

    The *--no-rich* flag is implemented by setting ``SCRAPEGNOME_NO_RICH`` so
    that :class:`~scrapegnome.cli.console.ConsoleManager` responds the same way
    whether the flag is passed or the variable is set externally.
    """
    if no_rich:
        os.environ["SCRAPEGNOME_NO_RICH"] = "1"
