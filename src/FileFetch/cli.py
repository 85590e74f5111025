"""Typer CLI for FileFetch.

Commands:
- ``filefetch fetch URI [--to DIR]`` retrieves one file and prints its absolute path
- ``filefetch methods [SCHEME]`` shows the mechanism priority tables with
  blacklisted and failed mechanisms flagged

Exit codes: 0 on success, 1 when no mechanism succeeded, 2 for invalid input
(malformed URI, uncreatable destination, bad settings).

Example:
    >>> from FileFetch.cli import app
    >>> if __name__ == "__main__":
    ...     app()
"""

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from FileFetch import __version__
from FileFetch.errors import (
    ConfigurationError,
    DirectoryCreateError,
    NoMechanismSucceeded,
    UriParseError,
)
from FileFetch.fetch import Fetcher
from FileFetch.logging_utils import setup_logging
from FileFetch.settings import LoggingConfiguration, get_settings

app = typer.Typer(
    name="filefetch",
    help="Fetch a file by URI using whichever retrieval mechanism works.",
    no_args_is_help=True,
    add_completion=False,
)

_console = Console()
_err_console = Console(stderr=True)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"filefetch {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """FileFetch command line interface."""


@app.command("fetch")
def fetch_command(
    uri: str = typer.Argument(..., help="http://, ftp:// or file:// URI of the file to fetch"),
    to: Optional[Path] = typer.Option(
        None, "--to", "-t", help="Destination directory (default: current directory)"
    ),
    debug: Optional[bool] = typer.Option(
        None, "--debug/--no-debug", help="Show tool output and log every mechanism decision"
    ),
    passive: Optional[bool] = typer.Option(
        None, "--passive/--no-passive", help="Use passive-mode FTP (default: on)"
    ),
    blacklist: Optional[List[str]] = typer.Option(
        None, "--blacklist", "-b", help="Mechanism to never try (replaces the default blacklist); repeat for several"
    ),
    from_email: Optional[str] = typer.Option(
        None, "--from-email", help="Anonymous FTP password and HTTP From header"
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Per-mechanism timeout in seconds"
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Console logging level"),
    log_dir: Optional[Path] = typer.Option(
        None, "--log-dir", help="Write JSON-lines logs into this directory"
    ),
) -> None:
    """Fetch URI and print the absolute path of the retrieved file."""

    try:
        settings = get_settings(
            debug=debug,
            passive_ftp=passive,
            blacklist=list(blacklist) if blacklist else None,
            from_email=from_email,
            timeout_sec=timeout,
        )
        level = "DEBUG" if settings.debug and log_level.upper() == "WARNING" else log_level
        setup_logging(LoggingConfiguration(level=level), log_dir=log_dir)
        registry = settings.build_registry()
        path = Fetcher(registry=registry, settings=settings).fetch(uri, to)
    except NoMechanismSucceeded as exc:
        _err_console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)
    except (UriParseError, DirectoryCreateError, ConfigurationError, ValueError) as exc:
        _err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(2)

    typer.echo(str(path))


@app.command("methods")
def methods_command(
    scheme: Optional[str] = typer.Argument(None, help="Only show this scheme"),
    probe: bool = typer.Option(
        False, "--probe", help="Check which mechanisms are installed before listing"
    ),
) -> None:
    """Show mechanism priority per scheme."""

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        _err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(2)

    registry = settings.build_registry()
    if probe:
        registry.probe()

    schemes = [scheme.lower()] if scheme else list(registry.schemes())
    table = Table(title="Retrieval mechanisms")
    table.add_column("scheme")
    table.add_column("mechanisms (priority order)")
    for name in schemes:
        labels = []
        for mechanism in registry.mechanisms_for(name):
            if mechanism in registry.blacklist:
                labels.append(f"{mechanism} (blacklisted)")
            elif registry.is_failed(mechanism):
                labels.append(f"{mechanism} (unavailable)")
            else:
                labels.append(mechanism)
        table.add_row(name, ", ".join(labels) or "-")
    _console.print(table)


def main() -> None:
    """Console script entry point."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
