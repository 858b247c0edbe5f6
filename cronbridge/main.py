"""Main CLI entry point for Cronbridge."""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from cronbridge import __app_name__, __version__
from cronbridge.cli import config, jobs, run
from cronbridge.cli.exit_codes import ExitCode

# Create the main Typer app
app = typer.Typer(
    name=__app_name__,
    help="Cronbridge - runs the cron jobs declared in a shared job registry.",
    add_completion=True,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Console for CLI output
console = Console()

# Register command groups
app.add_typer(run.app, name="run")
app.add_typer(jobs.app, name="jobs")
app.add_typer(config.app, name="config")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"{__app_name__} v{__version__}")
        raise typer.Exit(code=ExitCode.SUCCESS)


LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(filename)s:%(lineno)d]: %(message)s"

# Loggers too chatty for anything but --debug
NOISY_LOGGERS = ("apscheduler",)


def _console_level(verbose: bool, debug: bool, quiet: bool) -> int:
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.ERROR if quiet else logging.WARNING


def _setup_logging(
    verbose: bool = False,
    debug: bool = False,
    quiet: bool = False,
    log_file: Optional[Path] = None,
) -> None:
    """Configure the root logger from the global CLI options.

    Console output goes to stderr at the selected level. A log file,
    if given, always receives DEBUG records.
    """
    console_level = _console_level(verbose, debug, quiet)
    handlers: list[logging.Handler] = []

    if not quiet:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(console_level)
        handlers.append(stderr_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=logging.DEBUG if log_file else console_level,
        format=DEBUG_LOG_FORMAT if debug else LOG_FORMAT,
        handlers=handlers or [logging.NullHandler()],
        force=True,
    )

    if not debug:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    destinations = ([] if quiet else ["stderr"]) + ([str(log_file)] if log_file else [])
    logging.getLogger(__name__).debug(
        f"Logging to {', '.join(destinations) or 'nowhere'} at {logging.getLevelName(console_level)}"
    )


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose output (INFO level logging).",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode (DEBUG level logging).",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output.",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Log to file (logs DEBUG level regardless of console settings).",
    ),
) -> None:
    """Cronbridge - runs the cron jobs declared in a shared job registry.

    [bold]Commands:[/bold]

    • [cyan]run[/cyan] - Start the cron service
    • [cyan]jobs[/cyan] - Validate job definition files
    • [cyan]config[/cyan] - Inspect configuration

    [bold]Examples:[/bold]

        cronbridge run --jobs jobs.yaml
        cronbridge jobs validate jobs.yaml
        cronbridge config show --format yaml
    """
    if quiet and (verbose or debug):
        console.print("[red]Error:[/red] --quiet cannot be combined with --verbose or --debug")
        raise typer.Exit(code=ExitCode.INVALID_ARGUMENT)

    _setup_logging(verbose=verbose, debug=debug, quiet=quiet, log_file=log_file)

    logger = logging.getLogger(__name__)
    logger.debug(f"Cronbridge v{__version__} starting")


if __name__ == "__main__":
    app()
