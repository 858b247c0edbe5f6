"""Cronbridge run command - Keep the job registry scheduled."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from cronbridge.cli.error_handler import ConfigurationError, handle_errors

app = typer.Typer(help="Run the cron service against the job registry.")
console = Console()


def _apply_logging_config(level: str, format_str: str, log_file: Optional[Path]) -> None:
    """Apply the configured level and log file to the cronbridge loggers."""
    package_logger = logging.getLogger("cronbridge")
    configured = logging.getLevelName(level.upper())
    # CLI flags may ask for more detail than the config file
    package_logger.setLevel(min(configured, logging.getLogger().level))

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(format_str))
        package_logger.addHandler(file_handler)


@app.callback(invoke_without_command=True)
@handle_errors
def run(
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    jobs_file: Optional[Path] = typer.Option(
        None,
        "--jobs",
        "-j",
        help="YAML or JSON jobs file seeding the memory registry.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
) -> None:
    """Start the cron service and run until interrupted.
    
    The service subscribes to the job registry, keeps one timer per
    registered job, and performs each job's actions when it fires.
    
    Example:
        cronbridge run --jobs jobs.yaml
        cronbridge run --config config.toml
    """
    from cronbridge.config import load_config, validate_config
    from cronbridge.daemon.service import run_daemon
    from cronbridge.sync.client import create_client
    from cronbridge.sync.seed import load_jobs_file

    config = load_config(config_file)
    if jobs_file is not None:
        config.sync.jobs_file = jobs_file

    errors = [e for e in validate_config(config) if e.severity == "error"]
    if errors:
        raise ConfigurationError(
            "Configuration is invalid",
            details={e.field: e.message for e in errors},
        )

    _apply_logging_config(config.logging.level, config.logging.format, config.logging.file)

    jobs = load_jobs_file(config.sync.jobs_file) if config.sync.jobs_file else None
    client = create_client(config)

    console.print("[bold green]Starting cron service...[/bold green]")
    console.print(f"[dim]Index: {config.sync.index_path}[/dim]")
    if jobs:
        console.print(f"[dim]Seeding {len(jobs)} jobs from {config.sync.jobs_file}[/dim]")

    try:
        asyncio.run(run_daemon(config, client, jobs))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return

    logging.getLogger(__name__).debug("Cron service exited")
    console.print("[dim]Cron service stopped[/dim]")
