"""Cronbridge config command - Configuration inspection."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from cronbridge.cli.error_handler import ConfigurationError, handle_errors

app = typer.Typer(help="Inspect Cronbridge configuration.")
console = Console()


@app.command("show")
@handle_errors
def show_config(
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
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, yaml, json).",
    ),
) -> None:
    """Show the effective configuration.
    
    Example:
        cronbridge config show
        cronbridge config show --format yaml
    """
    from cronbridge.config import _config_to_dict, export_config_json, export_config_yaml, load_config

    config = load_config(config_file)

    if format == "yaml":
        console.print(Syntax(export_config_yaml(config), "yaml", theme="monokai"))
        return
    if format == "json":
        console.print(Syntax(export_config_json(config), "json", theme="monokai"))
        return
    if format != "table":
        raise ConfigurationError(f"Unknown output format: {format}")

    table = Table(title="Cronbridge Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    for section, values in _config_to_dict(config).items():
        if isinstance(values, dict):
            for key, value in values.items():
                table.add_row(f"{section}.{key}", "" if value is None else str(value))
        else:
            table.add_row(section, str(values))

    console.print(table)


@app.command("validate")
@handle_errors
def validate(
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
) -> None:
    """Validate the configuration.
    
    Example:
        cronbridge config validate
    """
    from cronbridge.config import load_config, validate_config

    errors = validate_config(load_config(config_file))

    for error in errors:
        color = "red" if error.severity == "error" else "yellow"
        console.print(f"[{color}]{error}[/{color}]")

    if any(error.severity == "error" for error in errors):
        raise ConfigurationError("Configuration is invalid")
    console.print("[green]✓[/green] Configuration is valid")
