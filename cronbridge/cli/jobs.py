"""Cronbridge jobs command - Inspect job definition files."""

from datetime import datetime, timezone as dt_timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from cronbridge.cli.error_handler import ValidationError, handle_errors

app = typer.Typer(help="Inspect cron job definitions.")
console = Console()


def describe_jobs(jobs: Dict[str, Any], timezone: Optional[str] = None) -> List[Dict[str, Any]]:
    """Check every definition of a jobs file.

    Args:
        jobs: Mapping of job name to raw definition record
        timezone: Timezone used for cron expressions

    Returns:
        One row per job with its schedule, actions, next fire time
        and error (None for valid jobs)
    """
    from cronbridge.scheduler.definition import CronDefinition
    from cronbridge.scheduler.exceptions import InvalidDefinitionError
    from cronbridge.scheduler.timer import build_trigger, fire_time_passed

    rows: List[Dict[str, Any]] = []
    for name, data in jobs.items():
        row: Dict[str, Any] = {"name": name, "schedule": "", "actions": "", "next_fire": None, "error": None}
        try:
            definition = CronDefinition.from_dict(data, name)
            row["actions"] = ", ".join(kind.value for kind, _ in definition.actions())
            schedule = definition.resolve_schedule(name)
            row["schedule"] = str(schedule)
            trigger = build_trigger(schedule, timezone)
            if fire_time_passed(schedule, timezone):
                row["error"] = "Fire time has passed"
            else:
                row["next_fire"] = trigger.get_next_fire_time(None, datetime.now(dt_timezone.utc))
        except InvalidDefinitionError as e:
            row["error"] = e.message
        rows.append(row)
    return rows


@app.command("validate")
@handle_errors
def validate_jobs(
    jobs_file: Path = typer.Argument(
        ...,
        help="YAML or JSON jobs file.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    timezone: Optional[str] = typer.Option(
        None,
        "--timezone",
        "-t",
        help="Timezone for cron expressions (local time if not set).",
    ),
) -> None:
    """Validate the definitions of a jobs file.
    
    Example:
        cronbridge jobs validate jobs.yaml
    """
    from cronbridge.sync.seed import load_jobs_file

    jobs = load_jobs_file(jobs_file)
    rows = describe_jobs(jobs, timezone)

    table = Table(title=f"Cron Jobs ({jobs_file.name})")
    table.add_column("Name", style="cyan")
    table.add_column("Schedule", style="green")
    table.add_column("Actions", style="magenta")
    table.add_column("Next Fire")
    table.add_column("Status", style="bold")

    for row in rows:
        next_fire = row["next_fire"].strftime("%Y-%m-%d %H:%M:%S %Z") if row["next_fire"] else "N/A"
        status = f"[red]{row['error']}[/red]" if row["error"] else "[green]valid[/green]"
        table.add_row(row["name"], row["schedule"], row["actions"] or "-", next_fire, status)

    console.print(table)

    invalid = [row["name"] for row in rows if row["error"]]
    if invalid:
        raise ValidationError(
            f"{len(invalid)} of {len(rows)} job definitions are invalid",
            details={"jobs": ", ".join(invalid)},
        )
    console.print(f"[green]✓[/green] {len(rows)} job definitions are valid")
