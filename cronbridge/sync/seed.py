"""Seeding a registry from a jobs file.

A jobs file is YAML (or JSON) mapping job names to definition records:

    jobs:
      heartbeat:
        cron: "*/10 * * * * *"
        emit:
          name: heartbeat
          data: {source: cronbridge}
"""

import logging
from pathlib import Path
from typing import Any, Dict

import yaml

from cronbridge.sync.client import SyncClient

logger = logging.getLogger(__name__)


def load_jobs_file(path: Path) -> Dict[str, Any]:
    """Read the job definitions from a jobs file.

    Args:
        path: YAML or JSON file

    Returns:
        Mapping of job name to raw definition record

    Raises:
        NotFoundError: If the file does not exist
        ValidationError: If the file cannot be read or has the wrong shape
    """
    from cronbridge.cli.error_handler import NotFoundError, ValidationError

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError as e:
        raise NotFoundError(f"Jobs file not found: {path}") from e
    except (OSError, yaml.YAMLError) as e:
        raise ValidationError(f"Failed to read jobs file: {e}", details={"path": str(path)}) from e

    if not isinstance(data, dict):
        raise ValidationError("Jobs file must contain a mapping", details={"path": str(path)})

    jobs = data.get("jobs", {}) or {}
    if not isinstance(jobs, dict):
        raise ValidationError('"jobs" must map job names to definitions', details={"path": str(path)})

    return {str(name): definition for name, definition in jobs.items()}


async def seed_registry(
    client: SyncClient,
    jobs: Dict[str, Any],
    index_path: str,
    record_root: str,
) -> None:
    """Write definition records and the index for a set of jobs.

    Definition records are written before the index, so subscribers of
    the index find every listed record populated.
    """
    root = record_root.rstrip("/")
    for name, definition in jobs.items():
        record = client.get_record(f"{root}/{name}")
        try:
            await record.when_ready()
            await record.set_with_ack(definition)
        finally:
            record.discard()

    index = client.get_list(index_path)
    try:
        await index.when_ready()
        index.set_entries(list(jobs.keys()))
    finally:
        index.discard()

    logger.info(f"Seeded registry with {len(jobs)} cron jobs")
