"""
Cronbridge Configuration Management.

Handles loading and validating configuration from various sources:
- Default values
- Configuration files (TOML)
- Environment variables
- Command-line arguments
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, List

import yaml

from cronbridge.scheduler.synchronizer import CRON_ROOT, INDEX_PATH


# Configuration directory and file constants
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "cronbridge"
DEFAULT_CONFIG_FILE = "config.toml"

SUPPORTED_BACKENDS = ("memory",)
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ValidationError:
    """Validation error for configuration."""
    field: str
    message: str
    severity: str  # "error" or "warning"

    def __str__(self) -> str:
        return f"[{self.severity.upper()}] {self.field}: {self.message}"


@dataclass
class SyncConfig:
    """Configuration for the job registry and its sync client."""

    # Sync client backend
    backend: str = "memory"

    # Registry layout
    index_path: str = INDEX_PATH
    record_root: str = CRON_ROOT

    # Job definitions seeded into the memory backend
    jobs_file: Optional[Path] = None


@dataclass
class SchedulerConfig:
    """Configuration for the timer scheduler."""

    # None uses the local timezone
    timezone: Optional[str] = None

    # APScheduler job defaults
    coalesce: bool = True  # Combine missed runs
    max_instances: int = 3  # Overlapping runs of one job
    misfire_grace_time: int = 60  # seconds


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[Path] = None


@dataclass
class CronbridgeConfig:
    """Main configuration container for Cronbridge."""

    config_dir: Path = DEFAULT_CONFIG_DIR

    # Sub-configurations
    sync: SyncConfig = field(default_factory=SyncConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(
    config_path: Optional[Path] = None,
    env_prefix: str = "CRONBRIDGE_"
) -> CronbridgeConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file
    3. Default values

    Args:
        config_path: Path to config file (default: ~/.config/cronbridge/config.toml)
        env_prefix: Prefix for environment variables

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If the config file cannot be parsed
    """
    config = CronbridgeConfig()

    # Determine config file path
    if config_path is None:
        env_config_dir = os.environ.get(f"{env_prefix}CONFIG_DIR")
        if env_config_dir:
            config.config_dir = Path(env_config_dir)
        config_path = config.config_dir / DEFAULT_CONFIG_FILE

    if config_path.exists():
        config = _load_from_file(config_path, config)

    # Override with environment variables
    config = _load_from_env(config, env_prefix)

    return config


def _load_from_file(path: Path, config: CronbridgeConfig) -> CronbridgeConfig:
    """Load configuration from a TOML file."""
    from cronbridge.cli.error_handler import ConfigurationError

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(
            f"Failed to load config from {path}: {e}",
            details={"path": str(path)},
        ) from e

    for section in ("sync", "scheduler", "logging"):
        section_obj = getattr(config, section)
        for key, value in data.get(section, {}).items():
            if hasattr(section_obj, key):
                setattr(section_obj, key, value)

    # Paths arrive as strings
    if config.sync.jobs_file is not None:
        config.sync.jobs_file = Path(config.sync.jobs_file)
    if config.logging.file is not None:
        config.logging.file = Path(config.logging.file)

    if "config_dir" in data:
        config.config_dir = Path(data["config_dir"])

    return config


def _load_from_env(config: CronbridgeConfig, prefix: str) -> CronbridgeConfig:
    """Load configuration from environment variables."""

    # Sync settings
    if env_val := os.environ.get(f"{prefix}SYNC_BACKEND"):
        config.sync.backend = env_val
    if env_val := os.environ.get(f"{prefix}INDEX_PATH"):
        config.sync.index_path = env_val
    if env_val := os.environ.get(f"{prefix}RECORD_ROOT"):
        config.sync.record_root = env_val
    if env_val := os.environ.get(f"{prefix}JOBS_FILE"):
        config.sync.jobs_file = Path(env_val)

    # Scheduler settings
    if env_val := os.environ.get(f"{prefix}TIMEZONE"):
        config.scheduler.timezone = env_val
    if env_val := os.environ.get(f"{prefix}MISFIRE_GRACE_TIME"):
        config.scheduler.misfire_grace_time = int(env_val)
    if env_val := os.environ.get(f"{prefix}MAX_INSTANCES"):
        config.scheduler.max_instances = int(env_val)

    # Logging settings
    if env_val := os.environ.get(f"{prefix}LOG_LEVEL"):
        config.logging.level = env_val.upper()
    if env_val := os.environ.get(f"{prefix}LOG_FILE"):
        config.logging.file = Path(env_val)

    return config


def validate_config(config: Optional[CronbridgeConfig] = None) -> List[ValidationError]:
    """
    Validate configuration and return list of errors.

    Args:
        config: Configuration to validate (default: loaded from file)

    Returns:
        List of validation errors (empty if valid)
    """
    if config is None:
        config = load_config()

    errors: List[ValidationError] = []

    # Sync validation
    if config.sync.backend not in SUPPORTED_BACKENDS:
        errors.append(ValidationError(
            field="sync.backend",
            message=f"Unknown backend '{config.sync.backend}'. Supported: {', '.join(SUPPORTED_BACKENDS)}",
            severity="error"
        ))

    if not config.sync.index_path:
        errors.append(ValidationError(
            field="sync.index_path",
            message="Index path must not be empty.",
            severity="error"
        ))

    if not config.sync.record_root.strip("/"):
        errors.append(ValidationError(
            field="sync.record_root",
            message="Record root must not be empty.",
            severity="error"
        ))

    if config.sync.jobs_file is not None:
        if config.sync.backend != "memory":
            errors.append(ValidationError(
                field="sync.jobs_file",
                message="Jobs file is only used by the memory backend.",
                severity="warning"
            ))
        elif not config.sync.jobs_file.exists():
            errors.append(ValidationError(
                field="sync.jobs_file",
                message=f"Jobs file does not exist: {config.sync.jobs_file}",
                severity="error"
            ))
    elif config.sync.backend == "memory":
        errors.append(ValidationError(
            field="sync.jobs_file",
            message="No jobs file set. The memory backend starts with an empty registry.",
            severity="warning"
        ))

    # Scheduler validation
    if config.scheduler.max_instances < 1:
        errors.append(ValidationError(
            field="scheduler.max_instances",
            message="Must be at least 1.",
            severity="error"
        ))

    if config.scheduler.misfire_grace_time < 0:
        errors.append(ValidationError(
            field="scheduler.misfire_grace_time",
            message="Must not be negative.",
            severity="error"
        ))

    if config.scheduler.timezone:
        try:
            from zoneinfo import ZoneInfo
            ZoneInfo(config.scheduler.timezone)
        except (KeyError, ValueError):
            errors.append(ValidationError(
                field="scheduler.timezone",
                message=f"Unknown timezone: {config.scheduler.timezone}",
                severity="error"
            ))

    # Logging validation
    if config.logging.level.upper() not in LOG_LEVELS:
        errors.append(ValidationError(
            field="logging.level",
            message=f"Invalid log level: {config.logging.level}",
            severity="error"
        ))

    return errors


def _config_to_dict(config: CronbridgeConfig) -> dict[str, Any]:
    """
    Convert configuration to dictionary.

    Args:
        config: Configuration to convert

    Returns:
        Dictionary representation of config
    """
    def path_value(value: Optional[Path]) -> Optional[str]:
        return str(value) if value else None

    return {
        "config_dir": str(config.config_dir),
        "sync": {
            "backend": config.sync.backend,
            "index_path": config.sync.index_path,
            "record_root": config.sync.record_root,
            "jobs_file": path_value(config.sync.jobs_file),
        },
        "scheduler": {
            "timezone": config.scheduler.timezone,
            "coalesce": config.scheduler.coalesce,
            "max_instances": config.scheduler.max_instances,
            "misfire_grace_time": config.scheduler.misfire_grace_time,
        },
        "logging": {
            "level": config.logging.level,
            "format": config.logging.format,
            "file": path_value(config.logging.file),
        },
    }


def export_config_yaml(config: CronbridgeConfig) -> str:
    """
    Export configuration as YAML string.

    Args:
        config: Configuration to export

    Returns:
        YAML string representation of config
    """
    config_dict = _config_to_dict(config)
    return yaml.dump(config_dict, default_flow_style=False, sort_keys=False, allow_unicode=True)


def export_config_json(config: CronbridgeConfig) -> str:
    """
    Export configuration as JSON string.

    Args:
        config: Configuration to export

    Returns:
        JSON string representation of config
    """
    config_dict = _config_to_dict(config)
    return json.dumps(config_dict, indent=2)
