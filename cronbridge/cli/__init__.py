"""CLI command modules for Cronbridge.

This package contains the CLI command implementations and the shared
error handling used by them.
"""

from cronbridge.cli.exit_codes import ExitCode
from cronbridge.cli.error_handler import (
    CronbridgeError,
    ConfigurationError,
    ValidationError,
    NotFoundError,
    handle_errors,
)

__all__ = [
    "ExitCode",
    "CronbridgeError",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "handle_errors",
]
