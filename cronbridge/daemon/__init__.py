"""Daemon module for Cronbridge.

This module provides the process-level service that keeps the job
registry scheduled until the process is asked to shut down.
"""

from cronbridge.daemon.service import (
    CronService,
    ServiceState,
    run_daemon,
)

__all__ = [
    "CronService",
    "ServiceState",
    "run_daemon",
]
