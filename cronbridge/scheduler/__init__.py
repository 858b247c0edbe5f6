"""Cron job scheduling driven by the shared job registry.

The synchronizer tracks the registry index, the lifecycle manager keeps
one timer per job, and the executor performs a job's actions whenever
its timer fires.
"""

from cronbridge.scheduler.definition import (
    ActionKind,
    CallOperation,
    CronDefinition,
    EventOperation,
    RecordOperation,
)
from cronbridge.scheduler.exceptions import InvalidDefinitionError, SchedulerError
from cronbridge.scheduler.executor import ActionExecutor, ActionOutcome, ExecutionResult
from cronbridge.scheduler.lifecycle import JobLifecycleManager
from cronbridge.scheduler.synchronizer import RegistrySynchronizer
from cronbridge.scheduler.timer import CronTimer

__all__ = [
    "ActionExecutor",
    "ActionKind",
    "ActionOutcome",
    "CallOperation",
    "CronDefinition",
    "CronTimer",
    "EventOperation",
    "ExecutionResult",
    "InvalidDefinitionError",
    "JobLifecycleManager",
    "RecordOperation",
    "RegistrySynchronizer",
    "SchedulerError",
]
