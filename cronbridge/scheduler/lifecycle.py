"""Lifecycle of the timers backing cron jobs.

The JobLifecycleManager owns the mapping from job name to timer. Every
definition received for a job replaces that job's timer as a whole:
the old timer is stopped first, then a new one is created from the new
definition (or none, if the definition is invalid).
"""

import logging
from typing import Callable, Dict, List, Optional

from cronbridge.scheduler.definition import CronDefinition, Schedule
from cronbridge.scheduler.exceptions import InvalidDefinitionError
from cronbridge.scheduler.executor import ActionExecutor
from cronbridge.scheduler.timer import CronTimer, TickCallback, Timezone, fire_time_passed

logger = logging.getLogger(__name__)

# Builds a started timer: (job name, schedule, callback) -> timer
TimerFactory = Callable[[str, Schedule, TickCallback], CronTimer]


class JobLifecycleManager:
    """Creates, replaces and tears down the timers of cron jobs.

    Example:
        manager = JobLifecycleManager(executor, timer_factory)
        manager.apply("nightly", CronDefinition(cron="0 0 * * *"))
        manager.remove("nightly")
    """

    def __init__(
        self,
        executor: ActionExecutor,
        timer_factory: TimerFactory,
        timezone: Timezone = None,
    ) -> None:
        """Initialize the manager.

        Args:
            executor: Executor invoked when a job's timer fires
            timer_factory: Creates a started timer for a schedule
            timezone: Timezone used to decide if a one-shot time has passed
        """
        self._executor = executor
        self._timer_factory = timer_factory
        self._timezone = timezone
        self._timers: Dict[str, CronTimer] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._timers

    def __len__(self) -> int:
        return len(self._timers)

    @property
    def job_names(self) -> List[str]:
        """Get the names of jobs with a timer."""
        return list(self._timers.keys())

    def get_timer(self, name: str) -> Optional[CronTimer]:
        """Get the timer of a job, if it has one."""
        return self._timers.get(name)

    def apply(self, name: str, definition: CronDefinition) -> Optional[CronTimer]:
        """Replace a job's timer with one built from a new definition.

        Invalid definitions are logged and leave the job without a timer.

        Args:
            name: Job name
            definition: Most recently received definition of the job

        Returns:
            The new timer, or None if no timer was created
        """
        self._stop_timer(name)

        try:
            schedule = definition.resolve_schedule(name)
        except InvalidDefinitionError as e:
            logger.error(f"Invalid cron definition {name}: {e.message}")
            return None

        if fire_time_passed(schedule, self._timezone):
            logger.warning(f"Cron job {name} is scheduled at {schedule}, which has passed. It will never fire.")
            return None

        async def on_tick() -> None:
            await self._executor.execute(definition, job_name=name)

        try:
            timer = self._timer_factory(name, schedule, on_tick)
        except InvalidDefinitionError as e:
            logger.error(f"Invalid cron definition {name}: {e.message}")
            return None

        self._timers[name] = timer
        logger.info(f"Created cron job {name}")
        return timer

    def remove(self, name: str) -> bool:
        """Stop and forget a job's timer.

        Returns:
            True if the job had a timer
        """
        if not self._stop_timer(name):
            return False
        logger.info(f"Removed cron job {name}")
        return True

    def shutdown(self) -> None:
        """Stop every timer."""
        for name in list(self._timers.keys()):
            self._stop_timer(name)
        logger.debug("Stopped all cron job timers")

    def _stop_timer(self, name: str) -> bool:
        timer = self._timers.pop(name, None)
        if timer is None:
            return False
        timer.stop()
        return True
