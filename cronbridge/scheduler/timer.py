"""Timers binding a schedule to a callback on APScheduler.

A CronTimer wraps exactly one APScheduler job on a shared
AsyncIOScheduler. Timers are never modified: to change what or when a
job fires, stop the timer and create a new one.
"""

import logging
import re
from datetime import datetime, timezone as dt_timezone
from typing import Any, Awaitable, Callable, List, Optional, Union
from uuid import uuid4

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.combining import OrTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from cronbridge.scheduler.definition import Schedule
from cronbridge.scheduler.exceptions import InvalidDefinitionError

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[Any]]
Timezone = Optional[Union[str, Any]]

# Cron counts weekdays from Sunday (0 and 7), APScheduler from Monday
_WEEKDAYS = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]
_WEEKDAY_PART = re.compile(r"^(\*|\d+)(?:-(\d+))?(?:/(\d+))?$")


def _translate_weekday(field: str) -> str:
    """Rewrite numeric cron weekdays as names APScheduler understands."""
    parts: List[str] = []
    for part in field.split(","):
        match = _WEEKDAY_PART.match(part)
        if not match or part == "*":
            parts.append(part)
            continue

        step = int(match.group(3)) if match.group(3) else 1
        if match.group(1) == "*":
            if match.group(2):
                raise ValueError(f"Invalid day of week: {part}")
            start, end = 0, 6
        else:
            start = int(match.group(1))
            end = int(match.group(2)) if match.group(2) else None
            if end is None:
                end = 6 if match.group(3) else start
        if start > 7 or end > 7 or start > end or step < 1:
            raise ValueError(f"Invalid day of week: {part}")

        for day in range(start, end + 1, step):
            name = _WEEKDAYS[day % 7]
            if name not in parts:
                parts.append(name)
    return ",".join(parts)


def parse_cron_trigger(expression: str, timezone: Timezone = None) -> BaseTrigger:
    """Parse a cron expression into an APScheduler trigger.

    Supports both 5-part (minute hour day month weekday) and
    6-part (second minute hour day month weekday) cron formats.

    When both day of month and day of week are restricted, the job
    fires on days matching either of them, as cron does.

    Args:
        expression: Cron expression
        timezone: Timezone for the trigger (local time if None)

    Returns:
        CronTrigger, or OrTrigger over two CronTriggers for day-or-weekday
        expressions

    Raises:
        InvalidDefinitionError: If the expression is malformed
    """
    parts = expression.split()

    try:
        if len(parts) == 6:
            second, minute, hour, day, month, weekday = parts
        elif len(parts) == 5:
            minute, hour, day, month, weekday = parts
            second = "0"
        else:
            raise ValueError(f"expected 5 or 6 fields, got {len(parts)}")

        fields = dict(second=second, minute=minute, hour=hour, month=month, timezone=timezone)
        day_of_week = _translate_weekday(weekday)
        if day.startswith("*") or weekday.startswith("*"):
            return CronTrigger(day=day, day_of_week=day_of_week, **fields)

        return OrTrigger([
            CronTrigger(day=day, **fields),
            CronTrigger(day_of_week=day_of_week, **fields),
        ])
    except ValueError as e:
        raise InvalidDefinitionError(f"Invalid cron expression '{expression}': {e}") from e


def build_trigger(schedule: Schedule, timezone: Timezone = None) -> BaseTrigger:
    """Build the APScheduler trigger for a resolved schedule."""
    if isinstance(schedule, datetime):
        return DateTrigger(run_date=schedule, timezone=timezone)
    return parse_cron_trigger(schedule, timezone)


def fire_time_passed(schedule: Schedule, timezone: Timezone = None) -> bool:
    """Check if a one-shot schedule lies in the past."""
    if not isinstance(schedule, datetime):
        return False
    trigger = build_trigger(schedule, timezone)
    return trigger.run_date <= datetime.now(dt_timezone.utc)


class CronTimer:
    """A schedule bound to a callback.

    Example:
        timer = CronTimer(scheduler, "*/5 * * * * *", on_tick)
        ...
        timer.stop()
    """

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        schedule: Schedule,
        on_tick: TickCallback,
        start: bool = True,
        timezone: Timezone = None,
        name: str = "",
    ) -> None:
        """Initialize the timer.

        Args:
            scheduler: Scheduler running the timer's job
            schedule: Cron expression or absolute fire time
            on_tick: Coroutine function awaited on every firing
            start: Schedule the job immediately
            timezone: Timezone for the trigger (local time if None)
            name: Name used for the job and in log messages

        Raises:
            InvalidDefinitionError: If the schedule cannot be parsed
        """
        self._scheduler = scheduler
        self._on_tick = on_tick
        self._name = name or "timer"
        self._schedule = schedule
        self._timezone = timezone
        self._trigger = build_trigger(schedule, timezone)
        self._job_id = f"{self._name}:{uuid4().hex}"
        self._started = False

        if start:
            self.start()

    @property
    def name(self) -> str:
        return self._name

    @property
    def schedule(self) -> Schedule:
        return self._schedule

    @property
    def job_id(self) -> str:
        """ID of the APScheduler job backing this timer."""
        return self._job_id

    @property
    def is_running(self) -> bool:
        """Check if the timer will fire again."""
        return self._started and self._scheduler.get_job(self._job_id) is not None

    @property
    def next_fire_time(self) -> Optional[datetime]:
        """Get the next time the timer fires, or None if it won't."""
        if not self._started:
            return None
        job = self._scheduler.get_job(self._job_id)
        if job is None:
            return None
        next_run = getattr(job, "next_run_time", None)
        if next_run is None:
            # Jobs added before the scheduler starts have no run time yet
            next_run = self._trigger.get_next_fire_time(None, datetime.now(dt_timezone.utc))
        return next_run

    def start(self) -> None:
        """Schedule the timer's job. No-op if already started."""
        if self._started:
            return
        self._scheduler.add_job(
            self._fire,
            trigger=self._trigger,
            id=self._job_id,
            name=self._name,
        )
        self._started = True
        logger.debug(f"Started timer {self._job_id} with schedule '{self._schedule}'")

    def stop(self) -> None:
        """Stop the timer. Safe to call repeatedly or after a one-shot fired."""
        if not self._started:
            return
        self._started = False
        try:
            self._scheduler.remove_job(self._job_id)
            logger.debug(f"Stopped timer {self._job_id}")
        except JobLookupError:
            logger.debug(f"Timer {self._job_id} already completed")

    async def _fire(self) -> None:
        await self._on_tick()
