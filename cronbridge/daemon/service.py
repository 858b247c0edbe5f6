"""Main service for Cronbridge.

This module provides the process-level component including:
- Service lifecycle management (start/stop)
- Coarse health state reporting (operational vs inactive)
- Signal handling for graceful shutdown
"""

import asyncio
import logging
import signal
from enum import Enum
from typing import Any, Dict, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from cronbridge.config import CronbridgeConfig
from cronbridge.scheduler.definition import Schedule
from cronbridge.scheduler.executor import ActionExecutor
from cronbridge.scheduler.lifecycle import JobLifecycleManager
from cronbridge.scheduler.synchronizer import RegistrySynchronizer
from cronbridge.scheduler.timer import CronTimer, TickCallback
from cronbridge.sync.client import SyncClient
from cronbridge.sync.seed import seed_registry

logger = logging.getLogger(__name__)


class ServiceState(Enum):
    """Health state reported to the host process."""

    INACTIVE = "inactive"
    STARTING = "starting"
    OK = "ok"


class CronService:
    """Keeps the registry's cron jobs scheduled in this process.

    The CronService wires the registry synchronizer, the job lifecycle
    manager and the action executor to one AsyncIOScheduler, and manages
    their lifecycle.

    Example:
        service = CronService(client, config)
        await service.start()
        ...
        await service.stop()
    """

    def __init__(
        self,
        client: SyncClient,
        config: Optional[CronbridgeConfig] = None,
    ) -> None:
        """Initialize the service.

        Args:
            client: Sync client holding the job registry
            config: Cronbridge configuration
        """
        self._client = client
        self._config = config or CronbridgeConfig()
        self._state = ServiceState.INACTIVE
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._shutdown_event = asyncio.Event()

        self._executor = ActionExecutor(client)
        self._lifecycle = JobLifecycleManager(
            self._executor,
            self._create_timer,
            timezone=self._config.scheduler.timezone,
        )
        self._synchronizer = RegistrySynchronizer(
            client,
            self._lifecycle,
            index_path=self._config.sync.index_path,
            record_root=self._config.sync.record_root,
        )

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Check if the service is operational."""
        return self._state == ServiceState.OK

    @property
    def executor(self) -> ActionExecutor:
        return self._executor

    @property
    def lifecycle(self) -> JobLifecycleManager:
        return self._lifecycle

    @property
    def synchronizer(self) -> RegistrySynchronizer:
        return self._synchronizer

    async def start(self) -> None:
        """Start the scheduler and subscribe to the registry."""
        if self._state != ServiceState.INACTIVE:
            logger.warning("Cron service already started")
            return

        logger.info("Starting cron service...")
        self._state = ServiceState.STARTING

        self._scheduler = self._create_scheduler()
        self._scheduler.start()

        try:
            await self._synchronizer.start()
        except Exception:
            self._state = ServiceState.INACTIVE
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            raise

        self._state = ServiceState.OK
        logger.info(f"Cron service started with {len(self._lifecycle)} cron jobs")

    async def stop(self) -> None:
        """Release the registry, stop all timers and the scheduler."""
        if self._state == ServiceState.INACTIVE:
            return

        logger.info("Stopping cron service...")

        try:
            self._synchronizer.stop()
        except Exception as e:
            logger.warning(f"Error stopping registry synchronizer: {e}")

        self._lifecycle.shutdown()

        try:
            await self._executor.drain()
        except Exception as e:
            logger.warning(f"Error waiting for pending RPC calls: {e}")

        if self._scheduler:
            try:
                self._scheduler.shutdown(wait=False)
            except Exception as e:
                logger.warning(f"Error stopping scheduler: {e}")
            self._scheduler = None

        self._state = ServiceState.INACTIVE
        logger.info("Cron service stopped")

    async def run_until_shutdown(self) -> None:
        """Block until request_shutdown() is called."""
        await self._shutdown_event.wait()

    def request_shutdown(self) -> None:
        """Request service shutdown, typically from a signal handler."""
        logger.info("Shutdown requested")
        self._shutdown_event.set()

    def get_status(self) -> Dict[str, Any]:
        """Get service status.

        Returns:
            Dictionary with state, tracked jobs and timer details
        """
        timers = {}
        for name in self._lifecycle.job_names:
            timer = self._lifecycle.get_timer(name)
            next_fire = timer.next_fire_time if timer else None
            timers[name] = {
                "schedule": str(timer.schedule) if timer else None,
                "next_fire_time": next_fire.isoformat() if next_fire else None,
            }

        return {
            "state": self._state.value,
            "tracked_jobs": self._synchronizer.tracked_names,
            "timers": timers,
            "pending_calls": self._executor.pending_calls,
        }

    def _create_scheduler(self) -> AsyncIOScheduler:
        """Create the APScheduler instance."""
        settings = self._config.scheduler
        job_defaults = {
            "coalesce": settings.coalesce,
            "max_instances": settings.max_instances,
            "misfire_grace_time": settings.misfire_grace_time,
        }

        kwargs: Dict[str, Any] = {
            "jobstores": {"default": MemoryJobStore()},
            "executors": {"default": AsyncIOExecutor()},
            "job_defaults": job_defaults,
        }
        if settings.timezone:
            kwargs["timezone"] = settings.timezone

        scheduler = AsyncIOScheduler(**kwargs)

        def on_job_error(event: Any) -> None:
            exception = getattr(event, "exception", "Unknown error")
            logger.error(f"Timer {event.job_id} failed: {exception}")

        def on_job_missed(event: Any) -> None:
            logger.warning(f"Timer {event.job_id} missed scheduled run")

        scheduler.add_listener(on_job_error, EVENT_JOB_ERROR)
        scheduler.add_listener(on_job_missed, EVENT_JOB_MISSED)
        return scheduler

    def _create_timer(self, name: str, schedule: Schedule, on_tick: TickCallback) -> CronTimer:
        if self._scheduler is None:
            raise RuntimeError("Cron service is not running")
        return CronTimer(
            self._scheduler,
            schedule,
            on_tick,
            start=True,
            timezone=self._config.scheduler.timezone,
            name=name,
        )


async def run_daemon(
    config: CronbridgeConfig,
    client: SyncClient,
    jobs: Optional[Dict[str, Any]] = None,
) -> None:
    """Run the cron service with signal handling.

    This function sets up signal handlers for graceful shutdown and
    runs the service until a shutdown signal is received.

    Args:
        config: Cronbridge configuration
        client: Sync client holding the job registry
        jobs: Job definitions to seed into the registry before starting
    """
    service = CronService(client, config)

    loop = asyncio.get_running_loop()

    def handle_signal(sig: signal.Signals) -> None:
        logger.info(f"Received signal {sig.name}, initiating shutdown...")
        service.request_shutdown()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            signal.signal(sig, lambda signum, frame: handle_signal(signal.Signals(signum)))

    try:
        if jobs:
            await seed_registry(client, jobs, config.sync.index_path, config.sync.record_root)
        await service.start()
        await service.run_until_shutdown()
    finally:
        await service.stop()
        await client.close()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                signal.signal(sig, signal.SIG_DFL)
