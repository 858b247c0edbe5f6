"""Synchronization of the cron job registry with local timers.

The registry consists of an index (a list record holding job names) and
one definition record per job. The RegistrySynchronizer subscribes to
the index, diffs every delivered list against the names it tracks, and
keeps a subscription to the definition record of each tracked job.
Definition updates are routed to the JobLifecycleManager.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from cronbridge.scheduler.definition import CronDefinition
from cronbridge.scheduler.exceptions import InvalidDefinitionError
from cronbridge.scheduler.lifecycle import JobLifecycleManager
from cronbridge.sync.client import ListHandle, RecordHandle, SyncClient

logger = logging.getLogger(__name__)

CRON_ROOT = "cron"
INDEX_PATH = f"iw-introspection/records/{CRON_ROOT}/.iw-index"


class RegistrySynchronizer:
    """Keeps the tracked cron jobs in line with the registry index.

    Example:
        synchronizer = RegistrySynchronizer(client, lifecycle)
        await synchronizer.start()
        ...
        synchronizer.stop()
    """

    def __init__(
        self,
        client: SyncClient,
        lifecycle: JobLifecycleManager,
        index_path: str = INDEX_PATH,
        record_root: str = CRON_ROOT,
    ) -> None:
        """Initialize the synchronizer.

        Args:
            client: Sync client holding the registry
            lifecycle: Manager receiving definition updates and removals
            index_path: Path of the index list record
            record_root: Namespace of the definition records
        """
        self._client = client
        self._lifecycle = lifecycle
        self._index_path = index_path
        self._record_root = record_root.rstrip("/")
        self._index: Optional[ListHandle] = None
        self._records: Dict[str, RecordHandle] = {}
        self._started = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._resubscribe_task: Optional[asyncio.Task] = None

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def tracked_names(self) -> List[str]:
        """Get the names of jobs whose definition records are subscribed."""
        return list(self._records.keys())

    def record_path(self, name: str) -> str:
        """Get the path of a job's definition record."""
        return f"{self._record_root}/{name}"

    async def start(self) -> None:
        """Subscribe to the index and every job it lists.

        An index that does not exist yet is treated as empty.
        """
        if self._started:
            logger.warning("Registry synchronizer already started")
            return

        self._loop = asyncio.get_running_loop()
        self._started = True
        try:
            await self._subscribe_index()
        except BaseException:
            self.stop()
            raise

    def stop(self) -> None:
        """Release every subscription and forget all tracked jobs."""
        self._started = False

        if self._resubscribe_task and not self._resubscribe_task.done():
            self._resubscribe_task.cancel()
        self._resubscribe_task = None

        for record in self._records.values():
            record.discard()
        self._records.clear()

        if self._index is not None:
            self._index.discard()
            self._index = None

        logger.debug("Registry synchronizer stopped")

    async def _subscribe_index(self) -> None:
        index = self._client.get_list(self._index_path)
        self._index = index
        index.subscribe(self._on_index_changed)
        index.on_deleted(lambda: self._on_index_deleted(index))

        await index.when_ready()
        if self._index is not index:
            # Stopped or deleted while waiting
            return

        logger.debug(f"Successfully subscribed to cron jobs at {self._index_path}")
        self._on_index_changed(index.get_entries())

    def _on_index_changed(self, names: List[str]) -> None:
        if not self._started:
            return
        try:
            self.update_jobs(names)
        except Exception:
            logger.exception("Failed to update cron jobs")

    def _on_index_deleted(self, index: ListHandle) -> None:
        if not self._started or index is not self._index:
            return

        logger.debug("Cron job index record deleted. Resubscribing ...")
        self._index = None
        index.discard()
        # Resubscribe after the deletion callback returns, not from inside it
        self._loop.call_soon(self._resubscribe)

    def _resubscribe(self) -> None:
        if not self._started or self._index is not None:
            return
        self._resubscribe_task = asyncio.ensure_future(self._subscribe_index())
        self._resubscribe_task.add_done_callback(self._on_resubscribed)

    def _on_resubscribed(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Failed to resubscribe to cron job index: {error}")

    def update_jobs(self, names: List[str]) -> None:
        """Reconcile tracked jobs with the full list of names in the index.

        Names not tracked yet get their definition record subscribed;
        tracked names missing from the list are released and their
        timers torn down. Names present in both are left untouched.
        """
        current = list(dict.fromkeys(names))
        logger.debug(f"Updating cron jobs: {current}")

        for name in current:
            if name not in self._records:
                self._track(name)

        wanted = set(current)
        for name in list(self._records.keys()):
            if name not in wanted:
                self._untrack(name)

    def _track(self, name: str) -> None:
        record = self._client.get_record(self.record_path(name))
        self._records[name] = record
        try:
            record.on_deleted(lambda: self._on_definition_deleted(name, record))
            record.subscribe(lambda data: self._on_definition(name, record, data), True)
        except Exception as e:
            logger.error(f"Failed to subscribe to cron job {name}: {e}")
            self._records.pop(name, None)
            record.discard()

    def _untrack(self, name: str) -> None:
        record = self._records.pop(name)
        record.discard()
        self._lifecycle.remove(name)

    def _on_definition(self, name: str, record: RecordHandle, data: Any) -> None:
        if self._records.get(name) is not record:
            return
        try:
            definition = CronDefinition.from_dict(data, name)
        except InvalidDefinitionError as e:
            logger.error(f"Invalid cron definition {name}: {e.message}")
            self._lifecycle.remove(name)
            return

        try:
            self._lifecycle.apply(name, definition)
        except Exception:
            logger.exception(f"Failed to apply cron definition {name}")

    def _on_definition_deleted(self, name: str, record: RecordHandle) -> None:
        if self._records.get(name) is not record:
            return
        logger.debug(f"Definition record of cron job {name} deleted")
        # Picked up again if a later index delivery still lists the name
        self._records.pop(name)
        record.discard()
        self._lifecycle.remove(name)
