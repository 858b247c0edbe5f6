"""Action executor for fired cron jobs.

The ActionExecutor performs the side effects declared by a definition
when its timer fires. Every declared action is attempted, in the order
call, emit, setRecord, updateRecord, deleteRecord; a failing action is
logged and never prevents the following ones from running.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Set

from cronbridge.scheduler.definition import (
    ActionKind,
    CallOperation,
    CronDefinition,
    EventOperation,
    RecordOperation,
)
from cronbridge.sync.client import SyncClient

logger = logging.getLogger(__name__)


@dataclass
class ActionOutcome:
    """Outcome of a single action.

    Attributes:
        kind: Action that ran
        target: RPC, event or record name the action addressed
        success: Whether the action completed
        error: Error message if it failed
    """

    kind: ActionKind
    target: str
    success: bool = True
    error: Optional[str] = None


@dataclass
class ExecutionResult:
    """Result of one job firing.

    RPC calls are fire-and-forget, so a CALL outcome only records that
    the call was dispatched; its eventual failure is logged separately.
    """

    job_name: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    outcomes: List[ActionOutcome] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Check if every attempted action succeeded."""
        return all(outcome.success for outcome in self.outcomes)

    @property
    def failed(self) -> List[ActionOutcome]:
        """Get the outcomes of failed actions."""
        return [outcome for outcome in self.outcomes if not outcome.success]


class ActionExecutor:
    """Performs the side effects of fired cron jobs against the sync client.

    Example:
        executor = ActionExecutor(client)
        result = await executor.execute(definition, job_name="nightly")
    """

    def __init__(self, client: SyncClient) -> None:
        """Initialize the executor.

        Args:
            client: Sync client used for RPCs, events and records
        """
        self._client = client
        self._pending_calls: Set[asyncio.Task] = set()

    @property
    def pending_calls(self) -> int:
        """Number of RPC calls that have not settled yet."""
        return len(self._pending_calls)

    async def execute(self, definition: CronDefinition, job_name: str = "") -> ExecutionResult:
        """Run every action declared by a definition.

        Args:
            definition: Definition captured when the job's timer was created
            job_name: Name of the job, for logging

        Returns:
            Execution result with one outcome per declared action
        """
        result = ExecutionResult(job_name=job_name, started_at=datetime.utcnow())

        for kind, operation in definition.actions():
            target = operation if isinstance(operation, str) else operation.name
            try:
                if kind == ActionKind.CALL:
                    self._call(operation)
                elif kind == ActionKind.EMIT:
                    self._emit(operation)
                elif kind == ActionKind.SET_RECORD:
                    await self._set_record(operation)
                elif kind == ActionKind.UPDATE_RECORD:
                    failed_keys = await self._update_record(operation)
                    if failed_keys:
                        result.outcomes.append(ActionOutcome(
                            kind=kind,
                            target=target,
                            success=False,
                            error=f"Failed to update fields: {', '.join(failed_keys)}",
                        ))
                        continue
                elif kind == ActionKind.DELETE_RECORD:
                    await self._delete_record(operation)
                result.outcomes.append(ActionOutcome(kind=kind, target=target))
            except Exception as e:
                logger.error(f"{kind.value} {target} failed for cron job {job_name}: {e}")
                result.outcomes.append(ActionOutcome(
                    kind=kind,
                    target=target,
                    success=False,
                    error=str(e),
                ))

        result.completed_at = datetime.utcnow()
        if result.success:
            logger.debug(f"Cron job {job_name} ran {len(result.outcomes)} actions")
        else:
            logger.warning(
                f"Cron job {job_name} finished with {len(result.failed)} failed actions"
            )
        return result

    async def drain(self) -> None:
        """Wait for all dispatched RPC calls to settle."""
        if self._pending_calls:
            await asyncio.gather(*list(self._pending_calls), return_exceptions=True)

    def _call(self, operation: CallOperation) -> None:
        """Dispatch an RPC without waiting for it."""
        logger.debug(f"Calling RPC {operation.name} with data {operation.data!r}")
        task = asyncio.ensure_future(self._client.make_rpc(operation.name, operation.data))
        self._pending_calls.add(task)
        task.add_done_callback(lambda t, name=operation.name: self._on_call_done(name, t))

    def _on_call_done(self, name: str, task: asyncio.Task) -> None:
        self._pending_calls.discard(task)
        if task.cancelled():
            logger.warning(f"RPC Call to {name} was cancelled")
            return
        error = task.exception()
        if error is not None:
            logger.error(f"RPC Call to {name} failed: {error}")

    def _emit(self, operation: EventOperation) -> None:
        logger.debug(f"Triggering Event {operation.name} with data {operation.data!r}")
        self._client.emit_event(operation.name, operation.data)

    async def _set_record(self, operation: RecordOperation) -> None:
        """Replace a record's content, releasing the handle afterwards."""
        logger.debug(f"Setting Record {operation.name} with data {operation.data!r}")
        record = self._client.get_record(operation.name)
        try:
            await record.when_ready()
            await record.set_with_ack(operation.data)
        finally:
            record.discard()

    async def _update_record(self, operation: RecordOperation) -> List[str]:
        """Write each field of a record separately.

        Returns:
            Keys whose write failed
        """
        logger.debug(f"Updating Record {operation.name} with data {operation.data!r}")
        failed_keys: List[str] = []
        record = self._client.get_record(operation.name)
        try:
            await record.when_ready()
            for key, value in operation.data.items():
                try:
                    await record.set_with_ack(key, value)
                except Exception as e:
                    logger.error(f"Updating {key} of Record {operation.name} failed: {e}")
                    failed_keys.append(key)
        finally:
            record.discard()
        return failed_keys

    async def _delete_record(self, name: str) -> None:
        logger.debug(f"Deleting Record {name}")
        record = self._client.get_record(name)
        try:
            await record.when_ready()
            await record.delete()
        finally:
            record.discard()
