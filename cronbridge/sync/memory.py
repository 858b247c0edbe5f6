"""In-process implementation of the data-sync client.

MemorySyncClient keeps every record in a dictionary and delivers change
notifications synchronously on the caller's thread. It is used for local
runs seeded from a jobs file and as the backend for tests.

Example:
    client = MemorySyncClient()
    client.write("cron/nightly", {"cron": "0 0 * * *", "emit": {"name": "tick"}})
    client.set_list("iw-introspection/records/cron/.iw-index", ["nightly"])
"""

import asyncio
import copy
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

from cronbridge.sync.client import (
    DeletedCallback,
    ListHandle,
    RecordCallback,
    RecordError,
    RecordHandle,
    RpcError,
    SyncClient,
)

logger = logging.getLogger(__name__)

RpcProvider = Callable[[Any], Any]
EventListener = Callable[[Any], None]


class MemoryRecordHandle(RecordHandle):
    """Handle to a record stored in a MemorySyncClient."""

    def __init__(self, client: "MemorySyncClient", name: str) -> None:
        self._client = client
        self._name = name
        self._callbacks: List[RecordCallback] = []
        self._deleted_callbacks: List[DeletedCallback] = []
        self._discarded = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def is_discarded(self) -> bool:
        """Check if the handle has been released."""
        return self._discarded

    def subscribe(self, callback: RecordCallback, trigger_now: bool = False) -> None:
        self._check_usable()
        self._callbacks.append(callback)
        if trigger_now and self._client.has(self._name):
            callback(self.get())

    def unsubscribe(self, callback: RecordCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def on_deleted(self, callback: DeletedCallback) -> None:
        self._check_usable()
        self._deleted_callbacks.append(callback)

    async def when_ready(self) -> "MemoryRecordHandle":
        self._check_usable()
        await asyncio.sleep(0)
        return self

    def get(self) -> Any:
        return self._client.read(self._name)

    async def set_with_ack(self, *args: Any) -> None:
        self._check_usable()
        if len(args) == 1:
            data = args[0]
        elif len(args) == 2:
            key, value = args
            current = self._client.read(self._name)
            data = current if isinstance(current, dict) else {}
            data[key] = value
        else:
            raise TypeError("set_with_ack() takes (data) or (key, value)")
        await asyncio.sleep(0)
        self._client.write(self._name, data)

    async def delete(self) -> None:
        self._check_usable()
        await asyncio.sleep(0)
        self._client.remove(self._name)

    def discard(self) -> None:
        if self._discarded:
            return
        self._discarded = True
        self._callbacks.clear()
        self._deleted_callbacks.clear()
        self._client._release(self)

    def _notify(self, data: Any) -> None:
        for callback in list(self._callbacks):
            callback(copy.deepcopy(data))

    def _notify_deleted(self) -> None:
        callbacks = list(self._deleted_callbacks)
        self.discard()
        for callback in callbacks:
            callback()

    def _check_usable(self) -> None:
        if self._discarded:
            raise RecordError("Record handle already discarded", name=self._name)


class MemoryListHandle(MemoryRecordHandle, ListHandle):
    """Handle to a list record stored in a MemorySyncClient."""

    def get(self) -> List[str]:
        return self.get_entries()

    def get_entries(self) -> List[str]:
        data = self._client.read(self._name)
        return list(data) if isinstance(data, list) else []

    def set_entries(self, entries: List[str]) -> None:
        self._check_usable()
        self._client.write(self._name, list(entries))

    def _notify(self, data: Any) -> None:
        entries = list(data) if isinstance(data, list) else []
        for callback in list(self._callbacks):
            callback(list(entries))


class MemorySyncClient(SyncClient):
    """SyncClient storing records in process memory.

    Records written through any handle (or through write()/remove())
    are visible to every other handle immediately, and every subscriber
    of the record is notified before the write returns.
    """

    def __init__(self, records: Optional[Dict[str, Any]] = None) -> None:
        self._records: Dict[str, Any] = copy.deepcopy(records) if records else {}
        self._handles: Dict[str, List[MemoryRecordHandle]] = {}
        self._rpc_providers: Dict[str, RpcProvider] = {}
        self._event_listeners: Dict[str, List[EventListener]] = {}

    # Record store

    def has(self, name: str) -> bool:
        """Check if a record exists."""
        return name in self._records

    def read(self, name: str) -> Any:
        """Return a copy of the stored record data, or None."""
        return copy.deepcopy(self._records.get(name))

    def write(self, name: str, data: Any) -> None:
        """Replace a record's data and notify its subscribers."""
        self._records[name] = copy.deepcopy(data)
        for handle in list(self._handles.get(name, [])):
            handle._notify(self._records[name])

    def set_list(self, name: str, entries: List[str]) -> None:
        """Replace the entries of a list record."""
        self.write(name, list(entries))

    def remove(self, name: str) -> None:
        """Delete a record and notify deletion listeners."""
        self._records.pop(name, None)
        for handle in list(self._handles.get(name, [])):
            handle._notify_deleted()

    @property
    def record_names(self) -> List[str]:
        """Get the paths of all stored records."""
        return list(self._records.keys())

    def handle_count(self, name: Optional[str] = None) -> int:
        """Count live handles, optionally for a single record."""
        if name is not None:
            return len(self._handles.get(name, []))
        return sum(len(handles) for handles in self._handles.values())

    def _acquire(self, handle: MemoryRecordHandle) -> None:
        self._handles.setdefault(handle.name, []).append(handle)

    def _release(self, handle: MemoryRecordHandle) -> None:
        handles = self._handles.get(handle.name)
        if handles and handle in handles:
            handles.remove(handle)
            if not handles:
                del self._handles[handle.name]

    # SyncClient interface

    def get_record(self, name: str) -> MemoryRecordHandle:
        handle = MemoryRecordHandle(self, name)
        self._acquire(handle)
        return handle

    def get_list(self, name: str) -> MemoryListHandle:
        handle = MemoryListHandle(self, name)
        self._acquire(handle)
        return handle

    async def make_rpc(self, name: str, data: Any) -> Any:
        provider = self._rpc_providers.get(name)
        if provider is None:
            raise RpcError("No RPC provider registered", name=name)

        try:
            result = provider(copy.deepcopy(data))
            if inspect.isawaitable(result):
                result = await result
        except RpcError:
            raise
        except Exception as e:
            raise RpcError(f"RPC provider failed: {e}", name=name) from e
        return result

    def emit_event(self, name: str, data: Any) -> None:
        for listener in list(self._event_listeners.get(name, [])):
            try:
                listener(copy.deepcopy(data))
            except Exception as e:
                logger.error(f"Event listener for {name} failed: {e}")

    # Providers and listeners

    def provide_rpc(self, name: str, provider: RpcProvider) -> None:
        """Register the provider answering RPC calls to name."""
        self._rpc_providers[name] = provider

    def unprovide_rpc(self, name: str) -> None:
        """Remove the provider for name."""
        self._rpc_providers.pop(name, None)

    def subscribe_event(self, name: str, listener: EventListener) -> Callable[[], None]:
        """Listen for events emitted under name.

        Returns:
            Unsubscribe function
        """
        self._event_listeners.setdefault(name, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._event_listeners.get(name, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe
