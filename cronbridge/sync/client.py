"""Interfaces for the remote data-sync client.

The job registry lives in a shared, multi-writer record store. The
scheduler core only needs a small slice of such a client:

- subscribable records that can be read, written with acknowledgement,
  deleted and released
- list records (an ordered sequence of names) with the same lifecycle
- fire-and-forget RPC calls whose failure is reported asynchronously
- fire-and-forget events

Backends implement SyncClient and are selected with create_client().
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

if TYPE_CHECKING:
    from cronbridge.config import CronbridgeConfig


# Callback signatures
RecordCallback = Callable[[Any], None]
ListCallback = Callable[[List[str]], None]
DeletedCallback = Callable[[], None]


class SyncError(Exception):
    """Base exception for data-sync client errors."""

    def __init__(self, message: str, name: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.name = name

    def __str__(self) -> str:
        if self.name:
            return f"{self.message} (name: {self.name})"
        return self.message


class RecordError(SyncError):
    """Raised when a record write, delete or read fails."""
    pass


class RpcError(SyncError):
    """Raised when a remote procedure call fails or has no provider."""
    pass


class RecordHandle(ABC):
    """An acquired reference to a remote record.

    Handles must be released with discard() once they are no longer
    needed. Using a discarded handle raises RecordError.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Path of the record this handle refers to."""
        pass

    @abstractmethod
    def subscribe(self, callback: RecordCallback, trigger_now: bool = False) -> None:
        """Register a callback for record changes.

        Args:
            callback: Called with the full record data on every change
            trigger_now: Deliver the currently cached data immediately,
                if there is any, before returning
        """
        pass

    @abstractmethod
    def unsubscribe(self, callback: RecordCallback) -> None:
        """Remove a callback registered with subscribe()."""
        pass

    @abstractmethod
    def on_deleted(self, callback: DeletedCallback) -> None:
        """Register a callback fired when the record itself is deleted."""
        pass

    @abstractmethod
    async def when_ready(self) -> "RecordHandle":
        """Wait until the record has been loaded and can be used."""
        pass

    @abstractmethod
    def get(self) -> Any:
        """Return the currently cached record data."""
        pass

    @abstractmethod
    async def set_with_ack(self, *args: Any) -> None:
        """Write the record and wait for the remote acknowledgement.

        Called with one argument the whole record content is replaced.
        Called with (key, value) a single field is written.

        Raises:
            RecordError: If the write is rejected
        """
        pass

    @abstractmethod
    async def delete(self) -> None:
        """Delete the record from the remote store.

        Raises:
            RecordError: If the delete is rejected
        """
        pass

    @abstractmethod
    def discard(self) -> None:
        """Release the handle and every subscription made through it."""
        pass


class ListHandle(RecordHandle):
    """A record holding an ordered list of names."""

    @abstractmethod
    def get_entries(self) -> List[str]:
        """Return the current list of entries."""
        pass

    @abstractmethod
    def set_entries(self, entries: List[str]) -> None:
        """Replace the list of entries."""
        pass


class SyncClient(ABC):
    """Client for the shared record store.

    Example:
        client = create_client(config)
        record = client.get_record("cron/nightly")
        await record.when_ready()
        record.subscribe(on_change, trigger_now=True)
    """

    @abstractmethod
    def get_record(self, name: str) -> RecordHandle:
        """Acquire a handle to the record at the given path."""
        pass

    @abstractmethod
    def get_list(self, name: str) -> ListHandle:
        """Acquire a handle to the list record at the given path."""
        pass

    @abstractmethod
    async def make_rpc(self, name: str, data: Any) -> Any:
        """Invoke a remote procedure.

        Returns:
            The procedure's result

        Raises:
            RpcError: If the call fails or no provider is registered
        """
        pass

    @abstractmethod
    def emit_event(self, name: str, data: Any) -> None:
        """Emit an event. No acknowledgement is expected."""
        pass

    async def close(self) -> None:
        """Release client resources. Backends override as needed."""
        return None


def create_client(
    config: "CronbridgeConfig",
    options: Optional[Dict[str, Any]] = None,
) -> SyncClient:
    """Create the sync client configured in config.sync.backend.

    Args:
        config: Cronbridge configuration
        options: Backend specific keyword arguments

    Returns:
        A SyncClient instance

    Raises:
        ConfigurationError: If the backend is unknown
    """
    from cronbridge.cli.error_handler import ConfigurationError

    backend = (config.sync.backend or "").lower()
    if backend == "memory":
        from cronbridge.sync.memory import MemorySyncClient
        return MemorySyncClient(**(options or {}))

    raise ConfigurationError(
        f"Unknown sync backend: {config.sync.backend}",
        details={"supported": "memory"},
    )
