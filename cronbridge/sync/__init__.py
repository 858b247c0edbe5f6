"""Data-sync client interfaces and backends.

The scheduler core talks to the shared job registry exclusively through
the SyncClient interface defined here.
"""

from cronbridge.sync.client import (
    ListHandle,
    RecordError,
    RecordHandle,
    RpcError,
    SyncClient,
    SyncError,
    create_client,
)
from cronbridge.sync.memory import MemorySyncClient

__all__ = [
    "ListHandle",
    "MemorySyncClient",
    "RecordError",
    "RecordHandle",
    "RpcError",
    "SyncClient",
    "SyncError",
    "create_client",
]
