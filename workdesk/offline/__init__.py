# -*- coding: utf-8 -*-
"""
Offline Client - WorkDesk
=========================

REST client with an offline fallback: a persistent cache snapshot, a queue
of pending mutations and replay when connectivity returns.
"""

from .storage import KeyValueStore, MemoryStore, JsonFileStore, EntityCache
from .queue import ActionType, PendingAction, RejectedAction, PendingActionQueue
from .connectivity import ConnectivityMonitor, ConnectivityState
from .remote import (
    RemoteAPIClient,
    RemoteError,
    RemoteUnavailableError,
    RemoteServerError,
    RemoteRejectedError,
)
from .engine import (
    SyncEngine,
    TaskSyncEngine,
    KnowledgeSyncEngine,
    SyncReport,
    new_local_id,
    is_local_id,
    OFFLINE_FLAG,
)

__all__ = [
    "KeyValueStore",
    "MemoryStore",
    "JsonFileStore",
    "EntityCache",
    "ActionType",
    "PendingAction",
    "RejectedAction",
    "PendingActionQueue",
    "ConnectivityMonitor",
    "ConnectivityState",
    "RemoteAPIClient",
    "RemoteError",
    "RemoteUnavailableError",
    "RemoteServerError",
    "RemoteRejectedError",
    "SyncEngine",
    "TaskSyncEngine",
    "KnowledgeSyncEngine",
    "SyncReport",
    "new_local_id",
    "is_local_id",
    "OFFLINE_FLAG",
]
