# -*- coding: utf-8 -*-
"""
Sync Engine - WorkDesk
======================

Per-entity-type orchestrator of the online and offline paths:

- reads go to the server first and fall back to the cache snapshot
- writes go to the server first; when it is unreachable (or answers with a
  retryable error) the cache is patched and the mutation is queued
- on every OFFLINE -> ONLINE transition the queue is replayed in order

Engines are constructed explicitly with their collaborators:

    monitor = ConnectivityMonitor()
    store = JsonFileStore("offline_store.json")
    remote = RemoteAPIClient("http://localhost:8000", token=token)
    tasks = TaskSyncEngine(remote, store, monitor)
"""

import asyncio
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from workdesk.knowledge import KnowledgeFilter, collect_tags
from .connectivity import ConnectivityMonitor
from .events import Subscribers
from .queue import ActionType, PendingAction, PendingActionQueue, RejectedAction
from .remote import RemoteError, RemoteRejectedError, ResourceClient
from .storage import EntityCache, KeyValueStore

logger = logging.getLogger(__name__)

LOCAL_ID_PREFIX = "temp_"
OFFLINE_FLAG = "_is_offline"


def new_local_id() -> str:
    """temp_<epoch millis>_<6 hex>"""
    return f"{LOCAL_ID_PREFIX}{int(time.time() * 1000)}_{secrets.token_hex(3)}"


def is_local_id(entity_id: Any) -> bool:
    return isinstance(entity_id, str) and entity_id.startswith(LOCAL_ID_PREFIX)


@dataclass
class SyncReport:
    """Outcome of one replay"""
    replayed: int = 0
    failed: int = 0
    rejected: int = 0
    pending: int = 0

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.rejected == 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "replayed": self.replayed,
            "failed": self.failed,
            "rejected": self.rejected,
            "pending": self.pending,
        }


class SyncEngine:
    """
    Base engine; subclasses name the remote resource and the store prefix.

    Args:
        remote: RemoteAPIClient (or anything exposing the same resources)
        store: Persistent key-value store shared with other engines
        monitor: Connectivity monitor; the engine subscribes on construction
    """

    resource: str = ""
    key_prefix: str = ""

    def __init__(self, remote, store: KeyValueStore, monitor: ConnectivityMonitor):
        self.remote = remote
        self.store = store
        self.monitor = monitor

        self.cache = EntityCache(store, f"{self.key_prefix}:cache")
        self.queue = PendingActionQueue(store, f"{self.key_prefix}:pending", f"{self.key_prefix}:rejected")

        self._sync_lock = asyncio.Lock()
        self._sync_complete = Subscribers(f"{self.key_prefix} sync-complete")
        self._unsubscribe = monitor.subscribe(self._on_connectivity_change)

        logger.debug(
            f"[Sync:{self.key_prefix}] Loaded {len(self.cache)} cached entities, {len(self.queue)} pending actions"
        )

    @property
    def api(self) -> ResourceClient:
        return getattr(self.remote, self.resource)

    async def _on_connectivity_change(self, online: bool) -> None:
        if online:
            await self.sync_pending_actions()

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def is_online(self) -> bool:
        return self.monitor.is_online

    @property
    def pending_count(self) -> int:
        return len(self.queue)

    def pending_actions(self) -> List[PendingAction]:
        return self.queue.actions

    def rejected_actions(self) -> List[RejectedAction]:
        return self.queue.rejected()

    def status(self) -> Dict[str, Any]:
        """Connectivity and queue state for an indicator"""
        return {
            "online": self.is_online,
            "pending": self.pending_count,
            "rejected": len(self.queue.rejected()),
        }

    def on_sync_complete(self, listener: Callable[[SyncReport], Any]) -> Callable[[], None]:
        """Registers listener(report) for every finished replay; returns an unsubscribe handle"""
        return self._sync_complete.subscribe(listener)

    def close(self) -> None:
        self._unsubscribe()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _overlay_pending(self, entities: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Server list with still-queued local mutations laid over it"""
        by_id = {entity.get("id"): dict(entity) for entity in entities}
        order = [entity.get("id") for entity in entities]

        for action in self.queue.actions:
            if action.type == ActionType.DELETE:
                by_id.pop(action.entity_id, None)
            elif action.type in (ActionType.CREATE, ActionType.UPDATE):
                cached = self.cache.get(action.entity_id)
                if cached is not None:
                    if action.entity_id not in order:
                        order.append(action.entity_id)
                    by_id[action.entity_id] = cached

        return [by_id[entity_id] for entity_id in order if entity_id in by_id]

    async def list(self) -> List[Dict[str, Any]]:
        if self.is_online:
            try:
                entities = await self.api.list()
                self.cache.replace_all(self._overlay_pending(entities))
                return self.cache.items
            except RemoteError as e:
                logger.warning(f"[Sync:{self.key_prefix}] List failed, serving cache: {e}")
        return self.cache.items

    async def get(self, entity_id: str) -> Optional[Dict[str, Any]]:
        if self.is_online and not is_local_id(entity_id):
            try:
                entity = await self.api.get(entity_id)
                if not self.queue.for_entity(entity_id):
                    self.cache.upsert(entity)
                    return entity
            except RemoteError as e:
                logger.warning(f"[Sync:{self.key_prefix}] Get {entity_id} failed, serving cache: {e}")
        return self.cache.get(entity_id)

    async def refresh_cache(self) -> bool:
        """Refetches the full collection into the snapshot; False when offline or failing"""
        if not self.is_online:
            return False
        try:
            entities = await self.api.list()
        except RemoteError as e:
            logger.warning(f"[Sync:{self.key_prefix}] Cache refresh failed: {e}")
            return False
        self.cache.replace_all(self._overlay_pending(entities))
        return True

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _queued_behind(self, entity_id: str) -> bool:
        """Writes for an entity with queued actions go to the queue too, after them"""
        if self.queue.for_entity(entity_id):
            logger.info(f"[Sync:{self.key_prefix}] {entity_id} has queued actions, queueing behind them")
            return True
        return False

    async def create(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Creates an entity.

        Raises:
            RemoteRejectedError: the server refused the data permanently
        """
        data = {key: value for key, value in data.items() if key not in ("id", OFFLINE_FLAG)}

        if self.is_online:
            try:
                entity = await self.api.create(data)
                self.cache.upsert(entity)
                return entity
            except RemoteError as e:
                if not e.retryable:
                    raise
                logger.warning(f"[Sync:{self.key_prefix}] Create failed, queueing: {e}")

        local_id = new_local_id()
        entity = {**data, "id": local_id, OFFLINE_FLAG: True}
        self.cache.upsert(entity)
        self.queue.enqueue(ActionType.CREATE, data, entity_id=local_id)
        return entity

    async def update(self, entity_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Updates an entity. Changes to a not yet synced entity are folded into
        its queued CREATE.

        Raises:
            RemoteRejectedError: the server refused the data permanently
        """
        data = {key: value for key, value in data.items() if key not in ("id", OFFLINE_FLAG)}

        if is_local_id(entity_id):
            return self._update_local(entity_id, data)

        if self.is_online and not self._queued_behind(entity_id):
            try:
                entity = await self.api.update(entity_id, data)
                self.cache.upsert(entity)
                return entity
            except RemoteError as e:
                if not e.retryable:
                    raise
                logger.warning(f"[Sync:{self.key_prefix}] Update of {entity_id} failed, queueing: {e}")

        merged = {**(self.cache.get(entity_id) or {}), **data, "id": entity_id}
        self.cache.upsert(merged)
        self.queue.enqueue(ActionType.UPDATE, merged, entity_id=entity_id)
        return merged

    def _update_local(self, entity_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        merged = {**(self.cache.get(entity_id) or {}), **data, "id": entity_id, OFFLINE_FLAG: True}
        self.cache.upsert(merged)

        creates = [a for a in self.queue.for_entity(entity_id) if a.type == ActionType.CREATE]
        if creates:
            self.queue.update_payload(creates[0].id, {**creates[0].payload, **data})
        else:
            logger.warning(f"[Sync:{self.key_prefix}] No queued create for local entity {entity_id}")
        return merged

    async def delete(self, entity_id: str) -> bool:
        """
        Deletes an entity, removing it from the cache right away.

        Returns:
            False when the server refused the delete permanently (the cached
            entity is restored), True otherwise
        """
        removed = self.cache.get(entity_id)
        self.cache.remove(entity_id)

        if is_local_id(entity_id):
            cancelled = self.queue.cancel_entity(entity_id)
            logger.info(f"[Sync:{self.key_prefix}] Cancelled {cancelled} queued actions for {entity_id}")
            return True

        if self.is_online and not self._queued_behind(entity_id):
            try:
                await self.api.delete(entity_id)
                return True
            except RemoteError as e:
                if isinstance(e, RemoteRejectedError) and e.not_found:
                    return True
                if not e.retryable:
                    logger.warning(f"[Sync:{self.key_prefix}] Delete of {entity_id} rejected: {e}")
                    if removed is not None:
                        self.cache.upsert(removed)
                    return False
                logger.warning(f"[Sync:{self.key_prefix}] Delete of {entity_id} failed, queueing: {e}")

        self.queue.enqueue(ActionType.DELETE, {"id": entity_id}, entity_id=entity_id)
        return True

    # -------------------------------------------------------------------------
    # Replay
    # -------------------------------------------------------------------------

    async def sync_pending_actions(self) -> SyncReport:
        """
        Replays the queued actions in order. Always notifies sync-complete
        listeners, even when there was nothing to do.
        """
        async with self._sync_lock:
            report = await self._replay()
        logger.info(f"[Sync:{self.key_prefix}] Sync complete: {report.to_dict()}")
        await self._sync_complete.notify(report)
        return report

    async def _replay(self) -> SyncReport:
        report = SyncReport(pending=len(self.queue))
        if not self.is_online or not self.queue:
            return report

        batch = self.queue.actions
        logger.info(f"[Sync:{self.key_prefix}] Replaying {len(batch)} actions")

        for action in batch:
            if self.queue.get(action.id) is None:
                # Cancelled while an earlier action was in flight
                continue

            target = action.entity_id or action.payload.get("id")
            if action.type != ActionType.CREATE and is_local_id(target):
                logger.warning(f"[Sync:{self.key_prefix}] {action.type.value} waits for create of {target}")
                report.failed += 1
                continue

            try:
                await self._dispatch(action, target)
            except RemoteError as e:
                if action.type == ActionType.DELETE and isinstance(e, RemoteRejectedError) and e.not_found:
                    self.queue.remove(action.id)
                    report.replayed += 1
                elif e.retryable:
                    self.queue.mark_failed(action.id, str(e))
                    report.failed += 1
                else:
                    self.queue.reject(action.id, e.status_code, str(e.detail or e.message))
                    report.rejected += 1
                continue

            self.queue.remove(action.id)
            report.replayed += 1

        if not self.queue:
            await self.refresh_cache()

        report.pending = len(self.queue)
        return report

    async def _dispatch(self, action: PendingAction, target: Optional[str]) -> None:
        if action.type == ActionType.CREATE:
            await self._replay_create(action)
        elif action.type == ActionType.UPDATE:
            entity = await self.api.update(target, action.payload)
            # A later queued mutation owns the cached copy until it lands
            later = [a for a in self.queue.for_entity(target) if a.id != action.id]
            if not later and self.cache.get(target) is not None:
                self.cache.upsert(entity)
        elif action.type == ActionType.DELETE:
            await self.api.delete(target)

    async def _replay_create(self, action: PendingAction) -> None:
        entity = await self.api.create(action.payload)
        server_id = entity["id"]

        current = self.queue.get(action.id)
        if current is None:
            # Deleted locally while the POST was in flight
            self.queue.enqueue(ActionType.DELETE, {"id": server_id}, entity_id=server_id)
            return

        if current.payload != action.payload:
            # Edited locally while the POST was in flight
            merged = {**entity, **current.payload, "id": server_id}
            self.cache.replace_id(action.entity_id, merged)
            self.queue.enqueue(ActionType.UPDATE, merged, entity_id=server_id)
            return

        self.cache.replace_id(action.entity_id, entity)


# =============================================================================
# ENTITY ENGINES
# =============================================================================

class TaskSyncEngine(SyncEngine):
    """Offline-capable access to /tasks"""
    resource = "tasks"
    key_prefix = "tasks"


class KnowledgeSyncEngine(SyncEngine):
    """
    Offline-capable access to /knowledge.

    Listing takes the same filters as the API; offline they are applied to
    the cache through the shared KnowledgeFilter.
    """
    resource = "knowledge"
    key_prefix = "knowledge"

    async def list(self, filters: Union[KnowledgeFilter, Mapping[str, Any], None] = None) -> List[Dict[str, Any]]:
        entry_filter = filters if isinstance(filters, KnowledgeFilter) else KnowledgeFilter.from_mapping(filters)
        params = entry_filter.to_params()

        if self.is_online:
            try:
                entities = await self.api.list(params=params)
            except RemoteError as e:
                logger.warning(f"[Sync:{self.key_prefix}] List failed, serving cache: {e}")
            else:
                if not params:
                    self.cache.replace_all(self._overlay_pending(entities))
                    return entry_filter.apply(self.cache.items)
                # A filtered answer is a subset: patch the snapshot instead of replacing it
                for entity in entities:
                    if not self.queue.for_entity(entity.get("id")):
                        self.cache.upsert(entity)
                return entry_filter.apply(self._overlay_pending(entities))

        return entry_filter.apply(self.cache.items)

    async def tags(self) -> List[str]:
        if self.is_online:
            try:
                return await self.api.tags()
            except RemoteError as e:
                logger.warning(f"[Sync:{self.key_prefix}] Tags failed, using cache: {e}")
        return collect_tags(self.cache.items)
