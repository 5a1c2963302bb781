# -*- coding: utf-8 -*-
"""
Pending-Action Queue - WorkDesk
===============================

Ordered mutation records waiting to reach the server, persisted under a key
distinct from the cache snapshot. Actions carry a stable id; replay removes
them by that id, never by position.

Actions the server refused permanently are moved to a separate rejected
store so they are surfaced instead of retried forever.
"""

import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from .storage import KeyValueStore

logger = logging.getLogger(__name__)


class ActionType(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class PendingAction(BaseModel):
    """
    A queued mutation.

    payload: CREATE holds the original input (no id), UPDATE the full merged
    entity, DELETE {"id": ...}. entity_id is the local id for CREATE and the
    target id otherwise.
    """
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type: ActionType
    payload: Dict[str, Any] = Field(default_factory=dict)
    entity_id: Optional[str] = None
    enqueued_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    attempts: int = 0
    last_error: Optional[str] = None


class RejectedAction(BaseModel):
    """A pending action the server refused with a non-retryable status"""
    action: PendingAction
    status_code: Optional[int] = None
    detail: Optional[str] = None
    rejected_at: str = Field(default_factory=lambda: datetime.utcnow().isoformat())


class PendingActionQueue:
    """
    Insertion-ordered queue written through to the store on every change.

    Args:
        store: Persistent key-value store
        key: Key holding the queue (e.g. "tasks:pending")
        rejected_key: Key holding rejected actions (e.g. "tasks:rejected")
    """

    def __init__(self, store: KeyValueStore, key: str, rejected_key: str):
        self.store = store
        self.key = key
        self.rejected_key = rejected_key
        self._actions: List[PendingAction] = []
        self.load()

    def load(self) -> List[PendingAction]:
        raw = self.store.get(self.key, [])
        actions = []
        for record in raw if isinstance(raw, list) else []:
            try:
                actions.append(PendingAction.model_validate(record))
            except ValidationError:
                logger.warning(f"[OfflineQueue] Dropping unknown action under {self.key}: {record!r}")
        self._actions = actions
        return self.actions

    def _save(self, actions: List[PendingAction]) -> None:
        self.store.set(self.key, [action.model_dump(mode="json") for action in actions])
        self._actions = actions

    @property
    def actions(self) -> List[PendingAction]:
        return [action.model_copy(deep=True) for action in self._actions]

    def __len__(self) -> int:
        return len(self._actions)

    def __bool__(self) -> bool:
        return bool(self._actions)

    def get(self, action_id: str) -> Optional[PendingAction]:
        for action in self._actions:
            if action.id == action_id:
                return action.model_copy(deep=True)
        return None

    def for_entity(self, entity_id: str) -> List[PendingAction]:
        return [action.model_copy(deep=True) for action in self._actions if action.entity_id == entity_id]

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def enqueue(self, action_type: ActionType, payload: Dict[str, Any],
                entity_id: Optional[str] = None) -> PendingAction:
        action = PendingAction(type=action_type, payload=dict(payload), entity_id=entity_id)
        self._save(self._actions + [action])
        logger.info(f"[OfflineQueue] Queued {action.type.value} for {entity_id} ({len(self._actions)} pending)")
        return action.model_copy(deep=True)

    def remove(self, action_id: str) -> bool:
        remaining = [action for action in self._actions if action.id != action_id]
        if len(remaining) == len(self._actions):
            return False
        self._save(remaining)
        return True

    def update_payload(self, action_id: str, payload: Dict[str, Any]) -> bool:
        actions = self.actions
        for action in actions:
            if action.id == action_id:
                action.payload = dict(payload)
                self._save(actions)
                return True
        return False

    def mark_failed(self, action_id: str, error: str) -> bool:
        actions = self.actions
        for action in actions:
            if action.id == action_id:
                action.attempts += 1
                action.last_error = error
                self._save(actions)
                return True
        return False

    def cancel_entity(self, entity_id: str) -> int:
        """Drops every action targeting the entity, returns how many were dropped"""
        remaining = [action for action in self._actions if action.entity_id != entity_id]
        cancelled = len(self._actions) - len(remaining)
        if cancelled:
            self._save(remaining)
        return cancelled

    def clear(self) -> None:
        self._save([])

    # -------------------------------------------------------------------------
    # Rejected actions
    # -------------------------------------------------------------------------

    def reject(self, action_id: str, status_code: Optional[int] = None, detail: Optional[str] = None) -> bool:
        """Moves the action out of the queue into the rejected store"""
        action = self.get(action_id)
        if action is None:
            return False

        rejected = self.rejected()
        rejected.append(RejectedAction(action=action, status_code=status_code, detail=detail))
        self.store.set(self.rejected_key, [item.model_dump(mode="json") for item in rejected])
        self.remove(action_id)
        logger.warning(f"[OfflineQueue] Rejected {action.type.value} for {action.entity_id}: {status_code} {detail}")
        return True

    def rejected(self) -> List[RejectedAction]:
        raw = self.store.get(self.rejected_key, [])
        result = []
        for record in raw if isinstance(raw, list) else []:
            try:
                result.append(RejectedAction.model_validate(record))
            except ValidationError:
                logger.warning(f"[OfflineQueue] Ignoring malformed rejected record under {self.rejected_key}")
        return result

    def clear_rejected(self) -> int:
        count = len(self.rejected())
        self.store.delete(self.rejected_key)
        return count
