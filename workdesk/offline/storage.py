# -*- coding: utf-8 -*-
"""
Offline Storage - WorkDesk
==========================

Persistent key-value store for the offline client plus the per-entity cache
snapshot kept on top of it.

Values must be JSON-serializable. Writes are synchronous: when ``set``
returns, the value is on disk (JsonFileStore) and a later process sees it.
Serialization and I/O errors propagate to the caller.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract base class for offline stores."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        pass

    def exists(self, key: str) -> bool:
        return key in self.keys()

    def clear(self) -> None:
        for key in self.keys():
            self.delete(key)


class MemoryStore(KeyValueStore):
    """
    In-memory store for tests and ephemeral clients.

    Values are stored as JSON text, so callers get independent copies and
    non-serializable values fail exactly like they would on disk.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, str] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else default

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> List[str]:
        return list(self._data)


class JsonFileStore(KeyValueStore):
    """
    Store backed by a single JSON document on disk.

    Every write rewrites the document through a temporary file and an atomic
    rename, so a crash never leaves a half-written store behind.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._data: Dict[str, Any] = self._read()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            content = f.read()
        if not content.strip():
            return {}
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError(f"Offline store {self.path} does not hold a JSON object")
        return data

    def _flush(self, data: Dict[str, Any]) -> None:
        payload = json.dumps(data, ensure_ascii=False, indent=2)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        # Copy so callers cannot mutate the in-memory document
        return json.loads(json.dumps(self._data[key]))

    def set(self, key: str, value: Any) -> None:
        updated = dict(self._data)
        updated[key] = json.loads(json.dumps(value))
        self._flush(updated)
        self._data = updated

    def delete(self, key: str) -> bool:
        if key not in self._data:
            return False
        updated = {k: v for k, v in self._data.items() if k != key}
        self._flush(updated)
        self._data = updated
        return True

    def keys(self) -> List[str]:
        return list(self._data)


# =============================================================================
# ENTITY CACHE
# =============================================================================

class EntityCache:
    """
    Last known-good collection of one entity type, stored under one key.

    Overwritten wholesale after a successful list fetch and patched by id
    after every mutation. Each change is written through to the store.
    """

    def __init__(self, store: KeyValueStore, key: str):
        self.store = store
        self.key = key
        self._items: List[Dict[str, Any]] = []
        self.load()

    def load(self) -> List[Dict[str, Any]]:
        items = self.store.get(self.key, [])
        if not isinstance(items, list):
            logger.warning(f"[OfflineCache] Ignoring malformed snapshot under {self.key}")
            items = []
        self._items = [item for item in items if isinstance(item, dict)]
        return self.items

    def _save(self, items: List[Dict[str, Any]]) -> None:
        self.store.set(self.key, items)
        self._items = items

    @property
    def items(self) -> List[Dict[str, Any]]:
        return [dict(item) for item in self._items]

    def __len__(self) -> int:
        return len(self._items)

    def get(self, entity_id: str) -> Optional[Dict[str, Any]]:
        for item in self._items:
            if item.get("id") == entity_id:
                return dict(item)
        return None

    def replace_all(self, entities: List[Dict[str, Any]]) -> None:
        self._save([dict(entity) for entity in entities])

    def upsert(self, entity: Dict[str, Any]) -> None:
        """Replaces the entity with the same id in place, or appends it"""
        items = list(self._items)
        for index, item in enumerate(items):
            if item.get("id") == entity.get("id"):
                items[index] = dict(entity)
                break
        else:
            items.append(dict(entity))
        self._save(items)

    def replace_id(self, old_id: str, entity: Dict[str, Any]) -> None:
        """Swaps a locally identified entity for its server version, keeping its position"""
        items = [item for item in self._items if item.get("id") != entity.get("id") or old_id == entity.get("id")]
        for index, item in enumerate(items):
            if item.get("id") == old_id:
                items[index] = dict(entity)
                break
        else:
            items.append(dict(entity))
        self._save(items)

    def remove(self, entity_id: str) -> bool:
        items = [item for item in self._items if item.get("id") != entity_id]
        if len(items) == len(self._items):
            return False
        self._save(items)
        return True
