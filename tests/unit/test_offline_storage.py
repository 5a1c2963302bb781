# -*- coding: utf-8 -*-
"""
Tests for the offline store, cache snapshot and pending-action queue
"""

import json
from unittest.mock import patch

import pytest

from workdesk.offline import (
    MemoryStore, JsonFileStore, EntityCache, PendingActionQueue, ActionType,
)


# =============================================================================
# STORES
# =============================================================================

@pytest.mark.unit
class TestMemoryStore:

    def test_values_are_copies(self):
        store = MemoryStore()
        value = {"items": [1, 2]}
        store.set("k", value)
        value["items"].append(3)
        assert store.get("k") == {"items": [1, 2]}

    def test_non_serializable_fails(self):
        with pytest.raises(TypeError):
            MemoryStore().set("k", object())

    def test_delete_keys_clear(self):
        store = MemoryStore({"a": 1, "b": 2})
        assert store.exists("a")
        assert store.delete("a") is True
        assert store.delete("a") is False
        store.clear()
        assert store.keys() == []


@pytest.mark.unit
class TestJsonFileStore:

    def test_survives_reopen(self, tmp_path):
        path = tmp_path / "store.json"
        JsonFileStore(path).set("tasks:cache", [{"id": "1"}])
        assert JsonFileStore(path).get("tasks:cache") == [{"id": "1"}]

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "store.json"
        JsonFileStore(path).set("k", 1)
        assert json.loads(path.read_text(encoding="utf-8")) == {"k": 1}

    def test_empty_file_is_empty_store(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("", encoding="utf-8")
        assert JsonFileStore(path).keys() == []

    def test_non_object_document_rejected(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError):
            JsonFileStore(path)

    def test_failed_write_keeps_previous_state(self, tmp_path):
        path = tmp_path / "store.json"
        store = JsonFileStore(path)
        store.set("k", "old")

        with patch("workdesk.offline.storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                store.set("k", "new")

        assert store.get("k") == "old"
        assert JsonFileStore(path).get("k") == "old"
        assert [p.name for p in tmp_path.iterdir()] == ["store.json"]

    def test_serialization_error_propagates(self, tmp_path):
        store = JsonFileStore(tmp_path / "store.json")
        with pytest.raises(TypeError):
            store.set("k", {1, 2})
        assert store.get("k") is None


# =============================================================================
# CACHE
# =============================================================================

@pytest.mark.unit
class TestEntityCache:

    def test_upsert_in_place(self):
        cache = EntityCache(MemoryStore(), "tasks:cache")
        cache.replace_all([{"id": "a", "v": 1}, {"id": "b", "v": 1}])
        cache.upsert({"id": "a", "v": 2})
        cache.upsert({"id": "c", "v": 1})
        assert cache.items == [{"id": "a", "v": 2}, {"id": "b", "v": 1}, {"id": "c", "v": 1}]

    def test_writes_through(self):
        store = MemoryStore()
        EntityCache(store, "tasks:cache").upsert({"id": "a"})
        assert EntityCache(store, "tasks:cache").items == [{"id": "a"}]

    def test_replace_id_keeps_position(self):
        cache = EntityCache(MemoryStore(), "tasks:cache")
        cache.replace_all([{"id": "temp_1"}, {"id": "b"}])
        cache.replace_id("temp_1", {"id": "srv"})
        assert [item["id"] for item in cache.items] == ["srv", "b"]

    def test_replace_id_drops_duplicate_server_entity(self):
        cache = EntityCache(MemoryStore(), "tasks:cache")
        cache.replace_all([{"id": "temp_1"}, {"id": "srv", "stale": True}])
        cache.replace_id("temp_1", {"id": "srv"})
        assert cache.items == [{"id": "srv"}]

    def test_remove(self):
        cache = EntityCache(MemoryStore(), "tasks:cache")
        cache.upsert({"id": "a"})
        assert cache.remove("a") is True
        assert cache.remove("a") is False
        assert len(cache) == 0

    def test_malformed_snapshot_ignored(self):
        cache = EntityCache(MemoryStore({"tasks:cache": {"not": "a list"}}), "tasks:cache")
        assert cache.items == []


# =============================================================================
# QUEUE
# =============================================================================

@pytest.fixture
def queue():
    return PendingActionQueue(MemoryStore(), "tasks:pending", "tasks:rejected")


@pytest.mark.unit
class TestPendingActionQueue:

    def test_enqueue_keeps_order_and_persists(self):
        store = MemoryStore()
        queue = PendingActionQueue(store, "tasks:pending", "tasks:rejected")
        queue.enqueue(ActionType.CREATE, {"title": "a"}, entity_id="temp_1")
        queue.enqueue(ActionType.DELETE, {"id": "x"}, entity_id="x")

        reloaded = PendingActionQueue(store, "tasks:pending", "tasks:rejected")
        assert [a.type for a in reloaded.actions] == [ActionType.CREATE, ActionType.DELETE]
        assert store.get("tasks:pending")[0]["type"] == "CREATE"

    def test_remove_by_id_not_position(self, queue):
        first = queue.enqueue(ActionType.CREATE, {"title": "a"}, entity_id="temp_1")
        second = queue.enqueue(ActionType.CREATE, {"title": "b"}, entity_id="temp_2")
        third = queue.enqueue(ActionType.CREATE, {"title": "c"}, entity_id="temp_3")

        assert queue.remove(first.id)
        assert queue.remove(third.id)
        assert [a.id for a in queue.actions] == [second.id]
        assert queue.remove(first.id) is False

    def test_mark_failed(self, queue):
        action = queue.enqueue(ActionType.UPDATE, {"id": "x"}, entity_id="x")
        queue.mark_failed(action.id, "[500] boom")
        queue.mark_failed(action.id, "[500] boom again")
        stored = queue.get(action.id)
        assert stored.attempts == 2
        assert stored.last_error == "[500] boom again"

    def test_update_payload(self, queue):
        action = queue.enqueue(ActionType.CREATE, {"title": "a"}, entity_id="temp_1")
        queue.update_payload(action.id, {"title": "b"})
        assert queue.get(action.id).payload == {"title": "b"}

    def test_cancel_entity(self, queue):
        queue.enqueue(ActionType.CREATE, {"title": "a"}, entity_id="temp_1")
        queue.enqueue(ActionType.UPDATE, {"id": "x"}, entity_id="x")
        assert queue.cancel_entity("temp_1") == 1
        assert [a.entity_id for a in queue.actions] == ["x"]

    def test_reject_moves_action_out(self, queue):
        action = queue.enqueue(ActionType.CREATE, {"title": ""}, entity_id="temp_1")
        assert queue.reject(action.id, 422, "title too short")

        assert len(queue) == 0
        rejected = queue.rejected()
        assert rejected[0].action.id == action.id
        assert rejected[0].status_code == 422
        assert queue.clear_rejected() == 1
        assert queue.rejected() == []

    def test_actions_are_copies(self, queue):
        queue.enqueue(ActionType.CREATE, {"title": "a"}, entity_id="temp_1")
        queue.actions[0].payload["title"] = "mutated"
        assert queue.actions[0].payload == {"title": "a"}

    def test_unknown_records_dropped_on_load(self):
        store = MemoryStore({"tasks:pending": [
            {"type": "PATCH", "payload": {}},
            {"type": "DELETE", "payload": {"id": "x"}, "entity_id": "x"},
        ]})
        queue = PendingActionQueue(store, "tasks:pending", "tasks:rejected")
        assert [a.type for a in queue.actions] == [ActionType.DELETE]
        assert queue.actions[0].id
