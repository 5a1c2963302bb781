# -*- coding: utf-8 -*-
"""
Tests for the Sync Engine
=========================

The engines run against an in-memory fake of the REST resources so that
connectivity and server failures can be switched per call.
"""

import pytest

from workdesk.offline import (
    TaskSyncEngine, KnowledgeSyncEngine, ConnectivityMonitor, MemoryStore,
    ActionType, RemoteUnavailableError, RemoteServerError, RemoteRejectedError,
    OFFLINE_FLAG, is_local_id,
)
from workdesk.knowledge import KnowledgeFilter, collect_tags


# =============================================================================
# FAKE REMOTE
# =============================================================================

class FakeResource:
    """Dict-backed stand-in for one REST collection"""

    def __init__(self, prefix: str):
        self.prefix = prefix
        self.items = {}
        self.calls = []
        self.offline = False
        self.rules = []
        self.hooks = {}
        self._counter = 0

    def fail_when(self, method, exc, match=lambda arg: True):
        """Raise exc for calls of method whose argument satisfies match"""
        rule = (method, exc, match)
        self.rules.append(rule)
        return lambda: self.rules.remove(rule)

    def seed(self, entity):
        self.items[entity["id"]] = dict(entity)

    def _check(self, method, arg=None):
        self.calls.append((method, arg))
        if self.offline:
            raise RemoteUnavailableError(f"{method} failed: connection refused")
        for rule_method, exc, match in self.rules:
            if rule_method == method and match(arg):
                raise exc

    @staticmethod
    def _clean(data):
        return {k: v for k, v in data.items() if k != "id" and not k.startswith("_")}

    def _missing(self, entity_id):
        return RemoteRejectedError(f"{entity_id} not found", status_code=404)

    async def list(self, params=None):
        self._check("list", params)
        entities = [dict(item) for item in self.items.values()]
        if self.prefix == "knowledge":
            return KnowledgeFilter.from_mapping(params).apply(entities)
        return entities

    async def get(self, entity_id):
        self._check("get", entity_id)
        if entity_id not in self.items:
            raise self._missing(entity_id)
        return dict(self.items[entity_id])

    async def create(self, data):
        self._check("create", data)
        hook = self.hooks.pop("create", None)
        if hook:
            await hook()
        self._counter += 1
        entity = {**self._clean(data), "id": f"{self.prefix}-{self._counter}"}
        self.items[entity["id"]] = entity
        return dict(entity)

    async def update(self, entity_id, data):
        self._check("update", entity_id)
        if entity_id not in self.items:
            raise self._missing(entity_id)
        self.items[entity_id].update(self._clean(data))
        return dict(self.items[entity_id])

    async def delete(self, entity_id):
        self._check("delete", entity_id)
        if entity_id not in self.items:
            raise self._missing(entity_id)
        del self.items[entity_id]
        return {"message": "deleted"}

    async def tags(self):
        self._check("tags")
        return collect_tags(self.items.values())

    def count(self, method):
        return sum(1 for name, _ in self.calls if name == method)


class FakeRemote:
    def __init__(self):
        self.tasks = FakeResource("tasks")
        self.knowledge = FakeResource("knowledge")

    def set_offline(self, offline: bool):
        self.tasks.offline = offline
        self.knowledge.offline = offline


@pytest.fixture
def remote():
    fake = FakeRemote()
    fake.set_offline(True)
    return fake


@pytest.fixture
def task_engine(remote, store, monitor):
    engine = TaskSyncEngine(remote, store, monitor)
    yield engine
    engine.close()


async def reconnect(remote, monitor):
    remote.set_offline(False)
    await monitor.set_online(True)


def titles(entities):
    return sorted(entity["title"] for entity in entities)


# =============================================================================
# OFFLINE WRITES AND REPLAY
# =============================================================================

@pytest.mark.unit
class TestOfflineCreate:

    @pytest.mark.asyncio
    async def test_buy_milk_offline_then_reconnect(self, task_engine, remote, monitor):
        created = await task_engine.create({"title": "Buy milk"})

        assert is_local_id(created["id"])
        assert created[OFFLINE_FLAG] is True
        assert task_engine.cache.items == [created]
        actions = task_engine.pending_actions()
        assert len(actions) == 1
        assert actions[0].type == ActionType.CREATE
        assert actions[0].payload == {"title": "Buy milk"}
        assert remote.tasks.calls == []

        await reconnect(remote, monitor)

        cached = task_engine.cache.items
        assert len(cached) == 1
        assert cached[0]["id"] == "tasks-1"
        assert cached[0]["title"] == "Buy milk"
        assert OFFLINE_FLAG not in cached[0]
        assert task_engine.pending_count == 0

    @pytest.mark.asyncio
    async def test_queue_survives_restart(self, task_engine, remote, store, monitor):
        created = await task_engine.create({"title": "Persist me"})
        task_engine.close()

        restarted = TaskSyncEngine(remote, store, monitor)
        try:
            assert restarted.pending_count == 1
            assert restarted.cache.get(created["id"])["title"] == "Persist me"
        finally:
            restarted.close()

    @pytest.mark.asyncio
    async def test_unreachable_server_while_marked_online_queues(self, remote, store):
        monitor = ConnectivityMonitor(online=True)
        engine = TaskSyncEngine(remote, store, monitor)
        try:
            created = await engine.create({"title": "Queued anyway"})
            assert is_local_id(created["id"])
            assert engine.pending_count == 1
        finally:
            engine.close()


@pytest.mark.unit
class TestReplay:

    @pytest.mark.asyncio
    async def test_second_of_three_fails(self, task_engine, remote, monitor):
        for title in ("A", "B", "C"):
            await task_engine.create({"title": title})
        second = task_engine.pending_actions()[1]

        stop_failing = remote.tasks.fail_when(
            "create", RemoteServerError("boom", status_code=500), match=lambda data: data["title"] == "B"
        )
        reports = []
        task_engine.on_sync_complete(reports.append)
        await reconnect(remote, monitor)

        remaining = task_engine.pending_actions()
        assert [a.id for a in remaining] == [second.id]
        assert remaining[0].attempts == 1
        assert titles(remote.tasks.items.values()) == ["A", "C"]
        assert reports[-1].to_dict() == {"replayed": 2, "failed": 1, "rejected": 0, "pending": 1}

        stop_failing()
        report = await task_engine.sync_pending_actions()

        assert report.ok
        assert task_engine.pending_count == 0
        assert titles(remote.tasks.items.values()) == ["A", "B", "C"]
        assert remote.tasks.count("create") == 4

    @pytest.mark.asyncio
    async def test_empty_queue_is_noop_but_notifies(self, remote, store):
        remote.set_offline(False)
        engine = TaskSyncEngine(remote, store, ConnectivityMonitor(online=True))
        reports = []
        engine.on_sync_complete(reports.append)

        report = await engine.sync_pending_actions()

        assert remote.tasks.calls == []
        assert len(reports) == 1
        assert reports[0] is report
        assert report.to_dict() == {"replayed": 0, "failed": 0, "rejected": 0, "pending": 0}
        engine.close()

    @pytest.mark.asyncio
    async def test_sync_while_offline_does_nothing(self, task_engine, remote):
        await task_engine.create({"title": "Later"})
        report = await task_engine.sync_pending_actions()
        assert report.pending == 1
        assert remote.tasks.calls == []

    @pytest.mark.asyncio
    async def test_create_then_delete_local_entity(self, task_engine, remote, monitor):
        created = await task_engine.create({"title": "Never mind"})
        assert await task_engine.delete(created["id"]) is True

        assert task_engine.pending_count == 0
        assert task_engine.cache.items == []

        await reconnect(remote, monitor)

        assert remote.tasks.count("create") == 0
        assert remote.tasks.items == {}
        assert task_engine.cache.items == []

    @pytest.mark.asyncio
    async def test_update_of_local_entity_folds_into_create(self, task_engine, remote, monitor):
        created = await task_engine.create({"title": "Buy milk"})
        updated = await task_engine.update(created["id"], {"title": "Buy oat milk"})

        assert updated["title"] == "Buy oat milk"
        assert updated[OFFLINE_FLAG] is True
        actions = task_engine.pending_actions()
        assert len(actions) == 1
        assert actions[0].payload == {"title": "Buy oat milk"}

        await reconnect(remote, monitor)
        assert titles(remote.tasks.items.values()) == ["Buy oat milk"]
        assert remote.tasks.count("update") == 0

    @pytest.mark.asyncio
    async def test_offline_update_and_delete_of_server_entities(self, task_engine, remote, store, monitor):
        remote.tasks.seed({"id": "srv-1", "title": "Keep", "priority": "low"})
        remote.tasks.seed({"id": "srv-2", "title": "Drop"})
        task_engine.cache.replace_all([dict(item) for item in remote.tasks.items.values()])

        merged = await task_engine.update("srv-1", {"priority": "high"})
        assert merged == {"id": "srv-1", "title": "Keep", "priority": "high"}
        assert task_engine.pending_actions()[0].payload == merged
        assert await task_engine.delete("srv-2") is True
        assert [e["id"] for e in task_engine.cache.items] == ["srv-1"]

        await reconnect(remote, monitor)

        assert remote.tasks.items == {"srv-1": {"id": "srv-1", "title": "Keep", "priority": "high"}}
        assert task_engine.pending_count == 0

    @pytest.mark.asyncio
    async def test_replayed_delete_of_missing_entity_counts_as_done(self, task_engine, remote, monitor):
        await task_engine.delete("srv-gone")
        await reconnect(remote, monitor)
        assert task_engine.pending_count == 0
        assert task_engine.rejected_actions() == []

    @pytest.mark.asyncio
    async def test_rejected_action_moved_out(self, task_engine, remote, monitor):
        await task_engine.create({"title": ""})
        remote.tasks.fail_when("create", RemoteRejectedError("title too short", status_code=422, detail="title too short"))

        await reconnect(remote, monitor)

        assert task_engine.pending_count == 0
        rejected = task_engine.rejected_actions()
        assert len(rejected) == 1
        assert rejected[0].status_code == 422
        assert rejected[0].detail == "title too short"
        assert task_engine.status() == {"online": True, "pending": 0, "rejected": 1}
        assert task_engine.cache.items == []

    @pytest.mark.asyncio
    async def test_auth_failure_is_retried(self, task_engine, remote, monitor):
        await task_engine.create({"title": "Needs login"})
        remote.tasks.fail_when("create", RemoteRejectedError("expired", status_code=401))

        await reconnect(remote, monitor)

        assert task_engine.pending_count == 1
        assert task_engine.rejected_actions() == []

    @pytest.mark.asyncio
    async def test_edit_while_create_in_flight(self, task_engine, remote, monitor):
        created = await task_engine.create({"title": "Draft"})

        async def edit():
            await task_engine.update(created["id"], {"title": "Final"})

        remote.tasks.hooks["create"] = edit
        await reconnect(remote, monitor)

        assert task_engine.cache.items[0]["id"] == "tasks-1"
        assert task_engine.cache.items[0]["title"] == "Final"
        assert task_engine.pending_actions()[0].type == ActionType.UPDATE

        await task_engine.sync_pending_actions()
        assert remote.tasks.items["tasks-1"]["title"] == "Final"
        assert task_engine.pending_count == 0

    @pytest.mark.asyncio
    async def test_delete_while_create_in_flight(self, task_engine, remote, monitor):
        created = await task_engine.create({"title": "Ephemeral"})

        async def delete():
            await task_engine.delete(created["id"])

        remote.tasks.hooks["create"] = delete
        await reconnect(remote, monitor)
        await task_engine.sync_pending_actions()

        assert remote.tasks.items == {}
        assert task_engine.cache.items == []
        assert task_engine.pending_count == 0

    @pytest.mark.asyncio
    async def test_mixed_offline_session_converges(self, task_engine, remote, monitor):
        remote.tasks.seed({"id": "srv-1", "title": "Existing"})
        remote.tasks.seed({"id": "srv-2", "title": "Obsolete"})
        task_engine.cache.replace_all([dict(item) for item in remote.tasks.items.values()])

        first = await task_engine.create({"title": "First"})
        second = await task_engine.create({"title": "Second"})
        await task_engine.update(first["id"], {"title": "First (edited)"})
        await task_engine.delete(second["id"])
        await task_engine.update("srv-1", {"title": "Existing (edited)"})
        await task_engine.delete("srv-2")
        await task_engine.create({"title": "Third"})

        await reconnect(remote, monitor)

        server = sorted(remote.tasks.items.values(), key=lambda e: e["id"])
        cached = sorted(task_engine.cache.items, key=lambda e: e["id"])
        assert server == cached
        assert titles(server) == ["Existing (edited)", "First (edited)", "Third"]

    @pytest.mark.asyncio
    async def test_failed_later_update_keeps_newest_edit(self, task_engine, remote, monitor):
        remote.tasks.seed({"id": "srv-1", "title": "Original"})
        task_engine.cache.replace_all([{"id": "srv-1", "title": "Original"}])

        await task_engine.update("srv-1", {"title": "x"})
        await task_engine.update("srv-1", {"title": "y"})
        stop_failing = remote.tasks.fail_when(
            "update", RemoteServerError("boom", status_code=500), match=lambda _: remote.tasks.count("update") == 2
        )

        await reconnect(remote, monitor)

        assert remote.tasks.items["srv-1"]["title"] == "x"
        assert task_engine.cache.get("srv-1")["title"] == "y"
        assert task_engine.pending_actions()[0].payload["title"] == "y"
        assert [t["title"] for t in await task_engine.list()] == ["y"]

        stop_failing()
        await task_engine.sync_pending_actions()

        assert task_engine.pending_count == 0
        assert remote.tasks.items["srv-1"]["title"] == "y"
        assert task_engine.cache.get("srv-1")["title"] == "y"


# =============================================================================
# ONLINE PATH
# =============================================================================

@pytest.mark.unit
class TestOnline:

    @pytest.fixture
    def online_engine(self, remote, store):
        remote.set_offline(False)
        engine = TaskSyncEngine(remote, store, ConnectivityMonitor(online=True))
        yield engine
        engine.close()

    @pytest.mark.asyncio
    async def test_create_goes_to_server(self, online_engine, remote):
        created = await online_engine.create({"title": "Direct", "id": "ignored", OFFLINE_FLAG: True})
        assert created["id"] == "tasks-1"
        assert online_engine.cache.items == [created]
        assert online_engine.pending_count == 0

    @pytest.mark.asyncio
    async def test_server_error_falls_back_to_queue(self, online_engine, remote):
        remote.tasks.fail_when("create", RemoteServerError("down", status_code=503))
        created = await online_engine.create({"title": "Later"})
        assert is_local_id(created["id"])
        assert online_engine.pending_count == 1

    @pytest.mark.asyncio
    async def test_validation_error_raises_and_queues_nothing(self, online_engine, remote):
        remote.tasks.fail_when("create", RemoteRejectedError("invalid", status_code=422))
        with pytest.raises(RemoteRejectedError):
            await online_engine.create({"title": ""})
        assert online_engine.pending_count == 0
        assert online_engine.cache.items == []

    @pytest.mark.asyncio
    async def test_delete_not_found_is_success(self, online_engine):
        assert await online_engine.delete("nope") is True
        assert online_engine.pending_count == 0

    @pytest.mark.asyncio
    async def test_rejected_delete_restores_cache(self, online_engine, remote):
        remote.tasks.seed({"id": "srv-1", "title": "Locked"})
        online_engine.cache.upsert({"id": "srv-1", "title": "Locked"})
        remote.tasks.fail_when("delete", RemoteRejectedError("conflict", status_code=409))

        assert await online_engine.delete("srv-1") is False
        assert online_engine.cache.get("srv-1") == {"id": "srv-1", "title": "Locked"}
        assert online_engine.pending_count == 0

    @pytest.mark.asyncio
    async def test_writes_wait_behind_queued_actions(self, online_engine, remote):
        remote.tasks.seed({"id": "srv-1", "title": "Start"})
        online_engine.cache.upsert({"id": "srv-1", "title": "Start"})
        stop_failing = remote.tasks.fail_when("update", RemoteServerError("down", status_code=503))
        await online_engine.update("srv-1", {"title": "First"})
        stop_failing()
        assert online_engine.pending_count == 1

        await online_engine.update("srv-1", {"title": "Second"})
        await online_engine.delete("srv-1")

        assert remote.tasks.count("update") == 1
        assert remote.tasks.count("delete") == 0
        assert [a.type for a in online_engine.pending_actions()] == [
            ActionType.UPDATE, ActionType.UPDATE, ActionType.DELETE
        ]

        report = await online_engine.sync_pending_actions()

        assert report.replayed == 3
        assert remote.tasks.items == {}
        assert online_engine.cache.items == []

    @pytest.mark.asyncio
    async def test_list_replaces_snapshot_and_falls_back(self, online_engine, remote):
        remote.tasks.seed({"id": "srv-1", "title": "One"})
        online_engine.cache.upsert({"id": "stale", "title": "Stale"})

        assert titles(await online_engine.list()) == ["One"]
        assert titles(online_engine.cache.items) == ["One"]

        remote.set_offline(True)
        assert titles(await online_engine.list()) == ["One"]

    @pytest.mark.asyncio
    async def test_list_keeps_pending_local_entities(self, online_engine, remote):
        remote.tasks.fail_when("create", RemoteServerError("down", status_code=500))
        pending = await online_engine.create({"title": "Pending"})
        remote.tasks.rules.clear()
        remote.tasks.seed({"id": "srv-1", "title": "Server"})

        entities = await online_engine.list()
        assert [e["id"] for e in entities] == ["srv-1", pending["id"]]

    @pytest.mark.asyncio
    async def test_get_prefers_cache_with_pending_changes(self, online_engine, remote):
        remote.tasks.seed({"id": "srv-1", "title": "Server"})
        assert (await online_engine.get("srv-1"))["title"] == "Server"

        remote.tasks.fail_when("update", RemoteServerError("down", status_code=500))
        await online_engine.update("srv-1", {"title": "Local"})
        assert (await online_engine.get("srv-1"))["title"] == "Local"

        remote.set_offline(True)
        assert (await online_engine.get("srv-1"))["title"] == "Local"
        assert await online_engine.get("unknown") is None


# =============================================================================
# KNOWLEDGE
# =============================================================================

ENTRIES = [
    {"id": "k1", "title": "VPN", "content": "restart", "category": "incident", "status": "published", "tags": ["net"]},
    {"id": "k2", "title": "Old", "content": "legacy", "category": "incident", "status": "archived", "tags": ["old"]},
    {"id": "k3", "title": "Deploy", "content": "steps", "category": "process", "status": "draft", "tags": []},
]


@pytest.mark.unit
class TestKnowledgeEngine:

    @pytest.fixture
    def knowledge(self, remote, store, monitor):
        engine = KnowledgeSyncEngine(remote, store, monitor)
        for entry in ENTRIES:
            remote.knowledge.seed(entry)
        engine.cache.replace_all(ENTRIES)
        yield engine
        engine.close()

    @pytest.mark.asyncio
    async def test_offline_list_hides_archived(self, knowledge):
        assert [e["id"] for e in await knowledge.list()] == ["k1", "k3"]
        assert [e["id"] for e in await knowledge.list({"status": "archived"})] == ["k2"]
        assert [e["id"] for e in await knowledge.list(KnowledgeFilter(category="process"))] == ["k3"]

    @pytest.mark.asyncio
    async def test_online_and_offline_lists_agree(self, knowledge, remote, monitor):
        filters = {"category": "incident", "search": "vpn"}
        offline = await knowledge.list(filters)

        await reconnect(remote, monitor)
        online = await knowledge.list(filters)

        assert offline == online

    @pytest.mark.asyncio
    async def test_filtered_online_list_patches_snapshot(self, knowledge, remote, monitor):
        await reconnect(remote, monitor)
        remote.knowledge.items["k1"]["title"] = "VPN (updated)"

        await knowledge.list({"tag": "net"})

        assert [e["id"] for e in knowledge.cache.items] == ["k1", "k2", "k3"]
        assert knowledge.cache.get("k1")["title"] == "VPN (updated)"

    @pytest.mark.asyncio
    async def test_tags_fall_back_to_cache(self, knowledge):
        assert await knowledge.tags() == ["net", "old"]

    @pytest.mark.asyncio
    async def test_engines_share_store_and_monitor(self, knowledge, task_engine, remote, monitor):
        await task_engine.create({"title": "Task"})
        await knowledge.create({"title": "Note", "content": "c", "category": "other"})

        await reconnect(remote, monitor)

        assert task_engine.pending_count == 0
        assert knowledge.pending_count == 0
        assert remote.tasks.count("create") == 1
        assert remote.knowledge.count("create") == 1
