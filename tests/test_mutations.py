"""Tests for the mutation coordinator."""

import asyncio
from unittest.mock import MagicMock

import pytest

from tasksync.adapters.google_tasks_api import GoogleTasksClient
from tasksync.config import Config
from tasksync.core.tasks import CacheSnapshot, Task
from tasksync.errors import OwningListUnknown, RemoteError, StorageUnavailable
from tasksync.mutations import MutationCoordinator, MutationPhase
from tasksync.state import TaskState


@pytest.fixture
def snapshot(task_lists, remote_tasks):
    tasks = remote_tasks["L1"] + remote_tasks["L2"]
    membership = {t.id: list_id for list_id, items in remote_tasks.items() for t in items}
    return CacheSnapshot(tasks=list(tasks), task_lists=task_lists, membership=membership)


@pytest.fixture
def state(snapshot):
    return TaskState(snapshot)


@pytest.fixture
def seeded_cache(cache, snapshot):
    cache.put_tasks(snapshot.tasks)
    cache.put_task_lists(snapshot.task_lists)
    cache.put_membership_map(snapshot.membership)
    return cache


@pytest.fixture
def coordinator(provider, seeded_cache, state):
    return MutationCoordinator(provider, seeded_cache, state)


def cached(cache, task_id):
    return next((t for t in cache.get_all_tasks() if t.id == task_id), None)


class TestUpdateTask:
    @pytest.mark.asyncio
    async def test_confirmed_update_replaces_local_copy_and_persists(self, coordinator, state, seeded_cache, provider):
        confirmed = await coordinator.update_task("tok", "X", {"title": "Buy oat milk"})

        assert confirmed.title == "Buy oat milk"
        assert confirmed.updated == "2025-01-16T09:00:00.000Z"
        assert state.get("X") == confirmed
        assert cached(seeded_cache, "X") == confirmed
        assert coordinator.phase("X") == MutationPhase.CONFIRMED
        assert provider.calls[-1] == ("update_task", "tok", "L1", "X", {"title": "Buy oat milk"})

    @pytest.mark.asyncio
    async def test_failed_update_rolls_back(self, coordinator, state, seeded_cache, provider):
        state.replace_task(Task(id="X", title="Old", parent="Y"))
        seeded_cache.put_tasks([Task(id="X", title="Old", parent="Y")])
        memory_before = state.tasks
        cache_before = sorted(seeded_cache.get_all_tasks(), key=lambda t: t.id)
        provider.fail_writes = RemoteError(500, "Backend Error")

        with pytest.raises(RemoteError):
            await coordinator.update_task("tok", "X", {"title": "New"})

        assert state.tasks == memory_before
        assert state.get("X").title == "Old"
        assert sorted(seeded_cache.get_all_tasks(), key=lambda t: t.id) == cache_before
        assert coordinator.phase("X") == MutationPhase.ROLLED_BACK

    @pytest.mark.asyncio
    async def test_unexpected_provider_failure_also_rolls_back(self, state, seeded_cache):
        remote = MagicMock()
        remote.update_task.side_effect = KeyError("id")
        coordinator = MutationCoordinator(remote, seeded_cache, state)
        cache_before = cached(seeded_cache, "X")

        with pytest.raises(KeyError):
            await coordinator.update_task("tok", "X", {"title": "New"})

        assert state.get("X").title == "Buy milk"
        assert coordinator.phase("X") == MutationPhase.ROLLED_BACK
        assert cached(seeded_cache, "X") == cache_before

    @pytest.mark.asyncio
    async def test_malformed_response_rolls_back(self, state, seeded_cache):
        resp = MagicMock(status_code=200, content=b"<html>proxy error</html>")
        resp.json.side_effect = ValueError("Expecting value")
        http = MagicMock()
        http.request.return_value = resp
        coordinator = MutationCoordinator(GoogleTasksClient(Config(), session=http), seeded_cache, state)

        with pytest.raises(RemoteError):
            await coordinator.update_task("tok", "X", {"title": "New"})

        assert state.get("X").title == "Buy milk"
        assert coordinator.phase("X") == MutationPhase.ROLLED_BACK

    @pytest.mark.asyncio
    async def test_optimistic_value_visible_before_remote_completes(self, state, seeded_cache):
        seen = {}

        def slow_update(token, list_id, task_id, fields):
            seen["title"] = state.get(task_id).title
            seen["phase"] = coordinator.phase(task_id)
            return Task(id=task_id, title=fields["title"])

        remote = MagicMock()
        remote.update_task.side_effect = slow_update
        coordinator = MutationCoordinator(remote, seeded_cache, state)

        await coordinator.update_task("tok", "Y", {"title": "Errands"})

        assert seen == {"title": "Errands", "phase": MutationPhase.OPTIMISTIC}

    @pytest.mark.asyncio
    async def test_unknown_owning_list_is_rejected_immediately(self, provider, seeded_cache):
        state = TaskState(CacheSnapshot(tasks=[Task(id="orphan", title="?")], membership={}))
        coordinator = MutationCoordinator(provider, seeded_cache, state)

        with pytest.raises(OwningListUnknown):
            await coordinator.update_task("tok", "orphan", {"title": "x"})

        assert coordinator.phase("orphan") == MutationPhase.IDLE
        assert state.get("orphan").title == "?"
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_rejects_non_editable_fields(self, coordinator):
        with pytest.raises(ValueError, match="position"):
            await coordinator.update_task("tok", "X", {"position": "0"})

    @pytest.mark.asyncio
    async def test_rejects_empty_update(self, coordinator):
        with pytest.raises(ValueError):
            await coordinator.update_task("tok", "X", {})

    @pytest.mark.asyncio
    async def test_cache_failure_after_confirm_keeps_result(self, provider, state):
        broken = MagicMock()
        broken.put_tasks.side_effect = StorageUnavailable("quota exceeded")
        coordinator = MutationCoordinator(provider, broken, state)

        confirmed = await coordinator.update_task("tok", "X", {"notes": "2%"})

        assert state.get("X") == confirmed
        assert coordinator.phase("X") == MutationPhase.CONFIRMED
        assert coordinator.cache is None


class TestSetCompleted:
    @pytest.mark.asyncio
    async def test_complete(self, coordinator, state, provider):
        task = await coordinator.set_completed("tok", "W1", True)

        assert task.is_completed
        assert task.completed is not None
        sent = provider.calls[-1][4]
        assert sent["status"] == "completed"
        assert sent["completed"].endswith("Z")

    @pytest.mark.asyncio
    async def test_reopen_clears_completion(self, coordinator, provider):
        task = await coordinator.set_completed("tok", "W2", False)

        assert task.status == "needsAction"
        assert task.completed is None
        assert provider.calls[-1][4] == {"status": "needsAction", "completed": None}


class TestDeleteTask:
    @pytest.mark.asyncio
    async def test_delete_removes_from_memory_and_cache(self, coordinator, state, seeded_cache):
        await coordinator.delete_task("tok", "Z")

        assert state.get("Z") is None
        assert "Z" not in state.membership
        assert cached(seeded_cache, "Z") is None

    @pytest.mark.asyncio
    async def test_failed_delete_removes_nothing(self, coordinator, state, seeded_cache, provider):
        provider.fail_writes = RemoteError(403, "Forbidden")
        memory_before = state.tasks

        with pytest.raises(RemoteError):
            await coordinator.delete_task("tok", "Z")

        assert state.tasks == memory_before
        assert cached(seeded_cache, "Z") is not None

    @pytest.mark.asyncio
    async def test_delete_unknown_list(self, provider, seeded_cache):
        coordinator = MutationCoordinator(provider, seeded_cache, TaskState())
        with pytest.raises(OwningListUnknown):
            await coordinator.delete_task("tok", "Z")
        assert provider.calls == []


class TestCreateTask:
    @pytest.mark.asyncio
    async def test_create_adds_to_memory_membership_and_cache(self, coordinator, state, seeded_cache, provider):
        task = await coordinator.create_task("tok", "L1", "Buy eggs", notes="a dozen", parent="Y")

        assert state.get(task.id) == task
        assert state.owning_list(task.id) == "L1"
        assert cached(seeded_cache, task.id) == task
        assert seeded_cache.get_membership_map()[task.id] == "L1"
        assert provider.calls[-1] == ("create_task", "tok", "L1", {"title": "Buy eggs", "notes": "a dozen"}, "Y")

    @pytest.mark.asyncio
    async def test_parent_from_other_list_rejected(self, coordinator, provider):
        with pytest.raises(ValueError):
            await coordinator.create_task("tok", "L2", "Sub", parent="Y")
        assert not any(call[0] == "create_task" for call in provider.calls)

    @pytest.mark.asyncio
    async def test_failed_create_changes_nothing(self, coordinator, state, provider):
        provider.fail_writes = RemoteError(500, "boom")
        before = state.tasks

        with pytest.raises(RemoteError):
            await coordinator.create_task("tok", "L1", "Nope")

        assert state.tasks == before


class TestConcurrentMutations:
    @pytest.mark.asyncio
    async def test_rollback_of_one_task_keeps_other_confirmed_edit(self, state, seeded_cache):
        def update(token, list_id, task_id, fields):
            if task_id == "Z":
                raise RemoteError(500, "boom")
            return Task(id=task_id, title=fields["title"], parent="Y")

        remote = MagicMock()
        remote.update_task.side_effect = update
        coordinator = MutationCoordinator(remote, seeded_cache, state)

        results = await asyncio.gather(
            coordinator.update_task("tok", "X", {"title": "X2"}),
            coordinator.update_task("tok", "Z", {"title": "Z2"}),
            return_exceptions=True,
        )

        assert isinstance(results[1], RemoteError)
        assert state.get("X").title == "X2"
        assert state.get("Z").title == "Buy bread"
