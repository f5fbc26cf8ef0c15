"""Shared test fixtures for tasksync tests."""

import pytest

from tasksync.adapters.sqlite_cache import SqliteCacheStore
from tasksync.core.tasks import Task, TaskList
from tasksync.errors import RemoteError


class FakeProvider:
    """In-memory TaskProvider with switchable failures."""

    def __init__(self, lists: list[TaskList] | None = None, tasks_by_list: dict | None = None):
        self.lists = lists or []
        self.tasks_by_list: dict[str, list[Task]] = tasks_by_list or {}
        self.fail_list_ids: set[str] = set()
        self.fail_lists = False
        self.fail_writes: RemoteError | None = None
        self.calls: list[tuple] = []
        self._next_id = 0

    def list_task_lists(self, token):
        self.calls.append(("list_task_lists", token))
        if self.fail_lists:
            raise RemoteError(500, "lists unavailable")
        return list(self.lists)

    def list_tasks(self, token, list_id):
        self.calls.append(("list_tasks", token, list_id))
        if list_id in self.fail_list_ids:
            raise RemoteError(503, f"list {list_id} unavailable")
        return list(self.tasks_by_list.get(list_id, []))

    def _find(self, list_id, task_id):
        return next(t for t in self.tasks_by_list[list_id] if t.id == task_id)

    def update_task(self, token, list_id, task_id, fields):
        self.calls.append(("update_task", token, list_id, task_id, dict(fields)))
        if self.fail_writes:
            raise self.fail_writes
        updated = self._find(list_id, task_id).with_fields(
            {**fields, "updated": "2025-01-16T09:00:00.000Z"}
        )
        self.tasks_by_list[list_id] = [
            updated if t.id == task_id else t for t in self.tasks_by_list[list_id]
        ]
        return updated

    def delete_task(self, token, list_id, task_id):
        self.calls.append(("delete_task", token, list_id, task_id))
        if self.fail_writes:
            raise self.fail_writes
        self.tasks_by_list[list_id] = [t for t in self.tasks_by_list[list_id] if t.id != task_id]

    def create_task(self, token, list_id, fields, parent=None):
        self.calls.append(("create_task", token, list_id, dict(fields), parent))
        if self.fail_writes:
            raise self.fail_writes
        self._next_id += 1
        task = Task(
            id=f"new{self._next_id}",
            parent=parent,
            position="99999",
            updated="2025-01-16T09:00:00.000Z",
            **fields,
        )
        self.tasks_by_list.setdefault(list_id, []).append(task)
        return task


class FakeSession:
    """Session with a fixed token."""

    def __init__(self, token: str | None = "token-123"):
        self.token = token
        self.logged_out = False

    def current_user(self):
        return None

    def bearer_token(self):
        return self.token

    def logout(self):
        self.logged_out = True
        self.token = None


@pytest.fixture
def task_lists():
    return [TaskList(id="L1", title="Groceries"), TaskList(id="L2", title="Work")]


@pytest.fixture
def remote_tasks():
    """Tasks as the provider returns them, keyed by list."""
    return {
        "L1": [
            Task(id="Y", title="Shopping", position="00000000000000000001"),
            Task(id="X", title="Buy milk", parent="Y", position="00000000000000000001"),
            Task(id="Z", title="Buy bread", parent="Y", position="00000000000000000002"),
        ],
        "L2": [
            Task(id="W1", title="Write report", due="2025-01-20T00:00:00.000Z", position="00000000000000000001"),
            Task(
                id="W2",
                title="File expenses",
                status="completed",
                completed="2025-01-10T12:00:00.000Z",
                updated="2025-01-10T12:00:00.000Z",
                position="00000000000000000002",
            ),
        ],
    }


@pytest.fixture
def provider(task_lists, remote_tasks):
    return FakeProvider(task_lists, remote_tasks)


@pytest.fixture
def cache(tmp_path):
    return SqliteCacheStore(tmp_path / "cache.db")
