"""Local cache store interface."""

from typing import Protocol

from tasksync.core.tasks import Task, TaskList


class CacheStore(Protocol):
    """
    Interface for persisting the cache snapshot between runs.

    The three stores are independent. Implementations raise
    StorageUnavailable when the backing storage cannot be used.
    """

    def get_all_tasks(self) -> list[Task]:
        """Every persisted task, in no particular order."""
        ...

    def get_all_task_lists(self) -> list[TaskList]:
        ...

    def get_membership_map(self) -> dict[str, str] | None:
        """Task id -> list id map, or None if never written."""
        ...

    def put_tasks(self, tasks: list[Task]) -> None:
        """Upsert each task by id, overwriting the stored entity in full."""
        ...

    def put_task_lists(self, task_lists: list[TaskList]) -> None:
        ...

    def put_membership_map(self, membership: dict[str, str]) -> None:
        """Replace the whole map as a single value."""
        ...

    def delete_task(self, task_id: str) -> None:
        ...

    def clear_all(self) -> None:
        """Empty all three stores."""
        ...

    def replace_all(
        self, tasks: list[Task], task_lists: list[TaskList], membership: dict[str, str]
    ) -> None:
        """Replace the whole snapshot atomically: either all three stores change or none."""
        ...
