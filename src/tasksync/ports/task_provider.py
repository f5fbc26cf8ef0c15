"""Remote task provider interface."""

from typing import Protocol

from tasksync.core.tasks import Task, TaskList


class TaskProvider(Protocol):
    """Interface for the remote tasks API. Every call takes a bearer token."""

    def list_task_lists(self, token: str) -> list[TaskList]:
        """Fetch all task lists of the authenticated user."""
        ...

    def list_tasks(self, token: str, list_id: str) -> list[Task]:
        """Fetch every task of one list."""
        ...

    def update_task(self, token: str, list_id: str, task_id: str, fields: dict) -> Task:
        """Partially update a task. Returns the authoritative entity."""
        ...

    def delete_task(self, token: str, list_id: str, task_id: str) -> None:
        """Delete a task."""
        ...

    def create_task(
        self, token: str, list_id: str, fields: dict, parent: str | None = None
    ) -> Task:
        """Create a task, optionally as a subtask. Returns the new entity."""
        ...
