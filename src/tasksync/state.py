"""In-memory task state shared by the coordinators and the dashboard."""

from .core.tasks import CacheSnapshot, Task, TaskList


class TaskState:
    """
    The single shared mutable task collection.

    Readers get copies and derive new structures from them. Writers go
    through the methods below, which replace whole entries rather than
    mutating fields in place.
    """

    def __init__(self, snapshot: CacheSnapshot | None = None):
        self._tasks: list[Task] = []
        self._task_lists: list[TaskList] = []
        self._membership: dict[str, str] = {}
        if snapshot is not None:
            self.replace_all(snapshot)

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def task_lists(self) -> list[TaskList]:
        return list(self._task_lists)

    @property
    def membership(self) -> dict[str, str]:
        return dict(self._membership)

    def get(self, task_id: str) -> Task | None:
        return next((t for t in self._tasks if t.id == task_id), None)

    def owning_list(self, task_id: str) -> str | None:
        return self._membership.get(task_id)

    def replace_all(self, snapshot: CacheSnapshot) -> None:
        self._tasks = list(snapshot.tasks)
        self._task_lists = list(snapshot.task_lists)
        self._membership = dict(snapshot.membership)

    def replace_task(self, task: Task) -> None:
        """Swap the entry with the same id for this one."""
        self._tasks = [task if t.id == task.id else t for t in self._tasks]

    def insert_task(self, task: Task, list_id: str) -> None:
        self._tasks = [*self._tasks, task]
        self._membership = {**self._membership, task.id: list_id}

    def remove_task(self, task_id: str) -> None:
        self._tasks = [t for t in self._tasks if t.id != task_id]
        self._membership = {k: v for k, v in self._membership.items() if k != task_id}
