"""Task tree builder - flat task collection to a forest of id references."""

from dataclasses import dataclass, field
from typing import Iterator

from .tasks import Task


@dataclass
class Forest:
    """Top-level tasks plus children grouped by parent id."""

    top_level: list[Task] = field(default_factory=list)
    children_by_parent: dict[str, list[Task]] = field(default_factory=dict)

    def children(self, task_id: str) -> list[Task]:
        return self.children_by_parent.get(task_id, [])


def build_forest(tasks: list[Task]) -> Forest:
    """
    Build a forest from a flat task collection.

    A task whose parent is missing from the input is treated as top-level,
    so a filtered subset still renders. Single pass, fresh output per call.
    Pure function - no I/O.
    """
    ids = {t.id for t in tasks}
    forest = Forest()
    for task in tasks:
        if task.parent and task.parent in ids:
            forest.children_by_parent.setdefault(task.parent, []).append(task)
        else:
            forest.top_level.append(task)
    return forest


def walk_forest(forest: Forest, roots: list[Task] | None = None) -> Iterator[tuple[int, Task]]:
    """Yield (depth, task) depth-first, children after their parent."""
    seen: set[str] = set()

    def visit(task: Task, depth: int) -> Iterator[tuple[int, Task]]:
        if task.id in seen:
            return
        seen.add(task.id)
        yield depth, task
        for child in forest.children(task.id):
            yield from visit(child, depth + 1)

    for root in forest.top_level if roots is None else roots:
        yield from visit(root, 0)
