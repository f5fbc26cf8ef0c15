"""Search engine - substring match expanded to keep the tree connected."""

from collections import deque

from .tasks import Task, index_by_id


def is_blank_query(query: str | None) -> bool:
    return not query or not query.strip()


def _matches(task: Task, needle: str) -> bool:
    return needle in (task.title or "").lower() or needle in (task.notes or "").lower()


def search_tasks(tasks: list[Task], query: str | None) -> list[Task]:
    """
    Find tasks whose title or notes contain the query, case-insensitively.

    Every ancestor of a match is added, then every descendant of anything in
    the result, recursively. The flat result keeps input order and is meant
    to be fed back into build_forest. A blank query returns all tasks.

    Pure function - no I/O.
    """
    if is_blank_query(query):
        return list(tasks)

    needle = query.lower()
    by_id = index_by_id(tasks)
    result: set[str] = {t.id for t in tasks if _matches(t, needle)}

    for task_id in list(result):
        parent_id = by_id[task_id].parent
        while parent_id and parent_id in by_id and parent_id not in result:
            result.add(parent_id)
            parent_id = by_id[parent_id].parent

    children_by_parent: dict[str, list[str]] = {}
    for task in tasks:
        if task.parent:
            children_by_parent.setdefault(task.parent, []).append(task.id)

    queue = deque(result)
    while queue:
        task_id = queue.popleft()
        for child_id in children_by_parent.get(task_id, []):
            if child_id not in result:
                result.add(child_id)
                queue.append(child_id)

    return [t for t in tasks if t.id in result]
