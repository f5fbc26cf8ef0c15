"""Sort and filter engine over task lists and forests.

Pure functions - no I/O. Every child list is sorted with the same criterion
as the top level, independent of what the rest of the tree is filtered to.
"""

import math
import unicodedata
from dataclasses import dataclass
from datetime import timezone
from enum import Enum
from functools import cmp_to_key

from .tasks import Task, parse_timestamp
from .tree import Forest

ALL_TAB = "all"


class SortCriterion(str, Enum):
    POSITION = "position"
    DATE = "date"
    ALPHABETICAL = "alphabetical"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortState:
    """Active sort criterion and direction."""

    criterion: SortCriterion = SortCriterion.POSITION
    direction: SortDirection = SortDirection.ASC

    def select(self, criterion: SortCriterion) -> "SortState":
        """Reselecting the active criterion flips direction; a new one resets to asc."""
        if criterion == self.criterion:
            flipped = SortDirection.DESC if self.direction == SortDirection.ASC else SortDirection.ASC
            return SortState(criterion, flipped)
        return SortState(criterion, SortDirection.ASC)


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _date_value(task: Task, completed: bool) -> float:
    """Timestamp used by the date sort: due, else updated."""
    ts = parse_timestamp(task.due) or parse_timestamp(task.updated)
    if ts is None:
        # Undated pending tasks sort last, undated completed tasks at epoch
        return 0.0 if completed else math.inf
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.timestamp()


def _title_key(task: Task) -> tuple[str, str]:
    """Accent-folded then case-folded title, so "éclair" sorts among the e's."""
    title = task.title or ""
    decomposed = unicodedata.normalize("NFKD", title)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return base.casefold(), title.casefold()


def _date_comparator(completed: bool):
    def compare(a: Task, b: Task) -> int:
        result = _cmp(_date_value(a, completed), _date_value(b, completed))
        if completed:
            # Most recently completed first by default
            result = -result
        if result == 0:
            result = _cmp(_title_key(a), _title_key(b))
        if result == 0:
            result = _cmp(a.id, b.id)
        return result

    return compare


def sort_tasks(tasks: list[Task], state: SortState, completed: bool = False) -> list[Task]:
    """
    Sort tasks by the active criterion and direction.

    Ties always end on task id, so desc is the exact reverse of asc.
    The completed flag selects the completed-task date ordering.
    """
    reverse = state.direction == SortDirection.DESC

    match state.criterion:
        case SortCriterion.POSITION:
            return sorted(tasks, key=lambda t: (t.position or "", t.id), reverse=reverse)
        case SortCriterion.ALPHABETICAL:
            return sorted(
                tasks,
                key=lambda t: (_title_key(t), t.title or "", t.id),
                reverse=reverse,
            )
        case SortCriterion.DATE:
            return sorted(tasks, key=cmp_to_key(_date_comparator(completed)), reverse=reverse)
    raise ValueError(f"Unknown sort criterion: {state.criterion}")


def partition_by_status(tasks: list[Task]) -> tuple[list[Task], list[Task]]:
    """
    Split tasks into pending and completed.

    Returns: (pending, completed)
    """
    pending = [t for t in tasks if not t.is_completed]
    completed = [t for t in tasks if t.is_completed]
    return pending, completed


def sort_partitioned(tasks: list[Task], state: SortState) -> list[Task]:
    """Pending tasks sorted, followed by completed tasks sorted independently."""
    pending, completed = partition_by_status(tasks)
    return sort_tasks(pending, state) + sort_tasks(completed, state, completed=True)


def sort_forest(forest: Forest, state: SortState) -> Forest:
    """Return a new forest with the top level and every child list sorted."""
    return Forest(
        top_level=sort_partitioned(forest.top_level, state),
        children_by_parent={
            parent_id: sort_partitioned(children, state)
            for parent_id, children in forest.children_by_parent.items()
        },
    )


def filter_by_tab(tasks: list[Task], tab: str, membership: dict[str, str]) -> list[Task]:
    """Keep every task on the "all" tab, else tasks owned by the tab's list."""
    if tab == ALL_TAB:
        return list(tasks)
    return [t for t in tasks if membership.get(t.id) == tab]
