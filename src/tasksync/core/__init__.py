"""Functional core - pure business logic with no I/O."""

from .tasks import (
    STATUS_COMPLETED,
    STATUS_NEEDS_ACTION,
    CacheSnapshot,
    Task,
    TaskList,
    index_by_id,
    list_titles,
)
from .tree import Forest, build_forest, walk_forest
from .sorting import (
    ALL_TAB,
    SortCriterion,
    SortDirection,
    SortState,
    filter_by_tab,
    partition_by_status,
    sort_forest,
    sort_partitioned,
    sort_tasks,
)
from .search import is_blank_query, search_tasks

__all__ = [
    # Tasks
    "STATUS_COMPLETED",
    "STATUS_NEEDS_ACTION",
    "CacheSnapshot",
    "Task",
    "TaskList",
    "index_by_id",
    "list_titles",
    # Tree
    "Forest",
    "build_forest",
    "walk_forest",
    # Sorting
    "ALL_TAB",
    "SortCriterion",
    "SortDirection",
    "SortState",
    "filter_by_tab",
    "partition_by_status",
    "sort_forest",
    "sort_partitioned",
    "sort_tasks",
    # Search
    "is_blank_query",
    "search_tasks",
]
