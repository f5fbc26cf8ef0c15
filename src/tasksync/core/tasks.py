"""Pure task domain logic - no I/O dependencies."""

from dataclasses import asdict, dataclass, field, fields, replace
from datetime import date, datetime

STATUS_NEEDS_ACTION = "needsAction"
STATUS_COMPLETED = "completed"


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp from the provider. Returns None if unparseable."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass
class Task:
    """A single to-do item with optional hierarchy, due date and completion state."""

    id: str
    title: str = ""
    notes: str | None = None
    status: str = STATUS_NEEDS_ACTION
    due: str | None = None
    updated: str | None = None
    parent: str | None = None
    position: str = ""
    completed: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    def due_date(self) -> date | None:
        """Calendar date the task is due, ignoring the time part."""
        due = parse_timestamp(self.due)
        return due.date() if due else None

    def is_overdue(self, as_of: date | None = None) -> bool:
        """Pending and due strictly before as_of."""
        if self.is_completed:
            return False
        due = self.due_date()
        if not due:
            return False
        as_of = as_of or date.today()
        return due < as_of

    def with_fields(self, changes: dict) -> "Task":
        """Return a copy with the given partial fields applied."""
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_api(cls, data: dict) -> "Task":
        """Create Task from a Google Tasks API response."""
        return cls(
            id=data["id"],
            title=data.get("title") or "",
            notes=data.get("notes"),
            status=data.get("status") or STATUS_NEEDS_ACTION,
            due=data.get("due"),
            updated=data.get("updated"),
            parent=data.get("parent"),
            position=data.get("position") or "",
            completed=data.get("completed"),
        )


@dataclass
class TaskList:
    """A named container grouping tasks, as defined by the provider."""

    id: str
    title: str = ""
    updated: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "TaskList":
        return cls(id=data["id"], title=data.get("title", ""), updated=data.get("updated"))

    @classmethod
    def from_api(cls, data: dict) -> "TaskList":
        """Create TaskList from a Google Tasks API response."""
        return cls(id=data["id"], title=data.get("title") or "", updated=data.get("updated"))


@dataclass
class CacheSnapshot:
    """Tasks, task lists and the task->list membership map, replaced as one unit."""

    tasks: list[Task] = field(default_factory=list)
    task_lists: list[TaskList] = field(default_factory=list)
    membership: dict[str, str] = field(default_factory=dict)


def index_by_id(tasks: list[Task]) -> dict[str, Task]:
    """Map task id to task."""
    return {t.id: t for t in tasks}


def list_titles(task_lists: list[TaskList]) -> dict[str, str]:
    """Map list id to list title, for labelling tasks by their list."""
    return {tl.id: tl.title for tl in task_lists}
