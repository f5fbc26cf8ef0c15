"""Error taxonomy shared by adapters and coordinators."""


class TaskSyncError(Exception):
    """Base class for all tasksync errors."""

    pass


class RemoteError(TaskSyncError):
    """Raised when the remote task provider fails, answers non-2xx, or returns an unusable body."""

    def __init__(self, status: int | None, message: str = ""):
        self.status = status
        self.message = message
        detail = f"HTTP {status}" if status is not None else "request failed"
        super().__init__(f"{detail}: {message}" if message else detail)


class StorageUnavailable(TaskSyncError):
    """Raised when the local cache cannot be read or written."""

    pass


class OwningListUnknown(TaskSyncError):
    """Raised when a task's list cannot be resolved from the membership map."""

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Owning list unknown for task {task_id}")


class SyncFailed(TaskSyncError):
    """Raised when a full refresh aborts before the cache is replaced."""

    pass


class SyncInProgress(TaskSyncError):
    """Raised when a sync is requested while another one is in flight."""

    pass
