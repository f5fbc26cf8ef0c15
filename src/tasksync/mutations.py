"""Mutation coordinator - optimistic local edits confirmed by the provider."""

import asyncio
import copy
import logging
from datetime import datetime, timezone
from enum import Enum

from .core.tasks import STATUS_COMPLETED, STATUS_NEEDS_ACTION, Task
from .errors import OwningListUnknown, RemoteError, StorageUnavailable
from .ports import CacheStore, TaskProvider
from .state import TaskState

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({"title", "notes", "status", "due", "completed"})


class MutationPhase(str, Enum):
    IDLE = "idle"
    OPTIMISTIC = "optimistic"
    CONFIRMED = "confirmed"
    ROLLED_BACK = "rolled_back"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class MutationCoordinator:
    """
    Apply edits locally first, then confirm or roll back.

    The cache is only written once the provider has accepted a change, so a
    rollback never has to touch it.
    """

    def __init__(self, provider: TaskProvider, cache: CacheStore | None, state: TaskState):
        self.provider = provider
        self.cache = cache
        self.state = state
        self._phases: dict[str, MutationPhase] = {}

    def phase(self, task_id: str) -> MutationPhase:
        return self._phases.get(task_id, MutationPhase.IDLE)

    def _resolve(self, task_id: str) -> tuple[Task, str]:
        """The task and its owning list id, or OwningListUnknown."""
        task = self.state.get(task_id)
        list_id = self.state.owning_list(task_id)
        if task is None or list_id is None:
            logger.warning(f"Cannot resolve owning list for task {task_id}")
            raise OwningListUnknown(task_id)
        return task, list_id

    async def _persist(self, method: str, *args) -> None:
        """Call a cache write, dropping to network-only mode if it fails."""
        if self.cache is None:
            return
        try:
            await asyncio.to_thread(getattr(self.cache, method), *args)
        except StorageUnavailable as e:
            logger.warning(f"Offline cache not updated, continuing network-only: {e}")
            self.cache = None

    async def update_task(self, token: str, task_id: str, fields: dict) -> Task:
        """
        Optimistically apply partial fields, then PATCH them remotely.

        On success the provider's entity replaces the optimistic copy and is
        cached. On any provider failure the previous copy is restored and the
        error re-raised. Only this task is restored, from a value copy taken
        before the edit, so confirmed edits to other tasks made meanwhile
        are kept.
        """
        if not fields:
            raise ValueError("No fields to update")
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")

        task, list_id = self._resolve(task_id)
        previous = copy.deepcopy(task)

        self._phases[task_id] = MutationPhase.OPTIMISTIC
        self.state.replace_task(task.with_fields(fields))

        try:
            confirmed = await asyncio.to_thread(
                self.provider.update_task, token, list_id, task_id, fields
            )
        except Exception as e:
            self.state.replace_task(previous)
            self._phases[task_id] = MutationPhase.ROLLED_BACK
            logger.error(f"Update of task {task_id} rolled back: {e}")
            raise

        self.state.replace_task(confirmed)
        self._phases[task_id] = MutationPhase.CONFIRMED
        await self._persist("put_tasks", [confirmed])
        return confirmed

    async def set_completed(self, token: str, task_id: str, completed: bool) -> Task:
        """Mark a task completed, or reopen it."""
        if completed:
            fields = {"status": STATUS_COMPLETED, "completed": _utc_now()}
        else:
            fields = {"status": STATUS_NEEDS_ACTION, "completed": None}
        return await self.update_task(token, task_id, fields)

    async def delete_task(self, token: str, task_id: str) -> None:
        """Delete remotely, then drop from memory and cache. Nothing is removed on failure."""
        _, list_id = self._resolve(task_id)

        try:
            await asyncio.to_thread(self.provider.delete_task, token, list_id, task_id)
        except RemoteError as e:
            logger.error(f"Delete of task {task_id} failed: {e}")
            raise

        self.state.remove_task(task_id)
        self._phases.pop(task_id, None)
        await self._persist("delete_task", task_id)

    async def create_task(
        self,
        token: str,
        list_id: str,
        title: str,
        notes: str | None = None,
        parent: str | None = None,
        due: str | None = None,
    ) -> Task:
        """Create a task remotely, then add it to memory, membership and cache."""
        if parent is not None:
            _, parent_list = self._resolve(parent)
            if parent_list != list_id:
                raise ValueError(f"Parent {parent} belongs to list {parent_list}, not {list_id}")

        fields: dict = {"title": title}
        if notes:
            fields["notes"] = notes
        if due:
            fields["due"] = due

        try:
            created = await asyncio.to_thread(
                self.provider.create_task, token, list_id, fields, parent
            )
        except RemoteError as e:
            logger.error(f"Create in list {list_id} failed: {e}")
            raise

        self.state.insert_task(created, list_id)
        await self._persist("put_tasks", [created])
        await self._persist("put_membership_map", self.state.membership)
        return created
