"""Sync coordinator - full refresh of the cache snapshot from the provider."""

import asyncio
import logging

from .core.tasks import CacheSnapshot, Task
from .errors import RemoteError, StorageUnavailable, SyncFailed, SyncInProgress
from .ports import CacheStore, TaskProvider
from .state import TaskState

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """
    Fetch every list and task, then replace cache and memory in one step.

    Per-list fetches fan out concurrently behind a single barrier. The cache
    is only cleared once every fetch has succeeded, so a failed sync leaves
    the previous snapshot untouched. Not re-entrant.
    """

    def __init__(self, provider: TaskProvider, cache: CacheStore | None, state: TaskState):
        self.provider = provider
        self.cache = cache
        self.state = state
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def sync(self, token: str) -> CacheSnapshot:
        """Run a full refresh. Raises SyncInProgress if one is already running."""
        if self._in_flight:
            raise SyncInProgress("A sync is already in progress")

        self._in_flight = True
        try:
            snapshot = await self._fetch_snapshot(token)
            await self._persist(snapshot)
            self.state.replace_all(snapshot)
            logger.info(
                f"Synced {len(snapshot.tasks)} tasks across {len(snapshot.task_lists)} lists"
            )
            return snapshot
        finally:
            self._in_flight = False

    async def _fetch_snapshot(self, token: str) -> CacheSnapshot:
        try:
            task_lists = await asyncio.to_thread(self.provider.list_task_lists, token)
            per_list = await asyncio.gather(
                *(asyncio.to_thread(self.provider.list_tasks, token, tl.id) for tl in task_lists)
            )
        except RemoteError as e:
            logger.error(f"Sync aborted, cache left untouched: {e}")
            raise SyncFailed(f"Sync failed: {e}") from e
        except Exception as e:
            logger.exception(f"Sync aborted by unexpected provider error: {e}")
            raise SyncFailed(f"Sync failed: {e}") from e

        tasks: list[Task] = []
        membership: dict[str, str] = {}
        for task_list, list_tasks in zip(task_lists, per_list):
            for task in list_tasks:
                tasks.append(task)
                membership[task.id] = task_list.id

        return CacheSnapshot(tasks=tasks, task_lists=task_lists, membership=membership)

    async def _persist(self, snapshot: CacheSnapshot) -> None:
        """Swap all three stores in one step. Storage failure degrades to memory only."""
        if self.cache is None:
            return
        try:
            await asyncio.to_thread(
                self.cache.replace_all, snapshot.tasks, snapshot.task_lists, snapshot.membership
            )
        except StorageUnavailable as e:
            logger.warning(f"Offline cache not updated, continuing network-only: {e}")
            self.cache = None

    async def load_cached(self) -> CacheSnapshot | None:
        """Read all three stores into memory. Returns None if storage is unavailable."""
        if self.cache is None:
            return None
        try:
            tasks = await asyncio.to_thread(self.cache.get_all_tasks)
            task_lists = await asyncio.to_thread(self.cache.get_all_task_lists)
            membership = await asyncio.to_thread(self.cache.get_membership_map)
        except StorageUnavailable as e:
            logger.warning(f"Could not load offline cache, continuing network-only: {e}")
            self.cache = None
            return None

        snapshot = CacheSnapshot(tasks=tasks, task_lists=task_lists, membership=membership or {})
        self.state.replace_all(snapshot)
        logger.debug(f"Loaded {len(tasks)} cached tasks")
        return snapshot
