"""Dashboard controller - view state, coordinators and user-facing errors.

Entry points catch the error taxonomy, log it, and leave one dismissible
message in `error` instead of raising, so a failure never takes the rest
of the view down with it.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from .config import Config
from .core.search import is_blank_query, search_tasks
from .core.sorting import (
    ALL_TAB,
    SortCriterion,
    SortState,
    filter_by_tab,
    partition_by_status,
    sort_forest,
    sort_tasks,
)
from .core.tasks import CacheSnapshot, Task, list_titles
from .core.tree import Forest, build_forest, walk_forest
from .errors import (
    OwningListUnknown,
    RemoteError,
    StorageUnavailable,
    SyncFailed,
    SyncInProgress,
)
from .mutations import MutationCoordinator
from .ports import CacheStore, Session, TaskProvider
from .state import TaskState
from .sync import SyncCoordinator

logger = logging.getLogger(__name__)

REMOTE_ERROR_MESSAGE = "Something went wrong talking to Google Tasks. Please try again."
OWNING_LIST_MESSAGE = "Couldn't find this task's list. Please sync and try again."
SYNC_FAILED_MESSAGE = "Sync failed. Your cached tasks are unchanged; please retry."
SYNC_IN_PROGRESS_MESSAGE = "A sync is already running."
NOT_CONNECTED_MESSAGE = "Google not connected. Run 'tasksync auth' first."


@dataclass
class DashboardView:
    """Everything needed to render the task tab."""

    pending: list[Task] = field(default_factory=list)
    completed: list[Task] = field(default_factory=list)
    forest: Forest = field(default_factory=Forest)
    list_titles: dict[str, str] = field(default_factory=dict)
    membership: dict[str, str] = field(default_factory=dict)
    searching: bool = False

    def rows(self, completed: bool = False):
        """(depth, task) rows for one section, children nested under parents."""
        return walk_forest(self.forest, self.completed if completed else self.pending)

    def list_label(self, task: Task) -> str:
        """Title of the task's list, or empty when the list is unknown."""
        return self.list_titles.get(self.membership.get(task.id, ""), "")


class Dashboard:
    """Composes state, sync and mutations behind the view the user sees."""

    def __init__(
        self,
        provider: TaskProvider,
        cache: CacheStore | None,
        session: Session,
        config: Config | None = None,
    ):
        config = config or Config()
        self.session = session
        self.cache = cache
        self.state = TaskState()
        self.syncer = SyncCoordinator(provider, cache, self.state)
        self.mutations = MutationCoordinator(provider, cache, self.state)

        self.sort_state = SortState(SortCriterion(config.default_sort))
        self.active_tab = config.default_tab or ALL_TAB
        self.search_query: str | None = None
        self.error: str | None = None
        self.notice: str | None = None

    # ============== View state ==============

    @property
    def syncing(self) -> bool:
        return self.syncer.in_flight

    @property
    def cache_available(self) -> bool:
        return self.syncer.cache is not None and self.mutations.cache is not None

    def select_sort(self, criterion: SortCriterion | str) -> SortState:
        self.sort_state = self.sort_state.select(SortCriterion(criterion))
        return self.sort_state

    def select_tab(self, tab: str) -> None:
        self.active_tab = tab or ALL_TAB

    def search(self, query: str | None) -> None:
        """Set the search query. A blank query clears the search."""
        self.search_query = None if is_blank_query(query) else query

    def clear_search(self) -> None:
        self.search_query = None

    def dismiss_error(self) -> None:
        self.error = None

    def view(self) -> DashboardView:
        """Derive the rendered forest from the current state. Never mutates it."""
        tasks = self.state.tasks
        searching = self.search_query is not None
        if searching:
            tasks = search_tasks(tasks, self.search_query)

        membership = self.state.membership
        forest = sort_forest(build_forest(tasks), self.sort_state)
        roots = filter_by_tab(forest.top_level, self.active_tab, membership)
        pending, completed = partition_by_status(roots)

        return DashboardView(
            pending=sort_tasks(pending, self.sort_state),
            completed=sort_tasks(completed, self.sort_state, completed=True),
            forest=forest,
            list_titles=list_titles(self.state.task_lists),
            membership=membership,
            searching=searching,
        )

    # ============== Actions ==============

    async def _token(self) -> str | None:
        token = await asyncio.to_thread(self.session.bearer_token)
        if not token:
            self.notice = NOT_CONNECTED_MESSAGE
            logger.info("No bearer token - skipping remote call")
        return token

    async def start(self) -> CacheSnapshot | None:
        """Load the offline cache before the first render."""
        snapshot = await self.syncer.load_cached()
        self._drop_unavailable_cache()
        return snapshot

    def _drop_unavailable_cache(self) -> None:
        """Once either coordinator has given up on the cache, both stop using it."""
        if self.syncer.cache is None or self.mutations.cache is None:
            self.syncer.cache = self.mutations.cache = self.cache = None

    async def sync(self) -> bool:
        token = await self._token()
        if not token:
            return False
        try:
            await self.syncer.sync(token)
        except SyncInProgress:
            self.notice = SYNC_IN_PROGRESS_MESSAGE
            return False
        except SyncFailed as e:
            logger.error(f"Sync failed: {e}")
            self.error = SYNC_FAILED_MESSAGE
            return False
        finally:
            self._drop_unavailable_cache()
        self.error = None
        return True

    async def _mutate(self, operation, *args):
        """Run a mutation, turning taxonomy errors into a dismissible message."""
        token = await self._token()
        if not token:
            return None
        try:
            return await operation(token, *args)
        except OwningListUnknown as e:
            logger.warning(str(e))
            self.error = OWNING_LIST_MESSAGE
        except RemoteError as e:
            logger.error(f"Remote error (status={e.status}): {e.message}")
            self.error = REMOTE_ERROR_MESSAGE
        finally:
            self._drop_unavailable_cache()
        return None

    async def update_task(self, task_id: str, fields: dict) -> Task | None:
        return await self._mutate(self.mutations.update_task, task_id, fields)

    async def rename_task(self, task_id: str, title: str) -> Task | None:
        return await self.update_task(task_id, {"title": title})

    async def edit_notes(self, task_id: str, notes: str) -> Task | None:
        return await self.update_task(task_id, {"notes": notes})

    async def toggle_completed(self, task_id: str, completed: bool) -> Task | None:
        return await self._mutate(self.mutations.set_completed, task_id, completed)

    async def delete_task(self, task_id: str) -> bool:
        return await self._mutate(self._delete, task_id) is True

    async def _delete(self, token: str, task_id: str) -> bool:
        await self.mutations.delete_task(token, task_id)
        return True

    async def create_task(
        self,
        list_id: str,
        title: str,
        notes: str | None = None,
        parent: str | None = None,
    ) -> Task | None:
        return await self._mutate(self.mutations.create_task, list_id, title, notes, parent)

    async def logout(self) -> None:
        """Clear the offline cache and in-memory state, and sign out."""
        if self.cache is not None:
            try:
                await asyncio.to_thread(self.cache.clear_all)
            except StorageUnavailable as e:
                logger.warning(f"Could not clear offline cache on logout: {e}")
        self.state.replace_all(CacheSnapshot())
        self.search_query = None
        self.error = None
        logout = getattr(self.session, "logout", None)
        if logout is not None:
            await asyncio.to_thread(logout)
