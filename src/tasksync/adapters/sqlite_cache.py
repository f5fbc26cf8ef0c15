"""SQLite-backed local cache store adapter."""

import json
import logging
import sqlite3
from contextlib import closing, contextmanager
from pathlib import Path
from typing import Iterator

from tasksync.core.tasks import Task, TaskList
from tasksync.errors import StorageUnavailable

logger = logging.getLogger(__name__)

MEMBERSHIP_KEY = "taskToTaskListMap"


class SqliteCacheStore:
    """
    SQLite cache store.

    Implements CacheStore protocol. Tasks, task lists and the membership map
    live in three independent tables, entities stored as JSON. Each call
    opens its own connection so it can run on a worker thread.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path).expanduser()
        self._initialized = False

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self, conn: sqlite3.Connection) -> None:
        cursor = conn.cursor()
        cursor.execute("CREATE TABLE IF NOT EXISTS tasks (id TEXT PRIMARY KEY, data TEXT NOT NULL)")
        cursor.execute("CREATE TABLE IF NOT EXISTS task_lists (id TEXT PRIMARY KEY, data TEXT NOT NULL)")
        cursor.execute("CREATE TABLE IF NOT EXISTS keyval (key TEXT PRIMARY KEY, value TEXT NOT NULL)")
        conn.commit()
        self._initialized = True

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, commit on success, map failures to StorageUnavailable."""
        try:
            with closing(self._connect()) as conn:
                if not self._initialized:
                    self._init_db(conn)
                with conn:
                    yield conn
        except (sqlite3.Error, OSError) as e:
            logger.warning(f"Cache storage unavailable at {self.db_path}: {e}")
            raise StorageUnavailable(str(e)) from e

    def get_all_tasks(self) -> list[Task]:
        with self._transaction() as conn:
            rows = conn.execute("SELECT data FROM tasks").fetchall()
        return [Task.from_dict(json.loads(row["data"])) for row in rows]

    def get_all_task_lists(self) -> list[TaskList]:
        with self._transaction() as conn:
            rows = conn.execute("SELECT data FROM task_lists").fetchall()
        return [TaskList.from_dict(json.loads(row["data"])) for row in rows]

    def get_membership_map(self) -> dict[str, str] | None:
        with self._transaction() as conn:
            row = conn.execute("SELECT value FROM keyval WHERE key = ?", (MEMBERSHIP_KEY,)).fetchone()
        if row is None:
            return None
        return json.loads(row["value"])

    def put_tasks(self, tasks: list[Task]) -> None:
        with self._transaction() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO tasks (id, data) VALUES (?, ?)",
                [(t.id, json.dumps(t.to_dict())) for t in tasks],
            )

    def put_task_lists(self, task_lists: list[TaskList]) -> None:
        with self._transaction() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO task_lists (id, data) VALUES (?, ?)",
                [(tl.id, json.dumps(tl.to_dict())) for tl in task_lists],
            )

    def put_membership_map(self, membership: dict[str, str]) -> None:
        with self._transaction() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO keyval (key, value) VALUES (?, ?)",
                (MEMBERSHIP_KEY, json.dumps(membership)),
            )

    def delete_task(self, task_id: str) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))

    def clear_all(self) -> None:
        with self._transaction() as conn:
            conn.execute("DELETE FROM tasks")
            conn.execute("DELETE FROM task_lists")
            conn.execute("DELETE FROM keyval")

    def replace_all(
        self, tasks: list[Task], task_lists: list[TaskList], membership: dict[str, str]
    ) -> None:
        """Clear and rewrite all three tables in a single transaction."""
        with self._transaction() as conn:
            conn.execute("DELETE FROM tasks")
            conn.execute("DELETE FROM task_lists")
            conn.execute("DELETE FROM keyval")
            conn.executemany(
                "INSERT OR REPLACE INTO task_lists (id, data) VALUES (?, ?)",
                [(tl.id, json.dumps(tl.to_dict())) for tl in task_lists],
            )
            conn.executemany(
                "INSERT OR REPLACE INTO tasks (id, data) VALUES (?, ?)",
                [(t.id, json.dumps(t.to_dict())) for t in tasks],
            )
            conn.execute(
                "INSERT OR REPLACE INTO keyval (key, value) VALUES (?, ?)",
                (MEMBERSHIP_KEY, json.dumps(membership)),
            )
