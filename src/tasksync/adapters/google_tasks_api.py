"""Google Tasks API adapter - HTTP client for task lists and tasks."""

import logging
from urllib.parse import quote

import requests

from tasksync.config import Config, load_config
from tasksync.core.tasks import Task, TaskList
from tasksync.errors import RemoteError

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


def _error_message(resp: requests.Response) -> str:
    """Provider-supplied message from an error body, if parseable."""
    try:
        body = resp.json()
    except ValueError:
        return resp.reason or ""
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
        if body.get("message"):
            return str(body["message"])
    return resp.reason or ""


class GoogleTasksClient:
    """
    Google Tasks REST client.

    Implements TaskProvider protocol. Stateless apart from the HTTP session;
    the bearer token is passed on every call. No business logic - just I/O.
    """

    def __init__(self, config: Config | None = None, session: requests.Session | None = None):
        self.config = config or load_config()
        self._session = session or requests.Session()

    def _request(
        self,
        method: str,
        endpoint: str,
        token: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> dict | None:
        """Make authenticated API request."""
        try:
            resp = self._session.request(
                method,
                f"{self.config.api_base}{endpoint}",
                headers={"Authorization": f"Bearer {token}"},
                params=params,
                json=json,
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as e:
            logger.error(f"{method} {endpoint} failed: {e}")
            raise RemoteError(None, str(e)) from e

        if not 200 <= resp.status_code < 300:
            message = _error_message(resp)
            logger.error(f"{method} {endpoint} returned {resp.status_code}: {message}")
            raise RemoteError(resp.status_code, message)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            logger.error(f"{method} {endpoint} returned invalid JSON: {e}")
            raise RemoteError(resp.status_code, "Invalid JSON response") from e

    def _list_items(self, endpoint: str, token: str, params: dict) -> list[dict]:
        """Collect items across nextPageToken pages."""
        items: list[dict] = []
        params = dict(params)
        while True:
            data = self._request("GET", endpoint, token, params=params) or {}
            items.extend(data.get("items", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                return items
            params["pageToken"] = page_token

    @staticmethod
    def _task_path(list_id: str, task_id: str | None = None) -> str:
        path = f"/lists/{quote(list_id, safe='')}/tasks"
        if task_id is not None:
            path += f"/{quote(task_id, safe='')}"
        return path

    def list_task_lists(self, token: str) -> list[TaskList]:
        """Get all task lists."""
        items = self._list_items("/users/@me/lists", token, {"maxResults": PAGE_SIZE})
        return [TaskList.from_api(item) for item in items]

    def list_tasks(self, token: str, list_id: str) -> list[Task]:
        """Get all tasks of a list, completed and hidden ones included."""
        items = self._list_items(
            self._task_path(list_id),
            token,
            {"maxResults": PAGE_SIZE, "showCompleted": "true", "showHidden": "true"},
        )
        return [Task.from_api(item) for item in items]

    def update_task(self, token: str, list_id: str, task_id: str, fields: dict) -> Task:
        """PATCH only the supplied fields."""
        data = self._request("PATCH", self._task_path(list_id, task_id), token, json=fields)
        if not data:
            raise RemoteError(None, "Empty response updating task")
        return Task.from_api(data)

    def delete_task(self, token: str, list_id: str, task_id: str) -> None:
        self._request("DELETE", self._task_path(list_id, task_id), token)

    def create_task(
        self, token: str, list_id: str, fields: dict, parent: str | None = None
    ) -> Task:
        """Insert a task, as a subtask of parent when given."""
        params = {"parent": parent} if parent else None
        data = self._request("POST", self._task_path(list_id), token, params=params, json=fields)
        if not data:
            raise RemoteError(None, "Empty response creating task")
        return Task.from_api(data)
