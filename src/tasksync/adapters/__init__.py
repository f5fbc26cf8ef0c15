"""Adapters - I/O implementations of ports."""

from .google_tasks_api import GoogleTasksClient
from .google_session import AuthenticationError, GoogleSession
from .sqlite_cache import SqliteCacheStore

__all__ = [
    "GoogleTasksClient",
    "AuthenticationError",
    "GoogleSession",
    "SqliteCacheStore",
]
