"""Ports - interfaces/protocols for external dependencies."""

from .task_provider import TaskProvider
from .cache_store import CacheStore
from .session import Session, User

__all__ = [
    "TaskProvider",
    "CacheStore",
    "Session",
    "User",
]
