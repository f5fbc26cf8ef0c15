"""Authenticated session interface."""

from dataclasses import dataclass
from typing import Protocol


@dataclass
class User:
    """The signed-in account."""

    email: str


class Session(Protocol):
    """Interface for the authenticated user and their bearer token."""

    def current_user(self) -> User | None:
        """Signed-in user, or None."""
        ...

    def bearer_token(self) -> str | None:
        """Access token for the tasks API, or None if not signed in."""
        ...
