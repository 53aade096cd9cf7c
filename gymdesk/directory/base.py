"""Contract of the remote directory service (auth + row store + change feed)."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol

ChangeKind = Literal["*", "INSERT", "UPDATE", "DELETE"]


@dataclass(frozen=True, slots=True)
class DirectoryUser:
    """A user record as returned by the directory's auth API."""

    id: str
    email: str
    email_confirmed: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class AuthSession:
    """An issued credential pair. ``expires_at`` is epoch seconds of the access token."""

    access_token: str
    refresh_token: str
    expires_at: int
    user: DirectoryUser


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    table: str
    kind: ChangeKind
    record: dict[str, Any]


ChangeCallback = Callable[[ChangeEvent], Awaitable[None] | None]


class Subscription(Protocol):
    async def unsubscribe(self) -> None: ...


class Directory(Protocol):
    """Operations GymDesk consumes from the hosted auth/database service.

    Implementations raise ``DirectoryError`` subclasses; they never return
    partial results for a failed call.
    """

    async def get_current_user(self, access_token: str) -> DirectoryUser | None:
        """Return the token's user, None when the token is invalid.

        Raises ``TokenExpiredError`` when the token is well-formed but expired.
        """
        ...

    async def refresh_session(self, refresh_token: str) -> AuthSession: ...

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession: ...

    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any] | None = None
    ) -> DirectoryUser: ...

    async def sign_out(self, access_token: str | None, refresh_token: str | None) -> None:
        """Revoke the session. Either token may be missing."""
        ...

    async def query(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]: ...

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]: ...

    async def subscribe(
        self, table: str, kind: ChangeKind, callback: ChangeCallback
    ) -> Subscription: ...

    async def ping(self) -> None: ...
