"""Session resolution: cookies in, identity (or anonymous) out."""

from __future__ import annotations

import hashlib
import hmac
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from gymdesk.exceptions import AuthResolutionError, DirectoryError, TokenExpiredError
from gymdesk.models.domain import ANONYMOUS, Identity, primary_role
from gymdesk.types import Confirmation, Role

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from gymdesk.config.settings import Settings
    from gymdesk.directory.base import AuthSession, Directory, DirectoryUser
    from gymdesk.models.domain import Principal

logger = structlog.get_logger(__name__)


def set_auth_cookies(response: Response, auth_session: AuthSession, settings: Settings) -> None:
    """Write both tokens of a credential pair onto the response."""
    response.set_cookie(
        key=settings.access_cookie_name,
        value=auth_session.access_token,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
        max_age=settings.refresh_token_ttl,
    )
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=auth_session.refresh_token,
        httponly=True,
        secure=not settings.debug,
        samesite="lax",
        max_age=settings.refresh_token_ttl,
    )


def clear_auth_cookies(response: Response, settings: Settings) -> None:
    response.delete_cookie(settings.access_cookie_name)
    response.delete_cookie(settings.refresh_cookie_name)


class SessionKeySigner:
    """Issues the opaque, HMAC-signed key that scopes per-session storage."""

    def __init__(self, secret_key: str) -> None:
        self._secret = secret_key.encode()

    def issue(self) -> str:
        raw = secrets.token_urlsafe(24)
        return f"{raw}.{self._sign(raw)}"

    def validate(self, key: str | None) -> bool:
        if not key or "." not in key:
            return False
        raw, signature = key.rsplit(".", 1)
        return hmac.compare_digest(signature, self._sign(raw))

    def _sign(self, data: str) -> str:
        return hmac.new(self._secret, data.encode(), hashlib.sha256).hexdigest()[:32]


@dataclass(frozen=True, slots=True)
class SessionResolution:
    """Who the request is, plus the cookie changes the response must carry."""

    principal: Principal
    refreshed: AuthSession | None = None
    clear_credentials: bool = False

    def apply(self, response: Response, settings: Settings) -> None:
        if self.refreshed is not None:
            set_auth_cookies(response, self.refreshed, settings)
        elif self.clear_credentials:
            clear_auth_cookies(response, settings)


class SessionResolver:
    """Resolves the session cookies of a request against the directory.

    Never raises: an absent, invalid or unverifiable session yields
    ``ANONYMOUS``. An expired access token is exchanged through the refresh
    token, and the rotated pair is handed back for the response.
    """

    def __init__(self, directory: Directory, settings: Settings) -> None:
        self._directory = directory
        self._settings = settings

    async def resolve(self, request: Request) -> SessionResolution:
        access_token = request.cookies.get(self._settings.access_cookie_name)
        refresh_token = request.cookies.get(self._settings.refresh_cookie_name)
        if not access_token and not refresh_token:
            return SessionResolution(principal=ANONYMOUS)

        try:
            return await self._resolve(access_token, refresh_token)
        except DirectoryError as exc:
            logger.warning("auth_resolution_failed", error=str(exc), kind=type(exc).__name__)
            return SessionResolution(principal=ANONYMOUS)

    async def _resolve(self, access_token: str | None, refresh_token: str | None) -> SessionResolution:
        user: DirectoryUser | None = None
        expired = not access_token
        if access_token:
            try:
                user = await self._directory.get_current_user(access_token)
            except TokenExpiredError:
                expired = True

        if user is not None:
            return SessionResolution(principal=await self.identity_for(user))

        if expired and refresh_token:
            try:
                refreshed = await self._directory.refresh_session(refresh_token)
            except DirectoryError as exc:
                logger.info("session_refresh_rejected", error=str(exc))
                return SessionResolution(principal=ANONYMOUS, clear_credentials=True)
            logger.info("session_refreshed", user_id=refreshed.user.id)
            # The old refresh token is revoked by now; the new pair must reach the client
            try:
                principal: Principal = await self.identity_for(refreshed.user)
            except DirectoryError as exc:
                logger.warning("auth_resolution_failed", error=str(exc), kind=type(exc).__name__)
                principal = ANONYMOUS
            return SessionResolution(principal=principal, refreshed=refreshed)

        return SessionResolution(principal=ANONYMOUS, clear_credentials=True)

    async def identity_for(self, user: DirectoryUser) -> Identity:
        """Attach the user's effective role (admin > trainer > member)."""
        try:
            rows = await self._directory.query(
                "user_roles", filters={"user_id": user.id, "is_active": True}
            )
        except DirectoryError as exc:
            raise AuthResolutionError(f"Roles of {user.id} unavailable: {exc}") from exc
        role = primary_role(
            (str(row.get("role")) for row in rows),
            fallback=Role(self._settings.fallback_role),
        )
        return Identity(
            id=user.id,
            email=user.email,
            role=role,
            confirmation=Confirmation.CONFIRMED if user.email_confirmed else Confirmation.UNCONFIRMED,
        )
