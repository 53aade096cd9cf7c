"""Directory service backed by a hosted Supabase project.

Token grants go straight to the GoTrue REST API over httpx so no session
state is kept on a shared client between requests. Row access and realtime
change notifications use the async Supabase client.
"""

from __future__ import annotations

import asyncio
import inspect
import time
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

import httpx
import jwt
import structlog
from supabase import AsyncClient, acreate_client

from gymdesk.directory.base import AuthSession, ChangeEvent, DirectoryUser
from gymdesk.exceptions import (
    DirectoryError,
    EmailNotConfirmedError,
    InvalidCredentialsError,
    TokenExpiredError,
    UserExistsError,
)

if TYPE_CHECKING:
    from gymdesk.directory.base import ChangeCallback, ChangeKind

logger = structlog.get_logger(__name__)

# Refresh slightly early so a token does not expire between gate and handler
_EXPIRY_LEEWAY_SECONDS = 10


def _to_user(payload: dict[str, Any]) -> DirectoryUser:
    try:
        return DirectoryUser(
            id=payload["id"],
            email=payload.get("email", ""),
            email_confirmed=bool(payload.get("email_confirmed_at") or payload.get("confirmed_at")),
            metadata=payload.get("user_metadata") or {},
        )
    except (KeyError, TypeError) as exc:
        raise DirectoryError("Malformed user payload") from exc


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    return str(
        body.get("msg") or body.get("error_description") or body.get("message") or body
    )


def _jsonable(row: dict[str, Any]) -> dict[str, Any]:
    return {k: v.isoformat() if isinstance(v, datetime) else v for k, v in row.items()}


def _token_expired(access_token: str) -> bool:
    try:
        claims = jwt.decode(access_token, options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return False
    exp = claims.get("exp")
    return isinstance(exp, int) and exp <= time.time() + _EXPIRY_LEEWAY_SECONDS


class SupabaseSubscription:
    def __init__(self, client: AsyncClient, channel: Any) -> None:
        self._client = client
        self._channel = channel

    async def unsubscribe(self) -> None:
        await self._client.remove_channel(self._channel)


class SupabaseDirectory:
    """Hosted implementation of the ``Directory`` protocol."""

    def __init__(
        self,
        url: str,
        key: str,
        client: AsyncClient | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._key = key
        self._client = client
        self._client_lock = asyncio.Lock()
        self._http = http or httpx.AsyncClient(base_url=f"{self._url}/auth/v1", timeout=10.0)

    async def _rows(self) -> AsyncClient:
        async with self._client_lock:
            if self._client is None:
                try:
                    self._client = await acreate_client(self._url, self._key)
                except Exception as exc:
                    raise DirectoryError(f"Supabase client unavailable: {exc}") from exc
        return self._client

    def _headers(self, bearer: str | None = None) -> dict[str, str]:
        return {"apikey": self._key, "Authorization": f"Bearer {bearer or self._key}"}

    async def _auth_call(
        self,
        method: str,
        path: str,
        *,
        bearer: str | None = None,
        params: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            return await self._http.request(
                method, path, headers=self._headers(bearer), params=params, json=json_body
            )
        except httpx.HTTPError as exc:
            raise DirectoryError(f"Auth service unreachable: {exc}") from exc

    def _session_from(self, body: dict[str, Any]) -> AuthSession:
        try:
            expires_at = body.get("expires_at") or int(time.time()) + int(body["expires_in"])
            return AuthSession(
                access_token=body["access_token"],
                refresh_token=body["refresh_token"],
                expires_at=int(expires_at),
                user=_to_user(body["user"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise DirectoryError("Malformed session payload") from exc

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def get_current_user(self, access_token: str) -> DirectoryUser | None:
        if _token_expired(access_token):
            raise TokenExpiredError("Access token expired")

        response = await self._auth_call("GET", "/user", bearer=access_token)
        if response.status_code in (401, 403):
            return None
        if response.is_error:
            raise DirectoryError(f"User lookup failed: {_error_message(response)}")
        return _to_user(response.json())

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        response = await self._auth_call(
            "POST",
            "/token",
            params={"grant_type": "refresh_token"},
            json_body={"refresh_token": refresh_token},
        )
        if response.status_code in (400, 401):
            raise InvalidCredentialsError(_error_message(response))
        if response.is_error:
            raise DirectoryError(f"Session refresh failed: {_error_message(response)}")
        auth_session = self._session_from(response.json())
        logger.info("session_rotated", user_id=auth_session.user.id)
        return auth_session

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        response = await self._auth_call(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json_body={"email": email, "password": password},
        )
        if response.status_code == 400:
            message = _error_message(response)
            if "not confirmed" in message.lower():
                raise EmailNotConfirmedError(message)
            raise InvalidCredentialsError(message)
        if response.is_error:
            raise DirectoryError(f"Sign-in failed: {_error_message(response)}")
        return self._session_from(response.json())

    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any] | None = None
    ) -> DirectoryUser:
        response = await self._auth_call(
            "POST",
            "/signup",
            json_body={"email": email, "password": password, "data": metadata or {}},
        )
        if response.status_code in (400, 422):
            message = _error_message(response)
            if "already registered" in message.lower():
                raise UserExistsError(message)
            raise DirectoryError(f"Sign-up rejected: {message}")
        if response.is_error:
            raise DirectoryError(f"Sign-up failed: {_error_message(response)}")
        body = response.json()
        # With auto-confirm on, GoTrue answers with a full session instead of a bare user
        return _to_user(body.get("user", body))

    async def sign_out(self, access_token: str | None, refresh_token: str | None) -> None:
        if not access_token:
            return
        response = await self._auth_call("POST", "/logout", bearer=access_token)
        if response.is_error and response.status_code not in (401, 403):
            raise DirectoryError(f"Sign-out failed: {_error_message(response)}")

    # ------------------------------------------------------------------
    # Rows
    # ------------------------------------------------------------------

    async def query(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        client = await self._rows()
        builder = client.table(table).select("*")
        for column, value in (filters or {}).items():
            builder = builder.eq(column, value)
        if order_by:
            builder = builder.order(order_by, desc=descending)
        if limit is not None:
            builder = builder.limit(limit)
        try:
            response = await builder.execute()
        except Exception as exc:
            raise DirectoryError(f"Query on {table} failed: {exc}") from exc
        return list(response.data or [])

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        client = await self._rows()
        try:
            response = await client.table(table).insert(_jsonable(row)).execute()
        except Exception as exc:
            raise DirectoryError(f"Insert into {table} failed: {exc}") from exc
        if not response.data:
            raise DirectoryError(f"Insert into {table} returned no row")
        return dict(response.data[0])

    async def subscribe(
        self, table: str, kind: ChangeKind, callback: ChangeCallback
    ) -> SupabaseSubscription:
        client = await self._rows()

        def _deliver(payload: dict[str, Any]) -> None:
            data = payload.get("data", payload)
            event = ChangeEvent(
                table=data.get("table", table),
                kind=data.get("type", kind),
                record=data.get("record") or data.get("old_record") or {},
            )
            result = callback(event)
            if inspect.isawaitable(result):
                asyncio.ensure_future(result)

        channel = client.channel(f"{table}-changes-{uuid.uuid4().hex[:8]}")
        channel.on_postgres_changes(kind, callback=_deliver, table=table, schema="public")
        try:
            await channel.subscribe()
        except Exception as exc:
            raise DirectoryError(f"Subscribe to {table} failed: {exc}") from exc
        logger.info("realtime_subscribed", table=table, kind=kind)
        return SupabaseSubscription(client, channel)

    async def ping(self) -> None:
        response = await self._auth_call("GET", "/health")
        if response.is_error:
            raise DirectoryError(f"Auth service unhealthy: {response.status_code}")
