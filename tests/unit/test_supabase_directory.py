"""Unit tests for the hosted directory backend (HTTP and client mocked)."""

from __future__ import annotations

import json
import time
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import jwt
import pytest

from gymdesk.directory.base import ChangeEvent
from gymdesk.directory.supabase import SupabaseDirectory
from gymdesk.exceptions import (
    DirectoryError,
    EmailNotConfirmedError,
    InvalidCredentialsError,
    TokenExpiredError,
    UserExistsError,
)

URL = "https://project.supabase.co"
USER = {"id": "u1", "email": "ann@example.com", "email_confirmed_at": "2024-01-01T00:00:00Z"}
SESSION = {
    "access_token": "access-1",
    "refresh_token": "refresh-1",
    "expires_in": 3600,
    "user": USER,
}


def _directory(handler, client=None) -> SupabaseDirectory:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=f"{URL}/auth/v1")
    return SupabaseDirectory(URL, "anon-key", client=client, http=http)


def _token(exp_offset: int) -> str:
    return jwt.encode({"sub": "u1", "exp": int(time.time()) + exp_offset}, "k" * 32, algorithm="HS256")


def _rows_client(data: list[dict]) -> tuple[MagicMock, MagicMock]:
    builder = MagicMock()
    for method in ("select", "eq", "order", "limit", "insert"):
        getattr(builder, method).return_value = builder
    builder.execute = AsyncMock(return_value=SimpleNamespace(data=data))
    client = MagicMock()
    client.table.return_value = builder
    return client, builder


@pytest.mark.unit
class TestAuthCalls:
    async def test_current_user(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=USER)

        token = _token(600)
        user = await _directory(handler).get_current_user(token)

        assert user is not None
        assert user.id == "u1"
        assert user.email_confirmed is True
        assert seen[0].url.path == "/auth/v1/user"
        assert seen[0].headers["authorization"] == f"Bearer {token}"
        assert seen[0].headers["apikey"] == "anon-key"

    async def test_current_user_rejected(self) -> None:
        directory = _directory(lambda request: httpx.Response(401, json={"msg": "bad jwt"}))
        assert await directory.get_current_user(_token(600)) is None

    async def test_expired_token_detected_locally(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("expired tokens must not reach the network")

        with pytest.raises(TokenExpiredError):
            await _directory(handler).get_current_user(_token(-5))

    async def test_server_error_is_directory_error(self) -> None:
        directory = _directory(lambda request: httpx.Response(500, text="oops"))
        with pytest.raises(DirectoryError):
            await directory.get_current_user(_token(600))

    async def test_network_failure_is_directory_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(DirectoryError, match="unreachable"):
            await _directory(handler).get_current_user(_token(600))

    async def test_sign_in(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=SESSION)

        pair = await _directory(handler).sign_in_with_password("ann@example.com", "pw")

        assert pair.access_token == "access-1"
        assert pair.expires_at > time.time()
        assert seen[0].url.params["grant_type"] == "password"
        assert json.loads(seen[0].content) == {"email": "ann@example.com", "password": "pw"}

    async def test_sign_in_bad_credentials(self) -> None:
        directory = _directory(
            lambda request: httpx.Response(
                400, json={"error_description": "Invalid login credentials"}
            )
        )
        with pytest.raises(InvalidCredentialsError):
            await directory.sign_in_with_password("ann@example.com", "pw")

    async def test_sign_in_unconfirmed(self) -> None:
        directory = _directory(
            lambda request: httpx.Response(400, json={"msg": "Email not confirmed"})
        )
        with pytest.raises(EmailNotConfirmedError):
            await directory.sign_in_with_password("ann@example.com", "pw")

    async def test_refresh(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={**SESSION, "refresh_token": "refresh-2"})

        pair = await _directory(handler).refresh_session("refresh-1")

        assert pair.refresh_token == "refresh-2"
        assert seen[0].url.params["grant_type"] == "refresh_token"

    async def test_refresh_rejected(self) -> None:
        directory = _directory(
            lambda request: httpx.Response(400, json={"msg": "Invalid Refresh Token"})
        )
        with pytest.raises(InvalidCredentialsError):
            await directory.refresh_session("refresh-1")

    async def test_malformed_session_payload(self) -> None:
        directory = _directory(lambda request: httpx.Response(200, json={"user": USER}))
        with pytest.raises(DirectoryError, match="Malformed"):
            await directory.refresh_session("refresh-1")

    async def test_sign_up_returns_user(self) -> None:
        directory = _directory(lambda request: httpx.Response(200, json=USER))
        user = await directory.sign_up("ann@example.com", "pw", {"full_name": "Ann"})
        assert user.id == "u1"

    async def test_sign_up_with_session_body(self) -> None:
        directory = _directory(lambda request: httpx.Response(200, json=SESSION))
        user = await directory.sign_up("ann@example.com", "pw")
        assert user.email == "ann@example.com"

    async def test_sign_up_existing(self) -> None:
        directory = _directory(
            lambda request: httpx.Response(422, json={"msg": "User already registered"})
        )
        with pytest.raises(UserExistsError):
            await directory.sign_up("ann@example.com", "pw")

    async def test_sign_out(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        directory = _directory(handler)
        await directory.sign_out("access-1", "refresh-1")
        await directory.sign_out(None, "refresh-1")

        assert len(seen) == 1
        assert seen[0].url.path == "/auth/v1/logout"

    async def test_ping(self) -> None:
        await _directory(lambda request: httpx.Response(200, json={})).ping()
        with pytest.raises(DirectoryError):
            await _directory(lambda request: httpx.Response(503)).ping()


@pytest.mark.unit
class TestRowCalls:
    async def test_query_builds_filters(self) -> None:
        client, builder = _rows_client([{"id": "g1"}])
        directory = _directory(lambda request: httpx.Response(200), client=client)

        rows = await directory.query(
            "gyms",
            filters={"owner_user_id": "u1", "is_active": True},
            order_by="created_at",
            descending=True,
            limit=5,
        )

        assert rows == [{"id": "g1"}]
        client.table.assert_called_once_with("gyms")
        builder.select.assert_called_once_with("*")
        assert builder.eq.call_count == 2
        builder.order.assert_called_once_with("created_at", desc=True)
        builder.limit.assert_called_once_with(5)

    async def test_query_failure(self) -> None:
        client, builder = _rows_client([])
        builder.execute.side_effect = RuntimeError("postgrest down")
        directory = _directory(lambda request: httpx.Response(200), client=client)

        with pytest.raises(DirectoryError, match="Query on gyms failed"):
            await directory.query("gyms")

    async def test_insert_serializes_datetimes(self) -> None:
        client, builder = _rows_client([{"id": "g1", "name": "Gym"}])
        directory = _directory(lambda request: httpx.Response(200), client=client)

        record = await directory.insert(
            "gyms", {"name": "Gym", "subscription_end_date": datetime(2024, 2, 1)}
        )

        assert record["id"] == "g1"
        builder.insert.assert_called_once_with(
            {"name": "Gym", "subscription_end_date": "2024-02-01T00:00:00"}
        )

    async def test_insert_without_returned_row(self) -> None:
        client, _ = _rows_client([])
        directory = _directory(lambda request: httpx.Response(200), client=client)

        with pytest.raises(DirectoryError, match="no row"):
            await directory.insert("gyms", {"name": "Gym"})

    @pytest.mark.parametrize("call", ["query", "insert", "subscribe"])
    async def test_client_creation_failure(self, monkeypatch, call: str) -> None:
        create = AsyncMock(side_effect=RuntimeError("invalid api key"))
        monkeypatch.setattr("gymdesk.directory.supabase.acreate_client", create)
        directory = _directory(lambda request: httpx.Response(200))
        calls = {
            "query": lambda: directory.query("gyms"),
            "insert": lambda: directory.insert("gyms", {"name": "Gym"}),
            "subscribe": lambda: directory.subscribe("gyms", "*", lambda event: None),
        }

        with pytest.raises(DirectoryError, match="client unavailable"):
            await calls[call]()
        create.assert_awaited_once_with(URL, "anon-key")


@pytest.mark.unit
class TestRealtime:
    async def test_subscribe_delivers_and_unsubscribes(self) -> None:
        channel = MagicMock()
        channel.subscribe = AsyncMock()
        client = MagicMock()
        client.channel.return_value = channel
        client.remove_channel = AsyncMock()
        directory = _directory(lambda request: httpx.Response(200), client=client)
        received: list[ChangeEvent] = []

        subscription = await directory.subscribe("gyms", "INSERT", received.append)
        deliver = channel.on_postgres_changes.call_args.kwargs["callback"]
        deliver({"data": {"table": "gyms", "type": "INSERT", "record": {"id": "g9"}}})
        await subscription.unsubscribe()

        assert channel.on_postgres_changes.call_args.args == ("INSERT",)
        assert received == [ChangeEvent(table="gyms", kind="INSERT", record={"id": "g9"})]
        client.remove_channel.assert_awaited_once_with(channel)

    async def test_channel_subscribe_failure(self) -> None:
        channel = MagicMock()
        channel.subscribe = AsyncMock(side_effect=RuntimeError("socket closed"))
        client = MagicMock()
        client.channel.return_value = channel
        directory = _directory(lambda request: httpx.Response(200), client=client)

        with pytest.raises(DirectoryError, match="Subscribe to gyms failed"):
            await directory.subscribe("gyms", "*", lambda event: None)
