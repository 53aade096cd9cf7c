"""Shared test fixtures."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from gymdesk.config.settings import Settings
from gymdesk.directory.database import DatabaseDirectory
from gymdesk.directory.tokens import TokenSigner
from gymdesk.storage.database import init_db
from gymdesk.storage.selection import InMemorySelectionStore
from gymdesk.web.app import create_app
from tests.factories import TEST_SECRET


@pytest.fixture()
def settings() -> Settings:
    # debug=True keeps cookies non-secure so the http:// test client sends them back
    return Settings(secret_key=TEST_SECRET, debug=True, database_url="sqlite+aiosqlite://")


@pytest.fixture()
async def async_engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def signer() -> TokenSigner:
    return TokenSigner(TEST_SECRET, ttl_seconds=3600)


@pytest.fixture()
def directory(async_engine, signer) -> DatabaseDirectory:
    return DatabaseDirectory(async_engine, signer)


@pytest.fixture()
def selection_store() -> InMemorySelectionStore:
    return InMemorySelectionStore()


@pytest.fixture()
def app(settings, directory, selection_store):
    """Create a fresh app instance wired to the in-memory directory."""
    return create_app(settings, directory=directory, selection_store=selection_store)


@pytest.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture()
async def owner_client(client, directory):
    """A client signed in as a gym owner (no role records, so admin)."""
    await directory.sign_up("owner@example.com", "s3cret-pass", {"full_name": "Olga Owner"})
    resp = await client.post(
        "/api/auth/login",
        json={"email": "owner@example.com", "password": "s3cret-pass"},
    )
    assert resp.status_code == 200
    return client
