"""SQLModel table models for the self-hosted directory backend."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to values read back without a zone (SQLite drops it on storage)."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


def _timestamp(**kwargs: Any) -> Any:
    """A timezone-aware timestamp column."""
    return Field(sa_type=DateTime(timezone=True), **kwargs)  # type: ignore[call-overload]


def _new_uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Auth models
# ---------------------------------------------------------------------------


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    email: str = Field(index=True, unique=True)
    password_hash: str
    full_name: str = ""
    email_confirmed_at: datetime | None = _timestamp(default=None)
    metadata_json: str | None = None
    created_at: datetime = _timestamp(default_factory=_utc_now)
    updated_at: datetime = _timestamp(default_factory=_utc_now)


class UserRole(SQLModel, table=True):
    __tablename__ = "user_roles"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    role: str  # admin | trainer | member
    entity_id: str | None = None
    entity_type: str | None = None  # trainer | member
    is_active: bool = Field(default=True)
    created_at: datetime = _timestamp(default_factory=_utc_now)
    updated_at: datetime = _timestamp(default_factory=_utc_now)


class RefreshToken(SQLModel, table=True):
    __tablename__ = "refresh_tokens"

    id: int | None = Field(default=None, primary_key=True)
    token: str = Field(index=True, unique=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    revoked: bool = Field(default=False)
    expires_at: datetime = _timestamp()
    created_at: datetime = _timestamp(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Tenant models
# ---------------------------------------------------------------------------


class Gym(SQLModel, table=True):
    __tablename__ = "gyms"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    owner_user_id: str = Field(foreign_key="users.id", index=True)
    name: str
    slug: str = Field(index=True)
    subscription_tier: str = Field(default="solo")  # solo | multi
    subscription_status: str = Field(default="trial")  # active | trial | expired | cancelled
    subscription_end_date: datetime | None = _timestamp(default=None)
    max_members: int = Field(default=200)
    max_trainers: int = Field(default=10)
    max_locations: int = Field(default=1)
    is_active: bool = Field(default=True, index=True)
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    timezone: str = Field(default="UTC")
    created_at: datetime = _timestamp(default_factory=_utc_now)
    updated_at: datetime = _timestamp(default_factory=_utc_now)
