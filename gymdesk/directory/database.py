"""Directory service backed by the application database (SQLModel + AsyncSession).

Mirrors the hosted service's contract closely enough that the resolvers
cannot tell the two apart: signed access tokens, rotating refresh tokens,
equality-filtered row queries and an in-process change feed.
"""

from __future__ import annotations

import json
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import jwt
import structlog
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import SQLModel, col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from gymdesk.directory.base import AuthSession, ChangeEvent, DirectoryUser
from gymdesk.directory.events import ChangeFeed
from gymdesk.directory.tokens import TokenSigner, hash_password, new_refresh_token, verify_password
from gymdesk.exceptions import (
    DirectoryError,
    EmailNotConfirmedError,
    InvalidCredentialsError,
    TokenExpiredError,
    UserExistsError,
)
from gymdesk.models.database import Gym, RefreshToken, User, UserRole, _utc_now, as_utc

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from gymdesk.directory.base import ChangeCallback, ChangeKind
    from gymdesk.directory.events import LocalSubscription

logger = structlog.get_logger(__name__)

# Tables reachable through query/insert. ``users`` stays private (password hashes).
_TABLES: dict[str, type[SQLModel]] = {
    "gyms": Gym,
    "user_roles": UserRole,
}


def _to_user(user: User) -> DirectoryUser:
    return DirectoryUser(
        id=user.id,
        email=user.email,
        email_confirmed=user.email_confirmed_at is not None,
        metadata=json.loads(user.metadata_json) if user.metadata_json else {},
    )


class DatabaseDirectory:
    """Self-hosted implementation of the ``Directory`` protocol."""

    def __init__(
        self,
        engine: AsyncEngine,
        signer: TokenSigner,
        refresh_ttl_seconds: int = 60 * 60 * 24 * 30,
        require_email_confirmation: bool = False,
    ) -> None:
        self._engine = engine
        self._signer = signer
        self._refresh_ttl = timedelta(seconds=refresh_ttl_seconds)
        self._require_confirmation = require_email_confirmation
        self._feed = ChangeFeed()

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def get_current_user(self, access_token: str) -> DirectoryUser | None:
        try:
            claims = self._signer.verify(access_token)
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError("Access token expired") from exc
        except (jwt.InvalidTokenError, KeyError):
            return None

        try:
            async with AsyncSession(self._engine) as session:
                user = await session.get(User, claims.sub)
        except SQLAlchemyError as exc:
            raise DirectoryError(f"User lookup failed: {exc}") from exc
        return _to_user(user) if user else None

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        """Exchange a refresh token for a new pair; the old token is revoked."""
        try:
            async with AsyncSession(self._engine) as session:
                stmt = select(RefreshToken).where(col(RefreshToken.token) == refresh_token)
                result = await session.execute(stmt)
                stored = result.scalars().first()
                if stored is None or stored.revoked or as_utc(stored.expires_at) < _utc_now():
                    raise InvalidCredentialsError("Refresh token is invalid or expired")

                user = await session.get(User, stored.user_id)
                if user is None:
                    raise InvalidCredentialsError("Refresh token owner no longer exists")

                stored.revoked = True
                session.add(stored)
                auth_session = self._issue(session, user)
                await session.commit()
        except SQLAlchemyError as exc:
            raise DirectoryError(f"Session refresh failed: {exc}") from exc

        logger.info("session_rotated", user_id=auth_session.user.id)
        return auth_session

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        try:
            async with AsyncSession(self._engine) as session:
                stmt = select(User).where(col(User.email) == email.lower())
                result = await session.execute(stmt)
                user = result.scalars().first()
                if user is None or not verify_password(password, user.password_hash):
                    raise InvalidCredentialsError("Invalid login credentials")
                if self._require_confirmation and user.email_confirmed_at is None:
                    raise EmailNotConfirmedError("Email not confirmed")

                auth_session = self._issue(session, user)
                await session.commit()
        except SQLAlchemyError as exc:
            raise DirectoryError(f"Sign-in failed: {exc}") from exc

        logger.info("user_signed_in", user_id=auth_session.user.id)
        return auth_session

    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any] | None = None
    ) -> DirectoryUser:
        metadata = metadata or {}
        user = User(
            email=email.lower(),
            password_hash=hash_password(password),
            full_name=str(metadata.get("full_name", "")),
            email_confirmed_at=None if self._require_confirmation else _utc_now(),
            metadata_json=json.dumps(metadata) if metadata else None,
        )
        try:
            async with AsyncSession(self._engine) as session:
                session.add(user)
                await session.commit()
                await session.refresh(user)
        except IntegrityError as exc:
            raise UserExistsError("User already registered") from exc
        except SQLAlchemyError as exc:
            raise DirectoryError(f"Sign-up failed: {exc}") from exc

        logger.info("user_signed_up", user_id=user.id, confirmed=user.email_confirmed_at is not None)
        return _to_user(user)

    async def confirm_email(self, email: str) -> bool:
        """Mark an account's email as confirmed. Returns False for unknown emails."""
        async with AsyncSession(self._engine) as session:
            stmt = select(User).where(col(User.email) == email.lower())
            result = await session.execute(stmt)
            user = result.scalars().first()
            if user is None:
                return False
            user.email_confirmed_at = _utc_now()
            user.updated_at = _utc_now()
            session.add(user)
            await session.commit()
            return True

    async def sign_out(self, access_token: str | None, refresh_token: str | None) -> None:
        if not refresh_token:
            return
        try:
            async with AsyncSession(self._engine) as session:
                stmt = select(RefreshToken).where(col(RefreshToken.token) == refresh_token)
                result = await session.execute(stmt)
                stored = result.scalars().first()
                if stored is not None and not stored.revoked:
                    stored.revoked = True
                    session.add(stored)
                    await session.commit()
        except SQLAlchemyError as exc:
            raise DirectoryError(f"Sign-out failed: {exc}") from exc

    def _issue(self, session: AsyncSession, user: User) -> AuthSession:
        access_token, expires_at = self._signer.issue(user.id, user.email)
        refresh = RefreshToken(
            token=new_refresh_token(),
            user_id=user.id,
            expires_at=_utc_now() + self._refresh_ttl,
        )
        session.add(refresh)
        return AuthSession(
            access_token=access_token,
            refresh_token=refresh.token,
            expires_at=expires_at,
            user=_to_user(user),
        )

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
        model = self._model(table)
        stmt = select(model)
        for column, value in (filters or {}).items():
            stmt = stmt.where(self._column(model, column) == value)
        if order_by:
            column = self._column(model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        try:
            async with AsyncSession(self._engine) as session:
                result = await session.execute(stmt)
                return [row.model_dump() for row in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise DirectoryError(f"Query on {table} failed: {exc}") from exc

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        model = self._model(table)
        try:
            instance = model.model_validate(row)
            async with AsyncSession(self._engine) as session:
                session.add(instance)
                await session.commit()
                await session.refresh(instance)
                record = instance.model_dump()
        except SQLAlchemyError as exc:
            raise DirectoryError(f"Insert into {table} failed: {exc}") from exc

        await self._feed.publish(ChangeEvent(table=table, kind="INSERT", record=record))
        return record

    async def subscribe(
        self, table: str, kind: ChangeKind, callback: ChangeCallback
    ) -> LocalSubscription:
        self._model(table)
        return self._feed.subscribe(table, kind, callback)

    async def ping(self) -> None:
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            raise DirectoryError(f"Database unreachable: {exc}") from exc

    @staticmethod
    def _model(table: str) -> type[SQLModel]:
        model = _TABLES.get(table)
        if model is None:
            raise DirectoryError(f"Unknown table: {table}")
        return model

    @staticmethod
    def _column(model: type[SQLModel], name: str) -> Any:
        if name not in model.model_fields:
            raise DirectoryError(f"Unknown column: {model.__tablename__}.{name}")
        return col(getattr(model, name))
