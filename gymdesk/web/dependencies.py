"""FastAPI dependency injection and shared services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog
from fastapi import Depends, HTTPException, Request

from gymdesk.exceptions import ConfigError
from gymdesk.models.domain import ANONYMOUS, Identity, Principal
from gymdesk.storage.repositories.gyms import GymRepository
from gymdesk.storage.selection import InMemorySelectionStore
from gymdesk.types import DirectoryBackend
from gymdesk.web.auth.session import SessionKeySigner, SessionResolver
from gymdesk.web.tenant_context import TenantContext, TenantResolver

if TYPE_CHECKING:
    from gymdesk.config.settings import Settings
    from gymdesk.directory.base import Directory

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    """Process-wide collaborators, built once per app."""

    settings: Settings
    directory: Directory
    selection_store: InMemorySelectionStore
    session_keys: SessionKeySigner
    session_resolver: SessionResolver


def create_directory(settings: Settings) -> Directory:
    """Create the directory client selected by settings."""
    logger.info("directory_backend_selected", backend=settings.directory_backend)
    if settings.directory_backend == DirectoryBackend.SUPABASE:
        from gymdesk.directory.supabase import SupabaseDirectory

        if not settings.supabase_url or not settings.supabase_key:
            raise ConfigError("DIRECTORY_BACKEND=supabase requires SUPABASE_URL and SUPABASE_KEY")
        return SupabaseDirectory(settings.supabase_url, settings.supabase_key)

    from gymdesk.directory.database import DatabaseDirectory
    from gymdesk.directory.tokens import TokenSigner
    from gymdesk.storage.database import get_engine

    return DatabaseDirectory(
        get_engine(settings.database_url, echo=settings.debug),
        TokenSigner(settings.secret_key, ttl_seconds=settings.access_token_ttl),
        refresh_ttl_seconds=settings.refresh_token_ttl,
    )


def build_services(
    settings: Settings,
    directory: Directory | None = None,
    selection_store: InMemorySelectionStore | None = None,
) -> Services:
    directory = directory or create_directory(settings)
    return Services(
        settings=settings,
        directory=directory,
        selection_store=selection_store or InMemorySelectionStore(settings.refresh_token_ttl),
        session_keys=SessionKeySigner(settings.secret_key),
        session_resolver=SessionResolver(directory, settings),
    )


def get_services(request: Request) -> Services:
    services: Services = request.app.state.services
    return services


def get_principal(request: Request) -> Principal:
    """The principal resolved by the access gate for this request."""
    return getattr(request.state, "principal", ANONYMOUS)


def require_identity(principal: Principal = Depends(get_principal)) -> Identity:
    if not isinstance(principal, Identity):
        raise HTTPException(status_code=401, detail="Not authenticated")
    return principal


def get_session_key(request: Request) -> str:
    key: str = request.state.session_key
    return key


def get_tenant_resolver(
    services: Services = Depends(get_services),
    session_key: str = Depends(get_session_key),
) -> TenantResolver:
    return TenantResolver(
        GymRepository(services.directory),
        services.selection_store.for_session(session_key),
    )


def get_tenant_context(
    identity: Identity = Depends(require_identity),
    resolver: TenantResolver = Depends(get_tenant_resolver),
) -> TenantContext:
    """An unloaded tenant context; handlers call ``refresh_gyms()`` when they need gyms."""
    return TenantContext(resolver, identity)
