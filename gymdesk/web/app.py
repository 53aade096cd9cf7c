"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from gymdesk import __version__
from gymdesk.config.logging import setup_logging
from gymdesk.config.settings import Settings, get_settings
from gymdesk.exceptions import (
    DirectoryError,
    EmailNotConfirmedError,
    GymDeskError,
    InvalidCredentialsError,
    NoGymSelectedError,
    TierLimitError,
    UserExistsError,
    ValidationError,
)
from gymdesk.types import DirectoryBackend
from gymdesk.web.dependencies import Services, build_services, get_services
from gymdesk.web.middleware import AccessGateMiddleware, RequestIDMiddleware
from gymdesk.web.routes.auth import router as auth_router
from gymdesk.web.routes.gyms import router as gyms_router
from gymdesk.web.routes.pages import router as pages_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi.exceptions import HTTPException

    from gymdesk.directory.base import Directory
    from gymdesk.storage.selection import InMemorySelectionStore

logger = structlog.get_logger(__name__)

# Most specific first; the first isinstance match wins.
_ERROR_STATUS: list[tuple[type[GymDeskError], int, str]] = [
    (ValidationError, 422, "validation_error"),
    (InvalidCredentialsError, 401, "invalid_credentials"),
    (EmailNotConfirmedError, 403, "email_not_confirmed"),
    (UserExistsError, 409, "user_exists"),
    (TierLimitError, 409, "tier_limit"),
    (NoGymSelectedError, 409, "no_gym_selected"),
    (DirectoryError, 503, "service_unavailable"),
]


def create_app(
    settings: Settings | None = None,
    directory: Directory | None = None,
    selection_store: InMemorySelectionStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    setup_logging(log_level=settings.log_level, json_output=not settings.debug)
    services = build_services(settings, directory=directory, selection_store=selection_store)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if settings.directory_backend == DirectoryBackend.DATABASE and directory is None:
            from gymdesk.storage.database import get_engine, init_db

            await init_db(get_engine(settings.database_url, echo=settings.debug))
        yield

    app = FastAPI(
        title="GymDesk",
        description="Multi-tenant gym management: sessions, gyms and role shells",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    # Redirect 401s to the login page for browser page requests; return JSON for API
    @app.exception_handler(401)
    async def auth_redirect_handler(
        request: Request, exc: HTTPException
    ) -> RedirectResponse | JSONResponse:
        if not request.url.path.startswith("/api/"):
            next_url = quote(str(request.url.path), safe="/")
            return RedirectResponse(url=f"{settings.login_path}?next={next_url}", status_code=302)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(GymDeskError)
    async def domain_error_handler(request: Request, exc: GymDeskError) -> JSONResponse:
        for error_type, status_code, kind in _ERROR_STATUS:
            if isinstance(exc, error_type):
                break
        else:
            status_code, kind = 500, "general"
        logger.warning("request_failed", path=request.url.path, kind=kind, error=str(exc))
        return JSONResponse(status_code=status_code, content={"detail": str(exc), "type": kind})

    # Middleware: last added runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )
    app.add_middleware(AccessGateMiddleware, services=services)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(auth_router)
    app.include_router(gyms_router)
    app.include_router(pages_router)

    @app.get("/api/health")
    async def health_check(services: Services = Depends(get_services)) -> dict[str, Any]:
        from gymdesk.web.health import check_health

        return await check_health(services)

    logger.info("app_created", directory_backend=settings.directory_backend)
    return app
