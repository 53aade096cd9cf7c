"""FastAPI middleware: request ID injection and the access gate."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING
from urllib.parse import quote

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import RedirectResponse

from gymdesk.types import AccessDecision
from gymdesk.web.routing import DEFAULT_ROUTES, RouteTable, decide

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.responses import Response

    from gymdesk.web.dependencies import Services

logger = structlog.get_logger(__name__)


def _sets_cookie(response: Response, name: str) -> bool:
    return any(h.startswith(f"{name}=") for h in response.headers.getlist("set-cookie"))


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Adds a unique X-Request-ID header to every response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response


class AccessGateMiddleware(BaseHTTPMiddleware):
    """Resolves the session and applies the access gate before any route runs.

    Sets ``request.state.principal`` and ``request.state.session_key`` for
    the handlers. Rotated or cleared credentials are written onto whatever
    response leaves, redirects included.
    """

    def __init__(self, app: object, services: Services, routes: RouteTable = DEFAULT_ROUTES) -> None:
        super().__init__(app)  # type: ignore[arg-type]
        self._services = services
        self._routes = routes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        settings = self._services.settings

        session_key = request.cookies.get(settings.session_cookie_name)
        issued_key: str | None = None
        if not self._services.session_keys.validate(session_key):
            session_key = issued_key = self._services.session_keys.issue()
        request.state.session_key = session_key

        resolution = await self._services.session_resolver.resolve(request)
        request.state.principal = resolution.principal

        path = request.url.path
        route_class = self._routes.classify(path)
        decision = decide(resolution.principal, route_class)

        response: Response
        if decision == AccessDecision.REDIRECT_LOGIN:
            logger.info("access_redirect", path=path, to="login")
            next_url = quote(path, safe="/")
            response = RedirectResponse(url=f"{settings.login_path}?next={next_url}", status_code=302)
        elif decision == AccessDecision.REDIRECT_HOME:
            logger.info("access_redirect", path=path, to="home")
            response = RedirectResponse(url=settings.home_path, status_code=302)
        else:
            response = await call_next(request)

        # Login/logout handlers write their own credentials; those win.
        if not _sets_cookie(response, settings.access_cookie_name):
            resolution.apply(response, settings)
        if issued_key is not None:
            response.set_cookie(
                key=settings.session_cookie_name,
                value=issued_key,
                httponly=True,
                secure=not settings.debug,
                samesite="lax",
            )
        return response
