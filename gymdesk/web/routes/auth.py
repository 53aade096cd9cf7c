"""Authentication routes: login, signup, logout and the auth-only pages."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from gymdesk.exceptions import ValidationError
from gymdesk.types import Role
from gymdesk.web.auth.session import clear_auth_cookies, set_auth_cookies
from gymdesk.web.dependencies import Services, get_services, get_session_key
from gymdesk.web.layout import ROLE_HOME

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["auth"])

# New and returning owners land on gym management, which routes them on.
_AFTER_AUTH = ROLE_HOME[Role.ADMIN]


# ---------------------------------------------------------------------------
# Auth-only pages (the access gate bounces signed-in users to home)
# ---------------------------------------------------------------------------


@router.get("/login")
async def login_page(next: str = "") -> dict[str, Any]:  # noqa: A002
    return {"page": "login", "next": next}


@router.get("/signup")
async def signup_page() -> dict[str, Any]:
    return {"page": "signup"}


# ---------------------------------------------------------------------------
# Password login / signup
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    email: str
    password: str


@router.post("/api/auth/login")
async def login(
    body: LoginRequest,
    response: Response,
    services: Services = Depends(get_services),
) -> dict[str, str]:
    """Exchange email/password for a session pair stored in cookies."""
    if not body.email or not body.password:
        raise ValidationError("Email and password required")

    auth_session = await services.directory.sign_in_with_password(body.email, body.password)
    set_auth_cookies(response, auth_session, services.settings)
    logger.info("user_logged_in", user_id=auth_session.user.id)
    return {"status": "ok", "email": auth_session.user.email, "redirect": _AFTER_AUTH}


class SignupRequest(BaseModel):
    email: str
    password: str
    confirm_password: str
    full_name: str
    gym_name: str
    terms: bool = False


@router.post("/api/auth/signup", status_code=201)
async def signup(
    body: SignupRequest,
    response: Response,
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Register an owner account; signs in straight away when no confirmation is pending."""
    if not (body.email and body.password and body.gym_name and body.full_name):
        raise ValidationError("Missing required fields")
    if body.password != body.confirm_password:
        raise ValidationError("Passwords do not match")
    if not body.terms:
        raise ValidationError("Terms must be accepted")

    user = await services.directory.sign_up(
        body.email,
        body.password,
        metadata={"full_name": body.full_name, "gym_name": body.gym_name},
    )
    if user.email_confirmed:
        auth_session = await services.directory.sign_in_with_password(body.email, body.password)
        set_auth_cookies(response, auth_session, services.settings)

    logger.info("user_signed_up", user_id=user.id, confirmation_required=not user.email_confirmed)
    return {
        "status": "ok",
        "email": user.email,
        "confirmation_required": not user.email_confirmed,
        "redirect": _AFTER_AUTH,
    }


@router.post("/api/auth/logout")
async def logout(
    request: Request,
    response: Response,
    services: Services = Depends(get_services),
    session_key: str = Depends(get_session_key),
) -> dict[str, str]:
    settings = services.settings
    await services.directory.sign_out(
        request.cookies.get(settings.access_cookie_name),
        request.cookies.get(settings.refresh_cookie_name),
    )
    clear_auth_cookies(response, settings)
    services.selection_store.clear(session_key)
    logger.info("user_logged_out")
    return {"status": "ok"}
