"""Inter-module data contracts (not persisted directly)."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Final

from pydantic import BaseModel

from gymdesk.types import Confirmation, Role, SubscriptionStatus, SubscriptionTier

# Highest privilege first; a user holding several roles is shown the first match.
ROLE_PRIORITY: Final = (Role.ADMIN, Role.TRAINER, Role.MEMBER)


@dataclass(frozen=True, slots=True)
class Identity:
    """An authenticated user as seen by one request."""

    id: str
    email: str
    role: Role
    confirmation: Confirmation = Confirmation.CONFIRMED

    @property
    def is_confirmed(self) -> bool:
        return self.confirmation == Confirmation.CONFIRMED


class Anonymous:
    """Sentinel for a request without a valid session."""

    _instance: Anonymous | None = None

    def __new__(cls) -> Anonymous:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ANONYMOUS"

    def __bool__(self) -> bool:
        return False


ANONYMOUS: Final = Anonymous()

Principal = Identity | Anonymous


def is_anonymous(principal: Principal) -> bool:
    return isinstance(principal, Anonymous)


def primary_role(roles: Iterable[str], fallback: Role = Role.ADMIN) -> Role:
    """Pick the most privileged known role, or ``fallback`` when none match."""
    held = set(roles)
    for role in ROLE_PRIORITY:
        if role.value in held:
            return role
    return fallback


class Gym(BaseModel):
    id: str
    name: str
    slug: str
    owner_user_id: str
    subscription_tier: SubscriptionTier = SubscriptionTier.SOLO
    subscription_status: SubscriptionStatus = SubscriptionStatus.TRIAL
    subscription_end_date: datetime | None = None
    max_members: int = 200
    max_trainers: int = 10
    max_locations: int = 1
    is_active: bool = True
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    timezone: str = "UTC"
    created_at: datetime
