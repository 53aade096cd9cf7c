"""Gym repository on top of the directory's row API."""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from gymdesk.billing.plans import TRIAL_DAYS, get_tier_limits
from gymdesk.exceptions import DirectoryError, TenantLoadError, TierLimitError, ValidationError
from gymdesk.models.domain import Gym
from gymdesk.types import SubscriptionStatus, SubscriptionTier

if TYPE_CHECKING:
    from gymdesk.directory.base import Directory

logger = structlog.get_logger(__name__)

_TABLE = "gyms"


def slugify(name: str) -> str:
    """Lowercase, drop characters outside ``[a-z0-9 -]``, dash-join words."""
    slug = re.sub(r"[^a-z0-9\s-]", "", name.lower())
    slug = re.sub(r"\s+", "-", slug.strip())
    return re.sub(r"-+", "-", slug)


class GymRepository:
    """Reads and writes gyms for one owner at a time.

    Only gyms owned by the caller and still active are ever returned.
    """

    def __init__(self, directory: Directory) -> None:
        self._directory = directory

    async def list_owned(self, owner_user_id: str) -> list[Gym]:
        """Active gyms of an owner, most recently created first.

        Raises ``TenantLoadError`` when the directory cannot be queried or
        returns rows that do not describe a gym.
        """
        try:
            rows = await self._directory.query(
                _TABLE,
                filters={"owner_user_id": owner_user_id, "is_active": True},
                order_by="created_at",
                descending=True,
            )
            return [Gym.model_validate(row) for row in rows]
        except DirectoryError as exc:
            raise TenantLoadError(str(exc)) from exc
        except PydanticValidationError as exc:
            raise TenantLoadError(f"Malformed gym row: {exc}") from exc

    async def create(
        self,
        owner_user_id: str,
        name: str,
        tier: SubscriptionTier = SubscriptionTier.SOLO,
        slug: str = "",
        **details: Any,
    ) -> Gym:
        """Create a gym in trial, enforcing the tier's gym count."""
        name = name.strip()
        if not name:
            raise ValidationError("Please enter a gym name")

        limits = get_tier_limits(tier)
        existing = await self.list_owned(owner_user_id)
        if len(existing) >= limits.max_gyms:
            plural = "s" if limits.max_gyms > 1 else ""
            raise TierLimitError(
                f"Your {tier} plan allows only {limits.max_gyms} gym{plural}. "
                "Please upgrade to add more gyms."
            )

        now = datetime.now(UTC)
        row: dict[str, Any] = {
            "name": name,
            "slug": slug or slugify(name),
            "owner_user_id": owner_user_id,
            "subscription_tier": str(tier),
            "subscription_status": str(SubscriptionStatus.TRIAL),
            "subscription_end_date": now + timedelta(days=TRIAL_DAYS),
            "max_members": limits.max_members,
            "max_trainers": limits.max_trainers,
            "max_locations": limits.max_locations,
            "is_active": True,
            **{k: (v.strip() or None) if isinstance(v, str) else v for k, v in details.items()},
        }
        try:
            record = await self._directory.insert(_TABLE, row)
        except DirectoryError as exc:
            raise TenantLoadError(f"Could not create gym: {exc}") from exc

        gym = Gym.model_validate(record)
        logger.info("gym_created", gym_id=gym.id, owner_user_id=owner_user_id, tier=str(tier))
        return gym
