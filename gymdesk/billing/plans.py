"""Subscription tier definitions with concrete limits."""

from __future__ import annotations

from dataclasses import dataclass

from gymdesk.types import SubscriptionTier

TRIAL_DAYS = 14


@dataclass(frozen=True, slots=True)
class TierLimits:
    """Capacity limits for a subscription tier."""

    max_gyms: int
    max_members: int
    max_trainers: int
    max_locations: int


TIER_LIMITS: dict[SubscriptionTier, TierLimits] = {
    SubscriptionTier.SOLO: TierLimits(
        max_gyms=1,
        max_members=200,
        max_trainers=10,
        max_locations=1,
    ),
    SubscriptionTier.MULTI: TierLimits(
        max_gyms=999,
        max_members=9999,
        max_trainers=999,
        max_locations=99,
    ),
}


def get_tier_limits(tier: str) -> TierLimits:
    """Get limits for a tier, defaulting to solo."""
    try:
        return TIER_LIMITS[SubscriptionTier(tier)]
    except ValueError:
        return TIER_LIMITS[SubscriptionTier.SOLO]
