"""Tenant (gym) resolution and the per-request tenant context."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

import structlog

from gymdesk.exceptions import NoGymSelectedError, TenantLoadError
from gymdesk.models.domain import is_anonymous
from gymdesk.types import LoadStatus

if TYPE_CHECKING:
    from gymdesk.models.domain import Gym, Principal
    from gymdesk.storage.repositories.gyms import GymRepository
    from gymdesk.storage.selection import SessionSelection

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class TenantResolution:
    """Outcome of one gym lookup.

    ``status == FAILED`` means the gym set is unknown, which is not the same
    as an empty set: callers must not offer "create your first gym" on it.
    """

    current_gym: Gym | None
    gyms: tuple[Gym, ...]
    status: LoadStatus = LoadStatus.LOADED
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == LoadStatus.FAILED

    def find(self, gym_id: str) -> Gym | None:
        return next((g for g in self.gyms if g.id == gym_id), None)


EMPTY_RESOLUTION = TenantResolution(current_gym=None, gyms=())


class TenantResolver:
    """Loads a user's gyms and picks exactly one as current.

    The selection lives in a session-scoped store handed in by the caller.
    A persisted id that is no longer among the user's gyms is replaced by
    the newest gym (or left alone when the user has none).
    """

    def __init__(self, gyms: GymRepository, selection: SessionSelection) -> None:
        self._gyms = gyms
        self._selection = selection

    async def resolve_tenants(self, principal: Principal) -> TenantResolution:
        if is_anonymous(principal):
            return EMPTY_RESOLUTION

        try:
            gyms = tuple(await self._gyms.list_owned(principal.id))
        except TenantLoadError as exc:
            logger.warning("tenant_load_failed", user_id=principal.id, error=str(exc))
            return TenantResolution(
                current_gym=None, gyms=(), status=LoadStatus.FAILED, error=str(exc)
            )

        resolution = TenantResolution(current_gym=None, gyms=gyms)
        selected_id = self._selection.get()
        current = resolution.find(selected_id) if selected_id else None

        if current is None and gyms:
            current = gyms[0]
            self._selection.set(current.id)
            if selected_id:
                logger.info(
                    "stale_selection_healed",
                    user_id=principal.id,
                    stale_gym_id=selected_id,
                    gym_id=current.id,
                )

        logger.debug(
            "tenant_resolved",
            user_id=principal.id,
            gym_id=current.id if current else None,
            gym_count=len(gyms),
        )
        return replace(resolution, current_gym=current)

    def select_tenant(self, resolution: TenantResolution, gym_id: str) -> TenantResolution:
        """Make an already-loaded gym current. Unknown ids change nothing."""
        gym = resolution.find(gym_id)
        if gym is None:
            logger.info("gym_selection_ignored", gym_id=gym_id)
            return resolution
        self._selection.set(gym.id)
        return replace(resolution, current_gym=gym)


class TenantContext:
    """What page handlers see of the tenant layer."""

    def __init__(self, resolver: TenantResolver, principal: Principal) -> None:
        self._resolver = resolver
        self._principal = principal
        self._resolution: TenantResolution | None = None

    @property
    def loading(self) -> bool:
        return self._resolution is None

    @property
    def resolution(self) -> TenantResolution:
        return self._resolution or EMPTY_RESOLUTION

    @property
    def current_gym(self) -> Gym | None:
        return self.resolution.current_gym

    @property
    def user_gyms(self) -> list[Gym]:
        return list(self.resolution.gyms)

    @property
    def has_multiple_gyms(self) -> bool:
        return len(self.resolution.gyms) > 1

    async def refresh_gyms(self) -> TenantResolution:
        self._resolution = await self._resolver.resolve_tenants(self._principal)
        return self._resolution

    async def select_gym(self, gym_id: str) -> Gym | None:
        if self._resolution is None:
            await self.refresh_gyms()
        self._resolution = self._resolver.select_tenant(self.resolution, gym_id)
        return self.current_gym

    def require_current_gym(self) -> Gym:
        gym = self.current_gym
        if gym is None:
            raise NoGymSelectedError("No gym selected. Please select a gym first.")
        return gym
