"""Tenant context API: list, select, refresh and create gyms."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from gymdesk.models.domain import Identity
from gymdesk.storage.repositories.gyms import GymRepository
from gymdesk.types import SubscriptionTier
from gymdesk.web.dependencies import Services, get_services, get_tenant_context, require_identity
from gymdesk.web.tenant_context import TenantContext

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/gyms", tags=["gyms"])


def tenant_payload(tenants: TenantContext) -> dict[str, Any]:
    resolution = tenants.resolution
    return {
        "current_gym": resolution.current_gym.model_dump(mode="json") if resolution.current_gym else None,
        "user_gyms": [g.model_dump(mode="json") for g in resolution.gyms],
        "loading": tenants.loading,
        "has_multiple_gyms": tenants.has_multiple_gyms,
        "status": str(resolution.status),
        "error": resolution.error,
    }


@router.get("")
async def get_gyms(tenants: TenantContext = Depends(get_tenant_context)) -> dict[str, Any]:
    await tenants.refresh_gyms()
    return tenant_payload(tenants)


@router.post("/refresh")
async def refresh_gyms(tenants: TenantContext = Depends(get_tenant_context)) -> dict[str, Any]:
    await tenants.refresh_gyms()
    return tenant_payload(tenants)


class SelectGymRequest(BaseModel):
    gym_id: str


@router.post("/select")
async def select_gym(
    body: SelectGymRequest,
    tenants: TenantContext = Depends(get_tenant_context),
) -> dict[str, Any]:
    """Switch the current gym. Ids outside the user's gyms leave it unchanged."""
    await tenants.refresh_gyms()
    await tenants.select_gym(body.gym_id)
    return tenant_payload(tenants)


class CreateGymRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    slug: str = ""
    tier: SubscriptionTier = SubscriptionTier.SOLO
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    timezone: str = "UTC"


@router.post("", status_code=201)
async def create_gym(
    body: CreateGymRequest,
    identity: Identity = Depends(require_identity),
    services: Services = Depends(get_services),
    tenants: TenantContext = Depends(get_tenant_context),
) -> dict[str, Any]:
    """Create a gym for the signed-in owner and make it the current one."""
    details = body.model_dump(exclude={"name", "slug", "tier"}, exclude_none=True)
    gym = await GymRepository(services.directory).create(
        identity.id, body.name, tier=body.tier, slug=body.slug, **details
    )
    await tenants.refresh_gyms()
    await tenants.select_gym(gym.id)
    return tenant_payload(tenants)
