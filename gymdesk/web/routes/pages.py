"""Role-shelled page routes.

Each page declares the shell it is mounted in. The shell decides the
navigation shown and which roles may open the page; everything else a page
renders belongs to the UI layer, which receives this payload.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from gymdesk.models.domain import Identity
from gymdesk.types import LayoutVariant
from gymdesk.web.dependencies import get_tenant_context, require_identity
from gymdesk.web.layout import effective_view, navigation_for, shell_redirect
from gymdesk.web.routes.gyms import tenant_payload
from gymdesk.web.tenant_context import TenantContext

router = APIRouter(tags=["pages"])

PAGES: dict[str, tuple[str, LayoutVariant]] = {
    "/dashboard": ("dashboard", LayoutVariant.MULTI_ROLE_SHELL),
    "/profile": ("profile", LayoutVariant.MULTI_ROLE_SHELL),
    "/members": ("members", LayoutVariant.ADMIN_SHELL),
    "/classes": ("classes", LayoutVariant.ADMIN_SHELL),
    "/trainers": ("trainers", LayoutVariant.ADMIN_SHELL),
    "/settings": ("settings", LayoutVariant.ADMIN_SHELL),
    "/gym-management": ("gym-management", LayoutVariant.ADMIN_SHELL),
    "/gym-selection": ("gym-selection", LayoutVariant.ADMIN_SHELL),
    "/trainer-dashboard": ("trainer-dashboard", LayoutVariant.TRAINER_SHELL),
    "/member-dashboard": ("member-dashboard", LayoutVariant.MEMBER_SHELL),
}


def _page_handler(name: str, shell: LayoutVariant) -> Any:
    async def page(
        request: Request,
        identity: Identity = Depends(require_identity),
        tenants: TenantContext = Depends(get_tenant_context),
    ) -> Any:
        redirect = shell_redirect(shell, identity.role)
        if redirect is not None and redirect != request.url.path:
            return RedirectResponse(url=redirect, status_code=302)

        await tenants.refresh_gyms()
        return {
            "page": name,
            "layout": str(shell),
            "view": str(effective_view(shell, identity.role)),
            "role": str(identity.role),
            "navigation": [
                {"name": item.name, "href": item.href}
                for item in navigation_for(shell, identity.role)
            ],
            "tenant": tenant_payload(tenants),
        }

    page.__name__ = f"{name.replace('-', '_')}_page"
    return page


for _path, (_name, _shell) in PAGES.items():
    router.add_api_route(_path, _page_handler(_name, _shell), methods=["GET"])
