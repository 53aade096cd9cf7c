"""Health check endpoint logic."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from gymdesk import __version__
from gymdesk.exceptions import DirectoryError

if TYPE_CHECKING:
    from gymdesk.web.dependencies import Services

logger = structlog.get_logger(__name__)


async def check_health(services: Services) -> dict[str, object]:
    """Return application health status, including directory reachability."""
    result: dict[str, object] = {
        "status": "healthy",
        "version": __version__,
        "directory_backend": services.settings.directory_backend,
        "directory": "connected",
    }

    try:
        await services.directory.ping()
    except DirectoryError as exc:
        logger.warning("health_check_directory_failed", error=str(exc))
        result["directory"] = "unavailable"
        result["status"] = "degraded"

    return result
