"""GymDesk entrypoint."""

import uvicorn

from gymdesk.config.settings import get_settings


def cli() -> None:
    """Serve the app factory; auto-reload only in debug mode."""
    settings = get_settings()
    uvicorn.run(
        "gymdesk.web.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    cli()
