"""Row builders shared by tests."""

from __future__ import annotations

from datetime import datetime
from typing import Any

TEST_SECRET = "test-secret-key-0123456789abcdef0123"


def gym_row(gym_id: str, owner: str = "u1", created: int = 1, **overrides: Any) -> dict[str, Any]:
    """A gyms row as the directory returns it."""
    row: dict[str, Any] = {
        "id": gym_id,
        "name": f"Gym {gym_id}",
        "slug": f"gym-{gym_id}",
        "owner_user_id": owner,
        "subscription_tier": "solo",
        "subscription_status": "active",
        "is_active": True,
        "created_at": datetime(2024, 1, created),
    }
    row.update(overrides)
    return row


# http.cookiejar files host-only cookies for a dotless host under "<host>.local"
COOKIE_DOMAIN = "test.local"


def set_cookie(client: Any, name: str, value: str) -> None:
    """Plant a cookie the way the test server's own Set-Cookie would store it."""
    client.cookies.set(name, value, domain=COOKIE_DOMAIN)
