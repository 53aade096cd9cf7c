"""Role shells on the page routes."""

from __future__ import annotations

import pytest


async def _sign_in_as(client, directory, email: str, role: str | None) -> None:
    user = await directory.sign_up(email, "pw-123456")
    if role is not None:
        await directory.insert("user_roles", {"user_id": user.id, "role": role})
    resp = await client.post("/api/auth/login", json={"email": email, "password": "pw-123456"})
    assert resp.status_code == 200


@pytest.mark.integration
class TestAdminPages:
    async def test_dashboard_uses_admin_view(self, owner_client) -> None:
        resp = await owner_client.get("/dashboard")

        assert resp.status_code == 200
        body = resp.json()
        assert body["page"] == "dashboard"
        assert body["layout"] == "multi_role_shell"
        assert body["view"] == "admin_shell"
        assert body["role"] == "admin"
        assert body["navigation"][0] == {"name": "Dashboard", "href": "/dashboard"}
        assert body["tenant"]["loading"] is False

    async def test_page_carries_current_gym(self, owner_client) -> None:
        await owner_client.post("/api/gyms", json={"name": "Iron Temple"})

        body = (await owner_client.get("/members")).json()

        assert body["view"] == "admin_shell"
        assert body["tenant"]["current_gym"]["name"] == "Iron Temple"

    @pytest.mark.parametrize(
        ("path", "view"),
        [("/trainer-dashboard", "trainer_shell"), ("/member-dashboard", "member_shell")],
    )
    async def test_admin_may_open_every_shell(self, owner_client, path: str, view: str) -> None:
        resp = await owner_client.get(path)
        assert resp.status_code == 200
        assert resp.json()["view"] == view

    async def test_gym_management(self, owner_client) -> None:
        resp = await owner_client.get("/gym-management")
        assert resp.status_code == 200
        assert resp.json()["page"] == "gym-management"


@pytest.mark.integration
class TestTrainerPages:
    async def test_dashboard_uses_trainer_view(self, client, directory) -> None:
        await _sign_in_as(client, directory, "coach@example.com", "trainer")

        body = (await client.get("/dashboard")).json()

        assert body["view"] == "trainer_shell"
        assert body["navigation"][0]["href"] == "/trainer-dashboard"

    @pytest.mark.parametrize("path", ["/members", "/settings", "/gym-management", "/member-dashboard"])
    async def test_other_shells_redirect_home(self, client, directory, path: str) -> None:
        await _sign_in_as(client, directory, "coach@example.com", "trainer")

        resp = await client.get(path)

        assert resp.status_code == 302
        assert resp.headers["location"] == "/trainer-dashboard"

    async def test_own_home(self, client, directory) -> None:
        await _sign_in_as(client, directory, "coach@example.com", "trainer")
        resp = await client.get("/trainer-dashboard")
        assert resp.status_code == 200


@pytest.mark.integration
class TestMemberPages:
    async def test_profile_uses_member_view(self, client, directory) -> None:
        await _sign_in_as(client, directory, "mia@example.com", "member")

        body = (await client.get("/profile")).json()

        assert body["view"] == "member_shell"
        assert body["role"] == "member"

    async def test_trainer_shell_redirects(self, client, directory) -> None:
        await _sign_in_as(client, directory, "mia@example.com", "member")

        resp = await client.get("/trainer-dashboard")

        assert resp.status_code == 302
        assert resp.headers["location"] == "/member-dashboard"

    async def test_admin_role_beats_member_role(self, client, directory) -> None:
        user = await directory.sign_up("boss@example.com", "pw-123456")
        await directory.insert("user_roles", {"user_id": user.id, "role": "member"})
        await directory.insert("user_roles", {"user_id": user.id, "role": "admin"})
        await client.post(
            "/api/auth/login", json={"email": "boss@example.com", "password": "pw-123456"}
        )

        body = (await client.get("/dashboard")).json()

        assert body["role"] == "admin"
