"""Unit tests for the in-process change feed."""

from __future__ import annotations

import pytest

from gymdesk.directory.base import ChangeEvent
from gymdesk.directory.events import ChangeFeed


def _event(kind: str = "INSERT", table: str = "gyms") -> ChangeEvent:
    return ChangeEvent(table=table, kind=kind, record={"id": "g1"})


@pytest.mark.unit
class TestChangeFeed:
    async def test_filters_by_table_and_kind(self) -> None:
        feed = ChangeFeed()
        inserts: list[ChangeEvent] = []
        everything: list[ChangeEvent] = []
        feed.subscribe("gyms", "INSERT", inserts.append)
        feed.subscribe("gyms", "*", everything.append)

        await feed.publish(_event("INSERT"))
        await feed.publish(_event("DELETE"))
        await feed.publish(_event("INSERT", table="user_roles"))

        assert [e.kind for e in inserts] == ["INSERT"]
        assert [e.kind for e in everything] == ["INSERT", "DELETE"]

    async def test_awaits_async_callbacks(self) -> None:
        feed = ChangeFeed()
        seen: list[str] = []

        async def on_change(event: ChangeEvent) -> None:
            seen.append(event.record["id"])

        feed.subscribe("gyms", "*", on_change)
        await feed.publish(_event())

        assert seen == ["g1"]

    async def test_failing_callback_does_not_stop_delivery(self) -> None:
        feed = ChangeFeed()
        seen: list[ChangeEvent] = []

        def broken(event: ChangeEvent) -> None:
            raise RuntimeError("listener bug")

        feed.subscribe("gyms", "*", broken)
        feed.subscribe("gyms", "*", seen.append)

        await feed.publish(_event())

        assert len(seen) == 1

    async def test_unsubscribe_twice_is_harmless(self) -> None:
        feed = ChangeFeed()
        subscription = feed.subscribe("gyms", "*", lambda event: None)
        await subscription.unsubscribe()
        await subscription.unsubscribe()
        assert feed._listeners == {}
