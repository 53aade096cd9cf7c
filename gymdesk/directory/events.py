"""In-process change feed for the self-hosted directory."""

from __future__ import annotations

import contextlib
import inspect
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from gymdesk.directory.base import ChangeCallback, ChangeEvent, ChangeKind

logger = structlog.get_logger(__name__)


class LocalSubscription:
    def __init__(self, feed: ChangeFeed, table: str, entry: tuple[ChangeKind, ChangeCallback]) -> None:
        self._feed = feed
        self._table = table
        self._entry = entry

    async def unsubscribe(self) -> None:
        self._feed.remove(self._table, self._entry)


class ChangeFeed:
    """Fan-out of row changes to callbacks registered per table.

    Designed for a single asyncio event loop. A failing callback is logged
    and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[ChangeKind, ChangeCallback]]] = {}

    def subscribe(self, table: str, kind: ChangeKind, callback: ChangeCallback) -> LocalSubscription:
        entry = (kind, callback)
        self._listeners.setdefault(table, []).append(entry)
        return LocalSubscription(self, table, entry)

    def remove(self, table: str, entry: tuple[ChangeKind, ChangeCallback]) -> None:
        listeners = self._listeners.get(table, [])
        with contextlib.suppress(ValueError):
            listeners.remove(entry)
        if not listeners and table in self._listeners:
            del self._listeners[table]

    async def publish(self, event: ChangeEvent) -> None:
        for kind, callback in list(self._listeners.get(event.table, [])):
            if kind not in ("*", event.kind):
                continue
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                logger.warning("change_callback_failed", table=event.table, error=str(exc))
