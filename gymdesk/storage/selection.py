"""Session-scoped storage for the selected gym."""

from __future__ import annotations

import time

import structlog

logger = structlog.get_logger(__name__)

SELECTED_GYM_KEY = "selectedGymId"


class InMemorySelectionStore:
    """Per-session key/value storage with idle expiry.

    Each session owns a small dict; the only key written today is
    ``selectedGymId``. Concurrent requests of one session overwrite each
    other (last writer wins). Idle sessions are lazily cleaned on access.
    """

    def __init__(self, idle_ttl_seconds: int = 60 * 60 * 24 * 30) -> None:
        self._ttl = idle_ttl_seconds
        self._sessions: dict[str, tuple[dict[str, str], float]] = {}  # key -> (values, touched_at)

    def get(self, session_key: str, key: str) -> str | None:
        self._cleanup()
        entry = self._sessions.get(session_key)
        if entry is None:
            return None
        values, _ = entry
        self._sessions[session_key] = (values, time.time())
        return values.get(key)

    def set(self, session_key: str, key: str, value: str) -> None:
        self._cleanup()
        values, _ = self._sessions.get(session_key, ({}, 0.0))
        values[key] = value
        self._sessions[session_key] = (values, time.time())

    def remove(self, session_key: str, key: str) -> None:
        entry = self._sessions.get(session_key)
        if entry is not None:
            entry[0].pop(key, None)

    def clear(self, session_key: str) -> None:
        """Drop everything stored for a session."""
        self._sessions.pop(session_key, None)

    def for_session(self, session_key: str) -> SessionSelection:
        return SessionSelection(self, session_key)

    def _cleanup(self) -> None:
        now = time.time()
        expired = [k for k, (_, touched) in self._sessions.items() if now - touched > self._ttl]
        for k in expired:
            del self._sessions[k]
        if expired:
            logger.debug("selection_sessions_expired", count=len(expired))


class SessionSelection:
    """The selected-gym slot of one session."""

    def __init__(self, store: InMemorySelectionStore, session_key: str) -> None:
        self._store = store
        self.session_key = session_key

    def get(self) -> str | None:
        return self._store.get(self.session_key, SELECTED_GYM_KEY)

    def set(self, gym_id: str) -> None:
        self._store.set(self.session_key, SELECTED_GYM_KEY, gym_id)

    def clear(self) -> None:
        self._store.remove(self.session_key, SELECTED_GYM_KEY)
