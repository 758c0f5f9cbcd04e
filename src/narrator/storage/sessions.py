"""Saved narrator sessions, keyed by a millisecond timestamp."""

import logging
from typing import Any, Optional

from narrator.clock import now_ms
from narrator.storage.base import Storage, safe_get, safe_set

logger = logging.getLogger(__name__)

SESSIONS_KEY = "narratorSessions"


class SessionStore:
    """Keeps the most recent sessions, newest first.

    Each session body is the full persisted document produced by
    ``narrator.replay.timeline.build_session_document``.
    """

    def __init__(self, storage: Storage, limit: int = 20, key: str = SESSIONS_KEY):
        self._storage = storage
        self._limit = limit
        self._key = key

    def _load(self) -> list[dict[str, Any]]:
        raw = safe_get(self._storage, self._key, default=[])
        if not isinstance(raw, list):
            logger.warning("Ignoring malformed session list under %r", self._key)
            return []
        return [
            doc for doc in raw
            if isinstance(doc, dict) and isinstance(doc.get("timestamp"), int)
        ]

    def list(self) -> list[dict[str, Any]]:
        """Sessions sorted by timestamp, newest first."""
        return sorted(self._load(), key=lambda doc: doc["timestamp"], reverse=True)

    def save(self, document: dict[str, Any]) -> Optional[int]:
        """Store a session document, evicting the oldest beyond the limit.

        Returns the session timestamp, or None when storage failed.
        """
        timestamp = document.get("timestamp")
        if not isinstance(timestamp, int):
            timestamp = now_ms()
        document = {**document, "timestamp": timestamp}

        sessions = [doc for doc in self._load() if doc["timestamp"] != timestamp]
        sessions.append(document)
        sessions.sort(key=lambda doc: doc["timestamp"], reverse=True)
        if not safe_set(self._storage, self._key, sessions[: self._limit]):
            return None
        return timestamp

    def get(self, timestamp: int) -> Optional[dict[str, Any]]:
        for doc in self._load():
            if doc["timestamp"] == timestamp:
                return doc
        return None

    def delete(self, timestamp: int) -> bool:
        sessions = self._load()
        remaining = [doc for doc in sessions if doc["timestamp"] != timestamp]
        if len(remaining) == len(sessions):
            return False
        return safe_set(self._storage, self._key, remaining)
