"""Storage package - key/value collaborator and session store."""

from narrator.storage.base import (
    Storage,
    InMemoryStorage,
    JsonFileStorage,
    safe_get,
    safe_set,
    get_number,
    set_number,
)
from narrator.storage.sessions import SessionStore, SESSIONS_KEY

__all__ = [
    "Storage",
    "InMemoryStorage",
    "JsonFileStorage",
    "safe_get",
    "safe_set",
    "get_number",
    "set_number",
    "SessionStore",
    "SESSIONS_KEY",
]
