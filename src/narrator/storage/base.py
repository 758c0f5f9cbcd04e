"""Storage collaborator contract and best-effort access helpers.

The core only needs ``get``/``set``/``delete`` against a key/value store.
Persistence is best effort: ``safe_get``/``safe_set`` catch backend failures,
log them, and leave the in-memory state authoritative.
"""

import copy
import json
import logging
import math
from pathlib import Path
from typing import Any, Optional, Protocol

from narrator.exceptions import StorageError

logger = logging.getLogger(__name__)


class Storage(Protocol):
    """Key/value store holding JSON-compatible values."""

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value or None."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store a JSON-compatible value."""
        ...

    def delete(self, key: str) -> None:
        """Remove a key if present."""
        ...


class InMemoryStorage:
    """Dict-backed storage, values are deep-copied on the way in and out."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStorage:
    """Single JSON document on disk, one top-level key per stored value."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageError(f"Cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"{self.path} does not contain a JSON object")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            tmp_path.replace(self.path)
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"Cannot write {self.path}: {exc}") from exc

    def get(self, key: str) -> Optional[Any]:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


def safe_get(storage: Storage, key: str, default: Any = None) -> Any:
    """Read a key, returning ``default`` when missing or when storage fails."""
    try:
        value = storage.get(key)
    except Exception as exc:
        logger.warning("Storage read for %r failed: %s", key, exc)
        return default
    return default if value is None else value


def safe_set(storage: Storage, key: str, value: Any) -> bool:
    """Write a key, returning False (and logging) when storage fails."""
    try:
        storage.set(key, value)
    except Exception as exc:
        logger.warning("Storage write for %r failed: %s", key, exc)
        return False
    return True


def get_number(storage: Storage, key: str, default: float = 0) -> float:
    """Read a scalar counter; non-numeric or non-finite values yield ``default``."""
    raw = safe_get(storage, key)
    if raw is None or isinstance(raw, bool):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value):
        return default
    return int(value) if value.is_integer() else value


def set_number(storage: Storage, key: str, value: float) -> bool:
    """Write a scalar counter."""
    return safe_set(storage, key, value)
