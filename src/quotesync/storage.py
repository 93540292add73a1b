"""
Key-value storage -- where the collection and preferences live.

Two flavours share one small interface:

    JsonFileStore  durable, one JSON document on disk per home directory
    MemoryStore    session-scoped, gone when the process exits

Values must be JSON-serializable.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from .errors import PersistenceError

logger = logging.getLogger("quotesync.storage")


class KeyValueStore(ABC):
    """Abstract get/set/contains storage."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under key, or default."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store value under key.

        Raises:
            PersistenceError: If the value could not be written.
        """

    @abstractmethod
    def contains(self, key: str) -> bool:
        """Check whether key holds a value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key if present."""


class MemoryStore(KeyValueStore):
    """Session-scoped store backed by a dict."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = dict(initial or {})

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def contains(self, key: str) -> bool:
        return key in self._data

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        """Drop every key, as happens when a session ends."""
        self._data.clear()


class JsonFileStore(KeyValueStore):
    """Durable store kept as a single JSON object on disk.

    Every set() rewrites the whole file through a temporary file and an
    atomic rename, so a crash never leaves a half-written document.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()
        self._data = self._load()

    def _load(self) -> dict[str, Any]:
        """Load the document from disk, or start empty."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Failed to load storage %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning(
                "Storage %s is not a JSON object, ignoring it", self.path
            )
            return {}
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def contains(self, key: str) -> bool:
        return key in self._data

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()

    def _flush(self) -> None:
        """Write the whole document to disk atomically."""
        try:
            payload = json.dumps(self._data, indent=2, ensure_ascii=False)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=".storage-", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.replace(tmp_name, self.path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Failed to write storage %s: %s", self.path, exc)
            raise PersistenceError(
                f"Could not write {self.path}: {exc}"
            ) from exc
