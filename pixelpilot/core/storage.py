"""
Durable key/value storage for persisted client state.

Mirrors the browser ``localStorage`` contract: string keys, string
values, synchronous reads and writes. Stores wrap their state in a
versioned envelope before writing.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from loguru import logger

STORAGE_VERSION = 0


class StorageBackend(ABC):
    """Abstract string key/value store."""

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Get the raw value for ``key`` or None."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Overwrite the value for ``key``."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete ``key`` if present."""

    def write_state(self, key: str, state: dict[str, Any]) -> None:
        """Serialize ``state`` into a versioned envelope under ``key``."""
        self.set_item(key, json.dumps({"state": state, "version": STORAGE_VERSION}))

    def read_state(self, key: str) -> dict[str, Any] | None:
        """Read the state stored under ``key``.

        Returns:
            The stored state, or None when missing, unreadable or written
            by a different storage version.
        """
        try:
            raw = self.get_item(key)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Discarding unreadable blob '{key}': {e}")
            return None
        if raw is None:
            return None

        try:
            envelope = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding unreadable blob '{key}': {e}")
            return None

        if not isinstance(envelope, dict) or not isinstance(envelope.get("state"), dict):
            logger.warning(f"Discarding malformed blob '{key}'")
            return None

        if envelope.get("version", STORAGE_VERSION) != STORAGE_VERSION:
            logger.warning(
                f"Discarding blob '{key}' with version {envelope.get('version')}"
            )
            return None

        return envelope["state"]


class MemoryStorage(StorageBackend):
    """In-process storage, mostly for tests."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        """List stored keys."""
        return list(self._items)


class FileStorage(StorageBackend):
    """
    One JSON file per key under a directory.

    Writes go to a temporary file first and are moved into place, so a
    crash mid-write leaves the previous blob intact.

    Usage:
        storage = FileStorage("~/.pixelpilot")
        storage.set_item("chat-storage", "{...}")
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_name, self._path(key))
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
