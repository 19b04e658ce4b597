# Durable key-value storage - the port the chat manager persists through.
# Created: 2026-10-12
#
# The portal's browser build kept chat history in a string key-value store.
# KeyValueStore is that surface; FileKeyValueStore backs it with one file per
# key under the config dir, InMemoryKeyValueStore is for tests and ephemeral runs.

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class KeyValueStore(Protocol):
    """Protocol for durable string stores.

    Implementations may raise on any call; callers wrap them.
    """

    def get(self, key: str) -> str | None:
        """Return the stored value, or None if absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        ...

    def remove(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""
        ...


class InMemoryKeyValueStore:
    """Dict-backed store. Nothing survives the process."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class FileKeyValueStore:
    """File-backed store at ``{base_path}/{key}.json``.

    Writes go to a temp file first and are renamed into place, so a crash
    mid-write leaves the previous value intact.
    """

    def __init__(self, base_path: Path | None = None):
        """Initialize the store.

        Args:
            base_path: Directory for value files. Defaults to ~/.portalchat/storage/
        """
        if base_path is None:
            from portalchat.config import get_config_dir

            base_path = get_config_dir() / "storage"

        self.base_path = base_path
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        safe_key = _UNSAFE_KEY_CHARS.sub("_", key)
        return self.base_path / f"{safe_key}.json"

    def get(self, key: str) -> str | None:
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        temp_path = path.with_suffix(".tmp")
        try:
            temp_path.write_text(value, encoding="utf-8")
            temp_path.replace(path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def remove(self, key: str) -> None:
        path = self._path_for(key)
        if path.exists():
            path.unlink()
            logger.debug("Removed %s", path)
