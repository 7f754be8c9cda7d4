"""
Shared session storage for client windows.

Every client window (one SessionStore each) of the same installation shares a
single SharedSessionStorage. Like browser ``localStorage``, a write notifies
the other windows only, and only when the stored value actually changed.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional

from vbagen.core.logger import logger
from vbagen.interfaces.session_storage import ISessionStorage, StorageEvent, StorageListener


class SharedSessionStorage(ISessionStorage):
    """In-memory storage, optionally mirrored to a JSON file."""

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path) if path else None
        self._values: dict[str, Any] = self._load()
        self._listeners: list[tuple[str, StorageListener]] = []

    def _load(self) -> dict[str, Any]:
        if not self._path or not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning(f"Ignoring unreadable session storage {self._path}: {exc}")
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        if not self._path:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._values), encoding="utf-8")

    async def _notify(self, key: str, origin: str) -> None:
        event = StorageEvent(key=key, origin=origin)
        for listener_origin, listener in list(self._listeners):
            if listener_origin == origin:
                continue
            await listener(event)

    def get(self, key: str) -> Optional[Any]:
        return self._values.get(key)

    async def set(self, key: str, value: Any, origin: str) -> None:
        if key in self._values and self._values[key] == value:
            return
        self._values[key] = value
        self._flush()
        await self._notify(key, origin)

    async def remove(self, key: str, origin: str) -> None:
        if key not in self._values:
            return
        del self._values[key]
        self._flush()
        await self._notify(key, origin)

    def subscribe(self, origin: str, listener: StorageListener) -> Callable[[], None]:
        entry = (origin, listener)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe
