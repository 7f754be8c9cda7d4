"""
Session storage interface.

Key/value storage shared by every client window of the same installation,
with change notifications delivered to the *other* windows.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional


@dataclass(frozen=True)
class StorageEvent:
    """A stored value was changed by another window."""

    key: str
    origin: str


StorageListener = Callable[[StorageEvent], Awaitable[None]]


class ISessionStorage(ABC):
    """Abstract interface for shared session storage."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Read a JSON-compatible value, None if absent."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, origin: str) -> None:
        """
        Store a JSON-compatible value.

        Listeners other than ``origin`` are notified if the value changed.
        """
        pass

    @abstractmethod
    async def remove(self, key: str, origin: str) -> None:
        """Delete a value, notifying other listeners if it existed."""
        pass

    @abstractmethod
    def subscribe(self, origin: str, listener: StorageListener) -> Callable[[], None]:
        """
        Register a change listener for a window.

        Returns:
            Callable that removes the listener
        """
        pass
