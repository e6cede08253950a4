"""
Abstract Tree Store Interface

DESIGN DECISION: The ledger lives in a path-addressable tree store
(users/<uid>/transactions/<key>, ...). We define an abstract interface
for it so that:
1. The hosted document database can be swapped for Google Sheets or memory
2. Tests run against an in-memory store with real push subscriptions
3. The synchronizer depends only on these primitives

The interface is intentionally small. It is what the synchronizer
needs, not a general database API.

CONSISTENCY: multi_path_update is atomic from one client's point of
view only. Two clients writing the same path concurrently can lose an
update; nothing here tries to prevent that.
"""

import secrets
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Union


# A node value: a nested dict of JSON-compatible scalars, or None for "absent".
TreeValue = Any
ChangeCallback = Callable[[TreeValue], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[Exception], Union[None, Awaitable[None]]]

_KEY_ALPHABET = "-0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ_abcdefghijklmnopqrstuvwxyz"


def split_path(path: str) -> list[str]:
    """
    Split a '/'-separated path into segments.

    Leading and trailing slashes are ignored; empty segments inside the
    path are rejected.
    """
    stripped = path.strip("/")
    if not stripped:
        return []
    segments = stripped.split("/")
    if any(not segment for segment in segments):
        raise StorageError(f"Invalid path (empty segment): {path!r}")
    return segments


def join_path(*parts: str) -> str:
    """Join path segments with '/'."""
    return "/".join(part.strip("/") for part in parts if part and part.strip("/"))


def generate_push_key(now_ms: Optional[int] = None) -> str:
    """
    Generate a unique, time-ordered child key.

    8 characters of millisecond timestamp followed by 12 random
    characters, all drawn from a lexicographically sorted alphabet,
    so keys created later sort later.
    """
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    stamp = []
    for _ in range(8):
        stamp.append(_KEY_ALPHABET[now_ms % 64])
        now_ms //= 64
    suffix = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(12))
    return "".join(reversed(stamp)) + suffix


class Subscription:
    """
    Handle returned by subscribe().

    unsubscribe() may be called any number of times.
    """

    def __init__(self, path: str, teardown: Callable[[], None]):
        self.path = path
        self._teardown = teardown
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._teardown()


class TreeStoreInterface(ABC):
    """
    Abstract interface for the remote tree store.

    Any backend (hosted real-time database, Google Sheets, memory)
    must implement these methods.
    """

    @abstractmethod
    async def subscribe(
        self,
        path: str,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """
        Mirror a node live.

        on_change fires once immediately with the current value, then
        every time the node's value changes. Callbacks may be coroutine
        functions; the store awaits them.

        Returns:
            Subscription handle for teardown
        """
        pass

    @abstractmethod
    async def get_once(self, path: str) -> TreeValue:
        """
        Point-in-time read.

        Returns:
            The node's value, or None if absent
        """
        pass

    @abstractmethod
    async def set_at_path(self, path: str, value: TreeValue) -> None:
        """
        Overwrite the node at path. Writing None deletes it.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def multi_path_update(self, updates: dict[str, TreeValue]) -> None:
        """
        Write several paths in one batch. None values delete.

        Subscribers are notified once, after every path is applied.

        Raises:
            StorageError: If the batch fails (nothing is applied)
        """
        pass

    @abstractmethod
    async def remove_path(self, path: str) -> None:
        """Delete the subtree at path."""
        pass

    @abstractmethod
    async def query_by_field(
        self,
        path: str,
        field: str,
        value: Any,
    ) -> dict[str, TreeValue]:
        """
        Find children of path whose field equals value.

        Returns:
            {child_key: child_value} for every match
        """
        pass

    def generate_key(self, path: str) -> str:
        """Generate a new child key under path."""
        return generate_push_key()


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
