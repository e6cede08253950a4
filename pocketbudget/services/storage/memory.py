"""
In-Memory Tree Store

Holds the whole tree as nested dicts and pushes changes to subscribers
after every write. Used for tests and local runs, and as the base of
the Google Sheets backend, which only adds loading and saving.

Semantics follow a hosted real-time database:
- Writing None or an empty map deletes the node
- Maps left empty by a delete are pruned
- A subscriber hears about a write only if its node's value changed
"""

import asyncio
import copy
import inspect
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

from pocketbudget.services.storage.interface import (
    ChangeCallback,
    ErrorCallback,
    StorageError,
    Subscription,
    TreeStoreInterface,
    TreeValue,
    split_path,
)


logger = structlog.get_logger(__name__)


def _prune(value: TreeValue) -> TreeValue:
    """Drop None leaves and empty maps; an empty result becomes None."""
    if isinstance(value, dict):
        pruned = {}
        for key, child in value.items():
            child = _prune(child)
            if child is not None:
                pruned[str(key)] = child
        return pruned or None
    return value


def get_node(tree: dict, segments: list[str]) -> TreeValue:
    """Return a deep copy of the node at segments, or None."""
    node: Any = tree
    for segment in segments:
        if not isinstance(node, dict) or segment not in node:
            return None
        node = node[segment]
    return copy.deepcopy(node)


def write_node(tree: dict, segments: list[str], value: TreeValue) -> None:
    """
    Write value at segments in place.

    None deletes; ancestors left empty are pruned.
    """
    if not segments:
        raise StorageError("Cannot overwrite the root of the tree")

    value = _prune(copy.deepcopy(value))

    # Walk down, remembering the chain so we can prune on the way back
    chain = [tree]
    node = tree
    for segment in segments[:-1]:
        child = node.get(segment)
        if not isinstance(child, dict):
            if value is None:
                return
            child = {}
            node[segment] = child
        node = child
        chain.append(node)

    if value is None:
        node.pop(segments[-1], None)
    else:
        node[segments[-1]] = value

    for depth in range(len(segments) - 1, 0, -1):
        if chain[depth]:
            break
        chain[depth - 1].pop(segments[depth - 1], None)


def flatten_tree(tree: TreeValue, prefix: str = "") -> dict[str, Any]:
    """Flatten a tree to {path: scalar} for every leaf."""
    if not isinstance(tree, dict):
        return {prefix: tree} if prefix and tree is not None else {}
    flat = {}
    for key, child in tree.items():
        path = f"{prefix}/{key}" if prefix else str(key)
        flat.update(flatten_tree(child, path))
    return flat


def unflatten_tree(flat: dict[str, Any]) -> dict:
    """Rebuild a tree from {path: scalar}."""
    tree: dict = {}
    for path in sorted(flat):
        write_node(tree, split_path(path), flat[path])
    return tree


def _check_disjoint(paths: list[list[str]]) -> None:
    """A batch may not write a path and one of its ancestors."""
    ordered = sorted(paths)
    for current, following in zip(ordered, ordered[1:]):
        if following[:len(current)] == current:
            raise StorageError(
                "Batch writes overlapping paths: "
                f"{'/'.join(current)} and {'/'.join(following)}"
            )


@dataclass
class _Subscriber:
    segments: list[str]
    on_change: ChangeCallback
    on_error: Optional[ErrorCallback] = None
    last_value: TreeValue = None
    delivered: bool = False
    path: str = field(default="")


class MemoryTreeStore(TreeStoreInterface):
    """
    In-process implementation of the tree store.

    Callbacks run on the caller's event loop, in subscription order,
    and are awaited before the write that triggered them returns.
    """

    def __init__(self, initial: Optional[dict] = None):
        self._tree: dict = _prune(copy.deepcopy(initial or {})) or {}
        self._subscribers: dict[int, _Subscriber] = {}
        self._next_subscriber_id = 0
        # Serializes load and load-modify-commit against the backing store
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Hooks for persistent subclasses
    # ------------------------------------------------------------------

    async def _refresh(self) -> None:
        """Bring the local tree up to date before a read or write."""
        return None

    async def _commit(self, tree: dict) -> None:
        """Persist a new tree. Raising here leaves the old tree in place."""
        self._tree = tree

    async def _load(self) -> None:
        async with self._lock:
            await self._refresh()

    # ------------------------------------------------------------------
    # Subscriber dispatch
    # ------------------------------------------------------------------

    async def _call(self, callback, argument) -> None:
        result = callback(argument)
        if inspect.isawaitable(result):
            await result

    async def _deliver(self, subscriber_id: int, subscriber: _Subscriber, value: TreeValue) -> None:
        subscriber.last_value = value
        subscriber.delivered = True
        try:
            await self._call(subscriber.on_change, copy.deepcopy(value))
        except Exception as e:
            logger.error(
                "subscriber_callback_failed",
                path=subscriber.path,
                subscriber_id=subscriber_id,
                error=str(e),
            )
            if subscriber.on_error is not None:
                await self._call(subscriber.on_error, e)

    async def _notify(self) -> None:
        """Deliver the current value to every subscriber whose node changed."""
        for subscriber_id, subscriber in list(self._subscribers.items()):
            if subscriber_id not in self._subscribers:
                continue  # unsubscribed by an earlier callback
            value = get_node(self._tree, subscriber.segments)
            if subscriber.delivered and value == subscriber.last_value:
                continue
            await self._deliver(subscriber_id, subscriber, value)

    async def _broadcast_error(self, error: Exception) -> None:
        for subscriber in list(self._subscribers.values()):
            if subscriber.on_error is not None:
                await self._call(subscriber.on_error, error)

    # ------------------------------------------------------------------
    # TreeStoreInterface
    # ------------------------------------------------------------------

    async def subscribe(
        self,
        path: str,
        on_change: ChangeCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        segments = split_path(path)
        await self._load()

        subscriber_id = self._next_subscriber_id
        self._next_subscriber_id += 1
        subscriber = _Subscriber(
            segments=segments,
            on_change=on_change,
            on_error=on_error,
            path="/".join(segments),
        )
        self._subscribers[subscriber_id] = subscriber

        def teardown() -> None:
            self._subscribers.pop(subscriber_id, None)

        handle = Subscription(subscriber.path, teardown)
        await self._deliver(subscriber_id, subscriber, get_node(self._tree, segments))
        return handle

    async def get_once(self, path: str) -> TreeValue:
        segments = split_path(path)
        await self._load()
        return get_node(self._tree, segments)

    async def set_at_path(self, path: str, value: TreeValue) -> None:
        await self.multi_path_update({path: value})

    async def multi_path_update(self, updates: dict[str, TreeValue]) -> None:
        if not updates:
            return
        parsed = [(split_path(path), value) for path, value in updates.items()]
        _check_disjoint([segments for segments, _ in parsed])

        async with self._lock:
            await self._refresh()
            new_tree = copy.deepcopy(self._tree)
            for segments, value in parsed:
                write_node(new_tree, segments, value)
            await self._commit(new_tree)

        # Outside the lock: callbacks may write again
        await self._notify()

    async def remove_path(self, path: str) -> None:
        await self.multi_path_update({path: None})

    async def query_by_field(
        self,
        path: str,
        field: str,
        value: Any,
    ) -> dict[str, TreeValue]:
        node = await self.get_once(path)
        if not isinstance(node, dict):
            return {}
        return {
            key: child
            for key, child in node.items()
            if isinstance(child, dict) and child.get(field) == value
        }

    def dump(self) -> dict:
        """Deep copy of the whole local tree."""
        return copy.deepcopy(self._tree)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
