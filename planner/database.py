import copy
import logging
import time
import uuid
from collections.abc import Callable, Iterator, MutableMapping
from itertools import count
from typing import Any, TypeAlias

from planner.exceptions import StoreError

logger = logging.getLogger(__name__)

Snapshot: TypeAlias = Any
SnapshotCallback: TypeAlias = Callable[[Snapshot], None]
Unsubscribe: TypeAlias = Callable[[], None]
KeyFn: TypeAlias = Callable[[], str]


def _split(path: str) -> tuple[str, ...]:
    parts = tuple(p for p in path.strip("/").split("/") if p)
    if not parts:
        raise StoreError(f"Invalid store path: {path!r}")
    return parts


def _related(a: tuple[str, ...], b: tuple[str, ...]) -> bool:
    n = min(len(a), len(b))
    return a[:n] == b[:n]


class InMemoryHierarchicalStore:
    """
    Simple in-memory hierarchical key/value store.

    Values live in nested mappings addressed by slash separated paths
    (``plannings/<id>``). Subscribers are notified with a fresh snapshot of
    their path whenever a write touches it, an ancestor, or a descendant.
    """

    def __init__(self, key_fn: KeyFn | None = None) -> None:
        self._root: MutableMapping[str, Any] = {}
        self._subscribers: dict[int, tuple[tuple[str, ...], SnapshotCallback]] = {}
        self._ids = count()
        self._key_fn = key_fn or self._time_ordered_key
        self._last_stamp = 0

    def get(self, path: str) -> Snapshot:
        node: Any = self._root
        for part in _split(path):
            if not isinstance(node, MutableMapping) or part not in node:
                return None
            node = node[part]
        if isinstance(node, MutableMapping) and not node:
            return None
        return copy.deepcopy(node)

    def set(self, path: str, value: Snapshot) -> None:
        parts = _split(path)
        if value is None:
            self._delete(parts)
        else:
            parent = self._root
            for part in parts[:-1]:
                child = parent.get(part)
                if not isinstance(child, MutableMapping):
                    child = parent[part] = {}
                parent = child
            parent[parts[-1]] = copy.deepcopy(value)
        logger.debug("store write %s", "/".join(parts))
        self._notify(parts)

    def update(self, path: str, fields: dict[str, Any]) -> None:
        current = self.get(path)
        merged = dict(current) if isinstance(current, MutableMapping) else {}
        merged.update(fields)
        self.set(path, merged)

    def push(self, path: str, value: Snapshot) -> str:
        parts = _split(path)
        key = self._key_fn()
        self.set("/".join((*parts, key)), value)
        return key

    def remove(self, path: str) -> None:
        self.set(path, None)

    def subscribe(self, path: str, callback: SnapshotCallback) -> Unsubscribe:
        parts = _split(path)
        sub_id = next(self._ids)
        self._subscribers[sub_id] = (parts, callback)
        callback(self.get(path))

        def _unsubscribe() -> None:
            self._subscribers.pop(sub_id, None)

        return _unsubscribe

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._root))

    def __len__(self) -> int:
        return len(self._root)

    def _time_ordered_key(self) -> str:
        # nanosecond stamp, bumped when the clock stalls, so keys sort by push order
        stamp = max(time.time_ns(), self._last_stamp + 1)
        self._last_stamp = stamp
        return f"{stamp:020d}{uuid.uuid4().hex[:8]}"

    def _delete(self, parts: tuple[str, ...]) -> None:
        trail = [self._root]
        node = self._root
        for part in parts[:-1]:
            node = node.get(part)
            if not isinstance(node, MutableMapping):
                return
            trail.append(node)
        node.pop(parts[-1], None)
        # prune parents left empty by the removal
        for depth in range(len(trail) - 1, 0, -1):
            if trail[depth]:
                break
            trail[depth - 1].pop(parts[depth - 1], None)

    def _notify(self, parts: tuple[str, ...]) -> None:
        for sub_parts, callback in list(self._subscribers.values()):
            if not _related(sub_parts, parts):
                continue
            try:
                callback(self.get("/".join(sub_parts)))
            except Exception:
                logger.exception(
                    "subscriber for %s failed", "/".join(sub_parts)
                )
