"""In-process shared state store.

A key tree addressed by ``/``-separated paths. Writes are multi-key and
atomic; subscribers receive the current value of the subtree they watch
after every write that touches it.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Tuple


logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


def split_path(path: str) -> Tuple[str, ...]:
    return tuple(part for part in path.strip("/").split("/") if part)


def join_path(*parts: str) -> str:
    return "/".join(part.strip("/") for part in parts if part)


def flatten(tree: Any, prefix: str = "") -> Dict[str, Any]:
    """Leaf paths of a nested dict; empty dicts and non-dict values are leaves."""
    if not isinstance(tree, dict) or not tree:
        return {prefix: tree} if prefix else {}
    leaves: Dict[str, Any] = {}
    for key, value in tree.items():
        leaves.update(flatten(value, join_path(prefix, str(key))))
    return leaves


def diff_trees(before: Mapping[str, Any], after: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Changes turning ``before`` into ``after``; removed leaves map to None."""
    old = flatten(dict(before), prefix)
    new = flatten(dict(after), prefix)
    changes: Dict[str, Any] = {}
    for path, value in new.items():
        if path not in old or old[path] != value:
            changes[path] = value
    for path in old:
        if path not in new and not any(p.startswith(path + "/") for p in new):
            changes[path] = None
    return changes


class SharedStateStore:
    """Thread-safe tree with atomic multi-path writes and subtree listeners."""

    def __init__(self) -> None:
        self._root: Dict[str, Any] = {}
        self._lock = threading.RLock()
        self._listeners: Dict[Tuple[str, ...], List[Listener]] = {}

    # ----------------------------------------------------------------- reads --
    def get(self, path: str = "") -> Any:
        with self._lock:
            node: Any = self._root
            for part in split_path(path):
                if not isinstance(node, dict) or part not in node:
                    return None
                node = node[part]
            return copy.deepcopy(node)

    def exists(self, path: str) -> bool:
        return self.get(path) is not None

    # ---------------------------------------------------------------- writes --
    def update(self, changes: Mapping[str, Any]) -> None:
        """Apply every (path, value) pair or none of them."""
        if not changes:
            return
        with self._lock:
            staged = copy.deepcopy(self._root)
            for path, value in changes.items():
                parts = split_path(path)
                if not parts:
                    raise ValueError("refusing to overwrite the store root")
                self._write(staged, parts, copy.deepcopy(value))
            self._root = staged
            touched = [split_path(path) for path in changes]
            notifications = self._collect_notifications(touched)
        logger.debug("Store write | paths=%s listeners=%s", len(changes), len(notifications))
        for listener, value in notifications:
            listener(value)

    def set(self, path: str, value: Any) -> None:
        self.update({path: value})

    def delete(self, path: str) -> None:
        self.update({path: None})

    @staticmethod
    def _write(root: Dict[str, Any], parts: Tuple[str, ...], value: Any) -> None:
        node = root
        trail: List[Tuple[Dict[str, Any], str]] = []
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                if value is None:
                    return
                child = {}
                node[part] = child
            trail.append((node, part))
            node = child
        if value is None or value == {}:
            node.pop(parts[-1], None)
            # parents emptied by the removal disappear too
            for parent, key in reversed(trail):
                if parent[key]:
                    break
                del parent[key]
        else:
            node[parts[-1]] = value

    # ----------------------------------------------------------- subscribers --
    def subscribe(self, path: str, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for the subtree at ``path``; returns an unsubscribe hook."""
        key = split_path(path)
        with self._lock:
            self._listeners.setdefault(key, []).append(listener)
            current = self.get(path)
        listener(current)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(key, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def _collect_notifications(self, touched: List[Tuple[str, ...]]) -> List[Tuple[Listener, Any]]:
        pending: List[Tuple[Listener, Any]] = []
        for key, listeners in self._listeners.items():
            if not listeners:
                continue
            hit = any(t[: len(key)] == key or key[: len(t)] == t for t in touched)
            if not hit:
                continue
            value = self.get("/".join(key))
            pending.extend((listener, value) for listener in list(listeners))
        return pending
