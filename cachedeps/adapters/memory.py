"""
adapters/memory.py - In-memory ports

Dictionary backed RepositoryPort and a CacheFlushPort that records what it
was asked to flush. Used by tests and by hosts that want to exercise the
engine without a content store.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set
import logging
import threading
import uuid

from cachedeps.contracts.errors import ItemNotFoundError, RepositoryError

logger = logging.getLogger(__name__)


@dataclass
class MemoryNode:
    """A node of the in-memory repository."""
    path: str
    identifier: str = field(default_factory=lambda: str(uuid.uuid4()))
    # Primary type first, then supertypes and mixins
    node_types: List[str] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass
class MemoryProperty:
    """A property of an in-memory node."""
    path: str
    name: str
    value: Any = None


class InMemoryRepository:
    """RepositoryPort over a path -> node dictionary."""

    def __init__(self, nodes: Optional[Iterable[MemoryNode]] = None):
        self._nodes: Dict[str, MemoryNode] = {}
        self._lock = threading.Lock()
        for node in nodes or ():
            self._nodes[node.path] = node

    def add_node(
        self,
        path: str,
        node_types: Iterable[str],
        identifier: Optional[str] = None,
        **properties: Any,
    ) -> MemoryNode:
        node = MemoryNode(path=path, node_types=list(node_types), properties=dict(properties))
        if identifier is not None:
            node.identifier = identifier
        with self._lock:
            self._nodes[path] = node
        return node

    def remove_node(self, path: str) -> Optional[MemoryNode]:
        """Remove a node and its descendants; returns the removed node."""
        with self._lock:
            removed = self._nodes.pop(path, None)
            prefix = path.rstrip("/") + "/"
            for child_path in [p for p in self._nodes if p.startswith(prefix)]:
                del self._nodes[child_path]
        return removed

    def set_property(self, node_path: str, name: str, value: Any) -> MemoryProperty:
        node = self.get_node_by_path(node_path)
        node.properties[name] = value
        return MemoryProperty(path=f"{node.path.rstrip('/')}/{name}", name=name, value=value)

    # RepositoryPort

    def get_item_by_path(self, path: str) -> Any:
        with self._lock:
            node = self._nodes.get(path)
        if node is not None:
            return node

        parent, _, name = path.rpartition("/")
        with self._lock:
            owner = self._nodes.get(parent or "/")
        if owner is None or name not in owner.properties:
            raise ItemNotFoundError(path)
        return MemoryProperty(path=path, name=name, value=owner.properties[name])

    def get_node_by_path(self, path: str) -> MemoryNode:
        with self._lock:
            node = self._nodes.get(path)
        if node is None:
            raise ItemNotFoundError(path)
        return node

    def is_node(self, item: Any) -> bool:
        return isinstance(item, MemoryNode)

    def node_has_type(self, node: Any, node_type: str) -> bool:
        if not isinstance(node, MemoryNode):
            raise RepositoryError(f"Not a node: {node!r}")
        return node_type in node.node_types

    def get_node_identifier(self, node: Any) -> str:
        if not isinstance(node, MemoryNode):
            raise RepositoryError(f"Not a node: {node!r}")
        return node.identifier

    def get_node_path(self, node: Any) -> str:
        if not isinstance(node, MemoryNode):
            raise RepositoryError(f"Not a node: {node!r}")
        return node.path

    def __len__(self) -> int:
        return len(self._nodes)


class RecordingCacheFlusher:
    """CacheFlushPort that keeps every flushed path set."""

    def __init__(self):
        self.flushes: List[Set[str]] = []
        self._lock = threading.Lock()

    def flush_paths(self, paths: Set[str]) -> None:
        with self._lock:
            self.flushes.append(set(paths))
        logger.info(f"Flushing output cache for {len(paths)} paths")

    @property
    def flushed_paths(self) -> Set[str]:
        with self._lock:
            return set().union(*self.flushes) if self.flushes else set()

    def reset(self) -> None:
        with self._lock:
            self.flushes.clear()
