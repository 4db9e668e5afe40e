"""
cachedeps Dependency Registry

In-memory index of node-type based cache dependencies:
- watched node types: node type -> identifiers of nodes to flush when a node
  of that type changes
- path mapping: node identifier -> path of its cached fragments

Each map is guarded by its own lock. Registration touches both maps one
after the other, so a concurrent lookup may see a watched identifier whose
path is not stored yet; lookups skip such identifiers.
"""

from __future__ import annotations
from typing import Any, Dict, FrozenSet, List, Optional, Set
import threading


class DependencyRegistry:
    """
    Node type -> watched node ids, node id -> path.

    Safe for concurrent registration and lookup without external locking.
    There is no eviction: entries live until clear() is called.
    """

    def __init__(self):
        self._watched_node_types: Dict[str, Set[str]] = {}
        self._path_mapping: Dict[str, str] = {}
        self._types_lock = threading.Lock()
        self._paths_lock = threading.Lock()

    def add_dependency(self, node_id: str, path: str, node_type: str) -> None:
        """
        Flush path whenever a node of node_type changes.

        Re-registering an identifier overwrites its path.

        Args:
            node_id: Identifier of the node whose fragments depend on node_type
            path: Path of that node
            node_type: Node type the fragments depend on
        """
        self.set_path(node_id, path)
        self.add_watched_node_type(node_type, node_id)

    def add_watched_node_type(self, node_type: str, node_id: str) -> None:
        """Add node_id to the watch set of node_type."""
        with self._types_lock:
            self._watched_node_types.setdefault(node_type, set()).add(node_id)

    def set_path(self, node_id: str, path: str) -> None:
        """Store the path of node_id (last write wins)."""
        with self._paths_lock:
            self._path_mapping[node_id] = path

    def get_path(self, node_id: str) -> Optional[str]:
        with self._paths_lock:
            return self._path_mapping.get(node_id)

    def get_watched_ids(self, node_type: str) -> FrozenSet[str]:
        with self._types_lock:
            return frozenset(self._watched_node_types.get(node_type, ()))

    def resolve_paths_for_type(self, node_type: str) -> Set[str]:
        """
        Get the paths to flush when a node of node_type changes.

        Identifiers without a known path are omitted.
        """
        node_ids = self.get_watched_ids(node_type)
        if not node_ids:
            return set()

        with self._paths_lock:
            return {
                self._path_mapping[node_id]
                for node_id in node_ids
                if node_id in self._path_mapping
            }

    def watched_type_names(self) -> List[str]:
        """Watched node types, without their ids."""
        with self._types_lock:
            return list(self._watched_node_types)

    def watched_node_types(self) -> Dict[str, Set[str]]:
        """Copy of the node type -> watched ids map."""
        with self._types_lock:
            return {
                node_type: set(node_ids)
                for node_type, node_ids in self._watched_node_types.items()
            }

    def path_mapping(self) -> Dict[str, str]:
        """Copy of the node id -> path map."""
        with self._paths_lock:
            return dict(self._path_mapping)

    def clear(self) -> None:
        with self._types_lock:
            self._watched_node_types.clear()
        with self._paths_lock:
            self._path_mapping.clear()

    @property
    def is_empty(self) -> bool:
        with self._types_lock:
            if self._watched_node_types:
                return False
        with self._paths_lock:
            return not self._path_mapping

    def stats(self) -> Dict[str, int]:
        """Counts for status reporting."""
        with self._types_lock:
            watched_types = len(self._watched_node_types)
            watched_entries = sum(len(ids) for ids in self._watched_node_types.values())
        with self._paths_lock:
            paths = len(self._path_mapping)
        return {
            "watched_types": watched_types,
            "watched_entries": watched_entries,
            "paths": paths,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Serialize registry for debugging/API output."""
        return {
            "watched_node_types": {
                node_type: sorted(node_ids)
                for node_type, node_ids in sorted(self.watched_node_types().items())
            },
            "path_mapping": dict(sorted(self.path_mapping().items())),
        }
