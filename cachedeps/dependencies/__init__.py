"""
cachedeps Dependency & Invalidation Engine

Provides:
- DependencyRegistry: node type -> watched node ids, node id -> path
- InvalidationEngine: notification batch -> paths to flush
- SnapshotCodec / SnapshotStore: registry persistence across restarts
"""

from .registry import DependencyRegistry
from .invalidation import (
    InvalidationEngine,
    ChangeNotification,
    NotificationKind,
    BatchResult,
    NODE_EVENTS,
    PROPERTY_EVENTS,
    parent_path,
)
from .persistence import (
    SnapshotCodec,
    SnapshotStore,
    STRUCTURE_VERSION,
    WATCHED_NODE_TYPES_KEY,
    PATH_MAPPING_KEY,
    DEFAULT_SNAPSHOT_FILENAME,
)

__all__ = [
    # Registry
    "DependencyRegistry",
    # Invalidation
    "InvalidationEngine",
    "ChangeNotification",
    "NotificationKind",
    "BatchResult",
    "NODE_EVENTS",
    "PROPERTY_EVENTS",
    "parent_path",
    # Persistence
    "SnapshotCodec",
    "SnapshotStore",
    "STRUCTURE_VERSION",
    "WATCHED_NODE_TYPES_KEY",
    "PATH_MAPPING_KEY",
    "DEFAULT_SNAPSHOT_FILENAME",
]
