"""
cachedeps Invalidation Engine

Turns a batch of repository change notifications into the set of
output-cache paths to flush.

Each notification is resolved to the node it concerns (a property resolves
to its parent node), every node is classified once per batch against the
watched node types of the registry, and the matching paths are flushed in
a single call at the end of the batch.

Classification is fail-open: a notification whose node cannot be resolved
is skipped, never retried, and never aborts the batch.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Any, Callable, Dict, Iterable, List, Optional, Set, TYPE_CHECKING,
)
import logging
import threading
import uuid

from cachedeps.contracts.errors import RepositoryError

if TYPE_CHECKING:
    from .registry import DependencyRegistry
    from cachedeps.contracts.protocols import CacheFlushPort, RepositoryPort

logger = logging.getLogger(__name__)


# =============================================================================
# NOTIFICATIONS
# =============================================================================

class NotificationKind(str, Enum):
    """Kind of repository change."""
    NODE_ADDED = "node_added"
    NODE_REMOVED = "node_removed"
    NODE_MOVED = "node_moved"
    PROPERTY_ADDED = "property_added"
    PROPERTY_REMOVED = "property_removed"
    PROPERTY_CHANGED = "property_changed"

    @property
    def is_node_event(self) -> bool:
        return self in NODE_EVENTS

    @property
    def is_property_event(self) -> bool:
        return self in PROPERTY_EVENTS


NODE_EVENTS = frozenset({
    NotificationKind.NODE_ADDED,
    NotificationKind.NODE_REMOVED,
    NotificationKind.NODE_MOVED,
})
PROPERTY_EVENTS = frozenset({
    NotificationKind.PROPERTY_ADDED,
    NotificationKind.PROPERTY_REMOVED,
    NotificationKind.PROPERTY_CHANGED,
})


@dataclass
class ChangeNotification:
    """
    One change delivered by the repository observation layer.

    node_types is the type list of the node concerned, when the host embeds
    it. It is the only type information available for a removed node.
    """
    path: str
    kind: NotificationKind
    node_types: Optional[List[str]] = None
    identifier: Optional[str] = None
    user_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def parent_path(path: str) -> str:
    """Path of the parent of the item at path."""
    parent = path.rsplit("/", 1)[0] if "/" in path else path
    return parent or "/"


# =============================================================================
# BATCH RESULT
# =============================================================================

@dataclass
class BatchResult:
    """Record of one processed notification batch."""
    batch_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    notification_count: int = 0
    skipped_count: int = 0
    processed_nodes: List[str] = field(default_factory=list)
    matched_types: List[str] = field(default_factory=list)
    flushed_paths: List[str] = field(default_factory=list)
    flush_error: Optional[str] = None

    @property
    def flushed(self) -> bool:
        return bool(self.flushed_paths) and self.flush_error is None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for logging/API output."""
        return {
            "batch_id": self.batch_id,
            "timestamp": self.timestamp.isoformat(),
            "notification_count": self.notification_count,
            "skipped_count": self.skipped_count,
            "processed_nodes": self.processed_nodes,
            "matched_types": self.matched_types,
            "flushed_paths": self.flushed_paths,
            "flush_error": self.flush_error,
        }


@dataclass
class _BatchState:
    """Per-batch working sets, never shared across calls."""
    paths_to_flush: Set[str] = field(default_factory=set)
    processed_nodes: Set[str] = field(default_factory=set)
    matched_types: Set[str] = field(default_factory=set)
    skipped: int = 0


@dataclass
class _NodeIdentity:
    path: str
    node: Any = None
    node_types: Optional[List[str]] = None


# =============================================================================
# INVALIDATION ENGINE
# =============================================================================

class InvalidationEngine:
    """
    Computes and flushes the cache paths affected by a notification batch.

    The engine holds no state across batches apart from the result history;
    it may be called from several threads at once.
    """

    DEFAULT_MAX_HISTORY = 1000

    def __init__(
        self,
        registry: "DependencyRegistry",
        repository: "RepositoryPort",
        cache_flusher: "CacheFlushPort",
        max_history: int = DEFAULT_MAX_HISTORY,
    ):
        self._registry = registry
        self._repository = repository
        self._cache_flusher = cache_flusher

        self._history: List[BatchResult] = []
        self._max_history = max_history
        self._history_lock = threading.Lock()

        self._on_flush_callbacks: List[Callable[[BatchResult], None]] = []

    @property
    def registry(self) -> "DependencyRegistry":
        return self._registry

    def process_batch(self, notifications: Iterable[ChangeNotification]) -> BatchResult:
        """
        Classify a batch and flush the affected paths once.

        Args:
            notifications: Changes delivered together by the repository

        Returns:
            BatchResult describing what was flushed
        """
        state = _BatchState()
        count = self._collect(notifications, state)

        result = BatchResult(
            notification_count=count,
            skipped_count=state.skipped,
            processed_nodes=sorted(state.processed_nodes),
            matched_types=sorted(state.matched_types),
            flushed_paths=sorted(state.paths_to_flush),
        )

        if state.paths_to_flush:
            try:
                self._cache_flusher.flush_paths(set(state.paths_to_flush))
            except Exception as e:
                result.flush_error = str(e)
                logger.error(f"Cache flush failed for {len(state.paths_to_flush)} paths: {e}")
            else:
                logger.debug(
                    f"Flushed {len(state.paths_to_flush)} paths for "
                    f"{len(state.matched_types)} node types"
                )

        self._record(result)
        if result.flushed:
            self._notify_callbacks(result)

        return result

    def collect_paths_to_flush(self, notifications: Iterable[ChangeNotification]) -> Set[str]:
        """Compute the paths a batch would flush, without flushing."""
        state = _BatchState()
        self._collect(notifications, state)
        return state.paths_to_flush

    def _collect(self, notifications: Iterable[ChangeNotification], state: _BatchState) -> int:
        count = 0
        for notification in notifications:
            count += 1
            try:
                self._collect_notification(notification, state)
            except Exception as e:
                state.skipped += 1
                logger.error(f"Could not classify {notification.kind.value} on {notification.path}: {e}")
        return count

    def _collect_notification(self, notification: ChangeNotification, state: _BatchState) -> None:
        if not notification.path:
            state.skipped += 1
            logger.debug(f"Ignoring {notification.kind.value} notification without path")
            return

        identity = self._resolve_identity(notification)
        if identity is None:
            state.skipped += 1
            return

        if identity.path in state.processed_nodes:
            return
        state.processed_nodes.add(identity.path)

        if identity.node is None and identity.node_types is None:
            state.skipped += 1
            return

        for node_type in self._registry.watched_type_names():
            if not self._is_of_type(identity, node_type):
                continue
            state.matched_types.add(node_type)
            state.paths_to_flush.update(self._registry.resolve_paths_for_type(node_type))

    def _resolve_identity(self, notification: ChangeNotification) -> Optional[_NodeIdentity]:
        """
        Find the node a notification concerns.

        Returns None when the notification must be skipped without marking
        its node as processed.
        """
        path = notification.path
        kind = notification.kind
        node_types = notification.node_types

        if kind == NotificationKind.NODE_REMOVED:
            # A removed node cannot be queried: only embedded types can match
            return _NodeIdentity(path=path, node_types=node_types)

        if node_types is not None:
            node_path = path if kind.is_node_event else parent_path(path)
            return _NodeIdentity(path=node_path, node_types=node_types)

        if kind == NotificationKind.PROPERTY_REMOVED:
            node_path = parent_path(path)
            return _NodeIdentity(path=node_path, node=self._get_node(node_path))

        try:
            item = self._repository.get_item_by_path(path)
            if item is None:
                logger.debug(f"No item at {path}, skipping {kind.value}")
                return None
            if self._repository.is_node(item):
                return _NodeIdentity(path=path, node=item)
            node = self._repository.get_node_by_path(parent_path(path))
            if node is None:
                logger.debug(f"No parent node for {path}, skipping {kind.value}")
                return None
            return _NodeIdentity(path=self._repository.get_node_path(node), node=node)
        except RepositoryError as e:
            logger.debug(f"Skipping {kind.value} on {path}: {e}")
            return None

    def _get_node(self, path: str) -> Any:
        try:
            return self._repository.get_node_by_path(path)
        except RepositoryError:
            return None

    def _is_of_type(self, identity: _NodeIdentity, node_type: str) -> bool:
        if identity.node_types is not None:
            return node_type in identity.node_types
        try:
            return bool(self._repository.node_has_type(identity.node, node_type))
        except RepositoryError as e:
            logger.error(f"Could not check type {node_type} of {identity.path}: {e}")
            return False

    # =========================================================================
    # HISTORY & CALLBACKS
    # =========================================================================

    def _record(self, result: BatchResult) -> None:
        # max_history <= 0 disables the history
        if self._max_history <= 0:
            return

        with self._history_lock:
            self._history.append(result)
            if len(self._history) > self._max_history:
                del self._history[:-self._max_history]

    def _notify_callbacks(self, result: BatchResult) -> None:
        """Notify registered callbacks of a flush."""
        for callback in self._on_flush_callbacks:
            try:
                callback(result)
            except Exception as e:
                logger.error(f"Flush callback error: {e}")

    def on_flush(self, callback: Callable[[BatchResult], None]) -> None:
        """Register a callback for batches that flushed paths."""
        self._on_flush_callbacks.append(callback)

    def get_history(
        self,
        since: Optional[datetime] = None,
        limit: int = 100
    ) -> List[BatchResult]:
        """Get batch results, optionally filtered."""
        with self._history_lock:
            history = list(self._history)
        if since:
            history = [r for r in history if r.timestamp >= since]
        return history[-limit:]

    def clear_history(self) -> None:
        with self._history_lock:
            self._history.clear()
