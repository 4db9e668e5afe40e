"""
bootstrap/service.py - Cache dependency service lifecycle

Owns the dependency registry for the lifetime of the hosting process:
replays the snapshot at start, saves it at stop, and exposes the
registration API and the notification entry point in between.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, TYPE_CHECKING
import logging

from cachedeps.contracts.errors import RepositoryError
from cachedeps.dependencies.invalidation import (
    BatchResult,
    ChangeNotification,
    InvalidationEngine,
    NODE_EVENTS,
    NotificationKind,
    PROPERTY_EVENTS,
)
from cachedeps.dependencies.persistence import SnapshotStore
from cachedeps.dependencies.registry import DependencyRegistry

from .config import CacheDepsConfig

if TYPE_CHECKING:
    from cachedeps.contracts.protocols import CacheFlushPort, RepositoryPort

logger = logging.getLogger("bootstrap.service")


class ServiceState(Enum):
    """Service lifecycle states."""
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True)
class Subscription:
    """What the host notification layer should deliver to the service."""
    workspace: str = "live"
    kinds: FrozenSet[NotificationKind] = field(default_factory=lambda: NODE_EVENTS | PROPERTY_EVENTS)
    node_types: FrozenSet[str] = frozenset()


class CacheDependencyService:
    """
    Node-type based cache dependency listener.

    STOPPED -> start() -> RUNNING -> stop() -> STOPPED. Only start() and
    stop() touch the snapshot file.
    """

    def __init__(
        self,
        repository: "RepositoryPort",
        cache_flusher: "CacheFlushPort",
        config: Optional[CacheDepsConfig] = None,
        store: Optional[SnapshotStore] = None,
    ):
        self._config = config or CacheDepsConfig()
        self._repository = repository
        self._cache_flusher = cache_flusher
        self._store = store or SnapshotStore(self._config.snapshot.path)

        self._registry = DependencyRegistry()
        self._engine = self._build_engine()
        self._state = ServiceState.STOPPED

    def _build_engine(self) -> InvalidationEngine:
        return InvalidationEngine(
            self._registry,
            self._repository,
            self._cache_flusher,
            max_history=self._config.listener.max_history,
        )

    @property
    def config(self) -> CacheDepsConfig:
        return self._config

    @property
    def registry(self) -> DependencyRegistry:
        return self._registry

    @property
    def engine(self) -> InvalidationEngine:
        return self._engine

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == ServiceState.RUNNING

    @property
    def is_enabled(self) -> bool:
        return self._config.listener.enabled

    @property
    def subscription(self) -> Subscription:
        return Subscription(
            workspace=self._config.listener.workspace,
            node_types=frozenset(self._config.listener.node_types),
        )

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """Create the registry and replay the snapshot left by the last stop."""
        if self.is_running:
            logger.warning("Cache dependency service already running")
            return

        self._registry = DependencyRegistry()
        self._engine = self._build_engine()
        self._store.load(self._registry)
        self._state = ServiceState.RUNNING
        logger.info(f"Cache dependency service started (enabled={self.is_enabled})")

    def stop(self) -> None:
        """Save the registry to the snapshot file and clear it."""
        if not self.is_running:
            return

        self._store.save(self._registry)
        self._registry.clear()
        self._state = ServiceState.STOPPED
        logger.info("Cache dependency service stopped")

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add_dependency(self, node_id: str, path: str, node_type: str) -> None:
        """Flush path whenever a node of node_type changes."""
        self._registry.add_dependency(node_id, path, node_type)

    def add_node_dependency(self, node: Any, node_type: str) -> bool:
        """
        Register a dependency for a repository node.

        Returns:
            False if the node identifier or path could not be read
        """
        try:
            node_id = self._repository.get_node_identifier(node)
            path = self._repository.get_node_path(node)
        except RepositoryError as e:
            logger.error(f"Could not add dependency on {node_type}: {e}")
            return False

        self._registry.add_dependency(node_id, path, node_type)
        return True

    def add_node_dependencies(self, node: Any, node_types: Optional[str]) -> int:
        """
        Register a node against a whitespace separated list of node types.

        Returns:
            Number of node types registered
        """
        types = node_types.split() if node_types else []
        if not types:
            logger.error(f"No node type specified, impossible to add a dependency for the node {node!r}")
            return 0

        return sum(1 for node_type in types if self.add_node_dependency(node, node_type))

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    def on_event(self, notifications: Iterable[ChangeNotification]) -> Optional[BatchResult]:
        """
        Process one batch of change notifications.

        Returns:
            BatchResult, or None if the listener is disabled
        """
        if not self.is_enabled:
            return None
        return self._engine.process_batch(notifications)

    def status(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "enabled": self.is_enabled,
            "workspace": self._config.listener.workspace,
            "snapshot": str(self._store.path),
            "registry": self._registry.stats(),
        }
