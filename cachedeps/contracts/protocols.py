"""
cachedeps/contracts/protocols.py - Protocol Definitions

Defines protocols (interfaces) for the collaborators the invalidation core
consumes: the content repository and the output-cache flusher.
"""

from typing import Any, Optional, Protocol, Set, runtime_checkable

__all__ = [
    'RepositoryPort',
    'CacheFlushPort',
]


@runtime_checkable
class RepositoryPort(Protocol):
    """
    Protocol for content repository lookups.

    Items and nodes are opaque to the core; only the adapter knows how to
    read them. Lookups return None for a missing item or raise
    RepositoryError (ItemNotFoundError for a missing item).
    """

    def get_item_by_path(self, path: str) -> Optional[Any]:
        """Get the node or property stored at path."""
        ...

    def get_node_by_path(self, path: str) -> Optional[Any]:
        """Get the node stored at path."""
        ...

    def is_node(self, item: Any) -> bool:
        """Whether item is a node (as opposed to a property)."""
        ...

    def node_has_type(self, node: Any, node_type: str) -> bool:
        """Whether node is of node_type, including inherited types and mixins."""
        ...

    def get_node_identifier(self, node: Any) -> str:
        """Stable identifier of node."""
        ...

    def get_node_path(self, node: Any) -> str:
        """Current path of node."""
        ...


@runtime_checkable
class CacheFlushPort(Protocol):
    """
    Protocol for output-cache invalidation.

    Implementations flush the cache entries rendered for the given paths and
    propagate the flush across a cluster where applicable.
    """

    def flush_paths(self, paths: Set[str]) -> None:
        """Invalidate the output-cache entries of paths."""
        ...
