"""
contracts/errors.py - Error types

Exceptions raised at the boundaries of the cache dependency core. Repository
adapters raise RepositoryError subclasses; the invalidation engine catches
them and treats the notification as irrelevant.
"""

__all__ = [
    'CacheDepsError',
    'RepositoryError',
    'ItemNotFoundError',
    'SnapshotError',
]


class CacheDepsError(Exception):
    """Base exception for cache dependency errors."""
    pass


class RepositoryError(CacheDepsError):
    """Raised when the content repository cannot answer a lookup."""
    pass


class ItemNotFoundError(RepositoryError):
    """Raised when no item exists at the requested path."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"No item at path: {path}")


class SnapshotError(CacheDepsError):
    """Raised when a snapshot file cannot be read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read snapshot {path}: {reason}")
