"""
contracts/ - Collaborator contracts

Protocols for the repository and cache ports, plus the error taxonomy.
"""

from .errors import (
    CacheDepsError,
    RepositoryError,
    ItemNotFoundError,
    SnapshotError,
)
from .protocols import (
    RepositoryPort,
    CacheFlushPort,
)

__all__ = [
    "CacheDepsError",
    "RepositoryError",
    "ItemNotFoundError",
    "SnapshotError",
    "RepositoryPort",
    "CacheFlushPort",
]
