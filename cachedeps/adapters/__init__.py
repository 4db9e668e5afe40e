"""
adapters/ - Port implementations
"""

from .memory import (
    InMemoryRepository,
    MemoryNode,
    MemoryProperty,
    RecordingCacheFlusher,
)

__all__ = [
    "InMemoryRepository",
    "MemoryNode",
    "MemoryProperty",
    "RecordingCacheFlusher",
]
