"""
cachedeps Snapshot Persistence

Keeps the dependency registry across restarts without a database.

The snapshot is a flat text file:

    fs cache structure V1
    watchedNodeTypesMapping <type> <id1> <id2> ... <idN>
    pathMapping <id> <path>

Fields are separated by a single space, so identifiers, types and paths
cannot contain whitespace. A snapshot whose first line is not the expected
version is discarded as a whole.
"""

from __future__ import annotations
from pathlib import Path
from typing import List, Optional, Union
import logging

from .registry import DependencyRegistry

logger = logging.getLogger(__name__)


STRUCTURE_VERSION = "fs cache structure V1"
WATCHED_NODE_TYPES_KEY = "watchedNodeTypesMapping"
PATH_MAPPING_KEY = "pathMapping"
DEFAULT_SNAPSHOT_FILENAME = "mod-cache-dependencies.txt"
ENCODING = "utf-8"


def _has_whitespace(value: str) -> bool:
    """Empty values count too: they would shift the fields of the line."""
    return not value or any(c.isspace() for c in value)


# =============================================================================
# CODEC
# =============================================================================

class SnapshotCodec:
    """Encodes a DependencyRegistry to snapshot bytes and back."""

    version = STRUCTURE_VERSION

    def save(self, registry: DependencyRegistry) -> bytes:
        """Serialize registry to snapshot bytes."""
        return "".join(f"{line}\n" for line in self.dump_lines(registry)).encode(ENCODING)

    def dump_lines(self, registry: DependencyRegistry) -> List[str]:
        lines = [self.version]

        for node_type, node_ids in sorted(registry.watched_node_types().items()):
            if _has_whitespace(node_type):
                logger.warning(f"Node type cannot be persisted, skipping it: {node_type!r}")
                continue
            kept = []
            for node_id in sorted(node_ids):
                if _has_whitespace(node_id):
                    logger.warning(f"Node identifier cannot be persisted, skipping it: {node_id!r}")
                    continue
                kept.append(node_id)
            if kept:
                lines.append(f"{WATCHED_NODE_TYPES_KEY} {node_type} {' '.join(kept)}")

        for node_id, path in sorted(registry.path_mapping().items()):
            if _has_whitespace(node_id) or _has_whitespace(path):
                logger.warning(f"Path mapping cannot be persisted, skipping it: {node_id!r} -> {path!r}")
                continue
            lines.append(f"{PATH_MAPPING_KEY} {node_id} {path}")

        return lines

    def load(self, data: Union[bytes, str]) -> DependencyRegistry:
        """
        Deserialize snapshot data into a new registry.

        An empty or incompatible snapshot gives an empty registry.
        """
        registry = DependencyRegistry()
        self.read(data, registry)
        return registry

    def read(self, data: Union[bytes, str], registry: DependencyRegistry) -> bool:
        """
        Replay snapshot data into registry.

        Args:
            data: Snapshot content
            registry: Registry to populate

        Returns:
            False if the snapshot was empty, undecodable or of another version
            and has been ignored, True otherwise
        """
        if isinstance(data, bytes):
            try:
                data = data.decode(ENCODING)
            except UnicodeDecodeError as e:
                logger.warning(
                    f"File system cache file is not valid {ENCODING}, skipping it. "
                    f"The output cache might require to be flushed manually: {e}"
                )
                return False
        lines = data.splitlines()

        if not lines:
            logger.warning("Empty file system cache file")
            return False
        if lines[0] != self.version:
            logger.warning(
                "Incompatible version of the file system cache file, skipping it. "
                "The output cache might require to be flushed manually"
            )
            return False

        for line in lines[1:]:
            self._read_line(line, registry)
        return True

    def _read_line(self, line: str, registry: DependencyRegistry) -> None:
        items = line.split()
        if not items:
            return

        key = items[0]
        if key == WATCHED_NODE_TYPES_KEY:
            if len(items) < 3:
                logger.error(f"Invalid line: {line}")
                return
            node_type = items[1]
            for node_id in items[2:]:
                registry.add_watched_node_type(node_type, node_id)
        elif key == PATH_MAPPING_KEY:
            if len(items) != 3:
                logger.error(f"Invalid line: {line}")
                return
            registry.set_path(items[1], items[2])
        else:
            logger.error(f"Unexpected key {key}")


# =============================================================================
# FILE STORE
# =============================================================================

class SnapshotStore:
    """
    Owns the snapshot file.

    The file is written at shutdown and deleted once it has been replayed, so
    a crash before the next clean shutdown never replays stale data.
    """

    def __init__(self, path: Union[str, Path], codec: Optional[SnapshotCodec] = None):
        self._path = Path(path)
        self._codec = codec or SnapshotCodec()

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self, registry: DependencyRegistry) -> bool:
        """
        Replay the snapshot file into registry, then delete the file.

        Returns:
            True if a compatible snapshot was replayed
        """
        if not self._path.exists():
            return False

        try:
            data = self._path.read_bytes()
        except OSError as e:
            logger.error(f"Could not read {self._path}: {e}")
            return False

        if not self._codec.read(data, registry):
            return False

        self.delete()
        stats = registry.stats()
        logger.info(
            f"Loaded cache dependencies from {self._path}: "
            f"{stats['watched_types']} node types, {stats['paths']} paths"
        )
        return True

    def save(self, registry: DependencyRegistry) -> bool:
        """
        Write registry to the snapshot file.

        Returns:
            False if the file could not be written; the dependencies are then
            lost for the next start
        """
        if self._path.exists():
            logger.error("The file system cache file already exists, overriding it")

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_bytes(self._codec.save(registry))
        except OSError as e:
            logger.error(f"Impossible to write the file content: {e}")
            return False

        logger.info(f"Saved cache dependencies to {self._path}")
        return True

    def delete(self) -> None:
        try:
            self._path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not delete {self._path}: {e}")
