"""
bootstrap/entrypoints.py - Entry points

Logging setup and the `cachedeps` command line, which inspects a snapshot
file without consuming it.
"""

from __future__ import annotations
from pathlib import Path
from typing import Optional, Tuple
import argparse
import json
import logging
import sys

from cachedeps.contracts.errors import SnapshotError
from cachedeps.dependencies.persistence import STRUCTURE_VERSION, SnapshotCodec
from cachedeps.dependencies.registry import DependencyRegistry

from .config import LoggingConfig, load_config

logger = logging.getLogger("bootstrap.entrypoints")


def setup_logging(
    level: str = "INFO",
    log_file: str = None,
    json_format: bool = False,
    fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path
        json_format: Use JSON format for logs
        fmt: Format string for plain text logs
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if json_format:

        class JSONFormatter(logging.Formatter):
            def format(self, record):
                return json.dumps({
                    "timestamp": self.formatTime(record),
                    "level": record.levelname,
                    "logger": record.name,
                    "message": record.getMessage(),
                })

        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(fmt)

    # Console handler
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler.setLevel(log_level)
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def setup_logging_from_config(config: LoggingConfig) -> None:
    setup_logging(
        level=config.level,
        log_file=config.log_file,
        json_format=config.json_logs,
        fmt=config.format,
    )


def read_snapshot(path: Path, codec: Optional[SnapshotCodec] = None) -> Tuple[DependencyRegistry, bool]:
    """
    Read a snapshot file into a new registry, leaving the file in place.

    Returns:
        (registry, compatible); an incompatible snapshot gives an empty registry
    """
    codec = codec or SnapshotCodec()
    try:
        data = path.read_bytes()
    except OSError as e:
        raise SnapshotError(str(path), e.strerror or str(e)) from e
    registry = DependencyRegistry()
    compatible = codec.read(data, registry)
    return registry, compatible


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect node-type based cache dependency snapshots",
        prog="cachedeps",
    )
    parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
        default=None,
    )
    parser.add_argument(
        "--snapshot",
        help="Snapshot file (defaults to the configured location)",
        default=None,
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level",
    )

    # Also accepted after the subcommand; SUPPRESS keeps a value given before it
    snapshot_option = argparse.ArgumentParser(add_help=False)
    snapshot_option.add_argument(
        "--snapshot",
        help="Snapshot file (defaults to the configured location)",
        default=argparse.SUPPRESS,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    inspect = subparsers.add_parser("inspect", parents=[snapshot_option], help="Show snapshot statistics")
    inspect.add_argument("--json", action="store_true", help="Dump the full registry as JSON")

    resolve = subparsers.add_parser("resolve", parents=[snapshot_option], help="List the paths flushed for a node type")
    resolve.add_argument("node_type", help="Node type, e.g. jnt:news")

    return parser


def cli_main(args: list = None) -> int:
    """
    CLI entry point.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code: 0 on success, 1 if the snapshot cannot be read,
        2 if it is empty or of an incompatible version
    """
    parsed = _build_parser().parse_args(args)
    setup_logging(level=parsed.log_level)

    config = load_config(parsed.config)
    path = Path(parsed.snapshot) if parsed.snapshot else config.snapshot.path

    try:
        registry, compatible = read_snapshot(path)
    except SnapshotError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if parsed.command == "inspect":
        if parsed.json:
            data = registry.to_dict()
            data["compatible"] = compatible
            print(json.dumps(data, indent=2))
        else:
            stats = registry.stats()
            print(f"Snapshot: {path}")
            print(f"Version: {'compatible' if compatible else 'incompatible'} (expected {STRUCTURE_VERSION!r})")
            print(f"Watched node types: {stats['watched_types']}")
            print(f"Watched entries: {stats['watched_entries']}")
            print(f"Paths: {stats['paths']}")
        return 0 if compatible else 2

    if not compatible:
        print(f"Error: {path} is not a compatible snapshot", file=sys.stderr)
        return 2

    for cache_path in sorted(registry.resolve_paths_for_type(parsed.node_type)):
        print(cache_path)
    return 0


def main() -> None:
    sys.exit(cli_main())


if __name__ == "__main__":
    main()
