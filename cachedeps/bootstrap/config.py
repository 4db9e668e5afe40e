"""
bootstrap/config.py - Service configuration

Provides configuration loading from files, environment variables, and defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from pathlib import Path
import os
import json
import logging
import tempfile

from cachedeps.dependencies.persistence import DEFAULT_SNAPSHOT_FILENAME

logger = logging.getLogger("bootstrap.config")

DEFAULT_NODE_TYPES = ["jnt:content", "jnt:translation"]


def _env_list(name: str, default: List[str]) -> List[str]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class ListenerConfig:
    """Change listener configuration."""

    enabled: bool = False
    workspace: str = "live"
    # Node types the host should deliver notifications for
    node_types: List[str] = field(default_factory=lambda: list(DEFAULT_NODE_TYPES))
    max_history: int = 1000

    @classmethod
    def from_env(cls) -> "ListenerConfig":
        return cls(
            enabled=os.getenv("CACHEDEPS_ENABLED", "false").lower() == "true",
            workspace=os.getenv("CACHEDEPS_WORKSPACE", "live"),
            node_types=_env_list("CACHEDEPS_NODE_TYPES", DEFAULT_NODE_TYPES),
            max_history=int(os.getenv("CACHEDEPS_MAX_HISTORY", "1000")),
        )


@dataclass
class SnapshotConfig:
    """Snapshot file location."""

    directory: str = field(default_factory=tempfile.gettempdir)
    filename: str = DEFAULT_SNAPSHOT_FILENAME

    @property
    def path(self) -> Path:
        return Path(self.directory) / self.filename

    @classmethod
    def from_env(cls) -> "SnapshotConfig":
        return cls(
            directory=os.getenv("CACHEDEPS_SNAPSHOT_DIR", tempfile.gettempdir()),
            filename=os.getenv("CACHEDEPS_SNAPSHOT_FILE", DEFAULT_SNAPSHOT_FILENAME),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("CACHEDEPS_LOG_LEVEL", "INFO"),
            format=os.getenv("CACHEDEPS_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=os.getenv("CACHEDEPS_LOG_FILE"),
            json_logs=os.getenv("CACHEDEPS_JSON_LOGS", "false").lower() == "true",
        )


@dataclass
class CacheDepsConfig:
    """Root configuration for the cache dependency service."""

    listener: ListenerConfig = field(default_factory=ListenerConfig)
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "CacheDepsConfig":
        """Create configuration from environment variables."""
        return cls(
            listener=ListenerConfig.from_env(),
            snapshot=SnapshotConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "CacheDepsConfig":
        """Load configuration from JSON file."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "CacheDepsConfig":
        """Create config from dictionary, file values over environment."""
        config = cls.from_env()

        for section in ("listener", "snapshot", "logging"):
            if section not in data:
                continue
            target = getattr(config, section)
            for key, value in data[section].items():
                if hasattr(target, key):
                    setattr(target, key, value)
                else:
                    logger.warning(f"Unknown config key: {section}.{key}")

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "listener": {
                "enabled": self.listener.enabled,
                "workspace": self.listener.workspace,
                "node_types": list(self.listener.node_types),
                "max_history": self.listener.max_history,
            },
            "snapshot": {
                "directory": self.snapshot.directory,
                "filename": self.snapshot.filename,
            },
            "logging": {
                "level": self.logging.level,
                "log_file": self.logging.log_file,
                "json_logs": self.logging.json_logs,
            },
        }


# Global config instance
_config: Optional[CacheDepsConfig] = None


def load_config(filepath: str = None) -> CacheDepsConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        CacheDepsConfig instance
    """
    global _config

    if filepath:
        _config = CacheDepsConfig.from_file(filepath)
    else:
        default_paths = [
            "./cachedeps.json",
            "./config/cachedeps.json",
            os.path.expanduser("~/.cachedeps/config.json"),
        ]

        for path in default_paths:
            if Path(path).exists():
                logger.info(f"Loading config from: {path}")
                _config = CacheDepsConfig.from_file(path)
                return _config

        _config = CacheDepsConfig.from_env()

    logger.info(f"Configuration loaded: enabled={_config.listener.enabled}")
    return _config


def get_config() -> CacheDepsConfig:
    """Get current configuration, loading if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config
