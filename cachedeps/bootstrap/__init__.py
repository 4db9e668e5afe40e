"""
bootstrap/ - Bootstrap Layer

Provides configuration, service lifecycle and entry points.
"""

from .config import (
    CacheDepsConfig,
    ListenerConfig,
    SnapshotConfig,
    LoggingConfig,
    load_config,
    get_config,
)

from .service import (
    CacheDependencyService,
    ServiceState,
    Subscription,
)

from .entrypoints import (
    setup_logging,
    setup_logging_from_config,
    read_snapshot,
    cli_main,
)

__all__ = [
    # Config
    "CacheDepsConfig",
    "ListenerConfig",
    "SnapshotConfig",
    "LoggingConfig",
    "load_config",
    "get_config",
    # Service
    "CacheDependencyService",
    "ServiceState",
    "Subscription",
    # Entry points
    "setup_logging",
    "setup_logging_from_config",
    "read_snapshot",
    "cli_main",
]
