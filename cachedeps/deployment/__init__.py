"""
deployment/ - HTTP surface for the cache dependency service
"""

from .api import (
    create_dependencies_router,
    create_app,
)

__all__ = [
    "create_dependencies_router",
    "create_app",
]
