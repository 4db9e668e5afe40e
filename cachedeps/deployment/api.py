"""
deployment/api.py - REST API

FastAPI routes for the cache dependency service: dependency registration,
registry lookups, notification batches and status.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, TYPE_CHECKING
import logging

from fastapi import APIRouter, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field, field_validator

from cachedeps.dependencies.invalidation import ChangeNotification, NotificationKind

if TYPE_CHECKING:
    from cachedeps.bootstrap.service import CacheDependencyService

__all__ = [
    'create_dependencies_router',
    'create_app',
    'DependencyRequest',
    'NotificationModel',
    'EventBatchRequest',
]

logger = logging.getLogger("deployment.api")

API_PREFIX = "/api/v1/cache-dependencies"


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

def _check_token(value: str) -> str:
    if not value or any(c.isspace() for c in value):
        raise ValueError("must be non-empty and contain no whitespace")
    return value


class DependencyRequest(BaseModel):
    """Request to register a node against one or more node types."""
    node_id: str
    path: str
    node_types: List[str] = Field(min_length=1)

    @field_validator('node_id', 'path')
    @classmethod
    def validate_token(cls, v):
        return _check_token(v)

    @field_validator('node_types')
    @classmethod
    def validate_node_types(cls, v):
        return [_check_token(t) for t in v]


class DependencyResponse(BaseModel):
    """Result of a registration."""
    node_id: str
    path: str
    node_types: List[str]


class PathsResponse(BaseModel):
    """Paths flushed when a node of node_type changes."""
    node_type: str
    paths: List[str]


class NotificationModel(BaseModel):
    """One repository change."""
    path: str
    kind: NotificationKind
    node_types: Optional[List[str]] = None
    identifier: Optional[str] = None
    user_id: Optional[str] = None

    def to_notification(self) -> ChangeNotification:
        return ChangeNotification(
            path=self.path,
            kind=self.kind,
            node_types=self.node_types,
            identifier=self.identifier,
            user_id=self.user_id,
        )


class EventBatchRequest(BaseModel):
    """Notifications delivered together."""
    notifications: List[NotificationModel]


class EventBatchResponse(BaseModel):
    """Summary of a processed batch."""
    processed: bool
    batch_id: Optional[str] = None
    notification_count: int = 0
    skipped_count: int = 0
    processed_nodes: List[str] = []
    matched_types: List[str] = []
    flushed_paths: List[str] = []
    flush_error: Optional[str] = None


# =============================================================================
# ROUTER FACTORY
# =============================================================================

def create_dependencies_router(service: "CacheDependencyService") -> APIRouter:
    """
    Create FastAPI router for cache dependency endpoints.

    Args:
        service: CacheDependencyService instance

    Returns:
        FastAPI APIRouter
    """
    router = APIRouter(
        prefix=API_PREFIX,
        tags=["cache-dependencies"],
    )

    def _require_running() -> None:
        if not service.is_running:
            raise HTTPException(status_code=409, detail="Cache dependency service is not running")

    @router.post("/dependencies", response_model=DependencyResponse, status_code=201)
    def add_dependency(request: DependencyRequest) -> DependencyResponse:
        """Flush request.path whenever a node of one of request.node_types changes."""
        _require_running()
        for node_type in request.node_types:
            service.add_dependency(request.node_id, request.path, node_type)
        return DependencyResponse(
            node_id=request.node_id,
            path=request.path,
            node_types=request.node_types,
        )

    @router.get("/dependencies", response_model=PathsResponse)
    def resolve_paths(node_type: str = Query(..., min_length=1)) -> PathsResponse:
        """Get the paths flushed for a node type."""
        paths = service.registry.resolve_paths_for_type(node_type)
        return PathsResponse(node_type=node_type, paths=sorted(paths))

    @router.post("/events", response_model=EventBatchResponse)
    def process_events(request: EventBatchRequest) -> EventBatchResponse:
        """Process one batch of repository changes."""
        _require_running()
        result = service.on_event([n.to_notification() for n in request.notifications])
        if result is None:
            return EventBatchResponse(processed=False)
        return EventBatchResponse(processed=True, **result.to_dict())

    @router.get("/status")
    def get_status() -> Dict[str, Any]:
        return service.status()

    return router


def create_app(service: "CacheDependencyService") -> FastAPI:
    """
    Create a FastAPI app serving the cache dependency routes.

    The service is started with the app and stopped (snapshot saved) when
    the app shuts down.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("API server starting")
        service.start()
        try:
            yield
        finally:
            logger.info("API server stopping")
            service.stop()

    app = FastAPI(
        title="cachedeps API",
        description="Node-type based output cache dependencies",
        lifespan=lifespan,
    )
    app.include_router(create_dependencies_router(service))

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok" if service.is_running else "stopped"}

    return app
