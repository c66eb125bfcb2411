"""
Health Check Route

Simple health check endpoint for liveness probes.
"""

from fastapi import APIRouter, Depends

from api.deps import get_store
from api.models.responses import HealthResponse
from core.storage import ServerStore


router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check(store: ServerStore = Depends(get_store)) -> HealthResponse:
    """
    Health check endpoint.

    Returns service status for liveness probes.
    """
    return HealthResponse(
        ok=True,
        service="merklevault-server",
        version="v1",
        batches=len(store.list_batches()),
    )


@router.get("/", response_model=HealthResponse)
def root(store: ServerStore = Depends(get_store)) -> HealthResponse:
    """
    Root endpoint - same as health check.
    """
    return health_check(store)
