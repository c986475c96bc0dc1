"""Health check endpoint with optional database connectivity check."""

from typing import Annotated

from fastapi import APIRouter, Depends

from authify.core.config import Settings, get_settings
from authify.core.database import check_db_connected, get_engine
from authify.schemas.health import HealthResponse

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(settings: Annotated[Settings, Depends(get_settings)]) -> HealthResponse:
    """
    Return service health status and, for the relational store, database connectivity.
    Used by load balancers and monitoring.
    """
    database = None
    if settings.STORE_BACKEND == "relational":
        database = "connected" if check_db_connected(get_engine()) else "disconnected"

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        store_backend=settings.STORE_BACKEND,
        database=database,
    )
