"""
Health check router.

Liveness probe only: it does not touch the database.
"""

from fastapi import APIRouter

from lotqueue.core.config import settings
from lotqueue.interfaces.trading.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Liveness probe")
def health() -> HealthResponse:
    return HealthResponse(status="ok", version=settings.version)
