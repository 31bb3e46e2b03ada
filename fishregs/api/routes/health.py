"""Health check API endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from fishregs.core.config import settings
from fishregs.core.database import db_client

router = APIRouter()


class HealthCheckResponse(BaseModel):
    """Health check response payload."""

    status: str = Field(..., description="healthy or degraded")
    version: str = Field(..., description="Running application version")
    service: str = Field(..., description="Service name")
    database: dict = Field(default_factory=dict, description="Database check details")


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check endpoint",
    description="Check if the service is running and its database is reachable",
    operation_id="get_service_health_status",
)
async def health_check() -> HealthCheckResponse:
    """Health check endpoint."""
    db_health = await db_client.health_check()

    return HealthCheckResponse(
        status="healthy" if db_health["status"] == "healthy" else "degraded",
        version=settings.app_version,
        service=settings.app_name,
        database=db_health,
    )
