"""Health check endpoints.

Provides liveness and readiness probes for Kubernetes and load balancers.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import ORJSONResponse

from account_service.api.dependencies import get_account_store, get_app_settings
from account_service.core.config import Settings  # noqa: TC001
from account_service.database.repositories import AccountStore  # noqa: TC001
from account_service.observability.logging import get_logger
from account_service.schemas import HealthResponse, ReadinessResponse


logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness probe",
    description="Basic health check to verify the service is running.",
)
async def health_check(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> HealthResponse:
    """Check if the service is alive. Does not touch the store."""
    return HealthResponse(
        status="healthy",
        version=settings.app.version,
        environment=settings.APP_ENV,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description="Readiness check verifying the account store is reachable.",
    responses={503: {"description": "A dependency is unavailable"}},
)
async def readiness_check(
    settings: Annotated[Settings, Depends(get_app_settings)],
    store: Annotated[AccountStore, Depends(get_account_store)],
) -> ReadinessResponse | ORJSONResponse:
    """Check if the service is ready to handle requests."""
    dependencies: dict[str, str] = {}
    try:
        await store.ping()
        dependencies["storage"] = "healthy"
    except Exception:
        logger.exception("Readiness check failed", dependency="storage")
        dependencies["storage"] = "unhealthy"

    ready = all(state == "healthy" for state in dependencies.values())
    body = ReadinessResponse(
        status="ready" if ready else "degraded",
        version=settings.app.version,
        environment=settings.APP_ENV,
        dependencies=dependencies,
    )
    if ready:
        return body
    return ORJSONResponse(status_code=503, content=body.model_dump(mode="json"))
