"""
Health Check Endpoints

Provides health and readiness checks for orchestration systems.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from retail_analytics.services import ServiceContainer
from retail_analytics.serving.api.dependencies import get_services
from retail_analytics.serving.cache import DataCache

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    environment: str
    timestamp: datetime
    checks: Dict[str, Any]


def _cache_check(cache: DataCache) -> Dict[str, Optional[Any]]:
    entry = cache.entry
    if entry is None:
        return {"status": "empty"}
    return {
        "status": "loaded",
        "loaded_at": entry.loaded_at.isoformat(),
        "fingerprint": entry.fingerprint,
    }


@router.get("/health", response_model=HealthResponse)
async def health_check(services: ServiceContainer = Depends(get_services)) -> HealthResponse:
    """
    Comprehensive health check endpoint.

    Checks:
    - Object store listing
    - Cache state
    """
    checks: Dict[str, Any] = {}
    overall_status = "healthy"

    try:
        files = await services.discovery.list_files()
        checks["object_store"] = {"status": "healthy", "objects": len(files)}
    except Exception as e:
        checks["object_store"] = {"status": "unhealthy", "error": str(e)}
        overall_status = "degraded"

    checks["data_cache"] = _cache_check(services.data_cache)
    checks["invoice_cache"] = _cache_check(services.invoice_cache)

    return HealthResponse(
        status=overall_status,
        version=services.settings.version,
        environment=services.settings.app_env,
        timestamp=datetime.utcnow(),
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> Dict[str, str]:
    """
    Kubernetes liveness probe endpoint.

    Returns 200 if the application is running.
    """
    return {"status": "alive"}


@router.get("/health/ready")
async def readiness_check(
    response: Response,
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, str]:
    """
    Kubernetes readiness probe endpoint.

    Returns 200 once the export listing is reachable.
    """
    try:
        await services.discovery.list_files()
    except Exception as e:
        response.status_code = 503
        return {"status": "not_ready", "reason": str(e)}
    return {"status": "ready"}
