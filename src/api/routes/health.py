"""Health check endpoint."""

import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from api.dependencies import get_rate_limiter
from adapter.mongodb.connection import get_mongodb_client
from port.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


def _service_status(healthy: bool, message: str) -> dict:
    return {"status": "healthy" if healthy else "unhealthy", "message": message}


@router.get("")
def health(
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    """Health check endpoint with dependency status."""
    services = {}

    try:
        mongo_client = get_mongodb_client()
        if mongo_client:
            mongo_client.admin.command('ping')
            services["mongodb"] = _service_status(True, "Connection successful")
        else:
            services["mongodb"] = _service_status(False, "Connection failed or not configured")
    except PyMongoError as e:
        logger.warning("MongoDB health check failed", extra={"error": str(e)[:200]})
        services["mongodb"] = _service_status(False, "Connection error")

    if limiter.ping():
        services["rate_limiter"] = _service_status(True, type(limiter).__name__)
    else:
        services["rate_limiter"] = _service_status(False, "Store unavailable, requests admitted unchecked")

    overall_healthy = all(s["status"] == "healthy" for s in services.values())
    body = {
        "status": "healthy" if overall_healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        "services": services,
    }
    return JSONResponse(
        status_code=status.HTTP_200_OK if overall_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body,
    )
