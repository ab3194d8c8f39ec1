"""Health Checks — liveness and readiness of the fulfillment API.

Invariants:
    - GET /health/ answers 200 whenever the process is up
    - GET /health/ready answers 503 unless the order store is reachable and migrated
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

import fulfillment.infrastructure.database as db_module
from fulfillment import __version__

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {
        "status": "healthy",
        "service": "campo-vida-fulfillment",
        "version": __version__,
    }


@router.get("/ready")
async def readiness_check():
    manager = db_module.db_manager
    if manager is None:
        checks = {"database": "unavailable", "schema": "unknown"}
    else:
        checks = await manager.readiness()
    if any(value != "healthy" for value in checks.values()):
        logger.warning("Readiness check failed", extra={"path": "/api/v1/health/ready"})
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}
