"""Health & Readiness Checks — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /api/v1/health/ always returns 200 if process is up (liveness)
    - GET /api/v1/health/ready returns 503 if the database is unreachable or
      the field cipher cannot round-trip (readiness)
    - Responses never include key material or key posture details beyond ok/failed
"""

import logging
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from vetcepi.infrastructure import database
from vetcepi.infrastructure.key_management import cipher_self_check

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness check. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "vetcepi-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check():
    """Readiness check: database connectivity and cipher self-check."""
    manager = database.db_manager
    db_ok = await manager.health_check() if manager else False
    cipher_ok = cipher_self_check()
    checks = {
        "database": "healthy" if db_ok else "unavailable",
        "cipher": "healthy" if cipher_ok else "failed",
    }
    if not (db_ok and cipher_ok):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}
