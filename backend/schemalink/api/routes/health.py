"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if the database is unreachable or the
      relationship store tables have not been migrated yet
"""

import logging
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from schemalink.core.domain_types import DETECTION_ALGORITHM_VERSION
from schemalink.infrastructure import database
from schemalink.models.dependency import Dependency
from schemalink.models.detection_run import DetectionRun
from schemalink.models.logical_foreign_key import LogicalForeignKey

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

STORE_TABLES = [
    LogicalForeignKey.__tablename__,
    Dependency.__tablename__,
    DetectionRun.__tablename__,
]


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {
        "status": "healthy",
        "service": "schemalink-api",
        "detection_algorithm": DETECTION_ALGORITHM_VERSION,
    }


@router.get("/ready")
async def readiness_check():
    """Database reachable and relationship store migrated."""
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        return _not_ready("database_unavailable")

    missing = await manager.missing_tables(STORE_TABLES)
    if missing:
        logger.warning(f"Readiness: missing tables {', '.join(missing)}")
        return _not_ready("schema_not_migrated", missing_tables=missing)

    return {"status": "ready", "checks": {"database": "healthy", "schema": "migrated"}}


def _not_ready(reason: str, **details) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "reason": reason, **details},
    )
