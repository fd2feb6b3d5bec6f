"""Dependency Routes — rescan routine text and purge dependency edges.

Invariants:
    - Both routes are writes and require X-Actor-Id
    - Purge scope is the whole project unless entity_type and entity_id are both given
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from schemalink.api.request_context import get_actor_id
from schemalink.core.domain_types import EntityRef, EntityType
from schemalink.infrastructure.database import get_db
from schemalink.schemas.dependency import DependencyPurgeResponse, DependencyScanResponse
from schemalink.services.dependency_scan import DependencyScanService

logger = logging.getLogger(__name__)
router = APIRouter(
    prefix="/api/v1/projects/{project_id}/dependencies", tags=["dependencies"],
)


@router.post("/scan", response_model=DependencyScanResponse)
async def scan_dependencies(
    project_id: int,
    actor_id: int = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    logger.info(
        f"Dependency scan requested by {actor_id}", extra={"project_id": project_id},
    )
    result = await DependencyScanService(db).scan(project_id)
    return DependencyScanResponse(upserted=result.upserted, warnings=result.warnings)


@router.delete("", response_model=DependencyPurgeResponse)
async def purge_dependencies(
    project_id: int,
    entity_type: EntityType | None = Query(None),
    entity_id: int | None = Query(None, gt=0),
    actor_id: int = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    if (entity_type is None) != (entity_id is None):
        raise HTTPException(
            status.HTTP_400_BAD_REQUEST,
            detail="entity_type and entity_id must be given together",
        )
    entity = EntityRef(entity_type, entity_id) if entity_type else None
    logger.info(
        f"Dependency purge requested by {actor_id}", extra={"project_id": project_id},
    )
    deleted = await DependencyScanService(db).purge(project_id, entity)
    return DependencyPurgeResponse(deleted=deleted)
