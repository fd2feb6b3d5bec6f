"""Logical FK Routes — detection, listing and curation of logical foreign keys.

Invariants:
    - Every route is scoped to /api/v1/projects/{project_id}
    - Writes require X-Actor-Id (see request_context.py)
    - Routes never contain business logic: services decide, routes map to schemas
    - Domain errors propagate to the global handlers (api/error_handlers.py)

Design Decisions:
    - Status changes are PUT sub-resources (/confirm, /reject, /restore) rather than
      a PATCH on status: each action has its own allowed source states and audit fields
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from schemalink.api.request_context import get_actor_id, get_optional_actor_id
from schemalink.core.domain_types import EntityType, FkStatus
from schemalink.core.errors import (
    ErrorContext, InvalidReferenceError, ResourceNotFoundError,
)
from schemalink.infrastructure.database import get_db
from schemalink.schemas.logical_fk import (
    ConfirmRequest, DetectionResponse, DetectionRunResponse, LogicalFkResponse,
    ManualFkCreate, ManualFkResponse, PhysicalFkResponse, RejectRequest,
)
from schemalink.services.curation_service import CurationService
from schemalink.services.detection_service import DetectionService
from schemalink.services.entity_registry import EntityRegistry
from schemalink.services.relationship_store import RelationshipStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/projects/{project_id}", tags=["logical-fks"])


async def _require_table(db: AsyncSession, project_id: int, table_id: int) -> None:
    if await EntityRegistry(db).get_table(project_id, table_id) is None:
        raise InvalidReferenceError(
            EntityType.TABLE.value, table_id, ErrorContext(project_id=project_id),
        )


# --- Detection ------------------------------------------------------------------

@router.post("/logical-fks/detect", response_model=DetectionResponse)
async def detect_candidates(
    project_id: int,
    actor_id: int | None = Depends(get_optional_actor_id),
    db: AsyncSession = Depends(get_db),
):
    """Run every detector over the project's current schema."""
    result = await DetectionService(db).detect_candidates(project_id, actor_id)
    return DetectionResponse(
        run_id=result.run_id,
        candidate_count=result.candidate_count,
        created_count=result.created_count,
        updated_count=result.updated_count,
        skipped_count=result.skipped_count,
        warnings=result.warnings,
    )


@router.get(
    "/logical-fks/detection-runs/latest", response_model=DetectionRunResponse,
)
async def latest_detection_run(project_id: int, db: AsyncSession = Depends(get_db)):
    run = await DetectionService(db).latest_run(project_id)
    if run is None:
        raise ResourceNotFoundError(
            "DetectionRun", "latest", ErrorContext(project_id=project_id),
        )
    return DetectionRunResponse.from_model(run)


# --- Listing --------------------------------------------------------------------

@router.get(
    "/tables/{table_id}/logical-fks", response_model=list[LogicalFkResponse],
)
async def list_table_logical_fks(
    project_id: int, table_id: int, db: AsyncSession = Depends(get_db),
):
    """Logical FKs where the table is source or target, work queue first."""
    await _require_table(db, project_id, table_id)
    rows = await RelationshipStore(db).list_by_table(project_id, table_id)
    return [LogicalFkResponse.from_model(r) for r in rows]


@router.get(
    "/tables/{table_id}/physical-fks", response_model=list[PhysicalFkResponse],
)
async def list_table_physical_fks(
    project_id: int, table_id: int, db: AsyncSession = Depends(get_db),
):
    await _require_table(db, project_id, table_id)
    rows = await EntityRegistry(db).physical_fks(project_id, table_id)
    return [PhysicalFkResponse.from_model(r) for r in rows]


@router.get("/logical-fks", response_model=list[LogicalFkResponse])
async def list_project_logical_fks(
    project_id: int,
    status_filter: FkStatus | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    rows = await RelationshipStore(db).list_by_project(project_id, status_filter)
    return [LogicalFkResponse.from_model(r) for r in rows]


@router.get("/logical-fks/{logical_fk_id}", response_model=LogicalFkResponse)
async def get_logical_fk(
    project_id: int, logical_fk_id: int, db: AsyncSession = Depends(get_db),
):
    row = await RelationshipStore(db).get(project_id, logical_fk_id)
    if row is None:
        raise ResourceNotFoundError(
            "LogicalForeignKey", str(logical_fk_id),
            ErrorContext(project_id=project_id, logical_fk_id=logical_fk_id),
        )
    return LogicalFkResponse.from_model(row)


# --- Curation -------------------------------------------------------------------

@router.post("/logical-fks", response_model=ManualFkResponse)
async def create_manual_fk(
    project_id: int,
    body: ManualFkCreate,
    actor_id: int = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    """Declare a relationship by hand. Returns 200 when an existing one was confirmed."""
    result = await CurationService(db).create_manual(
        project_id,
        body.source_table_id, body.source_column_ids,
        body.target_table_id, body.target_column_ids,
        actor_id, body.notes,
    )
    return ManualFkResponse(
        logical_fk=LogicalFkResponse.from_model(result.logical_fk),
        created=result.created,
        warnings=result.warnings,
    )


@router.put("/logical-fks/{logical_fk_id}/confirm", response_model=LogicalFkResponse)
async def confirm_logical_fk(
    project_id: int,
    logical_fk_id: int,
    body: ConfirmRequest | None = None,
    actor_id: int = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    notes = body.notes if body else None
    row = await CurationService(db).confirm(project_id, logical_fk_id, actor_id, notes)
    return LogicalFkResponse.from_model(row)


@router.put("/logical-fks/{logical_fk_id}/reject", response_model=LogicalFkResponse)
async def reject_logical_fk(
    project_id: int,
    logical_fk_id: int,
    body: RejectRequest | None = None,
    actor_id: int = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    reason = body.reason if body else None
    row = await CurationService(db).reject(project_id, logical_fk_id, actor_id, reason)
    return LogicalFkResponse.from_model(row)


@router.put("/logical-fks/{logical_fk_id}/restore", response_model=LogicalFkResponse)
async def restore_logical_fk(
    project_id: int,
    logical_fk_id: int,
    actor_id: int = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    row = await CurationService(db).restore(project_id, logical_fk_id, actor_id)
    return LogicalFkResponse.from_model(row)


@router.delete(
    "/logical-fks/{logical_fk_id}", status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_logical_fk(
    project_id: int,
    logical_fk_id: int,
    actor_id: int = Depends(get_actor_id),
    db: AsyncSession = Depends(get_db),
):
    await CurationService(db).delete(project_id, logical_fk_id, actor_id)
