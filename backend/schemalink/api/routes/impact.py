"""Impact Routes — read-only impact analysis for a proposed schema change.

Invariants:
    - GET only: analysis never writes
    - Unknown entity → 404 via InvalidReferenceError
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from schemalink.core.domain_types import ChangeType, EntityType
from schemalink.infrastructure.database import get_db
from schemalink.schemas.impact import ImpactReportResponse
from schemalink.services.impact_service import ImpactService

router = APIRouter(prefix="/api/v1/projects/{project_id}/impact", tags=["impact"])


@router.get("/{entity_type}/{entity_id}", response_model=ImpactReportResponse)
async def get_impact(
    project_id: int,
    entity_type: EntityType,
    entity_id: int,
    change_type: ChangeType = Query(ChangeType.MODIFY),
    db: AsyncSession = Depends(get_db),
):
    """Dependents of the entity, ranked, with aggregate risk and approval flag."""
    report = await ImpactService(db).analyze(project_id, entity_type, entity_id, change_type)
    return ImpactReportResponse.from_report(report)
