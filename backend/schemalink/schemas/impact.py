"""Impact Schemas — response shape for GET /impact/{entity_type}/{entity_id}.

Invariants:
    - affected_entities keep the analyzer's ranking order
    - summary always lists all four levels, zero counts included
"""

from pydantic import BaseModel

from schemalink.core.domain_types import ChangeType, EntityType, ImpactLevel
from schemalink.core.impact_graph import ImpactEdge
from schemalink.core.impact_scoring import AffectedEntity, ImpactReport


class EntityRefResponse(BaseModel):
    entity_type: EntityType
    entity_id: int


class ImpactPathEdge(BaseModel):
    """One edge that reached an affected entity."""
    kind: str
    dependency_type: str
    depends_on: EntityRefResponse
    confidence: float
    on_delete: str | None = None
    label: str = ""

    @classmethod
    def from_edge(cls, edge: ImpactEdge) -> "ImpactPathEdge":
        return cls(
            kind=edge.kind.value,
            dependency_type=edge.dependency_type.value,
            depends_on=EntityRefResponse(
                entity_type=edge.target.entity_type, entity_id=edge.target.entity_id,
            ),
            confidence=edge.confidence,
            on_delete=edge.on_delete.value if edge.on_delete else None,
            label=edge.label,
        )


class AffectedEntityResponse(BaseModel):
    entity_type: EntityType
    entity_id: int
    name: str
    distance: int
    level: ImpactLevel
    criticality: int
    reasons: list[str]
    via: list[ImpactPathEdge]

    @classmethod
    def from_entity(cls, entity: AffectedEntity) -> "AffectedEntityResponse":
        return cls(
            entity_type=entity.ref.entity_type,
            entity_id=entity.ref.entity_id,
            name=entity.name,
            distance=entity.distance,
            level=entity.level,
            criticality=entity.criticality,
            reasons=list(entity.reasons),
            via=[ImpactPathEdge.from_edge(e) for e in entity.via],
        )


class ImpactReportResponse(BaseModel):
    """Ranked dependents, aggregate risk and approval decision."""
    root: EntityRefResponse
    root_name: str
    change_type: ChangeType
    affected_entities: list[AffectedEntityResponse]
    total_risk_score: int
    requires_approval: bool
    summary: dict[ImpactLevel, int]
    max_depth_reached: int
    is_truncated: bool
    warnings: list[str] = []

    @classmethod
    def from_report(cls, report: ImpactReport) -> "ImpactReportResponse":
        return cls(
            root=EntityRefResponse(
                entity_type=report.root.entity_type, entity_id=report.root.entity_id,
            ),
            root_name=report.root_name,
            change_type=report.change_type,
            affected_entities=[
                AffectedEntityResponse.from_entity(e) for e in report.affected_entities
            ],
            total_risk_score=report.total_risk_score,
            requires_approval=report.requires_approval,
            summary={level: report.level_counts.get(level, 0) for level in ImpactLevel},
            max_depth_reached=report.max_depth_reached,
            is_truncated=report.is_truncated,
            warnings=list(report.warnings),
        )
