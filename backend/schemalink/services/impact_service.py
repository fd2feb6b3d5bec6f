"""Impact Service — loads the combined graph and answers "what breaks if this changes?".

Invariants:
    - Read-only: no writes, no locks, reads whatever is CONFIRMED right now
    - Graph = physical FKs ∪ CONFIRMED logical FKs ∪ dependency edges
    - Unknown root → InvalidReferenceError; broken edges → warnings, never failures
    - An entity without dependents yields an empty, valid report

Design Decisions:
    - Whole-project graph load per request: catalogs are thousands of rows, not millions,
      and a consistent in-memory graph keeps traversal pure
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from schemalink.config import Settings, get_settings
from schemalink.core.domain_types import (
    ChangeType, DependencyType, EdgeKind, EntityRef, EntityType, FkStatus,
)
from schemalink.core.errors import ErrorContext, InvalidReferenceError
from schemalink.core.impact_graph import ForeignKeyEdgeInput, ImpactEdge, build_impact_graph
from schemalink.core.impact_scoring import ImpactReport, score_impact
from schemalink.core.impact_traversal import traverse_dependents
from schemalink.models.column_ids import decode_column_ids
from schemalink.services.entity_registry import EntityRegistry, parse_referential_action
from schemalink.services.relationship_store import RelationshipStore

logger = logging.getLogger(__name__)


class ImpactService:
    """Builds an ImpactReport for one entity and proposed change."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings | None = None,
        registry: EntityRegistry | None = None,
        store: RelationshipStore | None = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.registry = registry or EntityRegistry(db)
        self.store = store or RelationshipStore(db)

    async def analyze(
        self,
        project_id: int,
        entity_type: EntityType,
        entity_id: int,
        change_type: ChangeType,
    ) -> ImpactReport:
        root = EntityRef(entity_type, entity_id)
        nodes = await self.registry.load_entity_nodes(project_id)
        if root not in {n.ref for n in nodes}:
            raise InvalidReferenceError(
                entity_type.value, entity_id, ErrorContext(project_id=project_id),
            )

        load_warnings: list[str] = []
        foreign_keys = await self._foreign_keys(project_id)
        dependencies = await self._dependencies(project_id, load_warnings)
        graph = build_impact_graph(nodes, foreign_keys, dependencies)

        config = self.settings.impact_config(project_id)
        traversal = traverse_dependents(graph, root, config.max_depth)
        report = score_impact(graph, traversal, change_type, config)
        report.warnings = load_warnings + report.warnings

        for warning in report.warnings:
            logger.warning(
                warning,
                extra={"project_id": project_id, "entity_type": entity_type.value,
                       "entity_id": entity_id},
            )
        logger.info(
            f"Impact of {change_type.value} on {root}: "
            f"{len(report.affected_entities)} affected",
            extra={
                "project_id": project_id,
                "entity_type": entity_type.value,
                "entity_id": entity_id,
                "change_type": change_type.value,
                "risk_score": report.total_risk_score,
            },
        )
        return report

    async def _foreign_keys(self, project_id: int) -> list[ForeignKeyEdgeInput]:
        edges = [
            ForeignKeyEdgeInput(
                kind=EdgeKind.PHYSICAL_FK,
                source_table_id=fk.source_table_id,
                target_table_id=fk.target_table_id,
                target_column_ids=decode_column_ids(fk.target_column_ids),
                confidence=1.0,
                on_delete=parse_referential_action(fk.on_delete_action),
                label=fk.constraint_name,
            )
            for fk in await self.registry.physical_fks(project_id)
        ]
        confirmed = await self.store.list_by_project(project_id, FkStatus.CONFIRMED)
        for fk in sorted(confirmed, key=lambda row: row.id):
            edges.append(ForeignKeyEdgeInput(
                kind=EdgeKind.LOGICAL_FK,
                source_table_id=fk.source_table_id,
                target_table_id=fk.target_table_id,
                target_column_ids=decode_column_ids(fk.target_column_ids),
                confidence=fk.confidence_score,
                label=f"logical FK #{fk.id} ({fk.discovery_method})",
            ))
        return edges

    async def _dependencies(self, project_id: int, warnings: list[str]) -> list[ImpactEdge]:
        edges = []
        for dep in await self.store.list_dependencies(project_id):
            try:
                edge = ImpactEdge(
                    source=EntityRef(EntityType(dep.source_type), dep.source_id),
                    target=EntityRef(EntityType(dep.target_type), dep.target_id),
                    kind=EdgeKind.DEPENDENCY,
                    dependency_type=DependencyType(dep.dependency_type),
                    confidence=dep.confidence_score,
                    label=f"{dep.dependency_type} ({dep.discovered_by})",
                )
            except ValueError:
                warnings.append(f"Skipped dependency #{dep.id}: unknown type value")
                continue
            edges.append(edge)
        return edges
