"""Dependency Scan — persists routine → table/routine edges found in routine text.

Invariants:
    - Edges are upserted: re-scanning refreshes discovered_at, never duplicates
    - Unparseable routines become warnings; the scan never fails on text
    - Purges are project-scoped or entity-scoped, nothing wider
"""

import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from schemalink.core.domain_types import EntityRef
from schemalink.core.extract_sql_dependencies import extract_sql_dependencies
from schemalink.services.entity_registry import EntityRegistry
from schemalink.services.relationship_store import RelationshipStore

logger = logging.getLogger(__name__)

SQL_SCAN_SOURCE = "SQL_SCAN"
SQL_SCAN_CONFIDENCE = 0.8


@dataclass
class ScanResult:
    upserted: int = 0
    warnings: list[str] = field(default_factory=list)


class DependencyScanService:

    def __init__(
        self,
        db: AsyncSession,
        registry: EntityRegistry | None = None,
        store: RelationshipStore | None = None,
    ):
        self.db = db
        self.registry = registry or EntityRegistry(db)
        self.store = store or RelationshipStore(db)

    async def scan(self, project_id: int) -> ScanResult:
        snapshot = await self.registry.load_snapshot(project_id)
        extracted = await asyncio.to_thread(extract_sql_dependencies, snapshot)
        result = ScanResult(warnings=list(extracted.warnings))
        for dependency in extracted.dependencies:
            await self.store.upsert_dependency(
                project_id,
                dependency.source,
                dependency.target,
                dependency.dependency_type,
                SQL_SCAN_CONFIDENCE,
                SQL_SCAN_SOURCE,
            )
            result.upserted += 1
        await self.db.commit()
        logger.info(
            f"Dependency scan upserted {result.upserted} edges",
            extra={"project_id": project_id, "warning_count": len(result.warnings)},
        )
        return result

    async def purge(self, project_id: int, entity: EntityRef | None = None) -> int:
        if entity is None:
            deleted = await self.store.purge_project_dependencies(project_id)
        else:
            deleted = await self.store.delete_dependencies_for_entity(project_id, entity)
        await self.db.commit()
        logger.info(
            f"Purged {deleted} dependency edges",
            extra={"project_id": project_id},
        )
        return deleted
