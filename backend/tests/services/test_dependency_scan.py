"""Dependency Scan — routine text → persisted dependency edges.

Invariants:
    - Edges are stored with discovered_by SQL_SCAN and confidence 0.8
    - Re-scanning never duplicates rows
    - Purge is project-wide or limited to one entity
"""

from schemalink.core.domain_types import EntityRef, EntityType
from schemalink.models.routine_metadata import RoutineMetadata
from schemalink.services.dependency_scan import (
    SQL_SCAN_CONFIDENCE, SQL_SCAN_SOURCE, DependencyScanService,
)
from schemalink.services.relationship_store import RelationshipStore

PROJECT_ID = 1


async def test_scan_stores_select_edges(test_db, catalog):
    result = await DependencyScanService(test_db).scan(PROJECT_ID)

    assert result.upserted == 2
    assert result.warnings == []
    rows = await RelationshipStore(test_db).list_dependencies(PROJECT_ID)
    assert {(r.source_type, r.source_id, r.target_id, r.dependency_type) for r in rows} == {
        ("SP", catalog["usp_GetOrders"], catalog["Orders"], "SELECT"),
        ("SP", catalog["usp_GetOrders"], catalog["Customers"], "SELECT"),
    }
    assert all(r.confidence_score == SQL_SCAN_CONFIDENCE for r in rows)
    assert all(r.discovered_by == SQL_SCAN_SOURCE for r in rows)


async def test_rescan_does_not_duplicate(test_db, catalog):
    service = DependencyScanService(test_db)
    await service.scan(PROJECT_ID)
    await service.scan(PROJECT_ID)
    assert len(await RelationshipStore(test_db).list_dependencies(PROJECT_ID)) == 2


async def test_scan_reports_unparseable_routine(test_db, catalog):
    test_db.add(RoutineMetadata(
        project_id=PROJECT_ID, schema_name="dbo", routine_name="usp_Broken",
        routine_type="SP", definition="SELECT * FROM [Orders",
    ))
    await test_db.commit()

    result = await DependencyScanService(test_db).scan(PROJECT_ID)
    assert result.upserted == 2
    assert result.warnings == ["Skipped usp_Broken: unterminated quoted identifier"]


async def test_purge_one_entity(test_db, catalog):
    service = DependencyScanService(test_db)
    await service.scan(PROJECT_ID)

    deleted = await service.purge(PROJECT_ID, EntityRef(EntityType.TABLE, catalog["Orders"]))

    assert deleted == 1
    [remaining] = await RelationshipStore(test_db).list_dependencies(PROJECT_ID)
    assert remaining.target_id == catalog["Customers"]


async def test_purge_project(test_db, catalog):
    service = DependencyScanService(test_db)
    await service.scan(PROJECT_ID)
    assert await service.purge(PROJECT_ID) == 2
    assert await RelationshipStore(test_db).list_dependencies(PROJECT_ID) == []
