"""Relationship Store — verifies deduplicated persistence against a real (SQLite) DB.

Invariants:
    - Dependency upsert refreshes the existing row instead of duplicating it
    - Logical FK upsert never changes a CONFIRMED row and never un-rejects a REJECTED one
    - Compare-and-set transitions return None when the status guard does not match
    - Reference validation rejects columns that belong to the other side's table
"""

import pytest

from schemalink.core.candidates import CorroboratedCandidate
from schemalink.core.domain_types import (
    DependencyType, DiscoveryMethod, EntityRef, EntityType, FkStatus,
)
from schemalink.core.errors import InvalidReferenceError
from schemalink.services.relationship_store import RelationshipStore

PROJECT_ID = 1


def _candidate(catalog, score=0.6, method=DiscoveryMethod.NAME_CONVENTION):
    return CorroboratedCandidate(
        source_table_id=catalog["Orders"],
        source_column_ids=(catalog["Orders.CustomerId"],),
        target_table_id=catalog["Customers"],
        target_column_ids=(catalog["Customers.CustomerId"],),
        method=method,
        methods=(method,),
        score=score,
        reason="Orders.CustomerId matches Customers primary key",
    )


# ─── Dependency edges ────────────────────────────────────────────

async def test_dependency_upsert_is_idempotent(test_db, catalog):
    store = RelationshipStore(test_db)
    source = EntityRef(EntityType.SP, catalog["usp_GetOrders"])
    target = EntityRef(EntityType.TABLE, catalog["Orders"])

    first = await store.upsert_dependency(
        PROJECT_ID, source, target, DependencyType.SELECT, 0.8, "SQL_SCAN",
    )
    second = await store.upsert_dependency(
        PROJECT_ID, source, target, DependencyType.SELECT, 0.9, "MANUAL",
    )
    await test_db.commit()

    assert first == second
    [row] = await store.list_dependencies(PROJECT_ID)
    assert row.confidence_score == 0.9
    assert row.discovered_by == "MANUAL"


async def test_dependency_type_is_part_of_identity(test_db, catalog):
    store = RelationshipStore(test_db)
    source = EntityRef(EntityType.SP, catalog["usp_GetOrders"])
    target = EntityRef(EntityType.TABLE, catalog["Orders"])
    await store.upsert_dependency(PROJECT_ID, source, target, DependencyType.SELECT, 0.8, "SQL_SCAN")
    await store.upsert_dependency(PROJECT_ID, source, target, DependencyType.UPDATE, 0.8, "SQL_SCAN")
    await test_db.commit()

    assert len(await store.list_dependencies(PROJECT_ID)) == 2


async def test_entity_delete_removes_edges_on_both_ends(test_db, catalog):
    store = RelationshipStore(test_db)
    proc = EntityRef(EntityType.SP, catalog["usp_GetOrders"])
    orders = EntityRef(EntityType.TABLE, catalog["Orders"])
    customers = EntityRef(EntityType.TABLE, catalog["Customers"])
    await store.upsert_dependency(PROJECT_ID, proc, orders, DependencyType.SELECT, 0.8, "SQL_SCAN")
    await store.upsert_dependency(PROJECT_ID, proc, customers, DependencyType.SELECT, 0.8, "SQL_SCAN")
    await test_db.commit()

    assert await store.delete_dependencies_for_entity(PROJECT_ID, orders) == 1
    assert len(await store.list_dependencies(PROJECT_ID, customers)) == 1
    assert await store.purge_project_dependencies(PROJECT_ID) == 1
    assert await store.list_dependencies(PROJECT_ID) == []


async def test_purge_is_project_scoped(test_db, catalog):
    store = RelationshipStore(test_db)
    a, b = EntityRef(EntityType.TABLE, 1), EntityRef(EntityType.TABLE, 2)
    await store.upsert_dependency(2, a, b, DependencyType.FK, 1.0, "MANUAL")
    await store.upsert_dependency(PROJECT_ID, a, b, DependencyType.FK, 1.0, "MANUAL")

    assert await store.purge_project_dependencies(PROJECT_ID) == 1
    assert len(await store.list_dependencies(2)) == 1


# ─── Logical FK upsert ───────────────────────────────────────────

async def test_upsert_creates_then_refreshes(test_db, catalog):
    store = RelationshipStore(test_db)
    created = await store.upsert_logical_fk(PROJECT_ID, _candidate(catalog))
    refreshed = await store.upsert_logical_fk(
        PROJECT_ID, _candidate(catalog, 0.7, DiscoveryMethod.SP_JOIN),
    )
    await test_db.commit()

    assert created.created is True
    assert refreshed.created is False
    assert refreshed.logical_fk_id == created.logical_fk_id
    row = await store.get(PROJECT_ID, created.logical_fk_id)
    assert row.confidence_score == 0.7
    assert row.discovery_method == "SP_JOIN"


async def test_upsert_leaves_confirmed_row_alone(test_db, catalog):
    store = RelationshipStore(test_db)
    outcome = await store.upsert_logical_fk(PROJECT_ID, _candidate(catalog))
    await store.transition(
        PROJECT_ID, outcome.logical_fk_id, frozenset({FkStatus.SUGGESTED}),
        {"status": FkStatus.CONFIRMED.value},
    )

    again = await store.upsert_logical_fk(PROJECT_ID, _candidate(catalog, 0.9))
    assert again.status == FkStatus.CONFIRMED
    row = await store.get(PROJECT_ID, outcome.logical_fk_id)
    assert row.confidence_score == 0.6


async def test_upsert_keeps_rejected_status_but_records_score(test_db, catalog):
    store = RelationshipStore(test_db)
    outcome = await store.upsert_logical_fk(PROJECT_ID, _candidate(catalog))
    await store.transition(
        PROJECT_ID, outcome.logical_fk_id, frozenset({FkStatus.SUGGESTED}),
        {"status": FkStatus.REJECTED.value},
    )

    again = await store.upsert_logical_fk(PROJECT_ID, _candidate(catalog, 0.85))
    assert again.status == FkStatus.REJECTED
    row = await store.get(PROJECT_ID, outcome.logical_fk_id)
    assert row.status == "REJECTED"
    assert row.rejected_score == 0.85
    assert row.confidence_score == 0.6


async def test_transition_guard_mismatch_returns_none(test_db, catalog):
    store = RelationshipStore(test_db)
    outcome = await store.upsert_logical_fk(PROJECT_ID, _candidate(catalog))
    result = await store.transition(
        PROJECT_ID, outcome.logical_fk_id, frozenset({FkStatus.REJECTED}),
        {"status": FkStatus.SUGGESTED.value},
    )
    assert result is None


async def test_insert_manual_returns_none_for_existing_mapping(test_db, catalog):
    store = RelationshipStore(test_db)
    await store.upsert_logical_fk(PROJECT_ID, _candidate(catalog))
    new_id = await store.insert_manual(
        PROJECT_ID,
        catalog["Orders"], [catalog["Orders.CustomerId"]],
        catalog["Customers"], [catalog["Customers.CustomerId"]],
        actor_id=5, notes=None,
    )
    assert new_id is None


# ─── Reads and validation ────────────────────────────────────────

async def test_list_by_table_orders_suggested_first(test_db, catalog):
    store = RelationshipStore(test_db)
    first = await store.upsert_logical_fk(PROJECT_ID, _candidate(catalog, 0.9))
    await store.transition(
        PROJECT_ID, first.logical_fk_id, frozenset({FkStatus.SUGGESTED}),
        {"status": FkStatus.CONFIRMED.value},
    )
    second = await store.upsert_logical_fk(PROJECT_ID, CorroboratedCandidate(
        source_table_id=catalog["OrderLines"],
        source_column_ids=(catalog["OrderLines.OrderId"],),
        target_table_id=catalog["Orders"],
        target_column_ids=(catalog["Orders.OrderId"],),
        method=DiscoveryMethod.NAME_CONVENTION,
        methods=(DiscoveryMethod.NAME_CONVENTION,),
        score=0.6,
        reason="OrderLines.OrderId matches Orders primary key",
    ))
    await test_db.commit()

    rows = await store.list_by_table(PROJECT_ID, catalog["Orders"])
    assert [r.id for r in rows] == [second.logical_fk_id, first.logical_fk_id]
    confirmed = await store.list_by_project(PROJECT_ID, FkStatus.CONFIRMED)
    assert [r.id for r in confirmed] == [first.logical_fk_id]


async def test_validate_references_rejects_foreign_column(test_db, catalog):
    store = RelationshipStore(test_db)
    with pytest.raises(InvalidReferenceError) as exc:
        await store.validate_references(
            PROJECT_ID,
            catalog["Orders"], [catalog["Customers.Name"]],
            catalog["Customers"], [catalog["Customers.CustomerId"]],
        )
    assert exc.value.entity_type == "COLUMN"
    assert exc.value.entity_id == catalog["Customers.Name"]


async def test_validate_references_rejects_other_project_table(test_db, catalog):
    store = RelationshipStore(test_db)
    with pytest.raises(InvalidReferenceError) as exc:
        await store.validate_references(
            2, catalog["Orders"], [], catalog["Customers"], [],
        )
    assert exc.value.entity_type == "TABLE"
