"""Curation Service — confirm/reject/restore/delete and manual creation.

Invariants:
    - Transitions follow the status machine; invalid ones raise InvalidTransitionError (409)
    - Restore brings back the latest detection score
    - Manual rows are CONFIRMED at 1.0 and cannot be restored
    - Manual creation of an existing mapping confirms the existing row
    - A conflicting row removed before it is read makes manual creation insert again
    - A mapping declared as a physical FK cannot be created manually
"""

import pytest

from schemalink.core.candidates import CorroboratedCandidate
from schemalink.core.domain_types import DiscoveryMethod, FkStatus
from schemalink.core.errors import (
    ColumnMappingError, InvalidReferenceError, InvalidTransitionError,
    PhysicalRelationshipExistsError, ResourceNotFoundError, UniquenessConflictError,
)
from schemalink.models.column_ids import encode_column_ids
from schemalink.models.physical_foreign_key import PhysicalForeignKey
from schemalink.services.curation_service import CurationService
from schemalink.services.relationship_store import RelationshipStore

PROJECT_ID = 1
ACTOR = 7


@pytest.fixture
async def suggestion(test_db, catalog):
    """One SUGGESTED Orders.CustomerId → Customers row at 0.6."""
    outcome = await RelationshipStore(test_db).upsert_logical_fk(
        PROJECT_ID,
        CorroboratedCandidate(
            source_table_id=catalog["Orders"],
            source_column_ids=(catalog["Orders.CustomerId"],),
            target_table_id=catalog["Customers"],
            target_column_ids=(catalog["Customers.CustomerId"],),
            method=DiscoveryMethod.NAME_CONVENTION,
            methods=(DiscoveryMethod.NAME_CONVENTION,),
            score=0.6,
            reason="name match",
        ),
    )
    await test_db.commit()
    return outcome.logical_fk_id


# ─── Transitions ─────────────────────────────────────────────────

async def test_confirm_records_actor_and_notes(test_db, suggestion):
    row = await CurationService(test_db).confirm(PROJECT_ID, suggestion, ACTOR, "checked")
    assert row.status == FkStatus.CONFIRMED.value
    assert row.confirmed_by == ACTOR
    assert row.confirmed_at is not None
    assert row.notes == "checked"


async def test_confirm_twice_is_invalid(test_db, suggestion):
    service = CurationService(test_db)
    await service.confirm(PROJECT_ID, suggestion, ACTOR)
    with pytest.raises(InvalidTransitionError) as exc:
        await service.confirm(PROJECT_ID, suggestion, ACTOR)
    assert exc.value.http_status == 409
    assert exc.value.current_status == "CONFIRMED"


async def test_reject_confirmed_clears_confirmation(test_db, suggestion):
    service = CurationService(test_db)
    await service.confirm(PROJECT_ID, suggestion, ACTOR)
    row = await service.reject(PROJECT_ID, suggestion, ACTOR, "wrong")
    assert row.status == FkStatus.REJECTED.value
    assert row.confirmed_by is None
    assert row.rejected_by == ACTOR
    assert row.rejected_score == 0.6


async def test_restore_uses_latest_detection_score(test_db, catalog, suggestion):
    service = CurationService(test_db)
    store = RelationshipStore(test_db)
    await service.reject(PROJECT_ID, suggestion, ACTOR)
    await store.upsert_logical_fk(PROJECT_ID, CorroboratedCandidate(
        source_table_id=catalog["Orders"],
        source_column_ids=(catalog["Orders.CustomerId"],),
        target_table_id=catalog["Customers"],
        target_column_ids=(catalog["Customers.CustomerId"],),
        method=DiscoveryMethod.CORROBORATED,
        methods=(DiscoveryMethod.NAME_CONVENTION, DiscoveryMethod.SP_JOIN),
        score=0.85,
        reason="name match; join",
    ))
    await test_db.commit()

    row = await service.restore(PROJECT_ID, suggestion, ACTOR)
    assert row.status == FkStatus.SUGGESTED.value
    assert row.confidence_score == 0.85
    assert row.rejected_score is None
    assert row.rejected_by is None


async def test_restore_suggested_is_invalid(test_db, suggestion):
    with pytest.raises(InvalidTransitionError):
        await CurationService(test_db).restore(PROJECT_ID, suggestion, ACTOR)


async def test_unknown_id_is_not_found(test_db, catalog):
    with pytest.raises(ResourceNotFoundError):
        await CurationService(test_db).confirm(PROJECT_ID, 999, ACTOR)


async def test_other_project_id_is_not_found(test_db, suggestion):
    with pytest.raises(ResourceNotFoundError):
        await CurationService(test_db).confirm(2, suggestion, ACTOR)


async def test_delete_from_any_state(test_db, suggestion):
    service = CurationService(test_db)
    await service.reject(PROJECT_ID, suggestion, ACTOR)
    await service.delete(PROJECT_ID, suggestion, ACTOR)
    assert await RelationshipStore(test_db).get(PROJECT_ID, suggestion) is None
    with pytest.raises(ResourceNotFoundError):
        await service.delete(PROJECT_ID, suggestion, ACTOR)


# ─── Manual creation ─────────────────────────────────────────────

async def test_manual_creation_is_confirmed(test_db, catalog):
    result = await CurationService(test_db).create_manual(
        PROJECT_ID,
        catalog["OrderLines"], [catalog["OrderLines.OrderId"]],
        catalog["Orders"], [catalog["Orders.OrderId"]],
        ACTOR, notes="known link",
    )
    assert result.created is True
    assert result.warnings == []
    row = result.logical_fk
    assert row.status == FkStatus.CONFIRMED.value
    assert row.discovery_method == DiscoveryMethod.MANUAL.value
    assert row.confidence_score == 1.0
    assert row.created_by == ACTOR


async def test_manual_row_cannot_be_restored(test_db, catalog):
    service = CurationService(test_db)
    result = await service.create_manual(
        PROJECT_ID,
        catalog["OrderLines"], [catalog["OrderLines.OrderId"]],
        catalog["Orders"], [catalog["Orders.OrderId"]],
        ACTOR,
    )
    await service.reject(PROJECT_ID, result.logical_fk.id, ACTOR)
    with pytest.raises(InvalidTransitionError) as exc:
        await service.restore(PROJECT_ID, result.logical_fk.id, ACTOR)
    assert "cannot be restored" in exc.value.message


async def test_manual_on_existing_suggestion_confirms_it(test_db, catalog, suggestion):
    result = await CurationService(test_db).create_manual(
        PROJECT_ID,
        catalog["Orders"], [catalog["Orders.CustomerId"]],
        catalog["Customers"], [catalog["Customers.CustomerId"]],
        ACTOR,
    )
    assert result.created is False
    assert result.logical_fk.id == suggestion
    assert result.logical_fk.status == FkStatus.CONFIRMED.value
    assert result.warnings == ["Relationship already existed; it is now CONFIRMED"]


async def test_manual_warns_on_type_mismatch_and_self_reference(test_db, catalog):
    result = await CurationService(test_db).create_manual(
        PROJECT_ID,
        catalog["Orders"], [catalog["Orders.OrderDate"]],
        catalog["Orders"], [catalog["Orders.OrderId"]],
        ACTOR,
    )
    assert result.created is True
    assert result.warnings == [
        "Self-referencing relationship: source and target are the same table",
        "Type mismatch: OrderDate (datetime2) -> OrderId (int)",
    ]


async def test_manual_column_count_mismatch(test_db, catalog):
    with pytest.raises(ColumnMappingError):
        await CurationService(test_db).create_manual(
            PROJECT_ID,
            catalog["OrderLines"], [catalog["OrderLines.OrderId"], catalog["OrderLines.Quantity"]],
            catalog["Orders"], [catalog["Orders.OrderId"]],
            ACTOR,
        )


async def test_manual_unknown_column(test_db, catalog):
    with pytest.raises(InvalidReferenceError):
        await CurationService(test_db).create_manual(
            PROJECT_ID,
            catalog["OrderLines"], [12345],
            catalog["Orders"], [catalog["Orders.OrderId"]],
            ACTOR,
        )


async def test_manual_duplicate_of_physical_fk(test_db, catalog):
    test_db.add(PhysicalForeignKey(
        project_id=PROJECT_ID,
        constraint_name="FK_OrderLines_Orders",
        source_table_id=catalog["OrderLines"],
        source_column_ids=encode_column_ids([catalog["OrderLines.OrderId"]]),
        target_table_id=catalog["Orders"],
        target_column_ids=encode_column_ids([catalog["Orders.OrderId"]]),
    ))
    await test_db.commit()

    with pytest.raises(PhysicalRelationshipExistsError) as exc:
        await CurationService(test_db).create_manual(
            PROJECT_ID,
            catalog["OrderLines"], [catalog["OrderLines.OrderId"]],
            catalog["Orders"], [catalog["Orders.OrderId"]],
            ACTOR,
        )
    assert exc.value.constraint_name == "FK_OrderLines_Orders"


class _DeletingStore(RelationshipStore):
    """Removes the conflicting row right before the first mapping lookup."""

    def __init__(self, db, doomed_id: int):
        super().__init__(db)
        self.doomed_id = doomed_id
        self.lookups = 0

    async def find_by_mapping(self, project_id, *mapping):
        self.lookups += 1
        if self.lookups == 1:
            await self.delete(project_id, self.doomed_id)
        return await super().find_by_mapping(project_id, *mapping)


class _AlwaysConflictingStore(RelationshipStore):
    async def insert_manual(self, *args, **kwargs):
        return None

    async def find_by_mapping(self, *args, **kwargs):
        return None


async def test_manual_inserts_again_when_conflicting_row_vanishes(test_db, catalog, suggestion):
    store = _DeletingStore(test_db, suggestion)
    result = await CurationService(test_db, store=store).create_manual(
        PROJECT_ID,
        catalog["Orders"], [catalog["Orders.CustomerId"]],
        catalog["Customers"], [catalog["Customers.CustomerId"]],
        ACTOR,
    )
    assert store.lookups == 1
    assert result.created is True
    assert result.logical_fk.id != suggestion
    assert result.logical_fk.status == FkStatus.CONFIRMED.value
    assert result.logical_fk.discovery_method == DiscoveryMethod.MANUAL.value
    assert await RelationshipStore(test_db).get(PROJECT_ID, suggestion) is None


async def test_manual_gives_up_after_second_lost_race(test_db, catalog):
    service = CurationService(test_db, store=_AlwaysConflictingStore(test_db))
    with pytest.raises(UniquenessConflictError) as exc:
        await service.create_manual(
            PROJECT_ID,
            catalog["OrderLines"], [catalog["OrderLines.OrderId"]],
            catalog["Orders"], [catalog["Orders.OrderId"]],
            ACTOR,
        )
    assert exc.value.http_status == 409
