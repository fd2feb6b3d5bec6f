"""Curation Service — user decisions on logical FKs (confirm, reject, restore, delete, create).

Invariants:
    - Every status change is one compare-and-set UPDATE guarded by ALLOWED_SOURCES
    - A lost race re-reads the row: gone → ResourceNotFoundError, moved → InvalidTransitionError
    - Manual creation never duplicates: an existing mapping is confirmed in place;
      if that row is deleted between the conflicting insert and the read, the
      insert is tried once more
    - A mapping already declared as a physical FK cannot be created manually
    - Type mismatches and self-references are reported as warnings, never blocked

Design Decisions:
    - Rule checks (core/curation_rules.py) run before the write to give precise
      errors; the same rules in the WHERE clause make the write race-safe
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from schemalink.core.curation_rules import (
    ALLOWED_SOURCES, validate_column_mapping, validate_transition,
)
from schemalink.core.data_types import are_compatible
from schemalink.core.domain_types import (
    CurationAction, DiscoveryMethod, FkStatus,
)
from schemalink.core.errors import (
    ColumnMappingError, ErrorContext, InvalidTransitionError,
    PhysicalRelationshipExistsError, ResourceNotFoundError, UniquenessConflictError,
)
from schemalink.models.column_ids import decode_column_ids
from schemalink.models.logical_foreign_key import LogicalForeignKey
from schemalink.services.entity_registry import EntityRegistry
from schemalink.services.relationship_store import RelationshipStore

logger = logging.getLogger(__name__)


@dataclass
class ManualFkResult:
    logical_fk: LogicalForeignKey
    created: bool
    warnings: list[str] = field(default_factory=list)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CurationService:
    """State machine for logical FKs, backed by RelationshipStore CAS updates."""

    def __init__(
        self,
        db: AsyncSession,
        store: RelationshipStore | None = None,
        registry: EntityRegistry | None = None,
    ):
        self.db = db
        self.store = store or RelationshipStore(db)
        self.registry = registry or EntityRegistry(db)

    # --- Transitions ----------------------------------------------------------------

    async def confirm(
        self, project_id: int, logical_fk_id: int, actor_id: int, notes: str | None = None,
    ) -> LogicalForeignKey:
        values = {
            "status": FkStatus.CONFIRMED.value,
            "confirmed_by": actor_id,
            "confirmed_at": _now(),
            "rejected_by": None,
            "rejected_at": None,
        }
        if notes is not None:
            values["notes"] = notes
        return await self._transition(
            project_id, logical_fk_id, actor_id, CurationAction.CONFIRM, values,
        )

    async def reject(
        self, project_id: int, logical_fk_id: int, actor_id: int, reason: str | None = None,
    ) -> LogicalForeignKey:
        values = {
            "status": FkStatus.REJECTED.value,
            "rejected_score": LogicalForeignKey.confidence_score,
            "rejected_by": actor_id,
            "rejected_at": _now(),
            "confirmed_by": None,
            "confirmed_at": None,
        }
        if reason is not None:
            values["notes"] = reason
        return await self._transition(
            project_id, logical_fk_id, actor_id, CurationAction.REJECT, values,
        )

    async def restore(
        self, project_id: int, logical_fk_id: int, actor_id: int,
    ) -> LogicalForeignKey:
        """Undo a rejection: back to SUGGESTED with the latest detection score."""
        values = {
            "status": FkStatus.SUGGESTED.value,
            "confidence_score": func.coalesce(
                LogicalForeignKey.rejected_score, LogicalForeignKey.confidence_score,
            ),
            "rejected_score": None,
            "rejected_by": None,
            "rejected_at": None,
        }
        return await self._transition(
            project_id, logical_fk_id, actor_id, CurationAction.RESTORE, values,
            extra_conditions=(
                LogicalForeignKey.discovery_method != DiscoveryMethod.MANUAL.value,
            ),
        )

    async def delete(self, project_id: int, logical_fk_id: int, actor_id: int) -> None:
        if not await self.store.delete(project_id, logical_fk_id):
            raise ResourceNotFoundError("LogicalForeignKey", str(logical_fk_id))
        await self.db.commit()
        logger.info(
            f"Logical FK {logical_fk_id} deleted by {actor_id}",
            extra={"project_id": project_id, "logical_fk_id": logical_fk_id},
        )

    async def _transition(
        self,
        project_id: int,
        logical_fk_id: int,
        actor_id: int,
        action: CurationAction,
        values: dict,
        extra_conditions: tuple = (),
    ) -> LogicalForeignKey:
        current = await self._get_or_404(project_id, logical_fk_id)
        self._check(action, current)
        previous = current.status

        updated = await self.store.transition(
            project_id, logical_fk_id, ALLOWED_SOURCES[action], values, extra_conditions,
        )
        if updated is None:
            # Lost a race: report against whatever the row is now
            current = await self._get_or_404(project_id, logical_fk_id)
            self._check(action, current)
            raise InvalidTransitionError(action.value, current.status)
        await self.db.commit()
        logger.info(
            f"Logical FK {logical_fk_id}: {previous} -> {updated.status} by {actor_id}",
            extra={"project_id": project_id, "logical_fk_id": logical_fk_id},
        )
        return updated

    def _check(self, action: CurationAction, row: LogicalForeignKey) -> None:
        error = validate_transition(
            action, FkStatus(row.status), DiscoveryMethod(row.discovery_method),
        )
        if error:
            raise InvalidTransitionError(
                action.value, row.status, error["message"],
                ErrorContext(project_id=row.project_id, logical_fk_id=row.id),
            )

    async def _get_or_404(self, project_id: int, logical_fk_id: int) -> LogicalForeignKey:
        row = await self.store.get(project_id, logical_fk_id)
        if row is None:
            raise ResourceNotFoundError(
                "LogicalForeignKey", str(logical_fk_id),
                ErrorContext(project_id=project_id, logical_fk_id=logical_fk_id),
            )
        return row

    # --- Manual creation ------------------------------------------------------------

    async def create_manual(
        self,
        project_id: int,
        source_table_id: int,
        source_column_ids: list[int],
        target_table_id: int,
        target_column_ids: list[int],
        actor_id: int,
        notes: str | None = None,
    ) -> ManualFkResult:
        error = validate_column_mapping(source_column_ids, target_column_ids)
        if error:
            raise ColumnMappingError(
                error["message"], ErrorContext(project_id=project_id),
            )
        columns = await self.store.validate_references(
            project_id, source_table_id, source_column_ids,
            target_table_id, target_column_ids,
        )
        await self._reject_physical_duplicate(
            project_id, source_table_id, source_column_ids,
            target_table_id, target_column_ids,
        )
        warnings = _mapping_warnings(
            columns, source_table_id, source_column_ids,
            target_table_id, target_column_ids,
        )

        for _ in range(2):
            new_id = await self.store.insert_manual(
                project_id, source_table_id, source_column_ids,
                target_table_id, target_column_ids, actor_id, notes,
            )
            if new_id is not None:
                await self.db.commit()
                logger.info(
                    f"Manual logical FK {new_id} created by {actor_id}",
                    extra={"project_id": project_id, "logical_fk_id": new_id},
                )
                return ManualFkResult(
                    await self.store.get(project_id, new_id), True, warnings,
                )
            existing = await self.store.find_by_mapping(
                project_id, source_table_id, source_column_ids,
                target_table_id, target_column_ids,
            )
            if existing is not None:
                break
            # Conflicting row was deleted before it could be read; insert again
        else:
            raise UniquenessConflictError(
                "Relationship changed concurrently; retry the request",
                ErrorContext(project_id=project_id),
            )

        if existing.status != FkStatus.CONFIRMED.value:
            existing = await self.confirm(project_id, existing.id, actor_id, notes)
        warnings.append("Relationship already existed; it is now CONFIRMED")
        return ManualFkResult(existing, False, warnings)

    async def _reject_physical_duplicate(
        self,
        project_id: int,
        source_table_id: int,
        source_column_ids: list[int],
        target_table_id: int,
        target_column_ids: list[int],
    ) -> None:
        for fk in await self.registry.physical_fks(project_id, source_table_id):
            if (
                fk.source_table_id == source_table_id
                and fk.target_table_id == target_table_id
                and decode_column_ids(fk.source_column_ids) == tuple(source_column_ids)
                and decode_column_ids(fk.target_column_ids) == tuple(target_column_ids)
            ):
                raise PhysicalRelationshipExistsError(
                    fk.constraint_name, ErrorContext(project_id=project_id),
                )


def _mapping_warnings(
    columns: dict,
    source_table_id: int,
    source_column_ids: list[int],
    target_table_id: int,
    target_column_ids: list[int],
) -> list[str]:
    warnings = []
    if source_table_id == target_table_id:
        warnings.append("Self-referencing relationship: source and target are the same table")
    for source_id, target_id in zip(source_column_ids, target_column_ids):
        source, target = columns[source_id], columns[target_id]
        if not are_compatible(source.data_type, target.data_type):
            warnings.append(
                f"Type mismatch: {source.column_name} ({source.data_type}) -> "
                f"{target.column_name} ({target.data_type})"
            )
    return warnings
