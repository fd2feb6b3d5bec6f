"""Relationship Store — deduplicated persistence for logical FKs and dependency edges.

Invariants:
    - Dependency edges: one row per uniqueness tuple; INSERT ... ON CONFLICT DO UPDATE
      refreshes confidence_score / discovered_by / discovered_at only
    - Logical FKs: INSERT ... ON CONFLICT DO NOTHING, then single-statement conditional updates:
        SUGGESTED row  → score, methods, reason refreshed
        REJECTED row   → rejected_score and discovery_methods only, status untouched
        CONFIRMED row  → untouched
    - Status changes are compare-and-set: `WHERE status IN (allowed)`; zero rows means
      the caller lost a race or asked for an invalid transition
    - Callers own the transaction (commit/rollback happens in services)

Design Decisions:
    - Dialect-specific insert() (PostgreSQL in production, SQLite in tests): both
      support ON CONFLICT + RETURNING, so there is no read-then-write window
    - Reference validation happens here, per candidate: a stale candidate fails
      alone with InvalidReferenceError instead of tripping a DB constraint mid-batch
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import case, delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from schemalink.core.candidates import CorroboratedCandidate
from schemalink.core.domain_types import (
    DependencyType, DiscoveryMethod, EntityRef, EntityType, FkStatus,
    MANUAL_CONFIDENCE, STATUS_SORT_ORDER,
)
from schemalink.core.errors import InvalidReferenceError, UniquenessConflictError
from schemalink.models.column_ids import encode_column_ids, encode_methods
from schemalink.models.column_metadata import ColumnMetadata
from schemalink.models.dependency import Dependency
from schemalink.models.logical_foreign_key import LogicalForeignKey
from schemalink.models.table_metadata import TableMetadata

logger = logging.getLogger(__name__)

_STATUS_ORDER = case(
    *[(LogicalForeignKey.status == status.value, rank)
      for status, rank in STATUS_SORT_ORDER.items()],
    else_=len(STATUS_SORT_ORDER),
)


@dataclass(frozen=True)
class UpsertOutcome:
    """Result of folding one candidate into the store.

    Only SUGGESTED outcomes count as detection output; a CONFIRMED or REJECTED
    row is kept as curated and reported back as skipped.
    """
    logical_fk_id: int
    created: bool
    status: FkStatus

    @property
    def is_suggestion(self) -> bool:
        return self.status == FkStatus.SUGGESTED


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RelationshipStore:
    """Logical FK and dependency persistence over one AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _insert(self, model):
        """Dialect insert() so ON CONFLICT is available."""
        if self.db.get_bind().dialect.name == "postgresql":
            return postgresql.insert(model)
        return sqlite.insert(model)

    # --- Dependency edges ----------------------------------------------------------

    async def upsert_dependency(
        self,
        project_id: int,
        source: EntityRef,
        target: EntityRef,
        dependency_type: DependencyType,
        confidence: float,
        discovered_by: str,
    ) -> int:
        """Insert or refresh one edge; returns its id."""
        stmt = self._insert(Dependency).values(
            project_id=project_id,
            source_type=source.entity_type.value,
            source_id=source.entity_id,
            target_type=target.entity_type.value,
            target_id=target.entity_id,
            dependency_type=dependency_type.value,
            confidence_score=confidence,
            discovered_by=discovered_by,
            discovered_at=_now(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[
                Dependency.project_id, Dependency.source_type, Dependency.source_id,
                Dependency.target_type, Dependency.target_id, Dependency.dependency_type,
            ],
            set_={
                "confidence_score": stmt.excluded.confidence_score,
                "discovered_by": stmt.excluded.discovered_by,
                "discovered_at": stmt.excluded.discovered_at,
            },
        ).returning(Dependency.id)
        return (await self.db.execute(stmt)).scalar_one()

    async def list_dependencies(
        self, project_id: int, entity: EntityRef | None = None,
    ) -> list[Dependency]:
        stmt = select(Dependency).where(Dependency.project_id == project_id)
        if entity is not None:
            stmt = stmt.where(_touches(entity))
        result = await self.db.execute(stmt.order_by(Dependency.id))
        return list(result.scalars().all())

    async def purge_project_dependencies(self, project_id: int) -> int:
        result = await self.db.execute(
            delete(Dependency).where(Dependency.project_id == project_id)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount or 0

    async def delete_dependencies_for_entity(
        self, project_id: int, entity: EntityRef,
    ) -> int:
        """Cascade helper: drop every edge touching an entity being removed."""
        result = await self.db.execute(
            delete(Dependency).where(
                Dependency.project_id == project_id, _touches(entity),
            )
            .execution_options(synchronize_session=False),
        )
        return result.rowcount or 0

    # --- Logical FKs: detection path ------------------------------------------------

    async def upsert_logical_fk(
        self, project_id: int, candidate: CorroboratedCandidate,
    ) -> UpsertOutcome:
        """Insert a suggestion or fold it into the existing row for that mapping."""
        await self.validate_references(
            project_id,
            candidate.source_table_id, list(candidate.source_column_ids),
            candidate.target_table_id, list(candidate.target_column_ids),
        )
        source_cols = encode_column_ids(candidate.source_column_ids)
        target_cols = encode_column_ids(candidate.target_column_ids)
        methods = encode_methods(candidate.methods)
        now = _now()

        insert_stmt = self._insert(LogicalForeignKey).values(
            project_id=project_id,
            source_table_id=candidate.source_table_id,
            source_column_ids=source_cols,
            target_table_id=candidate.target_table_id,
            target_column_ids=target_cols,
            discovery_method=candidate.method.value,
            discovery_methods=methods,
            confidence_score=candidate.score,
            detection_reason=candidate.reason,
            is_ambiguous=candidate.is_ambiguous,
            status=FkStatus.SUGGESTED.value,
            created_at=now,
            updated_at=now,
        ).on_conflict_do_nothing(
            index_elements=[
                LogicalForeignKey.project_id,
                LogicalForeignKey.source_table_id, LogicalForeignKey.source_column_ids,
                LogicalForeignKey.target_table_id, LogicalForeignKey.target_column_ids,
            ],
        ).returning(LogicalForeignKey.id)
        new_id = (await self.db.execute(insert_stmt)).scalar_one_or_none()
        if new_id is not None:
            return UpsertOutcome(new_id, True, FkStatus.SUGGESTED)

        identity = _mapping_filter(
            project_id, candidate.source_table_id, source_cols,
            candidate.target_table_id, target_cols,
        )
        refreshed = await self._update_returning_id(
            identity, FkStatus.SUGGESTED,
            confidence_score=candidate.score,
            discovery_method=candidate.method.value,
            discovery_methods=methods,
            detection_reason=candidate.reason,
            is_ambiguous=candidate.is_ambiguous,
            updated_at=now,
        )
        if refreshed is not None:
            return UpsertOutcome(refreshed, False, FkStatus.SUGGESTED)

        rejected = await self._update_returning_id(
            identity, FkStatus.REJECTED,
            rejected_score=candidate.score,
            discovery_methods=methods,
        )
        if rejected is not None:
            logger.debug(
                f"Rejected logical FK {rejected} re-detected; status kept",
                extra={"project_id": project_id, "logical_fk_id": rejected},
            )
            return UpsertOutcome(rejected, False, FkStatus.REJECTED)

        row = (await self.db.execute(
            select(LogicalForeignKey.id, LogicalForeignKey.status).where(*identity),
        )).first()
        if row is None:
            # Conflicting row vanished between statements (concurrent delete)
            raise UniquenessConflictError(
                f"Logical FK {source_cols}->{target_cols} changed concurrently",
            )
        return UpsertOutcome(row.id, False, FkStatus(row.status))

    async def _update_returning_id(
        self, identity: list, status: FkStatus, **values,
    ) -> int | None:
        stmt = (
            update(LogicalForeignKey)
            .where(*identity, LogicalForeignKey.status == status.value)
            .values(**values)
            .returning(LogicalForeignKey.id)
            .execution_options(synchronize_session=False)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    # --- Logical FKs: curation path -------------------------------------------------

    async def insert_manual(
        self,
        project_id: int,
        source_table_id: int,
        source_column_ids: list[int],
        target_table_id: int,
        target_column_ids: list[int],
        actor_id: int,
        notes: str | None,
    ) -> int | None:
        """Insert a CONFIRMED manual row; None when the mapping already exists."""
        now = _now()
        stmt = self._insert(LogicalForeignKey).values(
            project_id=project_id,
            source_table_id=source_table_id,
            source_column_ids=encode_column_ids(source_column_ids),
            target_table_id=target_table_id,
            target_column_ids=encode_column_ids(target_column_ids),
            discovery_method=DiscoveryMethod.MANUAL.value,
            discovery_methods=DiscoveryMethod.MANUAL.value,
            confidence_score=MANUAL_CONFIDENCE,
            detection_reason="Created manually",
            is_ambiguous=False,
            status=FkStatus.CONFIRMED.value,
            confirmed_by=actor_id,
            confirmed_at=now,
            notes=notes,
            created_by=actor_id,
            created_at=now,
            updated_at=now,
        ).on_conflict_do_nothing(
            index_elements=[
                LogicalForeignKey.project_id,
                LogicalForeignKey.source_table_id, LogicalForeignKey.source_column_ids,
                LogicalForeignKey.target_table_id, LogicalForeignKey.target_column_ids,
            ],
        ).returning(LogicalForeignKey.id)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def transition(
        self,
        project_id: int,
        logical_fk_id: int,
        allowed: frozenset[FkStatus],
        values: dict,
        extra_conditions: tuple = (),
    ) -> LogicalForeignKey | None:
        """Compare-and-set status update; None when the guard did not match."""
        stmt = (
            update(LogicalForeignKey)
            .where(
                LogicalForeignKey.id == logical_fk_id,
                LogicalForeignKey.project_id == project_id,
                LogicalForeignKey.status.in_([s.value for s in allowed]),
                *extra_conditions,
            )
            .values(**values, updated_at=_now())
            .returning(LogicalForeignKey.id)
            .execution_options(synchronize_session=False)
        )
        if (await self.db.execute(stmt)).scalar_one_or_none() is None:
            return None
        return await self.get(project_id, logical_fk_id)

    async def delete(self, project_id: int, logical_fk_id: int) -> bool:
        result = await self.db.execute(
            delete(LogicalForeignKey).where(
                LogicalForeignKey.id == logical_fk_id,
                LogicalForeignKey.project_id == project_id,
            )
            .execution_options(synchronize_session=False),
        )
        return bool(result.rowcount)

    # --- Logical FKs: reads ---------------------------------------------------------

    async def get(self, project_id: int, logical_fk_id: int) -> LogicalForeignKey | None:
        result = await self.db.execute(
            select(LogicalForeignKey)
            .where(
                LogicalForeignKey.id == logical_fk_id,
                LogicalForeignKey.project_id == project_id,
            )
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def find_by_mapping(
        self,
        project_id: int,
        source_table_id: int,
        source_column_ids: list[int],
        target_table_id: int,
        target_column_ids: list[int],
    ) -> LogicalForeignKey | None:
        result = await self.db.execute(
            select(LogicalForeignKey)
            .where(*_mapping_filter(
                project_id,
                source_table_id, encode_column_ids(source_column_ids),
                target_table_id, encode_column_ids(target_column_ids),
            ))
            .execution_options(populate_existing=True),
        )
        return result.scalar_one_or_none()

    async def list_by_table(self, project_id: int, table_id: int) -> list[LogicalForeignKey]:
        """Rows where the table is source or target: SUGGESTED, CONFIRMED, REJECTED, then score."""
        result = await self.db.execute(
            select(LogicalForeignKey)
            .where(
                LogicalForeignKey.project_id == project_id,
                (LogicalForeignKey.source_table_id == table_id)
                | (LogicalForeignKey.target_table_id == table_id),
            )
            .order_by(
                _STATUS_ORDER,
                LogicalForeignKey.confidence_score.desc(),
                LogicalForeignKey.id,
            )
            .execution_options(populate_existing=True),
        )
        return list(result.scalars().all())

    async def list_by_project(
        self, project_id: int, status: FkStatus | None = None,
    ) -> list[LogicalForeignKey]:
        stmt = select(LogicalForeignKey).where(LogicalForeignKey.project_id == project_id)
        if status is not None:
            stmt = stmt.where(LogicalForeignKey.status == status.value)
        result = await self.db.execute(
            stmt.order_by(
                _STATUS_ORDER,
                LogicalForeignKey.confidence_score.desc(),
                LogicalForeignKey.id,
            ).execution_options(populate_existing=True),
        )
        return list(result.scalars().all())

    # --- Validation -----------------------------------------------------------------

    async def validate_references(
        self,
        project_id: int,
        source_table_id: int,
        source_column_ids: list[int],
        target_table_id: int,
        target_column_ids: list[int],
    ) -> dict[int, ColumnMetadata]:
        """Both tables belong to the project and each column belongs to its side's table."""
        table_ids = {source_table_id, target_table_id}
        found_tables = set((await self.db.execute(
            select(TableMetadata.id).where(
                TableMetadata.project_id == project_id,
                TableMetadata.id.in_(table_ids),
            ),
        )).scalars().all())
        for table_id in (source_table_id, target_table_id):
            if table_id not in found_tables:
                raise InvalidReferenceError(EntityType.TABLE.value, table_id)

        wanted = set(source_column_ids) | set(target_column_ids)
        columns = {
            c.id: c for c in (await self.db.execute(
                select(ColumnMetadata).where(ColumnMetadata.id.in_(wanted)),
            )).scalars().all()
        }
        for table_id, column_ids in (
            (source_table_id, source_column_ids),
            (target_table_id, target_column_ids),
        ):
            for column_id in column_ids:
                column = columns.get(column_id)
                if column is None or column.table_id != table_id:
                    raise InvalidReferenceError(EntityType.COLUMN.value, column_id)
        return columns


def _mapping_filter(
    project_id: int,
    source_table_id: int,
    source_cols: str,
    target_table_id: int,
    target_cols: str,
) -> list:
    return [
        LogicalForeignKey.project_id == project_id,
        LogicalForeignKey.source_table_id == source_table_id,
        LogicalForeignKey.source_column_ids == source_cols,
        LogicalForeignKey.target_table_id == target_table_id,
        LogicalForeignKey.target_column_ids == target_cols,
    ]


def _touches(entity: EntityRef):
    return (
        (Dependency.source_type == entity.entity_type.value)
        & (Dependency.source_id == entity.entity_id)
    ) | (
        (Dependency.target_type == entity.entity_type.value)
        & (Dependency.target_id == entity.entity_id)
    )
