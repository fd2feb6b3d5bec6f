"""Entity Registry — read-only access to a project's catalogued schema.

Invariants:
    - Never writes; catalog import is owned by another system
    - Snapshots are built in one pass and are immutable afterwards
    - Missing criticality is read as 3 and clamped to 1–5

Design Decisions:
    - Columns inherit their table's criticality in the impact graph:
      the catalog only rates tables and routines
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schemalink.core.domain_types import (
    EntityRef, EntityType, ReferentialAction, clamp_criticality,
)
from schemalink.core.impact_graph import EntityNode
from schemalink.core.schema_snapshot import (
    ColumnInfo, PhysicalFkInfo, RoutineInfo, SchemaSnapshot, TableInfo,
)
from schemalink.models.column_ids import decode_column_ids
from schemalink.models.column_metadata import ColumnMetadata
from schemalink.models.physical_foreign_key import PhysicalForeignKey
from schemalink.models.routine_metadata import RoutineMetadata
from schemalink.models.table_metadata import TableMetadata

logger = logging.getLogger(__name__)


class EntityRegistry:
    """Catalog reader scoped to one AsyncSession."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # --- Snapshot ----------------------------------------------------------------

    async def load_snapshot(self, project_id: int) -> SchemaSnapshot:
        """Everything the detectors need, as frozen dataclasses."""
        tables = await self._tables(project_id)
        columns = await self._columns(project_id)
        routines = (await self.db.execute(
            select(RoutineMetadata)
            .where(RoutineMetadata.project_id == project_id)
            .order_by(RoutineMetadata.id),
        )).scalars().all()
        physical = await self.physical_fks(project_id)

        return SchemaSnapshot(
            project_id=project_id,
            tables=tuple(_table_info(t) for t in tables),
            columns=tuple(_column_info(c) for c in columns),
            routines=tuple(
                r for r in (_routine_info(row) for row in routines) if r is not None
            ),
            physical_fks=tuple(_physical_info(fk) for fk in physical),
        )

    async def load_entity_nodes(self, project_id: int) -> list[EntityNode]:
        """Graph nodes for every table, column and routine of a project."""
        tables = await self._tables(project_id)
        by_id = {t.id: t for t in tables}
        nodes = [
            EntityNode(
                EntityRef(EntityType.TABLE, t.id),
                f"{t.schema_name}.{t.table_name}",
                clamp_criticality(t.criticality_level),
            )
            for t in tables
        ]
        for column in await self._columns(project_id):
            table = by_id[column.table_id]
            nodes.append(EntityNode(
                EntityRef(EntityType.COLUMN, column.id),
                f"{table.schema_name}.{table.table_name}.{column.column_name}",
                clamp_criticality(table.criticality_level),
            ))
        routines = (await self.db.execute(
            select(RoutineMetadata).where(RoutineMetadata.project_id == project_id),
        )).scalars().all()
        for routine in routines:
            try:
                entity_type = EntityType(routine.routine_type)
            except ValueError:
                logger.warning(
                    f"Unknown routine type {routine.routine_type!r} for {routine.routine_name}",
                    extra={"project_id": project_id},
                )
                continue
            nodes.append(EntityNode(
                EntityRef(entity_type, routine.id),
                f"{routine.schema_name}.{routine.routine_name}",
                clamp_criticality(routine.criticality_level),
            ))
        return nodes

    # --- Point lookups --------------------------------------------------------------

    async def get_table(self, project_id: int, table_id: int) -> TableMetadata | None:
        result = await self.db.execute(
            select(TableMetadata).where(
                TableMetadata.id == table_id,
                TableMetadata.project_id == project_id,
            ),
        )
        return result.scalar_one_or_none()

    async def physical_fks(
        self, project_id: int, table_id: int | None = None,
    ) -> list[PhysicalForeignKey]:
        """Declared FKs of a project, optionally those touching one table."""
        stmt = select(PhysicalForeignKey).where(
            PhysicalForeignKey.project_id == project_id,
        )
        if table_id is not None:
            stmt = stmt.where(
                (PhysicalForeignKey.source_table_id == table_id)
                | (PhysicalForeignKey.target_table_id == table_id),
            )
        result = await self.db.execute(stmt.order_by(PhysicalForeignKey.id))
        return list(result.scalars().all())

    # --- Internals ------------------------------------------------------------------

    async def _tables(self, project_id: int) -> list[TableMetadata]:
        result = await self.db.execute(
            select(TableMetadata)
            .where(TableMetadata.project_id == project_id)
            .order_by(TableMetadata.id),
        )
        return list(result.scalars().all())

    async def _columns(self, project_id: int) -> list[ColumnMetadata]:
        result = await self.db.execute(
            select(ColumnMetadata)
            .join(TableMetadata, ColumnMetadata.table_id == TableMetadata.id)
            .where(TableMetadata.project_id == project_id)
            .order_by(ColumnMetadata.table_id, ColumnMetadata.ordinal_position, ColumnMetadata.id),
        )
        return list(result.scalars().all())


def _table_info(row: TableMetadata) -> TableInfo:
    return TableInfo(
        id=row.id,
        name=row.table_name,
        schema_name=row.schema_name,
        criticality=clamp_criticality(row.criticality_level),
    )


def _column_info(row: ColumnMetadata) -> ColumnInfo:
    return ColumnInfo(
        id=row.id,
        table_id=row.table_id,
        name=row.column_name,
        data_type=row.data_type,
        is_nullable=row.is_nullable,
        is_primary_key=row.is_primary_key,
        is_unique=row.is_unique,
        ordinal=row.ordinal_position,
    )


def _routine_info(row: RoutineMetadata) -> RoutineInfo | None:
    try:
        routine_type = EntityType(row.routine_type)
    except ValueError:
        return None
    return RoutineInfo(
        id=row.id,
        name=row.routine_name,
        routine_type=routine_type,
        definition=row.definition,
        schema_name=row.schema_name,
        criticality=clamp_criticality(row.criticality_level),
    )


def _physical_info(row: PhysicalForeignKey) -> PhysicalFkInfo:
    return PhysicalFkInfo(
        id=row.id,
        name=row.constraint_name,
        source_table_id=row.source_table_id,
        source_column_ids=decode_column_ids(row.source_column_ids),
        target_table_id=row.target_table_id,
        target_column_ids=decode_column_ids(row.target_column_ids),
        on_delete=parse_referential_action(row.on_delete_action),
        on_update=parse_referential_action(row.on_update_action),
    )


def parse_referential_action(raw: str | None) -> ReferentialAction:
    """'cascade', 'SET_NULL', 'NO ACTION' ... → ReferentialAction (unknown → NO ACTION)."""
    if not raw:
        return ReferentialAction.NO_ACTION
    normalized = raw.strip().upper().replace("_", " ")
    try:
        return ReferentialAction(normalized)
    except ValueError:
        return ReferentialAction.NO_ACTION
