"""Schema Snapshot — immutable, in-memory view of one project's catalog.

Invariants:
    - Snapshot is read-only once built; detectors may share it across threads
    - Lookups are case-insensitive on table, schema and column names
    - A column belongs to exactly one table (ColumnInfo.table_id)

Design Decisions:
    - Frozen dataclasses + precomputed indexes: detectors run in worker threads
      over the same snapshot without locks
    - Name lookup keys are lower-cased at build time so detectors never re-normalise
"""

from dataclasses import dataclass, field

from schemalink.core.domain_types import (
    DEFAULT_CRITICALITY, EntityType, ReferentialAction,
)


@dataclass(frozen=True)
class ColumnInfo:
    id: int
    table_id: int
    name: str
    data_type: str
    is_nullable: bool = True
    is_primary_key: bool = False
    is_unique: bool = False
    ordinal: int = 0


@dataclass(frozen=True)
class TableInfo:
    id: int
    name: str
    schema_name: str = "dbo"
    criticality: int = DEFAULT_CRITICALITY

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.name}"


@dataclass(frozen=True)
class RoutineInfo:
    """Stored procedure, function or view with its definition text."""
    id: int
    name: str
    routine_type: EntityType
    definition: str | None
    schema_name: str = "dbo"
    criticality: int = DEFAULT_CRITICALITY


@dataclass(frozen=True)
class PhysicalFkInfo:
    """Declared FK constraint; column ids aligned pairwise."""
    id: int
    name: str
    source_table_id: int
    source_column_ids: tuple[int, ...]
    target_table_id: int
    target_column_ids: tuple[int, ...]
    on_delete: ReferentialAction = ReferentialAction.NO_ACTION
    on_update: ReferentialAction = ReferentialAction.NO_ACTION


@dataclass(frozen=True)
class SchemaSnapshot:
    """All catalog data a detection run needs, indexed for lookup."""
    project_id: int
    tables: tuple[TableInfo, ...]
    columns: tuple[ColumnInfo, ...]
    routines: tuple[RoutineInfo, ...] = ()
    physical_fks: tuple[PhysicalFkInfo, ...] = ()

    _tables_by_id: dict = field(default_factory=dict, init=False, repr=False, compare=False)
    _columns_by_table: dict = field(default_factory=dict, init=False, repr=False, compare=False)
    _tables_by_name: dict = field(default_factory=dict, init=False, repr=False, compare=False)
    _routines_by_name: dict = field(default_factory=dict, init=False, repr=False, compare=False)
    _physical_pairs: frozenset = field(default=frozenset(), init=False, repr=False, compare=False)

    def __post_init__(self):
        by_table: dict[int, list[ColumnInfo]] = {}
        for column in self.columns:
            by_table.setdefault(column.table_id, []).append(column)
        for cols in by_table.values():
            cols.sort(key=lambda c: (c.ordinal, c.id))

        by_name: dict[str, list[TableInfo]] = {}
        for table in self.tables:
            by_name.setdefault(table.name.lower(), []).append(table)

        routines_by_name: dict[str, list[RoutineInfo]] = {}
        for routine in self.routines:
            routines_by_name.setdefault(routine.name.lower(), []).append(routine)

        pairs = set()
        for fk in self.physical_fks:
            pairs.add((fk.source_table_id, fk.source_column_ids,
                       fk.target_table_id, fk.target_column_ids))

        object.__setattr__(self, "_tables_by_id", {t.id: t for t in self.tables})
        object.__setattr__(self, "_columns_by_table", by_table)
        object.__setattr__(self, "_tables_by_name", by_name)
        object.__setattr__(self, "_routines_by_name", routines_by_name)
        object.__setattr__(self, "_physical_pairs", frozenset(pairs))

    # --- Lookups --------------------------------------------------------------

    def table(self, table_id: int) -> TableInfo | None:
        return self._tables_by_id.get(table_id)

    def columns_of(self, table_id: int) -> list[ColumnInfo]:
        return self._columns_by_table.get(table_id, [])

    def column_named(self, table_id: int, name: str) -> ColumnInfo | None:
        lowered = name.lower()
        for column in self.columns_of(table_id):
            if column.name.lower() == lowered:
                return column
        return None

    def primary_key(self, table_id: int) -> list[ColumnInfo]:
        """Primary-key columns of a table in ordinal order."""
        return [c for c in self.columns_of(table_id) if c.is_primary_key]

    def is_key_column(self, column: ColumnInfo) -> bool:
        """True when the column alone identifies a row (single-column PK or unique)."""
        if column.is_unique:
            return True
        pk = self.primary_key(column.table_id)
        return len(pk) == 1 and pk[0].id == column.id

    def tables_named(self, name: str, schema_name: str | None = None) -> list[TableInfo]:
        """Case-insensitive lookup, optionally restricted to a schema."""
        found = self._tables_by_name.get(name.lower(), [])
        if schema_name is None:
            return list(found)
        return [t for t in found if t.schema_name.lower() == schema_name.lower()]

    def routines_named(self, name: str, schema_name: str | None = None) -> list[RoutineInfo]:
        found = self._routines_by_name.get(name.lower(), [])
        if schema_name is None:
            return list(found)
        return [r for r in found if r.schema_name.lower() == schema_name.lower()]

    def is_physical_pair(
        self,
        source_table_id: int,
        source_column_ids: tuple[int, ...],
        target_table_id: int,
        target_column_ids: tuple[int, ...],
    ) -> bool:
        """True when a declared FK already covers exactly this mapping."""
        return (
            source_table_id, tuple(source_column_ids),
            target_table_id, tuple(target_column_ids),
        ) in self._physical_pairs

    def column_in_physical_fk(self, column_id: int, target_table_id: int) -> bool:
        """True when the column already references target_table_id physically."""
        return any(
            fk.target_table_id == target_table_id and column_id in fk.source_column_ids
            for fk in self.physical_fks
        )
