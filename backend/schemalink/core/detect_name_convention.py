"""Name-Convention Detector — proposes FKs from `<Table>Id` style column names.

Invariants:
    - PURE: reads the snapshot, returns DetectorOutput, no IO
    - A column that is the sole primary key of its own table is never a source
    - A table never references itself through this detector
    - Mappings already covered by a physical FK are never proposed
    - Target must expose a primary key whose type is compatible with the source column

Design Decisions:
    - Prefix resolution is tiered (exact > singular/plural > fuzzy); every table
      at the winning tier becomes a candidate flagged is_ambiguous when there are several
    - Composite keys: when the resolved target has a multi-column PK, the candidate
      maps every PK column to a same-named column on the source table, or nothing
"""

from schemalink.core.candidates import Candidate, DetectorOutput
from schemalink.core.data_types import are_compatible
from schemalink.core.domain_types import DiscoveryMethod
from schemalink.core.schema_snapshot import ColumnInfo, SchemaSnapshot, TableInfo
from schemalink.core.table_names import MatchTier, id_column_prefix, resolve_table
from schemalink.core.tuning import DetectionConfig

_TIER_LABEL = {
    MatchTier.EXACT: "exact name",
    MatchTier.PLURAL: "singular/plural form",
    MatchTier.FUZZY: "underscore-insensitive name",
}


def detect_name_convention(
    snapshot: SchemaSnapshot, config: DetectionConfig | None = None,
) -> DetectorOutput:
    """Scan every `*Id` column and resolve its prefix to a referenced table."""
    config = config or DetectionConfig()
    output = DetectorOutput()
    seen: set = set()

    for table in sorted(snapshot.tables, key=lambda t: t.id):
        for column in snapshot.columns_of(table.id):
            for candidate in _candidates_for_column(snapshot, table, column, config):
                if candidate.key in seen:
                    continue
                seen.add(candidate.key)
                output.candidates.append(candidate)
    return output


def _candidates_for_column(
    snapshot: SchemaSnapshot,
    table: TableInfo,
    column: ColumnInfo,
    config: DetectionConfig,
) -> list[Candidate]:
    prefix = id_column_prefix(column.name)
    if prefix is None or _is_sole_primary_key(snapshot, column):
        return []

    tier, targets = resolve_table(snapshot, prefix)
    targets = [t for t in targets if t.id != table.id]
    if tier is None or not targets:
        return []

    ambiguous = len(targets) > 1
    found = []
    for target in targets:
        if snapshot.column_in_physical_fk(column.id, target.id):
            continue
        pk = snapshot.primary_key(target.id)
        if len(pk) == 1:
            candidate = _single_column(
                snapshot, table, column, target, pk[0], tier, ambiguous, config,
            )
        elif len(pk) > 1:
            candidate = _composite(
                snapshot, table, column, target, pk, tier, ambiguous, config,
            )
        else:
            candidate = None
        if candidate is not None:
            found.append(candidate)
    return found


def _single_column(
    snapshot: SchemaSnapshot,
    table: TableInfo,
    column: ColumnInfo,
    target: TableInfo,
    target_pk: ColumnInfo,
    tier: MatchTier,
    ambiguous: bool,
    config: DetectionConfig,
) -> Candidate | None:
    if not are_compatible(column.data_type, target_pk.data_type):
        return None
    source_ids = (column.id,)
    target_ids = (target_pk.id,)
    if snapshot.is_physical_pair(table.id, source_ids, target.id, target_ids):
        return None
    return Candidate(
        source_table_id=table.id,
        source_column_ids=source_ids,
        target_table_id=target.id,
        target_column_ids=target_ids,
        method=DiscoveryMethod.NAME_CONVENTION,
        raw_score=config.name_convention_score,
        reason=(
            f"{table.name}.{column.name} matches {target.name}.{target_pk.name} "
            f"by {_TIER_LABEL[tier]}"
        ),
        is_ambiguous=ambiguous,
    )


def _composite(
    snapshot: SchemaSnapshot,
    table: TableInfo,
    column: ColumnInfo,
    target: TableInfo,
    target_pk: list[ColumnInfo],
    tier: MatchTier,
    ambiguous: bool,
    config: DetectionConfig,
) -> Candidate | None:
    source_columns = []
    for pk_column in target_pk:
        match = snapshot.column_named(table.id, pk_column.name)
        if match is None or not are_compatible(match.data_type, pk_column.data_type):
            return None
        source_columns.append(match)
    if column.id not in {c.id for c in source_columns}:
        return None

    source_ids = tuple(c.id for c in source_columns)
    target_ids = tuple(c.id for c in target_pk)
    if snapshot.is_physical_pair(table.id, source_ids, target.id, target_ids):
        return None
    names = ", ".join(c.name for c in source_columns)
    return Candidate(
        source_table_id=table.id,
        source_column_ids=source_ids,
        target_table_id=target.id,
        target_column_ids=target_ids,
        method=DiscoveryMethod.NAME_CONVENTION,
        raw_score=config.name_convention_composite_score,
        reason=(
            f"{table.name}({names}) covers composite key of {target.name} "
            f"by {_TIER_LABEL[tier]}"
        ),
        is_ambiguous=ambiguous,
    )


def _is_sole_primary_key(snapshot: SchemaSnapshot, column: ColumnInfo) -> bool:
    pk = snapshot.primary_key(column.table_id)
    return len(pk) == 1 and pk[0].id == column.id
