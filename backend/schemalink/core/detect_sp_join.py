"""SP-Join Detector — proposes FKs from column equalities in routine bodies.

Invariants:
    - PURE: reads the snapshot, returns DetectorOutput, no IO
    - Only `q1.c1 = q2.c2` inside ON or WHERE counts as join evidence
    - The side whose column is a single-column key (PK or unique) becomes the target;
      pairs where neither side is a key are skipped
    - Self-joins, temp tables, unresolved qualifiers and physical FK pairs are skipped
    - One unparseable routine yields one warning and never stops the scan

Design Decisions:
    - Evidence accumulates per mapping: every routine that joins the same columns
      is listed, but the candidate is emitted once per mapping
    - Ambiguous table names (same name in several schemas) are skipped rather
      than guessed: join evidence must point at concrete tables
"""

from schemalink.core.candidates import Candidate, DetectorOutput
from schemalink.core.domain_types import DiscoveryMethod
from schemalink.core.errors import ParseSkipped
from schemalink.core.schema_snapshot import ColumnInfo, RoutineInfo, SchemaSnapshot
from schemalink.core.sql_lexer import ColumnEquality, ScannedStatement, SqlLexError, scan_sql
from schemalink.core.table_names import resolve_qualified_table
from schemalink.core.tuning import DetectionConfig


def detect_sp_join(
    snapshot: SchemaSnapshot, config: DetectionConfig | None = None,
) -> DetectorOutput:
    """Scan routine definitions for join conditions between table columns."""
    config = config or DetectionConfig()
    output = DetectorOutput()
    found: dict = {}

    for routine in sorted(snapshot.routines, key=lambda r: r.id):
        try:
            statements = scan_sql(routine.definition)
        except SqlLexError as e:
            output.warnings.append(ParseSkipped(routine.name, str(e)).message)
            continue
        for statement in statements:
            for equality in statement.equalities:
                pair = _resolve_pair(snapshot, statement, equality)
                if pair is None:
                    continue
                _record(found, pair, routine)

    for (source, target), routines in found.items():
        output.candidates.append(_build_candidate(snapshot, source, target, routines, config))
    return output


def _resolve_pair(
    snapshot: SchemaSnapshot,
    statement: ScannedStatement,
    equality: ColumnEquality,
) -> tuple[ColumnInfo, ColumnInfo] | None:
    """(source column, target column) for an equality, or None to skip."""
    left = _resolve_column(
        snapshot, statement, equality.left_qualifier,
        equality.left_column, equality.position,
    )
    right = _resolve_column(
        snapshot, statement, equality.right_qualifier,
        equality.right_column, equality.position,
    )
    if left is None or right is None or left.table_id == right.table_id:
        return None

    left_key = snapshot.is_key_column(left)
    right_key = snapshot.is_key_column(right)
    if right_key and not left_key:
        source, target = left, right
    elif left_key and not right_key:
        source, target = right, left
    elif left_key and right_key:
        # Both keys (1:1): the primary-key side is referenced
        if _is_primary(snapshot, right) and not _is_primary(snapshot, left):
            source, target = left, right
        elif _is_primary(snapshot, left) and not _is_primary(snapshot, right):
            source, target = right, left
        else:
            source, target = sorted((left, right), key=lambda c: c.table_id)[::-1]
    else:
        return None

    if snapshot.is_physical_pair(
        source.table_id, (source.id,), target.table_id, (target.id,),
    ):
        return None
    return source, target


def _resolve_column(
    snapshot: SchemaSnapshot,
    statement: ScannedStatement,
    qualifier: str,
    column_name: str,
    position: int,
) -> ColumnInfo | None:
    table_name = statement.resolve_qualifier(qualifier, position)
    if table_name is None or table_name.lstrip().startswith(("#", "@")):
        return None
    tables = resolve_qualified_table(snapshot, table_name)
    if len(tables) != 1:
        return None
    return snapshot.column_named(tables[0].id, column_name)


def _is_primary(snapshot: SchemaSnapshot, column: ColumnInfo) -> bool:
    pk = snapshot.primary_key(column.table_id)
    return len(pk) == 1 and pk[0].id == column.id


def _record(found: dict, pair: tuple[ColumnInfo, ColumnInfo], routine: RoutineInfo) -> None:
    routines = found.setdefault(pair, [])
    if routine.name not in routines:
        routines.append(routine.name)


def _build_candidate(
    snapshot: SchemaSnapshot,
    source: ColumnInfo,
    target: ColumnInfo,
    routines: list[str],
    config: DetectionConfig,
) -> Candidate:
    source_table = snapshot.table(source.table_id)
    target_table = snapshot.table(target.table_id)
    return Candidate(
        source_table_id=source.table_id,
        source_column_ids=(source.id,),
        target_table_id=target.table_id,
        target_column_ids=(target.id,),
        method=DiscoveryMethod.SP_JOIN,
        raw_score=config.sp_join_score,
        reason=(
            f"{source_table.name}.{source.name} joined to "
            f"{target_table.name}.{target.name} in {', '.join(routines)}"
        ),
        evidence=tuple(routines),
    )
