"""SQL Dependency Extraction — routine → table/routine edges from definition text.

Invariants:
    - PURE: snapshot in, ExtractedDependencies out
    - FROM/JOIN → SELECT, INTO → INSERT, UPDATE → UPDATE, DELETE → DELETE, EXEC → EXEC
    - Each (source, target, type) triple appears at most once
    - Names that do not resolve to exactly one registry entity are dropped silently;
      only unparseable routines produce warnings

Design Decisions:
    - DML targets written as aliases (`UPDATE o SET ... FROM Orders o`) resolve
      through the statement's alias list
    - FROM references that are not tables fall back to views/functions (SELECT edge)
"""

from dataclasses import dataclass, field

from schemalink.core.domain_types import DependencyType, EntityRef, EntityType
from schemalink.core.errors import ParseSkipped
from schemalink.core.schema_snapshot import SchemaSnapshot
from schemalink.core.sql_lexer import ScannedStatement, SqlLexError, TableReference, scan_sql
from schemalink.core.table_names import resolve_qualified_table, split_qualified_name

_CLAUSE_DEPENDENCY = {
    "FROM": DependencyType.SELECT,
    "JOIN": DependencyType.SELECT,
    "INTO": DependencyType.INSERT,
    "UPDATE": DependencyType.UPDATE,
    "DELETE": DependencyType.DELETE,
}


@dataclass(frozen=True)
class ExtractedDependency:
    source: EntityRef
    target: EntityRef
    dependency_type: DependencyType


@dataclass
class ExtractedDependencies:
    dependencies: list[ExtractedDependency] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def extract_sql_dependencies(snapshot: SchemaSnapshot) -> ExtractedDependencies:
    """Scan every routine definition for table and routine references."""
    result = ExtractedDependencies()
    seen: set[ExtractedDependency] = set()
    for routine in sorted(snapshot.routines, key=lambda r: r.id):
        try:
            statements = scan_sql(routine.definition)
        except SqlLexError as e:
            result.warnings.append(ParseSkipped(routine.name, str(e)).message)
            continue
        source = EntityRef(routine.routine_type, routine.id)
        for statement in statements:
            for dependency in _statement_dependencies(snapshot, source, statement):
                if dependency not in seen:
                    seen.add(dependency)
                    result.dependencies.append(dependency)
    return result


def _statement_dependencies(
    snapshot: SchemaSnapshot,
    source: EntityRef,
    statement: ScannedStatement,
) -> list[ExtractedDependency]:
    found = []
    for ref in statement.tables:
        dependency_type = _CLAUSE_DEPENDENCY.get(ref.clause)
        if dependency_type is None:
            continue
        target = _resolve_reference(snapshot, statement, ref)
        if target is not None and target != source:
            found.append(ExtractedDependency(source, target, dependency_type))
    for name in statement.executes:
        target = _resolve_routine(snapshot, name)
        if target is not None and target != source:
            found.append(ExtractedDependency(source, target, DependencyType.EXEC))
    return found


def _resolve_reference(
    snapshot: SchemaSnapshot, statement: ScannedStatement, ref: TableReference,
) -> EntityRef | None:
    name = ref.name
    if ref.clause in ("UPDATE", "DELETE") and "." not in name:
        for other in statement.tables:
            if other is not ref and other.alias and other.alias.lower() == name.lower():
                name = other.name
                break
    if name.startswith(("#", "@")):
        return None
    if not ref.is_call:
        tables = resolve_qualified_table(snapshot, name)
        if len(tables) == 1:
            return EntityRef(EntityType.TABLE, tables[0].id)
    if ref.clause in ("FROM", "JOIN"):
        return _resolve_routine(snapshot, name, (EntityType.VIEW, EntityType.FUNCTION))
    return None


def _resolve_routine(
    snapshot: SchemaSnapshot,
    raw: str,
    allowed: tuple[EntityType, ...] = (EntityType.SP, EntityType.FUNCTION),
) -> EntityRef | None:
    schema_name, name = split_qualified_name(raw)
    routines = [
        r for r in snapshot.routines_named(name, schema_name)
        if r.routine_type in allowed
    ]
    if len(routines) != 1:
        return None
    return EntityRef(routines[0].routine_type, routines[0].id)
