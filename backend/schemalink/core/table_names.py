"""Table Name Resolution — maps a column-name prefix to candidate tables.

Invariants:
    - Resolution is case-insensitive
    - Returns every table at the best matching tier; an empty list means no match
    - Tiers are ordered: EXACT < PLURAL < FUZZY (lower wins)

Design Decisions:
    - Tiered result instead of first-hit: ties at the best tier are reported
      as ambiguous candidates rather than silently picking one
    - Pluralisation is deliberately naive (s, es, ies): schema names rarely use
      irregular plurals and a wrong guess is only ever a SUGGESTED row
"""

import re
from enum import IntEnum

from schemalink.core.schema_snapshot import SchemaSnapshot, TableInfo


class MatchTier(IntEnum):
    EXACT = 0
    PLURAL = 1
    FUZZY = 2


_FK_COLUMN = re.compile(r"^(.+?)_?id$", re.IGNORECASE)


def id_column_prefix(column_name: str) -> str | None:
    """'CustomerId' -> 'Customer', 'order_id' -> 'order', 'Name' -> None."""
    match = _FK_COLUMN.match(column_name)
    if not match:
        return None
    prefix = match.group(1).rstrip("_")
    return prefix or None


def name_variants(name: str) -> list[str]:
    """Singular/plural spellings of a name, excluding the name itself."""
    lowered = name.lower()
    variants = [lowered + "s", lowered + "es"]
    if lowered.endswith("ies") and len(lowered) > 3:
        variants.append(lowered[:-3] + "y")
    if lowered.endswith("es") and len(lowered) > 2:
        variants.append(lowered[:-2])
    if lowered.endswith("s") and len(lowered) > 1:
        variants.append(lowered[:-1])
    if lowered.endswith("y") and len(lowered) > 1:
        variants.append(lowered[:-1] + "ies")
    seen = []
    for variant in variants:
        if variant != lowered and variant not in seen:
            seen.append(variant)
    return seen


def split_qualified_name(raw: str) -> tuple[str | None, str]:
    """'[dbo].[Orders]' -> ('dbo', 'Orders'); 'Orders' -> (None, 'Orders')."""
    parts = [p.strip().strip('[]"`') for p in raw.split(".") if p.strip()]
    if not parts:
        return None, ""
    if len(parts) == 1:
        return None, parts[0]
    return parts[-2], parts[-1]


def resolve_table(
    snapshot: SchemaSnapshot, name: str,
) -> tuple[MatchTier | None, list[TableInfo]]:
    """Find tables matching a bare name at the best available tier."""
    lowered = name.lower()
    exact = snapshot.tables_named(lowered)
    if exact:
        return MatchTier.EXACT, _sorted(exact)

    plural: list[TableInfo] = []
    for variant in name_variants(lowered):
        plural.extend(snapshot.tables_named(variant))
    if plural:
        return MatchTier.PLURAL, _sorted(plural)

    squashed = lowered.replace("_", "")
    wanted = {squashed, *name_variants(squashed)}
    fuzzy = [
        t for t in snapshot.tables
        if t.name.lower().replace("_", "") in wanted
    ]
    if fuzzy:
        return MatchTier.FUZZY, _sorted(fuzzy)
    return None, []


def resolve_qualified_table(
    snapshot: SchemaSnapshot, raw: str,
) -> list[TableInfo]:
    """Exact lookup of a possibly schema-qualified, bracketed table reference."""
    schema_name, name = split_qualified_name(raw)
    if not name:
        return []
    matches = snapshot.tables_named(name, schema_name)
    if not matches and schema_name is not None:
        matches = snapshot.tables_named(name)
    return _sorted(matches)


def _sorted(tables: list[TableInfo]) -> list[TableInfo]:
    unique = {t.id: t for t in tables}
    return [unique[k] for k in sorted(unique)]
