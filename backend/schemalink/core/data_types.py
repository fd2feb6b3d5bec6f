"""Data Type Compatibility — decides whether two column types can join.

Invariants:
    - Comparison ignores case, length/precision suffixes and surrounding brackets
    - Types in the same family are compatible; unknown types only match themselves

Design Decisions:
    - Families cover SQL Server and PostgreSQL spellings: catalogs from either
      engine flow through the same detectors
"""

import re

_FAMILIES: dict[str, str] = {}

for _name in (
    "int", "integer", "bigint", "smallint", "tinyint",
    "int2", "int4", "int8", "serial", "bigserial", "smallserial",
):
    _FAMILIES[_name] = "integer_family"

for _name in ("uniqueidentifier", "uuid"):
    _FAMILIES[_name] = "guid"

for _name in (
    "nvarchar", "varchar", "char", "nchar", "text", "ntext",
    "character varying", "character", "citext", "bpchar",
):
    _FAMILIES[_name] = "string_family"

for _name in ("decimal", "numeric", "money", "smallmoney"):
    _FAMILIES[_name] = "decimal_family"

_SUFFIX = re.compile(r"\s*\(.*\)\s*$")


def normalize_type(data_type: str | None) -> str:
    """Lower-case base type name: 'NVARCHAR(50)' -> 'nvarchar'."""
    if not data_type:
        return ""
    cleaned = data_type.strip().strip("[]").lower()
    return _SUFFIX.sub("", cleaned).strip()


def type_family(data_type: str | None) -> str:
    normalized = normalize_type(data_type)
    return _FAMILIES.get(normalized, normalized)


def are_compatible(left: str | None, right: str | None) -> bool:
    """True when both types belong to the same family."""
    left_family = type_family(left)
    right_family = type_family(right)
    if not left_family or not right_family:
        return False
    return left_family == right_family
