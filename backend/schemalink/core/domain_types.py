"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - ProjectId, TableId, ColumnId, RoutineId wrap ints — never mix them in domain logic
    - ConfidenceScore is bounded 0.0–1.0
    - Criticality is bounded 1–5, default 3
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and to DB string columns without custom encoders
    - EntityRef is the single graph key; (type, id) pairs never travel as loose tuples
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

ProjectId = NewType("ProjectId", int)
TableId = NewType("TableId", int)
ColumnId = NewType("ColumnId", int)
RoutineId = NewType("RoutineId", int)
LogicalFkId = NewType("LogicalFkId", int)


# ─── Value Types ─────────────────────────────────────────────────

ConfidenceScore = NewType("ConfidenceScore", float)   # 0.0–1.0
Criticality = NewType("Criticality", int)             # 1–5

DEFAULT_CRITICALITY = 3
MIN_CRITICALITY = 1
MAX_CRITICALITY = 5
MANUAL_CONFIDENCE = 1.0
DETECTION_ALGORITHM_VERSION = "2.1"


# ─── Enums ───────────────────────────────────────────────────────

class EntityType(str, Enum):
    """Kinds of schema entity addressable in the dependency graph."""
    TABLE = "TABLE"
    COLUMN = "COLUMN"
    SP = "SP"
    FUNCTION = "FUNCTION"
    VIEW = "VIEW"


ROUTINE_TYPES = frozenset({EntityType.SP, EntityType.FUNCTION, EntityType.VIEW})


class DependencyType(str, Enum):
    """How the source entity depends on the target entity."""
    FK = "FK"
    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    EXEC = "EXEC"


class DiscoveryMethod(str, Enum):
    """Origin of a logical foreign key."""
    MANUAL = "MANUAL"
    NAME_CONVENTION = "NAME_CONVENTION"
    SP_JOIN = "SP_JOIN"
    CORROBORATED = "CORROBORATED"


class FkStatus(str, Enum):
    """Curation states — maps to DB `status` column."""
    SUGGESTED = "SUGGESTED"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"


# Listing order for a table's relationships: work queue first.
STATUS_SORT_ORDER = {
    FkStatus.SUGGESTED: 0,
    FkStatus.CONFIRMED: 1,
    FkStatus.REJECTED: 2,
}


class RunStatus(str, Enum):
    """Lifecycle of one detection run — maps to detection_runs.status."""
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class CurationAction(str, Enum):
    """User actions on a logical foreign key."""
    CONFIRM = "confirm"
    REJECT = "reject"
    RESTORE = "restore"
    DELETE = "delete"


class ChangeType(str, Enum):
    """Proposed change being assessed by impact analysis."""
    MODIFY = "MODIFY"
    DELETE = "DELETE"


class ImpactLevel(str, Enum):
    """Per-entity impact classification, most severe first."""
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


IMPACT_LEVEL_RANK = {
    ImpactLevel.CRITICAL: 4,
    ImpactLevel.HIGH: 3,
    ImpactLevel.MEDIUM: 2,
    ImpactLevel.LOW: 1,
}


class EdgeKind(str, Enum):
    """Provenance of an edge in the impact graph."""
    PHYSICAL_FK = "PHYSICAL_FK"
    LOGICAL_FK = "LOGICAL_FK"
    DEPENDENCY = "DEPENDENCY"


class ConfidenceBand(str, Enum):
    """Human-readable bucket for a confidence score."""
    LOW = "LOW"
    POSSIBLE = "POSSIBLE"
    LIKELY = "LIKELY"
    VERY_LIKELY = "VERY_LIKELY"
    HIGHLY_CONFIDENT = "HIGHLY_CONFIDENT"


class ReferentialAction(str, Enum):
    """ON DELETE / ON UPDATE action of a physical foreign key."""
    NO_ACTION = "NO ACTION"
    RESTRICT = "RESTRICT"
    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"


# ─── Graph Key ───────────────────────────────────────────────────

@dataclass(frozen=True, order=True)
class EntityRef:
    """Graph node key: (entity type, registry id)."""
    entity_type: EntityType
    entity_id: int

    def __str__(self) -> str:
        return f"{self.entity_type.value}:{self.entity_id}"


def clamp_criticality(value: int | None) -> int:
    """Registry criticality normalised to 1–5 (missing → 3)."""
    if value is None:
        return DEFAULT_CRITICALITY
    return max(MIN_CRITICALITY, min(MAX_CRITICALITY, value))
