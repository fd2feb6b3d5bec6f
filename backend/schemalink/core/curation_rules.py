"""Curation Rules — the logical-FK status machine as pure checks.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Return error dict on violation, None on success
    - confirm:  SUGGESTED | REJECTED  → CONFIRMED
    - reject:   SUGGESTED | CONFIRMED → REJECTED
    - restore:  REJECTED → SUGGESTED (never for MANUAL-origin rows)
    - delete:   allowed from any status

Design Decisions:
    - ALLOWED_SOURCES is also what the storage layer puts in its
      `WHERE status IN (...)` clause, so the check and the write cannot drift
    - Manual rows skip SUGGESTED entirely: "restoring" one would invent a
      detector suggestion nobody made
"""

from schemalink.core.domain_types import CurationAction, DiscoveryMethod, FkStatus


ALLOWED_SOURCES: dict[CurationAction, frozenset[FkStatus]] = {
    CurationAction.CONFIRM: frozenset({FkStatus.SUGGESTED, FkStatus.REJECTED}),
    CurationAction.REJECT: frozenset({FkStatus.SUGGESTED, FkStatus.CONFIRMED}),
    CurationAction.RESTORE: frozenset({FkStatus.REJECTED}),
    CurationAction.DELETE: frozenset(FkStatus),
}

RESULTING_STATUS: dict[CurationAction, FkStatus | None] = {
    CurationAction.CONFIRM: FkStatus.CONFIRMED,
    CurationAction.REJECT: FkStatus.REJECTED,
    CurationAction.RESTORE: FkStatus.SUGGESTED,
    CurationAction.DELETE: None,
}


def validate_transition(
    action: CurationAction,
    current: FkStatus,
    discovery_method: DiscoveryMethod | None = None,
) -> dict | None:
    """Check one curation action against the row's current state."""
    if current not in ALLOWED_SOURCES[action]:
        return _error(
            "INVALID_TRANSITION",
            f"Cannot {action.value} a relationship in status {current.value}.",
        )
    if action == CurationAction.RESTORE and discovery_method == DiscoveryMethod.MANUAL:
        return _error(
            "MANUAL_NOT_RESTORABLE",
            "Manually created relationships cannot be restored to SUGGESTED.",
        )
    return None


def validate_column_mapping(
    source_column_ids: list[int], target_column_ids: list[int],
) -> dict | None:
    """Column lists must be non-empty, equal length, without repeats."""
    if not source_column_ids or not target_column_ids:
        return _error("EMPTY_COLUMN_LIST", "Source and target columns are required.")
    if len(source_column_ids) != len(target_column_ids):
        return _error(
            "COLUMN_COUNT_MISMATCH",
            f"Source has {len(source_column_ids)} column(s), "
            f"target has {len(target_column_ids)}.",
        )
    if len(set(source_column_ids)) != len(source_column_ids) or \
            len(set(target_column_ids)) != len(target_column_ids):
        return _error("DUPLICATE_COLUMN", "A column may appear only once per side.")
    return None


def _error(code: str, message: str) -> dict:
    return {"status": "error", "error_code": code, "message": message}
