"""Curation Rules — tests for the logical-FK status machine and column mapping checks."""

import pytest

from schemalink.core.curation_rules import (
    RESULTING_STATUS, validate_column_mapping, validate_transition,
)
from schemalink.core.domain_types import CurationAction, DiscoveryMethod, FkStatus


# ─── validate_transition ─────────────────────────────────────────

@pytest.mark.parametrize("action,current", [
    (CurationAction.CONFIRM, FkStatus.SUGGESTED),
    (CurationAction.CONFIRM, FkStatus.REJECTED),
    (CurationAction.REJECT, FkStatus.SUGGESTED),
    (CurationAction.REJECT, FkStatus.CONFIRMED),
    (CurationAction.RESTORE, FkStatus.REJECTED),
    (CurationAction.DELETE, FkStatus.SUGGESTED),
    (CurationAction.DELETE, FkStatus.CONFIRMED),
    (CurationAction.DELETE, FkStatus.REJECTED),
])
def test_allowed_transitions(action, current):
    assert validate_transition(action, current, DiscoveryMethod.NAME_CONVENTION) is None


@pytest.mark.parametrize("action,current", [
    (CurationAction.CONFIRM, FkStatus.CONFIRMED),
    (CurationAction.REJECT, FkStatus.REJECTED),
    (CurationAction.RESTORE, FkStatus.SUGGESTED),
    (CurationAction.RESTORE, FkStatus.CONFIRMED),
])
def test_rejected_transitions(action, current):
    result = validate_transition(action, current)
    assert result["status"] == "error"
    assert result["error_code"] == "INVALID_TRANSITION"
    assert current.value in result["message"]


def test_manual_row_cannot_be_restored():
    result = validate_transition(
        CurationAction.RESTORE, FkStatus.REJECTED, DiscoveryMethod.MANUAL,
    )
    assert result["error_code"] == "MANUAL_NOT_RESTORABLE"


def test_manual_row_can_be_rejected():
    assert validate_transition(
        CurationAction.REJECT, FkStatus.CONFIRMED, DiscoveryMethod.MANUAL,
    ) is None


def test_resulting_status():
    assert RESULTING_STATUS[CurationAction.CONFIRM] == FkStatus.CONFIRMED
    assert RESULTING_STATUS[CurationAction.RESTORE] == FkStatus.SUGGESTED
    assert RESULTING_STATUS[CurationAction.DELETE] is None


# ─── validate_column_mapping ─────────────────────────────────────

def test_mapping_ok():
    assert validate_column_mapping([1, 2], [3, 4]) is None


def test_mapping_empty():
    assert validate_column_mapping([], [])["error_code"] == "EMPTY_COLUMN_LIST"


def test_mapping_count_mismatch():
    result = validate_column_mapping([1, 2], [3])
    assert result["error_code"] == "COLUMN_COUNT_MISMATCH"
    assert "2 column(s)" in result["message"]


def test_mapping_duplicate_column():
    assert validate_column_mapping([1, 1], [3, 4])["error_code"] == "DUPLICATE_COLUMN"
