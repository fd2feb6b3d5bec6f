"""Logical FK Schemas — request/response models for detection and curation endpoints.

Invariants:
    - Column id lists are bounded here; emptiness and equal length are checked in core
      (validate_column_mapping) so the error codes stay EMPTY_COLUMN_LIST and
      COLUMN_COUNT_MISMATCH
    - Responses decode stored column id text back into int lists
    - confidence_band is derived on the way out, never stored
    - rejected_score is the latest detector score seen while the row was REJECTED

Design Decisions:
    - from_model classmethods keep ORM → API mapping next to the schema it builds
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from schemalink.core.confidence import classify_confidence
from schemalink.core.domain_types import ConfidenceBand, FkStatus, RunStatus
from schemalink.models.column_ids import decode_column_ids, decode_methods
from schemalink.models.detection_run import DetectionRun
from schemalink.models.logical_foreign_key import LogicalForeignKey
from schemalink.models.physical_foreign_key import PhysicalForeignKey


class LogicalFkResponse(BaseModel):
    """One logical FK with curation state."""
    id: int
    project_id: int
    source_table_id: int
    source_column_ids: list[int]
    target_table_id: int
    target_column_ids: list[int]
    discovery_method: str
    discovery_methods: list[str]
    confidence_score: float
    confidence_band: ConfidenceBand
    detection_reason: str | None = None
    is_ambiguous: bool = False
    status: FkStatus
    confirmed_by: int | None = None
    confirmed_at: datetime | None = None
    rejected_by: int | None = None
    rejected_at: datetime | None = None
    rejected_score: float | None = None
    notes: str | None = None
    created_by: int | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, row: LogicalForeignKey) -> "LogicalFkResponse":
        return cls(
            id=row.id,
            project_id=row.project_id,
            source_table_id=row.source_table_id,
            source_column_ids=list(decode_column_ids(row.source_column_ids)),
            target_table_id=row.target_table_id,
            target_column_ids=list(decode_column_ids(row.target_column_ids)),
            discovery_method=row.discovery_method,
            discovery_methods=list(decode_methods(row.discovery_methods)),
            confidence_score=row.confidence_score,
            confidence_band=classify_confidence(row.confidence_score),
            detection_reason=row.detection_reason,
            is_ambiguous=row.is_ambiguous,
            status=FkStatus(row.status),
            confirmed_by=row.confirmed_by,
            confirmed_at=row.confirmed_at,
            rejected_by=row.rejected_by,
            rejected_at=row.rejected_at,
            rejected_score=row.rejected_score,
            notes=row.notes,
            created_by=row.created_by,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class ManualFkCreate(BaseModel):
    """User-declared relationship between two tables."""
    source_table_id: int = Field(gt=0)
    source_column_ids: list[int] = Field(max_length=16)
    target_table_id: int = Field(gt=0)
    target_column_ids: list[int] = Field(max_length=16)
    notes: str | None = Field(None, max_length=2000)

    @field_validator("notes")
    @classmethod
    def strip_notes(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class ManualFkResponse(BaseModel):
    logical_fk: LogicalFkResponse
    created: bool
    warnings: list[str] = []


class ConfirmRequest(BaseModel):
    notes: str | None = Field(None, max_length=2000)


class RejectRequest(BaseModel):
    reason: str | None = Field(None, max_length=2000)


class DetectionResponse(BaseModel):
    """Outcome of one detect-candidates batch."""
    run_id: int
    candidate_count: int
    created_count: int
    updated_count: int
    skipped_count: int = 0
    warnings: list[str] = []


class DetectionRunResponse(BaseModel):
    id: int
    project_id: int
    algorithm_version: str
    status: RunStatus
    candidates_found: int
    created_count: int
    updated_count: int
    skipped_count: int = 0
    warnings: list[str] = []
    started_by: int | None = None
    started_at: datetime
    finished_at: datetime | None = None

    @classmethod
    def from_model(cls, row: DetectionRun) -> "DetectionRunResponse":
        return cls(
            id=row.id,
            project_id=row.project_id,
            algorithm_version=row.algorithm_version,
            status=RunStatus(row.status),
            candidates_found=row.candidates_found,
            created_count=row.created_count,
            updated_count=row.updated_count,
            skipped_count=row.skipped_count,
            warnings=list(row.warnings or []),
            started_by=row.started_by,
            started_at=row.started_at,
            finished_at=row.finished_at,
        )


class PhysicalFkResponse(BaseModel):
    """Declared FK constraint, shown next to logical ones."""
    id: int
    constraint_name: str
    source_table_id: int
    source_column_ids: list[int]
    target_table_id: int
    target_column_ids: list[int]
    on_delete_action: str
    on_update_action: str

    @classmethod
    def from_model(cls, row: PhysicalForeignKey) -> "PhysicalFkResponse":
        return cls(
            id=row.id,
            constraint_name=row.constraint_name,
            source_table_id=row.source_table_id,
            source_column_ids=list(decode_column_ids(row.source_column_ids)),
            target_table_id=row.target_table_id,
            target_column_ids=list(decode_column_ids(row.target_column_ids)),
            on_delete_action=row.on_delete_action,
            on_update_action=row.on_update_action,
        )
