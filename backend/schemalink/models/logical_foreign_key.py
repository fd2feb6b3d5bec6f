"""LogicalForeignKey ORM — curated relationship not declared in the database.

Invariants:
    - Unique per (project_id, source_table_id, source_column_ids, target_table_id, target_column_ids)
    - Column id lists are canonical JSON text (see column_ids.py), equal length, non-empty
    - status is one of SUGGESTED, CONFIRMED, REJECTED
    - REJECTED rows are kept: they stop re-detection from re-suggesting the mapping
    - confirmed_by/confirmed_at set iff status is CONFIRMED

Design Decisions:
    - Column lists as text instead of a child table: the uniqueness tuple stays a
      plain composite constraint usable by INSERT ... ON CONFLICT
    - rejected_score tracks what detection would have scored a rejected mapping,
      without touching the user's decision
"""

from datetime import datetime, timezone

from sqlalchemy import (
    String, Text, Integer, Float, Boolean, DateTime, ForeignKey,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from schemalink.db.base import Base


class LogicalForeignKey(Base):
    """Logical (undeclared) foreign key with curation state."""
    __tablename__ = "logical_foreign_keys"
    __table_args__ = (
        UniqueConstraint(
            "project_id", "source_table_id", "source_column_ids",
            "target_table_id", "target_column_ids",
            name="uq_logical_foreign_keys_mapping",
        ),
        CheckConstraint(
            "status IN ('SUGGESTED', 'CONFIRMED', 'REJECTED')",
            name="ck_logical_foreign_keys_status",
        ),
        CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 1",
            name="ck_logical_foreign_keys_confidence",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    source_table_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tables_metadata.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    source_column_ids: Mapped[str] = mapped_column(String(400), nullable=False)
    target_table_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tables_metadata.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    target_column_ids: Mapped[str] = mapped_column(String(400), nullable=False)

    # Discovery
    discovery_method: Mapped[str] = mapped_column(String(20), nullable=False)
    discovery_methods: Mapped[str] = mapped_column(String(100), nullable=False)
    confidence_score: Mapped[float] = mapped_column(Float, nullable=False)
    detection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_ambiguous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Curation
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="SUGGESTED", index=True,
    )
    rejected_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    confirmed_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    rejected_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
