"""Dependency ORM — typed edge between two catalogued entities.

Invariants:
    - Unique per (project_id, source_type, source_id, target_type, target_id, dependency_type)
    - Rediscovery refreshes confidence_score, discovered_by and discovered_at only
    - source/target are (entity type, registry id) pairs; no DB-level FK because
      the id space depends on the type

Design Decisions:
    - Polymorphic (type, id) columns instead of one FK column per entity kind:
      the impact graph treats every edge the same way
"""

from datetime import datetime, timezone

from sqlalchemy import (
    String, Integer, Float, DateTime, Index, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from schemalink.db.base import Base


class Dependency(Base):
    """Typed dependency edge: source depends on target."""
    __tablename__ = "dependencies"
    __table_args__ = (
        UniqueConstraint(
            "project_id", "source_type", "source_id",
            "target_type", "target_id", "dependency_type",
            name="uq_dependencies_edge",
        ),
        CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 1",
            name="ck_dependencies_confidence",
        ),
        Index("ix_dependencies_target", "project_id", "target_type", "target_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    source_type: Mapped[str] = mapped_column(String(20), nullable=False)
    source_id: Mapped[int] = mapped_column(Integer, nullable=False)
    target_type: Mapped[str] = mapped_column(String(20), nullable=False)
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    dependency_type: Mapped[str] = mapped_column(String(20), nullable=False)
    confidence_score: Mapped[float] = mapped_column(
        Float, nullable=False, default=1.0,
    )
    discovered_by: Mapped[str] = mapped_column(
        String(50), nullable=False, default="MANUAL",
    )
    discovered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
