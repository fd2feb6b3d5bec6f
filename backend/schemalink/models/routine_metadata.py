"""RoutineMetadata ORM — stored procedure, function or view with its source text.

Invariants:
    - routine_type is one of SP, FUNCTION, VIEW
    - definition may be NULL (encrypted or unreadable routines)
"""

from datetime import datetime, timezone

from sqlalchemy import String, Text, Integer, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from schemalink.db.base import Base


class RoutineMetadata(Base):
    """Catalogued routine."""
    __tablename__ = "routines_metadata"
    __table_args__ = (
        UniqueConstraint(
            "project_id", "schema_name", "routine_name",
            name="uq_routines_metadata_name",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    schema_name: Mapped[str] = mapped_column(
        String(128), nullable=False, default="dbo",
    )
    routine_name: Mapped[str] = mapped_column(String(128), nullable=False)
    routine_type: Mapped[str] = mapped_column(String(20), nullable=False)
    definition: Mapped[str | None] = mapped_column(Text, nullable=True)
    criticality_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
