"""TableMetadata ORM — one catalogued table of a target database.

Invariants:
    - Unique per (project_id, schema_name, table_name)
    - criticality_level is 1–5 or NULL (NULL read as 3)

Design Decisions:
    - Columns cascade on delete: removing a table from the catalog removes
      its columns and every relationship row that references it
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schemalink.db.base import Base


class TableMetadata(Base):
    """Catalogued table."""
    __tablename__ = "tables_metadata"
    __table_args__ = (
        UniqueConstraint(
            "project_id", "schema_name", "table_name",
            name="uq_tables_metadata_name",
        ),
        CheckConstraint(
            "criticality_level IS NULL OR criticality_level BETWEEN 1 AND 5",
            name="ck_tables_metadata_criticality",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    schema_name: Mapped[str] = mapped_column(
        String(128), nullable=False, default="dbo",
    )
    table_name: Mapped[str] = mapped_column(String(128), nullable=False)
    criticality_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    columns: Mapped[list["ColumnMetadata"]] = relationship(
        "ColumnMetadata", back_populates="table",
        cascade="all, delete-orphan", lazy="selectin",
        order_by="ColumnMetadata.ordinal_position",
    )
