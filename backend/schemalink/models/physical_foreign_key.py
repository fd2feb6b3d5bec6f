"""PhysicalForeignKey ORM — declared FK constraint mirrored from the target database.

Invariants:
    - Read-only from this service's perspective (written by catalog import)
    - source_column_ids / target_column_ids are canonical JSON arrays, aligned pairwise
    - on_delete_action / on_update_action use SQL spelling ("NO ACTION", "CASCADE", ...)
"""

from sqlalchemy import String, Text, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from schemalink.db.base import Base


class PhysicalForeignKey(Base):
    """Declared foreign key constraint."""
    __tablename__ = "physical_foreign_keys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    constraint_name: Mapped[str] = mapped_column(String(256), nullable=False)
    source_table_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tables_metadata.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    source_column_ids: Mapped[str] = mapped_column(Text, nullable=False)
    target_table_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tables_metadata.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    target_column_ids: Mapped[str] = mapped_column(Text, nullable=False)
    on_delete_action: Mapped[str] = mapped_column(
        String(20), nullable=False, default="NO ACTION",
    )
    on_update_action: Mapped[str] = mapped_column(
        String(20), nullable=False, default="NO ACTION",
    )
