"""ColumnMetadata ORM — one column of a catalogued table."""

from sqlalchemy import String, Integer, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schemalink.db.base import Base


class ColumnMetadata(Base):
    """Catalogued column with key flags used by the detectors."""
    __tablename__ = "columns_metadata"
    __table_args__ = (
        UniqueConstraint("table_id", "column_name", name="uq_columns_metadata_name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    table_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tables_metadata.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    column_name: Mapped[str] = mapped_column(String(128), nullable=False)
    data_type: Mapped[str] = mapped_column(String(128), nullable=False)
    is_nullable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_primary_key: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    is_unique: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ordinal_position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    table: Mapped["TableMetadata"] = relationship(
        "TableMetadata", back_populates="columns",
    )
