"""Catalog tables — tables, columns, routines and declared foreign keys.

Revision ID: 001_catalog_tables
Revises: None
Create Date: 2026-09-21

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_catalog_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "tables_metadata",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Integer, nullable=False, index=True),
        sa.Column("schema_name", sa.String(128), nullable=False, server_default="dbo"),
        sa.Column("table_name", sa.String(128), nullable=False),
        sa.Column("criticality_level", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("project_id", "schema_name", "table_name", name="uq_tables_metadata_name"),
        sa.CheckConstraint(
            "criticality_level IS NULL OR criticality_level BETWEEN 1 AND 5",
            name="ck_tables_metadata_criticality",
        ),
    )

    op.create_table(
        "columns_metadata",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "table_id", sa.Integer,
            sa.ForeignKey("tables_metadata.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("column_name", sa.String(128), nullable=False),
        sa.Column("data_type", sa.String(128), nullable=False),
        sa.Column("is_nullable", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("is_primary_key", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_unique", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("ordinal_position", sa.Integer, nullable=False, server_default="0"),
        sa.UniqueConstraint("table_id", "column_name", name="uq_columns_metadata_name"),
    )

    op.create_table(
        "routines_metadata",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Integer, nullable=False, index=True),
        sa.Column("schema_name", sa.String(128), nullable=False, server_default="dbo"),
        sa.Column("routine_name", sa.String(128), nullable=False),
        sa.Column("routine_type", sa.String(20), nullable=False),
        sa.Column("definition", sa.Text, nullable=True),
        sa.Column("criticality_level", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("project_id", "schema_name", "routine_name", name="uq_routines_metadata_name"),
    )

    op.create_table(
        "physical_foreign_keys",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Integer, nullable=False, index=True),
        sa.Column("constraint_name", sa.String(256), nullable=False),
        sa.Column(
            "source_table_id", sa.Integer,
            sa.ForeignKey("tables_metadata.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("source_column_ids", sa.Text, nullable=False),
        sa.Column(
            "target_table_id", sa.Integer,
            sa.ForeignKey("tables_metadata.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("target_column_ids", sa.Text, nullable=False),
        sa.Column("on_delete_action", sa.String(20), nullable=False, server_default="NO ACTION"),
        sa.Column("on_update_action", sa.String(20), nullable=False, server_default="NO ACTION"),
    )


def downgrade() -> None:
    op.drop_table("physical_foreign_keys")
    op.drop_table("routines_metadata")
    op.drop_table("columns_metadata")
    op.drop_table("tables_metadata")
