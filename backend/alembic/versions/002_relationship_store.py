"""Relationship store — dependency edges, logical foreign keys, detection runs.

Revision ID: 002_relationship_store
Revises: 001_catalog_tables
Create Date: 2026-09-21

The two unique constraints are the ON CONFLICT targets used by
RelationshipStore; renaming them breaks the upserts.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002_relationship_store"
down_revision: Union[str, None] = "001_catalog_tables"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "dependencies",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Integer, nullable=False, index=True),
        sa.Column("source_type", sa.String(20), nullable=False),
        sa.Column("source_id", sa.Integer, nullable=False),
        sa.Column("target_type", sa.String(20), nullable=False),
        sa.Column("target_id", sa.Integer, nullable=False),
        sa.Column("dependency_type", sa.String(20), nullable=False),
        sa.Column("confidence_score", sa.Float, nullable=False, server_default="1.0"),
        sa.Column("discovered_by", sa.String(50), nullable=False, server_default="MANUAL"),
        sa.Column("discovered_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "project_id", "source_type", "source_id",
            "target_type", "target_id", "dependency_type",
            name="uq_dependencies_edge",
        ),
        sa.CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 1",
            name="ck_dependencies_confidence",
        ),
    )
    op.create_index(
        "ix_dependencies_target", "dependencies",
        ["project_id", "target_type", "target_id"],
    )

    op.create_table(
        "logical_foreign_keys",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Integer, nullable=False, index=True),
        sa.Column(
            "source_table_id", sa.Integer,
            sa.ForeignKey("tables_metadata.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("source_column_ids", sa.String(400), nullable=False),
        sa.Column(
            "target_table_id", sa.Integer,
            sa.ForeignKey("tables_metadata.id", ondelete="CASCADE"),
            nullable=False, index=True,
        ),
        sa.Column("target_column_ids", sa.String(400), nullable=False),
        sa.Column("discovery_method", sa.String(20), nullable=False),
        sa.Column("discovery_methods", sa.String(100), nullable=False),
        sa.Column("confidence_score", sa.Float, nullable=False),
        sa.Column("detection_reason", sa.Text, nullable=True),
        sa.Column("is_ambiguous", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("status", sa.String(20), nullable=False, server_default="SUGGESTED", index=True),
        sa.Column("rejected_score", sa.Float, nullable=True),
        sa.Column("confirmed_by", sa.Integer, nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by", sa.Integer, nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("created_by", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "project_id", "source_table_id", "source_column_ids",
            "target_table_id", "target_column_ids",
            name="uq_logical_foreign_keys_mapping",
        ),
        sa.CheckConstraint(
            "status IN ('SUGGESTED', 'CONFIRMED', 'REJECTED')",
            name="ck_logical_foreign_keys_status",
        ),
        sa.CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 1",
            name="ck_logical_foreign_keys_confidence",
        ),
    )

    op.create_table(
        "detection_runs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Integer, nullable=False, index=True),
        sa.Column("algorithm_version", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="RUNNING"),
        sa.Column("candidates_found", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("updated_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("skipped_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("warnings", sa.JSON, nullable=True),
        sa.Column("started_by", sa.Integer, nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("detection_runs")
    op.drop_table("logical_foreign_keys")
    op.drop_index("ix_dependencies_target", table_name="dependencies")
    op.drop_table("dependencies")
