"""initial_schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 12:00:00.000000 UTC

Creates the three core tables:
  - projects       (analysed URL, AnalysisReport + AI markers as JSONB blobs)
  - test_sessions  (one participant submission, markers as one JSONB blob)
  - user_roles     (analysis entitlement counters read from billing)
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- projects table ---
    op.create_table(
        "projects",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False, comment="Owner id supplied by the auth platform"),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("report_data", postgresql.JSONB(astext_type=sa.Text()), nullable=False, comment="Full AnalysisReport serialized as JSON"),
        sa.Column("markers_data", postgresql.JSONB(astext_type=sa.Text()), nullable=False, comment="AI marker collection serialized as JSON"),
        sa.Column("screenshot", sa.Text(), nullable=True, comment="Base64-encoded full-page PNG"),
        sa.Column("demo_mode", sa.Boolean(), nullable=False, comment="True when the report is placeholder content from the fallback generator"),
        sa.Column("archived", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_projects_user_id"), "projects", ["user_id"], unique=False)
    op.create_index(op.f("ix_projects_archived"), "projects", ["archived"], unique=False)

    # --- test_sessions table ---
    op.create_table(
        "test_sessions",
        sa.Column("id", sa.String(length=36), nullable=False, comment="Server-allocated UUID4, also stamped on every marker as session_id"),
        sa.Column("project_id", sa.String(length=36), nullable=False, comment="References projects.id, many sessions per project"),
        sa.Column("participant_name", sa.String(length=120), nullable=False),
        sa.Column("markers_data", postgresql.JSONB(astext_type=sa.Text()), nullable=False, comment="Human marker collection serialized as JSON"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_test_sessions_project_id"), "test_sessions", ["project_id"], unique=False)

    # --- user_roles table ---
    op.create_table(
        "user_roles",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("role", sa.String(length=10), nullable=False, comment="'free', 'premium' or 'admin'"),
        sa.Column("monthly_analyses_used", sa.Integer(), nullable=False),
        sa.Column("monthly_analyses_limit", sa.Integer(), nullable=False),
        sa.Column("pack_analyses_remaining", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_user_roles_user_id"), "user_roles", ["user_id"], unique=True)


def downgrade() -> None:
    op.drop_index(op.f("ix_user_roles_user_id"), table_name="user_roles")
    op.drop_table("user_roles")
    op.drop_index(op.f("ix_test_sessions_project_id"), table_name="test_sessions")
    op.drop_table("test_sessions")
    op.drop_index(op.f("ix_projects_archived"), table_name="projects")
    op.drop_index(op.f("ix_projects_user_id"), table_name="projects")
    op.drop_table("projects")
