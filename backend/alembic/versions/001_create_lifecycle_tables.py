"""Create projects and phase_transitions tables

Revision ID: 001
Revises: None
Create Date: 2024-03-01 00:00:00.000000+00:00

What:  Creates `projects` and the append-only `phase_transitions` ledger.
How:   PostgreSQL UUID keys, TIMESTAMP WITH TIME ZONE, enum values stored as
       snake_case strings (see app/models/phases.py for the mapping tables).

Rollback: downgrade() drops both tables (destructive, ledger history lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("end_date", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column(
            "status",
            sa.String(32),
            nullable=False,
            server_default=sa.text("'planning'"),
            comment="planning, development, testing, deployment, completed",
        ),
        sa.Column("budget", sa.Numeric(14, 2), nullable=False),
        sa.Column("client_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column(
            "current_phase",
            sa.String(32),
            nullable=False,
            server_default=sa.text("'proposal'"),
            comment="Phase of the latest phase_transitions row, or proposal",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_projects_created_at", "projects", [sa.text("created_at DESC")])

    op.create_table(
        "phase_transitions",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("phase", sa.String(32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "attachments",
            sa.JSON(),
            nullable=True,
            comment="Ordered list of opaque attachment references",
        ),
        sa.Column(
            "approved_by",
            postgresql.UUID(as_uuid=True),
            nullable=False,
            comment="User who performed the transition (no FK, users are external)",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"]),
    )

    # History reads: WHERE project_id = :pid ORDER BY created_at
    op.create_index(
        "ix_phase_transitions_project_created",
        "phase_transitions",
        ["project_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_phase_transitions_project_created", table_name="phase_transitions")
    op.drop_table("phase_transitions")
    op.drop_index("idx_projects_created_at", table_name="projects")
    op.drop_table("projects")
