"""game_job_types

Revision ID: 20260415_0002
Revises: 20260301_0001
Create Date: 2026-04-15 00:00:00.000000
"""

from __future__ import annotations

from alembic import op

# revision identifiers, used by Alembic.
revision = "20260415_0002"
down_revision = "20260301_0001"
branch_labels = None
depends_on = None

NEW_JOB_TYPES = ("GAME_CORRECTION", "GAME_DELETION")


def upgrade() -> None:
    # SQLite stores enums as plain strings; only PostgreSQL has a type to extend.
    if op.get_bind().dialect.name != "postgresql":
        return
    for label in NEW_JOB_TYPES:
        op.execute(f"ALTER TYPE jobtype ADD VALUE IF NOT EXISTS '{label}'")


def downgrade() -> None:
    # PostgreSQL cannot drop enum labels; remove the jobs that use them instead.
    labels = ", ".join(f"'{label}'" for label in NEW_JOB_TYPES)
    op.execute(f"DELETE FROM job WHERE job_type IN ({labels})")
