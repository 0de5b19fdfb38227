"""rating schema

Revision ID: 20260301_0001
Revises:
Create Date: 2026-03-01 00:00:00.000000
"""
from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision = "20260301_0001"
down_revision = None
branch_labels = None
depends_on = None

# Enum labels are the member names, as SQLModel maps Python enums.
K_POLICY = postgresql.ENUM(
    "STATIC",
    "LINEAR_DECAY",
    "EXPONENTIAL_DECAY",
    name="kfactorpolicy",
    create_type=False,
)
JOB_TYPE = postgresql.ENUM(
    "ELO_RECALCULATION",
    "MATCH_DELETION",
    "SEASON_DELETION",
    "SEASON_REASSIGNMENT",
    name="jobtype",
    create_type=False,
)
JOB_STATUS = postgresql.ENUM(
    "PENDING",
    "RUNNING",
    "COMPLETED",
    "FAILED",
    name="jobstatus",
    create_type=False,
)


def _k_override_columns(nullable_policy: bool) -> list[sa.Column]:
    return [
        sa.Column("k_policy", K_POLICY, nullable=nullable_policy),
        sa.Column("k_factor", sa.Float(), nullable=True),
        sa.Column("base_k_factor", sa.Float(), nullable=True),
        sa.Column("new_player_k_bonus", sa.Float(), nullable=True),
        sa.Column("new_player_bonus_period", sa.Integer(), nullable=True),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in (K_POLICY, JOB_TYPE, JOB_STATUS):
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "player",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("current_elo", sa.Float(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_player_is_active", "player", ["is_active"])

    op.create_table(
        "eloconfiguration",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("version_name", sa.String(length=50), nullable=False),
        *_k_override_columns(nullable_policy=False),
        sa.Column("starting_elo", sa.Float(), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("version_name", name="uq_elo_configuration_version_name"),
    )
    op.create_index("ix_eloconfiguration_version_name", "eloconfiguration", ["version_name"])
    op.create_index("ix_eloconfiguration_is_active", "eloconfiguration", ["is_active"])

    op.create_table(
        "season",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("start_date", sa.DateTime(), nullable=False),
        sa.Column("starting_elo", sa.Float(), nullable=False),
        *_k_override_columns(nullable_policy=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("name", name="uq_season_name"),
        sa.UniqueConstraint("start_date", name="uq_season_start_date"),
    )
    op.create_index("ix_season_name", "season", ["name"])
    op.create_index("ix_season_start_date", "season", ["start_date"])
    op.create_index("ix_season_is_active", "season", ["is_active"])

    op.create_table(
        "playerseason",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("player_id", sa.Uuid(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("season_id", sa.Uuid(), sa.ForeignKey("season.id"), nullable=False),
        sa.Column("current_elo", sa.Float(), nullable=False),
        sa.Column("games_played", sa.Integer(), nullable=False),
        sa.Column("wins", sa.Integer(), nullable=False),
        sa.Column("losses", sa.Integer(), nullable=False),
        sa.Column("is_included", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "player_id",
            "season_id",
            name="uq_player_season_player_season",
        ),
    )
    op.create_index("ix_playerseason_player_id", "playerseason", ["player_id"])
    op.create_index("ix_playerseason_season_id", "playerseason", ["season_id"])
    op.create_index("ix_playerseason_is_included", "playerseason", ["is_included"])

    op.create_table(
        "match",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("season_id", sa.Uuid(), sa.ForeignKey("season.id"), nullable=False),
        sa.Column("player1_id", sa.Uuid(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("player2_id", sa.Uuid(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_match_season_id", "match", ["season_id"])
    op.create_index("ix_match_player1_id", "match", ["player1_id"])
    op.create_index("ix_match_player2_id", "match", ["player2_id"])
    op.create_index("ix_match_submitted_at", "match", ["submitted_at"])

    op.create_table(
        "game",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("match_id", sa.Uuid(), sa.ForeignKey("match.id"), nullable=False),
        sa.Column("season_id", sa.Uuid(), sa.ForeignKey("season.id"), nullable=False),
        sa.Column("game_number", sa.Integer(), nullable=False),
        sa.Column("player1_id", sa.Uuid(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("player2_id", sa.Uuid(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("played_at", sa.DateTime(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("elo_version", sa.String(length=50), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_game_match_id", "game", ["match_id"])
    op.create_index("ix_game_season_id", "game", ["season_id"])
    op.create_index("ix_game_player1_id", "game", ["player1_id"])
    op.create_index("ix_game_player2_id", "game", ["player2_id"])
    op.create_index("ix_game_elo_version", "game", ["elo_version"])
    op.create_index("ix_game_season_order", "game", ["season_id", "played_at", "sequence"])

    op.create_table(
        "elohistory",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("player_id", sa.Uuid(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("game_id", sa.Uuid(), sa.ForeignKey("game.id"), nullable=False),
        sa.Column("season_id", sa.Uuid(), sa.ForeignKey("season.id"), nullable=False),
        sa.Column("elo_before", sa.Float(), nullable=False),
        sa.Column("elo_after", sa.Float(), nullable=False),
        sa.Column("k_factor", sa.Float(), nullable=False),
        sa.Column("elo_version", sa.String(length=50), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("game_id", "player_id", name="uq_elo_history_game_player"),
    )
    op.create_index("ix_elohistory_player_id", "elohistory", ["player_id"])
    op.create_index("ix_elohistory_game_id", "elohistory", ["game_id"])
    op.create_index("ix_elohistory_season_id", "elohistory", ["season_id"])

    op.create_table(
        "job",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("job_type", JOB_TYPE, nullable=False),
        sa.Column("status", JOB_STATUS, nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("total_items", sa.Integer(), nullable=True),
        sa.Column("processed_items", sa.Integer(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("result_data", sa.JSON(), nullable=True),
        sa.Column("created_by", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_job_job_type", "job", ["job_type"])
    op.create_index("ix_job_status", "job", ["status"])


def downgrade() -> None:
    for table in (
        "job",
        "elohistory",
        "game",
        "match",
        "playerseason",
        "season",
        "eloconfiguration",
        "player",
    ):
        op.drop_table(table)
    bind = op.get_bind()
    for enum_type in (JOB_STATUS, JOB_TYPE, K_POLICY):
        enum_type.drop(bind, checkfirst=True)
