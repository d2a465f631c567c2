"""Create user_game_stats and unlocked_achievements tables

Revision ID: 5c2e9a7d4b13
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c2e9a7d4b13"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the progression aggregate and its achievement rows."""
    op.create_table(
        "user_game_stats",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("experience", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "experience_to_next_level", sa.Integer(), nullable=False, server_default="100"
        ),
        sa.Column("streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_activity_date", sa.Date(), nullable=True),
        sa.Column("total_reports", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("resolved_reports", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("follower_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("team_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("challenges_won", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_user_game_stats_total_points", "user_game_stats", ["total_points"]
    )
    op.create_index("ix_user_game_stats_level", "user_game_stats", ["level"])

    op.create_table(
        "unlocked_achievements",
        sa.Column(
            "user_id",
            sa.String(64),
            sa.ForeignKey("user_game_stats.user_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("achievement_id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("icon", sa.String(16), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("granted_by", sa.String(64), nullable=True),
    )


def downgrade() -> None:
    """Drop the progression tables."""
    op.drop_table("unlocked_achievements")
    op.drop_index("ix_user_game_stats_level", table_name="user_game_stats")
    op.drop_index("ix_user_game_stats_total_points", table_name="user_game_stats")
    op.drop_table("user_game_stats")
