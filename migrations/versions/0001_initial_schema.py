"""initial schema: users ledger + daily entries

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00.000000

daily_entries has no unique (user_id, date) constraint; one entry per day
is enforced by the upsert engine under the user's row lock.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.String(128), nullable=False),
        sa.Column("display_name", sa.String(128), nullable=False, server_default=""),
        sa.Column("email", sa.String(256), nullable=False, server_default=""),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("weekly_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_weekly_reset", sa.Date(), nullable=True),
        sa.Column("badges", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("earned_achievement_ids", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("friend_ids", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("email_notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("quiz_answered", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quiz_correct", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quiz_current_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("quiz_best_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("games_played", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("game_best_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_display_name", "users", ["display_name"])
    op.create_index("ix_users_total_points", "users", ["total_points"])

    # --- daily_entries ---
    op.create_table(
        "daily_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("raw_text", sa.Text(), nullable=False),
        sa.Column("co2", sa.Float(), nullable=False, server_default="0"),
        sa.Column("water", sa.Float(), nullable=False, server_default="0"),
        sa.Column("energy", sa.Float(), nullable=False, server_default="0"),
        sa.Column("waste", sa.Float(), nullable=False, server_default="0"),
        sa.Column("food", sa.Float(), nullable=False, server_default="0"),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("ai_comment", sa.Text(), nullable=False),
        sa.Column("actions", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("last_modified", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_daily_entries_id", "daily_entries", ["id"])
    op.create_index("ix_daily_entries_user_id", "daily_entries", ["user_id"])
    op.create_index("ix_daily_entries_user_date", "daily_entries", ["user_id", "date"])


def downgrade() -> None:
    op.drop_index("ix_daily_entries_user_date", table_name="daily_entries")
    op.drop_index("ix_daily_entries_user_id", table_name="daily_entries")
    op.drop_index("ix_daily_entries_id", table_name="daily_entries")
    op.drop_table("daily_entries")
    op.drop_index("ix_users_total_points", table_name="users")
    op.drop_index("ix_users_display_name", table_name="users")
    op.drop_table("users")
