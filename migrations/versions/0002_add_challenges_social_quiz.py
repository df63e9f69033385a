"""add challenges, friend_requests and quiz_questions

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-18

Supporting tables for the other point sources (challenges, quiz) and for the
friend graph used by achievement notifications.
"""
from alembic import op
import sqlalchemy as sa

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    impact_type_enum = sa.Enum(
        "co2", "water", "energy", "waste", "food", name="impact_type_enum"
    )
    impact_type_enum.create(op.get_bind(), checkfirst=True)

    friend_request_status_enum = sa.Enum(
        "pending", "accepted", "declined", name="friend_request_status_enum"
    )
    friend_request_status_enum.create(op.get_bind(), checkfirst=True)

    # --- challenges ---
    op.create_table(
        "challenges",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(128), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("impact_type", sa.Enum(
            "co2", "water", "energy", "waste", "food",
            name="impact_type_enum", create_type=False,
        ), nullable=False),
        sa.Column("target", sa.Integer(), nullable=False),
        sa.Column("points_reward", sa.Integer(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_challenges_id", "challenges", ["id"])
    op.create_index("ix_challenges_user_id", "challenges", ["user_id"])
    op.create_index("ix_challenges_completed", "challenges", ["completed"])

    # --- friend_requests ---
    op.create_table(
        "friend_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("from_id", sa.String(128), nullable=False),
        sa.Column("from_name", sa.String(128), nullable=False, server_default=""),
        sa.Column("to_id", sa.String(128), nullable=False),
        sa.Column("status", sa.Enum(
            "pending", "accepted", "declined",
            name="friend_request_status_enum", create_type=False,
        ), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_friend_requests_id", "friend_requests", ["id"])
    op.create_index("ix_friend_requests_from_id", "friend_requests", ["from_id"])
    op.create_index("ix_friend_requests_to_id", "friend_requests", ["to_id"])

    # --- quiz_questions ---
    op.create_table(
        "quiz_questions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("question", sa.Text(), nullable=False),
        sa.Column("options", sa.Text(), nullable=False),
        sa.Column("correct_answer_index", sa.Integer(), nullable=False),
        sa.Column("explanation", sa.Text(), nullable=True),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_quiz_questions_id", "quiz_questions", ["id"])


def downgrade() -> None:
    op.drop_index("ix_quiz_questions_id", table_name="quiz_questions")
    op.drop_table("quiz_questions")
    op.drop_index("ix_friend_requests_to_id", table_name="friend_requests")
    op.drop_index("ix_friend_requests_from_id", table_name="friend_requests")
    op.drop_index("ix_friend_requests_id", table_name="friend_requests")
    op.drop_table("friend_requests")
    op.drop_index("ix_challenges_completed", table_name="challenges")
    op.drop_index("ix_challenges_user_id", table_name="challenges")
    op.drop_index("ix_challenges_id", table_name="challenges")
    op.drop_table("challenges")

    op.execute("DROP TYPE IF EXISTS friend_request_status_enum")
    op.execute("DROP TYPE IF EXISTS impact_type_enum")
