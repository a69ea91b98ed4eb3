"""mock tests and quiz attempts

Revision ID: 0001
Revises:
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "mock_tests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(64), nullable=True),
        sa.Column("topic", sa.String(128), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("exam_type", sa.String(32), nullable=False),
        sa.Column("difficulty", sa.String(16), nullable=True),
        sa.Column("question_data", sa.JSON(), nullable=True),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_mock_tests_user_id", "mock_tests", ["user_id"])
    op.create_index(
        "idx_mock_tests_user_topic_incomplete",
        "mock_tests",
        ["user_id", "topic"],
        postgresql_where=sa.text("is_completed = false"),
    )

    op.create_table(
        "quiz_attempts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("quiz_id", sa.String(36), sa.ForeignKey("mock_tests.id"), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("total_questions", sa.Integer(), nullable=False),
        sa.Column("user_answers", sa.JSON(), nullable=False),
        sa.Column("time_taken_seconds", sa.Integer(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_quiz_attempts_user_id_quiz_id", "quiz_attempts", ["user_id", "quiz_id"])


def downgrade() -> None:
    op.drop_index("idx_quiz_attempts_user_id_quiz_id", table_name="quiz_attempts")
    op.drop_table("quiz_attempts")
    op.drop_index("idx_mock_tests_user_topic_incomplete", table_name="mock_tests")
    op.drop_index("ix_mock_tests_user_id", table_name="mock_tests")
    op.drop_table("mock_tests")
