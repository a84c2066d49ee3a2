"""initial academy schema

Revision ID: 3b9e1c7d5a20
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b9e1c7d5a20"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid(name: str, **kw) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), **kw)


def _user_fk() -> sa.Column:
    return _uuid(
        "user_id", sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )


def upgrade() -> None:
    op.create_table(
        "users",
        _uuid("id", primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("role", sa.String(length=16), nullable=False, server_default="user"),
        sa.Column("xp_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _uuid("created_by", sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
    )

    # --- catalog ---
    op.create_table(
        "training_areas",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_table(
        "modules",
        _uuid("id", primary_key=True),
        _uuid("training_area_id", sa.ForeignKey("training_areas.id"), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
    )
    op.create_table(
        "courses",
        _uuid("id", primary_key=True),
        _uuid("training_area_id", sa.ForeignKey("training_areas.id"), nullable=False),
        _uuid("module_id", sa.ForeignKey("modules.id"), nullable=False),
        sa.Column("name", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "course_type", sa.String(length=16), nullable=False, server_default="sequential"
        ),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("level", sa.String(length=32), nullable=False, server_default="beginner"),
    )
    op.create_table(
        "course_prerequisites",
        _uuid("course_id", sa.ForeignKey("courses.id"), primary_key=True),
        _uuid("prerequisite_course_id", sa.ForeignKey("courses.id"), primary_key=True),
    )
    op.create_table(
        "role_mandatory_courses",
        sa.Column("role", sa.String(length=16), primary_key=True),
        _uuid("course_id", sa.ForeignKey("courses.id"), primary_key=True),
    )
    op.create_table(
        "units",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.String(length=500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("xp_points", sa.Integer(), nullable=False, server_default="100"),
    )
    op.create_table(
        "course_units",
        _uuid("course_id", sa.ForeignKey("courses.id"), primary_key=True),
        _uuid("unit_id", sa.ForeignKey("units.id"), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False),
    )
    op.create_table(
        "learning_blocks",
        _uuid("id", primary_key=True),
        _uuid("unit_id", sa.ForeignKey("units.id"), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("xp_points", sa.Integer(), nullable=False, server_default="10"),
    )
    op.create_index("ix_learning_blocks_unit_id", "learning_blocks", ["unit_id"])

    # --- assessments ---
    op.create_table(
        "assessments",
        _uuid("id", primary_key=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        _uuid("unit_id", sa.ForeignKey("units.id"), nullable=True),
        _uuid("course_id", sa.ForeignKey("courses.id"), nullable=True),
        sa.Column("passing_score", sa.Integer(), nullable=True),
        sa.Column("is_graded", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("max_retakes", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("xp_points", sa.Integer(), nullable=False, server_default="50"),
        sa.Column(
            "has_certificate", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
    )
    op.create_table(
        "questions",
        _uuid("id", primary_key=True),
        _uuid("assessment_id", sa.ForeignKey("assessments.id"), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column(
            "question_type", sa.String(length=32), nullable=False, server_default="mcq"
        ),
        sa.Column(
            "options",
            postgresql.ARRAY(sa.String()),
            nullable=False,
            server_default="{}",
        ),
        sa.Column("correct_answer", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
    )
    op.create_table(
        "assessment_attempts",
        _uuid("id", primary_key=True),
        _user_fk(),
        _uuid("assessment_id", sa.ForeignKey("assessments.id"), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("passed", sa.Boolean(), nullable=False),
        sa.Column(
            "answers",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("started_at", sa.Integer(), nullable=False),
        sa.Column("completed_at", sa.Integer(), nullable=False),
    )
    op.create_index(
        "ix_assessment_attempts_user_assessment",
        "assessment_attempts",
        ["user_id", "assessment_id"],
    )

    # --- progress ---
    op.create_table(
        "block_completions",
        _uuid("id", primary_key=True),
        _user_fk(),
        _uuid("block_id", sa.ForeignKey("learning_blocks.id"), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("completed_at", sa.Integer(), nullable=False),
        sa.UniqueConstraint("user_id", "block_id"),
    )
    op.create_table(
        "user_progress",
        _uuid(
            "user_id",
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        _uuid("course_id", sa.ForeignKey("courses.id"), primary_key=True),
        sa.Column("percent_complete", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("last_accessed", sa.Integer(), nullable=True),
    )

    # --- gamification ---
    op.create_table(
        "badges",
        _uuid("id", primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("xp_points", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("image_url", sa.Text(), nullable=True),
    )
    op.create_table(
        "user_badges",
        _uuid("id", primary_key=True),
        _user_fk(),
        _uuid("badge_id", sa.ForeignKey("badges.id"), nullable=False),
        sa.Column("earned_at", sa.Integer(), nullable=False),
        sa.UniqueConstraint("user_id", "badge_id"),
    )
    op.create_table(
        "certificates",
        _uuid("id", primary_key=True),
        _user_fk(),
        _uuid("course_id", sa.ForeignKey("courses.id"), nullable=False),
        sa.Column("certificate_number", sa.String(length=64), nullable=False, unique=True),
        sa.Column("issued_at", sa.Integer(), nullable=False),
        sa.Column("expires_at", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="active"),
        sa.UniqueConstraint("user_id", "course_id"),
    )
    op.create_table(
        "notifications",
        _uuid("id", primary_key=True),
        _user_fk(),
        sa.Column("type", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "metadata",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.Integer(), nullable=False),
    )
    op.create_index(
        "ix_notifications_user_created", "notifications", ["user_id", "created_at"]
    )


def downgrade() -> None:
    op.drop_index("ix_notifications_user_created", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("certificates")
    op.drop_table("user_badges")
    op.drop_table("badges")
    op.drop_table("user_progress")
    op.drop_table("block_completions")
    op.drop_index(
        "ix_assessment_attempts_user_assessment", table_name="assessment_attempts"
    )
    op.drop_table("assessment_attempts")
    op.drop_table("questions")
    op.drop_table("assessments")
    op.drop_index("ix_learning_blocks_unit_id", table_name="learning_blocks")
    op.drop_table("learning_blocks")
    op.drop_table("course_units")
    op.drop_table("units")
    op.drop_table("role_mandatory_courses")
    op.drop_table("course_prerequisites")
    op.drop_table("courses")
    op.drop_table("modules")
    op.drop_table("training_areas")
    op.drop_table("users")
