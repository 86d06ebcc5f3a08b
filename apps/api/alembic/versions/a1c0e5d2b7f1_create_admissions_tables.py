"""create admissions tables

Revision ID: a1c0e5d2b7f1
Revises:
Create Date: 2026-03-02 09:00:00.000000

This migration creates the tables of the first admission season:
1. early_years_applications (applicant name in child_name)
2. senior_entry_applications
3. interview_subject_templates
4. interview_marks
5. admission_forms

Stage, madrassa, sibling and landmark columns arrive in b2d1f6e3c8a2.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "a1c0e5d2b7f1"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


gender_enum = postgresql.ENUM("boy", "girl", name="applicant_gender", create_type=False)
status_enum = postgresql.ENUM(
    "submitted",
    "under_review",
    "shortlisted_for_interview",
    "interview_complete",
    "admitted",
    "not_admitted",
    name="application_status",
    create_type=False,
)
pool_enum = postgresql.ENUM("early_years", "senior_entry", name="applicant_pool", create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def _application_columns(name_column: str) -> list[sa.Column]:
    """Columns both application tables started with."""
    return [
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("application_number", sa.String(length=32), nullable=False),
        sa.Column(name_column, sa.String(length=200), nullable=False),
        sa.Column("gender", gender_enum, nullable=False),
        sa.Column("date_of_birth", sa.Date(), nullable=False),
        sa.Column("father_name", sa.String(length=200), nullable=False),
        sa.Column("mother_name", sa.String(length=200), nullable=False),
        sa.Column("house_name", sa.String(length=200), nullable=False),
        sa.Column("post_office", sa.String(length=100), nullable=False),
        sa.Column("village", sa.String(length=100), nullable=False),
        sa.Column("pincode", sa.String(length=10), nullable=False),
        sa.Column("district", sa.String(length=100), nullable=False),
        sa.Column("mobile_number", sa.String(length=20), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("status", status_enum, server_default="submitted", nullable=False),
        sa.Column("interview_date", sa.Date(), nullable=True),
        sa.Column("interview_time", sa.Time(), nullable=True),
        *_timestamps(),
    ]


def upgrade() -> None:
    """Create the admissions tables."""
    bind = op.get_bind()
    gender_enum.create(bind, checkfirst=True)
    status_enum.create(bind, checkfirst=True)
    pool_enum.create(bind, checkfirst=True)

    op.create_table(
        "early_years_applications",
        *_application_columns("child_name"),
        sa.Column("guardian_name", sa.String(length=200), nullable=True),
        sa.Column("previous_school", sa.String(length=200), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("application_number"),
    )
    op.create_index(
        "ix_early_years_applications_status", "early_years_applications", ["status"], unique=False
    )
    op.create_index(
        "ix_early_years_applications_created_at",
        "early_years_applications",
        ["created_at"],
        unique=False,
    )

    op.create_table(
        "senior_entry_applications",
        *_application_columns("full_name"),
        sa.Column("tenth_school", sa.String(length=200), nullable=False),
        sa.Column("board", sa.String(length=50), nullable=False),
        sa.Column("exam_roll_number", sa.String(length=50), nullable=False),
        sa.Column("exam_year", sa.String(length=4), nullable=False),
        sa.Column("stream", sa.String(length=100), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("application_number"),
    )
    op.create_index(
        "ix_senior_entry_applications_status", "senior_entry_applications", ["status"], unique=False
    )
    op.create_index(
        "ix_senior_entry_applications_created_at",
        "senior_entry_applications",
        ["created_at"],
        unique=False,
    )

    op.create_table(
        "interview_subject_templates",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pool", pool_enum, nullable=False),
        sa.Column("subject_name", sa.String(length=100), nullable=False),
        sa.Column("max_marks", sa.Integer(), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_interview_subject_templates_pool_active",
        "interview_subject_templates",
        ["pool", "is_active"],
        unique=False,
    )

    op.create_table(
        "interview_marks",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pool", pool_enum, nullable=False),
        sa.Column("subject_name", sa.String(length=100), nullable=False),
        sa.Column("marks", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "pool",
            "application_id",
            "subject_name",
            name="uq_interview_marks_application_subject",
        ),
    )
    op.create_index(
        "ix_interview_marks_pool_subject",
        "interview_marks",
        ["pool", "subject_name"],
        unique=False,
    )

    op.create_table(
        "admission_forms",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pool", pool_enum, nullable=False),
        sa.Column("academic_year", sa.String(length=9), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("pool"),
    )


def downgrade() -> None:
    """Drop the admissions tables and their enum types."""
    op.drop_table("admission_forms")
    op.drop_index("ix_interview_marks_pool_subject", table_name="interview_marks")
    op.drop_table("interview_marks")
    op.drop_index(
        "ix_interview_subject_templates_pool_active", table_name="interview_subject_templates"
    )
    op.drop_table("interview_subject_templates")
    op.drop_index("ix_senior_entry_applications_created_at", table_name="senior_entry_applications")
    op.drop_index("ix_senior_entry_applications_status", table_name="senior_entry_applications")
    op.drop_table("senior_entry_applications")
    op.drop_index("ix_early_years_applications_created_at", table_name="early_years_applications")
    op.drop_index("ix_early_years_applications_status", table_name="early_years_applications")
    op.drop_table("early_years_applications")

    bind = op.get_bind()
    pool_enum.drop(bind, checkfirst=True)
    status_enum.drop(bind, checkfirst=True)
    gender_enum.drop(bind, checkfirst=True)
