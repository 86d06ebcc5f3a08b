"""add max_marks to interview_marks

Revision ID: c3e2a7f4d9b3
Revises: b2d1f6e3c8a2
Create Date: 2026-06-08 14:15:00.000000

Copies each subject's maximum onto its mark rows so a mark sheet can be
read without the templates. Existing rows are backfilled from the active
template of the same pool and subject name.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "c3e2a7f4d9b3"
down_revision: str | Sequence[str] | None = "b2d1f6e3c8a2"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.add_column("interview_marks", sa.Column("max_marks", sa.Integer(), nullable=True))

    op.execute(
        """
        UPDATE interview_marks AS m
        SET max_marks = t.max_marks
        FROM interview_subject_templates AS t
        WHERE t.pool = m.pool
          AND t.subject_name = m.subject_name
          AND t.is_active = true
        """
    )


def downgrade() -> None:
    op.drop_column("interview_marks", "max_marks")
