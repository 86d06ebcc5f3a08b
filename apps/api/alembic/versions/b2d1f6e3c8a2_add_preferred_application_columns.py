"""add preferred application columns

Revision ID: b2d1f6e3c8a2
Revises: a1c0e5d2b7f1
Create Date: 2026-05-11 10:30:00.000000

This migration brings both application tables to the current form:
1. early_years_applications: child_name renamed to full_name; stage,
   need_madrassa, previous_madrassa, has_siblings and siblings_names added
2. senior_entry_applications: landmark, has_siblings and siblings_names added

The intake service keeps accepting submissions against tables that have not
been migrated yet, writing the old column set.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "b2d1f6e3c8a2"
down_revision: str | Sequence[str] | None = "a1c0e5d2b7f1"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _add_sibling_columns(table_name: str) -> None:
    op.add_column(
        table_name,
        sa.Column("has_siblings", sa.Boolean(), server_default=sa.text("false"), nullable=True),
    )
    op.add_column(table_name, sa.Column("siblings_names", sa.Text(), nullable=True))


def upgrade() -> None:
    op.alter_column("early_years_applications", "child_name", new_column_name="full_name")
    op.add_column("early_years_applications", sa.Column("stage", sa.String(length=20), nullable=True))
    op.add_column(
        "early_years_applications",
        sa.Column("need_madrassa", sa.Boolean(), server_default=sa.text("false"), nullable=True),
    )
    op.add_column(
        "early_years_applications",
        sa.Column("previous_madrassa", sa.String(length=200), nullable=True),
    )
    _add_sibling_columns("early_years_applications")

    op.add_column(
        "senior_entry_applications", sa.Column("landmark", sa.String(length=200), nullable=True)
    )
    _add_sibling_columns("senior_entry_applications")


def downgrade() -> None:
    for table_name in ("senior_entry_applications", "early_years_applications"):
        op.drop_column(table_name, "siblings_names")
        op.drop_column(table_name, "has_siblings")

    op.drop_column("senior_entry_applications", "landmark")
    op.drop_column("early_years_applications", "previous_madrassa")
    op.drop_column("early_years_applications", "need_madrassa")
    op.drop_column("early_years_applications", "stage")
    op.alter_column("early_years_applications", "full_name", new_column_name="child_name")
