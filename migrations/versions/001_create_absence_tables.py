"""Create employees and absences tables with the overlap exclusion constraint.

Revision ID: 001
Create Date: 2025-12-14 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create employees and absences tables with all constraints and indexes."""

    # Equality on uuid columns inside a GiST exclusion constraint
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    op.create_table(
        "employees",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column("company_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_employees_company_id", "employees", ["company_id"])

    op.create_table(
        "absences",
        sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True),
        sa.Column("company_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "employee_id",
            postgresql.UUID(as_uuid=False),
            sa.ForeignKey("employees.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("status", sa.String(30), nullable=False, server_default="draft"),
        sa.Column("first_day", sa.Date(), nullable=False),
        sa.Column("last_day_expected", sa.Date(), nullable=True),
        sa.Column("last_day_actual", sa.Date(), nullable=True),
        sa.Column("reference_notes", sa.Text(), nullable=True),
        sa.Column("reference_date", sa.Date(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "last_day_expected IS NULL OR last_day_expected >= first_day",
            name="ck_absences_expected_after_first",
        ),
        sa.CheckConstraint(
            "last_day_actual IS NULL OR last_day_actual >= first_day",
            name="ck_absences_actual_after_first",
        ),
    )
    op.create_index("ix_absences_company_employee", "absences", ["company_id", "employee_id"])
    op.create_index(
        "ix_absences_company_type_first_day",
        "absences",
        ["company_id", "type", "first_day"],
    )

    # Two non-cancelled absences of one employee may not share a day
    op.execute(
        """
        ALTER TABLE absences
        ADD CONSTRAINT absences_no_overlap_per_employee
        EXCLUDE USING gist (
            company_id WITH =,
            employee_id WITH =,
            daterange(
                first_day,
                COALESCE(last_day_actual, last_day_expected, first_day),
                '[]'
            ) WITH &&
        )
        WHERE (status <> 'cancelled')
        """
    )


def downgrade() -> None:
    """Drop absences and employees tables."""
    op.execute("ALTER TABLE absences DROP CONSTRAINT IF EXISTS absences_no_overlap_per_employee")
    op.drop_index("ix_absences_company_type_first_day", table_name="absences")
    op.drop_index("ix_absences_company_employee", table_name="absences")
    op.drop_table("absences")
    op.drop_index("ix_employees_company_id", table_name="employees")
    op.drop_table("employees")
