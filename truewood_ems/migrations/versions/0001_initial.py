"""Initial attendance and timesheet schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

attendance_status = postgresql.ENUM(
    "PRESENT",
    "ABSENT",
    "LEAVE",
    name="attendance_status",
    create_type=False,
)
work_site_status = postgresql.ENUM(
    "ACTIVE",
    "COMPLETED",
    "ON_HOLD",
    "CANCELLED",
    name="work_site_status",
    create_type=False,
)
employee_status = postgresql.ENUM(
    "ACTIVE",
    "INACTIVE",
    name="employee_status",
    create_type=False,
)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    bind = op.get_bind()
    attendance_status.create(bind, checkfirst=True)
    work_site_status.create(bind, checkfirst=True)
    employee_status.create(bind, checkfirst=True)

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("time_in", sa.String(length=16), nullable=True),
        sa.Column("time_out", sa.String(length=16), nullable=True),
        sa.Column("break_hours", sa.Float(), nullable=True),
        _created_at(),
        sa.UniqueConstraint("name", name="uq_categories_name"),
    )

    op.create_table(
        "departments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.UniqueConstraint("name", name="uq_departments_name"),
    )

    op.create_table(
        "leave_types",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("max_days", sa.Integer(), nullable=True),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _created_at(),
        sa.UniqueConstraint("name", name="uq_leave_types_name"),
    )

    op.create_table(
        "holidays",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_holidays_start_date", "holidays", ["start_date"])
    op.create_index("ix_holidays_end_date", "holidays", ["end_date"])

    op.create_table(
        "weekly_off",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("day_order", sa.Integer(), nullable=False),
        sa.Column("day_name", sa.String(length=16), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _updated_at(),
        sa.UniqueConstraint("day_order", name="uq_weekly_off_day_order"),
    )

    op.create_table(
        "work_sites",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=False),
        sa.Column("status", work_site_status, nullable=False, server_default=sa.text("'ACTIVE'")),
        sa.Column("short_hand", sa.String(length=32), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("time_in", sa.String(length=16), nullable=True),
        sa.Column("time_out", sa.String(length=16), nullable=True),
        sa.Column("break_hours", sa.Float(), nullable=True),
        _created_at(),
    )

    op.create_table(
        "work_site_schedule_history",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("work_site_id", sa.Integer(), nullable=False),
        sa.Column("effective_from", sa.Date(), nullable=False),
        sa.Column("time_in", sa.String(length=16), nullable=True),
        sa.Column("time_out", sa.String(length=16), nullable=True),
        sa.Column("break_hours", sa.Float(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["work_site_id"], ["work_sites.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_work_site_schedule_history_work_site_id",
        "work_site_schedule_history",
        ["work_site_id"],
    )
    op.create_index(
        "ix_work_site_schedule_history_effective_from",
        "work_site_schedule_history",
        ["effective_from"],
    )

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_code", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("department_id", sa.Integer(), nullable=True),
        sa.Column("work_site_id", sa.Integer(), nullable=True),
        sa.Column("joining_date", sa.Date(), nullable=True),
        sa.Column("exit_date", sa.Date(), nullable=True),
        sa.Column("salary", sa.Float(), nullable=True),
        sa.Column("status", employee_status, nullable=False, server_default=sa.text("'ACTIVE'")),
        _created_at(),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["department_id"], ["departments.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["work_site_id"], ["work_sites.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("employee_code", name="uq_employees_employee_code"),
    )
    op.create_index("ix_employees_category_id", "employees", ["category_id"])

    op.create_table(
        "employment_history",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("joining_date", sa.Date(), nullable=False),
        sa.Column("exit_date", sa.Date(), nullable=True),
        sa.Column("status", employee_status, nullable=False),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_employment_history_employee_id", "employment_history", ["employee_id"])

    op.create_table(
        "attendance_records",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("day_date", sa.Date(), nullable=False),
        sa.Column("status", attendance_status, nullable=False),
        sa.Column("leave_type_id", sa.Integer(), nullable=True),
        sa.Column("work_site_id", sa.Integer(), nullable=True),
        sa.Column("time_in", sa.String(length=16), nullable=True),
        sa.Column("time_out", sa.String(length=16), nullable=True),
        sa.Column("break_hours", sa.Float(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["leave_type_id"], ["leave_types.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["work_site_id"], ["work_sites.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("employee_id", "day_date", name="uq_attendance_records_employee_day"),
    )
    op.create_index("ix_attendance_records_employee_id", "attendance_records", ["employee_id"])
    op.create_index("ix_attendance_records_day_date", "attendance_records", ["day_date"])
    op.create_index("ix_attendance_records_work_site_id", "attendance_records", ["work_site_id"])

    op.bulk_insert(
        sa.table(
            "weekly_off",
            sa.column("day_order", sa.Integer()),
            sa.column("day_name", sa.String()),
            sa.column("is_active", sa.Boolean()),
        ),
        [{"day_order": 0, "day_name": "Sunday", "is_active": True}],
    )


def downgrade() -> None:
    op.drop_index("ix_attendance_records_work_site_id", table_name="attendance_records")
    op.drop_index("ix_attendance_records_day_date", table_name="attendance_records")
    op.drop_index("ix_attendance_records_employee_id", table_name="attendance_records")
    op.drop_table("attendance_records")
    op.drop_index("ix_employment_history_employee_id", table_name="employment_history")
    op.drop_table("employment_history")
    op.drop_index("ix_employees_category_id", table_name="employees")
    op.drop_table("employees")
    op.drop_index("ix_work_site_schedule_history_effective_from", table_name="work_site_schedule_history")
    op.drop_index("ix_work_site_schedule_history_work_site_id", table_name="work_site_schedule_history")
    op.drop_table("work_site_schedule_history")
    op.drop_table("work_sites")
    op.drop_table("weekly_off")
    op.drop_index("ix_holidays_end_date", table_name="holidays")
    op.drop_index("ix_holidays_start_date", table_name="holidays")
    op.drop_table("holidays")
    op.drop_table("leave_types")
    op.drop_table("departments")
    op.drop_table("categories")

    bind = op.get_bind()
    employee_status.drop(bind, checkfirst=True)
    work_site_status.drop(bind, checkfirst=True)
    attendance_status.drop(bind, checkfirst=True)
