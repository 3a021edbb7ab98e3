"""create scheduling core

Revision ID: 20261019_0001
Revises: None
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


user_status_enum = sa.Enum("Active", "Inactive", name="user_status")
employment_type_enum = sa.Enum("FullTime", "PartTime", "Probationary", name="employment_type")
employment_status_enum = sa.Enum("Regular", "Probationary", "Resigned", "Retired", name="employment_status")
weekday_enum = sa.Enum(
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday", name="weekday"
)
leave_type_enum = sa.Enum("Sick", "Vacation", "Maternity", "Paternity", "Emergency", name="leave_type")
leave_status_enum = sa.Enum("Pending", "Approved", "Rejected", name="leave_status")
schedule_action_enum = sa.Enum(
    "schedule.created", "schedule.updated", "schedule.reassigned", name="schedule_action"
)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(length=100), nullable=False),
        sa.Column("last_name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("status", user_status_enum, nullable=False, server_default="Active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "faculty",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False, unique=True),
        sa.Column("employee_id", sa.String(length=50), nullable=False),
        sa.Column("position", sa.String(length=200), nullable=True),
        sa.Column("employment_type", employment_type_enum, nullable=False, server_default="FullTime"),
        sa.Column("employment_status", employment_status_enum, nullable=False, server_default="Regular"),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_faculty_employee_id", "faculty", ["employee_id"], unique=True)

    op.create_table(
        "subjects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=True, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_subjects_name", "subjects", ["name"])

    op.create_table(
        "class_sections",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("grade_level", sa.String(length=50), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_class_sections_name", "class_sections", ["name"])

    op.create_table(
        "schedules",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("faculty_id", sa.Integer(), sa.ForeignKey("faculty.id"), nullable=False),
        sa.Column("subject_id", sa.Integer(), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("class_section_id", sa.Integer(), sa.ForeignKey("class_sections.id"), nullable=False),
        sa.Column("day", weekday_enum, nullable=False),
        sa.Column("time", sa.String(length=20), nullable=False),
        sa.Column("start_minute", sa.Integer(), nullable=True),
        sa.Column("end_minute", sa.Integer(), nullable=True),
        sa.Column("duration", sa.Float(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("subject_id", "class_section_id", "day", "time", name="uq_schedules_slot"),
        sa.UniqueConstraint("faculty_id", "day", "start_minute", name="uq_schedules_faculty_start"),
    )
    op.create_index("ix_schedules_faculty_id", "schedules", ["faculty_id"])
    op.create_index("ix_schedules_class_section_id", "schedules", ["class_section_id"])

    op.create_table(
        "leave_requests",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("faculty_id", sa.Integer(), sa.ForeignKey("faculty.id"), nullable=False),
        sa.Column("leave_type", leave_type_enum, nullable=False),
        sa.Column("status", leave_status_enum, nullable=False, server_default="Pending"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_leave_requests_faculty_id", "leave_requests", ["faculty_id"])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("action", schedule_action_enum, nullable=False),
        sa.Column("source", sa.String(length=50), nullable=False, server_default="api"),
        sa.Column("schedule_id", sa.Integer(), nullable=True),
        sa.Column("faculty_id", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_logs_schedule_id", "activity_logs", ["schedule_id"])


def downgrade() -> None:
    op.drop_index("ix_activity_logs_schedule_id", table_name="activity_logs")
    op.drop_table("activity_logs")
    op.drop_index("ix_leave_requests_faculty_id", table_name="leave_requests")
    op.drop_table("leave_requests")
    op.drop_index("ix_schedules_class_section_id", table_name="schedules")
    op.drop_index("ix_schedules_faculty_id", table_name="schedules")
    op.drop_table("schedules")
    op.drop_index("ix_class_sections_name", table_name="class_sections")
    op.drop_table("class_sections")
    op.drop_index("ix_subjects_name", table_name="subjects")
    op.drop_table("subjects")
    op.drop_index("ix_faculty_employee_id", table_name="faculty")
    op.drop_table("faculty")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum in (
        schedule_action_enum,
        leave_status_enum,
        leave_type_enum,
        weekday_enum,
        employment_status_enum,
        employment_type_enum,
        user_status_enum,
    ):
        enum.drop(bind, checkfirst=True)
