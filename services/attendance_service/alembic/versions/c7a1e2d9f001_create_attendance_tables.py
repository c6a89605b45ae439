"""create_attendance_tables

Revision ID: c7a1e2d9f001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "c7a1e2d9f001"
down_revision = None
branch_labels = None
depends_on = None


user_role_enum = sa.Enum("admin", "member", name="user_role_enum")
attendance_status_enum = sa.Enum(
    "present", "absent", "leave", name="attendance_status_enum"
)
attendance_remark_enum = sa.Enum("on_time", "late", name="attendance_remark_enum")
leave_reason_enum = sa.Enum(
    "medical", "personal", "academic", "other", name="leave_reason_enum"
)
leave_status_enum = sa.Enum("pending", "approved", "rejected", name="leave_status_enum")
letter_grade_enum = sa.Enum("A", "B", "C", "D", "E", "F", name="letter_grade_enum")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("role", user_role_enum, nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("approved", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "attendance_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("person_id", sa.Uuid(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", attendance_status_enum, nullable=False),
        sa.Column("remark", attendance_remark_enum, nullable=True),
        sa.Column("marked_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["person_id"],
            ["users.id"],
            name="fk_attendance_records_person_id_users",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_attendance_records"),
        sa.UniqueConstraint("person_id", "date", name="uq_attendance_person_date"),
    )
    op.create_index(
        "ix_attendance_records_person_id", "attendance_records", ["person_id"]
    )

    op.create_table(
        "leave_requests",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("person_id", sa.Uuid(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("reason", leave_reason_enum, nullable=False),
        sa.Column("status", leave_status_enum, nullable=False),
        sa.Column("reviewed_by", sa.String(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            "start_date <= end_date", name="ck_leave_requests_leave_range_order"
        ),
        sa.ForeignKeyConstraint(
            ["person_id"],
            ["users.id"],
            name="fk_leave_requests_person_id_users",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_leave_requests"),
    )
    op.create_index(
        "ix_leave_requests_person_status", "leave_requests", ["person_id", "status"]
    )

    op.create_table(
        "grade_summaries",
        sa.Column("person_id", sa.Uuid(), nullable=False),
        sa.Column("total_days", sa.Integer(), nullable=False),
        sa.Column("total_present", sa.Integer(), nullable=False),
        sa.Column("total_absent", sa.Integer(), nullable=False),
        sa.Column("total_leave", sa.Integer(), nullable=False),
        sa.Column("percentage", sa.Float(), nullable=False),
        sa.Column("letter_grade", letter_grade_enum, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["person_id"],
            ["users.id"],
            name="fk_grade_summaries_person_id_users",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("person_id", name="pk_grade_summaries"),
    )


def downgrade() -> None:
    op.drop_table("grade_summaries")
    op.drop_index("ix_leave_requests_person_status", table_name="leave_requests")
    op.drop_table("leave_requests")
    op.drop_index("ix_attendance_records_person_id", table_name="attendance_records")
    op.drop_table("attendance_records")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (
        letter_grade_enum,
        leave_status_enum,
        leave_reason_enum,
        attendance_remark_enum,
        attendance_status_enum,
        user_role_enum,
    ):
        enum_type.drop(bind, checkfirst=True)
