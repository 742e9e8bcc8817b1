"""Create clinic scheduling tables.

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 00:00:01
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261018_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute(sa.text("CREATE EXTENSION IF NOT EXISTS btree_gist"))

    op.create_table(
        "business_hours",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column("open_time", sa.Time(), nullable=False),
        sa.Column("close_time", sa.Time(), nullable=False),
        sa.Column("is_closed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.CheckConstraint("weekday BETWEEN 0 AND 6", name="ck_business_hours_weekday"),
    )
    op.create_index("ix_business_hours_weekday", "business_hours", ["weekday"], unique=True)

    op.create_table(
        "staff",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("max_parallel", sa.Integer(), nullable=False, server_default=sa.text("8")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )

    op.create_table(
        "staff_schedules",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("staff_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("is_off", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("work_start", sa.Time(), nullable=True),
        sa.Column("work_end", sa.Time(), nullable=True),
        sa.ForeignKeyConstraint(["staff_id"], ["staff.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("staff_id", "date", name="uq_staff_schedules_staff_date"),
    )
    op.create_index("ix_staff_schedules_staff_id", "staff_schedules", ["staff_id"], unique=False)

    op.create_table(
        "menus",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("duration_min", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.CheckConstraint("duration_min > 0", name="ck_menus_duration_positive"),
    )

    op.create_table(
        "patients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("line_user_id", sa.String(length=255), nullable=True),
        sa.Column(
            "preferred_contact",
            sa.String(length=16),
            nullable=False,
            server_default=sa.text("'none'"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    )
    op.create_index("ix_patients_email", "patients", ["email"], unique=False)

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("patient_id", sa.Integer(), nullable=True),
        sa.Column("menu_id", sa.Integer(), nullable=False),
        sa.Column("staff_id", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column(
            "contact_channels",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
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
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["menu_id"], ["menus.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["staff_id"], ["staff.id"], ondelete="RESTRICT"),
        sa.CheckConstraint("end_time > start_time", name="ck_bookings_interval"),
    )
    op.create_index("ix_bookings_patient_id", "bookings", ["patient_id"], unique=False)
    op.create_index("ix_bookings_menu_id", "bookings", ["menu_id"], unique=False)
    op.create_index("ix_bookings_staff_id", "bookings", ["staff_id"], unique=False)
    op.create_index("ix_bookings_start_time", "bookings", ["start_time"], unique=False)
    op.create_index("ix_bookings_status", "bookings", ["status"], unique=False)
    op.create_index(
        "uq_bookings_staff_start_confirmed",
        "bookings",
        ["staff_id", "start_time"],
        unique=True,
        postgresql_where=sa.text("status = 'confirmed'"),
    )
    # Overlapping confirmed bookings for one staff member are rejected at write time.
    op.execute(
        sa.text(
            "ALTER TABLE bookings ADD CONSTRAINT ex_bookings_staff_no_overlap "
            "EXCLUDE USING gist (staff_id WITH =, tstzrange(start_time, end_time, '[)') WITH &&) "
            "WHERE (status = 'confirmed')"
        )
    )

    op.create_table(
        "notification_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("booking_id", sa.Integer(), nullable=False),
        sa.Column("channel", sa.String(length=16), nullable=False),
        sa.Column("event", sa.String(length=16), nullable=False),
        sa.Column(
            "sent_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("result", sa.Text(), nullable=True),
        sa.Column("provider_msg_id", sa.String(length=255), nullable=True),
        sa.Column("details_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_notification_logs_booking_id", "notification_logs", ["booking_id"], unique=False)
    op.create_index("ix_notification_logs_event", "notification_logs", ["event"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_notification_logs_event", table_name="notification_logs")
    op.drop_index("ix_notification_logs_booking_id", table_name="notification_logs")
    op.drop_table("notification_logs")

    op.execute(sa.text("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_staff_no_overlap"))
    op.drop_index("uq_bookings_staff_start_confirmed", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_start_time", table_name="bookings")
    op.drop_index("ix_bookings_staff_id", table_name="bookings")
    op.drop_index("ix_bookings_menu_id", table_name="bookings")
    op.drop_index("ix_bookings_patient_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_patients_email", table_name="patients")
    op.drop_table("patients")

    op.drop_table("menus")

    op.drop_index("ix_staff_schedules_staff_id", table_name="staff_schedules")
    op.drop_table("staff_schedules")

    op.drop_table("staff")

    op.drop_index("ix_business_hours_weekday", table_name="business_hours")
    op.drop_table("business_hours")
