"""Create users (commute profile) and calendar_events tables.

Revision ID: 0001_shadow_calendar
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_shadow_calendar"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=True),
        sa.Column("timezone", sa.String(length=64), nullable=False, server_default="UTC"),
        sa.Column("home_address", sa.Text(), nullable=True),
        sa.Column("home_lat", sa.Float(), nullable=True),
        sa.Column("home_lng", sa.Float(), nullable=True),
        sa.Column("transport_mode", sa.String(length=16), nullable=False, server_default="lynx"),
        sa.Column("max_commute_minutes", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "calendar_events",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=True),
        sa.Column("application_id", sa.Uuid(), nullable=True),
        sa.Column("interview_id", sa.Uuid(), nullable=True),
        sa.Column("location_address", sa.Text(), nullable=True),
        sa.Column("location_lat", sa.Float(), nullable=True),
        sa.Column("location_lng", sa.Float(), nullable=True),
        sa.Column("served_event_id", sa.Uuid(), nullable=True),
        sa.Column("transit_mode", sa.String(length=16), nullable=True),
        sa.Column("lynx_route", sa.String(length=200), nullable=True),
        sa.Column("transit_time_minutes", sa.Integer(), nullable=True),
        sa.Column("transit_transfers", sa.Integer(), nullable=True),
        sa.Column("transit_walking_minutes", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("NOW()")),
        sa.Column("deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_calendar_events_user_id_users"),
        sa.ForeignKeyConstraint(
            ["served_event_id"], ["calendar_events.id"], name="fk_calendar_events_served_event_id_calendar_events"
        ),
        sa.CheckConstraint("end_time > start_time", name="ck_calendar_events_time_range"),
        sa.CheckConstraint(
            "(type = 'commute') = (transit_mode IS NOT NULL AND transit_time_minutes IS NOT NULL)",
            name="ck_calendar_events_commute_details",
        ),
    )
    op.create_index("ix_calendar_events_user_id", "calendar_events", ["user_id"], unique=False)
    op.create_index("ix_calendar_events_served_event_id", "calendar_events", ["served_event_id"], unique=False)
    op.create_index(
        "ix_calendar_events_user_range", "calendar_events", ["user_id", "start_time", "end_time"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_calendar_events_user_range", table_name="calendar_events")
    op.drop_index("ix_calendar_events_served_event_id", table_name="calendar_events")
    op.drop_index("ix_calendar_events_user_id", table_name="calendar_events")
    op.drop_table("calendar_events")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
