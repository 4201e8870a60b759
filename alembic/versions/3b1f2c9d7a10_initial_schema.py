"""initial schema

Revision ID: 3b1f2c9d7a10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b1f2c9d7a10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ROLE_NAMES = ("super-admin", "owner", "manager")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def _time(name: str, default: str) -> sa.Column:
    return sa.Column(name, sa.Time(), nullable=False, server_default=default)


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    op.create_table(
        "accounts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("locale", sa.String(16), nullable=False, server_default="en"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    roles = op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(64), nullable=False, unique=True),
    )
    op.bulk_insert(roles, [{"name": name} for name in ROLE_NAMES])

    op.create_table(
        "account_roles",
        sa.Column(
            "account_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("accounts.id"),
            primary_key=True,
        ),
        sa.Column(
            "role_id", sa.Integer(), sa.ForeignKey("roles.id"), primary_key=True
        ),
        sa.Column(
            "assigned_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "organizations",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False, unique=True),
        sa.Column("description", sa.Text()),
        sa.Column("address", sa.Text()),
        sa.Column("phone", sa.String(64)),
        sa.Column("email", sa.String(320)),
        sa.Column("website", sa.String(512)),
        sa.Column("logo_url", sa.String(512)),
        sa.Column(
            "settings",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "memberships",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "account_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("accounts.id"),
            nullable=False,
        ),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.id"),
            nullable=False,
        ),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("permissions", postgresql.JSONB()),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "uq_memberships_active_pair",
        "memberships",
        ["account_id", "organization_id"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )
    op.create_index("ix_memberships_organization", "memberships", ["organization_id"])

    op.create_table(
        "organization_settings",
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.id"),
            primary_key=True,
        ),
        sa.Column(
            "booking_slot_interval", sa.Integer(), nullable=False, server_default="30"
        ),
        sa.Column(
            "session_duration_options",
            postgresql.ARRAY(sa.Integer()),
            nullable=False,
            server_default=sa.text("'{30,60,90,120}'"),
        ),
        sa.Column(
            "allow_consecutive_bookings",
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
        ),
        sa.Column(
            "show_day_view", sa.Boolean(), nullable=False, server_default=sa.true()
        ),
        sa.Column(
            "days_ahead_booking", sa.Integer(), nullable=False, server_default="7"
        ),
        _time("next_day_opens_at", "00:00"),
        _time("spring_summer_open", "06:00"),
        _time("spring_summer_close", "22:00"),
        _time("autumn_winter_open", "07:00"),
        _time("autumn_winter_close", "20:00"),
        sa.Column("admin_booking_notification_email", sa.String(320)),
        sa.Column("admin_guest_booking_email", sa.String(320)),
    )

    op.create_table(
        "resources",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(64), nullable=False, server_default="Tennis"),
        sa.Column(
            "hourly_rate", sa.Numeric(10, 2), nullable=False, server_default="0.00"
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "account_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("accounts.id"),
            nullable=False,
        ),
        sa.Column(
            "organization_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("organizations.id"),
            nullable=False,
        ),
        sa.Column(
            "resource_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("resources.id"),
            nullable=False,
        ),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
        sa.CheckConstraint("end_time > start_time", name="bookings_time_order"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name="bookings_status_valid",
        ),
    )
    op.create_index("ix_bookings_account", "bookings", ["account_id", "start_time"])
    op.create_index(
        "ix_bookings_organization", "bookings", ["organization_id", "start_time"]
    )
    op.create_index("ix_bookings_resource", "bookings", ["resource_id", "start_time"])

    # No two pending/confirmed bookings on one resource may share an instant.
    op.execute(
        "ALTER TABLE bookings ADD CONSTRAINT bookings_no_overlap "
        "EXCLUDE USING gist ("
        "resource_id WITH =, "
        "tstzrange(start_time, end_time, '[)') WITH &&"
        ") WHERE (status IN ('pending', 'confirmed'))"
    )


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("resources")
    op.drop_table("organization_settings")
    op.drop_table("memberships")
    op.drop_table("organizations")
    op.drop_table("account_roles")
    op.drop_table("roles")
    op.drop_table("accounts")
