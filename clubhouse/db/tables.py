"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in clubhouse/models/.
Repos convert between SQLAlchemy rows and domain dataclasses.
"""

from __future__ import annotations

import datetime
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    DDL,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    event,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from clubhouse.db.engine import Base


def _now_column() -> Any:
    return mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


# --- Accounts and global roles ---


class AccountRow(Base):
    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    locale: Mapped[str] = mapped_column(String(16), nullable=False, default="en")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime.datetime] = _now_column()
    updated_at: Mapped[datetime.datetime] = _now_column()


class RoleRow(Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)


class AccountRoleRow(Base):
    __tablename__ = "account_roles"

    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("accounts.id"), primary_key=True
    )
    role_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("roles.id"), primary_key=True
    )
    assigned_at: Mapped[datetime.datetime] = _now_column()


# --- Organizations ("clubs") and memberships ---


class OrganizationRow(Base):
    __tablename__ = "organizations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    website: Mapped[str | None] = mapped_column(String(512), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    settings: Mapped[dict[str, Any]] = mapped_column(
        JSONB, nullable=False, default=dict
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime.datetime] = _now_column()
    updated_at: Mapped[datetime.datetime] = _now_column()


class MembershipRow(Base):
    __tablename__ = "memberships"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("accounts.id"), nullable=False
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(32), nullable=False)  # manager|member|visitor
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    permissions: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    joined_at: Mapped[datetime.datetime] = _now_column()
    updated_at: Mapped[datetime.datetime] = _now_column()

    __table_args__ = (
        # At most one active membership per (account, organization).
        Index(
            "uq_memberships_active_pair",
            "account_id",
            "organization_id",
            unique=True,
            postgresql_where=text("is_active"),
        ),
        Index("ix_memberships_organization", "organization_id"),
    )


class OrganizationSettingsRow(Base):
    __tablename__ = "organization_settings"

    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), primary_key=True
    )
    booking_slot_interval: Mapped[int] = mapped_column(
        Integer, nullable=False, default=30
    )
    session_duration_options: Mapped[list[int]] = mapped_column(
        ARRAY(Integer), nullable=False, default=lambda: [30, 60, 90, 120]
    )
    allow_consecutive_bookings: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    show_day_view: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    days_ahead_booking: Mapped[int] = mapped_column(Integer, nullable=False, default=7)
    next_day_opens_at: Mapped[datetime.time] = mapped_column(
        Time, nullable=False, default=datetime.time(0, 0)
    )
    spring_summer_open: Mapped[datetime.time] = mapped_column(
        Time, nullable=False, default=datetime.time(6, 0)
    )
    spring_summer_close: Mapped[datetime.time] = mapped_column(
        Time, nullable=False, default=datetime.time(22, 0)
    )
    autumn_winter_open: Mapped[datetime.time] = mapped_column(
        Time, nullable=False, default=datetime.time(7, 0)
    )
    autumn_winter_close: Mapped[datetime.time] = mapped_column(
        Time, nullable=False, default=datetime.time(20, 0)
    )
    admin_booking_notification_email: Mapped[str | None] = mapped_column(
        String(320), nullable=True
    )
    admin_guest_booking_email: Mapped[str | None] = mapped_column(
        String(320), nullable=True
    )


# --- Resources ("courts") and bookings ---


class ResourceRow(Base):
    __tablename__ = "resources"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="Tennis")
    hourly_rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime.datetime] = _now_column()
    updated_at: Mapped[datetime.datetime] = _now_column()


class BookingRow(Base):
    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    account_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("accounts.id"), nullable=False
    )
    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("organizations.id"), nullable=False
    )
    resource_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("resources.id"), nullable=False
    )
    start_time: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    end_time: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="pending"
    )  # pending|confirmed|cancelled|completed
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime.datetime] = _now_column()
    updated_at: Mapped[datetime.datetime] = _now_column()

    __table_args__ = (
        Index("ix_bookings_account", "account_id", "start_time"),
        Index("ix_bookings_organization", "organization_id", "start_time"),
        Index("ix_bookings_resource", "resource_id", "start_time"),
        CheckConstraint("end_time > start_time", name="bookings_time_order"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')",
            name="bookings_status_valid",
        ),
    )


# The overlap rule is enforced by the database, not just the application:
# no two pending/confirmed bookings for one resource may share any instant
# of their [start, end) ranges. Requires the btree_gist extension for the
# equality part on resource_id.

BOOKING_OVERLAP_CONSTRAINT = "bookings_no_overlap"

CREATE_BTREE_GIST = DDL("CREATE EXTENSION IF NOT EXISTS btree_gist")

CREATE_BOOKING_OVERLAP_CONSTRAINT = DDL(
    f"ALTER TABLE bookings ADD CONSTRAINT {BOOKING_OVERLAP_CONSTRAINT} "
    "EXCLUDE USING gist ("
    "resource_id WITH =, "
    "tstzrange(start_time, end_time, '[)') WITH &&"
    ") WHERE (status IN ('pending', 'confirmed'))"
)

event.listen(
    BookingRow.__table__,
    "before_create",
    CREATE_BTREE_GIST.execute_if(dialect="postgresql"),
)
event.listen(
    BookingRow.__table__,
    "after_create",
    CREATE_BOOKING_OVERLAP_CONSTRAINT.execute_if(dialect="postgresql"),
)
