from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, time
from typing import Any
from uuid import UUID, uuid4

MEMBERSHIP_KINDS: tuple[str, ...] = ("manager", "member", "visitor")


@dataclass(frozen=True, slots=True)
class Organization:
    id: UUID
    name: str
    slug: str
    description: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    logo_url: str | None = None
    settings: dict[str, Any] = field(default_factory=dict)
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @staticmethod
    def new(*, name: str, slug: str, **details: Any) -> Organization:
        now = datetime.now(UTC)
        return Organization(
            id=uuid4(), name=name, slug=slug, created_at=now, updated_at=now, **details
        )


@dataclass(frozen=True, slots=True)
class Membership:
    id: UUID
    account_id: UUID
    organization_id: UUID
    kind: str  # manager|member|visitor
    is_active: bool = True
    joined_at: datetime | None = None
    updated_at: datetime | None = None
    permissions: dict[str, Any] | None = None

    @staticmethod
    def new(*, account_id: UUID, organization_id: UUID, kind: str) -> Membership:
        now = datetime.now(UTC)
        return Membership(
            id=uuid4(),
            account_id=account_id,
            organization_id=organization_id,
            kind=kind,
            joined_at=now,
            updated_at=now,
        )


@dataclass(frozen=True, slots=True)
class OrganizationSettings:
    """Booking-policy parameters for one organization.

    Stored and served to clients; booking creation does not enforce them.
    """

    organization_id: UUID
    booking_slot_interval: int = 30  # minutes
    session_duration_options: tuple[int, ...] = (30, 60, 90, 120)
    allow_consecutive_bookings: bool = True
    show_day_view: bool = True
    days_ahead_booking: int = 7
    next_day_opens_at: time = time(0, 0)
    spring_summer_open: time = time(6, 0)
    spring_summer_close: time = time(22, 0)
    autumn_winter_open: time = time(7, 0)
    autumn_winter_close: time = time(20, 0)
    admin_booking_notification_email: str | None = None
    admin_guest_booking_email: str | None = None
