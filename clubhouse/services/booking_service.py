"""Booking validation and writes.

create_booking runs its checks in a fixed order so the first failure wins:
time range, resource lookup, membership, price, then overlap + insert. The
last step is a single repository call (add_if_free) so two concurrent
requests for overlapping windows cannot both succeed.

Status machine::

    pending   -> confirmed | cancelled
    confirmed -> cancelled | completed
    cancelled, completed: terminal

Managers of the booking's organization (and the bypass role) may set any
status on a non-terminal booking. The booking's owner may only cancel.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import NoReturn
from uuid import UUID

from clubhouse.core.errors import (
    ClubhouseError,
    Conflict,
    Forbidden,
    InvalidRequest,
    InvalidTransition,
    NotFound,
)
from clubhouse.core.metrics import (
    AUTHZ_DENIALS,
    BOOKING_STATUS_CHANGES,
    BOOKINGS_CREATED,
    BOOKINGS_REJECTED,
)
from clubhouse.models.booking import BOOKING_STATUSES, TERMINAL_STATUSES, Booking
from clubhouse.models.caller import Caller
from clubhouse.repos.booking_repo import overlaps as overlaps
from clubhouse.repos.store import Store
from clubhouse.services import authorization

logger = logging.getLogger(__name__)

_CENT = Decimal("0.01")
_MICROSECONDS_PER_HOUR = Decimal(3_600_000_000)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def compute_total(hourly_rate: Decimal, start: datetime, end: datetime) -> Decimal:
    """rate * duration in hours, rounded half-up to the cent."""
    delta: timedelta = end - start
    micros = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    hours = Decimal(micros) / _MICROSECONDS_PER_HOUR
    return (Decimal(hourly_rate) * hours).quantize(_CENT, rounding=ROUND_HALF_UP)


async def create_booking(
    store: Store,
    caller: Caller,
    *,
    resource_id: UUID,
    start: datetime,
    end: datetime,
    notes: str | None = None,
    organization_id: UUID | None = None,
    now: datetime | None = None,
) -> Booking:
    try:
        booking = await _validate_and_insert(
            store,
            caller,
            resource_id=resource_id,
            start=as_utc(start),
            end=as_utc(end),
            notes=notes,
            organization_id=organization_id,
            now=as_utc(now) if now is not None else datetime.now(UTC),
        )
    except ClubhouseError as exc:
        BOOKINGS_REJECTED.labels(reason=exc.code).inc()
        logger.info(
            "Booking rejected account=%s resource=%s reason=%s",
            caller.account_id,
            resource_id,
            exc.code,
        )
        raise

    BOOKINGS_CREATED.inc()
    logger.info(
        "Booking created id=%s account=%s resource=%s start=%s end=%s",
        booking.id,
        booking.account_id,
        booking.resource_id,
        booking.start_time.isoformat(),
        booking.end_time.isoformat(),
    )
    return booking


async def _validate_and_insert(
    store: Store,
    caller: Caller,
    *,
    resource_id: UUID,
    start: datetime,
    end: datetime,
    notes: str | None,
    organization_id: UUID | None,
    now: datetime,
) -> Booking:
    if end <= start:
        raise InvalidRequest("End time must be after start time")
    if start < now:
        raise InvalidRequest("Cannot book in the past")

    resource = await store.resources.get_by_id(resource_id)
    if resource is None or not resource.is_active:
        raise NotFound("Resource not found")
    if organization_id is not None and resource.organization_id != organization_id:
        raise NotFound("Resource not found")
    organization = await store.organizations.get_by_id(resource.organization_id)
    if organization is None or not organization.is_active:
        raise NotFound("Resource not found")

    await authorization.require_member(store, caller, organization.id)

    booking = Booking.new(
        account_id=caller.account_id,
        organization_id=organization.id,
        resource_id=resource.id,
        start_time=start,
        end_time=end,
        total_amount=compute_total(resource.hourly_rate, start, end),
        notes=notes,
    )
    try:
        await store.bookings.add_if_free(booking)
    except ValueError:
        raise Conflict("Time slot is already booked") from None
    return booking


async def update_booking_status(
    store: Store, caller: Caller, booking_id: UUID, new_status: str
) -> Booking:
    """Move a booking to new_status.

    Checks run in this order: the requested status must be a known one
    (InvalidRequest), the booking must exist (NotFound), it must not be
    terminal (InvalidTransition), and only then is the caller's role
    consulted. A malformed status is a bad request whatever the booking's
    state, so an unknown status on a cancelled or completed booking is
    InvalidRequest, not InvalidTransition.
    """
    if new_status not in BOOKING_STATUSES:
        raise InvalidRequest(
            f"status must be one of {', '.join(BOOKING_STATUSES)}"
        )

    booking = await store.bookings.get_by_id(booking_id)
    if booking is None:
        raise NotFound("Booking not found")

    # Terminal wins over every role, including the bypass role.
    if booking.status in TERMINAL_STATUSES:
        raise InvalidTransition(f"Booking is already {booking.status}")

    is_manager = await authorization.has_organization_capability(
        store, caller, booking.organization_id, "manager"
    )
    is_owner = booking.account_id == caller.account_id
    if not (is_manager or is_owner):
        _deny(caller, booking)

    if not is_manager and new_status != "cancelled":
        _deny(caller, booking)

    return await _apply_status(store, caller, booking, new_status)


async def cancel_own_booking(store: Store, caller: Caller, booking_id: UUID) -> Booking:
    """Owner cancel. Managers of the organization and the bypass role may
    also cancel through here."""
    booking = await store.bookings.get_by_id(booking_id)
    if booking is None:
        raise NotFound("Booking not found")

    if booking.account_id != caller.account_id and not (
        await authorization.has_organization_capability(
            store, caller, booking.organization_id, "manager"
        )
    ):
        _deny(caller, booking)

    if booking.status == "cancelled":
        raise InvalidRequest("Booking is already cancelled")
    if booking.status == "completed":
        raise InvalidRequest("Cannot cancel completed booking")

    return await _apply_status(store, caller, booking, "cancelled")


async def get_booking(store: Store, caller: Caller, booking_id: UUID) -> Booking:
    booking = await store.bookings.get_by_id(booking_id)
    if booking is None:
        raise NotFound("Booking not found")
    if booking.account_id != caller.account_id:
        await authorization.require_member(store, caller, booking.organization_id)
    return booking


async def list_my_bookings(store: Store, caller: Caller) -> list[Booking]:
    return await store.bookings.list_by_account(caller.account_id)


async def list_organization_bookings(
    store: Store,
    caller: Caller,
    organization_id: UUID,
    *,
    start_from: datetime | None = None,
    end_until: datetime | None = None,
) -> list[Booking]:
    organization = await store.organizations.get_by_id(organization_id)
    if organization is None:
        raise NotFound("Organization not found")
    await authorization.require_member(store, caller, organization_id)
    return await store.bookings.list_by_organization(
        organization_id,
        start_from=as_utc(start_from) if start_from is not None else None,
        end_until=as_utc(end_until) if end_until is not None else None,
    )


async def _apply_status(
    store: Store, caller: Caller, booking: Booking, new_status: str
) -> Booking:
    try:
        updated = await store.bookings.update_status(
            booking.id, new_status, expected_status=booking.status
        )
    except ValueError:
        raise Conflict("Time slot is already booked") from None
    if updated is None:
        raise Conflict("Booking was modified concurrently, retry")

    BOOKING_STATUS_CHANGES.labels(to_status=new_status).inc()
    logger.info(
        "Booking status changed id=%s %s->%s by account=%s",
        booking.id,
        booking.status,
        new_status,
        caller.account_id,
    )
    return updated


def _deny(caller: Caller, booking: Booking) -> NoReturn:
    AUTHZ_DENIALS.labels(check="ownership").inc()
    logger.warning(
        "Access denied: account=%s on booking=%s", caller.account_id, booking.id
    )
    raise Forbidden("Insufficient permissions")
