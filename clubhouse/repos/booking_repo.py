from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from clubhouse.models.booking import ACTIVE_STATUSES, Booking


def overlaps(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime
) -> bool:
    """Half-open interval intersection: [a_start, a_end) vs [b_start, b_end).

    Touching endpoints (a_end == b_start) do not overlap.
    """
    return a_start < b_end and b_start < a_end


class BookingRepo(Protocol):
    async def get_by_id(self, booking_id: UUID) -> Booking | None: ...
    async def find_overlapping(
        self, resource_id: UUID, start: datetime, end: datetime
    ) -> list[Booking]: ...
    async def add_if_free(self, booking: Booking) -> None: ...
    async def update_status(
        self, booking_id: UUID, new_status: str, *, expected_status: str
    ) -> Booking | None: ...
    async def list_by_account(self, account_id: UUID) -> list[Booking]: ...
    async def list_by_organization(
        self,
        organization_id: UUID,
        *,
        start_from: datetime | None = None,
        end_until: datetime | None = None,
    ) -> list[Booking]: ...
    async def count_created_since(
        self, organization_id: UUID, since: datetime
    ) -> int: ...


class InMemoryBookingRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Booking] = {}

    async def get_by_id(self, booking_id: UUID) -> Booking | None:
        return self._by_id.get(booking_id)

    async def find_overlapping(
        self, resource_id: UUID, start: datetime, end: datetime
    ) -> list[Booking]:
        return self._overlapping(resource_id, start, end)

    async def add_if_free(self, booking: Booking) -> None:
        """Insert *booking* unless an active booking on its resource overlaps.

        Raises ValueError on overlap. There is no await between the scan and
        the insert, so the pair is atomic on the event loop.
        """
        if self._overlapping(booking.resource_id, booking.start_time, booking.end_time):
            raise ValueError("time slot is already booked")
        self._by_id[booking.id] = booking

    async def update_status(
        self, booking_id: UUID, new_status: str, *, expected_status: str
    ) -> Booking | None:
        """Compare-and-set on status. None if missing or changed underneath us."""
        current = self._by_id.get(booking_id)
        if current is None or current.status != expected_status:
            return None
        updated = replace(current, status=new_status, updated_at=datetime.now(UTC))
        self._by_id[booking_id] = updated
        return updated

    async def list_by_account(self, account_id: UUID) -> list[Booking]:
        return _newest_first(b for b in self._by_id.values() if b.account_id == account_id)

    async def list_by_organization(
        self,
        organization_id: UUID,
        *,
        start_from: datetime | None = None,
        end_until: datetime | None = None,
    ) -> list[Booking]:
        return _newest_first(
            b
            for b in self._by_id.values()
            if b.organization_id == organization_id
            and (start_from is None or b.start_time >= start_from)
            and (end_until is None or b.end_time <= end_until)
        )

    async def count_created_since(self, organization_id: UUID, since: datetime) -> int:
        return sum(
            1
            for b in self._by_id.values()
            if b.organization_id == organization_id
            and b.created_at is not None
            and b.created_at >= since
        )

    def _overlapping(
        self, resource_id: UUID, start: datetime, end: datetime
    ) -> list[Booking]:
        return [
            b
            for b in self._by_id.values()
            if b.resource_id == resource_id
            and b.status in ACTIVE_STATUSES
            and overlaps(b.start_time, b.end_time, start, end)
        ]


def _newest_first(bookings) -> list[Booking]:
    return sorted(bookings, key=lambda b: b.start_time, reverse=True)
