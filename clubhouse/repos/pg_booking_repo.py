"""PostgreSQL implementation of BookingRepo.

The pre-insert overlap query gives a clean error in the common case; the
bookings_no_overlap exclusion constraint decides the race between two
concurrent inserts.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clubhouse.db.tables import BOOKING_OVERLAP_CONSTRAINT, BookingRow
from clubhouse.models.booking import ACTIVE_STATUSES, Booking


class PgBookingRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, booking_id: UUID) -> Booking | None:
        stmt = select(BookingRow).where(BookingRow.id == booking_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_booking(row) if row is not None else None

    async def find_overlapping(
        self, resource_id: UUID, start: datetime, end: datetime
    ) -> list[Booking]:
        stmt = select(BookingRow).where(
            BookingRow.resource_id == resource_id,
            BookingRow.status.in_(ACTIVE_STATUSES),
            BookingRow.start_time < end,
            BookingRow.end_time > start,
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_booking(r) for r in rows]

    async def add_if_free(self, booking: Booking) -> None:
        if await self.find_overlapping(
            booking.resource_id, booking.start_time, booking.end_time
        ):
            raise ValueError("time slot is already booked")
        row = BookingRow(
            id=booking.id,
            account_id=booking.account_id,
            organization_id=booking.organization_id,
            resource_id=booking.resource_id,
            start_time=booking.start_time,
            end_time=booking.end_time,
            status=booking.status,
            total_amount=booking.total_amount,
            notes=booking.notes,
            created_at=booking.created_at or datetime.now(UTC),
            updated_at=booking.updated_at or datetime.now(UTC),
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except IntegrityError as exc:
            if BOOKING_OVERLAP_CONSTRAINT in str(exc.orig):
                raise ValueError("time slot is already booked") from exc
            raise

    async def update_status(
        self, booking_id: UUID, new_status: str, *, expected_status: str
    ) -> Booking | None:
        stmt = (
            update(BookingRow)
            .where(BookingRow.id == booking_id, BookingRow.status == expected_status)
            .values(status=new_status, updated_at=datetime.now(UTC))
        )
        try:
            async with self._session.begin_nested():
                result = await self._session.execute(stmt)
        except IntegrityError as exc:
            # Re-activating a cancelled slot that has since been taken.
            if BOOKING_OVERLAP_CONSTRAINT in str(exc.orig):
                raise ValueError("time slot is already booked") from exc
            raise
        if result.rowcount == 0:
            return None
        return await self.get_by_id(booking_id)

    async def list_by_account(self, account_id: UUID) -> list[Booking]:
        stmt = (
            select(BookingRow)
            .where(BookingRow.account_id == account_id)
            .order_by(BookingRow.start_time.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_booking(r) for r in rows]

    async def list_by_organization(
        self,
        organization_id: UUID,
        *,
        start_from: datetime | None = None,
        end_until: datetime | None = None,
    ) -> list[Booking]:
        stmt = select(BookingRow).where(BookingRow.organization_id == organization_id)
        if start_from is not None:
            stmt = stmt.where(BookingRow.start_time >= start_from)
        if end_until is not None:
            stmt = stmt.where(BookingRow.end_time <= end_until)
        stmt = stmt.order_by(BookingRow.start_time.desc())
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_booking(r) for r in rows]

    async def count_created_since(self, organization_id: UUID, since: datetime) -> int:
        stmt = select(func.count()).where(
            BookingRow.organization_id == organization_id,
            BookingRow.created_at >= since,
        )
        return int((await self._session.execute(stmt)).scalar_one())


def _row_to_booking(row: BookingRow) -> Booking:
    return Booking(
        id=row.id,
        account_id=row.account_id,
        organization_id=row.organization_id,
        resource_id=row.resource_id,
        start_time=row.start_time,
        end_time=row.end_time,
        total_amount=row.total_amount,
        status=row.status,
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
