from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from clubhouse.api.dependencies import CallerDep, StoreDep
from clubhouse.models.booking import Booking
from clubhouse.services import booking_service

router = APIRouter(prefix="/bookings", tags=["bookings"])


class BookingIn(BaseModel):
    resource_id: UUID
    start_time: datetime
    end_time: datetime
    notes: str | None = Field(default=None, max_length=2000)
    # Optional cross-check: the resource must belong to this organization.
    organization_id: UUID | None = None


class StatusIn(BaseModel):
    status: str


class BookingOut(BaseModel):
    id: UUID
    account_id: UUID
    organization_id: UUID
    resource_id: UUID
    start_time: datetime
    end_time: datetime
    status: str
    total_amount: Decimal
    notes: str | None
    created_at: datetime | None
    updated_at: datetime | None


def booking_out(booking: Booking) -> BookingOut:
    return BookingOut(
        id=booking.id,
        account_id=booking.account_id,
        organization_id=booking.organization_id,
        resource_id=booking.resource_id,
        start_time=booking.start_time,
        end_time=booking.end_time,
        status=booking.status,
        total_amount=booking.total_amount,
        notes=booking.notes,
        created_at=booking.created_at,
        updated_at=booking.updated_at,
    )


@router.post("", response_model=BookingOut, status_code=status.HTTP_201_CREATED)
async def create_booking(
    body: BookingIn, caller: CallerDep, store: StoreDep
) -> BookingOut:
    booking = await booking_service.create_booking(
        store,
        caller,
        resource_id=body.resource_id,
        start=body.start_time,
        end=body.end_time,
        notes=body.notes.strip() if body.notes else None,
        organization_id=body.organization_id,
    )
    return booking_out(booking)


# Declared before /{booking_id} so "mine" is not parsed as an id.
@router.get("/mine", response_model=list[BookingOut])
async def my_bookings(caller: CallerDep, store: StoreDep) -> list[BookingOut]:
    bookings = await booking_service.list_my_bookings(store, caller)
    return [booking_out(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingOut)
async def get_booking(
    booking_id: UUID, caller: CallerDep, store: StoreDep
) -> BookingOut:
    return booking_out(await booking_service.get_booking(store, caller, booking_id))


@router.put("/{booking_id}/status", response_model=BookingOut)
async def update_status(
    booking_id: UUID, body: StatusIn, caller: CallerDep, store: StoreDep
) -> BookingOut:
    booking = await booking_service.update_booking_status(
        store, caller, booking_id, body.status
    )
    return booking_out(booking)


@router.put("/{booking_id}/cancel", response_model=BookingOut)
async def cancel_booking(
    booking_id: UUID, caller: CallerDep, store: StoreDep
) -> BookingOut:
    booking = await booking_service.cancel_own_booking(store, caller, booking_id)
    return booking_out(booking)
