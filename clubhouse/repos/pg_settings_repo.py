"""PostgreSQL implementation of SettingsRepo."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clubhouse.db.tables import OrganizationSettingsRow
from clubhouse.models.organization import OrganizationSettings


class PgSettingsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, organization_id: UUID) -> OrganizationSettings | None:
        stmt = select(OrganizationSettingsRow).where(
            OrganizationSettingsRow.organization_id == organization_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_settings(row) if row is not None else None

    async def add(self, settings: OrganizationSettings) -> None:
        row = OrganizationSettingsRow(**_settings_values(settings))
        try:
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except IntegrityError as exc:
            raise ValueError("settings already exist") from exc

    async def update(
        self, organization_id: UUID, **changes: Any
    ) -> OrganizationSettings | None:
        if "session_duration_options" in changes:
            changes["session_duration_options"] = list(
                changes["session_duration_options"]
            )
        stmt = (
            update(OrganizationSettingsRow)
            .where(OrganizationSettingsRow.organization_id == organization_id)
            .values(**changes)
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get(organization_id)


def _settings_values(s: OrganizationSettings) -> dict[str, Any]:
    return {
        "organization_id": s.organization_id,
        "booking_slot_interval": s.booking_slot_interval,
        "session_duration_options": list(s.session_duration_options),
        "allow_consecutive_bookings": s.allow_consecutive_bookings,
        "show_day_view": s.show_day_view,
        "days_ahead_booking": s.days_ahead_booking,
        "next_day_opens_at": s.next_day_opens_at,
        "spring_summer_open": s.spring_summer_open,
        "spring_summer_close": s.spring_summer_close,
        "autumn_winter_open": s.autumn_winter_open,
        "autumn_winter_close": s.autumn_winter_close,
        "admin_booking_notification_email": s.admin_booking_notification_email,
        "admin_guest_booking_email": s.admin_guest_booking_email,
    }


def _row_to_settings(row: OrganizationSettingsRow) -> OrganizationSettings:
    return OrganizationSettings(
        organization_id=row.organization_id,
        booking_slot_interval=row.booking_slot_interval,
        session_duration_options=tuple(row.session_duration_options or ()),
        allow_consecutive_bookings=row.allow_consecutive_bookings,
        show_day_view=row.show_day_view,
        days_ahead_booking=row.days_ahead_booking,
        next_day_opens_at=row.next_day_opens_at,
        spring_summer_open=row.spring_summer_open,
        spring_summer_close=row.spring_summer_close,
        autumn_winter_open=row.autumn_winter_open,
        autumn_winter_close=row.autumn_winter_close,
        admin_booking_notification_email=row.admin_booking_notification_email,
        admin_guest_booking_email=row.admin_guest_booking_email,
    )
