"""PostgreSQL implementation of ResourceRepo."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from clubhouse.db.tables import ResourceRow
from clubhouse.models.resource import Resource


class PgResourceRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, resource_id: UUID) -> Resource | None:
        stmt = select(ResourceRow).where(ResourceRow.id == resource_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_resource(row) if row is not None else None

    async def add(self, resource: Resource) -> None:
        self._session.add(
            ResourceRow(
                id=resource.id,
                organization_id=resource.organization_id,
                name=resource.name,
                category=resource.category,
                hourly_rate=resource.hourly_rate,
                is_active=resource.is_active,
            )
        )
        await self._session.flush()

    async def update(self, resource_id: UUID, **changes: Any) -> Resource | None:
        stmt = (
            update(ResourceRow)
            .where(ResourceRow.id == resource_id)
            .values(**changes, updated_at=datetime.now(UTC))
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_by_id(resource_id)

    async def list_by_organization(self, organization_id: UUID) -> list[Resource]:
        stmt = (
            select(ResourceRow)
            .where(
                ResourceRow.organization_id == organization_id,
                ResourceRow.is_active.is_(True),
            )
            .order_by(ResourceRow.name)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_resource(r) for r in rows]


def _row_to_resource(row: ResourceRow) -> Resource:
    return Resource(
        id=row.id,
        organization_id=row.organization_id,
        name=row.name,
        category=row.category,
        hourly_rate=row.hourly_rate,
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
