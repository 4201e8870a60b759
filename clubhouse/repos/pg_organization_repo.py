"""PostgreSQL implementation of OrganizationRepo."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clubhouse.db.tables import OrganizationRow
from clubhouse.models.organization import Organization


class PgOrganizationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, organization_id: UUID) -> Organization | None:
        stmt = select(OrganizationRow).where(OrganizationRow.id == organization_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_organization(row) if row is not None else None

    async def get_by_slug(self, slug: str) -> Organization | None:
        stmt = select(OrganizationRow).where(OrganizationRow.slug == slug)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_organization(row) if row is not None else None

    async def add(self, organization: Organization) -> None:
        row = OrganizationRow(
            id=organization.id,
            name=organization.name,
            slug=organization.slug,
            description=organization.description,
            address=organization.address,
            phone=organization.phone,
            email=organization.email,
            website=organization.website,
            logo_url=organization.logo_url,
            settings=dict(organization.settings),
            is_active=organization.is_active,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except IntegrityError as exc:
            raise ValueError("slug already exists") from exc

    async def update(
        self, organization_id: UUID, **changes: Any
    ) -> Organization | None:
        stmt = (
            update(OrganizationRow)
            .where(OrganizationRow.id == organization_id)
            .values(**changes, updated_at=datetime.now(UTC))
        )
        try:
            async with self._session.begin_nested():
                result = await self._session.execute(stmt)
        except IntegrityError as exc:
            raise ValueError("slug already exists") from exc
        if result.rowcount == 0:
            return None
        return await self.get_by_id(organization_id)

    async def list_active(self) -> list[Organization]:
        stmt = (
            select(OrganizationRow)
            .where(OrganizationRow.is_active.is_(True))
            .order_by(OrganizationRow.name)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_organization(r) for r in rows]


def _row_to_organization(row: OrganizationRow) -> Organization:
    return Organization(
        id=row.id,
        name=row.name,
        slug=row.slug,
        description=row.description,
        address=row.address,
        phone=row.phone,
        email=row.email,
        website=row.website,
        logo_url=row.logo_url,
        settings=dict(row.settings or {}),
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
