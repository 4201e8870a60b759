"""PostgreSQL implementation of MembershipRepo."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clubhouse.db.tables import MembershipRow
from clubhouse.models.organization import Membership


class PgMembershipRepo:
    """Uniqueness of the active pair is backed by uq_memberships_active_pair."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_active(
        self, account_id: UUID, organization_id: UUID
    ) -> Membership | None:
        stmt = select(MembershipRow).where(
            MembershipRow.account_id == account_id,
            MembershipRow.organization_id == organization_id,
            MembershipRow.is_active.is_(True),
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_membership(row) if row is not None else None

    async def add(self, membership: Membership) -> None:
        row = MembershipRow(
            id=membership.id,
            account_id=membership.account_id,
            organization_id=membership.organization_id,
            kind=membership.kind,
            is_active=membership.is_active,
            permissions=membership.permissions,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except IntegrityError as exc:
            raise ValueError("active membership already exists") from exc

    async def deactivate(self, account_id: UUID, organization_id: UUID) -> bool:
        stmt = (
            update(MembershipRow)
            .where(
                MembershipRow.account_id == account_id,
                MembershipRow.organization_id == organization_id,
                MembershipRow.is_active.is_(True),
            )
            .values(is_active=False, updated_at=datetime.now(UTC))
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def update_kind(
        self, account_id: UUID, organization_id: UUID, kind: str
    ) -> Membership | None:
        stmt = (
            update(MembershipRow)
            .where(
                MembershipRow.account_id == account_id,
                MembershipRow.organization_id == organization_id,
                MembershipRow.is_active.is_(True),
            )
            .values(kind=kind, updated_at=datetime.now(UTC))
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_active(account_id, organization_id)

    async def list_by_organization(self, organization_id: UUID) -> list[Membership]:
        stmt = (
            select(MembershipRow)
            .where(
                MembershipRow.organization_id == organization_id,
                MembershipRow.is_active.is_(True),
            )
            .order_by(MembershipRow.joined_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_membership(r) for r in rows]


def _row_to_membership(row: MembershipRow) -> Membership:
    return Membership(
        id=row.id,
        account_id=row.account_id,
        organization_id=row.organization_id,
        kind=row.kind,
        is_active=row.is_active,
        joined_at=row.joined_at,
        updated_at=row.updated_at,
        permissions=row.permissions,
    )
