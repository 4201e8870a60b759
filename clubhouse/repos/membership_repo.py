from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from clubhouse.models.organization import Membership

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


class MembershipRepo(Protocol):
    async def get_active(
        self, account_id: UUID, organization_id: UUID
    ) -> Membership | None: ...
    async def add(self, membership: Membership) -> None: ...
    async def deactivate(self, account_id: UUID, organization_id: UUID) -> bool: ...
    async def update_kind(
        self, account_id: UUID, organization_id: UUID, kind: str
    ) -> Membership | None: ...
    async def list_by_organization(self, organization_id: UUID) -> list[Membership]: ...


class InMemoryMembershipRepo:
    """Keeps every row, active or not; only one active row per pair."""

    def __init__(self) -> None:
        self._rows: dict[UUID, Membership] = {}

    def _find_active(self, account_id: UUID, organization_id: UUID) -> Membership | None:
        for m in self._rows.values():
            if (
                m.is_active
                and m.account_id == account_id
                and m.organization_id == organization_id
            ):
                return m
        return None

    async def get_active(
        self, account_id: UUID, organization_id: UUID
    ) -> Membership | None:
        return self._find_active(account_id, organization_id)

    async def add(self, membership: Membership) -> None:
        if self._find_active(membership.account_id, membership.organization_id):
            raise ValueError("active membership already exists")
        self._rows[membership.id] = membership

    async def deactivate(self, account_id: UUID, organization_id: UUID) -> bool:
        existing = self._find_active(account_id, organization_id)
        if existing is None:
            return False
        self._rows[existing.id] = replace(
            existing, is_active=False, updated_at=datetime.now(UTC)
        )
        return True

    async def update_kind(
        self, account_id: UUID, organization_id: UUID, kind: str
    ) -> Membership | None:
        existing = self._find_active(account_id, organization_id)
        if existing is None:
            return None
        updated = replace(existing, kind=kind, updated_at=datetime.now(UTC))
        self._rows[existing.id] = updated
        return updated

    async def list_by_organization(self, organization_id: UUID) -> list[Membership]:
        members = [
            m
            for m in self._rows.values()
            if m.organization_id == organization_id and m.is_active
        ]
        return sorted(members, key=lambda m: m.joined_at or _EPOCH)
