from __future__ import annotations

from dataclasses import replace
from typing import Any, Protocol
from uuid import UUID

from clubhouse.models.organization import OrganizationSettings


class SettingsRepo(Protocol):
    async def get(self, organization_id: UUID) -> OrganizationSettings | None: ...
    async def add(self, settings: OrganizationSettings) -> None: ...
    async def update(
        self, organization_id: UUID, **changes: Any
    ) -> OrganizationSettings | None: ...


class InMemorySettingsRepo:
    def __init__(self) -> None:
        self._store: dict[UUID, OrganizationSettings] = {}

    async def get(self, organization_id: UUID) -> OrganizationSettings | None:
        return self._store.get(organization_id)

    async def add(self, settings: OrganizationSettings) -> None:
        if settings.organization_id in self._store:
            raise ValueError("settings already exist")
        self._store[settings.organization_id] = settings

    async def update(
        self, organization_id: UUID, **changes: Any
    ) -> OrganizationSettings | None:
        current = self._store.get(organization_id)
        if current is None:
            return None
        updated = replace(current, **changes)
        self._store[organization_id] = updated
        return updated
