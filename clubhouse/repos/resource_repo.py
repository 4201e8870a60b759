from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, Protocol
from uuid import UUID

from clubhouse.models.resource import Resource


class ResourceRepo(Protocol):
    async def get_by_id(self, resource_id: UUID) -> Resource | None: ...
    async def add(self, resource: Resource) -> None: ...
    async def update(self, resource_id: UUID, **changes: Any) -> Resource | None: ...
    async def list_by_organization(self, organization_id: UUID) -> list[Resource]: ...


class InMemoryResourceRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Resource] = {}

    async def get_by_id(self, resource_id: UUID) -> Resource | None:
        return self._by_id.get(resource_id)

    async def add(self, resource: Resource) -> None:
        if resource.id in self._by_id:
            raise ValueError("resource already exists")
        self._by_id[resource.id] = resource

    async def update(self, resource_id: UUID, **changes: Any) -> Resource | None:
        current = self._by_id.get(resource_id)
        if current is None:
            return None
        updated = replace(current, **changes, updated_at=datetime.now(UTC))
        self._by_id[resource_id] = updated
        return updated

    async def list_by_organization(self, organization_id: UUID) -> list[Resource]:
        """Active resources only, ordered by name."""
        return sorted(
            (
                r
                for r in self._by_id.values()
                if r.organization_id == organization_id and r.is_active
            ),
            key=lambda r: r.name,
        )
