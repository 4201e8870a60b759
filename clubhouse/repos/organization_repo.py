from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, Protocol
from uuid import UUID

from clubhouse.models.organization import Organization


class OrganizationRepo(Protocol):
    async def get_by_id(self, organization_id: UUID) -> Organization | None: ...
    async def get_by_slug(self, slug: str) -> Organization | None: ...
    async def add(self, organization: Organization) -> None: ...
    async def update(
        self, organization_id: UUID, **changes: Any
    ) -> Organization | None: ...
    async def list_active(self) -> list[Organization]: ...


class InMemoryOrganizationRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Organization] = {}
        self._by_slug: dict[str, Organization] = {}

    async def get_by_id(self, organization_id: UUID) -> Organization | None:
        return self._by_id.get(organization_id)

    async def get_by_slug(self, slug: str) -> Organization | None:
        return self._by_slug.get(slug)

    async def add(self, organization: Organization) -> None:
        if organization.slug in self._by_slug:
            raise ValueError("slug already exists")
        self._by_id[organization.id] = organization
        self._by_slug[organization.slug] = organization

    async def update(
        self, organization_id: UUID, **changes: Any
    ) -> Organization | None:
        current = self._by_id.get(organization_id)
        if current is None:
            return None
        new_slug = changes.get("slug", current.slug)
        if new_slug != current.slug and new_slug in self._by_slug:
            raise ValueError("slug already exists")
        updated = replace(current, **changes, updated_at=datetime.now(UTC))
        self._by_slug.pop(current.slug, None)
        self._by_id[updated.id] = updated
        self._by_slug[updated.slug] = updated
        return updated

    async def list_active(self) -> list[Organization]:
        return sorted(
            (o for o in self._by_id.values() if o.is_active), key=lambda o: o.name
        )
