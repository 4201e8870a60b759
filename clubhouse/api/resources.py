"""Resource ("court") endpoints addressed by resource id.

Creation and listing live under /organizations/{id}/resources.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel, Field

from clubhouse.api.dependencies import CallerDep, StoreDep
from clubhouse.models.resource import Resource
from clubhouse.services import admin_service

router = APIRouter(prefix="/resources", tags=["resources"])


class ResourceIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    category: str = "Tennis"
    hourly_rate: Decimal = Field(
        default=Decimal("0.00"), ge=0, max_digits=10, decimal_places=2
    )


class ResourceUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = None
    hourly_rate: Decimal | None = Field(
        default=None, ge=0, max_digits=10, decimal_places=2
    )


class ResourceOut(BaseModel):
    id: UUID
    organization_id: UUID
    name: str
    category: str
    hourly_rate: Decimal
    is_active: bool
    created_at: datetime | None


def resource_out(resource: Resource) -> ResourceOut:
    return ResourceOut(
        id=resource.id,
        organization_id=resource.organization_id,
        name=resource.name,
        category=resource.category,
        hourly_rate=resource.hourly_rate,
        is_active=resource.is_active,
        created_at=resource.created_at,
    )


@router.put("/{resource_id}", response_model=ResourceOut)
async def update_resource(
    resource_id: UUID, body: ResourceUpdateIn, caller: CallerDep, store: StoreDep
) -> ResourceOut:
    changes = {
        k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None
    }
    resource = await admin_service.update_resource(
        store, caller, resource_id, **changes
    )
    return resource_out(resource)


@router.delete("/{resource_id}", response_model=ResourceOut)
async def deactivate_resource(
    resource_id: UUID, caller: CallerDep, store: StoreDep
) -> ResourceOut:
    """Soft delete: the resource stops taking bookings, history is kept."""
    resource = await admin_service.deactivate_resource(store, caller, resource_id)
    return resource_out(resource)
