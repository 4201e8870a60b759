"""Organization endpoints, including the organization-scoped collections.

Reads of the organization itself are public; member lists, resources and
bookings need an active membership; every write needs the manager kind.
Access checks live in the services, routes only translate HTTP.
"""

from __future__ import annotations

from datetime import datetime, time
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, Response, status
from pydantic import BaseModel, Field

from clubhouse.api.bookings import BookingOut, booking_out
from clubhouse.api.dependencies import CallerDep, StoreDep
from clubhouse.api.resources import ResourceIn, ResourceOut, resource_out
from clubhouse.models.account import Account
from clubhouse.models.organization import (
    Membership,
    Organization,
    OrganizationSettings,
)
from clubhouse.services import admin_service, booking_service

router = APIRouter(prefix="/organizations", tags=["organizations"])


# --- Schemas ---


class OrganizationIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255)
    description: str | None = None
    address: str | None = None
    phone: str | None = Field(default=None, max_length=64)
    email: str | None = Field(default=None, max_length=320)
    website: str | None = Field(default=None, max_length=512)
    logo_url: str | None = Field(default=None, max_length=512)
    settings: dict[str, Any] = Field(default_factory=dict)


class OrganizationUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    address: str | None = None
    phone: str | None = Field(default=None, max_length=64)
    email: str | None = Field(default=None, max_length=320)
    website: str | None = Field(default=None, max_length=512)
    logo_url: str | None = Field(default=None, max_length=512)
    settings: dict[str, Any] | None = None


class OrganizationOut(BaseModel):
    id: UUID
    name: str
    slug: str
    description: str | None
    address: str | None
    phone: str | None
    email: str | None
    website: str | None
    logo_url: str | None
    settings: dict[str, Any]
    is_active: bool
    created_at: datetime | None


class MembershipIn(BaseModel):
    account_id: UUID
    kind: str = "member"


class MembershipKindIn(BaseModel):
    kind: str


class MembershipOut(BaseModel):
    id: UUID
    account_id: UUID
    organization_id: UUID
    kind: str
    is_active: bool
    joined_at: datetime | None


class MemberOut(BaseModel):
    account_id: UUID
    email: str
    display_name: str
    kind: str
    joined_at: datetime | None


class SettingsOut(BaseModel):
    organization_id: UUID
    booking_slot_interval: int
    session_duration_options: list[int]
    allow_consecutive_bookings: bool
    show_day_view: bool
    days_ahead_booking: int
    next_day_opens_at: time
    spring_summer_open: time
    spring_summer_close: time
    autumn_winter_open: time
    autumn_winter_close: time
    admin_booking_notification_email: str | None
    admin_guest_booking_email: str | None


class SettingsUpdateIn(BaseModel):
    booking_slot_interval: int | None = Field(default=None, gt=0, le=1440)
    session_duration_options: list[int] | None = Field(default=None, min_length=1)
    allow_consecutive_bookings: bool | None = None
    show_day_view: bool | None = None
    days_ahead_booking: int | None = Field(default=None, ge=0, le=365)
    next_day_opens_at: time | None = None
    spring_summer_open: time | None = None
    spring_summer_close: time | None = None
    autumn_winter_open: time | None = None
    autumn_winter_close: time | None = None
    admin_booking_notification_email: str | None = Field(default=None, max_length=320)
    admin_guest_booking_email: str | None = Field(default=None, max_length=320)


class StatsOut(BaseModel):
    members: int
    resources: int
    recent_bookings: int


# Explicit null clears these; for every other field null means "unchanged".
_NULLABLE_SETTINGS = {"admin_booking_notification_email", "admin_guest_booking_email"}
_NULLABLE_ORGANIZATION = {
    "description",
    "address",
    "phone",
    "email",
    "website",
    "logo_url",
}


def _changes(body: BaseModel, nullable: set[str]) -> dict[str, Any]:
    return {
        k: v
        for k, v in body.model_dump(exclude_unset=True).items()
        if v is not None or k in nullable
    }


def organization_out(org: Organization) -> OrganizationOut:
    return OrganizationOut(
        id=org.id,
        name=org.name,
        slug=org.slug,
        description=org.description,
        address=org.address,
        phone=org.phone,
        email=org.email,
        website=org.website,
        logo_url=org.logo_url,
        settings=org.settings,
        is_active=org.is_active,
        created_at=org.created_at,
    )


def membership_out(m: Membership) -> MembershipOut:
    return MembershipOut(
        id=m.id,
        account_id=m.account_id,
        organization_id=m.organization_id,
        kind=m.kind,
        is_active=m.is_active,
        joined_at=m.joined_at,
    )


def member_out(membership: Membership, account: Account) -> MemberOut:
    return MemberOut(
        account_id=account.id,
        email=account.email,
        display_name=account.display_name,
        kind=membership.kind,
        joined_at=membership.joined_at,
    )


def settings_out(s: OrganizationSettings) -> SettingsOut:
    return SettingsOut(
        organization_id=s.organization_id,
        booking_slot_interval=s.booking_slot_interval,
        session_duration_options=list(s.session_duration_options),
        allow_consecutive_bookings=s.allow_consecutive_bookings,
        show_day_view=s.show_day_view,
        days_ahead_booking=s.days_ahead_booking,
        next_day_opens_at=s.next_day_opens_at,
        spring_summer_open=s.spring_summer_open,
        spring_summer_close=s.spring_summer_close,
        autumn_winter_open=s.autumn_winter_open,
        autumn_winter_close=s.autumn_winter_close,
        admin_booking_notification_email=s.admin_booking_notification_email,
        admin_guest_booking_email=s.admin_guest_booking_email,
    )


# --- Organizations ---


@router.get("", response_model=list[OrganizationOut])
async def list_organizations(store: StoreDep) -> list[OrganizationOut]:
    return [organization_out(o) for o in await admin_service.list_organizations(store)]


@router.post("", response_model=OrganizationOut, status_code=status.HTTP_201_CREATED)
async def create_organization(
    body: OrganizationIn, caller: CallerDep, store: StoreDep
) -> OrganizationOut:
    """Create an organization. The creator becomes its manager."""
    org = await admin_service.create_organization(
        store, caller, **body.model_dump()
    )
    return organization_out(org)


@router.get("/by-slug/{slug}", response_model=OrganizationOut)
async def get_organization_by_slug(slug: str, store: StoreDep) -> OrganizationOut:
    return organization_out(await admin_service.get_organization_by_slug(store, slug))


@router.get("/{organization_id}", response_model=OrganizationOut)
async def get_organization(organization_id: UUID, store: StoreDep) -> OrganizationOut:
    return organization_out(await admin_service.get_organization(store, organization_id))


@router.put("/{organization_id}", response_model=OrganizationOut)
async def update_organization(
    organization_id: UUID,
    body: OrganizationUpdateIn,
    caller: CallerDep,
    store: StoreDep,
) -> OrganizationOut:
    org = await admin_service.update_organization(
        store, caller, organization_id, **_changes(body, _NULLABLE_ORGANIZATION)
    )
    return organization_out(org)


@router.delete("/{organization_id}", response_model=OrganizationOut)
async def deactivate_organization(
    organization_id: UUID, caller: CallerDep, store: StoreDep
) -> OrganizationOut:
    org = await admin_service.deactivate_organization(store, caller, organization_id)
    return organization_out(org)


@router.get("/{organization_id}/stats", response_model=StatsOut)
async def organization_stats(
    organization_id: UUID, caller: CallerDep, store: StoreDep
) -> StatsOut:
    stats = await admin_service.organization_stats(store, caller, organization_id)
    return StatsOut(**stats)


# --- Memberships ---


@router.get("/{organization_id}/memberships", response_model=list[MembershipOut])
async def list_memberships(
    organization_id: UUID, caller: CallerDep, store: StoreDep
) -> list[MembershipOut]:
    members = await admin_service.list_memberships(store, caller, organization_id)
    return [membership_out(m) for m in members]


@router.get("/{organization_id}/members", response_model=list[MemberOut])
async def list_members(
    organization_id: UUID, caller: CallerDep, store: StoreDep
) -> list[MemberOut]:
    members = await admin_service.list_members(store, caller, organization_id)
    return [member_out(m, a) for m, a in members]


@router.post(
    "/{organization_id}/memberships",
    response_model=MembershipOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_membership(
    organization_id: UUID, body: MembershipIn, caller: CallerDep, store: StoreDep
) -> MembershipOut:
    membership = await admin_service.add_membership(
        store, caller, organization_id, account_id=body.account_id, kind=body.kind
    )
    return membership_out(membership)


@router.put(
    "/{organization_id}/memberships/{account_id}", response_model=MembershipOut
)
async def update_membership_kind(
    organization_id: UUID,
    account_id: UUID,
    body: MembershipKindIn,
    caller: CallerDep,
    store: StoreDep,
) -> MembershipOut:
    membership = await admin_service.update_membership_kind(
        store, caller, organization_id, account_id, body.kind
    )
    return membership_out(membership)


@router.delete(
    "/{organization_id}/memberships/{account_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_membership(
    organization_id: UUID, account_id: UUID, caller: CallerDep, store: StoreDep
) -> Response:
    await admin_service.remove_membership(store, caller, organization_id, account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Settings ---


@router.get("/{organization_id}/settings", response_model=SettingsOut)
async def get_settings(
    organization_id: UUID, caller: CallerDep, store: StoreDep
) -> SettingsOut:
    return settings_out(
        await admin_service.get_settings(store, caller, organization_id)
    )


@router.put("/{organization_id}/settings", response_model=SettingsOut)
async def update_settings(
    organization_id: UUID,
    body: SettingsUpdateIn,
    caller: CallerDep,
    store: StoreDep,
) -> SettingsOut:
    settings = await admin_service.update_settings(
        store, caller, organization_id, **_changes(body, _NULLABLE_SETTINGS)
    )
    return settings_out(settings)


# --- Resources and bookings ---


@router.get("/{organization_id}/resources", response_model=list[ResourceOut])
async def list_resources(
    organization_id: UUID, caller: CallerDep, store: StoreDep
) -> list[ResourceOut]:
    resources = await admin_service.list_resources(store, caller, organization_id)
    return [resource_out(r) for r in resources]


@router.post(
    "/{organization_id}/resources",
    response_model=ResourceOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_resource(
    organization_id: UUID, body: ResourceIn, caller: CallerDep, store: StoreDep
) -> ResourceOut:
    resource = await admin_service.create_resource(
        store,
        caller,
        organization_id,
        name=body.name,
        category=body.category,
        hourly_rate=body.hourly_rate,
    )
    return resource_out(resource)


@router.get("/{organization_id}/bookings", response_model=list[BookingOut])
async def list_organization_bookings(
    organization_id: UUID,
    caller: CallerDep,
    store: StoreDep,
    start_from: datetime | None = Query(default=None),
    end_until: datetime | None = Query(default=None),
) -> list[BookingOut]:
    bookings = await booking_service.list_organization_bookings(
        store, caller, organization_id, start_from=start_from, end_until=end_until
    )
    return [booking_out(b) for b in bookings]
