"""Organization, resource, membership and settings administration.

Writes are gated by the manager capability on the target organization (or
the bypass role). Reads of an organization's members and resources need
any active membership; the member directory, which exposes account details,
is for managers.
"""

from __future__ import annotations

import logging
import re
from dataclasses import fields
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from clubhouse.core.errors import Conflict, InvalidRequest, NotFound
from clubhouse.models.account import Account
from clubhouse.models.caller import Caller
from clubhouse.models.organization import (
    MEMBERSHIP_KINDS,
    Membership,
    Organization,
    OrganizationSettings,
)
from clubhouse.models.resource import RESOURCE_CATEGORIES, Resource
from clubhouse.repos.store import Store
from clubhouse.services import authorization

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"[a-z0-9-]+")

ORGANIZATION_DETAIL_FIELDS = (
    "description",
    "address",
    "phone",
    "email",
    "website",
    "logo_url",
    "settings",
)

_SETTINGS_FIELDS = frozenset(
    f.name for f in fields(OrganizationSettings) if f.name != "organization_id"
)

STATS_WINDOW = timedelta(days=30)


# --- Organizations ---


async def create_organization(
    store: Store, caller: Caller, *, name: str, slug: str, **details: Any
) -> Organization:
    """Create an organization; the creator becomes its first manager."""
    name = name.strip()
    if not name:
        raise InvalidRequest("name must be non-empty")
    _check_slug(slug)
    _check_detail_fields(details)

    if await store.organizations.get_by_slug(slug) is not None:
        raise Conflict("Organization slug already exists")

    organization = Organization.new(name=name, slug=slug, **details)
    try:
        await store.organizations.add(organization)
    except ValueError:
        raise Conflict("Organization slug already exists") from None

    await store.memberships.add(
        Membership.new(
            account_id=caller.account_id,
            organization_id=organization.id,
            kind="manager",
        )
    )
    logger.info(
        "Organization created id=%s slug=%s by account=%s",
        organization.id,
        organization.slug,
        caller.account_id,
    )
    return organization


async def update_organization(
    store: Store, caller: Caller, organization_id: UUID, **changes: Any
) -> Organization:
    await _require_organization(store, organization_id)
    await authorization.require_organization_capability(
        store, caller, organization_id, "manager"
    )
    if "name" in changes:
        changes["name"] = (changes["name"] or "").strip()
        if not changes["name"]:
            raise InvalidRequest("name must be non-empty")
    if "slug" in changes:
        _check_slug(changes["slug"])
    _check_detail_fields({k: v for k, v in changes.items() if k not in ("name", "slug")})

    try:
        updated = await store.organizations.update(organization_id, **changes)
    except ValueError:
        raise Conflict("Organization slug already exists") from None
    if updated is None:
        raise NotFound("Organization not found")
    logger.info("Organization updated id=%s fields=%s", organization_id, sorted(changes))
    return updated


async def deactivate_organization(
    store: Store, caller: Caller, organization_id: UUID
) -> Organization:
    await _require_organization(store, organization_id)
    await authorization.require_organization_capability(
        store, caller, organization_id, "manager"
    )
    updated = await store.organizations.update(organization_id, is_active=False)
    if updated is None:
        raise NotFound("Organization not found")
    logger.info(
        "Organization deactivated id=%s by account=%s",
        organization_id,
        caller.account_id,
    )
    return updated


async def list_organizations(store: Store) -> list[Organization]:
    return await store.organizations.list_active()


async def get_organization(store: Store, organization_id: UUID) -> Organization:
    return await _require_organization(store, organization_id)


async def get_organization_by_slug(store: Store, slug: str) -> Organization:
    organization = await store.organizations.get_by_slug(slug)
    if organization is None or not organization.is_active:
        raise NotFound("Organization not found")
    return organization


async def organization_stats(
    store: Store, caller: Caller, organization_id: UUID, *, now: datetime | None = None
) -> dict[str, int]:
    await _require_organization(store, organization_id)
    await authorization.require_organization_capability(
        store, caller, organization_id, "manager"
    )
    since = (now or datetime.now(UTC)) - STATS_WINDOW
    return {
        "members": len(await store.memberships.list_by_organization(organization_id)),
        "resources": len(await store.resources.list_by_organization(organization_id)),
        "recent_bookings": await store.bookings.count_created_since(
            organization_id, since
        ),
    }


# --- Resources ---


async def create_resource(
    store: Store,
    caller: Caller,
    organization_id: UUID,
    *,
    name: str,
    category: str = "Tennis",
    hourly_rate: Decimal = Decimal("0.00"),
) -> Resource:
    await _require_organization(store, organization_id)
    await authorization.require_organization_capability(
        store, caller, organization_id, "manager"
    )
    name = name.strip()
    if not name:
        raise InvalidRequest("name must be non-empty")
    _check_category(category)
    resource = Resource.new(
        organization_id=organization_id,
        name=name,
        category=category,
        hourly_rate=_check_rate(hourly_rate),
    )
    await store.resources.add(resource)
    logger.info(
        "Resource created id=%s organization=%s", resource.id, organization_id
    )
    return resource


async def update_resource(
    store: Store, caller: Caller, resource_id: UUID, **changes: Any
) -> Resource:
    resource = await _require_resource(store, resource_id)
    await authorization.require_organization_capability(
        store, caller, resource.organization_id, "manager"
    )
    if "name" in changes:
        changes["name"] = (changes["name"] or "").strip()
        if not changes["name"]:
            raise InvalidRequest("name must be non-empty")
    if "category" in changes:
        _check_category(changes["category"])
    if "hourly_rate" in changes:
        changes["hourly_rate"] = _check_rate(changes["hourly_rate"])
    unknown = set(changes) - {"name", "category", "hourly_rate", "is_active"}
    if unknown:
        raise InvalidRequest(f"Unknown resource fields: {', '.join(sorted(unknown))}")

    updated = await store.resources.update(resource_id, **changes)
    if updated is None:
        raise NotFound("Resource not found")
    return updated


async def deactivate_resource(
    store: Store, caller: Caller, resource_id: UUID
) -> Resource:
    resource = await _require_resource(store, resource_id)
    await authorization.require_organization_capability(
        store, caller, resource.organization_id, "manager"
    )
    updated = await store.resources.update(resource_id, is_active=False)
    if updated is None:
        raise NotFound("Resource not found")
    logger.info("Resource deactivated id=%s", resource_id)
    return updated


async def list_resources(
    store: Store, caller: Caller, organization_id: UUID
) -> list[Resource]:
    await _require_organization(store, organization_id)
    await authorization.require_member(store, caller, organization_id)
    return await store.resources.list_by_organization(organization_id)


# --- Memberships ---


async def add_membership(
    store: Store,
    caller: Caller,
    organization_id: UUID,
    *,
    account_id: UUID,
    kind: str,
) -> Membership:
    _check_kind(kind)
    await _require_organization(store, organization_id)
    await authorization.require_organization_capability(
        store, caller, organization_id, "manager"
    )
    if await store.accounts.get_by_id(account_id) is None:
        raise NotFound("Account not found")

    membership = Membership.new(
        account_id=account_id, organization_id=organization_id, kind=kind
    )
    try:
        await store.memberships.add(membership)
    except ValueError:
        raise Conflict("Account already has an active membership") from None
    logger.info(
        "Membership added account=%s organization=%s kind=%s",
        account_id,
        organization_id,
        kind,
    )
    return membership


async def remove_membership(
    store: Store, caller: Caller, organization_id: UUID, account_id: UUID
) -> None:
    await _require_organization(store, organization_id)
    await authorization.require_organization_capability(
        store, caller, organization_id, "manager"
    )
    if not await store.memberships.deactivate(account_id, organization_id):
        raise NotFound("Membership not found")
    logger.info(
        "Membership removed account=%s organization=%s", account_id, organization_id
    )


async def update_membership_kind(
    store: Store, caller: Caller, organization_id: UUID, account_id: UUID, kind: str
) -> Membership:
    _check_kind(kind)
    await _require_organization(store, organization_id)
    await authorization.require_organization_capability(
        store, caller, organization_id, "manager"
    )
    updated = await store.memberships.update_kind(account_id, organization_id, kind)
    if updated is None:
        raise NotFound("Membership not found")
    logger.info(
        "Membership kind changed account=%s organization=%s kind=%s",
        account_id,
        organization_id,
        kind,
    )
    return updated


async def list_memberships(
    store: Store, caller: Caller, organization_id: UUID
) -> list[Membership]:
    await _require_organization(store, organization_id)
    await authorization.require_member(store, caller, organization_id)
    return await store.memberships.list_by_organization(organization_id)


async def list_members(
    store: Store, caller: Caller, organization_id: UUID
) -> list[tuple[Membership, Account]]:
    """Active memberships joined with their accounts, managers only.

    Sorted by kind, then display name. Memberships whose account has gone
    are skipped.
    """
    await _require_organization(store, organization_id)
    await authorization.require_organization_capability(
        store, caller, organization_id, "manager"
    )
    members = []
    for membership in await store.memberships.list_by_organization(organization_id):
        account = await store.accounts.get_by_id(membership.account_id)
        if account is not None:
            members.append((membership, account))
    members.sort(key=lambda pair: (pair[0].kind, pair[1].display_name.lower()))
    return members


# --- Settings ---


async def get_settings(
    store: Store, caller: Caller, organization_id: UUID
) -> OrganizationSettings:
    """Settings for the organization, created with defaults on first read."""
    await _require_organization(store, organization_id)
    await authorization.require_organization_capability(
        store, caller, organization_id, "manager"
    )
    return await _get_or_create_settings(store, organization_id)


async def update_settings(
    store: Store, caller: Caller, organization_id: UUID, **changes: Any
) -> OrganizationSettings:
    await _require_organization(store, organization_id)
    await authorization.require_organization_capability(
        store, caller, organization_id, "manager"
    )
    unknown = set(changes) - _SETTINGS_FIELDS
    if unknown:
        raise InvalidRequest(f"Unknown settings fields: {', '.join(sorted(unknown))}")
    if "session_duration_options" in changes:
        changes["session_duration_options"] = tuple(changes["session_duration_options"])

    await _get_or_create_settings(store, organization_id)
    updated = await store.settings.update(organization_id, **changes)
    if updated is None:
        raise NotFound("Organization not found")
    logger.info(
        "Settings updated organization=%s fields=%s", organization_id, sorted(changes)
    )
    return updated


async def _get_or_create_settings(
    store: Store, organization_id: UUID
) -> OrganizationSettings:
    current = await store.settings.get(organization_id)
    if current is not None:
        return current
    defaults = OrganizationSettings(organization_id=organization_id)
    try:
        await store.settings.add(defaults)
    except ValueError:
        # created by a concurrent request
        current = await store.settings.get(organization_id)
        if current is not None:
            return current
        raise
    return defaults


# --- Checks ---


async def _require_organization(store: Store, organization_id: UUID) -> Organization:
    organization = await store.organizations.get_by_id(organization_id)
    if organization is None or not organization.is_active:
        raise NotFound("Organization not found")
    return organization


async def _require_resource(store: Store, resource_id: UUID) -> Resource:
    resource = await store.resources.get_by_id(resource_id)
    if resource is None or not resource.is_active:
        raise NotFound("Resource not found")
    return resource


def _check_slug(slug: str) -> None:
    if not slug or not SLUG_PATTERN.fullmatch(slug):
        raise InvalidRequest("slug must match ^[a-z0-9-]+$")


def _check_kind(kind: str) -> None:
    if kind not in MEMBERSHIP_KINDS:
        raise InvalidRequest(f"kind must be one of {', '.join(MEMBERSHIP_KINDS)}")


def _check_category(category: str) -> None:
    if category not in RESOURCE_CATEGORIES:
        raise InvalidRequest(
            f"category must be one of {', '.join(RESOURCE_CATEGORIES)}"
        )


def _check_rate(rate: Decimal) -> Decimal:
    rate = Decimal(rate)
    if rate < 0:
        raise InvalidRequest("hourly_rate must be >= 0")
    return rate.quantize(Decimal("0.01"))


def _check_detail_fields(details: dict[str, Any]) -> None:
    unknown = set(details) - set(ORGANIZATION_DETAIL_FIELDS) - {"is_active"}
    if unknown:
        raise InvalidRequest(
            f"Unknown organization fields: {', '.join(sorted(unknown))}"
        )
