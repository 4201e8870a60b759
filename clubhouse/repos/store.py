"""The Store bundles one repository per entity.

Services take a Store rather than individual repos so one request's reads
and writes share a session. Two factories: in_memory_store() for dev/test
and pg_store(session) for PostgreSQL.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from clubhouse.repos.account_repo import AccountRepo, InMemoryAccountRepo
from clubhouse.repos.booking_repo import BookingRepo, InMemoryBookingRepo
from clubhouse.repos.membership_repo import InMemoryMembershipRepo, MembershipRepo
from clubhouse.repos.organization_repo import (
    InMemoryOrganizationRepo,
    OrganizationRepo,
)
from clubhouse.repos.pg_account_repo import PgAccountRepo
from clubhouse.repos.pg_booking_repo import PgBookingRepo
from clubhouse.repos.pg_membership_repo import PgMembershipRepo
from clubhouse.repos.pg_organization_repo import PgOrganizationRepo
from clubhouse.repos.pg_resource_repo import PgResourceRepo
from clubhouse.repos.pg_settings_repo import PgSettingsRepo
from clubhouse.repos.resource_repo import InMemoryResourceRepo, ResourceRepo
from clubhouse.repos.settings_repo import InMemorySettingsRepo, SettingsRepo


@dataclass(frozen=True, slots=True)
class Store:
    accounts: AccountRepo
    organizations: OrganizationRepo
    memberships: MembershipRepo
    resources: ResourceRepo
    bookings: BookingRepo
    settings: SettingsRepo


def in_memory_store() -> Store:
    return Store(
        accounts=InMemoryAccountRepo(),
        organizations=InMemoryOrganizationRepo(),
        memberships=InMemoryMembershipRepo(),
        resources=InMemoryResourceRepo(),
        bookings=InMemoryBookingRepo(),
        settings=InMemorySettingsRepo(),
    )


def pg_store(session: AsyncSession) -> Store:
    return Store(
        accounts=PgAccountRepo(session),
        organizations=PgOrganizationRepo(session),
        memberships=PgMembershipRepo(session),
        resources=PgResourceRepo(session),
        bookings=PgBookingRepo(session),
        settings=PgSettingsRepo(session),
    )
