"""Booking validator and writer, exercised directly against an in-memory Store."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from clubhouse.core.errors import (
    Conflict,
    Forbidden,
    InvalidRequest,
    InvalidTransition,
    NotFound,
)
from clubhouse.models.account import Account
from clubhouse.models.caller import Caller
from clubhouse.models.organization import Membership, Organization
from clubhouse.models.resource import Resource
from clubhouse.repos.store import Store, in_memory_store
from clubhouse.services import booking_service
from clubhouse.services.booking_service import as_utc, compute_total, overlaps

T10 = datetime(2999, 1, 1, 10, 0, tzinfo=UTC)
HOUR = timedelta(hours=1)


def _caller(account: Account, *roles: str) -> Caller:
    return Caller(
        account_id=account.id,
        email=account.email,
        display_name=account.display_name,
        roles=frozenset(roles),
    )


async def _account(store: Store, email: str) -> Account:
    account = Account.new(email=email, password_hash="x", display_name=email)
    await store.accounts.add(account)
    return account


async def _club(store: Store, rate: str = "25.00") -> tuple[Organization, Resource]:
    org = Organization.new(name="Demo", slug=f"demo-{uuid4().hex[:6]}")
    await store.organizations.add(org)
    resource = Resource.new(
        organization_id=org.id, name="Court 1", hourly_rate=Decimal(rate)
    )
    await store.resources.add(resource)
    return org, resource


async def _join(store: Store, account: Account, org: Organization, kind: str) -> None:
    await store.memberships.add(
        Membership.new(account_id=account.id, organization_id=org.id, kind=kind)
    )


@pytest.fixture
def world() -> dict:
    """Store with a club, a manager, a member and an outsider."""
    store = in_memory_store()

    async def build() -> dict:
        org, resource = await _club(store)
        manager = await _account(store, "manager@x.com")
        member = await _account(store, "member@x.com")
        outsider = await _account(store, "outsider@x.com")
        await _join(store, manager, org, "manager")
        await _join(store, member, org, "member")
        return {
            "store": store,
            "org": org,
            "resource": resource,
            "manager": _caller(manager),
            "member": _caller(member),
            "outsider": _caller(outsider),
        }

    return asyncio.run(build())


def _create(world: dict, who: str = "member", start=T10, end=T10 + HOUR, **kw):
    return asyncio.run(
        booking_service.create_booking(
            world["store"],
            world[who],
            resource_id=kw.pop("resource_id", world["resource"].id),
            start=start,
            end=end,
            **kw,
        )
    )


# ---- pure helpers ----


@pytest.mark.parametrize(
    "a,b,expected",
    [
        ((10, 11), (10, 11), True),
        ((10, 11), (10.5, 11.5), True),
        ((10, 12), (10.5, 11), True),
        ((10, 11), (11, 12), False),
        ((11, 12), (10, 11), False),
        ((10, 11), (12, 13), False),
    ],
)
def test_overlaps_is_half_open(a: tuple, b: tuple, expected: bool) -> None:
    def at(h: float) -> datetime:
        return T10.replace(hour=0) + timedelta(hours=h)

    assert overlaps(at(a[0]), at(a[1]), at(b[0]), at(b[1])) is expected


@pytest.mark.parametrize(
    "rate,minutes,expected",
    [
        ("25.00", 60, "25.00"),
        ("25.00", 90, "37.50"),
        ("12.345", 90, "18.52"),
        ("10.00", 1, "0.17"),
        ("0.01", 30, "0.01"),
        ("0.00", 120, "0.00"),
    ],
)
def test_compute_total_rounds_half_up(rate: str, minutes: int, expected: str) -> None:
    total = compute_total(Decimal(rate), T10, T10 + timedelta(minutes=minutes))
    assert total == Decimal(expected)
    assert total.as_tuple().exponent == -2


def test_as_utc_treats_naive_as_utc() -> None:
    naive = datetime(2999, 1, 1, 10, 0)
    assert as_utc(naive) == T10
    plus_two = datetime(2999, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    assert as_utc(plus_two) == T10
    assert as_utc(plus_two).tzinfo is UTC


# ---- create_booking ----


def test_create_booking_persists_pending(world: dict) -> None:
    booking = _create(world, notes="doubles")
    assert booking.status == "pending"
    assert booking.total_amount == Decimal("25.00")
    assert booking.notes == "doubles"
    assert booking.organization_id == world["org"].id

    stored = asyncio.run(world["store"].bookings.get_by_id(booking.id))
    assert stored == booking


def test_end_not_after_start_fails_before_anything_else(world: dict) -> None:
    with pytest.raises(InvalidRequest):
        _create(world, who="outsider", start=T10, end=T10, resource_id=uuid4())


def test_past_start_is_invalid(world: dict) -> None:
    with pytest.raises(InvalidRequest, match="past"):
        _create(world, now=T10 + timedelta(minutes=1))


def test_start_exactly_now_is_allowed(world: dict) -> None:
    assert _create(world, now=T10).start_time == T10


def test_missing_resource_is_not_found(world: dict) -> None:
    with pytest.raises(NotFound):
        _create(world, resource_id=uuid4())


def test_inactive_resource_is_not_found(world: dict) -> None:
    asyncio.run(world["store"].resources.update(world["resource"].id, is_active=False))
    with pytest.raises(NotFound):
        _create(world)


def test_outsider_is_forbidden(world: dict) -> None:
    with pytest.raises(Forbidden):
        _create(world, who="outsider")


def test_bypass_role_books_without_membership(world: dict) -> None:
    world["root"] = Caller(
        account_id=uuid4(),
        email="root@x.com",
        display_name="root",
        roles=frozenset({"owner", "super-admin"}),
    )
    assert _create(world, who="root").status == "pending"


def test_overlap_is_conflict_and_touching_is_fine(world: dict) -> None:
    _create(world)
    with pytest.raises(Conflict):
        _create(world, start=T10 + HOUR / 2, end=T10 + HOUR * 3 / 2)
    _create(world, start=T10 + HOUR, end=T10 + 2 * HOUR)


def test_concurrent_overlapping_requests_exactly_one_wins(world: dict) -> None:
    async def race() -> list:
        return await asyncio.gather(
            *[
                booking_service.create_booking(
                    world["store"],
                    world["member"],
                    resource_id=world["resource"].id,
                    start=T10 + timedelta(minutes=5 * i),
                    end=T10 + HOUR + timedelta(minutes=5 * i),
                )
                for i in range(8)
            ],
            return_exceptions=True,
        )

    results = asyncio.run(race())
    created = [r for r in results if not isinstance(r, Exception)]
    conflicts = [r for r in results if isinstance(r, Conflict)]
    assert len(created) == 1
    assert len(conflicts) == 7


# ---- update_booking_status ----


def _status(world: dict, who: str, booking_id, new_status: str):
    return asyncio.run(
        booking_service.update_booking_status(
            world["store"], world[who], booking_id, new_status
        )
    )


def test_manager_walks_the_happy_path(world: dict) -> None:
    booking = _create(world)
    assert _status(world, "manager", booking.id, "confirmed").status == "confirmed"
    done = _status(world, "manager", booking.id, "completed")
    assert done.status == "completed"
    assert done.updated_at is not None and done.updated_at >= booking.updated_at


@pytest.mark.parametrize("terminal", ["cancelled", "completed"])
@pytest.mark.parametrize("who", ["manager", "member", "outsider"])
def test_terminal_states_reject_every_caller(
    world: dict, terminal: str, who: str
) -> None:
    booking = _create(world)
    _status(world, "manager", booking.id, "confirmed")
    _status(world, "manager", booking.id, terminal)
    with pytest.raises(InvalidTransition):
        _status(world, who, booking.id, "pending")


def test_owner_only_cancels(world: dict) -> None:
    booking = _create(world)
    with pytest.raises(Forbidden):
        _status(world, "member", booking.id, "confirmed")
    assert _status(world, "member", booking.id, "cancelled").status == "cancelled"


def test_unknown_status_checked_first(world: dict) -> None:
    with pytest.raises(InvalidRequest):
        _status(world, "outsider", uuid4(), "archived")


def test_unknown_status_on_terminal_booking_is_invalid_request(world: dict) -> None:
    booking = _create(world)
    _status(world, "manager", booking.id, "cancelled")
    with pytest.raises(InvalidRequest):
        _status(world, "manager", booking.id, "archived")
    with pytest.raises(InvalidTransition):
        _status(world, "manager", booking.id, "confirmed")


def test_cancelled_slot_is_reusable_but_never_revived(world: dict) -> None:
    first = _create(world)
    _status(world, "manager", first.id, "cancelled")
    second = _create(world)
    assert _status(world, "manager", second.id, "confirmed").status == "confirmed"
    with pytest.raises(InvalidTransition):
        _status(world, "manager", first.id, "pending")


def test_stale_status_write_is_conflict(world: dict) -> None:
    booking = _create(world)
    store = world["store"]
    # Someone else confirms between our read and our write.
    real_get = store.bookings.get_by_id

    async def stale_get(booking_id):
        current = await real_get(booking_id)
        await store.bookings.update_status(
            booking_id, "confirmed", expected_status="pending"
        )
        return current

    store.bookings.get_by_id = stale_get  # type: ignore[method-assign]
    with pytest.raises(Conflict, match="concurrently"):
        _status(world, "manager", booking.id, "cancelled")


# ---- cancel_own_booking ----


def _cancel(world: dict, who: str, booking_id):
    return asyncio.run(
        booking_service.cancel_own_booking(world["store"], world[who], booking_id)
    )


def test_cancel_own_booking_rules(world: dict) -> None:
    booking = _create(world)
    with pytest.raises(Forbidden):
        _cancel(world, "outsider", booking.id)
    assert _cancel(world, "member", booking.id).status == "cancelled"
    with pytest.raises(InvalidRequest, match="already cancelled"):
        _cancel(world, "member", booking.id)
    with pytest.raises(NotFound):
        _cancel(world, "member", uuid4())


def test_cancel_completed_booking_is_invalid(world: dict) -> None:
    booking = _create(world)
    _status(world, "manager", booking.id, "confirmed")
    _status(world, "manager", booking.id, "completed")
    with pytest.raises(InvalidRequest, match="completed"):
        _cancel(world, "member", booking.id)


# ---- reads ----


def test_list_organization_bookings_requires_membership(world: dict) -> None:
    _create(world)
    store, org = world["store"], world["org"]
    with pytest.raises(Forbidden):
        asyncio.run(
            booking_service.list_organization_bookings(store, world["outsider"], org.id)
        )
    with pytest.raises(NotFound):
        asyncio.run(
            booking_service.list_organization_bookings(store, world["member"], uuid4())
        )
    listed = asyncio.run(
        booking_service.list_organization_bookings(store, world["member"], org.id)
    )
    assert len(listed) == 1
