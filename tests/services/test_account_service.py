from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from clubhouse.core.errors import (
    Conflict,
    Forbidden,
    InvalidRequest,
    NotFound,
    Unauthenticated,
)
from clubhouse.models.caller import Caller
from clubhouse.repos.store import Store, in_memory_store
from clubhouse.services import account_service


@pytest.fixture
def store() -> Store:
    return in_memory_store()


def _register(store: Store, email: str = "a@x.com", password: str = "abcdef"):
    return asyncio.run(
        account_service.register(
            store, email=email, password=password, display_name="Player"
        )
    )


def _as_caller(account, *roles: str) -> Caller:
    return Caller(
        account_id=account.id,
        email=account.email,
        display_name=account.display_name,
        roles=frozenset(roles),
    )


def test_register_normalizes_email_and_hashes_password(store: Store) -> None:
    account = _register(store, "  Loud@Example.COM ")
    assert account.email == "loud@example.com"
    assert account.password_hash.startswith("$argon2")
    assert asyncio.run(store.accounts.get_by_email("loud@example.com")) == account


def test_register_rejects_case_variant_duplicate(store: Store) -> None:
    _register(store, "dupe@x.com")
    with pytest.raises(Conflict):
        _register(store, "DUPE@x.com")


@pytest.mark.parametrize(
    "email,password",
    [("no-at-sign", "abcdef"), ("a@x", "abcdef"), ("a@x.com", "12345")],
)
def test_register_validation(store: Store, email: str, password: str) -> None:
    with pytest.raises(InvalidRequest):
        _register(store, email, password)


def test_login_accepts_any_email_case(store: Store) -> None:
    account = _register(store)
    logged_in = asyncio.run(
        account_service.login(store, email="A@X.COM", password="abcdef")
    )
    assert logged_in.id == account.id

    with pytest.raises(Unauthenticated, match="Invalid email or password"):
        asyncio.run(account_service.login(store, email="a@x.com", password="nope!!"))


def test_update_profile_keeps_unset_fields(store: Store) -> None:
    account = _register(store)
    caller = _as_caller(account)
    updated = asyncio.run(
        account_service.update_profile(store, caller, locale="sv")
    )
    assert updated.display_name == "Player"
    assert updated.locale == "sv"

    with pytest.raises(InvalidRequest):
        asyncio.run(account_service.update_profile(store, caller, display_name=" "))


def test_change_password_requires_current(store: Store) -> None:
    account = _register(store)
    caller = _as_caller(account)
    with pytest.raises(Unauthenticated):
        asyncio.run(
            account_service.change_password(
                store, caller, current_password="wrong!", new_password="ghijkl"
            )
        )
    asyncio.run(
        account_service.change_password(
            store, caller, current_password="abcdef", new_password="ghijkl"
        )
    )
    assert asyncio.run(
        account_service.login(store, email="a@x.com", password="ghijkl")
    ).id == account.id


def test_get_account_self_or_bypass(store: Store) -> None:
    player = _register(store, "p@x.com")
    me = _as_caller(player)
    assert asyncio.run(account_service.get_account(store, me, player.id)) == player

    owner = _as_caller(_register(store, "owner@x.com"), "owner")
    with pytest.raises(Forbidden):
        asyncio.run(account_service.get_account(store, owner, player.id))
    with pytest.raises(Forbidden):
        asyncio.run(account_service.get_account(store, owner, uuid4()))

    admin = _as_caller(_register(store, "root@x.com"), "super-admin")
    assert asyncio.run(account_service.get_account(store, admin, player.id)) == player
    with pytest.raises(NotFound):
        asyncio.run(account_service.get_account(store, admin, uuid4()))


def test_role_assignment_keeps_assignment_order(store: Store) -> None:
    admin = _as_caller(_register(store, "root@x.com"), "super-admin")
    target = _register(store, "p@x.com")

    roles = asyncio.run(account_service.assign_role(store, admin, target.id, "manager"))
    assert roles == ["manager"]
    roles = asyncio.run(account_service.assign_role(store, admin, target.id, "owner"))
    assert roles == ["manager", "owner"]
    roles = asyncio.run(account_service.assign_role(store, admin, target.id, "manager"))
    assert roles == ["manager", "owner"]

    roles = asyncio.run(account_service.revoke_role(store, admin, target.id, "manager"))
    assert roles == ["owner"]
    with pytest.raises(NotFound, match="Role not assigned"):
        asyncio.run(account_service.revoke_role(store, admin, target.id, "manager"))


def test_role_administration_requires_bypass(store: Store) -> None:
    owner = _as_caller(_register(store, "owner@x.com"), "owner", "manager")
    target = _register(store, "p@x.com")
    with pytest.raises(Forbidden):
        asyncio.run(account_service.assign_role(store, owner, target.id, "owner"))
    with pytest.raises(Forbidden):
        asyncio.run(account_service.list_accounts(store, owner))


def test_role_checks(store: Store) -> None:
    admin = _as_caller(_register(store, "root@x.com"), "super-admin")
    with pytest.raises(InvalidRequest):
        asyncio.run(account_service.assign_role(store, admin, admin.account_id, "king"))
    with pytest.raises(NotFound):
        asyncio.run(account_service.assign_role(store, admin, uuid4(), "owner"))
