"""Booking status machine and cancellation rules.

pending   -> confirmed | cancelled
confirmed -> cancelled | completed
cancelled, completed: terminal for every caller

Managers (and the bypass role) set any status on a live booking; the
owner may only cancel.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from tests.conftest import (
    add_member,
    auth,
    book,
    create_org,
    create_resource,
    grant_bypass,
    register_account,
)


@pytest.fixture
def booking_setup(client: TestClient) -> dict[str, str]:
    """Manager, member-owner, outsider, and one pending booking by the member."""
    _, manager = register_account(client, "manager@x.com", "abcdef")
    org_id = create_org(client, manager, "status-club")
    resource_id = create_resource(client, manager, org_id)
    member_id, member = register_account(client, "member@x.com", "abcdef")
    add_member(client, manager, org_id, member_id)
    _, outsider = register_account(client, "outsider@x.com", "abcdef")

    resp = book(client, member, resource_id)
    assert resp.status_code == 201
    return {
        "manager": manager,
        "member": member,
        "outsider": outsider,
        "org_id": org_id,
        "resource_id": resource_id,
        "booking_id": resp.json()["id"],
    }


def _set_status(client: TestClient, token: str, booking_id: str, status: str):
    return client.put(
        f"/bookings/{booking_id}/status", json={"status": status}, headers=auth(token)
    )


def test_manager_confirms_then_completes(
    client: TestClient, booking_setup: dict[str, str]
) -> None:
    s = booking_setup
    resp = _set_status(client, s["manager"], s["booking_id"], "confirmed")
    assert resp.status_code == 200
    assert resp.json()["status"] == "confirmed"

    resp = _set_status(client, s["manager"], s["booking_id"], "completed")
    assert resp.status_code == 200
    assert resp.json()["status"] == "completed"


def test_manager_may_move_confirmed_back_to_pending(
    client: TestClient, booking_setup: dict[str, str]
) -> None:
    s = booking_setup
    _set_status(client, s["manager"], s["booking_id"], "confirmed")
    resp = _set_status(client, s["manager"], s["booking_id"], "pending")
    assert resp.status_code == 200
    assert resp.json()["status"] == "pending"


def test_owner_may_cancel_via_status(
    client: TestClient, booking_setup: dict[str, str]
) -> None:
    s = booking_setup
    resp = _set_status(client, s["member"], s["booking_id"], "cancelled")
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"


@pytest.mark.parametrize("status", ["confirmed", "completed", "pending"])
def test_owner_may_not_set_other_statuses(
    client: TestClient, booking_setup: dict[str, str], status: str
) -> None:
    s = booking_setup
    resp = _set_status(client, s["member"], s["booking_id"], status)
    assert resp.status_code == 403


def test_outsider_may_not_change_status(
    client: TestClient, booking_setup: dict[str, str]
) -> None:
    s = booking_setup
    resp = _set_status(client, s["outsider"], s["booking_id"], "cancelled")
    assert resp.status_code == 403


def test_unknown_status_is_invalid(
    client: TestClient, booking_setup: dict[str, str]
) -> None:
    s = booking_setup
    resp = _set_status(client, s["manager"], s["booking_id"], "archived")
    assert resp.status_code == 422
    assert resp.json()["error"] == "invalid_request"


def test_status_of_unknown_booking_is_not_found(
    client: TestClient, booking_setup: dict[str, str]
) -> None:
    resp = _set_status(client, booking_setup["manager"], str(uuid4()), "confirmed")
    assert resp.status_code == 404


# ---- terminal states hold for every caller ----


@pytest.mark.parametrize("terminal", ["cancelled", "completed"])
@pytest.mark.parametrize("who", ["manager", "member", "outsider", "bypass"])
@pytest.mark.parametrize("target", ["pending", "confirmed", "cancelled", "completed"])
def test_terminal_booking_rejects_every_transition(
    client: TestClient,
    booking_setup: dict[str, str],
    terminal: str,
    who: str,
    target: str,
) -> None:
    s = booking_setup
    if terminal == "completed":
        _set_status(client, s["manager"], s["booking_id"], "confirmed")
    assert (
        _set_status(client, s["manager"], s["booking_id"], terminal).status_code == 200
    )

    if who == "bypass":
        admin_id, token = register_account(client, "root@x.com", "abcdef")
        grant_bypass(admin_id)
    else:
        token = s[who]

    resp = _set_status(client, token, s["booking_id"], target)
    assert resp.status_code == 409
    assert resp.json()["error"] == "invalid_transition"


# ---- cancel endpoint ----


def test_owner_cancels_own_booking(
    client: TestClient, booking_setup: dict[str, str]
) -> None:
    s = booking_setup
    resp = client.put(f"/bookings/{s['booking_id']}/cancel", headers=auth(s["member"]))
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"


def test_non_owner_cannot_cancel(
    client: TestClient, booking_setup: dict[str, str]
) -> None:
    s = booking_setup
    resp = client.put(
        f"/bookings/{s['booking_id']}/cancel", headers=auth(s["outsider"])
    )
    assert resp.status_code == 403


def test_other_member_cannot_cancel(
    client: TestClient, booking_setup: dict[str, str]
) -> None:
    """Membership alone is not enough; the member kind is not manager."""
    s = booking_setup
    other_id, other = register_account(client, "other@x.com", "abcdef")
    add_member(client, s["manager"], s["org_id"], other_id)

    resp = client.put(f"/bookings/{s['booking_id']}/cancel", headers=auth(other))
    assert resp.status_code == 403


def test_manager_and_bypass_can_cancel(
    client: TestClient, booking_setup: dict[str, str]
) -> None:
    s = booking_setup
    resp = client.put(
        f"/bookings/{s['booking_id']}/cancel", headers=auth(s["manager"])
    )
    assert resp.status_code == 200

    second = book(
        client,
        s["member"],
        s["resource_id"],
        "2999-02-01T10:00:00Z",
        "2999-02-01T11:00:00Z",
    ).json()["id"]
    admin_id, admin = register_account(client, "root@x.com", "abcdef")
    grant_bypass(admin_id)
    resp = client.put(f"/bookings/{second}/cancel", headers=auth(admin))
    assert resp.status_code == 200


def test_cancel_twice_is_invalid_request(
    client: TestClient, booking_setup: dict[str, str]
) -> None:
    s = booking_setup
    url = f"/bookings/{s['booking_id']}/cancel"
    assert client.put(url, headers=auth(s["member"])).status_code == 200

    resp = client.put(url, headers=auth(s["member"]))
    assert resp.status_code == 422
    assert "already cancelled" in resp.json()["message"]


def test_cancel_completed_is_invalid_request(
    client: TestClient, booking_setup: dict[str, str]
) -> None:
    s = booking_setup
    _set_status(client, s["manager"], s["booking_id"], "confirmed")
    _set_status(client, s["manager"], s["booking_id"], "completed")

    resp = client.put(f"/bookings/{s['booking_id']}/cancel", headers=auth(s["member"]))
    assert resp.status_code == 422
    assert "completed" in resp.json()["message"]


def test_cancel_unknown_booking_is_not_found(
    client: TestClient, booking_setup: dict[str, str]
) -> None:
    resp = client.put(
        f"/bookings/{uuid4()}/cancel", headers=auth(booking_setup["member"])
    )
    assert resp.status_code == 404
