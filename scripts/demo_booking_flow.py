"""Demo: register, open a club, book a court and cancel it, using FastAPI TestClient.

Run with:
    python scripts/demo_booking_flow.py

Uses the in-memory store unless DATABASE_URL is set.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from clubhouse.main import app

MANAGER_EMAIL = "manager@example.com"
PLAYER_EMAIL = "player@example.com"
PASSWORD = "demo-pass"

START = "2999-06-01T10:00:00Z"
END = "2999-06-01T11:30:00Z"


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _register(client: TestClient, email: str, name: str) -> tuple[str, str]:
    r = client.post(
        "/accounts",
        json={"email": email, "password": PASSWORD, "display_name": name},
    )
    if r.status_code == 409:
        r = client.post("/sessions", json={"email": email, "password": PASSWORD})
    body = r.json()
    return body["account"]["id"], body["access_token"]


def main() -> None:
    client = TestClient(app)

    # ── Step 1: two accounts ────────────────────────────────────────
    _, manager = _register(client, MANAGER_EMAIL, "Club Manager")
    player_id, player = _register(client, PLAYER_EMAIL, "Player One")
    print(f"1. POST /accounts ×2             → manager + player={player_id[:8]}…")

    # ── Step 2: the manager opens a club ────────────────────────────
    r = client.post(
        "/organizations",
        json={"name": "Demo Racket Club", "slug": "demo-racket-club"},
        headers=_auth(manager),
    )
    if r.status_code == 409:
        r = client.get("/organizations/by-slug/demo-racket-club")
    org_id = r.json()["id"]
    print(f"2. POST /organizations           → {r.status_code}  id={org_id[:8]}…")

    # ── Step 3: a court and a membership ────────────────────────────
    r = client.post(
        f"/organizations/{org_id}/resources",
        json={"name": "Court 1", "category": "Padel", "hourly_rate": "24.00"},
        headers=_auth(manager),
    )
    resource_id = r.json()["id"]
    print(f"3. POST …/resources              → {r.status_code}  rate=24.00/h")

    r = client.post(
        f"/organizations/{org_id}/memberships",
        json={"account_id": player_id, "kind": "member"},
        headers=_auth(manager),
    )
    print(f"   POST …/memberships            → {r.status_code}  kind=member")

    # ── Step 4: the player books 90 minutes ─────────────────────────
    booking = {"resource_id": resource_id, "start_time": START, "end_time": END}
    r = client.post("/bookings", json=booking, headers=_auth(player))
    body = r.json()
    print(
        f"4. POST /bookings                → {r.status_code}  "
        f"status={body.get('status')}  total={body.get('total_amount')}"
    )
    booking_id = body.get("id")

    # ── Step 5: the same slot again ─────────────────────────────────
    r = client.post("/bookings", json=booking, headers=_auth(manager))
    print(f"5. POST /bookings (same slot)    → {r.status_code}  {r.json()['message']}")

    # ── Step 6: manager confirms, player cancels ────────────────────
    r = client.put(
        f"/bookings/{booking_id}/status",
        json={"status": "confirmed"},
        headers=_auth(manager),
    )
    print(f"6. PUT  /bookings/…/status       → {r.status_code}  {r.json()['status']}")
    r = client.put(f"/bookings/{booking_id}/cancel", headers=_auth(player))
    print(f"   PUT  /bookings/…/cancel       → {r.status_code}  {r.json()['status']}")

    # ── Step 7: cancelled is terminal ───────────────────────────────
    r = client.put(
        f"/bookings/{booking_id}/status",
        json={"status": "pending"},
        headers=_auth(manager),
    )
    print(f"7. PUT  /bookings/…/status       → {r.status_code}  {r.json()['error']}")

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
