from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from uuid import UUID

# The suite runs against the in-memory store and the per-process limiter and
# blacklist; these must be set before clubhouse.core.config is imported.
os.environ.setdefault("APP_ENV", "test")
os.environ["DATABASE_URL"] = ""
os.environ["REDIS_URL"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from clubhouse.api import dependencies  # noqa: E402
from clubhouse.api.ratelimit import rate_limiter  # noqa: E402
from clubhouse.main import app  # noqa: E402
from clubhouse.services import token_service  # noqa: E402
from clubhouse.services.token_blacklist import token_blacklist  # noqa: E402

# Ensure repo root is on sys.path so `import clubhouse` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

BYPASS_ROLE = "super-admin"


@pytest.fixture(autouse=True)
def reset_store() -> None:
    """Fresh in-memory store for every test."""
    dependencies.reset_memory_store()


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Clear rate limit buckets between tests so limits don't bleed."""
    if hasattr(rate_limiter, "clear"):
        rate_limiter.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_token_blacklist() -> None:
    if hasattr(token_blacklist, "clear"):
        token_blacklist.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def auth(token: str | None) -> dict[str, str]:
    """Bearer header, or no header at all for an anonymous request."""
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}"}


def mint_token(sub: str = "00000000-0000-0000-0000-000000000000") -> str:
    """A valid ES256 session token for *sub* (no account needs to exist)."""
    return token_service.create_access_token(sub=sub)


# ---------------------------------------------------------------------------
# Flow helpers: drive the public API the way a client would
# ---------------------------------------------------------------------------


def register_account(
    client: TestClient,
    email: str = "a@x.com",
    password: str = "abcdef",
    display_name: str = "Player One",
) -> tuple[str, str]:
    """Register and return (account_id, token)."""
    resp = client.post(
        "/accounts",
        json={"email": email, "password": password, "display_name": display_name},
    )
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return body["account"]["id"], body["access_token"]


def create_org(client: TestClient, token: str, slug: str = "demo") -> str:
    resp = client.post(
        "/organizations",
        json={"name": slug.replace("-", " ").title(), "slug": slug},
        headers=auth(token),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def create_resource(
    client: TestClient,
    token: str,
    org_id: str,
    name: str = "Court 1",
    hourly_rate: str = "25.00",
) -> str:
    resp = client.post(
        f"/organizations/{org_id}/resources",
        json={"name": name, "hourly_rate": hourly_rate},
        headers=auth(token),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


def add_member(
    client: TestClient, token: str, org_id: str, account_id: str, kind: str = "member"
) -> None:
    resp = client.post(
        f"/organizations/{org_id}/memberships",
        json={"account_id": account_id, "kind": kind},
        headers=auth(token),
    )
    assert resp.status_code == 201, resp.text


def book(
    client: TestClient,
    token: str,
    resource_id: str,
    start: str = "2999-01-01T10:00:00Z",
    end: str = "2999-01-01T11:00:00Z",
):
    return client.post(
        "/bookings",
        json={"resource_id": resource_id, "start_time": start, "end_time": end},
        headers=auth(token),
    )


def grant_bypass(account_id: str) -> None:
    """Bind the bypass role directly in the store (no API path can bootstrap it)."""
    store = dependencies.memory_store()
    asyncio.run(store.accounts.add_role(UUID(account_id), BYPASS_ROLE))
