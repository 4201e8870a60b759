"""JSON log lines produced by real requests.

LOG_JSON=true is what production runs with. Every line a request emits
must carry its request_id, and once the bearer token is resolved the
caller's account_id, as top-level keys so the aggregator can filter on them.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from clubhouse.core.logging import _JsonFormatter
from clubhouse.middleware.request_context import _RequestContextFilter
from tests.conftest import auth, book, create_org, create_resource, register_account


class _JsonCapture(logging.Handler):
    def __init__(self) -> None:
        super().__init__(logging.INFO)
        self.setFormatter(_JsonFormatter())
        self.addFilter(_RequestContextFilter())
        self.lines: list[dict] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.lines.append(json.loads(self.format(record)))

    def find(self, fragment: str) -> list[dict]:
        return [line for line in self.lines if fragment in line["message"]]


@pytest.fixture
def captured() -> Iterator[_JsonCapture]:
    root = logging.getLogger()
    handler = _JsonCapture()
    previous_level = root.level
    root.setLevel(logging.INFO)
    root.addHandler(handler)
    try:
        yield handler
    finally:
        root.removeHandler(handler)
        root.setLevel(previous_level)


def test_booking_lines_carry_request_and_account(
    client: TestClient, captured: _JsonCapture
) -> None:
    account_id, token = register_account(client)
    org_id = create_org(client, token)
    resource_id = create_resource(client, token, org_id)

    resp = client.post(
        "/bookings",
        json={
            "resource_id": resource_id,
            "start_time": "2999-01-01T10:00:00Z",
            "end_time": "2999-01-01T11:00:00Z",
        },
        headers={**auth(token), "X-Request-ID": "book-1"},
    )
    assert resp.status_code == 201

    created = captured.find("Booking created")
    assert len(created) == 1
    line = created[0]
    assert line["logger"] == "clubhouse.services.booking_service"
    assert line["level"] == "INFO"
    assert line["request_id"] == "book-1"
    assert line["account_id"] == account_id
    assert resp.json()["id"] in line["message"]


def test_request_summary_is_flat_json(
    client: TestClient, captured: _JsonCapture
) -> None:
    account_id, token = register_account(client)
    resp = client.post(
        "/organizations",
        json={"name": "Harbour Club", "slug": "harbour"},
        headers={**auth(token), "X-Request-ID": "org-7"},
    )
    assert resp.status_code == 201

    summaries = captured.find("POST /organizations -> 201")
    assert len(summaries) == 1
    line = summaries[0]
    assert line["request_id"] == "org-7"
    assert line["account_id"] == account_id
    assert line["method"] == "POST"
    assert line["path"] == "/organizations"
    assert line["status_code"] == 201
    assert isinstance(line["duration_ms"], float)

    created = captured.find("Organization created")
    assert created[0]["request_id"] == "org-7"
    assert created[0]["account_id"] == account_id


def test_rejected_booking_is_logged_with_reason(
    client: TestClient, captured: _JsonCapture
) -> None:
    account_id, token = register_account(client)
    resource_id = create_resource(client, token, create_org(client, token))
    assert book(client, token, resource_id).status_code == 201
    assert book(client, token, resource_id).status_code == 409

    rejected = captured.find("Booking rejected")
    assert len(rejected) == 1
    assert "reason=conflict" in rejected[0]["message"]
    assert rejected[0]["account_id"] == account_id


def test_anonymous_request_has_no_account_key(
    client: TestClient, captured: _JsonCapture
) -> None:
    resp = client.get("/bookings/mine", headers={"X-Request-ID": "anon"})
    assert resp.status_code == 401

    summaries = captured.find("GET /bookings/mine -> 401")
    assert len(summaries) == 1
    assert summaries[0]["request_id"] == "anon"
    assert "account_id" not in summaries[0]


def test_account_does_not_leak_into_the_next_request(
    client: TestClient, captured: _JsonCapture
) -> None:
    _, token = register_account(client)
    client.get("/accounts/me", headers=auth(token))
    client.get("/health", headers={"X-Request-ID": "after"})

    health = captured.find("GET /health -> 200")
    assert health[0]["request_id"] == "after"
    assert "account_id" not in health[0]


def test_exception_text_is_one_key() -> None:
    try:
        raise RuntimeError("exclusion constraint bookings_no_overlap")
    except RuntimeError:
        record = logging.LogRecord(
            "clubhouse.repos.pg_booking_repo",
            logging.ERROR,
            "pg_booking_repo.py",
            1,
            "Booking insert failed resource=%s",
            ("r-1",),
            sys.exc_info(),
        )
    record.account_id = "acc-1"  # type: ignore[attr-defined]

    line = json.loads(_JsonFormatter().format(record))
    assert line["message"] == "Booking insert failed resource=r-1"
    assert line["account_id"] == "acc-1"
    assert "RuntimeError: exclusion constraint" in line["exception"]
    assert "\n" not in _JsonFormatter().format(record)
