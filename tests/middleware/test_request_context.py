"""Tests for the request context middleware.

Every response gets an X-Request-ID header (generated or echoed from the
request) and the request id reaches log records.
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from clubhouse.middleware.request_context import (
    _RequestContextFilter,
    account_id_var,
    request_id_var,
)


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get("/accounts/me")  # No token -> 401
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_summary_line_logged_with_context(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="clubhouse.middleware.request_context"):
        client.get("/health", headers={"X-Request-ID": "trace-me"})

    summaries = [r for r in caplog.records if "GET /health -> 200" in r.getMessage()]
    assert len(summaries) == 1
    record = summaries[0]
    assert record.request_id == "trace-me"  # type: ignore[attr-defined]
    assert record.status_code == 200  # type: ignore[attr-defined]


def test_context_var_reset_after_request(client: TestClient) -> None:
    client.get("/health", headers={"X-Request-ID": "leaky"})
    assert request_id_var.get() == "-"


def test_filter_fills_request_id_from_context() -> None:
    record = logging.LogRecord("t", logging.INFO, "t.py", 1, "m", (), None)
    token = request_id_var.set("ctx-42")
    try:
        assert _RequestContextFilter().filter(record)
    finally:
        request_id_var.reset(token)
    assert record.request_id == "ctx-42"  # type: ignore[attr-defined]


def test_filter_fills_account_id_only_when_known() -> None:
    anonymous = logging.LogRecord("t", logging.INFO, "t.py", 1, "m", (), None)
    assert _RequestContextFilter().filter(anonymous)
    assert anonymous.account_id is None  # type: ignore[attr-defined]

    record = logging.LogRecord("t", logging.INFO, "t.py", 1, "m", (), None)
    token = account_id_var.set("acc-9")
    try:
        _RequestContextFilter().filter(record)
    finally:
        account_id_var.reset(token)
    assert record.account_id == "acc-9"  # type: ignore[attr-defined]
