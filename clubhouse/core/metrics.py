"""Application metrics using the Prometheus client library.

All metrics live here so there is a single inventory of what the service
measures. Other modules import a metric and increment/observe it at the
point of action. Counters only go up; tests assert on deltas.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Application-specific metrics
# ---------------------------------------------------------------------------

BOOKINGS_CREATED = Counter(
    "bookings_created_total",
    "Bookings persisted with status=pending",
)

BOOKINGS_REJECTED = Counter(
    "bookings_rejected_total",
    "Booking requests rejected by the validator",
    ["reason"],  # invalid_request|not_found|forbidden|conflict
)

BOOKING_STATUS_CHANGES = Counter(
    "booking_status_changes_total",
    "Booking status transitions applied",
    ["to_status"],
)

AUTHZ_DENIALS = Counter(
    "authorization_denials_total",
    "Authenticated callers denied by a capability check",
    ["check"],  # global|organization|ownership
)

RATE_LIMIT_HITS = Counter(
    "rate_limit_hits_total",
    "Requests rejected by rate limiting (429s)",
    ["key_type"],  # "user" or "ip"
)

TOKEN_BLACKLIST_CHECKS = Counter(
    "token_blacklist_checks_total",
    "Token blacklist lookups by result",
    ["result"],  # "revoked" or "valid"
)
