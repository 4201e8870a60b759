#!/usr/bin/env python3
"""Load test script: shows the login rate limit kicking in.

RUN:  python scripts/load_test_rate_limit.py

Sends TOTAL_REQUESTS login attempts with a wrong password in rapid
succession and prints how many were rejected as bad credentials (401)
versus throttled (429).

Prerequisites:
  - The API must be running: uvicorn clubhouse.main:app --port 8000

This is a demonstration, not a load testing tool. For real load testing,
use locust, k6, or wrk.
"""

from __future__ import annotations

import time

import httpx

BASE_URL = "http://localhost:8000"
TOTAL_REQUESTS = 30


def main() -> None:
    print("Rate Limit Load Test")
    print("=" * 50)
    print(f"Target: {BASE_URL}/sessions")
    print(f"Total requests: {TOTAL_REQUESTS}")
    print()

    results: dict[int, int] = {}
    retry_after = None
    start = time.monotonic()

    with httpx.Client(base_url=BASE_URL, timeout=10) as client:
        for i in range(TOTAL_REQUESTS):
            resp = client.post(
                "/sessions",
                json={"email": "load-test@example.com", "password": "wrong-pass"},
            )
            results[resp.status_code] = results.get(resp.status_code, 0) + 1
            if resp.status_code == 429 and retry_after is None:
                retry_after = resp.headers.get("Retry-After")

            if (i + 1) % 10 == 0:
                print(f"  Sent {i + 1}/{TOTAL_REQUESTS} requests...")

    elapsed = time.monotonic() - start

    print()
    print(f"Results after {TOTAL_REQUESTS} requests ({elapsed:.2f}s):")
    print("─" * 40)

    rejected = results.get(401, 0)
    throttled = results.get(429, 0)
    other = sum(v for k, v in results.items() if k not in (401, 429))

    print(f"  Rejected (401): {rejected:>4}")
    print(f"  Throttled(429): {throttled:>4}")
    if other:
        print(f"  Other:          {other:>4}")

    print()
    print("Token bucket capacity: 10")
    print("Refill rate: about 1 token every 6 seconds")
    print()

    if throttled > 0:
        print(f"Rate limiting is working. First Retry-After: {retry_after}s")
    else:
        print("WARNING: No requests were throttled.")
        print("Check that POST /sessions declares the rate limit dependency.")


if __name__ == "__main__":
    main()
