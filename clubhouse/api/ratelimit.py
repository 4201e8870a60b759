"""Rate limiting dependency for the credential routes.

A dependency rather than middleware so only the routes that declare it
are limited: POST /sessions and POST /accounts get strict buckets, health
and metrics are never limited.

Buckets are keyed by account when a bearer token names one, otherwise by
client IP. The route path is part of the key so login attempts and
registrations draw from separate buckets.
"""

from __future__ import annotations

import logging

import jwt
from fastapi import HTTPException, Request, status

from clubhouse.core.metrics import RATE_LIMIT_HITS
from clubhouse.db.redis import redis_pool
from clubhouse.services.rate_limiter import (
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimiter,
    RedisRateLimiter,
)

logger = logging.getLogger(__name__)

if redis_pool is not None:
    rate_limiter: RateLimiter = RedisRateLimiter(redis_pool)
else:
    rate_limiter = InMemoryRateLimiter()

# About 10 attempts per minute per client: 1 token every 6 seconds.
CREDENTIALS_LIMIT = RateLimitConfig(capacity=10, refill_rate=0.17)


def require_rate_limit(config: RateLimitConfig = CREDENTIALS_LIMIT):
    """Dependency factory: reject with 429 once the client's bucket is empty."""

    async def _check(request: Request) -> None:
        key = _build_key(request)
        result = await rate_limiter.check(key, config)
        if result.allowed:
            return

        RATE_LIMIT_HITS.labels(
            key_type="user" if key.startswith("user:") else "ip"
        ).inc()
        logger.warning("Rate limit exceeded key=%s", key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded",
            headers={
                "Retry-After": str(int(result.retry_after) + 1),
                "X-RateLimit-Limit": str(result.limit),
                "X-RateLimit-Remaining": "0",
            },
        )

    return _check


def _build_key(request: Request) -> str:
    # Unverified peek at 'sub': a forged token only earns its own bucket,
    # real validation happens in require_caller.
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        try:
            claims = jwt.decode(auth_header[7:], options={"verify_signature": False})
        except jwt.PyJWTError:
            claims = {}
        sub = claims.get("sub")
        if sub:
            return f"user:{sub}:{request.url.path}"

    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}:{request.url.path}"
