"""Revoked session tokens, keyed by the token's jti claim.

Session tokens are stateless and live for TOKEN_TTL_MIN, so logout needs a
small stateful layer: a set of revoked jtis, each kept only until the token
would have expired anyway. Redis holds the set when REDIS_URL is configured
(shared by every API process, entries self-clean via TTL); otherwise a
per-process dict does.
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable

from clubhouse.core.metrics import TOKEN_BLACKLIST_CHECKS
from clubhouse.db.redis import redis_pool


@runtime_checkable
class TokenBlacklist(Protocol):
    async def revoke(self, jti: str, expires_at: float) -> None: ...
    async def is_revoked(self, jti: str) -> bool: ...


class InMemoryTokenBlacklist:
    def __init__(self) -> None:
        # jti -> expiry timestamp (Unix seconds)
        self._revoked: dict[str, float] = {}

    async def revoke(self, jti: str, expires_at: float) -> None:
        self._revoked[jti] = expires_at

    async def is_revoked(self, jti: str) -> bool:
        exp = self._revoked.get(jti)
        if exp is not None and exp < time.time():
            del self._revoked[jti]
            exp = None
        revoked = exp is not None
        TOKEN_BLACKLIST_CHECKS.labels(result="revoked" if revoked else "valid").inc()
        return revoked

    def clear(self) -> None:
        self._revoked.clear()


class RedisTokenBlacklist:
    _PREFIX = "clubhouse:revoked:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def revoke(self, jti: str, expires_at: float) -> None:
        ttl_seconds = int(expires_at - time.time())
        if ttl_seconds <= 0:
            return  # already expired, the signature check rejects it
        # SETEX sets value and TTL atomically
        await self._redis.setex(f"{self._PREFIX}{jti}", ttl_seconds, "1")

    async def is_revoked(self, jti: str) -> bool:
        revoked = bool(await self._redis.exists(f"{self._PREFIX}{jti}"))
        TOKEN_BLACKLIST_CHECKS.labels(result="revoked" if revoked else "valid").inc()
        return revoked


if redis_pool is not None:
    token_blacklist: TokenBlacklist = RedisTokenBlacklist(redis_pool)
else:
    token_blacklist = InMemoryTokenBlacklist()
