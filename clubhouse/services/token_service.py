"""Session token creation and validation (ES256).

Centralizes token logic so the session endpoints (issuance) and the
authorization resolver (validation) share the same key and claims schema.
The token carries identity only; roles and memberships are loaded from the
store on every request so a revoked role takes effect immediately.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

from clubhouse.core.config import SETTINGS

# ---------------------------------------------------------------------------
# Key management
# ---------------------------------------------------------------------------
# Ephemeral EC key pair generated on import: tokens do not survive a restart.
_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "clubhouse"
AUDIENCE = "clubhouse-api"


def create_access_token(*, sub: str, ttl: timedelta | None = None) -> str:
    """Build and sign a session token: sub, iss, aud, exp, iat, jti."""
    now = datetime.now(UTC)
    if ttl is None:
        ttl = timedelta(minutes=SETTINGS.token_ttl_min)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + ttl,
        "iat": now,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins algorithm to ES256 to prevent alg:none and alg-switching attacks.
    Validates exp, iss, and aud automatically via PyJWT options.

    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
