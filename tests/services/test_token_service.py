from __future__ import annotations

import time
from datetime import timedelta

import jwt
import pytest
from jwt.utils import base64url_encode

from clubhouse.core.config import SETTINGS
from clubhouse.services import token_service


def test_claims_carry_identity_only() -> None:
    token = token_service.create_access_token(sub="abc")
    claims = token_service.decode_access_token(token)

    assert claims["sub"] == "abc"
    assert claims["iss"] == token_service.ISSUER
    assert claims["aud"] == token_service.AUDIENCE
    assert set(claims) == {"sub", "iss", "aud", "exp", "iat", "jti"}


def test_default_ttl_comes_from_settings() -> None:
    claims = token_service.decode_access_token(
        token_service.create_access_token(sub="abc")
    )
    assert claims["exp"] - claims["iat"] == SETTINGS.token_ttl_min * 60
    assert claims["exp"] > time.time()


def test_each_token_gets_a_fresh_jti() -> None:
    tokens = [token_service.create_access_token(sub="a") for _ in range(3)]
    jtis = {token_service.decode_access_token(t)["jti"] for t in tokens}
    assert len(jtis) == 3


def test_expired_token_raises() -> None:
    token = token_service.create_access_token(sub="abc", ttl=timedelta(seconds=-5))
    with pytest.raises(jwt.ExpiredSignatureError):
        token_service.decode_access_token(token)


def test_unsigned_token_is_rejected() -> None:
    token = jwt.encode(
        {
            "sub": "abc",
            "iss": token_service.ISSUER,
            "aud": token_service.AUDIENCE,
            "exp": int(time.time()) + 60,
            "iat": int(time.time()),
            "jti": "x",
        },
        None,
        algorithm="none",
    )
    with pytest.raises(jwt.InvalidTokenError):
        token_service.decode_access_token(token)


def test_tampered_payload_is_rejected() -> None:
    header, _, signature = token_service.create_access_token(sub="abc").split(".")
    forged_payload = base64url_encode(b'{"sub":"someone-else"}').decode()
    with pytest.raises(jwt.InvalidTokenError):
        token_service.decode_access_token(f"{header}.{forged_payload}.{signature}")
