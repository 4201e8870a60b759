"""Session endpoints: log in (POST /sessions) and log out (DELETE /sessions).

Logout blacklists the presented token's jti until the token would have
expired. It answers 204 even for an invalid or expired token: "make this
token stop working" is already true for those.
"""

from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import APIRouter, Depends, Response, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel

from clubhouse.api.accounts import SessionOut, open_session
from clubhouse.api.dependencies import StoreDep, bearer_scheme
from clubhouse.api.ratelimit import require_rate_limit
from clubhouse.services import account_service, token_service
from clubhouse.services.token_blacklist import token_blacklist

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


class LoginIn(BaseModel):
    email: str
    password: str


@router.post(
    "",
    response_model=SessionOut,
    dependencies=[Depends(require_rate_limit())],
)
async def login(body: LoginIn, store: StoreDep) -> SessionOut:
    account = await account_service.login(
        store, email=body.email, password=body.password
    )
    return await open_session(store, account)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Response:
    if credentials is not None:
        try:
            claims = token_service.decode_access_token(credentials.credentials)
        except jwt.InvalidTokenError:
            claims = None
        if claims:
            await token_blacklist.revoke(claims["jti"], float(claims["exp"]))
            logger.info("Token revoked jti=%s", claims["jti"])
    return Response(status_code=status.HTTP_204_NO_CONTENT)
