from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from clubhouse.db.engine import async_session_factory
from clubhouse.middleware.request_context import account_id_var
from clubhouse.models.caller import Caller
from clubhouse.repos.store import Store, in_memory_store, pg_store
from clubhouse.services import authorization

logger = logging.getLogger(__name__)

# auto_error=False: a missing header must reach resolve_caller so it renders
# as our own unauthenticated envelope rather than FastAPI's 403.
bearer_scheme = HTTPBearer(auto_error=False)

# Process-wide store used when no DATABASE_URL is configured.
_memory_store = in_memory_store()


def memory_store() -> Store:
    return _memory_store


def reset_memory_store() -> Store:
    """Swap in an empty in-memory store (used between tests)."""
    global _memory_store
    _memory_store = in_memory_store()
    return _memory_store


async def get_store() -> AsyncGenerator[Store, None]:
    """FastAPI dependency that yields the request's Store.

    PostgreSQL: one session per request, committed on success and rolled
    back on exception. Without DATABASE_URL, the in-memory store.
    """
    if async_session_factory is None:
        yield _memory_store
        return
    async with async_session_factory() as session:
        try:
            yield pg_store(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise


StoreDep = Annotated[Store, Depends(get_store)]


async def require_caller(
    request: Request,
    store: StoreDep,
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Caller:
    """Resolve the bearer token into a Caller, or raise Unauthenticated."""
    token = credentials.credentials if credentials is not None else None
    caller = await authorization.resolve_caller(store, token)
    request.state.account_id = str(caller.account_id)
    account_id_var.set(str(caller.account_id))
    logger.debug(
        "Token validated for account=%s roles=%s",
        caller.account_id,
        sorted(caller.roles),
    )
    return caller


CallerDep = Annotated[Caller, Depends(require_caller)]
