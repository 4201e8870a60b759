"""Authorization resolver.

Turns a session token into a Caller and answers capability questions about
it. Every route reaches permissions through this module; nothing else reads
roles or memberships to make an access decision.

Two kinds of capability:

- global: a role name bound to the account (super-admin, owner, manager).
  The full role set is authoritative; ``primary_role`` is for display.
- organization: the kind of the caller's single active membership in one
  organization. Kinds match exactly, a member is not a manager.

The bypass role (SETTINGS.bypass_role) satisfies every organization check
without a membership row, so platform operators can administer any
organization.
"""

from __future__ import annotations

import logging
from uuid import UUID

import jwt

from clubhouse.core.config import SETTINGS
from clubhouse.core.errors import Forbidden, Unauthenticated
from clubhouse.core.metrics import AUTHZ_DENIALS
from clubhouse.models.caller import Caller
from clubhouse.models.organization import Membership
from clubhouse.repos.store import Store
from clubhouse.services import token_service
from clubhouse.services.token_blacklist import token_blacklist

logger = logging.getLogger(__name__)


async def resolve_caller(store: Store, token: str | None) -> Caller:
    """Validate *token* and load the account it names.

    Raises Unauthenticated for a missing, malformed, expired or revoked
    token, and for a subject that no longer exists or is inactive. Store
    errors propagate unchanged.
    """
    if not token:
        raise Unauthenticated("Missing session token")

    try:
        claims = token_service.decode_access_token(token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise Unauthenticated("Session token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise Unauthenticated("Invalid session token") from None

    if await token_blacklist.is_revoked(claims["jti"]):
        logger.warning("Revoked token rejected jti=%s", claims["jti"])
        raise Unauthenticated("Session token revoked")

    try:
        account_id = UUID(str(claims["sub"]))
    except ValueError:
        raise Unauthenticated("Invalid session token") from None

    account = await store.accounts.get_by_id(account_id)
    if account is None or not account.is_active:
        logger.warning("Token subject no longer valid account=%s", account_id)
        raise Unauthenticated("Account no longer exists")

    roles = await load_global_roles(store, account_id)
    # The set is unordered; the primary role is the earliest assignment.
    ordered = await store.accounts.list_roles(account_id) if roles else []
    return Caller(
        account_id=account.id,
        email=account.email,
        display_name=account.display_name,
        roles=roles,
        primary_role=ordered[0] if ordered else None,
        token_jti=claims["jti"],
        token_exp=float(claims["exp"]),
    )


async def load_global_roles(store: Store, account_id: UUID) -> frozenset[str]:
    """Every global role bound to the account; empty when it has none."""
    return frozenset(await store.accounts.list_roles(account_id))


async def load_membership(
    store: Store, account_id: UUID, organization_id: UUID
) -> Membership | None:
    """The single active membership row, or None."""
    return await store.memberships.get_active(account_id, organization_id)


def has_global_capability(caller: Caller, role: str) -> bool:
    return caller.has_role(role)


def is_bypass(caller: Caller) -> bool:
    return caller.has_role(SETTINGS.bypass_role)


async def has_organization_capability(
    store: Store, caller: Caller, organization_id: UUID, kind: str
) -> bool:
    if is_bypass(caller):
        return True
    membership = await load_membership(store, caller.account_id, organization_id)
    return membership is not None and membership.kind == kind


async def is_member(store: Store, caller: Caller, organization_id: UUID) -> bool:
    """Bypass role, or an active membership of any kind."""
    if is_bypass(caller):
        return True
    return await load_membership(store, caller.account_id, organization_id) is not None


def require_global_capability(caller: Caller, role: str) -> None:
    if not has_global_capability(caller, role):
        AUTHZ_DENIALS.labels(check="global").inc()
        logger.warning(
            "Access denied: account=%s missing role=%s", caller.account_id, role
        )
        raise Forbidden("Insufficient permissions")


def require_bypass(caller: Caller) -> None:
    require_global_capability(caller, SETTINGS.bypass_role)


async def require_organization_capability(
    store: Store, caller: Caller, organization_id: UUID, kind: str
) -> None:
    if not await has_organization_capability(store, caller, organization_id, kind):
        AUTHZ_DENIALS.labels(check="organization").inc()
        logger.warning(
            "Access denied: account=%s required=%s organization=%s",
            caller.account_id,
            kind,
            organization_id,
        )
        raise Forbidden("Insufficient organization permissions")


async def require_member(store: Store, caller: Caller, organization_id: UUID) -> None:
    if not await is_member(store, caller, organization_id):
        AUTHZ_DENIALS.labels(check="organization").inc()
        logger.warning(
            "Access denied: account=%s not a member of organization=%s",
            caller.account_id,
            organization_id,
        )
        raise Forbidden("No access to this organization")
