from __future__ import annotations

import logging
import re
from uuid import UUID

from clubhouse.core.config import SETTINGS
from clubhouse.core.errors import Conflict, InvalidRequest, NotFound, Unauthenticated
from clubhouse.models.account import ROLE_NAMES, Account
from clubhouse.models.caller import Caller
from clubhouse.repos.store import Store
from clubhouse.services import auth_service, authorization

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6


def normalize_email(email: str) -> str:
    return email.strip().lower()


def assignable_roles() -> frozenset[str]:
    return frozenset(ROLE_NAMES) | {SETTINGS.bypass_role}


async def register(
    store: Store, *, email: str, password: str, display_name: str
) -> Account:
    email = normalize_email(email)
    display_name = display_name.strip()
    if not _EMAIL_RE.match(email):
        raise InvalidRequest("Invalid email address")
    if not display_name:
        raise InvalidRequest("display_name must be non-empty")
    _check_password(password)

    account = Account.new(
        email=email,
        password_hash=auth_service.hash_password(password),
        display_name=display_name,
    )
    try:
        await store.accounts.add(account)
    except ValueError:
        raise Conflict("An account with this email already exists") from None
    logger.info("Account registered id=%s", account.id)
    return account


async def login(store: Store, *, email: str, password: str) -> Account:
    account = await auth_service.authenticate(
        store.accounts, normalize_email(email), password
    )
    if account is None:
        logger.warning("Login failed")
        raise Unauthenticated("Invalid email or password")
    logger.info("Login succeeded account=%s", account.id)
    return account


async def get_profile(store: Store, caller: Caller) -> Account:
    account = await store.accounts.get_by_id(caller.account_id)
    if account is None:
        raise NotFound("Account not found")
    return account


async def update_profile(
    store: Store,
    caller: Caller,
    *,
    display_name: str | None = None,
    locale: str | None = None,
) -> Account:
    if display_name is not None:
        display_name = display_name.strip()
        if not display_name:
            raise InvalidRequest("display_name must be non-empty")
    if locale is not None:
        locale = locale.strip()
        if not locale:
            raise InvalidRequest("locale must be non-empty")
    account = await store.accounts.update_profile(
        caller.account_id, display_name=display_name, locale=locale
    )
    if account is None:
        raise NotFound("Account not found")
    return account


async def change_password(
    store: Store, caller: Caller, *, current_password: str, new_password: str
) -> None:
    account = await get_profile(store, caller)
    if not auth_service.verify_password(current_password, account.password_hash):
        raise Unauthenticated("Current password is incorrect")
    _check_password(new_password)
    await store.accounts.update_password_hash(
        account.id, auth_service.hash_password(new_password)
    )
    logger.info("Password changed account=%s", account.id)


async def get_account(store: Store, caller: Caller, account_id: UUID) -> Account:
    """One account by id. Callers may read themselves; anyone else needs bypass."""
    if account_id != caller.account_id:
        authorization.require_bypass(caller)
    account = await store.accounts.get_by_id(account_id)
    if account is None:
        raise NotFound("Account not found")
    return account


async def list_accounts(store: Store, caller: Caller) -> list[Account]:
    authorization.require_bypass(caller)
    return await store.accounts.list_all()


async def assign_role(
    store: Store, caller: Caller, account_id: UUID, role: str
) -> list[str]:
    """Bind a global role; returns the account's roles in assignment order."""
    authorization.require_bypass(caller)
    _check_role(role)
    if await store.accounts.get_by_id(account_id) is None:
        raise NotFound("Account not found")
    if await store.accounts.add_role(account_id, role):
        logger.info(
            "Role assigned account=%s role=%s by=%s", account_id, role, caller.account_id
        )
    return await store.accounts.list_roles(account_id)


async def revoke_role(
    store: Store, caller: Caller, account_id: UUID, role: str
) -> list[str]:
    authorization.require_bypass(caller)
    _check_role(role)
    if await store.accounts.get_by_id(account_id) is None:
        raise NotFound("Account not found")
    if not await store.accounts.remove_role(account_id, role):
        raise NotFound("Role not assigned")
    logger.info(
        "Role revoked account=%s role=%s by=%s", account_id, role, caller.account_id
    )
    return await store.accounts.list_roles(account_id)


def _check_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidRequest(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )


def _check_role(role: str) -> None:
    if role not in assignable_roles():
        raise InvalidRequest(f"Unknown role {role!r}")
