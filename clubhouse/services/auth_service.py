from __future__ import annotations

import logging

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from clubhouse.models.account import Account
from clubhouse.repos.account_repo import AccountRepo

logger = logging.getLogger(__name__)

# Argon2 hash strings encode parameters + salt
_ph = PasswordHasher()


def hash_password(plain_password: str) -> str:
    if not plain_password:
        raise ValueError("password must be non-empty")
    return _ph.hash(plain_password)


# verify_password() must catch Argon2 exceptions and return False
def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return _ph.verify(password_hash, plain_password)
    except (VerifyMismatchError, VerificationError, InvalidHash):
        return False


async def authenticate(
    accounts: AccountRepo, email: str, password: str
) -> Account | None:
    account = await accounts.get_by_email(email)
    if account is None:
        return None
    if not account.is_active:
        return None
    if not verify_password(password, account.password_hash):
        return None

    # Upgrade the stored hash if argon2 parameters changed since it was made.
    try:
        if _ph.check_needs_rehash(account.password_hash):
            await accounts.update_password_hash(account.id, _ph.hash(password))
            logger.info("Rehashed password for account=%s", account.id)
    except InvalidHash:
        return None

    return account
