from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from clubhouse.models.account import Account


class AccountRepo(Protocol):
    async def get_by_id(self, account_id: UUID) -> Account | None: ...
    async def get_by_email(self, email: str) -> Account | None: ...
    async def add(self, account: Account) -> None: ...
    async def list_all(self) -> list[Account]: ...
    async def update_profile(
        self,
        account_id: UUID,
        *,
        display_name: str | None = None,
        locale: str | None = None,
    ) -> Account | None: ...
    async def update_password_hash(self, account_id: UUID, password_hash: str) -> None: ...
    async def list_roles(self, account_id: UUID) -> list[str]: ...
    async def add_role(self, account_id: UUID, role: str) -> bool: ...
    async def remove_role(self, account_id: UUID, role: str) -> bool: ...


class InMemoryAccountRepo:
    def __init__(self) -> None:
        self._by_email: dict[str, Account] = {}
        self._by_id: dict[UUID, Account] = {}
        # account_id -> role names in assignment order (first = primary)
        self._roles: dict[UUID, list[str]] = {}

    async def get_by_id(self, account_id: UUID) -> Account | None:
        return self._by_id.get(account_id)

    async def get_by_email(self, email: str) -> Account | None:
        return self._by_email.get(email)

    async def add(self, account: Account) -> None:
        if account.email in self._by_email:
            raise ValueError("email already exists")
        self._by_email[account.email] = account
        self._by_id[account.id] = account

    async def list_all(self) -> list[Account]:
        return sorted(self._by_id.values(), key=lambda a: a.email)

    async def update_profile(
        self,
        account_id: UUID,
        *,
        display_name: str | None = None,
        locale: str | None = None,
    ) -> Account | None:
        current = self._by_id.get(account_id)
        if current is None:
            return None
        updated = replace(
            current,
            display_name=current.display_name if display_name is None else display_name,
            locale=current.locale if locale is None else locale,
            updated_at=datetime.now(UTC),
        )
        self._store(updated)
        return updated

    async def update_password_hash(self, account_id: UUID, password_hash: str) -> None:
        current = self._by_id.get(account_id)
        if current is None:
            raise KeyError("account not found")
        self._store(
            replace(current, password_hash=password_hash, updated_at=datetime.now(UTC))
        )

    async def list_roles(self, account_id: UUID) -> list[str]:
        return list(self._roles.get(account_id, ()))

    async def add_role(self, account_id: UUID, role: str) -> bool:
        roles = self._roles.setdefault(account_id, [])
        if role in roles:
            return False
        roles.append(role)
        return True

    async def remove_role(self, account_id: UUID, role: str) -> bool:
        roles = self._roles.get(account_id, [])
        if role not in roles:
            return False
        roles.remove(role)
        return True

    def _store(self, account: Account) -> None:
        self._by_id[account.id] = account
        self._by_email[account.email] = account
