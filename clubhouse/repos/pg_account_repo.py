"""PostgreSQL implementation of AccountRepo."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clubhouse.db.tables import AccountRoleRow, AccountRow, RoleRow
from clubhouse.models.account import Account


class PgAccountRepo:
    """Satisfies the AccountRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, account_id: UUID) -> Account | None:
        stmt = select(AccountRow).where(AccountRow.id == account_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_account(row)

    async def get_by_email(self, email: str) -> Account | None:
        stmt = select(AccountRow).where(AccountRow.email == email)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_account(row)

    async def add(self, account: Account) -> None:
        row = AccountRow(
            id=account.id,
            email=account.email,
            password_hash=account.password_hash,
            display_name=account.display_name,
            locale=account.locale,
            is_active=account.is_active,
        )
        try:
            async with self._session.begin_nested():
                self._session.add(row)
                await self._session.flush()
        except IntegrityError as exc:
            raise ValueError("email already exists") from exc

    async def list_all(self) -> list[Account]:
        stmt = select(AccountRow).order_by(AccountRow.created_at)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_account(r) for r in rows]

    async def update_profile(
        self,
        account_id: UUID,
        *,
        display_name: str | None = None,
        locale: str | None = None,
    ) -> Account | None:
        values: dict[str, object] = {"updated_at": datetime.now(UTC)}
        if display_name is not None:
            values["display_name"] = display_name
        if locale is not None:
            values["locale"] = locale
        stmt = update(AccountRow).where(AccountRow.id == account_id).values(**values)
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self.get_by_id(account_id)

    async def update_password_hash(self, account_id: UUID, password_hash: str) -> None:
        stmt = (
            update(AccountRow)
            .where(AccountRow.id == account_id)
            .values(password_hash=password_hash, updated_at=datetime.now(UTC))
        )
        await self._session.execute(stmt)

    async def list_roles(self, account_id: UUID) -> list[str]:
        """Role names in assignment order; the first one is the primary role."""
        stmt = (
            select(RoleRow.name)
            .join(AccountRoleRow, AccountRoleRow.role_id == RoleRow.id)
            .where(AccountRoleRow.account_id == account_id)
            .order_by(AccountRoleRow.assigned_at, RoleRow.id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def add_role(self, account_id: UUID, role: str) -> bool:
        role_id = await self._role_id(role, create=True)
        exists = await self._session.execute(
            select(AccountRoleRow).where(
                AccountRoleRow.account_id == account_id,
                AccountRoleRow.role_id == role_id,
            )
        )
        if exists.scalar_one_or_none() is not None:
            return False
        self._session.add(
            AccountRoleRow(
                account_id=account_id, role_id=role_id, assigned_at=datetime.now(UTC)
            )
        )
        await self._session.flush()
        return True

    async def remove_role(self, account_id: UUID, role: str) -> bool:
        role_id = await self._role_id(role, create=False)
        if role_id is None:
            return False
        stmt = delete(AccountRoleRow).where(
            AccountRoleRow.account_id == account_id,
            AccountRoleRow.role_id == role_id,
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def _role_id(self, name: str, *, create: bool) -> int | None:
        stmt = select(RoleRow.id).where(RoleRow.name == name)
        role_id = (await self._session.execute(stmt)).scalar_one_or_none()
        if role_id is not None or not create:
            return role_id
        row = RoleRow(name=name)
        self._session.add(row)
        await self._session.flush()
        return row.id


def _row_to_account(row: AccountRow) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        display_name=row.display_name or "",
        locale=row.locale,
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
