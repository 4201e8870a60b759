"""Account endpoints: registration, profiles, password, global roles.

POST /accounts returns the same shape as POST /sessions so a client can
store the token and continue straight away.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from clubhouse.api.dependencies import CallerDep, StoreDep
from clubhouse.api.ratelimit import require_rate_limit
from clubhouse.models.account import Account
from clubhouse.repos.store import Store
from clubhouse.services import account_service, token_service

router = APIRouter(prefix="/accounts", tags=["accounts"])


# --- Schemas ---


class RegisterIn(BaseModel):
    email: str
    password: str
    display_name: str = Field(min_length=1, max_length=255)


class AccountOut(BaseModel):
    id: UUID
    email: str
    display_name: str
    locale: str
    is_active: bool
    roles: list[str]
    primary_role: str | None
    created_at: datetime | None


class SessionOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account: AccountOut


class ProfileUpdateIn(BaseModel):
    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    locale: str | None = Field(default=None, min_length=1, max_length=16)


class PasswordChangeIn(BaseModel):
    current_password: str
    new_password: str


class RolesOut(BaseModel):
    account_id: UUID
    roles: list[str]


def account_out(account: Account, roles: list[str]) -> AccountOut:
    return AccountOut(
        id=account.id,
        email=account.email,
        display_name=account.display_name,
        locale=account.locale,
        is_active=account.is_active,
        roles=roles,
        primary_role=roles[0] if roles else None,
        created_at=account.created_at,
    )


async def open_session(store: Store, account: Account) -> SessionOut:
    roles = await store.accounts.list_roles(account.id)
    return SessionOut(
        access_token=token_service.create_access_token(sub=str(account.id)),
        account=account_out(account, roles),
    )


# --- Endpoints ---


@router.post(
    "",
    response_model=SessionOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_rate_limit())],
)
async def register(body: RegisterIn, store: StoreDep) -> SessionOut:
    account = await account_service.register(
        store,
        email=body.email,
        password=body.password,
        display_name=body.display_name,
    )
    return await open_session(store, account)


@router.get("/me", response_model=AccountOut)
async def get_me(caller: CallerDep, store: StoreDep) -> AccountOut:
    account = await account_service.get_profile(store, caller)
    return account_out(account, await store.accounts.list_roles(account.id))


@router.put("/me", response_model=AccountOut)
async def update_me(
    body: ProfileUpdateIn, caller: CallerDep, store: StoreDep
) -> AccountOut:
    account = await account_service.update_profile(
        store, caller, display_name=body.display_name, locale=body.locale
    )
    return account_out(account, await store.accounts.list_roles(account.id))


@router.put("/me/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    body: PasswordChangeIn, caller: CallerDep, store: StoreDep
) -> Response:
    await account_service.change_password(
        store,
        caller,
        current_password=body.current_password,
        new_password=body.new_password,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("", response_model=list[AccountOut])
async def list_accounts(caller: CallerDep, store: StoreDep) -> list[AccountOut]:
    """Every account. Bypass role only."""
    accounts = await account_service.list_accounts(store, caller)
    return [account_out(a, await store.accounts.list_roles(a.id)) for a in accounts]


@router.put("/{account_id}/roles/{role}", response_model=RolesOut)
async def assign_role(
    account_id: UUID, role: str, caller: CallerDep, store: StoreDep
) -> RolesOut:
    roles = await account_service.assign_role(store, caller, account_id, role)
    return RolesOut(account_id=account_id, roles=roles)


@router.delete("/{account_id}/roles/{role}", response_model=RolesOut)
async def revoke_role(
    account_id: UUID, role: str, caller: CallerDep, store: StoreDep
) -> RolesOut:
    roles = await account_service.revoke_role(store, caller, account_id, role)
    return RolesOut(account_id=account_id, roles=roles)



@router.get("/{account_id}", response_model=AccountOut)
async def get_account(
    account_id: UUID, caller: CallerDep, store: StoreDep
) -> AccountOut:
    account = await account_service.get_account(store, caller, account_id)
    return account_out(account, await store.accounts.list_roles(account.id))
