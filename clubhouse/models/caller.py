from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Caller:
    """Authenticated identity resolved from a session token.

    Carried through the request via FastAPI's dependency system.

    account_id, email, display_name: loaded from the store, not the token
    roles: every global role bound to the account (authoritative set)
    primary_role: first-assigned role, for display only
    token_jti, token_exp: identify the presented token so logout can revoke it
    """

    account_id: UUID
    email: str
    display_name: str
    roles: frozenset[str]
    primary_role: str | None = None
    token_jti: str | None = None
    token_exp: float | None = None

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def has_any_role(self, roles: set[str]) -> bool:
        return bool(self.roles & roles)
