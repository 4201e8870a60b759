from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4

# Static reference set of global roles. The bypass role name is configured
# via SETTINGS.bypass_role and defaults to "super-admin".
ROLE_NAMES: tuple[str, ...] = ("super-admin", "owner", "manager")


@dataclass(frozen=True, slots=True)
class Account:
    id: UUID
    email: str
    password_hash: str
    display_name: str = ""
    locale: str = "en"
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @staticmethod
    def new(*, email: str, password_hash: str, display_name: str = "") -> Account:
        now = datetime.now(UTC)
        return Account(
            id=uuid4(),
            email=email,
            password_hash=password_hash,
            display_name=display_name,
            created_at=now,
            updated_at=now,
        )
