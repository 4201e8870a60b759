from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

RESOURCE_CATEGORIES: tuple[str, ...] = (
    "Tennis",
    "Padel",
    "Pickleball",
    "Squash",
    "Table Tennis",
)


@dataclass(frozen=True, slots=True)
class Resource:
    id: UUID
    organization_id: UUID
    name: str
    category: str = "Tennis"
    hourly_rate: Decimal = Decimal("0.00")
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @staticmethod
    def new(
        *,
        organization_id: UUID,
        name: str,
        category: str = "Tennis",
        hourly_rate: Decimal = Decimal("0.00"),
    ) -> Resource:
        now = datetime.now(UTC)
        return Resource(
            id=uuid4(),
            organization_id=organization_id,
            name=name,
            category=category,
            hourly_rate=hourly_rate,
            created_at=now,
            updated_at=now,
        )
