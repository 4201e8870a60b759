from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

BOOKING_STATUSES: tuple[str, ...] = ("pending", "confirmed", "cancelled", "completed")

# Statuses that hold a resource. Only these take part in overlap checks.
ACTIVE_STATUSES: frozenset[str] = frozenset({"pending", "confirmed"})
TERMINAL_STATUSES: frozenset[str] = frozenset({"cancelled", "completed"})


@dataclass(frozen=True, slots=True)
class Booking:
    id: UUID
    account_id: UUID
    organization_id: UUID
    resource_id: UUID
    start_time: datetime
    end_time: datetime
    total_amount: Decimal
    status: str = "pending"  # pending|confirmed|cancelled|completed
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @staticmethod
    def new(
        *,
        account_id: UUID,
        organization_id: UUID,
        resource_id: UUID,
        start_time: datetime,
        end_time: datetime,
        total_amount: Decimal,
        notes: str | None = None,
    ) -> Booking:
        now = datetime.now(UTC)
        return Booking(
            id=uuid4(),
            account_id=account_id,
            organization_id=organization_id,
            resource_id=resource_id,
            start_time=start_time,
            end_time=end_time,
            total_amount=total_amount,
            notes=notes,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
