"""Lease model - exclusive reservation of one operation on one resource."""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from leasekeeper.models.enums import LeaseStatus, ResourceType


class Lease(BaseModel):
    """Represents a holder's exclusive right to perform one operation."""

    lease_id: UUID
    resource_type: ResourceType
    resource_id: UUID
    holder: str
    operation: str
    details: dict[str, Any] = Field(default_factory=dict)
    token: str
    status: LeaseStatus = LeaseStatus.ACTIVE
    expires_at: datetime
    created_at: datetime
    updated_at: datetime
    closed_at: Optional[datetime] = None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if the lease TTL has elapsed."""
        if now is None:
            now = datetime.now(timezone.utc)
        return now >= self.expires_at
