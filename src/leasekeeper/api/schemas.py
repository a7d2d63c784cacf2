"""API request/response schemas."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from leasekeeper.models import Lease, LeaseStatus, ResourceType


class CamelModel(BaseModel):
    """Wire models use camelCase; Python code may use either."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Leases
# ============================================================================


class LeaseRequest(CamelModel):
    """Acquire a lease."""

    resource_type: ResourceType = Field(..., description="Kind of guarded resource")
    resource_id: UUID = Field(..., description="Identifier of the guarded record")
    operation: str = Field(..., min_length=1, description="Operation to reserve")
    details: dict[str, Any] = Field(default_factory=dict, description="Operation details")
    ttl_seconds: Optional[int] = Field(
        None, ge=1, description="Lease TTL override (capped by server maximum)"
    )


class LeaseGrantResponse(CamelModel):
    """Lease granted to the caller."""

    token: str
    expires_at: datetime
    operation: str
    details: dict[str, Any]
    resource_type: ResourceType
    resource_id: UUID


class LeaseResponse(CamelModel):
    """Lease as seen by any caller (no token)."""

    lease_id: UUID
    resource_type: ResourceType
    resource_id: UUID
    holder: str
    operation: str
    details: dict[str, Any]
    status: LeaseStatus
    expires_at: datetime
    created_at: datetime
    closed_at: Optional[datetime] = None

    @classmethod
    def from_lease(cls, lease: Lease) -> "LeaseResponse":
        return cls.model_validate(lease.model_dump(exclude={"token", "updated_at"}))


class OkResponse(BaseModel):
    ok: bool = True


# ============================================================================
# Redemption
# ============================================================================


class RedeemRequest(BaseModel):
    """Mutation payload: the leased operation plus operation fields."""

    model_config = ConfigDict(extra="allow")

    operation: str = Field(..., min_length=1, description="Must equal the leased operation")


class LedgerEntryResponse(CamelModel):
    entry_id: UUID
    reference: str
    entry_type: str
    status: str
    stock_item_id: Optional[UUID] = None
    quantity: Optional[int] = None
    amount: Optional[str] = None
    source: Optional[str] = None
    destination: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_by: str
    created_at: datetime


class MutationResponse(CamelModel):
    lease: LeaseResponse
    ledger_entries: list[LedgerEntryResponse]
    resource: dict[str, Any]


# ============================================================================
# Health
# ============================================================================


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str
