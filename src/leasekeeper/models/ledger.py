"""Ledger entry model - immutable record of one applied mutation."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from leasekeeper.models.enums import LedgerEntryType, LedgerStatus, ResourceType


class LedgerEntry(BaseModel):
    """Audit trail record written by a redemption."""

    entry_id: UUID
    reference: str
    resource_type: ResourceType
    resource_id: UUID
    lease_id: Optional[UUID] = None
    entry_type: LedgerEntryType
    stock_item_id: Optional[UUID] = None
    quantity: Optional[int] = None
    amount: Optional[Decimal] = None
    source: Optional[str] = None
    destination: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
    status: LedgerStatus = LedgerStatus.PENDING
    created_by: str
    created_at: datetime
    updated_at: datetime
