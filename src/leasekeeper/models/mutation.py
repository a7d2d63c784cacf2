"""Mutation result model - outcome of a redeemed lease."""

from typing import Any

from pydantic import BaseModel, Field

from leasekeeper.models.lease import Lease
from leasekeeper.models.ledger import LedgerEntry


class MutationResult(BaseModel):
    """Completed lease, the ledger entries it wrote, and the resource afterwards."""

    lease: Lease
    ledger_entries: list[LedgerEntry] = Field(default_factory=list)
    resource: dict[str, Any] = Field(default_factory=dict)
