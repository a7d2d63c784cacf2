"""Guarded resource models - the business records a lease can protect."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from leasekeeper.models.enums import (
    DocumentStatus,
    EmployeeStatus,
    PurchaseOrderLineStatus,
    PurchaseOrderStatus,
    StockItemStatus,
)


class StockItem(BaseModel):
    """Inventory holding of one SKU at one location."""

    item_id: UUID
    sku: str
    name: str
    location: str
    quantity: int = 0
    status: StockItemStatus = StockItemStatus.ACTIVE
    created_at: datetime
    updated_at: datetime


class PurchaseOrderLine(BaseModel):
    """One ordered stock item on a purchase order."""

    line_id: UUID
    order_id: UUID
    stock_item_id: UUID
    quantity_ordered: int
    quantity_received: int = 0
    unit_price: Decimal = Decimal("0")
    status: PurchaseOrderLineStatus = PurchaseOrderLineStatus.OPEN

    @property
    def quantity_remaining(self) -> int:
        return self.quantity_ordered - self.quantity_received

    def is_open(self) -> bool:
        return self.status != PurchaseOrderLineStatus.RECEIVED


class PurchaseOrder(BaseModel):
    """Purchase order placed with a supplier."""

    order_id: UUID
    supplier: str
    status: PurchaseOrderStatus = PurchaseOrderStatus.DRAFT
    total: Decimal = Decimal("0")
    lines: list[PurchaseOrderLine] = Field(default_factory=list)
    received_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    def line_for(self, stock_item_id: UUID) -> Optional[PurchaseOrderLine]:
        for line in self.lines:
            if line.stock_item_id == stock_item_id:
                return line
        return None


class FinancialDocument(BaseModel):
    """Invoice-like financial document."""

    document_id: UUID
    number: str
    total: Decimal
    amount_paid: Decimal = Decimal("0")
    status: DocumentStatus = DocumentStatus.DRAFT
    payment_method: Optional[str] = None
    paid_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @property
    def balance_due(self) -> Decimal:
        return self.total - self.amount_paid


class Employee(BaseModel):
    """Employee record."""

    employee_id: UUID
    name: str
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    status_reason: Optional[str] = None
    assets: list[str] = Field(default_factory=list)
    approved_leave_requests: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
