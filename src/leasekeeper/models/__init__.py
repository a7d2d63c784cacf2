"""LeaseKeeper data models."""

from leasekeeper.models.enums import (
    DocumentOperation,
    DocumentStatus,
    EmployeeOperation,
    EmployeeStatus,
    LeaseStatus,
    LedgerEntryType,
    LedgerStatus,
    PaymentMethod,
    PurchaseOrderLineStatus,
    PurchaseOrderOperation,
    PurchaseOrderStatus,
    ResourceType,
    StockItemStatus,
    StockOperation,
)
from leasekeeper.models.lease import Lease
from leasekeeper.models.ledger import LedgerEntry
from leasekeeper.models.mutation import MutationResult
from leasekeeper.models.resources import (
    Employee,
    FinancialDocument,
    PurchaseOrder,
    PurchaseOrderLine,
    StockItem,
)

__all__ = [
    "DocumentOperation",
    "DocumentStatus",
    "Employee",
    "EmployeeOperation",
    "EmployeeStatus",
    "FinancialDocument",
    "Lease",
    "LeaseStatus",
    "LedgerEntry",
    "LedgerEntryType",
    "LedgerStatus",
    "MutationResult",
    "PaymentMethod",
    "PurchaseOrder",
    "PurchaseOrderLine",
    "PurchaseOrderLineStatus",
    "PurchaseOrderOperation",
    "PurchaseOrderStatus",
    "ResourceType",
    "StockItem",
    "StockItemStatus",
    "StockOperation",
]
