"""LeaseKeeper database layer."""

from leasekeeper.db.base import Base, build_engine, get_session, init_db
from leasekeeper.db.tables import (
    EmployeeTable,
    FinancialDocumentTable,
    LeaseTable,
    LedgerEntryTable,
    PurchaseOrderLineTable,
    PurchaseOrderTable,
    StockItemTable,
)

__all__ = [
    "Base",
    "build_engine",
    "get_session",
    "init_db",
    "EmployeeTable",
    "FinancialDocumentTable",
    "LeaseTable",
    "LedgerEntryTable",
    "PurchaseOrderLineTable",
    "PurchaseOrderTable",
    "StockItemTable",
]
