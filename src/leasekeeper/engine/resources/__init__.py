"""Built-in guarded resource kinds."""

from leasekeeper.engine.resources.base import OperationDetails, ResourceStrategy
from leasekeeper.engine.resources.document import FinancialDocumentStrategy
from leasekeeper.engine.resources.employee import EmployeeStrategy
from leasekeeper.engine.resources.purchase_order import PurchaseOrderStrategy
from leasekeeper.engine.resources.stock import StockItemStrategy

__all__ = [
    "EmployeeStrategy",
    "FinancialDocumentStrategy",
    "OperationDetails",
    "PurchaseOrderStrategy",
    "ResourceStrategy",
    "StockItemStrategy",
]
