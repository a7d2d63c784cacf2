"""LeaseKeeper enumerations."""

from enum import Enum


class ResourceType(str, Enum):
    """Kinds of guarded resources."""

    DOCUMENT = "document"
    EMPLOYEE = "employee"
    STOCK_ITEM = "stockItem"
    PURCHASE_ORDER = "purchaseOrder"


class LeaseStatus(str, Enum):
    """Lease lifecycle status."""

    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class StockOperation(str, Enum):
    SALE = "sale"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"


class PurchaseOrderOperation(str, Enum):
    RECEIVE = "receive"
    CANCEL = "cancel"
    APPROVE = "approve"


class DocumentOperation(str, Enum):
    PAYMENT = "payment"
    CANCELLATION = "cancellation"
    APPROVAL = "approval"


class EmployeeOperation(str, Enum):
    STATUS_CHANGE = "statusChange"
    ASSET_ASSIGNMENT = "assetAssignment"
    LEAVE_APPROVAL = "leaveApproval"


class LedgerEntryType(str, Enum):
    """Kinds of applied mutations recorded in the ledger."""

    STOCK_IN = "stock_in"
    STOCK_OUT = "stock_out"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"
    PAYMENT = "payment"
    STATUS_CHANGE = "status_change"


class LedgerStatus(str, Enum):
    """Ledger entry status."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REVERSED = "reversed"


class StockItemStatus(str, Enum):
    ACTIVE = "active"
    DISCONTINUED = "discontinued"
    DAMAGED = "damaged"
    LOST = "lost"
    STOLEN = "stolen"
    EXPIRED = "expired"
    RECALLED = "recalled"


class PurchaseOrderStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    RECEIVED = "received"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PurchaseOrderLineStatus(str, Enum):
    OPEN = "open"
    PARTIALLY_RECEIVED = "partially_received"
    RECEIVED = "received"


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"
    VOID = "void"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"


class EmployeeStatus(str, Enum):
    """Employee lifecycle status."""

    ACTIVE = "active"
    ON_LEAVE = "on_leave"
    SUSPENDED = "suspended"
    RESIGNED = "resigned"
    TERMINATED = "terminated"
    RETIRED = "retired"
    DECEASED = "deceased"

    @classmethod
    def requiring_reason(cls) -> set["EmployeeStatus"]:
        """Statuses that can only be set with a recorded reason."""
        return {cls.TERMINATED, cls.RETIRED, cls.DECEASED}

