"""SQLAlchemy table definitions."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TypeDecorator,
    Uuid,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leasekeeper.db.base import Base
from leasekeeper.models.enums import (
    DocumentStatus,
    EmployeeStatus,
    LeaseStatus,
    LedgerEntryType,
    LedgerStatus,
    PurchaseOrderLineStatus,
    PurchaseOrderStatus,
    ResourceType,
    StockItemStatus,
)

JSONType = JSON().with_variant(JSONB(), "postgresql")


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC timestamps on every backend (SQLite stores naive)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def _enum(enum_cls, name: str) -> Enum:
    """Persist enum values (not member names) so raw SQL predicates can use them."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class LeaseTable(Base):
    """Leases table - exclusive operation reservations."""

    __tablename__ = "leases"

    lease_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    resource_type: Mapped[ResourceType] = mapped_column(
        _enum(ResourceType, "resourcetype"), nullable=False
    )
    resource_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    holder: Mapped[str] = mapped_column(String(255), nullable=False)
    operation: Mapped[str] = mapped_column(String(50), nullable=False)
    details: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    token: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[LeaseStatus] = mapped_column(
        _enum(LeaseStatus, "leasestatus"), nullable=False, default=LeaseStatus.ACTIVE
    )
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        # At most one active lease per resource
        Index(
            "uq_leases_active_resource",
            "resource_type",
            "resource_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
        Index("uq_leases_token", "token", unique=True),
        # Index for expiry sweeps
        Index("idx_leases_status_expires", "status", "expires_at"),
        # Index for holder lookups
        Index("idx_leases_holder", "holder"),
    )


class LedgerEntryTable(Base):
    """Ledger entries table - immutable mutation records."""

    __tablename__ = "ledger_entries"

    entry_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    reference: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    resource_type: Mapped[ResourceType] = mapped_column(
        _enum(ResourceType, "resourcetype"), nullable=False
    )
    resource_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    lease_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("leases.lease_id"), nullable=True
    )
    entry_type: Mapped[LedgerEntryType] = mapped_column(
        _enum(LedgerEntryType, "ledgerentrytype"), nullable=False
    )
    stock_item_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    source: Mapped[str | None] = mapped_column(String(255), nullable=True)
    destination: Mapped[str | None] = mapped_column(String(255), nullable=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    status: Mapped[LedgerStatus] = mapped_column(
        _enum(LedgerStatus, "ledgerstatus"), nullable=False, default=LedgerStatus.PENDING
    )
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        Index("idx_ledger_resource", "resource_type", "resource_id", "created_at"),
        Index("idx_ledger_lease", "lease_id"),
        Index("idx_ledger_stock_item", "stock_item_id", "created_at"),
    )


class StockItemTable(Base):
    """Stock items table - quantity on hand per SKU and location."""

    __tablename__ = "stock_items"

    item_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    sku: Mapped[str] = mapped_column(String(64), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[StockItemStatus] = mapped_column(
        _enum(StockItemStatus, "stockitemstatus"), nullable=False, default=StockItemStatus.ACTIVE
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_stock_items_quantity_non_negative"),
        Index("uq_stock_items_sku_location", "sku", "location", unique=True),
    )


class PurchaseOrderTable(Base):
    """Purchase orders table."""

    __tablename__ = "purchase_orders"

    order_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    supplier: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[PurchaseOrderStatus] = mapped_column(
        _enum(PurchaseOrderStatus, "purchaseorderstatus"),
        nullable=False,
        default=PurchaseOrderStatus.DRAFT,
    )
    total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    received_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    lines: Mapped[list["PurchaseOrderLineTable"]] = relationship(
        "PurchaseOrderLineTable",
        back_populates="order",
        order_by="PurchaseOrderLineTable.position",
    )

    __table_args__ = (Index("idx_purchase_orders_status", "status", "created_at"),)


class PurchaseOrderLineTable(Base):
    """Purchase order lines table."""

    __tablename__ = "purchase_order_lines"

    line_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    order_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("purchase_orders.order_id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stock_item_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("stock_items.item_id"), nullable=False
    )
    quantity_ordered: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_received: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    status: Mapped[PurchaseOrderLineStatus] = mapped_column(
        _enum(PurchaseOrderLineStatus, "purchaseorderlinestatus"),
        nullable=False,
        default=PurchaseOrderLineStatus.OPEN,
    )

    order: Mapped[PurchaseOrderTable] = relationship("PurchaseOrderTable", back_populates="lines")

    __table_args__ = (
        CheckConstraint("quantity_ordered > 0", name="ck_po_lines_quantity_positive"),
        CheckConstraint(
            "quantity_received >= 0 AND quantity_received <= quantity_ordered",
            name="ck_po_lines_received_within_ordered",
        ),
        Index("uq_po_lines_order_item", "order_id", "stock_item_id", unique=True),
    )


class FinancialDocumentTable(Base):
    """Financial documents table - invoices and similar payables."""

    __tablename__ = "financial_documents"

    document_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    status: Mapped[DocumentStatus] = mapped_column(
        _enum(DocumentStatus, "documentstatus"), nullable=False, default=DocumentStatus.DRAFT
    )
    payment_method: Mapped[str | None] = mapped_column(String(32), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (
        CheckConstraint("amount_paid >= 0", name="ck_documents_amount_paid_non_negative"),
        Index("idx_documents_status", "status", "created_at"),
    )


class EmployeeTable(Base):
    """Employees table."""

    __tablename__ = "employees"

    employee_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[EmployeeStatus] = mapped_column(
        _enum(EmployeeStatus, "employeestatus"), nullable=False, default=EmployeeStatus.ACTIVE
    )
    status_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    assets: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    approved_leave_requests: Mapped[list[str]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    __table_args__ = (Index("idx_employees_status", "status"),)
