"""Database repositories for LeaseKeeper entities."""

import secrets
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leasekeeper.db.tables import (
    EmployeeTable,
    FinancialDocumentTable,
    LeaseTable,
    LedgerEntryTable,
    PurchaseOrderLineTable,
    PurchaseOrderTable,
    StockItemTable,
)
from leasekeeper.models import (
    DocumentStatus,
    Employee,
    EmployeeStatus,
    FinancialDocument,
    Lease,
    LeaseStatus,
    LedgerEntry,
    LedgerEntryType,
    LedgerStatus,
    PurchaseOrder,
    PurchaseOrderLine,
    PurchaseOrderLineStatus,
    PurchaseOrderStatus,
    ResourceType,
    StockItem,
    StockItemStatus,
)
from leasekeeper.utils.time import utc_now


class LeaseRepository:
    """
    Lease store.

    Uniqueness of the active lease per resource is owned by the database
    (partial unique index ``uq_leases_active_resource``), never by a
    read-then-write check in Python.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def insert_active(
        self,
        resource_type: ResourceType,
        resource_id: UUID,
        holder: str,
        operation: str,
        details: dict[str, Any],
        ttl_seconds: int,
        now: datetime | None = None,
    ) -> Lease | None:
        """
        Atomically insert a new active lease.

        Returns None when the resource already has an active lease. The
        insert runs in a savepoint so a lost race leaves the surrounding
        transaction usable.
        """
        now = now or utc_now()
        lease_row = LeaseTable(
            lease_id=uuid4(),
            resource_type=resource_type,
            resource_id=resource_id,
            holder=holder,
            operation=operation,
            details=details,
            token=secrets.token_urlsafe(32),
            status=LeaseStatus.ACTIVE,
            expires_at=now + timedelta(seconds=ttl_seconds),
            created_at=now,
            updated_at=now,
        )

        try:
            async with self.session.begin_nested():
                self.session.add(lease_row)
        except IntegrityError:
            return None

        return self._row_to_model(lease_row)

    async def get_by_token(self, token: str) -> Lease | None:
        """Get a lease by token, whatever its status."""
        result = await self.session.execute(
            select(LeaseTable)
            .where(LeaseTable.token == token)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    async def get_active(self, resource_type: ResourceType, resource_id: UUID) -> Lease | None:
        """Get the lease currently marked active for a resource (TTL not checked)."""
        result = await self.session.execute(
            select(LeaseTable)
            .where(
                LeaseTable.resource_type == resource_type,
                LeaseTable.resource_id == resource_id,
                LeaseTable.status == LeaseStatus.ACTIVE,
            )
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    async def list_for_resource(
        self,
        resource_type: ResourceType,
        resource_id: UUID,
        limit: int = 50,
    ) -> list[Lease]:
        """Lease history for a resource, newest first."""
        result = await self.session.execute(
            select(LeaseTable)
            .where(
                LeaseTable.resource_type == resource_type,
                LeaseTable.resource_id == resource_id,
            )
            .order_by(LeaseTable.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return [self._row_to_model(r) for r in result.scalars().all()]

    async def transition(
        self,
        lease_id: UUID,
        new_status: LeaseStatus,
        now: datetime | None = None,
    ) -> bool:
        """
        Move an active lease to a terminal status.

        Compare-and-swap on ``status = 'active'``: returns False if another
        actor already moved the lease out of ``active``.
        """
        now = now or utc_now()
        result = await self.session.execute(
            update(LeaseTable)
            .where(
                LeaseTable.lease_id == lease_id,
                LeaseTable.status == LeaseStatus.ACTIVE,
            )
            .values(status=new_status, updated_at=now, closed_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def get_stale(self, now: datetime | None = None, limit: int = 100) -> list[Lease]:
        """Get active leases whose TTL has elapsed."""
        now = now or utc_now()
        result = await self.session.execute(
            select(LeaseTable)
            .where(
                LeaseTable.status == LeaseStatus.ACTIVE,
                LeaseTable.expires_at <= now,
            )
            .order_by(LeaseTable.expires_at.asc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return [self._row_to_model(r) for r in result.scalars().all()]

    def _row_to_model(self, row: LeaseTable) -> Lease:
        """Convert database row to model."""
        return Lease(
            lease_id=row.lease_id,
            resource_type=row.resource_type,
            resource_id=row.resource_id,
            holder=row.holder,
            operation=row.operation,
            details=row.details or {},
            token=row.token,
            status=row.status,
            expires_at=row.expires_at,
            created_at=row.created_at,
            updated_at=row.updated_at,
            closed_at=row.closed_at,
        )


class LedgerRepository:
    """Repository for ledger entries."""

    _PREFIXES = {
        LedgerEntryType.STOCK_IN: "SI",
        LedgerEntryType.STOCK_OUT: "SO",
        LedgerEntryType.TRANSFER: "ST",
        LedgerEntryType.ADJUSTMENT: "SA",
        LedgerEntryType.PAYMENT: "PAY",
        LedgerEntryType.STATUS_CHANGE: "SC",
    }

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        resource_type: ResourceType,
        resource_id: UUID,
        entry_type: LedgerEntryType,
        created_by: str,
        lease_id: UUID | None = None,
        stock_item_id: UUID | None = None,
        quantity: int | None = None,
        amount: Decimal | None = None,
        source: str | None = None,
        destination: str | None = None,
        details: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> LedgerEntry:
        """Create a ledger entry in ``pending`` state."""
        now = now or utc_now()
        entry_row = LedgerEntryTable(
            entry_id=uuid4(),
            reference=self._make_reference(entry_type, now),
            resource_type=resource_type,
            resource_id=resource_id,
            lease_id=lease_id,
            entry_type=entry_type,
            stock_item_id=stock_item_id,
            quantity=quantity,
            amount=amount,
            source=source,
            destination=destination,
            details=details or {},
            status=LedgerStatus.PENDING,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        self.session.add(entry_row)
        await self.session.flush()
        return self._row_to_model(entry_row)

    async def mark(self, entry_ids: list[UUID], status: LedgerStatus) -> int:
        """Move pending entries to ``status``."""
        if not entry_ids:
            return 0

        result = await self.session.execute(
            update(LedgerEntryTable)
            .where(
                LedgerEntryTable.entry_id.in_(entry_ids),
                LedgerEntryTable.status == LedgerStatus.PENDING,
            )
            .values(status=status, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def list_for_lease(self, lease_id: UUID) -> list[LedgerEntry]:
        result = await self.session.execute(
            select(LedgerEntryTable)
            .where(LedgerEntryTable.lease_id == lease_id)
            .order_by(LedgerEntryTable.created_at.asc())
            .execution_options(populate_existing=True)
        )
        return [self._row_to_model(r) for r in result.scalars().all()]

    async def list_for_resource(
        self,
        resource_type: ResourceType,
        resource_id: UUID,
        limit: int = 100,
    ) -> list[LedgerEntry]:
        result = await self.session.execute(
            select(LedgerEntryTable)
            .where(
                LedgerEntryTable.resource_type == resource_type,
                LedgerEntryTable.resource_id == resource_id,
            )
            .order_by(LedgerEntryTable.created_at.asc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return [self._row_to_model(r) for r in result.scalars().all()]

    def _make_reference(self, entry_type: LedgerEntryType, now: datetime) -> str:
        prefix = self._PREFIXES[entry_type]
        return f"{prefix}-{now:%y%m}-{uuid4().hex[:10].upper()}"

    def _row_to_model(self, row: LedgerEntryTable) -> LedgerEntry:
        return LedgerEntry(
            entry_id=row.entry_id,
            reference=row.reference,
            resource_type=row.resource_type,
            resource_id=row.resource_id,
            lease_id=row.lease_id,
            entry_type=row.entry_type,
            stock_item_id=row.stock_item_id,
            quantity=row.quantity,
            amount=row.amount,
            source=row.source,
            destination=row.destination,
            details=row.details or {},
            status=row.status,
            created_by=row.created_by,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class StockItemRepository:
    """Repository for stock items."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        sku: str,
        name: str,
        location: str,
        quantity: int = 0,
        status: StockItemStatus = StockItemStatus.ACTIVE,
    ) -> StockItem:
        now = utc_now()
        item_row = StockItemTable(
            item_id=uuid4(),
            sku=sku,
            name=name,
            location=location,
            quantity=quantity,
            status=status,
            created_at=now,
            updated_at=now,
        )
        self.session.add(item_row)
        await self.session.flush()
        return self._row_to_model(item_row)

    async def get(self, item_id: UUID) -> StockItem | None:
        result = await self.session.execute(
            select(StockItemTable)
            .where(StockItemTable.item_id == item_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    async def get_by_sku(self, sku: str, location: str) -> StockItem | None:
        result = await self.session.execute(
            select(StockItemTable)
            .where(StockItemTable.sku == sku, StockItemTable.location == location)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    async def adjust_quantity(self, item_id: UUID, delta: int) -> bool:
        """
        Apply a quantity delta.

        Decrements are conditional on enough stock being on hand; returns
        False (and changes nothing) when the item would go negative.
        """
        query = update(StockItemTable).where(StockItemTable.item_id == item_id)
        if delta < 0:
            query = query.where(StockItemTable.quantity >= -delta)

        result = await self.session.execute(
            query.values(quantity=StockItemTable.quantity + delta, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _row_to_model(self, row: StockItemTable) -> StockItem:
        return StockItem(
            item_id=row.item_id,
            sku=row.sku,
            name=row.name,
            location=row.location,
            quantity=row.quantity,
            status=row.status,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class PurchaseOrderRepository:
    """Repository for purchase orders and their lines."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        supplier: str,
        lines: list[dict[str, Any]],
        status: PurchaseOrderStatus = PurchaseOrderStatus.DRAFT,
    ) -> PurchaseOrder:
        """
        Create a purchase order.

        Each line is a mapping with ``stock_item_id``, ``quantity`` and an
        optional ``unit_price``.
        """
        now = utc_now()
        order_id = uuid4()
        total = Decimal("0")
        line_rows = []
        for position, line in enumerate(lines):
            unit_price = Decimal(str(line.get("unit_price", "0")))
            total += unit_price * line["quantity"]
            line_rows.append(
                PurchaseOrderLineTable(
                    line_id=uuid4(),
                    order_id=order_id,
                    position=position,
                    stock_item_id=line["stock_item_id"],
                    quantity_ordered=line["quantity"],
                    quantity_received=0,
                    unit_price=unit_price,
                    status=PurchaseOrderLineStatus.OPEN,
                )
            )

        order_row = PurchaseOrderTable(
            order_id=order_id,
            supplier=supplier,
            status=status,
            total=total,
            created_at=now,
            updated_at=now,
        )
        self.session.add(order_row)
        self.session.add_all(line_rows)
        await self.session.flush()
        return await self.get(order_id)

    async def get(self, order_id: UUID) -> PurchaseOrder | None:
        result = await self.session.execute(
            select(PurchaseOrderTable)
            .where(PurchaseOrderTable.order_id == order_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if not row:
            return None

        lines_result = await self.session.execute(
            select(PurchaseOrderLineTable)
            .where(PurchaseOrderLineTable.order_id == order_id)
            .order_by(PurchaseOrderLineTable.position)
            .execution_options(populate_existing=True)
        )
        return self._row_to_model(row, list(lines_result.scalars().all()))

    async def set_status(
        self,
        order_id: UUID,
        expected: set[PurchaseOrderStatus],
        new_status: PurchaseOrderStatus,
        **values: Any,
    ) -> bool:
        """Conditionally move an order to ``new_status`` from one of ``expected``."""
        result = await self.session.execute(
            update(PurchaseOrderTable)
            .where(
                PurchaseOrderTable.order_id == order_id,
                PurchaseOrderTable.status.in_(list(expected)),
            )
            .values(status=new_status, updated_at=utc_now(), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def receive_line(self, line: PurchaseOrderLine, quantity: int) -> bool:
        """
        Add ``quantity`` to a line's received count.

        Compare-and-swap on the received count read with ``line``; returns
        False when the line changed underneath or would exceed the ordered
        quantity.
        """
        received = line.quantity_received + quantity
        if quantity <= 0 or received > line.quantity_ordered:
            return False

        status = (
            PurchaseOrderLineStatus.RECEIVED
            if received == line.quantity_ordered
            else PurchaseOrderLineStatus.PARTIALLY_RECEIVED
        )
        result = await self.session.execute(
            update(PurchaseOrderLineTable)
            .where(
                PurchaseOrderLineTable.line_id == line.line_id,
                PurchaseOrderLineTable.quantity_received == line.quantity_received,
            )
            .values(quantity_received=received, status=status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _row_to_model(
        self,
        row: PurchaseOrderTable,
        line_rows: list[PurchaseOrderLineTable],
    ) -> PurchaseOrder:
        return PurchaseOrder(
            order_id=row.order_id,
            supplier=row.supplier,
            status=row.status,
            total=row.total,
            lines=[
                PurchaseOrderLine(
                    line_id=line.line_id,
                    order_id=line.order_id,
                    stock_item_id=line.stock_item_id,
                    quantity_ordered=line.quantity_ordered,
                    quantity_received=line.quantity_received,
                    unit_price=line.unit_price,
                    status=line.status,
                )
                for line in line_rows
            ],
            received_at=row.received_at,
            cancellation_reason=row.cancellation_reason,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class FinancialDocumentRepository:
    """Repository for financial documents."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        number: str,
        total: Decimal,
        status: DocumentStatus = DocumentStatus.DRAFT,
    ) -> FinancialDocument:
        now = utc_now()
        document_row = FinancialDocumentTable(
            document_id=uuid4(),
            number=number,
            total=total,
            amount_paid=Decimal("0"),
            status=status,
            created_at=now,
            updated_at=now,
        )
        self.session.add(document_row)
        await self.session.flush()
        return self._row_to_model(document_row)

    async def get(self, document_id: UUID) -> FinancialDocument | None:
        result = await self.session.execute(
            select(FinancialDocumentTable)
            .where(FinancialDocumentTable.document_id == document_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    async def update_from(
        self,
        document: FinancialDocument,
        **values: Any,
    ) -> bool:
        """Update a document, guarded on the status and paid amount it was read with."""
        result = await self.session.execute(
            update(FinancialDocumentTable)
            .where(
                FinancialDocumentTable.document_id == document.document_id,
                FinancialDocumentTable.status == document.status,
                FinancialDocumentTable.amount_paid == document.amount_paid,
            )
            .values(updated_at=utc_now(), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _row_to_model(self, row: FinancialDocumentTable) -> FinancialDocument:
        return FinancialDocument(
            document_id=row.document_id,
            number=row.number,
            total=row.total,
            amount_paid=row.amount_paid,
            status=row.status,
            payment_method=row.payment_method,
            paid_at=row.paid_at,
            approved_by=row.approved_by,
            approved_at=row.approved_at,
            cancellation_reason=row.cancellation_reason,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class EmployeeRepository:
    """Repository for employees."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        name: str,
        status: EmployeeStatus = EmployeeStatus.ACTIVE,
    ) -> Employee:
        now = utc_now()
        employee_row = EmployeeTable(
            employee_id=uuid4(),
            name=name,
            status=status,
            assets=[],
            approved_leave_requests=[],
            created_at=now,
            updated_at=now,
        )
        self.session.add(employee_row)
        await self.session.flush()
        return self._row_to_model(employee_row)

    async def get(self, employee_id: UUID) -> Employee | None:
        result = await self.session.execute(
            select(EmployeeTable)
            .where(EmployeeTable.employee_id == employee_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return self._row_to_model(row) if row else None

    async def update_from(self, employee: Employee, **values: Any) -> bool:
        """Update an employee, guarded on the status it was read with."""
        result = await self.session.execute(
            update(EmployeeTable)
            .where(
                EmployeeTable.employee_id == employee.employee_id,
                EmployeeTable.status == employee.status,
            )
            .values(updated_at=utc_now(), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def _row_to_model(self, row: EmployeeTable) -> Employee:
        return Employee(
            employee_id=row.employee_id,
            name=row.name,
            status=row.status,
            status_reason=row.status_reason,
            assets=list(row.assets or []),
            approved_leave_requests=list(row.approved_leave_requests or []),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
