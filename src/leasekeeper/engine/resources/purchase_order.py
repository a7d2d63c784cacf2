"""Purchase order strategy - approval, cancellation and goods receipt."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import PositiveInt, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from leasekeeper.db.repositories import PurchaseOrderRepository, StockItemRepository
from leasekeeper.engine.errors import PreconditionFailed
from leasekeeper.engine.resources.base import OperationDetails, ResourceStrategy
from leasekeeper.models import (
    Lease,
    LedgerEntry,
    LedgerEntryType,
    PurchaseOrder,
    PurchaseOrderLineStatus,
    PurchaseOrderOperation,
    PurchaseOrderStatus,
    ResourceType,
)


class ReceiptItem(OperationDetails):
    stock_item_id: UUID
    quantity: PositiveInt


class ReceiveDetails(OperationDetails):
    match_fields = ("items",)

    items: Optional[list[ReceiptItem]] = None

    @field_validator("items")
    @classmethod
    def validate_items(cls, v: Optional[list[ReceiptItem]]) -> Optional[list[ReceiptItem]]:
        if v is None:
            return v
        if not v:
            raise ValueError("items must not be empty")
        ids = [item.stock_item_id for item in v]
        if len(set(ids)) != len(ids):
            raise ValueError("each stock item may appear only once")
        return sorted(v, key=lambda item: str(item.stock_item_id))


class ApproveDetails(OperationDetails):
    pass


class CancelDetails(OperationDetails):
    reason: Optional[str] = None


# Orders in these states can no longer be cancelled
_CLOSED = {PurchaseOrderStatus.COMPLETED, PurchaseOrderStatus.CANCELLED}


class PurchaseOrderStrategy(ResourceStrategy):
    resource_type = ResourceType.PURCHASE_ORDER
    details_models = {
        PurchaseOrderOperation.RECEIVE.value: ReceiveDetails,
        PurchaseOrderOperation.CANCEL.value: CancelDetails,
        PurchaseOrderOperation.APPROVE.value: ApproveDetails,
    }

    async def load(self, session: AsyncSession, resource_id: UUID) -> PurchaseOrder | None:
        return await PurchaseOrderRepository(session).get(resource_id)

    async def check_precondition(
        self,
        session: AsyncSession,
        resource: PurchaseOrder,
        operation: str,
        details: OperationDetails,
    ) -> None:
        if operation == PurchaseOrderOperation.RECEIVE:
            _require_status(resource, PurchaseOrderStatus.APPROVED, "received")
            for item in details.items or []:
                line = resource.line_for(item.stock_item_id)
                if line is None or not line.is_open():
                    raise PreconditionFailed(
                        f"Stock item {item.stock_item_id} is not an open line "
                        f"on purchase order {resource.order_id}"
                    )
                if item.quantity > line.quantity_remaining:
                    raise PreconditionFailed(
                        f"Cannot receive {item.quantity} of stock item {item.stock_item_id}: "
                        f"only {line.quantity_remaining} outstanding"
                    )

        elif operation == PurchaseOrderOperation.APPROVE:
            _require_status(resource, PurchaseOrderStatus.PENDING, "approved")

        elif operation == PurchaseOrderOperation.CANCEL:
            if resource.status in _CLOSED:
                raise PreconditionFailed(
                    f"Purchase order is {resource.status.value} and cannot be cancelled"
                )

    async def apply(
        self,
        session: AsyncSession,
        lease: Lease,
        resource: PurchaseOrder,
        details: OperationDetails,
        now: datetime,
    ) -> list[LedgerEntry]:
        orders = PurchaseOrderRepository(session)

        if lease.operation == PurchaseOrderOperation.RECEIVE:
            return await self._receive(session, lease, resource, details, now)

        if lease.operation == PurchaseOrderOperation.APPROVE:
            entry = await self._status_entry(
                session, lease, resource, PurchaseOrderStatus.APPROVED, now
            )
            changed = await orders.set_status(
                resource.order_id,
                {PurchaseOrderStatus.PENDING},
                PurchaseOrderStatus.APPROVED,
            )
        else:
            entry = await self._status_entry(
                session,
                lease,
                resource,
                PurchaseOrderStatus.CANCELLED,
                now,
                details={"reason": details.reason} if details.reason else None,
            )
            changed = await orders.set_status(
                resource.order_id,
                set(PurchaseOrderStatus) - _CLOSED,
                PurchaseOrderStatus.CANCELLED,
                cancellation_reason=details.reason,
            )

        if not changed:
            raise PreconditionFailed("Purchase order status changed since it was read")
        return [entry]

    async def _receive(
        self,
        session: AsyncSession,
        lease: Lease,
        order: PurchaseOrder,
        details: ReceiveDetails,
        now: datetime,
    ) -> list[LedgerEntry]:
        """
        Receive goods against the order.

        Only the listed lines move; with no item list every open line is
        received in full. The order is marked received once all lines are.
        """
        orders = PurchaseOrderRepository(session)
        stock = StockItemRepository(session)

        items = details.items or [
            ReceiptItem(stock_item_id=line.stock_item_id, quantity=line.quantity_remaining)
            for line in order.lines
            if line.is_open()
        ]
        if not items:
            raise PreconditionFailed(f"Purchase order {order.order_id} has nothing left to receive")

        entries = []
        for item in items:
            line = order.line_for(item.stock_item_id)
            entries.append(
                await self.record(
                    session,
                    lease,
                    LedgerEntryType.STOCK_IN,
                    now,
                    stock_item_id=item.stock_item_id,
                    quantity=item.quantity,
                    source=order.supplier,
                    details={"lineId": str(line.line_id)},
                )
            )
            if not await stock.adjust_quantity(item.stock_item_id, item.quantity):
                raise PreconditionFailed(f"Stock item {item.stock_item_id} no longer exists")
            if not await orders.receive_line(line, item.quantity):
                raise PreconditionFailed(
                    f"Line for stock item {item.stock_item_id} changed since it was read"
                )

        refreshed = await orders.get(order.order_id)
        if all(line.status == PurchaseOrderLineStatus.RECEIVED for line in refreshed.lines):
            changed = await orders.set_status(
                order.order_id,
                {PurchaseOrderStatus.APPROVED},
                PurchaseOrderStatus.RECEIVED,
                received_at=now,
            )
        else:
            # Stays approved; the guard still catches a concurrent status change
            changed = await orders.set_status(
                order.order_id,
                {PurchaseOrderStatus.APPROVED},
                PurchaseOrderStatus.APPROVED,
            )
        if not changed:
            raise PreconditionFailed("Purchase order status changed since it was read")
        return entries

    async def _status_entry(
        self,
        session: AsyncSession,
        lease: Lease,
        order: PurchaseOrder,
        new_status: PurchaseOrderStatus,
        now: datetime,
        details: dict | None = None,
    ) -> LedgerEntry:
        return await self.record(
            session,
            lease,
            LedgerEntryType.STATUS_CHANGE,
            now,
            source=order.status.value,
            destination=new_status.value,
            details=details,
        )


def _require_status(order: PurchaseOrder, expected: PurchaseOrderStatus, action: str) -> None:
    if order.status != expected:
        raise PreconditionFailed(
            f"Purchase order must be {expected.value} to be {action} "
            f"(current status: {order.status.value})"
        )
