"""Stock item strategy - sales, transfers and adjustments."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, PositiveInt, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from leasekeeper.db.repositories import StockItemRepository
from leasekeeper.engine.errors import PreconditionFailed
from leasekeeper.engine.resources.base import OperationDetails, ResourceStrategy
from leasekeeper.models import (
    Lease,
    LedgerEntry,
    LedgerEntryType,
    ResourceType,
    StockItem,
    StockItemStatus,
    StockOperation,
)


class SaleDetails(OperationDetails):
    match_fields = ("quantity",)

    quantity: PositiveInt


class TransferDetails(OperationDetails):
    match_fields = ("quantity",)

    quantity: PositiveInt
    destination: str = Field(..., min_length=1)


class AdjustmentDetails(OperationDetails):
    match_fields = ("quantityDelta",)

    reason: str = Field(..., min_length=1)
    quantity_delta: Optional[int] = None

    @field_validator("quantity_delta")
    @classmethod
    def validate_delta(cls, v: Optional[int]) -> Optional[int]:
        if v == 0:
            raise ValueError("quantityDelta must be nonzero")
        return v


class StockItemStrategy(ResourceStrategy):
    resource_type = ResourceType.STOCK_ITEM
    details_models = {
        StockOperation.SALE.value: SaleDetails,
        StockOperation.TRANSFER.value: TransferDetails,
        StockOperation.ADJUSTMENT.value: AdjustmentDetails,
    }

    async def load(self, session: AsyncSession, resource_id: UUID) -> StockItem | None:
        return await StockItemRepository(session).get(resource_id)

    async def check_precondition(
        self,
        session: AsyncSession,
        resource: StockItem,
        operation: str,
        details: OperationDetails,
    ) -> None:
        if operation == StockOperation.SALE:
            if resource.status != StockItemStatus.ACTIVE:
                raise PreconditionFailed(
                    f"Stock item {resource.sku} is {resource.status.value} and cannot be sold"
                )
            _require_available(resource, details.quantity)

        elif operation == StockOperation.TRANSFER:
            if details.destination == resource.location:
                raise PreconditionFailed(
                    f"Transfer destination must differ from current location {resource.location}"
                )
            _require_available(resource, details.quantity)

        elif operation == StockOperation.ADJUSTMENT:
            delta = details.quantity_delta
            if delta is not None and resource.quantity + delta < 0:
                raise PreconditionFailed(
                    f"Adjustment of {delta} would leave {resource.sku} below zero "
                    f"(on hand: {resource.quantity})"
                )

    async def apply(
        self,
        session: AsyncSession,
        lease: Lease,
        resource: StockItem,
        details: OperationDetails,
        now: datetime,
    ) -> list[LedgerEntry]:
        stock = StockItemRepository(session)

        if lease.operation == StockOperation.SALE:
            entry = await self.record(
                session,
                lease,
                LedgerEntryType.STOCK_OUT,
                now,
                stock_item_id=resource.item_id,
                quantity=details.quantity,
                source=resource.location,
            )
            if not await stock.adjust_quantity(resource.item_id, -details.quantity):
                raise PreconditionFailed(f"Insufficient stock for {resource.sku}")
            return [entry]

        if lease.operation == StockOperation.TRANSFER:
            target = await stock.get_by_sku(resource.sku, details.destination)
            if target is None:
                target = await stock.create(
                    sku=resource.sku,
                    name=resource.name,
                    location=details.destination,
                )
            entry = await self.record(
                session,
                lease,
                LedgerEntryType.TRANSFER,
                now,
                stock_item_id=resource.item_id,
                quantity=details.quantity,
                source=resource.location,
                destination=details.destination,
                details={"destinationItemId": str(target.item_id)},
            )
            if not await stock.adjust_quantity(resource.item_id, -details.quantity):
                raise PreconditionFailed(f"Insufficient stock for {resource.sku}")
            await stock.adjust_quantity(target.item_id, details.quantity)
            return [entry]

        # Adjustment
        if details.quantity_delta is None:
            raise PreconditionFailed("quantityDelta is required to redeem an adjustment")
        entry = await self.record(
            session,
            lease,
            LedgerEntryType.ADJUSTMENT,
            now,
            stock_item_id=resource.item_id,
            quantity=details.quantity_delta,
            source=resource.location,
            details={"reason": details.reason},
        )
        if not await stock.adjust_quantity(resource.item_id, details.quantity_delta):
            raise PreconditionFailed(
                f"Adjustment of {details.quantity_delta} would leave {resource.sku} below zero"
            )
        return [entry]


def _require_available(item: StockItem, quantity: int) -> None:
    if quantity > item.quantity:
        raise PreconditionFailed(
            f"Insufficient stock for {item.sku}: requested {quantity}, available {item.quantity}"
        )
