"""
Atomicity tests: a failed redemption leaves no trace.
"""

import pytest

from leasekeeper.db.repositories import (
    LeaseRepository,
    LedgerRepository,
    PurchaseOrderRepository,
    StockItemRepository,
)
from leasekeeper.engine import (
    LeaseManager,
    MismatchedOperation,
    MutationExecutor,
    PreconditionFailed,
)
from leasekeeper.models import (
    LeaseStatus,
    PurchaseOrderLineStatus,
    PurchaseOrderStatus,
    ResourceType,
)


async def test_failure_after_ledger_write_rolls_back_everything(session, seed, monkeypatch):
    item = await seed.stock_item(quantity=10)
    lease = await LeaseManager(session).request(
        ResourceType.STOCK_ITEM, item.item_id, "alice", "sale", {"quantity": 4}
    )

    async def broken_mark(self, entry_ids, status):
        raise RuntimeError("ledger unavailable")

    monkeypatch.setattr(LedgerRepository, "mark", broken_mark)

    with pytest.raises(RuntimeError, match="ledger unavailable"):
        await MutationExecutor(session).redeem(
            lease.token, "alice", {"operation": "sale", "quantity": 4}
        )

    assert (await StockItemRepository(session).get(item.item_id)).quantity == 10
    assert await LedgerRepository(session).list_for_lease(lease.lease_id) == []
    stored = await LeaseRepository(session).get_by_token(lease.token)
    assert stored.status == LeaseStatus.ACTIVE


async def test_failed_line_rolls_back_earlier_lines(session, seed, monkeypatch):
    bolts = await seed.stock_item(sku="BOLT", quantity=0)
    nuts = await seed.stock_item(sku="NUT", quantity=0)
    order = await seed.purchase_order([(bolts, 10), (nuts, 5)])

    lease = await LeaseManager(session).request(
        ResourceType.PURCHASE_ORDER, order.order_id, "alice", "receive"
    )

    original = PurchaseOrderRepository.receive_line
    calls = []

    async def flaky_receive_line(self, line, quantity):
        calls.append(line.line_id)
        if len(calls) == 2:
            return False
        return await original(self, line, quantity)

    monkeypatch.setattr(PurchaseOrderRepository, "receive_line", flaky_receive_line)

    with pytest.raises(PreconditionFailed, match="changed since it was read"):
        await MutationExecutor(session).redeem(lease.token, "alice", {"operation": "receive"})

    assert len(calls) == 2
    refreshed = await PurchaseOrderRepository(session).get(order.order_id)
    assert refreshed.status == PurchaseOrderStatus.APPROVED
    assert all(line.status == PurchaseOrderLineStatus.OPEN for line in refreshed.lines)
    assert all(line.quantity_received == 0 for line in refreshed.lines)

    stock = StockItemRepository(session)
    assert (await stock.get(bolts.item_id)).quantity == 0
    assert (await stock.get(nuts.item_id)).quantity == 0
    assert await LedgerRepository(session).list_for_resource(
        ResourceType.PURCHASE_ORDER, order.order_id
    ) == []

    stored = await LeaseRepository(session).get_by_token(lease.token)
    assert stored.status == LeaseStatus.ACTIVE


async def test_lease_still_redeemable_after_failed_attempt(session, seed):
    document = await seed.document(total="20.00")
    lease = await LeaseManager(session).request(
        ResourceType.DOCUMENT,
        document.document_id,
        "alice",
        "payment",
        {"amount": "20", "paymentMethod": "cash"},
    )
    executor = MutationExecutor(session)

    with pytest.raises(MismatchedOperation):
        await executor.redeem(lease.token, "alice", {"operation": "payment", "amount": "19"})

    result = await executor.redeem(lease.token, "alice", {"operation": "payment", "amount": "20"})
    assert result.lease.status == LeaseStatus.COMPLETED
    assert result.resource["status"] == "paid"
