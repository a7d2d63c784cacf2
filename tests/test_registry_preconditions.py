"""
Resource registry tests: per-operation preconditions and detail normalization.
"""

from uuid import uuid4

import pytest

from leasekeeper.engine import PreconditionFailed, ResourceNotFound, default_registry
from leasekeeper.models import (
    DocumentStatus,
    PurchaseOrderStatus,
    ResourceType,
    StockItemStatus,
)


@pytest.fixture
def registry():
    return default_registry()


async def check(registry, session, resource_type, resource_id, operation, details=None):
    return await registry.check_precondition(
        session, resource_type, resource_id, operation, details or {}
    )


# ============================================================================
# Registry plumbing
# ============================================================================


async def test_default_registry_knows_all_kinds(registry):
    """All four guarded resource kinds are registered."""
    assert set(registry.resource_types) == set(ResourceType)


async def test_unknown_resource_is_not_found(registry, session):
    with pytest.raises(ResourceNotFound) as exc_info:
        await check(registry, session, ResourceType.STOCK_ITEM, uuid4(), "sale", {"quantity": 1})
    assert exc_info.value.code == "RESOURCE_NOT_FOUND"


async def test_unknown_resource_type_rejected(registry, session):
    with pytest.raises(PreconditionFailed):
        await check(registry, session, "warehouse", uuid4(), "sale")


async def test_unknown_operation_rejected(registry, session, seed):
    item = await seed.stock_item()
    with pytest.raises(PreconditionFailed, match="Unknown operation"):
        await check(registry, session, ResourceType.STOCK_ITEM, item.item_id, "payment")


# ============================================================================
# Stock items
# ============================================================================


async def test_sale_normalizes_quantity(registry, session, seed):
    item = await seed.stock_item(quantity=10)
    details = await check(
        registry, session, ResourceType.STOCK_ITEM, item.item_id, "sale", {"quantity": 3}
    )
    assert details == {"quantity": 3}


async def test_sale_requires_active_item(registry, session, seed):
    item = await seed.stock_item(status=StockItemStatus.DISCONTINUED)
    with pytest.raises(PreconditionFailed, match="discontinued"):
        await check(
            registry, session, ResourceType.STOCK_ITEM, item.item_id, "sale", {"quantity": 1}
        )


async def test_sale_cannot_exceed_available(registry, session, seed):
    item = await seed.stock_item(quantity=2)
    with pytest.raises(PreconditionFailed, match="Insufficient stock"):
        await check(
            registry, session, ResourceType.STOCK_ITEM, item.item_id, "sale", {"quantity": 3}
        )


async def test_sale_requires_positive_quantity(registry, session, seed):
    item = await seed.stock_item()
    with pytest.raises(PreconditionFailed, match="Invalid details"):
        await check(
            registry, session, ResourceType.STOCK_ITEM, item.item_id, "sale", {"quantity": 0}
        )


async def test_transfer_requires_destination(registry, session, seed):
    item = await seed.stock_item()
    with pytest.raises(PreconditionFailed, match="destination"):
        await check(
            registry, session, ResourceType.STOCK_ITEM, item.item_id, "transfer", {"quantity": 1}
        )


async def test_transfer_destination_must_differ(registry, session, seed):
    item = await seed.stock_item(location="main")
    with pytest.raises(PreconditionFailed, match="differ"):
        await check(
            registry,
            session,
            ResourceType.STOCK_ITEM,
            item.item_id,
            "transfer",
            {"quantity": 1, "destination": "main"},
        )


async def test_adjustment_requires_reason(registry, session, seed):
    item = await seed.stock_item()
    with pytest.raises(PreconditionFailed, match="reason"):
        await check(
            registry,
            session,
            ResourceType.STOCK_ITEM,
            item.item_id,
            "adjustment",
            {"quantityDelta": -1},
        )


async def test_adjustment_accepts_snake_case_and_stores_camel_case(registry, session, seed):
    item = await seed.stock_item(quantity=5)
    details = await check(
        registry,
        session,
        ResourceType.STOCK_ITEM,
        item.item_id,
        "adjustment",
        {"reason": "cycle count", "quantity_delta": -2},
    )
    assert details == {"reason": "cycle count", "quantityDelta": -2}


async def test_adjustment_rejects_zero_delta(registry, session, seed):
    item = await seed.stock_item()
    with pytest.raises(PreconditionFailed, match="nonzero"):
        await check(
            registry,
            session,
            ResourceType.STOCK_ITEM,
            item.item_id,
            "adjustment",
            {"reason": "count", "quantityDelta": 0},
        )


# ============================================================================
# Purchase orders
# ============================================================================


async def test_receive_requires_approved_order(registry, session, seed):
    item = await seed.stock_item()
    order = await seed.purchase_order([(item, 5)], status=PurchaseOrderStatus.PENDING)
    with pytest.raises(PreconditionFailed, match="approved"):
        await check(registry, session, ResourceType.PURCHASE_ORDER, order.order_id, "receive")


async def test_receive_item_must_be_on_order(registry, session, seed):
    item = await seed.stock_item()
    other = await seed.stock_item(sku="SKU-2")
    order = await seed.purchase_order([(item, 5)])
    with pytest.raises(PreconditionFailed, match="not an open line"):
        await check(
            registry,
            session,
            ResourceType.PURCHASE_ORDER,
            order.order_id,
            "receive",
            {"items": [{"stockItemId": str(other.item_id), "quantity": 1}]},
        )


async def test_receive_quantity_within_remaining(registry, session, seed):
    item = await seed.stock_item()
    order = await seed.purchase_order([(item, 5)])
    with pytest.raises(PreconditionFailed, match="only 5 outstanding"):
        await check(
            registry,
            session,
            ResourceType.PURCHASE_ORDER,
            order.order_id,
            "receive",
            {"items": [{"stockItemId": str(item.item_id), "quantity": 6}]},
        )


async def test_approve_requires_pending(registry, session, seed):
    item = await seed.stock_item()
    order = await seed.purchase_order([(item, 5)], status=PurchaseOrderStatus.DRAFT)
    with pytest.raises(PreconditionFailed, match="pending"):
        await check(registry, session, ResourceType.PURCHASE_ORDER, order.order_id, "approve")


async def test_cancel_rejected_for_closed_orders(registry, session, seed):
    item = await seed.stock_item()
    order = await seed.purchase_order([(item, 5)], status=PurchaseOrderStatus.CANCELLED)
    with pytest.raises(PreconditionFailed, match="cannot be cancelled"):
        await check(registry, session, ResourceType.PURCHASE_ORDER, order.order_id, "cancel")


# ============================================================================
# Financial documents
# ============================================================================


async def test_payment_normalizes_amount_and_method(registry, session, seed):
    document = await seed.document()
    details = await check(
        registry,
        session,
        ResourceType.DOCUMENT,
        document.document_id,
        "payment",
        {"amount": 40, "paymentMethod": "cash"},
    )
    assert details == {"amount": "40.00", "paymentMethod": "cash"}


async def test_payment_rejected_when_paid(registry, session, seed):
    document = await seed.document(status=DocumentStatus.PAID)
    with pytest.raises(PreconditionFailed, match="already paid"):
        await check(
            registry,
            session,
            ResourceType.DOCUMENT,
            document.document_id,
            "payment",
            {"amount": "10", "paymentMethod": "cash"},
        )


async def test_payment_requires_positive_amount(registry, session, seed):
    document = await seed.document()
    with pytest.raises(PreconditionFailed, match="amount"):
        await check(
            registry,
            session,
            ResourceType.DOCUMENT,
            document.document_id,
            "payment",
            {"amount": "0", "paymentMethod": "cash"},
        )


async def test_payment_rejects_amount_below_one_cent(registry, session, seed):
    document = await seed.document()
    with pytest.raises(PreconditionFailed, match="at least 0.01"):
        await check(
            registry,
            session,
            ResourceType.DOCUMENT,
            document.document_id,
            "payment",
            {"amount": "0.001", "paymentMethod": "cash"},
        )


@pytest.mark.parametrize(
    "status", [DocumentStatus.CANCELLED, DocumentStatus.VOID, DocumentStatus.REFUNDED]
)
async def test_payment_rejected_for_closed_documents(registry, session, seed, status):
    document = await seed.document(status=status)
    with pytest.raises(PreconditionFailed, match="cannot be paid"):
        await check(
            registry,
            session,
            ResourceType.DOCUMENT,
            document.document_id,
            "payment",
            {"amount": "10", "paymentMethod": "cash"},
        )


async def test_payment_method_must_be_known(registry, session, seed):
    document = await seed.document()
    with pytest.raises(PreconditionFailed, match="paymentMethod"):
        await check(
            registry,
            session,
            ResourceType.DOCUMENT,
            document.document_id,
            "payment",
            {"amount": "10", "paymentMethod": "barter"},
        )


async def test_cancellation_requires_reason_and_open_document(registry, session, seed):
    document = await seed.document()
    with pytest.raises(PreconditionFailed, match="reason"):
        await check(registry, session, ResourceType.DOCUMENT, document.document_id, "cancellation")

    paid = await seed.document(status=DocumentStatus.PAID, number="INV-0002")
    with pytest.raises(PreconditionFailed, match="cannot be cancelled"):
        await check(
            registry,
            session,
            ResourceType.DOCUMENT,
            paid.document_id,
            "cancellation",
            {"reason": "duplicate"},
        )


async def test_approval_requires_pending(registry, session, seed):
    document = await seed.document(status=DocumentStatus.DRAFT)
    with pytest.raises(PreconditionFailed, match="pending"):
        await check(registry, session, ResourceType.DOCUMENT, document.document_id, "approval")


# ============================================================================
# Employees
# ============================================================================


@pytest.mark.parametrize("new_status", ["terminated", "retired", "deceased"])
async def test_status_change_requires_reason_for_final_statuses(
    registry, session, seed, new_status
):
    employee = await seed.employee()
    with pytest.raises(PreconditionFailed, match="reason is required"):
        await check(
            registry,
            session,
            ResourceType.EMPLOYEE,
            employee.employee_id,
            "statusChange",
            {"newStatus": new_status},
        )


async def test_status_change_without_reason_for_leave(registry, session, seed):
    employee = await seed.employee()
    details = await check(
        registry,
        session,
        ResourceType.EMPLOYEE,
        employee.employee_id,
        "statusChange",
        {"newStatus": "on_leave"},
    )
    assert details == {"newStatus": "on_leave"}


async def test_status_change_rejects_unknown_status(registry, session, seed):
    employee = await seed.employee()
    with pytest.raises(PreconditionFailed, match="newStatus"):
        await check(
            registry,
            session,
            ResourceType.EMPLOYEE,
            employee.employee_id,
            "statusChange",
            {"newStatus": "promoted"},
        )


@pytest.mark.parametrize(
    "operation, field",
    [("assetAssignment", "assetId"), ("leaveApproval", "leaveRequestId")],
)
async def test_employee_operations_require_identifiers(registry, session, seed, operation, field):
    employee = await seed.employee()
    with pytest.raises(PreconditionFailed, match=field):
        await check(registry, session, ResourceType.EMPLOYEE, employee.employee_id, operation)
