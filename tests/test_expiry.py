"""
Expiry tests: lazy expiry on read paths and the periodic sweep.
"""

import pytest

from leasekeeper.db.repositories import LeaseRepository, LedgerRepository, StockItemRepository
from leasekeeper.engine import (
    ExpiryReclaimer,
    LeaseExpired,
    LeaseManager,
    LeaseNotFound,
    MutationExecutor,
)
from leasekeeper.models import LeaseStatus, ResourceType
from leasekeeper.tasks.sweep import run_sweep_once


async def test_expired_lease_cannot_be_redeemed(session, seed, clock):
    """Scenario C: past its TTL a lease fails redemption even without a sweep."""
    item = await seed.stock_item(quantity=10)
    manager = LeaseManager(session, clock=clock)
    lease = await manager.request(
        ResourceType.STOCK_ITEM, item.item_id, "alice", "sale", {"quantity": 3}
    )

    clock.advance(manager.ttl_seconds + 1)

    with pytest.raises(LeaseExpired):
        await MutationExecutor(session, clock=clock).redeem(
            lease.token, "alice", {"operation": "sale", "quantity": 3}
        )

    stored = await LeaseRepository(session).get_by_token(lease.token)
    assert stored.status == LeaseStatus.EXPIRED, "Lazy expiry should persist the flip"
    assert (await StockItemRepository(session).get(item.item_id)).quantity == 10
    assert await LedgerRepository(session).list_for_lease(lease.lease_id) == []


async def test_lease_redeemable_just_before_expiry(session, seed, clock):
    item = await seed.stock_item(quantity=10)
    manager = LeaseManager(session, clock=clock)
    lease = await manager.request(
        ResourceType.STOCK_ITEM, item.item_id, "alice", "sale", {"quantity": 3}
    )

    clock.advance(manager.ttl_seconds - 1)

    result = await MutationExecutor(session, clock=clock).redeem(
        lease.token, "alice", {"operation": "sale", "quantity": 3}
    )
    assert result.lease.status == LeaseStatus.COMPLETED


async def test_stale_lease_does_not_block_new_holder(session, seed, clock):
    item = await seed.stock_item()
    manager = LeaseManager(session, clock=clock)
    stale = await manager.request(
        ResourceType.STOCK_ITEM, item.item_id, "alice", "sale", {"quantity": 1}
    )

    clock.advance(manager.ttl_seconds)
    fresh = await manager.request(
        ResourceType.STOCK_ITEM, item.item_id, "bob", "sale", {"quantity": 1}
    )

    assert fresh.holder == "bob"
    assert (await manager.get(stale.token)).status == LeaseStatus.EXPIRED


async def test_get_active_expires_stale_lease(session, seed, clock):
    document = await seed.document()
    manager = LeaseManager(session, clock=clock)
    lease = await manager.request(ResourceType.DOCUMENT, document.document_id, "alice", "approval")

    clock.advance(manager.ttl_seconds + 60)

    with pytest.raises(LeaseNotFound):
        await manager.get_active(ResourceType.DOCUMENT, document.document_id)
    assert (await manager.get(lease.token)).status == LeaseStatus.EXPIRED


async def test_release_of_stale_lease_is_not_found(session, seed, clock):
    document = await seed.document()
    manager = LeaseManager(session, clock=clock)
    lease = await manager.request(ResourceType.DOCUMENT, document.document_id, "alice", "approval")

    clock.advance(manager.ttl_seconds + 1)

    with pytest.raises(LeaseNotFound):
        await manager.release(lease.token, "alice")
    assert (await manager.get(lease.token)).status == LeaseStatus.EXPIRED


async def test_get_flips_stale_lease(session, seed, clock):
    document = await seed.document()
    manager = LeaseManager(session, clock=clock)
    lease = await manager.request(ResourceType.DOCUMENT, document.document_id, "alice", "approval")

    assert (await manager.get(lease.token)).status == LeaseStatus.ACTIVE
    clock.advance(manager.ttl_seconds)
    assert (await manager.get(lease.token)).status == LeaseStatus.EXPIRED


async def test_sweep_expires_only_stale_leases(session, seed, clock):
    old_item = await seed.stock_item(sku="OLD")
    new_item = await seed.stock_item(sku="NEW")
    manager = LeaseManager(session, clock=clock)

    old = await manager.request(ResourceType.STOCK_ITEM, old_item.item_id, "alice", "sale", {"quantity": 1})
    clock.advance(manager.ttl_seconds - 10)
    new = await manager.request(ResourceType.STOCK_ITEM, new_item.item_id, "bob", "sale", {"quantity": 1})
    clock.advance(20)

    expired = await ExpiryReclaimer(session, clock=clock).sweep(batch_size=10)

    assert expired == 1
    leases = LeaseRepository(session)
    assert (await leases.get_by_token(old.token)).status == LeaseStatus.EXPIRED
    assert (await leases.get_by_token(new.token)).status == LeaseStatus.ACTIVE


async def test_sweep_respects_batch_size(session, seed, clock):
    manager = LeaseManager(session, clock=clock)
    for i in range(3):
        item = await seed.stock_item(sku=f"SKU-{i}")
        await manager.request(ResourceType.STOCK_ITEM, item.item_id, "alice", "sale", {"quantity": 1})

    clock.advance(manager.ttl_seconds + 1)
    reclaimer = ExpiryReclaimer(session, clock=clock)

    assert await reclaimer.sweep(batch_size=2) == 2
    assert await reclaimer.sweep(batch_size=2) == 1
    assert await reclaimer.sweep(batch_size=2) == 0


async def test_sweep_never_touches_closed_leases(session, seed, clock):
    item = await seed.stock_item()
    manager = LeaseManager(session, clock=clock)
    lease = await manager.request(ResourceType.STOCK_ITEM, item.item_id, "alice", "sale", {"quantity": 1})
    await manager.cancel(lease.token, "alice")

    clock.advance(manager.ttl_seconds * 2)

    assert await ExpiryReclaimer(session, clock=clock).sweep() == 0
    assert (await manager.get(lease.token)).status == LeaseStatus.CANCELLED


async def test_background_sweep_pass_commits(session_factory, seed):
    """One sweep pass runs in its own committed transaction."""
    item = await seed.stock_item()
    async with session_factory() as setup:
        await LeaseRepository(setup).insert_active(
            ResourceType.STOCK_ITEM, item.item_id, "alice", "sale", {"quantity": 1}, ttl_seconds=-1
        )
        await setup.commit()

    assert await run_sweep_once() == 1

    async with session_factory() as check:
        assert await LeaseRepository(check).get_active(ResourceType.STOCK_ITEM, item.item_id) is None
