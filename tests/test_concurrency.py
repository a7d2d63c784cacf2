"""
Concurrency tests: the active-lease index, not Python code, decides who wins.
"""

import asyncio

import pytest

from leasekeeper.db.repositories import LeaseRepository
from leasekeeper.engine import LeaseConflict, LeaseExpired, LeaseManager, MutationExecutor
from leasekeeper.models import LeaseStatus, ResourceType


async def _try_acquire(session_factory, resource_id, holder):
    async with session_factory() as session:
        try:
            lease = await LeaseManager(session).request(
                ResourceType.STOCK_ITEM, resource_id, holder, "sale", {"quantity": 1}
            )
        except LeaseConflict:
            await session.rollback()
            return None
        await session.commit()
        return lease


async def test_concurrent_acquisition_grants_one_lease(session_factory, seed):
    """Concurrent requests for one resource: exactly one succeeds, the rest conflict."""
    item = await seed.stock_item(quantity=10)
    holders = [f"clerk-{i}" for i in range(5)]

    results = await asyncio.gather(
        *(_try_acquire(session_factory, item.item_id, holder) for holder in holders)
    )

    granted = [lease for lease in results if lease is not None]
    assert len(granted) == 1, f"Expected exactly one lease, got {len(granted)}"

    async with session_factory() as session:
        history = await LeaseRepository(session).list_for_resource(
            ResourceType.STOCK_ITEM, item.item_id
        )
    active = [lease for lease in history if lease.status == LeaseStatus.ACTIVE]
    assert len(active) == 1
    assert active[0].lease_id == granted[0].lease_id


async def test_insert_active_returns_none_on_duplicate(session, seed):
    """The store itself refuses a second active lease for a resource."""
    item = await seed.stock_item()
    leases = LeaseRepository(session)

    first = await leases.insert_active(
        ResourceType.STOCK_ITEM, item.item_id, "alice", "sale", {"quantity": 1}, 300
    )
    second = await leases.insert_active(
        ResourceType.STOCK_ITEM, item.item_id, "bob", "sale", {"quantity": 1}, 300
    )

    assert first is not None
    assert second is None
    # The surrounding transaction is still usable after the lost insert
    assert (await leases.get_active(ResourceType.STOCK_ITEM, item.item_id)).holder == "alice"


async def test_transition_is_compare_and_swap(session, seed):
    item = await seed.stock_item()
    leases = LeaseRepository(session)
    lease = await leases.insert_active(
        ResourceType.STOCK_ITEM, item.item_id, "alice", "sale", {"quantity": 1}, 300
    )

    assert await leases.transition(lease.lease_id, LeaseStatus.COMPLETED) is True
    assert await leases.transition(lease.lease_id, LeaseStatus.EXPIRED) is False
    assert (await leases.get_by_token(lease.token)).status == LeaseStatus.COMPLETED


async def test_redeemed_token_cannot_be_redeemed_twice(session, seed):
    item = await seed.stock_item(quantity=10)
    lease = await LeaseManager(session).request(
        ResourceType.STOCK_ITEM, item.item_id, "alice", "sale", {"quantity": 2}
    )
    executor = MutationExecutor(session)

    await executor.redeem(lease.token, "alice", {"operation": "sale", "quantity": 2})

    with pytest.raises(LeaseExpired) as exc_info:
        await executor.redeem(lease.token, "alice", {"operation": "sale", "quantity": 2})
    assert exc_info.value.status == LeaseStatus.COMPLETED.value
