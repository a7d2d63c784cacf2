"""Expiry reclaimer - moves leases past their TTL to ``expired``."""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from leasekeeper.config import settings
from leasekeeper.db.repositories import LeaseRepository
from leasekeeper.models import Lease, LeaseStatus, ResourceType
from leasekeeper.observability.metrics import metrics
from leasekeeper.utils.time import Clock, utc_now

logger = logging.getLogger(__name__)


class ExpiryReclaimer:
    """
    Expire stale leases, lazily on read paths and in periodic sweeps.

    Only the lease row changes; guarded resources are never touched.
    """

    def __init__(self, session: AsyncSession, clock: Clock = utc_now):
        self.session = session
        self.clock = clock
        self.leases = LeaseRepository(session)

    async def expire_lease(self, lease: Lease) -> bool:
        """Flip one active lease to expired. False if it already left ``active``."""
        expired = await self.leases.transition(lease.lease_id, LeaseStatus.EXPIRED, self.clock())
        if expired:
            metrics.inc_counter("leases.expired")
            logger.info(
                f"Lease {lease.lease_id} on {lease.resource_type.value} {lease.resource_id} "
                f"expired (holder {lease.holder}, operation {lease.operation})"
            )
        return expired

    async def expire_stale(
        self,
        resource_type: ResourceType,
        resource_id: UUID,
    ) -> Lease | None:
        """Expire the resource's active lease if its TTL has elapsed; return it if so."""
        lease = await self.leases.get_active(resource_type, resource_id)
        if lease is None or not lease.is_expired(self.clock()):
            return None
        if not await self.expire_lease(lease):
            return None
        return lease

    async def sweep(self, batch_size: int | None = None) -> int:
        """Expire up to ``batch_size`` stale leases. Returns how many were expired."""
        stale = await self.leases.get_stale(
            now=self.clock(),
            limit=batch_size or settings.lease_sweep_batch_size,
        )
        count = 0
        for lease in stale:
            if await self.expire_lease(lease):
                count += 1
        return count
