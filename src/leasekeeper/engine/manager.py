"""Lease manager - acquisition, release and cancellation of leases."""

import logging
from collections.abc import Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from leasekeeper.config import settings
from leasekeeper.db.repositories import LeaseRepository
from leasekeeper.engine.errors import Forbidden, LeaseConflict, LeaseNotFound
from leasekeeper.engine.reclaimer import ExpiryReclaimer
from leasekeeper.engine.registry import ResourceRegistry, default_registry
from leasekeeper.models import Lease, LeaseStatus, ResourceType
from leasekeeper.observability.metrics import metrics
from leasekeeper.utils.time import Clock, utc_now

logger = logging.getLogger(__name__)


class LeaseManager:
    """
    Grants and closes exclusive operation leases.

    One manager serves every resource kind; kind-specific rules live in the
    registry's strategies. The manager never waits for a busy resource: a
    second acquisition fails immediately with LeaseConflict.
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: ResourceRegistry | None = None,
        ttl_seconds: int | None = None,
        clock: Clock = utc_now,
    ):
        self.session = session
        self.registry = registry or default_registry()
        self.ttl_seconds = settings.bounded_ttl(ttl_seconds)
        self.clock = clock
        self.leases = LeaseRepository(session)
        self.reclaimer = ExpiryReclaimer(session, clock=clock)

    async def request(
        self,
        resource_type: ResourceType | str,
        resource_id: UUID,
        holder: str,
        operation: str,
        details: Mapping[str, Any] | None = None,
    ) -> Lease:
        """
        Acquire a lease on a resource for one operation.

        Raises:
            ResourceNotFound: The resource does not exist
            PreconditionFailed: The operation is not allowed right now
            LeaseConflict: Another active lease holds the resource
        """
        strategy = self.registry.get(resource_type)
        resource_type = strategy.resource_type

        normalized = await self.registry.check_precondition(
            self.session, resource_type, resource_id, operation, details
        )

        # A lapsed lease must not block the new holder
        await self.reclaimer.expire_stale(resource_type, resource_id)

        lease = await self.leases.insert_active(
            resource_type=resource_type,
            resource_id=resource_id,
            holder=holder,
            operation=operation,
            details=normalized,
            ttl_seconds=self.ttl_seconds,
            now=self.clock(),
        )
        if lease is None:
            metrics.inc_counter("leases.conflict")
            logger.warning(
                f"Lease conflict on {resource_type.value} {resource_id}: "
                f"{holder} requested {operation}"
            )
            raise LeaseConflict(resource_type.value, str(resource_id), operation)

        metrics.inc_counter("leases.requested")
        logger.info(
            f"Lease {lease.lease_id} granted to {holder} for {operation} on "
            f"{resource_type.value} {resource_id} (expires {lease.expires_at.isoformat()})"
        )
        return lease

    async def release(self, token: str, holder: str) -> Lease:
        """Give up a lease without mutating anything (``active -> completed``)."""
        lease = await self._close(token, holder, LeaseStatus.COMPLETED)
        metrics.inc_counter("leases.released")
        logger.info(f"Lease {lease.lease_id} released by {holder}")
        return lease

    async def cancel(self, token: str, holder: str) -> Lease:
        """Abandon a lease (``active -> cancelled``)."""
        lease = await self._close(token, holder, LeaseStatus.CANCELLED)
        metrics.inc_counter("leases.cancelled")
        logger.info(f"Lease {lease.lease_id} cancelled by {holder}")
        return lease

    async def get_active(self, resource_type: ResourceType | str, resource_id: UUID) -> Lease:
        """Return the live lease on a resource, expiring it first if stale."""
        resource_type = self.registry.get(resource_type).resource_type
        await self.reclaimer.expire_stale(resource_type, resource_id)

        lease = await self.leases.get_active(resource_type, resource_id)
        if lease is None:
            raise LeaseNotFound(f"No active lease on {resource_type.value} {resource_id}")
        return lease

    async def get(self, token: str) -> Lease:
        """Return a lease by token whatever its status."""
        lease = await self.leases.get_by_token(token)
        if lease is None:
            raise LeaseNotFound()

        if lease.status == LeaseStatus.ACTIVE and lease.is_expired(self.clock()):
            await self.reclaimer.expire_lease(lease)
            lease = await self.leases.get_by_token(token)
        return lease

    async def _close(self, token: str, holder: str, new_status: LeaseStatus) -> Lease:
        lease = await self.leases.get_by_token(token)
        if lease is None or lease.status != LeaseStatus.ACTIVE:
            raise LeaseNotFound()

        if lease.is_expired(self.clock()):
            await self.reclaimer.expire_lease(lease)
            raise LeaseNotFound("Lease has expired")

        if lease.holder != holder:
            raise Forbidden()

        # Compare-and-swap: a concurrent redeem/expiry wins
        if not await self.leases.transition(lease.lease_id, new_status, self.clock()):
            raise LeaseNotFound()

        return await self.leases.get_by_token(token)
