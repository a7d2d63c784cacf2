"""Mutation executor - redeems a lease by applying its mutation atomically."""

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from leasekeeper.db.repositories import LeaseRepository, LedgerRepository
from leasekeeper.engine.errors import (
    Forbidden,
    LeaseExpired,
    LeaseKeeperError,
    LeaseNotFound,
    MismatchedOperation,
    ResourceNotFound,
)
from leasekeeper.engine.reclaimer import ExpiryReclaimer
from leasekeeper.engine.registry import ResourceRegistry, default_registry
from leasekeeper.models import Lease, LeaseStatus, LedgerStatus, MutationResult
from leasekeeper.observability.metrics import metrics
from leasekeeper.utils.time import Clock, utc_now

logger = logging.getLogger(__name__)


class MutationExecutor:
    """Validates a lease token and applies the leased mutation in one savepoint."""

    def __init__(
        self,
        session: AsyncSession,
        registry: ResourceRegistry | None = None,
        clock: Clock = utc_now,
    ):
        self.session = session
        self.registry = registry or default_registry()
        self.clock = clock
        self.leases = LeaseRepository(session)
        self.ledger = LedgerRepository(session)
        self.reclaimer = ExpiryReclaimer(session, clock=clock)

    async def redeem(self, token: str, holder: str, payload: Mapping[str, Any]) -> MutationResult:
        """
        Apply the leased mutation and complete the lease.

        Ledger entries are written pending, the aggregate is updated, the
        entries are completed and the lease flips to ``completed``, all in one
        savepoint. On any failure nothing is written and the lease stays
        active (unless it had already lapsed).

        Raises:
            LeaseNotFound: Unknown token
            LeaseExpired: Lease is closed or past its TTL
            Forbidden: Caller is not the holder
            MismatchedOperation: Payload does not match the leased operation
            PreconditionFailed: Business rule rejected the mutation
        """
        with metrics.timer("redemption.latency_ms"):
            try:
                lease = await self._validate(token, holder, payload)
                strategy = self.registry.get(lease.resource_type)
                details = strategy.redemption_details(lease, payload)
                now = self.clock()

                # ATOMIC BLOCK - all or nothing
                async with self.session.begin_nested():  # SAVEPOINT
                    resource = await strategy.load(self.session, lease.resource_id)
                    if resource is None:
                        raise ResourceNotFound(lease.resource_type.value, str(lease.resource_id))

                    # State may have moved since acquisition
                    await strategy.check_precondition(
                        self.session, resource, lease.operation, details
                    )

                    entries = await strategy.apply(self.session, lease, resource, details, now)
                    await self.ledger.mark([e.entry_id for e in entries], LedgerStatus.COMPLETED)

                    if not await self.leases.transition(lease.lease_id, LeaseStatus.COMPLETED, now):
                        raise LeaseExpired(token, "no longer active")

            except LeaseKeeperError as e:
                metrics.inc_counter("redemptions.failed")
                logger.warning(f"Redemption rejected ({e.code}): {e.message}")
                raise
            except Exception as e:
                metrics.inc_counter("redemptions.failed")
                logger.error(f"Redemption failed for lease token: {e}", exc_info=True)
                raise

        metrics.inc_counter("redemptions.completed")
        logger.info(
            f"Lease {lease.lease_id} redeemed by {holder}: {lease.operation} on "
            f"{lease.resource_type.value} {lease.resource_id} ({len(entries)} ledger entries)"
        )

        return MutationResult(
            lease=await self.leases.get_by_token(token),
            ledger_entries=await self.ledger.list_for_lease(lease.lease_id),
            resource=await strategy.snapshot(self.session, lease.resource_id),
        )

    async def _validate(self, token: str, holder: str, payload: Mapping[str, Any]) -> Lease:
        """Checks that need no write access, in reporting order."""
        lease = await self.leases.get_by_token(token)
        if lease is None:
            raise LeaseNotFound()

        if lease.status != LeaseStatus.ACTIVE:
            raise LeaseExpired(token, lease.status.value)

        if lease.is_expired(self.clock()):
            await self.reclaimer.expire_lease(lease)
            raise LeaseExpired(token, LeaseStatus.EXPIRED.value)

        if lease.holder != holder:
            raise Forbidden()

        operation = payload.get("operation")
        if operation != lease.operation:
            raise MismatchedOperation(
                f"Lease was granted for {lease.operation}, not {operation}"
            )
        return lease
