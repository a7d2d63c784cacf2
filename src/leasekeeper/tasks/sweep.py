"""Lease expiry sweep background task."""

import asyncio
import logging
import random
from typing import Optional

from leasekeeper.config import settings
from leasekeeper.db.base import get_session
from leasekeeper.engine import ExpiryReclaimer
from leasekeeper.observability.metrics import metrics

logger = logging.getLogger(__name__)

_sweep_task: Optional[asyncio.Task] = None
_shutdown_event: Optional[asyncio.Event] = None


async def run_sweep_once(batch_size: int | None = None) -> int:
    """Expire one batch of stale leases in its own transaction."""
    async with get_session() as session:
        return await ExpiryReclaimer(session).sweep(batch_size or settings.lease_sweep_batch_size)


async def lease_sweep_loop():
    """
    Background loop that expires leases past their TTL.

    Lazy expiry on the read paths already keeps correctness; the sweep only
    frees resources nobody is looking at. The interval is jittered by ±20%
    so several instances do not sweep in lockstep.
    """
    base_interval = settings.lease_sweep_interval_seconds
    logger.info(f"Lease sweep loop started (base interval: {base_interval}s with ±20% jitter)")

    while not _shutdown_event.is_set():
        try:
            expired_count = await run_sweep_once()
            metrics.set_gauge("leases.last_sweep_expired", expired_count)
            if expired_count > 0:
                logger.info(f"Expired {expired_count} stale leases")
        except Exception as e:
            logger.error(f"Lease sweep error: {e}", exc_info=True)

        jittered_interval = base_interval * random.uniform(0.8, 1.2)
        try:
            await asyncio.wait_for(_shutdown_event.wait(), timeout=jittered_interval)
        except asyncio.TimeoutError:
            pass

    logger.info("Lease sweep loop stopped")


async def start_lease_sweep():
    """Start the lease sweep background task."""
    global _sweep_task, _shutdown_event

    _shutdown_event = asyncio.Event()
    _sweep_task = asyncio.create_task(lease_sweep_loop())


async def stop_lease_sweep():
    """Stop the lease sweep background task."""
    global _sweep_task, _shutdown_event

    if _shutdown_event:
        _shutdown_event.set()

    if _sweep_task:
        try:
            await asyncio.wait_for(_sweep_task, timeout=10.0)
        except asyncio.TimeoutError:
            logger.warning("Lease sweep task did not stop gracefully, cancelling")
            _sweep_task.cancel()
            try:
                await _sweep_task
            except asyncio.CancelledError:
                pass

    _sweep_task = None
    _shutdown_event = None
