"""LeaseKeeper background tasks."""

from leasekeeper.tasks.sweep import run_sweep_once, start_lease_sweep, stop_lease_sweep

__all__ = ["run_sweep_once", "start_lease_sweep", "stop_lease_sweep"]
