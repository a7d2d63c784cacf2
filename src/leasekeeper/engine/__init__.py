"""LeaseKeeper engine - lease lifecycle and mutation execution."""

from leasekeeper.engine.errors import (
    Forbidden,
    LeaseConflict,
    LeaseExpired,
    LeaseKeeperError,
    LeaseNotFound,
    MismatchedOperation,
    NotFoundError,
    PreconditionFailed,
    ResourceNotFound,
)
from leasekeeper.engine.executor import MutationExecutor
from leasekeeper.engine.manager import LeaseManager
from leasekeeper.engine.reclaimer import ExpiryReclaimer
from leasekeeper.engine.registry import ResourceRegistry, default_registry

__all__ = [
    "ExpiryReclaimer",
    "Forbidden",
    "LeaseConflict",
    "LeaseExpired",
    "LeaseKeeperError",
    "LeaseManager",
    "LeaseNotFound",
    "MismatchedOperation",
    "MutationExecutor",
    "NotFoundError",
    "PreconditionFailed",
    "ResourceNotFound",
    "ResourceRegistry",
    "default_registry",
]
