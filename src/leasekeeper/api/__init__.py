"""LeaseKeeper HTTP API."""

from leasekeeper.api.router import router

__all__ = ["router"]
