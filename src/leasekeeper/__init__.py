"""LeaseKeeper - exclusive operation leases for shared back-office records."""

__version__ = "0.1.0"
