"""Observability helpers for LeaseKeeper."""

from leasekeeper.observability.metrics import metrics

__all__ = ["metrics"]
