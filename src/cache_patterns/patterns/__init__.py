"""Reconciliation patterns module."""

from cache_patterns.patterns.drain_lock import (
    DrainInProgressError,
    DrainLock,
    DrainLockMetrics,
)
from cache_patterns.patterns.reconciler import Reconciler

__all__ = [
    # Drain lock
    "DrainInProgressError",
    "DrainLock",
    "DrainLockMetrics",
    # Reconciler
    "Reconciler",
]
