"""
Lockfile store and incremental planner.
"""

from __future__ import annotations

from .planner import CleanupReport, IncrementalPlan, cleanup, commit, plan, source_checksum
from .store import LockfileStore
from .types import CHECKSUM_ALGORITHM, LOCKFILE_VERSION, Checksum, Lockfile, LockfileEntry

__all__ = [
    "CleanupReport",
    "IncrementalPlan",
    "cleanup",
    "commit",
    "plan",
    "source_checksum",
    "LockfileStore",
    "CHECKSUM_ALGORITHM",
    "LOCKFILE_VERSION",
    "Checksum",
    "Lockfile",
    "LockfileEntry",
]
