"""Background scheduling of portfolio syncs."""

from .jobs import SyncScheduler, SYNC_JOB_ID

__all__ = ["SyncScheduler", "SYNC_JOB_ID"]
