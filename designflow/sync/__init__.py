"""GitHub synchronization: per-project sync engine and project discovery."""

from .engine import (
    SyncEngine,
    ProjectSyncResult,
    extract_owner_repo,
    extract_spec_number,
    hash_content,
)
from .discovery import ProjectDiscovery

__all__ = [
    "SyncEngine",
    "ProjectSyncResult",
    "extract_owner_repo",
    "extract_spec_number",
    "hash_content",
    "ProjectDiscovery",
]
