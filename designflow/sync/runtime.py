"""
Token-bound sync services.

The GitHub token comes from GITHUB_PAT or from the github_pat setting, and
the setting can be saved through the API at any time. The GitHub client and
sync engine are therefore built on first use and rebuilt when the token
changes. The scheduler starts the first time a token is available.
"""

import asyncio
import logging
from typing import List, Optional

from config import settings
from ..database.repositories import SettingsRepository, get_settings_repository
from ..database.repositories.settings import GITHUB_PAT_KEY, SYNC_INTERVAL_KEY
from ..integrations.github import GitHubClient
from ..scheduler import SyncScheduler
from .engine import SyncEngine, ProjectSyncResult

logger = logging.getLogger(__name__)


async def resolve_github_token(stored_settings: Optional[SettingsRepository] = None) -> str:
    """
    GITHUB_PAT from the environment, else the stored github_pat setting.

    Raises:
        ConfigurationError: Neither is set
    """
    if not settings.github_pat:
        stored = await (stored_settings or get_settings_repository()).get(GITHUB_PAT_KEY)
        if stored:
            return stored
    return settings.require_github_token()


class SyncRuntime:
    """Owns the GitHub client, the sync engine and the scheduler."""

    def __init__(self):
        self.github: Optional[GitHubClient] = None
        self.engine: Optional[SyncEngine] = None
        self.scheduler: Optional[SyncScheduler] = None
        self._token: Optional[str] = None
        self._lock = asyncio.Lock()

    async def get_engine(self, stored_settings: Optional[SettingsRepository] = None) -> SyncEngine:
        """
        Engine bound to the current token.

        Raises:
            ConfigurationError: No token is configured
        """
        stored_settings = stored_settings or get_settings_repository()
        token = await resolve_github_token(stored_settings)

        async with self._lock:
            if self.engine is None or token != self._token:
                if self.github:
                    await self.github.close()
                    logger.info("GitHub token changed, rebuilding client")
                self.github = GitHubClient(token)
                self.engine = SyncEngine(self.github)
                self._token = token

            if self.scheduler is None:
                interval_ms = await stored_settings.get_int(SYNC_INTERVAL_KEY, settings.sync_interval_ms)
                scheduler = SyncScheduler(self.sync_all_projects, interval_ms)
                scheduler.start()
                self.scheduler = scheduler

            return self.engine

    async def sync_all_projects(self) -> List[ProjectSyncResult]:
        """Scheduled entry point; picks up a token change between runs."""
        engine = await self.get_engine()
        return await engine.sync_all_projects()

    async def shutdown(self) -> None:
        if self.scheduler:
            self.scheduler.stop()
        if self.github:
            await self.github.close()
        self.github = None
        self.engine = None
        self.scheduler = None
        self._token = None


# Singleton
_sync_runtime: Optional[SyncRuntime] = None


def get_sync_runtime() -> SyncRuntime:
    """Get the sync runtime singleton."""
    global _sync_runtime
    if _sync_runtime is None:
        _sync_runtime = SyncRuntime()
    return _sync_runtime
