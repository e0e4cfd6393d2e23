"""Key/value settings stored in the database (override env defaults at runtime)."""

import logging
from typing import Optional, Dict, Any

from sqlalchemy import select

from ..connection import Database, get_database
from ..models import SettingDB

logger = logging.getLogger(__name__)

NOTIFICATION_THRESHOLD_KEY = "notification_priority_threshold"
SYNC_INTERVAL_KEY = "sync_interval_ms"
GITHUB_PAT_KEY = "github_pat"


class SettingsRepository:
    """Repository for stored settings."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    async def get_all(self) -> Dict[str, str]:
        async with self.db.session() as session:
            result = await session.execute(select(SettingDB))
            return {row.key: row.value for row in result.scalars().all()}

    async def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        async with self.db.session() as session:
            row = await session.get(SettingDB, key)
            return row.value if row is not None else default

    async def get_int(self, key: str, default: int) -> int:
        """Integer setting; falls back to default when absent or malformed."""
        value = await self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning(f"Setting {key}={value!r} is not an integer, using {default}")
            return default

    async def set(self, key: str, value: Any) -> None:
        await self.set_many({key: value})

    async def set_many(self, values: Dict[str, Any]) -> None:
        """Insert or update several settings in one transaction."""
        async with self.db.session() as session:
            for key, value in values.items():
                row = await session.get(SettingDB, key)
                if row is None:
                    session.add(SettingDB(key=key, value=str(value)))
                else:
                    row.value = str(value)
        logger.info(f"Updated settings: {', '.join(sorted(values))}")


# Singleton
_settings_repository: Optional[SettingsRepository] = None


def get_settings_repository() -> SettingsRepository:
    """Get the settings repository singleton."""
    global _settings_repository
    if _settings_repository is None:
        _settings_repository = SettingsRepository()
    return _settings_repository
