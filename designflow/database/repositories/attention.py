"""
Attention item repository.

The inbox of actionable items. Follows these rules:
- At most one active (unresolved) item per (project, type)
- Creating an item that already has an active twin returns the twin unchanged
- Resolution is a timestamp; items are never deleted here
"""

import asyncio
import logging
import weakref
from typing import Optional, List, Tuple
from datetime import datetime

from sqlalchemy import select, update, desc
from sqlalchemy.exc import IntegrityError

from ..connection import Database, get_database
from ..models import AttentionItemDB, AttentionTypeEnum
from ..exceptions import (
    DatabaseConstraintError,
    DatabaseOperationError,
    EntityNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

MIN_PRIORITY = 1
MAX_PRIORITY = 5


class AttentionRepository:
    """Repository for attention items with find-or-create deduplication."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()
        # Entries live only while a creation holds or awaits the lock
        self._creation_locks = weakref.WeakValueDictionary()

    def _lock_for(self, project_id: str, item_type: str) -> asyncio.Lock:
        key = (project_id, item_type)
        lock = self._creation_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._creation_locks[key] = lock
        return lock

    async def find_active(self, project_id: str, item_type: str) -> Optional[AttentionItemDB]:
        """The active item for (project, type), if any."""
        async with self.db.session() as session:
            result = await session.execute(
                select(AttentionItemDB).where(
                    AttentionItemDB.project_id == project_id,
                    AttentionItemDB.type == item_type,
                    AttentionItemDB.resolved_at.is_(None),
                )
            )
            return result.scalars().first()

    async def create_item(
        self,
        project_id: str,
        item_type: str,
        title: str,
        priority: int,
        plan_id: Optional[str] = None,
        detail: Optional[str] = None,
        source_url: Optional[str] = None,
    ) -> Tuple[AttentionItemDB, bool]:
        """
        Find or create the active item for (project_id, item_type).

        If an active item already exists it is returned unchanged and the new
        title, priority and detail are discarded.

        Returns:
            (item, created) where created is False when deduplicated

        Raises:
            ValidationError: Unknown type or priority outside 1-5
            DatabaseConstraintError: Project or plan reference does not exist
            DatabaseOperationError: On general DB failure
        """
        if item_type not in {t.value for t in AttentionTypeEnum}:
            raise ValidationError(f"Unknown attention type: {item_type}")
        if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
            raise ValidationError(f"Priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}, got {priority}")

        async with self._lock_for(project_id, item_type):
            existing = await self.find_active(project_id, item_type)
            if existing is not None:
                logger.debug(f"Attention item {item_type} already active for project {project_id}")
                return existing, False

            async with self.db.session() as session:
                try:
                    item = AttentionItemDB(
                        project_id=project_id,
                        plan_id=plan_id,
                        type=item_type,
                        title=title,
                        detail=detail,
                        priority=priority,
                        source_url=source_url,
                        created_at=datetime.now(),
                        resolved_at=None,
                    )
                    session.add(item)
                    await session.flush()

                except IntegrityError as e:
                    logger.error(f"Constraint violation creating {item_type} item: {e}")
                    raise DatabaseConstraintError(
                        f"Cannot create {item_type} item: project {project_id} or plan {plan_id} missing"
                    )

                except Exception as e:
                    logger.error(f"CRITICAL: Attention item creation failed: {e}", exc_info=True)
                    raise DatabaseOperationError(f"Failed to create attention item: {e}")

        logger.info(f"Created attention item {item_type} (p{priority}) for project {project_id}: {title}")
        return item, True

    async def get_by_id(self, item_id: str) -> AttentionItemDB:
        async with self.db.session() as session:
            item = await session.get(AttentionItemDB, item_id)
        if item is None:
            raise EntityNotFoundError("AttentionItem", item_id)
        return item

    async def resolve(self, item_id: str) -> bool:
        """
        Stamp resolved_at on one item.

        Returns False when the item does not exist; re-resolving restamps.
        """
        async with self.db.session() as session:
            result = await session.execute(
                update(AttentionItemDB)
                .where(AttentionItemDB.id == item_id)
                .values(resolved_at=datetime.now())
            )
        return result.rowcount > 0

    async def auto_resolve(self, project_id: str, item_type: str) -> int:
        """Resolve every active item of this type for the project. Returns the count."""
        async with self.db.session() as session:
            result = await session.execute(
                update(AttentionItemDB)
                .where(
                    AttentionItemDB.project_id == project_id,
                    AttentionItemDB.type == item_type,
                    AttentionItemDB.resolved_at.is_(None),
                )
                .values(resolved_at=datetime.now())
            )
        if result.rowcount:
            logger.info(f"Auto-resolved {result.rowcount} {item_type} item(s) for project {project_id}")
        return result.rowcount

    async def get_active(
        self,
        project_id: Optional[str] = None,
        item_type: Optional[str] = None,
    ) -> List[AttentionItemDB]:
        """Unresolved items, most urgent then most recent first."""
        query = select(AttentionItemDB).where(AttentionItemDB.resolved_at.is_(None))
        if project_id:
            query = query.where(AttentionItemDB.project_id == project_id)
        if item_type:
            query = query.where(AttentionItemDB.type == item_type)
        query = query.order_by(desc(AttentionItemDB.priority), desc(AttentionItemDB.created_at))

        async with self.db.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_resolved(self, limit: int = 50) -> List[AttentionItemDB]:
        """Resolved items, most recently resolved first."""
        async with self.db.session() as session:
            result = await session.execute(
                select(AttentionItemDB)
                .where(AttentionItemDB.resolved_at.is_not(None))
                .order_by(desc(AttentionItemDB.resolved_at))
                .limit(limit)
            )
            return list(result.scalars().all())


# Singleton
_attention_repository: Optional[AttentionRepository] = None


def get_attention_repository() -> AttentionRepository:
    """Get the attention repository singleton."""
    global _attention_repository
    if _attention_repository is None:
        _attention_repository = AttentionRepository()
    return _attention_repository
