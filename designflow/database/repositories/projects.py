"""
Project repository.

Projects are the unit of synchronization:
- Discovered from the authenticated GitHub account (untracked by default)
- Added manually with a GitHub URL or a local path
- Tracked projects are synced by the scheduler
"""

import logging
from typing import Optional, List, Dict, Any
from datetime import datetime

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError

from ..connection import Database, get_database
from ..models import ProjectDB, ProjectSourceEnum
from ..exceptions import (
    DatabaseConstraintError,
    DatabaseOperationError,
    EntityNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"name", "github_url", "local_path", "is_tracked"}


class ProjectRepository:
    """Repository for project operations."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    async def create(
        self,
        name: str,
        source: str,
        github_url: Optional[str] = None,
        local_path: Optional[str] = None,
        is_tracked: bool = False,
    ) -> ProjectDB:
        """
        Create a new project.

        Raises:
            ValidationError: Neither github_url nor local_path given, or unknown source
            DatabaseConstraintError: On constraint violation
            DatabaseOperationError: On general DB failure
        """
        if not github_url and not local_path:
            raise ValidationError("At least one of github_url or local_path is required")
        if source not in {s.value for s in ProjectSourceEnum}:
            raise ValidationError(f"Unknown project source: {source}")

        async with self.db.session() as session:
            try:
                project = ProjectDB(
                    name=name,
                    source=source,
                    github_url=github_url,
                    local_path=local_path,
                    is_tracked=is_tracked,
                    created_at=datetime.now(),
                )
                session.add(project)
                await session.flush()

                logger.info(f"Created project: {name} ({source})")
                return project

            except IntegrityError as e:
                logger.error(f"Constraint violation creating project {name}: {e}")
                raise DatabaseConstraintError(f"Cannot create project {name}: duplicate or constraint violation")

            except Exception as e:
                logger.error(f"CRITICAL: Project creation failed for {name}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to create project {name}: {e}")

    async def get_by_id(self, project_id: str) -> ProjectDB:
        """Get project by ID or raise EntityNotFoundError."""
        async with self.db.session() as session:
            result = await session.execute(
                select(ProjectDB).where(ProjectDB.id == project_id)
            )
            project = result.scalar_one_or_none()

        if project is None:
            raise EntityNotFoundError("Project", project_id)
        return project

    async def find_by_github_url(self, github_url: str) -> Optional[ProjectDB]:
        """Look up a project by its exact GitHub URL (None when unknown)."""
        async with self.db.session() as session:
            result = await session.execute(
                select(ProjectDB).where(ProjectDB.github_url == github_url)
            )
            return result.scalars().first()

    async def get_all(self) -> List[ProjectDB]:
        """Get all projects, oldest first."""
        async with self.db.session() as session:
            result = await session.execute(
                select(ProjectDB).order_by(ProjectDB.created_at)
            )
            return list(result.scalars().all())

    async def get_tracked(self) -> List[ProjectDB]:
        """Get projects eligible for periodic sync."""
        async with self.db.session() as session:
            result = await session.execute(
                select(ProjectDB)
                .where(ProjectDB.is_tracked.is_(True))
                .order_by(ProjectDB.created_at)
            )
            return list(result.scalars().all())

    async def update(self, project_id: str, updates: Dict[str, Any]) -> ProjectDB:
        """
        Update user-editable project fields.

        Args:
            project_id: Project to update
            updates: Subset of name, github_url, local_path, is_tracked

        Returns:
            The updated project

        Raises:
            ValidationError: On unknown fields
            EntityNotFoundError: If project not found
        """
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        if updates:
            async with self.db.session() as session:
                result = await session.execute(
                    update(ProjectDB)
                    .where(ProjectDB.id == project_id)
                    .values(**updates)
                )
            if result.rowcount == 0:
                raise EntityNotFoundError("Project", project_id)

        return await self.get_by_id(project_id)

    async def set_tracked(self, project_id: str, is_tracked: bool) -> ProjectDB:
        """Toggle whether the project is synced."""
        return await self.update(project_id, {"is_tracked": is_tracked})

    async def mark_synced(self, project_id: str, synced_at: Optional[datetime] = None) -> None:
        """Stamp the last-synced timestamp."""
        async with self.db.session() as session:
            await session.execute(
                update(ProjectDB)
                .where(ProjectDB.id == project_id)
                .values(last_synced_at=synced_at or datetime.now())
            )

    async def delete(self, project_id: str) -> None:
        """Delete a project. Plans, attention items and pull requests cascade."""
        async with self.db.session() as session:
            result = await session.execute(
                delete(ProjectDB).where(ProjectDB.id == project_id)
            )
        if result.rowcount == 0:
            raise EntityNotFoundError("Project", project_id)
        logger.info(f"Deleted project {project_id}")


# Singleton
_project_repository: Optional[ProjectRepository] = None


def get_project_repository() -> ProjectRepository:
    """Get the project repository singleton."""
    global _project_repository
    if _project_repository is None:
        _project_repository = ProjectRepository()
    return _project_repository
