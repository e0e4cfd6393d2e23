"""
Plan repository.

Plans are keyed by (project_id, file_path). Rows are created on the first
successful parse of a file and updated in place when the file's content hash
changes.
"""

import logging
from typing import Optional, List
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..connection import Database, get_database
from ..models import PlanDB
from ..exceptions import DatabaseConstraintError, DatabaseOperationError, EntityNotFoundError
from ...models.plan import ParsedPlan

logger = logging.getLogger(__name__)


class PlanRepository:
    """Repository for parsed planning documents."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    async def create(
        self,
        project_id: str,
        file_path: str,
        parsed: ParsedPlan,
        file_hash: str,
    ) -> PlanDB:
        """
        Insert a plan for a newly discovered file.

        Raises:
            DatabaseConstraintError: Path already stored for project, or project missing
            DatabaseOperationError: On general DB failure
        """
        async with self.db.session() as session:
            try:
                plan = PlanDB(
                    project_id=project_id,
                    file_path=file_path,
                    title=parsed.title,
                    format=parsed.format,
                    phases=parsed.phases_as_json(),
                    file_hash=file_hash,
                    parsed_at=datetime.now(),
                )
                session.add(plan)
                await session.flush()

                logger.info(f"Created plan {file_path} ({parsed.format}) for project {project_id}")
                return plan

            except IntegrityError as e:
                logger.error(f"Constraint violation creating plan {file_path}: {e}")
                raise DatabaseConstraintError(f"Cannot create plan {file_path} for project {project_id}")

            except Exception as e:
                logger.error(f"CRITICAL: Plan creation failed for {file_path}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to create plan {file_path}: {e}")

    async def update_parsed(self, plan_id: str, parsed: ParsedPlan, file_hash: str) -> PlanDB:
        """Replace title, format, phases and hash after the source changed."""
        async with self.db.session() as session:
            plan = await session.get(PlanDB, plan_id)
            if plan is not None:
                plan.title = parsed.title
                plan.format = parsed.format
                plan.phases = parsed.phases_as_json()
                plan.file_hash = file_hash
                plan.parsed_at = datetime.now()

        if plan is None:
            raise EntityNotFoundError("Plan", plan_id)

        logger.info(f"Updated plan {plan.file_path} (hash {file_hash[:8]})")
        return plan

    async def get_by_id(self, plan_id: str) -> PlanDB:
        async with self.db.session() as session:
            plan = await session.get(PlanDB, plan_id)
        if plan is None:
            raise EntityNotFoundError("Plan", plan_id)
        return plan

    async def find_by_path(self, project_id: str, file_path: str) -> Optional[PlanDB]:
        """Existing plan for the file, if it was parsed before."""
        async with self.db.session() as session:
            result = await session.execute(
                select(PlanDB).where(
                    PlanDB.project_id == project_id,
                    PlanDB.file_path == file_path,
                )
            )
            return result.scalar_one_or_none()

    async def get_by_project(self, project_id: str) -> List[PlanDB]:
        async with self.db.session() as session:
            result = await session.execute(
                select(PlanDB)
                .where(PlanDB.project_id == project_id)
                .order_by(PlanDB.file_path)
            )
            return list(result.scalars().all())


# Singleton
_plan_repository: Optional[PlanRepository] = None


def get_plan_repository() -> PlanRepository:
    """Get the plan repository singleton."""
    global _plan_repository
    if _plan_repository is None:
        _plan_repository = PlanRepository()
    return _plan_repository
