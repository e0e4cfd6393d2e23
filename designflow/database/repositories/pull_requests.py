"""
Pull request snapshot repository.

Rows use the deterministic id "{project_id}:{number}" so every sync pass
upserts instead of duplicating.
"""

import logging
from typing import Optional, List, Dict, Any

from sqlalchemy import select, desc
from sqlalchemy.exc import IntegrityError

from ..connection import Database, get_database
from ..models import PullRequestDB, ProjectDB, PullRequestStateEnum
from ..exceptions import DatabaseConstraintError, DatabaseOperationError

logger = logging.getLogger(__name__)


def pull_request_id(project_id: str, number: int) -> str:
    return f"{project_id}:{number}"


class PullRequestRepository:
    """Repository for mirrored pull requests."""

    def __init__(self, db: Optional[Database] = None):
        self.db = db or get_database()

    async def upsert(
        self,
        project_id: str,
        number: int,
        title: str,
        branch_ref: str,
        state: str,
        html_url: str,
        spec_number: Optional[str] = None,
        merged_at: Optional[str] = None,
    ) -> PullRequestDB:
        """
        Insert the pull request, or update title/state/merged_at if it exists.

        A non-empty branch_ref also replaces the stored branch and spec number.

        Returns:
            The stored row
        """
        pr_id = pull_request_id(project_id, number)

        async with self.db.session() as session:
            try:
                pr = await session.get(PullRequestDB, pr_id)
                if pr is None:
                    pr = PullRequestDB(
                        id=pr_id,
                        project_id=project_id,
                        number=number,
                        title=title,
                        branch_ref=branch_ref,
                        spec_number=spec_number,
                        state=state,
                        merged_at=merged_at,
                        html_url=html_url,
                    )
                    session.add(pr)
                    logger.debug(f"Inserted PR {pr_id} ({state})")
                else:
                    pr.title = title
                    pr.state = state
                    pr.merged_at = merged_at
                    if branch_ref:
                        pr.branch_ref = branch_ref
                        pr.spec_number = spec_number
                    logger.debug(f"Updated PR {pr_id} ({state})")
                await session.flush()
                return pr

            except IntegrityError as e:
                logger.error(f"Constraint violation upserting PR {pr_id}: {e}")
                raise DatabaseConstraintError(f"Cannot upsert PR {pr_id}: project missing")

            except Exception as e:
                logger.error(f"CRITICAL: PR upsert failed for {pr_id}: {e}", exc_info=True)
                raise DatabaseOperationError(f"Failed to upsert PR {pr_id}: {e}")

    async def get_by_project(self, project_id: str) -> List[PullRequestDB]:
        """Pull requests of a project, most recently merged first."""
        async with self.db.session() as session:
            result = await session.execute(
                select(PullRequestDB)
                .where(PullRequestDB.project_id == project_id)
                .order_by(desc(PullRequestDB.merged_at), desc(PullRequestDB.number))
            )
            return list(result.scalars().all())

    async def get_recent_merged_with_spec(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Merged pull requests linked to a spec number, with their project name."""
        async with self.db.session() as session:
            result = await session.execute(
                select(PullRequestDB, ProjectDB.name)
                .join(ProjectDB, PullRequestDB.project_id == ProjectDB.id)
                .where(
                    PullRequestDB.state == PullRequestStateEnum.MERGED.value,
                    PullRequestDB.spec_number.is_not(None),
                )
                .order_by(desc(PullRequestDB.merged_at))
                .limit(limit)
            )
            return [
                {
                    "id": pr.id,
                    "number": pr.number,
                    "title": pr.title,
                    "spec_number": pr.spec_number,
                    "merged_at": pr.merged_at,
                    "html_url": pr.html_url,
                    "project_id": pr.project_id,
                    "project_name": project_name,
                }
                for pr, project_name in result.all()
            ]


# Singleton
_pull_request_repository: Optional[PullRequestRepository] = None


def get_pull_request_repository() -> PullRequestRepository:
    """Get the pull request repository singleton."""
    global _pull_request_repository
    if _pull_request_repository is None:
        _pull_request_repository = PullRequestRepository()
    return _pull_request_repository
