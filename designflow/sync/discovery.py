"""
Project discovery.

Lists the authenticated user's GitHub repositories and records every one not
yet known as an untracked project, with a low-priority inbox item so the user
can decide whether to track it.
"""

import logging
from typing import Dict, Optional

from ..database.models import ProjectSourceEnum, AttentionTypeEnum
from ..database.repositories import (
    ProjectRepository,
    AttentionRepository,
    get_project_repository,
    get_attention_repository,
)
from ..integrations.github import GitHubClient

logger = logging.getLogger(__name__)

PRIORITY_NEW_PROJECT = 1


class ProjectDiscovery:
    """Imports GitHub repositories as untracked projects."""

    def __init__(
        self,
        github: GitHubClient,
        projects: Optional[ProjectRepository] = None,
        attention: Optional[AttentionRepository] = None,
    ):
        self.github = github
        self.projects = projects or get_project_repository()
        self.attention = attention or get_attention_repository()

    async def discover(self) -> Dict[str, int]:
        """
        Returns:
            {"discovered": repositories seen, "added": projects created}
        """
        repos = await self.github.list_repos()
        added = 0

        for repo in repos:
            if await self.projects.find_by_github_url(repo.html_url) is not None:
                continue

            project = await self.projects.create(
                name=repo.name,
                source=ProjectSourceEnum.GITHUB_DISCOVERED.value,
                github_url=repo.html_url,
                is_tracked=False,
            )
            await self.attention.create_item(
                project_id=project.id,
                item_type=AttentionTypeEnum.NEW_PROJECT.value,
                title=f"New repository discovered: {repo.full_name}",
                priority=PRIORITY_NEW_PROJECT,
                source_url=repo.html_url,
            )
            added += 1

        logger.info(f"Discovery: {len(repos)} repositories, {added} new projects")
        return {"discovered": len(repos), "added": added}
