"""
Per-project GitHub sync.

One pass over a tracked project:
1. Reconcile open pull requests into attention items (review requests,
   failing checks, merge-ready) and auto-resolve items whose trigger is gone
2. Mirror open and merged/closed pull requests into the pull_requests table
3. Parse changed planning documents and flag plan changes
4. Stamp last_synced_at

Steps run strictly in this order. Concurrent syncs of the same project are
refused (single-flight per project id).
"""

import asyncio
import hashlib
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from config import settings
from ..database.models import ProjectDB, AttentionTypeEnum, PullRequestStateEnum
from ..database.exceptions import EntityNotFoundError
from ..database.repositories import (
    ProjectRepository,
    PlanRepository,
    AttentionRepository,
    PullRequestRepository,
    SettingsRepository,
    get_project_repository,
    get_plan_repository,
    get_attention_repository,
    get_pull_request_repository,
    get_settings_repository,
)
from ..database.repositories.settings import NOTIFICATION_THRESHOLD_KEY
from ..integrations.github import GitHubClient, GitHubPullRequest
from ..integrations.notifier import Notifier, get_notifier
from ..parsers.registry import ProfileRegistry, get_profile_registry

logger = logging.getLogger(__name__)

GITHUB_URL_RE = re.compile(r"github\.com[/:]([^/]+)/([^/?#]+)")
SPEC_NUMBER_RE = re.compile(r"(\d{3})-")

PLANS_DIR = "docs/plans"
SPECS_DIR = "specs"
ROADMAP_FILE = "roadmap.md"
PLAN_EXTENSION = ".md"

UNKNOWN_BRANCH = ""

# Attention priorities (5 = most urgent)
PRIORITY_CHECKS_FAILING = 5
PRIORITY_NEEDS_REVIEW = 4
PRIORITY_MERGE_READY = 3
PRIORITY_PLAN_CHANGED = 2


def extract_owner_repo(github_url: str) -> Optional[Tuple[str, str]]:
    """(owner, repo) from a GitHub web or clone URL, None if it is not one."""
    match = GITHUB_URL_RE.search(github_url)
    if not match:
        return None
    owner, repo = match.group(1), match.group(2)
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not owner or not repo:
        return None
    return owner, repo


def extract_spec_number(branch_ref: Optional[str]) -> Optional[str]:
    """Three-digit spec prefix such as "016" from "016-portfolio-management"."""
    if not branch_ref:
        return None
    match = SPEC_NUMBER_RE.search(branch_ref)
    return match.group(1) if match else None


def hash_content(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


@dataclass
class ProjectSyncResult:
    """What one project sync did."""
    project_id: str
    skipped: bool = False
    reason: Optional[str] = None
    open_prs: int = 0
    pull_requests_upserted: int = 0
    plans_created: int = 0
    plans_updated: int = 0
    items_created: List[str] = field(default_factory=list)
    notifications_sent: int = 0
    error: Optional[str] = None

    @classmethod
    def skip(cls, project_id: str, reason: str) -> "ProjectSyncResult":
        return cls(project_id=project_id, skipped=True, reason=reason)


class SyncEngine:
    """Reconciles GitHub state for tracked projects into the store."""

    def __init__(
        self,
        github: GitHubClient,
        notifier: Optional[Notifier] = None,
        projects: Optional[ProjectRepository] = None,
        plans: Optional[PlanRepository] = None,
        attention: Optional[AttentionRepository] = None,
        pull_requests: Optional[PullRequestRepository] = None,
        stored_settings: Optional[SettingsRepository] = None,
        registry: Optional[ProfileRegistry] = None,
    ):
        self.github = github
        self.notifier = notifier or get_notifier()
        self.projects = projects or get_project_repository()
        self.plans = plans or get_plan_repository()
        self.attention = attention or get_attention_repository()
        self.pull_requests = pull_requests or get_pull_request_repository()
        self.stored_settings = stored_settings or get_settings_repository()
        self.registry = registry or get_profile_registry()
        self._project_locks: Dict[str, asyncio.Lock] = {}

    def is_syncing(self, project_id: str) -> bool:
        lock = self._project_locks.get(project_id)
        return lock is not None and lock.locked()

    async def sync_project(self, project_id: str) -> ProjectSyncResult:
        """
        Sync one project.

        Returns a skipped result when the project is missing, untracked, or
        already being synced. Any other failure propagates.
        """
        if self.is_syncing(project_id):
            logger.info(f"Sync already in flight for project {project_id}, skipping")
            return ProjectSyncResult.skip(project_id, "in_flight")

        lock = self._project_locks.setdefault(project_id, asyncio.Lock())
        try:
            async with lock:
                return await self._sync_project(project_id)
        finally:
            # No waiters: a second caller is refused above
            self._project_locks.pop(project_id, None)

    async def _sync_project(self, project_id: str) -> ProjectSyncResult:
        try:
            project = await self.projects.get_by_id(project_id)
        except EntityNotFoundError:
            logger.debug(f"Project {project_id} no longer exists, nothing to sync")
            return ProjectSyncResult.skip(project_id, "not_found")

        if not project.is_tracked:
            return ProjectSyncResult.skip(project_id, "untracked")

        result = ProjectSyncResult(project_id=project_id)

        if project.github_url:
            owner_repo = extract_owner_repo(project.github_url)
            if owner_repo is None:
                logger.info(f"Project {project.name}: {project.github_url} is not a GitHub repository URL, skipping remote sync")
            else:
                owner, repo = owner_repo
                threshold = await self.stored_settings.get_int(
                    NOTIFICATION_THRESHOLD_KEY, settings.notification_priority_threshold
                )
                await self._sync_pull_requests(project, owner, repo, result, threshold)
                await self._sync_plans(project, owner, repo, result, threshold)

        await self.projects.mark_synced(project.id)

        logger.info(
            f"Synced {project.name}: {result.open_prs} open PRs, "
            f"{result.plans_created} new / {result.plans_updated} changed plans, "
            f"{len(result.items_created)} new attention items"
        )
        return result

    async def _raise_item(
        self,
        project: ProjectDB,
        result: ProjectSyncResult,
        threshold: int,
        item_type: AttentionTypeEnum,
        title: str,
        priority: int,
        source_url: Optional[str] = None,
        plan_id: Optional[str] = None,
    ) -> None:
        """Create (or dedupe) an attention item and notify if it is new and urgent."""
        item, created = await self.attention.create_item(
            project_id=project.id,
            item_type=item_type.value,
            title=title,
            priority=priority,
            plan_id=plan_id,
            source_url=source_url,
        )
        if not created:
            return

        result.items_created.append(item_type.value)
        if self.notifier.should_notify(item.priority, threshold):
            notify_title, message = self.notifier.format_notification(item.title, project.name)
            self.notifier.dispatch(notify_title, message, item.source_url)
            result.notifications_sent += 1

    # ==================== PULL REQUESTS ====================

    async def _sync_pull_requests(
        self,
        project: ProjectDB,
        owner: str,
        repo: str,
        result: ProjectSyncResult,
        threshold: int,
    ) -> None:
        open_prs = await self.github.list_open_prs(owner, repo)
        result.open_prs = len(open_prs)

        has_failing_checks = False
        has_review_requests = False

        for pr in open_prs:
            if pr.draft:
                continue

            if pr.requested_reviewers:
                has_review_requests = True
                await self._raise_item(
                    project, result, threshold,
                    AttentionTypeEnum.PR_NEEDS_REVIEW,
                    f"PR #{pr.number}: {pr.title}",
                    PRIORITY_NEEDS_REVIEW,
                    source_url=pr.html_url,
                )

            if pr.head_sha:
                if await self._check_pr_runs(project, owner, repo, pr, result, threshold):
                    has_failing_checks = True

        # Resolution tracks the current snapshot only
        if not has_failing_checks:
            await self.attention.auto_resolve(project.id, AttentionTypeEnum.CHECKS_FAILING.value)
        if not has_review_requests:
            await self.attention.auto_resolve(project.id, AttentionTypeEnum.PR_NEEDS_REVIEW.value)
        if not open_prs:
            await self.attention.auto_resolve(project.id, AttentionTypeEnum.PR_MERGE_READY.value)

        await self._mirror_pull_requests(project, owner, repo, open_prs, result)

    async def _check_pr_runs(
        self,
        project: ProjectDB,
        owner: str,
        repo: str,
        pr: GitHubPullRequest,
        result: ProjectSyncResult,
        threshold: int,
    ) -> bool:
        """Raise check-derived items for one PR. Returns True if any check failed."""
        checks = await self.github.get_check_runs(owner, repo, pr.head_sha)

        failing = any(c.status == "completed" and c.conclusion == "failure" for c in checks)
        if failing:
            await self._raise_item(
                project, result, threshold,
                AttentionTypeEnum.CHECKS_FAILING,
                f"Checks failing on PR #{pr.number}: {pr.title}",
                PRIORITY_CHECKS_FAILING,
                source_url=pr.html_url,
            )

        all_passing = bool(checks) and all(
            c.status == "completed" and c.conclusion == "success" for c in checks
        )
        if all_passing and not pr.requested_reviewers:
            await self._raise_item(
                project, result, threshold,
                AttentionTypeEnum.PR_MERGE_READY,
                f"PR #{pr.number} ready to merge: {pr.title}",
                PRIORITY_MERGE_READY,
                source_url=pr.html_url,
            )

        return failing

    async def _mirror_pull_requests(
        self,
        project: ProjectDB,
        owner: str,
        repo: str,
        open_prs: List[GitHubPullRequest],
        result: ProjectSyncResult,
    ) -> None:
        """Upsert merged/closed PRs plus any open PR not already among them."""
        closed_prs = await self.github.list_merged_prs(owner, repo)
        seen = {pr.number for pr in closed_prs}

        for pr in closed_prs:
            await self.pull_requests.upsert(
                project_id=project.id,
                number=pr.number,
                title=pr.title,
                branch_ref=pr.head_ref,
                spec_number=extract_spec_number(pr.head_ref),
                state=pr.state,
                merged_at=pr.merged_at,
                html_url=pr.html_url,
            )
            result.pull_requests_upserted += 1

        for pr in open_prs:
            if pr.number in seen:
                continue
            await self.pull_requests.upsert(
                project_id=project.id,
                number=pr.number,
                title=pr.title,
                branch_ref=UNKNOWN_BRANCH,
                spec_number=None,
                state=PullRequestStateEnum.OPEN.value,
                merged_at=None,
                html_url=pr.html_url,
            )
            result.pull_requests_upserted += 1

    # ==================== PLANS ====================

    async def _collect_plan_files(self, owner: str, repo: str) -> List[str]:
        """docs/plans/*.md, specs/**/*.md and a root ROADMAP.md, deduplicated in that order."""
        flat = await self.github.list_directory_contents(owner, repo, PLANS_DIR)
        nested = await self.github.list_files_recursively(owner, repo, SPECS_DIR)
        root = await self.github.list_directory_contents(owner, repo, "")
        roadmap = [path for path in root if path.lower() == ROADMAP_FILE]

        files: List[str] = []
        for path in [*flat, *nested, *roadmap]:
            if path.lower().endswith(PLAN_EXTENSION) and path not in files:
                files.append(path)
        return files

    async def _sync_plans(
        self,
        project: ProjectDB,
        owner: str,
        repo: str,
        result: ProjectSyncResult,
        threshold: int,
    ) -> None:
        for file_path in await self._collect_plan_files(owner, repo):
            file_data = await self.github.get_file_content(owner, repo, file_path)
            if file_data is None:
                continue

            new_hash = hash_content(file_data.content)
            existing = await self.plans.find_by_path(project.id, file_path)
            if existing is not None and existing.file_hash == new_hash:
                continue

            parsed = self.registry.detect_and_parse(file_data.content)
            if parsed is None:
                logger.debug(f"No plan profile matches {file_path}, skipping")
                continue

            if existing is not None:
                await self.plans.update_parsed(existing.id, parsed, new_hash)
                result.plans_updated += 1
                await self._raise_item(
                    project, result, threshold,
                    AttentionTypeEnum.PLAN_CHANGED,
                    f"Plan updated: {parsed.title}",
                    PRIORITY_PLAN_CHANGED,
                    plan_id=existing.id,
                )
            else:
                await self.plans.create(project.id, file_path, parsed, new_hash)
                result.plans_created += 1

    # ==================== BATCH ====================

    async def sync_all_projects(self) -> List[ProjectSyncResult]:
        """Sync every tracked project in turn; one failure never stops the batch."""
        tracked = await self.projects.get_tracked()
        results: List[ProjectSyncResult] = []

        for project in tracked:
            try:
                results.append(await self.sync_project(project.id))
            except Exception as e:
                logger.error(f"Sync failed for {project.name}: {e}", exc_info=True)
                results.append(ProjectSyncResult(project_id=project.id, error=str(e)))

        logger.info(
            f"Sync pass complete: {len(tracked)} tracked projects, "
            f"{sum(1 for r in results if r.error)} failed"
        )
        return results
