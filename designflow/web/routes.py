"""
HTTP API over the portfolio store.

Projects, plans, the attention inbox, pull requests, activity, stored
settings, on-demand sync and repository discovery.
"""

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from config import ConfigurationError

from ..models.api_validation import (
    ProjectCreate,
    ProjectUpdate,
    AttentionFilter,
    SettingsUpdate,
    ProjectOut,
    PlanOut,
    AttentionItemOut,
    PullRequestOut,
)
from ..database.exceptions import EntityNotFoundError, ValidationError
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
from ..database.repositories.settings import GITHUB_PAT_KEY
from ..sync import SyncEngine, ProjectDiscovery
from ..sync.runtime import get_sync_runtime

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

MASKED_VALUE = "********"


# ============================================================================
# Dependencies
# ============================================================================

async def get_sync_engine(
    stored_settings: SettingsRepository = Depends(get_settings_repository),
) -> SyncEngine:
    """Engine for the token configured right now, from the environment or settings."""
    try:
        return await get_sync_runtime().get_engine(stored_settings)
    except ConfigurationError:
        raise HTTPException(status_code=500, detail="GitHub PAT not configured")


def get_discovery(engine: SyncEngine = Depends(get_sync_engine)) -> ProjectDiscovery:
    return ProjectDiscovery(engine.github, projects=engine.projects, attention=engine.attention)


# ============================================================================
# Projects
# ============================================================================

@router.get("/projects")
async def list_projects(projects: ProjectRepository = Depends(get_project_repository)):
    return [ProjectOut.model_validate(p) for p in await projects.get_all()]


@router.post("/projects", status_code=201)
async def create_project(
    data: ProjectCreate,
    projects: ProjectRepository = Depends(get_project_repository),
):
    """Add a project by hand. Manually added projects are tracked."""
    try:
        project = await projects.create(
            name=data.name,
            source=data.source.value,
            github_url=data.github_url,
            local_path=data.local_path,
            is_tracked=True,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ProjectOut.model_validate(project)


@router.get("/projects/{project_id}")
async def get_project(project_id: str, projects: ProjectRepository = Depends(get_project_repository)):
    try:
        return ProjectOut.model_validate(await projects.get_by_id(project_id))
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/projects/{project_id}")
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    projects: ProjectRepository = Depends(get_project_repository),
):
    try:
        project = await projects.update(project_id, data.model_dump(exclude_unset=True))
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ProjectOut.model_validate(project)


@router.delete("/projects/{project_id}", status_code=204)
async def delete_project(project_id: str, projects: ProjectRepository = Depends(get_project_repository)):
    try:
        await projects.delete(project_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=204)


# ============================================================================
# Plans
# ============================================================================

@router.get("/plans/{project_id}")
async def list_plans(
    project_id: str,
    projects: ProjectRepository = Depends(get_project_repository),
    plans: PlanRepository = Depends(get_plan_repository),
):
    try:
        await projects.get_by_id(project_id)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return [PlanOut.model_validate(p) for p in await plans.get_by_project(project_id)]


# ============================================================================
# Attention inbox
# ============================================================================

@router.get("/attention")
async def list_attention(
    filters: AttentionFilter = Depends(),
    attention: AttentionRepository = Depends(get_attention_repository),
):
    """Active items by default; resolved=true lists the resolved history."""
    item_type = filters.type.value if filters.type else None

    if filters.resolved:
        items = await attention.get_resolved(limit=filters.limit)
        items = [
            i for i in items
            if (item_type is None or i.type == item_type)
            and (filters.project_id is None or i.project_id == filters.project_id)
        ]
    else:
        items = await attention.get_active(project_id=filters.project_id, item_type=item_type)

    return [AttentionItemOut.model_validate(i) for i in items]


@router.post("/attention/{item_id}/resolve")
async def resolve_attention_item(
    item_id: str,
    attention: AttentionRepository = Depends(get_attention_repository),
):
    if not await attention.resolve(item_id):
        raise HTTPException(status_code=404, detail=f"AttentionItem {item_id} not found")
    return {"resolved": True}


# ============================================================================
# Pull requests and activity
# ============================================================================

@router.get("/pull-requests")
async def list_pull_requests(
    project_id: Optional[str] = Query(None),
    pull_requests: PullRequestRepository = Depends(get_pull_request_repository),
):
    if not project_id:
        raise HTTPException(status_code=400, detail="project_id is required")
    return [PullRequestOut.model_validate(pr) for pr in await pull_requests.get_by_project(project_id)]


@router.get("/activity")
async def recent_activity(pull_requests: PullRequestRepository = Depends(get_pull_request_repository)):
    """Recently merged pull requests that belong to a numbered spec."""
    return await pull_requests.get_recent_merged_with_spec(limit=20)


# ============================================================================
# Settings
# ============================================================================

@router.get("/settings")
async def get_stored_settings(stored: SettingsRepository = Depends(get_settings_repository)):
    values = await stored.get_all()
    if values.get(GITHUB_PAT_KEY):
        values[GITHUB_PAT_KEY] = MASKED_VALUE
    return values


@router.put("/settings")
async def update_stored_settings(
    data: SettingsUpdate,
    stored: SettingsRepository = Depends(get_settings_repository),
):
    await stored.set_many(data.root)
    return {"updated": True}


# ============================================================================
# Sync and discovery
# ============================================================================

@router.post("/sync")
async def sync_all(engine: SyncEngine = Depends(get_sync_engine)):
    """Sync every tracked project now."""
    try:
        results = await engine.sync_all_projects()
    except Exception as e:
        logger.error(f"On-demand sync failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Sync failed")

    return {
        "synced": True,
        "timestamp": datetime.now().isoformat(),
        "projects": len(results),
        "failed": [r.project_id for r in results if r.error],
    }


@router.post("/sync/{project_id}")
async def sync_one(project_id: str, engine: SyncEngine = Depends(get_sync_engine)):
    try:
        result = await engine.sync_project(project_id)
    except Exception as e:
        logger.error(f"On-demand sync of {project_id} failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Sync failed")

    if result.skipped and result.reason == "not_found":
        raise HTTPException(status_code=404, detail=f"Project {project_id} not found")
    return asdict(result)


@router.post("/github/repos/discover")
async def discover_repositories(discovery: ProjectDiscovery = Depends(get_discovery)):
    try:
        return await discovery.discover()
    except Exception as e:
        logger.error(f"Repository discovery failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Discovery failed")
