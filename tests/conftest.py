"""
Pytest configuration and shared fixtures.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("GITHUB_PAT", "")
os.environ.setdefault("NOTIFICATION_WEBHOOK_URL", "")

import pytest
import pytest_asyncio

from designflow.database.connection import Database
from designflow.database.repositories import (
    ProjectRepository,
    PlanRepository,
    AttentionRepository,
    PullRequestRepository,
    SettingsRepository,
)

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)


@pytest_asyncio.fixture
async def db(tmp_path):
    """Fresh SQLite database per test."""
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'designflow-test.db'}")
    assert await database.initialize()
    yield database
    await database.close()


@pytest.fixture
def repos(db):
    """All repositories bound to the test database."""
    return {
        "projects": ProjectRepository(db),
        "plans": PlanRepository(db),
        "attention": AttentionRepository(db),
        "pull_requests": PullRequestRepository(db),
        "settings": SettingsRepository(db),
    }


@pytest_asyncio.fixture
async def tracked_project(repos):
    """A tracked project pointing at a GitHub repository."""
    return await repos["projects"].create(
        name="designflow",
        source="github_manual",
        github_url="https://github.com/acme/designflow",
        is_tracked=True,
    )


@pytest.fixture
def generic_plan_content():
    """Plain markdown plan with two phases."""
    return (
        "# Auth System\n\n"
        "## Phase 1: Design\n"
        "- [x] Wireframes\n"
        "- [ ] Review\n\n"
        "## Phase 2: Build\n"
        "- [ ] API endpoints\n"
        "- [ ] Tests\n"
    )


@pytest.fixture
def speckit_tasks_content():
    """Speckit tasks.md with task IDs."""
    return (
        "# Tasks: Portfolio Management\n\n"
        "## Phase 1: Setup\n"
        "- [x] T001 Create project structure\n"
        "- [X] T002 [P] Configure linting\n\n"
        "## Phase 2: Core\n"
        "- [x] T003 [US1] Add portfolio model\n"
        "- [ ] T004 [US1] Add portfolio API\n"
    )


@pytest.fixture
def task_list_content():
    """Implementation plan with ### Task N: sections."""
    return (
        "# Sync Engine Implementation Plan\n\n"
        "### Task 1: Database schema\n"
        "- [x] Write migration\n"
        "- [x] Add indexes\n\n"
        "### Task 2: GitHub client\n"
        "Step 1: write the failing test\n"
        "Step 2: implement\n\n"
        "### Task 3: Scheduler\n"
        "- [x] Interval job\n"
        "- [ ] Shutdown hook\n"
    )
