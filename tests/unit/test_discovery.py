"""
Unit tests for GitHub repository discovery.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from designflow.integrations.github import GitHubRepo
from designflow.sync import ProjectDiscovery


@pytest.fixture
def github():
    client = Mock()
    client.list_repos = AsyncMock(return_value=[
        GitHubRepo(name="designflow", full_name="acme/designflow", html_url="https://github.com/acme/designflow"),
        GitHubRepo(name="web", full_name="acme/web", html_url="https://github.com/acme/web"),
    ])
    return client


@pytest.fixture
def discovery(github, repos):
    return ProjectDiscovery(github, projects=repos["projects"], attention=repos["attention"])


@pytest.mark.asyncio
async def test_discover_adds_unknown_repositories(discovery, repos, tracked_project):
    result = await discovery.discover()

    assert result == {"discovered": 2, "added": 1}
    web = await repos["projects"].find_by_github_url("https://github.com/acme/web")
    assert web.source == "github_discovered"
    assert web.is_tracked is False


@pytest.mark.asyncio
async def test_discover_raises_low_priority_inbox_item(discovery, repos):
    await discovery.discover()

    items = await repos["attention"].get_active(item_type="new_project")
    assert len(items) == 2
    assert {i.priority for i in items} == {1}
    assert "acme/web" in {i.title.split(": ")[1] for i in items}


@pytest.mark.asyncio
async def test_discover_twice_adds_nothing(discovery):
    await discovery.discover()

    assert await discovery.discover() == {"discovered": 2, "added": 0}
