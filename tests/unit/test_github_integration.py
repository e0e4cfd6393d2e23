"""
Unit tests for the GitHub REST client.

HTTP is mocked at the aiohttp session (for status handling and retries) or at
_api_request (for response mapping).
"""

import base64
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from designflow.integrations.github import GitHubClient, GitHubAPIError
from designflow.utils.retry import RetryExhausted


def mock_response(status, json_data=None, text="", headers=None):
    response = MagicMock()
    response.status = status
    response.headers = headers or {}
    response.json = AsyncMock(return_value=json_data)
    response.text = AsyncMock(return_value=text)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


@pytest.fixture
def client():
    return GitHubClient("test-token", api_url="https://api.github.test/")


@pytest.fixture
def session(client):
    """Replace the lazily created aiohttp session."""
    mock_session = MagicMock()
    mock_session.closed = False
    client._session = mock_session
    return mock_session


@pytest.fixture
def no_sleep():
    with patch("designflow.utils.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        yield sleep


# ==================== REQUEST HANDLING ====================

class TestApiRequest:

    @pytest.mark.asyncio
    async def test_success_returns_json(self, client, session):
        session.get = MagicMock(return_value=mock_response(200, [{"id": 1}]))

        status, data = await client._api_request("/user/repos", {"per_page": 100})

        assert (status, data) == (200, [{"id": 1}])
        session.get.assert_called_once_with("https://api.github.test/user/repos", params={"per_page": 100})

    @pytest.mark.asyncio
    async def test_not_found_is_not_an_error(self, client, session):
        session.get = MagicMock(return_value=mock_response(404))

        assert await client._api_request("/repos/a/b/contents/x.md") == (404, None)

    @pytest.mark.asyncio
    async def test_client_error_raises_without_retry(self, client, session, no_sleep):
        session.get = MagicMock(return_value=mock_response(401, text="Bad credentials"))

        with pytest.raises(GitHubAPIError) as exc_info:
            await client._api_request("/user/repos")

        assert exc_info.value.status == 401
        assert session.get.call_count == 1
        no_sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, client, session, no_sleep):
        session.get = MagicMock(side_effect=[
            mock_response(502, text="Bad gateway"),
            mock_response(200, {"ok": True}),
        ])

        status, data = await client._api_request("/user/repos")

        assert data == {"ok": True}
        assert session.get.call_count == 2
        no_sleep.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_persistent_rate_limit_exhausts_retries(self, client, session, no_sleep):
        session.get = MagicMock(side_effect=lambda *a, **kw: mock_response(429, text="slow down"))

        with pytest.raises(RetryExhausted):
            await client._api_request("/user/repos")

        assert session.get.call_count == 4

    def test_headers_carry_token(self, client):
        headers = client._headers()

        assert headers["Authorization"] == "Bearer test-token"
        assert headers["Accept"] == "application/vnd.github+json"
        assert client.api_url == "https://api.github.test"


# ==================== RESPONSE MAPPING ====================

class TestEndpoints:

    @pytest.mark.asyncio
    async def test_list_open_prs(self, client):
        client._api_request = AsyncMock(return_value=(200, [
            {
                "number": 5,
                "title": "Add search",
                "html_url": "https://github.com/acme/web/pull/5",
                "requested_reviewers": [{"login": "alice"}, {"login": "bob"}],
                "draft": False,
                "head": {"sha": "abc", "ref": "005-search"},
            },
            {
                "number": 6,
                "title": "WIP",
                "html_url": "https://github.com/acme/web/pull/6",
                "requested_reviewers": None,
                "draft": True,
                "head": {"sha": "def"},
            },
        ]))

        prs = await client.list_open_prs("acme", "web")

        assert prs[0].requested_reviewers == ["alice", "bob"]
        assert prs[0].head_sha == "abc"
        assert prs[1].requested_reviewers == []
        assert prs[1].draft is True
        client._api_request.assert_awaited_once_with(
            "/repos/acme/web/pulls", {"state": "open", "per_page": 100}
        )

    @pytest.mark.asyncio
    async def test_list_merged_prs_distinguishes_merged_and_closed(self, client):
        client._api_request = AsyncMock(return_value=(200, [
            {"number": 1, "title": "a", "html_url": "u1", "head": {"ref": "001-a"},
             "merged_at": "2026-01-01T00:00:00Z"},
            {"number": 2, "title": "b", "html_url": "u2", "head": {"ref": "fix/b"}, "merged_at": None},
        ]))

        prs = await client.list_merged_prs("acme", "web")

        assert [(p.number, p.state, p.head_ref) for p in prs] == [(1, "merged", "001-a"), (2, "closed", "fix/b")]

    @pytest.mark.asyncio
    async def test_pull_request_errors_propagate(self, client):
        client._api_request = AsyncMock(side_effect=GitHubAPIError(403, "forbidden"))

        with pytest.raises(GitHubAPIError):
            await client.list_open_prs("acme", "web")

    @pytest.mark.asyncio
    async def test_missing_repository_raises(self, client):
        client._api_request = AsyncMock(return_value=(404, None))

        with pytest.raises(GitHubAPIError) as exc_info:
            await client.list_open_prs("acme", "gone")

        assert exc_info.value.status == 404

    @pytest.mark.asyncio
    async def test_get_check_runs(self, client):
        client._api_request = AsyncMock(return_value=(200, {
            "total_count": 2,
            "check_runs": [
                {"name": "lint", "status": "completed", "conclusion": "success"},
                {"name": "test", "status": "in_progress", "conclusion": None},
            ],
        }))

        checks = await client.get_check_runs("acme", "web", "abc")

        assert [(c.name, c.conclusion) for c in checks] == [("lint", "success"), ("test", None)]

    @pytest.mark.asyncio
    async def test_list_repos(self, client):
        client._api_request = AsyncMock(return_value=(200, [
            {"name": "web", "full_name": "acme/web", "html_url": "https://github.com/acme/web", "private": True},
        ]))

        repos = await client.list_repos()

        assert repos[0].full_name == "acme/web"


# ==================== CONTENTS ====================

class TestContents:

    @pytest.mark.asyncio
    async def test_get_file_content_decodes_base64(self, client):
        encoded = base64.b64encode("# Plan\n- [x] done\n".encode("utf-8")).decode("ascii")
        client._api_request = AsyncMock(return_value=(200, {"content": encoded, "sha": "s1", "type": "file"}))

        file_data = await client.get_file_content("acme", "web", "docs/plans/a.md")

        assert file_data.content == "# Plan\n- [x] done\n"
        assert file_data.sha == "s1"

    @pytest.mark.asyncio
    async def test_get_file_content_missing(self, client):
        client._api_request = AsyncMock(return_value=(404, None))

        assert await client.get_file_content("acme", "web", "nope.md") is None

    @pytest.mark.asyncio
    async def test_get_file_content_directory_is_none(self, client):
        client._api_request = AsyncMock(return_value=(200, [{"path": "docs/a.md"}]))

        assert await client.get_file_content("acme", "web", "docs") is None

    @pytest.mark.asyncio
    async def test_get_file_content_swallows_errors(self, client):
        client._api_request = AsyncMock(side_effect=GitHubAPIError(500, "boom"))

        assert await client.get_file_content("acme", "web", "a.md") is None

    @pytest.mark.asyncio
    async def test_list_directory_returns_files_only(self, client):
        client._api_request = AsyncMock(return_value=(200, [
            {"path": "docs/plans/a.md", "type": "file"},
            {"path": "docs/plans/archive", "type": "dir"},
        ]))

        assert await client.list_directory_contents("acme", "web", "docs/plans") == ["docs/plans/a.md"]

    @pytest.mark.asyncio
    async def test_list_directory_failure_is_empty(self, client):
        client._api_request = AsyncMock(side_effect=RetryExhausted("gave up"))

        assert await client.list_directory_contents("acme", "web", "docs/plans") == []

    @pytest.mark.asyncio
    async def test_list_files_recursively_filters_prefix(self, client):
        client._api_request = AsyncMock(return_value=(200, {"tree": [
            {"path": "specs", "type": "tree"},
            {"path": "specs/001-a/spec.md", "type": "blob"},
            {"path": "specs/001-a/tasks.md", "type": "blob"},
            {"path": "specsheet.md", "type": "blob"},
            {"path": "docs/specs/x.md", "type": "blob"},
        ]}))

        files = await client.list_files_recursively("acme", "web", "specs")

        assert files == ["specs/001-a/spec.md", "specs/001-a/tasks.md"]
        client._api_request.assert_awaited_once_with("/repos/acme/web/git/trees/HEAD", {"recursive": "1"})
