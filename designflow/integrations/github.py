"""
GitHub REST integration.

Read-only access used by the sync engine and project discovery:
- Repositories of the authenticated user
- Open and merged/closed pull requests
- Check runs for a commit
- File contents, directory listings and recursive tree listings
"""

import base64
import logging
from typing import Any, Dict, List, Literal, Optional, Tuple
from urllib.parse import quote

import aiohttp
from pydantic import BaseModel, Field

from config import settings
from ..utils.retry import with_retry, GITHUB_RETRY, NETWORK_ERRORS, RetryExhausted

logger = logging.getLogger(__name__)

PER_PAGE = 100


class GitHubAPIError(Exception):
    """GitHub returned an error response."""

    def __init__(self, status: int, message: str):
        self.status = status
        super().__init__(f"GitHub API error {status}: {message}")


class GitHubTransientError(GitHubAPIError):
    """Server error or secondary rate limit; safe to retry."""
    pass


# ==================== RESPONSE MODELS ====================

class GitHubRepo(BaseModel):
    name: str
    full_name: str
    html_url: str


class GitHubPullRequest(BaseModel):
    """Open pull request."""
    number: int
    title: str
    html_url: str
    requested_reviewers: List[str] = Field(default_factory=list)
    draft: bool = False
    head_sha: Optional[str] = None


class GitHubClosedPullRequest(BaseModel):
    """Merged or closed pull request."""
    number: int
    title: str
    html_url: str
    head_ref: str
    state: Literal["merged", "closed"]
    merged_at: Optional[str] = None


class GitHubCheckRun(BaseModel):
    name: str
    status: str
    conclusion: Optional[str] = None


class GitHubFileContent(BaseModel):
    content: str
    sha: str


class GitHubClient:
    """
    Async GitHub REST client.

    One aiohttp session per client, created lazily and closed with close().
    File and directory lookups treat any failure as "no data"; pull request
    and check run failures propagate to the caller.
    """

    def __init__(
        self,
        token: str,
        api_url: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
    ):
        self.token = token
        self.api_url = (api_url or settings.github_api_url).rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds or settings.github_timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "designflow-sync",
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers=self._headers(), timeout=self.timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    @with_retry(**GITHUB_RETRY, retry_on=(GitHubTransientError, *NETWORK_ERRORS))
    async def _api_request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Tuple[int, Any]:
        """
        GET an API path.

        Returns:
            (status, json body) for 2xx and 404 responses

        Raises:
            GitHubTransientError: 429 or 5xx (retried)
            GitHubAPIError: Any other error status
        """
        session = await self._get_session()
        url = f"{self.api_url}{path}"

        async with session.get(url, params=params) as response:
            if response.status == 404:
                return 404, None

            if response.status == 429 or response.status >= 500:
                raise GitHubTransientError(response.status, await response.text())

            if response.status >= 400:
                if response.headers.get("X-RateLimit-Remaining") == "0":
                    logger.warning(f"GitHub rate limit exhausted (resets at {response.headers.get('X-RateLimit-Reset')})")
                raise GitHubAPIError(response.status, await response.text())

            return response.status, await response.json()

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        status, data = await self._api_request(path, params)
        if status == 404:
            raise GitHubAPIError(404, f"{path} not found")
        return data

    @staticmethod
    def _repo_path(owner: str, repo: str) -> str:
        return f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}"

    # ==================== REPOSITORIES ====================

    async def list_repos(self) -> List[GitHubRepo]:
        """Repositories of the authenticated user, most recently updated first."""
        data = await self._get_json("/user/repos", {"per_page": PER_PAGE, "sort": "updated"})
        return [
            GitHubRepo(name=repo["name"], full_name=repo["full_name"], html_url=repo["html_url"])
            for repo in data
        ]

    # ==================== PULL REQUESTS ====================

    async def list_open_prs(self, owner: str, repo: str) -> List[GitHubPullRequest]:
        data = await self._get_json(
            f"{self._repo_path(owner, repo)}/pulls",
            {"state": "open", "per_page": PER_PAGE},
        )
        return [
            GitHubPullRequest(
                number=pr["number"],
                title=pr["title"],
                html_url=pr["html_url"],
                requested_reviewers=[r["login"] for r in pr.get("requested_reviewers") or []],
                draft=bool(pr.get("draft")),
                head_sha=(pr.get("head") or {}).get("sha"),
            )
            for pr in data
        ]

    async def list_merged_prs(self, owner: str, repo: str) -> List[GitHubClosedPullRequest]:
        """Closed pull requests; those with merged_at set are reported as merged."""
        data = await self._get_json(
            f"{self._repo_path(owner, repo)}/pulls",
            {"state": "closed", "per_page": PER_PAGE, "sort": "updated", "direction": "desc"},
        )
        return [
            GitHubClosedPullRequest(
                number=pr["number"],
                title=pr["title"],
                html_url=pr["html_url"],
                head_ref=(pr.get("head") or {}).get("ref", ""),
                state="merged" if pr.get("merged_at") else "closed",
                merged_at=pr.get("merged_at"),
            )
            for pr in data
        ]

    async def get_check_runs(self, owner: str, repo: str, ref: str) -> List[GitHubCheckRun]:
        data = await self._get_json(
            f"{self._repo_path(owner, repo)}/commits/{quote(ref, safe='')}/check-runs",
            {"per_page": PER_PAGE},
        )
        return [
            GitHubCheckRun(name=check["name"], status=check["status"], conclusion=check.get("conclusion"))
            for check in data.get("check_runs", [])
        ]

    # ==================== CONTENTS ====================

    async def get_file_content(self, owner: str, repo: str, path: str) -> Optional[GitHubFileContent]:
        """Decoded file content, or None when missing, not a file, or unreachable."""
        try:
            status, data = await self._api_request(
                f"{self._repo_path(owner, repo)}/contents/{quote(path, safe='/')}"
            )
        except (GitHubAPIError, RetryExhausted) as e:
            logger.warning(f"Could not fetch {owner}/{repo}:{path}: {e}")
            return None

        if status == 404 or not isinstance(data, dict) or not isinstance(data.get("content"), str):
            return None

        try:
            content = base64.b64decode(data["content"]).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning(f"Could not decode {owner}/{repo}:{path}: {e}")
            return None

        return GitHubFileContent(content=content, sha=data.get("sha", ""))

    async def list_directory_contents(self, owner: str, repo: str, path: str) -> List[str]:
        """Paths of the files directly inside a directory (empty on any failure)."""
        try:
            status, data = await self._api_request(
                f"{self._repo_path(owner, repo)}/contents/{quote(path, safe='/')}"
            )
        except (GitHubAPIError, RetryExhausted) as e:
            logger.warning(f"Could not list {owner}/{repo}:{path}: {e}")
            return []

        if status == 404 or not isinstance(data, list):
            return []
        return [item["path"] for item in data if item.get("type") == "file"]

    async def list_files_recursively(self, owner: str, repo: str, path_prefix: str) -> List[str]:
        """Blob paths under a directory anywhere in the HEAD tree (empty on any failure)."""
        try:
            status, data = await self._api_request(
                f"{self._repo_path(owner, repo)}/git/trees/HEAD",
                {"recursive": "1"},
            )
        except (GitHubAPIError, RetryExhausted) as e:
            logger.warning(f"Could not read tree of {owner}/{repo}: {e}")
            return []

        if status == 404 or not isinstance(data, dict):
            return []

        prefix = path_prefix.rstrip("/") + "/"
        return [
            item["path"]
            for item in data.get("tree", [])
            if item.get("type") == "blob" and item.get("path", "").startswith(prefix)
        ]
