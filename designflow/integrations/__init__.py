"""External service integrations: GitHub and notification delivery."""

from .github import (
    GitHubClient,
    GitHubAPIError,
    GitHubTransientError,
    GitHubRepo,
    GitHubPullRequest,
    GitHubClosedPullRequest,
    GitHubCheckRun,
    GitHubFileContent,
)
from .notifier import Notifier, get_notifier

__all__ = [
    "GitHubClient",
    "GitHubAPIError",
    "GitHubTransientError",
    "GitHubRepo",
    "GitHubPullRequest",
    "GitHubClosedPullRequest",
    "GitHubCheckRun",
    "GitHubFileContent",
    "Notifier",
    "get_notifier",
]
