"""
Repository classes for database operations.

Each repository handles CRUD and queries for its entity type.
"""

from .projects import ProjectRepository, get_project_repository
from .plans import PlanRepository, get_plan_repository
from .attention import AttentionRepository, get_attention_repository
from .pull_requests import PullRequestRepository, get_pull_request_repository, pull_request_id
from .settings import SettingsRepository, get_settings_repository

__all__ = [
    "ProjectRepository",
    "get_project_repository",
    "PlanRepository",
    "get_plan_repository",
    "AttentionRepository",
    "get_attention_repository",
    "PullRequestRepository",
    "get_pull_request_repository",
    "pull_request_id",
    "SettingsRepository",
    "get_settings_repository",
]
