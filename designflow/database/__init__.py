"""
Relational store for DesignFlow.

Handles:
- Projects and their tracking state
- Parsed plans with phase/task progress
- Attention items (the inbox)
- Pull request snapshots
- Key/value settings

SQLite by default, PostgreSQL via asyncpg.
"""

from .connection import (
    get_database,
    Database,
    init_database,
    close_database,
)
from .models import (
    Base,
    ProjectDB,
    PlanDB,
    AttentionItemDB,
    PullRequestDB,
    SettingDB,
    ProjectSourceEnum,
    AttentionTypeEnum,
    PullRequestStateEnum,
)

__all__ = [
    "get_database",
    "Database",
    "init_database",
    "close_database",
    "Base",
    "ProjectDB",
    "PlanDB",
    "AttentionItemDB",
    "PullRequestDB",
    "SettingDB",
    "ProjectSourceEnum",
    "AttentionTypeEnum",
    "PullRequestStateEnum",
]
