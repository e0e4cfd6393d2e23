"""
Plan document parsers.

Detects which planning convention a markdown file follows and extracts a
normalized phase/task tree from it.
"""

from .base import PlanProfile
from .speckit_tasks import SpeckitTasksProfile
from .task_list import TaskListProfile
from .generic_markdown import GenericMarkdownProfile
from .registry import (
    ProfileRegistry,
    build_default_registry,
    get_profile_registry,
    register_profile,
    get_profile_names,
    detect_and_parse,
)

__all__ = [
    "PlanProfile",
    "SpeckitTasksProfile",
    "TaskListProfile",
    "GenericMarkdownProfile",
    "ProfileRegistry",
    "build_default_registry",
    "get_profile_registry",
    "register_profile",
    "get_profile_names",
    "detect_and_parse",
]
