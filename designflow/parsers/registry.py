"""
Ordered profile registry.

Profiles are tried most specific first. The fallback profile is pinned to the
end: registering a profile inserts it just before the fallback. A document can
bypass detection by naming its profile in front matter:

    ---
    framework: speckit-tasks
    ---
"""

import logging
from typing import Iterable, List, Optional

import frontmatter
import yaml

from .base import PlanProfile
from .speckit_tasks import SpeckitTasksProfile
from .task_list import TaskListProfile
from .generic_markdown import GenericMarkdownProfile
from ..models.plan import ParsedPlan

logger = logging.getLogger(__name__)

OVERRIDE_KEYS = ("framework", "generator")


def declared_profile_name(content: str) -> Optional[str]:
    """Profile named by a leading front-matter block, if any."""
    if not content.startswith("---"):
        return None
    try:
        metadata = frontmatter.loads(content).metadata
    except yaml.YAMLError as e:
        logger.debug(f"Ignoring unparseable front matter: {e}")
        return None

    for key in OVERRIDE_KEYS:
        value = metadata.get(key)
        if value:
            return str(value).strip()
    return None


class ProfileRegistry:
    """Profiles in evaluation order with a fixed fallback at the end."""

    def __init__(self, profiles: Iterable[PlanProfile], fallback: PlanProfile):
        self._profiles: List[PlanProfile] = list(profiles)
        self._fallback = fallback
        names = self.names()
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate profile names: {names}")

    @property
    def profiles(self) -> List[PlanProfile]:
        return [*self._profiles, self._fallback]

    def names(self) -> List[str]:
        return [profile.name for profile in self.profiles]

    def get(self, name: str) -> Optional[PlanProfile]:
        for profile in self.profiles:
            if profile.name == name:
                return profile
        return None

    def register(self, profile: PlanProfile) -> None:
        """Add a profile ahead of the fallback (after every earlier registration)."""
        if self.get(profile.name) is not None:
            raise ValueError(f"Profile {profile.name!r} is already registered")
        self._profiles.append(profile)
        logger.info(f"Registered plan profile {profile.name}")

    def detect_and_parse(self, content: str) -> Optional[ParsedPlan]:
        """
        Parse content with the declared or first detecting profile.

        Returns None when no profile recognizes the document.
        """
        declared = declared_profile_name(content)
        if declared:
            profile = self.get(declared)
            if profile is not None:
                return profile.parse(content)
            logger.debug(f"Front matter names unknown profile {declared!r}, falling back to detection")

        for profile in self.profiles:
            if profile.detect(content):
                return profile.parse(content)

        return None


def build_default_registry() -> ProfileRegistry:
    """Built-in profiles, highest priority first."""
    return ProfileRegistry(
        [SpeckitTasksProfile(), TaskListProfile()],
        fallback=GenericMarkdownProfile(),
    )


_registry: Optional[ProfileRegistry] = None


def get_profile_registry() -> ProfileRegistry:
    """Get the process-wide registry."""
    global _registry
    if _registry is None:
        _registry = build_default_registry()
    return _registry


def register_profile(profile: PlanProfile) -> None:
    get_profile_registry().register(profile)


def get_profile_names() -> List[str]:
    return get_profile_registry().names()


def detect_and_parse(content: str) -> Optional[ParsedPlan]:
    return get_profile_registry().detect_and_parse(content)
