"""
Parser profile interface.

A profile is a named (detect, parse) pair for one planning-document
convention. Detection must stay cheap: a handful of regex searches.
"""

import re
from abc import ABC, abstractmethod
from typing import Optional

from ..models.plan import ParsedPlan

DEFAULT_TITLE = "Untitled Plan"

TITLE_RE = re.compile(r"^# (.+)$", re.MULTILINE)
PHASE_HEADING_RE = re.compile(r"^## (.+)$")
CHECKLIST_RE = re.compile(r"^- \[(x| )\] (.+)$")


def extract_title(content: str) -> str:
    """Text of the first top-level heading."""
    match = TITLE_RE.search(content)
    return match.group(1).strip() if match else DEFAULT_TITLE


def match_checklist(line: str, pattern: re.Pattern = CHECKLIST_RE) -> Optional[re.Match]:
    return pattern.match(line.rstrip())


class PlanProfile(ABC):
    """Capability pair for one document convention."""

    name: str = ""

    @abstractmethod
    def detect(self, content: str) -> bool:
        """True when the content follows this convention."""

    @abstractmethod
    def parse(self, content: str) -> ParsedPlan:
        """Extract title and phases. Only called after detect() or an explicit override."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
