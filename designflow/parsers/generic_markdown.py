"""Fallback profile: any document with "## " sections and checklists."""

import re
from typing import List, Optional

from .base import PlanProfile, PHASE_HEADING_RE, extract_title, match_checklist
from ..models.plan import ParsedPlan, PlanPhase, PlanTask, derive_phase_status

HAS_PHASE_RE = re.compile(r"^## .+", re.MULTILINE)
HAS_CHECKLIST_RE = re.compile(r"^- \[(x| )\] .+", re.MULTILINE)


class GenericMarkdownProfile(PlanProfile):
    name = "generic-markdown"

    def detect(self, content: str) -> bool:
        return bool(HAS_PHASE_RE.search(content) and HAS_CHECKLIST_RE.search(content))

    def parse(self, content: str) -> ParsedPlan:
        phases: List[PlanPhase] = []
        current: Optional[PlanPhase] = None

        for line in content.splitlines():
            heading = PHASE_HEADING_RE.match(line)
            if heading:
                if current is not None:
                    phases.append(current)
                current = PlanPhase(name=heading.group(1).strip())
                continue

            # Checklists above the first section have no phase to belong to
            item = match_checklist(line)
            if item and current is not None:
                current.tasks.append(PlanTask(text=item.group(2).strip(), done=item.group(1) == "x"))

        if current is not None:
            phases.append(current)

        for phase in phases:
            phase.status = derive_phase_status(phase.tasks)

        return ParsedPlan(title=extract_title(content), format=self.name, phases=phases)
