"""
Implementation plans laid out as "### Task N: ..." sections.

Each task heading is a phase. Progress can only be read from checklist lines
in the section body; prose steps leave the phase not_started.
"""

import re
from typing import List, Optional

from .base import PlanProfile, extract_title, match_checklist
from ..models.plan import ParsedPlan, PlanPhase, PlanTask, derive_phase_status

TASK_HEADING_RE = re.compile(r"^### (Task \d+:.+)$")
DETECT_RE = re.compile(r"^### Task \d+:", re.MULTILINE)


class TaskListProfile(PlanProfile):
    name = "task-list"

    def detect(self, content: str) -> bool:
        return DETECT_RE.search(content) is not None

    def parse(self, content: str) -> ParsedPlan:
        phases: List[PlanPhase] = []
        current: Optional[PlanPhase] = None

        for line in content.splitlines():
            heading = TASK_HEADING_RE.match(line.rstrip())
            if heading:
                if current is not None:
                    phases.append(current)
                current = PlanPhase(name=heading.group(1).strip())
                continue

            if current is None:
                continue

            item = match_checklist(line)
            if item:
                current.tasks.append(PlanTask(text=item.group(2).strip(), done=item.group(1) == "x"))

        if current is not None:
            phases.append(current)

        for phase in phases:
            phase.status = derive_phase_status(phase.tasks)

        return ParsedPlan(title=extract_title(content), format=self.name, phases=phases)
