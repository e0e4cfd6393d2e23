"""Speckit tasks.md files: checklist items carry task IDs like T001."""

import re
from typing import List, Optional

from .base import PlanProfile, PHASE_HEADING_RE, extract_title, match_checklist
from ..models.plan import ParsedPlan, PlanPhase, PlanTask, derive_phase_status

# - [ ] T001 [P] [US1] Description
TASK_ID_RE = re.compile(r"^- \[([ xX])\] (T\d+.*)$")
DETECT_RE = re.compile(r"^- \[[ xX]\] T\d+", re.MULTILINE)

DEFAULT_PHASE = "Tasks"


class SpeckitTasksProfile(PlanProfile):
    name = "speckit-tasks"

    def detect(self, content: str) -> bool:
        return DETECT_RE.search(content) is not None

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

            task = match_checklist(line, TASK_ID_RE)
            if task:
                if current is None:
                    current = PlanPhase(name=DEFAULT_PHASE)
                current.tasks.append(
                    PlanTask(text=task.group(2).strip(), done=task.group(1).lower() == "x")
                )

        if current is not None:
            phases.append(current)

        for phase in phases:
            phase.status = derive_phase_status(phase.tasks)

        return ParsedPlan(title=extract_title(content), format=self.name, phases=phases)
