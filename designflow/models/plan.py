"""Normalized plan data produced by the parser profiles."""

from enum import Enum
from typing import List
from pydantic import BaseModel, Field


class PhaseStatus(str, Enum):
    """Completion state derived from a phase's tasks."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class PlanTask(BaseModel):
    """A single checklist line."""
    text: str
    done: bool = False


class PlanPhase(BaseModel):
    """A named section of a plan document."""
    name: str
    status: PhaseStatus = PhaseStatus.NOT_STARTED
    tasks: List[PlanTask] = Field(default_factory=list)


class ParsedPlan(BaseModel):
    """Result of running a profile's parse over a document."""
    title: str
    format: str
    phases: List[PlanPhase] = Field(default_factory=list)

    def phases_as_json(self) -> list:
        """Phases in the shape stored on the plan row."""
        return [phase.model_dump(mode="json") for phase in self.phases]


def derive_phase_status(tasks: List[PlanTask]) -> PhaseStatus:
    """All done -> completed, some done -> in_progress, none or empty -> not_started."""
    if not tasks:
        return PhaseStatus.NOT_STARTED
    done_count = sum(1 for task in tasks if task.done)
    if done_count == len(tasks):
        return PhaseStatus.COMPLETED
    if done_count > 0:
        return PhaseStatus.IN_PROGRESS
    return PhaseStatus.NOT_STARTED
