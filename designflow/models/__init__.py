"""Data models for DesignFlow."""

from .plan import PhaseStatus, PlanTask, PlanPhase, ParsedPlan, derive_phase_status

__all__ = [
    "PhaseStatus",
    "PlanTask",
    "PlanPhase",
    "ParsedPlan",
    "derive_phase_status",
]
