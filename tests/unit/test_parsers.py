"""
Unit tests for plan parser profiles and the profile registry.
"""

import pytest

from designflow.models.plan import PhaseStatus, PlanTask, ParsedPlan, derive_phase_status
from designflow.parsers import (
    PlanProfile,
    SpeckitTasksProfile,
    TaskListProfile,
    GenericMarkdownProfile,
    ProfileRegistry,
    build_default_registry,
)
from designflow.parsers.base import DEFAULT_TITLE, extract_title
from designflow.parsers.registry import declared_profile_name


class MarkerProfile(PlanProfile):
    """Test profile that claims any document containing a marker."""

    name = "marker"

    def detect(self, content: str) -> bool:
        return "<!-- designflow:marker -->" in content

    def parse(self, content: str) -> ParsedPlan:
        return ParsedPlan(title=extract_title(content), format=self.name, phases=[])


@pytest.fixture
def registry():
    return build_default_registry()


# ==================== STATUS DERIVATION ====================

class TestDerivePhaseStatus:

    def test_empty_is_not_started(self):
        assert derive_phase_status([]) == PhaseStatus.NOT_STARTED

    def test_none_done(self):
        assert derive_phase_status([PlanTask(text="a"), PlanTask(text="b")]) == PhaseStatus.NOT_STARTED

    def test_some_done(self):
        tasks = [PlanTask(text="a", done=True), PlanTask(text="b")]
        assert derive_phase_status(tasks) == PhaseStatus.IN_PROGRESS

    def test_all_done(self):
        tasks = [PlanTask(text="a", done=True), PlanTask(text="b", done=True)]
        assert derive_phase_status(tasks) == PhaseStatus.COMPLETED


# ==================== TITLE ====================

def test_extract_title_default():
    assert extract_title("## Only a section\n- [ ] task\n") == DEFAULT_TITLE


def test_extract_title_ignores_second_level():
    assert extract_title("## Section\n# Real Title\n") == "Real Title"


# ==================== GENERIC MARKDOWN ====================

class TestGenericMarkdown:

    def test_auth_system_document(self, registry, generic_plan_content):
        plan = registry.detect_and_parse(generic_plan_content)

        assert plan.title == "Auth System"
        assert plan.format == "generic-markdown"
        assert [p.name for p in plan.phases] == ["Phase 1: Design", "Phase 2: Build"]
        assert plan.phases[0].status == PhaseStatus.IN_PROGRESS
        assert plan.phases[1].status == PhaseStatus.NOT_STARTED
        assert plan.phases[0].tasks[0].text == "Wireframes"
        assert plan.phases[0].tasks[0].done is True

    def test_requires_sections_and_checklists(self):
        profile = GenericMarkdownProfile()

        assert profile.detect("## Section\nprose only\n") is False
        assert profile.detect("- [ ] task without a section\n") is False

    def test_checklist_before_first_section_is_dropped(self):
        plan = GenericMarkdownProfile().parse("- [x] orphan\n## Phase\n- [ ] kept\n")

        assert len(plan.phases) == 1
        assert [t.text for t in plan.phases[0].tasks] == ["kept"]

    def test_uppercase_x_is_not_a_checklist(self):
        plan = GenericMarkdownProfile().parse("## Phase\n- [X] upper\n- [x] lower\n")

        assert [t.text for t in plan.phases[0].tasks] == ["lower"]


# ==================== SPECKIT TASKS ====================

class TestSpeckitTasks:

    def test_detects_task_ids(self, speckit_tasks_content):
        assert SpeckitTasksProfile().detect(speckit_tasks_content) is True
        assert SpeckitTasksProfile().detect("## Phase\n- [ ] no id\n") is False

    def test_parse(self, registry, speckit_tasks_content):
        plan = registry.detect_and_parse(speckit_tasks_content)

        assert plan.format == "speckit-tasks"
        assert plan.title == "Tasks: Portfolio Management"
        assert plan.phases[0].status == PhaseStatus.COMPLETED
        assert plan.phases[1].status == PhaseStatus.IN_PROGRESS
        assert plan.phases[0].tasks[1].text == "T002 [P] Configure linting"
        assert plan.phases[0].tasks[1].done is True

    def test_tasks_without_heading_get_synthetic_phase(self):
        plan = SpeckitTasksProfile().parse("# Tasks\n- [ ] T001 First\n- [x] T002 Second\n")

        assert len(plan.phases) == 1
        assert plan.phases[0].name == "Tasks"
        assert plan.phases[0].status == PhaseStatus.IN_PROGRESS


# ==================== TASK LIST ====================

class TestTaskList:

    def test_parse(self, registry, task_list_content):
        plan = registry.detect_and_parse(task_list_content)

        assert plan.format == "task-list"
        assert [p.name for p in plan.phases] == [
            "Task 1: Database schema",
            "Task 2: GitHub client",
            "Task 3: Scheduler",
        ]
        assert plan.phases[0].status == PhaseStatus.COMPLETED
        assert plan.phases[1].status == PhaseStatus.NOT_STARTED
        assert plan.phases[1].tasks == []
        assert plan.phases[2].status == PhaseStatus.IN_PROGRESS

    def test_not_detected_without_task_headings(self, generic_plan_content):
        assert TaskListProfile().detect(generic_plan_content) is False


# ==================== REGISTRY ====================

class TestRegistry:

    def test_default_order(self, registry):
        assert registry.names() == ["speckit-tasks", "task-list", "generic-markdown"]

    def test_unrecognized_returns_none(self, registry):
        assert registry.detect_and_parse("Just some notes.\n\nNothing structured.\n") is None

    def test_specific_profile_wins_over_fallback(self, registry, speckit_tasks_content):
        # Content satisfies both speckit and generic detection
        assert GenericMarkdownProfile().detect(speckit_tasks_content.replace("[X]", "[x]")) is True
        assert registry.detect_and_parse(speckit_tasks_content).format == "speckit-tasks"

    def test_registered_profile_precedes_fallback(self, registry, generic_plan_content):
        registry.register(MarkerProfile())
        content = generic_plan_content + "\n<!-- designflow:marker -->\n"

        plan = registry.detect_and_parse(content)

        assert plan.format == "marker"
        assert registry.names() == ["speckit-tasks", "task-list", "marker", "generic-markdown"]

    def test_duplicate_registration_rejected(self, registry):
        with pytest.raises(ValueError):
            registry.register(TaskListProfile())

    def test_duplicate_names_rejected_at_construction(self):
        with pytest.raises(ValueError):
            ProfileRegistry([TaskListProfile(), TaskListProfile()], fallback=GenericMarkdownProfile())

    def test_registration_does_not_leak_between_registries(self, registry):
        registry.register(MarkerProfile())

        assert "marker" not in build_default_registry().names()


# ==================== FRONT MATTER OVERRIDE ====================

class TestFrontMatterOverride:

    def test_framework_key_selects_profile(self, registry, generic_plan_content):
        content = "---\nframework: task-list\n---\n" + generic_plan_content

        plan = registry.detect_and_parse(content)

        assert plan.format == "task-list"
        assert plan.title == "Auth System"

    def test_generator_key(self):
        assert declared_profile_name("---\ngenerator: speckit-tasks\n---\n# T\n") == "speckit-tasks"

    def test_framework_takes_precedence_over_generator(self):
        content = "---\nframework: task-list\ngenerator: speckit-tasks\n---\n"
        assert declared_profile_name(content) == "task-list"

    def test_unknown_profile_falls_back_to_detection(self, registry, generic_plan_content):
        content = "---\nframework: unheard-of\n---\n" + generic_plan_content

        assert registry.detect_and_parse(content).format == "generic-markdown"

    def test_no_front_matter(self, generic_plan_content):
        assert declared_profile_name(generic_plan_content) is None

    def test_invalid_yaml_is_ignored(self):
        assert declared_profile_name("---\nframework: [unclosed\n---\n# T\n") is None
