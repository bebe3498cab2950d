"""Unit tests for MigrationPlanner."""

import pytest
from pydantic import ValidationError

from modules.advisor import EffortLevel
from modules.migration import ROLLBACK_PLAN, MigrationPlanner, StepKind, format_hours


@pytest.fixture
def planner():
    return MigrationPlanner()


@pytest.mark.unit
class TestFormatHours:
    @pytest.mark.parametrize(
        "low,high,expected",
        [
            (0.25, 0.25, "15 minutes"),
            (0.5, 0.5, "30 minutes"),
            (2, 4, "2-4 hours"),
            (1, 8, "1-8 hours"),
            (2, 24, "up to 1 day"),
            (5.5, 36.5, "up to 2 days"),
            (9.5, 52.5, "up to 1 week"),
            (10, 168, "up to 1 week"),
            (10, 169, "more than 1 week"),
        ],
    )
    def test_thresholds(self, low, high, expected):
        assert format_hours(low, high) == expected


@pytest.mark.unit
class TestCreatePlan:
    def test_same_kind_plan(self, planner):
        plan = planner.create_plan("local", "local")

        assert plan.effort == EffortLevel.LOW
        assert [s.kind for s in plan.steps] == [
            StepKind.USERS,
            StepKind.DATA,
            StepKind.FILES,
            StepKind.CONFIGURATION,
        ]
        assert plan.risks == ()
        assert plan.estimated_time == "up to 2 days"
        assert plan.rollback_plan == ROLLBACK_PLAN

    def test_step_details(self, planner):
        plan = planner.create_plan("local", "firebase")

        users = plan.step(StepKind.USERS)
        data = plan.step(StepKind.DATA)
        configuration = plan.step(StepKind.CONFIGURATION)
        assert users.automated
        assert users.estimated_time == "2-4 hours"
        assert data.dependencies == ("Migrate user accounts",)
        assert configuration.estimated_time == "30 minutes"
        assert configuration.dependencies == ("Migrate database", "Migrate file storage")
        assert plan.step(StepKind.FUNCTIONS) is None

    def test_functions_step_between_cloud_backends(self, planner):
        plan = planner.create_plan("firebase", "aws")

        functions = plan.step(StepKind.FUNCTIONS)
        assert functions is not None
        assert not functions.automated
        assert functions.dependencies == ("Migrate database",)
        assert plan.steps[-1].kind == StepKind.CONFIGURATION
        assert plan.estimated_time == "up to 1 week"

    def test_iaas_to_document_store(self, planner):
        plan = planner.create_plan("aws", "firebase")

        assert plan.effort == EffortLevel.HIGH
        assert not plan.step(StepKind.USERS).automated
        assert plan.risks == (
            "Complex queries may need redesign for a document database",
            "Functions need adapting to the target runtime",
            "Password hashes may not transfer; affected users must reset passwords",
            "Significant code changes required",
            "Extended testing period recommended",
        )

    def test_document_store_to_iaas(self, planner):
        plan = planner.create_plan("firebase", "aws")

        assert plan.effort == EffortLevel.MEDIUM
        assert plan.risks[:2] == (
            "Realtime features need a WebSocket implementation",
            "Offline sync needs custom implementation",
        )
        assert len(plan.risks) == 3

    def test_custom_effort_source(self):
        planner = MigrationPlanner(effort=lambda source, target: EffortLevel.HIGH)

        plan = planner.create_plan("local", "local")

        assert plan.effort == EffortLevel.HIGH
        assert "Significant code changes required" in plan.risks

    def test_plans_are_frozen_and_unique(self, planner):
        first = planner.create_plan("local", "aws")
        second = planner.create_plan("local", "aws")

        assert first.id != second.id
        with pytest.raises(ValidationError):
            first.effort = EffortLevel.LOW
