# modules/migration/__init__.py
"""Backend migration module.

Plans migrations between backend kinds and executes them against live
backend instances.

Usage:
    from modules.migration import MigrationExecutor, MigrationOptions, MigrationPlanner

    plan = MigrationPlanner().create_plan("local", "firebase")
    result = await MigrationExecutor().execute(plan, source, target, MigrationOptions())
"""

from modules.migration.errors import MigrationStepError
from modules.migration.executor import MigrationExecutor
from modules.migration.models import (
    MigrationOptions,
    MigrationPlan,
    MigrationResult,
    MigrationStep,
    StepKind,
    StepOutcome,
)
from modules.migration.planner import ROLLBACK_PLAN, MigrationPlanner, format_hours

__all__ = [
    "MigrationExecutor",
    "MigrationOptions",
    "MigrationPlan",
    "MigrationPlanner",
    "MigrationResult",
    "MigrationStep",
    "MigrationStepError",
    "ROLLBACK_PLAN",
    "StepKind",
    "StepOutcome",
    "format_hours",
]
